from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable

from .utils import null_logger


@dataclass(frozen=True)
class ProgressEvent:
    current_task: str
    current_step: int
    total_steps: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


ProgressObserver = Callable[[ProgressEvent], None]


class ProgressReporter:
    """Emits step-numbered progress events for one plugin invocation.

    Steps run 1..total_steps. Observer failures are logged and dropped so a
    lost event never aborts the invocation.
    """

    def __init__(
        self,
        total_steps: int,
        observer: ProgressObserver | None = None,
        logger: Callable[[str], None] = null_logger,
    ) -> None:
        if total_steps < 1:
            raise ValueError("total_steps must be positive")
        self.total_steps = total_steps
        self.current_step = 1
        self._observer = observer
        self._logger = logger

    @property
    def emitted(self) -> int:
        return self.current_step - 1

    def emit(self, label: str) -> ProgressEvent | None:
        if self.current_step > self.total_steps:
            self._logger(f"progress clamped: '{label}' beyond step {self.total_steps}")
            return None
        event = ProgressEvent(label, self.current_step, self.total_steps)
        self.current_step += 1
        if self._observer is not None:
            try:
                self._observer(event)
            except Exception as exc:  # observer is best effort
                self._logger(f"progress event dropped: {type(exc).__name__}: {exc}")
        return event

    def step(self, label: str) -> ProgressEvent | None:
        """Emit an intermediate event; the last step is reserved for finish()."""

        if self.current_step >= self.total_steps:
            self._logger(f"progress clamped: '{label}' would consume the final step")
            return None
        return self.emit(label)

    def finish(self, label: str) -> ProgressEvent | None:
        """Emit the closing event, padding any steps a plugin skipped."""

        while self.current_step < self.total_steps:
            self.emit(f"Step {self.current_step} skipped")
        return self.emit(label)
