from __future__ import annotations

import threading

from .errors import AllocatorExhausted

MAX_ENTITY_ID = 2**63 - 1


class IdAllocator:
    """Process-wide source of strictly increasing entity ids."""

    def __init__(self, start: int = 1, limit: int = MAX_ENTITY_ID) -> None:
        if start < 1 or start > limit:
            raise ValueError("start must be within [1, limit]")
        self._next = start
        self._limit = limit
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            if self._next > self._limit:
                raise AllocatorExhausted(
                    f"Entity id space exhausted (limit {self._limit})"
                )
            value = self._next
            self._next += 1
            return value

    def peek(self) -> int:
        with self._lock:
            return self._next
