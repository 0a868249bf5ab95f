from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from .entities import Entity, EntityKind
from .errors import InvalidInput


@dataclass
class PluginOutput:
    kind: EntityKind
    payload: Any
    name: str
    instance_data: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class PluginResult:
    output: PluginOutput | None
    # Additional entities filed under freshly allocated ids.
    extra_outputs: list[PluginOutput] = field(default_factory=list)


@dataclass
class PluginRequest:
    enumid: str
    inputs: dict[str, list[Any]] = field(default_factory=dict)
    parameters: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PluginRequest":
        if not isinstance(data, dict) or "enumid" not in data:
            raise InvalidInput("Plugin request requires an 'enumid'")
        inputs = data.get("inputs") or {}
        parameters = data.get("parameters") or []
        if not isinstance(inputs, dict) or not isinstance(parameters, list):
            raise InvalidInput("'inputs' must be an object and 'parameters' a list")
        normalized: dict[str, list[Any]] = {}
        for slot, refs in inputs.items():
            normalized[str(slot)] = list(refs) if isinstance(refs, (list, tuple)) else [refs]
        return cls(enumid=str(data["enumid"]), inputs=normalized, parameters=list(parameters))


@dataclass
class PluginContext:
    entity_id: int
    params: dict[str, Any]
    inputs: dict[str, Entity | None]
    progress: Callable[[str], None]
    logger: Callable[[str], None]
    max_workers: int = 1

    def input(self, slot: str) -> Entity:
        entity = self.inputs.get(slot)
        if entity is None:
            raise InvalidInput(f"Input slot '{slot}' was not provided")
        return entity

    def optional_input(self, slot: str) -> Entity | None:
        return self.inputs.get(slot)


class Plugin(Protocol):
    def run(self, ctx: PluginContext) -> PluginResult | None:  # pragma: no cover - protocol
        ...
