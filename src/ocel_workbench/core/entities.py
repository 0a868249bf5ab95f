"""Typed entities held by the store: event logs, relation graphs and tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import networkx as nx
import pandas as pd

from .ocdg import generate_ocdg_string
from .ocel import EventLog, ocel_to_json

NOT_AVAILABLE = "na"

# A preview is only rendered below these sizes.
PREVIEW_MAX_GRAPH_NODES = 20
PREVIEW_MAX_LOG_OBJECTS = 10
PREVIEW_MAX_LOG_EVENTS = 100
PREVIEW_MAX_TABLE_ROWS = 500


class EntityKind(str, Enum):
    OCEL = "ocel"
    OCDG = "ocdg"
    TABLE = "table"

    @property
    def long_name(self) -> str:
        return _LONG_NAMES[self]

    @classmethod
    def from_slot(cls, slot: str) -> "EntityKind":
        try:
            return cls(str(slot).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown entity kind: {slot}") from exc


_LONG_NAMES = {
    EntityKind.OCEL: "Object-Centric Event Log",
    EntityKind.OCDG: "Object-Centric Directed Graph",
    EntityKind.TABLE: "DataFrame",
}

_PAYLOAD_TYPES: dict[EntityKind, type] = {
    EntityKind.OCEL: EventLog,
    EntityKind.OCDG: nx.DiGraph,
    EntityKind.TABLE: pd.DataFrame,
}


@dataclass(frozen=True)
class Entity:
    id: int
    kind: EntityKind
    payload: Any
    metadata: dict[str, Any] = field(default_factory=dict)
    instance_data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        expected = _PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.kind.value} entity requires a {expected.__name__} payload, "
                f"got {type(self.payload).__name__}"
            )
        if self.metadata.get("id", self.id) != self.id:
            raise ValueError("metadata['id'] must equal the entity id")

    @property
    def name(self) -> str:
        return str(self.metadata.get("name", f"{self.kind.value} {self.id}"))

    def get_info(self) -> dict[str, Any]:
        return {
            "metadata": dict(self.metadata),
            "instancedata": dict(self.instance_data),
        }

    def get_analysis_view(self) -> str:
        if self.kind is EntityKind.OCEL:
            log: EventLog = self.payload
            if (
                len(log.objects) < PREVIEW_MAX_LOG_OBJECTS
                and len(log.events) < PREVIEW_MAX_LOG_EVENTS
            ):
                return ocel_to_json(log)
        elif self.kind is EntityKind.OCDG:
            if self.payload.number_of_nodes() < PREVIEW_MAX_GRAPH_NODES:
                return generate_ocdg_string(self.payload)
        elif self.kind is EntityKind.TABLE:
            if len(self.payload.index) < PREVIEW_MAX_TABLE_ROWS:
                return table_to_json(self.payload)
        return NOT_AVAILABLE


def table_to_json(frame: pd.DataFrame) -> str:
    return frame.to_json(orient="split", date_format="iso")


def default_instance_data(kind: EntityKind, payload: Any) -> list[tuple[str, Any]]:
    if kind is EntityKind.OCEL:
        log: EventLog = payload
        return [
            ("Event #", len(log.events)),
            ("Object #", len(log.objects)),
            ("Activities", log.activities),
            ("Object Types", log.object_types),
        ]
    if kind is EntityKind.OCDG:
        return [
            ("Node #", payload.number_of_nodes()),
            ("Edge #", payload.number_of_edges()),
        ]
    rows, columns = payload.shape
    return [("rows", int(rows)), ("columns", int(columns))]


class EntityBuilder:
    """Accumulates metadata and instance data before an entity is filed.

    Keys are insert-if-absent: the first value written for a key wins.
    """

    def __init__(self, entity_id: int) -> None:
        self.entity_id = entity_id
        self.metadata: dict[str, Any] = {}
        self.instance_data: dict[str, Any] = {}
        self.metadata.setdefault("id", entity_id)

    def meta(self, key: str, value: Any) -> "EntityBuilder":
        self.metadata.setdefault(key, value)
        return self

    def instance(self, key: str, value: Any) -> "EntityBuilder":
        self.instance_data.setdefault(key, value)
        return self

    def extend_instance(self, items: list[tuple[str, Any]] | dict[str, Any]) -> "EntityBuilder":
        pairs = items.items() if isinstance(items, dict) else items
        for key, value in pairs:
            self.instance(key, value)
        return self

    def build(self, kind: EntityKind, payload: Any, name: str | None = None) -> Entity:
        if name is not None:
            self.meta("name", name)
        self.meta("type", kind.value)
        self.meta("type-long", kind.long_name)
        self.extend_instance(default_instance_data(kind, payload))
        return Entity(
            id=self.entity_id,
            kind=kind,
            payload=payload,
            metadata=dict(self.metadata),
            instance_data=dict(self.instance_data),
        )
