"""Situation extraction: a per-object or per-event target under a filter set.

Each situation kind names the filters it cannot run without. Optional
filters narrow the rows that receive a target; other rows get None.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import networkx as nx
import pandas as pd

from .errors import InvalidInput, InvalidParameter
from .features import EVENT_ID_COLUMN, OBJECT_ID_COLUMN, LogIndex
from .ocdg import edge_relations, neighbors_by_relation, relation_names
from .ocel import EventLog, OcelEvent

ACTIVITIES = "activities"
PROPERTIES = "properties"
OBJECT_TYPES = "object_types"
RELATIONS = "relations"

TARGET_COLUMN = "Target"


@dataclass(frozen=True)
class SituationFilters:
    activities: tuple[str, ...] = ()
    properties: tuple[str, ...] = ()
    object_types: tuple[str, ...] = ()
    relations: tuple[str, ...] = ()

    def given(self, name: str) -> bool:
        return bool(getattr(self, name))


@dataclass(frozen=True)
class Situation:
    name: str
    required: frozenset[str]
    target: Callable[..., Any]


def _object_lifetime(index: LogIndex, oid: str, filters: SituationFilters) -> Any:
    events = index.lifecycles.get(oid) or []
    if not events:
        return None
    return float((events[-1].timestamp - events[0].timestamp).total_seconds())


def _object_missing_activity(index: LogIndex, oid: str, filters: SituationFilters) -> Any:
    seen = {e.activity for e in index.lifecycles.get(oid) or []}
    return not seen.intersection(filters.activities)


def _object_property(index: LogIndex, oid: str, filters: SituationFilters) -> Any:
    ovmap = index.log.objects[oid].ovmap
    for prop in filters.properties:
        if prop in ovmap:
            return ovmap[prop]
    return None


def _object_relation_count(index: LogIndex, oid: str, filters: SituationFilters) -> Any:
    neighbors: set[str] = set()
    for relation in filters.relations:
        neighbors |= neighbors_by_relation(index.graph, oid, relation)
    return len(neighbors)


def _event_wait(index: LogIndex, event: OcelEvent, filters: SituationFilters) -> Any:
    previous = index.previous_timestamp(event)
    if previous is None:
        return None
    return float((event.timestamp - previous).total_seconds())


def _event_object_choice(index: LogIndex, event: OcelEvent, filters: SituationFilters) -> Any:
    return sum(1 for oid in event.omap if index.object_types.get(oid) in filters.object_types)


def _event_missing_object_type(index: LogIndex, event: OcelEvent, filters: SituationFilters) -> Any:
    return not any(index.object_types.get(oid) in filters.object_types for oid in event.omap)


def _event_property(index: LogIndex, event: OcelEvent, filters: SituationFilters) -> Any:
    for prop in filters.properties:
        if prop in event.vmap:
            return event.vmap[prop]
    return None


def _event_missing_relation(index: LogIndex, event: OcelEvent, filters: SituationFilters) -> Any:
    members = set(event.omap)
    for source in members:
        if source not in index.graph:
            continue
        for _, target, data in index.graph.out_edges(source, data=True):
            if target in members and edge_relations(data).intersection(filters.relations):
                return False
    return True


OBJECT_SITUATIONS: dict[str, Situation] = {
    s.name: s
    for s in (
        Situation("ObjectLifetime", frozenset(), _object_lifetime),
        Situation("ObjectMissingActivity", frozenset({ACTIVITIES}), _object_missing_activity),
        Situation("ObjectProperty", frozenset({PROPERTIES}), _object_property),
        Situation("ObjectRelationCount", frozenset({RELATIONS}), _object_relation_count),
    )
}

EVENT_SITUATIONS: dict[str, Situation] = {
    s.name: s
    for s in (
        Situation("EventWait", frozenset(), _event_wait),
        Situation("EventObjectChoice", frozenset({OBJECT_TYPES}), _event_object_choice),
        Situation("EventMissingObjectType", frozenset({OBJECT_TYPES}), _event_missing_object_type),
        Situation("EventProperty", frozenset({PROPERTIES}), _event_property),
        Situation("EventMissingRelation", frozenset({RELATIONS}), _event_missing_relation),
    )
}


def check_filters(situation: Situation, filters: SituationFilters, graph: nx.DiGraph | None) -> None:
    missing = sorted(name for name in situation.required if not filters.given(name))
    if missing:
        raise InvalidInput(
            f"Situation {situation.name} requires filter(s): {', '.join(missing)}"
        )
    if RELATIONS in situation.required and graph is None:
        raise InvalidInput(f"Situation {situation.name} requires an ocdg input")


def log_properties(log: EventLog) -> list[str]:
    names: set[str] = set()
    for event in log.events.values():
        names.update(event.vmap)
    for obj in log.objects.values():
        names.update(obj.ovmap)
    return sorted(names)


def object_situation(
    log: EventLog, graph: nx.DiGraph | None, kind: str, filters: SituationFilters
) -> pd.DataFrame:
    situation = OBJECT_SITUATIONS[kind]
    check_filters(situation, filters, graph)
    index = LogIndex(log, graph)
    narrow_types = OBJECT_TYPES not in situation.required and filters.object_types
    narrow_activities = ACTIVITIES not in situation.required and filters.activities
    rows = []
    for oid, obj in log.objects.items():
        target = None
        applies = not narrow_types or obj.object_type in filters.object_types
        if applies and narrow_activities:
            applies = any(e.activity in filters.activities for e in index.lifecycles.get(oid) or [])
        if applies:
            target = situation.target(index, oid, filters)
        rows.append({OBJECT_ID_COLUMN: oid, TARGET_COLUMN: target})
    return pd.DataFrame(rows, columns=[OBJECT_ID_COLUMN, TARGET_COLUMN], dtype=object)


def event_situation(
    log: EventLog, graph: nx.DiGraph | None, kind: str, filters: SituationFilters
) -> pd.DataFrame:
    situation = EVENT_SITUATIONS[kind]
    check_filters(situation, filters, graph)
    index = LogIndex(log, graph)
    narrow_types = OBJECT_TYPES not in situation.required and filters.object_types
    narrow_activities = ACTIVITIES not in situation.required and filters.activities
    rows = []
    for event in index.events:
        target = None
        applies = not narrow_activities or event.activity in filters.activities
        if applies and narrow_types:
            applies = any(index.object_types.get(oid) in filters.object_types for oid in event.omap)
        if applies:
            target = situation.target(index, event, filters)
        rows.append({EVENT_ID_COLUMN: event.event_id, TARGET_COLUMN: target})
    return pd.DataFrame(rows, columns=[EVENT_ID_COLUMN, TARGET_COLUMN], dtype=object)


def situation_parameters(
    situations: dict[str, Situation], context: dict[str, Any] | None
) -> list[dict[str, Any]]:
    """Situation choice plus one filter list per filter kind."""

    context = context or {}
    return [
        {"header": "General", "dropdown:Situation": list(situations)},
        {
            "header": "Filters",
            "multichoice:Activities": [str(a) for a in context.get("activities") or []],
            "multichoice:Properties": [str(p) for p in context.get("properties") or []],
            "multichoice:Object Types": [str(t) for t in context.get("object_types") or []],
            "multichoice:Relations": relation_names(),
        },
    ]


def filters_from_params(params: dict[str, Any], log: EventLog) -> SituationFilters:
    """Filters chosen in `params`, each value checked against `log`."""

    known = {
        "Activities": set(log.activities),
        "Properties": set(log_properties(log)),
        "Object Types": set(log.object_types),
    }
    chosen: dict[str, tuple[str, ...]] = {}
    for name in ("Activities", "Properties", "Object Types", "Relations"):
        values = tuple(params.get(name) or ())
        allowed = known.get(name)
        for value in values:
            if allowed is None:
                if value not in relation_names():
                    raise InvalidParameter(name, f"'{value}' is not a relation kind")
            elif value not in allowed:
                raise InvalidParameter(name, f"'{value}' does not occur in the event log")
        chosen[name] = values
    return SituationFilters(
        activities=chosen["Activities"],
        properties=chosen["Properties"],
        object_types=chosen["Object Types"],
        relations=chosen["Relations"],
    )
