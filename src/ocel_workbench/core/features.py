"""Point and group features over an event log and its object graph.

Features are addressed as (feature, argument). The argument kind of a
feature decides how its parameters are generated: plain features are
booleans, relation features expand into one boolean per relation kind, and
activity / object-type features become multi-choice lists filled from the
selected log.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

import networkx as nx
import numpy as np
import pandas as pd

from .errors import InvalidParameter
from .ocdg import edge_relations, neighbors_by_relation, relation_names
from .ocel import EventLog, OcelEvent

ANY_RELATION = "Any"
PLAIN = "plain"
RELATION = "relation"
ACTIVITY = "activity"
OBJECT_TYPE = "object_type"

OBJECT_ID_COLUMN = "Object ID"
EVENT_ID_COLUMN = "Event ID"
AGGREGATIONS = ["mean", "sum", "min", "max", "median"]


@dataclass(frozen=True)
class FeatureSpec:
    feature: str
    argument: str | None = None

    @property
    def column(self) -> str:
        return self.feature if self.argument is None else f"{self.feature}:{self.argument}"


class LogIndex:
    """Read-only lookups shared by every feature function of one run."""

    def __init__(self, log: EventLog, graph: nx.DiGraph | None) -> None:
        self.log = log
        self.graph = graph
        self.lifecycles = log.object_lifecycles()
        self.object_types = {oid: obj.object_type for oid, obj in log.objects.items()}
        self.events = log.ordered_events()
        self._previous: dict[str, pd.Timestamp | None] = {}
        latest: dict[str, pd.Timestamp] = {}
        for event in self.events:
            stamps = [latest[oid] for oid in event.omap if oid in latest]
            self._previous[event.event_id] = max(stamps) if stamps else None
            for oid in event.omap:
                latest[oid] = event.timestamp

    def previous_timestamp(self, event: OcelEvent) -> pd.Timestamp | None:
        return self._previous.get(event.event_id)


def _lifetime(index: LogIndex, oid: str, _: str | None) -> float:
    events = index.lifecycles.get(oid) or []
    if not events:
        return 0.0
    return float((events[-1].timestamp - events[0].timestamp).total_seconds())


def _event_interactions(index: LogIndex, oid: str, _: str | None) -> float:
    return float(len(index.lifecycles.get(oid) or []))


def _unit_set_ratio(index: LogIndex, oid: str, _: str | None) -> float:
    events = index.lifecycles.get(oid) or []
    if not events:
        return 0.0
    own_type = index.object_types[oid]
    alone = sum(
        1
        for event in events
        if sum(1 for other in event.omap if index.object_types.get(other) == own_type) == 1
    )
    return alone / len(events)


def _unique_neighbors(index: LogIndex, oid: str, relation: str | None) -> float:
    if index.graph is None:
        return 0.0
    wanted = None if relation in (None, ANY_RELATION) else relation
    return float(len(neighbors_by_relation(index.graph, oid, wanted)))


def _activity_existence(index: LogIndex, oid: str, activity: str | None) -> float:
    return float(sum(1 for e in index.lifecycles.get(oid) or [] if e.activity == activity))


def _type_interaction(index: LogIndex, oid: str, object_type: str | None) -> float:
    partners: set[str] = set()
    for event in index.lifecycles.get(oid) or []:
        partners.update(
            other
            for other in event.omap
            if other != oid and index.object_types.get(other) == object_type
        )
    return float(len(partners))


def _event_object_count(index: LogIndex, event: OcelEvent, _: str | None) -> float:
    return float(len(event.omap))


def _event_wait(index: LogIndex, event: OcelEvent, _: str | None) -> float:
    previous = index.previous_timestamp(event)
    if previous is None:
        return 0.0
    return float((event.timestamp - previous).total_seconds())


def _event_type_count(index: LogIndex, event: OcelEvent, object_type: str | None) -> float:
    return float(sum(1 for oid in event.omap if index.object_types.get(oid) == object_type))


def _event_relation_count(index: LogIndex, event: OcelEvent, relation: str | None) -> float:
    if index.graph is None:
        return 0.0
    members = set(event.omap)
    count = 0
    for source in members:
        if source not in index.graph:
            continue
        for _, target, data in index.graph.out_edges(source, data=True):
            if target in members and (
                relation in (None, ANY_RELATION) or relation in edge_relations(data)
            ):
                count += 1
    return float(count)


def _event_activity(index: LogIndex, event: OcelEvent, activity: str | None) -> float:
    return 1.0 if event.activity == activity else 0.0


FeatureFn = Callable[..., float]

OBJECT_FEATURES: dict[str, tuple[str, FeatureFn]] = {
    "ObjectLifetime": (PLAIN, _lifetime),
    "ObjectEventInteractionOperator": (PLAIN, _event_interactions),
    "ObjectUnitSetRatio": (PLAIN, _unit_set_ratio),
    "UniqueNeighborCount": (RELATION, _unique_neighbors),
    "ActivityExistenceCount": (ACTIVITY, _activity_existence),
    "ObjectTypeInteraction": (OBJECT_TYPE, _type_interaction),
}

EVENT_FEATURES: dict[str, tuple[str, FeatureFn]] = {
    "EventObjectCount": (PLAIN, _event_object_count),
    "EventPreviousWait": (PLAIN, _event_wait),
    "EventObjectTypeCount": (OBJECT_TYPE, _event_type_count),
    "EventRelationCount": (RELATION, _event_relation_count),
    "EventActivity": (ACTIVITY, _event_activity),
}


def feature_parameters(
    features: dict[str, tuple[str, FeatureFn]],
    context: dict[str, Any] | None,
) -> list[dict[str, Any]]:
    """Parameter groups for a feature family, expanded over relation kinds,
    and over the activities / object types of `context` when one is given."""

    context = context or {}
    activities = [str(a) for a in context.get("activities") or []]
    object_types = [str(t) for t in context.get("object_types") or []]
    general: dict[str, Any] = {"header": "General"}
    relations: dict[str, Any] = {"header": "Relations"}
    activity_group: dict[str, Any] = {"header": "Activities"}
    type_group: dict[str, Any] = {"header": "Object Types"}
    for name, (arg_kind, _) in features.items():
        if arg_kind == PLAIN:
            general[f"bool:{name}"] = True
        elif arg_kind == RELATION:
            for relation in [ANY_RELATION, *relation_names()]:
                relations[f"bool:{name}/{relation}"] = relation == ANY_RELATION
        elif arg_kind == ACTIVITY:
            activity_group[f"multichoice:{name}"] = list(activities)
        elif arg_kind == OBJECT_TYPE:
            type_group[f"multichoice:{name}"] = list(object_types)
    return [g for g in (general, relations, activity_group, type_group) if len(g) > 1]


def selected_specs(
    features: dict[str, tuple[str, FeatureFn]],
    params: dict[str, Any],
    log: EventLog,
) -> list[FeatureSpec]:
    specs: list[FeatureSpec] = []
    activities = set(log.activities)
    object_types = set(log.object_types)
    for name, (arg_kind, _) in features.items():
        if arg_kind == PLAIN:
            if params.get(name):
                specs.append(FeatureSpec(name))
        elif arg_kind == RELATION:
            for relation in [ANY_RELATION, *relation_names()]:
                if params.get(f"{name}/{relation}"):
                    specs.append(FeatureSpec(name, relation))
        else:
            known = activities if arg_kind == ACTIVITY else object_types
            for value in params.get(name) or []:
                if value not in known:
                    raise InvalidParameter(name, f"'{value}' does not occur in the event log")
                specs.append(FeatureSpec(name, value))
    return specs


def parallel_map(fn: Callable[[Any], Any], items: Sequence[Any], max_workers: int = 1) -> list[Any]:
    if max_workers <= 1 or len(items) < 2:
        return [fn(item) for item in items]
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(fn, items))


def object_point_features(
    log: EventLog,
    graph: nx.DiGraph | None,
    specs: Iterable[FeatureSpec],
    *,
    max_workers: int = 1,
) -> pd.DataFrame:
    """One row per object present in the log (and in the graph, when given)."""

    specs = list(specs)
    index = LogIndex(log, graph)
    object_ids = [oid for oid in log.objects if graph is None or oid in graph]

    def row(oid: str) -> dict[str, Any]:
        values: dict[str, Any] = {OBJECT_ID_COLUMN: oid}
        for spec in specs:
            values[spec.column] = OBJECT_FEATURES[spec.feature][1](index, oid, spec.argument)
        return values

    rows = parallel_map(row, object_ids, max_workers)
    return pd.DataFrame(rows, columns=[OBJECT_ID_COLUMN, *[s.column for s in specs]])


def event_point_features(
    log: EventLog,
    graph: nx.DiGraph | None,
    specs: Iterable[FeatureSpec],
    *,
    max_workers: int = 1,
) -> pd.DataFrame:
    specs = list(specs)
    index = LogIndex(log, graph)

    def row(event: OcelEvent) -> dict[str, Any]:
        values: dict[str, Any] = {EVENT_ID_COLUMN: event.event_id}
        for spec in specs:
            values[spec.column] = EVENT_FEATURES[spec.feature][1](index, event, spec.argument)
        return values

    rows = parallel_map(row, index.events, max_workers)
    return pd.DataFrame(rows, columns=[EVENT_ID_COLUMN, *[s.column for s in specs]])


def _group_frame(
    points: pd.DataFrame,
    id_column: str,
    keys: dict[str, str],
    group_column: str,
    count_column: str,
    aggregation: str,
) -> pd.DataFrame:
    if aggregation not in AGGREGATIONS:
        raise InvalidParameter("Aggregation", f"unsupported aggregation '{aggregation}'")
    value_columns = [c for c in points.columns if c != id_column]
    frame = points.copy()
    frame[group_column] = frame[id_column].map(keys)
    grouped = frame.groupby(group_column, sort=True)
    counts = grouped[id_column].count().rename(count_column)
    if value_columns:
        aggregated = grouped[value_columns].agg(aggregation)
        aggregated.columns = [f"{aggregation}({c})" for c in value_columns]
        result = pd.concat([counts, aggregated], axis=1)
    else:
        result = counts.to_frame()
    result = result.reset_index()
    numeric = result.select_dtypes(include=[np.number]).columns
    result[numeric] = result[numeric].astype(float)
    return result


def object_group_features(
    log: EventLog,
    graph: nx.DiGraph | None,
    specs: Iterable[FeatureSpec],
    aggregation: str = "mean",
    *,
    max_workers: int = 1,
) -> pd.DataFrame:
    """Object point features aggregated per object type."""

    points = object_point_features(log, graph, specs, max_workers=max_workers)
    keys = {oid: obj.object_type for oid, obj in log.objects.items()}
    return _group_frame(points, OBJECT_ID_COLUMN, keys, "Object Type", "Object Count", aggregation)


def event_group_features(
    log: EventLog,
    graph: nx.DiGraph | None,
    specs: Iterable[FeatureSpec],
    aggregation: str = "mean",
    *,
    max_workers: int = 1,
) -> pd.DataFrame:
    """Event point features aggregated per activity."""

    points = event_point_features(log, graph, specs, max_workers=max_workers)
    keys = {eid: event.activity for eid, event in log.events.items()}
    return _group_frame(points, EVENT_ID_COLUMN, keys, "Activity", "Event Count", aggregation)
