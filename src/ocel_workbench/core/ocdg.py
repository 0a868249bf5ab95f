"""Object-centric directed graphs (OCDG) derived from event logs."""

from __future__ import annotations

from enum import Enum
from io import StringIO
from pathlib import Path
from typing import Iterable

import networkx as nx

from .ocel import EventLog, OcelEvent

RELATIONS_ATTR = "relations"
GRAPH_EXTENSIONS = ("gexfocdg", "gexf")


class Relation(str, Enum):
    INTERACTION = "Interaction"
    DESCENDANTS = "Descendants"
    INHERITANCE = "Inheritance"
    COBIRTH = "Cobirth"
    CODEATH = "Codeath"
    COLIFE = "Colife"
    CONSUMES = "Consumes"

    @classmethod
    def parse(cls, value: str) -> "Relation":
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise ValueError(f"Unknown relation: {value}")


def relation_names() -> list[str]:
    return [relation.value for relation in Relation]


def _relations_between(
    a: str,
    b: str,
    event: OcelEvent,
    first: dict[str, OcelEvent],
    last: dict[str, OcelEvent],
) -> set[Relation]:
    found = {Relation.INTERACTION}
    a_first, b_first = first[a], first[b]
    a_last, b_last = last[a], last[b]
    if event is b_first and a_first is not event:
        found.add(Relation.DESCENDANTS)
    if event is a_last and event is b_first:
        found.add(Relation.INHERITANCE)
    if event is a_first and event is b_first:
        found.add(Relation.COBIRTH)
    if event is a_last and event is b_last:
        found.add(Relation.CODEATH)
    if a_first is b_first and a_last is b_last:
        found.add(Relation.COLIFE)
    if event is a_first and event is b_last:
        found.add(Relation.CONSUMES)
    return found


def generate_ocdg(log: EventLog, relations: Iterable[Relation]) -> nx.DiGraph:
    """Build a directed object graph carrying the requested relation kinds.

    Every object of the log becomes a node; an edge a->b exists when at least
    one requested relation holds for the ordered pair.
    """

    wanted = set(relations)
    graph = nx.DiGraph()
    for obj in log.objects.values():
        graph.add_node(obj.object_id, object_type=obj.object_type)
    if not wanted:
        return graph

    lifecycles = log.object_lifecycles()
    first = {oid: events[0] for oid, events in lifecycles.items() if events}
    last = {oid: events[-1] for oid, events in lifecycles.items() if events}
    edges: dict[tuple[str, str], set[str]] = {}
    for event in log.ordered_events():
        members = [oid for oid in dict.fromkeys(event.omap) if oid in first]
        for a in members:
            for b in members:
                if a == b:
                    continue
                kinds = _relations_between(a, b, event, first, last) & wanted
                if kinds:
                    edges.setdefault((a, b), set()).update(k.value for k in kinds)
    for (a, b), kinds in edges.items():
        graph.add_edge(a, b, **{RELATIONS_ATTR: ",".join(sorted(kinds))})
    return graph


def edge_relations(data: dict) -> set[str]:
    raw = data.get(RELATIONS_ATTR) or ""
    return {part for part in str(raw).split(",") if part}


def neighbors_by_relation(graph: nx.DiGraph, node: str, relation: str | None) -> set[str]:
    """Distinct in/out neighbors of `node`, optionally restricted to one relation kind."""

    if node not in graph:
        return set()
    found: set[str] = set()
    for _, target, data in graph.out_edges(node, data=True):
        if relation is None or relation in edge_relations(data):
            found.add(target)
    for source, _, data in graph.in_edges(node, data=True):
        if relation is None or relation in edge_relations(data):
            found.add(source)
    return found


def import_ocdg(path: str | Path) -> nx.DiGraph:
    graph = nx.read_gexf(str(path))
    if graph.is_multigraph():
        graph = nx.DiGraph(graph)
    elif not graph.is_directed():
        graph = graph.to_directed()
    return graph


def export_ocdg(graph: nx.DiGraph, path: str | Path) -> None:
    nx.write_gexf(graph, str(path))


def generate_ocdg_string(graph: nx.DiGraph) -> str:
    buffer = StringIO()
    for line in nx.generate_gexf(graph):
        buffer.write(line)
        buffer.write("\n")
    return buffer.getvalue()
