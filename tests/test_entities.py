from __future__ import annotations

import json

import networkx as nx
import pandas as pd
import pytest

from ocel_workbench.core.entities import NOT_AVAILABLE, Entity, EntityBuilder, EntityKind
from ocel_workbench.core.ocel import EventLog, decode_ocel


def test_builder_metadata_is_insert_if_absent(order_log):
    builder = EntityBuilder(7)
    builder.meta("name", "first").meta("name", "second")
    entity = builder.build(EntityKind.OCEL, order_log, name="third")
    info = entity.get_info()
    assert info["metadata"]["id"] == 7
    assert info["metadata"]["name"] == "first"
    assert info["metadata"]["type"] == "ocel"
    assert info["metadata"]["type-long"] == "Object-Centric Event Log"
    assert info["instancedata"]["Event #"] == 5
    assert info["instancedata"]["Object #"] == 3
    assert info["instancedata"]["Activities"] == ["pack", "pick item", "place order", "ship"]
    assert info["instancedata"]["Object Types"] == ["order", "item"]


def test_entity_payload_must_match_kind():
    with pytest.raises(TypeError):
        Entity(1, EntityKind.OCDG, pd.DataFrame())


def test_entity_metadata_id_must_match():
    with pytest.raises(ValueError):
        Entity(1, EntityKind.TABLE, pd.DataFrame(), metadata={"id": 2})


def test_table_preview_limit():
    small = EntityBuilder(1).build(EntityKind.TABLE, pd.DataFrame({"x": range(499)}))
    large = EntityBuilder(2).build(EntityKind.TABLE, pd.DataFrame({"x": range(500)}))
    view = json.loads(small.get_analysis_view())
    assert view["columns"] == ["x"]
    assert len(view["data"]) == 499
    assert large.get_analysis_view() == NOT_AVAILABLE


def test_graph_preview_limit():
    small = nx.DiGraph()
    small.add_nodes_from(f"o{i}" for i in range(19))
    large = nx.DiGraph()
    large.add_nodes_from(f"o{i}" for i in range(20))
    assert "<gexf" in EntityBuilder(1).build(EntityKind.OCDG, small).get_analysis_view()
    assert EntityBuilder(2).build(EntityKind.OCDG, large).get_analysis_view() == NOT_AVAILABLE


def _sized_log(objects: int, events: int) -> EventLog:
    return decode_ocel(
        {
            "ocel:objects": {f"o{i}": {"ocel:type": "item"} for i in range(objects)},
            "ocel:events": {
                f"e{i}": {
                    "ocel:activity": "scan",
                    "ocel:timestamp": f"2023-01-01T00:00:{i % 60:02d}",
                    "ocel:omap": ["o0"] if objects else [],
                }
                for i in range(events)
            },
        }
    )


@pytest.mark.parametrize(
    "objects, events, shown",
    [(9, 5, True), (10, 5, False), (3, 99, True), (3, 100, False)],
)
def test_log_preview_limits(objects, events, shown):
    entity = EntityBuilder(1).build(EntityKind.OCEL, _sized_log(objects, events))
    view = entity.get_analysis_view()
    if shown:
        document = json.loads(view)
        assert len(document["ocel:objects"]) == objects
        assert len(document["ocel:events"]) == events
    else:
        assert view == NOT_AVAILABLE


def test_log_preview_is_ocel_json(order_log):
    entity = EntityBuilder(1).build(EntityKind.OCEL, order_log)
    document = json.loads(entity.get_analysis_view())
    assert set(document["ocel:events"]) == {"e1", "e2", "e3", "e4", "e5"}


def test_graph_instance_data_counts():
    graph = nx.DiGraph()
    graph.add_edge("a", "b")
    entity = EntityBuilder(3).build(EntityKind.OCDG, graph)
    assert entity.instance_data == {"Node #": 2, "Edge #": 1}
    assert entity.metadata["type-long"] == "Object-Centric Directed Graph"
