from __future__ import annotations

import json

import networkx as nx
import pandas as pd
import pytest

from ocel_workbench.core.entities import EntityBuilder, EntityKind
from ocel_workbench.core.errors import (
    EntityNotFound,
    ExportFailed,
    ImportFailed,
    InvalidInput,
    UnsupportedFormat,
)
from tests.conftest import make_table_entity, request


def test_import_log_reports_counts(workbench, order_log_path, log_lines):
    entity_id = workbench.import_entity(order_log_path)
    info = workbench.get_instance_info(entity_id)
    assert entity_id == 1
    assert info["metadata"]["name"] == "order_log"
    assert info["metadata"]["type"] == "ocel"
    assert info["metadata"]["file-type"] == "jsonocel"
    assert int(info["metadata"]["file-size"]) == order_log_path.stat().st_size
    assert "time-imported" in info["metadata"]
    assert info["instancedata"]["Event #"] == 5
    assert info["instancedata"]["Object #"] == 3
    assert any(line.startswith("[IMPORT]") for line in log_lines)


def test_import_unsupported_extension_allocates_nothing(workbench, tmp_path):
    path = tmp_path / "table.csv"
    path.write_text("a,b\n1,2\n", encoding="utf-8")
    with pytest.raises(UnsupportedFormat):
        workbench.import_entity(path)
    assert workbench.allocator.peek() == 1


def test_import_broken_file_fails(workbench, tmp_path):
    path = tmp_path / "broken.jsonocel"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(ImportFailed) as info:
        workbench.import_entity(path)
    assert str(info.value).startswith("File Import Fail")
    assert len(workbench.store) == 0


def test_generate_graph_with_no_relations(workbench, order_log_path):
    log_id = workbench.import_entity(order_log_path)
    graph_id = workbench.activate_plugin(
        request("GenerateOcdg", {"ocel": [log_id]}, General={"multichoice:Relations": []})
    )
    assert graph_id == log_id + 1
    info = workbench.get_instance_info(graph_id)
    assert info["metadata"]["type"] == "ocdg"
    assert info["metadata"]["name"] == f"Ocdg {graph_id}"
    assert "time-created" in info["metadata"]
    assert info["instancedata"]["Node #"] == 3
    assert info["instancedata"]["Edge #"] == 0
    assert info["instancedata"]["Relations"] == []
    assert info["instancedata"]["ocel-used"] == "order_log"


def test_log_round_trip(workbench, order_log_path, tmp_path):
    log_id = workbench.import_entity(order_log_path)
    target = workbench.export_entity(log_id, tmp_path / "copy.jsonocel")
    copy_id = workbench.import_entity(target)
    original = workbench.get_instance_info(log_id)["instancedata"]
    again = workbench.get_instance_info(copy_id)["instancedata"]
    for key in ("Event #", "Object #", "Activities", "Object Types"):
        assert again[key] == original[key]


def test_graph_round_trip(workbench, order_log_path, tmp_path):
    log_id = workbench.import_entity(order_log_path)
    graph_id = workbench.activate_plugin(
        request("GenerateOcdg", {"ocel": [log_id]}, General={"multichoice:Relations": ["Interaction", "Colife"]})
    )
    target = workbench.export_entity(graph_id, tmp_path / "graph.gexfocdg")
    copy_id = workbench.import_entity(target)
    original = workbench.get_instance_info(graph_id)["instancedata"]
    again = workbench.get_instance_info(copy_id)["instancedata"]
    assert (again["Node #"], again["Edge #"]) == (original["Node #"], original["Edge #"]) == (3, 6)
    assert workbench.get_instance_info(copy_id)["metadata"]["file-type"] == "gexfocdg"


def test_table_export_is_csv(workbench, tmp_path):
    table_id = workbench.allocator.next()
    workbench.store.insert(table_id, make_table_entity(table_id, pd.DataFrame({"a": [1, 2], "b": ["x", "y"]})))
    target = workbench.export_entity(table_id, tmp_path / "table.csv")
    again = pd.read_csv(target)
    assert again.shape == (2, 2)
    assert list(again.columns) == ["a", "b"]


def test_export_to_unwritable_path_fails(workbench, tmp_path):
    table_id = workbench.allocator.next()
    workbench.store.insert(table_id, make_table_entity(table_id, pd.DataFrame({"a": [1]})))
    with pytest.raises(ExportFailed):
        workbench.export_entity(table_id, tmp_path / "missing" / "table.csv")


def test_export_of_unencodable_graph_fails(workbench, tmp_path):
    graph = nx.DiGraph()
    graph.add_node("o1", object_type="order", extra={"nested": 1})
    graph_id = workbench.allocator.next()
    workbench.store.insert(graph_id, EntityBuilder(graph_id).build(EntityKind.OCDG, graph, name="odd"))
    with pytest.raises(ExportFailed) as info:
        workbench.export_entity(graph_id, tmp_path / "odd.gexfocdg")
    assert f"entity {graph_id}" in str(info.value)


def test_views(workbench, order_log_path):
    log_id = workbench.import_entity(order_log_path)
    assert json.loads(workbench.get_analysis_view(log_id))["ocel:objects"]["o1"]["ocel:type"] == "order"
    with pytest.raises(UnsupportedFormat):
        workbench.get_view(log_id)
    table_id = workbench.allocator.next()
    workbench.store.insert(table_id, make_table_entity(table_id, pd.DataFrame({"x": range(600)})))
    assert len(json.loads(workbench.get_view(table_id))["data"]) == 600


def test_missing_entity(workbench):
    with pytest.raises(EntityNotFound):
        workbench.get_instance_info(5)
    with pytest.raises(EntityNotFound):
        workbench.export_entity(5, "anywhere.jsonocel")


def test_plugins_listing(workbench):
    plugins = workbench.get_plugins()
    assert [p["id"] for p in plugins] == list(range(1, 13))
    assert plugins[-1]["enumid"] == "UiDemo"


def test_describe_plugin_for_log(workbench, order_log_path):
    log_id = workbench.import_entity(order_log_path)
    descriptor = workbench.describe_plugin("ObjectSituations", log_id)
    filters = {g["header"]: g for g in descriptor.parameters}["Filters"]
    assert filters["multichoice:Activities"] == ["pack", "pick item", "place order", "ship"]
    assert filters["multichoice:Properties"] == ["customer", "price"]
    assert filters["multichoice:Object Types"] == ["order", "item"]


def test_describe_plugin_requires_a_log(workbench):
    table_id = workbench.allocator.next()
    workbench.store.insert(table_id, make_table_entity(table_id, pd.DataFrame()))
    with pytest.raises(InvalidInput):
        workbench.describe_plugin("ObjectPointFeatures", table_id)
    with pytest.raises(InvalidInput):
        workbench.describe_plugin("ObjectPointFeatures", 99)
