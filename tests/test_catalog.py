from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from ocel_workbench.core.catalog import PluginCatalog, PluginKind
from ocel_workbench.core.errors import UnknownPlugin
from ocel_workbench.core.ocdg import relation_names
from tests.conftest import PLUGINS_DIR, REPO_ROOT


def test_discover_finds_every_plugin_kind_in_order():
    catalog = PluginCatalog(PLUGINS_DIR)
    descriptors = catalog.discover()
    assert catalog.discovery_errors == []
    assert [d.kind for d in descriptors] == list(PluginKind)


def test_descriptor_json_shape():
    catalog = PluginCatalog(PLUGINS_DIR)
    payload = catalog.describe("GenerateOcdg").to_dict()
    assert payload["id"] == 1
    assert payload["enumid"] == "GenerateOcdg"
    assert payload["total_steps"] == 2
    assert payload["input"] == {"ocel": 1}
    assert payload["output"] == {"ocdg": 1}
    assert payload["parameters"] == [{"header": "General", "multichoice:Relations": relation_names()}]


def test_optional_slot_is_reported_as_range():
    catalog = PluginCatalog(PLUGINS_DIR)
    descriptor = catalog.describe("ObjectSituations")
    assert descriptor.to_dict()["input"] == {"ocel": 1, "ocdg": [0, 1]}
    assert descriptor.inputs["ocdg"].required is False


def test_describe_specialises_choice_lists():
    catalog = PluginCatalog(PLUGINS_DIR)
    generic = catalog.describe("ObjectPointFeatures")
    specific = catalog.describe(
        "ObjectPointFeatures", context={"activities": ["pack"], "object_types": ["item"]}
    )
    generic_groups = {g["header"]: g for g in generic.parameters}
    specific_groups = {g["header"]: g for g in specific.parameters}
    assert generic_groups["Activities"]["multichoice:ActivityExistenceCount"] == []
    assert specific_groups["Activities"]["multichoice:ActivityExistenceCount"] == ["pack"]
    assert specific_groups["Object Types"]["multichoice:ObjectTypeInteraction"] == ["item"]


def test_unknown_plugin():
    catalog = PluginCatalog(PLUGINS_DIR)
    with pytest.raises(UnknownPlugin):
        catalog.describe("Teleport")


def _manifest(plugin_id: str, enumid: str) -> str:
    return (
        f"id: {plugin_id}\n"
        f"enumid: {enumid}\n"
        "name: Demo\n"
        "version: 0.1.0\n"
        "type: Demo\n"
        "entrypoint: plugin.py:Plugin\n"
        "total_steps: 0\n"
        "input: {}\n"
        "output: {}\n"
    )


def test_discovery_errors_are_recorded(tmp_path: Path):
    plugins_dir = tmp_path / "plugins"
    (tmp_path / "docs").mkdir()
    shutil.copy(REPO_ROOT / "docs" / "plugin_manifest.schema.json", tmp_path / "docs")
    layout = {
        "bad_schema": "id: bad_schema\nname: Missing fields\n",
        "bad_yaml": "id: [unclosed\n",
        "dup1": _manifest("ui_demo", "UiDemo"),
        "dup2": _manifest("ui_demo", "UiDemo"),
        "unknown": _manifest("unknown", "Teleport"),
    }
    for name, text in layout.items():
        (plugins_dir / name).mkdir(parents=True)
        (plugins_dir / name / "plugin.yaml").write_text(text, encoding="utf-8")

    catalog = PluginCatalog(plugins_dir)
    descriptors = catalog.discover()
    assert [d.kind for d in descriptors] == [PluginKind.UI_DEMO]
    messages = [err.message for err in catalog.discovery_errors]
    assert any(m.startswith("Invalid YAML") for m in messages)
    assert any(m.startswith("Invalid manifest") for m in messages)
    assert "Unknown enumid: Teleport" in messages
    assert "Duplicate plugin enumid" in messages
    missing = [err for err in catalog.discovery_errors if err.message == "Missing plugin manifest"]
    assert len(missing) == len(PluginKind) - 1


def test_load_plugin_caches_instances():
    catalog = PluginCatalog(PLUGINS_DIR)
    descriptor = catalog.describe("UiDemo")
    assert catalog.load_plugin(descriptor) is catalog.load_plugin(descriptor)
