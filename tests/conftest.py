from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from ocel_workbench.core.entities import Entity, EntityBuilder, EntityKind
from ocel_workbench.core.ocel import EventLog, import_ocel
from ocel_workbench.core.workbench import Workbench

REPO_ROOT = Path(__file__).resolve().parents[1]
PLUGINS_DIR = REPO_ROOT / "plugins"
FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"
ORDER_LOG = FIXTURES_DIR / "order_log.jsonocel"


@pytest.fixture()
def order_log_path() -> Path:
    return ORDER_LOG


@pytest.fixture()
def order_log() -> EventLog:
    return import_ocel(ORDER_LOG)


@pytest.fixture()
def log_lines() -> list[str]:
    return []


@pytest.fixture()
def workbench(log_lines: list[str]) -> Workbench:
    return Workbench(PLUGINS_DIR, logger=log_lines.append, max_workers=2)


@pytest.fixture(autouse=True)
def _workbench_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("OCEL_WORKBENCH_APPDATA", str(tmp_path / "appdata"))
    monkeypatch.setenv("OCEL_WORKBENCH_PLUGINS_DIR", str(PLUGINS_DIR))


def write_log(path: Path, document: dict[str, Any]) -> Path:
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def load_document(path: Path = ORDER_LOG) -> dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


def make_table_entity(entity_id: int, frame: pd.DataFrame, name: str = "table") -> Entity:
    return EntityBuilder(entity_id).build(EntityKind.TABLE, frame, name=name)


def request(enumid: str, inputs: dict[str, Any] | None = None, **groups: dict[str, Any]) -> dict[str, Any]:
    """Plugin request with one parameter group per keyword (keyword = header)."""

    return {
        "enumid": enumid,
        "inputs": inputs or {},
        "parameters": [{"header": header, **values} for header, values in groups.items()],
    }
