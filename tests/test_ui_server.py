from __future__ import annotations

import asyncio
import importlib
import inspect
import json
import threading
import time

import pytest
from fastapi import HTTPException
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from ocel_workbench.core.errors import EntityNotFound, InvalidInput, UnknownPlugin, UnsupportedFormat
from ocel_workbench.core.progress import ProgressEvent


@pytest.fixture()
def server_mod(monkeypatch, tmp_path):
    monkeypatch.setenv("OCEL_WORKBENCH_APPDATA", str(tmp_path / "appdata"))
    from ocel_workbench.ui import server as server_mod

    return importlib.reload(server_mod)


def _body(response) -> dict:
    return json.loads(response.body)


def _request(path: str) -> Request:
    return Request({"type": "http", "method": "GET", "path": path, "query_string": b"", "headers": []})


def test_import_and_inspect(server_mod, order_log_path, tmp_path):
    entity_id = _body(server_mod.import_entity({"path": str(order_log_path)}))["id"]
    info = _body(server_mod.entity_info(entity_id))
    assert info["instancedata"]["Event #"] == 5
    view = _body(server_mod.entity_analysis_view(entity_id))["view"]
    assert "ocel:events" in json.loads(view)
    exported = _body(server_mod.export_entity(entity_id, {"path": str(tmp_path / "x.jsonocel")}))
    assert (tmp_path / "x.jsonocel").exists()
    assert exported["path"].endswith("x.jsonocel")
    log_text = (tmp_path / "appdata" / "logs" / "workbench.log").read_text(encoding="utf-8")
    assert "[IMPORT]" in log_text


def test_missing_path_is_bad_request(server_mod):
    with pytest.raises(HTTPException) as info:
        server_mod.import_entity({})
    assert info.value.status_code == 400


def test_activate_feeds_progress(server_mod, order_log_path):
    log_id = _body(server_mod.import_entity({"path": str(order_log_path)}))["id"]
    graph_id = _body(
        server_mod.activate_plugin(
            {
                "enumid": "GenerateOcdg",
                "inputs": {"ocel": [log_id]},
                "parameters": [{"header": "General", "multichoice:Relations": []}],
            }
        )
    )["id"]
    assert graph_id == log_id + 1
    feed = _body(asyncio.run(server_mod.progress(0)))
    assert [e["current_step"] for e in feed["events"]] == [1, 2, 3, 4]
    assert feed["last"] == 4
    assert _body(asyncio.run(server_mod.progress(3)))["events"][0]["current_task"] == "Finished Plugin: Generate Ocdg"


def test_plugin_listing_and_description(server_mod, order_log_path):
    plugins = _body(server_mod.list_plugins())["plugins"]
    assert len(plugins) == 12
    log_id = _body(server_mod.import_entity({"path": str(order_log_path)}))["id"]
    described = _body(server_mod.describe_plugin("EventPointFeatures", log_id))
    activity_group = [g for g in described["parameters"] if g["header"] == "Activities"][0]
    assert activity_group["multichoice:EventActivity"] == ["pack", "pick item", "place order", "ship"]


def test_view_of_non_table_is_rejected(server_mod, order_log_path):
    log_id = _body(server_mod.import_entity({"path": str(order_log_path)}))["id"]
    with pytest.raises(UnsupportedFormat):
        server_mod.entity_view(log_id)


def test_info_waits_for_the_store_off_the_event_loop(server_mod, order_log_path):
    entity_id = _body(server_mod.import_entity({"path": str(order_log_path)}))["id"]
    held = threading.Event()

    def hold_store() -> None:
        with server_mod.workbench.store.session():
            held.set()
            time.sleep(0.5)

    holder = threading.Thread(target=hold_store)
    holder.start()
    assert held.wait(5)

    async def scenario():
        ticks = 0
        call = asyncio.ensure_future(run_in_threadpool(server_mod.entity_info, entity_id))
        while not call.done():
            await asyncio.sleep(0.02)
            ticks += 1
        return await call, ticks

    response, ticks = asyncio.run(scenario())
    holder.join()
    assert ticks > 5
    assert _body(response)["instancedata"]["Event #"] == 5
    assert not inspect.iscoroutinefunction(server_mod.entity_analysis_view)
    assert not inspect.iscoroutinefunction(server_mod.describe_plugin)


@pytest.mark.parametrize(
    "exc, status",
    [
        (EntityNotFound(3), 404),
        (UnknownPlugin("Teleport"), 404),
        (InvalidInput("bad slot"), 400),
    ],
)
def test_error_handler_maps_kinds(server_mod, exc, status):
    response = asyncio.run(server_mod.workbench_error_handler(_request("/api/x"), exc))
    assert response.status_code == status
    assert _body(response) == {"error": exc.kind, "detail": str(exc)}


def test_progress_feed_is_bounded():
    from ocel_workbench.ui.server import ProgressFeed

    feed = ProgressFeed(maxlen=3)
    for step in range(1, 6):
        feed.publish(ProgressEvent(f"step {step}", step, 5))
    assert [e["seq"] for e in feed.since(0)] == [3, 4, 5]
    assert feed.since(5) == []


def test_apply_security_headers_sets_expected_keys():
    from ocel_workbench.ui.server import _apply_security_headers

    headers: dict[str, str] = {}
    _apply_security_headers(headers)
    assert headers["X-Content-Type-Options"] == "nosniff"
    assert headers["X-Frame-Options"] == "DENY"
    assert "default-src" in headers["Content-Security-Policy"]
