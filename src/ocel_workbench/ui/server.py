from __future__ import annotations

import threading
from collections import deque
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from ocel_workbench.core.errors import EntityNotFound, UnknownPlugin, WorkbenchError
from ocel_workbench.core.progress import ProgressEvent
from ocel_workbench.core.utils import (
    file_logger,
    get_appdata_dir,
    get_plugins_dir,
    max_workers,
)
from ocel_workbench.core.workbench import Workbench

app = FastAPI()

_NOT_FOUND_KINDS = (EntityNotFound, UnknownPlugin)
PROGRESS_FEED_SIZE = 1000


def _apply_security_headers(headers) -> None:
    # `headers` is a Starlette MutableHeaders at runtime; a plain dict in unit tests.
    def ensure(key: str, value: str) -> None:
        if headers.get(key) is None:
            headers[key] = value

    ensure("X-Content-Type-Options", "nosniff")
    ensure("Referrer-Policy", "no-referrer")
    ensure("X-Frame-Options", "DENY")
    ensure("Content-Security-Policy", "default-src 'self'; object-src 'none'")


class ProgressFeed:
    """Bounded, ordered record of progress events for polling clients."""

    def __init__(self, maxlen: int = PROGRESS_FEED_SIZE) -> None:
        self._events: deque[dict[str, Any]] = deque(maxlen=maxlen)
        self._lock = threading.Lock()
        self._seq = 0

    def publish(self, event: ProgressEvent) -> None:
        with self._lock:
            self._seq += 1
            self._events.append({"seq": self._seq, **event.to_dict()})

    def since(self, after: int = 0) -> list[dict[str, Any]]:
        with self._lock:
            return [item for item in self._events if item["seq"] > after]

    @property
    def last_seq(self) -> int:
        with self._lock:
            return self._seq


APPDATA_DIR = get_appdata_dir()
LOG_PATH = APPDATA_DIR / "logs" / "workbench.log"
workbench = Workbench(
    get_plugins_dir(),
    logger=file_logger(LOG_PATH),
    max_workers=max_workers(),
)
progress_feed = ProgressFeed()


def error_status(exc: WorkbenchError) -> int:
    return 404 if isinstance(exc, _NOT_FOUND_KINDS) else 400


@app.exception_handler(WorkbenchError)
async def workbench_error_handler(request: Request, exc: WorkbenchError) -> JSONResponse:
    return JSONResponse(exc.payload(), status_code=error_status(exc))


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    _apply_security_headers(response.headers)
    return response


def _require(payload: dict[str, Any], key: str) -> Any:
    value = payload.get(key)
    if value is None or value == "":
        raise HTTPException(status_code=400, detail=f"'{key}' required")
    return value


@app.post("/api/entities/import")
def import_entity(payload: dict[str, Any]) -> JSONResponse:
    entity_id = workbench.import_entity(str(_require(payload, "path")))
    return JSONResponse({"id": entity_id})


@app.post("/api/entities/{entity_id}/export")
def export_entity(entity_id: int, payload: dict[str, Any]) -> JSONResponse:
    target = workbench.export_entity(entity_id, str(_require(payload, "path")))
    return JSONResponse({"path": target})


@app.get("/api/entities/{entity_id}/info")
def entity_info(entity_id: int) -> JSONResponse:
    return JSONResponse(workbench.get_instance_info(entity_id))


@app.get("/api/entities/{entity_id}/analysis")
def entity_analysis_view(entity_id: int) -> JSONResponse:
    return JSONResponse({"view": workbench.get_analysis_view(entity_id)})


@app.get("/api/entities/{entity_id}/view")
def entity_view(entity_id: int) -> JSONResponse:
    return JSONResponse({"view": workbench.get_view(entity_id)})


@app.get("/api/plugins")
def list_plugins() -> JSONResponse:
    return JSONResponse({"plugins": workbench.get_plugins()})


@app.get("/api/plugins/{enumid}")
def describe_plugin(enumid: str, ocel_id: int | None = None) -> JSONResponse:
    descriptor = workbench.describe_plugin(enumid, ocel_id)
    return JSONResponse(descriptor.to_dict())


@app.post("/api/plugins/activate")
def activate_plugin(payload: dict[str, Any]) -> JSONResponse:
    entity_id = workbench.activate_plugin(payload, observer=progress_feed.publish)
    return JSONResponse({"id": entity_id})


@app.get("/api/progress")
async def progress(after: int = 0) -> JSONResponse:
    return JSONResponse({"events": progress_feed.since(after), "last": progress_feed.last_seq})
