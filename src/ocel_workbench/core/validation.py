from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from jsonschema import Draft7Validator

from .errors import ValidationFailed
from .ocel import parse_timestamp
from .utils import read_json

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "jsonocel.schema.json"

_schema_cache: dict[Path, dict[str, Any]] = {}


def _load_schema() -> dict[str, Any]:
    if SCHEMA_PATH not in _schema_cache:
        _schema_cache[SCHEMA_PATH] = read_json(SCHEMA_PATH)
    return _schema_cache[SCHEMA_PATH]


def _location(path: Any) -> str:
    parts = [str(part) for part in path]
    return "/" + "/".join(parts) if parts else "/"


def validate_ocel_verbose(path: str | Path) -> list[tuple[str, str]]:
    """Validate an OCEL JSON file and return (reason, location) pairs.

    An empty list means the document is valid. A file that cannot be read or
    is not JSON at all raises ValidationFailed.
    """

    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ValidationFailed(f"Cannot read {source}: {exc}") from exc
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationFailed(f"{source} is not valid JSON: {exc}") from exc

    validator = Draft7Validator(_load_schema())
    problems: list[tuple[str, str]] = []
    for error in sorted(validator.iter_errors(document), key=lambda e: list(map(str, e.path))):
        problems.append((error.message, _location(error.absolute_path)))
    if not isinstance(document, dict):
        return problems

    objects = document.get("ocel:objects")
    events = document.get("ocel:events")
    global_log = document.get("ocel:global-log")
    declared_types: set[str] | None = None
    if isinstance(global_log, dict) and isinstance(global_log.get("ocel:object-types"), list):
        declared_types = {str(t) for t in global_log["ocel:object-types"]}

    if isinstance(objects, dict) and declared_types is not None:
        for oid, raw in objects.items():
            if isinstance(raw, dict) and isinstance(raw.get("ocel:type"), str):
                if raw["ocel:type"] not in declared_types:
                    problems.append(
                        (
                            f"Object type '{raw['ocel:type']}' is not declared in the global log",
                            _location(["ocel:objects", oid, "ocel:type"]),
                        )
                    )

    if isinstance(events, dict):
        known_objects = set(objects) if isinstance(objects, dict) else set()
        for eid, raw in events.items():
            if not isinstance(raw, dict):
                continue
            stamp = raw.get("ocel:timestamp")
            if isinstance(stamp, str):
                try:
                    parse_timestamp(stamp)
                except (ValueError, TypeError):
                    problems.append(
                        (
                            f"Timestamp '{stamp}' cannot be parsed",
                            _location(["ocel:events", eid, "ocel:timestamp"]),
                        )
                    )
            omap = raw.get("ocel:omap")
            if isinstance(omap, list):
                for index, oid in enumerate(omap):
                    if isinstance(oid, str) and oid not in known_objects:
                        problems.append(
                            (
                                f"Object '{oid}' is referenced but not defined",
                                _location(["ocel:events", eid, "ocel:omap", index]),
                            )
                        )
    return problems
