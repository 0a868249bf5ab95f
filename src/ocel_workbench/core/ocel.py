"""Object-centric event log model and the OCEL 1.0 JSON codec."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from .utils import atomic_write_text

OCEL_VERSION = "1.0"
OCEL_EXTENSION = "jsonocel"


@dataclass
class OcelEvent:
    event_id: str
    activity: str
    timestamp: pd.Timestamp
    omap: list[str] = field(default_factory=list)
    vmap: dict[str, Any] = field(default_factory=dict)


@dataclass
class OcelObject:
    object_id: str
    object_type: str
    ovmap: dict[str, Any] = field(default_factory=dict)


@dataclass
class EventLog:
    global_log: dict[str, Any]
    events: dict[str, OcelEvent]
    objects: dict[str, OcelObject]

    @property
    def activities(self) -> list[str]:
        return sorted({event.activity for event in self.events.values()})

    @property
    def object_types(self) -> list[str]:
        declared = self.global_log.get("ocel:object-types")
        if isinstance(declared, list) and declared:
            return [str(item) for item in declared]
        return sorted({obj.object_type for obj in self.objects.values()})

    def clone(self) -> "EventLog":
        return copy.deepcopy(self)

    def ordered_events(self) -> list[OcelEvent]:
        return sorted(self.events.values(), key=lambda e: (e.timestamp, e.event_id))

    def object_lifecycles(self) -> dict[str, list[OcelEvent]]:
        """Events per object in timestamp order; objects without events map to []."""

        lifecycles: dict[str, list[OcelEvent]] = {oid: [] for oid in self.objects}
        for event in self.ordered_events():
            for oid in event.omap:
                if oid in lifecycles:
                    lifecycles[oid].append(event)
        return lifecycles


def parse_timestamp(value: Any) -> pd.Timestamp:
    ts = pd.Timestamp(value)
    if pd.isna(ts):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def _json_value(value: Any) -> Any:
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if hasattr(value, "item") and not isinstance(value, (list, dict, str)):
        return value.item()
    return value


def decode_ocel(data: dict[str, Any]) -> EventLog:
    if not isinstance(data, dict):
        raise ValueError("OCEL document must be a JSON object")
    global_log = dict(data.get("ocel:global-log") or {})
    raw_events = data.get("ocel:events")
    raw_objects = data.get("ocel:objects")
    if not isinstance(raw_events, dict) or not isinstance(raw_objects, dict):
        raise ValueError("OCEL document requires 'ocel:events' and 'ocel:objects' maps")
    objects: dict[str, OcelObject] = {}
    for oid, raw in raw_objects.items():
        if not isinstance(raw, dict) or "ocel:type" not in raw:
            raise ValueError(f"Object {oid} has no 'ocel:type'")
        objects[str(oid)] = OcelObject(
            object_id=str(oid),
            object_type=str(raw["ocel:type"]),
            ovmap=dict(raw.get("ocel:ovmap") or {}),
        )
    events: dict[str, OcelEvent] = {}
    for eid, raw in raw_events.items():
        if not isinstance(raw, dict):
            raise ValueError(f"Event {eid} is not an object")
        try:
            activity = raw["ocel:activity"]
            timestamp = raw["ocel:timestamp"]
        except KeyError as exc:
            raise ValueError(f"Event {eid} is missing {exc.args[0]}") from exc
        events[str(eid)] = OcelEvent(
            event_id=str(eid),
            activity=str(activity),
            timestamp=parse_timestamp(timestamp),
            omap=[str(oid) for oid in raw.get("ocel:omap") or []],
            vmap=dict(raw.get("ocel:vmap") or {}),
        )
    return EventLog(global_log=global_log, events=events, objects=objects)


def encode_ocel(log: EventLog) -> dict[str, Any]:
    global_log = dict(log.global_log)
    global_log.setdefault("ocel:version", OCEL_VERSION)
    global_log.setdefault("ocel:ordering", "timestamp")
    global_log.setdefault("ocel:object-types", log.object_types)
    attribute_names: set[str] = set()
    for event in log.events.values():
        attribute_names.update(event.vmap)
    for obj in log.objects.values():
        attribute_names.update(obj.ovmap)
    global_log.setdefault("ocel:attribute-names", sorted(attribute_names))
    return {
        "ocel:global-event": {"ocel:activity": "__INVALID__"},
        "ocel:global-object": {"ocel:type": "__INVALID__"},
        "ocel:global-log": global_log,
        "ocel:events": {
            event.event_id: {
                "ocel:activity": event.activity,
                "ocel:timestamp": event.timestamp.isoformat(),
                "ocel:omap": list(event.omap),
                "ocel:vmap": {k: _json_value(v) for k, v in event.vmap.items()},
            }
            for event in log.events.values()
        },
        "ocel:objects": {
            obj.object_id: {
                "ocel:type": obj.object_type,
                "ocel:ovmap": {k: _json_value(v) for k, v in obj.ovmap.items()},
            }
            for obj in log.objects.values()
        },
    }


def import_ocel(path: str | Path) -> EventLog:
    text = Path(path).read_text(encoding="utf-8")
    return decode_ocel(json.loads(text))


def ocel_to_json(log: EventLog, *, pretty: bool = False) -> str:
    return json.dumps(
        encode_ocel(log), ensure_ascii=False, indent=2 if pretty else None
    )


def export_ocel_pretty(log: EventLog, path: str | Path) -> None:
    atomic_write_text(Path(path), ocel_to_json(log, pretty=True))
