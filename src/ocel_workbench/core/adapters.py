"""Translate between on-disk files and store entities."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from .entities import Entity, EntityBuilder, EntityKind
from .errors import ExportFailed, ImportFailed, UnsupportedFormat
from .ocdg import GRAPH_EXTENSIONS, export_ocdg, import_ocdg
from .ocel import OCEL_EXTENSION, export_ocel_pretty, import_ocel
from .utils import now_iso

IMPORT_KINDS: dict[str, EntityKind] = {OCEL_EXTENSION: EntityKind.OCEL}
IMPORT_KINDS.update({ext: EntityKind.OCDG for ext in GRAPH_EXTENSIONS})

_FILE_TYPES = {EntityKind.OCEL: "jsonocel", EntityKind.OCDG: "gexfocdg"}

_DECODERS: dict[EntityKind, Callable[[Path], Any]] = {
    EntityKind.OCEL: import_ocel,
    EntityKind.OCDG: import_ocdg,
}


def kind_for_path(path: Path) -> EntityKind:
    ext = path.suffix.lstrip(".").lower()
    kind = IMPORT_KINDS.get(ext)
    if kind is None:
        raise UnsupportedFormat(f"File extension '{path.suffix or '<none>'}' is not supported")
    return kind


def decode_file(path: str | Path, entity_id: int) -> Entity:
    """Decode `path` into a fully built entity filed under `entity_id`."""

    source = Path(path)
    kind = kind_for_path(source)
    try:
        size = source.stat().st_size
        payload = _DECODERS[kind](source)
    except Exception as exc:  # decoder libraries raise their own error types
        raise ImportFailed(f"File Import Fail -> {type(exc).__name__}: {exc}") from exc
    builder = EntityBuilder(entity_id)
    builder.meta("name", source.stem)
    builder.meta("time-imported", now_iso())
    builder.meta("file-size", str(size))
    builder.meta("file-type", _FILE_TYPES[kind])
    return builder.build(kind, payload)


def encode_file(entity: Entity, path: str | Path) -> Path:
    target = Path(path)
    try:
        if entity.kind is EntityKind.OCEL:
            export_ocel_pretty(entity.payload, target)
        elif entity.kind is EntityKind.OCDG:
            export_ocdg(entity.payload, target)
        else:
            entity.payload.to_csv(target, sep=",", header=True, index=False)
    except OSError as exc:
        raise ExportFailed(f"Cannot write {target}: {exc}") from exc
    except Exception as exc:  # encoder libraries raise their own error types
        raise ExportFailed(f"Cannot encode entity {entity.id}: {type(exc).__name__}: {exc}") from exc
    return target
