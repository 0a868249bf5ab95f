from __future__ import annotations

import json
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


_FLOAT_PRECISION = 10


def _canonicalize(value: Any) -> Any:
    if isinstance(value, float):
        return round(value, _FLOAT_PRECISION)
    if isinstance(value, dict):
        return {key: _canonicalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonicalize(item) for item in value]
    return value


def json_dumps(data: Any, *, sort_keys: bool = True) -> str:
    return json.dumps(
        _canonicalize(data), ensure_ascii=False, indent=2, sort_keys=sort_keys
    )


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def atomic_write_bytes(path: Path, data: bytes) -> None:
    ensure_dir(path.parent)
    tmp = path.parent / f".{path.name}.tmp.{uuid.uuid4().hex}"
    try:
        with tmp.open("wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    atomic_write_bytes(path, text.encode(encoding))


def get_appdata_dir() -> Path:
    return Path(os.environ.get("OCEL_WORKBENCH_APPDATA", "appdata"))


def get_plugins_dir() -> Path:
    return Path(os.environ.get("OCEL_WORKBENCH_PLUGINS_DIR", "plugins"))


def env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


def max_workers() -> int:
    default = min(8, os.cpu_count() or 1)
    raw = os.environ.get("OCEL_WORKBENCH_MAX_WORKERS", "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def file_logger(path: Path) -> Callable[[str], None]:
    """Return a logger callable that appends timestamped lines to `path`."""

    def logger(msg: str) -> None:
        ensure_dir(path.parent)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(f"{now_iso()} {msg}\n")

    return logger


def null_logger(msg: str) -> None:
    pass
