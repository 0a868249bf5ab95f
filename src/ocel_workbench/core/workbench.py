"""Command surface used by the UI server and the CLI.

Every command returns a success payload or raises a WorkbenchError subclass.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from .adapters import decode_file, encode_file, kind_for_path
from .catalog import PluginCatalog, PluginDescriptor
from .dispatch import PluginDispatcher
from .entities import EntityKind, table_to_json
from .errors import EntityNotFound, InvalidInput, UnsupportedFormat
from .ids import IdAllocator
from .progress import ProgressObserver
from .situations import log_properties
from .store import EntityStore
from .types import PluginRequest
from .utils import get_plugins_dir, null_logger


class Workbench:
    def __init__(
        self,
        plugins_dir: Path | None = None,
        *,
        logger: Callable[[str], None] = null_logger,
        max_workers: int | None = None,
    ) -> None:
        self.logger = logger
        self.store = EntityStore()
        self.allocator = IdAllocator()
        self.catalog = PluginCatalog(plugins_dir or get_plugins_dir())
        self.dispatcher = PluginDispatcher(
            self.store,
            self.allocator,
            self.catalog,
            logger=logger,
            max_workers=max_workers,
        )

    def import_entity(self, filepath: str | Path) -> int:
        kind_for_path(Path(filepath))
        entity_id = self.allocator.next()
        entity = decode_file(filepath, entity_id)
        self.store.insert(entity_id, entity)
        self.logger(f"[IMPORT] {filepath} -> {entity_id} ({entity.kind.value})")
        return entity_id

    def export_entity(self, entity_id: int, filepath: str | Path) -> str:
        entity = self.store.get(int(entity_id))
        target = encode_file(entity, filepath)
        self.logger(f"[EXPORT] {entity_id} -> {target}")
        return str(target)

    def get_instance_info(self, entity_id: int) -> dict[str, Any]:
        return self.store.get(int(entity_id)).get_info()

    def get_analysis_view(self, entity_id: int) -> str:
        return self.store.get(int(entity_id)).get_analysis_view()

    def get_view(self, entity_id: int) -> str:
        entity = self.store.get(int(entity_id))
        if entity.kind is not EntityKind.TABLE:
            raise UnsupportedFormat(f"No full view for {entity.kind.value} entities")
        return table_to_json(entity.payload)

    def get_plugins(self) -> list[dict[str, Any]]:
        return [descriptor.to_dict() for descriptor in self.catalog.list()]

    def describe_plugin(self, enumid: str, ocel_id: int | None = None) -> PluginDescriptor:
        if ocel_id is None:
            return self.catalog.describe(enumid)
        try:
            entity = self.store.get(int(ocel_id))
        except EntityNotFound as exc:
            raise InvalidInput(str(exc)) from exc
        if entity.kind is not EntityKind.OCEL:
            raise InvalidInput(f"Entity {ocel_id} is not an event log")
        context = {
            "activities": entity.payload.activities,
            "object_types": entity.payload.object_types,
            "properties": log_properties(entity.payload),
        }
        return self.catalog.describe(enumid, context=context)

    def activate_plugin(
        self,
        request: PluginRequest | dict[str, Any],
        observer: ProgressObserver | None = None,
    ) -> int:
        if not isinstance(request, PluginRequest):
            request = PluginRequest.from_dict(request)
        return self.dispatcher.activate(request, observer)
