from __future__ import annotations

from typing import Any, Callable

from .catalog import PluginCatalog, PluginDescriptor
from .entities import Entity, EntityBuilder, EntityKind
from .errors import InvalidInput
from .ids import IdAllocator
from .parameters import parse_parameters
from .progress import ProgressObserver, ProgressReporter
from .store import EntityStore, StoreSession
from .types import PluginContext, PluginOutput, PluginRequest, PluginResult
from .utils import max_workers as default_max_workers
from .utils import now_iso, null_logger


def _parse_entity_id(slot: str, ref: Any) -> int:
    if isinstance(ref, bool):
        raise InvalidInput(f"Input slot '{slot}' has a non-numeric id: {ref!r}")
    try:
        return int(str(ref).strip())
    except ValueError as exc:
        raise InvalidInput(f"Input slot '{slot}' has a non-numeric id: {ref!r}") from exc


class PluginDispatcher:
    """Runs one plugin invocation end to end against the shared store."""

    def __init__(
        self,
        store: EntityStore,
        allocator: IdAllocator,
        catalog: PluginCatalog,
        logger: Callable[[str], None] = null_logger,
        max_workers: int | None = None,
    ) -> None:
        self.store = store
        self.allocator = allocator
        self.catalog = catalog
        self.logger = logger
        self.max_workers = max_workers or default_max_workers()

    def resolve_inputs(
        self,
        descriptor: PluginDescriptor,
        request: PluginRequest,
        session: StoreSession,
    ) -> dict[str, Entity | None]:
        resolved: dict[str, Entity | None] = {}
        for slot_name, slot in descriptor.inputs.items():
            refs = request.inputs.get(slot_name) or []
            if not refs:
                if slot.required:
                    raise InvalidInput(f"Input slot '{slot_name}' requires an entity")
                resolved[slot_name] = None
                continue
            # Only the first reference of a slot is honoured.
            entity_id = _parse_entity_id(slot_name, refs[0])
            entity = session.find(entity_id)
            if entity is None:
                raise InvalidInput(
                    f"Input slot '{slot_name}' references entity {entity_id}, which does not exist"
                )
            if entity.kind is not slot.kind:
                raise InvalidInput(
                    f"Input slot '{slot_name}' expects {slot.kind.value}, "
                    f"entity {entity_id} is {entity.kind.value}"
                )
            resolved[slot_name] = entity
        unknown = sorted(set(request.inputs) - set(descriptor.inputs))
        if unknown:
            raise InvalidInput(f"Plugin {descriptor.enumid} has no input slot(s): {', '.join(unknown)}")
        return resolved

    def _build_entity(
        self,
        entity_id: int,
        builder: EntityBuilder,
        output: PluginOutput,
        descriptor: PluginDescriptor,
        inputs: dict[str, Entity | None],
    ) -> Entity:
        if output.kind.value not in descriptor.outputs:
            raise RuntimeError(
                f"Plugin {descriptor.enumid} produced {output.kind.value}, "
                f"which is not one of its output slots"
            )
        for key, value in output.metadata.items():
            builder.meta(key, value)
        builder.meta("name", f"{output.name} {entity_id}")
        if output.kind is EntityKind.OCEL:
            builder.meta("file-type", "jsonocel")
        builder.extend_instance(output.instance_data)
        for slot_name, entity in inputs.items():
            if entity is not None:
                builder.instance(f"{slot_name}-used", entity.name)
        return builder.build(output.kind, output.payload)

    def _commit(
        self,
        session: StoreSession,
        entity_id: int,
        builder: EntityBuilder,
        result: PluginResult | None,
        descriptor: PluginDescriptor,
        inputs: dict[str, Entity | None],
    ) -> None:
        if result is None or result.output is None:
            return
        extras: list[Entity] = []
        for output in result.extra_outputs:
            extra_id = self.allocator.next()
            extra_builder = EntityBuilder(extra_id).meta("time-created", now_iso())
            extra_builder.instance("derived-from", entity_id)
            extras.append(self._build_entity(extra_id, extra_builder, output, descriptor, inputs))
        if extras:
            builder.instance("derived-tables", [entity.id for entity in extras])
        primary = self._build_entity(entity_id, builder, result.output, descriptor, inputs)
        session.insert(entity_id, primary)
        for entity in extras:
            session.insert(entity.id, entity)

    def activate(
        self,
        request: PluginRequest,
        observer: ProgressObserver | None = None,
    ) -> int:
        descriptor = self.catalog.describe(request.enumid)
        plugin = self.catalog.load_plugin(descriptor)

        entity_id = self.allocator.next()
        builder = EntityBuilder(entity_id).meta("time-created", now_iso())
        reporter = ProgressReporter(descriptor.total_steps + 2, observer, self.logger)
        reporter.emit(f"Starting Plugin: {descriptor.name}")
        self.logger(f"[RUN] {descriptor.enumid} -> {entity_id}")

        params = parse_parameters(descriptor.parameters, request.parameters)

        def make_context(inputs: dict[str, Entity | None]) -> PluginContext:
            return PluginContext(
                entity_id=entity_id,
                params=params,
                inputs=inputs,
                progress=reporter.step,
                logger=self.logger,
                max_workers=self.max_workers,
            )

        try:
            if descriptor.parallel:
                # Inputs are immutable snapshots, so computation runs unlocked.
                with self.store.session() as session:
                    inputs = self.resolve_inputs(descriptor, request, session)
                result = plugin.run(make_context(inputs))
                with self.store.session() as session:
                    self._commit(session, entity_id, builder, result, descriptor, inputs)
            else:
                with self.store.session() as session:
                    inputs = self.resolve_inputs(descriptor, request, session)
                    result = plugin.run(make_context(inputs))
                    self._commit(session, entity_id, builder, result, descriptor, inputs)
        except Exception as exc:
            self.logger(f"[FAIL] {descriptor.enumid} -> {entity_id}: {type(exc).__name__}: {exc}")
            raise

        reporter.finish(f"Finished Plugin: {descriptor.name}")
        self.logger(f"[DONE] {descriptor.enumid} -> {entity_id}")
        return entity_id
