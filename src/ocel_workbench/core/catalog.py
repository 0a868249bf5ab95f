from __future__ import annotations

import importlib
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validate

from .entities import EntityKind
from .errors import UnknownPlugin
from .parameters import declarations
from .utils import read_json


class PluginKind(str, Enum):
    GENERATE_OCDG = "GenerateOcdg"
    VALIDATE_OCEL = "ValidateOcel"
    MERGE_FEATURES_INTO_OCEL = "MergeFeaturesIntoOcel"
    ALL_OBJECT_POINT_FEATURES = "AllObjectPointFeatures"
    OBJECT_POINT_FEATURES = "ObjectPointFeatures"
    OBJECT_GROUP_FEATURES = "ObjectGroupFeatures"
    EVENT_POINT_FEATURES = "EventPointFeatures"
    EVENT_GROUP_FEATURES = "EventGroupFeatures"
    GENERATE_TIME_SERIES = "GenerateTimeSeries"
    OBJECT_SITUATIONS = "ObjectSituations"
    EVENT_SITUATIONS = "EventSituations"
    UI_DEMO = "UiDemo"

    @classmethod
    def resolve(cls, enumid: str) -> "PluginKind":
        try:
            return cls(enumid)
        except ValueError as exc:
            raise UnknownPlugin(str(enumid)) from exc

    @property
    def ordinal(self) -> int:
        return list(type(self)).index(self) + 1


@dataclass(frozen=True)
class Slot:
    kind: EntityKind
    min_count: int
    max_count: int

    @property
    def required(self) -> bool:
        return self.min_count > 0

    def to_json(self) -> Any:
        if self.min_count == self.max_count:
            return self.min_count
        return [self.min_count, self.max_count]


@dataclass(frozen=True)
class PluginDescriptor:
    kind: PluginKind
    plugin_id: str
    name: str
    description: str
    plugin_type: str
    version: str
    total_steps: int
    entrypoint: str
    inputs: dict[str, Slot]
    outputs: dict[str, Slot]
    parameters: list[dict[str, Any]] = field(default_factory=list)
    parallel: bool = False
    path: Path | None = None

    @property
    def enumid(self) -> str:
        return self.kind.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.kind.ordinal,
            "name": self.name,
            "description": self.description,
            "total_steps": self.total_steps,
            "enumid": self.enumid,
            "type": self.plugin_type,
            "input": {slot: spec.to_json() for slot, spec in self.inputs.items()},
            "output": {slot: spec.to_json() for slot, spec in self.outputs.items()},
            "parameters": [dict(group) for group in self.parameters],
        }


@dataclass(frozen=True)
class PluginDiscoveryError:
    plugin_id: str
    path: Path
    message: str


def _parse_slots(raw: dict[str, Any]) -> dict[str, Slot]:
    slots: dict[str, Slot] = {}
    for name, arity in (raw or {}).items():
        kind = EntityKind.from_slot(name)
        if isinstance(arity, list):
            low, high = int(arity[0]), int(arity[1])
        else:
            low = high = int(arity)
        if low < 0 or high < low:
            raise ValueError(f"Invalid arity for slot '{name}': {arity}")
        slots[kind.value] = Slot(kind, low, high)
    return slots


class PluginCatalog:
    """Immutable registry of plugin descriptors discovered from YAML manifests."""

    def __init__(self, plugins_dir: Path) -> None:
        self.plugins_dir = plugins_dir
        self._manifest_schema: dict[str, Any] | None = None
        self._descriptors: dict[PluginKind, PluginDescriptor] | None = None
        self._instances: dict[PluginKind, Any] = {}
        self._lock = threading.Lock()
        self.discovery_errors: list[PluginDiscoveryError] = []

    def _record_discovery_error(self, plugin_id: str, manifest: Path, message: str) -> None:
        self.discovery_errors.append(
            PluginDiscoveryError(
                plugin_id=plugin_id or manifest.parent.name,
                path=manifest,
                message=message,
            )
        )

    def discover(self) -> list[PluginDescriptor]:
        found: dict[PluginKind, PluginDescriptor] = {}
        self.discovery_errors = []
        manifest_schema = self._load_manifest_schema()
        for manifest in sorted(self.plugins_dir.glob("*/plugin.yaml")):
            try:
                data = yaml.safe_load(manifest.read_text(encoding="utf-8"))
            except yaml.YAMLError as exc:
                self._record_discovery_error(manifest.parent.name, manifest, f"Invalid YAML: {exc}")
                continue
            if not isinstance(data, dict):
                self._record_discovery_error(manifest.parent.name, manifest, "Invalid manifest payload")
                continue
            plugin_id = str(data.get("id") or manifest.parent.name)
            try:
                validate(instance=data, schema=manifest_schema)
            except ValidationError as exc:
                self._record_discovery_error(plugin_id, manifest, f"Invalid manifest: {exc.message}")
                continue
            try:
                kind = PluginKind(data["enumid"])
            except ValueError:
                self._record_discovery_error(plugin_id, manifest, f"Unknown enumid: {data['enumid']}")
                continue
            if kind in found:
                self._record_discovery_error(plugin_id, manifest, "Duplicate plugin enumid")
                continue
            try:
                descriptor = PluginDescriptor(
                    kind=kind,
                    plugin_id=plugin_id,
                    name=data["name"],
                    description=data.get("description", ""),
                    plugin_type=data["type"],
                    version=data["version"],
                    total_steps=int(data["total_steps"]),
                    entrypoint=data["entrypoint"],
                    inputs=_parse_slots(data.get("input", {})),
                    outputs=_parse_slots(data.get("output", {})),
                    parameters=list(data.get("parameters") or []),
                    parallel=bool(data.get("parallel", False)),
                    path=manifest.parent,
                )
                builder = self._parameter_builder(descriptor)
                if builder is not None:
                    descriptor = replace(descriptor, parameters=builder(None))
                declarations(descriptor.parameters)
            except Exception as exc:
                self._record_discovery_error(plugin_id, manifest, f"{type(exc).__name__}: {exc}")
                continue
            found[kind] = descriptor
        for kind in PluginKind:
            if kind not in found:
                self._record_discovery_error(kind.value, self.plugins_dir, "Missing plugin manifest")
        return [found[kind] for kind in PluginKind if kind in found]

    def _ensure_loaded(self) -> dict[PluginKind, PluginDescriptor]:
        with self._lock:
            if self._descriptors is None:
                self._descriptors = {d.kind: d for d in self.discover()}
            return self._descriptors

    def list(self) -> list[PluginDescriptor]:
        descriptors = self._ensure_loaded()
        return [descriptors[kind] for kind in PluginKind if kind in descriptors]

    def describe(self, enumid: str, context: dict[str, Any] | None = None) -> PluginDescriptor:
        kind = PluginKind.resolve(enumid)
        descriptor = self._ensure_loaded().get(kind)
        if descriptor is None:
            raise UnknownPlugin(enumid)
        if context:
            builder = self._parameter_builder(descriptor)
            if builder is not None:
                return replace(descriptor, parameters=builder(context))
        return descriptor

    def _module(self, descriptor: PluginDescriptor) -> Any:
        module_path, _ = descriptor.entrypoint.split(":", 1)
        if module_path.endswith(".py"):
            module_path = module_path[:-3]
        return importlib.import_module(f"plugins.{descriptor.plugin_id}.{module_path}")

    def _parameter_builder(self, descriptor: PluginDescriptor) -> Any:
        builder = getattr(self._module(descriptor), "build_parameters", None)
        return builder if callable(builder) else None

    def load_plugin(self, descriptor: PluginDescriptor) -> Any:
        with self._lock:
            plugin = self._instances.get(descriptor.kind)
            if plugin is None:
                _, class_name = descriptor.entrypoint.split(":", 1)
                plugin = getattr(self._module(descriptor), class_name)()
                self._instances[descriptor.kind] = plugin
            return plugin

    def _load_manifest_schema(self) -> dict[str, Any]:
        if self._manifest_schema is None:
            schema_path = self.plugins_dir.parent / "docs" / "plugin_manifest.schema.json"
            self._manifest_schema = read_json(schema_path)
        return self._manifest_schema
