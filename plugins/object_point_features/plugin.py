from __future__ import annotations

from typing import Any

from ocel_workbench.core.entities import EntityKind
from ocel_workbench.core.features import (
    OBJECT_FEATURES,
    feature_parameters,
    object_point_features,
    selected_specs,
)
from ocel_workbench.core.types import PluginContext, PluginOutput, PluginResult


def build_parameters(context: dict[str, Any] | None) -> list[dict[str, Any]]:
    return feature_parameters(OBJECT_FEATURES, context)


class Plugin:
    def run(self, ctx: PluginContext) -> PluginResult:
        log = ctx.input("ocel").payload
        graph = ctx.input("ocdg").payload
        specs = selected_specs(OBJECT_FEATURES, ctx.params, log)
        ctx.progress("Computing Object Point Features")
        frame = object_point_features(log, graph, specs, max_workers=ctx.max_workers)
        ctx.progress("Storing Feature Table")
        return PluginResult(
            PluginOutput(
                kind=EntityKind.TABLE,
                payload=frame,
                name="Object Point Features",
                instance_data={"features": [spec.column for spec in specs]},
            )
        )
