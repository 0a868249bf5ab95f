from __future__ import annotations

from typing import Any

from ocel_workbench.core.entities import EntityKind
from ocel_workbench.core.features import (
    EVENT_FEATURES,
    event_point_features,
    feature_parameters,
    selected_specs,
)
from ocel_workbench.core.types import PluginContext, PluginOutput, PluginResult


def build_parameters(context: dict[str, Any] | None) -> list[dict[str, Any]]:
    return feature_parameters(EVENT_FEATURES, context)


class Plugin:
    def run(self, ctx: PluginContext) -> PluginResult:
        log = ctx.input("ocel").payload
        graph = ctx.input("ocdg").payload
        specs = selected_specs(EVENT_FEATURES, ctx.params, log)
        ctx.progress("Computing Event Point Features")
        frame = event_point_features(log, graph, specs, max_workers=ctx.max_workers)
        ctx.progress("Storing Feature Table")
        return PluginResult(
            PluginOutput(
                kind=EntityKind.TABLE,
                payload=frame,
                name="Event Point Features",
                instance_data={"features": [spec.column for spec in specs]},
            )
        )
