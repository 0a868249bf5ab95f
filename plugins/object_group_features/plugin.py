from __future__ import annotations

from typing import Any

from ocel_workbench.core.entities import EntityKind
from ocel_workbench.core.features import (
    AGGREGATIONS,
    OBJECT_FEATURES,
    feature_parameters,
    object_group_features,
    selected_specs,
)
from ocel_workbench.core.types import PluginContext, PluginOutput, PluginResult


def build_parameters(context: dict[str, Any] | None) -> list[dict[str, Any]]:
    groups = feature_parameters(OBJECT_FEATURES, context)
    groups[0]["dropdown:Aggregation"] = list(AGGREGATIONS)
    return groups


class Plugin:
    def run(self, ctx: PluginContext) -> PluginResult:
        log = ctx.input("ocel").payload
        graph = ctx.input("ocdg").payload
        specs = selected_specs(OBJECT_FEATURES, ctx.params, log)
        aggregation = ctx.params.get("Aggregation") or AGGREGATIONS[0]
        ctx.progress("Computing Object Group Features")
        frame = object_group_features(
            log, graph, specs, aggregation, max_workers=ctx.max_workers
        )
        ctx.progress("Storing Feature Table")
        return PluginResult(
            PluginOutput(
                kind=EntityKind.TABLE,
                payload=frame,
                name="Object Group Features",
                instance_data={"aggregation": aggregation},
            )
        )
