from __future__ import annotations

from typing import Any

from ocel_workbench.core.entities import EntityKind
from ocel_workbench.core.features import (
    AGGREGATIONS,
    EVENT_FEATURES,
    event_group_features,
    feature_parameters,
    selected_specs,
)
from ocel_workbench.core.types import PluginContext, PluginOutput, PluginResult


def build_parameters(context: dict[str, Any] | None) -> list[dict[str, Any]]:
    groups = feature_parameters(EVENT_FEATURES, context)
    groups[0]["dropdown:Aggregation"] = list(AGGREGATIONS)
    return groups


class Plugin:
    def run(self, ctx: PluginContext) -> PluginResult:
        log = ctx.input("ocel").payload
        graph = ctx.input("ocdg").payload
        specs = selected_specs(EVENT_FEATURES, ctx.params, log)
        aggregation = ctx.params.get("Aggregation") or AGGREGATIONS[0]
        ctx.progress("Computing Event Group Features")
        frame = event_group_features(
            log, graph, specs, aggregation, max_workers=ctx.max_workers
        )
        ctx.progress("Storing Feature Table")
        return PluginResult(
            PluginOutput(
                kind=EntityKind.TABLE,
                payload=frame,
                name="Event Group Features",
                instance_data={"aggregation": aggregation},
            )
        )
