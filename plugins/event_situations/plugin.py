from __future__ import annotations

from typing import Any

from ocel_workbench.core.entities import EntityKind
from ocel_workbench.core.situations import (
    EVENT_SITUATIONS,
    event_situation,
    filters_from_params,
    situation_parameters,
)
from ocel_workbench.core.types import PluginContext, PluginOutput, PluginResult


def build_parameters(context: dict[str, Any] | None) -> list[dict[str, Any]]:
    return situation_parameters(EVENT_SITUATIONS, context)


class Plugin:
    def run(self, ctx: PluginContext) -> PluginResult:
        log = ctx.input("ocel").payload
        graph_entity = ctx.optional_input("ocdg")
        graph = graph_entity.payload if graph_entity is not None else None
        kind = ctx.params["Situation"]
        filters = filters_from_params(ctx.params, log)
        ctx.progress(f"Extracting {kind}")
        frame = event_situation(log, graph, kind, filters)
        ctx.progress("Storing Situation Table")
        return PluginResult(
            PluginOutput(
                kind=EntityKind.TABLE,
                payload=frame,
                name="Event Situations",
                instance_data={"situation": kind},
            )
        )
