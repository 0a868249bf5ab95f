from __future__ import annotations

from typing import Any

from ocel_workbench.core.entities import EntityKind
from ocel_workbench.core.timeseries import AUTO, FREQUENCIES, SERIES, activity_series, event_series
from ocel_workbench.core.types import PluginContext, PluginOutput, PluginResult


def build_parameters(context: dict[str, Any] | None) -> list[dict[str, Any]]:
    return [
        {
            "header": "General",
            "dropdown:Frequency": [AUTO, *FREQUENCIES],
            "multichoice:Series": list(SERIES),
            "bool:Activity Table": False,
        }
    ]


class Plugin:
    def run(self, ctx: PluginContext) -> PluginResult:
        log = ctx.input("ocel").payload
        series = ctx.params.get("Series") or list(SERIES)
        ctx.progress("Binning Events")
        frame, frequency = event_series(log, ctx.params.get("Frequency") or AUTO, series)
        extras: list[PluginOutput] = []
        if ctx.params.get("Activity Table"):
            ctx.progress("Counting Activities")
            extras.append(
                PluginOutput(
                    kind=EntityKind.TABLE,
                    payload=activity_series(log, frequency),
                    name="Activity Time Series",
                    instance_data={"frequency": frequency},
                )
            )
        ctx.progress("Storing Time Series")
        return PluginResult(
            PluginOutput(
                kind=EntityKind.TABLE,
                payload=frame,
                name="Time Series",
                instance_data={"frequency": frequency},
            ),
            extra_outputs=extras,
        )
