from __future__ import annotations

from ocel_workbench.core.entities import EntityKind
from ocel_workbench.core.features import (
    ACTIVITY,
    ANY_RELATION,
    OBJECT_FEATURES,
    PLAIN,
    RELATION,
    FeatureSpec,
    object_point_features,
)
from ocel_workbench.core.ocel import EventLog
from ocel_workbench.core.types import PluginContext, PluginOutput, PluginResult


def all_specs(log: EventLog) -> list[FeatureSpec]:
    specs: list[FeatureSpec] = []
    for name, (arg_kind, _) in OBJECT_FEATURES.items():
        if arg_kind == PLAIN:
            specs.append(FeatureSpec(name))
        elif arg_kind == RELATION:
            specs.append(FeatureSpec(name, ANY_RELATION))
        elif arg_kind == ACTIVITY:
            specs.extend(FeatureSpec(name, activity) for activity in log.activities)
    return specs


class Plugin:
    def run(self, ctx: PluginContext) -> PluginResult:
        log = ctx.input("ocel").payload
        graph = ctx.input("ocdg").payload
        ctx.progress("Computing Object Point Features")
        frame = object_point_features(log, graph, all_specs(log), max_workers=ctx.max_workers)
        ctx.progress("Storing Feature Table")
        return PluginResult(
            PluginOutput(kind=EntityKind.TABLE, payload=frame, name="All Object Point Features")
        )
