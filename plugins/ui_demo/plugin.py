from __future__ import annotations

from ocel_workbench.core.types import PluginContext


class Plugin:
    def run(self, ctx: PluginContext) -> None:
        ctx.logger(f"[UI DEMO] parameters: {sorted(ctx.params)}")
        return None
