from __future__ import annotations

import pandas as pd

from ocel_workbench.core.entities import EntityKind
from ocel_workbench.core.errors import InvalidParameter
from ocel_workbench.core.types import PluginContext, PluginOutput, PluginResult
from ocel_workbench.core.validation import validate_ocel_verbose


class Plugin:
    def run(self, ctx: PluginContext) -> PluginResult:
        path = str(ctx.params.get("ValidationFile") or "").strip()
        if not path:
            raise InvalidParameter("ValidationFile", "a file path is required")
        ctx.progress("Validating OCEL")
        problems = validate_ocel_verbose(path)
        ctx.progress("Storing Validation Result")
        frame = pd.DataFrame(
            {
                "Error Reason": [reason for reason, _ in problems],
                "Error Location": [location for _, location in problems],
            },
            columns=["Error Reason", "Error Location"],
        )
        return PluginResult(
            PluginOutput(kind=EntityKind.TABLE, payload=frame, name="Ocel Validation")
        )
