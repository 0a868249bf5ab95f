from __future__ import annotations

from typing import Any

import pandas as pd

from ocel_workbench.core.entities import EntityKind
from ocel_workbench.core.errors import InvalidInput, InvalidParameter
from ocel_workbench.core.ocel import EventLog
from ocel_workbench.core.types import PluginContext, PluginOutput, PluginResult


def _native(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if hasattr(value, "item"):
        return value.item()
    return value


def merge_table(log: EventLog, frame: pd.DataFrame) -> EventLog:
    """Copy `log` and add table columns to the matching objects' attributes.

    Attributes an object already has are kept.
    """

    if frame.shape[1] < 1:
        raise InvalidInput("Feature table has no object id column")
    oids = [str(oid) for oid in frame.iloc[:, 0]]
    unknown = sorted({oid for oid in oids if oid not in log.objects})
    if unknown:
        preview = ", ".join(unknown[:5])
        raise InvalidInput(f"Feature table references unknown object id(s): {preview}")
    merged = log.clone()
    for column in frame.columns[1:]:
        for oid, value in zip(oids, frame[column].tolist()):
            merged.objects[oid].ovmap.setdefault(str(column), _native(value))
    return merged


class Plugin:
    def run(self, ctx: PluginContext) -> PluginResult:
        if ctx.params.get("ConsumeEntities"):
            raise InvalidParameter("ConsumeEntities", "consuming input entities is not supported")
        log = ctx.input("ocel").payload
        frame = ctx.input("table").payload
        ctx.progress("Merging DataFrame into OCEL")
        merged = merge_table(log, frame)
        ctx.progress("Storing new OCEL log")
        return PluginResult(
            PluginOutput(kind=EntityKind.OCEL, payload=merged, name="Merged Ocel")
        )
