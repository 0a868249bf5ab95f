from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ocel_workbench.core.entities import EntityKind
from ocel_workbench.core.errors import InvalidParameter
from ocel_workbench.core.ocdg import Relation, generate_ocdg, relation_names
from ocel_workbench.core.types import PluginContext, PluginOutput, PluginResult


def build_parameters(context: dict[str, Any] | None) -> list[dict[str, Any]]:
    return [{"header": "General", "multichoice:Relations": relation_names()}]


@dataclass(frozen=True)
class Settings:
    relations: tuple[Relation, ...]

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "Settings":
        try:
            relations = tuple(Relation.parse(name) for name in params.get("Relations") or [])
        except ValueError as exc:
            raise InvalidParameter("Relations", str(exc)) from exc
        return cls(relations=relations)


class Plugin:
    def run(self, ctx: PluginContext) -> PluginResult:
        settings = Settings.from_params(ctx.params)
        log = ctx.input("ocel").payload
        ctx.progress("Generating OCDG")
        graph = generate_ocdg(log, settings.relations)
        ctx.progress("Storing OCDG")
        return PluginResult(
            PluginOutput(
                kind=EntityKind.OCDG,
                payload=graph,
                name="Ocdg",
                instance_data={"Relations": [r.value for r in settings.relations]},
                metadata={"file-type": "gexfocdg"},
            )
        )
