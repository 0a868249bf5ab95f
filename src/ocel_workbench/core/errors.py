"""Error taxonomy shared by every command of the workbench.

Each error carries a stable `kind` so the command surface can report it
without inspecting message text.
"""

from __future__ import annotations

from typing import Any


class WorkbenchError(Exception):
    kind = "WorkbenchError"

    def payload(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": str(self)}


class UnknownPlugin(WorkbenchError):
    kind = "UnknownPlugin"

    def __init__(self, plugin_id: str) -> None:
        super().__init__(f"Unknown plugin: {plugin_id}")
        self.plugin_id = plugin_id


class InvalidInput(WorkbenchError):
    kind = "InvalidInput"


class InvalidParameter(WorkbenchError):
    kind = "InvalidParameter"

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"Invalid parameter '{name}': {message}")
        self.name = name


class EntityNotFound(WorkbenchError):
    kind = "EntityNotFound"

    def __init__(self, entity_id: Any) -> None:
        super().__init__(f"Entity {entity_id} could not be found")
        self.entity_id = entity_id


class UnsupportedFormat(WorkbenchError):
    kind = "UnsupportedFormat"


class ImportFailed(WorkbenchError):
    kind = "ImportFailed"


class ExportFailed(WorkbenchError):
    kind = "ExportFailed"


class ValidationFailed(WorkbenchError):
    kind = "ValidationFailed"


class AllocatorExhausted(WorkbenchError):
    kind = "AllocatorExhausted"
