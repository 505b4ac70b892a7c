"""In-process stand-in for the task-structuring backend (TaskMaster)."""

from typing import Any

from tandem.backends.base import Backend, BackendKind
from tandem.logging import now_iso


class StructuringBackend(Backend):
    """
    Simulated TaskMaster backend.

    Returns a fixed-shape canned result for every operation. Tests and demos
    can register canned payloads per operation via `responses`.
    """

    kind = BackendKind.STRUCTURING

    def __init__(self, responses: dict[str, dict[str, Any]] | None = None):
        super().__init__()
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def execute(self, operation: str, params: dict[str, Any]) -> dict[str, Any]:
        self._require_connection()
        self.calls.append((operation, params))

        result: dict[str, Any] = {
            "success": True,
            "operation": operation,
            "data": f"Simulated result for {operation}",
            "timestamp": now_iso(),
        }
        result.update(self.responses.get(operation, {}))
        return result
