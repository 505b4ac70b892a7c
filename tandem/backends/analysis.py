"""In-process stand-in for the stepwise analysis backend (Sequential Thinking)."""

from collections.abc import Callable
from typing import Any

from tandem.backends.base import Backend, BackendKind
from tandem.logging import now_iso

Responder = Callable[[str, dict[str, Any]], dict[str, Any]]


class AnalysisBackend(Backend):
    """
    Simulated Sequential Thinking backend.

    Echoes the requested thought back as a canned analysis. A `responder`
    callable can replace the canned text, which is how tests feed the
    insight extractor realistic output.
    """

    kind = BackendKind.ANALYSIS

    def __init__(self, responder: Responder | None = None):
        super().__init__()
        self.responder = responder
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def execute(self, operation: str, params: dict[str, Any]) -> dict[str, Any]:
        self._require_connection()
        self.calls.append((operation, params))

        thought = params.get("thought", operation)
        result: dict[str, Any] = {
            "success": True,
            "thought": thought,
            "thought_number": params.get("thought_number", 1),
            "total_thoughts": params.get("total_thoughts", 1),
            "next_thought_needed": params.get("next_thought_needed", False),
            "result": f"Simulated analysis: {thought}",
            "timestamp": now_iso(),
        }
        if self.responder is not None:
            result.update(self.responder(operation, params))
        return result
