"""
Hybrid step handlers.

Workflow steps whose token names neither backend are dispatched here by
their exact action text. Handlers combine the results of earlier steps;
they never call a backend themselves.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from tandem.backends.base import BackendKind
from tandem.orchestrator.workflows import StepResult

logger = logging.getLogger(__name__)

HybridHandler = Callable[
    [dict[str, Any], list[StepResult]],
    dict[str, Any] | Awaitable[dict[str, Any]],
]

GENERATE_RECOMMENDATIONS = "Geração de recomendações"
SYNTHESIZE_RESULTS = "Síntese de resultados"
CROSS_VALIDATE = "Validação cruzada"

STRUCTURING_LABEL = BackendKind.STRUCTURING.label
ANALYSIS_LABEL = BackendKind.ANALYSIS.label


def generate_recommendations(params: dict[str, Any], previous: list[StepResult]) -> dict[str, Any]:
    """Recommend follow-ups from the structuring steps and the first analysis."""
    recommendations = []

    if any(r.token == STRUCTURING_LABEL for r in previous):
        recommendations.append("Revisar estrutura de tarefas criada")
        recommendations.append("Validar dependências identificadas")

    analysis_steps = [r for r in previous if r.token == ANALYSIS_LABEL]
    if analysis_steps:
        analysis = analysis_steps[0].analysis or {}
        if (analysis.get("complexity") or 0) > 7:
            recommendations.append("Considerar quebrar em tarefas menores")
        if analysis.get("risks"):
            recommendations.append("Implementar mitigação de riscos identificados")

    return {"success": True, "recommendations": recommendations, "confidence": 0.8}


def synthesize_results(params: dict[str, Any], previous: list[StepResult]) -> dict[str, Any]:
    """Aggregate counts and insights over all previous steps."""
    total = len(previous)
    key_insights: list[str] = []
    complexity_sum = 0
    total_risks = 0

    for r in previous:
        analysis = r.analysis
        if not analysis:
            continue
        complexity_sum += analysis.get("complexity") or 0
        total_risks += len(analysis.get("risks") or [])
        key_insights.extend(analysis.get("recommendations") or [])

    synthesis = {
        "total_operations": total,
        "systems_used": list(dict.fromkeys(r.token for r in previous)),
        "success_rate": sum(1 for r in previous if r.success) / total if total else 0.0,
        "key_insights": key_insights,
        "overall_complexity": int(complexity_sum / total + 0.5) if total else 0,
        "total_risks": total_risks,
    }
    return {"success": True, "synthesis": synthesis}


def cross_validate(params: dict[str, Any], previous: list[StepResult]) -> dict[str, Any]:
    """Placeholder consistency check across backends; always consistent."""
    return {
        "success": True,
        "validation": {"consistency": True, "conflicts": [], "confidence": 0.8},
    }


DEFAULT_HANDLERS: dict[str, HybridHandler] = {
    GENERATE_RECOMMENDATIONS: generate_recommendations,
    SYNTHESIZE_RESULTS: synthesize_results,
    CROSS_VALIDATE: cross_validate,
}


class HybridLogic:
    """Registry of hybrid step handlers keyed by exact action text."""

    def __init__(self, handlers: dict[str, HybridHandler] | None = None):
        self._handlers: dict[str, HybridHandler] = dict(DEFAULT_HANDLERS)
        if handlers:
            self._handlers.update(handlers)

    def register(self, action: str, handler: HybridHandler) -> None:
        """Add or replace the handler for an action."""
        self._handlers[action] = handler
        logger.debug(f"Hybrid handler registered: {action}")

    def has_handler(self, action: str) -> bool:
        return action in self._handlers

    @property
    def actions(self) -> list[str]:
        return list(self._handlers)

    async def run(
        self,
        action: str,
        params: dict[str, Any],
        previous: list[StepResult],
    ) -> dict[str, Any]:
        """
        Execute the handler for an action.

        Unregistered actions are acknowledged without doing anything.
        Exceptions raised by a handler propagate to the caller.
        """
        handler = self._handlers.get(action)
        if handler is None:
            return {"success": True, "message": f"Hybrid logic '{action}' executed"}

        result = handler(params, previous)
        if inspect.isawaitable(result):
            result = await result
        return result
