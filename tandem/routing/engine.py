"""
Decision Engine - Route an operation to the backend best suited for it.

Routing logic (basic engine):
1. Hybrid operations always get the hybrid workflow template
2. Operations matching the structuring tables go to TaskMaster
3. Operations matching the analysis tables go to Sequential Thinking
4. Everything else is scored from context signals (complexity,
   problem type, dependencies, reasoning needs)

Engines never raise: any internal error yields a low-confidence
fallback decision routed to the structuring backend.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from tandem.backends.base import BackendKind
from tandem.logging import DecisionLogEntry, decision_logger, now_iso
from tandem.routing.decision import Decision, DecisionMetadata, fallback_decision
from tandem.routing.rules import (
    BASIC_SCORING_RULES,
    CORE_RULES,
    TIE_BREAK_ORDER,
    MatchKind,
    RuleTable,
    as_number,
    classify,
    copy_rules,
    get_basic_workflow,
    get_next_actions,
)

logger = logging.getLogger(__name__)

S = BackendKind.STRUCTURING
A = BackendKind.ANALYSIS
H = BackendKind.HYBRID

FALLBACK_CONFIDENCE_THRESHOLD = 0.6
REASONING_SCORE_THRESHOLD = 0.3
HIGH_COMPLEXITY = 7

BACKEND_REASONS: dict[BackendKind, str] = {
    S: "Operation calls for structuring and organization",
    A: "Operation calls for analysis and reasoning",
    H: "Operation benefits from a hybrid approach",
}


def argmax(scores: dict[BackendKind, float]) -> BackendKind:
    """Highest-scoring backend; ties resolved by TIE_BREAK_ORDER."""
    return max(TIE_BREAK_ORDER, key=lambda kind: scores.get(kind, 0.0))


class DecisionEngine(ABC):
    """
    Base class for decision engines.

    Subclasses implement `_evaluate`; `evaluate` wraps it so callers always
    get a Decision, and writes one structured log entry per evaluation.
    """

    name = "base"

    def __init__(self, rules: dict[BackendKind, RuleTable]):
        self.rules = copy_rules(rules)

    def evaluate(self, operation: str, context: dict[str, Any] | None = None) -> Decision:
        """
        Decide which backend handles an operation.

        Args:
            operation: Operation name
            context: Optional context mapping (complexity, type, description...)

        Returns:
            Decision; a fallback decision if evaluation failed
        """
        context = dict(context or {})
        try:
            decision = self._evaluate(operation, context)
        except Exception as e:
            logger.error(f"Decision evaluation failed for '{operation}': {e}")
            decision = fallback_decision(operation, e, self.name)

        self._log_decision(decision, context)
        return decision

    @abstractmethod
    def _evaluate(self, operation: str, context: dict[str, Any]) -> Decision:
        """Produce a decision; may raise."""

    def _metadata(self, operation: str, context: dict[str, Any]) -> DecisionMetadata:
        return DecisionMetadata(
            operation=operation,
            context_factors=list(context.keys()),
            engine=self.name,
        )

    def add_custom_rule(
        self,
        backend: BackendKind,
        operations: list[str] | None = None,
        contexts: list[str] | None = None,
        keywords: list[str] | None = None,
    ) -> None:
        """Extend a backend's tables at runtime."""
        self.rules[backend] = self.rules[backend].extended(
            operations=operations, contexts=contexts, keywords=keywords
        )
        logger.info(
            f"Custom rule added for {backend.value}: "
            f"{len(operations or [])} ops, {len(contexts or [])} contexts, "
            f"{len(keywords or [])} keywords"
        )

    def get_stats(self) -> dict[str, Any]:
        """Table sizes per backend."""
        return {
            "engine": self.name,
            "rules": {kind.value: table.stats() for kind, table in self.rules.items()},
        }

    def _log_decision(self, decision: Decision, context: dict[str, Any]) -> None:
        entry = DecisionLogEntry(
            timestamp=now_iso(),
            decision_id=decision.decision_id,
            engine=self.name,
            operation=decision.metadata.operation,
            context_factors=list(context.keys()),
            backend=decision.backend.value,
            confidence=decision.confidence,
            reasoning=decision.reasoning,
            fallback=decision.fallback.value if decision.fallback else None,
            workflow_steps=len(decision.workflow or []),
            scores={k.value: v for k, v in (decision.scores or {}).items()},
            is_fallback=decision.is_fallback,
            error=decision.error,
        )
        if decision.is_fallback:
            decision_logger.warning(entry.to_json())
        else:
            decision_logger.info(entry.to_json())
        logger.debug(
            f"{self.name} engine: {decision.metadata.operation} -> "
            f"{decision.backend.value} ({decision.confidence:.2f})"
        )


class RulesEngine(DecisionEngine):
    """
    Priority-cascade engine over the core rule tables.

    Direct rule matches short-circuit; context scoring only runs when no
    table claims the operation.
    """

    name = "basic"

    def __init__(self, rules: dict[BackendKind, RuleTable] | None = None):
        super().__init__(rules or CORE_RULES)

    def _evaluate(self, operation: str, context: dict[str, Any]) -> Decision:
        metadata = self._metadata(operation, context)

        # 1. Explicit hybrid operations
        if operation in self.rules[H].operations:
            return Decision(
                backend=H,
                confidence=1.0,
                reasoning="Explicit hybrid operation",
                workflow=get_basic_workflow(operation),
                metadata=metadata,
            )

        # 2-3. Single-backend table matches
        for backend, reasoning in (
            (S, "Structuring and organization operation"),
            (A, "Analysis and problem-solving operation"),
        ):
            match = classify(operation, context, self.rules[backend])
            if match is not None:
                return Decision(
                    backend=backend,
                    confidence=0.9 if match is MatchKind.OPERATION else 0.7,
                    reasoning=f"{reasoning} (matched by {match.value})",
                    next_actions=get_next_actions(backend, operation),
                    metadata=metadata,
                )

        # 4. Context scoring
        return self._score_context(context, metadata)

    def _score_context(self, context: dict[str, Any], metadata: DecisionMetadata) -> Decision:
        scores = {S: 0.0, A: 0.0, H: 0.0}
        for rule in BASIC_SCORING_RULES:
            if rule.predicate(context):
                for kind, weight in rule.weights.items():
                    scores[kind] += weight

        backend = argmax(scores)
        top = scores[backend]
        confidence = min(1.0, top) if top > 0 else 0.5

        return Decision(
            backend=backend,
            confidence=confidence,
            reasoning=self._reasoning(scores, context),
            fallback=H if confidence < FALLBACK_CONFIDENCE_THRESHOLD else None,
            scores=scores,
            metadata=metadata,
        )

    @staticmethod
    def _reasoning(scores: dict[BackendKind, float], context: dict[str, Any]) -> str:
        reasons = [
            BACKEND_REASONS[kind]
            for kind in (S, A, H)
            if scores[kind] > REASONING_SCORE_THRESHOLD
        ]
        complexity = as_number(context.get("complexity"))
        if complexity is not None and complexity > HIGH_COMPLEXITY:
            reasons.append("High complexity detected")

        if not reasons:
            return "Decision based on default patterns"
        return "; ".join(reasons)
