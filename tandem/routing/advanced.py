"""
Advanced Decision Engine - Additive multi-dimensional scoring with learning.

Every backend accumulates score from five independent contributions:
direct operation membership, complexity bucket, semantic keyword overlap,
success rate of similar past decisions, and a weighted priority matrix.
Learned patterns then nudge the result toward backends that kept winning
for the same kind of request.

Confidence rewards a clear margin over the runner-up:
    confidence = min(0.95, top + (top - runner_up))
"""

import logging
from collections import deque
from typing import Any

from tandem.backends.base import BackendKind
from tandem.routing.decision import Decision, DecisionRecord
from tandem.routing.engine import (
    BACKEND_REASONS,
    FALLBACK_CONFIDENCE_THRESHOLD,
    HIGH_COMPLEXITY,
    REASONING_SCORE_THRESHOLD,
    DecisionEngine,
    argmax,
)
from tandem.routing.patterns import DEFAULT_CACHE_SIZE, PatternCache, pattern_key
from tandem.routing.rules import (
    COMPLEXITY_BUCKETS,
    CONTEXT_LABEL_BONUS,
    DEADLINE_STEP,
    DIRECT_OPERATION_BONUS,
    EXTENDED_RULES,
    EXTREME_COMPLEXITY_STEP,
    HISTORY_WEIGHT,
    KEYWORD_WEIGHT,
    PRIORITY_FACTORS,
    PRIORITY_THRESHOLDS,
    TIE_BREAK_ORDER,
    RuleTable,
    as_number,
    get_advanced_workflow,
)

logger = logging.getLogger(__name__)

S = BackendKind.STRUCTURING
A = BackendKind.ANALYSIS
H = BackendKind.HYBRID

MAX_HISTORY = 1000
MAX_CONFIDENCE = 0.95
EXTREME_COMPLEXITY = 8
MANY_DEPENDENCIES = 3


def _zero_scores() -> dict[BackendKind, float]:
    return {S: 0.0, A: 0.0, H: 0.0}


def _add(scores: dict[BackendKind, float], contribution: dict[BackendKind, float]) -> None:
    for kind, value in contribution.items():
        scores[kind] += value


class AdvancedRulesEngine(DecisionEngine):
    """
    Scoring engine over the extended rule tables.

    Keeps a bounded decision history (oldest evicted first) and an
    LRU-bounded learned-pattern cache. Outcomes are fed back through
    mark_decision_outcome(); nothing in the orchestrator calls it.
    """

    name = "advanced"

    def __init__(
        self,
        rules: dict[BackendKind, RuleTable] | None = None,
        pattern_cache_size: int = DEFAULT_CACHE_SIZE,
    ):
        super().__init__(rules or EXTENDED_RULES)
        self.history: deque[DecisionRecord] = deque(maxlen=MAX_HISTORY)
        self.patterns = PatternCache(pattern_cache_size)
        self.performance: dict[str, Any] = {
            "total_decisions": 0,
            "successful_decisions": 0,
            "average_confidence": 0.0,
            "backend_usage": {kind.value: 0 for kind in BackendKind},
        }

    @property
    def decision_history(self) -> list[DecisionRecord]:
        return list(self.history)

    # =========================================================================
    # EVALUATION
    # =========================================================================

    def _evaluate(self, operation: str, context: dict[str, Any]) -> Decision:
        self.performance["total_decisions"] += 1

        scores = self.calculate_scores(operation, context)
        key = pattern_key(operation, context)
        adjustment = self.patterns.adjustment_for(key)
        if adjustment is not None:
            kind, bonus = adjustment
            scores[kind] += bonus

        decision = self._decide(operation, context, scores)

        self.history.append(DecisionRecord(operation=operation, context=dict(context), decision=decision))
        self.patterns.observe(key, decision.backend)
        self._update_performance(decision)
        return decision

    def calculate_scores(self, operation: str, context: dict[str, Any]) -> dict[BackendKind, float]:
        """Sum of the five score contributions, before pattern adjustment."""
        scores = _zero_scores()
        _add(scores, self._operation_score(operation))
        _add(scores, self._complexity_score(context))
        _add(scores, self._semantic_score(operation, context))
        _add(scores, self._history_score(operation, context))
        _add(scores, self._priority_score(context))
        return scores

    def _decide(
        self,
        operation: str,
        context: dict[str, Any],
        scores: dict[BackendKind, float],
    ) -> Decision:
        backend = argmax(scores)
        ranked = sorted(TIE_BREAK_ORDER, key=lambda kind: scores[kind], reverse=True)
        top = scores[ranked[0]]
        runner_up = ranked[1]

        if top <= 0:
            confidence = 0.5
        else:
            confidence = min(MAX_CONFIDENCE, top + (top - scores[runner_up]))

        workflow = None
        if backend is H:
            workflow = self._build_workflow(operation, context)

        return Decision(
            backend=backend,
            confidence=confidence,
            reasoning=self._reasoning(backend, scores, context),
            workflow=workflow,
            fallback=runner_up if confidence < FALLBACK_CONFIDENCE_THRESHOLD else None,
            scores=dict(scores),
            metadata=self._metadata(operation, context),
        )

    # =========================================================================
    # SCORE CONTRIBUTIONS
    # =========================================================================

    def _operation_score(self, operation: str) -> dict[BackendKind, float]:
        return {
            kind: DIRECT_OPERATION_BONUS
            for kind, table in self.rules.items()
            if operation in table.operations
        }

    @staticmethod
    def _complexity_score(context: dict[str, Any]) -> dict[BackendKind, float]:
        complexity = as_number(context.get("complexity"))
        if complexity is None:
            return {}
        for upper, contribution in COMPLEXITY_BUCKETS:
            if complexity <= upper:
                return dict(contribution)
        return {}

    def _semantic_score(self, operation: str, context: dict[str, Any]) -> dict[BackendKind, float]:
        context_type = context.get("type")
        text = f"{operation} {context.get('description') or ''} {context_type or ''}".lower()

        scores = _zero_scores()
        for kind, table in self.rules.items():
            if table.keywords:
                hits = sum(1 for keyword in table.keywords if keyword in text)
                scores[kind] += hits / len(table.keywords) * KEYWORD_WEIGHT
            if context_type and context_type in table.contexts:
                scores[kind] += CONTEXT_LABEL_BONUS
            if scores[kind] > 0:
                scores[kind] += table.confidence_boost
        return scores

    def _history_score(self, operation: str, context: dict[str, Any]) -> dict[BackendKind, float]:
        context_type = context.get("type")
        totals: dict[BackendKind, int] = {}
        successes: dict[BackendKind, int] = {}

        for record in self.history:
            same_type = context_type is not None and record.context.get("type") == context_type
            if record.operation != operation and not same_type:
                continue
            kind = record.decision.backend
            totals[kind] = totals.get(kind, 0) + 1
            if record.successful:
                successes[kind] = successes.get(kind, 0) + 1

        return {
            kind: successes.get(kind, 0) / total * HISTORY_WEIGHT
            for kind, total in totals.items()
        }

    def _priority_score(self, context: dict[str, Any]) -> dict[BackendKind, float]:
        if not context.get("priority"):
            return {}

        value = self.priority_value(context)
        if value > PRIORITY_THRESHOLDS["high"]:
            return {S: 0.1}
        if value > PRIORITY_THRESHOLDS["medium"]:
            return {H: 0.1}
        return {A: 0.05}

    @staticmethod
    def priority_value(context: dict[str, Any]) -> float:
        """
        Weighted normalized value over the priority factors present.

        Returns:
            Value in [0, 1]; 0.5 when no factor is present
        """
        total_value = 0.0
        total_weight = 0.0

        for factor in PRIORITY_FACTORS:
            raw = context.get(factor.name)
            if isinstance(raw, (list, tuple)):
                raw = len(raw)
            value = as_number(raw)
            if value is None:
                continue
            low, high = factor.scale
            normalized = max(0.0, min(1.0, (value - low) / (high - low)))
            total_value += normalized * factor.weight
            total_weight += factor.weight

        return total_value / total_weight if total_weight > 0 else 0.5

    # =========================================================================
    # DECISION DETAILS
    # =========================================================================

    @staticmethod
    def _build_workflow(operation: str, context: dict[str, Any]) -> list[str]:
        workflow = get_advanced_workflow(operation)
        complexity = as_number(context.get("complexity"))
        if complexity is not None and complexity > EXTREME_COMPLEXITY:
            workflow.insert(1, EXTREME_COMPLEXITY_STEP)
        if context.get("hasDeadline"):
            workflow.append(DEADLINE_STEP)
        return workflow

    @staticmethod
    def _reasoning(backend: BackendKind, scores: dict[BackendKind, float], context: dict[str, Any]) -> str:
        # Every backend sharing the top score is explained, winner first
        top = scores[backend]
        reasons = []
        if top > REASONING_SCORE_THRESHOLD:
            reasons = [BACKEND_REASONS[kind] for kind in TIE_BREAK_ORDER if scores[kind] == top]

        complexity = as_number(context.get("complexity"))
        if complexity is not None and complexity > HIGH_COMPLEXITY:
            reasons.append("High complexity requires careful analysis")
        if context.get("hasDeadline"):
            reasons.append("Deadline present, favoring execution speed")

        dependencies = context.get("dependencies")
        count = len(dependencies) if isinstance(dependencies, (list, tuple)) else as_number(dependencies)
        if count is not None and count > MANY_DEPENDENCIES:
            reasons.append("Many dependencies require coordination")

        if not reasons:
            return "Decision based on multi-dimensional analysis"
        return "; ".join(reasons)

    # =========================================================================
    # LEARNING AND METRICS
    # =========================================================================

    def _update_performance(self, decision: Decision) -> None:
        perf = self.performance
        total = perf["total_decisions"]
        perf["average_confidence"] = (perf["average_confidence"] * (total - 1) + decision.confidence) / total
        perf["backend_usage"][decision.backend.value] += 1

    def mark_decision_outcome(self, decision_id: str, successful: bool) -> bool:
        """
        Record whether a past decision worked out.

        Args:
            decision_id: Id from Decision.metadata.decision_id
            successful: Outcome of executing the decision

        Returns:
            True if the decision was found in history
        """
        for record in reversed(self.history):
            if record.decision.decision_id == decision_id:
                if successful and not record.successful:
                    self.performance["successful_decisions"] += 1
                elif not successful and record.successful:
                    self.performance["successful_decisions"] -= 1
                record.successful = successful
                return True

        logger.warning(f"Decision {decision_id} not found in history")
        return False

    def get_advanced_stats(self) -> dict[str, Any]:
        """Performance, learning and history summary."""
        total = self.performance["total_decisions"]
        successful = self.performance["successful_decisions"]
        recent = list(self.history)[-10:]
        return {
            "performance": {
                **self.performance,
                "backend_usage": dict(self.performance["backend_usage"]),
                "success_rate": successful / total if total else 0.0,
            },
            "learning": self.patterns.stats(),
            "history": {
                "size": len(self.history),
                "max_size": self.history.maxlen,
                "recent": [
                    {
                        "operation": record.operation,
                        "backend": record.decision.backend.value,
                        "confidence": record.decision.confidence,
                        "successful": record.successful,
                    }
                    for record in recent
                ],
            },
            **self.get_stats(),
        }

    def export_configuration(self) -> dict[str, Any]:
        """Rules, learned patterns and performance as a JSON-friendly dict."""
        return {
            "rules": {kind.value: table.to_dict() for kind, table in self.rules.items()},
            "patterns": [pattern.to_dict() for pattern in self.patterns.values()],
            "performance": {
                **self.performance,
                "backend_usage": dict(self.performance["backend_usage"]),
            },
        }

    def import_configuration(self, config: dict[str, Any]) -> None:
        """Load a configuration produced by export_configuration()."""
        if "rules" in config:
            self.rules = {
                BackendKind(name): RuleTable.from_dict(table)
                for name, table in config["rules"].items()
            }
        if "patterns" in config:
            loaded = self.patterns.load(config["patterns"])
            logger.info(f"Imported {loaded} learned patterns")
        if "performance" in config:
            imported = dict(config["performance"])
            usage = {kind.value: 0 for kind in BackendKind}
            usage.update(imported.pop("backend_usage", {}))
            self.performance.update(imported)
            self.performance["backend_usage"] = usage
