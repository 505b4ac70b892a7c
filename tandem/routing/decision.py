"""
Decision records produced by the decision engines.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from tandem.backends.base import BackendKind
from tandem.logging import now_iso


def generate_decision_id() -> str:
    """Unique id of the form decision_<ms>_<9 chars>."""
    return f"decision_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@dataclass
class DecisionMetadata:
    """Bookkeeping attached to every decision."""

    operation: str
    timestamp: str = field(default_factory=now_iso)
    decision_id: str = field(default_factory=generate_decision_id)
    context_factors: list[str] = field(default_factory=list)
    engine: str = "basic"
    is_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "timestamp": self.timestamp,
            "decision_id": self.decision_id,
            "context_factors": list(self.context_factors),
            "engine": self.engine,
            "is_fallback": self.is_fallback,
        }


@dataclass
class Decision:
    """
    Which backend should handle an operation, and how sure the engine is.

    `workflow` is set only for hybrid decisions; `next_actions` only for
    single-backend rule matches; `scores` only when scoring ran.
    """

    backend: BackendKind
    confidence: float
    reasoning: str
    metadata: DecisionMetadata
    workflow: list[str] | None = None
    fallback: BackendKind | None = None
    scores: dict[BackendKind, float] | None = None
    next_actions: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def decision_id(self) -> str:
        return self.metadata.decision_id

    @property
    def is_fallback(self) -> bool:
        return self.metadata.is_fallback

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "backend": self.backend.value,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "workflow": list(self.workflow) if self.workflow is not None else None,
            "fallback": self.fallback.value if self.fallback else None,
            "scores": (
                {kind.value: score for kind, score in self.scores.items()}
                if self.scores is not None
                else None
            ),
            "next_actions": list(self.next_actions),
            "error": self.error,
            "metadata": self.metadata.to_dict(),
        }


def fallback_decision(operation: str, error: Exception | str, engine: str) -> Decision:
    """Decision returned when an engine fails internally."""
    return Decision(
        backend=BackendKind.STRUCTURING,
        confidence=0.5,
        reasoning=f"Fallback due to evaluation error: {error}",
        error=str(error),
        metadata=DecisionMetadata(operation=operation, engine=engine, is_fallback=True),
    )


@dataclass
class DecisionRecord:
    """One entry of the advanced engine's decision history."""

    operation: str
    context: dict[str, Any]
    decision: Decision
    timestamp: str = field(default_factory=now_iso)
    successful: bool | None = None  # None until feedback arrives

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "context": dict(self.context),
            "decision": self.decision.to_dict(),
            "timestamp": self.timestamp,
            "successful": self.successful,
        }
