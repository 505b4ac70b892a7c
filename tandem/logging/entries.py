"""
Log Entry Data Structures for Tandem Orchestrator.

Structured entries for routing decisions and workflow executions.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class DecisionLogEntry:
    """Log entry for a decision engine evaluation."""

    # Identity
    timestamp: str  # ISO 8601
    decision_id: str
    engine: str  # "basic" or "advanced"

    # Request
    operation: str
    context_factors: list[str] = field(default_factory=list)

    # Outcome
    backend: str = ""
    confidence: float = 0.0
    reasoning: str = ""
    fallback: str | None = None
    workflow_steps: int = 0
    scores: dict[str, float] = field(default_factory=dict)

    # Error (if the engine fell back)
    is_fallback: bool = False
    error: str | None = None

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(asdict(self), default=str, ensure_ascii=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DecisionLogEntry":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class WorkflowLogEntry:
    """Log entry for a hybrid workflow execution."""

    timestamp: str
    sync_id: str
    command: str = ""
    total_steps: int = 0
    successful_steps: int = 0
    duration_ms: float = 0.0
    success: bool = True
    error: str | None = None

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(asdict(self), default=str, ensure_ascii=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def now_iso() -> str:
    """Get current timestamp in ISO 8601 format."""
    return datetime.now().isoformat()
