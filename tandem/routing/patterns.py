"""
Pattern Learning - Remember which backend won for similar requests.

A pattern is keyed by operation, context type and a complexity bucket. Each
new decision for the same key nudges the pattern's confidence: up when the
engine picks the same backend again, down when it picks another. Patterns
above the application threshold bias future scoring toward their backend.

The cache is bounded; once full, the least recently used pattern is evicted.
"""

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tandem.backends.base import BackendKind
from tandem.routing.rules import as_number

logger = logging.getLogger(__name__)

INITIAL_CONFIDENCE = 0.6
AGREEMENT_STEP = 0.05
DISAGREEMENT_STEP = 0.1
MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 0.95

# Patterns above this confidence bias scoring by PATTERN_ADJUSTMENT
APPLY_THRESHOLD = 0.7
PATTERN_ADJUSTMENT = 0.1

DEFAULT_CACHE_SIZE = 500


def pattern_key(operation: str, context: dict[str, Any]) -> str:
    """Build the lookup key for an operation and its context."""
    context_type = context.get("type") or "unknown"
    complexity = as_number(context.get("complexity")) or 5
    return f"{operation}_{context_type}_{math.floor(complexity / 2)}"


@dataclass
class LearnedPattern:
    """A backend preference learned from repeated decisions."""

    key: str
    preferred_backend: BackendKind
    confidence: float = INITIAL_CONFIDENCE
    occurrences: int = 1
    last_used: datetime = field(default_factory=datetime.now)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_applicable(self) -> bool:
        """Check if the pattern is trusted enough to bias scoring."""
        return self.confidence > APPLY_THRESHOLD

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "key": self.key,
            "preferred_backend": self.preferred_backend.value,
            "confidence": self.confidence,
            "occurrences": self.occurrences,
            "last_used": self.last_used.isoformat(),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LearnedPattern":
        return cls(
            key=data["key"],
            preferred_backend=BackendKind(data["preferred_backend"]),
            confidence=float(data.get("confidence", INITIAL_CONFIDENCE)),
            occurrences=int(data.get("occurrences", 1)),
            last_used=datetime.fromisoformat(data["last_used"]) if "last_used" in data else datetime.now(),
            created_at=datetime.fromisoformat(data["created_at"]) if "created_at" in data else datetime.now(),
        )


class PatternCache:
    """
    LRU-bounded store of learned patterns.

    Entries are kept in last-used order; observing or looking up a pattern
    moves it to the most-recent end.
    """

    def __init__(self, max_size: int = DEFAULT_CACHE_SIZE):
        if max_size < 1:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self._patterns: OrderedDict[str, LearnedPattern] = OrderedDict()

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, key: str) -> bool:
        return key in self._patterns

    def get(self, key: str) -> LearnedPattern | None:
        pattern = self._patterns.get(key)
        if pattern is not None:
            self._touch(pattern)
        return pattern

    def peek(self, key: str) -> LearnedPattern | None:
        """Look up a pattern without refreshing its position."""
        return self._patterns.get(key)

    def observe(self, key: str, backend: BackendKind) -> LearnedPattern:
        """
        Record that `backend` was chosen for `key`.

        Args:
            key: Pattern key from pattern_key()
            backend: Backend the engine chose

        Returns:
            The created or updated pattern
        """
        pattern = self._patterns.get(key)

        if pattern is None:
            pattern = LearnedPattern(key=key, preferred_backend=backend)
            self._patterns[key] = pattern
            self._evict()
            return pattern

        if pattern.preferred_backend == backend:
            pattern.confidence = round(min(MAX_CONFIDENCE, pattern.confidence + AGREEMENT_STEP), 6)
        else:
            pattern.confidence = round(max(MIN_CONFIDENCE, pattern.confidence - DISAGREEMENT_STEP), 6)
        pattern.occurrences += 1
        self._touch(pattern)
        return pattern

    def adjustment_for(self, key: str) -> tuple[BackendKind, float] | None:
        """Backend and score bonus contributed by an applicable pattern."""
        pattern = self.get(key)
        if pattern is None or not pattern.is_applicable:
            return None
        return pattern.preferred_backend, PATTERN_ADJUSTMENT

    def values(self) -> list[LearnedPattern]:
        return list(self._patterns.values())

    def clear(self) -> None:
        self._patterns.clear()

    def load(self, patterns: list[dict[str, Any]]) -> int:
        """Replace contents from serialized patterns, oldest first."""
        self._patterns.clear()
        ordered = sorted(
            (LearnedPattern.from_dict(item) for item in patterns),
            key=lambda p: p.last_used,
        )
        for pattern in ordered:
            self._patterns[pattern.key] = pattern
        self._evict()
        return len(self._patterns)

    def stats(self) -> dict[str, Any]:
        """Summary of cache contents."""
        applicable = sum(1 for p in self._patterns.values() if p.is_applicable)
        return {
            "total_patterns": len(self._patterns),
            "applicable_patterns": applicable,
            "max_size": self.max_size,
        }

    def _touch(self, pattern: LearnedPattern) -> None:
        pattern.last_used = datetime.now()
        self._patterns.move_to_end(pattern.key)

    def _evict(self) -> None:
        while len(self._patterns) > self.max_size:
            key, _ = self._patterns.popitem(last=False)
            logger.debug(f"Evicted learned pattern {key}")
