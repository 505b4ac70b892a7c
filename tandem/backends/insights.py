"""
Insight extraction for analysis backend responses.

A response that carries a structured `insights` mapping is taken as-is.
Anything else goes through HeuristicInsightExtractor, a best-effort text
miner over the serialized response with no behavioral guarantees beyond
the fixed vocabularies below. The vocabularies are Portuguese because that
is the language the analysis backend answers in.
"""

import json
import logging
import math
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)

BASELINE_COMPLEXITY = 5.0
DEFAULT_CONFIDENCE = 0.7
MAX_RISKS = 5
MAX_RECOMMENDATIONS = 5
MAX_NEXT_STEPS = 3

HIGH_COMPLEXITY_WORDS = ["complexo", "difícil", "desafiador", "múltiplas", "dependências"]
MEDIUM_COMPLEXITY_WORDS = ["moderado", "algumas", "considerável"]
LOW_COMPLEXITY_WORDS = ["simples", "direto", "básico", "fácil"]

RISK_PATTERNS = [
    r"risco[s]?\s+de\s+([^.]+)",
    r"problema[s]?\s+([^.]+)",
    r"cuidado\s+com\s+([^.]+)",
    r"atenção\s+para\s+([^.]+)",
]

RECOMMENDATION_PATTERNS = [
    r"recomendo\s+([^.]+)",
    r"sugiro\s+([^.]+)",
    r"deveria\s+([^.]+)",
    r"melhor\s+seria\s+([^.]+)",
]

NEXT_STEP_PATTERNS = [
    r"próximo[s]?\s+passo[s]?\s*:?\s*([^.]+)",
    r"em seguida\s+([^.]+)",
    r"depois\s+([^.]+)",
]

# First matching rung wins
CONFIDENCE_LADDER: list[tuple[tuple[str, ...], float]] = [
    (("certeza", "definitivamente"), 0.9),
    (("provável", "acredito"), 0.8),
    (("possível", "talvez"), 0.6),
    (("incerto", "não sei"), 0.4),
]


@dataclass
class AnalysisInsights:
    """Structured annotation attached to every analysis call result."""

    complexity: int = int(BASELINE_COMPLEXITY)
    risks: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)
    confidence: float = DEFAULT_CONFIDENCE
    source: str = "heuristic"  # "structured" when the backend supplied it

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisInsights":
        complexity = int(data.get("complexity", BASELINE_COMPLEXITY))
        return cls(
            complexity=max(1, min(10, complexity)),
            risks=list(data.get("risks", []))[:MAX_RISKS],
            recommendations=list(data.get("recommendations", []))[:MAX_RECOMMENDATIONS],
            next_steps=list(data.get("next_steps", []))[:MAX_NEXT_STEPS],
            confidence=float(data.get("confidence", DEFAULT_CONFIDENCE)),
            source="structured",
        )


class InsightExtractor(Protocol):
    """Capability that turns a raw analysis response into insights."""

    def extract(self, response: dict[str, Any]) -> AnalysisInsights: ...


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class HeuristicInsightExtractor:
    """
    Keyword and regex miner over the JSON-serialized response.

    Scores complexity, risks and recommendations from vocabulary hits in
    free text. Backends that return a structured schema bypass it.
    """

    def __init__(self) -> None:
        self._risk_patterns = [re.compile(p) for p in RISK_PATTERNS]
        self._recommendation_patterns = [re.compile(p) for p in RECOMMENDATION_PATTERNS]
        self._next_step_patterns = [re.compile(p) for p in NEXT_STEP_PATTERNS]

    @staticmethod
    def _text(response: dict[str, Any]) -> str:
        return json.dumps(response, ensure_ascii=False, default=str).lower()

    def extract(self, response: dict[str, Any]) -> AnalysisInsights:
        text = self._text(response)
        return AnalysisInsights(
            complexity=self.extract_complexity(text),
            risks=self._collect(text, self._risk_patterns, MAX_RISKS),
            recommendations=self._collect(text, self._recommendation_patterns, MAX_RECOMMENDATIONS),
            next_steps=self._collect(text, self._next_step_patterns, MAX_NEXT_STEPS),
            confidence=self.extract_confidence(text),
        )

    @staticmethod
    def extract_complexity(text: str) -> int:
        """Score complexity 1-10 from vocabulary presence."""
        score = BASELINE_COMPLEXITY
        score += sum(1.0 for word in HIGH_COMPLEXITY_WORDS if word in text)
        score += sum(0.5 for word in MEDIUM_COMPLEXITY_WORDS if word in text)
        score -= sum(1.0 for word in LOW_COMPLEXITY_WORDS if word in text)
        return max(1, min(10, _round_half_up(score)))

    @staticmethod
    def extract_confidence(text: str) -> float:
        for words, confidence in CONFIDENCE_LADDER:
            if any(word in text for word in words):
                return confidence
        return DEFAULT_CONFIDENCE

    @staticmethod
    def _collect(text: str, patterns: list[re.Pattern[str]], limit: int) -> list[str]:
        found = []
        for pattern in patterns:
            found.extend(match.group(1).strip() for match in pattern.finditer(text))
        return found[:limit]


_default_extractor = HeuristicInsightExtractor()


def extract_insights(
    response: dict[str, Any],
    extractor: InsightExtractor | None = None,
) -> AnalysisInsights:
    """
    Derive insights for an analysis response.

    Args:
        response: Raw backend result mapping
        extractor: Text miner used when no structured insights are present

    Returns:
        AnalysisInsights for the response
    """
    structured = response.get("insights")
    if isinstance(structured, dict):
        return AnalysisInsights.from_dict(structured)

    insights = (extractor or _default_extractor).extract(response)
    logger.debug(
        f"Heuristic insights: complexity={insights.complexity}, "
        f"risks={len(insights.risks)}, confidence={insights.confidence}"
    )
    return insights
