"""
Tandem Metrics - Usage counters, cost estimation and the dashboard report.

Pure in-memory aggregation; nothing is persisted.
"""

import time
from typing import Any

# Flat token price (per 1K tokens)
COST_PER_1K_TOKENS = 0.002

LOW_CACHE_HIT_RATE = 30.0  # percent
HIGH_ANALYSIS_USAGE = 80.0  # percent

EVENTS = ("api_call", "cache_hit", "cache_miss", "analysis_usage", "error", "task_processed")


def calculate_cost(tokens: int) -> float:
    """
    Estimate cost for a token count.

    Args:
        tokens: Number of tokens used

    Returns:
        Cost in USD
    """
    return tokens / 1000 * COST_PER_1K_TOKENS


def estimate_tokens(text: str) -> int:
    """
    Estimate token count from text.

    Simple approximation: ~4 characters per token.
    """
    return len(text) // 4


def format_cost(cost: float) -> str:
    """Format a USD cost for display (e.g. '$0.0123')."""
    if cost < 0.01:
        return f"${cost:.4f}"
    elif cost < 1.00:
        return f"${cost:.3f}"
    else:
        return f"${cost:.2f}"


def _percent(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


class MetricsCollector:
    """Track orchestration events across a session."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Reset all counters."""
        self.api_calls: int = 0
        self.tokens_used: int = 0
        self.cache_hits: int = 0
        self.cache_misses: int = 0
        self.analysis_usage: int = 0
        self.errors: int = 0
        self.tasks_processed: int = 0
        self.avg_complexity: float = 0.0
        self.success_rate: float = 0.0  # percent, running average
        self.api_call_timestamps: list[tuple[float, int]] = []

    def track(self, event: str, **data: Any) -> None:
        """
        Record one event.

        Args:
            event: One of EVENTS; unknown events are ignored
            **data: tokens (api_call), complexity and success (task_processed)
        """
        if event == "api_call":
            tokens = int(data.get("tokens", 0) or 0)
            self.api_calls += 1
            self.tokens_used += tokens
            self.api_call_timestamps.append((time.time(), tokens))
        elif event == "cache_hit":
            self.cache_hits += 1
        elif event == "cache_miss":
            self.cache_misses += 1
        elif event == "analysis_usage":
            self.analysis_usage += 1
        elif event == "error":
            self.errors += 1
        elif event == "task_processed":
            self.tasks_processed += 1
            n = self.tasks_processed
            complexity = float(data.get("complexity", 0) or 0)
            outcome = 100.0 if data.get("success") else 0.0
            self.avg_complexity = (self.avg_complexity * (n - 1) + complexity) / n
            self.success_rate = (self.success_rate * (n - 1) + outcome) / n

    def calculate_cost(self) -> float:
        """Estimated total cost of all tracked tokens."""
        return calculate_cost(self.tokens_used)

    @property
    def cache_hit_rate(self) -> float:
        return _percent(self.cache_hits, self.cache_hits + self.cache_misses)

    @property
    def analysis_percentage(self) -> float:
        return _percent(self.analysis_usage, self.tasks_processed)

    @property
    def api_reduction(self) -> float:
        return min(99.0, _percent(self.cache_hits, self.api_calls + self.cache_hits))

    def generate_report(self) -> dict[str, Any]:
        """Dashboard report: overview, performance, costs and recommendations."""
        total_cost = self.calculate_cost()
        tasks = self.tasks_processed

        return {
            "overview": {
                "total_tasks": tasks,
                "analysis_usage_pct": round(self.analysis_percentage, 2),
                "avg_complexity": round(self.avg_complexity, 2),
                "success_rate_pct": round(self.success_rate, 2),
            },
            "performance": {
                "api_calls": self.api_calls,
                "tokens_used": self.tokens_used,
                "cache_hit_rate_pct": round(self.cache_hit_rate, 2),
                "api_reduction_pct": round(self.api_reduction, 2),
                "errors": self.errors,
            },
            "costs": {
                "estimated_total": total_cost,
                "estimated_saved": total_cost * self.api_reduction / 100,
                "tokens_per_task": self.tokens_used / tasks if tasks else 0.0,
                "cost_per_task": total_cost / tasks if tasks else 0.0,
            },
            "recommendations": self.generate_recommendations(),
        }

    def generate_recommendations(self) -> list[dict[str, str]]:
        recommendations = []
        if self.cache_hits + self.cache_misses > 0 and self.cache_hit_rate < LOW_CACHE_HIT_RATE:
            recommendations.append({
                "priority": "high",
                "action": "Increase cache TTL or improve the cache key strategy",
                "impact": "Could reduce API calls by 20-30%",
            })
        if self.analysis_percentage > HIGH_ANALYSIS_USAGE:
            recommendations.append({
                "priority": "medium",
                "action": "Review complexity thresholds; analysis may be overused",
                "impact": "Could reduce costs by 15-20%",
            })
        return recommendations

    def __str__(self) -> str:
        return (
            f"{self.api_calls} calls, {self.tokens_used} tokens, "
            f"{self.tasks_processed} tasks = {format_cost(self.calculate_cost())}"
        )
