"""Tests for metrics collection."""

import pytest

from tandem.metrics import MetricsCollector, calculate_cost, estimate_tokens, format_cost


class TestCostHelpers:
    """Tests for cost helpers."""

    def test_calculate_cost(self):
        assert calculate_cost(1000) == pytest.approx(0.002)
        assert calculate_cost(0) == 0.0

    def test_estimate_tokens(self):
        assert estimate_tokens("a" * 41) == 10

    @pytest.mark.parametrize("cost,expected", [
        (0.0012, "$0.0012"),
        (0.5, "$0.500"),
        (12.5, "$12.50"),
    ])
    def test_format_cost(self, cost, expected):
        assert format_cost(cost) == expected


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    @pytest.fixture
    def metrics(self):
        return MetricsCollector()

    def test_counters(self, metrics):
        """Each event bumps its counter; unknown events are ignored."""
        metrics.track("api_call", tokens=500)
        metrics.track("api_call", tokens=1500)
        metrics.track("cache_hit")
        metrics.track("cache_miss")
        metrics.track("analysis_usage")
        metrics.track("error")
        metrics.track("bogus")

        assert metrics.api_calls == 2
        assert metrics.tokens_used == 2000
        assert metrics.cache_hit_rate == 50.0
        assert metrics.errors == 1
        assert metrics.calculate_cost() == pytest.approx(0.004)
        assert len(metrics.api_call_timestamps) == 2

    def test_running_averages(self, metrics):
        """Complexity and success rate are running averages."""
        metrics.track("task_processed", complexity=4, success=True)
        metrics.track("task_processed", complexity=8, success=False)
        assert metrics.tasks_processed == 2
        assert metrics.avg_complexity == 6.0
        assert metrics.success_rate == 50.0

    def test_api_reduction(self, metrics):
        """Reduction is cache hits over hits plus calls, capped at 99."""
        metrics.track("api_call")
        for _ in range(3):
            metrics.track("cache_hit")
        assert metrics.api_reduction == 75.0

        for _ in range(1000):
            metrics.track("cache_hit")
        assert metrics.api_reduction == 99.0

    def test_report(self, metrics):
        """The report has overview, performance, costs and recommendations."""
        metrics.track("api_call", tokens=1000)
        metrics.track("analysis_usage")
        metrics.track("task_processed", complexity=6, success=True)

        report = metrics.generate_report()
        assert report["overview"] == {
            "total_tasks": 1,
            "analysis_usage_pct": 100.0,
            "avg_complexity": 6.0,
            "success_rate_pct": 100.0,
        }
        assert report["performance"]["tokens_used"] == 1000
        assert report["costs"]["tokens_per_task"] == 1000
        assert report["costs"]["cost_per_task"] == pytest.approx(0.002)
        assert [r["priority"] for r in report["recommendations"]] == ["medium"]

    def test_low_cache_recommendation(self, metrics):
        """A low hit rate recommends cache tuning."""
        metrics.track("cache_hit")
        for _ in range(4):
            metrics.track("cache_miss")
        recommendations = metrics.generate_recommendations()
        assert recommendations[0]["priority"] == "high"

    def test_empty_report(self, metrics):
        """No activity means no recommendations and no division errors."""
        report = metrics.generate_report()
        assert report["recommendations"] == []
        assert report["costs"]["cost_per_task"] == 0.0

    def test_reset(self, metrics):
        metrics.track("api_call", tokens=10)
        metrics.reset()
        assert metrics.api_calls == 0
        assert "0 calls" in str(metrics)
