"""Tests for the model fallback chain."""

import pytest

from tandem.config import TandemConfig
from tandem.exceptions import RateLimitError
from tandem.fallback import IntelligentFallback, ModelConfig

CHAIN = [ModelConfig("primary"), ModelConfig("secondary"), ModelConfig("tertiary")]


def scripted_executor(outcomes):
    """Executor returning (or raising) the scripted outcome for each model."""
    calls = []

    async def executor(request, model):
        calls.append(model.model)
        outcome = outcomes[model.model]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    executor.calls = calls
    return executor


@pytest.fixture
def no_wait(monkeypatch):
    """Record waits instead of sleeping."""
    waits = []

    async def fake_wait(self, ms):
        waits.append(ms)

    monkeypatch.setattr(IntelligentFallback, "wait", fake_wait)
    return waits


class TestIntelligentFallback:
    """Tests for execute_with_fallback."""

    @pytest.mark.asyncio
    async def test_first_model_accepted(self, no_wait):
        executor = scripted_executor({"primary": {"data": "ok", "quality": 8}})
        fallback = IntelligentFallback(executor, CHAIN)

        response = await fallback.execute_with_fallback({"type": "analysis"})
        assert response == {"data": "ok", "quality": 8, "model": "primary", "from_fallback": False}
        assert executor.calls == ["primary"]
        assert fallback.stats.models_used == {"primary": 1}

    @pytest.mark.asyncio
    async def test_rate_limit_then_low_quality_then_success(self, no_wait):
        """Rate limits wait; low quality moves on; a good answer stops the chain."""
        executor = scripted_executor({
            "primary": RateLimitError("slow down", backend="primary", retry_after_ms=250),
            "secondary": {"data": "meh", "quality": 5},
            "tertiary": {"data": "good", "quality": 6.5},
        })
        fallback = IntelligentFallback(executor, CHAIN)

        response = await fallback.execute_with_fallback({"type": "analysis"})
        assert response["model"] == "tertiary"
        assert no_wait == [250]
        assert fallback.stats.rate_limited == 1
        assert fallback.stats.low_quality == 1

    @pytest.mark.asyncio
    async def test_default_retry_after(self, no_wait):
        executor = scripted_executor({
            "primary": RateLimitError("slow down", backend="primary"),
            "secondary": {"quality": 9},
        })
        await IntelligentFallback(executor, CHAIN).execute_with_fallback({})
        assert no_wait == [60_000]

    @pytest.mark.asyncio
    async def test_simplified_response_when_all_fail(self, no_wait):
        executor = scripted_executor({
            "primary": RuntimeError("down"),
            "secondary": {"quality": 1},
            "tertiary": {"no_quality": True},
        })
        fallback = IntelligentFallback(executor, CHAIN)

        response = await fallback.execute_with_fallback({"type": "planning"})
        assert response == {"data": "Simplified response for planning", "from_fallback": True}
        assert fallback.stats.errors == 1
        assert fallback.stats.simplified_responses == 1

    @pytest.mark.asyncio
    async def test_failure_budget(self, no_wait):
        """The chain stops once failures exceed max_retries."""
        executor = scripted_executor({
            "primary": RuntimeError("down"),
            "secondary": RuntimeError("down"),
            "tertiary": {"quality": 9},
        })
        fallback = IntelligentFallback(executor, CHAIN, max_retries=0)

        response = await fallback.execute_with_fallback({})
        assert response["from_fallback"] is True
        assert executor.calls == ["primary"]

    def test_validate_response(self):
        fallback = IntelligentFallback(scripted_executor({}), CHAIN, quality_threshold=5.0)
        assert fallback.validate_response({"quality": 5.1})
        assert not fallback.validate_response({"quality": 5})
        assert not fallback.validate_response({"quality": "high"})

    def test_from_config(self):
        """Configured models form the chain without repeats."""
        fallback = IntelligentFallback.from_config(scripted_executor({}), TandemConfig())
        assert [m.model for m in fallback.chain] == [
            "claude-3-sonnet-20240229",
            "claude-3-haiku-20240307",
        ]
        assert fallback.max_retries == 2
