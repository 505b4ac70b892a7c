"""
Intelligent Fallback - Try a request across a chain of models.

Models are tried in order. A response whose quality score is at or below
the threshold moves on to the next model; a rate-limited model waits the
advertised time before the chain moves on. When every model fails, a
simplified response flagged `from_fallback` is returned instead.

Standalone helper; the decision engine does not use it.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from tandem.config import TandemConfig
from tandem.exceptions import RateLimitError

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_MS = 60_000
DEFAULT_QUALITY_THRESHOLD = 5.0


@dataclass(frozen=True)
class ModelConfig:
    """One link of the fallback chain."""

    model: str
    max_tokens: int = 2000


DEFAULT_CHAIN: list[ModelConfig] = [
    ModelConfig("claude-3-sonnet", 4000),
    ModelConfig("claude-3-haiku", 2000),
    ModelConfig("gpt-3.5-turbo", 2000),
]

Executor = Callable[[dict[str, Any], ModelConfig], Awaitable[dict[str, Any]]]


@dataclass
class FallbackStats:
    attempts: int = 0
    errors: int = 0
    rate_limited: int = 0
    low_quality: int = 0
    simplified_responses: int = 0
    models_used: dict[str, int] = field(default_factory=dict)


class IntelligentFallback:
    """
    Run requests through a model chain.

    Args:
        executor: Async callable (request, model) returning a response with
            a numeric "quality"
        chain: Models in preference order
        max_retries: Failed attempts tolerated before giving up on the chain
        quality_threshold: Responses must score strictly above this
    """

    def __init__(
        self,
        executor: Executor,
        chain: list[ModelConfig] | None = None,
        max_retries: int = 3,
        quality_threshold: float = DEFAULT_QUALITY_THRESHOLD,
    ):
        self.executor = executor
        self.chain = list(chain or DEFAULT_CHAIN)
        self.max_retries = max_retries
        self.quality_threshold = quality_threshold
        self.stats = FallbackStats()

    @classmethod
    def from_config(cls, executor: Executor, config: TandemConfig) -> "IntelligentFallback":
        """Chain built from the configured models, largest first."""
        chain = [
            ModelConfig(config.complex_task_model, 4000),
            ModelConfig(config.analysis_model, 4000),
            ModelConfig(config.structuring_model, 2000),
        ]
        # Drop repeated models, keeping the first occurrence
        unique = list({m.model: m for m in reversed(chain)}.values())[::-1]
        return cls(executor, unique, max_retries=config.max_retries)

    def validate_response(self, response: dict[str, Any]) -> bool:
        quality = response.get("quality")
        return isinstance(quality, (int, float)) and quality > self.quality_threshold

    async def wait(self, ms: int) -> None:
        await asyncio.sleep(ms / 1000)

    async def execute_with_fallback(self, request: dict[str, Any]) -> dict[str, Any]:
        """
        Execute a request, falling back along the chain.

        Returns:
            The first acceptable response, or a simplified response
        """
        failures = 0

        for model in self.chain:
            if failures > self.max_retries:
                logger.warning(f"Giving up after {failures} failed attempts")
                break

            self.stats.attempts += 1
            try:
                response = await self.executor(request, model)
            except RateLimitError as e:
                failures += 1
                self.stats.rate_limited += 1
                wait_ms = e.retry_after_ms if e.retry_after_ms is not None else DEFAULT_RETRY_AFTER_MS
                logger.warning(f"Rate limited on {model.model}, waiting {wait_ms}ms")
                await self.wait(wait_ms)
                continue
            except Exception as e:
                failures += 1
                self.stats.errors += 1
                logger.error(f"Error with {model.model}: {e}")
                continue

            if self.validate_response(response):
                self.stats.models_used[model.model] = self.stats.models_used.get(model.model, 0) + 1
                return {**response, "model": model.model, "from_fallback": False}

            self.stats.low_quality += 1
            logger.info(f"Response quality insufficient from {model.model}, trying next model")

        return self.simplified_response(request)

    def simplified_response(self, request: dict[str, Any]) -> dict[str, Any]:
        logger.warning("All fallbacks failed; returning simplified response")
        self.stats.simplified_responses += 1
        return {
            "data": f"Simplified response for {request.get('type', 'request')}",
            "from_fallback": True,
        }
