"""
Generation Client - Gemini calls for activity insights.

Every provider call first awaits the client's RateLimiter.  Rate-limited
failures are retried (tenacity) with provider-suggested or exponential
delays; any other failure, or running out of attempts, is logged and yields
``None``.  Generation failures are never fatal to the caller.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from insightsync.activities.models import Activity
from insightsync.activities.trends import build_context
from insightsync.config import (
    LLM_BASE_DELAY_SECONDS,
    LLM_DEFAULT_CONFIDENCE,
    LLM_MAX_RETRIES,
    insights_enabled,
)
from insightsync.infrastructure.settings import GEMINI_MAX_TOKENS, GEMINI_TEMPERATURE
from insightsync.llm.gemini import get_gemini_model, get_model_name
from insightsync.llm.prompts import format_prompt
from insightsync.llm.rate_limit import RateLimiter
from insightsync.llm.retry import is_rate_limited, rate_limit_wait
from insightsync.observability.logging import get_logger
from insightsync.observability.telemetry import counter, log_event, time_block

logger = get_logger(__name__)

CONFIDENCE_PATTERN = re.compile(r"\[CONFIDENCE:\s*(\d+(?:\.\d+)?|\.\d+)\s*\]", re.IGNORECASE)


@dataclass(frozen=True)
class GenerationResult:
    """A successfully generated insight."""

    insight: str
    model: str
    confidence: float


def clamp_confidence(value: float) -> float:
    return min(1.0, max(0.0, value))


def extract_confidence(
    text: str, default: float = LLM_DEFAULT_CONFIDENCE
) -> tuple[str, float]:
    """
    Split a model response into insight text and confidence.

    "Good run. [CONFIDENCE: 0.85]" -> ("Good run.", 0.85).  Without a tag the
    text is returned unchanged with the default confidence.
    """
    match = CONFIDENCE_PATTERN.search(text)
    if not match:
        return text, default
    confidence = clamp_confidence(float(match.group(1)))
    insight = (text[: match.start()] + text[match.end() :]).strip()
    return insight, confidence


class GenerationClient:
    """
    Wraps the Gemini model with rate limiting, retry and confidence parsing.

    Args:
        model: Object exposing ``generate_content_async``; built lazily when omitted
        model_name: Identifier stored with each insight
        rate_limiter: Shared limiter; a client-owned one is created when omitted
        max_attempts: Total attempts for rate-limited calls
        base_delay: Backoff base in seconds
        sleep: Awaitable sleep used between retries
    """

    def __init__(
        self,
        model: Any | None = None,
        model_name: str | None = None,
        rate_limiter: RateLimiter | None = None,
        max_attempts: int = LLM_MAX_RETRIES,
        base_delay: float = LLM_BASE_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._model = model
        self.model_name = model_name or get_model_name()
        self.rate_limiter = rate_limiter or RateLimiter()
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self._sleep = sleep

    def _get_model(self) -> Any:
        if self._model is None:
            self._model = get_gemini_model(self.model_name)
        return self._model

    async def _call_model(self, prompt: str) -> str:
        await self.rate_limiter.acquire()
        model = self._get_model()
        logger.info("Calling %s API...", self.model_name)
        with time_block("llm.generate.latency"):
            response = await model.generate_content_async(
                prompt,
                generation_config={
                    "temperature": GEMINI_TEMPERATURE,
                    "max_output_tokens": GEMINI_MAX_TOKENS,
                },
            )
        return response.text

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        counter("llm.rate_limited")
        logger.warning("Rate limited (429). Waiting %.1fs before retry...", delay)

    async def complete(self, prompt: str) -> str:
        """
        Send ``prompt`` and return the raw response text.

        Raises:
            Exception: The last provider error (rate-limited errors only after all attempts)
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=rate_limit_wait(self.base_delay),
            retry=retry_if_exception(is_rate_limited),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
        return await retrying(self._call_model, prompt)

    async def generate(
        self,
        activity: Activity,
        candidates: Sequence[Activity] | None = None,
    ) -> GenerationResult | None:
        """
        Generate an insight for ``activity``.

        Args:
            activity: Activity to analyse
            candidates: Other recent activities used for trend comparison

        Returns:
            GenerationResult, or None when disabled or generation failed
        """
        if not insights_enabled():
            return None

        context = build_context(activity, candidates) if candidates and len(candidates) > 1 else None
        if context is not None and context.is_empty:
            logger.info("No comparable history for activity %s", activity.activity_id)
        elif context is not None:
            logger.info(
                "Historical context - Yesterday: %s, Last week: %s, Recent activities: %d",
                "yes" if context.yesterday else "no",
                "yes" if context.last_week else "no",
                len(context.recent),
            )

        logger.info(
            "Generating insights for activity %s (%s: %r)...",
            activity.activity_id,
            activity.activity_type,
            activity.activity_name,
        )
        prompt = format_prompt(activity, context)

        try:
            text = await self.complete(prompt)
        except Exception as e:
            if is_rate_limited(e):
                counter("llm.rate_limit_exhausted")
                logger.error(
                    "Error generating insights for activity %s: rate limit exceeded after all retries",
                    activity.activity_id,
                )
            else:
                counter("llm.failed")
                logger.error(
                    "Error generating insights for activity %s: %s", activity.activity_id, e
                )
            return None

        insight, confidence = extract_confidence((text or "").strip())
        if not insight:
            counter("llm.empty_response")
            logger.error("Empty insight returned for activity %s", activity.activity_id)
            return None

        log_event(
            "insight.generated",
            activity_id=activity.activity_id,
            model=self.model_name,
            confidence=confidence,
        )
        logger.info("Generated successfully (confidence: %.0f%%)", confidence * 100)
        return GenerationResult(insight=insight, model=self.model_name, confidence=confidence)
