"""Retry discipline for Gemini calls.

Only rate-limited failures (HTTP 429 / ResourceExhausted) are retried.  The
wait before each retry comes from ``next_delay``: the provider's RetryInfo
delay when the error carries one, otherwise exponential backoff from a fixed
base.  Everything here is pure so the policy is testable without sleeping.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from tenacity import RetryCallState

from insightsync.config import LLM_BASE_DELAY_SECONDS

_SECONDS_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")


def next_delay(
    attempt: int,
    provider_hint: float | None = None,
    base_delay: float = LLM_BASE_DELAY_SECONDS,
) -> float:
    """
    Seconds to wait before retrying after failed ``attempt`` (1-based).

    A provider-suggested delay wins; otherwise ``base_delay * 2 ** (attempt - 1)``.
    """
    if provider_hint is not None and provider_hint >= 0:
        return float(provider_hint)
    return base_delay * (2 ** (max(attempt, 1) - 1))


def is_rate_limited(exc: BaseException) -> bool:
    """True when the provider signalled 429 / Too Many Requests."""
    from google.api_core.exceptions import ResourceExhausted, TooManyRequests

    if isinstance(exc, (ResourceExhausted, TooManyRequests)):
        return True
    for attr in ("status", "status_code", "code"):
        if getattr(exc, attr, None) == 429:
            return True
    return getattr(exc, "status_text", None) == "Too Many Requests"


def _parse_seconds(raw: Any) -> float | None:
    """Read a protobuf Duration, a number, or a "37s"-style string as seconds."""
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    seconds = getattr(raw, "seconds", None)
    if seconds is not None:
        return float(seconds) + getattr(raw, "nanos", 0) / 1e9
    match = _SECONDS_PATTERN.search(str(raw))
    return float(match.group(1)) if match else None


def provider_retry_hint(exc: BaseException) -> float | None:
    """
    Extract the RetryInfo delay (seconds) from a provider error, if any.

    Handles google.api_core error ``details`` (protobuf RetryInfo messages) and
    the REST-style ``errorDetails`` list of dicts with ``@type``/``retryDelay``.
    """
    details = getattr(exc, "details", None) or getattr(exc, "error_details", None) or []
    if callable(details):
        details = []
    for detail in details:
        if isinstance(detail, dict):
            if "RetryInfo" in str(detail.get("@type", "")):
                return _parse_seconds(detail.get("retryDelay") or detail.get("retry_delay"))
            continue
        if type(detail).__name__ == "RetryInfo" or hasattr(detail, "retry_delay"):
            return _parse_seconds(getattr(detail, "retry_delay", None))
    return None


def rate_limit_wait(base_delay: float = LLM_BASE_DELAY_SECONDS) -> Callable[[RetryCallState], float]:
    """Build a tenacity ``wait`` callback that delegates to ``next_delay``."""

    def _wait(retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        hint = provider_retry_hint(exc) if exc is not None else None
        return next_delay(retry_state.attempt_number, hint, base_delay)

    return _wait
