"""Centralized configuration for the insight engine.

Re-exports everything from insightsync.infrastructure.settings, then adds
typed constants for the database, LLM retry/rate-limit discipline and batch
pacing.  Environment variable overrides use safe defaults so the engine runs
without extra env configuration.
"""

from __future__ import annotations

import os

from insightsync.infrastructure.settings import *  # noqa: F401, F403  re-export settings


def _env(key: str, default: str) -> str:
    """Read an INSIGHTSYNC_* env var with a default."""
    return os.getenv(key, default)


# --- Database ---
DB_CONNECT_TIMEOUT: float = float(_env("INSIGHTSYNC_DB_CONNECT_TIMEOUT", "10"))
DB_RETRY_MAX: int = 5
DB_RETRY_BASE_DELAY: float = 0.1
DB_RETRY_MAX_DELAY: float = 2.0
DB_RETRY_JITTER: float = 0.1

# --- LLM ---
LLM_MAX_RETRIES: int = int(_env("INSIGHTSYNC_LLM_MAX_RETRIES", "3"))
LLM_BASE_DELAY_SECONDS: float = float(_env("INSIGHTSYNC_LLM_BASE_DELAY", "2.0"))
LLM_MIN_INTERVAL_SECONDS: float = float(_env("INSIGHTSYNC_LLM_MIN_INTERVAL", "1.0"))
LLM_DEFAULT_CONFIDENCE: float = 0.7

# --- Trend context ---
TREND_RECENT_LIMIT: int = 7

# --- Batch pacing ---
BATCH_ITEM_DELAY_SECONDS: float = float(_env("INSIGHTSYNC_BATCH_DELAY", "0.5"))
SYNC_ITEM_DELAY_SECONDS: float = float(_env("INSIGHTSYNC_SYNC_DELAY", "1.0"))
LEGACY_COUNT_DEFAULT: int = int(_env("INSIGHTSYNC_LEGACY_COUNT", "10"))
REFRESH_COUNT_DEFAULT: int = int(_env("INSIGHTSYNC_REFRESH_COUNT", "5"))


def insights_enabled() -> bool:
    """Check the feature flag and API key at call time (not import time).

    Reads env vars fresh to avoid stale values when dotenv loads after module import.
    """
    if os.getenv("AI_INSIGHTS_ENABLED", "true").lower() == "false":
        return False
    return bool(os.getenv("GEMINI_API_KEY"))
