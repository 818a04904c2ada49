"""
Gemini model factory.

Builds a shared google-generativeai model instance configured with
GEMINI_API_KEY.  The instance is cached per model name; tests inject their own
model object into GenerationClient instead of going through this module.
"""

from __future__ import annotations

import os
from functools import lru_cache

from insightsync.infrastructure.settings import GEMINI_API_KEY, GEMINI_MODEL
from insightsync.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


def get_model_name() -> str:
    """Model identifier recorded with every insight."""
    return os.getenv("GEMINI_MODEL", "") or GEMINI_MODEL


@lru_cache(maxsize=4)
def get_gemini_model(model_name: str | None = None):
    """
    Get or create a shared Gemini model instance.

    Returns:
        GenerativeModel for ``model_name`` (defaults to GEMINI_MODEL)

    Raises:
        GeminiInitializationError: If the SDK or API key is unavailable
    """
    # Read env vars fresh (settings.py may have stale values if loaded before dotenv)
    api_key = os.getenv("GEMINI_API_KEY") or GEMINI_API_KEY
    name = model_name or get_model_name()

    if not api_key:
        raise GeminiInitializationError("GEMINI_API_KEY not set")

    try:
        import google.generativeai as genai
    except ImportError as e:
        raise GeminiInitializationError(
            "google-generativeai is not installed. Install it or disable AI insights."
        ) from e

    try:
        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(name)
    except Exception as e:
        logger.error("Failed to initialize Gemini model: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

    logger.info("Initialized Gemini model: model=%s", name)
    return model


def clear_model_cache() -> None:
    """
    Clear the cached model instance.

    Useful for testing or when the API key changes.
    """
    get_gemini_model.cache_clear()
    logger.info("Cleared Gemini model cache")
