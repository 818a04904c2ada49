"""InsightSync - AI insights for Garmin activities, kept in sync with Garmin Connect"""

from __future__ import annotations

__version__ = "0.1.0"


# Lazy imports so lightweight modules load without the LLM stack
def __getattr__(name: str):
    """
    Lazy imports to avoid loading heavy dependencies when only importing lightweight modules.
    """
    if name == "InsightService":
        from insightsync.insights.service import InsightService

        return InsightService

    if name == "InsightRepository":
        from insightsync.insights.repository import InsightRepository

        return InsightRepository

    if name == "GenerationClient":
        from insightsync.llm.client import GenerationClient

        return GenerationClient

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "GenerationClient",
    "InsightRepository",
    "InsightService",
]
