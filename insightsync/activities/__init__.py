"""
Activities module - activity summaries and trend context selection.
"""

from insightsync.activities.models import Activity, TrendContext, speed_to_pace
from insightsync.activities.trends import build_context

__all__ = [
    "Activity",
    "TrendContext",
    "build_context",
    "speed_to_pace",
]
