"""
Trend Context Builder.

Selects the comparison activities an insight is phrased against: the same
type of activity yesterday, roughly a week ago, and the recent history.
Pure function of its inputs; no I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import timedelta

from insightsync.activities.models import Activity, TrendContext
from insightsync.config import TREND_RECENT_LIMIT

LAST_WEEK_WINDOW_DAYS = (6, 8)


def build_context(current: Activity, candidates: Iterable[Activity]) -> TrendContext:
    """
    Build the trend context for ``current`` from ``candidates``.

    Only candidates of the same activity type and a different identifier are
    considered.  ``yesterday`` and ``last_week`` take the first match in input
    order, not the closest one.

    Args:
        current: Activity being analysed
        candidates: Any activities, typically the most recent page from the remote service

    Returns:
        TrendContext with yesterday / last_week / recent (most recent first, at most 7)
    """
    same_type = [
        a
        for a in candidates
        if a.activity_type == current.activity_type and a.activity_id != current.activity_id
    ]

    current_date = current.civil_date
    yesterday_date = current_date - timedelta(days=1)
    window_start = current_date - timedelta(days=LAST_WEEK_WINDOW_DAYS[1])
    window_end = current_date - timedelta(days=LAST_WEEK_WINDOW_DAYS[0])

    yesterday = next((a for a in same_type if a.civil_date == yesterday_date), None)
    last_week = next(
        (a for a in same_type if window_start <= a.civil_date <= window_end),
        None,
    )

    current_start = current.started_at
    earlier = [a for a in same_type if a.started_at < current_start]
    earlier.sort(key=lambda a: a.started_at, reverse=True)

    return TrendContext(
        yesterday=yesterday,
        last_week=last_week,
        recent=tuple(earlier[:TREND_RECENT_LIMIT]),
    )
