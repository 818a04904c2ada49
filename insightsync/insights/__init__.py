"""
Insights module - insight records, the local store and reconciliation.

Generates one insight per activity, persists it idempotently and keeps the
remote activity description in step with the local store.
"""

from insightsync.insights.models import (
    InsightOutcome,
    InsightRecord,
    OutcomeStatus,
    SyncSummary,
)
from insightsync.insights.repository import InsightRepository
from insightsync.insights.service import InsightService

__all__ = [
    # Models
    "InsightOutcome",
    "InsightRecord",
    "OutcomeStatus",
    "SyncSummary",
    # Store
    "InsightRepository",
    # Service
    "InsightService",
]
