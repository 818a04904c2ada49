"""
Insight Service - reconciliation between generation, the local store and the remote service.

Orchestrates between:
- InsightRepository (local store, existence check + persistence)
- GenerationClient (trend context, prompt, Gemini call)
- upsert_remote_comment / has_remote_insight (remote description)

Per activity the combined state is NoInsight -> LocalOnly (generated and
stored) -> LocalAndRemote (posted).  Normal operation never removes a remote
insight; only force mode replaces one.  Batches run strictly in order with a
fixed pause between items.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence

from insightsync.activities.models import Activity
from insightsync.config import BATCH_ITEM_DELAY_SECONDS, SYNC_ITEM_DELAY_SECONDS, insights_enabled
from insightsync.insights.models import InsightOutcome, InsightRecord, OutcomeStatus, SyncSummary
from insightsync.insights.repository import InsightRepository
from insightsync.llm.client import GenerationClient
from insightsync.observability.logging import get_logger
from insightsync.observability.telemetry import counter, log_event
from insightsync.remote.client import (
    RemoteActivityClient,
    has_remote_insight,
    upsert_remote_comment,
)

logger = get_logger(__name__)


class InsightService:
    """
    Service layer for insight generation and reconciliation.

    Args:
        repository: Insight store
        generator: Generation client (owns the rate limiter)
        item_delay: Pause between activities in generation batches
        sync_delay: Pause after each posting attempt in a reconciliation sweep
        sleep: Awaitable sleep, injectable for tests
    """

    def __init__(
        self,
        repository: InsightRepository | None = None,
        generator: GenerationClient | None = None,
        item_delay: float = BATCH_ITEM_DELAY_SECONDS,
        sync_delay: float = SYNC_ITEM_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.repository = repository or InsightRepository()
        self.generator = generator or GenerationClient()
        self.item_delay = item_delay
        self.sync_delay = sync_delay
        self._sleep = sleep

    async def process(
        self,
        activity: Activity,
        remote: RemoteActivityClient | None = None,
        candidates: Sequence[Activity] | None = None,
        force: bool = False,
    ) -> InsightOutcome:
        """
        Generate, store and (optionally) post an insight for one activity.

        With force=True the caller must already have deleted the stored record;
        this method does not delete on the caller's behalf.

        Returns:
            InsightOutcome: disabled / skipped / failed / generated

        Raises:
            sqlite3.Error: Store faults propagate to the caller
        """
        if not insights_enabled():
            return InsightOutcome.disabled()

        activity_id = activity.activity_id
        logger.info("Processing activity %s (%r)...", activity_id, activity.activity_name)

        self.repository.ensure_table()

        if not force and self.repository.exists(activity_id):
            counter("insights.skipped")
            logger.info("Activity %s already has insights in database, skipping", activity_id)
            return InsightOutcome.skipped(activity_id, "already has insight")

        result = await self.generator.generate(activity, candidates)
        if result is None:
            counter("insights.failed")
            logger.info("Failed to generate insights for activity %s", activity_id)
            return InsightOutcome.failed(activity_id, "generation failed")

        record = InsightRecord(
            activity_id=activity_id,
            activity_name=activity.activity_name,
            insight=result.insight,
            model=result.model,
            confidence=result.confidence,
        )
        self.repository.upsert(record)
        counter("insights.generated")
        logger.info("Saved insight for activity %s to database", activity_id)

        remote_posted: bool | None = None
        if remote is not None:
            remote_posted = await upsert_remote_comment(
                remote, activity_id, record.to_comment(), force=force
            )
            if remote_posted:
                logger.info("Comment posted to activity %s", activity_id)
            else:
                logger.warning(
                    "Failed to post comment to activity %s (will retry on next sync)", activity_id
                )
        else:
            logger.info("No remote client provided, skipping comment posting")

        log_event(
            "insight.stored",
            activity_id=activity_id,
            model=record.model,
            confidence=record.confidence,
            remote_posted=remote_posted,
        )
        return InsightOutcome.generated(record, remote_posted=remote_posted)

    async def process_batch(
        self,
        activities: Sequence[Activity],
        remote: RemoteActivityClient | None = None,
    ) -> SyncSummary:
        """
        Backfill insights for activities that have none yet.

        Each activity is compared against the whole batch.  Already stored
        activities are skipped without a generation call.
        """
        summary = SyncSummary()
        if not insights_enabled():
            logger.info("AI insights feature is disabled")
            return summary

        self.repository.ensure_table()
        missing = set(self.repository.missing_among(a.activity_id for a in activities))

        for activity in activities:
            if activity.activity_id not in missing:
                summary.skipped += 1
                logger.info("Activity %s already has insights, skipping", activity.activity_id)
                continue

            outcome = await self.process(activity, remote, activities)
            if outcome.is_generated:
                summary.processed += 1
                await self._sleep(self.item_delay)
            elif outcome.status is OutcomeStatus.FAILED:
                summary.errors += 1
            else:
                summary.skipped += 1

        self._log_summary("Backfill", summary)
        return summary

    async def refresh(
        self,
        activities: Sequence[Activity],
        remote: RemoteActivityClient | None = None,
        force: bool = False,
    ) -> SyncSummary:
        """
        Re-process recent activities, optionally forcing regeneration.

        Force deletes each stored record before processing (delete-then-recreate)
        and replaces the remote insight block.  Per-activity errors, including
        store faults, are counted and do not stop the run.
        """
        summary = SyncSummary()
        if not insights_enabled():
            logger.info("AI insights feature is disabled")
            return summary

        self.repository.ensure_table()

        for activity in activities:
            logger.info(
                "Activity: %r (%s)", activity.activity_name, activity.start_time_local[:10]
            )
            try:
                if force:
                    self.repository.delete(activity.activity_id)

                outcome = await self.process(activity, remote, activities, force=force)
                if outcome.is_generated:
                    summary.processed += 1
                    logger.info(
                        "Generated new insight (confidence: %s%%)",
                        outcome.record.confidence_percent if outcome.record else "?",
                    )
                else:
                    summary.skipped += 1
                    logger.info("Skipped (%s)", outcome.reason)
            except Exception as e:
                summary.errors += 1
                logger.error("Error processing activity %s: %s", activity.activity_id, e)

            await self._sleep(self.item_delay)

        self._log_summary("Refresh", summary)
        return summary

    async def sync_missing(self, remote: RemoteActivityClient) -> SyncSummary:
        """
        Post stored insights that are missing from the remote service.

        Remote state wins: activities whose description already carries the
        marker are skipped and never overwritten.  Single pass; failures are
        counted per item and retried only by running the sweep again.
        """
        summary = SyncSummary()
        self.repository.ensure_table()

        records = self.repository.list_all()
        if not records:
            logger.info("No insights found in database")
            return summary

        logger.info("Found %d insights in database, checking remote activities...", len(records))

        for record in records:
            try:
                if await has_remote_insight(remote, record.activity_id):
                    summary.skipped += 1
                    continue

                logger.info(
                    "Posting insight to activity %s (%s)...",
                    record.activity_id,
                    record.activity_name,
                )
                if await upsert_remote_comment(
                    remote, record.activity_id, record.to_comment(), force=False
                ):
                    summary.synced += 1
                    logger.info("Synced insight to activity %s", record.activity_id)
                else:
                    summary.errors += 1
                    logger.warning("Failed to sync insight to activity %s", record.activity_id)

                await self._sleep(self.sync_delay)
            except Exception as e:
                summary.errors += 1
                logger.error("Error syncing activity %s: %s", record.activity_id, e)

        logger.info(
            "Sync complete - Synced: %d, Skipped (already present): %d, Errors: %d",
            summary.synced,
            summary.skipped,
            summary.errors,
        )
        return summary

    def _log_summary(self, label: str, summary: SyncSummary) -> None:
        log_event(f"insights.{label.lower()}.summary", **summary.as_dict())
        logger.info(
            "%s summary - Processed: %d, Skipped: %d, Errors: %d",
            label,
            summary.processed,
            summary.skipped,
            summary.errors,
        )
