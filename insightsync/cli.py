"""
Operator entry point for the insight engine.

Usage:
    insightsync refresh [-n 5] [--force]   Re-process the most recent activities
    insightsync backfill [-n 10]           Generate insights for activities without one
    insightsync sync                       Post stored insights missing from Garmin Connect

Reads .env from the working directory.  GARMIN_EMAIL / GARMIN_PASSWORD are
handed to the garminconnect library for login; GEMINI_API_KEY enables
generation.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sqlite3
import sys
from collections.abc import Callable, Sequence
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from insightsync.activities.models import Activity
from insightsync.config import LEGACY_COUNT_DEFAULT, REFRESH_COUNT_DEFAULT, insights_enabled
from insightsync.insights.models import SyncSummary
from insightsync.insights.service import InsightService
from insightsync.observability.logging import configure_logging, get_logger
from insightsync.remote.client import GarminConnectRemote, RemoteActivityClient

logger = get_logger(__name__)

RemoteFactory = Callable[[], RemoteActivityClient | None]


def garmin_remote_from_env() -> RemoteActivityClient | None:
    """Log in with GARMIN_EMAIL / GARMIN_PASSWORD; None when unset or login fails."""
    email = os.getenv("GARMIN_EMAIL")
    password = os.getenv("GARMIN_PASSWORD")
    if not email or not password:
        logger.error("GARMIN_EMAIL and GARMIN_PASSWORD must be set")
        return None
    try:
        return GarminConnectRemote.login(email, password)
    except Exception as e:
        logger.error("Garmin Connect login failed: %s", e)
        return None


def parse_activities(payloads: Sequence[dict[str, Any]]) -> list[Activity]:
    """Parse remote activity payloads, dropping entries without a usable id or start time."""
    activities: list[Activity] = []
    for payload in payloads:
        try:
            activities.append(Activity.from_garmin(payload))
        except ValidationError as e:
            logger.warning("Skipping malformed activity payload: %s", e)
    return activities


async def _fetch_recent(remote: RemoteActivityClient, count: int) -> list[Activity]:
    payloads = await remote.fetch_recent_activities(0, count)
    activities = parse_activities(payloads)
    logger.info("Found %d activities", len(activities))
    return activities


async def run_refresh(
    service: InsightService, remote: RemoteActivityClient, count: int, force: bool
) -> SyncSummary:
    logger.info("Fetching last %d activities...", count)
    activities = await _fetch_recent(remote, count)
    if force:
        logger.info("Force mode: existing insights will be regenerated")
    return await service.refresh(activities, remote, force=force)


async def run_backfill(
    service: InsightService, remote: RemoteActivityClient, count: int
) -> SyncSummary:
    logger.info("Fetching last %d activities for backfill...", count)
    activities = await _fetch_recent(remote, count)
    return await service.process_batch(activities, remote)


async def run_sync(service: InsightService, remote: RemoteActivityClient) -> SyncSummary:
    return await service.sync_missing(remote)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="insightsync",
        description="Generate AI insights for Garmin activities and keep them in sync",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    refresh = subparsers.add_parser("refresh", help="Re-process the most recent activities")
    refresh.add_argument(
        "-n",
        "--count",
        type=int,
        default=REFRESH_COUNT_DEFAULT,
        help=f"Number of recent activities (default: {REFRESH_COUNT_DEFAULT})",
    )
    refresh.add_argument(
        "--force",
        action="store_true",
        help="Regenerate insights even when one already exists",
    )

    backfill = subparsers.add_parser("backfill", help="Generate insights for older activities")
    backfill.add_argument(
        "-n",
        "--count",
        type=int,
        default=LEGACY_COUNT_DEFAULT,
        help=f"Number of recent activities to scan (default: {LEGACY_COUNT_DEFAULT})",
    )

    subparsers.add_parser("sync", help="Post stored insights missing from Garmin Connect")
    return parser


def main(
    argv: Sequence[str] | None = None,
    remote_factory: RemoteFactory | None = None,
    service: InsightService | None = None,
) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)

    if args.command in ("refresh", "backfill") and not insights_enabled():
        logger.warning("AI insights disabled (AI_INSIGHTS_ENABLED=false or GEMINI_API_KEY unset)")

    remote = (remote_factory or garmin_remote_from_env)()
    if remote is None:
        logger.error("No remote client available")
        return 1

    service = service or InsightService()

    try:
        if args.command == "refresh":
            summary = asyncio.run(run_refresh(service, remote, args.count, args.force))
        elif args.command == "backfill":
            summary = asyncio.run(run_backfill(service, remote, args.count))
        else:
            summary = asyncio.run(run_sync(service, remote))
    except sqlite3.Error as e:
        logger.error("Insight store failure: %s", e)
        return 1

    logger.info(
        "Summary - Processed: %d, Synced: %d, Skipped: %d, Errors: %d",
        summary.processed,
        summary.synced,
        summary.skipped,
        summary.errors,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
