"""
Remote activity service access.

The engine talks to the remote service through ``RemoteActivityClient``.
``GarminConnectRemote`` adapts an already logged-in ``garminconnect.Garmin``
session (login and token storage belong to that library).  The
remote-comment upsert never raises: every failure is logged and reported as
``False``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol, runtime_checkable

from insightsync.observability.logging import get_logger
from insightsync.observability.telemetry import counter
from insightsync.remote.markers import append_insight, has_insight_marker, strip_insight_blocks

logger = get_logger(__name__)

ACTIVITY_SERVICE_PATH = "/activity-service/activity"


@runtime_checkable
class RemoteActivityClient(Protocol):
    """What the engine needs from the remote activity service."""

    async def fetch_activity(self, activity_id: str) -> dict[str, Any] | None: ...

    async def fetch_recent_activities(self, offset: int, count: int) -> list[dict[str, Any]]: ...

    async def update_activity_description(
        self, activity_id: str, description: str, name: str | None = None
    ) -> None: ...


class GarminConnectRemote:
    """
    RemoteActivityClient backed by the garminconnect library.

    garminconnect is synchronous, so each call runs in a worker thread to keep
    the event loop free.
    """

    def __init__(self, garmin: Any) -> None:
        self.garmin = garmin

    @classmethod
    def login(cls, email: str, password: str) -> GarminConnectRemote:
        """Create a logged-in session with the garminconnect library."""
        from garminconnect import Garmin

        garmin = Garmin(email, password)
        garmin.login()
        return cls(garmin)

    async def fetch_activity(self, activity_id: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self.garmin.get_activity, activity_id)

    async def fetch_recent_activities(self, offset: int, count: int) -> list[dict[str, Any]]:
        activities = await asyncio.to_thread(self.garmin.get_activities, offset, count)
        return list(activities or [])

    async def update_activity_description(
        self, activity_id: str, description: str, name: str | None = None
    ) -> None:
        payload: dict[str, Any] = {"activityId": int(activity_id), "description": description}
        if name is not None:
            payload["activityName"] = name
        await asyncio.to_thread(
            self.garmin.connectapi,
            f"{ACTIVITY_SERVICE_PATH}/{activity_id}",
            method="PUT",
            json=payload,
        )


def _error_status(exc: Exception) -> Any:
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None) or getattr(exc, "status", None) or "N/A"


async def upsert_remote_comment(
    remote: RemoteActivityClient,
    activity_id: str,
    comment: str,
    force: bool = False,
) -> bool:
    """
    Put ``comment`` into the remote activity description.

    - marker present, not force: no-op, success
    - marker present, force: previous insight block(s) stripped, new one appended
    - otherwise: appended after the divider (no divider for an empty description)

    Returns:
        True on success or no-op, False on any fetch/write failure
    """
    activity_id = str(activity_id)
    try:
        activity = await remote.fetch_activity(activity_id)
        if not activity:
            logger.warning("Could not fetch activity %s", activity_id)
            counter("remote.fetch.failed")
            return False

        description = activity.get("description") or ""

        if has_insight_marker(description):
            if not force:
                logger.info("Activity %s already has AI insight, skipping", activity_id)
                return True
            description = strip_insight_blocks(description)
            logger.info("Replacing existing insight for activity %s", activity_id)

        await remote.update_activity_description(
            activity_id,
            append_insight(description, comment),
            name=activity.get("activityName"),
        )
        counter("remote.upsert.success")
        logger.info("Activity %s description updated successfully", activity_id)
        return True
    except Exception as e:
        counter("remote.upsert.failed")
        logger.error(
            "Failed to update activity %s (status: %s): %s", activity_id, _error_status(e), e
        )
        return False


async def has_remote_insight(remote: RemoteActivityClient, activity_id: str) -> bool:
    """True when the remote description carries the insight marker; fetch errors read as False."""
    try:
        activity = await remote.fetch_activity(str(activity_id))
    except Exception as e:
        logger.warning("Could not check activity %s for insight: %s", activity_id, e)
        return False
    return has_insight_marker((activity or {}).get("description"))
