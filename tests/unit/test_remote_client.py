from __future__ import annotations

import asyncio

from insightsync.observability.telemetry import get_counter
from insightsync.remote.client import (
    GarminConnectRemote,
    RemoteActivityClient,
    has_remote_insight,
    upsert_remote_comment,
)
from insightsync.remote.markers import SEPARATOR

COMMENT = "🤖 AI Insights (gemini-2.5-flash-lite, 85% confidence):\nNew insight"
OLD_COMMENT = "🤖 AI Insights (gemini-2.5-flash-lite, 70% confidence):\nOld insight"


class FakeGarmin:
    """Synchronous stand-in for garminconnect.Garmin."""

    def __init__(self) -> None:
        self.put_calls: list[tuple[str, dict]] = []

    def get_activity(self, activity_id):
        return {"activityId": int(activity_id), "activityName": "Run", "description": None}

    def get_activities(self, start, limit):
        return [{"activityId": n} for n in range(start, start + limit)]

    def connectapi(self, path, method="GET", **kwargs):
        self.put_calls.append((path, kwargs["json"]))


def test_fake_remote_satisfies_protocol(remote_factory):
    assert isinstance(remote_factory(), RemoteActivityClient)
    assert isinstance(GarminConnectRemote(FakeGarmin()), RemoteActivityClient)


def test_garmin_adapter_puts_description():
    garmin = FakeGarmin()
    remote = GarminConnectRemote(garmin)

    asyncio.run(remote.update_activity_description("42", "text", name="Run"))

    assert garmin.put_calls == [
        (
            "/activity-service/activity/42",
            {"activityId": 42, "description": "text", "activityName": "Run"},
        )
    ]


def test_garmin_adapter_fetches_recent_page():
    remote = GarminConnectRemote(FakeGarmin())

    activities = asyncio.run(remote.fetch_recent_activities(0, 3))

    assert [a["activityId"] for a in activities] == [0, 1, 2]


def test_upsert_appends_to_empty_description(remote_factory, payload_factory):
    remote = remote_factory([payload_factory("1")])

    assert asyncio.run(upsert_remote_comment(remote, "1", COMMENT)) is True
    assert remote.description("1") == COMMENT


def test_upsert_appends_after_user_text(remote_factory, payload_factory):
    remote = remote_factory([payload_factory("1", description="Felt great")])

    asyncio.run(upsert_remote_comment(remote, "1", COMMENT))

    assert remote.description("1") == f"Felt great{SEPARATOR}{COMMENT}"


def test_upsert_is_noop_when_marker_present(remote_factory, payload_factory):
    remote = remote_factory([payload_factory("1", description=f"Notes{SEPARATOR}{OLD_COMMENT}")])

    assert asyncio.run(upsert_remote_comment(remote, "1", COMMENT)) is True
    assert remote.updates == []


def test_upsert_force_replaces_existing_block(remote_factory, payload_factory):
    remote = remote_factory([payload_factory("1", description=f"Notes{SEPARATOR}{OLD_COMMENT}")])

    assert asyncio.run(upsert_remote_comment(remote, "1", COMMENT, force=True)) is True

    description = remote.description("1")
    assert description == f"Notes{SEPARATOR}{COMMENT}"
    assert description.count("AI Insights") == 1


def test_upsert_missing_activity_returns_false(remote_factory):
    assert asyncio.run(upsert_remote_comment(remote_factory(), "404", COMMENT)) is False


def test_upsert_write_failure_returns_false(remote_factory, payload_factory):
    remote = remote_factory([payload_factory("1")])
    remote.fail_update.add("1")

    assert asyncio.run(upsert_remote_comment(remote, "1", COMMENT)) is False
    assert get_counter("remote.upsert.failed") == 1


def test_has_remote_insight(remote_factory, payload_factory):
    remote = remote_factory(
        [payload_factory("1", description=OLD_COMMENT), payload_factory("2", description="Notes")]
    )
    remote.fail_fetch.add("3")

    assert asyncio.run(has_remote_insight(remote, "1")) is True
    assert asyncio.run(has_remote_insight(remote, "2")) is False
    assert asyncio.run(has_remote_insight(remote, "3")) is False
