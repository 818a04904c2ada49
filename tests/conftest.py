"""
Pytest configuration for insightsync tests

Provides fakes for the Gemini model and the remote activity service, plus
per-test isolation of the environment, the SQLite store and telemetry.
"""

from __future__ import annotations

import copy
from typing import Any

import pytest

from insightsync.activities.models import Activity
from insightsync.insights.repository import InsightRepository
from insightsync.llm.client import GenerationClient
from insightsync.llm.rate_limit import RateLimiter
from insightsync.observability.telemetry import reset_telemetry


class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeClock:
    """Monotonic clock whose sleep advances time instead of blocking."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeResponse:
    def __init__(self, text: str) -> None:
        self.text = text


class FakeGeminiModel:
    """
    Scripted replacement for google.generativeai.GenerativeModel.

    Each call pops the next scripted item: strings are returned as response
    text, exceptions are raised.  When the script runs out the last item repeats.
    """

    def __init__(self, *script: str | BaseException) -> None:
        self.script = list(script) or ["Solid aerobic effort. [CONFIDENCE: 0.85]"]
        self.prompts: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate_content_async(self, prompt: str, generation_config: Any = None):
        self.prompts.append(prompt)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, BaseException):
            raise item
        return FakeResponse(item)


class FakeRemote:
    """In-memory RemoteActivityClient keyed by activity id."""

    def __init__(self, activities: list[dict[str, Any]] | None = None) -> None:
        self.activities: dict[str, dict[str, Any]] = {
            str(a["activityId"]): dict(a) for a in (activities or [])
        }
        self.updates: list[tuple[str, str]] = []
        self.fail_fetch: set[str] = set()
        self.fail_update: set[str] = set()

    async def fetch_activity(self, activity_id: str) -> dict[str, Any] | None:
        if activity_id in self.fail_fetch:
            raise ConnectionError(f"fetch failed for {activity_id}")
        activity = self.activities.get(activity_id)
        return copy.deepcopy(activity) if activity is not None else None

    async def fetch_recent_activities(self, offset: int, count: int) -> list[dict[str, Any]]:
        return [copy.deepcopy(a) for a in list(self.activities.values())[offset : offset + count]]

    async def update_activity_description(
        self, activity_id: str, description: str, name: str | None = None
    ) -> None:
        if activity_id in self.fail_update:
            raise ConnectionError(f"update failed for {activity_id}")
        self.activities[activity_id]["description"] = description
        self.updates.append((activity_id, description))

    def description(self, activity_id: str) -> str:
        return self.activities[activity_id].get("description") or ""


def make_activity_payload(
    activity_id: str | int,
    start: str = "2025-03-10T07:30:00",
    activity_type: str = "running",
    **metrics: Any,
) -> dict[str, Any]:
    """Garmin Connect-style activity summary dict."""
    payload: dict[str, Any] = {
        "activityId": activity_id,
        "activityName": f"Activity {activity_id}",
        "activityType": {"typeKey": activity_type},
        "startTimeLocal": start,
    }
    payload.update(metrics)
    return payload


def make_activity(
    activity_id: str | int,
    start: str = "2025-03-10T07:30:00",
    activity_type: str = "running",
    **metrics: Any,
) -> Activity:
    return Activity.from_garmin(make_activity_payload(activity_id, start, activity_type, **metrics))


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Enable insights with a dummy key and point the store at a temp file."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.delenv("AI_INSIGHTS_ENABLED", raising=False)
    monkeypatch.setenv("INSIGHTSYNC_DB_PATH", str(tmp_path / "insights.db"))
    yield


@pytest.fixture(autouse=True)
def reset_counters():
    reset_telemetry()
    yield
    reset_telemetry()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "insights.db"


@pytest.fixture
def repository(db_path):
    return InsightRepository(db_path)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_model():
    return FakeGeminiModel()


@pytest.fixture
def generation_client(fake_model, recording_sleep):
    """GenerationClient wired to the fake model with no real waiting."""
    return GenerationClient(
        model=fake_model,
        model_name="gemini-2.5-flash-lite",
        rate_limiter=RateLimiter(min_interval=0.0, sleep=recording_sleep),
        sleep=recording_sleep,
    )


@pytest.fixture
def activity_factory():
    return make_activity


@pytest.fixture
def payload_factory():
    return make_activity_payload


@pytest.fixture
def remote_factory():
    return FakeRemote


@pytest.fixture
def model_factory():
    return FakeGeminiModel
