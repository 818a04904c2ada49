from __future__ import annotations

import asyncio

from google.api_core.exceptions import ResourceExhausted

from insightsync.llm.client import GenerationClient, extract_confidence
from insightsync.llm.rate_limit import RateLimiter
from insightsync.observability.telemetry import get_counter


def _client(model, sleep) -> GenerationClient:
    return GenerationClient(
        model=model,
        model_name="gemini-2.5-flash-lite",
        rate_limiter=RateLimiter(min_interval=0.0, sleep=sleep),
        sleep=sleep,
    )


def test_extract_confidence_reads_tag():
    insight, confidence = extract_confidence("Strong tempo effort. [CONFIDENCE: 0.85]")
    assert insight == "Strong tempo effort."
    assert confidence == 0.85


def test_extract_confidence_defaults_without_tag():
    assert extract_confidence("Easy recovery run.") == ("Easy recovery run.", 0.7)


def test_extract_confidence_clamps_out_of_range():
    _, confidence = extract_confidence("Great. [CONFIDENCE: 1.5]")
    assert confidence == 1.0


def test_generate_returns_insight_and_confidence(generation_client, fake_model, activity_factory):
    result = asyncio.run(generation_client.generate(activity_factory("100", averageSpeed=3.0)))

    assert result is not None
    assert result.insight == "Solid aerobic effort."
    assert result.confidence == 0.85
    assert result.model == "gemini-2.5-flash-lite"
    assert fake_model.calls == 1


def test_generate_default_confidence(model_factory, recording_sleep, activity_factory):
    client = _client(model_factory("Nice steady run."), recording_sleep)

    result = asyncio.run(client.generate(activity_factory("1")))

    assert result.insight == "Nice steady run."
    assert result.confidence == 0.7


def test_generate_retries_rate_limit_then_succeeds(model_factory, recording_sleep, activity_factory):
    model = model_factory(ResourceExhausted("quota"), "Recovered. [CONFIDENCE: 0.9]")
    client = _client(model, recording_sleep)

    result = asyncio.run(client.generate(activity_factory("1")))

    assert result.insight == "Recovered."
    assert model.calls == 2
    assert recording_sleep.calls == [2.0]
    assert get_counter("llm.rate_limited") == 1


def test_generate_uses_provider_retry_delay(model_factory, recording_sleep, activity_factory):
    retry_info = {"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": "37s"}
    model = model_factory(ResourceExhausted("quota", details=[retry_info]), "Ok. [CONFIDENCE: 0.6]")
    client = _client(model, recording_sleep)

    result = asyncio.run(client.generate(activity_factory("1")))

    assert result.confidence == 0.6
    assert recording_sleep.calls == [37.0]


def test_generate_gives_up_after_max_attempts(model_factory, recording_sleep, activity_factory):
    model = model_factory(ResourceExhausted("quota"))
    client = _client(model, recording_sleep)

    result = asyncio.run(client.generate(activity_factory("1")))

    assert result is None
    assert model.calls == 3
    assert recording_sleep.calls == [2.0, 4.0]
    assert get_counter("llm.rate_limit_exhausted") == 1


def test_generate_does_not_retry_other_errors(model_factory, recording_sleep, activity_factory):
    model = model_factory(ValueError("invalid argument"))
    client = _client(model, recording_sleep)

    result = asyncio.run(client.generate(activity_factory("1")))

    assert result is None
    assert model.calls == 1
    assert recording_sleep.calls == []
    assert get_counter("llm.failed") == 1


def test_generate_empty_response_is_failure(model_factory, recording_sleep, activity_factory):
    client = _client(model_factory("   [CONFIDENCE: 0.9]  "), recording_sleep)

    assert asyncio.run(client.generate(activity_factory("1"))) is None


def test_generate_disabled_makes_no_call(monkeypatch, generation_client, fake_model, activity_factory):
    monkeypatch.setenv("AI_INSIGHTS_ENABLED", "false")

    assert asyncio.run(generation_client.generate(activity_factory("1"))) is None
    assert fake_model.calls == 0


def test_generate_without_api_key_is_disabled(monkeypatch, generation_client, fake_model, activity_factory):
    monkeypatch.delenv("GEMINI_API_KEY")

    assert asyncio.run(generation_client.generate(activity_factory("1"))) is None
    assert fake_model.calls == 0


def test_generate_adds_trend_context_only_with_other_candidates(
    generation_client, fake_model, activity_factory
):
    current = activity_factory("1", averageSpeed=3.2, averageHR=148.0)
    yesterday = activity_factory("2", start="2025-03-09T07:30:00", averageSpeed=3.0, averageHR=150.0)

    asyncio.run(generation_client.generate(current, [current]))
    asyncio.run(generation_client.generate(current, [current, yesterday]))

    assert "TRENDING DATA" not in fake_model.prompts[0]
    assert "**Compared to Yesterday (2025-03-09):**" in fake_model.prompts[1]


class ClockedModel:
    """Scripted model that records the clock reading at each call."""

    def __init__(self, clock, *script) -> None:
        self.clock = clock
        self.script = list(script)
        self.call_times: list[float] = []

    async def generate_content_async(self, prompt, generation_config=None):
        self.call_times.append(self.clock.now)
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return type("Response", (), {"text": item})()


def _spaced_client(model, clock, base_delay: float = 2.0) -> GenerationClient:
    return GenerationClient(
        model=model,
        model_name="gemini-2.5-flash-lite",
        rate_limiter=RateLimiter(min_interval=1.0, clock=clock, sleep=clock.sleep),
        base_delay=base_delay,
        sleep=clock.sleep,
    )


def test_generate_waits_on_rate_limiter_between_calls(fake_clock, activity_factory):
    model = ClockedModel(fake_clock, "First. [CONFIDENCE: 0.8]", "Second. [CONFIDENCE: 0.8]")
    client = _spaced_client(model, fake_clock)

    async def run():
        await client.generate(activity_factory("1"))
        return await client.generate(activity_factory("2"))

    result = asyncio.run(run())

    assert result.insight == "Second."
    assert model.call_times == [100.0, 101.0]
    assert fake_clock.sleeps == [1.0]


def test_rate_limited_retry_also_waits_on_rate_limiter(fake_clock, activity_factory):
    model = ClockedModel(fake_clock, ResourceExhausted("quota"), "Ok. [CONFIDENCE: 0.8]")
    client = _spaced_client(model, fake_clock, base_delay=0.0)

    result = asyncio.run(client.generate(activity_factory("1")))

    assert result.insight == "Ok."
    assert model.call_times == [100.0, 101.0]
    assert [s for s in fake_clock.sleeps if s] == [1.0]
    assert get_counter("llm.rate_limited") == 1
