from __future__ import annotations

from insightsync.activities.models import TrendContext
from insightsync.llm.prompts import (
    CONFIDENCE_INSTRUCTION,
    format_prompt,
    format_trend_comparison,
    format_trend_section,
    infer_workout_hints,
    time_of_day,
)


def test_prompt_renders_missing_metrics_as_na(activity_factory):
    prompt = format_prompt(activity_factory("1"))

    assert "Average HR: N/A bpm" in prompt
    assert "Distance: N/A km" in prompt
    assert "Average Pace: N/A min/km" in prompt
    assert "TRENDING DATA" not in prompt
    assert prompt.endswith(CONFIDENCE_INSTRUCTION)


def test_prompt_renders_core_metrics(activity_factory):
    activity = activity_factory(
        "1", distance=10000.0, duration=3000.0, averageSpeed=3.0, averageHR=150.0
    )

    prompt = format_prompt(activity)

    assert "Analyze this running workout" in prompt
    assert "Distance: 10.00 km" in prompt
    assert "Duration: 50.0 minutes" in prompt
    assert "Average Pace: 5.56 min/km" in prompt
    assert "Average HR: 150 bpm" in prompt
    assert "Time of Day: Morning" in prompt


def test_prompt_is_deterministic(activity_factory):
    activity = activity_factory("1", averageSpeed=3.0)
    assert format_prompt(activity) == format_prompt(activity)


def test_time_of_day_buckets():
    assert time_of_day("2025-03-10T05:00:00") == "Morning"
    assert time_of_day("2025-03-10T12:00:00") == "Afternoon"
    assert time_of_day("2025-03-10T17:30:00") == "Evening"
    assert time_of_day("2025-03-10T23:15:00") == "Night"
    assert time_of_day("2025-03-10") == "Unknown"


def test_trend_comparison_empty_when_value_missing_or_zero():
    assert format_trend_comparison(None, 5.0, "Pace", "min/km") == ""
    assert format_trend_comparison(5.0, 0, "Pace", "min/km") == ""
    assert format_trend_comparison(0, 5.0, "Pace", "min/km") == ""


def test_trend_comparison_lower_is_better_shows_improvement():
    line = format_trend_comparison(5.0, 5.5, "Pace", "min/km", lower_is_better=True)
    assert line == "📈 Pace: -0.50 min/km (-9.1%)"


def test_trend_comparison_higher_is_better():
    assert format_trend_comparison(11.0, 10.0, "Distance", "km") == "📈 Distance: +1.00 km (+10.0%)"
    assert format_trend_comparison(9.0, 10.0, "Distance", "km") == "📉 Distance: -1.00 km (-10.0%)"


def test_trend_section_empty_without_comparable_metrics(activity_factory):
    current = activity_factory("1")
    yesterday = activity_factory("2", start="2025-03-09T07:30:00")

    assert format_trend_section(TrendContext(yesterday=yesterday), current) == ""


def test_trend_section_includes_each_comparison(activity_factory):
    current = activity_factory("1", averageSpeed=3.2, distance=8000.0, averageHR=148.0)
    yesterday = activity_factory(
        "2", start="2025-03-09T07:30:00", averageSpeed=3.0, distance=6000.0, averageHR=150.0
    )
    last_week = activity_factory("3", start="2025-03-03T07:30:00", distance=10000.0)
    context = TrendContext(yesterday=yesterday, last_week=last_week, recent=(yesterday, last_week))

    section = format_trend_section(context, current)

    assert "--- TRENDING DATA ---" in section
    assert "**Compared to Yesterday (2025-03-09):**" in section
    assert "**Compared to Last Week (2025-03-03):**" in section
    assert "**Trend vs Recent Activities (2 activities):**" in section
    assert "📉 Distance vs 7-activity avg: 0.00 km (0.0%)" in section


def test_workout_hints_detect_intervals_and_hills(activity_factory):
    activity = activity_factory(
        "1",
        averageHR=140.0,
        maxHR=185.0,
        elevationGain=400.0,
        distance=10000.0,
        anaerobicTrainingEffect=3.5,
    )

    hints = infer_workout_hints(activity)

    assert any(h.startswith("INTERVAL/SPRINT INDICATOR") for h in hints)
    assert any(h.startswith("HIGH INTENSITY INDICATOR") for h in hints)
    assert any(h.startswith("HILL WORKOUT INDICATOR") for h in hints)


def test_workout_hints_detect_threshold_effort(activity_factory):
    activity = activity_factory("1", averageHR=165.0, maxHR=175.0)

    hints = infer_workout_hints(activity)

    assert hints == [
        "TEMPO/THRESHOLD INDICATOR: Sustained high HR (avg 165 bpm, only 10 bpm below max) "
        "suggests threshold effort"
    ]


def test_workout_hints_empty_without_metrics(activity_factory):
    assert infer_workout_hints(activity_factory("1")) == []
