"""
Prompt Formatter for activity insights.

Renders one activity, rule-based workout-type hints and (optionally) its
trend context into the request sent to Gemini.  Deterministic: the same
activity and context always yield the same prompt.  Missing metrics render as
"N/A" and never raise.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from insightsync.activities.models import Activity, TrendContext, speed_to_pace

NOT_AVAILABLE = "N/A"
CONFIDENCE_INSTRUCTION = (
    "At the end of your response, add a confidence score from 0.0 to 1.0 indicating how "
    "confident you are in your analysis based on the data quality. Format: [CONFIDENCE: X.X]"
)

# Workout-type thresholds
INTERVAL_HR_SPREAD_BPM = 30
HIGH_INTENSITY_ANAEROBIC = 3.0
EASY_AEROBIC_MIN = 2.0
EASY_ANAEROBIC_MAX = 1.0
LONG_RUN_MINUTES = 60
LONG_RUN_AEROBIC_MIN = 3.0
THRESHOLD_HR_GAP_BPM = 15
THRESHOLD_HR_FLOOR_BPM = 150
HILL_ELEVATION_PER_KM = 30


def _na(value: object | None, fmt: str | None = None) -> str:
    """Render a metric, or N/A when missing."""
    if value is None:
        return NOT_AVAILABLE
    if fmt is not None:
        return format(value, fmt)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _scaled(value: float | None, divisor: float, fmt: str) -> str:
    """Render value / divisor, treating 0 like a missing value."""
    if not value:
        return NOT_AVAILABLE
    return format(value / divisor, fmt)


def _percent(fraction: float | None) -> str:
    if not fraction:
        return NOT_AVAILABLE
    return format(fraction * 100, ".0f")


def time_of_day(timestamp: str) -> str:
    """Bucket a local ISO timestamp into Morning / Afternoon / Evening / Night."""
    try:
        hour = int(timestamp[11:13])
    except ValueError:
        return "Unknown"
    if 5 <= hour < 12:
        return "Morning"
    if 12 <= hour < 17:
        return "Afternoon"
    if 17 <= hour < 21:
        return "Evening"
    return "Night"


def format_trend_comparison(
    current: float | None,
    previous: float | None,
    metric: str,
    unit: str,
    lower_is_better: bool = False,
) -> str:
    """
    Render one trend line, e.g. "📈 Pace: -0.25 min/km (-4.6%)".

    Returns "" unless both values are present and non-zero, so a comparison
    can never show a division by zero or NaN.
    """
    if not current or not previous:
        return ""
    diff = current - previous
    percent_change = diff / previous * 100
    improved = diff < 0 if lower_is_better else diff > 0
    arrow = "📈" if improved else "📉"
    sign = "+" if diff > 0 else ""
    return f"{arrow} {metric}: {sign}{diff:.2f} {unit} ({sign}{percent_change:.1f}%)"


def _average(activities: Sequence[Activity], metric: Callable[[Activity], float | None]) -> float | None:
    """Mean of the metric over activities where it is defined and non-zero."""
    values = [v for v in (metric(a) for a in activities) if v]
    if not values:
        return None
    return sum(values) / len(values)


def _comparison_lines(
    current: Activity,
    previous_pace: float | None,
    previous_distance_km: float | None,
    previous_hr: float | None,
    suffix: str = "",
) -> list[str]:
    lines = [
        format_trend_comparison(
            current.pace_min_per_km, previous_pace, f"Pace{suffix}", "min/km", lower_is_better=True
        ),
        format_trend_comparison(
            current.distance_km, previous_distance_km, f"Distance{suffix}", "km"
        ),
        format_trend_comparison(
            current.average_hr, previous_hr, f"Avg HR{suffix}", "bpm", lower_is_better=True
        ),
    ]
    return [line for line in lines if line]


def format_trend_section(context: TrendContext, current: Activity) -> str:
    """Render the TRENDING DATA block, or "" when no comparison produced a line."""
    sections: list[str] = []

    for label, other in (("Yesterday", context.yesterday), ("Last Week", context.last_week)):
        if other is None:
            continue
        lines = _comparison_lines(
            current, other.pace_min_per_km, other.distance_km, other.average_hr
        )
        if lines:
            sections.append(
                f"**Compared to {label} ({other.start_time_local[:10]}):**\n" + "\n".join(lines)
            )

    if context.recent:
        lines = _comparison_lines(
            current,
            _average(context.recent, lambda a: a.pace_min_per_km),
            _average(context.recent, lambda a: a.distance_km),
            _average(context.recent, lambda a: a.average_hr),
            suffix=" vs 7-activity avg",
        )
        if lines:
            sections.append(
                f"**Trend vs Recent Activities ({len(context.recent)} activities):**\n"
                + "\n".join(lines)
            )

    if not sections:
        return ""
    return "\n\n--- TRENDING DATA ---\n" + "\n\n".join(sections)


def infer_workout_hints(activity: Activity) -> list[str]:
    """Derive workout-type hints purely from metric thresholds."""
    hints: list[str] = []
    avg_hr, max_hr = activity.average_hr, activity.max_hr
    aerobic = activity.aerobic_training_effect
    anaerobic = activity.anaerobic_training_effect

    if max_hr and avg_hr:
        spread = max_hr - avg_hr
        if spread > INTERVAL_HR_SPREAD_BPM:
            hints.append(
                f"INTERVAL/SPRINT INDICATOR: High HR variance ({_na(spread)} bpm between max "
                "and avg) suggests interval training with intensity spikes"
            )

    if anaerobic and anaerobic >= HIGH_INTENSITY_ANAEROBIC:
        hints.append(
            f"HIGH INTENSITY INDICATOR: Anaerobic effect {anaerobic:.1f} indicates "
            "significant speed/power work"
        )

    if aerobic and anaerobic and aerobic >= EASY_AEROBIC_MIN and anaerobic < EASY_ANAEROBIC_MAX:
        hints.append(
            f"EASY/RECOVERY INDICATOR: High aerobic ({aerobic:.1f}) with low anaerobic "
            f"({anaerobic:.1f}) suggests recovery or easy pace"
        )

    duration_minutes = (activity.duration or 0) / 60
    if duration_minutes > LONG_RUN_MINUTES and aerobic and aerobic >= LONG_RUN_AEROBIC_MIN:
        hints.append(
            f"LONG RUN INDICATOR: Duration {duration_minutes:.0f} min with aerobic effect "
            f"{aerobic:.1f} suggests endurance training"
        )

    if max_hr and avg_hr:
        gap = max_hr - avg_hr
        if gap <= THRESHOLD_HR_GAP_BPM and avg_hr > THRESHOLD_HR_FLOOR_BPM:
            hints.append(
                f"TEMPO/THRESHOLD INDICATOR: Sustained high HR (avg {_na(avg_hr)} bpm, only "
                f"{_na(gap)} bpm below max) suggests threshold effort"
            )

    if activity.elevation_gain and activity.distance:
        per_km = activity.elevation_gain / (activity.distance / 1000)
        if per_km > HILL_ELEVATION_PER_KM:
            hints.append(
                f"HILL WORKOUT INDICATOR: {activity.elevation_gain:.0f}m elevation gain "
                f"({per_km:.1f}m/km) indicates significant climbing"
            )

    return hints


def format_prompt(activity: Activity, context: TrendContext | None = None) -> str:
    """
    Build the Gemini prompt for one activity.

    Args:
        activity: Activity to analyse
        context: Optional trend context; adds the TRENDING DATA section

    Returns:
        Prompt text ending with the [CONFIDENCE: X.X] instruction
    """
    a = activity
    hints = infer_workout_hints(a)
    workout_section = (
        "\n\n--- WORKOUT TYPE INFERENCE (from data) ---\n" + "\n".join(hints) if hints else ""
    )
    trend_section = format_trend_section(context, a) if context is not None else ""

    return f"""Analyze this {a.activity_type} workout and provide brief, actionable insights in 2-3 sentences.

IMPORTANT: Analyze the workout HOLISTICALLY. Consider:
1. Use the WORKOUT TYPE INFERENCE section (if present) which is derived from actual metrics
2. Metrics should be interpreted in context - a sprint workout may have low average cadence but very high intensity
3. Compare aerobic vs anaerobic training effects to understand the workout's purpose
4. A high max HR with moderate average HR suggests interval training
5. Don't judge metrics in isolation - understand the full picture
6. Time of day affects performance (morning: fresh but stiff, afternoon: peak body temp, evening: accumulated fatigue, night: lower visibility)
7. The activity name often contains LOCATION info (city, park, trail) - consider terrain and environmental factors

=== CONTEXT ===
Activity: {a.activity_name} (Location hint in name)
Type: {a.activity_type}
Time of Day: {time_of_day(a.start_time_local)}
Date/Time: {a.start_time_local}

=== TIMING ===
Duration: {_scaled(a.duration, 60, ".1f")} minutes
Moving Time: {_scaled(a.moving_duration, 60, ".1f")} min
Elapsed Time: {_scaled(a.elapsed_duration, 60, ".1f")} min

=== DISTANCE & PACE ===
Distance: {_scaled(a.distance, 1000, ".2f")} km
Average Pace: {_na(a.pace_min_per_km, ".2f")} min/km
Best Pace: {_na(speed_to_pace(a.best_pace), ".2f")} min/km
Grade-Adjusted Pace: {_na(speed_to_pace(a.avg_grade_adjusted_pace), ".2f")} min/km

=== HEART RATE ===
Average HR: {_na(a.average_hr)} bpm
Max HR: {_na(a.max_hr)} bpm

=== TRAINING EFFECT ===
Primary Benefit: {_na(a.training_effect_label)}
Aerobic Effect: {_na(a.aerobic_training_effect)}
Anaerobic Effect: {_na(a.anaerobic_training_effect)}
Training Load: {_na(a.training_load)}
VO2 Max: {_na(a.vo2_max)}

=== POWER ===
Avg Power: {_na(a.avg_power)} W
Max Power: {_na(a.max_power)} W
Normalized Power: {_na(a.norm_power)} W

=== RUNNING DYNAMICS ===
Cadence: {_na(a.average_cadence)} spm (max: {_na(a.max_cadence)})
Stride Length: {_scaled(a.avg_stride_length, 100, ".2f")} m
Vertical Ratio: {_na(a.avg_vertical_ratio)} %
Vertical Oscillation: {_na(a.avg_vertical_oscillation)} cm
Ground Contact Time: {_na(a.avg_ground_contact_time)} ms

=== ELEVATION ===
Total Ascent: {_na(a.elevation_gain)} m
Total Descent: {_na(a.elevation_loss)} m
Min/Max Elevation: {_na(a.min_elevation)} / {_na(a.max_elevation)} m

=== STAMINA ===
Beginning: {_percent(a.beginning_stamina)}%
Ending: {_percent(a.ending_stamina)}%
Min: {_percent(a.min_stamina)}%

=== INTENSITY MINUTES ===
Moderate: {_na(a.moderate_intensity_minutes)} min
Vigorous: {_na(a.vigorous_intensity_minutes)} min

=== RECOVERY INDICATORS ===
Calories: {_na(a.calories)}
Est. Sweat Loss: {_na(a.estimated_sweat_loss)} ml
Body Battery Impact: {_na(a.body_battery_change)}

=== ENVIRONMENT ===
Avg Temp: {_na(a.avg_temperature)} °C
Min/Max Temp: {_na(a.min_temperature)} / {_na(a.max_temperature)} °C{workout_section}{trend_section}

Focus on: understanding the workout's PURPOSE based on the inferred workout type and metrics, evaluating training intensity, recovery recommendations, and trending performance vs historical data if available. Keep response concise (2-3 sentences).

{CONFIDENCE_INSTRUCTION}"""
