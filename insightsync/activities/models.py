"""
Activity domain models.

Activities arrive as Garmin Connect summary JSON (camelCase keys).  They are
read-only to the engine: each pass parses them once into frozen models and
derives everything else from those values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Activity(BaseModel):
    """One recorded exercise session."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    # Identity
    activity_id: str = Field(..., alias="activityId", description="Normalized to string")
    activity_name: str = Field(default="", alias="activityName")
    activity_type: str = Field(default="unknown", description="activityType.typeKey")
    start_time_local: str = Field(..., alias="startTimeLocal", description="Local civil ISO-8601")

    # Timing (seconds) and distance (metres)
    distance: float | None = None
    duration: float | None = None
    moving_duration: float | None = Field(default=None, alias="movingDuration")
    elapsed_duration: float | None = Field(default=None, alias="elapsedDuration")

    # Speed (m/s)
    average_speed: float | None = Field(default=None, alias="averageSpeed")
    max_speed: float | None = Field(default=None, alias="maxSpeed")
    avg_grade_adjusted_pace: float | None = Field(default=None, alias="avgGradeAdjustedPace")
    best_pace: float | None = Field(default=None, alias="bestPace")

    # Heart rate
    average_hr: float | None = Field(default=None, alias="averageHR")
    max_hr: float | None = Field(default=None, alias="maxHR")

    # Elevation (metres)
    elevation_gain: float | None = Field(default=None, alias="elevationGain")
    elevation_loss: float | None = Field(default=None, alias="elevationLoss")
    min_elevation: float | None = Field(default=None, alias="minElevation")
    max_elevation: float | None = Field(default=None, alias="maxElevation")

    # Running dynamics
    average_cadence: float | None = Field(
        default=None, alias="averageRunningCadenceInStepsPerMinute"
    )
    max_cadence: float | None = Field(default=None, alias="maxRunningCadenceInStepsPerMinute")
    avg_stride_length: float | None = Field(default=None, alias="avgStrideLength")
    avg_ground_contact_time: float | None = Field(default=None, alias="avgGroundContactTime")
    avg_vertical_oscillation: float | None = Field(default=None, alias="avgVerticalOscillation")
    avg_vertical_ratio: float | None = Field(default=None, alias="avgVerticalRatio")

    # Training effect
    aerobic_training_effect: float | None = Field(default=None, alias="aerobicTrainingEffect")
    anaerobic_training_effect: float | None = Field(default=None, alias="anaerobicTrainingEffect")
    training_effect_label: str | None = Field(default=None, alias="trainingEffectLabel")
    training_load: float | None = Field(default=None, alias="activityTrainingLoad")
    vo2_max: float | None = Field(default=None, alias="vO2MaxValue")

    # Power (watts)
    avg_power: float | None = Field(default=None, alias="avgPower")
    max_power: float | None = Field(default=None, alias="maxPower")
    norm_power: float | None = Field(default=None, alias="normPower")

    # Stamina (0..1)
    beginning_stamina: float | None = Field(default=None, alias="beginningStamina")
    ending_stamina: float | None = Field(default=None, alias="endingStamina")
    min_stamina: float | None = Field(default=None, alias="minStamina")

    # Temperature (°C)
    avg_temperature: float | None = Field(default=None, alias="avgTemperature")
    min_temperature: float | None = Field(default=None, alias="minTemperature")
    max_temperature: float | None = Field(default=None, alias="maxTemperature")

    # Recovery / load
    calories: float | None = None
    moderate_intensity_minutes: float | None = Field(default=None, alias="moderateIntensityMinutes")
    vigorous_intensity_minutes: float | None = Field(default=None, alias="vigorousIntensityMinutes")
    body_battery_change: float | None = Field(default=None, alias="bodyBatteryChange")
    estimated_sweat_loss: float | None = Field(default=None, alias="estimatedSweatLoss")

    @model_validator(mode="before")
    @classmethod
    def _flatten_activity_type(cls, data: Any) -> Any:
        """Lift Garmin's nested activityType.typeKey into activity_type."""
        if isinstance(data, dict) and "activity_type" not in data:
            nested = data.get("activityType")
            if isinstance(nested, dict) and nested.get("typeKey"):
                data = {**data, "activity_type": nested["typeKey"]}
            elif isinstance(nested, str) and nested:
                data = {**data, "activity_type": nested}
        return data

    @field_validator("activity_id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        if value is None or value == "":
            raise ValueError("activityId is required")
        return str(value)

    @field_validator("start_time_local")
    @classmethod
    def _validate_start_time(cls, value: str) -> str:
        """Reject timestamps that started_at / civil_date could not read."""
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
            date.fromisoformat(value[:10])
        except ValueError as e:
            raise ValueError(f"startTimeLocal is not an ISO-8601 timestamp: {value!r}") from e
        return value

    @classmethod
    def from_garmin(cls, payload: dict[str, Any]) -> Activity:
        """Build from a Garmin Connect activity summary dict."""
        return cls.model_validate(payload)

    @property
    def started_at(self) -> datetime:
        """Start time as a naive local datetime (any UTC offset is dropped)."""
        parsed = datetime.fromisoformat(self.start_time_local.replace("Z", "+00:00"))
        return parsed.replace(tzinfo=None)

    @property
    def civil_date(self) -> date:
        """Calendar date of the local start time, by simple truncation."""
        return date.fromisoformat(self.start_time_local[:10])

    @property
    def distance_km(self) -> float | None:
        return self.distance / 1000 if self.distance else None

    @property
    def pace_min_per_km(self) -> float | None:
        return speed_to_pace(self.average_speed)


def speed_to_pace(speed_mps: float | None) -> float | None:
    """Convert m/s into minutes per kilometre; None for missing or non-positive speed."""
    if not speed_mps or speed_mps <= 0:
        return None
    return 1000 / speed_mps / 60


@dataclass(frozen=True)
class TrendContext:
    """Comparison activities for one activity; never contains the activity itself."""

    yesterday: Activity | None = None
    last_week: Activity | None = None
    recent: tuple[Activity, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return self.yesterday is None and self.last_week is None and not self.recent
