"""
Insight domain models.

InsightRecord is the persisted entity (one per activity).  InsightOutcome is
the tagged result of processing one activity, and SyncSummary tallies a batch.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from insightsync.remote.markers import format_insight_comment


class InsightRecord(BaseModel):
    """A generated insight, keyed by activity identifier."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    activity_id: str = Field(..., description="Activity identifier (unique key)")
    activity_name: str = Field(default="", description="Denormalized for display")
    insight: str = Field(..., description="Insight text without the confidence tag")
    model: str = Field(default="unknown", description="Model identifier")
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    created_at: str | None = Field(default=None, description="Set by the store on insert")

    @field_validator("activity_id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        return str(value)

    @property
    def confidence_percent(self) -> str:
        return f"{self.confidence * 100:.0f}"

    def to_comment(self) -> str:
        """Display text posted to the remote activity description."""
        return format_insight_comment(self.model, self.confidence, self.insight)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "activity_id": self.activity_id,
            "activity_name": self.activity_name,
            "insight": self.insight,
            "model": self.model,
            "confidence": self.confidence,
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> InsightRecord:
        confidence = row.get("confidence")
        return cls(
            activity_id=row["activity_id"],
            activity_name=row.get("activity_name") or "",
            insight=row.get("insight") or "",
            model=row.get("model") or "unknown",
            confidence=0.7 if confidence is None else min(1.0, max(0.0, float(confidence))),
            created_at=row.get("created_at"),
        )


class OutcomeStatus(str, Enum):
    """What happened to one activity in a processing pass."""

    DISABLED = "disabled"  # Feature flag off or no API key
    SKIPPED = "skipped"  # Insight already stored
    FAILED = "failed"  # Generation returned nothing
    GENERATED = "generated"  # New insight stored


@dataclass(frozen=True)
class InsightOutcome:
    """Tagged result of InsightService.process."""

    status: OutcomeStatus
    activity_id: str | None = None
    reason: str | None = None
    record: InsightRecord | None = None
    remote_posted: bool | None = None

    @classmethod
    def disabled(cls) -> InsightOutcome:
        return cls(status=OutcomeStatus.DISABLED, reason="AI insights disabled")

    @classmethod
    def skipped(cls, activity_id: str, reason: str) -> InsightOutcome:
        return cls(status=OutcomeStatus.SKIPPED, activity_id=activity_id, reason=reason)

    @classmethod
    def failed(cls, activity_id: str, reason: str) -> InsightOutcome:
        return cls(status=OutcomeStatus.FAILED, activity_id=activity_id, reason=reason)

    @classmethod
    def generated(cls, record: InsightRecord, remote_posted: bool | None = None) -> InsightOutcome:
        return cls(
            status=OutcomeStatus.GENERATED,
            activity_id=record.activity_id,
            record=record,
            remote_posted=remote_posted,
        )

    @property
    def is_generated(self) -> bool:
        return self.status is OutcomeStatus.GENERATED


@dataclass
class SyncSummary:
    """Per-run tally printed at the end of every batch operation."""

    processed: int = 0
    synced: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        return self.processed + self.synced + self.skipped + self.errors

    def as_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "synced": self.synced,
            "skipped": self.skipped,
            "errors": self.errors,
        }
