"""Pydantic models for subject listings."""

from datetime import datetime

from pydantic import BaseModel, Field

from ultradian.analysis.types import RhythmProfile


class SubjectSummary(BaseModel):
    """A subject with recorded events and its cached profile, if any."""

    subject_id: str
    event_count: int = Field(description="Events recorded (all types, all time)")
    has_profile: bool = Field(description="Whether a compiled profile is cached")
    dominant_cycle_minutes: float | None = Field(
        default=None, description="Cached cycle length (minutes, 2 dp)"
    )
    confidence: float | None = Field(default=None, description="0-1 (4 dp)")
    computed_at: datetime | None = Field(
        default=None, description="When the cached profile was compiled"
    )

    @classmethod
    def build(
        cls, subject_id: str, event_count: int, profile: RhythmProfile | None
    ) -> "SubjectSummary":
        if profile is None:
            return cls(subject_id=subject_id, event_count=event_count, has_profile=False)
        return cls(
            subject_id=subject_id,
            event_count=event_count,
            has_profile=True,
            dominant_cycle_minutes=round(profile.dominant_period_seconds / 60, 2),
            confidence=round(profile.confidence, 4),
            computed_at=profile.computed_at,
        )
