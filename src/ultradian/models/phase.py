"""Pydantic response models for phase queries."""

from pydantic import BaseModel, Field

from ultradian.analysis.types import InsufficientData, PhaseSnapshot


class PhaseReport(BaseModel):
    """Caller-facing rendering of a phase query."""

    has_profile: bool = Field(description="Whether a rhythm profile exists")
    phase: str | None = Field(default=None, description="peak, trough or recovery")
    dominant_cycle_minutes: float | None = Field(
        default=None, description="Cycle length (minutes, 2 dp)"
    )
    next_peak_at: str | None = Field(default=None, description="ISO-8601 next peak")
    confidence: float | None = Field(default=None, description="0-1 (4 dp)")
    amplitude_fraction: float | None = Field(
        default=None, description="cos(phase angle), -1 to 1 (4 dp)"
    )
    sample_count: int | None = Field(default=None, description="Events analysed")
    message: str | None = Field(default=None, description="Why no profile exists")

    class Config:
        json_schema_extra = {
            "example": {
                "has_profile": True,
                "phase": "peak",
                "dominant_cycle_minutes": 98.18,
                "next_peak_at": "2025-03-01T15:42:10.123456+00:00",
                "confidence": 0.8123,
                "amplitude_fraction": 0.7071,
                "sample_count": 42,
            }
        }

    @classmethod
    def from_snapshot(cls, snapshot: PhaseSnapshot) -> "PhaseReport":
        """Render a snapshot with rounded figures."""
        return cls(
            has_profile=True,
            phase=snapshot.phase.value,
            dominant_cycle_minutes=round(snapshot.dominant_period_minutes, 2),
            next_peak_at=snapshot.next_peak_at.isoformat(),
            confidence=round(snapshot.confidence, 4),
            amplitude_fraction=round(snapshot.current_amplitude_fraction, 4),
            sample_count=snapshot.sample_count,
        )

    @classmethod
    def insufficient(cls, outcome: InsufficientData) -> "PhaseReport":
        """Render the no-profile state."""
        if outcome.reason == "degenerate_signal":
            message = (
                "No rhythm detected yet. Varied load scores across tasks "
                "are needed to build your cognitive profile."
            )
        else:
            message = (
                f"Insufficient data. Complete at least {outcome.required_samples} "
                "tasks to build your cognitive profile."
            )
        return cls(has_profile=False, message=message)

    @classmethod
    def from_outcome(cls, outcome: PhaseSnapshot | InsufficientData) -> "PhaseReport":
        """Render either query outcome."""
        if isinstance(outcome, InsufficientData):
            return cls.insufficient(outcome)
        return cls.from_snapshot(outcome)
