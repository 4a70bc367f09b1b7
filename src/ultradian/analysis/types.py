"""Rhythm analysis type definitions."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ultradian.constants import MAX_LOAD_SCORE, MIN_LOAD_SCORE, RhythmPhase

# ============================================================================
# Event Types
# ============================================================================


class RhythmEvent(BaseModel):
    """
    One recorded work-state transition, as supplied by the event store.

    Attributes:
        subject_id: Owner of the event
        occurred_at: UTC instant of the transition (microsecond precision)
        load_score: Cognitive load of the work unit (1-10)
        event_type: "started" or "completed"
        item_id: Optional identifier of the work item
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    subject_id: str = Field(description="Subject identifier")
    occurred_at: datetime = Field(description="Event instant (UTC)")
    load_score: int = Field(
        ge=MIN_LOAD_SCORE, le=MAX_LOAD_SCORE, description="Cognitive load (1-10)"
    )
    event_type: str = Field(description="Event type (started/completed)")
    item_id: str | None = Field(default=None, description="Work item identifier")


# ============================================================================
# Spectral Analysis Types
# ============================================================================


class SpectrumPoint(BaseModel):
    """Normalised power at a single trial period."""

    period: float = Field(gt=0, description="Trial period (seconds)")
    power: float = Field(ge=0, le=1, description="Normalised spectral power (0-1)")


class SpectralResult(BaseModel):
    """
    Result of a Lomb-Scargle analysis.

    Attributes:
        dominant_period_seconds: Trial period with the highest power
        power: Normalised power at the dominant period (0-1)
        phase: Radians; the fitted wave peaks when ωt + phase ≡ 0 (mod 2π),
            with t measured from the earliest sample
        amplitude: Fitted sinusoid amplitude at the dominant period
        spectrum: (period, power) for every trial period, in grid order.
            Empty for degenerate input.
    """

    dominant_period_seconds: float = Field(description="Dominant period (seconds)")
    power: float = Field(ge=0, le=1, description="Power at dominant period (0-1)")
    phase: float = Field(description="Fitted phase offset (radians)")
    amplitude: float = Field(ge=0, description="Fitted amplitude")
    spectrum: list[SpectrumPoint] = Field(
        default_factory=list, description="Full power spectrum"
    )

    @property
    def is_degenerate(self) -> bool:
        """True when the engine returned its neutral result."""
        return not self.spectrum


# ============================================================================
# Profile Types
# ============================================================================


class ProfileFields(BaseModel):
    """Compiled rhythm model fields written by the profile compiler."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    dominant_period_seconds: float = Field(gt=0, description="Cycle length (seconds)")
    phase_anchor_at: datetime = Field(description="An instant at which the wave peaks")
    amplitude: float = Field(ge=0, description="Fitted amplitude")
    confidence: float = Field(ge=0, le=1, description="Normalised spectral power")
    sample_count: int = Field(ge=0, description="Events analysed")
    computed_at: datetime = Field(description="When the profile was compiled")


class RhythmProfile(ProfileFields):
    """The compiled rhythm model for one subject."""

    subject_id: str = Field(description="Subject identifier")


InsufficientReason = Literal["insufficient_samples", "degenerate_signal"]


class InsufficientData(BaseModel):
    """
    Domain non-result: no rhythm profile could be established.

    This is an expected state for new or sparsely active subjects, not an
    error.
    """

    subject_id: str = Field(description="Subject identifier")
    reason: InsufficientReason = Field(
        description="Why no profile is available"
    )
    sample_count: int = Field(ge=0, description="Events found in the window")
    required_samples: int = Field(ge=0, description="Minimum events required")


# ============================================================================
# Projection Types
# ============================================================================


class PhaseSnapshot(BaseModel):
    """Where a subject currently sits on their ultradian cycle."""

    model_config = ConfigDict(frozen=True)

    phase: RhythmPhase = Field(description="Current phase band")
    dominant_period_minutes: float = Field(gt=0, description="Cycle length (minutes)")
    next_peak_at: datetime = Field(description="Instant of the next peak")
    confidence: float = Field(ge=0, le=1, description="Profile confidence")
    current_amplitude_fraction: float = Field(
        ge=-1, le=1, description="cos(phase angle) at the projected instant"
    )
    sample_count: int = Field(ge=0, description="Events behind the profile")
