"""
Phase classification and projection.

A compiled profile fixes the cycle length and one instant at which the
fitted wave peaks (the phase anchor). Everything else is a cosine
evaluated at the elapsed time since that anchor.
"""

import math

from datetime import datetime, timedelta

from ultradian.analysis.types import PhaseSnapshot, RhythmProfile
from ultradian.constants import (
    MICROSECONDS_PER_SECOND,
    SECONDS_PER_MINUTE,
    TWO_PI,
    RhythmPhase,
)
from ultradian.constants import PhaseConstants as PC
from ultradian.utils.timestamps import ensure_utc, microseconds_between

__all__ = [
    "classify_phase",
    "normalise_angle",
    "project_phase_at",
    "seconds_between",
]


def normalise_angle(radians: float) -> float:
    """Reduce an angle into [0, 2π)."""
    theta = math.fmod(radians, TWO_PI)
    if theta < 0.0:
        theta += TWO_PI
    # -tiny + 2π rounds to exactly 2π
    if theta >= TWO_PI:
        theta = 0.0
    return theta


def classify_phase(radians: float) -> RhythmPhase:
    """
    Map a phase angle to PEAK, TROUGH or RECOVERY.

    Peak = [0, π/3) ∪ [5π/3, 2π), Trough = [2π/3, 4π/3), Recovery elsewhere;
    boundaries follow cos(θ) ≥ 0.5 and cos(θ) ≤ -0.5.
    """
    return RhythmPhase.from_phase_angle(radians)


def seconds_between(start: datetime, end: datetime) -> float:
    """Signed seconds from start to end, exact to the microsecond."""
    return microseconds_between(start, end) / MICROSECONDS_PER_SECOND


def project_phase_at(profile: RhythmProfile, at: datetime) -> PhaseSnapshot:
    """
    Project a compiled profile onto an arbitrary instant.

    Args:
        profile: Compiled rhythm profile
        at: Instant to project onto (naive values are taken as UTC)

    Returns:
        PhaseSnapshot with the phase band, amplitude fraction and next peak
    """
    at = ensure_utc(at)
    period = profile.dominant_period_seconds
    omega = TWO_PI / period

    elapsed = seconds_between(profile.phase_anchor_at, at)
    angle = normalise_angle(elapsed * omega)

    if angle < PC.AT_PEAK_EPSILON:
        seconds_to_next_peak = period
    else:
        seconds_to_next_peak = (TWO_PI - angle) / omega

    micros_to_next_peak = round(seconds_to_next_peak * MICROSECONDS_PER_SECOND)
    if micros_to_next_peak <= 0:
        # Within half a microsecond of a peak: the next one is a period away
        micros_to_next_peak = round(period * MICROSECONDS_PER_SECOND)

    return PhaseSnapshot(
        phase=classify_phase(angle),
        dominant_period_minutes=period / SECONDS_PER_MINUTE,
        next_peak_at=at + timedelta(microseconds=micros_to_next_peak),
        confidence=profile.confidence,
        current_amplitude_fraction=math.cos(angle),
        sample_count=profile.sample_count,
    )
