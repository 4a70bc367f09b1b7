"""
Profile compilation: events in, compact rhythm model out.

The compiler pulls a subject's recent events, fits the dominant ultradian
sinusoid and stores the result as a profile that later projections can
evaluate cheaply.
"""

import logging
import math

from collections.abc import Callable
from datetime import datetime, timedelta

from ultradian.analysis.periodogram import analyse, decimate_samples
from ultradian.analysis.protocols import EventStore, Periodogram, ProfileStore
from ultradian.analysis.types import (
    InsufficientData,
    InsufficientReason,
    ProfileFields,
    RhythmProfile,
    SpectralResult,
)
from ultradian.config import RhythmSettings
from ultradian.constants import TWO_PI
from ultradian.utils.timestamps import (
    ensure_utc,
    from_epoch_seconds,
    to_epoch_seconds,
    utc_now,
)

logger = logging.getLogger(__name__)

__all__ = ["ProfileCompiler", "derive_phase_anchor"]


def derive_phase_anchor(
    min_time: float,
    period_seconds: float,
    phase_radians: float,
) -> datetime:
    """
    Convert a fitted phase into a concrete instant at which the wave peaks.

    The periodogram fits y(t) ≈ R·cos(ω(t − t_min) + φ), which peaks where
    ω(t − t_min) + φ = 0, i.e. t = t_min − φ/ω. The offset is reduced into
    [0, period) so the anchor is never before the data window starts.

    Args:
        min_time: Earliest sample time (epoch seconds)
        period_seconds: Dominant period (seconds)
        phase_radians: Fitted phase from the periodogram

    Returns:
        UTC instant of a peak, rounded to the microsecond
    """
    omega = TWO_PI / period_seconds
    offset = math.fmod(-phase_radians / omega, period_seconds)
    if offset < 0.0:
        offset += period_seconds
    if offset >= period_seconds:
        offset = 0.0

    return from_epoch_seconds(min_time + offset)


class ProfileCompiler:
    """
    Compiles and stores a subject's rhythm profile.

    Example:
        >>> compiler = ProfileCompiler(event_store, profile_store)
        >>> outcome = compiler.compute_profile("alice")
        >>> if isinstance(outcome, RhythmProfile):
        ...     print(f"{outcome.dominant_period_seconds / 60:.0f} min cycle")
    """

    def __init__(
        self,
        event_store: EventStore,
        profile_store: ProfileStore,
        periodogram: Periodogram = analyse,
        settings: RhythmSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the compiler.

        Args:
            event_store: Source of recorded events
            profile_store: Destination for compiled profiles
            periodogram: Spectral estimator (Lomb-Scargle by default)
            settings: Search band, lookback and sample thresholds
            clock: Returns the current UTC instant when `now` is omitted
        """
        self.event_store = event_store
        self.profile_store = profile_store
        self.periodogram = periodogram
        self.settings = settings or RhythmSettings()
        self.clock = clock

    def compute_profile(
        self, subject_id: str, now: datetime | None = None
    ) -> RhythmProfile | InsufficientData:
        """
        Fit the subject's rhythm over the lookback window and upsert it.

        Store failures propagate to the caller unchanged.

        Args:
            subject_id: Subject to compile
            now: Reference instant (defaults to the clock)

        Returns:
            The stored RhythmProfile, or InsufficientData when there are too
            few events or the signal is degenerate. Nothing is written in
            the latter case.
        """
        now = ensure_utc(now if now is not None else self.clock())

        fitted = self._fit(subject_id, now)
        if isinstance(fitted, InsufficientData):
            return fitted
        result, min_time, sample_count = fitted

        anchor = derive_phase_anchor(
            min_time=min_time,
            period_seconds=result.dominant_period_seconds,
            phase_radians=result.phase,
        )

        profile = self.profile_store.upsert(
            subject_id,
            ProfileFields(
                dominant_period_seconds=result.dominant_period_seconds,
                phase_anchor_at=anchor,
                amplitude=result.amplitude,
                confidence=result.power,
                sample_count=sample_count,
                computed_at=now,
            ),
        )

        logger.info(
            f"Subject {subject_id}: {result.dominant_period_seconds / 60:.1f} min cycle "
            f"(confidence {result.power:.3f}, {sample_count} events)"
        )
        return profile

    def inspect_spectrum(
        self, subject_id: str, now: datetime | None = None
    ) -> SpectralResult | InsufficientData:
        """Run the same fit as compute_profile without storing anything."""
        now = ensure_utc(now if now is not None else self.clock())

        fitted = self._fit(subject_id, now)
        if isinstance(fitted, InsufficientData):
            return fitted
        return fitted[0]

    def _fit(
        self, subject_id: str, now: datetime
    ) -> tuple[SpectralResult, float, int] | InsufficientData:
        """(result, earliest sample time, in-window event count) or a non-result."""
        settings = self.settings
        since = now - timedelta(days=settings.lookback_days)

        events = self.event_store.fetch_recent_events(
            subject_id, since, event_types=settings.event_types
        )
        sample_count = len(events)

        if sample_count < settings.min_samples:
            logger.info(
                f"Subject {subject_id}: {sample_count} events since "
                f"{since:%Y-%m-%d %H:%M}, need {settings.min_samples}"
            )
            return self._insufficient(subject_id, "insufficient_samples", sample_count)

        times, values = decimate_samples(
            [to_epoch_seconds(event.occurred_at) for event in events],
            [float(event.load_score) for event in events],
            settings.max_samples,
        )

        result = self.periodogram(
            times,
            values,
            settings.min_period_seconds,
            settings.max_period_seconds,
            settings.num_frequencies,
        )

        if result.is_degenerate:
            logger.info(
                f"Subject {subject_id}: no periodicity in {sample_count} events "
                "(constant or degenerate load scores)"
            )
            return self._insufficient(subject_id, "degenerate_signal", sample_count)

        return result, float(times.min()), sample_count

    def _insufficient(
        self, subject_id: str, reason: InsufficientReason, sample_count: int
    ) -> InsufficientData:
        return InsufficientData(
            subject_id=subject_id,
            reason=reason,
            sample_count=sample_count,
            required_samples=self.settings.min_samples,
        )
