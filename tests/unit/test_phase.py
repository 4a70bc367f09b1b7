"""
Tests for phase classification and projection.

Tests the phase bands around the cycle, projection of a compiled profile
onto arbitrary instants, and the next-peak guarantees.
"""

import math

from datetime import UTC, datetime, timedelta

import pytest

from ultradian.analysis.phase import (
    classify_phase,
    normalise_angle,
    project_phase_at,
    seconds_between,
)
from ultradian.analysis.types import RhythmProfile
from ultradian.constants import RhythmPhase

ANCHOR = datetime(2025, 3, 1, 9, 0, 0, 250000, tzinfo=UTC)


def make_profile(period: float = 6000.0, anchor: datetime = ANCHOR) -> RhythmProfile:
    return RhythmProfile(
        subject_id="alice",
        dominant_period_seconds=period,
        phase_anchor_at=anchor,
        amplitude=2.5,
        confidence=0.8123456,
        sample_count=42,
        computed_at=anchor,
    )


@pytest.mark.business_logic
class TestClassifyPhase:
    """Test mapping of phase angles to bands."""

    @pytest.mark.parametrize("k", range(24))
    def test_band_follows_cosine(self, k):
        """Band is PEAK for cos >= 0.5, TROUGH for cos <= -0.5, else RECOVERY."""
        angle = (k + 0.5) * math.pi / 12
        cosine = math.cos(angle)

        if cosine >= 0.5:
            expected = RhythmPhase.PEAK
        elif cosine <= -0.5:
            expected = RhythmPhase.TROUGH
        else:
            expected = RhythmPhase.RECOVERY

        assert classify_phase(angle) == expected

    def test_landmarks(self):
        """Zero is peak, π is trough, quarter turns are recovery."""
        assert classify_phase(0.0) == RhythmPhase.PEAK
        assert classify_phase(math.pi) == RhythmPhase.TROUGH
        assert classify_phase(math.pi / 2) == RhythmPhase.RECOVERY
        assert classify_phase(3 * math.pi / 2) == RhythmPhase.RECOVERY

    def test_band_sizes(self):
        """Peak and trough each cover a third of the cycle."""
        samples = 3000
        counts = {phase: 0 for phase in RhythmPhase}
        for i in range(samples):
            counts[classify_phase(2 * math.pi * (i + 0.5) / samples)] += 1

        for phase in RhythmPhase:
            assert counts[phase] == pytest.approx(samples / 3, abs=2)

    def test_negative_and_wrapped_angles(self):
        """Angles outside [0, 2π) classify like their reduced equivalents."""
        assert classify_phase(-0.1) == RhythmPhase.PEAK
        assert classify_phase(2 * math.pi + math.pi) == RhythmPhase.TROUGH
        assert classify_phase(-math.pi / 2) == RhythmPhase.RECOVERY


class TestNormaliseAngle:
    """Test reduction of angles into [0, 2π)."""

    def test_range(self):
        """Results always land in [0, 2π)."""
        for raw in (-7.5, -1e-18, 0.0, 3.0, 2 * math.pi, 100.0):
            angle = normalise_angle(raw)
            assert 0.0 <= angle < 2 * math.pi

    def test_full_turn_folds_to_zero(self):
        """Exactly one turn is the same as zero."""
        assert normalise_angle(2 * math.pi) == 0.0


class TestSecondsBetween:
    """Test microsecond-exact elapsed time."""

    def test_sub_second_precision(self):
        """Microseconds survive the difference."""
        later = ANCHOR + timedelta(seconds=10, microseconds=1)
        assert seconds_between(ANCHOR, later) == pytest.approx(10.000001, abs=1e-9)

    def test_signed(self):
        """Instants before the start give negative seconds."""
        assert seconds_between(ANCHOR, ANCHOR - timedelta(minutes=1)) == -60.0


@pytest.mark.business_logic
class TestProjectPhaseAt:
    """Test projection of a profile onto an instant."""

    def test_at_anchor_is_peak(self):
        """At the anchor the wave is at its maximum and the next peak is a period away."""
        snapshot = project_phase_at(make_profile(), ANCHOR)

        assert snapshot.phase == RhythmPhase.PEAK
        assert snapshot.current_amplitude_fraction == pytest.approx(1.0)
        assert snapshot.next_peak_at == ANCHOR + timedelta(seconds=6000)

    def test_half_period_is_trough(self):
        """Half a period after the anchor the wave is at its minimum."""
        at = ANCHOR + timedelta(seconds=3000)

        snapshot = project_phase_at(make_profile(), at)

        assert snapshot.phase == RhythmPhase.TROUGH
        assert snapshot.current_amplitude_fraction == pytest.approx(-1.0)
        assert snapshot.next_peak_at == ANCHOR + timedelta(seconds=6000)

    def test_quarter_period_is_recovery(self):
        """A quarter period after the anchor the wave crosses zero."""
        snapshot = project_phase_at(make_profile(), ANCHOR + timedelta(seconds=1500))

        assert snapshot.phase == RhythmPhase.RECOVERY
        assert snapshot.current_amplitude_fraction == pytest.approx(0.0, abs=1e-9)

    def test_instants_before_anchor(self):
        """Projection works backwards in time from the anchor."""
        at = ANCHOR - timedelta(seconds=500)

        snapshot = project_phase_at(make_profile(), at)

        assert snapshot.next_peak_at == ANCHOR
        assert snapshot.phase == RhythmPhase.PEAK

    def test_many_cycles_later(self):
        """Projection stays exact many cycles after the anchor."""
        at = ANCHOR + timedelta(seconds=6000 * 250 + 3000)

        snapshot = project_phase_at(make_profile(), at)

        assert snapshot.phase == RhythmPhase.TROUGH
        assert snapshot.next_peak_at == ANCHOR + timedelta(seconds=6000 * 251)

    @pytest.mark.parametrize("offset_seconds", [0.0, 0.000001, 1.5, 2999.999, 5999.9999])
    def test_next_peak_within_one_period(self, offset_seconds):
        """Next peak is strictly after the instant and at most a period later."""
        at = ANCHOR + timedelta(seconds=offset_seconds)

        snapshot = project_phase_at(make_profile(), at)

        assert at < snapshot.next_peak_at <= at + timedelta(seconds=6000)

    def test_carries_profile_figures(self):
        """Snapshot reports the profile's cycle length, confidence and sample count."""
        snapshot = project_phase_at(make_profile(period=5400.0), ANCHOR)

        assert snapshot.dominant_period_minutes == pytest.approx(90.0)
        assert snapshot.confidence == pytest.approx(0.8123456)
        assert snapshot.sample_count == 42

    def test_naive_instant_treated_as_utc(self):
        """A naive instant is interpreted as UTC."""
        naive = (ANCHOR + timedelta(seconds=3000)).replace(tzinfo=None)

        snapshot = project_phase_at(make_profile(), naive)

        assert snapshot.phase == RhythmPhase.TROUGH
        assert snapshot.next_peak_at.tzinfo is not None
