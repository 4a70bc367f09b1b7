"""
Tests for profile compilation.

Tests the sample threshold, the lookback window, event type filtering,
degenerate signals, and what gets written to the profile store.
"""

from datetime import UTC, datetime, timedelta

import pytest

from tests.helpers.memory_stores import InMemoryEventStore, InMemoryProfileStore
from tests.helpers.synthetic_data import generate_rhythm_events
from ultradian.analysis.compiler import ProfileCompiler, derive_phase_anchor
from ultradian.analysis.periodogram import analyse
from ultradian.analysis.phase import project_phase_at
from ultradian.analysis.types import InsufficientData, RhythmProfile
from ultradian.config import RhythmSettings
from ultradian.constants import RhythmPhase
from ultradian.utils.timestamps import from_epoch_seconds, to_epoch_seconds

NOW = datetime(2025, 3, 3, 8, 0, 0, tzinfo=UTC)
VARIED_SCORES = [2, 8, 3, 9, 1, 7, 4, 10, 2, 6, 5, 9]


def add_varied_events(store: InMemoryEventStore, count: int, end: datetime = NOW):
    """Add `count` events 17 minutes apart ending just before `end`."""
    for i in range(count):
        store.add(
            "alice",
            end - timedelta(minutes=17 * (count - i)),
            load_score=VARIED_SCORES[i % len(VARIED_SCORES)],
        )


@pytest.fixture
def stores():
    return InMemoryEventStore(), InMemoryProfileStore()


@pytest.mark.business_logic
class TestSampleThreshold:
    """Test the minimum event count."""

    def test_nine_events_insufficient(self, stores):
        """Below ten events no profile is computed or stored."""
        events, profiles = stores
        add_varied_events(events, 9)

        outcome = ProfileCompiler(events, profiles).compute_profile("alice", now=NOW)

        assert isinstance(outcome, InsufficientData)
        assert outcome.reason == "insufficient_samples"
        assert outcome.sample_count == 9
        assert outcome.required_samples == 10
        assert profiles.upsert_calls == 0

    def test_ten_events_compute(self, stores):
        """Exactly ten varied events produce a stored profile."""
        events, profiles = stores
        add_varied_events(events, 10)

        outcome = ProfileCompiler(events, profiles).compute_profile("alice", now=NOW)

        assert isinstance(outcome, RhythmProfile)
        assert outcome.sample_count == 10
        assert outcome.computed_at == NOW
        assert 3600.0 <= outcome.dominant_period_seconds <= 10800.0
        assert 0.0 <= outcome.confidence <= 1.0
        assert profiles.get("alice") == outcome

    def test_unknown_subject(self, stores):
        """A subject without events is simply insufficient."""
        events, profiles = stores

        outcome = ProfileCompiler(events, profiles).compute_profile("nobody", now=NOW)

        assert isinstance(outcome, InsufficientData)
        assert outcome.sample_count == 0

    def test_threshold_from_settings(self, stores):
        """min_samples is configurable."""
        events, profiles = stores
        add_varied_events(events, 6)

        compiler = ProfileCompiler(events, profiles, settings=RhythmSettings(min_samples=5))

        assert isinstance(compiler.compute_profile("alice", now=NOW), RhythmProfile)


class TestEventSelection:
    """Test which events feed the periodogram."""

    def test_events_older_than_lookback_ignored(self, stores):
        """Events more than 14 days old do not count towards the threshold."""
        events, profiles = stores
        add_varied_events(events, 5)
        add_varied_events(events, 20, end=NOW - timedelta(days=15))

        outcome = ProfileCompiler(events, profiles).compute_profile("alice", now=NOW)

        assert isinstance(outcome, InsufficientData)
        assert outcome.sample_count == 5

    def test_started_events_ignored_by_default(self, stores):
        """Only completions are analysed unless configured otherwise."""
        events, profiles = stores
        add_varied_events(events, 6)
        for i in range(6):
            events.add("alice", NOW - timedelta(hours=i + 1), 3, event_type="started")

        outcome = ProfileCompiler(events, profiles).compute_profile("alice", now=NOW)

        assert isinstance(outcome, InsufficientData)
        assert outcome.sample_count == 6

    def test_other_subjects_ignored(self, stores):
        """Another subject's events are not mixed in."""
        events, profiles = stores
        add_varied_events(events, 10)

        outcome = ProfileCompiler(events, profiles).compute_profile("bob", now=NOW)

        assert isinstance(outcome, InsufficientData)

    def test_decimation_keeps_full_sample_count(self, stores):
        """The stored sample count is the in-window count, not the decimated one."""
        events, profiles = stores
        add_varied_events(events, 40)

        compiler = ProfileCompiler(events, profiles, settings=RhythmSettings(max_samples=12))
        outcome = compiler.compute_profile("alice", now=NOW)

        assert isinstance(outcome, RhythmProfile)
        assert outcome.sample_count == 40


@pytest.mark.business_logic
class TestDegenerateSignal:
    """Test that constant load scores never produce a profile."""

    def test_constant_scores(self, stores):
        """Identical scores are reported as a degenerate signal."""
        events, profiles = stores
        for i in range(12):
            events.add("alice", NOW - timedelta(minutes=13 * (i + 1)), load_score=5)

        outcome = ProfileCompiler(events, profiles).compute_profile("alice", now=NOW)

        assert isinstance(outcome, InsufficientData)
        assert outcome.reason == "degenerate_signal"
        assert outcome.sample_count == 12
        assert profiles.upsert_calls == 0

    def test_degenerate_keeps_existing_profile(self, stores):
        """A degenerate recompute leaves a previously cached profile untouched."""
        events, profiles = stores
        add_varied_events(events, 10, end=NOW - timedelta(days=13))
        compiler = ProfileCompiler(events, profiles)
        first = compiler.compute_profile("alice", now=NOW - timedelta(days=12))
        assert isinstance(first, RhythmProfile)

        events.events.clear()
        for i in range(12):
            events.add("alice", NOW - timedelta(minutes=13 * (i + 1)), load_score=4)

        outcome = compiler.compute_profile("alice", now=NOW)

        assert isinstance(outcome, InsufficientData)
        assert profiles.get("alice") == first


class TestStoredProfile:
    """Test the values written by a successful compile."""

    def test_recompute_overwrites(self, stores):
        """Compiling twice keeps a single profile holding the latest values."""
        events, profiles = stores
        add_varied_events(events, 10)
        compiler = ProfileCompiler(events, profiles)

        compiler.compute_profile("alice", now=NOW)
        add_varied_events(events, 10, end=NOW + timedelta(hours=4))
        later = NOW + timedelta(hours=5)
        second = compiler.compute_profile("alice", now=later)

        assert profiles.upsert_calls == 2
        assert list(profiles.profiles) == ["alice"]
        assert profiles.get("alice") == second
        assert second.computed_at == later
        assert second.sample_count == 20

    def test_store_failure_propagates(self, stores):
        """Errors from the event store reach the caller unchanged."""
        events, profiles = stores
        events.error = ConnectionError("store offline")

        with pytest.raises(ConnectionError, match="store offline"):
            ProfileCompiler(events, profiles).compute_profile("alice", now=NOW)

    def test_uses_clock_when_now_omitted(self, stores):
        """The injected clock supplies the reference instant."""
        events, profiles = stores
        add_varied_events(events, 10)

        compiler = ProfileCompiler(events, profiles, clock=lambda: NOW)
        outcome = compiler.compute_profile("alice")

        assert isinstance(outcome, RhythmProfile)
        assert outcome.computed_at == NOW

    def test_injected_periodogram(self, stores):
        """The spectral estimator is a replaceable collaborator."""
        events, profiles = stores
        add_varied_events(events, 10)
        calls = []

        def recording_periodogram(times, values, min_period, max_period, num_frequencies):
            calls.append((len(times), min_period, max_period, num_frequencies))
            return analyse(times, values, min_period, max_period, num_frequencies)

        ProfileCompiler(events, profiles, periodogram=recording_periodogram).compute_profile(
            "alice", now=NOW
        )

        assert calls == [(10, 3600.0, 10800.0, 80)]

    def test_rhythmic_events_project_to_peak(self, stores):
        """Scores peaking at a known instant yield a profile that projects a peak there."""
        events, profiles = stores
        events.events.extend(generate_rhythm_events(n_events=60, period=6000.0, end=NOW))

        # 5000 + 50·20 = 6000 lies exactly on this grid
        settings = RhythmSettings(
            min_period_seconds=5000.0, max_period_seconds=7000.0, num_frequencies=101
        )

        outcome = ProfileCompiler(events, profiles, settings=settings).compute_profile(
            "alice", now=NOW
        )

        assert isinstance(outcome, RhythmProfile)
        assert outcome.dominant_period_seconds == pytest.approx(6000.0)
        assert project_phase_at(outcome, NOW).phase == RhythmPhase.PEAK

    def test_inspect_spectrum_does_not_store(self, stores):
        """Spectrum inspection runs the same fit without writing."""
        events, profiles = stores
        add_varied_events(events, 10)

        result = ProfileCompiler(events, profiles).inspect_spectrum("alice", now=NOW)

        assert len(result.spectrum) == 80
        assert profiles.upsert_calls == 0


class TestDerivePhaseAnchor:
    """Test conversion of a fitted phase to a peak instant."""

    def test_zero_phase_is_first_sample(self):
        """With zero phase the wave peaks at the earliest sample."""
        start = to_epoch_seconds(NOW)

        assert derive_phase_anchor(start, 6000.0, 0.0) == from_epoch_seconds(start)

    def test_positive_phase_wraps_forward(self):
        """A positive phase puts the peak later in the first period."""
        start = to_epoch_seconds(NOW)

        anchor = derive_phase_anchor(start, 6000.0, 3.141592653589793 / 2)

        assert anchor == NOW + timedelta(seconds=4500)

    def test_negative_phase(self):
        """A negative phase puts the peak a fraction of a period after the start."""
        start = to_epoch_seconds(NOW)

        anchor = derive_phase_anchor(start, 6000.0, -3.141592653589793 / 2)

        assert anchor == NOW + timedelta(seconds=1500)
