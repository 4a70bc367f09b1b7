"""
Synthetic test data generators for load-score rhythms.

Provides functions to generate controlled, reproducible event series for
unit testing. All randomness goes through a seeded numpy Generator.
"""

from datetime import UTC, datetime, timedelta

import numpy as np

from ultradian.analysis.types import RhythmEvent
from ultradian.utils.timestamps import from_epoch_seconds, to_epoch_seconds

DEFAULT_START = datetime(2025, 3, 1, 8, 0, 0, tzinfo=UTC)


def generate_irregular_times(
    n_samples: int = 50,
    span_seconds: float = 2 * 86400.0,
    start: float = 0.0,
    seed: int = 42,
) -> np.ndarray:
    """
    Generate sorted, irregularly spaced sample times.

    Args:
        n_samples: Number of samples
        span_seconds: Length of the window the samples fall in
        start: Offset of the window (seconds)
        seed: RNG seed

    Returns:
        Sorted sample times (seconds)
    """
    rng = np.random.default_rng(seed)
    return start + np.sort(rng.uniform(0.0, span_seconds, n_samples))


def generate_rhythm(
    n_samples: int = 50,
    period: float = 6000.0,
    span_seconds: float = 2 * 86400.0,
    baseline: float = 5.0,
    amplitude: float = 3.0,
    peak_at: float = 0.0,
    noise_std: float = 0.0,
    start: float = 0.0,
    seed: int = 42,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Generate an irregularly sampled cosine rhythm.

    values = baseline + amplitude·cos(2π(t − peak_at)/period) + noise

    Args:
        n_samples: Number of samples
        period: Rhythm period (seconds)
        span_seconds: Length of the sampled window (seconds)
        baseline: Mean load
        amplitude: Cosine amplitude
        peak_at: An instant (seconds) at which the clean wave peaks
        noise_std: Standard deviation of additive Gaussian noise
        start: Offset of the window (seconds)
        seed: RNG seed

    Returns:
        Tuple of (times, values)
    """
    times = generate_irregular_times(n_samples, span_seconds, start, seed)
    values = baseline + amplitude * np.cos(2 * np.pi * (times - peak_at) / period)

    if noise_std > 0:
        rng = np.random.default_rng(seed + 1)
        values = values + rng.normal(0.0, noise_std, n_samples)

    return times, values


def generate_rhythm_events(
    subject_id: str = "alice",
    n_events: int = 40,
    period: float = 6000.0,
    span: timedelta = timedelta(days=2),
    end: datetime = DEFAULT_START + timedelta(days=2),
    seed: int = 7,
) -> list[RhythmEvent]:
    """
    Generate completion events whose integer load scores follow a rhythm.

    Scores are round(5.5 + 4·cos(2π(t − end)/period)) clipped to 1-10, so
    the wave peaks at `end`.

    Returns:
        Events in chronological order, all strictly before `end`
    """
    end_seconds = to_epoch_seconds(end)
    span_seconds = span.total_seconds()
    times = generate_irregular_times(
        n_events, span_seconds - 1.0, end_seconds - span_seconds, seed
    )
    scores = np.clip(
        np.round(5.5 + 4.0 * np.cos(2 * np.pi * (times - end_seconds) / period)), 1, 10
    )

    return [
        RhythmEvent(
            subject_id=subject_id,
            occurred_at=from_epoch_seconds(float(t)),
            load_score=int(score),
            event_type="completed",
        )
        for t, score in zip(times, scores, strict=True)
    ]
