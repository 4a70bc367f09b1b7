"""
Lomb-Scargle periodogram for irregularly sampled event data.

This module fits a single dominant sinusoid to (time, value) samples that
have no uniform spacing, so a plain FFT is not applicable. Power is
computed by least-squares fitting of sine/cosine pairs at each trial
period; the phase of the best fit is recovered against the original
(un-shifted) time axis so callers can locate a concrete peak instant.
"""

import logging

import numpy as np
import numpy.typing as npt

from ultradian.analysis.types import SpectralResult, SpectrumPoint
from ultradian.constants import TWO_PI
from ultradian.constants import PeriodogramConstants as PGC

logger = logging.getLogger(__name__)

__all__ = [
    "analyse",
    "decimate_samples",
    "neutral_result",
]


def neutral_result(min_period: float, max_period: float) -> SpectralResult:
    """Zero-power result returned for inputs that carry no periodicity."""
    return SpectralResult(
        dominant_period_seconds=(min_period + max_period) / 2.0,
        power=0.0,
        phase=0.0,
        amplitude=0.0,
        spectrum=[],
    )


def decimate_samples(
    times: npt.ArrayLike,
    values: npt.ArrayLike,
    max_samples: int,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Cap the number of samples by evenly spaced index selection.

    The first and last samples are always kept. Inputs at or below the cap
    are returned unchanged (as float arrays).

    Args:
        times: Sample times (seconds)
        values: Sample values
        max_samples: Maximum samples to keep (must be >= 2)

    Returns:
        Tuple of (times, values) arrays
    """
    t = np.asarray(times, dtype=np.float64)
    y = np.asarray(values, dtype=np.float64)

    n = min(t.size, y.size)
    if max_samples < 2 or n <= max_samples:
        return t, y

    indices = np.round(np.linspace(0, n - 1, max_samples)).astype(np.intp)
    logger.debug(f"Decimating {n} samples to {max_samples}")
    return t[indices], y[indices]


def analyse(
    times: npt.ArrayLike,
    values: npt.ArrayLike,
    min_period: float,
    max_period: float,
    num_frequencies: int = PGC.DEFAULT_NUM_FREQUENCIES,
) -> SpectralResult:
    """
    Find the dominant sinusoid in irregularly sampled data.

    Trial periods are spaced linearly from min_period to max_period, giving
    uniform resolution in minutes-per-cycle. Degenerate input (fewer than
    two samples, mismatched lengths, fewer than two trial periods, or a
    constant signal) yields a neutral result instead of raising.

    Args:
        times: Sample times in seconds (any origin, any order)
        values: Sample values, same length as times
        min_period: Shortest trial period (seconds)
        max_period: Longest trial period (seconds)
        num_frequencies: Number of trial periods

    Returns:
        SpectralResult for the strongest trial period
    """
    t_raw = np.asarray(times, dtype=np.float64).ravel()
    y_raw = np.asarray(values, dtype=np.float64).ravel()
    n = t_raw.size

    if n < 2 or n != y_raw.size or num_frequencies < 2:
        return neutral_result(min_period, max_period)

    # Lomb-Scargle assumes zero-mean input; shifting t keeps arguments small
    mean_y = float(np.mean(y_raw))
    y = y_raw - mean_y
    t = t_raw - np.min(t_raw)

    variance = float(np.dot(y, y)) / n
    if variance <= PGC.ZERO_VARIANCE_EPSILON * max(1.0, mean_y * mean_y):
        return neutral_result(min_period, max_period)

    periods = np.linspace(min_period, max_period, num_frequencies)
    omega = TWO_PI / periods

    # τ orthogonalises the sine and cosine terms: tan(2ωτ) = Σsin(2ωt) / Σcos(2ωt)
    two_omega_t = np.outer(2.0 * omega, t)
    tau = np.arctan2(np.sin(two_omega_t).sum(axis=1), np.cos(two_omega_t).sum(axis=1))
    tau /= 2.0 * omega

    shifted = omega[:, np.newaxis] * (t[np.newaxis, :] - tau[:, np.newaxis])
    cos_shifted = np.cos(shifted)
    sin_shifted = np.sin(shifted)

    sum_y_cos = cos_shifted @ y
    sum_y_sin = sin_shifted @ y
    sum_cos2 = np.einsum("ij,ij->i", cos_shifted, cos_shifted)
    sum_sin2 = np.einsum("ij,ij->i", sin_shifted, sin_shifted)

    cos_term = _guarded_ratio(sum_y_cos * sum_y_cos, sum_cos2)
    sin_term = _guarded_ratio(sum_y_sin * sum_y_sin, sum_sin2)

    # n·variance == Σy², so a single sinusoid explaining everything scores 1
    powers = np.clip((cos_term + sin_term) / (n * variance), 0.0, 1.0)

    # argmax keeps the first (shortest) period on ties
    best = int(np.argmax(powers))
    best_period = float(periods[best])
    a, b = _fit_sinusoid(t, y, float(omega[best]))

    amplitude = float(np.hypot(a, b))
    # y ≈ A·cos(ωt) + B·sin(ωt) = R·cos(ωt + φ) with φ = atan2(-B, A)
    phase = float(np.arctan2(-b, a))

    logger.debug(
        f"Lomb-Scargle over {n} samples x {num_frequencies} periods: "
        f"dominant={best_period:.1f}s power={powers[best]:.4f}"
    )

    return SpectralResult(
        dominant_period_seconds=best_period,
        power=float(powers[best]),
        phase=phase,
        amplitude=amplitude,
        spectrum=[
            SpectrumPoint(period=float(p), power=float(pw))
            for p, pw in zip(periods, powers, strict=True)
        ],
    )


def _guarded_ratio(numerator: np.ndarray, denominator: np.ndarray) -> np.ndarray:
    """numerator / denominator where denominator > epsilon, else 0."""
    safe = denominator > PGC.DENOMINATOR_EPSILON
    out = np.zeros_like(numerator)
    np.divide(numerator, denominator, out=out, where=safe)
    return out


def _fit_sinusoid(t: np.ndarray, y: np.ndarray, omega: float) -> tuple[float, float]:
    """
    Least-squares fit of y ≈ A·cos(ωt) + B·sin(ωt) on the un-shifted axis.

    Solves the 2x2 normal equations by Cramer's rule. A near-singular system
    returns (0, 0).
    """
    arg = omega * t
    c = np.cos(arg)
    s = np.sin(arg)

    sum_y_cos = float(np.dot(y, c))
    sum_y_sin = float(np.dot(y, s))
    sum_cos_cos = float(np.dot(c, c))
    sum_sin_sin = float(np.dot(s, s))
    sum_cos_sin = float(np.dot(c, s))

    det = sum_cos_cos * sum_sin_sin - sum_cos_sin * sum_cos_sin
    if abs(det) <= PGC.DENOMINATOR_EPSILON:
        return 0.0, 0.0

    a = (sum_y_cos * sum_sin_sin - sum_y_sin * sum_cos_sin) / det
    b = (sum_y_sin * sum_cos_cos - sum_y_cos * sum_cos_sin) / det
    return a, b
