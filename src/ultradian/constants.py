"""
Constants and enumerations for ultradian rhythm detection.

Defaults here are the baseline; most rhythm and trigger settings can be
overridden from the [rhythm] and [trigger] tables of the config file.
"""

import math

from enum import Enum
from pathlib import Path

# ============================================================================
# Event Types
# ============================================================================


class EventType(str, Enum):
    """Work-state transitions that produce a cognitive event."""

    STARTED = "started"
    COMPLETED = "completed"


# ============================================================================
# Rhythm Phases
# ============================================================================


class RhythmPhase(str, Enum):
    """
    Position on the ultradian cycle, banded by cosine amplitude.

    The wave is partitioned into thirds by amplitude:
        cos(θ) ≥ 0.5   →  PEAK      (top third)
        cos(θ) ≤ -0.5  →  TROUGH    (bottom third)
        otherwise      →  RECOVERY  (rising/falling transitions)
    """

    PEAK = "peak"
    TROUGH = "trough"
    RECOVERY = "recovery"

    @classmethod
    def from_phase_angle(cls, radians: float) -> "RhythmPhase":
        """Classify a phase angle (0 = peak, π = trough) into a phase band."""
        theta = math.fmod(radians, TWO_PI)
        if theta < 0.0:
            theta += TWO_PI

        cosine = math.cos(theta)

        if cosine >= PhaseConstants.PEAK_COSINE:
            return cls.PEAK
        if cosine <= PhaseConstants.TROUGH_COSINE:
            return cls.TROUGH
        return cls.RECOVERY


# ============================================================================
# Math
# ============================================================================

TWO_PI = 2.0 * math.pi

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
MICROSECONDS_PER_SECOND = 1_000_000

# ============================================================================
# Algorithm Constants
# ============================================================================


class PeriodogramConstants:
    """Numerical guards for the Lomb-Scargle engine (periodogram.py)."""

    DEFAULT_NUM_FREQUENCIES = 100

    # Denominator floor for Σcos² / Σsin² and the 2x2 normal equations
    DENOMINATOR_EPSILON = 1e-12

    # Relative floor below which the centred variance counts as zero
    ZERO_VARIANCE_EPSILON = 1e-24


class RhythmConstants:
    """Defaults for profile compilation and staleness (compiler.py, service.py)."""

    MIN_SAMPLES = 10
    LOOKBACK_DAYS = 14
    STALE_AFTER_HOURS = 24

    # Ultradian search band: 60 to 180 minutes
    MIN_PERIOD_SECONDS = 3600.0
    MAX_PERIOD_SECONDS = 10800.0
    NUM_TRIAL_FREQUENCIES = 80

    # Decimation cap applied before the periodogram
    MAX_SAMPLES = 5000

    DEFAULT_EVENT_TYPES = (EventType.COMPLETED.value,)


class PhaseConstants:
    """Constants for phase classification and projection (phase.py)."""

    PEAK_COSINE = 0.5
    TROUGH_COSINE = -0.5

    # Phase angles below this are treated as "at the peak"
    AT_PEAK_EPSILON = 1e-9


class TriggerConstants:
    """Defaults for debounced background recomputation (trigger.py)."""

    DEBOUNCE_SECONDS = 300
    MAX_ATTEMPTS = 2
    BACKOFF_SECONDS = 5.0
    MAX_WORKERS = 2


# ============================================================================
# Event Recording
# ============================================================================

MIN_LOAD_SCORE = 1
MAX_LOAD_SCORE = 10
DEFAULT_LOAD_SCORE = 5

# ============================================================================
# Default Settings
# ============================================================================

# Everything lives under ~/.ultradian
DEFAULT_HOME_DIR = Path.home() / ".ultradian"
DEFAULT_DATABASE_PATH = str(DEFAULT_HOME_DIR / "ultradian.db")

# Logging configuration
DEFAULT_LOG_DIR = DEFAULT_HOME_DIR / "logs"
DEFAULT_LOG_FILE = "ultradian.log"
DEFAULT_LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_LOG_BACKUP_COUNT = 5

# CLI display defaults
DEFAULT_SPECTRUM_TOP = 10
