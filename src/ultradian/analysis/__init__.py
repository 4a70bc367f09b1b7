"""
Ultradian rhythm analysis.

Pure numeric core (periodogram, phase classification and projection) plus
the profile compiler. Storage-aware pieces live in analysis.service and
analysis.trigger.
"""

from ultradian.analysis.compiler import ProfileCompiler, derive_phase_anchor
from ultradian.analysis.periodogram import analyse, decimate_samples
from ultradian.analysis.phase import classify_phase, project_phase_at
from ultradian.analysis.types import (
    InsufficientData,
    PhaseSnapshot,
    ProfileFields,
    RhythmEvent,
    RhythmProfile,
    SpectralResult,
    SpectrumPoint,
)

__all__ = [
    "InsufficientData",
    "PhaseSnapshot",
    "ProfileCompiler",
    "ProfileFields",
    "RhythmEvent",
    "RhythmProfile",
    "SpectralResult",
    "SpectrumPoint",
    "analyse",
    "classify_phase",
    "decimate_samples",
    "derive_phase_anchor",
    "project_phase_at",
]
