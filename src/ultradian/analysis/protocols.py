"""Collaborator contracts for the rhythm pipeline."""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

import numpy.typing as npt

from ultradian.analysis.types import ProfileFields, RhythmEvent, RhythmProfile, SpectralResult


class EventStore(Protocol):
    """Source of recorded cognitive events."""

    def fetch_recent_events(
        self,
        subject_id: str,
        since: datetime,
        event_types: Sequence[str] | None = None,
    ) -> list[RhythmEvent]:
        """Events at or after `since`, ordered by time ascending."""
        ...


class ProfileStore(Protocol):
    """Keeps exactly one compiled profile per subject."""

    def get(self, subject_id: str) -> RhythmProfile | None:
        """Cached profile for the subject, if any."""
        ...

    def upsert(self, subject_id: str, fields: ProfileFields) -> RhythmProfile:
        """Create or overwrite the subject's profile."""
        ...


class Periodogram(Protocol):
    """Spectral estimator for irregularly sampled data."""

    def __call__(
        self,
        times: npt.ArrayLike,
        values: npt.ArrayLike,
        min_period: float,
        max_period: float,
        num_frequencies: int = ...,
    ) -> SpectralResult: ...
