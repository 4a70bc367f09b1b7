"""
Rhythm query service.

Serves a subject's live phase snapshot from the cached profile, compiling
a fresh profile first when none exists or the cached one is stale.
"""

import logging

from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ultradian.analysis.compiler import ProfileCompiler
from ultradian.analysis.phase import project_phase_at
from ultradian.analysis.protocols import ProfileStore
from ultradian.analysis.types import InsufficientData, PhaseSnapshot, RhythmProfile
from ultradian.config import RhythmSettings, get_rhythm_settings
from ultradian.database.session import session_scope
from ultradian.database.stores import SQLEventStore, SQLProfileStore
from ultradian.utils.timestamps import ensure_utc, utc_now

logger = logging.getLogger(__name__)

__all__ = ["RhythmService", "build_rhythm_service", "recompute_profile"]


class RhythmService:
    """
    Staleness gate in front of the profile compiler.

    Example:
        >>> service = RhythmService(profile_store, compiler)
        >>> outcome = service.get_current_phase("alice")
        >>> if isinstance(outcome, PhaseSnapshot):
        ...     print(outcome.phase, outcome.next_peak_at)
    """

    def __init__(
        self,
        profile_store: ProfileStore,
        compiler: ProfileCompiler,
        stale_after: timedelta | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the service.

        Args:
            profile_store: Where cached profiles are read from
            compiler: Used when the cache is missing or stale
            stale_after: Maximum profile age (defaults to the compiler's settings)
            clock: Returns the current UTC instant when `now` is omitted
        """
        self.profile_store = profile_store
        self.compiler = compiler
        if stale_after is None:
            stale_after = timedelta(hours=compiler.settings.stale_after_hours)
        self.stale_after = stale_after
        self.clock = clock

    def is_stale(self, profile: RhythmProfile, now: datetime) -> bool:
        """True when the profile is older than the staleness threshold."""
        return ensure_utc(now) - ensure_utc(profile.computed_at) > self.stale_after

    def get_current_phase(
        self, subject_id: str, now: datetime | None = None
    ) -> PhaseSnapshot | InsufficientData:
        """
        Resolve the subject's phase at `now`.

        Args:
            subject_id: Subject to query
            now: Reference instant (defaults to the clock)

        Returns:
            PhaseSnapshot, or InsufficientData when no profile can be built
        """
        now = ensure_utc(now if now is not None else self.clock())

        profile = self.profile_store.get(subject_id)

        if profile is None or self.is_stale(profile, now):
            logger.debug(
                f"Subject {subject_id}: "
                f"{'no cached profile' if profile is None else 'stale profile'}, recompiling"
            )
            outcome = self.compiler.compute_profile(subject_id, now=now)
            if isinstance(outcome, InsufficientData):
                return outcome
            profile = outcome

        return project_phase_at(profile, now)


def build_rhythm_service(
    db_session: Session,
    settings: RhythmSettings | None = None,
) -> RhythmService:
    """
    Wire a RhythmService to the SQL stores on one database session.

    Args:
        db_session: SQLAlchemy database session
        settings: Rhythm settings (defaults to the config file)

    Returns:
        Ready-to-use RhythmService
    """
    if settings is None:
        settings = get_rhythm_settings()

    profile_store = SQLProfileStore(db_session)
    compiler = ProfileCompiler(
        SQLEventStore(db_session), profile_store, settings=settings
    )
    return RhythmService(profile_store, compiler)


def recompute_profile(subject_id: str) -> RhythmProfile | InsufficientData:
    """
    Compile a subject's profile in its own transaction.

    Intended for background workers, which must not share a session with
    the request that signalled them.
    """
    with session_scope() as session:
        service = build_rhythm_service(session)
        return service.compiler.compute_profile(subject_id)
