"""
SQL-backed event and profile stores.

These are the concrete collaborators the profile compiler and the rhythm
service are wired to in production. Both operate on a caller-owned
SQLAlchemy session; committing is the caller's job (see session_scope).
"""

import logging

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ultradian.analysis.types import ProfileFields, RhythmEvent, RhythmProfile
from ultradian.constants import DEFAULT_LOAD_SCORE, EventType
from ultradian.database.models import CognitiveEvent, CognitiveProfile
from ultradian.utils.timestamps import ensure_utc, utc_now
from ultradian.utils.validation import validate_event_type, validate_load_score

logger = logging.getLogger(__name__)

__all__ = ["SQLEventStore", "SQLProfileStore"]


class SQLEventStore:
    """Reads and records cognitive events."""

    def __init__(self, db_session: Session):
        self.db_session = db_session

    def record_event(
        self,
        subject_id: str,
        load_score: int | None = DEFAULT_LOAD_SCORE,
        event_type: str = EventType.COMPLETED.value,
        occurred_at: datetime | None = None,
        item_id: str | None = None,
    ) -> RhythmEvent:
        """
        Record one immutable event.

        Args:
            subject_id: Owner of the event
            load_score: Cognitive load 1-10 (None means the default of 5)
            event_type: "started" or "completed"
            occurred_at: Instant of the transition (defaults to now)
            item_id: Optional work item identifier

        Returns:
            The recorded event

        Raises:
            ValueError: If load_score or event_type is invalid
        """
        score = validate_load_score(
            DEFAULT_LOAD_SCORE if load_score is None else load_score
        )
        kind = validate_event_type(event_type)
        when = ensure_utc(occurred_at) if occurred_at is not None else utc_now()

        row = CognitiveEvent(
            subject_id=subject_id,
            item_id=item_id,
            event_type=kind,
            load_score=score,
            occurred_at=when,
        )
        self.db_session.add(row)
        self.db_session.flush()

        return RhythmEvent(
            subject_id=subject_id,
            occurred_at=when,
            load_score=score,
            event_type=kind,
            item_id=item_id,
        )

    def fetch_recent_events(
        self,
        subject_id: str,
        since: datetime,
        event_types: Sequence[str] | None = None,
    ) -> list[RhythmEvent]:
        """Events at or after `since`, ordered by time ascending."""
        return self.fetch_events_between(subject_id, since, None, event_types)

    def fetch_events_between(
        self,
        subject_id: str,
        start: datetime,
        end: datetime | None = None,
        event_types: Sequence[str] | None = None,
    ) -> list[RhythmEvent]:
        """
        Events in [start, end), ordered by time ascending.

        Args:
            subject_id: Owner of the events
            start: Inclusive lower bound
            end: Exclusive upper bound (None for open-ended)
            event_types: Restrict to these types (None for all)

        Returns:
            Matching events
        """
        query = self.db_session.query(CognitiveEvent).filter(
            CognitiveEvent.subject_id == subject_id,
            CognitiveEvent.occurred_at >= ensure_utc(start),
        )
        if end is not None:
            query = query.filter(CognitiveEvent.occurred_at < ensure_utc(end))
        if event_types is not None:
            query = query.filter(CognitiveEvent.event_type.in_(list(event_types)))

        rows = query.order_by(CognitiveEvent.occurred_at, CognitiveEvent.id).all()
        return [RhythmEvent.model_validate(row) for row in rows]

    def list_subjects(self) -> list[tuple[str, int]]:
        """(subject_id, event count) for every subject with events."""
        rows = (
            self.db_session.query(CognitiveEvent.subject_id, func.count(CognitiveEvent.id))
            .group_by(CognitiveEvent.subject_id)
            .order_by(CognitiveEvent.subject_id)
            .all()
        )
        return [(subject_id, count) for subject_id, count in rows]


class SQLProfileStore:
    """Keeps exactly one compiled profile per subject."""

    def __init__(self, db_session: Session):
        self.db_session = db_session

    def get(self, subject_id: str) -> RhythmProfile | None:
        """Cached profile for the subject, if any."""
        row = (
            self.db_session.query(CognitiveProfile)
            .filter_by(subject_id=subject_id)
            .first()
        )
        if row is None:
            return None
        return RhythmProfile.model_validate(row)

    def list_profiles(self) -> list[RhythmProfile]:
        """All cached profiles, ordered by subject."""
        rows = (
            self.db_session.query(CognitiveProfile)
            .order_by(CognitiveProfile.subject_id)
            .all()
        )
        return [RhythmProfile.model_validate(row) for row in rows]

    def upsert(self, subject_id: str, fields: ProfileFields) -> RhythmProfile:
        """
        Create or overwrite the subject's profile (last writer wins).

        Args:
            subject_id: Subject the profile belongs to
            fields: Compiled profile values

        Returns:
            The stored profile
        """
        values = fields.model_dump()

        row = (
            self.db_session.query(CognitiveProfile)
            .filter_by(subject_id=subject_id)
            .first()
        )

        if row is None:
            try:
                with self.db_session.begin_nested():
                    row = CognitiveProfile(subject_id=subject_id, **values)
                    self.db_session.add(row)
            except IntegrityError:
                # Another writer created the row first; overwrite it
                logger.debug(f"Concurrent profile insert for {subject_id}, updating")
                row = (
                    self.db_session.query(CognitiveProfile)
                    .filter_by(subject_id=subject_id)
                    .one()
                )
                self._apply(row, values)
        else:
            self._apply(row, values)

        self.db_session.flush()
        return RhythmProfile.model_validate(row)

    @staticmethod
    def _apply(row: CognitiveProfile, values: dict) -> None:
        for key, value in values.items():
            setattr(row, key, value)
