"""
SQLAlchemy ORM models for the ultradian database.

Defines the schema for:
- Cognitive events (immutable work-state transitions with load scores)
- Cognitive profiles (one compiled rhythm model per subject)
"""

import uuid

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    Float,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ultradian.constants import MAX_LOAD_SCORE, MIN_LOAD_SCORE
from ultradian.database.types import UTCDateTime


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


def utc_now() -> datetime:
    """Return current UTC timestamp for database defaults."""
    return datetime.now(UTC)


def new_id() -> str:
    """Return a fresh UUID string primary key."""
    return str(uuid.uuid4())


class CognitiveEvent(Base):
    """A logged work-state transition (started/completed) with its load score."""

    __tablename__ = "cognitive_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    subject_id: Mapped[str] = mapped_column(String(100))
    item_id: Mapped[str | None] = mapped_column(String(100))
    event_type: Mapped[str] = mapped_column(String(20))
    load_score: Mapped[int] = mapped_column(Integer)
    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)

    __table_args__ = (
        CheckConstraint("length(subject_id) > 0", name="chk_event_subject"),
        CheckConstraint(
            "event_type IN ('started', 'completed')", name="chk_event_type"
        ),
        CheckConstraint(
            f"load_score BETWEEN {MIN_LOAD_SCORE} AND {MAX_LOAD_SCORE}",
            name="chk_load_score",
        ),
        # Hot path: range scan over the lookback window for one subject
        Index("idx_events_subject_time", "subject_id", "occurred_at"),
        Index("idx_events_subject_type_time", "subject_id", "event_type", "occurred_at"),
    )

    def __repr__(self) -> str:
        return f"<CognitiveEvent(subject={self.subject_id}, type={self.event_type}, at={self.occurred_at})>"


class CognitiveProfile(Base):
    """
    Cached rhythm model for one subject.

    phase_anchor_at is a moment where cos(ω·t + φ) = 1, i.e. a peak;
    projecting forward from it gives the current phase angle.
    """

    __tablename__ = "cognitive_profiles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    subject_id: Mapped[str] = mapped_column(String(100), unique=True)
    dominant_period_seconds: Mapped[float] = mapped_column(Float)
    phase_anchor_at: Mapped[datetime] = mapped_column(UTCDateTime)
    amplitude: Mapped[float] = mapped_column(Float)
    confidence: Mapped[float] = mapped_column(Float)
    sample_count: Mapped[int] = mapped_column(Integer)
    computed_at: Mapped[datetime] = mapped_column(UTCDateTime)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("length(subject_id) > 0", name="chk_profile_subject"),
        CheckConstraint("dominant_period_seconds > 0", name="chk_period"),
        CheckConstraint("confidence BETWEEN 0 AND 1", name="chk_confidence"),
        CheckConstraint("sample_count >= 0", name="chk_sample_count"),
    )

    def __repr__(self) -> str:
        return f"<CognitiveProfile(subject={self.subject_id}, period={self.dominant_period_seconds}s, confidence={self.confidence:.3f})>"
