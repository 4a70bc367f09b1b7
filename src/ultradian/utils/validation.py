"""Validation utilities for ultradian."""

from datetime import datetime

from sqlalchemy.orm import Session

from ultradian.constants import MAX_LOAD_SCORE, MIN_LOAD_SCORE, EventType
from ultradian.database.models import CognitiveEvent
from ultradian.utils.timestamps import parse_instant


def validate_load_score(score: int) -> int:
    """
    Validate a cognitive load score.

    Args:
        score: Load score

    Returns:
        The score as an int

    Raises:
        ValueError: If the score is not an integer in 1-10
    """
    if isinstance(score, bool) or int(score) != score:
        raise ValueError(f"Load score must be a whole number, got {score!r}")
    score = int(score)
    if not MIN_LOAD_SCORE <= score <= MAX_LOAD_SCORE:
        raise ValueError(
            f"Load score must be between {MIN_LOAD_SCORE} and {MAX_LOAD_SCORE}, got {score}"
        )
    return score


def validate_event_type(event_type: str) -> str:
    """
    Validate an event type string.

    Raises:
        ValueError: If the type is not one of the known event types
    """
    try:
        return EventType(event_type).value
    except ValueError:
        allowed = ", ".join(e.value for e in EventType)
        raise ValueError(
            f"Unknown event type: '{event_type}'. Expected one of: {allowed}"
        ) from None


def validate_subject_id(subject_id: str) -> str:
    """
    Validate a subject identifier.

    Raises:
        ValueError: If the identifier is empty or too long
    """
    cleaned = subject_id.strip() if isinstance(subject_id, str) else ""
    if not cleaned:
        raise ValueError("Subject identifier must not be empty")
    if len(cleaned) > 100:
        raise ValueError("Subject identifier must be at most 100 characters")
    return cleaned


def validate_subject_exists(subject_id: str, db_session: Session) -> str:
    """
    Validate that a subject has recorded events.

    Raises:
        ValueError: If no events exist for the subject
    """
    exists = (
        db_session.query(CognitiveEvent.id).filter_by(subject_id=subject_id).first()
    )
    if exists is None:
        raise ValueError(
            f"Subject '{subject_id}' has no recorded events. "
            "Record some with 'ultradian record <subject>'."
        )
    return subject_id


def validate_instant(value: str | None) -> datetime | None:
    """Parse an optional ISO-8601 instant (None passes through)."""
    if value is None:
        return None
    return parse_instant(value)
