"""
ultradian Server

MCP server exposing a subject's live cognitive phase and the completions
behind it.
"""

import json
import logging
import threading

from mcp.server.fastmcp import FastMCP
from pydantic import ValidationError

from ultradian.analysis.service import build_rhythm_service, recompute_profile
from ultradian.analysis.trigger import RecomputeTrigger
from ultradian.config import RhythmSettings, get_rhythm_settings, get_trigger_settings
from ultradian.constants import DEFAULT_LOAD_SCORE, EventType
from ultradian.constants import PhaseConstants as PC
from ultradian.database.session import session_scope
from ultradian.database.stores import SQLEventStore, SQLProfileStore
from ultradian.models.event import EventPoint, RecordedEvent
from ultradian.models.phase import PhaseReport
from ultradian.models.subject import SubjectSummary
from ultradian.utils.timestamps import start_of_day, utc_now
from ultradian.utils.validation import validate_subject_id

logger = logging.getLogger(__name__)

INSTRUCTIONS_TEMPLATE = """
ultradian

You are the ultradian server. You estimate a person's dominant ultradian
({min_minutes:g}-{max_minutes:g} minute) focus cycle from the tasks they complete and the
cognitive load of each task, and tell them where in that cycle they are right now.

IMPORTANT NOTES:
- Use list_subjects to see which subjects have recorded events
- A profile needs at least {min_samples} completed tasks from the last {lookback:g} days
- All timestamps are ISO-8601 in UTC with microsecond precision
- Profiles older than {stale:g} hours are recompiled on the next phase query

AVAILABLE TOOLS:
- list_subjects: Subjects with events and their cached cycle length
- get_current_phase: Current phase (peak, trough, recovery) and next peak time
- get_today_events: Today's completed tasks, for plotting on the wave
- record_completion: Record a completed task and refresh the profile in the background

WORKFLOW:
1. Use list_subjects to find the subject
2. Use get_current_phase to decide what kind of work to schedule now
3. Use record_completion whenever the subject finishes a task
"""


def effective_rhythm_settings() -> RhythmSettings:
    """[rhythm] settings for descriptive text; defaults if the table is invalid."""
    try:
        return get_rhythm_settings()
    except ValidationError as e:
        logger.warning(f"Invalid [rhythm] settings, describing defaults: {e}")
        return RhythmSettings()


def build_instructions(settings: RhythmSettings | None = None) -> str:
    """Server instructions reflecting the effective [rhythm] settings."""
    settings = settings or effective_rhythm_settings()

    return INSTRUCTIONS_TEMPLATE.format(
        min_minutes=settings.min_period_seconds / 60,
        max_minutes=settings.max_period_seconds / 60,
        min_samples=settings.min_samples,
        lookback=settings.lookback_days,
        stale=settings.stale_after_hours,
    )


server = FastMCP(name="ultradian", instructions=build_instructions())

_trigger: RecomputeTrigger | None = None
_trigger_lock = threading.Lock()


def get_trigger() -> RecomputeTrigger:
    """Process-wide recompute trigger, created on first use."""
    global _trigger

    with _trigger_lock:
        if _trigger is None:
            _trigger = RecomputeTrigger(recompute_profile, settings=get_trigger_settings())
        return _trigger


def shutdown_trigger() -> None:
    """Drain pending recomputes and drop the process-wide trigger."""
    global _trigger

    with _trigger_lock:
        if _trigger is not None:
            _trigger.shutdown(wait=True)
            _trigger = None


# ============================================================================
# Resources (Documentation)
# ============================================================================


@server.resource("docs://phases")
def get_phases_documentation() -> str:
    """Documentation of the three cognitive phases."""
    settings = effective_rhythm_settings()
    return json.dumps(
        {
            "description": "Cognitive phases derived from the fitted rhythm",
            "angle": "0 at each peak of the fitted wave, advancing 2π per cycle",
            "phases": {
                "peak": f"cos(angle) >= {PC.PEAK_COSINE}: deep, demanding work",
                "trough": f"cos(angle) <= {PC.TROUGH_COSINE}: rest or routine tasks",
                "recovery": "in between: light or administrative work",
            },
            "search_band_minutes": [
                settings.min_period_seconds / 60,
                settings.max_period_seconds / 60,
            ],
            "note": "confidence is the share of load-score variance explained by the cycle",
        },
        indent=2,
    )


# ============================================================================
# Tools (Actions)
# ============================================================================


@server.tool("list_subjects")
def list_subjects() -> list[SubjectSummary]:
    """
    List subjects with recorded events.

    Returns:
        One summary per subject, including its cached cycle if compiled
    """
    try:
        with session_scope() as session:
            profiles = SQLProfileStore(session)
            return [
                SubjectSummary.build(subject_id, count, profiles.get(subject_id))
                for subject_id, count in SQLEventStore(session).list_subjects()
            ]

    except Exception as e:
        logger.error(f"Error listing subjects: {e}", exc_info=True)
        raise ValueError(f"Error listing subjects: {e}") from e


@server.tool("get_current_phase")
def get_current_phase(*, subject_id: str) -> PhaseReport:
    """
    Get the subject's current cognitive phase.

    Recompiles the profile first if it is missing or stale.

    Args:
        subject_id: Subject to query

    Returns:
        Phase, cycle length and next peak, or a message explaining why no
        profile exists yet
    """
    try:
        subject_id = validate_subject_id(subject_id)
        with session_scope() as session:
            outcome = build_rhythm_service(session).get_current_phase(subject_id)
            return PhaseReport.from_outcome(outcome)

    except ValueError:
        raise
    except Exception as e:
        logger.error(f"Error resolving phase for {subject_id}: {e}", exc_info=True)
        raise ValueError(f"Error resolving current phase: {e}") from e


@server.tool("get_today_events")
def get_today_events(*, subject_id: str) -> list[EventPoint]:
    """
    Get today's (UTC) completed tasks in chronological order.

    Args:
        subject_id: Subject to query

    Returns:
        Completion instants with their load scores
    """
    try:
        subject_id = validate_subject_id(subject_id)
        with session_scope() as session:
            events = SQLEventStore(session).fetch_events_between(
                subject_id,
                start_of_day(utc_now()),
                event_types=[EventType.COMPLETED.value],
            )
            return [EventPoint.from_event(event) for event in events]

    except ValueError:
        raise
    except Exception as e:
        logger.error(f"Error listing events for {subject_id}: {e}", exc_info=True)
        raise ValueError(f"Error listing today's events: {e}") from e


@server.tool("record_completion")
def record_completion(
    *,
    subject_id: str,
    load_score: int = DEFAULT_LOAD_SCORE,
    item_id: str | None = None,
) -> RecordedEvent:
    """
    Record a completed task and schedule a background profile refresh.

    Refreshes are debounced per subject, so bursts of completions cost one
    recompile.

    Args:
        subject_id: Subject who completed the task
        load_score: Cognitive load of the task (1-10, default 5)
        item_id: Optional task identifier

    Returns:
        The recorded event and whether a refresh was queued
    """
    try:
        subject_id = validate_subject_id(subject_id)
        with session_scope() as session:
            event = SQLEventStore(session).record_event(
                subject_id,
                load_score=load_score,
                event_type=EventType.COMPLETED.value,
                item_id=item_id,
            )

        # Signal only after commit so the worker's session sees the event
        scheduled = get_trigger().signal_completion(subject_id)
        return RecordedEvent.from_event(event, recompute_scheduled=scheduled)

    except ValueError:
        raise
    except Exception as e:
        logger.error(f"Error recording completion for {subject_id}: {e}", exc_info=True)
        raise ValueError(f"Error recording completion: {e}") from e
