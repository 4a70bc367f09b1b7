"""Pydantic models for recorded events."""

from pydantic import BaseModel, Field

from ultradian.analysis.types import RhythmEvent


def _iso_micro(event: RhythmEvent) -> str:
    return event.occurred_at.isoformat(timespec="microseconds")


class EventPoint(BaseModel):
    """A completed event plotted on the wave."""

    occurred_at: str = Field(description="ISO-8601 instant with microseconds")
    load_score: int = Field(description="Cognitive load (1-10)")
    item_id: str | None = Field(default=None, description="Work item identifier")

    @classmethod
    def from_event(cls, event: RhythmEvent) -> "EventPoint":
        return cls(
            occurred_at=_iso_micro(event),
            load_score=event.load_score,
            item_id=event.item_id,
        )


class RecordedEvent(BaseModel):
    """Acknowledgement for a newly recorded event."""

    subject_id: str
    event_type: str = Field(description="started or completed")
    occurred_at: str = Field(description="ISO-8601 instant with microseconds")
    load_score: int = Field(description="Cognitive load (1-10)")
    item_id: str | None = Field(default=None, description="Work item identifier")
    recompute_scheduled: bool = Field(
        default=False,
        description="Whether a background profile recompute was queued",
    )

    class Config:
        json_schema_extra = {
            "example": {
                "subject_id": "alice",
                "event_type": "completed",
                "occurred_at": "2025-03-01T14:30:00.250000+00:00",
                "load_score": 7,
                "item_id": "task-42",
                "recompute_scheduled": True,
            }
        }

    @classmethod
    def from_event(
        cls, event: RhythmEvent, recompute_scheduled: bool = False
    ) -> "RecordedEvent":
        return cls(
            subject_id=event.subject_id,
            event_type=event.event_type,
            occurred_at=_iso_micro(event),
            load_score=event.load_score,
            item_id=event.item_id,
            recompute_scheduled=recompute_scheduled,
        )
