"""Response models for the CLI and MCP surfaces."""

from ultradian.models.event import EventPoint, RecordedEvent
from ultradian.models.phase import PhaseReport
from ultradian.models.subject import SubjectSummary

__all__ = ["EventPoint", "PhaseReport", "RecordedEvent", "SubjectSummary"]
