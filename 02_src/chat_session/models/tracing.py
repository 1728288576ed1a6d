"""Tracing and observability data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A single observability event recorded for a session."""

    id: str
    event_type: str  # e.g. "turn_state_changed", "upload_progress"
    actor: str  # session id or component that caused it
    data: dict
    timestamp: datetime
