"""Tracker implementation for creating TraceEvents."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..event_bus import IEventBus
from ..models import BusMessage, Topic, TraceEvent
from ..storage import IStorage

# Trace event type recorded for each bus topic.
TOPIC_EVENT_TYPES: dict[Topic, str] = {
    Topic.TRANSCRIPT: "transcript_changed",
    Topic.UPLOAD: "upload_progress",
    Topic.TURN: "turn_state_changed",
    Topic.QUOTA: "quota_changed",
}


class ITracker(Protocol):
    """Creating TraceEvents. Two channels: EventBus subscription + direct calls."""

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        ...

    async def stop(self) -> None:
        """Stop tracker."""
        ...


class Tracker:
    """Creates TraceEvents via EventBus subscription and direct track() calls."""

    def __init__(self, event_bus: IEventBus, storage: IStorage):
        self._event_bus = event_bus
        self._storage = storage
        self._unsubscribers: list = []

    async def start(self) -> None:
        """Subscribe to all EventBus topics."""
        for topic in Topic:
            self._unsubscribers.append(
                self._event_bus.subscribe(topic, self._handle_bus_message)
            )

    async def _handle_bus_message(self, bus_message: BusMessage) -> None:
        """Record a bus message as a trace event of its session."""
        await self.track(
            event_type=TOPIC_EVENT_TYPES[bus_message.topic],
            actor=bus_message.source,
            data=bus_message.payload,
        )

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        trace_event = TraceEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            actor=actor,
            data=data,
            timestamp=datetime.now(timezone.utc),
        )
        await self._storage.save_trace_event(trace_event)

    async def stop(self) -> None:
        """Unsubscribe from the bus."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
