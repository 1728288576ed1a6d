"""EventBus implementation for session pub/sub."""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Protocol

from ..logging_config import get_logger
from ..models import BusMessage, Topic
from ..storage import IStorage

logger = get_logger(__name__)


TopicHandler = Callable[[BusMessage], Awaitable[None]]


class IEventBus(Protocol):
    """In-process pub/sub for transcript, upload, turn and quota events."""

    def subscribe(self, topic: Topic, handler: TopicHandler) -> Callable[[], None]:
        """Subscribe a handler to a topic. Returns an unsubscribe callable."""
        ...

    async def publish(self, message: BusMessage) -> None:
        """Publish BusMessage: calls subscriber callbacks, persists to Storage."""
        ...

    async def emit(self, topic: Topic, payload: dict, source: str) -> None:
        """Build a BusMessage and publish it."""
        ...


class EventBus:
    """In-memory pub/sub event bus."""

    def __init__(self, storage: IStorage | None = None):
        self._storage = storage
        self._subscribers: dict[Topic, list[TopicHandler]] = {
            topic: [] for topic in Topic
        }

    def subscribe(self, topic: Topic, handler: TopicHandler) -> Callable[[], None]:
        """Subscribe a handler to a topic."""
        self._subscribers[topic].append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers[topic]:
                self._subscribers[topic].remove(handler)

        return unsubscribe

    async def publish(self, message: BusMessage) -> None:
        """Publish BusMessage: calls subscriber callbacks, persists to Storage."""
        if not message.id:
            message.id = str(uuid.uuid4())

        handlers = list(self._subscribers.get(message.topic, []))

        # Handlers run concurrently; a failing handler never reaches the publisher
        if handlers:
            results = await asyncio.gather(
                *[handler(message) for handler in handlers],
                return_exceptions=True,
            )

            for i, result in enumerate(results):
                if isinstance(result, Exception):
                    logger.error(
                        "Error in %s handler %s: %s", message.topic.value, i, result
                    )

        if self._storage:
            await self._storage.save_bus_message(message)

    async def emit(self, topic: Topic, payload: dict, source: str) -> None:
        """Build a BusMessage and publish it."""
        await self.publish(
            BusMessage(
                id=str(uuid.uuid4()),
                topic=topic,
                payload=payload,
                source=source,
                timestamp=datetime.now(timezone.utc),
            )
        )
