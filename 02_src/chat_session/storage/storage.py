"""SQLite storage implementation."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import BusMessage, PlanTier, QuotaState, Topic, TraceEvent


def _parse_ts(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


class IStorage(Protocol):
    """Persistent storage for subscriptions and observability data (SQLite).

    Transcripts are deliberately not stored here; they live in memory only.
    """

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Subscriptions
    async def save_subscription(self, user_id: str, state: QuotaState) -> None:
        """Insert or replace a user's subscription row."""
        ...

    async def get_subscription(self, user_id: str) -> QuotaState | None:
        """Get a user's plan and usage."""
        ...

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        ...

    # BusMessages
    async def save_bus_message(self, message: BusMessage) -> None:
        """Save a bus message."""
        ...

    async def get_bus_messages(
        self, topic: Topic | None = None, limit: int = 100
    ) -> list[BusMessage]:
        """Get bus messages (newest first)."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    # Subscriptions
    async def save_subscription(self, user_id: str, state: QuotaState) -> None:
        """Insert or replace a user's subscription row."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        await self._conn.execute(
            """
            INSERT OR REPLACE INTO subscriptions
            (user_id, plan_tier, messages_used, message_limit,
             attachments_used, attachment_limit, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            """,
            (
                user_id,
                state.plan_tier.value,
                state.messages_used,
                state.message_limit,
                state.attachments_used,
                state.attachment_limit,
            ),
        )
        await self._conn.commit()

    async def get_subscription(self, user_id: str) -> QuotaState | None:
        """Get a user's plan and usage."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        cursor = await self._conn.execute(
            """
            SELECT plan_tier, messages_used, message_limit,
                   attachments_used, attachment_limit
            FROM subscriptions
            WHERE user_id = ?
            """,
            (user_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return QuotaState(
            plan_tier=PlanTier(row[0]),
            messages_used=row[1],
            message_limit=row[2],
            attachments_used=row[3],
            attachment_limit=row[4],
        )

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        await self._conn.execute(
            """
            INSERT INTO trace_events (id, event_type, actor, data, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                json.dumps(event.data),
                event.timestamp.isoformat(),
            ),
        )
        await self._conn.commit()

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        conditions = []
        params: list = []

        if after:
            conditions.append("timestamp > ?")
            params.append(after.isoformat())
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC
            LIMIT ?
        """
        params.append(limit)

        cursor = await self._conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=_parse_ts(row[4]),
            )
            for row in rows
        ]

    # BusMessages
    async def save_bus_message(self, message: BusMessage) -> None:
        """Save a bus message."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        await self._conn.execute(
            """
            INSERT INTO bus_messages (id, topic, payload, source, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                message.id or str(uuid.uuid4()),
                message.topic.value,
                json.dumps(message.payload),
                message.source,
                message.timestamp.isoformat(),
            ),
        )
        await self._conn.commit()

    async def get_bus_messages(
        self, topic: Topic | None = None, limit: int = 100
    ) -> list[BusMessage]:
        """Get bus messages (newest first)."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        if topic:
            cursor = await self._conn.execute(
                """
                SELECT id, topic, payload, source, timestamp
                FROM bus_messages
                WHERE topic = ?
                ORDER BY timestamp DESC
                LIMIT ?
                """,
                (topic.value, limit),
            )
        else:
            cursor = await self._conn.execute(
                """
                SELECT id, topic, payload, source, timestamp
                FROM bus_messages
                ORDER BY timestamp DESC
                LIMIT ?
                """,
                (limit,),
            )
        rows = await cursor.fetchall()

        return [
            BusMessage(
                id=row[0],
                topic=Topic(row[1]),
                payload=json.loads(row[2]),
                source=row[3],
                timestamp=_parse_ts(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        for table in ("subscriptions", "trace_events", "bus_messages"):
            await self._conn.execute(f"DELETE FROM {table}")

        await self._conn.commit()
