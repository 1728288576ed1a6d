"""Transcript export to a portable JSON document."""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from ..config import EXPORTS_DIR
from ..logging_config import get_logger
from ..models import Identity, Message

logger = get_logger(__name__)


def build_export_document(
    messages: Iterable[Message],
    identity: Identity | None,
    exported_at: datetime | None = None,
) -> dict:
    """Role, content, timestamp and attachment name/type of every message."""
    messages = list(messages)
    exported_at = exported_at or datetime.now(timezone.utc)
    return {
        "identity": (identity.email or identity.id) if identity else None,
        "exportedAt": exported_at.isoformat(),
        "messageCount": len(messages),
        "messages": [
            {
                "role": m.author.value,
                "content": m.content,
                "timestamp": m.created_at.isoformat(),
                "attachments": [
                    {"name": a.display_name, "type": a.media_type}
                    for a in m.attachments
                ],
            }
            for m in messages
        ],
    }


class TranscriptExporter:
    """Writes export documents as ``<prefix>-YYYY-MM-DD.json`` files."""

    def __init__(self, export_dir: Path = EXPORTS_DIR, prefix: str = "chat-export"):
        self._export_dir = Path(export_dir)
        self._prefix = prefix

    def _target(self, day: str) -> Path:
        path = self._export_dir / f"{self._prefix}-{day}.json"
        counter = 1
        while path.exists():
            path = self._export_dir / f"{self._prefix}-{day}-{counter}.json"
            counter += 1
        return path

    def _write(self, document: dict, day: str) -> Path:
        self._export_dir.mkdir(parents=True, exist_ok=True)
        path = self._target(day)
        path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
        return path

    async def export(self, messages: Iterable[Message], identity: Identity | None) -> Path:
        """Build the document and save it; returns the written path."""
        exported_at = datetime.now(timezone.utc)
        document = build_export_document(messages, identity, exported_at)
        path = await asyncio.to_thread(self._write, document, exported_at.date().isoformat())
        logger.info("Exported %d messages to %s", document["messageCount"], path)
        return path
