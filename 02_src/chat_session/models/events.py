"""Event bus data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Topic(str, Enum):
    """EventBus topics."""

    TRANSCRIPT = "transcript"
    UPLOAD = "upload"
    TURN = "turn"
    QUOTA = "quota"


@dataclass
class BusMessage:
    """A message exchanged through EventBus."""

    id: str
    topic: Topic
    payload: dict  # JSON-serializable, varies by topic
    source: str  # session id or component that published
    timestamp: datetime


@dataclass
class UploadProgress:
    """Progress of one file inside an upload batch."""

    file_id: str
    file_name: str
    percent: int
    status: str  # "transferring", "completed", "failed"
    preview_ref: str | None = None
    remote_ref: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "file_id": self.file_id,
            "file_name": self.file_name,
            "percent": self.percent,
            "status": self.status,
            "preview_ref": self.preview_ref,
            "remote_ref": self.remote_ref,
            "error": self.error,
        }
