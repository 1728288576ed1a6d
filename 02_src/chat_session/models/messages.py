"""Transcript data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

# Content used for a turn that carries files but no text.
ATTACHMENT_PLACEHOLDER = "📎 Sent attachment(s)"


class Author(str, Enum):
    """Who wrote a message."""

    REQUESTER = "user"
    ASSISTANT = "assistant"


class LifecycleState(str, Enum):
    """Delivery state of a message."""

    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"


# Legal forward moves; retry replaces a failed message instead of reviving it.
ALLOWED_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.PENDING: frozenset({LifecycleState.DELIVERED, LifecycleState.FAILED}),
    LifecycleState.DELIVERED: frozenset({LifecycleState.FAILED}),
    LifecycleState.FAILED: frozenset(),
}


@dataclass
class RawFile:
    """A file blob handed in by the UI, before upload."""

    name: str
    media_type: str
    data: bytes

    @property
    def byte_size(self) -> int:
        return len(self.data)

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")


@dataclass
class Attachment:
    """An uploaded file owned by exactly one message."""

    id: str
    display_name: str
    byte_size: int
    media_type: str
    preview_ref: str | None = None  # local, resolvable via PreviewRegistry
    remote_ref: str | None = None
    analysis_summary: str | None = None

    def descriptor(self) -> dict:
        """Minimal metadata sent with an assistant request (never raw bytes)."""
        return {
            "id": self.id,
            "name": self.display_name,
            "type": self.media_type,
            "url": self.remote_ref,
        }


@dataclass
class ResponseMetadata:
    """Details reported by the assistant for a reply."""

    model_name: str | None = None
    token_count: int | None = None
    latency_ms: int | None = None


@dataclass
class Message:
    """A single transcript entry."""

    id: str
    content: str
    author: Author
    created_at: datetime
    lifecycle_state: LifecycleState = LifecycleState.PENDING
    attachments: list[Attachment] = field(default_factory=list)
    response_metadata: ResponseMetadata | None = None

    @property
    def is_requester(self) -> bool:
        return self.author is Author.REQUESTER

    def to_dict(self) -> dict:
        """Plain-data view used by events and the HTTP layer."""
        return {
            "id": self.id,
            "content": self.content,
            "author": self.author.value,
            "created_at": self.created_at.isoformat(),
            "lifecycle_state": self.lifecycle_state.value,
            "attachments": [
                {
                    "id": a.id,
                    "display_name": a.display_name,
                    "byte_size": a.byte_size,
                    "media_type": a.media_type,
                    "preview_ref": a.preview_ref,
                    "remote_ref": a.remote_ref,
                    "analysis_summary": a.analysis_summary,
                }
                for a in self.attachments
            ],
            "response_metadata": (
                {
                    "model_name": self.response_metadata.model_name,
                    "token_count": self.response_metadata.token_count,
                    "latency_ms": self.response_metadata.latency_ms,
                }
                if self.response_metadata
                else None
            ),
        }
