"""Core data models for the chat session service."""

from .messages import (
    ALLOWED_TRANSITIONS,
    ATTACHMENT_PLACEHOLDER,
    Attachment,
    Author,
    LifecycleState,
    Message,
    RawFile,
    ResponseMetadata,
)
from .quota import UNLIMITED, PlanTier, QuotaKind, QuotaState
from .session import Connectivity, Identity, SessionContext, TurnState
from .events import BusMessage, Topic, UploadProgress
from .tracing import TraceEvent

__all__ = [
    # Messages
    "ALLOWED_TRANSITIONS",
    "ATTACHMENT_PLACEHOLDER",
    "Attachment",
    "Author",
    "LifecycleState",
    "Message",
    "RawFile",
    "ResponseMetadata",
    # Quota
    "UNLIMITED",
    "PlanTier",
    "QuotaKind",
    "QuotaState",
    # Session
    "Connectivity",
    "Identity",
    "SessionContext",
    "TurnState",
    # Events
    "BusMessage",
    "Topic",
    "UploadProgress",
    # Tracing
    "TraceEvent",
]
