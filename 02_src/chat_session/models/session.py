"""Session-scoped data models."""

from dataclasses import dataclass
from enum import Enum


class Connectivity(str, Enum):
    """Reachability of the assistant service, as last seen by the probe."""

    OFFLINE = "offline"
    CONNECTING = "connecting"
    ONLINE = "online"
    DEGRADED = "degraded"


class TurnState(str, Enum):
    """Progress of one send_turn call."""

    IDLE = "idle"
    QUOTA_CHECKING = "quota_checking"
    UPLOADING = "uploading"
    AWAITING_REPLY = "awaiting_reply"
    DELIVERED = "settled_delivered"
    FAILED = "settled_failed"


@dataclass
class Identity:
    """The signed-in user, as supplied by the identity provider."""

    id: str
    email: str | None = None
    name: str | None = None


@dataclass
class SessionContext:
    """Mutable state owned by a single SessionCoordinator."""

    session_id: str
    identity: Identity | None = None
    connectivity: Connectivity = Connectivity.OFFLINE
    active_conversation_ref: str | None = None
