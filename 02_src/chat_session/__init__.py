"""Chat session core."""

from .app import Application, IApplication
from .assistant import (
    AnthropicAssistantClient,
    HttpAssistantClient,
    IAssistantClient,
    SimulatedAssistantClient,
)
from .config import Settings
from .errors import (
    AttachmentTooLarge,
    NotAuthenticated,
    NotConnected,
    NotFound,
    QuotaExceeded,
    RequestFailed,
    RetryNotAllowed,
    SessionError,
    TransferFailed,
    UnsupportedMediaType,
)
from .event_bus import EventBus, IEventBus
from .models import (
    Attachment,
    Author,
    Connectivity,
    Identity,
    LifecycleState,
    Message,
    PlanTier,
    QuotaKind,
    QuotaState,
    RawFile,
    Topic,
)
from .quota import QuotaTracker
from .session import ISessionCoordinator, SessionCoordinator, TurnResult
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .transcript import MessageTranscript
from .uploads import AttachmentUploader, PreviewRegistry

__version__ = "0.1.0"

__all__ = [
    # Application
    "Application",
    "IApplication",
    "Settings",
    # Models
    "Attachment",
    "Author",
    "Connectivity",
    "Identity",
    "LifecycleState",
    "Message",
    "PlanTier",
    "QuotaKind",
    "QuotaState",
    "RawFile",
    "Topic",
    # Errors
    "SessionError",
    "NotAuthenticated",
    "NotConnected",
    "QuotaExceeded",
    "AttachmentTooLarge",
    "UnsupportedMediaType",
    "TransferFailed",
    "RequestFailed",
    "NotFound",
    "RetryNotAllowed",
    # Components
    "IAssistantClient",
    "HttpAssistantClient",
    "SimulatedAssistantClient",
    "AnthropicAssistantClient",
    "IStorage",
    "Storage",
    "IEventBus",
    "EventBus",
    "ITracker",
    "Tracker",
    "QuotaTracker",
    "MessageTranscript",
    "AttachmentUploader",
    "PreviewRegistry",
    "ISessionCoordinator",
    "SessionCoordinator",
    "TurnResult",
]
