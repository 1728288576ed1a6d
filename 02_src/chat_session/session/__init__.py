"""Session module."""

from .coordinator import ISessionCoordinator, SessionCoordinator, TurnResult
from .exporter import TranscriptExporter, build_export_document

__all__ = [
    "ISessionCoordinator",
    "SessionCoordinator",
    "TurnResult",
    "TranscriptExporter",
    "build_export_document",
]
