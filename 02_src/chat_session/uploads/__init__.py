"""Attachment upload module."""

from .previews import PreviewRegistry
from .transport import (
    HttpFileTransport,
    IFileTransport,
    SimulatedFileTransport,
    TransferResult,
)
from .uploader import ACCEPTED_MEDIA_TYPES, AttachmentUploader, UploadReport

__all__ = [
    "PreviewRegistry",
    "HttpFileTransport",
    "IFileTransport",
    "SimulatedFileTransport",
    "TransferResult",
    "ACCEPTED_MEDIA_TYPES",
    "AttachmentUploader",
    "UploadReport",
]
