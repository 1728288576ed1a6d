"""Session error types.

Every error raised across component boundaries derives from SessionError so
the HTTP layer (or any other caller) can catch one type and map ``code`` and
``http_status`` to a user-facing response.
"""

from typing import Any, Optional


class SessionError(Exception):
    http_status = 400

    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class NotAuthenticated(SessionError):
    http_status = 401

    def __init__(self, message: str = "User not authenticated"):
        super().__init__("not_authenticated", message)


class NotConnected(SessionError):
    http_status = 503

    def __init__(self, connectivity: str):
        super().__init__(
            "not_connected",
            f"Assistant is not reachable (connectivity: {connectivity})",
            {"connectivity": connectivity},
        )
        self.connectivity = connectivity


class QuotaExceeded(SessionError):
    http_status = 429

    def __init__(self, kind: str, message: Optional[str] = None):
        super().__init__(
            "quota_exceeded",
            message or f"Monthly {kind} limit reached. Please upgrade your plan.",
            {"kind": kind},
        )
        self.kind = kind


class AttachmentError(SessionError):
    """Failure scoped to a single file of an upload batch."""

    http_status = 422

    def __init__(self, code: str, message: str, file_ref: str):
        super().__init__(code, message, {"file": file_ref})
        self.file_ref = file_ref


class AttachmentTooLarge(AttachmentError):
    http_status = 413

    def __init__(self, file_ref: str, byte_size: int, max_bytes: int):
        super().__init__(
            "attachment_too_large",
            f"File {file_ref!r} is too large ({byte_size} bytes). "
            f"Max size: {max_bytes // (1024 * 1024)}MB",
            file_ref,
        )
        self.byte_size = byte_size
        self.max_bytes = max_bytes


class UnsupportedMediaType(AttachmentError):
    http_status = 415

    def __init__(self, file_ref: str, media_type: str):
        super().__init__(
            "unsupported_media_type",
            f"File type {media_type!r} of {file_ref!r} is not supported",
            file_ref,
        )
        self.media_type = media_type


class TransferFailed(AttachmentError):
    http_status = 502

    def __init__(self, file_ref: str, reason: str):
        super().__init__("transfer_failed", f"Upload of {file_ref!r} failed: {reason}", file_ref)
        self.reason = reason


class RequestFailed(SessionError):
    http_status = 502

    def __init__(self, cause: BaseException | str):
        reason = cause if isinstance(cause, str) else (str(cause) or type(cause).__name__)
        super().__init__("request_failed", f"Assistant request failed: {reason}")
        self.cause = cause if isinstance(cause, BaseException) else None


class NotFound(SessionError):
    http_status = 404

    def __init__(self, message_id: str):
        super().__init__("not_found", f"Message {message_id!r} not found", {"message_id": message_id})
        self.message_id = message_id


class RetryNotAllowed(SessionError):
    http_status = 409

    def __init__(self, message_id: str, reason: str = "only requester messages can be retried"):
        super().__init__("retry_not_allowed", f"Cannot retry {message_id!r}: {reason}", {"message_id": message_id})
        self.message_id = message_id
