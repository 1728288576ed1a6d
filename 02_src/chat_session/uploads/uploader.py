"""AttachmentUploader implementation."""

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from ..errors import (
    AttachmentError,
    AttachmentTooLarge,
    QuotaExceeded,
    TransferFailed,
    UnsupportedMediaType,
)
from ..logging_config import get_logger
from ..models import Attachment, QuotaKind, RawFile, UploadProgress
from ..quota import QuotaTracker
from .previews import PreviewRegistry
from .transport import IFileTransport

logger = get_logger(__name__)

ProgressHandler = Callable[[UploadProgress], Awaitable[None]]

DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024

ACCEPTED_MEDIA_TYPES = (
    "image/*",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "text/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/json",
    "text/javascript",
    "text/typescript",
    "text/jsx",
    "text/tsx",
    "text/css",
    "text/html",
    "application/zip",
)


def is_accepted(media_type: str, accepted: tuple[str, ...] = ACCEPTED_MEDIA_TYPES) -> bool:
    for pattern in accepted:
        if pattern.endswith("/*"):
            if media_type.startswith(pattern[:-1]):
                return True
        elif media_type == pattern:
            return True
    return False


@dataclass
class UploadReport:
    """Outcome of one upload batch. Partial success is a normal result."""

    attachments: list[Attachment] = field(default_factory=list)
    failures: list[AttachmentError] = field(default_factory=list)


class AttachmentUploader:
    """Turns raw file blobs into Attachment records.

    Files in a batch transfer concurrently; each file fails on its own.
    Image previews are registered before the transfer starts so a UI can
    show them while bytes are still moving.
    """

    def __init__(
        self,
        transport: IFileTransport,
        previews: PreviewRegistry,
        quota: QuotaTracker | None = None,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        accepted_types: tuple[str, ...] = ACCEPTED_MEDIA_TYPES,
        max_concurrent_transfers: int = 3,
    ):
        self._transport = transport
        self._previews = previews
        self._quota = quota
        self._max_file_bytes = max_file_bytes
        self._accepted_types = accepted_types
        self._semaphore = asyncio.Semaphore(max(1, max_concurrent_transfers))

    async def upload(
        self,
        files: list[RawFile],
        on_progress: ProgressHandler | None = None,
        slots: int | None = None,
    ) -> list[Attachment]:
        """Upload files and return the attachments that made it."""
        report = await self.upload_all(files, on_progress, slots=slots)
        return report.attachments

    async def upload_all(
        self,
        files: list[RawFile],
        on_progress: ProgressHandler | None = None,
        slots: int | None = None,
    ) -> UploadReport:
        """Upload files and return both attachments and per-file failures.

        ``slots`` caps how many files may be sent. When omitted the cap is
        whatever the quota tracker has left.
        """
        if not files:
            return UploadReport()

        # Slots are handed out in input order before anything suspends
        remaining = slots
        if remaining is None and self._quota is not None:
            remaining = self._quota.remaining(QuotaKind.ATTACHMENTS)
        granted: list[bool] = []
        for file in files:
            if self._validate(file) is not None:
                granted.append(False)
                continue
            has_slot = remaining is None or remaining > 0
            if has_slot and remaining is not None:
                remaining -= 1
            granted.append(has_slot)

        results = await asyncio.gather(
            *[
                self._upload_one(file, has_slot, on_progress)
                for file, has_slot in zip(files, granted)
            ]
        )

        report = UploadReport()
        for result in results:
            if isinstance(result, Attachment):
                report.attachments.append(result)
            else:
                report.failures.append(result)

        logger.info(
            "Upload batch finished: %d succeeded, %d failed",
            len(report.attachments),
            len(report.failures),
        )
        return report

    def _validate(self, file: RawFile) -> AttachmentError | None:
        if file.byte_size > self._max_file_bytes:
            return AttachmentTooLarge(file.name, file.byte_size, self._max_file_bytes)
        if not is_accepted(file.media_type, self._accepted_types):
            return UnsupportedMediaType(file.name, file.media_type)
        return None

    async def _upload_one(
        self,
        file: RawFile,
        has_slot: bool,
        on_progress: ProgressHandler | None,
    ) -> Attachment | AttachmentError:
        file_id = str(uuid.uuid4())

        async def emit(progress: UploadProgress) -> None:
            if on_progress is None:
                return
            try:
                await on_progress(progress)
            except Exception as e:
                logger.error("Progress handler failed for %s: %s", file.name, e)

        error = self._validate(file)
        if error is None and not has_slot:
            error = QuotaExceeded(
                QuotaKind.ATTACHMENTS.value,
                f"Monthly file upload limit reached; {file.name!r} was not uploaded.",
            )
        if error is not None:
            logger.warning("Rejected %s: %s", file.name, error.message, extra={"file_id": file_id})
            await emit(UploadProgress(file_id, file.name, 0, "failed", error=error.message))
            return error

        attachment = Attachment(
            id=file_id,
            display_name=file.name,
            byte_size=file.byte_size,
            media_type=file.media_type,
            preview_ref=self._previews.create(file.data, file.media_type) if file.is_image else None,
        )

        last_percent = 0

        async def report(percent: int) -> None:
            nonlocal last_percent
            # 100 is reserved for the completion event
            percent = min(int(percent), 99)
            if percent <= last_percent:
                return
            last_percent = percent
            await emit(
                UploadProgress(file_id, file.name, percent, "transferring", attachment.preview_ref)
            )

        await emit(UploadProgress(file_id, file.name, 0, "transferring", attachment.preview_ref))

        try:
            async with self._semaphore:
                result = await self._transport.transfer(file, file_id, report)
        except Exception as e:
            failure = e if isinstance(e, AttachmentError) else TransferFailed(file.name, str(e) or type(e).__name__)
            logger.error("Transfer of %s failed: %s", file.name, failure.message, extra={"file_id": file_id})
            self._previews.release(attachment.preview_ref)
            await emit(
                UploadProgress(file_id, file.name, last_percent, "failed", error=failure.message)
            )
            return failure

        attachment.remote_ref = result.remote_ref
        attachment.analysis_summary = result.analysis_summary
        await emit(
            UploadProgress(
                file_id,
                file.name,
                100,
                "completed",
                attachment.preview_ref,
                attachment.remote_ref,
            )
        )
        logger.debug("Uploaded %s as %s", file.name, attachment.remote_ref, extra={"file_id": file_id})
        return attachment
