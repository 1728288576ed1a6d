"""SessionCoordinator implementation."""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from ..assistant import AssistantRequest, IAssistantClient, IConnectivityProbe
from ..errors import (
    NotAuthenticated,
    NotConnected,
    NotFound,
    QuotaExceeded,
    RequestFailed,
    RetryNotAllowed,
    SessionError,
)
from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import (
    ATTACHMENT_PLACEHOLDER,
    Author,
    Connectivity,
    Identity,
    LifecycleState,
    Message,
    QuotaKind,
    RawFile,
    ResponseMetadata,
    SessionContext,
    Topic,
    TurnState,
    UploadProgress,
)
from ..quota import IQuotaSource, QuotaTracker, default_quota
from ..transcript import MessageTranscript
from ..uploads import AttachmentUploader, IFileTransport, PreviewRegistry
from ..uploads.uploader import DEFAULT_MAX_FILE_BYTES
from .exporter import TranscriptExporter

logger = get_logger(__name__)

WELCOME_MESSAGE = (
    "👋 Welcome! Ask me anything, or attach files and I'll take a look."
)
DEFAULT_REQUEST_TIMEOUT_S = 30.0


@dataclass
class TurnResult:
    """The two messages a successful turn leaves in the transcript."""

    request: Message
    reply: Message


class ISessionCoordinator(Protocol):
    """One user's conversation: transcript, quota and the turn state machine."""

    async def start(self) -> None:
        """Probe connectivity, load quota, add the welcome message."""
        ...

    async def send_turn(self, content: str, files: list[RawFile] | None = None) -> TurnResult:
        """Send one requester message and wait for the assistant reply."""
        ...

    async def retry(self, message_id: str) -> TurnResult:
        """Drop a requester message and its reply, then send its content again."""
        ...

    async def delete(self, message_id: str) -> None:
        """Remove exactly one message."""
        ...

    def search(self, query: str) -> list[Message]:
        """Case-insensitive search over content and attachment names."""
        ...

    async def export(self) -> Path | None:
        """Save the transcript as JSON. Never raises."""
        ...

    async def clear(self) -> None:
        """Empty the transcript and forget the conversation."""
        ...


class SessionCoordinator:
    """Orchestrates turns for a single session.

    All mutable session state lives on this instance: the SessionContext,
    the transcript, the quota replica and the preview registry. Several
    coordinators can run side by side in one process.
    """

    def __init__(
        self,
        assistant: IAssistantClient,
        probe: IConnectivityProbe,
        quota_source: IQuotaSource,
        transport: IFileTransport,
        event_bus: IEventBus | None = None,
        exporter: TranscriptExporter | None = None,
        *,
        identity: Identity | None = None,
        session_id: str | None = None,
        request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        max_concurrent_transfers: int = 3,
    ):
        self._assistant = assistant
        self._probe = probe
        self._quota_source = quota_source
        self._event_bus = event_bus
        self._exporter = exporter or TranscriptExporter()
        self._request_timeout_s = request_timeout_s

        self._context = SessionContext(
            session_id=session_id or str(uuid.uuid4()),
            identity=identity,
        )
        self._previews = PreviewRegistry()
        self._transcript = MessageTranscript(self._previews)
        self._quota = QuotaTracker()
        self._uploader = AttachmentUploader(
            transport,
            self._previews,
            quota=self._quota,
            max_file_bytes=max_file_bytes,
            max_concurrent_transfers=max_concurrent_transfers,
        )

        self._turn_states: dict[str, TurnState] = {}
        # Quota held by turns that have passed the check but not yet settled
        self._reserved: dict[QuotaKind, int] = {kind: 0 for kind in QuotaKind}
        self._upload_progress: dict[str, int] = {}
        self._last_message_at: datetime | None = None
        self._last_error: str | None = None

    # Properties

    @property
    def session_id(self) -> str:
        return self._context.session_id

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def transcript(self) -> MessageTranscript:
        return self._transcript

    @property
    def quota(self) -> QuotaTracker:
        return self._quota

    @property
    def previews(self) -> PreviewRegistry:
        return self._previews

    @property
    def last_message_at(self) -> datetime | None:
        return self._last_message_at

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def is_busy(self) -> bool:
        return bool(self._turn_states)

    @property
    def upload_progress(self) -> dict[str, int]:
        return dict(self._upload_progress)

    def turn_state(self, message_id: str) -> TurnState:
        """State of an in-flight turn; IDLE once settled or unknown."""
        return self._turn_states.get(message_id, TurnState.IDLE)

    # Lifecycle

    def bind_identity(self, identity: Identity) -> None:
        self._context.identity = identity
        logger.info("Bound identity %s", identity.id, extra={"session_id": self.session_id})

    def unbind_identity(self) -> None:
        self._context.identity = None

    async def start(self) -> None:
        """Probe connectivity, load quota, add the welcome message."""
        identity = self._context.identity
        if identity is None:
            logger.warning(
                "Cannot start session without a user", extra={"session_id": self.session_id}
            )
            return

        logger.info("Starting session for %s", identity.id, extra={"session_id": self.session_id})
        connectivity = await self._probe.probe(self._context)

        if connectivity is Connectivity.ONLINE:
            await self.refresh_quota()
            welcome = Message(
                id=str(uuid.uuid4()),
                content=WELCOME_MESSAGE,
                author=Author.ASSISTANT,
                created_at=self._transcript.next_timestamp(),
                lifecycle_state=LifecycleState.DELIVERED,
            )
            self._transcript.append(welcome)
            await self._emit(Topic.TRANSCRIPT, {"action": "appended", "message": welcome.to_dict()})
        else:
            # Degraded sessions run on default assumptions until the next probe
            self._quota.reset(default_quota())
            self._last_error = "Assistant unreachable. Running in degraded mode."
            await self._emit_quota()

        logger.info(
            "Session started (%s)", connectivity.value, extra={"session_id": self.session_id}
        )

    async def check_connectivity(self) -> Connectivity:
        """Run the probe again, e.g. to leave degraded mode."""
        return await self._probe.probe(self._context)

    async def refresh_quota(self) -> None:
        """Reload plan and usage from the quota source."""
        identity = self._context.identity
        if identity is None:
            raise NotAuthenticated()
        try:
            state = await self._quota_source.load(identity)
        except Exception as e:
            logger.error(
                "Loading quota failed, using free-plan defaults: %s",
                e,
                exc_info=True,
                extra={"session_id": self.session_id},
            )
            state = default_quota()
        self._quota.reset(state)
        await self._emit_quota()

    async def stop(self) -> None:
        """Tear the session down and release every preview."""
        self._transcript.clear()
        self._upload_progress.clear()
        logger.info("Session stopped", extra={"session_id": self.session_id})

    # Turns

    def _ensure_can_send(self, file_count: int = 0) -> Identity:
        identity = self._context.identity
        if identity is None:
            raise NotAuthenticated()
        if self._context.connectivity is not Connectivity.ONLINE:
            raise NotConnected(self._context.connectivity.value)
        if not self._quota.check_allowed(
            QuotaKind.MESSAGES, self._reserved[QuotaKind.MESSAGES] + 1
        ):
            raise QuotaExceeded(QuotaKind.MESSAGES.value)
        if file_count and not self._quota.check_allowed(
            QuotaKind.ATTACHMENTS, self._reserved[QuotaKind.ATTACHMENTS] + file_count
        ):
            raise QuotaExceeded(QuotaKind.ATTACHMENTS.value)
        return identity

    def _reserve(self, file_count: int) -> dict[QuotaKind, int]:
        reservation = {QuotaKind.MESSAGES: 1, QuotaKind.ATTACHMENTS: file_count}
        for kind, count in reservation.items():
            self._reserved[kind] += count
        return reservation

    def _release(self, reservation: dict[QuotaKind, int], *kinds: QuotaKind) -> None:
        """Give back held quota. Releasing the same kind twice is a no-op."""
        for kind in kinds or tuple(reservation):
            self._reserved[kind] -= reservation[kind]
            reservation[kind] = 0

    async def send_turn(self, content: str, files: list[RawFile] | None = None) -> TurnResult:
        """Send one requester message and wait for the assistant reply.

        Auth, connectivity and quota are checked before the transcript is
        touched. A failed request leaves the requester message ``failed``
        and re-raises; quota is committed only for a delivered reply.
        """
        files = list(files or [])
        message_id = str(uuid.uuid4())
        await self._emit(
            Topic.TURN, {"message_id": message_id, "state": TurnState.QUOTA_CHECKING.value}
        )
        try:
            identity = self._ensure_can_send(len(files))
        except SessionError as e:
            self._last_error = e.message
            await self._emit(
                Topic.TURN,
                {"message_id": message_id, "state": TurnState.FAILED.value, "error": e.code},
            )
            raise

        # Checks passed; nothing below suspends until quota is reserved and the
        # message is in the transcript
        reservation = self._reserve(len(files))
        message = Message(
            id=message_id,
            content=content if content or not files else ATTACHMENT_PLACEHOLDER,
            author=Author.REQUESTER,
            created_at=self._transcript.next_timestamp(),
        )
        self._transcript.append(message)
        self._turn_states[message.id] = TurnState.QUOTA_CHECKING
        self._last_error = None

        try:
            return await self._run_turn(identity, content, files, message, reservation)
        except asyncio.CancelledError:
            self._transcript.update_by_id(message.id, lifecycle_state=LifecycleState.FAILED)
            logger.warning(
                "Turn cancelled",
                extra={"session_id": self.session_id, "message_id": message.id},
            )
            raise
        finally:
            self._release(reservation)
            self._turn_states.pop(message.id, None)

    async def _run_turn(
        self,
        identity: Identity,
        content: str,
        files: list[RawFile],
        message: Message,
        reservation: dict[QuotaKind, int],
    ) -> TurnResult:
        await self._emit(Topic.TRANSCRIPT, {"action": "appended", "message": message.to_dict()})

        try:
            if files:
                await self._set_turn_state(message.id, TurnState.UPLOADING)
                await self._attach_files(message, files, reservation)

            self._transcript.update_by_id(message.id, lifecycle_state=LifecycleState.DELIVERED)
            await self._emit(
                Topic.TRANSCRIPT,
                {"action": "updated", "message_id": message.id, "lifecycle_state": "delivered"},
            )

            await self._set_turn_state(message.id, TurnState.AWAITING_REPLY)
            reply = await self._request_reply(identity, content, message)
        except Exception as e:
            error = e if isinstance(e, SessionError) else RequestFailed(e)
            await self._fail_turn(message, error)
            if error is e:
                raise
            raise error from e

        reply_message = Message(
            id=str(uuid.uuid4()),
            content=reply.text,
            author=Author.ASSISTANT,
            created_at=self._transcript.next_timestamp(),
            lifecycle_state=LifecycleState.DELIVERED,
            response_metadata=ResponseMetadata(
                model_name=reply.model_name,
                token_count=reply.token_count,
                latency_ms=reply.latency_ms,
            ),
        )
        self._transcript.append(reply_message)
        if reply.conversation_id:
            self._context.active_conversation_ref = reply.conversation_id
        self._release(reservation, QuotaKind.MESSAGES)
        self._quota.commit(QuotaKind.MESSAGES)
        self._last_message_at = reply_message.created_at
        self._turn_states.pop(message.id, None)

        logger.info(
            "Turn delivered",
            extra={"session_id": self.session_id, "message_id": message.id},
        )
        await self._emit(Topic.TRANSCRIPT, {"action": "appended", "message": reply_message.to_dict()})
        await self._emit_quota()
        await self._emit(Topic.TURN, {"message_id": message.id, "state": TurnState.DELIVERED.value})

        return TurnResult(request=message, reply=reply_message)

    async def _attach_files(
        self, message: Message, files: list[RawFile], reservation: dict[QuotaKind, int]
    ) -> None:
        # A quota refresh may have lowered the allowance while this turn was queued
        held = self._reserved[QuotaKind.ATTACHMENTS]
        if not self._quota.check_allowed(QuotaKind.ATTACHMENTS, held):
            raise QuotaExceeded(QuotaKind.ATTACHMENTS.value)

        # Slots held by other in-flight turns are not ours to use
        slots = self._quota.remaining(QuotaKind.ATTACHMENTS)
        if slots is not None:
            slots = max(0, slots - (held - reservation[QuotaKind.ATTACHMENTS]))

        report = await self._uploader.upload_all(
            files, on_progress=self._on_upload_progress, slots=slots
        )
        for failure in report.failures:
            logger.warning(
                "Attachment dropped: %s",
                failure.message,
                extra={"session_id": self.session_id, "message_id": message.id},
            )

        if not self._transcript.update_by_id(message.id, attachments=report.attachments):
            # Message deleted mid-upload; its previews are no longer owned by anyone
            for attachment in report.attachments:
                self._previews.release(attachment.preview_ref)
        else:
            await self._emit(
                Topic.TRANSCRIPT,
                {
                    "action": "updated",
                    "message_id": message.id,
                    "attachments": [a.id for a in report.attachments],
                },
            )

        self._release(reservation, QuotaKind.ATTACHMENTS)
        if report.attachments:
            self._quota.commit(QuotaKind.ATTACHMENTS, len(report.attachments))
            await self._emit_quota()

    async def _request_reply(self, identity: Identity, content: str, message: Message):
        request = AssistantRequest(
            message=content,
            user_id=identity.id,
            conversation_id=self._context.active_conversation_ref,
            attachments=[a.descriptor() for a in message.attachments],
            metadata={
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "userPlan": self._quota.plan_tier.value,
            },
        )
        return await asyncio.wait_for(
            self._assistant.request(request), timeout=self._request_timeout_s
        )

    async def _fail_turn(self, message: Message, error: SessionError) -> None:
        self._transcript.update_by_id(message.id, lifecycle_state=LifecycleState.FAILED)
        self._turn_states.pop(message.id, None)
        self._last_error = error.message
        logger.error(
            "Turn failed: %s",
            error.message,
            extra={"session_id": self.session_id, "message_id": message.id},
        )
        await self._emit(
            Topic.TRANSCRIPT,
            {"action": "updated", "message_id": message.id, "lifecycle_state": "failed"},
        )
        await self._emit(
            Topic.TURN,
            {"message_id": message.id, "state": TurnState.FAILED.value, "error": error.code},
        )

    async def retry(self, message_id: str) -> TurnResult:
        """Drop a requester message and its reply, then send its content again.

        Attachments of the original message are not re-uploaded.
        """
        message = self._transcript.get(message_id)
        if message is None:
            raise NotFound(message_id)
        if not message.is_requester:
            raise RetryNotAllowed(message_id)

        # Fail before removing anything if the resend cannot go out
        self._ensure_can_send()

        reply = self._transcript.reply_for(message_id)
        self._transcript.remove_by_id(message_id)
        removed = [message_id]
        if reply is not None:
            self._transcript.remove_by_id(reply.id)
            removed.append(reply.id)

        logger.info(
            "Retrying message", extra={"session_id": self.session_id, "message_id": message_id}
        )
        await self._emit(Topic.TRANSCRIPT, {"action": "removed", "message_ids": removed})
        return await self.send_turn(message.content)

    async def delete(self, message_id: str) -> None:
        """Remove exactly one message, whatever its author."""
        if not self._transcript.remove_by_id(message_id):
            raise NotFound(message_id)
        await self._emit(Topic.TRANSCRIPT, {"action": "removed", "message_ids": [message_id]})

    def search(self, query: str) -> list[Message]:
        return self._transcript.search(query)

    async def export(self) -> Path | None:
        """Save the transcript as JSON. Failures are logged, never raised."""
        try:
            return await self._exporter.export(self._transcript.all(), self._context.identity)
        except Exception as e:
            logger.error(
                "Export failed: %s", e, exc_info=True, extra={"session_id": self.session_id}
            )
            return None

    async def clear(self) -> None:
        """Empty the transcript and forget the conversation. Quota is untouched."""
        self._transcript.clear()
        self._context.active_conversation_ref = None
        self._last_message_at = None
        self._last_error = None
        await self._emit(Topic.TRANSCRIPT, {"action": "cleared"})

    def snapshot(self) -> dict:
        """Everything a UI needs to render the session."""
        quota = self._quota.snapshot()
        identity = self._context.identity
        return {
            "session_id": self.session_id,
            "identity": vars(identity) if identity else None,
            "connectivity": self._context.connectivity.value,
            "conversation_id": self._context.active_conversation_ref,
            "busy": self.is_busy,
            "last_error": self._last_error,
            "last_message_at": self._last_message_at.isoformat() if self._last_message_at else None,
            "upload_progress": self.upload_progress,
            "messages": [m.to_dict() for m in self._transcript.all()],
            "quota": {
                **quota.to_dict(),
                "messages_remaining": self._quota.remaining(QuotaKind.MESSAGES),
                "attachments_remaining": self._quota.remaining(QuotaKind.ATTACHMENTS),
                "approaching_limit": self._quota.is_approaching_limit(QuotaKind.MESSAGES),
                "upgrade_message": self._quota.upgrade_message(QuotaKind.MESSAGES),
            },
        }

    # Events

    async def _on_upload_progress(self, progress: UploadProgress) -> None:
        if progress.status == "transferring":
            self._upload_progress[progress.file_id] = progress.percent
        else:
            self._upload_progress.pop(progress.file_id, None)
        await self._emit(Topic.UPLOAD, progress.to_dict())

    async def _set_turn_state(self, message_id: str, state: TurnState) -> None:
        if message_id in self._turn_states:
            self._turn_states[message_id] = state
        await self._emit(Topic.TURN, {"message_id": message_id, "state": state.value})

    async def _emit_quota(self) -> None:
        await self._emit(Topic.QUOTA, self._quota.snapshot().to_dict())

    async def _emit(self, topic: Topic, payload: dict) -> None:
        if self._event_bus is None:
            return
        try:
            await self._event_bus.emit(
                topic, {"session_id": self.session_id, **payload}, source=self.session_id
            )
        except Exception as e:
            logger.error(
                "Publishing %s event failed: %s",
                topic.value,
                e,
                extra={"session_id": self.session_id},
            )
