"""Session API routes: the seam a UI talks to."""

import base64
import binascii
from typing import Any

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException, Query

from ...app import IApplication
from ...errors import SessionError
from ...logging_config import get_logger
from ...models import Identity, RawFile
from ...session import SessionCoordinator

logger = get_logger(__name__)


class OpenSessionRequest(BaseModel):
    """Request model for opening a session."""

    user_id: str
    email: str | None = None
    name: str | None = None


class FilePayload(BaseModel):
    """A file attached to a turn, base64-encoded."""

    name: str
    media_type: str
    data_base64: str


class SendTurnRequest(BaseModel):
    """Request model for sending a turn."""

    content: str = ""
    files: list[FilePayload] = Field(default_factory=list)


class TurnResponse(BaseModel):
    """Response model for a completed turn."""

    request: dict[str, Any]
    reply: dict[str, Any]


class ExportResponse(BaseModel):
    """Response model for an export."""

    exported: bool
    path: str | None = None


def _http_error(e: SessionError) -> HTTPException:
    return HTTPException(
        status_code=e.http_status,
        detail={"code": e.code, "message": e.message, "details": e.details},
    )


def _decode_files(files: list[FilePayload]) -> list[RawFile]:
    decoded = []
    for f in files:
        try:
            data = base64.b64decode(f.data_base64, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=400, detail=f"File {f.name!r} is not valid base64")
        decoded.append(RawFile(name=f.name, media_type=f.media_type, data=data))
    return decoded


def create_sessions_router(app: IApplication) -> APIRouter:
    """Create sessions router."""
    router = APIRouter(prefix="/api/sessions", tags=["sessions"])

    def session_or_404(session_id: str) -> SessionCoordinator:
        session = app.get_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Session {session_id!r} not found")
        return session

    @router.post("", status_code=201)
    async def open_session(request: OpenSessionRequest) -> dict:
        """Open a session for a user."""
        session = await app.open_session(
            Identity(id=request.user_id, email=request.email, name=request.name)
        )
        return session.snapshot()

    @router.get("/{session_id}")
    async def get_session(session_id: str) -> dict:
        """Current transcript, quota and connectivity."""
        return session_or_404(session_id).snapshot()

    @router.delete("/{session_id}", status_code=204)
    async def close_session(session_id: str) -> None:
        """Close a session and drop its transcript."""
        if not await app.close_session(session_id):
            raise HTTPException(status_code=404, detail=f"Session {session_id!r} not found")

    @router.post("/{session_id}/messages", response_model=TurnResponse)
    async def send_turn(session_id: str, request: SendTurnRequest) -> dict:
        """Send a turn and wait for the reply."""
        session = session_or_404(session_id)
        files = _decode_files(request.files)
        try:
            result = await session.send_turn(request.content, files)
        except SessionError as e:
            raise _http_error(e)
        return {"request": result.request.to_dict(), "reply": result.reply.to_dict()}

    @router.post("/{session_id}/messages/{message_id}/retry", response_model=TurnResponse)
    async def retry_turn(session_id: str, message_id: str) -> dict:
        """Resend a requester message."""
        session = session_or_404(session_id)
        try:
            result = await session.retry(message_id)
        except SessionError as e:
            raise _http_error(e)
        return {"request": result.request.to_dict(), "reply": result.reply.to_dict()}

    @router.delete("/{session_id}/messages/{message_id}", status_code=204)
    async def delete_message(session_id: str, message_id: str) -> None:
        """Delete one message."""
        session = session_or_404(session_id)
        try:
            await session.delete(message_id)
        except SessionError as e:
            raise _http_error(e)

    @router.get("/{session_id}/search")
    async def search(
        session_id: str,
        q: str = Query(..., description="Case-insensitive text to look for"),
    ) -> list[dict]:
        """Search message content and attachment names."""
        session = session_or_404(session_id)
        return [m.to_dict() for m in session.search(q)]

    @router.post("/{session_id}/export", response_model=ExportResponse)
    async def export(session_id: str) -> dict:
        """Save the transcript as a JSON document."""
        path = await session_or_404(session_id).export()
        return {"exported": path is not None, "path": str(path) if path else None}

    @router.post("/{session_id}/clear")
    async def clear(session_id: str) -> dict:
        """Empty the transcript."""
        session = session_or_404(session_id)
        await session.clear()
        return session.snapshot()

    @router.post("/{session_id}/quota/refresh")
    async def refresh_quota(session_id: str) -> dict:
        """Reload plan and usage from the subscription store."""
        session = session_or_404(session_id)
        try:
            await session.refresh_quota()
        except SessionError as e:
            raise _http_error(e)
        return session.snapshot()["quota"]

    @router.post("/{session_id}/connectivity/check")
    async def check_connectivity(session_id: str) -> dict:
        """Probe the assistant service again."""
        connectivity = await session_or_404(session_id).check_connectivity()
        return {"connectivity": connectivity.value}

    return router
