"""Networked assistant: POSTs each turn to the chat endpoint."""

import time

import httpx

from ..errors import RequestFailed
from ..logging_config import get_logger
from .base import AssistantReply, AssistantRequest

logger = get_logger(__name__)

FALLBACK_REPLY = "Sorry, I couldn't generate a response."


class HttpAssistantClient:
    """Talks to ``{base_url}/chat`` with a bearer identity header."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": "chat-session/0.1.0", "Accept": "application/json"},
        )

    async def request(self, request: AssistantRequest) -> AssistantReply:
        """Send one turn. Any transport error or non-2xx status is a RequestFailed."""
        started = time.perf_counter()
        try:
            resp = await self._client.post(
                f"{self._base_url}/chat",
                json=request.to_payload(),
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {request.user_id}",
                },
            )
        except httpx.HTTPError as e:
            raise RequestFailed(e) from e

        if resp.status_code >= 400:
            raise RequestFailed(f"HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            data = resp.json()
        except ValueError as e:
            raise RequestFailed(f"invalid JSON in reply: {e}") from e

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.debug("Assistant replied in %dms", elapsed_ms)

        return AssistantReply(
            text=data.get("response") or data.get("message") or FALLBACK_REPLY,
            conversation_id=data.get("conversationId"),
            model_name=data.get("model"),
            token_count=data.get("tokens"),
            latency_ms=data.get("processingTime", elapsed_ms),
        )

    async def close(self) -> None:
        await self._client.aclose()
