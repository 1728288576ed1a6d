"""Assistant backed directly by the Anthropic Claude API."""

import os
import time
import uuid
from collections import OrderedDict

import anthropic

from ..errors import RequestFailed
from .base import AssistantReply, AssistantRequest

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant inside a chat app. Users may attach files; "
    "you receive their names and types, not their contents."
)


class AnthropicAssistantClient:
    """Anthropic Claude API strategy.

    Keeps a short per-conversation history in memory so follow-up turns have
    context. The history is process-local: each conversation keeps at most
    ``max_history`` entries and the least recently used conversations are
    dropped past ``max_conversations``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-3-5-sonnet-20241022",
        system: str = DEFAULT_SYSTEM_PROMPT,
        max_tokens: int = 1024,
        max_history: int = 20,
        max_conversations: int = 100,
    ):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self._model = model
        self._system = system
        self._max_tokens = max_tokens
        self._max_history = max_history
        self._max_conversations = max(1, max_conversations)
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        self._history: OrderedDict[str, list[dict]] = OrderedDict()

    @staticmethod
    def _user_content(request: AssistantRequest) -> str:
        if not request.attachments:
            return request.message
        listing = "\n".join(
            f"- {a.get('name')} ({a.get('type')})" for a in request.attachments
        )
        return f"{request.message}\n\nAttached files:\n{listing}"

    async def request(self, request: AssistantRequest) -> AssistantReply:
        """Generate a reply using the Messages API."""
        conversation_id = request.conversation_id or f"conv-{uuid.uuid4()}"
        history = self._history.get(conversation_id, [])
        messages = history + [{"role": "user", "content": self._user_content(request)}]

        started = time.perf_counter()
        try:
            response = await self._client.messages.create(
                model=self._model,
                system=self._system,
                messages=messages,
                max_tokens=self._max_tokens,
            )
        except Exception as e:
            raise RequestFailed(e) from e

        text = response.content[0].text if response.content else ""
        history = messages + [{"role": "assistant", "content": text}]
        self._history[conversation_id] = history[-self._max_history:]
        self._history.move_to_end(conversation_id)
        while len(self._history) > self._max_conversations:
            self._history.popitem(last=False)

        usage = getattr(response, "usage", None)
        return AssistantReply(
            text=text,
            conversation_id=conversation_id,
            model_name=getattr(response, "model", None) or self._model,
            token_count=getattr(usage, "output_tokens", None),
            latency_ms=int((time.perf_counter() - started) * 1000),
        )

    async def close(self) -> None:
        await self._client.close()
