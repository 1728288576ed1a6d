"""Simulated assistant for demo mode and local development."""

import asyncio
import random
import time

from .base import AssistantReply, AssistantRequest

SIMULATED_MODEL = "simulated-assistant-v1"

CANNED_REPLIES = (
    'Thanks for your message: "{message}". I\'m a simulated assistant standing in '
    "until the real endpoint is configured.",
    "Your message arrived and was processed. Switch ASSISTANT_MODE to http or "
    "anthropic to get real answers.",
    "This is a simulated reply. Uploads, quotas and the transcript all behave "
    "exactly as they will with a live assistant.",
    "Hello! I'm replying with canned text while the backend is being built.",
)


class SimulatedAssistantClient:
    """Answers with canned text after a random delay."""

    def __init__(
        self,
        delay_s: tuple[float, float] = (0.8, 2.3),
        rng: random.Random | None = None,
    ):
        self._delay_s = delay_s
        self._rng = rng or random.Random()

    def _compose(self, request: AssistantRequest) -> str:
        if request.attachments:
            names = ", ".join(a.get("name", "?") for a in request.attachments)
            return (
                f"I can see you've uploaded {len(request.attachments)} file(s): {names}. "
                "A live assistant would analyze them; this simulated one only confirms "
                "they arrived."
            )
        return self._rng.choice(CANNED_REPLIES).format(message=request.message)

    async def request(self, request: AssistantRequest) -> AssistantReply:
        started = time.perf_counter()
        low, high = self._delay_s
        await asyncio.sleep(self._rng.uniform(low, high))

        return AssistantReply(
            text=self._compose(request),
            conversation_id=request.conversation_id,
            model_name=SIMULATED_MODEL,
            token_count=self._rng.randint(50, 200),
            latency_ms=int((time.perf_counter() - started) * 1000),
        )

    async def close(self) -> None:
        return
