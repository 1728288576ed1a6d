"""Assistant request/response contract shared by every client strategy."""

from dataclasses import dataclass, field
from typing import Protocol


@dataclass
class AssistantRequest:
    """One turn sent to the assistant. Attachments travel as descriptors only."""

    message: str
    user_id: str
    conversation_id: str | None = None
    attachments: list[dict] = field(default_factory=list)  # id/name/type/url
    metadata: dict = field(default_factory=dict)  # timestamp, userPlan

    def to_payload(self) -> dict:
        """Wire shape expected by the chat endpoint."""
        return {
            "message": self.message,
            "userId": self.user_id,
            "conversationId": self.conversation_id,
            "files": self.attachments,
            "metadata": self.metadata,
        }


@dataclass
class AssistantReply:
    """What came back for a turn."""

    text: str
    conversation_id: str | None = None
    model_name: str | None = None
    token_count: int | None = None
    latency_ms: int | None = None


class IAssistantClient(Protocol):
    """Answers one turn. Raises RequestFailed on any transport problem."""

    async def request(self, request: AssistantRequest) -> AssistantReply:
        """Send a request and wait for the reply."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
