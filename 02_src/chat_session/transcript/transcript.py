"""MessageTranscript implementation."""

from datetime import datetime, timezone

from ..logging_config import get_logger
from ..models import ALLOWED_TRANSITIONS, Author, LifecycleState, Message
from ..uploads.previews import PreviewRegistry

logger = get_logger(__name__)

PATCHABLE_FIELDS = frozenset(
    {"content", "lifecycle_state", "attachments", "response_metadata"}
)


class MessageTranscript:
    """Ordered, in-memory list of Messages for one session.

    Append order is send order. Mutation happens only through append and
    the id-targeted update/remove methods; readers get immutable views.
    """

    def __init__(self, previews: PreviewRegistry | None = None):
        self._previews = previews or PreviewRegistry()
        self._messages: list[Message] = []

    def next_timestamp(self) -> datetime:
        """Current time, never earlier than the last entry."""
        now = datetime.now(timezone.utc)
        if self._messages and self._messages[-1].created_at > now:
            return self._messages[-1].created_at
        return now

    def append(self, message: Message) -> None:
        """Add a message at the end. A duplicate id is a programming error."""
        if self._index_of(message.id) is not None:
            raise AssertionError(f"Duplicate message id in transcript: {message.id}")

        if self._messages and message.created_at < self._messages[-1].created_at:
            message.created_at = self._messages[-1].created_at

        self._messages.append(message)

    def get(self, message_id: str) -> Message | None:
        index = self._index_of(message_id)
        return None if index is None else self._messages[index]

    def update_by_id(self, message_id: str, **patch) -> bool:
        """Patch fields of a message in place.

        Returns False when the id is absent (e.g. deleted while a turn was in
        flight), when a field is not patchable, or when the lifecycle state
        would move backward.
        """
        message = self.get(message_id)
        if message is None:
            logger.debug("Ignoring update for missing message %s", message_id)
            return False

        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            logger.warning("Refusing to patch %s on message %s", sorted(unknown), message_id)
            return False

        new_state = patch.get("lifecycle_state")
        if new_state is not None:
            new_state = LifecycleState(new_state)
            if (
                new_state is not message.lifecycle_state
                and new_state not in ALLOWED_TRANSITIONS[message.lifecycle_state]
            ):
                logger.warning(
                    "Refusing lifecycle transition %s -> %s on message %s",
                    message.lifecycle_state.value,
                    new_state.value,
                    message_id,
                )
                return False
            patch["lifecycle_state"] = new_state

        if "attachments" in patch:
            kept = {a.preview_ref for a in patch["attachments"]}
            for attachment in message.attachments:
                if attachment.preview_ref not in kept:
                    self._previews.release(attachment.preview_ref)
            patch["attachments"] = list(patch["attachments"])

        for name, value in patch.items():
            setattr(message, name, value)
        return True

    def remove_by_id(self, message_id: str) -> bool:
        """Remove one message and release the previews it owns."""
        index = self._index_of(message_id)
        if index is None:
            return False

        message = self._messages.pop(index)
        self._release(message)
        return True

    def reply_for(self, message_id: str) -> Message | None:
        """The assistant reply that directly follows a requester message."""
        index = self._index_of(message_id)
        if index is None or index + 1 >= len(self._messages):
            return None

        candidate = self._messages[index + 1]
        if (
            candidate.author is Author.ASSISTANT
            and candidate.created_at >= self._messages[index].created_at
        ):
            return candidate
        return None

    def all(self) -> tuple[Message, ...]:
        """Ordered read-only view."""
        return tuple(self._messages)

    def search(self, query: str) -> list[Message]:
        """Messages whose content or any attachment name contains ``query``."""
        if not query.strip():
            return []

        term = query.lower()
        return [
            message
            for message in self._messages
            if term in message.content.lower()
            or any(term in a.display_name.lower() for a in message.attachments)
        ]

    def clear(self) -> None:
        """Remove everything and release all previews."""
        for message in self._messages:
            self._release(message)
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)

    def _index_of(self, message_id: str) -> int | None:
        for i, message in enumerate(self._messages):
            if message.id == message_id:
                return i
        return None

    def _release(self, message: Message) -> None:
        for attachment in message.attachments:
            self._previews.release(attachment.preview_ref)
