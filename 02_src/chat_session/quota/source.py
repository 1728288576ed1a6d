"""Quota sources: where a session's initial plan and usage come from."""

from typing import Protocol

from ..logging_config import get_logger
from ..models import Identity, QuotaState
from ..storage import IStorage
from .tracker import default_quota

logger = get_logger(__name__)


class IQuotaSource(Protocol):
    """Supplies plan limits and current usage. Read-only for sessions."""

    async def load(self, identity: Identity) -> QuotaState:
        """Load quota state for a user."""
        ...


class StaticQuotaSource:
    """Hands out the same quota state to every session."""

    def __init__(self, state: QuotaState | None = None):
        self._state = state or default_quota()

    async def load(self, identity: Identity) -> QuotaState:
        """Return a copy of the configured state."""
        return QuotaState(**vars(self._state))


class SubscriptionQuotaSource:
    """Reads plan and usage from the subscriptions table."""

    def __init__(self, storage: IStorage):
        self._storage = storage

    async def load(self, identity: Identity) -> QuotaState:
        """Load the user's subscription, defaulting to the free plan."""
        state = await self._storage.get_subscription(identity.id)
        if state is None:
            logger.info("No subscription found for %s, defaulting to free", identity.id)
            return default_quota()
        return state
