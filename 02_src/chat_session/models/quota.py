"""Subscription and usage data models."""

from dataclasses import dataclass
from enum import Enum

UNLIMITED = -1


class PlanTier(str, Enum):
    """Subscription plans."""

    FREE = "free"
    PRO = "pro"
    PRO_PLUS = "pro_plus"


class QuotaKind(str, Enum):
    """Gated resources."""

    MESSAGES = "messages"
    ATTACHMENTS = "attachments"


@dataclass
class QuotaState:
    """Usage counters and limits for the current quota period."""

    plan_tier: PlanTier = PlanTier.FREE
    messages_used: int = 0
    message_limit: int = 50
    attachments_used: int = 0
    attachment_limit: int = 5

    def to_dict(self) -> dict:
        return {
            "plan_tier": self.plan_tier.value,
            "messages_used": self.messages_used,
            "message_limit": self.message_limit,
            "attachments_used": self.attachments_used,
            "attachment_limit": self.attachment_limit,
        }
