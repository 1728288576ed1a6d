"""QuotaTracker implementation."""

from dataclasses import replace

from ..models import UNLIMITED, PlanTier, QuotaKind, QuotaState

# Limits per plan: (message_limit, attachment_limit). -1 = unlimited, 0 = not available.
PLAN_LIMITS: dict[PlanTier, tuple[int, int]] = {
    PlanTier.FREE: (50, 5),
    PlanTier.PRO: (UNLIMITED, 50),
    PlanTier.PRO_PLUS: (UNLIMITED, UNLIMITED),
}

APPROACHING_LIMIT_RATIO = 0.8

UPGRADE_MESSAGES: dict[QuotaKind, str] = {
    QuotaKind.MESSAGES: "Upgrade to Pro for unlimited messages!",
    QuotaKind.ATTACHMENTS: "Upgrade to Pro+ for unlimited file uploads!",
}


def default_quota(plan_tier: PlanTier = PlanTier.FREE) -> QuotaState:
    """Fresh quota state for a plan with zero usage."""
    message_limit, attachment_limit = PLAN_LIMITS[plan_tier]
    return QuotaState(
        plan_tier=plan_tier,
        message_limit=message_limit,
        attachment_limit=attachment_limit,
    )


class QuotaTracker:
    """Local replica of the usage counters for one session.

    Pure bookkeeping: no I/O, and no method raises. Callers check before a
    gated operation, raise QuotaExceeded themselves, and commit only after
    the operation succeeded.
    """

    def __init__(self, state: QuotaState | None = None):
        self._state = replace(state) if state else default_quota()

    @property
    def plan_tier(self) -> PlanTier:
        return self._state.plan_tier

    def snapshot(self) -> QuotaState:
        """Copy of the current state."""
        return replace(self._state)

    def reset(self, state: QuotaState) -> None:
        """Adopt a freshly loaded state, e.g. at the start of a new period."""
        self._state = replace(state)

    def _counters(self, kind: QuotaKind | str) -> tuple[int, int]:
        if QuotaKind(kind) is QuotaKind.MESSAGES:
            return self._state.messages_used, self._state.message_limit
        return self._state.attachments_used, self._state.attachment_limit

    def is_unlimited(self, kind: QuotaKind | str) -> bool:
        _, limit = self._counters(kind)
        return limit == UNLIMITED

    def check_allowed(self, kind: QuotaKind | str, count: int = 1) -> bool:
        """Whether ``count`` more units of ``kind`` fit in the current period."""
        used, limit = self._counters(kind)
        if limit == UNLIMITED:
            return True
        if limit == 0:
            return False
        return used + max(count, 0) <= limit

    def commit(self, kind: QuotaKind | str, count: int = 1) -> None:
        """Record usage of a gated operation that has succeeded."""
        if count <= 0:
            return
        if QuotaKind(kind) is QuotaKind.MESSAGES:
            self._state.messages_used += count
        else:
            self._state.attachments_used += count

    def remaining(self, kind: QuotaKind | str) -> int | None:
        """Units left in the period; None means unlimited."""
        used, limit = self._counters(kind)
        if limit == UNLIMITED:
            return None
        return max(0, limit - used)

    def usage_percentage(self, kind: QuotaKind | str) -> float:
        """Share of the limit used, for progress bars. 0 for unlimited or unavailable."""
        used, limit = self._counters(kind)
        if limit in (UNLIMITED, 0):
            return 0.0
        return min(used / limit * 100, 100.0)

    def is_approaching_limit(self, kind: QuotaKind | str) -> bool:
        used, limit = self._counters(kind)
        if limit in (UNLIMITED, 0):
            return False
        return used >= limit * APPROACHING_LIMIT_RATIO

    def upgrade_message(self, kind: QuotaKind | str) -> str | None:
        """Upsell text when the plan has a finite limit for ``kind``."""
        if self.is_unlimited(kind) or self._state.plan_tier is PlanTier.PRO_PLUS:
            return None
        return UPGRADE_MESSAGES[QuotaKind(kind)]
