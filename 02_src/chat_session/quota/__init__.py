"""Quota module."""

from .source import IQuotaSource, StaticQuotaSource, SubscriptionQuotaSource
from .tracker import PLAN_LIMITS, QuotaTracker, default_quota

__all__ = [
    "IQuotaSource",
    "StaticQuotaSource",
    "SubscriptionQuotaSource",
    "PLAN_LIMITS",
    "QuotaTracker",
    "default_quota",
]
