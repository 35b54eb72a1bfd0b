"""
Subscription status classification.

A subscription's lifecycle state is never stored; it is derived from the
``trial_ends_at`` and ``ends_at`` timestamps at the moment of the question.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from django.utils import timezone


class SubscriptionState(str, Enum):
    TRIALING = "trialing"
    ACTIVE = "active"
    GRACE_PERIOD = "grace_period"
    CANCELLED = "cancelled"

    @property
    def is_usable(self) -> bool:
        """Whether the owner should currently get access."""
        return self is not SubscriptionState.CANCELLED


def derive_state(
    trial_ends_at: datetime | None,
    ends_at: datetime | None,
    now: datetime | None = None,
) -> SubscriptionState:
    """
    Classify a subscription from its timestamps.

    The boolean predicates on ``Subscription`` overlap (a trialing row with no
    ``ends_at`` is both active and on trial); this picks one state using the
    precedence trial, grace period, active, cancelled.
    """
    now = now or timezone.now()

    if trial_ends_at is not None and now < trial_ends_at:
        return SubscriptionState.TRIALING
    if ends_at is not None and now < ends_at:
        return SubscriptionState.GRACE_PERIOD
    if ends_at is None:
        return SubscriptionState.ACTIVE
    return SubscriptionState.CANCELLED
