"""
Billing models for the Billable platform

This file serves as a re-export hub; models live in feature modules.
"""

from __future__ import annotations

from .status import SubscriptionState, derive_state
from .subscription_models import (
    DEFAULT_SUBSCRIPTION_NAME,
    Subscription,
    SubscriptionChangeOptions,
    SubscriptionQuerySet,
)

__all__ = [
    "DEFAULT_SUBSCRIPTION_NAME",
    "Subscription",
    "SubscriptionChangeOptions",
    "SubscriptionQuerySet",
    "SubscriptionState",
    "derive_state",
]
