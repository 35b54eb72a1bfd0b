"""
Subscription builder for the Billable platform
Collects the options of a new subscription and commits it to Stripe and the database.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from django.utils import timezone

from apps.common.validators import log_security_event

from .gateways import get_gateway
from .subscription_models import Subscription

if TYPE_CHECKING:
    from .billable import Billable, BillableService
    from .gateways import BasePaymentGateway

logger = logging.getLogger(__name__)


class SubscriptionBuilder:
    """
    Fluent builder returned by ``BillableService.new_subscription()``.

    Example:
        BillableService(user).new_subscription("default", "price_monthly").trial_days(14).create(token)
    """

    def __init__(
        self,
        owner: Billable,
        name: str,
        plan: str,
        gateway: BasePaymentGateway | None = None,
    ) -> None:
        self.owner = owner
        self.name = name
        self.plan = plan
        self._gateway = gateway
        self._quantity = 1
        self._trial_expires: datetime | None = None
        self._skip_trial = False
        self._coupon: str | None = None
        self._metadata: dict[str, Any] = {}

    @property
    def gateway(self) -> BasePaymentGateway:
        if self._gateway is None:
            self._gateway = get_gateway()
        return self._gateway

    def quantity(self, quantity: int) -> SubscriptionBuilder:
        if quantity < 1:
            raise ValueError(f"Subscription quantity must be at least 1, got {quantity}")
        self._quantity = quantity
        return self

    def trial_days(self, days: int) -> SubscriptionBuilder:
        self._trial_expires = timezone.now() + timedelta(days=days)
        return self

    def trial_until(self, trial_until: datetime) -> SubscriptionBuilder:
        self._trial_expires = trial_until
        return self

    def skip_trial(self) -> SubscriptionBuilder:
        self._skip_trial = True
        return self

    def with_coupon(self, coupon: str) -> SubscriptionBuilder:
        self._coupon = coupon
        return self

    def with_metadata(self, metadata: dict[str, Any]) -> SubscriptionBuilder:
        self._metadata = dict(metadata)
        return self

    def add(self, **options: Any) -> Subscription:
        """Create the subscription for an owner that already has a card on file."""
        return self.create(None, **options)

    def create(self, token: str | None = None, **options: Any) -> Subscription:
        """
        Create the Stripe subscription and its local record.

        ``options`` are passed to Stripe when a new customer has to be created.
        """
        customer_id = self._get_customer_id(token, options)

        stripe_subscription = self.gateway.create_subscription(
            customer_id, self.plan, **self._build_payload()
        )

        trial_ends_at = None if self._skip_trial else self._trial_expires

        subscription = Subscription.objects.create(
            owner=self.owner,
            name=self.name,
            stripe_id=stripe_subscription["id"],
            stripe_plan=self.plan,
            quantity=self._quantity,
            trial_ends_at=trial_ends_at,
            ends_at=None,
        )

        log_security_event(
            event_type="subscription_created",
            details={
                "subscription_id": subscription.stripe_id,
                "customer_id": customer_id,
                "plan": self.plan,
                "quantity": self._quantity,
                "trial_ends_at": trial_ends_at.isoformat() if trial_ends_at else None,
            },
        )
        return subscription

    def _billing(self) -> BillableService:
        from .billable import BillableService  # noqa: PLC0415

        return BillableService(self.owner, gateway=self.gateway)

    def _get_customer_id(self, token: str | None, options: dict[str, Any]) -> str:
        billing = self._billing()

        if not self.owner.stripe_id:
            customer = billing.create_as_stripe_customer(token, **options)
            return customer["id"]

        if token:
            billing.update_card(token)

        return self.owner.stripe_id

    def _build_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"quantity": self._quantity}

        if self._coupon:
            payload["discounts"] = [{"coupon": self._coupon}]
        if self._metadata:
            payload["metadata"] = self._metadata
        if tax_percent := self._billing().tax_percentage():
            payload["tax_percent"] = tax_percent

        if trial_end := self._trial_end_for_payload():
            payload["trial_end"] = trial_end

        return payload

    def _trial_end_for_payload(self) -> int | str | None:
        if self._skip_trial:
            return "now"
        if self._trial_expires:
            return int(self._trial_expires.timestamp())
        return None
