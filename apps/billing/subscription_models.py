"""
Subscription models for the Billable platform
Local mirror of a Stripe subscription with lifecycle transitions.

Every mutating transition performs the remote write first and the local
write second. The local fields are set to what was requested from Stripe,
not re-read from Stripe's response, so a partially applied remote change
can leave the two sides out of step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.common.validators import log_security_event

from .gateways import get_gateway, period_end, timestamp_to_datetime
from .status import SubscriptionState, derive_state

if TYPE_CHECKING:
    from .gateways import BasePaymentGateway

logger = logging.getLogger(__name__)

DEFAULT_SUBSCRIPTION_NAME = "default"

BillingCycleAnchor = datetime | int | str


# ===============================================================================
# CHANGE OPTIONS
# ===============================================================================


@dataclass(frozen=True)
class SubscriptionChangeOptions:
    """Modifiers for a single plan or quantity change."""

    prorate: bool = True
    billing_cycle_anchor: BillingCycleAnchor | None = None

    @property
    def proration_behavior(self) -> str:
        return "create_prorations" if self.prorate else "none"

    def anchor_value(self) -> int | str | None:
        """Billing cycle anchor as Stripe expects it (timestamp or keyword)."""
        anchor = self.billing_cycle_anchor
        if isinstance(anchor, datetime):
            return int(anchor.timestamp())
        return anchor


def _resolve_options(
    options: SubscriptionChangeOptions | None,
    prorate: bool,
    billing_cycle_anchor: BillingCycleAnchor | None = None,
) -> SubscriptionChangeOptions:
    if options is not None:
        return options
    return SubscriptionChangeOptions(prorate=prorate, billing_cycle_anchor=billing_cycle_anchor)


# ===============================================================================
# QUERYSET
# ===============================================================================


class SubscriptionQuerySet(models.QuerySet["Subscription"]):
    def for_owner(self, owner: Any) -> SubscriptionQuerySet:
        return self.filter(owner=owner)

    def named(self, name: str) -> SubscriptionQuerySet:
        return self.filter(name=name)

    def newest_first(self) -> SubscriptionQuerySet:
        return self.order_by("-created_at", "-pk")

    def current(self, owner: Any, name: str = DEFAULT_SUBSCRIPTION_NAME) -> Subscription | None:
        """The most recently created subscription with this name, if any."""
        return self.for_owner(owner).named(name).newest_first().first()


# ===============================================================================
# SUBSCRIPTION MODEL
# ===============================================================================


class Subscription(models.Model):
    """
    One owner's relationship to one Stripe subscription.

    The lifecycle state is derived from ``trial_ends_at`` and ``ends_at``:
    - ``ends_at`` set means cancellation was requested (grace period until it passes)
    - ``trial_ends_at`` in the future means the subscription is on trial
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="subscriptions",
        help_text=_("Billable owner of this subscription"),
    )
    name = models.CharField(
        max_length=100,
        default=DEFAULT_SUBSCRIPTION_NAME,
        help_text=_("Label distinguishing concurrent subscriptions of the same owner"),
    )

    # External references
    stripe_id = models.CharField(
        max_length=255,
        db_index=True,
        help_text=_("Stripe Subscription ID"),
    )
    stripe_plan = models.CharField(
        max_length=255,
        help_text=_("Stripe plan/price ID"),
    )

    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        help_text=_("Number of units (e.g., seats)"),
    )

    # Lifecycle dates
    trial_ends_at = models.DateTimeField(null=True, blank=True)
    ends_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("Set once cancellation has been scheduled or completed"),
    )

    # Audit fields
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SubscriptionQuerySet.as_manager()

    class Meta:
        db_table = "subscriptions"
        verbose_name = _("Subscription")
        verbose_name_plural = _("Subscriptions")
        ordering = ("-created_at",)
        indexes = (
            models.Index(fields=["owner", "name"], name="subscriptions_owner_name_idx"),
        )
        constraints: ClassVar[list] = [
            models.CheckConstraint(
                condition=Q(quantity__gte=1),
                name="subscription_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} - {self.stripe_plan} ({self.state.value})"

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def state(self) -> SubscriptionState:
        return derive_state(self.trial_ends_at, self.ends_at)

    def valid(self) -> bool:
        """Active, on trial, or within the grace period after cancelling."""
        return self.active() or self.on_trial() or self.on_grace_period()

    def active(self) -> bool:
        return self.ends_at is None or self.on_grace_period()

    def cancelled(self) -> bool:
        return self.ends_at is not None

    def on_trial(self) -> bool:
        if self.trial_ends_at is None:
            return False
        return timezone.now() < self.trial_ends_at

    def on_grace_period(self) -> bool:
        if self.ends_at is None:
            return False
        return timezone.now() < self.ends_at

    # =========================================================================
    # QUANTITY
    # =========================================================================

    def increment_quantity(
        self, count: int = 1, *, prorate: bool = True, options: SubscriptionChangeOptions | None = None
    ) -> Subscription:
        return self.update_quantity(self.quantity + count, prorate=prorate, options=options)

    def increment_and_invoice(
        self, count: int = 1, *, prorate: bool = True, options: SubscriptionChangeOptions | None = None
    ) -> Subscription:
        """Increment the quantity and invoice the owner immediately."""
        self.increment_quantity(count, prorate=prorate, options=options)
        self._billing().invoice()
        return self

    def decrement_quantity(
        self, count: int = 1, *, prorate: bool = True, options: SubscriptionChangeOptions | None = None
    ) -> Subscription:
        return self.update_quantity(max(1, self.quantity - count), prorate=prorate, options=options)

    def update_quantity(
        self, quantity: int, *, prorate: bool = True, options: SubscriptionChangeOptions | None = None
    ) -> Subscription:
        if quantity < 1:
            raise ValueError(f"Subscription quantity must be at least 1, got {quantity}")

        change = _resolve_options(options, prorate)
        gateway = get_gateway()
        stripe_subscription = self.as_stripe_subscription(gateway)

        gateway.update_subscription(
            self.stripe_id,
            items=[self._subscription_item(stripe_subscription, quantity=quantity)],
            proration_behavior=change.proration_behavior,
        )

        previous = self.quantity
        self.quantity = quantity
        self.save(update_fields=["quantity", "updated_at"])

        log_security_event(
            event_type="subscription_quantity_changed",
            details={
                "subscription_id": self.stripe_id,
                "from_quantity": previous,
                "to_quantity": quantity,
                "prorate": change.prorate,
            },
        )
        return self

    # =========================================================================
    # PLAN & TRIAL
    # =========================================================================

    def skip_trial(self) -> Subscription:
        """
        End the trial locally. Not saved and not sent to Stripe on its own:
        follow it with ``swap()`` or ``resume()``.
        """
        self.trial_ends_at = None
        return self

    def swap(
        self,
        plan: str,
        *,
        prorate: bool = True,
        billing_cycle_anchor: BillingCycleAnchor | None = None,
        options: SubscriptionChangeOptions | None = None,
    ) -> Subscription:
        """Move the subscription to a new Stripe plan."""
        change = _resolve_options(options, prorate, billing_cycle_anchor)
        gateway = get_gateway()
        stripe_subscription = self.as_stripe_subscription(gateway)

        item: dict[str, Any] = {"price": plan}
        # Keep the current quantity on the new plan
        if self.quantity:
            item["quantity"] = self.quantity

        params: dict[str, Any] = {
            "items": [self._subscription_item(stripe_subscription, **item)],
            "proration_behavior": change.proration_behavior,
            "cancel_at_period_end": False,
            # Keep the remaining trial, otherwise end it now
            "trial_end": self._trial_end_param(),
        }
        anchor = change.anchor_value()
        if anchor is not None:
            params["billing_cycle_anchor"] = anchor

        gateway.update_subscription(self.stripe_id, **params)

        self._billing(gateway).invoice()

        previous_plan = self.stripe_plan
        # trial_ends_at keeps its in-memory value: cleared only after skip_trial()
        self.stripe_plan = plan
        self.ends_at = None
        self.save(update_fields=["stripe_plan", "ends_at", "trial_ends_at", "updated_at"])

        log_security_event(
            event_type="subscription_swapped",
            details={
                "subscription_id": self.stripe_id,
                "from_plan": previous_plan,
                "to_plan": plan,
                "prorate": change.prorate,
                "critical_financial_operation": True,
            },
        )
        return self

    # =========================================================================
    # CANCELLATION
    # =========================================================================

    def cancel(self) -> Subscription:
        """Cancel at the end of the billing period (or trial)."""
        self._ensure_stripe_customer()
        gateway = get_gateway()
        stripe_subscription = gateway.cancel_subscription_at_period_end(self.stripe_id)

        # The grace period runs until the trial would have ended, or until the
        # end of the already paid billing period.
        if self.on_trial():
            self.ends_at = self.trial_ends_at
        else:
            self.ends_at = timestamp_to_datetime(period_end(stripe_subscription))

        self.save(update_fields=["ends_at", "updated_at"])

        log_security_event(
            event_type="subscription_cancelled",
            details={
                "subscription_id": self.stripe_id,
                "at_period_end": True,
                "ends_at": self.ends_at.isoformat() if self.ends_at else None,
                "critical_financial_operation": True,
            },
        )
        return self

    def cancel_now(self) -> Subscription:
        """Cancel immediately, with no grace period."""
        self._ensure_stripe_customer()
        get_gateway().cancel_subscription(self.stripe_id)

        self.mark_as_cancelled()

        log_security_event(
            event_type="subscription_cancelled",
            details={
                "subscription_id": self.stripe_id,
                "at_period_end": False,
                "critical_financial_operation": True,
            },
        )
        return self

    def mark_as_cancelled(self) -> None:
        self.ends_at = timezone.now()
        self.save(update_fields=["ends_at", "updated_at"])

    def resume(self) -> Subscription:
        """
        Resume a cancelled subscription that is still within its grace period.

        Raises:
            ValidationError: If the subscription is not on its grace period
        """
        if not self.on_grace_period():
            raise ValidationError(_("Unable to resume subscription that is not within grace period."))

        gateway = get_gateway()
        stripe_subscription = self.as_stripe_subscription(gateway)

        gateway.update_subscription(
            self.stripe_id,
            items=[self._subscription_item(stripe_subscription, price=self.stripe_plan)],
            cancel_at_period_end=False,
            trial_end=self._trial_end_param(),
        )

        self.ends_at = None
        self.save(update_fields=["ends_at", "trial_ends_at", "updated_at"])

        log_security_event(
            event_type="subscription_resumed",
            details={"subscription_id": self.stripe_id, "plan": self.stripe_plan},
        )
        return self

    # =========================================================================
    # STRIPE HELPERS
    # =========================================================================

    def as_stripe_subscription(self, gateway: BasePaymentGateway | None = None) -> Any:
        """
        Fetch the backing Stripe subscription.

        Raises:
            ValidationError: If the owner has no Stripe customer
        """
        self._ensure_stripe_customer()

        return (gateway or get_gateway()).retrieve_subscription(self.stripe_id)

    def _ensure_stripe_customer(self) -> None:
        if not getattr(self.owner, "stripe_id", None):
            raise ValidationError(_("The Stripe customer does not have any subscriptions."))

    def _trial_end_param(self) -> int | str:
        if self.on_trial():
            return int(self.trial_ends_at.timestamp())
        return "now"

    @staticmethod
    def _subscription_item(stripe_subscription: Any, **fields: Any) -> dict[str, Any]:
        """Item payload targeting the subscription's existing (first) item."""
        item = dict(fields)
        items = stripe_subscription.get("items") or {}
        data = items.get("data") or []
        if data:
            item["id"] = data[0]["id"]
        return item

    def _billing(self, gateway: BasePaymentGateway | None = None) -> Any:
        from .billable import BillableService  # noqa: PLC0415

        return BillableService(self.owner, gateway=gateway or get_gateway())
