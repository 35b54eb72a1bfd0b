"""
Billable capability for the Billable platform
Stripe customer, card, charge and invoice operations for an owner model.

Provides:
- ``Billable``: the fields an owner must expose (Stripe id, email, card summary)
- ``BillableModel``: abstract Django model supplying those fields
- ``BillableService``: billing operations parameterized over a ``Billable`` owner
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from django.core.exceptions import PermissionDenied
from django.db import models
from django.http import Http404, HttpResponse
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.common.validators import log_security_event

from . import config
from .card import Card
from .gateways import get_gateway
from .invoice import Invoice
from .subscription_models import DEFAULT_SUBSCRIPTION_NAME, Subscription, SubscriptionQuerySet

if TYPE_CHECKING:
    from .builder import SubscriptionBuilder
    from .gateways import BasePaymentGateway

logger = logging.getLogger(__name__)


# ===============================================================================
# OWNER INTERFACE
# ===============================================================================


@runtime_checkable
class Billable(Protocol):
    """Fields a local owner record must expose to be billed through Stripe."""

    stripe_id: str | None
    email: str
    card_brand: str | None
    card_last_four: str | None
    trial_ends_at: datetime | None

    def save(self, *args: Any, **kwargs: Any) -> None: ...


class BillableModel(models.Model):
    """Abstract model adding the Stripe customer fields to an owner."""

    stripe_id = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    card_brand = models.CharField(max_length=255, null=True, blank=True)
    card_last_four = models.CharField(max_length=4, null=True, blank=True)
    trial_ends_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("Generic trial not tied to any subscription"),
    )

    class Meta:
        abstract = True

    @property
    def billing(self) -> BillableService:
        return BillableService(self)

    def tax_percentage(self) -> float:
        """Tax percent applied to new subscriptions; override per owner model."""
        return 0


# ===============================================================================
# BILLABLE SERVICE
# ===============================================================================


class BillableService:
    """
    💳 Billing operations for one owner.

    Remote failures propagate unchanged, except on the read paths that report
    "nothing found" instead (``invoice``, ``upcoming_invoice``, ``find_invoice``).
    """

    def __init__(self, owner: Billable, gateway: BasePaymentGateway | None = None) -> None:
        self.owner = owner
        self._gateway = gateway

    @property
    def gateway(self) -> BasePaymentGateway:
        if self._gateway is None:
            self._gateway = get_gateway()
        return self._gateway

    # =========================================================================
    # CHARGES
    # =========================================================================

    def charge(self, amount: int, **options: Any) -> Any:
        """
        Make a "one off" charge on the customer for the given amount.

        Raises:
            ValueError: If neither a source nor a Stripe customer is available
        """
        options = {"currency": self.preferred_currency(), **options}
        options["amount"] = amount

        if "source" not in options and self.owner.stripe_id:
            options["customer"] = self.owner.stripe_id

        if "source" not in options and "customer" not in options:
            raise ValueError("No payment source provided.")

        charge = self.gateway.create_charge(**options)

        log_security_event(
            event_type="charge_created",
            details={
                "customer_id": options.get("customer"),
                "amount_cents": amount,
                "currency": options["currency"],
                "critical_financial_operation": True,
            },
        )
        return charge

    def refund(self, charge_id: str, **options: Any) -> Any:
        options["charge"] = charge_id

        refund = self.gateway.create_refund(**options)

        log_security_event(
            event_type="charge_refunded",
            details={
                "charge_id": charge_id,
                "amount_cents": options.get("amount"),
                "critical_financial_operation": True,
            },
        )
        return refund

    def has_card_on_file(self) -> bool:
        return bool(self.owner.card_brand)

    # =========================================================================
    # INVOICING
    # =========================================================================

    def tab(self, description: str, amount: int, **options: Any) -> Any:
        """
        Add an invoice item to the customer's upcoming invoice.

        Raises:
            ValueError: If the owner is not a Stripe customer yet
        """
        if not self.owner.stripe_id:
            raise ValueError(
                f"{type(self.owner).__name__} is not a Stripe customer. See create_as_stripe_customer()."
            )

        options = {
            "customer": self.owner.stripe_id,
            "amount": amount,
            "currency": self.preferred_currency(),
            "description": description,
            **options,
        }
        return self.gateway.create_invoice_item(**options)

    def invoice_for(self, description: str, amount: int, **options: Any) -> Any:
        """Add an invoice item and invoice the customer immediately."""
        self.tab(description, amount, **options)
        return self.invoice()

    def invoice(self) -> Any:
        """
        Invoice the owner outside of the regular billing cycle.

        Returns the paid invoice, ``False`` when Stripe rejects the request
        (e.g. nothing to invoice) and ``True`` when the owner has no Stripe id.
        """
        if not self.owner.stripe_id:
            return True

        try:
            return self.gateway.create_and_pay_invoice(self.owner.stripe_id)
        except self.gateway.invalid_request_errors as e:
            logger.warning(f"⚠️ Invoice for customer {self.owner.stripe_id} not created: {e}")
            return False

    def upcoming_invoice(self) -> Invoice | None:
        if not self.owner.stripe_id:
            return None

        try:
            stripe_invoice = self.gateway.upcoming_invoice(self.owner.stripe_id)
        except self.gateway.invalid_request_errors as e:
            logger.info(f"No upcoming invoice for customer {self.owner.stripe_id}: {e}")
            return None

        return Invoice(self.owner, stripe_invoice)

    def find_invoice(self, invoice_id: str) -> Invoice | None:
        try:
            stripe_invoice = self.gateway.retrieve_invoice(invoice_id)
        except self.gateway.remote_errors as e:
            logger.info(f"Invoice {invoice_id} not found: {e}")
            return None

        return Invoice(self.owner, stripe_invoice)

    def find_invoice_or_fail(self, invoice_id: str) -> Invoice:
        """
        Find one of the owner's invoices.

        Raises:
            Http404: If the invoice does not exist
            PermissionDenied: If the invoice belongs to another customer
        """
        invoice = self.find_invoice(invoice_id)

        if invoice is None:
            raise Http404(f"Invoice {invoice_id} not found")

        if invoice.customer != self.owner.stripe_id:
            log_security_event(
                event_type="invoice_access_denied",
                details={"invoice_id": invoice_id, "customer_id": self.owner.stripe_id},
            )
            raise PermissionDenied

        return invoice

    def download_invoice(self, invoice_id: str, data: dict[str, Any], filename: str | None = None) -> HttpResponse:
        return self.find_invoice_or_fail(invoice_id).download(data, filename)

    def invoices(self, include_pending: bool = False, **parameters: Any) -> list[Invoice]:
        parameters = {"limit": config.get_list_limit(), **parameters}

        stripe_invoices = self.gateway.list_invoices(self.owner.stripe_id, **parameters)

        # Only paid invoices unless pending ones were asked for
        invoices = []
        if stripe_invoices is not None:
            for stripe_invoice in stripe_invoices.data:
                invoice = Invoice(self.owner, stripe_invoice)
                if invoice.is_paid() or include_pending:
                    invoices.append(invoice)

        return invoices

    def invoices_including_pending(self, **parameters: Any) -> list[Invoice]:
        return self.invoices(True, **parameters)

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def new_subscription(self, name: str, plan: str) -> SubscriptionBuilder:
        from .builder import SubscriptionBuilder  # noqa: PLC0415

        return SubscriptionBuilder(self.owner, name, plan, gateway=self._gateway)

    def on_trial(self, name: str | None = None, plan: str | None = None) -> bool:
        """
        Whether the owner is on trial.

        Called without arguments, the owner's generic trial also counts.
        """
        if name is None and plan is None and self.on_generic_trial():
            return True

        subscription = self.subscription(name or DEFAULT_SUBSCRIPTION_NAME)

        if subscription is None or not subscription.on_trial():
            return False

        return plan is None or subscription.stripe_plan == plan

    def on_generic_trial(self) -> bool:
        trial_ends_at = self.owner.trial_ends_at
        return bool(trial_ends_at) and timezone.now() < trial_ends_at

    def subscribed(self, name: str = DEFAULT_SUBSCRIPTION_NAME, plan: str | None = None) -> bool:
        subscription = self.subscription(name)

        if subscription is None or not subscription.valid():
            return False

        return plan is None or subscription.stripe_plan == plan

    def subscription(self, name: str = DEFAULT_SUBSCRIPTION_NAME) -> Subscription | None:
        return Subscription.objects.current(self.owner, name)

    def subscriptions(self) -> SubscriptionQuerySet:
        return Subscription.objects.for_owner(self.owner).newest_first()

    def subscribed_to_plan(self, plans: str | Iterable[str], name: str = DEFAULT_SUBSCRIPTION_NAME) -> bool:
        subscription = self.subscription(name)

        if subscription is None or not subscription.valid():
            return False

        if isinstance(plans, str):
            plans = [plans]

        return subscription.stripe_plan in set(plans)

    def on_plan(self, plan: str) -> bool:
        return any(subscription.valid() for subscription in self.subscriptions().filter(stripe_plan=plan))

    # =========================================================================
    # CARDS
    # =========================================================================

    def cards(self, **parameters: Any) -> list[Card]:
        parameters = {"limit": config.get_list_limit(), **parameters, "object": "card"}

        stripe_cards = self.gateway.list_sources(self.owner.stripe_id, **parameters)

        if stripe_cards is None:
            return []
        return [Card(self.owner, card, gateway=self.gateway) for card in stripe_cards.data]

    def default_card(self) -> Any:
        customer = self.as_stripe_customer()

        if not customer.get("default_source"):
            return None

        return self.gateway.retrieve_source(self.owner.stripe_id, customer["default_source"])

    def update_card(self, token: str) -> None:
        """Replace the customer's default card with the tokenized one."""
        customer = self.as_stripe_customer()
        stripe_token = self.gateway.retrieve_token(token)

        # Nothing to do when the token's card is already the default source
        if stripe_token[stripe_token["type"]]["id"] == customer.get("default_source"):
            return

        card = self.gateway.create_source(self.owner.stripe_id, stripe_token["id"])

        customer = self.gateway.update_customer(self.owner.stripe_id, default_source=card["id"])

        # Mirror brand and last four locally for display
        source = (
            self.gateway.retrieve_source(self.owner.stripe_id, customer["default_source"])
            if customer.get("default_source")
            else None
        )

        self.fill_card_details(source)
        self.owner.save()

        log_security_event(
            event_type="card_updated",
            details={"customer_id": self.owner.stripe_id, "card_brand": self.owner.card_brand},
        )

    def update_card_from_stripe(self) -> BillableService:
        """Synchronise the default card summary from Stripe into the owner."""
        default_card = self.default_card()

        if default_card:
            self.fill_card_details(default_card)
        else:
            self.owner.card_brand = None
            self.owner.card_last_four = None

        self.owner.save()
        return self

    def fill_card_details(self, source: Any) -> BillableService:
        if source is None:
            return self

        if source.get("object") == "card":
            self.owner.card_brand = source["brand"]
            self.owner.card_last_four = source["last4"]
        elif source.get("object") == "bank_account":
            self.owner.card_brand = "Bank Account"
            self.owner.card_last_four = source["last4"]

        return self

    def delete_cards(self) -> None:
        for card in self.cards():
            card.delete()

        self.update_card_from_stripe()

    def apply_coupon(self, coupon: str) -> None:
        self.gateway.update_customer(self.owner.stripe_id, coupon=coupon)

    # =========================================================================
    # CUSTOMER
    # =========================================================================

    def has_stripe_id(self) -> bool:
        return self.owner.stripe_id is not None

    def create_as_stripe_customer(self, token: str | None = None, **options: Any) -> Any:
        """Create the Stripe customer, store its id and optionally attach a card."""
        options.setdefault("email", self.owner.email)

        customer = self.gateway.create_customer(**options)

        self.owner.stripe_id = customer["id"]
        self.owner.save()

        log_security_event(
            event_type="stripe_customer_created",
            details={"customer_id": customer["id"], "email": options["email"]},
        )

        if token is not None:
            self.update_card(token)

        return customer

    def as_stripe_customer(self) -> Any:
        return self.gateway.retrieve_customer(self.owner.stripe_id)

    def preferred_currency(self) -> str:
        return config.get_currency()

    def tax_percentage(self) -> float:
        """Owner's ``tax_percentage()`` hook, or 0 when it has none."""
        hook = getattr(self.owner, "tax_percentage", None)
        return hook() if callable(hook) else 0
