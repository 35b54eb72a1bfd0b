"""
Stripe Payment Gateway for the Billable platform
Thin wrapper over the Stripe SDK used by billable owners and subscriptions.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import stripe

from apps.billing import config

from .base import BasePaymentGateway, PaymentGatewayFactory

logger = logging.getLogger(__name__)


def timestamp_to_datetime(timestamp: int | None) -> datetime | None:
    """Convert a Stripe Unix timestamp into an aware UTC datetime."""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=UTC)


def period_end(subscription: Any) -> int | None:
    """
    Current period end of a Stripe subscription as a Unix timestamp.

    Newer API versions report the billing period on subscription items
    instead of the subscription itself.
    """
    value = subscription.get("current_period_end")
    if value is not None:
        return value

    items = subscription.get("items")
    if items and items.get("data"):
        return items["data"][0].get("current_period_end")
    return None


# ===============================================================================
# STRIPE GATEWAY IMPLEMENTATION
# ===============================================================================


class StripeGateway(BasePaymentGateway):
    """
    💳 Stripe payment gateway implementation

    Features:
    - Customer, card source and token handling
    - Charges, refunds, invoice items and invoices
    - Subscription create/update/cancel
    """

    invalid_request_errors = (stripe.InvalidRequestError,)
    remote_errors = (stripe.StripeError,)

    @property
    def gateway_name(self) -> str:
        return 'stripe'

    def validate_configuration(self) -> bool:
        """Validate that a Stripe secret key is available"""
        if not config.get_stripe_key():
            self.logger.error("❌ Stripe secret key not configured")
            return False
        return True

    def _request_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {'api_key': config.get_stripe_key()}
        if api_version := config.get_stripe_api_version():
            options['stripe_version'] = api_version
        return options

    # ---------------------------------------------------------------------------
    # Customers & sources
    # ---------------------------------------------------------------------------

    def create_customer(self, **params: Any) -> stripe.Customer:
        customer = stripe.Customer.create(**params, **self._request_options())
        self.logger.info(f"✅ Created Stripe customer {customer.id}")
        return customer

    def retrieve_customer(self, customer_id: str) -> stripe.Customer:
        return stripe.Customer.retrieve(customer_id, **self._request_options())

    def update_customer(self, customer_id: str, **params: Any) -> stripe.Customer:
        return stripe.Customer.modify(customer_id, **params, **self._request_options())

    def list_sources(self, customer_id: str, **params: Any) -> Any:
        return stripe.Customer.list_sources(customer_id, **params, **self._request_options())

    def create_source(self, customer_id: str, source: str) -> Any:
        return stripe.Customer.create_source(customer_id, source=source, **self._request_options())

    def retrieve_source(self, customer_id: str, source_id: str) -> Any:
        return stripe.Customer.retrieve_source(customer_id, source_id, **self._request_options())

    def delete_source(self, customer_id: str, source_id: str) -> Any:
        self.logger.info(f"🗑️ Deleting source {source_id} of customer {customer_id}")
        return stripe.Customer.delete_source(customer_id, source_id, **self._request_options())

    def retrieve_token(self, token_id: str) -> stripe.Token:
        return stripe.Token.retrieve(token_id, **self._request_options())

    # ---------------------------------------------------------------------------
    # Charges & invoices
    # ---------------------------------------------------------------------------

    def create_charge(self, **params: Any) -> stripe.Charge:
        charge = stripe.Charge.create(**params, **self._request_options())
        self.logger.info(f"💳 Created Stripe charge {charge.id} ({params.get('amount')} {params.get('currency')})")
        return charge

    def create_refund(self, **params: Any) -> stripe.Refund:
        refund = stripe.Refund.create(**params, **self._request_options())
        self.logger.info(f"↩️ Refunded charge {params.get('charge')}")
        return refund

    def create_invoice_item(self, **params: Any) -> stripe.InvoiceItem:
        return stripe.InvoiceItem.create(**params, **self._request_options())

    def create_and_pay_invoice(self, customer_id: str) -> stripe.Invoice:
        invoice = stripe.Invoice.create(customer=customer_id, **self._request_options())
        self.logger.info(f"🧾 Created invoice {invoice.id} for customer {customer_id}")
        return stripe.Invoice.pay(invoice.id, **self._request_options())

    def upcoming_invoice(self, customer_id: str) -> stripe.Invoice:
        return stripe.Invoice.create_preview(customer=customer_id, **self._request_options())

    def retrieve_invoice(self, invoice_id: str) -> stripe.Invoice:
        return stripe.Invoice.retrieve(invoice_id, **self._request_options())

    def list_invoices(self, customer_id: str, **params: Any) -> Any:
        return stripe.Invoice.list(customer=customer_id, **params, **self._request_options())

    # ---------------------------------------------------------------------------
    # Subscriptions
    # ---------------------------------------------------------------------------

    def create_subscription(self, customer_id: str, plan: str, **params: Any) -> stripe.Subscription:
        quantity = params.pop('quantity', 1)
        subscription = stripe.Subscription.create(
            customer=customer_id,
            items=[{'price': plan, 'quantity': quantity}],
            **params,
            **self._request_options(),
        )
        self.logger.info(
            f"✅ Created Stripe subscription {subscription.id} for customer {customer_id} (plan: {plan})"
        )
        return subscription

    def retrieve_subscription(self, subscription_id: str) -> stripe.Subscription:
        return stripe.Subscription.retrieve(subscription_id, **self._request_options())

    def update_subscription(self, subscription_id: str, **params: Any) -> stripe.Subscription:
        subscription = stripe.Subscription.modify(subscription_id, **params, **self._request_options())
        self.logger.info(f"🔄 Updated Stripe subscription {subscription_id}")
        return subscription

    def cancel_subscription_at_period_end(self, subscription_id: str) -> stripe.Subscription:
        subscription = stripe.Subscription.modify(
            subscription_id, cancel_at_period_end=True, **self._request_options()
        )
        self.logger.info(f"⏳ Stripe subscription {subscription_id} cancels at period end")
        return subscription

    def cancel_subscription(self, subscription_id: str) -> stripe.Subscription:
        subscription = stripe.Subscription.cancel(subscription_id, **self._request_options())
        self.logger.info(f"✅ Cancelled Stripe subscription {subscription_id}")
        return subscription


# ===============================================================================
# GATEWAY REGISTRATION
# ===============================================================================

# Register Stripe gateway with factory
PaymentGatewayFactory.register_gateway('stripe', StripeGateway)
