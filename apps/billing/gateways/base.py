"""
Base Payment Gateway for the Billable platform
Abstract interface over the remote payment service.

Every method is a single request/response exchange. Failures raised by the
remote service propagate to the caller unchanged; gateways never retry.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from apps.billing import config

logger = logging.getLogger(__name__)


# ===============================================================================
# ABSTRACT BASE GATEWAY
# ===============================================================================


class BasePaymentGateway(ABC):
    """
    🏛️ Abstract base class for all payment gateways

    Provides unified interface for:
    - Customer and payment source management
    - One-off charges, refunds and invoice items
    - Invoice creation, preview and listing
    - Subscription lifecycle calls
    """

    # Remote errors that read paths may downgrade to "nothing found"
    invalid_request_errors: ClassVar[tuple[type[Exception], ...]] = ()
    remote_errors: ClassVar[tuple[type[Exception], ...]] = ()

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"apps.billing.gateways.{self.__class__.__name__.lower()}")

    @property
    @abstractmethod
    def gateway_name(self) -> str:
        """Gateway identifier (e.g., 'stripe')"""

    # ---------------------------------------------------------------------------
    # Customers & sources
    # ---------------------------------------------------------------------------

    @abstractmethod
    def create_customer(self, **params: Any) -> Any:
        """Create a remote customer and return it."""

    @abstractmethod
    def retrieve_customer(self, customer_id: str) -> Any:
        """Fetch a remote customer by id."""

    @abstractmethod
    def update_customer(self, customer_id: str, **params: Any) -> Any:
        """Update fields on a remote customer (default source, coupon...)."""

    @abstractmethod
    def list_sources(self, customer_id: str, **params: Any) -> Any:
        """List the customer's payment sources."""

    @abstractmethod
    def create_source(self, customer_id: str, source: str) -> Any:
        """Attach a tokenized source to the customer."""

    @abstractmethod
    def retrieve_source(self, customer_id: str, source_id: str) -> Any:
        """Fetch one of the customer's sources."""

    @abstractmethod
    def delete_source(self, customer_id: str, source_id: str) -> Any:
        """Detach a source from the customer."""

    @abstractmethod
    def retrieve_token(self, token_id: str) -> Any:
        """Fetch a card/bank token."""

    # ---------------------------------------------------------------------------
    # Charges & invoices
    # ---------------------------------------------------------------------------

    @abstractmethod
    def create_charge(self, **params: Any) -> Any:
        """Create a one-off charge."""

    @abstractmethod
    def create_refund(self, **params: Any) -> Any:
        """Refund a charge."""

    @abstractmethod
    def create_invoice_item(self, **params: Any) -> Any:
        """Add an item to the customer's upcoming invoice."""

    @abstractmethod
    def create_and_pay_invoice(self, customer_id: str) -> Any:
        """Invoice the customer now and pay the invoice."""

    @abstractmethod
    def upcoming_invoice(self, customer_id: str) -> Any:
        """Preview the customer's next invoice."""

    @abstractmethod
    def retrieve_invoice(self, invoice_id: str) -> Any:
        """Fetch an invoice by id."""

    @abstractmethod
    def list_invoices(self, customer_id: str, **params: Any) -> Any:
        """List the customer's invoices."""

    # ---------------------------------------------------------------------------
    # Subscriptions
    # ---------------------------------------------------------------------------

    @abstractmethod
    def create_subscription(self, customer_id: str, plan: str, **params: Any) -> Any:
        """Create a subscription for the customer on the given plan."""

    @abstractmethod
    def retrieve_subscription(self, subscription_id: str) -> Any:
        """Fetch a subscription by id."""

    @abstractmethod
    def update_subscription(self, subscription_id: str, **params: Any) -> Any:
        """Update a subscription (plan, quantity, trial end...)."""

    @abstractmethod
    def cancel_subscription_at_period_end(self, subscription_id: str) -> Any:
        """Schedule cancellation at the end of the paid period."""

    @abstractmethod
    def cancel_subscription(self, subscription_id: str) -> Any:
        """Cancel the subscription immediately."""

    def validate_configuration(self) -> bool:
        """
        Validate gateway configuration (API keys, etc.)
        Override in subclasses for specific validation.

        Returns:
            True if configuration is valid
        """
        return True


# ===============================================================================
# GATEWAY FACTORY
# ===============================================================================


class PaymentGatewayFactory:
    """
    🏭 Factory for creating payment gateway instances

    Supports dynamic gateway selection based on configuration.
    """

    _gateways: ClassVar[dict[str, type[BasePaymentGateway]]] = {}

    @classmethod
    def register_gateway(cls, gateway_name: str, gateway_class: type[BasePaymentGateway]) -> None:
        """Register a payment gateway class"""
        cls._gateways[gateway_name] = gateway_class

    @classmethod
    def create_gateway(cls, gateway_name: str) -> BasePaymentGateway:
        """
        Create payment gateway instance

        Raises:
            ValueError: If gateway not found or not configured
        """
        if gateway_name not in cls._gateways:
            raise ValueError(f"Payment gateway '{gateway_name}' not registered")

        gateway = cls._gateways[gateway_name]()

        if not gateway.validate_configuration():
            raise ValueError(f"Payment gateway '{gateway_name}' not properly configured")

        logger.debug(f"✅ Created {gateway_name} payment gateway")
        return gateway

    @classmethod
    def get_default_gateway(cls) -> BasePaymentGateway:
        """Get default payment gateway from settings"""
        return cls.create_gateway(config.get_default_gateway_name())

    @classmethod
    def list_available_gateways(cls) -> list[str]:
        """List all registered gateway names"""
        return list(cls._gateways.keys())
