"""
Invoice read models for the Billable platform
Convenience wrappers over Stripe invoice and invoice line objects.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from django.http import HttpResponse

from . import config
from .gateways import timestamp_to_datetime

if TYPE_CHECKING:
    from .billable import Billable


class StripeObjectProxy:
    """Attribute access falls through to the wrapped Stripe object."""

    _wrapped_attr = ""

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        wrapped = self.__dict__.get(self._wrapped_attr)
        if wrapped is None:
            raise AttributeError(name)
        try:
            return wrapped[name]
        except KeyError:
            raise AttributeError(name) from None


class InvoiceItem(StripeObjectProxy):
    """A single line of a Stripe invoice."""

    _wrapped_attr = "item"

    def __init__(self, owner: Billable, item: Any) -> None:
        self.owner = owner
        self.item = item

    def total(self) -> str:
        return config.format_amount(self.item.get("amount") or 0, self.item.get("currency"))

    def is_subscription(self) -> bool:
        return self.item.get("type") == "subscription"

    def start_date(self) -> datetime | None:
        period = self.item.get("period") or {}
        return timestamp_to_datetime(period.get("start"))

    def end_date(self) -> datetime | None:
        period = self.item.get("period") or {}
        return timestamp_to_datetime(period.get("end"))


class Invoice(StripeObjectProxy):
    """A Stripe invoice belonging to a billable owner."""

    _wrapped_attr = "invoice"

    def __init__(self, owner: Billable, invoice: Any) -> None:
        self.owner = owner
        self.invoice = invoice

    def date(self) -> datetime | None:
        return timestamp_to_datetime(self.invoice.get("created"))

    def is_paid(self) -> bool:
        return bool(self.invoice.get("paid")) or self.invoice.get("status") == "paid"

    # =========================================================================
    # AMOUNTS
    # =========================================================================

    def raw_total(self) -> int:
        """Total after applying the starting balance (credit is negative)."""
        return max(0, (self.invoice.get("total") or 0) + self.raw_starting_balance())

    def total(self) -> str:
        return self._format(self.raw_total())

    def subtotal(self) -> str:
        return self._format(max(0, self.invoice.get("subtotal") or 0))

    def raw_starting_balance(self) -> int:
        return self.invoice.get("starting_balance") or 0

    def has_starting_balance(self) -> bool:
        return self.raw_starting_balance() != 0

    def starting_balance(self) -> str:
        return self._format(self.raw_starting_balance())

    def tax(self) -> str:
        return self._format(self.invoice.get("tax") or 0)

    # =========================================================================
    # DISCOUNTS
    # =========================================================================

    def has_discount(self) -> bool:
        subtotal = self.invoice.get("subtotal") or 0
        total = self.invoice.get("total") or 0
        return subtotal > 0 and subtotal != total and self.invoice.get("discount") is not None

    def raw_discount(self) -> int:
        return (self.invoice.get("subtotal") or 0) - (self.invoice.get("total") or 0)

    def discount(self) -> str:
        return self._format(self.raw_discount())

    def _coupon(self) -> Any:
        discount = self.invoice.get("discount")
        return discount.get("coupon") if discount else None

    def coupon(self) -> str | None:
        coupon = self._coupon()
        return coupon.get("id") if coupon else None

    def discount_is_percentage(self) -> bool:
        coupon = self._coupon()
        return bool(coupon) and coupon.get("percent_off") is not None

    def percent_off(self) -> float:
        coupon = self._coupon()
        return (coupon.get("percent_off") or 0) if coupon else 0

    def amount_off(self) -> str:
        coupon = self._coupon()
        return self._format((coupon.get("amount_off") or 0) if coupon else 0)

    # =========================================================================
    # LINES
    # =========================================================================

    def _lines(self) -> list[Any]:
        lines = self.invoice.get("lines") or {}
        return list(lines.get("data") or [])

    def invoice_items(self) -> list[InvoiceItem]:
        return [InvoiceItem(self.owner, line) for line in self._lines() if line.get("type") == "invoiceitem"]

    def subscriptions(self) -> list[InvoiceItem]:
        return [InvoiceItem(self.owner, line) for line in self._lines() if line.get("type") == "subscription"]

    def download(self, data: dict[str, Any], filename: str | None = None) -> HttpResponse:
        """Render the invoice as a PDF attachment."""
        from .pdf_generators import InvoicePDFGenerator  # noqa: PLC0415

        return InvoicePDFGenerator(self, data).generate_response(filename)

    def _format(self, amount_cents: int) -> str:
        return config.format_amount(amount_cents, self.invoice.get("currency"))
