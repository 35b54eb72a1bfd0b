"""
Centralized billing configuration for the Billable platform.

All Stripe and billing related settings are read here so the rest of the
app never touches ``django.conf.settings`` directly.
"""

from __future__ import annotations

import logging
import os
from decimal import Decimal
from typing import Any

from django.conf import settings

logger = logging.getLogger(__name__)

# ===============================================================================
# HELPER: SAFE VALUE PARSING
# ===============================================================================

def _get_positive_int(setting_name: str, default: int) -> int:
    """Get a positive integer from settings with validation."""
    value = getattr(settings, setting_name, default)
    try:
        result = int(value)
    except (TypeError, ValueError):
        result = default
    return max(1, result)  # Ensure at least 1


# ===============================================================================
# STRIPE API KEY
# ===============================================================================

_stripe_key_override: str | None = None


def set_stripe_key(key: str | None) -> None:
    """Override the Stripe API key for this process (``None`` clears it)."""
    global _stripe_key_override
    _stripe_key_override = key


def get_stripe_key() -> str | None:
    """Resolve the Stripe secret key: override, then environment, then settings."""
    if _stripe_key_override:
        return _stripe_key_override

    if key := os.environ.get("STRIPE_SECRET"):
        return key

    return getattr(settings, "STRIPE_SECRET_KEY", None)


def get_stripe_api_version() -> str | None:
    return getattr(settings, "STRIPE_API_VERSION", None)


# ===============================================================================
# CURRENCY
# ===============================================================================

CURRENCY_SYMBOLS = {
    "usd": "$",
    "eur": "€",
    "gbp": "£",
    "ron": "lei ",
}


def get_currency() -> str:
    """Currency used for charges and invoice items (lowercase ISO code)."""
    return (getattr(settings, "BILLING_CURRENCY", "usd") or "usd").lower()


def get_currency_symbol(currency: str | None = None) -> str:
    currency = (currency or get_currency()).lower()
    return CURRENCY_SYMBOLS.get(currency, f"{currency.upper()} ")


def format_amount(amount_cents: int, currency: str | None = None) -> str:
    """Format an amount in cents for display, e.g. ``1999`` -> ``$19.99``."""
    amount = Decimal(amount_cents) / 100
    sign = "-" if amount < 0 else ""
    return f"{sign}{get_currency_symbol(currency)}{abs(amount):,.2f}"


# ===============================================================================
# LISTINGS & INVOICES
# ===============================================================================

def get_list_limit() -> int:
    """Default page size for invoice and card listings."""
    return _get_positive_int("BILLING_INVOICE_LIST_LIMIT", 24)


def get_vendor_details() -> dict[str, Any]:
    """Vendor block printed on downloaded invoices."""
    return dict(getattr(settings, "BILLING_VENDOR", {}) or {})


def get_default_gateway_name() -> str:
    return getattr(settings, "DEFAULT_PAYMENT_GATEWAY", "stripe") or "stripe"
