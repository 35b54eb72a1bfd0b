"""
Card read model for the Billable platform
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .invoice import StripeObjectProxy

if TYPE_CHECKING:
    from .billable import Billable
    from .gateways import BasePaymentGateway

logger = logging.getLogger(__name__)


class Card(StripeObjectProxy):
    """A card source attached to a billable owner's Stripe customer."""

    _wrapped_attr = "card"

    def __init__(self, owner: Billable, card: Any, gateway: BasePaymentGateway) -> None:
        self.owner = owner
        self.card = card
        self.gateway = gateway

    def delete(self) -> Any:
        """Detach the card from the Stripe customer."""
        logger.info(f"🗑️ Removing card {self.card['id']} from customer {self.owner.stripe_id}")
        return self.gateway.delete_source(self.owner.stripe_id, self.card["id"])
