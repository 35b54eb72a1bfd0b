"""
Payment Gateway Implementations for the Billable platform
"""

from .base import BasePaymentGateway, PaymentGatewayFactory
from .stripe_gateway import StripeGateway, period_end, timestamp_to_datetime


def get_gateway() -> BasePaymentGateway:
    """Default configured gateway instance."""
    return PaymentGatewayFactory.get_default_gateway()


__all__ = [
    'BasePaymentGateway',
    'PaymentGatewayFactory',
    'StripeGateway',
    'get_gateway',
    'period_end',
    'timestamp_to_datetime',
]
