# ===============================================================================
# STRIPE GATEWAY TESTS
# ===============================================================================
"""
StripeGateway request building, API key resolution and the gateway factory.
The stripe SDK module is patched, so no request leaves the process.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

from django.test import SimpleTestCase, override_settings

from apps.billing import config
from apps.billing.gateways import (
    PaymentGatewayFactory,
    StripeGateway,
    get_gateway,
    period_end,
    timestamp_to_datetime,
)
from tests.factories.billing_factories import stripe_object


class StripeKeyResolutionTest(SimpleTestCase):
    def setUp(self):
        env_patcher = patch.dict(os.environ)
        env_patcher.start()
        self.addCleanup(env_patcher.stop)
        os.environ.pop("STRIPE_SECRET", None)
        self.addCleanup(config.set_stripe_key, None)

    @override_settings(STRIPE_SECRET_KEY="sk_test_settings")
    def test_settings_key(self):
        self.assertEqual(config.get_stripe_key(), "sk_test_settings")

    @override_settings(STRIPE_SECRET_KEY="sk_test_settings")
    def test_environment_overrides_settings(self):
        os.environ["STRIPE_SECRET"] = "sk_test_env"

        self.assertEqual(config.get_stripe_key(), "sk_test_env")

    @override_settings(STRIPE_SECRET_KEY="sk_test_settings")
    def test_explicit_key_overrides_everything(self):
        os.environ["STRIPE_SECRET"] = "sk_test_env"
        config.set_stripe_key("sk_test_override")

        self.assertEqual(config.get_stripe_key(), "sk_test_override")

        config.set_stripe_key(None)
        self.assertEqual(config.get_stripe_key(), "sk_test_env")


class BillingConfigTest(SimpleTestCase):
    def test_format_amount(self):
        self.assertEqual(config.format_amount(1999, "usd"), "$19.99")
        self.assertEqual(config.format_amount(-250, "eur"), "-€2.50")
        self.assertEqual(config.format_amount(123456, "gbp"), "£1,234.56")
        self.assertEqual(config.format_amount(100, "chf"), "CHF 1.00")

    @override_settings(BILLING_INVOICE_LIST_LIMIT="invalid")
    def test_invalid_list_limit_falls_back_to_default(self):
        self.assertEqual(config.get_list_limit(), 24)

    @override_settings(BILLING_INVOICE_LIST_LIMIT=0)
    def test_list_limit_is_at_least_one(self):
        self.assertEqual(config.get_list_limit(), 1)


class StripeGatewayRequestTest(SimpleTestCase):
    def setUp(self):
        patcher = patch("apps.billing.gateways.stripe_gateway.stripe")
        self.stripe = patcher.start()
        self.addCleanup(patcher.stop)
        self.gateway = StripeGateway()

    def test_request_options_carry_api_key(self):
        self.gateway.retrieve_customer("cus_test123")

        self.stripe.Customer.retrieve.assert_called_once_with("cus_test123", api_key="sk_test_fake_key")

    @override_settings(STRIPE_API_VERSION="2024-06-20")
    def test_request_options_carry_pinned_version(self):
        self.gateway.retrieve_invoice("in_123")

        self.stripe.Invoice.retrieve.assert_called_once_with(
            "in_123", api_key="sk_test_fake_key", stripe_version="2024-06-20"
        )

    def test_create_subscription_sends_single_item(self):
        self.gateway.create_subscription("cus_test123", "price_monthly", quantity=3, trial_end="now")

        self.stripe.Subscription.create.assert_called_once_with(
            customer="cus_test123",
            items=[{"price": "price_monthly", "quantity": 3}],
            trial_end="now",
            api_key="sk_test_fake_key",
        )

    def test_cancel_at_period_end(self):
        self.gateway.cancel_subscription_at_period_end("sub_test123")

        self.stripe.Subscription.modify.assert_called_once_with(
            "sub_test123", cancel_at_period_end=True, api_key="sk_test_fake_key"
        )

    def test_cancel_now(self):
        self.gateway.cancel_subscription("sub_test123")

        self.stripe.Subscription.cancel.assert_called_once_with("sub_test123", api_key="sk_test_fake_key")

    def test_create_and_pay_invoice(self):
        self.stripe.Invoice.create.return_value = MagicMock(id="in_new")

        self.gateway.create_and_pay_invoice("cus_test123")

        self.stripe.Invoice.create.assert_called_once_with(customer="cus_test123", api_key="sk_test_fake_key")
        self.stripe.Invoice.pay.assert_called_once_with("in_new", api_key="sk_test_fake_key")

    def test_upcoming_invoice_uses_preview(self):
        self.gateway.upcoming_invoice("cus_test123")

        self.stripe.Invoice.create_preview.assert_called_once_with(customer="cus_test123", api_key="sk_test_fake_key")

    def test_sources(self):
        self.gateway.create_source("cus_test123", "tok_visa")
        self.gateway.delete_source("cus_test123", "card_1")

        self.stripe.Customer.create_source.assert_called_once_with(
            "cus_test123", source="tok_visa", api_key="sk_test_fake_key"
        )
        self.stripe.Customer.delete_source.assert_called_once_with("cus_test123", "card_1", api_key="sk_test_fake_key")


class PaymentGatewayFactoryTest(SimpleTestCase):
    def test_default_gateway_is_stripe(self):
        gateway = get_gateway()

        self.assertIsInstance(gateway, StripeGateway)
        self.assertEqual(gateway.gateway_name, "stripe")
        self.assertIn("stripe", PaymentGatewayFactory.list_available_gateways())

    def test_unknown_gateway_rejected(self):
        with self.assertRaises(ValueError):
            PaymentGatewayFactory.create_gateway("paypal")

    @override_settings(STRIPE_SECRET_KEY=None)
    def test_unconfigured_gateway_rejected(self):
        with patch.dict(os.environ), patch.object(config, "_stripe_key_override", None):
            os.environ.pop("STRIPE_SECRET", None)
            with self.assertRaises(ValueError):
                PaymentGatewayFactory.create_gateway("stripe")


class StripeTimestampHelpersTest(SimpleTestCase):
    def test_timestamp_to_datetime(self):
        self.assertEqual(timestamp_to_datetime(0), datetime(1970, 1, 1, tzinfo=UTC))
        self.assertEqual(timestamp_to_datetime(1893456000), datetime(2030, 1, 1, tzinfo=UTC))
        self.assertIsNone(timestamp_to_datetime(None))

    def test_period_end_from_subscription(self):
        self.assertEqual(period_end(stripe_object({"current_period_end": 1893456000})), 1893456000)

    def test_period_end_from_first_item(self):
        subscription = stripe_object({"items": {"object": "list", "data": [{"current_period_end": 1893456000}]}})

        self.assertEqual(period_end(subscription), 1893456000)

    def test_period_end_missing(self):
        self.assertIsNone(period_end(stripe_object({"id": "sub_test123"})))
