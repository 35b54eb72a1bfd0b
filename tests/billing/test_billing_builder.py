# ===============================================================================
# SUBSCRIPTION BUILDER TESTS
# ===============================================================================

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import stripe
from django.test import TestCase
from freezegun import freeze_time

from apps.billing.billable import BillableService
from apps.billing.models import Subscription
from tests.factories.billing_factories import create_user, make_gateway, stripe_object


class SubscriptionBuilderTest(TestCase):
    def setUp(self):
        self.user = create_user()
        self.gateway = make_gateway()
        self.gateway.create_subscription.return_value = stripe_object({"id": "sub_new", "object": "subscription"})
        self.billing = BillableService(self.user, gateway=self.gateway)

    def test_create_for_existing_customer(self):
        subscription = self.billing.new_subscription("default", "price_monthly").create()

        self.gateway.create_subscription.assert_called_once_with("cus_test123", "price_monthly", quantity=1)
        self.gateway.create_customer.assert_not_called()

        self.assertIsInstance(subscription, Subscription)
        self.assertEqual(subscription.stripe_id, "sub_new")
        self.assertEqual(subscription.stripe_plan, "price_monthly")
        self.assertEqual(subscription.quantity, 1)
        self.assertIsNone(subscription.trial_ends_at)
        self.assertIsNone(subscription.ends_at)
        self.assertEqual(self.billing.subscription("default").pk, subscription.pk)

    @freeze_time("2030-05-01 12:00:00")
    def test_trial_days_quantity_coupon_and_metadata(self):
        subscription = (
            self.billing.new_subscription("default", "price_monthly")
            .quantity(5)
            .trial_days(14)
            .with_coupon("LAUNCH")
            .with_metadata({"team": "ops"})
            .create()
        )

        trial_end = datetime(2030, 5, 15, 12, 0, tzinfo=UTC)
        self.gateway.create_subscription.assert_called_once_with(
            "cus_test123",
            "price_monthly",
            quantity=5,
            discounts=[{"coupon": "LAUNCH"}],
            metadata={"team": "ops"},
            trial_end=int(trial_end.timestamp()),
        )
        subscription.refresh_from_db()
        self.assertEqual(subscription.quantity, 5)
        self.assertEqual(subscription.trial_ends_at, trial_end)
        self.assertTrue(subscription.on_trial())

    def test_trial_until(self):
        trial_end = datetime(2031, 1, 1, tzinfo=UTC)

        subscription = self.billing.new_subscription("default", "price_monthly").trial_until(trial_end).add()

        self.assertEqual(self.gateway.create_subscription.call_args.kwargs["trial_end"], int(trial_end.timestamp()))
        self.assertEqual(subscription.trial_ends_at, trial_end)

    def test_skip_trial_ends_trial_immediately(self):
        subscription = (
            self.billing.new_subscription("default", "price_monthly").trial_days(7).skip_trial().create()
        )

        self.assertEqual(self.gateway.create_subscription.call_args.kwargs["trial_end"], "now")
        self.assertIsNone(subscription.trial_ends_at)

    def test_generic_trial_is_left_untouched(self):
        generic_trial = datetime(2031, 6, 1, tzinfo=UTC)
        self.user.trial_ends_at = generic_trial
        self.user.save()

        self.billing.new_subscription("default", "price_monthly").create()

        self.user.refresh_from_db()
        self.assertEqual(self.user.trial_ends_at, generic_trial)

    def test_quantity_below_one_rejected(self):
        with self.assertRaises(ValueError):
            self.billing.new_subscription("default", "price_monthly").quantity(0)

    def test_creates_stripe_customer_when_missing(self):
        owner = create_user(email="new@example.com", stripe_id=None)
        self.gateway.create_customer.return_value = stripe_object({"id": "cus_new", "object": "customer"})

        subscription = BillableService(owner, gateway=self.gateway).new_subscription("default", "price_monthly").add(
            description="Created with first subscription"
        )

        self.gateway.create_customer.assert_called_once_with(
            description="Created with first subscription", email="new@example.com"
        )
        self.gateway.create_subscription.assert_called_once_with("cus_new", "price_monthly", quantity=1)
        owner.refresh_from_db()
        self.assertEqual(owner.stripe_id, "cus_new")
        self.assertEqual(subscription.owner_id, owner.pk)

    def test_token_updates_card_of_existing_customer(self):
        self.gateway.retrieve_customer.return_value = stripe_object({"id": "cus_test123", "default_source": "card_1"})
        self.gateway.retrieve_token.return_value = stripe_object({
            "id": "tok_visa",
            "type": "card",
            "card": {"id": "card_1"},
        })

        self.billing.new_subscription("default", "price_monthly").create("tok_visa")

        self.gateway.retrieve_token.assert_called_once_with("tok_visa")
        self.gateway.create_customer.assert_not_called()

    def test_remote_failure_creates_no_local_row(self):
        self.gateway.create_subscription.side_effect = stripe.InvalidRequestError("No such price", param="items")

        with self.assertRaises(stripe.InvalidRequestError):
            self.billing.new_subscription("default", "price_missing").create()

        self.assertFalse(Subscription.objects.exists())

    def test_multiple_named_subscriptions(self):
        self.billing.new_subscription("default", "price_monthly").create()
        self.gateway.create_subscription.return_value = stripe_object({"id": "sub_addon", "object": "subscription"})
        self.billing.new_subscription("addons", "price_storage").create()

        self.assertTrue(self.billing.subscribed("default"))
        self.assertTrue(self.billing.subscribed("addons", "price_storage"))
        self.assertEqual(self.billing.subscriptions().count(), 2)

    def test_trial_days_relative_to_now(self):
        with freeze_time("2030-01-01 00:00:00"):
            builder = self.billing.new_subscription("default", "price_monthly").trial_days(30)

        self.assertEqual(builder._trial_expires, datetime(2030, 1, 1, tzinfo=UTC) + timedelta(days=30))

    def test_owner_tax_percentage_sent_with_subscription(self):
        with patch.object(self.user, "tax_percentage", return_value=20):
            self.billing.new_subscription("default", "price_monthly").create()

        self.assertEqual(self.gateway.create_subscription.call_args.kwargs["tax_percent"], 20)

    def test_zero_tax_percentage_not_sent(self):
        self.billing.new_subscription("default", "price_monthly").create()

        self.assertNotIn("tax_percent", self.gateway.create_subscription.call_args.kwargs)
