# ===============================================================================
# SUBSCRIPTION STATUS TESTS
# ===============================================================================
"""
Status predicates of Subscription and the derived SubscriptionState.
No Stripe calls are involved: every predicate is computed from local timestamps.
"""

from __future__ import annotations

from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from freezegun import freeze_time

from apps.billing.models import Subscription, SubscriptionState, derive_state
from tests.factories.billing_factories import create_subscription, create_user


class DeriveStateTestCase(TestCase):
    """Pure classification of the timestamp fields."""

    def setUp(self):
        self.now = timezone.now()

    def test_no_timestamps_is_active(self):
        self.assertEqual(derive_state(None, None, self.now), SubscriptionState.ACTIVE)

    def test_future_trial_is_trialing(self):
        state = derive_state(self.now + timedelta(days=7), None, self.now)
        self.assertEqual(state, SubscriptionState.TRIALING)

    def test_trial_takes_precedence_over_grace_period(self):
        """Cancelling on trial sets ends_at to the trial end: still trialing."""
        trial_end = self.now + timedelta(days=3)
        self.assertEqual(derive_state(trial_end, trial_end, self.now), SubscriptionState.TRIALING)

    def test_future_ends_at_is_grace_period(self):
        state = derive_state(None, self.now + timedelta(days=1), self.now)
        self.assertEqual(state, SubscriptionState.GRACE_PERIOD)

    def test_past_ends_at_is_cancelled(self):
        state = derive_state(None, self.now - timedelta(seconds=1), self.now)
        self.assertEqual(state, SubscriptionState.CANCELLED)
        self.assertFalse(state.is_usable)

    def test_expired_trial_without_ends_at_is_active(self):
        state = derive_state(self.now - timedelta(days=1), None, self.now)
        self.assertEqual(state, SubscriptionState.ACTIVE)

    def test_ends_at_exactly_now_is_cancelled(self):
        """Grace period requires ends_at strictly after now."""
        self.assertEqual(derive_state(None, self.now, self.now), SubscriptionState.CANCELLED)


class SubscriptionPredicatesTestCase(TestCase):
    """Boolean predicates keep their overlapping definitions."""

    def setUp(self):
        self.user = create_user()

    def _subscription(self, **fields) -> Subscription:
        return create_subscription(self.user, **fields)

    def test_without_ends_at_is_active_and_not_cancelled(self):
        subscription = self._subscription()

        self.assertTrue(subscription.active())
        self.assertFalse(subscription.cancelled())
        self.assertFalse(subscription.on_grace_period())
        self.assertTrue(subscription.valid())

    def test_trial_without_ends_at_is_active_and_on_trial(self):
        subscription = self._subscription(trial_ends_at=timezone.now() + timedelta(days=7))

        self.assertTrue(subscription.on_trial())
        self.assertTrue(subscription.active())
        self.assertTrue(subscription.valid())
        self.assertFalse(subscription.cancelled())
        self.assertEqual(subscription.state, SubscriptionState.TRIALING)

    def test_grace_period_lasts_until_ends_at(self):
        ends_at = timezone.now() + timedelta(days=5)
        subscription = self._subscription(ends_at=ends_at)

        self.assertTrue(subscription.cancelled())
        self.assertTrue(subscription.on_grace_period())
        self.assertTrue(subscription.active())
        self.assertTrue(subscription.valid())

        with freeze_time(ends_at + timedelta(seconds=1)):
            self.assertFalse(subscription.on_grace_period())
            self.assertFalse(subscription.active())
            self.assertFalse(subscription.valid())
            self.assertTrue(subscription.cancelled())
            self.assertEqual(subscription.state, SubscriptionState.CANCELLED)

    def test_trial_keeps_subscription_valid_after_ends_at(self):
        now = timezone.now()
        subscription = self._subscription(
            trial_ends_at=now + timedelta(days=10),
            ends_at=now - timedelta(days=1),
        )

        self.assertFalse(subscription.active())
        self.assertTrue(subscription.on_trial())
        self.assertTrue(subscription.valid())

    def test_expired_trial_is_not_on_trial(self):
        subscription = self._subscription(trial_ends_at=timezone.now() - timedelta(minutes=1))

        self.assertFalse(subscription.on_trial())
        self.assertTrue(subscription.valid())

    def test_valid_matches_state_usability(self):
        now = timezone.now()
        cases = [
            (None, None),
            (now + timedelta(days=1), None),
            (None, now + timedelta(days=1)),
            (None, now - timedelta(days=1)),
            (now + timedelta(days=1), now - timedelta(days=1)),
            (now - timedelta(days=2), now - timedelta(days=1)),
        ]
        with freeze_time(now):
            for trial_ends_at, ends_at in cases:
                subscription = Subscription(trial_ends_at=trial_ends_at, ends_at=ends_at)
                with self.subTest(trial_ends_at=trial_ends_at, ends_at=ends_at):
                    self.assertEqual(subscription.valid(), subscription.state.is_usable)


class CurrentSubscriptionTestCase(TestCase):
    """Selecting the current subscription among rows sharing a name."""

    def setUp(self):
        self.user = create_user()

    def test_latest_created_subscription_wins(self):
        base = timezone.now() - timedelta(days=30)
        with freeze_time(base):
            create_subscription(self.user, stripe_id="sub_old")
        with freeze_time(base + timedelta(days=20)):
            newest = create_subscription(self.user, stripe_id="sub_newest")
        with freeze_time(base + timedelta(days=10)):
            create_subscription(self.user, stripe_id="sub_middle")

        current = Subscription.objects.current(self.user, "default")

        self.assertEqual(current.pk, newest.pk)
        self.assertEqual(current.stripe_id, "sub_newest")

    def test_other_names_are_ignored(self):
        create_subscription(self.user, name="default", stripe_id="sub_default")
        create_subscription(self.user, name="addons", stripe_id="sub_addons")

        self.assertEqual(Subscription.objects.current(self.user, "default").stripe_id, "sub_default")
        self.assertEqual(Subscription.objects.current(self.user, "addons").stripe_id, "sub_addons")
        self.assertIsNone(Subscription.objects.current(self.user, "missing"))

    def test_other_owners_are_ignored(self):
        other = create_user(email="other@example.com", stripe_id="cus_other")
        create_subscription(other, stripe_id="sub_other")

        self.assertIsNone(Subscription.objects.current(self.user))
