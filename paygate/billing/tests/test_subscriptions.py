from datetime import UTC
from datetime import datetime
from decimal import Decimal
from unittest import mock

import pytest
from django.test import TestCase

from paygate.billing.constants import Gateway
from paygate.billing.constants import PaymentStatus
from paygate.billing.constants import SubscriptionStatus
from paygate.billing.gateways.base import CancellationResult
from paygate.billing.gateways.base import PaymentArtifact
from paygate.billing.models import BillingCustomer
from paygate.billing.models import Payment
from paygate.billing.models import Subscription
from paygate.billing.subscriptions import PlanPricingService
from paygate.billing.subscriptions import StripeSubscriptionService
from paygate.billing.subscriptions import SubscriptionCancellationService
from paygate.billing.subscriptions import activate_pay_as_you_go
from paygate.billing.subscriptions import interval_for_days
from paygate.billing.tests.factories import PlanFactory
from paygate.billing.tests.factories import SubscriptionFactory
from paygate.core.exceptions import NotFoundError
from paygate.core.exceptions import ValidationError


@pytest.mark.parametrize(
    ("days", "expected"),
    [
        (30, ("month", 1)),
        (90, ("month", 3)),
        (180, ("month", 6)),
        (365, ("year", 1)),
        (360, ("year", 1)),
        (45, ("month", 2)),
        (7, ("month", 1)),
        (None, ("month", 1)),
    ],
)
def test_interval_for_days(days, expected):
    assert interval_for_days(days) == expected


class StripeSubscriptionServiceTests(TestCase):
    def setUp(self):
        self.gateway = mock.Mock()
        self.gateway.find_or_create_customer.return_value = "cus_1"
        self.gateway.create_product.return_value = "prod_1"
        self.gateway.create_recurring_price.return_value = "price_1"
        self.gateway.create_recurring_payment.return_value = PaymentArtifact(
            external_id="pi_1",
            status="incomplete",
            client_secret="pi_1_secret",
            subscription_id="sub_1",
        )
        self.service = StripeSubscriptionService(gateway=self.gateway)

    def test_creates_customer_price_and_pending_payment(self):
        plan = PlanFactory(recurring=True, duration_days=90, price=Decimal("79.00"))

        checkout = self.service.create_recurring_subscription(
            plan=plan,
            user_id="user-1",
            email="payer@example.com",
            country_code="de",
        )

        self.assertEqual(checkout.client_secret, "pi_1_secret")
        self.assertEqual(checkout.subscription_id, "sub_1")
        self.gateway.create_recurring_price.assert_called_once_with(
            product_id="prod_1",
            amount=Decimal("79.00"),
            currency="USD",
            interval="month",
            interval_count=3,
        )
        payload = self.gateway.create_recurring_payment.call_args.args[0]
        self.assertEqual(payload.customer_id, "cus_1")
        self.assertEqual(payload.price_id, "price_1")

        plan.refresh_from_db()
        self.assertEqual(plan.stripe_product_id, "prod_1")
        self.assertEqual(plan.stripe_price_id, "price_1")
        self.assertEqual(BillingCustomer.objects.get(user_id="user-1").stripe_customer_id, "cus_1")

        payment = Payment.objects.get()
        self.assertEqual(payment.status, PaymentStatus.PENDING)
        self.assertEqual(payment.external_payment_id, "pi_1")
        self.assertEqual(payment.country_code, "DE")
        self.assertEqual(payment.metadata, {"subscription_id": "sub_1"})
        self.assertFalse(Subscription.objects.exists())

    def test_reuses_stored_customer_and_price(self):
        plan = PlanFactory(recurring=True, stripe_price_id="price_existing")
        BillingCustomer.objects.create(user_id="user-1", stripe_customer_id="cus_stored")

        self.service.create_recurring_subscription(
            plan=plan,
            user_id="user-1",
            email="payer@example.com",
        )

        self.gateway.find_or_create_customer.assert_not_called()
        self.gateway.create_recurring_price.assert_not_called()
        payload = self.gateway.create_recurring_payment.call_args.args[0]
        self.assertEqual(payload.customer_id, "cus_stored")
        self.assertEqual(payload.price_id, "price_existing")


class ActivatePayAsYouGoTests(TestCase):
    def test_activates_without_provider(self):
        plan = PlanFactory(pay_as_you_go=True)

        subscription = activate_pay_as_you_go(user_id="user-1", plan=plan)

        self.assertEqual(subscription.status, SubscriptionStatus.ACTIVE)
        self.assertEqual(subscription.gateway, Gateway.MANUAL)
        self.assertIsNone(subscription.end_date)
        self.assertFalse(subscription.auto_renew)
        self.assertTrue(subscription.is_valid)

    def test_reactivation_is_idempotent(self):
        plan = PlanFactory(pay_as_you_go=True)

        first = activate_pay_as_you_go(user_id="user-1", plan=plan)
        second = activate_pay_as_you_go(user_id="user-1", plan=plan)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(Subscription.objects.for_user("user-1").count(), 1)


class PlanPricingServiceTests(TestCase):
    def setUp(self):
        self.gateway = mock.Mock()
        self.gateway.create_recurring_price.return_value = "price_new"
        self.service = PlanPricingService(gateway=self.gateway)

    def test_recurring_plan_mints_new_stripe_price(self):
        plan = PlanFactory(
            recurring=True,
            duration_days=365,
            stripe_product_id="prod_1",
            stripe_price_id="price_old",
        )

        updated = self.service.update_plan_price(plan.pk, "299.00")

        self.assertEqual(updated.price, Decimal("299.00"))
        self.assertEqual(updated.stripe_price_id, "price_new")
        self.assertEqual(updated.stripe_product_id, "prod_1")
        self.gateway.create_product.assert_not_called()
        self.gateway.create_recurring_price.assert_called_once_with(
            product_id="prod_1",
            amount=Decimal("299.00"),
            currency="USD",
            interval="year",
            interval_count=1,
        )

    def test_pay_as_you_go_plan_changes_only_locally(self):
        plan = PlanFactory(pay_as_you_go=True)

        updated = self.service.update_plan_price(plan.pk, Decimal("6.00"))

        self.assertEqual(updated.price, Decimal("6.00"))
        self.gateway.create_recurring_price.assert_not_called()

    def test_unknown_plan(self):
        with self.assertRaises(NotFoundError):
            self.service.update_plan_price(99999, "10")

    def test_invalid_price(self):
        plan = PlanFactory()

        with self.assertRaises(ValidationError):
            self.service.update_plan_price(plan.pk, "free")


class SubscriptionCancellationServiceTests(TestCase):
    def setUp(self):
        self.stripe = mock.Mock()
        self.stripe.cancel_subscription.return_value = CancellationResult(
            success=True,
            status="active",
            effective_at=datetime(2026, 12, 1, tzinfo=UTC),
        )
        self.service = SubscriptionCancellationService(gateways={"stripe": self.stripe})

    def test_provider_cancel_stops_renewal(self):
        SubscriptionFactory(user_id="user-1", external_subscription_id="sub_1")

        subscription, result = self.service.cancel_current("user-1")

        self.stripe.cancel_subscription.assert_called_once_with("sub_1")
        self.assertEqual(result.effective_at, datetime(2026, 12, 1, tzinfo=UTC))
        subscription.refresh_from_db()
        self.assertFalse(subscription.auto_renew)
        self.assertEqual(subscription.status, SubscriptionStatus.ACTIVE)

    def test_manual_subscription_cancels_immediately(self):
        plan = PlanFactory(pay_as_you_go=True)
        activate_pay_as_you_go(user_id="user-1", plan=plan)

        subscription, result = self.service.cancel_current("user-1")

        self.assertIsNone(result)
        self.assertEqual(subscription.status, SubscriptionStatus.CANCELED)
        self.assertIsNotNone(subscription.canceled_at)
        self.stripe.cancel_subscription.assert_not_called()

    def test_no_active_subscription(self):
        with self.assertRaises(NotFoundError):
            self.service.cancel_current("user-1")

    def test_missing_provider_reference(self):
        SubscriptionFactory(user_id="user-1", external_subscription_id="")

        with self.assertRaises(ValidationError):
            self.service.cancel_current("user-1")
