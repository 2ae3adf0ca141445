import random
from decimal import Decimal
from unittest import mock

from django.test import TestCase

from paygate.billing.constants import PaymentStatus
from paygate.billing.constants import PaymentType
from paygate.billing.gateways.base import PaymentArtifact
from paygate.billing.models import Payment
from paygate.billing.recommendation import GatewayRecommendationEngine
from paygate.billing.recommendation import GatewaySelection
from paygate.billing.routing import PaymentKind
from paygate.billing.routing import PaymentRequest
from paygate.billing.routing import PaymentRouter
from paygate.billing.routing import Rejected
from paygate.billing.routing import Routed
from paygate.billing.tests.factories import PlanFactory
from paygate.core.exceptions import ConfigError
from paygate.core.exceptions import NotFoundError
from paygate.core.exceptions import ProviderError
from paygate.core.exceptions import ValidationError
from paygate.regions.constants import GatewayType
from paygate.regions.constants import Region
from paygate.regions.tests.factories import CountryRegionFactory
from paygate.regions.tests.factories import RegionalPriceFactory
from paygate.regions.tests.factories import RegionGatewayPolicyFactory


def _request(**overrides) -> PaymentRequest:
    values = {
        "amount": Decimal("29.00"),
        "currency": "USD",
        "country_code": "DE",
        "payment_method": "card",
        "user_id": "user-1",
        "email": "payer@example.com",
    }
    values.update(overrides)
    return PaymentRequest(**values)


class PaymentRouterTests(TestCase):
    def setUp(self):
        CountryRegionFactory(country_code="DE")
        RegionGatewayPolicyFactory(
            region=Region.WESTERN_EUROPE,
            gateway_type=GatewayType.STRIPE_ONLY,
        )
        CountryRegionFactory(country_code="NG", country_name="Nigeria", region=Region.AFRICA)
        RegionGatewayPolicyFactory(region=Region.AFRICA, gateway_type=GatewayType.PADDLE_ONLY)

        self.stripe = mock.Mock()
        self.stripe.create_one_time_payment.return_value = PaymentArtifact(
            external_id="pi_123",
            status="requires_payment_method",
            client_secret="pi_123_secret",
        )
        self.paddle = mock.Mock()
        self.paddle.resolve_price_id.return_value = "pri_one_time"
        self.paddle.create_one_time_payment.return_value = PaymentArtifact(
            external_id="txn_1",
            status="ready",
            checkout_url="https://sandbox-buy.paddle.com/checkout?_ptxn=txn_1",
        )
        self.paddle.create_recurring_payment.return_value = PaymentArtifact(
            external_id="txn_2",
            status="ready",
            checkout_url="https://sandbox-buy.paddle.com/checkout?_ptxn=txn_2",
        )
        self.router = PaymentRouter(
            engine=GatewayRecommendationEngine(rng=random.Random(3)),
            gateways={"stripe": self.stripe, "paddle": self.paddle},
        )

    def test_routes_to_stripe_and_records_pending_payment(self):
        plan = PlanFactory()

        outcome = self.router.create_payment_by_country(_request(plan_id=plan.pk))

        self.assertIsInstance(outcome, Routed)
        self.assertEqual(outcome.gateway, "stripe")
        self.assertEqual(outcome.kind, PaymentKind.ONE_TIME)
        self.assertFalse(outcome.split_needed)
        payload = self.stripe.create_one_time_payment.call_args.args[0]
        self.assertEqual(payload.amount, Decimal("29.00"))
        self.assertEqual(payload.region, "region_2")
        self.assertEqual(payload.plan_id, plan.pk)

        payment = Payment.objects.get()
        self.assertEqual(payment.status, PaymentStatus.PENDING)
        self.assertEqual(payment.gateway, "stripe")
        self.assertEqual(payment.external_payment_id, "pi_123")
        self.assertEqual(payment.region, "region_2")
        self.assertEqual(payment.country_code, "DE")
        self.assertEqual(payment.plan, plan)
        self.assertEqual(outcome.record, payment)

    def test_regional_price_replaces_requested_amount(self):
        plan = PlanFactory()
        RegionalPriceFactory(plan=plan, region=Region.WESTERN_EUROPE, price=Decimal("25.00"))

        self.router.create_payment_by_country(_request(plan_id=plan.pk))

        payload = self.stripe.create_one_time_payment.call_args.args[0]
        self.assertEqual(payload.amount, Decimal("25.00"))
        self.assertEqual(payload.currency, "EUR")
        payment = Payment.objects.get()
        self.assertEqual(payment.amount, Decimal("25.00"))
        self.assertEqual(payment.currency, "EUR")

    def test_pay_as_you_go_plan_is_rejected_without_side_effects(self):
        plan = PlanFactory(pay_as_you_go=True)

        outcome = self.router.create_payment_by_country(_request(plan_id=plan.pk))

        self.assertIsInstance(outcome, Rejected)
        self.assertEqual(outcome.payment_type, PaymentType.PAY_AS_YOU_GO)
        self.assertIn("track-usage", outcome.reason)
        self.stripe.create_one_time_payment.assert_not_called()
        self.paddle.create_one_time_payment.assert_not_called()
        self.assertFalse(Payment.objects.exists())

    def test_unsupported_payment_method_is_rejected(self):
        outcome = self.router.create_payment_by_country(
            _request(country_code="NG", payment_method="apple_pay"),
        )

        self.assertIsInstance(outcome, Rejected)
        self.assertEqual(outcome.gateway, "paddle")
        self.assertEqual(
            [m["method"] for m in outcome.available_methods],
            ["card", "paypal"],
        )
        self.assertEqual(outcome.as_dict()["success"], False)
        self.paddle.create_one_time_payment.assert_not_called()
        self.assertFalse(Payment.objects.exists())

    def test_provider_failure_leaves_no_payment(self):
        self.stripe.create_one_time_payment.side_effect = ProviderError("Stripe down")

        with self.assertRaises(ProviderError):
            self.router.create_payment_by_country(_request())

        self.assertFalse(Payment.objects.exists())

    def test_paddle_one_time_uses_resolved_price(self):
        plan = PlanFactory()

        outcome = self.router.create_payment_by_country(
            _request(country_code="NG", plan_id=plan.pk),
        )

        self.assertEqual(outcome.gateway, "paddle")
        self.assertEqual(outcome.payment.external_id, "txn_1")
        payload = self.paddle.create_one_time_payment.call_args.args[0]
        self.assertEqual(payload.price_id, "pri_one_time")
        self.paddle.resolve_price_id.assert_called_once_with(plan)

    def test_paddle_recurring_plan_starts_recurring_transaction(self):
        plan = PlanFactory(recurring=True, paddle_price_id="pri_monthly")

        outcome = self.router.create_payment_by_country(
            _request(country_code="NG", plan_id=plan.pk),
        )

        self.assertEqual(outcome.kind, PaymentKind.RECURRING)
        payload = self.paddle.create_recurring_payment.call_args.args[0]
        self.assertEqual(payload.price_id, "pri_monthly")
        self.paddle.create_one_time_payment.assert_not_called()
        self.assertEqual(Payment.objects.get().external_payment_id, "txn_2")

    def test_paddle_recurring_plan_without_price_is_config_error(self):
        plan = PlanFactory(recurring=True, paddle_price_id="")

        with self.assertRaises(ConfigError):
            self.router.create_payment_by_country(
                _request(country_code="NG", plan_id=plan.pk),
            )

        self.paddle.create_recurring_payment.assert_not_called()
        self.assertFalse(Payment.objects.exists())

    def test_pinned_selection_overrides_policy(self):
        outcome = self.router.create_payment_by_country(
            _request(),
            selection=GatewaySelection(gateway="paddle", split_needed=True, region="region_2"),
        )

        self.assertEqual(outcome.gateway, "paddle")
        self.assertTrue(outcome.split_needed)
        self.stripe.create_one_time_payment.assert_not_called()

    def test_unknown_plan(self):
        with self.assertRaises(NotFoundError):
            self.router.create_payment_by_country(_request(plan_id=99999))

    def test_missing_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            self.router.create_payment_by_country(_request(user_id="", payment_method=""))

        self.assertIn("payment_method", ctx.exception.detail)
        self.assertIn("user_id", ctx.exception.detail)

    def test_email_is_required(self):
        with self.assertRaises(ValidationError) as ctx:
            self.router.create_payment_by_country(_request(email=""))

        self.assertEqual(ctx.exception.detail, "Missing required fields: email")
        self.stripe.create_one_time_payment.assert_not_called()
        self.assertFalse(Payment.objects.exists())

    def test_unknown_country_writes_nothing(self):
        with self.assertRaises(NotFoundError):
            self.router.create_payment_by_country(_request(country_code="ZZ"))

        self.assertFalse(Payment.objects.exists())
