from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

import httpx
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from paygate.billing.constants import Gateway
from paygate.billing.constants import PaymentStatus
from paygate.billing.constants import PaymentType
from paygate.billing.constants import SubscriptionStatus
from paygate.billing.gateways.paddle_gateway import PaddleGateway
from paygate.billing.gateways.stripe_gateway import StripeGateway
from paygate.billing.models import Payment
from paygate.billing.models import Plan
from paygate.billing.models import Subscription
from paygate.billing.models import UsageRecord
from paygate.billing.subscriptions import activate_pay_as_you_go
from paygate.billing.tests.factories import PaymentFactory
from paygate.billing.tests.factories import PlanFactory
from paygate.billing.tests.factories import SubscriptionFactory
from paygate.core.constants import UserRole
from paygate.core.tests.helpers import identity_headers
from paygate.regions.constants import GatewayType
from paygate.regions.constants import Region
from paygate.regions.tests.factories import CountryRegionFactory
from paygate.regions.tests.factories import RegionGatewayPolicyFactory


def _seed_regions():
    CountryRegionFactory(country_code="DE")
    RegionGatewayPolicyFactory(
        region=Region.WESTERN_EUROPE,
        gateway_type=GatewayType.STRIPE_ONLY,
    )
    CountryRegionFactory(country_code="NG", country_name="Nigeria", region=Region.AFRICA)
    RegionGatewayPolicyFactory(region=Region.AFRICA, gateway_type=GatewayType.PADDLE_ONLY)


class GatewayRecommendationViewTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        _seed_regions()

    def test_recommendation_for_country(self):
        response = self.client.get(
            reverse("api:payments:gateway-recommendation"),
            {"country_code": "NG", "payment_method": "card"},
            **identity_headers(),
        )

        self.assertEqual(response.status_code, 200)
        recommendation = response.json()["recommendation"]
        self.assertEqual(recommendation["selected_gateway"], "paddle")
        self.assertTrue(recommendation["method_supported"])
        self.assertEqual(recommendation["recommendation"]["region"], "region_4")

    def test_country_code_is_required(self):
        response = self.client.get(
            reverse("api:payments:gateway-recommendation"),
            **identity_headers(),
        )

        self.assertEqual(response.status_code, 400)


class CheckoutViewTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.url = reverse("api:payments:payment-create")
        self.headers = identity_headers("user-1", email="payer@example.com")
        _seed_regions()

    def test_requires_identity(self):
        response = self.client.post(self.url, {"plan_id": 1, "country_code": "DE"}, format="json")

        self.assertEqual(response.status_code, 401)

    def test_requires_email(self):
        plan = PlanFactory()

        response = self.client.post(
            self.url,
            {"plan_id": plan.pk, "country_code": "DE"},
            format="json",
            **identity_headers("user-1", email=""),
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "User email required")

    def test_unknown_plan(self):
        response = self.client.post(
            self.url,
            {"plan_id": 99999, "country_code": "DE"},
            format="json",
            **self.headers,
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "Plan not found")

    def test_pay_as_you_go_activates_immediately(self):
        plan = PlanFactory(pay_as_you_go=True)

        response = self.client.post(
            self.url,
            {"plan_id": plan.pk, "country_code": "de"},
            format="json",
            **self.headers,
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["type"], "pay_as_you_go")
        self.assertEqual(body["planDetails"]["pricePerUnit"], "1.2500")
        subscription = Subscription.objects.get(user_id="user-1")
        self.assertEqual(subscription.gateway, Gateway.MANUAL)
        self.assertEqual(subscription.status, SubscriptionStatus.ACTIVE)
        self.assertFalse(Payment.objects.exists())

    @patch("stripe.PaymentIntent.create")
    def test_one_time_plan_routes_to_stripe(self, mock_create):
        mock_create.return_value = SimpleNamespace(
            id="pi_view",
            status="requires_payment_method",
            client_secret="pi_view_secret",
        )
        plan = PlanFactory(price=Decimal("49.00"))

        response = self.client.post(
            self.url,
            {"plan_id": plan.pk, "country_code": "DE", "payment_method": "Card"},
            format="json",
            **self.headers,
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["type"], "one_time")
        self.assertEqual(body["gateway"], "stripe")
        self.assertEqual(body["paymentData"]["client_secret"], "pi_view_secret")
        self.assertFalse(body["splitNeeded"])
        self.assertEqual(mock_create.call_args.kwargs["amount"], 4900)
        payment = Payment.objects.get()
        self.assertEqual(payment.status, PaymentStatus.PENDING)
        self.assertEqual(payment.user_id, "user-1")

    def test_client_cannot_choose_amount(self):
        plan = PlanFactory(price=Decimal("49.00"))

        with patch("stripe.PaymentIntent.create") as mock_create:
            mock_create.return_value = SimpleNamespace(
                id="pi_amount",
                status="requires_payment_method",
                client_secret="secret",
            )
            self.client.post(
                self.url,
                {"plan_id": plan.pk, "country_code": "DE", "amount": "0.01"},
                format="json",
                **self.headers,
            )

        self.assertEqual(Payment.objects.get().amount, Decimal("49.00"))

    def test_unsupported_method_is_rejected(self):
        plan = PlanFactory()

        response = self.client.post(
            self.url,
            {"plan_id": plan.pk, "country_code": "NG", "payment_method": "apple_pay"},
            format="json",
            **self.headers,
        )

        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["gateway"], "paddle")
        self.assertFalse(Payment.objects.exists())

    @patch("stripe.Subscription.create")
    @patch("stripe.Price.create")
    @patch("stripe.Product.create")
    @patch("stripe.Customer.create")
    @patch("stripe.Customer.list")
    def test_recurring_plan_in_stripe_region(
        self,
        mock_list,
        mock_customer,
        mock_product,
        mock_price,
        mock_subscription,
    ):
        mock_list.return_value = SimpleNamespace(data=[])
        mock_customer.return_value = SimpleNamespace(id="cus_1")
        mock_product.return_value = SimpleNamespace(id="prod_1")
        mock_price.return_value = SimpleNamespace(id="price_1")
        mock_subscription.return_value = SimpleNamespace(
            id="sub_1",
            status="incomplete",
            latest_invoice=SimpleNamespace(
                payment_intent=SimpleNamespace(id="pi_first", client_secret="pi_first_secret"),
            ),
        )
        plan = PlanFactory(recurring=True, duration_days=90)

        response = self.client.post(
            self.url,
            {"plan_id": plan.pk, "country_code": "DE"},
            format="json",
            **self.headers,
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["type"], "recurring")
        self.assertEqual(body["gateway"], "stripe")
        self.assertEqual(body["client_secret"], "pi_first_secret")
        self.assertEqual(body["subscription_id"], "sub_1")
        self.assertEqual(body["planDetails"]["interval"], "month")
        self.assertEqual(body["planDetails"]["interval_count"], 3)
        payment = Payment.objects.get()
        self.assertEqual(payment.external_payment_id, "pi_first")
        self.assertEqual(payment.metadata["subscription_id"], "sub_1")

    def test_recurring_plan_in_paddle_region(self):
        plan = PlanFactory(recurring=True, paddle_price_id="pri_monthly")
        client = httpx.Client(
            base_url="https://sandbox-api.paddle.com",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(
                    201,
                    json={"data": {"id": "txn_view", "status": "ready"}},
                ),
            ),
        )
        gateways = {
            "stripe": StripeGateway(api_key="sk_test", api_version="2024-10-28.acacia"),
            "paddle": PaddleGateway(api_key="pdl_test", client=client),
        }

        with patch("paygate.billing.routing.build_gateways", return_value=gateways):
            response = self.client.post(
                self.url,
                {"plan_id": plan.pk, "country_code": "NG"},
                format="json",
                **self.headers,
            )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["type"], "recurring")
        self.assertEqual(body["gateway"], "paddle")
        self.assertEqual(
            body["paymentData"]["checkout_url"],
            "https://sandbox-buy.paddle.com/checkout?_ptxn=txn_view",
        )
        self.assertEqual(Payment.objects.get().gateway, Gateway.PADDLE)


class VerifyPaymentViewTests(TestCase):
    @patch("stripe.PaymentIntent.retrieve")
    def test_verify_stripe_payment(self, mock_retrieve):
        mock_retrieve.return_value = SimpleNamespace(
            status="succeeded",
            amount=2999,
            currency="usd",
            metadata={},
        )

        response = APIClient().post(
            reverse("api:payments:payment-verify"),
            {"payment_id": "pi_1", "gateway": "stripe"},
            format="json",
            **identity_headers(),
        )

        self.assertEqual(response.status_code, 200)
        verification = response.json()["verification"]
        self.assertTrue(verification["verified"])
        self.assertEqual(verification["amount"], "29.99")

    def test_unknown_gateway(self):
        response = APIClient().post(
            reverse("api:payments:payment-verify"),
            {"payment_id": "pi_1", "gateway": "square"},
            format="json",
            **identity_headers(),
        )

        self.assertEqual(response.status_code, 400)


class PaymentListViewTests(TestCase):
    def test_lists_only_callers_payments(self):
        PaymentFactory.create_batch(3, user_id="user-1")
        PaymentFactory(user_id="user-2")

        response = APIClient().get(
            reverse("api:payments:payment-list"),
            {"limit": 2},
            **identity_headers("user-1"),
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["payments"]), 2)

    def test_limit_is_bounded(self):
        response = APIClient().get(
            reverse("api:payments:payment-list"),
            {"limit": 1000},
            **identity_headers("user-1"),
        )

        self.assertEqual(response.status_code, 400)


class UsageViewTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.headers = identity_headers("user-1")

    def test_track_usage_for_pay_as_you_go_user(self):
        activate_pay_as_you_go(
            user_id="user-1",
            plan=PlanFactory(pay_as_you_go=True, price_per_unit=Decimal("1.2500")),
        )

        response = self.client.post(
            reverse("api:payments:track-usage"),
            {"election_id": "e-1", "quantity": 2},
            format="json",
            **self.headers,
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["usage"]["total_amount"], "2.5000")

        unpaid = self.client.get(reverse("api:payments:unpaid-usage"), **self.headers).json()
        self.assertEqual(Decimal(unpaid["unpaidUsage"]["total"]), Decimal("2.5"))
        self.assertEqual(unpaid["unpaidUsage"]["count"], 1)

    def test_track_usage_for_recurring_user_is_noop(self):
        SubscriptionFactory(user_id="user-1", plan=PlanFactory(recurring=True))

        response = self.client.post(
            reverse("api:payments:track-usage"),
            {"election_id": "e-1"},
            format="json",
            **self.headers,
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()["message"],
            "User is on subscription plan, no usage tracking needed",
        )
        self.assertFalse(UsageRecord.objects.exists())

    def test_usage_history(self):
        activate_pay_as_you_go(user_id="user-1", plan=PlanFactory(pay_as_you_go=True))
        for n in range(3):
            self.client.post(
                reverse("api:payments:track-usage"),
                {"election_id": f"e-{n}"},
                format="json",
                **self.headers,
            )

        response = self.client.get(
            reverse("api:payments:usage-history"),
            {"limit": 2},
            **self.headers,
        )

        self.assertEqual(
            [item["election_id"] for item in response.json()["history"]],
            ["e-2", "e-1"],
        )

    def test_current_plan_without_subscription(self):
        response = self.client.get(reverse("api:payments:current-plan"), **self.headers)

        self.assertEqual(
            response.json(),
            {"success": True, "plan": None, "message": "No active subscription"},
        )

    def test_current_plan_for_pay_as_you_go(self):
        activate_pay_as_you_go(user_id="user-1", plan=PlanFactory(pay_as_you_go=True))

        response = self.client.get(reverse("api:payments:current-plan"), **self.headers)

        plan = response.json()["plan"]
        self.assertTrue(plan["is_pay_as_you_go"])
        self.assertTrue(plan["is_valid"])
        self.assertEqual(plan["unpaid_usage"]["count"], 0)


class SubscriptionViewTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.headers = identity_headers("user-1")

    def test_no_current_subscription(self):
        response = self.client.get(
            reverse("api:subscriptions:subscription-current"),
            **self.headers,
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "No active subscription found")

    def test_current_subscription(self):
        subscription = SubscriptionFactory(user_id="user-1")

        response = self.client.get(
            reverse("api:subscriptions:subscription-current"),
            **self.headers,
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["subscription"]["id"], subscription.pk)

    def test_validity_with_active_subscription(self):
        subscription = SubscriptionFactory(user_id="user-1")

        response = self.client.get(
            reverse("api:subscriptions:subscription-valid"),
            **self.headers,
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["is_valid"])
        self.assertEqual(response.json()["subscription"]["id"], subscription.pk)

    def test_validity_of_expired_subscription(self):
        start = timezone.now() - timedelta(days=60)
        SubscriptionFactory(
            user_id="user-1",
            start_date=start,
            end_date=start + timedelta(days=30),
        )

        response = self.client.get(
            reverse("api:subscriptions:subscription-valid"),
            **self.headers,
        )

        self.assertFalse(response.json()["is_valid"])
        self.assertFalse(response.json()["subscription"]["is_valid"])

    def test_validity_without_subscription(self):
        SubscriptionFactory(user_id="someone-else")

        response = self.client.get(
            reverse("api:subscriptions:subscription-valid"),
            **self.headers,
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"success": True, "is_valid": False, "subscription": None},
        )

    def test_history_is_newest_first_and_paged(self):
        first = SubscriptionFactory(
            user_id="user-1",
            status=SubscriptionStatus.CANCELED,
            auto_renew=False,
        )
        second = SubscriptionFactory(user_id="user-1", status=SubscriptionStatus.PAUSED)
        third = SubscriptionFactory(user_id="user-1")
        SubscriptionFactory(user_id="someone-else")
        url = reverse("api:subscriptions:subscription-history")

        response = self.client.get(url, **self.headers)
        page = self.client.get(url, {"limit": 1, "offset": 1}, **self.headers)

        self.assertEqual(
            [row["id"] for row in response.json()["history"]],
            [third.pk, second.pk, first.pk],
        )
        self.assertEqual([row["id"] for row in page.json()["history"]], [second.pk])

    def test_history_rejects_bad_page(self):
        response = self.client.get(
            reverse("api:subscriptions:subscription-history"),
            {"limit": 0},
            **self.headers,
        )

        self.assertEqual(response.status_code, 400)

    @patch("stripe.Subscription.modify")
    def test_cancel_subscription(self, mock_modify):
        mock_modify.return_value = SimpleNamespace(status="active", current_period_end=1767225600)
        subscription = SubscriptionFactory(user_id="user-1", external_subscription_id="sub_1")

        response = self.client.post(
            reverse("api:subscriptions:subscription-cancel"),
            **self.headers,
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["effective_at"], "2026-01-01T00:00:00Z")
        subscription.refresh_from_db()
        self.assertFalse(subscription.auto_renew)


class PlanViewTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_lists_active_plans(self):
        PlanFactory(plan_name="Monthly")
        PlanFactory(plan_name="Retired", is_active=False)

        response = self.client.get(reverse("api:plans:plan-list"), **identity_headers())

        self.assertEqual(
            [plan["plan_name"] for plan in response.json()["plans"]],
            ["Monthly"],
        )

    def test_plan_detail_404(self):
        response = self.client.get(
            reverse("api:plans:plan-detail", args=[99999]),
            **identity_headers(),
        )

        self.assertEqual(response.status_code, 404)

    @patch("stripe.Price.create")
    @patch("stripe.Product.create")
    def test_admin_updates_price(self, mock_product, mock_price):
        mock_product.return_value = SimpleNamespace(id="prod_1")
        mock_price.return_value = SimpleNamespace(id="price_2")
        plan = PlanFactory(recurring=True, price=Decimal("29.00"))

        response = self.client.post(
            reverse("api:plans:plan-update-price", args=[plan.pk]),
            {"new_price": "35.00"},
            format="json",
            **identity_headers(role=UserRole.ADMIN),
        )

        self.assertEqual(response.status_code, 200)
        plan.refresh_from_db()
        self.assertEqual(plan.price, Decimal("35.00"))
        self.assertEqual(plan.stripe_price_id, "price_2")

    def test_non_admin_cannot_update_price(self):
        plan = PlanFactory()

        response = self.client.post(
            reverse("api:plans:plan-update-price", args=[plan.pk]),
            {"new_price": "35.00"},
            format="json",
            **identity_headers(role=UserRole.MANAGER),
        )

        self.assertEqual(response.status_code, 403)

    def test_price_must_be_positive(self):
        plan = PlanFactory()

        response = self.client.post(
            reverse("api:plans:plan-update-price", args=[plan.pk]),
            {"new_price": "0"},
            format="json",
            **identity_headers(role=UserRole.ADMIN),
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(Plan.objects.get().price, plan.price)

    def test_admin_creates_plan(self):
        response = self.client.post(
            reverse("api:plans:plan-list"),
            {
                "plan_name": "Biennial",
                "description": "Two years up front.",
                "price": "499.00",
                "duration_days": 730,
                "billing_cycle": "biennial",
                "max_elections": 50,
            },
            format="json",
            **identity_headers(role=UserRole.ADMIN),
        )

        self.assertEqual(response.status_code, 201)
        plan = Plan.objects.get(plan_name="Biennial")
        self.assertEqual(response.json()["plan"]["id"], plan.pk)
        self.assertEqual(plan.price, Decimal("499.00"))
        self.assertEqual(plan.max_elections, 50)
        self.assertTrue(plan.is_recurring)

    def test_created_pay_as_you_go_plan_never_recurs(self):
        response = self.client.post(
            reverse("api:plans:plan-list"),
            {
                "plan_name": "Per Election",
                "price": "5.00",
                "price_per_unit": "5.00",
                "payment_type": PaymentType.PAY_AS_YOU_GO,
                "is_recurring": True,
            },
            format="json",
            **identity_headers(role=UserRole.ADMIN),
        )

        self.assertEqual(response.status_code, 201)
        self.assertFalse(Plan.objects.get().is_recurring)

    def test_create_validation(self):
        PlanFactory(plan_name="Monthly")
        cases = [
            ({"plan_name": "Monthly", "price": "29.00", "duration_days": 30}, "plan_name"),
            ({"plan_name": "Free", "price": "0", "duration_days": 30}, "price"),
            ({"plan_name": "Open Ended", "price": "10.00"}, "duration_days"),
            (
                {
                    "plan_name": "Metered",
                    "price": "5.00",
                    "payment_type": PaymentType.PAY_AS_YOU_GO,
                    "duration_days": 30,
                },
                "duration_days",
            ),
        ]
        for body, field in cases:
            with self.subTest(field=field, body=body):
                response = self.client.post(
                    reverse("api:plans:plan-list"),
                    body,
                    format="json",
                    **identity_headers(role=UserRole.ADMIN),
                )

                self.assertEqual(response.status_code, 400)
                self.assertIn(field, response.json())
        self.assertEqual(Plan.objects.count(), 1)

    def test_non_admin_cannot_create_plan(self):
        response = self.client.post(
            reverse("api:plans:plan-list"),
            {"plan_name": "Biennial", "price": "499.00", "duration_days": 730},
            format="json",
            **identity_headers(role=UserRole.MANAGER),
        )

        self.assertEqual(response.status_code, 403)
        self.assertFalse(Plan.objects.exists())

    def test_admin_updates_plan(self):
        plan = PlanFactory(plan_name="Monthly", price=Decimal("29.00"))

        response = self.client.put(
            reverse("api:plans:plan-detail", args=[plan.pk]),
            {"description": "Now with priority support.", "paddle_price_id": "pri_9"},
            format="json",
            **identity_headers(role=UserRole.ADMIN),
        )

        self.assertEqual(response.status_code, 200)
        plan.refresh_from_db()
        self.assertEqual(plan.description, "Now with priority support.")
        self.assertEqual(plan.paddle_price_id, "pri_9")
        self.assertEqual(plan.plan_name, "Monthly")
        self.assertEqual(plan.price, Decimal("29.00"))

    def test_update_refuses_price_and_editable_fields(self):
        plan = PlanFactory(price=Decimal("29.00"))
        url = reverse("api:plans:plan-detail", args=[plan.pk])
        admin = identity_headers(role=UserRole.ADMIN)

        price = self.client.put(url, {"price": "10.00"}, format="json", **admin)
        limits = self.client.put(url, {"max_elections": 3}, format="json", **admin)

        self.assertEqual(price.status_code, 400)
        self.assertIn("update-price", price.json()["price"][0])
        self.assertEqual(limits.status_code, 400)
        self.assertIn("editable-fields", limits.json()["max_elections"][0])
        plan.refresh_from_db()
        self.assertEqual(plan.price, Decimal("29.00"))
        self.assertIsNone(plan.max_elections)

    def test_update_unknown_plan_is_404(self):
        response = self.client.put(
            reverse("api:plans:plan-detail", args=[99999]),
            {"description": "x"},
            format="json",
            **identity_headers(role=UserRole.ADMIN),
        )

        self.assertEqual(response.status_code, 404)

    def test_non_admin_cannot_update_plan(self):
        plan = PlanFactory(description="Original")

        response = self.client.put(
            reverse("api:plans:plan-detail", args=[plan.pk]),
            {"description": "Changed"},
            format="json",
            **identity_headers(role=UserRole.USER),
        )

        self.assertEqual(response.status_code, 403)
        plan.refresh_from_db()
        self.assertEqual(plan.description, "Original")


class PlanEditableFieldsViewTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.plan = PlanFactory(price=Decimal("29.00"))
        self.url = reverse("api:plans:plan-editable-fields", args=[self.plan.pk])

    def put(self, body, role=UserRole.ADMIN):
        return self.client.put(self.url, body, format="json", **identity_headers(role=role))

    def test_updates_limits_and_fees(self):
        response = self.put(
            {
                "max_elections": 10,
                "processing_fee_enabled": True,
                "processing_fee_percentage": "2.50",
            },
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Editable fields updated successfully")
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.max_elections, 10)
        self.assertTrue(self.plan.processing_fee_enabled)
        self.assertEqual(self.plan.processing_fee_percentage, Decimal("2.50"))
        self.assertEqual(self.plan.price, Decimal("29.00"))

    def test_null_limit_means_unlimited(self):
        self.plan.max_elections = 5
        self.plan.save()

        response = self.put({"max_elections": None})

        self.assertEqual(response.status_code, 200)
        self.plan.refresh_from_db()
        self.assertIsNone(self.plan.max_elections)

    def test_other_fields_are_refused(self):
        response = self.put({"max_elections": 10, "price": "1.00"})

        self.assertEqual(response.status_code, 400)
        self.assertIn("Invalid fields: price", response.json()["non_field_errors"][0])
        self.plan.refresh_from_db()
        self.assertIsNone(self.plan.max_elections)
        self.assertEqual(self.plan.price, Decimal("29.00"))

    def test_out_of_range_values(self):
        for body in ({"max_elections": -1}, {"processing_fee_percentage": "150"}, {}):
            with self.subTest(body=body):
                self.assertEqual(self.put(body).status_code, 400)

    def test_unknown_plan_is_404(self):
        response = self.client.put(
            reverse("api:plans:plan-editable-fields", args=[99999]),
            {"max_elections": 1},
            format="json",
            **identity_headers(role=UserRole.ADMIN),
        )

        self.assertEqual(response.status_code, 404)

    def test_manager_is_forbidden(self):
        self.assertEqual(self.put({"max_elections": 1}, role=UserRole.MANAGER).status_code, 403)
