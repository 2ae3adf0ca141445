"""
Billing API.

Payments:
- GatewayRecommendationView: best gateway and methods for a country
- CheckoutView: start a checkout (pay-as-you-go, recurring or one-time)
- VerifyPaymentView: read a payment's status from its provider
- PaymentListView: the caller's payments
- TrackUsageView / UnpaidUsageView / UsageHistoryView / CurrentPlanView:
  pay-as-you-go metering

Subscriptions:
- CurrentSubscriptionView, SubscriptionValidityView, SubscriptionHistoryView,
  CancelSubscriptionView

Plans:
- PlanListView, PlanDetailView: any caller reads, admins create and update
- PlanEditableFieldsView, PlanPriceUpdateView (admin)

Webhooks:
- StripeWebhookView, PaddleWebhookView: unauthenticated; trust comes from
  the provider signature over the raw body.
"""

import json
import logging
from abc import ABCMeta
from abc import abstractmethod

from django.conf import settings
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from paygate.billing.checkout import CheckoutRequest
from paygate.billing.checkout import CheckoutService
from paygate.billing.gateways import build_gateways
from paygate.billing.models import Payment
from paygate.billing.models import Plan
from paygate.billing.models import Subscription
from paygate.billing.recommendation import GatewayRecommendationEngine
from paygate.billing.routing import Rejected
from paygate.billing.serializers import CheckoutInputSerializer
from paygate.billing.serializers import GatewayRecommendationQuerySerializer
from paygate.billing.serializers import PageQuerySerializer
from paygate.billing.serializers import PaymentSerializer
from paygate.billing.serializers import PlanEditableFieldsSerializer
from paygate.billing.serializers import PlanInputSerializer
from paygate.billing.serializers import PlanPriceInputSerializer
from paygate.billing.serializers import PlanSerializer
from paygate.billing.serializers import SubscriptionSerializer
from paygate.billing.serializers import TrackUsageInputSerializer
from paygate.billing.serializers import UsageRecordSerializer
from paygate.billing.serializers import VerifyPaymentInputSerializer
from paygate.billing.subscriptions import PlanPricingService
from paygate.billing.subscriptions import SubscriptionCancellationService
from paygate.billing.usage import UsageTracker
from paygate.billing.webhooks.events import NormalizedEvent
from paygate.billing.webhooks.events import normalize_paddle_event
from paygate.billing.webhooks.events import normalize_stripe_event
from paygate.billing.webhooks.reconciler import WebhookReconciler
from paygate.billing.webhooks.signatures import verify_paddle_signature
from paygate.billing.webhooks.signatures import verify_stripe_event
from paygate.core.api.permissions import IsAdmin
from paygate.core.api.permissions import IsAdminOrReadOnly
from paygate.core.exceptions import NotFoundError
from paygate.core.exceptions import SignatureError
from paygate.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


# Payments
# -----------------------------------------------------------------------------


class GatewayRecommendationView(APIView):
    def get(self, request):
        query = GatewayRecommendationQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        result = GatewayRecommendationEngine().get_optimal_gateway(
            query.validated_data["country_code"],
            preferred_method=query.validated_data.get("payment_method"),
            plan_id=query.validated_data.get("plan_id"),
        )
        return Response({"success": True, "recommendation": result})


class CheckoutView(APIView):
    def post(self, request):
        serializer = CheckoutInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = CheckoutService().create(
            CheckoutRequest(
                user_id=request.user.user_id,
                email=request.user.email,
                **serializer.validated_data,
            ),
        )
        if isinstance(result, Rejected):
            return Response(result.as_dict(), status=status.HTTP_400_BAD_REQUEST)
        return Response(result)


class VerifyPaymentView(APIView):
    def post(self, request):
        serializer = VerifyPaymentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        gateway = build_gateways()[serializer.validated_data["gateway"]]
        verification = gateway.verify_payment(serializer.validated_data["payment_id"])
        return Response(
            {
                "success": True,
                "verification": {
                    "verified": verification.verified,
                    "status": verification.status,
                    "amount": (
                        None if verification.amount is None else str(verification.amount)
                    ),
                    "currency": verification.currency,
                    "metadata": verification.metadata,
                },
            },
        )


class PaymentListView(APIView):
    def get(self, request):
        page = PageQuerySerializer(data=request.query_params)
        page.is_valid(raise_exception=True)
        limit = page.validated_data["limit"]
        offset = page.validated_data["offset"]
        payments = Payment.objects.filter(user_id=request.user.user_id).select_related(
            "plan",
        )[offset : offset + limit]
        return Response(
            {"success": True, "payments": PaymentSerializer(payments, many=True).data},
        )


class TrackUsageView(APIView):
    def post(self, request):
        serializer = TrackUsageInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        record = UsageTracker().track_usage(
            user_id=request.user.user_id,
            **serializer.validated_data,
        )
        if record is None:
            return Response(
                {
                    "success": True,
                    "message": "User is on subscription plan, no usage tracking needed",
                },
            )
        return Response(
            {
                "success": True,
                "usage": UsageRecordSerializer(record).data,
                "message": "Usage tracked successfully",
            },
            status=status.HTTP_201_CREATED,
        )


class UnpaidUsageView(APIView):
    def get(self, request):
        unpaid = UsageTracker().get_unpaid_usage(request.user.user_id)
        return Response(
            {
                "success": True,
                "unpaidUsage": {
                    "total": str(unpaid.total),
                    "count": unpaid.count,
                    "items": UsageRecordSerializer(unpaid.items, many=True).data,
                },
            },
        )


class UsageHistoryView(APIView):
    def get(self, request):
        page = PageQuerySerializer(data=request.query_params)
        page.is_valid(raise_exception=True)
        history = UsageTracker().usage_history(
            request.user.user_id,
            limit=page.validated_data["limit"],
        )
        return Response(
            {"success": True, "history": UsageRecordSerializer(history, many=True).data},
        )


class CurrentPlanView(APIView):
    def get(self, request):
        info = UsageTracker().current_plan(request.user.user_id)
        if not info["has_subscription"]:
            return Response(
                {"success": True, "plan": None, "message": "No active subscription"},
            )

        plan = {
            "subscription": SubscriptionSerializer(info["subscription"]).data,
            "is_pay_as_you_go": info["is_pay_as_you_go"],
            "is_valid": info["is_valid"],
        }
        unpaid = info.get("unpaid_usage")
        if unpaid is not None:
            plan["unpaid_usage"] = {"total": str(unpaid.total), "count": unpaid.count}
        return Response({"success": True, "plan": plan})


# Subscriptions
# -----------------------------------------------------------------------------


class CurrentSubscriptionView(APIView):
    def get(self, request):
        subscription = Subscription.objects.active_for(request.user.user_id)
        if subscription is None:
            raise NotFoundError("No active subscription found")
        return Response(
            {"success": True, "subscription": SubscriptionSerializer(subscription).data},
        )


class SubscriptionValidityView(APIView):
    def get(self, request):
        subscription = Subscription.objects.active_for(request.user.user_id)
        return Response(
            {
                "success": True,
                "is_valid": subscription is not None and subscription.is_valid,
                "subscription": (
                    SubscriptionSerializer(subscription).data if subscription else None
                ),
            },
        )


class SubscriptionHistoryView(APIView):
    """Every subscription the caller has held, newest first."""

    def get(self, request):
        page = PageQuerySerializer(data=request.query_params)
        page.is_valid(raise_exception=True)
        limit = page.validated_data["limit"]
        offset = page.validated_data["offset"]
        subscriptions = (
            Subscription.objects.for_user(request.user.user_id)
            .select_related("plan")
            .order_by("-created", "-id")[offset : offset + limit]
        )
        return Response(
            {
                "success": True,
                "history": SubscriptionSerializer(subscriptions, many=True).data,
            },
        )


class CancelSubscriptionView(APIView):
    def post(self, request):
        subscription, result = SubscriptionCancellationService().cancel_current(
            request.user.user_id,
        )
        return Response(
            {
                "success": True,
                "subscription": SubscriptionSerializer(subscription).data,
                "effective_at": result.effective_at if result else subscription.canceled_at,
            },
        )


# Plans
# -----------------------------------------------------------------------------


class PlanListView(APIView):
    permission_classes = [IsAdminOrReadOnly]

    def get(self, request):
        plans = Plan.objects.filter(is_active=True).order_by("payment_type", "price")
        return Response(
            {"success": True, "plans": PlanSerializer(plans, many=True).data},
        )

    def post(self, request):
        serializer = PlanInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        plan = serializer.save()
        logger.info("Plan %s (%s) created by user %s", plan.pk, plan, request.user.user_id)
        return Response(
            {"success": True, "plan": PlanSerializer(plan).data},
            status=status.HTTP_201_CREATED,
        )


class PlanDetailView(APIView):
    permission_classes = [IsAdminOrReadOnly]

    def get(self, request, plan_id):
        plan = get_object_or_404(Plan, pk=plan_id)
        return Response({"success": True, "plan": PlanSerializer(plan).data})

    def put(self, request, plan_id):
        plan = get_object_or_404(Plan, pk=plan_id)
        serializer = PlanInputSerializer(plan, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        plan = serializer.save()
        logger.info(
            "Plan %s updated by user %s: %s",
            plan.pk,
            request.user.user_id,
            ", ".join(sorted(serializer.validated_data)),
        )
        return Response({"success": True, "plan": PlanSerializer(plan).data})


class PlanEditableFieldsView(APIView):
    """Limits and processing fees, editable without touching provider prices."""

    permission_classes = [IsAdmin]

    def put(self, request, plan_id):
        plan = get_object_or_404(Plan, pk=plan_id)
        serializer = PlanEditableFieldsSerializer(plan, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        plan = serializer.save()
        logger.info(
            "Plan %s editable fields updated by user %s",
            plan.pk,
            request.user.user_id,
        )
        return Response(
            {
                "success": True,
                "message": "Editable fields updated successfully",
                "plan": PlanSerializer(plan).data,
            },
        )


class PlanPriceUpdateView(APIView):
    permission_classes = [IsAdmin]

    def post(self, request, plan_id):
        serializer = PlanPriceInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        plan = PlanPricingService().update_plan_price(
            plan_id,
            serializer.validated_data["new_price"],
        )
        logger.info(
            "Plan %s price set to %s by user %s",
            plan.pk,
            plan.price,
            request.user.user_id,
        )
        return Response({"success": True, "plan": PlanSerializer(plan).data})


# Webhooks
# -----------------------------------------------------------------------------


class WebhookView(APIView, metaclass=ABCMeta):
    """
    Shared receive path: verify, normalise, reconcile, acknowledge.

    Subclasses provide ``verify`` (raise SignatureError, return the decoded
    event) and ``normalize``.
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    provider = ""
    signature_failure_status = status.HTTP_401_UNAUTHORIZED

    def post(self, request):
        raw_body = request.body
        try:
            payload = self.verify(request, raw_body)
        except SignatureError as exc:
            logger.warning("Rejected %s webhook: %s", self.provider, exc.detail)
            return Response(
                {"success": False, "error": exc.detail, "code": exc.code},
                status=self.signature_failure_status,
            )

        if not isinstance(payload, dict):
            raise ValidationError("Webhook body must be a JSON object")
        result = WebhookReconciler().process(self.normalize(payload))

        body = {"received": True}
        if result.duplicate:
            body["duplicate"] = True
        return Response(body)

    @abstractmethod
    def verify(self, request, raw_body: bytes) -> dict:
        """Check the provider signature and return the decoded event."""

    @abstractmethod
    def normalize(self, payload: dict) -> NormalizedEvent:
        """Map the provider event onto a NormalizedEvent."""


class StripeWebhookView(WebhookView):
    provider = "stripe"
    signature_failure_status = status.HTTP_400_BAD_REQUEST

    def verify(self, request, raw_body):
        return verify_stripe_event(
            raw_body,
            request.headers.get("Stripe-Signature", ""),
            settings.STRIPE_WEBHOOK_SECRET,
        )

    def normalize(self, payload):
        return normalize_stripe_event(payload)


class PaddleWebhookView(WebhookView):
    provider = "paddle"

    def verify(self, request, raw_body):
        verify_paddle_signature(
            raw_body,
            request.headers.get("Paddle-Signature", ""),
            settings.PADDLE_WEBHOOK_SECRET,
            tolerance=settings.PADDLE_WEBHOOK_TOLERANCE_SECONDS,
        )
        try:
            return json.loads(raw_body)
        except ValueError as exc:
            raise ValidationError("Webhook body is not valid JSON") from exc

    def normalize(self, payload):
        return normalize_paddle_event(payload)
