"""
Checkout orchestration behind ``POST /payments/create``.

Picks one of three paths by plan:

- pay-as-you-go: activate immediately, no provider involved
- recurring: choose the gateway once for the buyer's country; Stripe starts
  an incomplete subscription for Elements, Paddle goes through the router's
  recurring transaction
- anything else: one-time payment through the router

The response is discriminated by ``type`` (``pay_as_you_go``, ``recurring``
or ``one_time``) so clients can branch on it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from paygate.billing.constants import Gateway
from paygate.billing.constants import PaymentType
from paygate.billing.models import Plan
from paygate.billing.recommendation import GatewayRecommendationEngine
from paygate.billing.routing import PaymentKind
from paygate.billing.routing import PaymentRequest
from paygate.billing.routing import PaymentRouter
from paygate.billing.routing import Rejected
from paygate.billing.subscriptions import StripeSubscriptionService
from paygate.billing.subscriptions import activate_pay_as_you_go
from paygate.billing.subscriptions import interval_for_days
from paygate.core.exceptions import NotFoundError
from paygate.core.exceptions import ValidationError
from paygate.regions.constants import DEFAULT_CURRENCY

logger = logging.getLogger(__name__)

PAY_AS_YOU_GO_MESSAGE = (
    "Pay-as-you-go plan activated. You will be charged per election."
)


@dataclass(frozen=True)
class CheckoutRequest:
    user_id: str
    email: str
    plan_id: int
    country_code: str
    payment_method: str = "card"
    currency: str = DEFAULT_CURRENCY


class CheckoutService:
    """
    Usage:
        result = CheckoutService().create(checkout_request)
        if isinstance(result, Rejected):
            ...  # 400 with result.as_dict()
        result["type"]
    """

    def __init__(
        self,
        *,
        engine: GatewayRecommendationEngine | None = None,
        router: PaymentRouter | None = None,
        stripe_subscriptions: StripeSubscriptionService | None = None,
    ):
        self.engine = engine or GatewayRecommendationEngine()
        self.router = router or PaymentRouter(engine=self.engine)
        self.stripe_subscriptions = stripe_subscriptions or StripeSubscriptionService()

    def create(self, request: CheckoutRequest) -> dict | Rejected:
        if not request.country_code:
            raise ValidationError("Country code required")
        if not request.email:
            raise ValidationError("User email required")

        plan = Plan.objects.filter(pk=request.plan_id, is_active=True).first()
        if plan is None:
            raise NotFoundError("Plan not found")

        logger.info(
            "Checkout for user %s: plan %s (%s) from %s",
            request.user_id,
            plan.pk,
            plan.payment_type,
            request.country_code,
        )

        if plan.is_pay_as_you_go:
            return self._pay_as_you_go(request, plan)

        if plan.is_recurring:
            recommendation = self.engine.get_recommendation(
                request.country_code,
                plan_id=plan.pk,
            )
            selection = self.engine.select_from_recommendation(recommendation)
            if selection.gateway == Gateway.STRIPE:
                return self._stripe_recurring(request, plan, recommendation)
            return self._routed(request, plan, selection=selection)

        return self._routed(request, plan)

    def _pay_as_you_go(self, request: CheckoutRequest, plan: Plan) -> dict:
        activate_pay_as_you_go(user_id=request.user_id, plan=plan)
        return {
            "success": True,
            "type": PaymentType.PAY_AS_YOU_GO.value,
            "message": PAY_AS_YOU_GO_MESSAGE,
            "planDetails": {
                "id": plan.pk,
                "name": plan.plan_name,
                "pricePerUnit": str(plan.unit_price),
                "paymentType": PaymentType.PAY_AS_YOU_GO.value,
            },
        }

    def _stripe_recurring(self, request: CheckoutRequest, plan: Plan, recommendation) -> dict:
        checkout = self.stripe_subscriptions.create_recurring_subscription(
            plan=plan,
            user_id=request.user_id,
            email=request.email,
            country_code=request.country_code,
        )
        interval, interval_count = interval_for_days(plan.duration_days)
        return {
            "success": True,
            "type": PaymentKind.RECURRING,
            "gateway": Gateway.STRIPE.value,
            "client_secret": checkout.client_secret,
            "subscription_id": checkout.subscription_id,
            "recommendation": recommendation.as_dict(),
            "planDetails": {
                "id": plan.pk,
                "name": plan.plan_name,
                "price": str(plan.price),
                "recurring": True,
                "interval": interval,
                "interval_count": interval_count,
            },
        }

    def _routed(self, request: CheckoutRequest, plan: Plan, selection=None) -> dict | Rejected:
        outcome = self.router.create_payment_by_country(
            PaymentRequest(
                amount=plan.price,
                currency=request.currency or DEFAULT_CURRENCY,
                country_code=request.country_code,
                payment_method=request.payment_method or "card",
                user_id=request.user_id,
                email=request.email,
                plan_id=plan.pk,
            ),
            selection=selection,
        )
        if isinstance(outcome, Rejected):
            return outcome

        return {
            "success": True,
            "type": outcome.kind,
            "paymentData": outcome.payment.as_payment_data(),
            "gateway": outcome.gateway,
            "recommendation": outcome.recommendation.as_dict(),
            "splitNeeded": outcome.split_needed,
            "planDetails": {
                "id": plan.pk,
                "name": plan.plan_name,
                "price": str(plan.price),
                "recurring": outcome.kind == PaymentKind.RECURRING,
            },
        }
