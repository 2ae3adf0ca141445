"""
Subscription services.

- StripeSubscriptionService: recurring checkout through Stripe Elements.
  Ensures the customer and recurring price exist, creates an incomplete
  subscription and records the first invoice's PaymentIntent as a pending
  payment. The Subscription row itself is created by the webhook.
- activate_pay_as_you_go: immediate, provider-less activation for metered
  plans.
- PlanPricingService: change a plan's price. Stripe prices are immutable,
  so a new recurring price is minted under the same product.
- SubscriptionCancellationService: stop renewal at the provider. The status
  change to CANCELED arrives later via webhook.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from paygate.billing.constants import Gateway
from paygate.billing.constants import PaymentStatus
from paygate.billing.constants import PaymentType
from paygate.billing.constants import SubscriptionStatus
from paygate.billing.gateways import build_gateways
from paygate.billing.gateways.base import PaymentPayload
from paygate.billing.gateways.stripe_gateway import StripeGateway
from paygate.billing.models import BillingCustomer
from paygate.billing.models import Payment
from paygate.billing.models import Plan
from paygate.billing.models import Subscription
from paygate.core.exceptions import NotFoundError
from paygate.core.exceptions import ValidationError
from paygate.regions.constants import DEFAULT_CURRENCY
from paygate.regions.services import coerce_amount

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30
YEARLY_THRESHOLD_DAYS = 360


def interval_for_days(duration_days: int | None) -> tuple[str, int]:
    """
    Map a plan duration to a Stripe (interval, interval_count).

    30 -> month x1, 90 -> month x3, 180 -> month x6, 360+ -> year x1;
    anything else rounds to whole months (at least one).
    """
    if not duration_days:
        return "month", 1
    if duration_days >= YEARLY_THRESHOLD_DAYS:
        return "year", 1
    return "month", max(1, round(duration_days / DAYS_PER_MONTH))


@dataclass(frozen=True)
class RecurringCheckout:
    client_secret: str
    subscription_id: str
    payment_intent_id: str
    payment: Payment


class StripeSubscriptionService:
    """
    Usage:
        checkout = StripeSubscriptionService().create_recurring_subscription(
            plan=plan,
            user_id="42",
            email="a@example.com",
        )
        checkout.client_secret   # confirm with Stripe Elements
    """

    def __init__(self, gateway: StripeGateway | None = None):
        self._gateway = gateway

    @property
    def gateway(self) -> StripeGateway:
        if self._gateway is None:
            self._gateway = StripeGateway.from_settings()
        return self._gateway

    def ensure_customer(self, *, user_id, email: str) -> str:
        """Stored Stripe customer for the user, else look up or create one."""
        customer, _ = BillingCustomer.objects.get_or_create(
            user_id=str(user_id),
            defaults={"email": email or ""},
        )
        if customer.stripe_customer_id:
            return customer.stripe_customer_id

        customer.stripe_customer_id = self.gateway.find_or_create_customer(
            email=email or customer.email,
            user_id=user_id,
        )
        if email and not customer.email:
            customer.email = email
        customer.save(update_fields=["stripe_customer_id", "email", "modified"])
        return customer.stripe_customer_id

    def ensure_price(self, plan: Plan) -> str:
        if plan.stripe_price_id:
            return plan.stripe_price_id

        if not plan.stripe_product_id:
            plan.stripe_product_id = self.gateway.create_product(
                name=plan.plan_name,
                description=plan.description,
            )
        interval, interval_count = interval_for_days(plan.duration_days)
        plan.stripe_price_id = self.gateway.create_recurring_price(
            product_id=plan.stripe_product_id,
            amount=plan.price,
            currency=DEFAULT_CURRENCY,
            interval=interval,
            interval_count=interval_count,
        )
        plan.save(update_fields=["stripe_product_id", "stripe_price_id", "modified"])
        logger.info(
            "Created Stripe price %s for plan %s (%s x%d)",
            plan.stripe_price_id,
            plan.plan_name,
            interval,
            interval_count,
        )
        return plan.stripe_price_id

    def create_recurring_subscription(
        self,
        *,
        plan: Plan,
        user_id,
        email: str,
        country_code: str = "",
    ) -> RecurringCheckout:
        customer_id = self.ensure_customer(user_id=user_id, email=email)
        price_id = self.ensure_price(plan)

        artifact = self.gateway.create_recurring_payment(
            PaymentPayload(
                amount=plan.price,
                currency=DEFAULT_CURRENCY,
                country_code=country_code,
                payment_method="card",
                user_id=str(user_id),
                email=email,
                plan_id=plan.pk,
                price_id=price_id,
                customer_id=customer_id,
            ),
        )
        payment = Payment.objects.create(
            user_id=str(user_id),
            plan=plan,
            amount=plan.price,
            currency=DEFAULT_CURRENCY,
            gateway=Gateway.STRIPE,
            external_payment_id=artifact.external_id,
            status=PaymentStatus.PENDING,
            payment_method="card",
            country_code=(country_code or "").upper(),
            metadata={"subscription_id": artifact.subscription_id},
        )
        return RecurringCheckout(
            client_secret=artifact.client_secret,
            subscription_id=artifact.subscription_id,
            payment_intent_id=artifact.external_id,
            payment=payment,
        )


def activate_pay_as_you_go(*, user_id, plan: Plan) -> Subscription:
    """
    Activate a metered plan without touching a provider.

    Re-activating the plan a user already has active returns the existing
    subscription.
    """
    existing = Subscription.objects.active_for(user_id)
    if existing is not None and existing.plan_id == plan.pk:
        return existing

    subscription = Subscription.objects.create(
        user_id=str(user_id),
        plan=plan,
        status=SubscriptionStatus.ACTIVE,
        start_date=timezone.now(),
        end_date=None,
        gateway=Gateway.MANUAL,
        payment_type=PaymentType.PAY_AS_YOU_GO,
        auto_renew=False,
    )
    logger.info("Activated pay-as-you-go plan %s for user %s", plan.pk, user_id)
    return subscription


class PlanPricingService:
    def __init__(self, gateway: StripeGateway | None = None):
        self._gateway = gateway

    @property
    def gateway(self) -> StripeGateway:
        if self._gateway is None:
            self._gateway = StripeGateway.from_settings()
        return self._gateway

    def update_plan_price(self, plan_id, new_price) -> Plan:
        """
        Change a plan's base price.

        Pay-as-you-go plans only change in the database. Recurring plans
        get a new Stripe price under the existing (or a new) product.
        """
        price = coerce_amount(new_price)
        plan = Plan.objects.filter(pk=plan_id).first()
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")

        if plan.is_pay_as_you_go:
            plan.price = price
            plan.save(update_fields=["price", "modified"])
            logger.info("Updated pay-as-you-go plan %s price to %s", plan.pk, price)
            return plan

        if not plan.stripe_product_id:
            plan.stripe_product_id = self.gateway.create_product(
                name=plan.plan_name,
                description=plan.description,
            )
        interval, interval_count = interval_for_days(plan.duration_days)
        new_price_id = self.gateway.create_recurring_price(
            product_id=plan.stripe_product_id,
            amount=price,
            currency=DEFAULT_CURRENCY,
            interval=interval,
            interval_count=interval_count,
        )
        old_price_id = plan.stripe_price_id
        plan.price = price
        plan.stripe_price_id = new_price_id
        plan.save(
            update_fields=["price", "stripe_price_id", "stripe_product_id", "modified"],
        )
        logger.info(
            "Plan %s repriced to %s: Stripe price %s -> %s",
            plan.pk,
            price,
            old_price_id or "-",
            new_price_id,
        )
        return plan


class SubscriptionCancellationService:
    """Cancel the user's current subscription at period end."""

    def __init__(self, gateways: dict | None = None):
        self._gateways = gateways

    @property
    def gateways(self) -> dict:
        if self._gateways is None:
            self._gateways = build_gateways()
        return self._gateways

    def cancel_current(self, user_id):
        subscription = Subscription.objects.active_for(user_id)
        if subscription is None:
            raise NotFoundError("No active subscription found")

        if subscription.gateway == Gateway.MANUAL:
            with transaction.atomic():
                subscription.status = SubscriptionStatus.CANCELED
                subscription.auto_renew = False
                subscription.canceled_at = timezone.now()
                subscription.save(
                    update_fields=["status", "auto_renew", "canceled_at", "modified"],
                )
            logger.info("Canceled manual subscription %s", subscription.pk)
            return subscription, None

        if not subscription.external_subscription_id:
            raise ValidationError(
                "Subscription has no provider reference to cancel",
                code="missing_external_subscription",
            )

        result = self.gateways[subscription.gateway].cancel_subscription(
            subscription.external_subscription_id,
        )
        subscription.auto_renew = False
        subscription.save(update_fields=["auto_renew", "modified"])
        logger.info(
            "Requested cancellation of %s subscription %s (effective %s)",
            subscription.gateway,
            subscription.external_subscription_id,
            result.effective_at,
        )
        return subscription, result
