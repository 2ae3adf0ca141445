"""
Stripe adapter.

Calls the classic Stripe resources with a per-call api_key and
stripe_version instead of mutating the module-level ``stripe.api_key``, so
several configurations can coexist in one process (and tests can patch
individual resources).

Amounts go to Stripe in the smallest currency unit; we keep Decimals in
major units everywhere else.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import UTC
from datetime import datetime
from decimal import ROUND_HALF_UP
from decimal import Decimal

import stripe
from django.conf import settings

from paygate.billing.constants import Gateway
from paygate.billing.gateways.base import CancellationResult
from paygate.billing.gateways.base import PaymentArtifact
from paygate.billing.gateways.base import PaymentGateway
from paygate.billing.gateways.base import PaymentPayload
from paygate.billing.gateways.base import PaymentVerification
from paygate.core.exceptions import ConfigError
from paygate.core.exceptions import ProviderError

logger = logging.getLogger(__name__)

CENTS = Decimal(100)


def to_minor_units(amount) -> int:
    return int((Decimal(str(amount)) * CENTS).quantize(Decimal(1), ROUND_HALF_UP))


def from_minor_units(amount) -> Decimal | None:
    if amount is None:
        return None
    return Decimal(amount) / CENTS


@contextmanager
def stripe_errors(action: str):
    """Re-raise Stripe SDK errors as ProviderError."""
    try:
        yield
    except stripe.StripeError as exc:
        message = getattr(exc, "user_message", None) or str(exc)
        logger.error("Stripe %s failed: %s", action, message)
        raise ProviderError(f"Stripe {action} failed: {message}") from exc


class StripeGateway(PaymentGateway):
    """
    PaymentIntents for one-time charges, Subscriptions for recurring plans.

    Usage:
        gateway = StripeGateway.from_settings()
        artifact = gateway.create_one_time_payment(payload)
        artifact.client_secret   # hand to Stripe Elements
    """

    name = Gateway.STRIPE

    def __init__(self, *, api_key: str, api_version: str):
        if not api_key:
            raise ConfigError("STRIPE_SECRET_KEY is not configured")
        self.api_key = api_key
        self.api_version = api_version

    @classmethod
    def from_settings(cls) -> StripeGateway:
        return cls(
            api_key=settings.STRIPE_SECRET_KEY,
            api_version=settings.STRIPE_API_VERSION,
        )

    @property
    def _auth(self) -> dict:
        return {"api_key": self.api_key, "stripe_version": self.api_version}

    # Payments
    # -------------------------------------------------------------------------

    def create_one_time_payment(self, payload: PaymentPayload) -> PaymentArtifact:
        with stripe_errors("payment intent creation"):
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(payload.amount),
                currency=payload.currency.lower(),
                automatic_payment_methods={"enabled": True},
                metadata={
                    "user_id": str(payload.user_id),
                    "country_code": payload.country_code,
                    "region": payload.region,
                    "plan_id": "" if payload.plan_id is None else str(payload.plan_id),
                    "payment_method_type": payload.payment_method,
                },
                **self._auth,
            )
        logger.info(
            "Created Stripe PaymentIntent %s for user %s",
            intent.id,
            payload.user_id,
        )
        return PaymentArtifact(
            external_id=intent.id,
            status=intent.status,
            client_secret=intent.client_secret,
        )

    def create_recurring_payment(self, payload: PaymentPayload) -> PaymentArtifact:
        """
        Create an incomplete subscription for ``payload.customer_id``.

        The first invoice's PaymentIntent is returned as the artifact; the
        client confirms it and the webhook activates the subscription.
        """
        if not payload.price_id or not payload.customer_id:
            raise ConfigError(
                "Stripe recurring payments need a price_id and customer_id",
            )
        with stripe_errors("subscription creation"):
            subscription = stripe.Subscription.create(
                customer=payload.customer_id,
                items=[{"price": payload.price_id}],
                payment_behavior="default_incomplete",
                payment_settings={"save_default_payment_method": "on_subscription"},
                expand=["latest_invoice.payment_intent"],
                metadata={
                    "user_id": str(payload.user_id),
                    "plan_id": "" if payload.plan_id is None else str(payload.plan_id),
                },
                **self._auth,
            )
        intent = subscription.latest_invoice.payment_intent
        logger.info(
            "Created Stripe subscription %s (intent %s) for user %s",
            subscription.id,
            intent.id,
            payload.user_id,
        )
        return PaymentArtifact(
            external_id=intent.id,
            status=subscription.status,
            client_secret=intent.client_secret,
            subscription_id=subscription.id,
        )

    def verify_payment(self, external_id: str) -> PaymentVerification:
        with stripe_errors("payment verification"):
            intent = stripe.PaymentIntent.retrieve(external_id, **self._auth)
        return PaymentVerification(
            verified=intent.status == "succeeded",
            status=intent.status,
            amount=from_minor_units(intent.amount),
            currency=(intent.currency or "").upper(),
            metadata=dict(intent.metadata or {}),
        )

    # Subscriptions
    # -------------------------------------------------------------------------

    def cancel_subscription(self, external_subscription_id: str) -> CancellationResult:
        with stripe_errors("subscription cancellation"):
            subscription = stripe.Subscription.modify(
                external_subscription_id,
                cancel_at_period_end=True,
                **self._auth,
            )
        effective_at = None
        if subscription.current_period_end:
            effective_at = datetime.fromtimestamp(subscription.current_period_end, tz=UTC)
        logger.info(
            "Stripe subscription %s set to cancel at %s",
            external_subscription_id,
            effective_at,
        )
        return CancellationResult(
            success=True,
            status=subscription.status,
            effective_at=effective_at,
        )

    def resume_subscription(self, external_subscription_id: str) -> CancellationResult:
        """Undo a pending cancel_at_period_end."""
        with stripe_errors("subscription resume"):
            subscription = stripe.Subscription.modify(
                external_subscription_id,
                cancel_at_period_end=False,
                **self._auth,
            )
        return CancellationResult(success=True, status=subscription.status)

    # Catalog and customers
    # -------------------------------------------------------------------------

    def find_or_create_customer(self, *, email: str, user_id) -> str:
        """Reuse the Stripe customer registered under ``email`` if any."""
        with stripe_errors("customer lookup"):
            if email:
                existing = stripe.Customer.list(email=email, limit=1, **self._auth)
                if existing.data:
                    return existing.data[0].id
            customer = stripe.Customer.create(
                email=email or None,
                metadata={"user_id": str(user_id)},
                **self._auth,
            )
        logger.info("Created Stripe customer %s for user %s", customer.id, user_id)
        return customer.id

    def create_product(self, *, name: str, description: str = "") -> str:
        params = {"name": name}
        if description:
            params["description"] = description
        with stripe_errors("product creation"):
            product = stripe.Product.create(**params, **self._auth)
        return product.id

    def create_recurring_price(
        self,
        *,
        product_id: str,
        amount,
        currency: str,
        interval: str,
        interval_count: int,
    ) -> str:
        with stripe_errors("price creation"):
            price = stripe.Price.create(
                product=product_id,
                unit_amount=to_minor_units(amount),
                currency=currency.lower(),
                recurring={"interval": interval, "interval_count": interval_count},
                **self._auth,
            )
        return price.id
