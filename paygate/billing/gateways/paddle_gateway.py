"""
Paddle Billing adapter over its REST API.

Both one-time and recurring checkouts are Paddle transactions: Paddle turns
a transaction for a recurring price into a subscription once it completes.
We pass our user and plan ids in ``custom_data`` so webhooks can be tied
back to them.

The httpx client is injectable; tests hand in one built on
``httpx.MockTransport``.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal

import httpx
from django.conf import settings
from django.utils.dateparse import parse_datetime

from paygate.billing.constants import Gateway
from paygate.billing.gateways.base import CancellationResult
from paygate.billing.gateways.base import PaymentArtifact
from paygate.billing.gateways.base import PaymentGateway
from paygate.billing.gateways.base import PaymentPayload
from paygate.billing.gateways.base import PaymentVerification
from paygate.core.exceptions import ConfigError
from paygate.core.exceptions import ProviderError

logger = logging.getLogger(__name__)

PRODUCTION_API_BASE = "https://api.paddle.com"
SANDBOX_API_BASE = "https://sandbox-api.paddle.com"
PRODUCTION_CHECKOUT_BASE = "https://buy.paddle.com/checkout"
SANDBOX_CHECKOUT_BASE = "https://sandbox-buy.paddle.com/checkout"

MINOR_UNITS = Decimal(100)


def normalize_plan_name(plan_name: str) -> str:
    return re.sub(r"\s+", "-", (plan_name or "").strip().lower())


class PaddleGateway(PaymentGateway):
    """
    Usage:
        gateway = PaddleGateway.from_settings()
        artifact = gateway.create_one_time_payment(payload)
        artifact.checkout_url   # redirect the buyer here
    """

    name = Gateway.PADDLE

    def __init__(
        self,
        *,
        api_key: str,
        environment: str = "sandbox",
        timeout: float = 30.0,
        frontend_url: str = "",
        price_ids: dict | None = None,
        client: httpx.Client | None = None,
    ):
        if not api_key:
            raise ConfigError("PADDLE_API_KEY is not configured")
        self.api_key = api_key
        self.is_sandbox = environment != "production"
        self.api_base = SANDBOX_API_BASE if self.is_sandbox else PRODUCTION_API_BASE
        self.frontend_url = frontend_url.rstrip("/")
        self.price_ids = price_ids or {}
        self.client = client or httpx.Client(base_url=self.api_base, timeout=timeout)

    @classmethod
    def from_settings(cls, client: httpx.Client | None = None) -> PaddleGateway:
        return cls(
            api_key=settings.PADDLE_API_KEY,
            environment=settings.PADDLE_ENVIRONMENT,
            timeout=settings.PADDLE_HTTP_TIMEOUT,
            frontend_url=settings.FRONTEND_URL,
            price_ids=settings.PADDLE_PRICE_IDS,
            client=client,
        )

    # Prices
    # -------------------------------------------------------------------------

    def resolve_price_id(self, plan) -> str:
        """
        Paddle price for a plan: the plan's own paddle_price_id, else the
        configured mapping for its normalized name.
        """
        if plan.paddle_price_id:
            return plan.paddle_price_id
        price_id = self.price_ids.get(normalize_plan_name(plan.plan_name), "")
        if not price_id:
            raise ConfigError(
                f"Missing Paddle Price ID for plan: {plan.plan_name}",
                code="missing_paddle_price",
            )
        return price_id

    # Payments
    # -------------------------------------------------------------------------

    def create_one_time_payment(self, payload: PaymentPayload) -> PaymentArtifact:
        transaction = self._create_transaction(payload, include_email=False)
        checkout_url = (transaction.get("checkout") or {}).get("url") or ""
        return self._artifact(transaction, checkout_url or self._checkout_url(transaction))

    def create_recurring_payment(self, payload: PaymentPayload) -> PaymentArtifact:
        transaction = self._create_transaction(payload, include_email=True)
        return self._artifact(transaction, self._checkout_url(transaction))

    def verify_payment(self, external_id: str) -> PaymentVerification:
        transaction = self._request("GET", f"/transactions/{external_id}", action="lookup")
        total = ((transaction.get("details") or {}).get("totals") or {}).get("total")
        return PaymentVerification(
            verified=transaction.get("status") == "completed",
            status=transaction.get("status", ""),
            amount=None if total is None else Decimal(str(total)) / MINOR_UNITS,
            currency=transaction.get("currency_code", ""),
            metadata=transaction.get("custom_data") or {},
        )

    # Subscriptions
    # -------------------------------------------------------------------------

    def cancel_subscription(self, external_subscription_id: str) -> CancellationResult:
        subscription = self._request(
            "POST",
            f"/subscriptions/{external_subscription_id}/cancel",
            json={"effective_from": "next_billing_period"},
            action="subscription cancellation",
        )
        scheduled = subscription.get("scheduled_change") or {}
        logger.info(
            "Paddle subscription %s scheduled to cancel at %s",
            external_subscription_id,
            scheduled.get("effective_at"),
        )
        return CancellationResult(
            success=True,
            status=subscription.get("status", ""),
            effective_at=_parse_timestamp(scheduled.get("effective_at")),
        )

    # Internals
    # -------------------------------------------------------------------------

    def _create_transaction(self, payload: PaymentPayload, *, include_email: bool) -> dict:
        if not payload.price_id:
            raise ConfigError("Paddle payments need a price_id", code="missing_paddle_price")

        body = {
            "items": [{"price_id": payload.price_id, "quantity": 1}],
            "custom_data": {
                "user_id": str(payload.user_id),
                "plan_id": "" if payload.plan_id is None else str(payload.plan_id),
            },
            "checkout": {
                "settings": {
                    "success_url": (
                        f"{self.frontend_url}/payment/callback?gateway=paddle"
                        f"&plan_id={payload.plan_id or ''}&status=success"
                    ),
                },
            },
        }
        if include_email and payload.email:
            body["customer_email"] = payload.email

        transaction = self._request(
            "POST",
            "/transactions",
            json=body,
            action="transaction",
        )
        logger.info(
            "Created Paddle transaction %s (%s) for user %s",
            transaction.get("id"),
            transaction.get("status"),
            payload.user_id,
        )
        return transaction

    def _artifact(self, transaction: dict, checkout_url: str) -> PaymentArtifact:
        return PaymentArtifact(
            external_id=transaction["id"],
            status=transaction.get("status", ""),
            checkout_url=checkout_url,
        )

    def _checkout_url(self, transaction: dict) -> str:
        if self.is_sandbox:
            return f"{SANDBOX_CHECKOUT_BASE}?_ptxn={transaction['id']}"
        hosted = (transaction.get("checkout") or {}).get("url")
        return hosted or f"{PRODUCTION_CHECKOUT_BASE}?_ptxn={transaction['id']}"

    def _request(self, method: str, path: str, *, action: str, json=None) -> dict:
        try:
            response = self.client.request(
                method,
                path,
                json=json,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = _error_detail(exc.response) or str(exc)
            logger.error("Paddle %s failed: %s", action, detail)
            raise ProviderError(f"Paddle {action} failed: {detail}") from exc
        except httpx.HTTPError as exc:
            logger.error("Paddle %s failed: %s", action, exc)
            raise ProviderError(f"Paddle {action} failed: {exc}") from exc
        return response.json().get("data") or {}


def _error_detail(response: httpx.Response) -> str:
    try:
        return (response.json().get("error") or {}).get("detail", "")
    except ValueError:
        return ""


def _parse_timestamp(value):
    if not value:
        return None
    return parse_datetime(value)
