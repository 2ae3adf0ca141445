"""
Provider webhook payloads normalised into one event shape.

The reconciler only understands ``NormalizedEvent``; everything provider
specific (field paths, status vocabularies, minor units, timestamp formats)
is handled here. Envelopes are validated with pydantic; the inner objects
stay plain dicts because both providers add fields freely.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field
from datetime import UTC
from datetime import datetime
from decimal import Decimal
from decimal import InvalidOperation
from enum import StrEnum

import pydantic
from django.utils.dateparse import parse_datetime
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from paygate.billing.constants import Gateway
from paygate.billing.constants import SubscriptionStatus
from paygate.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

MINOR_UNITS = Decimal(100)


class EventAction(StrEnum):
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    SUBSCRIPTION_UPSERTED = "subscription_upserted"
    SUBSCRIPTION_CANCELED = "subscription_canceled"
    IGNORED = "ignored"


STRIPE_ACTIONS = {
    "payment_intent.succeeded": EventAction.PAYMENT_SUCCEEDED,
    "invoice.payment_succeeded": EventAction.PAYMENT_SUCCEEDED,
    "payment_intent.payment_failed": EventAction.PAYMENT_FAILED,
    "invoice.payment_failed": EventAction.PAYMENT_FAILED,
    "customer.subscription.created": EventAction.SUBSCRIPTION_UPSERTED,
    "customer.subscription.updated": EventAction.SUBSCRIPTION_UPSERTED,
    "customer.subscription.deleted": EventAction.SUBSCRIPTION_CANCELED,
}

PADDLE_ACTIONS = {
    "transaction.completed": EventAction.PAYMENT_SUCCEEDED,
    "transaction.payment_failed": EventAction.PAYMENT_FAILED,
    "subscription.created": EventAction.SUBSCRIPTION_UPSERTED,
    "subscription.updated": EventAction.SUBSCRIPTION_UPSERTED,
    "subscription.activated": EventAction.SUBSCRIPTION_UPSERTED,
    "subscription.paused": EventAction.SUBSCRIPTION_UPSERTED,
    "subscription.resumed": EventAction.SUBSCRIPTION_UPSERTED,
    "subscription.past_due": EventAction.SUBSCRIPTION_UPSERTED,
    "subscription.canceled": EventAction.SUBSCRIPTION_CANCELED,
}

STRIPE_SUBSCRIPTION_STATUSES = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.ACTIVE,
    "incomplete": SubscriptionStatus.PENDING,
    "past_due": SubscriptionStatus.PENDING,
    "unpaid": SubscriptionStatus.PENDING,
    "canceled": SubscriptionStatus.CANCELED,
    "incomplete_expired": SubscriptionStatus.CANCELED,
    "paused": SubscriptionStatus.PAUSED,
}

PADDLE_SUBSCRIPTION_STATUSES = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.ACTIVE,
    "past_due": SubscriptionStatus.PENDING,
    "paused": SubscriptionStatus.PAUSED,
    "canceled": SubscriptionStatus.CANCELED,
}


# Envelopes
# -----------------------------------------------------------------------------


class StripeEventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    obj: dict = Field(default_factory=dict, alias="object")


class StripeEventEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: str
    created: datetime | None = None
    data: StripeEventData = Field(default_factory=StripeEventData)


class PaddleEventEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    event_id: str
    event_type: str
    occurred_at: datetime | None = None
    data: dict = Field(default_factory=dict)


@dataclass(frozen=True)
class NormalizedEvent:
    """
    A provider event reduced to what the reconciler acts on.

    Payment actions fill the payment fields, subscription actions the
    subscription fields; ``payload`` keeps the original event for the
    receipt and the review queue.
    """

    provider: str
    event_id: str
    event_type: str
    action: EventAction
    occurred_at: datetime | None = None
    payload: dict = field(default_factory=dict)

    user_id: str = ""
    plan_id: str = ""
    customer_id: str = ""

    external_payment_id: str = ""
    amount: Decimal | None = None
    currency: str = ""
    failure_reason: str = ""
    region: str = ""
    country_code: str = ""
    payment_method: str = ""

    external_subscription_id: str = ""
    subscription_status: str = ""
    period_start: datetime | None = None
    period_end: datetime | None = None
    canceled_at: datetime | None = None
    cancel_at_period_end: bool | None = None


# Stripe
# -----------------------------------------------------------------------------


def normalize_stripe_event(payload: dict) -> NormalizedEvent:
    try:
        envelope = StripeEventEnvelope.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Malformed Stripe event: {exc}", code="malformed_event") from exc

    action = STRIPE_ACTIONS.get(envelope.type, EventAction.IGNORED)
    base = {
        "provider": Gateway.STRIPE,
        "event_id": envelope.id,
        "event_type": envelope.type,
        "action": action,
        "occurred_at": envelope.created,
        "payload": payload,
    }
    obj = envelope.data.obj

    if envelope.type.startswith("payment_intent."):
        return NormalizedEvent(**base, **_stripe_payment_intent_fields(obj))
    if envelope.type.startswith("invoice."):
        return NormalizedEvent(**base, **_stripe_invoice_fields(obj))
    if envelope.type.startswith("customer.subscription."):
        return NormalizedEvent(**base, **_stripe_subscription_fields(obj))
    return NormalizedEvent(**base)


def _stripe_payment_intent_fields(intent: dict) -> dict:
    metadata = intent.get("metadata") or {}
    error = intent.get("last_payment_error") or {}
    return {
        "external_payment_id": intent.get("id", ""),
        "user_id": str(metadata.get("user_id") or ""),
        "plan_id": str(metadata.get("plan_id") or ""),
        "region": metadata.get("region") or "",
        "country_code": metadata.get("country_code") or "",
        "payment_method": metadata.get("payment_method_type") or "",
        "customer_id": _stripe_id(intent.get("customer")),
        "amount": _from_minor(intent.get("amount")),
        "currency": (intent.get("currency") or "").upper(),
        "failure_reason": error.get("message") or error.get("code") or "",
    }


def _stripe_invoice_fields(invoice: dict) -> dict:
    """
    Invoices key on their PaymentIntent so the first invoice of a
    subscription lands on the Payment recorded at checkout.
    """
    details = invoice.get("subscription_details") or {}
    metadata = {**(invoice.get("metadata") or {}), **(details.get("metadata") or {})}
    lines = (invoice.get("lines") or {}).get("data") or []
    period = (lines[0].get("period") or {}) if lines else {}
    error = invoice.get("last_finalization_error") or {}
    amount = invoice.get("amount_paid") or invoice.get("amount_due")
    return {
        "external_payment_id": (
            _stripe_id(invoice.get("payment_intent")) or invoice.get("id", "")
        ),
        "external_subscription_id": _stripe_id(invoice.get("subscription")),
        "user_id": str(metadata.get("user_id") or ""),
        "plan_id": str(metadata.get("plan_id") or ""),
        "customer_id": _stripe_id(invoice.get("customer")),
        "amount": _from_minor(amount),
        "currency": (invoice.get("currency") or "").upper(),
        "period_start": _from_unix(period.get("start")),
        "period_end": _from_unix(period.get("end")),
        "failure_reason": error.get("message") or "Invoice payment failed",
    }


def _stripe_subscription_fields(subscription: dict) -> dict:
    metadata = subscription.get("metadata") or {}
    items = (subscription.get("items") or {}).get("data") or []
    first_item = items[0] if items else {}
    status = subscription.get("status", "")
    return {
        "external_subscription_id": subscription.get("id", ""),
        "user_id": str(metadata.get("user_id") or ""),
        "plan_id": str(metadata.get("plan_id") or ""),
        "customer_id": _stripe_id(subscription.get("customer")),
        "subscription_status": STRIPE_SUBSCRIPTION_STATUSES.get(status, ""),
        "period_start": _from_unix(
            subscription.get("current_period_start")
            or first_item.get("current_period_start"),
        ),
        "period_end": _from_unix(
            subscription.get("current_period_end")
            or first_item.get("current_period_end"),
        ),
        "canceled_at": _from_unix(
            subscription.get("canceled_at") or subscription.get("ended_at"),
        ),
        "cancel_at_period_end": subscription.get("cancel_at_period_end"),
    }


def _stripe_id(value) -> str:
    """Stripe references are ids, or whole objects when expanded."""
    if isinstance(value, dict):
        return value.get("id", "")
    return value or ""


# Paddle
# -----------------------------------------------------------------------------


def normalize_paddle_event(payload: dict) -> NormalizedEvent:
    try:
        envelope = PaddleEventEnvelope.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Malformed Paddle event: {exc}", code="malformed_event") from exc

    action = PADDLE_ACTIONS.get(envelope.event_type, EventAction.IGNORED)
    base = {
        "provider": Gateway.PADDLE,
        "event_id": envelope.event_id,
        "event_type": envelope.event_type,
        "action": action,
        "occurred_at": envelope.occurred_at,
        "payload": payload,
    }
    data = envelope.data

    if envelope.event_type.startswith("transaction."):
        return NormalizedEvent(**base, **_paddle_transaction_fields(data))
    if envelope.event_type.startswith("subscription."):
        return NormalizedEvent(**base, **_paddle_subscription_fields(data))
    return NormalizedEvent(**base)


def _paddle_transaction_fields(transaction: dict) -> dict:
    custom = transaction.get("custom_data") or {}
    totals = (transaction.get("details") or {}).get("totals") or {}
    period = transaction.get("billing_period") or {}
    payments = transaction.get("payments") or []
    error_code = next(
        (attempt.get("error_code") for attempt in payments if attempt.get("error_code")),
        "",
    )
    return {
        "external_payment_id": transaction.get("id", ""),
        "external_subscription_id": transaction.get("subscription_id") or "",
        "user_id": str(custom.get("user_id") or ""),
        "plan_id": str(custom.get("plan_id") or _paddle_item_plan_id(transaction)),
        "customer_id": transaction.get("customer_id") or "",
        "amount": _from_minor(totals.get("total")),
        "currency": (transaction.get("currency_code") or totals.get("currency_code") or "").upper(),
        "period_start": _from_iso(period.get("starts_at")),
        "period_end": _from_iso(period.get("ends_at")),
        "failure_reason": error_code or "Transaction payment failed",
    }


def _paddle_subscription_fields(subscription: dict) -> dict:
    custom = subscription.get("custom_data") or {}
    period = subscription.get("current_billing_period") or {}
    scheduled = subscription.get("scheduled_change") or {}
    status = subscription.get("status", "")
    return {
        "external_subscription_id": subscription.get("id", ""),
        "user_id": str(custom.get("user_id") or ""),
        "plan_id": str(_paddle_item_plan_id(subscription) or custom.get("plan_id") or ""),
        "customer_id": subscription.get("customer_id") or "",
        "subscription_status": PADDLE_SUBSCRIPTION_STATUSES.get(status, ""),
        "period_start": _from_iso(period.get("starts_at")),
        "period_end": _from_iso(period.get("ends_at")),
        "canceled_at": _from_iso(subscription.get("canceled_at")),
        "cancel_at_period_end": scheduled.get("action") == "cancel",
    }


def _paddle_item_plan_id(obj: dict) -> str:
    items = obj.get("items") or []
    if not items:
        return ""
    price = items[0].get("price") or {}
    return str((price.get("custom_data") or {}).get("plan_id") or "")


# Conversions
# -----------------------------------------------------------------------------


def _from_minor(value) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value)) / MINOR_UNITS
    except InvalidOperation:
        logger.warning("Ignoring unparseable amount %r", value)
        return None


def _from_unix(value) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=UTC)


def _from_iso(value) -> datetime | None:
    if not value:
        return None
    return parse_datetime(value)
