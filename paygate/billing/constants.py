"""
Billing constants.

These enums define the gateways, plan payment types and the lifecycle
states of payments, subscriptions, usage records and webhook receipts.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Gateway(models.TextChoices):
    """
    Where money moves.

    MANUAL marks pay-as-you-go subscriptions activated without a provider;
    their usage is settled later.
    """

    STRIPE = "stripe", _("Stripe")
    PADDLE = "paddle", _("Paddle")
    MANUAL = "manual", _("Manual")


class PaymentType(models.TextChoices):
    RECURRING = "recurring", _("Recurring")
    PAY_AS_YOU_GO = "pay_as_you_go", _("Pay as you go")


class PaymentStatus(models.TextChoices):
    """
    Payment lifecycle.

        PENDING → COMPLETED (provider confirmed, via webhook only)
        PENDING → FAILED (provider declined, via webhook only)

    COMPLETED is terminal; a late failure event never reverts it.
    """

    PENDING = "pending", _("Pending")
    COMPLETED = "completed", _("Completed")
    FAILED = "failed", _("Failed")


class SubscriptionStatus(models.TextChoices):
    """
    Subscription lifecycle.

        PENDING → ACTIVE (first payment confirmed)
        ACTIVE ↔ PAUSED (provider pause/resume)
        ACTIVE → PENDING (renewal past due)
        any → CANCELED (provider cancellation takes effect)
    """

    ACTIVE = "active", _("Active")
    PENDING = "pending", _("Pending")
    CANCELED = "canceled", _("Canceled")
    PAUSED = "paused", _("Paused")


class UsageStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    PAID = "paid", _("Paid")


class PaymentMethod(models.TextChoices):
    CARD = "card", _("Credit/Debit Card")
    PAYPAL = "paypal", _("PayPal")
    GOOGLE_PAY = "google_pay", _("Google Pay")
    APPLE_PAY = "apple_pay", _("Apple Pay")


class WebhookEventStatus(models.TextChoices):
    """
    Processing state of a received provider event.

    PROCESSING means a delivery started but did not finish (crash or DB
    error); the next delivery of the same event retries it.
    """

    PROCESSING = "processing", _("Processing")
    PROCESSED = "processed", _("Processed")
    NEEDS_REVIEW = "needs_review", _("Needs review")


# Payment methods each gateway can take.
GATEWAY_PAYMENT_METHODS = {
    Gateway.STRIPE: (
        PaymentMethod.CARD,
        PaymentMethod.PAYPAL,
        PaymentMethod.GOOGLE_PAY,
        PaymentMethod.APPLE_PAY,
    ),
    Gateway.PADDLE: (
        PaymentMethod.CARD,
        PaymentMethod.PAYPAL,
    ),
}

DEFAULT_USAGE_TYPE = "election_created"
