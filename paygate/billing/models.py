"""
Billing models.

Key design decisions:
- Plan carries provider price/product ids. Provider prices are immutable, so
  a price change mints a new stripe_price_id and keeps the product.
- Payment is keyed by (gateway, external_payment_id). Rows are created
  PENDING by the router and only moved to COMPLETED/FAILED by webhooks.
- Subscription rows are never deleted; the newest row is the user's
  current subscription.
- WebhookEvent records every provider event id we have applied, so
  redelivered events are acknowledged without being applied twice.

Users live in another service; they are referenced by their opaque id.
"""

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from model_utils.models import TimeStampedModel

from paygate.billing.constants import DEFAULT_USAGE_TYPE
from paygate.billing.constants import Gateway
from paygate.billing.constants import PaymentStatus
from paygate.billing.constants import PaymentType
from paygate.billing.constants import SubscriptionStatus
from paygate.billing.constants import UsageStatus
from paygate.billing.constants import WebhookEventStatus
from paygate.regions.constants import DEFAULT_CURRENCY
from paygate.regions.constants import Region

USER_ID_MAX_LENGTH = 64


class Plan(TimeStampedModel):
    """
    A purchasable plan.

    Recurring plans renew every ``duration_days``. Pay-as-you-go plans have
    no duration; usage is metered at ``price_per_unit`` and settled later.
    """

    plan_name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=12, decimal_places=2)
    price_per_unit = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        null=True,
        blank=True,
        help_text=_("Unit price for pay-as-you-go usage. Falls back to price."),
    )
    duration_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("Billing period length. Null for pay-as-you-go."),
    )
    payment_type = models.CharField(
        max_length=20,
        choices=PaymentType.choices,
        default=PaymentType.RECURRING,
    )
    is_recurring = models.BooleanField(default=True)
    billing_cycle = models.CharField(max_length=30, blank=True, default="")
    max_elections = models.IntegerField(
        null=True,
        blank=True,
        help_text=_("Null = unlimited."),
    )
    processing_fee_enabled = models.BooleanField(default=False)
    processing_fee_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
    )
    is_active = models.BooleanField(default=True)

    stripe_product_id = models.CharField(max_length=255, blank=True, default="")
    stripe_price_id = models.CharField(max_length=255, blank=True, default="")
    paddle_product_id = models.CharField(max_length=255, blank=True, default="")
    paddle_price_id = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["price"]

    def __str__(self):
        return self.plan_name

    @property
    def is_pay_as_you_go(self) -> bool:
        return self.payment_type == PaymentType.PAY_AS_YOU_GO

    @property
    def unit_price(self):
        return self.price_per_unit if self.price_per_unit is not None else self.price


class BillingCustomer(TimeStampedModel):
    """Provider customer ids for a user, created lazily on first checkout."""

    user_id = models.CharField(max_length=USER_ID_MAX_LENGTH, unique=True)
    email = models.EmailField(blank=True, default="")
    stripe_customer_id = models.CharField(max_length=255, blank=True, default="")
    paddle_customer_id = models.CharField(max_length=255, blank=True, default="")

    def __str__(self):
        return f"BillingCustomer({self.user_id})"


class SubscriptionQuerySet(models.QuerySet):
    def for_user(self, user_id):
        return self.filter(user_id=str(user_id))

    def latest_for(self, user_id):
        """The user's current subscription regardless of status."""
        return self.for_user(user_id).order_by("-created", "-id").first()

    def active_for(self, user_id):
        return (
            self.for_user(user_id)
            .filter(status=SubscriptionStatus.ACTIVE)
            .select_related("plan")
            .order_by("-created", "-id")
            .first()
        )


class Subscription(TimeStampedModel):
    """
    A user's entitlement to a plan.

    Invariants:
    - end_date is null (pay-as-you-go) or not before start_date.
    - a CANCELED subscription never auto-renews.

    ``last_event_at`` is the provider timestamp of the newest event applied;
    older events are skipped so out-of-order delivery cannot roll state back.
    """

    user_id = models.CharField(max_length=USER_ID_MAX_LENGTH, db_index=True)
    plan = models.ForeignKey(
        Plan,
        on_delete=models.PROTECT,  # Never delete a plan with subscriptions
        related_name="subscriptions",
    )
    status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.PENDING,
    )
    start_date = models.DateTimeField(default=timezone.now)
    end_date = models.DateTimeField(null=True, blank=True)
    gateway = models.CharField(max_length=20, choices=Gateway.choices)
    external_subscription_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
    )
    payment_type = models.CharField(
        max_length=20,
        choices=PaymentType.choices,
        default=PaymentType.RECURRING,
    )
    auto_renew = models.BooleanField(default=True)
    canceled_at = models.DateTimeField(null=True, blank=True)
    last_event_at = models.DateTimeField(null=True, blank=True)
    last_event_id = models.CharField(max_length=255, blank=True, default="")

    objects = SubscriptionQuerySet.as_manager()

    class Meta:
        ordering = ["-created"]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__isnull=True)
                | Q(end_date__gte=models.F("start_date")),
                name="billing_subscription_end_after_start",
            ),
            models.CheckConstraint(
                condition=~Q(status=SubscriptionStatus.CANCELED)
                | Q(auto_renew=False),
                name="billing_subscription_canceled_no_renew",
            ),
            models.UniqueConstraint(
                fields=["gateway", "external_subscription_id"],
                condition=~Q(external_subscription_id=""),
                name="billing_unique_external_subscription",
            ),
        ]

    def __str__(self):
        return f"Subscription({self.user_id}, {self.plan_id}, {self.status})"

    def clean(self):
        super().clean()
        if self.end_date and self.start_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": _("End date precedes start date.")})
        if self.status == SubscriptionStatus.CANCELED and self.auto_renew:
            raise ValidationError(
                {"auto_renew": _("Canceled subscriptions cannot auto-renew.")},
            )

    @property
    def is_valid(self) -> bool:
        """Active and not past its end date."""
        if self.status != SubscriptionStatus.ACTIVE:
            return False
        return self.end_date is None or self.end_date > timezone.now()


class Payment(TimeStampedModel):
    """A single charge attempt at one gateway."""

    user_id = models.CharField(max_length=USER_ID_MAX_LENGTH, db_index=True)
    plan = models.ForeignKey(
        Plan,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
    )
    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    gateway = models.CharField(max_length=20, choices=Gateway.choices)
    external_payment_id = models.CharField(max_length=255)
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method = models.CharField(max_length=30, blank=True, default="")
    region = models.CharField(
        max_length=20,
        choices=Region.choices,
        blank=True,
        default="",
    )
    country_code = models.CharField(max_length=2, blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created"]
        constraints = [
            models.UniqueConstraint(
                fields=["gateway", "external_payment_id"],
                name="billing_unique_external_payment",
            ),
        ]

    def __str__(self):
        return f"Payment({self.gateway}:{self.external_payment_id}, {self.status})"


class PaymentFailure(TimeStampedModel):
    """Ledger of declined payments, kept for support and dunning."""

    payment = models.ForeignKey(
        Payment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="failures",
    )
    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payment_failures",
    )
    user_id = models.CharField(max_length=USER_ID_MAX_LENGTH, db_index=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    reason = models.TextField(blank=True, default="")
    gateway = models.CharField(max_length=20, choices=Gateway.choices)
    region = models.CharField(max_length=20, blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created"]

    def __str__(self):
        return f"PaymentFailure({self.user_id}, {self.gateway})"


class UsageRecord(TimeStampedModel):
    """
    One metered usage event for a pay-as-you-go user.

    total_amount is quantity × price_per_unit, fixed when the record is
    written so later plan price changes do not alter outstanding usage.
    """

    user_id = models.CharField(max_length=USER_ID_MAX_LENGTH, db_index=True)
    election_id = models.CharField(max_length=64, blank=True, default="")
    usage_type = models.CharField(max_length=50, default=DEFAULT_USAGE_TYPE)
    quantity = models.PositiveIntegerField(default=1)
    price_per_unit = models.DecimalField(max_digits=12, decimal_places=4)
    total_amount = models.DecimalField(max_digits=14, decimal_places=4)
    status = models.CharField(
        max_length=20,
        choices=UsageStatus.choices,
        default=UsageStatus.PENDING,
    )
    payment = models.ForeignKey(
        Payment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="usage_records",
    )
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created"]
        indexes = [
            models.Index(
                fields=["user_id", "status"],
                name="billing_usage_user_status_idx",
            ),
        ]

    def __str__(self):
        return f"UsageRecord({self.user_id}, {self.usage_type} x{self.quantity})"


class WebhookEvent(models.Model):
    """
    Receipt for a provider webhook event, keyed by (provider, event_id).

    Before applying an event the reconciler looks up its receipt:
    - PROCESSED / NEEDS_REVIEW: acknowledge without applying again
    - PROCESSING: a previous delivery failed mid-way, apply again
    - missing: create as PROCESSING and apply
    """

    provider = models.CharField(max_length=20, choices=Gateway.choices)
    event_id = models.CharField(max_length=255)
    event_type = models.CharField(max_length=100)
    occurred_at = models.DateTimeField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PROCESSING,
    )
    payload = models.JSONField(default=dict, blank=True)
    received_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-received_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "event_id"],
                name="billing_unique_webhook_event",
            ),
        ]
        indexes = [
            models.Index(fields=["received_at"], name="billing_webhook_received_idx"),
        ]

    def __str__(self):
        return f"WebhookEvent({self.provider}:{self.event_id}, {self.status})"


class ReconciliationIssue(TimeStampedModel):
    """An event the reconciler could not apply without a human decision."""

    provider = models.CharField(max_length=20, choices=Gateway.choices)
    event_id = models.CharField(max_length=255)
    event_type = models.CharField(max_length=100)
    reason = models.TextField()
    payload = models.JSONField(default=dict, blank=True)
    resolved = models.BooleanField(default=False)

    class Meta:
        ordering = ["resolved", "-created"]

    def __str__(self):
        return f"ReconciliationIssue({self.provider}:{self.event_id})"
