import django.db.models.deletion
import django.db.models.expressions
import django.utils.timezone
import model_utils.fields
from django.db import migrations
from django.db import models

REGION_CHOICES = [
    ("region_1", "US & Canada"),
    ("region_2", "Western Europe"),
    ("region_3", "Eastern Europe & Russia"),
    ("region_4", "Africa"),
    ("region_5", "Latin America & Caribbean"),
    ("region_6", "Middle East, Asia & Eurasia"),
    ("region_7", "Australasia"),
    ("region_8", "China, Macau & Hong Kong"),
]
GATEWAY_CHOICES = [("stripe", "Stripe"), ("paddle", "Paddle"), ("manual", "Manual")]
PAYMENT_TYPE_CHOICES = [
    ("recurring", "Recurring"),
    ("pay_as_you_go", "Pay as you go"),
]


def _id():
    return models.BigAutoField(
        auto_created=True,
        primary_key=True,
        serialize=False,
        verbose_name="ID",
    )


def _created():
    return model_utils.fields.AutoCreatedField(
        default=django.utils.timezone.now,
        editable=False,
        verbose_name="created",
    )


def _modified():
    return model_utils.fields.AutoLastModifiedField(
        default=django.utils.timezone.now,
        editable=False,
        verbose_name="modified",
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Plan",
            fields=[
                ("id", _id()),
                ("created", _created()),
                ("modified", _modified()),
                ("plan_name", models.CharField(max_length=100, unique=True)),
                ("description", models.TextField(blank=True, default="")),
                ("price", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "price_per_unit",
                    models.DecimalField(
                        blank=True,
                        decimal_places=4,
                        help_text="Unit price for pay-as-you-go usage. Falls back to price.",
                        max_digits=12,
                        null=True,
                    ),
                ),
                (
                    "duration_days",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Billing period length. Null for pay-as-you-go.",
                        null=True,
                    ),
                ),
                (
                    "payment_type",
                    models.CharField(
                        choices=PAYMENT_TYPE_CHOICES,
                        default="recurring",
                        max_length=20,
                    ),
                ),
                ("is_recurring", models.BooleanField(default=True)),
                ("billing_cycle", models.CharField(blank=True, default="", max_length=30)),
                (
                    "max_elections",
                    models.IntegerField(blank=True, help_text="Null = unlimited.", null=True),
                ),
                ("processing_fee_enabled", models.BooleanField(default=False)),
                (
                    "processing_fee_percentage",
                    models.DecimalField(decimal_places=2, default=0, max_digits=5),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("stripe_product_id", models.CharField(blank=True, default="", max_length=255)),
                ("stripe_price_id", models.CharField(blank=True, default="", max_length=255)),
                ("paddle_product_id", models.CharField(blank=True, default="", max_length=255)),
                ("paddle_price_id", models.CharField(blank=True, default="", max_length=255)),
            ],
            options={"ordering": ["price"]},
        ),
        migrations.CreateModel(
            name="BillingCustomer",
            fields=[
                ("id", _id()),
                ("created", _created()),
                ("modified", _modified()),
                ("user_id", models.CharField(max_length=64, unique=True)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("stripe_customer_id", models.CharField(blank=True, default="", max_length=255)),
                ("paddle_customer_id", models.CharField(blank=True, default="", max_length=255)),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="Subscription",
            fields=[
                ("id", _id()),
                ("created", _created()),
                ("modified", _modified()),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("pending", "Pending"),
                            ("canceled", "Canceled"),
                            ("paused", "Paused"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("start_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("end_date", models.DateTimeField(blank=True, null=True)),
                ("gateway", models.CharField(choices=GATEWAY_CHOICES, max_length=20)),
                (
                    "external_subscription_id",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "payment_type",
                    models.CharField(
                        choices=PAYMENT_TYPE_CHOICES,
                        default="recurring",
                        max_length=20,
                    ),
                ),
                ("auto_renew", models.BooleanField(default=True)),
                ("canceled_at", models.DateTimeField(blank=True, null=True)),
                ("last_event_at", models.DateTimeField(blank=True, null=True)),
                ("last_event_id", models.CharField(blank=True, default="", max_length=255)),
                (
                    "plan",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="subscriptions",
                        to="billing.plan",
                    ),
                ),
            ],
            options={"ordering": ["-created"]},
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", _id()),
                ("created", _created()),
                ("modified", _modified()),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("gateway", models.CharField(choices=GATEWAY_CHOICES, max_length=20)),
                ("external_payment_id", models.CharField(max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("payment_method", models.CharField(blank=True, default="", max_length=30)),
                (
                    "region",
                    models.CharField(
                        blank=True,
                        choices=REGION_CHOICES,
                        default="",
                        max_length=20,
                    ),
                ),
                ("country_code", models.CharField(blank=True, default="", max_length=2)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "plan",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payments",
                        to="billing.plan",
                    ),
                ),
                (
                    "subscription",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payments",
                        to="billing.subscription",
                    ),
                ),
            ],
            options={"ordering": ["-created"]},
        ),
        migrations.CreateModel(
            name="PaymentFailure",
            fields=[
                ("id", _id()),
                ("created", _created()),
                ("modified", _modified()),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                (
                    "amount",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                ("reason", models.TextField(blank=True, default="")),
                ("gateway", models.CharField(choices=GATEWAY_CHOICES, max_length=20)),
                ("region", models.CharField(blank=True, default="", max_length=20)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "payment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="failures",
                        to="billing.payment",
                    ),
                ),
                (
                    "subscription",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payment_failures",
                        to="billing.subscription",
                    ),
                ),
            ],
            options={"ordering": ["-created"]},
        ),
        migrations.CreateModel(
            name="UsageRecord",
            fields=[
                ("id", _id()),
                ("created", _created()),
                ("modified", _modified()),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("election_id", models.CharField(blank=True, default="", max_length=64)),
                ("usage_type", models.CharField(default="election_created", max_length=50)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("price_per_unit", models.DecimalField(decimal_places=4, max_digits=12)),
                ("total_amount", models.DecimalField(decimal_places=4, max_digits=14)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("paid", "Paid")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "payment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="usage_records",
                        to="billing.payment",
                    ),
                ),
            ],
            options={"ordering": ["-created"]},
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                ("id", _id()),
                ("provider", models.CharField(choices=GATEWAY_CHOICES, max_length=20)),
                ("event_id", models.CharField(max_length=255)),
                ("event_type", models.CharField(max_length=100)),
                ("occurred_at", models.DateTimeField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("needs_review", "Needs review"),
                        ],
                        default="processing",
                        max_length=20,
                    ),
                ),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("received_at", models.DateTimeField(auto_now_add=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={"ordering": ["-received_at"]},
        ),
        migrations.CreateModel(
            name="ReconciliationIssue",
            fields=[
                ("id", _id()),
                ("created", _created()),
                ("modified", _modified()),
                ("provider", models.CharField(choices=GATEWAY_CHOICES, max_length=20)),
                ("event_id", models.CharField(max_length=255)),
                ("event_type", models.CharField(max_length=100)),
                ("reason", models.TextField()),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("resolved", models.BooleanField(default=False)),
            ],
            options={"ordering": ["resolved", "-created"]},
        ),
        migrations.AddConstraint(
            model_name="subscription",
            constraint=models.CheckConstraint(
                condition=models.Q(end_date__isnull=True)
                | models.Q(end_date__gte=django.db.models.expressions.F("start_date")),
                name="billing_subscription_end_after_start",
            ),
        ),
        migrations.AddConstraint(
            model_name="subscription",
            constraint=models.CheckConstraint(
                condition=~models.Q(status="canceled") | models.Q(auto_renew=False),
                name="billing_subscription_canceled_no_renew",
            ),
        ),
        migrations.AddConstraint(
            model_name="subscription",
            constraint=models.UniqueConstraint(
                condition=~models.Q(external_subscription_id=""),
                fields=("gateway", "external_subscription_id"),
                name="billing_unique_external_subscription",
            ),
        ),
        migrations.AddConstraint(
            model_name="payment",
            constraint=models.UniqueConstraint(
                fields=("gateway", "external_payment_id"),
                name="billing_unique_external_payment",
            ),
        ),
        migrations.AddIndex(
            model_name="usagerecord",
            index=models.Index(
                fields=["user_id", "status"],
                name="billing_usage_user_status_idx",
            ),
        ),
        migrations.AddConstraint(
            model_name="webhookevent",
            constraint=models.UniqueConstraint(
                fields=("provider", "event_id"),
                name="billing_unique_webhook_event",
            ),
        ),
        migrations.AddIndex(
            model_name="webhookevent",
            index=models.Index(
                fields=["received_at"],
                name="billing_webhook_received_idx",
            ),
        ),
    ]
