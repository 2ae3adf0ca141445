import django.core.validators
import django.db.models.deletion
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


def _timestamps():
    return [
        (
            "id",
            models.BigAutoField(
                auto_created=True,
                primary_key=True,
                serialize=False,
                verbose_name="ID",
            ),
        ),
        (
            "created",
            model_utils.fields.AutoCreatedField(
                default=django.utils.timezone.now,
                editable=False,
                verbose_name="created",
            ),
        ),
        (
            "modified",
            model_utils.fields.AutoLastModifiedField(
                default=django.utils.timezone.now,
                editable=False,
                verbose_name="modified",
            ),
        ),
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("billing", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CountryRegion",
            fields=[
                *_timestamps(),
                (
                    "country_code",
                    models.CharField(
                        help_text="Upper-case ISO 3166-1 alpha-2 code.",
                        max_length=2,
                        unique=True,
                    ),
                ),
                ("country_name", models.CharField(max_length=100)),
                ("region", models.CharField(choices=REGION_CHOICES, max_length=20)),
            ],
            options={"ordering": ["region", "country_name"]},
        ),
        migrations.CreateModel(
            name="RegionGatewayPolicy",
            fields=[
                *_timestamps(),
                (
                    "region",
                    models.CharField(choices=REGION_CHOICES, max_length=20, unique=True),
                ),
                (
                    "gateway_type",
                    models.CharField(
                        choices=[
                            ("stripe_only", "Stripe only"),
                            ("paddle_only", "Paddle only"),
                            ("split_50_50", "50/50 split"),
                        ],
                        max_length=20,
                    ),
                ),
                ("stripe_enabled", models.BooleanField(default=False)),
                ("paddle_enabled", models.BooleanField(default=False)),
                (
                    "split_percentage",
                    models.PositiveSmallIntegerField(
                        default=50,
                        help_text="Share of traffic routed to Stripe for split regions.",
                        validators=[django.core.validators.MaxValueValidator(100)],
                    ),
                ),
                ("recommendation_reason", models.TextField(blank=True, default="")),
            ],
            options={
                "ordering": ["region"],
                "verbose_name_plural": "region gateway policies",
            },
        ),
        migrations.CreateModel(
            name="RegionalPrice",
            fields=[
                *_timestamps(),
                ("region", models.CharField(choices=REGION_CHOICES, max_length=20)),
                ("price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(default="USD", max_length=3)),
                (
                    "plan",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="regional_prices",
                        to="billing.plan",
                    ),
                ),
            ],
            options={"ordering": ["plan_id", "region"]},
        ),
        migrations.AddConstraint(
            model_name="regiongatewaypolicy",
            constraint=models.CheckConstraint(
                condition=models.Q(
                    ("gateway_type", "stripe_only"),
                    ("stripe_enabled", True),
                    ("paddle_enabled", False),
                )
                | models.Q(
                    ("gateway_type", "paddle_only"),
                    ("stripe_enabled", False),
                    ("paddle_enabled", True),
                )
                | models.Q(
                    ("gateway_type", "split_50_50"),
                    ("stripe_enabled", True),
                    ("paddle_enabled", True),
                ),
                name="regions_policy_flags_match_gateway_type",
            ),
        ),
        migrations.AddConstraint(
            model_name="regiongatewaypolicy",
            constraint=models.CheckConstraint(
                condition=models.Q(split_percentage__lte=100),
                name="regions_policy_split_percentage_lte_100",
            ),
        ),
        migrations.AddConstraint(
            model_name="regionalprice",
            constraint=models.UniqueConstraint(
                fields=("plan", "region"),
                name="regions_unique_price_per_plan_region",
            ),
        ),
    ]
