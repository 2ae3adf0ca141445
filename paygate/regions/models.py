"""
Region models.

Relationship: CountryRegion ──N:1── Region ──1:1── RegionGatewayPolicy
              Plan ──1:N── RegionalPrice (one row per region at most)

Region itself is an enum (``paygate.regions.constants.Region``), not a
table, so a policy or price can never point at a region that does not exist.
"""

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _
from model_utils.models import TimeStampedModel

from paygate.regions.constants import DEFAULT_CURRENCY
from paygate.regions.constants import DEFAULT_SPLIT_PERCENTAGE
from paygate.regions.constants import GatewayType
from paygate.regions.constants import Region

# Allowed (gateway_type, stripe_enabled, paddle_enabled) combinations.
POLICY_FLAGS = {
    GatewayType.STRIPE_ONLY: (True, False),
    GatewayType.PADDLE_ONLY: (False, True),
    GatewayType.SPLIT_50_50: (True, True),
}


class CountryRegion(TimeStampedModel):
    """Maps an ISO 3166-1 alpha-2 country code to its billing region."""

    country_code = models.CharField(
        max_length=2,
        unique=True,
        help_text=_("Upper-case ISO 3166-1 alpha-2 code."),
    )
    country_name = models.CharField(max_length=100)
    region = models.CharField(max_length=20, choices=Region.choices)

    class Meta:
        ordering = ["region", "country_name"]

    def __str__(self):
        return f"{self.country_code} ({self.region})"

    def save(self, *args, **kwargs):
        self.country_code = (self.country_code or "").strip().upper()
        super().save(*args, **kwargs)


class RegionGatewayPolicy(TimeStampedModel):
    """
    Routing policy for one region.

    The enabled flags must agree with gateway_type (see POLICY_FLAGS). This
    is checked in clean() for admin/API writes and by a database constraint
    for everything else.
    """

    region = models.CharField(max_length=20, choices=Region.choices, unique=True)
    gateway_type = models.CharField(max_length=20, choices=GatewayType.choices)
    stripe_enabled = models.BooleanField(default=False)
    paddle_enabled = models.BooleanField(default=False)
    split_percentage = models.PositiveSmallIntegerField(
        default=DEFAULT_SPLIT_PERCENTAGE,
        validators=[MaxValueValidator(100)],
        help_text=_("Share of traffic routed to Stripe for split regions."),
    )
    recommendation_reason = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["region"]
        verbose_name_plural = _("region gateway policies")
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(
                        gateway_type=GatewayType.STRIPE_ONLY,
                        stripe_enabled=True,
                        paddle_enabled=False,
                    )
                    | Q(
                        gateway_type=GatewayType.PADDLE_ONLY,
                        stripe_enabled=False,
                        paddle_enabled=True,
                    )
                    | Q(
                        gateway_type=GatewayType.SPLIT_50_50,
                        stripe_enabled=True,
                        paddle_enabled=True,
                    )
                ),
                name="regions_policy_flags_match_gateway_type",
            ),
            models.CheckConstraint(
                condition=Q(split_percentage__lte=100),
                name="regions_policy_split_percentage_lte_100",
            ),
        ]

    def __str__(self):
        return f"{self.region}: {self.gateway_type}"

    @property
    def flags_consistent(self) -> bool:
        expected = POLICY_FLAGS.get(self.gateway_type)
        return expected == (self.stripe_enabled, self.paddle_enabled)

    def clean(self):
        super().clean()
        if not self.flags_consistent:
            raise ValidationError(
                {
                    "gateway_type": _(
                        "%(type)s requires stripe_enabled=%(stripe)s and "
                        "paddle_enabled=%(paddle)s.",
                    )
                    % {
                        "type": self.gateway_type,
                        "stripe": POLICY_FLAGS.get(self.gateway_type, ("?", "?"))[0],
                        "paddle": POLICY_FLAGS.get(self.gateway_type, ("?", "?"))[1],
                    },
                },
            )


class RegionalPrice(TimeStampedModel):
    """Per-region price override for a plan. Absent row means base price."""

    plan = models.ForeignKey(
        "billing.Plan",
        on_delete=models.CASCADE,
        related_name="regional_prices",
    )
    region = models.CharField(max_length=20, choices=Region.choices)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)

    class Meta:
        ordering = ["plan_id", "region"]
        constraints = [
            models.UniqueConstraint(
                fields=["plan", "region"],
                name="regions_unique_price_per_plan_region",
            ),
        ]

    def __str__(self):
        return f"{self.plan_id}/{self.region}: {self.price} {self.currency}"
