"""
Region lookup and per-region configuration stores.

Three small services back every routing decision:

- RegionDirectory: country code -> CountryRegion
- GatewayPolicyStore: region -> RegionGatewayPolicy (plus the global
  processing fee setting)
- RegionalPricingStore: (plan, region) -> optional RegionalPrice

Nothing here is cached; each call reads the database so admin changes take
effect on the next request.

Usage:
    mapping = RegionDirectory().resolve("de")
    policy = GatewayPolicyStore().get(mapping.region)
    override = RegionalPricingStore().get(plan_id=7, region=mapping.region)
"""

from __future__ import annotations

import logging
from decimal import Decimal
from decimal import InvalidOperation

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from paygate.core.constants import SystemConfigKey
from paygate.core.exceptions import ConfigError
from paygate.core.exceptions import NotFoundError
from paygate.core.exceptions import ValidationError
from paygate.core.models import SystemConfig
from paygate.regions.constants import DEFAULT_CURRENCY
from paygate.regions.constants import DEFAULT_SPLIT_PERCENTAGE
from paygate.regions.constants import GatewayType
from paygate.regions.constants import Region
from paygate.regions.models import POLICY_FLAGS
from paygate.regions.models import CountryRegion
from paygate.regions.models import RegionalPrice
from paygate.regions.models import RegionGatewayPolicy

logger = logging.getLogger(__name__)

COUNTRY_CODE_LENGTH = 2
MAX_PERCENTAGE = Decimal(100)


def normalize_country_code(country_code) -> str:
    """Upper-case and validate an ISO alpha-2 code."""
    code = str(country_code or "").strip().upper()
    if len(code) != COUNTRY_CODE_LENGTH or not code.isalpha():
        raise ValidationError(
            f"Invalid country code: {country_code!r}",
            code="invalid_country_code",
        )
    return code


def coerce_region(region) -> Region:
    """Accept a Region or its string value."""
    try:
        return Region(region)
    except ValueError:
        raise ValidationError(
            f"Unknown region: {region!r}",
            code="invalid_region",
        ) from None


def coerce_amount(value, field: str = "price") -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}") from None
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"Invalid {field}: {value!r}")
    return amount


class RegionDirectory:
    """Country to region mapping."""

    def resolve(self, country_code) -> CountryRegion:
        code = normalize_country_code(country_code)
        try:
            return CountryRegion.objects.get(country_code=code)
        except CountryRegion.DoesNotExist:
            raise NotFoundError(
                f"Country {code} not found in region mapping",
                code="unknown_country",
            ) from None

    def countries_in(self, region):
        return CountryRegion.objects.filter(region=coerce_region(region)).order_by(
            "country_name",
        )

    def all_mappings(self):
        return CountryRegion.objects.order_by("region", "country_name")

    def upsert_mapping(
        self,
        *,
        country_code,
        country_name: str,
        region,
    ) -> tuple[CountryRegion, bool]:
        code = normalize_country_code(country_code)
        mapping, created = CountryRegion.objects.update_or_create(
            country_code=code,
            defaults={
                "country_name": country_name,
                "region": coerce_region(region),
            },
        )
        logger.info(
            "%s country mapping %s -> %s",
            "Created" if created else "Updated",
            code,
            mapping.region,
        )
        return mapping, created


class GatewayPolicyStore:
    """Per-region gateway policy and the global processing fee."""

    def get(self, region) -> RegionGatewayPolicy:
        region = coerce_region(region)
        try:
            return RegionGatewayPolicy.objects.get(region=region)
        except RegionGatewayPolicy.DoesNotExist:
            raise ConfigError(
                f"No gateway configuration found for region {region.value}",
                code="missing_policy",
            ) from None

    def all(self):
        return RegionGatewayPolicy.objects.order_by("region")

    def upsert(
        self,
        region,
        *,
        gateway_type,
        stripe_enabled: bool | None = None,
        paddle_enabled: bool | None = None,
        split_percentage: int = DEFAULT_SPLIT_PERCENTAGE,
        recommendation_reason: str = "",
    ) -> RegionGatewayPolicy:
        """
        Create or replace a region's policy.

        When the enabled flags are omitted they are derived from
        gateway_type. Explicit flags that contradict gateway_type are
        rejected with ValidationError before anything is written.
        """
        region = coerce_region(region)
        try:
            gateway_type = GatewayType(gateway_type)
        except ValueError:
            raise ValidationError(
                f"Unknown gateway_type: {gateway_type!r}",
                code="invalid_gateway_type",
            ) from None

        default_stripe, default_paddle = POLICY_FLAGS[gateway_type]
        policy = RegionGatewayPolicy.objects.filter(region=region).first()
        if policy is None:
            policy = RegionGatewayPolicy(region=region)

        policy.gateway_type = gateway_type
        policy.stripe_enabled = (
            default_stripe if stripe_enabled is None else bool(stripe_enabled)
        )
        policy.paddle_enabled = (
            default_paddle if paddle_enabled is None else bool(paddle_enabled)
        )
        policy.split_percentage = split_percentage
        policy.recommendation_reason = recommendation_reason or ""

        try:
            policy.full_clean()
        except DjangoValidationError as exc:
            raise ValidationError(
                "; ".join(exc.messages),
                code="invalid_policy",
            ) from exc

        policy.save()
        logger.info(
            "Saved gateway policy for %s: %s (stripe=%s, paddle=%s)",
            region.value,
            gateway_type.value,
            policy.stripe_enabled,
            policy.paddle_enabled,
        )
        return policy

    def get_processing_fee(self) -> Decimal:
        row = SystemConfig.objects.filter(
            key=SystemConfigKey.PAYMENT_PROCESSING_FEE,
        ).first()
        if row is None:
            return Decimal(0)
        return Decimal(row.value)

    def set_processing_fee(self, percentage) -> Decimal:
        value = coerce_amount(percentage, field="percentage")
        if value > MAX_PERCENTAGE:
            raise ValidationError(
                "Percentage must be between 0 and 100",
                code="invalid_percentage",
            )
        SystemConfig.objects.update_or_create(
            key=SystemConfigKey.PAYMENT_PROCESSING_FEE,
            defaults={"value": str(value)},
        )
        logger.info("Payment processing fee set to %s%%", value)
        return value


class RegionalPricingStore:
    """Regional price overrides per plan."""

    def get(self, plan_id, region) -> RegionalPrice | None:
        return RegionalPrice.objects.filter(
            plan_id=plan_id,
            region=coerce_region(region),
        ).first()

    def for_plan(self, plan_id):
        return RegionalPrice.objects.filter(plan_id=plan_id).order_by("region")

    def set_price(
        self,
        plan_id,
        region,
        price,
        currency: str = DEFAULT_CURRENCY,
    ) -> RegionalPrice:
        regional_price, _ = RegionalPrice.objects.update_or_create(
            plan_id=plan_id,
            region=coerce_region(region),
            defaults={
                "price": coerce_amount(price),
                "currency": (currency or DEFAULT_CURRENCY).upper(),
            },
        )
        return regional_price

    @transaction.atomic
    def batch_set(self, plan_id, prices: dict) -> list[RegionalPrice]:
        """
        Write several regional prices for one plan, all or nothing.

        ``prices`` maps region to either a bare price or a dict with
        ``price`` and optional ``currency``. Any invalid entry rolls back
        the entries already written.
        """
        if not prices:
            raise ValidationError("No regional prices supplied")

        saved = []
        for region, entry in prices.items():
            if isinstance(entry, dict):
                if "price" not in entry:
                    raise ValidationError(f"Missing price for {region}")
                price = entry["price"]
                currency = entry.get("currency") or DEFAULT_CURRENCY
            else:
                price, currency = entry, DEFAULT_CURRENCY
            saved.append(self.set_price(plan_id, region, price, currency))

        logger.info("Saved %d regional prices for plan %s", len(saved), plan_id)
        return saved
