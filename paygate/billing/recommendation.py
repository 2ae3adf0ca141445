"""
Gateway recommendation: country -> region -> policy -> gateway.

The engine reads the region directory, the region's gateway policy and an
optional regional price override on every call. It never writes.

For split regions each payment gets an independent fair coin flip from the
injected random source, so tests can seed it and production can share the
module-level ``random`` generator.

Usage:
    engine = GatewayRecommendationEngine()
    recommendation = engine.get_recommendation("DE", plan_id=3)
    selection = engine.select_gateway_for_payment("BR")
    selection.gateway   # "stripe" or "paddle"
"""

from __future__ import annotations

import logging
import random
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from decimal import Decimal

from paygate.billing.constants import GATEWAY_PAYMENT_METHODS
from paygate.billing.constants import Gateway
from paygate.core.exceptions import ConfigError
from paygate.regions.constants import DEFAULT_CURRENCY
from paygate.regions.constants import GatewayType
from paygate.regions.services import GatewayPolicyStore
from paygate.regions.services import RegionalPricingStore
from paygate.regions.services import RegionDirectory

logger = logging.getLogger(__name__)

SPLIT_REASON = "Supported with 50% routing"
STRIPE_SHARE = 0.5


@dataclass(frozen=True)
class AvailableGateway:
    gateway: str
    reason: str
    recommended: bool
    split: bool
    split_percentage: int | None = None


@dataclass(frozen=True)
class Recommendation:
    """Everything the router needs to know about paying from one country."""

    country_code: str
    country_name: str
    region: str
    region_name: str
    gateway_type: str
    stripe_enabled: bool
    paddle_enabled: bool
    split_percentage: int
    recommendation_reason: str
    regional_price: Decimal | None = None
    currency: str = DEFAULT_CURRENCY
    available_gateways: list[AvailableGateway] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class GatewaySelection:
    gateway: str
    split_needed: bool
    region: str
    split_percentage: int | None = None

    def as_dict(self) -> dict:
        return asdict(self)


class GatewayRecommendationEngine:
    """Pure read-side routing decisions over the region stores."""

    def __init__(
        self,
        *,
        directory: RegionDirectory | None = None,
        policies: GatewayPolicyStore | None = None,
        pricing: RegionalPricingStore | None = None,
        rng: random.Random | None = None,
    ):
        self.directory = directory or RegionDirectory()
        self.policies = policies or GatewayPolicyStore()
        self.pricing = pricing or RegionalPricingStore()
        self.rng = rng or random.Random()  # noqa: S311

    def get_recommendation(self, country_code, plan_id=None) -> Recommendation:
        """
        Resolve the gateway policy for a country.

        Raises:
            ValidationError: malformed country code
            NotFoundError: country not in the region directory
            ConfigError: region has no gateway policy
        """
        mapping = self.directory.resolve(country_code)
        policy = self.policies.get(mapping.region)

        regional_price = None
        currency = DEFAULT_CURRENCY
        if plan_id is not None:
            override = self.pricing.get(plan_id, mapping.region)
            if override is not None:
                regional_price = override.price
                currency = override.currency

        return Recommendation(
            country_code=mapping.country_code,
            country_name=mapping.country_name,
            region=mapping.region,
            region_name=mapping.get_region_display(),
            gateway_type=policy.gateway_type,
            stripe_enabled=policy.stripe_enabled,
            paddle_enabled=policy.paddle_enabled,
            split_percentage=policy.split_percentage,
            recommendation_reason=policy.recommendation_reason,
            regional_price=regional_price,
            currency=currency,
            available_gateways=self._available_gateways(policy),
        )

    def select_gateway_for_payment(self, country_code) -> GatewaySelection:
        return self.select_from_recommendation(self.get_recommendation(country_code))

    def select_from_recommendation(
        self,
        recommendation: Recommendation,
    ) -> GatewaySelection:
        """
        Pick the gateway for one payment.

        Raises ConfigError when a single-gateway policy does not have exactly
        one gateway enabled.
        """
        if recommendation.gateway_type == GatewayType.SPLIT_50_50:
            gateway = (
                Gateway.STRIPE if self.rng.random() < STRIPE_SHARE else Gateway.PADDLE
            )
            logger.debug(
                "Split routing for %s picked %s",
                recommendation.country_code,
                gateway,
            )
            return GatewaySelection(
                gateway=gateway.value,
                split_needed=True,
                region=recommendation.region,
                split_percentage=recommendation.split_percentage,
            )

        if recommendation.stripe_enabled and not recommendation.paddle_enabled:
            gateway = Gateway.STRIPE
        elif recommendation.paddle_enabled and not recommendation.stripe_enabled:
            gateway = Gateway.PADDLE
        else:
            raise ConfigError(
                f"Gateway policy for {recommendation.region} is "
                f"{recommendation.gateway_type} but stripe_enabled="
                f"{recommendation.stripe_enabled}, paddle_enabled="
                f"{recommendation.paddle_enabled}",
                code="inconsistent_policy",
            )

        return GatewaySelection(
            gateway=gateway.value,
            split_needed=False,
            region=recommendation.region,
        )

    @staticmethod
    def get_available_payment_methods(gateway) -> list[dict]:
        """Static method list per gateway; unknown gateways have none."""
        try:
            methods = GATEWAY_PAYMENT_METHODS[Gateway(gateway)]
        except (KeyError, ValueError):
            return []
        return [{"method": method.value, "label": str(method.label)} for method in methods]

    def get_optimal_gateway(
        self,
        country_code,
        preferred_method: str | None = None,
        plan_id=None,
    ) -> dict:
        """Recommendation plus a concrete pick and its payment methods."""
        recommendation = self.get_recommendation(country_code, plan_id=plan_id)
        selection = self.select_from_recommendation(recommendation)
        methods = self.get_available_payment_methods(selection.gateway)
        method_supported = preferred_method is None or any(
            method["method"] == preferred_method for method in methods
        )
        return {
            "selected_gateway": selection.gateway,
            "split_needed": selection.split_needed,
            "split_percentage": selection.split_percentage,
            "region": selection.region,
            "recommendation": recommendation.as_dict(),
            "method_supported": method_supported,
            "available_methods": methods,
            "all_available_gateways": [
                asdict(gateway) for gateway in recommendation.available_gateways
            ],
        }

    def _available_gateways(self, policy) -> list[AvailableGateway]:
        if policy.gateway_type == GatewayType.SPLIT_50_50:
            return [
                AvailableGateway(
                    gateway=gateway.value,
                    reason=SPLIT_REASON,
                    recommended=True,
                    split=True,
                    split_percentage=policy.split_percentage,
                )
                for gateway in (Gateway.STRIPE, Gateway.PADDLE)
            ]
        gateway = (
            Gateway.STRIPE
            if policy.gateway_type == GatewayType.STRIPE_ONLY
            else Gateway.PADDLE
        )
        return [
            AvailableGateway(
                gateway=gateway.value,
                reason=policy.recommendation_reason,
                recommended=True,
                split=False,
            ),
        ]
