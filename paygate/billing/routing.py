"""
Payment router.

Turns a checkout request into a provider artifact at the gateway chosen by
the recommendation engine, and records the PENDING payment.

Outcomes:
- Routed: an adapter created an artifact and a pending Payment row exists.
- Rejected: the request is well formed but cannot be routed (pay-as-you-go
  plan, unsupported payment method). No adapter call, no row.
- ConfigError / NotFoundError / ValidationError / ProviderError raised.

No Payment row is written before the adapter has returned successfully, so
a provider failure leaves nothing behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field
from decimal import Decimal

from django.db import DatabaseError
from django.db import IntegrityError

from paygate.billing.constants import Gateway
from paygate.billing.constants import PaymentStatus
from paygate.billing.constants import PaymentType
from paygate.billing.gateways import build_gateways
from paygate.billing.gateways.base import PaymentArtifact
from paygate.billing.gateways.base import PaymentPayload
from paygate.billing.models import Payment
from paygate.billing.models import Plan
from paygate.billing.recommendation import GatewayRecommendationEngine
from paygate.billing.recommendation import GatewaySelection
from paygate.billing.recommendation import Recommendation
from paygate.core.exceptions import ConfigError
from paygate.core.exceptions import NotFoundError
from paygate.core.exceptions import PersistenceError
from paygate.core.exceptions import ValidationError
from paygate.regions.services import coerce_amount

logger = logging.getLogger(__name__)

PAY_AS_YOU_GO_REASON = (
    "Pay-as-you-go plans should not use gateway routing. "
    "Use /payments/track-usage instead."
)


class PaymentKind:
    ONE_TIME = "one_time"
    RECURRING = "recurring"


@dataclass(frozen=True)
class PaymentRequest:
    amount: Decimal
    currency: str
    country_code: str
    payment_method: str
    user_id: str
    email: str
    plan_id: int | None = None

    def validate(self) -> None:
        missing = [
            name
            for name in (
                "amount",
                "currency",
                "country_code",
                "payment_method",
                "user_id",
                "email",
            )
            if getattr(self, name) in (None, "")
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        coerce_amount(self.amount, field="amount")


@dataclass(frozen=True)
class Routed:
    payment: PaymentArtifact
    gateway: str
    recommendation: Recommendation
    split_needed: bool
    kind: str
    record: Payment


@dataclass(frozen=True)
class Rejected:
    reason: str
    payment_type: str | None = None
    gateway: str | None = None
    available_methods: list = field(default_factory=list)
    recommendation: Recommendation | None = None

    def as_dict(self) -> dict:
        data = {"success": False, "error": self.reason}
        if self.payment_type:
            data["payment_type"] = self.payment_type
        if self.gateway:
            data["gateway"] = self.gateway
            data["available_methods"] = self.available_methods
        if self.recommendation is not None:
            data["recommendation"] = self.recommendation.as_dict()
        return data


class PaymentRouter:
    """
    Usage:
        router = PaymentRouter()
        outcome = router.create_payment_by_country(request)
        if isinstance(outcome, Rejected):
            ...
    """

    def __init__(
        self,
        *,
        engine: GatewayRecommendationEngine | None = None,
        gateways: dict | None = None,
    ):
        self.engine = engine or GatewayRecommendationEngine()
        self._gateways = gateways

    @property
    def gateways(self) -> dict:
        if self._gateways is None:
            self._gateways = build_gateways()
        return self._gateways

    def create_payment_by_country(
        self,
        request: PaymentRequest,
        selection: GatewaySelection | None = None,
    ) -> Routed | Rejected:
        """
        Route one checkout. ``selection`` pins the gateway when the caller
        already made the choice; otherwise the engine picks.
        """
        request.validate()

        plan = None
        if request.plan_id is not None:
            plan = Plan.objects.filter(pk=request.plan_id).first()
            if plan is None:
                raise NotFoundError(f"Plan {request.plan_id} not found")
            if plan.is_pay_as_you_go:
                logger.info(
                    "Rejected routing for pay-as-you-go plan %s (user %s)",
                    plan.pk,
                    request.user_id,
                )
                return Rejected(
                    reason=PAY_AS_YOU_GO_REASON,
                    payment_type=PaymentType.PAY_AS_YOU_GO,
                )

        recommendation = self.engine.get_recommendation(
            request.country_code,
            plan_id=request.plan_id,
        )
        if selection is None:
            selection = self.engine.select_from_recommendation(recommendation)

        methods = self.engine.get_available_payment_methods(selection.gateway)
        method = str(request.payment_method).strip().lower()
        if method not in {entry["method"] for entry in methods}:
            return Rejected(
                reason=(
                    f"Payment method {request.payment_method} not supported by "
                    f"{selection.gateway}"
                ),
                gateway=selection.gateway,
                available_methods=methods,
                recommendation=recommendation,
            )

        amount = (
            recommendation.regional_price
            if recommendation.regional_price is not None
            else coerce_amount(request.amount, field="amount")
        )
        gateway = self.gateways[selection.gateway]
        is_recurring = bool(plan and plan.is_recurring)
        payload = PaymentPayload(
            amount=amount,
            currency=recommendation.currency,
            country_code=recommendation.country_code,
            payment_method=method,
            user_id=str(request.user_id),
            email=request.email or "",
            region=recommendation.region,
            plan_id=plan.pk if plan else None,
            price_id=self._paddle_price_id(
                plan,
                selection.gateway,
                gateway,
                recurring=is_recurring,
            ),
        )

        if selection.gateway == Gateway.PADDLE and is_recurring:
            artifact = gateway.create_recurring_payment(payload)
            kind = PaymentKind.RECURRING
        else:
            artifact = gateway.create_one_time_payment(payload)
            kind = PaymentKind.ONE_TIME

        record = self._record_pending(payload, selection.gateway, artifact, plan)
        logger.info(
            "Routed %s payment %s for user %s via %s (region %s, split=%s)",
            kind,
            artifact.external_id,
            request.user_id,
            selection.gateway,
            recommendation.region,
            selection.split_needed,
        )
        return Routed(
            payment=artifact,
            gateway=selection.gateway,
            recommendation=recommendation,
            split_needed=selection.split_needed,
            kind=kind,
            record=record,
        )

    def _paddle_price_id(self, plan, gateway_name, gateway, *, recurring: bool) -> str:
        if gateway_name != Gateway.PADDLE or plan is None:
            return ""
        if recurring:
            if not plan.paddle_price_id:
                raise ConfigError(
                    f"Plan {plan.plan_name} has no paddle_price_id configured",
                    code="missing_paddle_price",
                )
            return plan.paddle_price_id
        return gateway.resolve_price_id(plan)

    def _record_pending(
        self,
        payload: PaymentPayload,
        gateway: str,
        artifact: PaymentArtifact,
        plan: Plan | None,
    ) -> Payment:
        metadata = {}
        if artifact.subscription_id:
            metadata["subscription_id"] = artifact.subscription_id
        try:
            return Payment.objects.create(
                user_id=payload.user_id,
                plan=plan,
                amount=payload.amount,
                currency=payload.currency,
                gateway=gateway,
                external_payment_id=artifact.external_id,
                status=PaymentStatus.PENDING,
                payment_method=payload.payment_method,
                region=payload.region,
                country_code=payload.country_code,
                metadata=metadata,
            )
        except IntegrityError as exc:
            raise PersistenceError(
                f"Payment {gateway}:{artifact.external_id} already recorded",
            ) from exc
        except DatabaseError as exc:
            raise PersistenceError(f"Could not record payment: {exc}") from exc
