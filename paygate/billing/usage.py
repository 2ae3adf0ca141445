"""
Pay-as-you-go usage metering.

Usage is only recorded for users whose active subscription is on a
pay-as-you-go plan; for everyone else track_usage is a no-op. Records start
PENDING and are settled in bulk against a payment.

Usage:
    tracker = UsageTracker()
    tracker.track_usage(user_id="42", election_id="e-9")
    unpaid = tracker.get_unpaid_usage("42")
    tracker.settle("42", [record.id for record in unpaid.items], payment)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field
from decimal import Decimal

from django.db import transaction
from django.db.models import Count
from django.db.models import Sum
from django.utils import timezone

from paygate.billing.constants import DEFAULT_USAGE_TYPE
from paygate.billing.constants import UsageStatus
from paygate.billing.models import Payment
from paygate.billing.models import Subscription
from paygate.billing.models import UsageRecord
from paygate.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50
ZERO = Decimal(0)


@dataclass(frozen=True)
class UnpaidUsage:
    items: list = field(default_factory=list)
    total: Decimal = ZERO
    count: int = 0


class UsageTracker:
    def track_usage(
        self,
        *,
        user_id,
        election_id="",
        usage_type: str = DEFAULT_USAGE_TYPE,
        quantity: int = 1,
    ) -> UsageRecord | None:
        """
        Record usage for a pay-as-you-go user.

        Returns None (and writes nothing) when the user has no active
        subscription or is on a recurring plan.
        """
        if quantity is None or int(quantity) < 1:
            raise ValidationError("Quantity must be a positive integer")

        subscription = Subscription.objects.active_for(user_id)
        if subscription is None or not subscription.plan.is_pay_as_you_go:
            logger.debug("Skipping usage for user %s: not on pay-as-you-go", user_id)
            return None

        unit_price = Decimal(subscription.plan.unit_price)
        record = UsageRecord.objects.create(
            user_id=str(user_id),
            election_id=str(election_id or ""),
            usage_type=usage_type or DEFAULT_USAGE_TYPE,
            quantity=int(quantity),
            price_per_unit=unit_price,
            total_amount=unit_price * int(quantity),
            status=UsageStatus.PENDING,
        )
        logger.info(
            "Tracked %s x%d for user %s (%s)",
            record.usage_type,
            record.quantity,
            user_id,
            record.total_amount,
        )
        return record

    def get_unpaid_usage(self, user_id) -> UnpaidUsage:
        pending = UsageRecord.objects.filter(
            user_id=str(user_id),
            status=UsageStatus.PENDING,
        ).order_by("-created", "-id")
        totals = pending.aggregate(total=Sum("total_amount"), count=Count("id"))
        return UnpaidUsage(
            items=list(pending),
            total=totals["total"] or ZERO,
            count=totals["count"],
        )

    def get_total_unpaid(self, user_id) -> Decimal:
        return self.get_unpaid_usage(user_id).total

    @transaction.atomic
    def settle(self, user_id, usage_ids, payment: Payment) -> int:
        """
        Mark usage records paid by ``payment``, all or none.

        Every id must belong to the user and still be PENDING.
        """
        usage_ids = sorted({int(usage_id) for usage_id in usage_ids})
        if not usage_ids:
            raise ValidationError("No usage records to settle")

        records = list(
            UsageRecord.objects.select_for_update()
            .filter(pk__in=usage_ids, user_id=str(user_id))
            .order_by("pk"),
        )
        payable = [record for record in records if record.status == UsageStatus.PENDING]
        if len(payable) != len(usage_ids):
            raise ValidationError(
                "Some usage records are unknown, belong to another user or are "
                "already paid",
                code="unsettleable_usage",
            )

        paid_at = timezone.now()
        updated = UsageRecord.objects.filter(pk__in=usage_ids).update(
            status=UsageStatus.PAID,
            payment=payment,
            paid_at=paid_at,
            modified=paid_at,
        )
        logger.info(
            "Settled %d usage records for user %s with payment %s",
            updated,
            user_id,
            payment.pk,
        )
        return updated

    def usage_history(self, user_id, limit: int = DEFAULT_HISTORY_LIMIT):
        return (
            UsageRecord.objects.filter(user_id=str(user_id))
            .select_related("payment")
            .order_by("-created", "-id")[:limit]
        )

    def usage_summary(self, user_id, start=None, end=None) -> list[dict]:
        """Quantity and amount per (usage_type, status) within [start, end]."""
        records = UsageRecord.objects.filter(user_id=str(user_id))
        if start is not None:
            records = records.filter(created__gte=start)
        if end is not None:
            records = records.filter(created__lte=end)
        return list(
            records.values("usage_type", "status")
            .annotate(
                count=Count("id"),
                total_quantity=Sum("quantity"),
                total_amount=Sum("total_amount"),
            )
            .order_by("usage_type", "status"),
        )

    def current_plan(self, user_id) -> dict:
        subscription = Subscription.objects.active_for(user_id)
        if subscription is None:
            return {"has_subscription": False, "subscription": None}

        data = {
            "has_subscription": True,
            "subscription": subscription,
            "plan": subscription.plan,
            "is_pay_as_you_go": subscription.plan.is_pay_as_you_go,
            "is_valid": subscription.is_valid,
        }
        if subscription.plan.is_pay_as_you_go:
            data["unpaid_usage"] = self.get_unpaid_usage(user_id)
        return data
