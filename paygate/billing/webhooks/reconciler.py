"""
Webhook reconciler.

Applies normalised provider events to Payment and Subscription rows.
Providers deliver at least once, out of order and concurrently, so every
event goes through the same steps inside one transaction:

1. Lock or create the WebhookEvent receipt for (provider, event_id).
   A receipt that is PROCESSED or NEEDS_REVIEW means the event was already
   handled: acknowledge it as a duplicate.
2. Apply the transition with the affected rows locked.
3. Mark the receipt PROCESSED (or NEEDS_REVIEW when the event was parked
   in the review queue).

If anything fails the transaction rolls back, the receipt disappears with
it, and the provider's retry starts over from step 1. Database errors are
surfaced as PersistenceError so the HTTP layer answers 500 and the
provider retries.

Subscriptions use last-write-wins on the provider timestamp: an event older
than ``Subscription.last_event_at`` does not change the row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum

from django.db import DatabaseError
from django.db import transaction
from django.utils import timezone

from paygate.billing.constants import PaymentStatus
from paygate.billing.constants import PaymentType
from paygate.billing.constants import SubscriptionStatus
from paygate.billing.constants import WebhookEventStatus
from paygate.billing.models import Payment
from paygate.billing.models import PaymentFailure
from paygate.billing.models import Plan
from paygate.billing.models import ReconciliationIssue
from paygate.billing.models import Subscription
from paygate.billing.models import WebhookEvent
from paygate.billing.webhooks.events import EventAction
from paygate.billing.webhooks.events import NormalizedEvent
from paygate.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class Outcome(StrEnum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    STALE = "stale"
    NEEDS_REVIEW = "needs_review"


@dataclass(frozen=True)
class ReconcileResult:
    outcome: Outcome
    detail: str = ""

    @property
    def duplicate(self) -> bool:
        return self.outcome == Outcome.DUPLICATE


class WebhookReconciler:
    """
    Usage:
        event = normalize_stripe_event(payload)
        result = WebhookReconciler().process(event)
        result.duplicate   # True when this event id was already handled
    """

    def process(self, event: NormalizedEvent) -> ReconcileResult:
        try:
            with transaction.atomic():
                receipt = self._claim_receipt(event)
                if receipt is None:
                    logger.info(
                        "Duplicate %s event %s (%s) acknowledged",
                        event.provider,
                        event.event_id,
                        event.event_type,
                    )
                    return ReconcileResult(Outcome.DUPLICATE)

                result = self._apply(event)

                receipt.status = (
                    WebhookEventStatus.NEEDS_REVIEW
                    if result.outcome == Outcome.NEEDS_REVIEW
                    else WebhookEventStatus.PROCESSED
                )
                receipt.processed_at = timezone.now()
                receipt.save(update_fields=["status", "processed_at"])
        except DatabaseError as exc:
            logger.exception(
                "Database error reconciling %s event %s",
                event.provider,
                event.event_id,
            )
            raise PersistenceError(
                f"Could not record {event.provider} event {event.event_id}",
            ) from exc

        logger.info(
            "Reconciled %s event %s (%s): %s %s",
            event.provider,
            event.event_id,
            event.event_type,
            result.outcome,
            result.detail,
        )
        return result

    def _claim_receipt(self, event: NormalizedEvent) -> WebhookEvent | None:
        """Locked receipt to work on, or None when already handled."""
        receipt = (
            WebhookEvent.objects.select_for_update()
            .filter(provider=event.provider, event_id=event.event_id)
            .first()
        )
        if receipt is None:
            return WebhookEvent.objects.create(
                provider=event.provider,
                event_id=event.event_id,
                event_type=event.event_type,
                occurred_at=event.occurred_at,
                status=WebhookEventStatus.PROCESSING,
                payload=event.payload,
            )
        if receipt.status == WebhookEventStatus.PROCESSING:
            logger.warning(
                "Retrying %s event %s left in PROCESSING",
                event.provider,
                event.event_id,
            )
            return receipt
        return None

    def _apply(self, event: NormalizedEvent) -> ReconcileResult:
        handlers = {
            EventAction.PAYMENT_SUCCEEDED: self._payment_succeeded,
            EventAction.PAYMENT_FAILED: self._payment_failed,
            EventAction.SUBSCRIPTION_UPSERTED: self._subscription_upserted,
            EventAction.SUBSCRIPTION_CANCELED: self._subscription_canceled,
        }
        handler = handlers.get(event.action)
        if handler is None:
            return ReconcileResult(Outcome.IGNORED, f"unhandled type {event.event_type}")
        return handler(event)

    # Payments
    # -------------------------------------------------------------------------

    def _payment_succeeded(self, event: NormalizedEvent) -> ReconcileResult:
        payment = self._locked_payment(event)
        if payment is not None and payment.status == PaymentStatus.COMPLETED:
            return ReconcileResult(Outcome.DUPLICATE, f"payment {payment.pk} already completed")

        plan = None
        if payment is not None and payment.plan_id:
            plan = payment.plan
        else:
            plan = _find_plan(event.plan_id)

        now = timezone.now()
        if payment is None:
            if not event.user_id:
                return self._queue_review(event, "Completed payment for an unknown user")
            payment = self._new_payment(event, plan, PaymentStatus.COMPLETED)
            payment.completed_at = now
        else:
            payment.status = PaymentStatus.COMPLETED
            payment.completed_at = now
            if payment.plan_id is None and plan is not None:
                payment.plan = plan

        if plan is not None:
            payment.subscription = self._activate_subscription(payment, plan, event)
        payment.save()
        return ReconcileResult(Outcome.APPLIED, f"payment {payment.pk} completed")

    def _payment_failed(self, event: NormalizedEvent) -> ReconcileResult:
        payment = self._locked_payment(event)
        if payment is not None and payment.status == PaymentStatus.COMPLETED:
            return ReconcileResult(
                Outcome.IGNORED,
                f"payment {payment.pk} already completed, failure not applied",
            )

        if payment is None:
            if not event.user_id:
                return self._queue_review(event, "Failed payment for an unknown user")
            payment = self._new_payment(event, _find_plan(event.plan_id), PaymentStatus.FAILED)
            payment.save()
        else:
            payment.status = PaymentStatus.FAILED
            payment.save(update_fields=["status", "modified"])

        PaymentFailure.objects.create(
            payment=payment,
            subscription=payment.subscription,
            user_id=payment.user_id,
            amount=payment.amount,
            reason=event.failure_reason,
            gateway=event.provider,
            region=payment.region,
            metadata={"event_id": event.event_id, "event_type": event.event_type},
        )
        logger.warning(
            "Payment %s:%s failed for user %s: %s",
            event.provider,
            payment.external_payment_id,
            payment.user_id,
            event.failure_reason,
        )
        return ReconcileResult(Outcome.APPLIED, f"payment {payment.pk} failed")

    def _locked_payment(self, event: NormalizedEvent) -> Payment | None:
        if not event.external_payment_id:
            return None
        return (
            Payment.objects.select_for_update()
            .filter(gateway=event.provider, external_payment_id=event.external_payment_id)
            .first()
        )

    def _new_payment(self, event: NormalizedEvent, plan: Plan | None, status) -> Payment:
        metadata = {"event_id": event.event_id}
        if event.external_subscription_id:
            metadata["subscription_id"] = event.external_subscription_id
        return Payment(
            user_id=event.user_id,
            plan=plan,
            amount=event.amount if event.amount is not None else 0,
            currency=event.currency or "USD",
            gateway=event.provider,
            external_payment_id=event.external_payment_id,
            status=status,
            payment_method=event.payment_method,
            region=event.region,
            country_code=event.country_code[:2].upper(),
            metadata=metadata,
        )

    def _activate_subscription(
        self,
        payment: Payment,
        plan: Plan,
        event: NormalizedEvent,
    ) -> Subscription:
        external_id = event.external_subscription_id or (payment.metadata or {}).get(
            "subscription_id",
            "",
        )
        subscription = self._locate_subscription(
            provider=payment.gateway,
            external_id=external_id,
            user_id=payment.user_id,
        )
        if subscription is None and payment.subscription_id:
            subscription = Subscription.objects.select_for_update().get(
                pk=payment.subscription_id,
            )

        if subscription is not None and _is_stale(subscription, event):
            logger.info(
                "Payment %s linked to subscription %s without reactivating (stale event)",
                payment.external_payment_id,
                subscription.pk,
            )
            return subscription

        start = event.period_start or timezone.now()
        if subscription is None:
            subscription = Subscription(
                user_id=payment.user_id,
                gateway=payment.gateway,
                start_date=start,
            )
        elif subscription.status != SubscriptionStatus.ACTIVE:
            subscription.start_date = start

        subscription.plan = plan
        subscription.payment_type = plan.payment_type
        subscription.status = SubscriptionStatus.ACTIVE
        subscription.canceled_at = None
        subscription.auto_renew = plan.is_recurring and not plan.is_pay_as_you_go
        subscription.end_date = _end_date(plan, subscription.start_date, event.period_end)
        if external_id and not subscription.external_subscription_id:
            subscription.external_subscription_id = external_id
        _stamp(subscription, event)
        subscription.save()
        return subscription

    # Subscriptions
    # -------------------------------------------------------------------------

    def _subscription_upserted(self, event: NormalizedEvent) -> ReconcileResult:
        subscription = self._locate_subscription(
            provider=event.provider,
            external_id=event.external_subscription_id,
            user_id=event.user_id,
        )
        if subscription is not None and _is_stale(subscription, event):
            return ReconcileResult(Outcome.STALE, f"subscription {subscription.pk}")

        plan = _find_plan(event.plan_id)
        if subscription is None:
            if plan is None:
                return self._queue_review(
                    event,
                    "Subscription event without a known plan_id; cannot create a "
                    "subscription",
                )
            if not event.user_id:
                return self._queue_review(event, "Subscription event for an unknown user")
            subscription = Subscription(
                user_id=event.user_id,
                gateway=event.provider,
                start_date=event.period_start or timezone.now(),
                status=SubscriptionStatus.PENDING,
            )

        if plan is not None:
            subscription.plan = plan
            subscription.payment_type = plan.payment_type
        if event.external_subscription_id:
            subscription.external_subscription_id = event.external_subscription_id
        if event.subscription_status:
            subscription.status = event.subscription_status
        if event.period_start:
            subscription.start_date = event.period_start
        if event.period_end:
            subscription.end_date = event.period_end

        if subscription.status == SubscriptionStatus.CANCELED:
            subscription.auto_renew = False
            subscription.canceled_at = event.canceled_at or timezone.now()
        elif event.cancel_at_period_end is not None:
            subscription.auto_renew = not event.cancel_at_period_end
        if (
            subscription.end_date
            and subscription.start_date
            and subscription.end_date < subscription.start_date
        ):
            subscription.end_date = subscription.start_date

        _stamp(subscription, event)
        subscription.save()
        return ReconcileResult(
            Outcome.APPLIED,
            f"subscription {subscription.pk} {subscription.status}",
        )

    def _subscription_canceled(self, event: NormalizedEvent) -> ReconcileResult:
        subscription = self._locate_subscription(
            provider=event.provider,
            external_id=event.external_subscription_id,
            user_id=event.user_id,
        )
        if subscription is None:
            return self._record_early_cancellation(event)
        if _is_stale(subscription, event):
            return ReconcileResult(Outcome.STALE, f"subscription {subscription.pk}")

        subscription.status = SubscriptionStatus.CANCELED
        subscription.auto_renew = False
        subscription.canceled_at = event.canceled_at or timezone.now()
        if event.external_subscription_id and not subscription.external_subscription_id:
            subscription.external_subscription_id = event.external_subscription_id
        _stamp(subscription, event)
        subscription.save()
        return ReconcileResult(Outcome.APPLIED, f"subscription {subscription.pk} canceled")

    def _record_early_cancellation(self, event: NormalizedEvent) -> ReconcileResult:
        """
        Cancellation delivered before the subscription was created here.

        The row is stored as CANCELED and stamped with the event time, so a
        create or update emitted earlier and delivered later is STALE.
        """
        plan = _find_plan(event.plan_id)
        if plan is None or not event.user_id or not event.external_subscription_id:
            return self._queue_review(
                event,
                "Cancellation for an unknown subscription without user, plan_id or "
                "subscription id",
            )

        logger.warning(
            "Cancellation for unknown %s subscription %s arrived first; storing it canceled",
            event.provider,
            event.external_subscription_id,
        )
        start = event.period_start or event.occurred_at or timezone.now()
        subscription = Subscription(
            user_id=event.user_id,
            plan=plan,
            payment_type=plan.payment_type,
            gateway=event.provider,
            external_subscription_id=event.external_subscription_id,
            status=SubscriptionStatus.CANCELED,
            start_date=start,
            end_date=max(event.period_end, start) if event.period_end else None,
            auto_renew=False,
            canceled_at=event.canceled_at or event.occurred_at or timezone.now(),
        )
        _stamp(subscription, event)
        subscription.save()
        return ReconcileResult(Outcome.APPLIED, f"subscription {subscription.pk} canceled")

    def _locate_subscription(self, *, provider, external_id, user_id) -> Subscription | None:
        """
        By provider reference first, else the user's current subscription at
        the same provider that has no reference yet.
        """
        if external_id:
            subscription = (
                Subscription.objects.select_for_update()
                .filter(gateway=provider, external_subscription_id=external_id)
                .first()
            )
            if subscription is not None:
                return subscription
        if not user_id:
            return None
        current = (
            Subscription.objects.select_for_update()
            .filter(user_id=str(user_id))
            .order_by("-created", "-id")
            .first()
        )
        if (
            current is not None
            and current.gateway == provider
            and not current.external_subscription_id
            and current.status != SubscriptionStatus.CANCELED
        ):
            return current
        return None

    # Review queue
    # -------------------------------------------------------------------------

    def _queue_review(self, event: NormalizedEvent, reason: str) -> ReconcileResult:
        ReconciliationIssue.objects.create(
            provider=event.provider,
            event_id=event.event_id,
            event_type=event.event_type,
            reason=reason,
            payload=event.payload,
        )
        logger.warning(
            "Queued %s event %s (%s) for review: %s",
            event.provider,
            event.event_id,
            event.event_type,
            reason,
        )
        return ReconcileResult(Outcome.NEEDS_REVIEW, reason)


def _find_plan(plan_id) -> Plan | None:
    if not plan_id:
        return None
    try:
        return Plan.objects.filter(pk=int(plan_id)).first()
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric plan_id %r", plan_id)
        return None


def _end_date(plan: Plan, start, period_end):
    if plan.payment_type == PaymentType.PAY_AS_YOU_GO:
        return None
    if period_end:
        return max(period_end, start)
    if plan.duration_days:
        return start + timedelta(days=plan.duration_days)
    return None


def _is_stale(subscription: Subscription, event: NormalizedEvent) -> bool:
    return bool(
        event.occurred_at
        and subscription.last_event_at
        and event.occurred_at < subscription.last_event_at,
    )


def _stamp(subscription: Subscription, event: NormalizedEvent) -> None:
    if event.occurred_at and (
        subscription.last_event_at is None or event.occurred_at >= subscription.last_event_at
    ):
        subscription.last_event_at = event.occurred_at
        subscription.last_event_id = event.event_id
