from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone
from factory.django import DjangoModelFactory

from paygate.billing.constants import Gateway
from paygate.billing.constants import PaymentStatus
from paygate.billing.constants import PaymentType
from paygate.billing.constants import SubscriptionStatus
from paygate.billing.constants import UsageStatus
from paygate.billing.models import Payment
from paygate.billing.models import Plan
from paygate.billing.models import Subscription
from paygate.billing.models import UsageRecord


class PlanFactory(DjangoModelFactory):
    class Meta:
        model = Plan

    plan_name = factory.Sequence(lambda n: f"Plan {n}")
    description = "Unlimited elections"
    price = Decimal("29.00")
    duration_days = 30
    payment_type = PaymentType.RECURRING
    is_recurring = False
    billing_cycle = "monthly"

    class Params:
        recurring = factory.Trait(is_recurring=True)
        pay_as_you_go = factory.Trait(
            plan_name=factory.Sequence(lambda n: f"Pay As You Go {n}"),
            price=Decimal("5.00"),
            price_per_unit=Decimal("1.2500"),
            duration_days=None,
            payment_type=PaymentType.PAY_AS_YOU_GO,
            is_recurring=False,
            billing_cycle="per_use",
        )


class SubscriptionFactory(DjangoModelFactory):
    class Meta:
        model = Subscription

    user_id = factory.Sequence(lambda n: f"user-{n}")
    plan = factory.SubFactory(PlanFactory)
    status = SubscriptionStatus.ACTIVE
    start_date = factory.LazyFunction(timezone.now)
    end_date = factory.LazyAttribute(
        lambda o: (
            o.start_date + timedelta(days=o.plan.duration_days)
            if o.plan.duration_days
            else None
        ),
    )
    gateway = Gateway.STRIPE
    payment_type = factory.LazyAttribute(lambda o: o.plan.payment_type)
    auto_renew = True


class PaymentFactory(DjangoModelFactory):
    class Meta:
        model = Payment

    user_id = factory.Sequence(lambda n: f"user-{n}")
    plan = factory.SubFactory(PlanFactory)
    amount = Decimal("29.00")
    currency = "USD"
    gateway = Gateway.STRIPE
    external_payment_id = factory.Sequence(lambda n: f"pi_test_{n}")
    status = PaymentStatus.PENDING
    payment_method = "card"
    region = "region_2"
    country_code = "DE"


class UsageRecordFactory(DjangoModelFactory):
    class Meta:
        model = UsageRecord

    user_id = factory.Sequence(lambda n: f"user-{n}")
    election_id = factory.Sequence(lambda n: f"election-{n}")
    quantity = 1
    price_per_unit = Decimal("1.2500")
    total_amount = factory.LazyAttribute(lambda o: o.price_per_unit * o.quantity)
    status = UsageStatus.PENDING
