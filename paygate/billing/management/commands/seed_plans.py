"""
Management command to seed the standard plan catalog.

Plans are matched by name. Existing plans keep their price and provider ids
unless --force is given; provider prices are never created here (checkout
mints Stripe prices on first use).

Usage:
    python manage.py seed_plans
    python manage.py seed_plans --force
"""

from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from paygate.billing.constants import PaymentType
from paygate.billing.models import Plan

PLAN_CONFIG = [
    {
        "plan_name": "Pay As You Go",
        "description": "No upfront payment. Charged per election created.",
        "price": Decimal("5.00"),
        "price_per_unit": Decimal("5.00"),
        "duration_days": None,
        "payment_type": PaymentType.PAY_AS_YOU_GO,
        "is_recurring": False,
        "billing_cycle": "per_use",
    },
    {
        "plan_name": "Monthly",
        "description": "Unlimited elections, billed every month.",
        "price": Decimal("29.00"),
        "duration_days": 30,
        "payment_type": PaymentType.RECURRING,
        "is_recurring": True,
        "billing_cycle": "monthly",
    },
    {
        "plan_name": "Quarterly",
        "description": "Unlimited elections, billed every three months.",
        "price": Decimal("79.00"),
        "duration_days": 90,
        "payment_type": PaymentType.RECURRING,
        "is_recurring": True,
        "billing_cycle": "quarterly",
    },
    {
        "plan_name": "Semi-Annual",
        "description": "Unlimited elections, billed every six months.",
        "price": Decimal("149.00"),
        "duration_days": 180,
        "payment_type": PaymentType.RECURRING,
        "is_recurring": True,
        "billing_cycle": "semi_annual",
    },
    {
        "plan_name": "Annual",
        "description": "Unlimited elections, billed yearly.",
        "price": Decimal("279.00"),
        "duration_days": 365,
        "payment_type": PaymentType.RECURRING,
        "is_recurring": True,
        "billing_cycle": "annual",
    },
]


class Command(BaseCommand):
    help = "Seed the standard plan catalog"

    def add_arguments(self, parser):
        parser.add_argument(
            "--force",
            action="store_true",
            help="Overwrite price and terms of existing plans",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        for config in PLAN_CONFIG:
            defaults = {key: value for key, value in config.items() if key != "plan_name"}
            if options["force"]:
                plan, created = Plan.objects.update_or_create(
                    plan_name=config["plan_name"],
                    defaults=defaults,
                )
            else:
                plan, created = Plan.objects.get_or_create(
                    plan_name=config["plan_name"],
                    defaults=defaults,
                )
                if not created:
                    self.stdout.write(f"Skipped: {plan.plan_name} (already exists)")
                    continue
            verb = "Created" if created else "Updated"
            self.stdout.write(self.style.SUCCESS(f"{verb}: {plan.plan_name} ({plan.price})"))
