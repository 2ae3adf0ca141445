from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command

from paygate.billing.models import Plan


@pytest.mark.django_db
def test_seed_plans_creates_catalog():
    out = StringIO()

    call_command("seed_plans", stdout=out)

    assert Plan.objects.count() == 5
    metered = Plan.objects.get(plan_name="Pay As You Go")
    assert metered.is_pay_as_you_go
    assert metered.duration_days is None
    assert Plan.objects.get(plan_name="Quarterly").duration_days == 90
    assert "Created: Monthly (29.00)" in out.getvalue()


@pytest.mark.django_db
def test_seed_plans_skips_existing_plans():
    call_command("seed_plans", stdout=StringIO())
    Plan.objects.filter(plan_name="Monthly").update(price=Decimal("35.00"))
    out = StringIO()

    call_command("seed_plans", stdout=out)

    assert Plan.objects.count() == 5
    assert Plan.objects.get(plan_name="Monthly").price == Decimal("35.00")
    assert "Skipped: Monthly (already exists)" in out.getvalue()


@pytest.mark.django_db
def test_seed_plans_force_restores_catalog_terms():
    call_command("seed_plans", stdout=StringIO())
    Plan.objects.filter(plan_name="Monthly").update(price=Decimal("35.00"))
    out = StringIO()

    call_command("seed_plans", "--force", stdout=out)

    assert Plan.objects.get(plan_name="Monthly").price == Decimal("29.00")
    assert "Updated: Monthly (29.00)" in out.getvalue()
