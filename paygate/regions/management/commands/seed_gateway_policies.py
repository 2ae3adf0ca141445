"""
Management command to seed region gateway policies and a starter country map.

Creates one RegionGatewayPolicy per region and maps a starter set of
countries to their regions. Existing rows are left untouched unless
--force is given.

Usage:
    python manage.py seed_gateway_policies                # Seed missing rows
    python manage.py seed_gateway_policies --force        # Overwrite policies
    python manage.py seed_gateway_policies --skip-countries
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from paygate.regions.constants import GatewayType
from paygate.regions.constants import Region
from paygate.regions.models import CountryRegion
from paygate.regions.models import RegionGatewayPolicy
from paygate.regions.services import GatewayPolicyStore

POLICY_CONFIG = {
    Region.US_CANADA: {
        "gateway_type": GatewayType.STRIPE_ONLY,
        "recommendation_reason": "Stripe has the best card coverage in North America",
    },
    Region.WESTERN_EUROPE: {
        "gateway_type": GatewayType.STRIPE_ONLY,
        "recommendation_reason": "Stripe supports SEPA and local European methods",
    },
    Region.EASTERN_EUROPE: {
        "gateway_type": GatewayType.PADDLE_ONLY,
        "recommendation_reason": "Paddle acts as merchant of record for this region",
    },
    Region.AFRICA: {
        "gateway_type": GatewayType.PADDLE_ONLY,
        "recommendation_reason": "Paddle handles local tax collection in Africa",
    },
    Region.LATIN_AMERICA: {
        "gateway_type": GatewayType.SPLIT_50_50,
        "recommendation_reason": "Both gateways perform well in Latin America",
    },
    Region.MIDDLE_EAST_ASIA: {
        "gateway_type": GatewayType.SPLIT_50_50,
        "recommendation_reason": "Both gateways perform well in the Middle East and Asia",
    },
    Region.AUSTRALASIA: {
        "gateway_type": GatewayType.STRIPE_ONLY,
        "recommendation_reason": "Stripe has local acquiring in Australia and New Zealand",
    },
    Region.GREATER_CHINA: {
        "gateway_type": GatewayType.PADDLE_ONLY,
        "recommendation_reason": "Paddle handles cross-border payments into China",
    },
}

COUNTRY_CONFIG = {
    Region.US_CANADA: {"US": "United States", "CA": "Canada"},
    Region.WESTERN_EUROPE: {
        "GB": "United Kingdom",
        "DE": "Germany",
        "FR": "France",
        "ES": "Spain",
        "IT": "Italy",
        "NL": "Netherlands",
        "IE": "Ireland",
        "PT": "Portugal",
    },
    Region.EASTERN_EUROPE: {
        "PL": "Poland",
        "RU": "Russia",
        "UA": "Ukraine",
        "RO": "Romania",
    },
    Region.AFRICA: {
        "NG": "Nigeria",
        "ZA": "South Africa",
        "KE": "Kenya",
        "GH": "Ghana",
    },
    Region.LATIN_AMERICA: {
        "BR": "Brazil",
        "MX": "Mexico",
        "AR": "Argentina",
        "CO": "Colombia",
        "JM": "Jamaica",
    },
    Region.MIDDLE_EAST_ASIA: {
        "AE": "United Arab Emirates",
        "SA": "Saudi Arabia",
        "IN": "India",
        "JP": "Japan",
        "SG": "Singapore",
        "TR": "Turkey",
        "KZ": "Kazakhstan",
    },
    Region.AUSTRALASIA: {"AU": "Australia", "NZ": "New Zealand"},
    Region.GREATER_CHINA: {"CN": "China", "HK": "Hong Kong", "MO": "Macau"},
}


class Command(BaseCommand):
    help = "Seed region gateway policies and the starter country mapping"

    def add_arguments(self, parser):
        parser.add_argument(
            "--force",
            action="store_true",
            help="Overwrite existing policies and country mappings",
        )
        parser.add_argument(
            "--skip-countries",
            action="store_true",
            help="Only seed gateway policies",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        force = options["force"]
        self.seed_policies(force=force)
        if not options["skip_countries"]:
            self.seed_countries(force=force)

    def seed_policies(self, *, force: bool):
        store = GatewayPolicyStore()
        for region, config in POLICY_CONFIG.items():
            exists = RegionGatewayPolicy.objects.filter(region=region).exists()
            if exists and not force:
                self.stdout.write(f"Skipped: {region.value} (already configured)")
                continue
            store.upsert(region, **config)
            verb = "Updated" if exists else "Created"
            self.stdout.write(
                self.style.SUCCESS(
                    f"{verb}: {region.value} -> {config['gateway_type'].value}",
                ),
            )

    def seed_countries(self, *, force: bool):
        created_count = 0
        for region, countries in COUNTRY_CONFIG.items():
            for code, name in countries.items():
                if force:
                    _, created = CountryRegion.objects.update_or_create(
                        country_code=code,
                        defaults={"country_name": name, "region": region},
                    )
                else:
                    _, created = CountryRegion.objects.get_or_create(
                        country_code=code,
                        defaults={"country_name": name, "region": region},
                    )
                created_count += int(created)
        self.stdout.write(
            self.style.SUCCESS(f"Country mappings: {created_count} created"),
        )
