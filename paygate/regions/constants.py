"""
Region and gateway policy enums.

Regions are fixed billing zones. Every country maps to exactly one region,
and every region has exactly one gateway policy row.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Region(models.TextChoices):
    US_CANADA = "region_1", _("US & Canada")
    WESTERN_EUROPE = "region_2", _("Western Europe")
    EASTERN_EUROPE = "region_3", _("Eastern Europe & Russia")
    AFRICA = "region_4", _("Africa")
    LATIN_AMERICA = "region_5", _("Latin America & Caribbean")
    MIDDLE_EAST_ASIA = "region_6", _("Middle East, Asia & Eurasia")
    AUSTRALASIA = "region_7", _("Australasia")
    GREATER_CHINA = "region_8", _("China, Macau & Hong Kong")

    @property
    def number(self) -> int:
        return int(self.value.rsplit("_", 1)[1])


class GatewayType(models.TextChoices):
    """
    How a region's payments are routed.

    STRIPE_ONLY and PADDLE_ONLY enable exactly one gateway. SPLIT_50_50
    enables both and picks one per payment with a fair coin flip.
    """

    STRIPE_ONLY = "stripe_only", _("Stripe only")
    PADDLE_ONLY = "paddle_only", _("Paddle only")
    SPLIT_50_50 = "split_50_50", _("50/50 split")


DEFAULT_CURRENCY = "USD"
DEFAULT_SPLIT_PERCENTAGE = 50
