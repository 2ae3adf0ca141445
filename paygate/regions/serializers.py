from rest_framework import serializers

from paygate.regions.constants import GatewayType
from paygate.regions.constants import Region
from paygate.regions.models import CountryRegion
from paygate.regions.models import RegionalPrice
from paygate.regions.models import RegionGatewayPolicy


class CountryRegionSerializer(serializers.ModelSerializer):
    region_name = serializers.CharField(source="get_region_display", read_only=True)

    class Meta:
        model = CountryRegion
        fields = ["country_code", "country_name", "region", "region_name"]


class RegionGatewayPolicySerializer(serializers.ModelSerializer):
    region_name = serializers.CharField(source="get_region_display", read_only=True)

    class Meta:
        model = RegionGatewayPolicy
        fields = [
            "region",
            "region_name",
            "gateway_type",
            "stripe_enabled",
            "paddle_enabled",
            "split_percentage",
            "recommendation_reason",
            "modified",
        ]
        read_only_fields = fields


class GatewayPolicyInputSerializer(serializers.Serializer):
    """Body of POST regions/gateway-config/<region>/."""

    gateway_type = serializers.ChoiceField(choices=GatewayType.choices)
    stripe_enabled = serializers.BooleanField(required=False, allow_null=True, default=None)
    paddle_enabled = serializers.BooleanField(required=False, allow_null=True, default=None)
    split_percentage = serializers.IntegerField(
        required=False,
        min_value=0,
        max_value=100,
        default=50,
    )
    recommendation_reason = serializers.CharField(
        required=False,
        allow_blank=True,
        default="",
    )


class ProcessingFeeInputSerializer(serializers.Serializer):
    percentage = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=0,
        max_value=100,
    )


class RegionalPriceSerializer(serializers.ModelSerializer):
    class Meta:
        model = RegionalPrice
        fields = ["region", "price", "currency"]
        read_only_fields = fields


class RegionalPricesInputSerializer(serializers.Serializer):
    """
    Body of POST plans/<id>/regional-prices/.

    ``prices`` maps region to a price or to ``{"price", "currency"}``.
    """

    prices = serializers.DictField(child=serializers.JSONField())

    def validate_prices(self, value):
        unknown = [key for key in value if key not in Region.values]
        if unknown:
            msg = f"Unknown regions: {', '.join(sorted(unknown))}"
            raise serializers.ValidationError(msg)
        return value


class CountryMappingInputSerializer(serializers.Serializer):
    """Body of POST regions/mappings/. Upserts on country_code."""

    country_code = serializers.CharField(min_length=2, max_length=2)
    country_name = serializers.CharField(max_length=100)
    region = serializers.ChoiceField(choices=Region.choices)
