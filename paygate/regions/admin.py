from django.contrib import admin

from paygate.regions.models import CountryRegion
from paygate.regions.models import RegionalPrice
from paygate.regions.models import RegionGatewayPolicy


@admin.register(CountryRegion)
class CountryRegionAdmin(admin.ModelAdmin):
    list_display = ["country_code", "country_name", "region"]
    list_filter = ["region"]
    search_fields = ["country_code", "country_name"]


@admin.register(RegionGatewayPolicy)
class RegionGatewayPolicyAdmin(admin.ModelAdmin):
    list_display = [
        "region",
        "gateway_type",
        "stripe_enabled",
        "paddle_enabled",
        "split_percentage",
        "modified",
    ]
    readonly_fields = ["created", "modified"]


@admin.register(RegionalPrice)
class RegionalPriceAdmin(admin.ModelAdmin):
    list_display = ["plan", "region", "price", "currency"]
    list_filter = ["region", "currency"]
    raw_id_fields = ["plan"]
