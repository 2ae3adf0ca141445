from django.urls import path

from paygate.regions import views

app_name = "regions"
urlpatterns = [
    path(
        "countries/<str:country_code>/",
        views.CountryRegionView.as_view(),
        name="country-region",
    ),
    path(
        "mappings/",
        views.CountryMappingListView.as_view(),
        name="mappings",
    ),
    path(
        "gateway-config/",
        views.GatewayPolicyListView.as_view(),
        name="gateway-config-list",
    ),
    path(
        "gateway-config/<str:region>/",
        views.GatewayPolicyDetailView.as_view(),
        name="gateway-config-detail",
    ),
    path(
        "processing-fee/",
        views.ProcessingFeeView.as_view(),
        name="processing-fee",
    ),
    path(
        "<str:region>/countries/",
        views.RegionCountriesView.as_view(),
        name="region-countries",
    ),
]
