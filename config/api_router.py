"""
Public API router, mounted at /api/v1/.

Every route except the provider webhooks expects the upstream identity
headers (see paygate.core.api.authentication).
"""

from django.urls import include
from django.urls import path

from paygate.billing.urls import payment_urlpatterns
from paygate.billing.urls import plan_urlpatterns
from paygate.billing.urls import subscription_urlpatterns
from paygate.billing.urls import webhook_urlpatterns

app_name = "api"
urlpatterns = [
    path("regions/", include("paygate.regions.urls")),
    path("payments/", include((payment_urlpatterns, "payments"))),
    path("subscriptions/", include((subscription_urlpatterns, "subscriptions"))),
    path("plans/", include((plan_urlpatterns, "plans"))),
    path("webhooks/", include((webhook_urlpatterns, "webhooks"))),
]
