from django.urls import path

from paygate.billing import views
from paygate.regions.views import RegionalPriceListView

payment_urlpatterns = [
    path("", views.PaymentListView.as_view(), name="payment-list"),
    path(
        "gateway-recommendation/",
        views.GatewayRecommendationView.as_view(),
        name="gateway-recommendation",
    ),
    path("create/", views.CheckoutView.as_view(), name="payment-create"),
    path("verify/", views.VerifyPaymentView.as_view(), name="payment-verify"),
    path("track-usage/", views.TrackUsageView.as_view(), name="track-usage"),
    path("unpaid-usage/", views.UnpaidUsageView.as_view(), name="unpaid-usage"),
    path("usage-history/", views.UsageHistoryView.as_view(), name="usage-history"),
    path("current-plan/", views.CurrentPlanView.as_view(), name="current-plan"),
]

subscription_urlpatterns = [
    path(
        "current/",
        views.CurrentSubscriptionView.as_view(),
        name="subscription-current",
    ),
    path("valid/", views.SubscriptionValidityView.as_view(), name="subscription-valid"),
    path(
        "history/",
        views.SubscriptionHistoryView.as_view(),
        name="subscription-history",
    ),
    path(
        "cancel/",
        views.CancelSubscriptionView.as_view(),
        name="subscription-cancel",
    ),
]

plan_urlpatterns = [
    path("", views.PlanListView.as_view(), name="plan-list"),
    path("<int:plan_id>/", views.PlanDetailView.as_view(), name="plan-detail"),
    path(
        "<int:plan_id>/regional-prices/",
        RegionalPriceListView.as_view(),
        name="plan-regional-prices",
    ),
    path(
        "<int:plan_id>/editable-fields/",
        views.PlanEditableFieldsView.as_view(),
        name="plan-editable-fields",
    ),
    path(
        "<int:plan_id>/update-price/",
        views.PlanPriceUpdateView.as_view(),
        name="plan-update-price",
    ),
]

webhook_urlpatterns = [
    path("stripe/", views.StripeWebhookView.as_view(), name="webhook-stripe"),
    path("paddle/", views.PaddleWebhookView.as_view(), name="webhook-paddle"),
]
