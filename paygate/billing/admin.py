from django.contrib import admin

from paygate.billing.models import BillingCustomer
from paygate.billing.models import Payment
from paygate.billing.models import PaymentFailure
from paygate.billing.models import Plan
from paygate.billing.models import ReconciliationIssue
from paygate.billing.models import Subscription
from paygate.billing.models import UsageRecord
from paygate.billing.models import WebhookEvent


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    list_display = [
        "plan_name",
        "payment_type",
        "price",
        "duration_days",
        "is_recurring",
        "is_active",
    ]
    list_filter = ["payment_type", "is_active"]
    search_fields = ["plan_name"]


@admin.register(BillingCustomer)
class BillingCustomerAdmin(admin.ModelAdmin):
    list_display = ["user_id", "email", "stripe_customer_id", "paddle_customer_id"]
    search_fields = ["user_id", "email", "stripe_customer_id"]


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = [
        "user_id",
        "plan",
        "status",
        "gateway",
        "start_date",
        "end_date",
        "auto_renew",
    ]
    list_filter = ["status", "gateway"]
    search_fields = ["user_id", "external_subscription_id"]
    raw_id_fields = ["plan"]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = [
        "external_payment_id",
        "user_id",
        "gateway",
        "amount",
        "currency",
        "status",
        "created",
    ]
    list_filter = ["status", "gateway", "region"]
    search_fields = ["user_id", "external_payment_id"]
    raw_id_fields = ["plan", "subscription"]


@admin.register(PaymentFailure)
class PaymentFailureAdmin(admin.ModelAdmin):
    list_display = ["user_id", "gateway", "amount", "reason", "created"]
    list_filter = ["gateway"]
    raw_id_fields = ["payment", "subscription"]


@admin.register(UsageRecord)
class UsageRecordAdmin(admin.ModelAdmin):
    list_display = ["user_id", "usage_type", "quantity", "total_amount", "status"]
    list_filter = ["status", "usage_type"]
    search_fields = ["user_id", "election_id"]
    raw_id_fields = ["payment"]


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = ["provider", "event_id", "event_type", "status", "received_at"]
    list_filter = ["provider", "status"]
    search_fields = ["event_id"]
    readonly_fields = ["payload", "received_at", "processed_at"]


@admin.register(ReconciliationIssue)
class ReconciliationIssueAdmin(admin.ModelAdmin):
    list_display = ["provider", "event_id", "event_type", "resolved", "created"]
    list_filter = ["provider", "resolved"]
    readonly_fields = ["payload"]
