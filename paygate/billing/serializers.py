from rest_framework import serializers

from paygate.billing.constants import DEFAULT_USAGE_TYPE
from paygate.billing.constants import Gateway
from paygate.billing.constants import PaymentType
from paygate.billing.models import Payment
from paygate.billing.models import Plan
from paygate.billing.models import Subscription
from paygate.billing.models import UsageRecord
from paygate.regions.constants import DEFAULT_CURRENCY

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class PlanSerializer(serializers.ModelSerializer):
    is_pay_as_you_go = serializers.BooleanField(read_only=True)

    class Meta:
        model = Plan
        fields = [
            "id",
            "plan_name",
            "description",
            "price",
            "price_per_unit",
            "duration_days",
            "payment_type",
            "is_recurring",
            "is_pay_as_you_go",
            "billing_cycle",
            "max_elections",
            "processing_fee_enabled",
            "processing_fee_percentage",
            "is_active",
            "stripe_product_id",
            "stripe_price_id",
            "paddle_product_id",
            "paddle_price_id",
            "modified",
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    plan_name = serializers.CharField(source="plan.plan_name", read_only=True, default=None)

    class Meta:
        model = Payment
        fields = [
            "id",
            "plan",
            "plan_name",
            "subscription",
            "amount",
            "currency",
            "gateway",
            "external_payment_id",
            "status",
            "payment_method",
            "region",
            "country_code",
            "created",
            "completed_at",
        ]
        read_only_fields = fields


class SubscriptionSerializer(serializers.ModelSerializer):
    plan = PlanSerializer(read_only=True)
    is_valid = serializers.BooleanField(read_only=True)

    class Meta:
        model = Subscription
        fields = [
            "id",
            "plan",
            "status",
            "start_date",
            "end_date",
            "gateway",
            "external_subscription_id",
            "payment_type",
            "auto_renew",
            "canceled_at",
            "is_valid",
            "created",
        ]
        read_only_fields = fields


class UsageRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = UsageRecord
        fields = [
            "id",
            "election_id",
            "usage_type",
            "quantity",
            "price_per_unit",
            "total_amount",
            "status",
            "payment",
            "paid_at",
            "created",
        ]
        read_only_fields = fields


# Inputs
# -----------------------------------------------------------------------------


class CheckoutInputSerializer(serializers.Serializer):
    """Body of POST payments/create/."""

    plan_id = serializers.IntegerField(min_value=1)
    country_code = serializers.CharField(min_length=2, max_length=2)
    payment_method = serializers.CharField(required=False, default="card")
    currency = serializers.CharField(required=False, default=DEFAULT_CURRENCY, max_length=3)

    def validate_country_code(self, value):
        return value.upper()

    def validate_payment_method(self, value):
        return value.strip().lower()


class GatewayRecommendationQuerySerializer(serializers.Serializer):
    country_code = serializers.CharField(min_length=2, max_length=2)
    plan_id = serializers.IntegerField(required=False, min_value=1)
    payment_method = serializers.CharField(required=False)


class VerifyPaymentInputSerializer(serializers.Serializer):
    payment_id = serializers.CharField(max_length=255)
    gateway = serializers.ChoiceField(choices=[Gateway.STRIPE, Gateway.PADDLE])


class TrackUsageInputSerializer(serializers.Serializer):
    election_id = serializers.CharField(required=False, allow_blank=True, default="")
    usage_type = serializers.CharField(required=False, default=DEFAULT_USAGE_TYPE)
    quantity = serializers.IntegerField(required=False, min_value=1, default=1)


class PlanPriceInputSerializer(serializers.Serializer):
    new_price = serializers.DecimalField(max_digits=12, decimal_places=2)

    def validate_new_price(self, value):
        if value <= 0:
            msg = "Price must be greater than 0"
            raise serializers.ValidationError(msg)
        return value


class PageQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(
        required=False,
        min_value=1,
        max_value=MAX_PAGE_SIZE,
        default=DEFAULT_PAGE_SIZE,
    )
    offset = serializers.IntegerField(required=False, min_value=0, default=0)


EDITABLE_PLAN_FIELDS = (
    "max_elections",
    "processing_fee_enabled",
    "processing_fee_percentage",
)


class PlanInputSerializer(serializers.ModelSerializer):
    """
    Body of POST plans/ and PUT plans/<id>/.

    On update, ``price`` and the fields in EDITABLE_PLAN_FIELDS are refused:
    repricing goes through update-price/ so provider prices stay in step,
    and limits and fees go through editable-fields/.
    """

    class Meta:
        model = Plan
        fields = [
            "plan_name",
            "description",
            "price",
            "price_per_unit",
            "duration_days",
            "payment_type",
            "is_recurring",
            "billing_cycle",
            "max_elections",
            "processing_fee_enabled",
            "processing_fee_percentage",
            "is_active",
            "stripe_product_id",
            "stripe_price_id",
            "paddle_product_id",
            "paddle_price_id",
        ]

    def validate_price(self, value):
        if value <= 0:
            msg = "Price must be greater than 0"
            raise serializers.ValidationError(msg)
        return value

    def validate(self, attrs):
        if self.instance is not None:
            refused = sorted(
                field
                for field in self.initial_data
                if field == "price" or field in EDITABLE_PLAN_FIELDS
            )
            if "price" in refused:
                msg = "Use /plans/<id>/update-price/ to change price"
                raise serializers.ValidationError({"price": msg})
            if refused:
                msg = (
                    "Use /plans/<id>/editable-fields/ to update: "
                    + ", ".join(EDITABLE_PLAN_FIELDS)
                )
                raise serializers.ValidationError({field: msg for field in refused})

        payment_type = attrs.get(
            "payment_type",
            getattr(self.instance, "payment_type", PaymentType.RECURRING),
        )
        duration_days = attrs.get(
            "duration_days",
            getattr(self.instance, "duration_days", None),
        )
        if payment_type == PaymentType.PAY_AS_YOU_GO:
            if duration_days:
                msg = "Pay-as-you-go plans have no duration"
                raise serializers.ValidationError({"duration_days": msg})
            attrs["is_recurring"] = False
        elif not duration_days:
            msg = "Recurring plans need a duration"
            raise serializers.ValidationError({"duration_days": msg})
        return attrs


class PlanEditableFieldsSerializer(serializers.ModelSerializer):
    """Body of PUT plans/<id>/editable-fields/. Unknown fields are refused."""

    class Meta:
        model = Plan
        fields = list(EDITABLE_PLAN_FIELDS)
        extra_kwargs = {
            "processing_fee_percentage": {"min_value": 0, "max_value": 100},
        }

    def validate(self, attrs):
        unknown = sorted(set(self.initial_data) - set(EDITABLE_PLAN_FIELDS))
        if unknown:
            msg = (
                f"Invalid fields: {', '.join(unknown)}. "
                f"Only these fields can be edited: {', '.join(EDITABLE_PLAN_FIELDS)}"
            )
            raise serializers.ValidationError(msg)
        if not attrs:
            msg = "No editable fields supplied"
            raise serializers.ValidationError(msg)
        return attrs

    def validate_max_elections(self, value):
        if value is not None and value < 0:
            msg = "max_elections cannot be negative"
            raise serializers.ValidationError(msg)
        return value
