"""
Gateway adapters, built explicitly from settings.

Usage:
    gateways = build_gateways()
    gateways["stripe"].verify_payment("pi_123")
"""

from paygate.billing.constants import Gateway
from paygate.billing.gateways.base import PaymentGateway
from paygate.billing.gateways.paddle_gateway import PaddleGateway
from paygate.billing.gateways.stripe_gateway import StripeGateway


def build_gateways() -> dict[str, PaymentGateway]:
    return {
        Gateway.STRIPE.value: StripeGateway.from_settings(),
        Gateway.PADDLE.value: PaddleGateway.from_settings(),
    }
