"""
Common contract for payment gateway adapters.

Adapters translate between our normalized payloads and one provider's API.
They create provider-side artifacts and read provider state; they never
write to our database and never confirm or capture a payment themselves.
Provider failures surface as ProviderError.
"""

from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class PaymentPayload:
    """Normalized input for creating a payment at any gateway."""

    amount: Decimal
    currency: str
    country_code: str
    payment_method: str
    user_id: str
    email: str = ""
    region: str = ""
    plan_id: int | None = None
    # Provider price to charge (Paddle one-time/recurring, Stripe recurring).
    price_id: str = ""
    # Provider customer to bill (Stripe recurring).
    customer_id: str = ""


@dataclass(frozen=True)
class PaymentArtifact:
    """
    What the caller hands to the client to finish paying.

    Stripe returns a client_secret for Elements; Paddle returns a hosted
    checkout_url.
    """

    external_id: str
    status: str
    client_secret: str = ""
    checkout_url: str = ""
    subscription_id: str = ""

    def as_payment_data(self) -> dict:
        data = {"id": self.external_id, "status": self.status}
        if self.client_secret:
            data["client_secret"] = self.client_secret
        if self.checkout_url:
            data["checkout_url"] = self.checkout_url
            data["transaction_id"] = self.external_id
        if self.subscription_id:
            data["subscription_id"] = self.subscription_id
        return data


@dataclass(frozen=True)
class PaymentVerification:
    verified: bool
    status: str
    amount: Decimal | None = None
    currency: str = ""
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class CancellationResult:
    success: bool
    status: str = ""
    effective_at: datetime | None = None


class PaymentGateway(ABC):
    """Provider adapter interface."""

    name: str = ""

    @abstractmethod
    def create_one_time_payment(self, payload: PaymentPayload) -> PaymentArtifact:
        """Create an unconfirmed one-time charge."""

    @abstractmethod
    def create_recurring_payment(self, payload: PaymentPayload) -> PaymentArtifact:
        """Start a subscription whose first payment is still to be made."""

    @abstractmethod
    def verify_payment(self, external_id: str) -> PaymentVerification:
        """Read a payment's current provider status. Never mutates."""

    @abstractmethod
    def cancel_subscription(self, external_subscription_id: str) -> CancellationResult:
        """Stop renewal at the end of the current period."""
