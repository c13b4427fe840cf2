"""
Payment Gateway Protocol (Interface)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol


@dataclass(frozen=True)
class ChargeResult:
    """Outcome of a charge authorization. Only ``succeeded`` confirms payment."""
    status: str
    charge_ref: Optional[str] = None
    failure_message: Optional[str] = None

    SUCCEEDED = "succeeded"

    @property
    def succeeded(self) -> bool:
        return self.status == self.SUCCEEDED


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str


@dataclass(frozen=True)
class CustomerRequest:
    email: str
    name: str
    metadata: Dict[str, str] = field(default_factory=dict)


class PaymentGateway(Protocol):
    """Third-party payment processor. Adapters raise PaymentGatewayError on transport failures."""

    async def authorize_charge(self, amount_cents: int, currency: str) -> ChargeResult:
        """Charge ``amount_cents`` and report the final status."""
        ...

    async def create_payment_intent(self, amount_cents: int, currency: str) -> PaymentIntent:
        """Create a client-confirmable payment intent."""
        ...

    async def create_customer(self, request: CustomerRequest) -> str:
        """Create a billing customer; returns the gateway customer id."""
        ...

    async def create_subscription(self, customer_id: str, price_id: str, trial_period_days: int) -> str:
        """Subscribe a customer to a price; returns the subscription id."""
        ...
