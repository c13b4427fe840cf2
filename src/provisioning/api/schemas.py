# src/provisioning/api/schemas.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from provisioning.application.dto.provision_dto import CheckoutResult, ProvisionResult


# ---------- Requests ----------

class SignupRequest(BaseModel):
    customer_name: str = Field(min_length=2)
    company_name: str = Field(min_length=2)
    admin_email: EmailStr
    password: str


class _AdminRequest(BaseModel):
    """Admin routes carry the actor's password so the identity session can be restored."""
    actor_password: str = Field(min_length=1)


class AdminCheckoutRequest(_AdminRequest):
    customer_name: str = Field(min_length=1)
    company_name: str = Field(min_length=1)
    admin_email: EmailStr
    password: str
    selected_program_id: str = Field(min_length=1)
    payment_amount_cents: int = 0
    max_users: Optional[int] = None
    parent_brand_id: Optional[str] = Field(default=None, min_length=1)
    revenue_share_partners: List[Dict[str, Any]] = Field(default_factory=list)


class FreeTrialCheckoutRequest(_AdminRequest):
    customer_name: str = Field(min_length=1)
    company_name: str = Field(min_length=1)
    admin_email: EmailStr
    password: str
    selected_program_id: str = Field(min_length=1)
    trial_duration_days: Optional[int] = Field(default=None, gt=0)
    max_users: Optional[int] = None
    parent_brand_id: Optional[str] = Field(default=None, min_length=1)


class CreateUserRequest(_AdminRequest):
    name: str = Field(min_length=1)
    email: EmailStr
    role: str
    company_id: str
    assigned_location_ids: List[str] = Field(default_factory=list)


class PaymentIntentRequest(BaseModel):
    amount_cents: int


# ---------- Responses ----------

class ProvisionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool = True
    tenant_id: str
    profile_id: str
    location_id: str
    identity_id: str
    charge_ref: Optional[str] = None

    @classmethod
    def from_result(cls, result: ProvisionResult) -> "ProvisionResponse":
        return cls.model_validate(result)


class CheckoutResponse(ProvisionResponse):
    customer_purchase_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None

    @classmethod
    def from_checkout(cls, result: CheckoutResult) -> "CheckoutResponse":
        base = ProvisionResponse.from_result(result.provision).model_dump()
        return cls(
            **base,
            customer_purchase_id=result.customer_purchase_id,
            stripe_customer_id=result.stripe_customer_id,
            stripe_subscription_id=result.stripe_subscription_id,
        )


class CreateUserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    profile_id: str
    identity_id: str
    temporary_password: str
    welcome_email_sent: bool


class PaymentIntentResponse(BaseModel):
    client_secret: str
