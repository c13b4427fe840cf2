# src/provisioning/api/routes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from provisioning.api.container import ProvisioningContainer
from provisioning.api.dependencies import get_container, get_current_actor
from provisioning.api.schemas import (
    AdminCheckoutRequest,
    CheckoutResponse,
    CreateUserRequest,
    CreateUserResponse,
    FreeTrialCheckoutRequest,
    PaymentIntentRequest,
    PaymentIntentResponse,
    ProvisionResponse,
    SignupRequest,
)
from provisioning.application.commands import (
    AdminCheckoutCommand,
    CreatePaymentIntentCommand,
    CreateUserCommand,
    FreeTrialCheckoutCommand,
    PublicSignupCommand,
)
from provisioning.domain.entities.profile import Profile
from provisioning.domain.protocols.identity_provider import ActorCredentials

router = APIRouter(tags=["provisioning"])


@router.post("/signup", response_model=ProvisionResponse, status_code=status.HTTP_201_CREATED)
async def public_signup(
    payload: SignupRequest,
    container: ProvisioningContainer = Depends(get_container),
) -> ProvisionResponse:
    result = await container.public_signup()(
        PublicSignupCommand(
            customer_name=payload.customer_name,
            company_name=payload.company_name,
            admin_email=str(payload.admin_email),
            password=payload.password,
        )
    )
    if not result.success:
        raise result.to_error()
    return ProvisionResponse.from_result(result)


@router.post("/admin/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def admin_checkout(
    payload: AdminCheckoutRequest,
    actor: Profile = Depends(get_current_actor),
    container: ProvisioningContainer = Depends(get_container),
) -> CheckoutResponse:
    result = await container.admin_checkout()(
        AdminCheckoutCommand(
            actor=actor,
            actor_credentials=ActorCredentials(email=actor.email, password=payload.actor_password),
            customer_name=payload.customer_name,
            company_name=payload.company_name,
            admin_email=str(payload.admin_email),
            password=payload.password,
            selected_program_id=payload.selected_program_id,
            payment_amount_cents=payload.payment_amount_cents,
            max_users=payload.max_users,
            parent_brand_id=payload.parent_brand_id,
            revenue_share_partners=tuple(payload.revenue_share_partners),
            issued_by=actor.id,
        )
    )
    if not result.success:
        raise result.provision.to_error()
    return CheckoutResponse.from_checkout(result)


@router.post("/admin/free-trial-checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def free_trial_checkout(
    payload: FreeTrialCheckoutRequest,
    actor: Profile = Depends(get_current_actor),
    container: ProvisioningContainer = Depends(get_container),
) -> CheckoutResponse:
    result = await container.free_trial_checkout()(
        FreeTrialCheckoutCommand(
            actor=actor,
            actor_credentials=ActorCredentials(email=actor.email, password=payload.actor_password),
            customer_name=payload.customer_name,
            company_name=payload.company_name,
            admin_email=str(payload.admin_email),
            password=payload.password,
            selected_program_id=payload.selected_program_id,
            trial_duration_days=payload.trial_duration_days,
            max_users=payload.max_users,
            parent_brand_id=payload.parent_brand_id,
            issued_by=actor.id,
        )
    )
    if not result.success:
        raise result.provision.to_error()
    return CheckoutResponse.from_checkout(result)


@router.post("/admin/users", response_model=CreateUserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: CreateUserRequest,
    actor: Profile = Depends(get_current_actor),
    container: ProvisioningContainer = Depends(get_container),
) -> CreateUserResponse:
    result = await container.create_user()(
        CreateUserCommand(
            actor=actor,
            actor_credentials=ActorCredentials(email=actor.email, password=payload.actor_password),
            name=payload.name,
            email=str(payload.email),
            role=payload.role,
            company_id=payload.company_id,
            assigned_location_ids=tuple(payload.assigned_location_ids),
            issued_by=actor.id,
        )
    )
    return CreateUserResponse.model_validate(result)


@router.post("/payments/intents", response_model=PaymentIntentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment_intent(
    payload: PaymentIntentRequest,
    container: ProvisioningContainer = Depends(get_container),
) -> PaymentIntentResponse:
    client_secret = await container.create_payment_intent()(
        CreatePaymentIntentCommand(amount_cents=payload.amount_cents)
    )
    return PaymentIntentResponse(client_secret=client_secret)
