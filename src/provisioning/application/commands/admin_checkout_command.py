"""
Admin Checkout Command

Paid program checkout run by a back-office admin. The saga runs inside the
identity session guard; billing setup and the purchase record follow a
successful provisioning and never change its outcome.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from shared.application.base_command import BaseCommand
from shared.application.command_handler import CommandHandler
from shared.config import Settings, get_settings
from shared.exceptions import ServiceUnavailableError
from shared.infrastructure.observability.logger import get_logger

from provisioning.application.dto.provision_dto import (
    Channel,
    CheckoutResult,
    ErrorKind,
    ProvisionInput,
    ProvisionResult,
)
from provisioning.application.services.identity_session import IdentitySessionGuard
from provisioning.application.services.provisioning_saga import ProvisioningSaga
from provisioning.domain.entities.profile import Profile
from provisioning.domain.entities.tenant import Tenant
from provisioning.domain.exceptions import ProgramNotFound, TenantCreationFailed, TenantNotFound
from provisioning.domain.protocols.identity_provider import ActorCredentials
from provisioning.domain.protocols.payment_gateway import CustomerRequest, PaymentGateway
from provisioning.domain.protocols.program_catalog import Program, ProgramCatalog
from provisioning.domain.protocols.tenant_store import COMPANIES, CUSTOMER_PURCHASES, TenantStore
from provisioning.domain.services.authorization_policy import require_can_provision_tenant

logger = get_logger(__name__)


@dataclass(frozen=True)
class AdminCheckoutCommand(BaseCommand):
    """
    Attributes:
        actor: Profile of the admin running the checkout
        actor_credentials: Used to restore the admin's identity session afterwards
        selected_program_id: Program whose courses are assigned to the new brand
        payment_amount_cents: Final total; 0 means a free checkout
        parent_brand_id: Set when creating a child brand
    """
    actor: Profile
    actor_credentials: ActorCredentials
    customer_name: str
    company_name: str
    admin_email: str
    password: str
    selected_program_id: str
    payment_amount_cents: int = 0
    max_users: Optional[int] = None
    parent_brand_id: Optional[str] = None
    revenue_share_partners: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)


class CheckoutPreparation:
    """Shared pre-saga steps of paid and free-trial checkout."""

    def __init__(
        self,
        saga: ProvisioningSaga,
        session_guard: IdentitySessionGuard,
        store: TenantStore,
        catalog: ProgramCatalog,
        settings: Optional[Settings] = None,
    ) -> None:
        self.saga = saga
        self.session_guard = session_guard
        self.store = store
        self.catalog = catalog
        self.settings = settings or get_settings()

    async def _bounded(self, awaitable: Any) -> Any:
        return await asyncio.wait_for(awaitable, timeout=self.settings.STEP_TIMEOUT_SECONDS)

    async def resolve_parent(self, parent_brand_id: Optional[str]) -> Optional[Tenant]:
        if parent_brand_id is None:
            return None
        try:
            doc = await self._bounded(self.store.get(COMPANIES, parent_brand_id))
        except Exception as e:
            logger.error("parent_brand_lookup_failed", parent_brand_id=parent_brand_id, error=str(e))
            raise TenantCreationFailed("Could not verify the parent brand. Please try again.") from e
        if doc is None:
            raise TenantNotFound(
                f"Parent brand {parent_brand_id} not found.",
                details={"parent_brand_id": parent_brand_id},
            )
        return Tenant.from_document(parent_brand_id, doc)

    async def authorize(self, actor: Profile, parent_brand_id: Optional[str]) -> None:
        """Raises PermissionDenied before any side effect."""
        parent = await self.resolve_parent(parent_brand_id)
        require_can_provision_tenant(actor, parent)

    async def resolve_program(self, program_id: str) -> Optional[Program]:
        if not program_id:
            return None
        try:
            return await self._bounded(self.catalog.get_program(program_id))
        except Exception as e:
            logger.error("program_lookup_failed", program_id=program_id, error=str(e) or e.__class__.__name__)
            raise ServiceUnavailableError("Could not load the selected program. Please try again.") from e

    async def run_saga(self, credentials: ActorCredentials, data: ProvisionInput) -> ProvisionResult:
        async with self.session_guard.hold(credentials):
            return await self.saga.provision(data)


def program_not_found(program_id: str) -> ProvisionResult:
    return ProvisionResult.failed(
        ErrorKind.VALIDATION_ERROR,
        f"Selected program (ID: {program_id}) not found.",
        code=ProgramNotFound.code,
    )


class AdminCheckoutCommandHandler(CheckoutPreparation, CommandHandler[AdminCheckoutCommand, CheckoutResult]):
    def __init__(
        self,
        saga: ProvisioningSaga,
        session_guard: IdentitySessionGuard,
        store: TenantStore,
        catalog: ProgramCatalog,
        payments: PaymentGateway,
        settings: Optional[Settings] = None,
    ) -> None:
        super().__init__(saga, session_guard, store, catalog, settings)
        self.payments = payments

    async def handle(self, command: AdminCheckoutCommand) -> CheckoutResult:
        await self.authorize(command.actor, command.parent_brand_id)

        program = await self.resolve_program(command.selected_program_id)
        if program is None:
            return CheckoutResult(provision=program_not_found(command.selected_program_id))

        result = await self.run_saga(
            command.actor_credentials,
            ProvisionInput(
                customer_name=command.customer_name,
                tenant_name=command.company_name,
                admin_email=command.admin_email,
                password=command.password,
                channel=Channel.ADMIN_CHECKOUT,
                payment_amount_cents=command.payment_amount_cents,
                parent_brand_id=command.parent_brand_id,
                program_ids=(program.id,),
                course_ids=program.course_ids,
                is_trial=False,
                max_users=command.max_users,
                created_by_user_id=command.actor.id,
            ),
        )
        if not result.success:
            return CheckoutResult(provision=result)

        customer_id, subscription_id = await self._setup_billing(command, program, result)
        purchase_id = await self._record_purchase(command, program, result)
        return CheckoutResult(
            provision=result,
            customer_purchase_id=purchase_id,
            stripe_customer_id=customer_id,
            stripe_subscription_id=subscription_id,
        )

    async def _setup_billing(
        self, command: AdminCheckoutCommand, program: Program, result: ProvisionResult
    ) -> Tuple[Optional[str], Optional[str]]:
        """Gateway customer and optional subscription for paid checkouts. Best effort."""
        if command.payment_amount_cents <= 0:
            return None, None

        assert result.tenant_id and result.profile_id
        customer_id: Optional[str] = None
        subscription_id: Optional[str] = None
        try:
            customer_id = await self._bounded(
                self.payments.create_customer(
                    CustomerRequest(
                        email=command.admin_email.strip().lower(),
                        name=command.company_name.strip(),
                        metadata={"brand_id": result.tenant_id, "admin_user_id": result.profile_id},
                    )
                )
            )
            logger.info("billing_customer_created", tenant_id=result.tenant_id, customer_id=customer_id)

            if program.stripe_first_price_id:
                subscription_id = await self._bounded(
                    self.payments.create_subscription(
                        customer_id,
                        program.stripe_first_price_id,
                        self.settings.SUBSCRIPTION_TRIAL_DAYS,
                    )
                )
                logger.info("billing_subscription_created", subscription_id=subscription_id)
            else:
                logger.info("billing_subscription_skipped", program_id=program.id)

            await self._bounded(
                self.store.update(
                    COMPANIES,
                    result.tenant_id,
                    {"stripe_customer_id": customer_id, "stripe_subscription_id": subscription_id},
                )
            )
        except Exception as e:
            logger.error("billing_setup_failed", tenant_id=result.tenant_id, error=str(e) or e.__class__.__name__)
        return customer_id, subscription_id

    async def _record_purchase(
        self, command: AdminCheckoutCommand, program: Program, result: ProvisionResult
    ) -> Optional[str]:
        """Customer purchase record. Failure is logged for manual entry."""
        try:
            course_titles: List[str] = await self._bounded(self.catalog.get_course_titles(list(program.course_ids)))
            return await self._bounded(
                self.store.create(
                    CUSTOMER_PURCHASES,
                    {
                        "brand_id": result.tenant_id,
                        "brand_name": command.company_name.strip(),
                        "admin_user_id": result.profile_id,
                        "admin_user_email": command.admin_email.strip().lower(),
                        "total_amount_paid_cents": command.payment_amount_cents,
                        "charge_ref": result.charge_ref,
                        "selected_program_id": program.id,
                        "selected_program_title": program.title,
                        "selected_course_ids": list(program.course_ids),
                        "selected_course_titles": course_titles,
                        "revenue_share_partners": list(command.revenue_share_partners) or None,
                        "max_users_configured": command.max_users,
                    },
                )
            )
        except Exception as e:
            logger.critical(
                "customer_purchase_record_failed",
                tenant_id=result.tenant_id,
                error=str(e) or e.__class__.__name__,
            )
            return None
