"""
Create User Command

An admin adds a team member to a brand. The member gets a generated
temporary password and must change it on first login.
"""
from __future__ import annotations

import asyncio
import secrets
import string
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from shared.application.base_command import BaseCommand
from shared.application.command_handler import CommandHandler
from shared.config import Settings, get_settings
from shared.infrastructure.observability.logger import get_logger

from provisioning.application.dto.provision_dto import CreateUserResult
from provisioning.application.services.identity_session import IdentitySessionGuard
from provisioning.domain.entities.location import Location
from provisioning.domain.entities.profile import Profile
from provisioning.domain.entities.tenant import Tenant
from provisioning.domain.exceptions import (
    EmailAlreadyInUse,
    IdentityCreationFailed,
    IdentityProviderError,
    PermissionDenied,
    ProfileCreationFailed,
    ProvisioningValidationError,
    TenantNotFound,
    UserLimitReached,
)
from provisioning.domain.protocols.identity_provider import ActorCredentials, IdentityProvider
from provisioning.domain.protocols.notification_sink import NotificationSink
from provisioning.domain.protocols.tenant_store import COMPANIES, LOCATIONS, USERS, TenantStore
from provisioning.domain.services.authorization_policy import (
    can_access_location,
    require_can_assign_role,
    require_tenant_access,
)
from provisioning.domain.value_objects.email import Email
from provisioning.domain.value_objects.role import Role

logger = get_logger(__name__)

_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"


def generate_temporary_password(length: int = 12) -> str:
    """Random password with at least one letter and one digit."""
    while True:
        candidate = "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))
        if any(c.isalpha() for c in candidate) and any(c.isdigit() for c in candidate):
            return candidate


@dataclass(frozen=True)
class CreateUserCommand(BaseCommand):
    actor: Profile
    actor_credentials: ActorCredentials
    name: str
    email: str
    role: str
    company_id: str
    assigned_location_ids: Tuple[str, ...] = ()


class CreateUserCommandHandler(CommandHandler[CreateUserCommand, CreateUserResult]):
    """
    Checks, in order: role assignability, tenant lineage, location ownership
    and scope, the tenant's user limit. Then identity, then profile; a failed
    profile write deletes the identity again.
    """

    def __init__(
        self,
        identities: IdentityProvider,
        store: TenantStore,
        notifications: NotificationSink,
        session_guard: IdentitySessionGuard,
        settings: Optional[Settings] = None,
        password_factory: Optional[Callable[[int], str]] = None,
    ) -> None:
        self.identities = identities
        self.store = store
        self.notifications = notifications
        self.session_guard = session_guard
        self.settings = settings or get_settings()
        self.password_factory = password_factory or generate_temporary_password

    async def _bounded(self, awaitable: Any) -> Any:
        return await asyncio.wait_for(awaitable, timeout=self.settings.STEP_TIMEOUT_SECONDS)

    async def handle(self, command: CreateUserCommand) -> CreateUserResult:
        if not command.name or not command.name.strip():
            raise ProvisioningValidationError("Name is required.", details={"field": "name"})
        email = Email(command.email).value
        role = Role.from_string(command.role)

        require_can_assign_role(command.actor, role)
        tenant = await self._load_tenant(command.company_id)
        require_tenant_access(command.actor, tenant)
        await self._check_locations(command.actor, tenant, command.assigned_location_ids)
        await self._check_user_limit(tenant)

        temporary_password = self.password_factory(self.settings.TEMP_PASSWORD_LENGTH)

        async with self.session_guard.hold(command.actor_credentials):
            identity_id = await self._create_identity(email, temporary_password)
            profile = Profile(
                id="",
                name=command.name.strip(),
                email=email,
                role=role,
                company_id=tenant.id,
                assigned_location_ids=tuple(command.assigned_location_ids),
                is_active=True,
                identity_id=identity_id,
                requires_password_change=True,
            )
            profile_id = await self._create_profile(profile, identity_id)
            self._release_identity(identity_id)

        logger.info("team_member_created", tenant_id=tenant.id, profile_id=profile_id, role=role.value)
        sent = await self._send_welcome(email, profile.name, temporary_password)
        return CreateUserResult(
            profile_id=profile_id,
            identity_id=identity_id,
            temporary_password=temporary_password,
            welcome_email_sent=sent,
        )

    async def _load_tenant(self, company_id: str) -> Tenant:
        doc = await self._bounded(self.store.get(COMPANIES, company_id))
        if doc is None:
            raise TenantNotFound(details={"company_id": company_id})
        tenant = Tenant.from_document(company_id, doc)
        if tenant.is_deleted:
            raise TenantNotFound(details={"company_id": company_id})
        return tenant

    async def _check_locations(self, actor: Profile, tenant: Tenant, location_ids: Tuple[str, ...]) -> None:
        for location_id in location_ids:
            doc = await self._bounded(self.store.get(LOCATIONS, location_id))
            location = Location.from_document(location_id, doc) if doc else None
            if location is None or location.is_deleted or location.company_id != tenant.id:
                raise ProvisioningValidationError(
                    "Assigned locations must belong to the selected brand.",
                    details={"field": "assigned_location_ids", "location_id": location_id},
                )
            if not can_access_location(actor, location, tenant):
                raise PermissionDenied(
                    "You cannot assign users to this location.",
                    details={"location_id": location_id},
                )

    async def _check_user_limit(self, tenant: Tenant) -> None:
        if tenant.max_users is None:
            return
        members = await self._bounded(self.store.find(USERS, company_id=tenant.id, is_deleted=False))
        if len(members) >= tenant.max_users:
            raise UserLimitReached(
                details={"company_id": tenant.id, "max_users": tenant.max_users},
            )

    async def _create_identity(self, email: str, password: str) -> str:
        try:
            return await self._bounded(self.identities.create_identity(email, password))
        except IdentityProviderError as e:
            if e.is_email_collision:
                raise EmailAlreadyInUse("This email address is already in use.") from e
            logger.error("identity_step_error", error=e.message)
            raise IdentityCreationFailed(details={"retryable": e.retryable}) from e
        except asyncio.TimeoutError as e:
            logger.error("identity_step_error", error="timeout")
            raise IdentityCreationFailed(details={"retryable": True}) from e

    async def _create_profile(self, profile: Profile, identity_id: str) -> str:
        try:
            return await self._bounded(self.store.create(USERS, profile.to_document()))
        except Exception as e:
            logger.error("profile_step_error", error=str(e) or e.__class__.__name__)
            try:
                await self._bounded(self.identities.delete_identity(identity_id))
            except Exception as undo_error:
                logger.error(
                    "compensation_failed",
                    step="delete_identity",
                    resource_id=identity_id,
                    error=str(undo_error) or undo_error.__class__.__name__,
                )
            else:
                logger.info("compensation_applied", step="delete_identity", resource_id=identity_id)
            raise ProfileCreationFailed() from e

    def _release_identity(self, identity_id: str) -> None:
        try:
            self.identities.forget(identity_id)
        except Exception as e:
            logger.warning("identity_release_failed", identity_id=identity_id, error=str(e))

    async def _send_welcome(self, email: str, name: str, temporary_password: str) -> bool:
        try:
            await self._bounded(self.notifications.send_welcome(email, name, temporary_password))
        except Exception as e:
            logger.warning("welcome_email_failed", error=str(e) or e.__class__.__name__)
            return False
        return True
