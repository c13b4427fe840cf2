"""
Public Signup Command
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.application.base_command import BaseCommand
from shared.application.command_handler import CommandHandler
from shared.config import Settings, get_settings

from provisioning.application.dto.provision_dto import Channel, ProvisionInput, ProvisionResult
from provisioning.application.services.identity_session import IdentitySessionGuard
from provisioning.application.services.provisioning_saga import ProvisioningSaga


@dataclass(frozen=True)
class PublicSignupCommand(BaseCommand):
    """
    Self-service signup: a new top-level brand with its first Admin.

    Attributes:
        customer_name: Name of the person signing up (becomes the Admin profile name)
        company_name: Brand name
        admin_email: Login email of the new Admin
        password: Password chosen by the user
    """
    customer_name: str
    company_name: str
    admin_email: str
    password: str


class PublicSignupCommandHandler(CommandHandler[PublicSignupCommand, ProvisionResult]):
    """
    No charge, not a trial, no parent brand, default user limit.

    Signup shares the identity client with admin flows, so the saga runs under
    the session guard's lock.
    """

    def __init__(
        self,
        saga: ProvisioningSaga,
        session_guard: IdentitySessionGuard,
        settings: Optional[Settings] = None,
    ) -> None:
        self.saga = saga
        self.session_guard = session_guard
        self.settings = settings or get_settings()

    async def handle(self, command: PublicSignupCommand) -> ProvisionResult:
        data = ProvisionInput(
            customer_name=command.customer_name,
            tenant_name=command.company_name,
            admin_email=command.admin_email,
            password=command.password,
            channel=Channel.PUBLIC_SIGNUP,
            payment_amount_cents=None,
            is_trial=False,
            max_users=self.settings.DEFAULT_SIGNUP_MAX_USERS,
        )
        async with self.session_guard.exclusive():
            return await self.saga.provision(data)
