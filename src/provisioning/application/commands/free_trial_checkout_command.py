"""
Free Trial Checkout Command
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.application.base_command import BaseCommand
from shared.application.command_handler import CommandHandler

from provisioning.application.commands.admin_checkout_command import CheckoutPreparation, program_not_found
from provisioning.application.dto.provision_dto import Channel, CheckoutResult, ProvisionInput
from provisioning.domain.entities.profile import Profile
from provisioning.domain.protocols.identity_provider import ActorCredentials


@dataclass(frozen=True)
class FreeTrialCheckoutCommand(BaseCommand):
    actor: Profile
    actor_credentials: ActorCredentials
    customer_name: str
    company_name: str
    admin_email: str
    password: str
    selected_program_id: str
    trial_duration_days: Optional[int] = None
    max_users: Optional[int] = None
    parent_brand_id: Optional[str] = None


class FreeTrialCheckoutCommandHandler(CheckoutPreparation, CommandHandler[FreeTrialCheckoutCommand, CheckoutResult]):
    """Admin checkout with no charge and a trial end date; no billing follow-ups."""

    async def handle(self, command: FreeTrialCheckoutCommand) -> CheckoutResult:
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
                payment_amount_cents=0,
                parent_brand_id=command.parent_brand_id,
                program_ids=(program.id,),
                course_ids=program.course_ids,
                is_trial=True,
                trial_duration_days=command.trial_duration_days or self.settings.DEFAULT_TRIAL_DAYS,
                max_users=command.max_users,
                created_by_user_id=command.actor.id,
            ),
        )
        return CheckoutResult(provision=result)
