"""
Create Payment Intent Command
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

from shared.application.base_command import BaseCommand
from shared.application.command_handler import CommandHandler
from shared.config import Settings, get_settings
from shared.infrastructure.observability.logger import get_logger

from provisioning.application.services.provisioning_saga import validate_amount_cents
from provisioning.domain.exceptions import PaymentError
from provisioning.domain.protocols.payment_gateway import PaymentGateway

logger = get_logger(__name__)

FREE_CHECKOUT_CLIENT_SECRET = "pi_0_free_checkout"


@dataclass(frozen=True)
class CreatePaymentIntentCommand(BaseCommand):
    amount_cents: Any


class CreatePaymentIntentCommandHandler(CommandHandler[CreatePaymentIntentCommand, str]):
    """Returns the client secret the checkout page confirms the card payment with."""

    def __init__(self, payments: PaymentGateway, settings: Optional[Settings] = None) -> None:
        self.payments = payments
        self.settings = settings or get_settings()

    async def handle(self, command: CreatePaymentIntentCommand) -> str:
        validate_amount_cents(command.amount_cents, self.settings.MIN_CHARGE_CENTS)
        if command.amount_cents in (None, 0):
            logger.info("payment_intent_free_placeholder")
            return FREE_CHECKOUT_CLIENT_SECRET

        try:
            intent = await asyncio.wait_for(
                self.payments.create_payment_intent(command.amount_cents, self.settings.CHARGE_CURRENCY),
                timeout=self.settings.STEP_TIMEOUT_SECONDS,
            )
        except Exception as e:
            logger.error("payment_intent_failed", error=str(e) or e.__class__.__name__)
            raise PaymentError("Could not create the payment intent.") from e

        if not intent.client_secret:
            raise PaymentError("Payment intent has no client secret.")
        logger.info("payment_intent_created", intent_id=intent.id, amount_cents=command.amount_cents)
        return intent.client_secret
