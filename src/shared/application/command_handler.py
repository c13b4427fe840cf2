"""
Base Command Handler
Abstract base for all command handlers
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from shared.application.base_command import BaseCommand
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)

TCommand = TypeVar("TCommand", bound=BaseCommand)
TResult = TypeVar("TResult")


class CommandHandler(ABC, Generic[TCommand, TResult]):
    """
    Abstract base class for command handlers.

    Command handlers execute write operations and enforce business rules.
    They run authorization checks and coordinate collaborators.

    Type Parameters:
        TCommand: Command type this handler processes
        TResult: Return type of the handler
    """

    @abstractmethod
    async def handle(self, command: TCommand) -> TResult:
        """
        Handle the command and return result.

        Raises:
            AuthorizationError: If the issuing actor may not run the command
            ValidationError: If command data invalid
        """

    async def __call__(self, command: TCommand) -> TResult:
        """
        Make handler callable directly.

        Adds logging around command execution.
        """
        command_name = command.__class__.__name__

        logger.info("command_started", command=command_name, issued_by=command.issued_by)

        try:
            result = await self.handle(command)
        except Exception as e:
            logger.error("command_failed", command=command_name, error=str(e))
            raise

        logger.info("command_finished", command=command_name)
        return result
