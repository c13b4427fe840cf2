"""
Shared Application Layer
CQRS command contracts and handlers
"""
from shared.application.base_command import BaseCommand
from shared.application.command_handler import CommandHandler

__all__ = [
    "BaseCommand",
    "CommandHandler",
]
