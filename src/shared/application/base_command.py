"""
Base Command Contract for CQRS
All commands (write operations) inherit from this
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class BaseCommand:
    """
    Base class for all commands in the system.

    Commands represent write operations (signup, checkout, user creation).
    They are immutable data structures that carry all necessary information.

    Each command should have a corresponding CommandHandler.

    Example:
        @dataclass(frozen=True)
        class PublicSignupCommand(BaseCommand):
            tenant_name: str
            admin_email: str
            password: str
    """

    # Optional: command metadata
    command_id: Optional[str] = field(default=None, kw_only=True)
    issued_by: Optional[str] = field(default=None, kw_only=True)  # Profile id that issued the command
