"""
Shared Layer - Cross-Cutting Concerns
Configuration, error contract, CQRS contracts, database session and logging
"""

# Infrastructure layer
from shared.infrastructure import (
    Base,
    DatabaseSessionFactory,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)

# Application layer
from shared.application import (
    BaseCommand,
    CommandHandler,
)

__all__ = [
    # Infrastructure - Database
    "Base",
    "DatabaseSessionFactory",
    # Infrastructure - Observability
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Application
    "BaseCommand",
    "CommandHandler",
]
