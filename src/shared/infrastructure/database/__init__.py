"""
Shared Database Infrastructure
Declarative base and session management
"""
from shared.infrastructure.database.base_model import Base
from shared.infrastructure.database.session import DatabaseSessionFactory

__all__ = [
    "Base",
    "DatabaseSessionFactory",
]
