from .email import Email
from .role import ROLE_RANK, Role

__all__ = ["Email", "ROLE_RANK", "Role"]
