# src/provisioning/domain/value_objects/role.py
"""Role value object with a fixed rank table."""

from enum import StrEnum
from typing import Final, Self

from provisioning.domain.exceptions import ProvisioningValidationError


class Role(StrEnum):
    """Closed set of profile roles. Values match the stored document strings."""

    SUPER_ADMIN = "Super Admin"
    ADMIN = "Admin"
    OWNER = "Owner"
    MANAGER = "Manager"
    STAFF = "Staff"

    def rank(self) -> int:
        """Return the rank of this role (higher = more privilege)."""
        return ROLE_RANK[self]

    def outranks(self, other: Self) -> bool:
        return self.rank() > other.rank()

    def is_tenant_wide(self) -> bool:
        """Roles that see every location of their tenant lineage."""
        return self in {Role.SUPER_ADMIN, Role.ADMIN, Role.OWNER}

    @classmethod
    def from_string(cls, role_str: str) -> Self:
        """
        Parse a stored or submitted role name.

        Accepts the display value ("Super Admin") or the member name
        ("SUPER_ADMIN", "super-admin").
        """
        s = role_str.strip()
        for role in cls:
            if role.value.lower() == s.lower():
                return role
        key = s.upper().replace("-", "_").replace(" ", "_")
        if key in cls.__members__:
            return cls[key]
        valid_roles = [role.value for role in cls]
        raise ProvisioningValidationError(f"Invalid role: {role_str}. Valid roles: {valid_roles}")


ROLE_RANK: Final[dict[Role, int]] = {
    Role.SUPER_ADMIN: 5,
    Role.ADMIN: 4,
    Role.OWNER: 3,
    Role.MANAGER: 2,
    Role.STAFF: 1,
}
