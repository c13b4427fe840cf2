# src/provisioning/domain/entities/profile.py
"""
Profile entity: the tenant-scoped user record that backs an Identity.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from provisioning.domain.value_objects.role import Role


@dataclass(frozen=True)
class Profile:
    id: str
    name: str
    email: str
    role: Role
    company_id: str
    assigned_location_ids: Tuple[str, ...] = ()
    is_active: bool = True
    is_deleted: bool = False
    identity_id: Optional[str] = None
    requires_password_change: bool = False

    def __post_init__(self) -> None:
        if not self.company_id:
            raise ValueError("Profile must belong to a company")
        if not self.email:
            raise ValueError("Profile email cannot be empty")

    def can_act(self) -> bool:
        """Inactive or deleted profiles may act on no one."""
        return self.is_active and not self.is_deleted

    def is_same(self, other: "Profile") -> bool:
        return self.id == other.id

    def to_document(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "company_id": self.company_id,
            "assigned_location_ids": list(self.assigned_location_ids),
            "is_active": self.is_active,
            "is_deleted": self.is_deleted,
            "identity_id": self.identity_id,
            "requires_password_change": self.requires_password_change,
        }

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Profile":
        return cls(
            id=doc_id,
            name=data.get("name") or "",
            email=data["email"],
            role=Role.from_string(data["role"]),
            company_id=data["company_id"],
            assigned_location_ids=tuple(data.get("assigned_location_ids") or ()),
            is_active=bool(data.get("is_active", True)),
            is_deleted=bool(data.get("is_deleted", False)),
            identity_id=data.get("identity_id"),
            requires_password_change=bool(data.get("requires_password_change", False)),
        )
