# src/provisioning/domain/entities/location.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Location:
    """A physical site of a tenant. Every tenant gets one default location at creation."""
    id: str
    company_id: str
    name: str = "Main Location"
    created_by: Optional[str] = None
    is_deleted: bool = False

    def __post_init__(self) -> None:
        if not self.company_id:
            raise ValueError("Location must belong to a company")
        if not self.name or not self.name.strip():
            raise ValueError("Location name cannot be empty")

    def to_document(self) -> Dict[str, Any]:
        return {
            "company_id": self.company_id,
            "name": self.name,
            "created_by": self.created_by,
            "is_deleted": self.is_deleted,
        }

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Location":
        return cls(
            id=doc_id,
            company_id=data["company_id"],
            name=data.get("name") or "Main Location",
            created_by=data.get("created_by"),
            is_deleted=bool(data.get("is_deleted", False)),
        )
