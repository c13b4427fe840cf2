# src/provisioning/domain/entities/tenant.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple


def _parse_dt(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Tenant:
    """
    Domain entity representing a tenant (company / brand).

    The hierarchy is two levels deep: a tenant is either top-level
    (``parent_brand_id is None``) or a child brand of a top-level tenant.
    ``max_users=None`` means unlimited.
    """
    id: str
    name: str
    parent_brand_id: Optional[str] = None
    is_trial: bool = False
    trial_ends_at: Optional[datetime] = None
    max_users: Optional[int] = None
    assigned_program_ids: Tuple[str, ...] = ()
    assigned_course_ids: Tuple[str, ...] = ()
    sale_amount_cents: int = 0
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    created_by_user_id: Optional[str] = None
    is_deleted: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        """Validate tenant invariants."""
        if not self.name or not self.name.strip():
            raise ValueError("Tenant name cannot be empty")
        if self.parent_brand_id is not None and self.parent_brand_id == self.id:
            raise ValueError("Tenant cannot be its own parent")
        if self.max_users is not None and self.max_users < 0:
            raise ValueError("max_users cannot be negative")

    def is_top_level(self) -> bool:
        return self.parent_brand_id is None

    def can_have_children(self) -> bool:
        """Only live top-level tenants may parent child brands."""
        return self.is_top_level() and not self.is_deleted

    def to_document(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "parent_brand_id": self.parent_brand_id,
            "is_trial": self.is_trial,
            "trial_ends_at": _iso(self.trial_ends_at),
            "max_users": self.max_users,
            "assigned_program_ids": list(self.assigned_program_ids),
            "assigned_course_ids": list(self.assigned_course_ids),
            "sale_amount_cents": self.sale_amount_cents,
            "stripe_customer_id": self.stripe_customer_id,
            "stripe_subscription_id": self.stripe_subscription_id,
            "created_by_user_id": self.created_by_user_id,
            "is_deleted": self.is_deleted,
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Tenant":
        return cls(
            id=doc_id,
            name=data["name"],
            parent_brand_id=data.get("parent_brand_id"),
            is_trial=bool(data.get("is_trial", False)),
            trial_ends_at=_parse_dt(data.get("trial_ends_at")),
            max_users=data.get("max_users"),
            assigned_program_ids=tuple(data.get("assigned_program_ids") or ()),
            assigned_course_ids=tuple(data.get("assigned_course_ids") or ()),
            sale_amount_cents=int(data.get("sale_amount_cents") or 0),
            stripe_customer_id=data.get("stripe_customer_id"),
            stripe_subscription_id=data.get("stripe_subscription_id"),
            created_by_user_id=data.get("created_by_user_id"),
            is_deleted=bool(data.get("is_deleted", False)),
            created_at=_parse_dt(data.get("created_at")) or datetime.now(timezone.utc),
        )


@dataclass(frozen=True)
class NewTenant:
    """Tenant fields before the store has minted an id."""
    name: str
    parent_brand_id: Optional[str] = None
    is_trial: bool = False
    trial_ends_at: Optional[datetime] = None
    max_users: Optional[int] = None
    assigned_program_ids: List[str] = field(default_factory=list)
    assigned_course_ids: List[str] = field(default_factory=list)
    sale_amount_cents: int = 0
    created_by_user_id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return Tenant(
            id="",
            name=self.name,
            parent_brand_id=self.parent_brand_id,
            is_trial=self.is_trial,
            trial_ends_at=self.trial_ends_at,
            max_users=self.max_users,
            assigned_program_ids=tuple(self.assigned_program_ids),
            assigned_course_ids=tuple(self.assigned_course_ids),
            sale_amount_cents=self.sale_amount_cents,
            created_by_user_id=self.created_by_user_id,
        ).to_document()
