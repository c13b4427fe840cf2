# src/provisioning/domain/services/authorization_policy.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Literal, Optional, Union

from provisioning.domain.entities.location import Location
from provisioning.domain.entities.profile import Profile
from provisioning.domain.entities.tenant import Tenant
from provisioning.domain.exceptions import PermissionDenied
from provisioning.domain.value_objects.role import ROLE_RANK, Role


# ---- Normalization -----------------------------------------------------------

RoleLike = Union[str, Role]


def _to_role(value: RoleLike) -> Role:
    """
    Coerce a Role or any stored/submitted spelling ("Admin", "SUPER_ADMIN",
    "super-admin") into the Role enum.
    """
    if isinstance(value, Role):
        return value
    if isinstance(value, str):
        return Role.from_string(value)
    raise TypeError(f"Invalid role: {value!r}")


class Action(str, Enum):
    """What an actor wants to do to a target profile."""
    EDIT = "edit"                    # name, locations, contact details
    CHANGE_STATUS = "change_status"  # activate / deactivate / delete
    CHANGE_ROLE = "change_role"


ALL_LOCATIONS: Literal["all"] = "all"
LocationScope = Union[Literal["all"], FrozenSet[str]]


# ---- Hierarchy ---------------------------------------------------------------

def rank(role: RoleLike) -> int:
    """SuperAdmin=5 > Admin=4 > Owner=3 > Manager=2 > Staff=1."""
    return ROLE_RANK[_to_role(role)]


# ---- Lineage -----------------------------------------------------------------
# The only place that walks the parent/child relation. Depth is capped at two,
# so one hop up is the whole traversal.

def in_tenant_lineage(actor_company_id: Optional[str], tenant: Tenant) -> bool:
    """True if ``tenant`` is the actor's own tenant or a child brand of it."""
    if not actor_company_id:
        return False
    return tenant.id == actor_company_id or tenant.parent_brand_id == actor_company_id


def _company_in_lineage(actor: Profile, company_id: str, tenant: Optional[Tenant]) -> bool:
    if company_id == actor.company_id:
        return True
    if tenant is None or tenant.id != company_id:
        return False
    return in_tenant_lineage(actor.company_id, tenant)


def can_access_tenant(actor: Profile, tenant: Tenant) -> bool:
    if not actor.can_act():
        return False
    if actor.role is Role.SUPER_ADMIN:
        return True
    return in_tenant_lineage(actor.company_id, tenant)


# ---- Predicates --------------------------------------------------------------

def can_act_on(
    actor: Profile,
    target: Profile,
    target_tenant: Optional[Tenant] = None,
    action: Action = Action.EDIT,
) -> bool:
    """
    May ``actor`` perform ``action`` on ``target``?

    ``target_tenant`` is the target's tenant document; it is only needed when
    the target lives in a child brand of the actor's tenant.

    For any non-SuperAdmin actor with ``rank(actor) <= rank(target)`` this is
    False, apart from editing one's own profile. A Manager therefore acts on
    Staff only; the back-office employee table also lets a Manager act on a
    fellow Manager, which this rank rule deliberately does not allow.
    """
    if not actor.can_act():
        return False

    if actor.is_same(target):
        return action is Action.EDIT

    if actor.role is Role.SUPER_ADMIN:
        return not (target.role is Role.SUPER_ADMIN and action is Action.CHANGE_ROLE)

    if not _company_in_lineage(actor, target.company_id, target_tenant):
        return False

    if actor.role in (Role.ADMIN, Role.OWNER):
        return rank(actor.role) > rank(target.role)
    if actor.role is Role.MANAGER:
        return target.role is Role.STAFF
    return False


def can_assign_role(actor: Profile, requested_role: RoleLike) -> bool:
    """Actor must strictly outrank the role; SuperAdmin is never assignable."""
    requested = _to_role(requested_role)
    if not actor.can_act() or requested is Role.SUPER_ADMIN:
        return False
    return rank(actor.role) > rank(requested)


def assignable_roles(actor: Profile) -> list[Role]:
    """Roles the actor may hand out, highest first."""
    return sorted(
        (r for r in Role if can_assign_role(actor, r)),
        key=rank,
        reverse=True,
    )


def location_scope(actor: Profile) -> LocationScope:
    """
    ``"all"`` for SuperAdmin/Admin/Owner (within their lineage), otherwise the
    actor's own assigned locations.
    """
    if actor.role.is_tenant_wide():
        return ALL_LOCATIONS
    return frozenset(actor.assigned_location_ids)


def can_access_location(
    actor: Profile,
    location: Location,
    location_tenant: Optional[Tenant] = None,
) -> bool:
    if not actor.can_act() or location.is_deleted:
        return False
    if actor.role is Role.SUPER_ADMIN:
        return True
    if not _company_in_lineage(actor, location.company_id, location_tenant):
        return False
    scope = location_scope(actor)
    return scope == ALL_LOCATIONS or location.id in scope


def can_provision_tenant(actor: Profile, parent_brand: Optional[Tenant]) -> bool:
    """
    Admin checkout pre-check.

    SuperAdmin may provision anywhere. Admin/Owner may only create a child
    brand under their own live top-level tenant.
    """
    if not actor.can_act():
        return False
    if actor.role is Role.SUPER_ADMIN:
        return True
    if actor.role not in (Role.ADMIN, Role.OWNER) or parent_brand is None:
        return False
    return parent_brand.id == actor.company_id and parent_brand.can_have_children()


# ---- Policy Object (for DI/Testing) ------------------------------------------

@dataclass(frozen=True)
class AuthorizationPolicy:
    """Immutable policy service wrapping the module-level predicates."""

    def rank(self, role: RoleLike) -> int:
        return rank(role)

    def can_act_on(
        self,
        actor: Profile,
        target: Profile,
        target_tenant: Optional[Tenant] = None,
        action: Action = Action.EDIT,
    ) -> bool:
        return can_act_on(actor, target, target_tenant, action)

    def can_assign_role(self, actor: Profile, requested_role: RoleLike) -> bool:
        return can_assign_role(actor, requested_role)

    def location_scope(self, actor: Profile) -> LocationScope:
        return location_scope(actor)

    def can_access_tenant(self, actor: Profile, tenant: Tenant) -> bool:
        return can_access_tenant(actor, tenant)

    def can_access_location(
        self, actor: Profile, location: Location, location_tenant: Optional[Tenant] = None
    ) -> bool:
        return can_access_location(actor, location, location_tenant)

    def can_provision_tenant(self, actor: Profile, parent_brand: Optional[Tenant]) -> bool:
        return can_provision_tenant(actor, parent_brand)


# ---- Convenience Guards ------------------------------------------------------

def require_can_assign_role(actor: Profile, requested_role: RoleLike) -> None:
    if not can_assign_role(actor, requested_role):
        raise PermissionDenied(
            "You cannot assign this role.",
            details={"role": _to_role(requested_role).value},
        )


def require_tenant_access(actor: Profile, tenant: Tenant) -> None:
    if not can_access_tenant(actor, tenant):
        raise PermissionDenied("You cannot manage users of this brand.", details={"tenant_id": tenant.id})


def require_can_provision_tenant(actor: Profile, parent_brand: Optional[Tenant]) -> None:
    if not can_provision_tenant(actor, parent_brand):
        raise PermissionDenied(
            "You are not allowed to create a brand here.",
            details={"parent_brand_id": parent_brand.id if parent_brand else None},
        )


def require_can_act_on(
    actor: Profile,
    target: Profile,
    target_tenant: Optional[Tenant] = None,
    action: Action = Action.EDIT,
) -> None:
    if not can_act_on(actor, target, target_tenant, action):
        raise PermissionDenied(
            "You cannot perform this action on this user.",
            details={"target_id": target.id, "action": action.value},
        )
