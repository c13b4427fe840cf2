from .authorization_policy import (
    ALL_LOCATIONS,
    Action,
    AuthorizationPolicy,
    assignable_roles,
    can_access_location,
    can_access_tenant,
    can_act_on,
    can_assign_role,
    can_provision_tenant,
    in_tenant_lineage,
    location_scope,
    rank,
)

__all__ = [
    "ALL_LOCATIONS",
    "Action",
    "AuthorizationPolicy",
    "assignable_roles",
    "can_access_location",
    "can_access_tenant",
    "can_act_on",
    "can_assign_role",
    "can_provision_tenant",
    "in_tenant_lineage",
    "location_scope",
    "rank",
]
