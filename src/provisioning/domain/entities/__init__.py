from .location import Location
from .profile import Profile
from .tenant import NewTenant, Tenant

__all__ = ["Location", "NewTenant", "Profile", "Tenant"]
