from .identity_session import IdentitySessionGuard
from .provisioning_saga import ProvisioningSaga, validate_amount_cents

__all__ = ["IdentitySessionGuard", "ProvisioningSaga", "validate_amount_cents"]
