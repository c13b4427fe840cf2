# src/provisioning/domain/exceptions.py
"""Provisioning error taxonomy.

Every error carries a stable ``code`` from ``shared.error_codes`` so the API
layer can map it to the ``{"code", "message", "details"}`` contract.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from shared.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    InternalServerError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)


class ProvisioningValidationError(ValidationError):
    """Input rejected before any side effect."""


class PermissionDenied(AuthorizationError):
    """The acting profile may not perform the requested operation."""


class PaymentError(DomainError):
    code = "payment_failed"
    status_code = 402


class TenantCreationFailed(ServiceUnavailableError):
    code = "tenant_creation_failed"


class IdentityCreationFailed(ServiceUnavailableError):
    code = "identity_creation_failed"


class EmailAlreadyInUse(IdentityCreationFailed):
    """Terminal: the identity provider already holds an account for this email."""

    code = "email_already_in_use"
    status_code = 409


class ProfileCreationFailed(ServiceUnavailableError):
    code = "profile_creation_failed"


class CompensationFailed(InternalServerError):
    """Raised by nobody; recorded on results and logged when an undo step fails."""

    code = "compensation_failed"


class ProgramNotFound(ProvisioningValidationError):
    code = "program_not_found"


class TenantNotFound(NotFoundError):
    code = "tenant_not_found"


class UserLimitReached(ConflictError):
    code = "user_limit_reached"


# ───────────────────────── collaborator errors ─────────────────────────
# Raised by adapters; the saga maps them onto the step that was running.


class CollaboratorError(Exception):
    """Base class for failures reported by an external collaborator."""

    def __init__(self, message: str = "", *, retryable: bool = True, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.retryable = retryable
        self.details = details or {}


class PaymentGatewayError(CollaboratorError):
    pass


class IdentityProviderError(CollaboratorError):
    """Identity provider failure; ``code`` distinguishes email collisions."""

    EMAIL_EXISTS = "email_already_in_use"

    def __init__(self, message: str = "", *, code: Optional[str] = None, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)
        self.code = code

    @property
    def is_email_collision(self) -> bool:
        return self.code == self.EMAIL_EXISTS


class StoreError(CollaboratorError):
    pass
