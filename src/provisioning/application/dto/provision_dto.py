"""
Provisioning DTOs: saga input, saga states and the structured result.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Type

from shared.exceptions import DomainError

from provisioning.domain.exceptions import (
    CompensationFailed,
    EmailAlreadyInUse,
    IdentityCreationFailed,
    PaymentError,
    PermissionDenied,
    ProfileCreationFailed,
    ProvisioningValidationError,
    TenantCreationFailed,
)


class Channel(str, Enum):
    PUBLIC_SIGNUP = "public_signup"
    ADMIN_CHECKOUT = "admin_checkout"


class SagaState(str, Enum):
    """Forward states, in order. Each state after PAYMENT_CONFIRMED has one compensation."""
    PAYMENT_PENDING = "PAYMENT_PENDING"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    TENANT_CREATED = "TENANT_CREATED"
    LOCATION_CREATED = "LOCATION_CREATED"
    IDENTITY_CREATED = "IDENTITY_CREATED"
    PROFILE_CREATED = "PROFILE_CREATED"
    PROVISIONED = "PROVISIONED"


class ErrorKind(str, Enum):
    """Primary failure reason carried on a failed ProvisionResult."""
    VALIDATION_ERROR = "validation_error"
    PAYMENT_ERROR = "payment_error"
    TENANT_CREATION_FAILED = "tenant_creation_failed"
    IDENTITY_CREATION_FAILED = "identity_creation_failed"
    PROFILE_CREATION_FAILED = "profile_creation_failed"
    PERMISSION_DENIED = "permission_denied"
    COMPENSATION_FAILED = "compensation_failed"


_KIND_TO_ERROR: Dict[ErrorKind, Type[DomainError]] = {
    ErrorKind.VALIDATION_ERROR: ProvisioningValidationError,
    ErrorKind.PAYMENT_ERROR: PaymentError,
    ErrorKind.TENANT_CREATION_FAILED: TenantCreationFailed,
    ErrorKind.IDENTITY_CREATION_FAILED: IdentityCreationFailed,
    ErrorKind.PROFILE_CREATION_FAILED: ProfileCreationFailed,
    ErrorKind.PERMISSION_DENIED: PermissionDenied,
    ErrorKind.COMPENSATION_FAILED: CompensationFailed,
}


@dataclass(frozen=True)
class ProvisionInput:
    customer_name: str
    tenant_name: str
    admin_email: str
    password: str
    channel: Channel = Channel.PUBLIC_SIGNUP
    payment_amount_cents: Optional[int] = None
    parent_brand_id: Optional[str] = None
    program_ids: Tuple[str, ...] = ()
    course_ids: Tuple[str, ...] = ()
    trial_duration_days: Optional[int] = None
    is_trial: bool = False
    max_users: Optional[int] = None
    created_by_user_id: Optional[str] = None

    @property
    def charges_payment(self) -> bool:
        return bool(self.payment_amount_cents) and not self.is_trial


@dataclass(frozen=True)
class CompensationFailure:
    """One undo step that did not complete; left for manual cleanup."""
    step: str
    resource_id: str
    error: str


@dataclass(frozen=True)
class ProvisionResult:
    success: bool
    final_state: SagaState
    tenant_id: Optional[str] = None
    location_id: Optional[str] = None
    identity_id: Optional[str] = None
    profile_id: Optional[str] = None
    charge_ref: Optional[str] = None
    reason: Optional[ErrorKind] = None
    message: Optional[str] = None
    code: Optional[str] = None
    retryable: bool = False
    requires_reconciliation: bool = False
    compensation_failures: Tuple[CompensationFailure, ...] = field(default_factory=tuple)

    @classmethod
    def ok(
        cls,
        *,
        tenant_id: str,
        location_id: str,
        identity_id: str,
        profile_id: str,
        charge_ref: Optional[str],
    ) -> "ProvisionResult":
        return cls(
            success=True,
            final_state=SagaState.PROVISIONED,
            tenant_id=tenant_id,
            location_id=location_id,
            identity_id=identity_id,
            profile_id=profile_id,
            charge_ref=charge_ref,
        )

    @classmethod
    def failed(
        cls,
        reason: ErrorKind,
        message: str,
        *,
        code: str,
        final_state: SagaState = SagaState.PAYMENT_PENDING,
        retryable: bool = False,
        requires_reconciliation: bool = False,
        charge_ref: Optional[str] = None,
        compensation_failures: List[CompensationFailure] | Tuple[CompensationFailure, ...] = (),
    ) -> "ProvisionResult":
        return cls(
            success=False,
            final_state=final_state,
            reason=reason,
            message=message,
            code=code,
            retryable=retryable,
            requires_reconciliation=requires_reconciliation,
            charge_ref=charge_ref,
            compensation_failures=tuple(compensation_failures),
        )

    def to_error(self) -> DomainError:
        """Rebuild the domain error for the HTTP error contract."""
        if self.success or self.reason is None:
            raise ValueError("Successful results carry no error")
        if self.code == EmailAlreadyInUse.code:
            error_cls: Type[DomainError] = EmailAlreadyInUse
        else:
            error_cls = _KIND_TO_ERROR.get(self.reason, DomainError)
        details: Dict[str, object] = {
            "reason": self.reason.value,
            "retryable": self.retryable,
        }
        if self.requires_reconciliation:
            details["requires_reconciliation"] = True
            details["charge_ref"] = self.charge_ref
        if self.compensation_failures:
            details["compensation_failures"] = [
                {"step": f.step, "resource_id": f.resource_id, "error": f.error} for f in self.compensation_failures
            ]
        return error_cls(self.message or "", code=self.code, details=details)


@dataclass(frozen=True)
class CheckoutResult:
    """Admin checkout outcome: the saga result plus best-effort billing follow-ups."""
    provision: ProvisionResult
    customer_purchase_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.provision.success


@dataclass(frozen=True)
class CreateUserResult:
    profile_id: str
    identity_id: str
    temporary_password: str
    welcome_email_sent: bool = False
