# src/provisioning/application/services/provisioning_saga.py
"""
Provisioning saga.

Creates tenant, default location, identity and profile for one signup or
checkout. The identity provider and the document store share no transaction,
so every forward step pushes a compensating action; on failure the stack is
unwound in reverse order and the original failure is reported.

    PAYMENT_PENDING -> PAYMENT_CONFIRMED -> TENANT_CREATED -> LOCATION_CREATED
        -> IDENTITY_CREATED -> PROFILE_CREATED -> PROVISIONED

A confirmed charge is never refunded automatically: a failure after payment
flags the result ``requires_reconciliation`` and logs at critical level.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from shared.config import Settings, get_settings
from shared.infrastructure.observability.logger import get_logger, log_context

from provisioning.application.dto.provision_dto import (
    Channel,
    CompensationFailure,
    ErrorKind,
    ProvisionInput,
    ProvisionResult,
    SagaState,
)
from provisioning.domain.entities.location import Location
from provisioning.domain.entities.profile import Profile
from provisioning.domain.entities.tenant import NewTenant, Tenant
from provisioning.domain.exceptions import (
    CollaboratorError,
    EmailAlreadyInUse,
    IdentityCreationFailed,
    IdentityProviderError,
    PaymentError,
    ProfileCreationFailed,
    ProvisioningValidationError,
    TenantCreationFailed,
)
from provisioning.domain.protocols.identity_provider import IdentityProvider
from provisioning.domain.protocols.notification_sink import NotificationSink
from provisioning.domain.protocols.payment_gateway import PaymentGateway
from provisioning.domain.protocols.tenant_store import COMPANIES, LOCATIONS, USERS, TenantStore
from provisioning.domain.value_objects.email import Email
from provisioning.domain.value_objects.role import Role

logger = get_logger(__name__)

SELF_CHOSEN_PASSWORD_HINT = "your chosen password"
CHECKOUT_PASSWORD_HINT = "the password set during checkout"


class _StepFailed(Exception):
    """Internal signal: a forward step failed and the saga must unwind."""

    def __init__(self, kind: ErrorKind, message: str, code: str, retryable: bool) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code
        self.retryable = retryable


@dataclass
class _Compensation:
    step: str
    resource_id: str
    undo: Callable[[], Awaitable[None]]


@dataclass
class _SagaRun:
    """Mutable bookkeeping for a single provision() call."""
    saga_id: str
    state: SagaState = SagaState.PAYMENT_PENDING
    charge_ref: Optional[str] = None
    charged: bool = False
    tenant_id: Optional[str] = None
    location_id: Optional[str] = None
    identity_id: Optional[str] = None
    profile_id: Optional[str] = None
    compensations: List[_Compensation] = field(default_factory=list)


class ProvisioningSaga:
    """
    Orchestrates one provisioning call. Steps run strictly in sequence; every
    collaborator call is bounded by ``asyncio.wait_for``; nothing is retried.
    """

    def __init__(
        self,
        payments: PaymentGateway,
        identities: IdentityProvider,
        store: TenantStore,
        notifications: NotificationSink,
        *,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.payments = payments
        self.identities = identities
        self.store = store
        self.notifications = notifications
        self.settings = settings or get_settings()
        self.clock = clock

    @property
    def step_timeout(self) -> float:
        return self.settings.STEP_TIMEOUT_SECONDS

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def provision(self, data: ProvisionInput) -> ProvisionResult:
        run = _SagaRun(saga_id=uuid4().hex)
        with log_context(saga_id=run.saga_id, channel=data.channel.value, tenant_name=data.tenant_name):
            logger.info("provisioning_started", charges_payment=data.charges_payment, is_trial=data.is_trial)

            try:
                email, tenant_document = await self._check_preconditions(data)
            except ProvisioningValidationError as e:
                logger.info("provisioning_rejected", reason=e.message)
                return ProvisionResult.failed(ErrorKind.VALIDATION_ERROR, e.message, code=e.code)
            except _StepFailed as e:
                return ProvisionResult.failed(e.kind, e.message, code=e.code, retryable=e.retryable)

            try:
                await self._confirm_payment(run, data)
                await self._create_tenant(run, tenant_document)
                await self._create_location(run)
                await self._create_identity(run, email, data.password)
                await self._create_profile(run, data, email)
            except _StepFailed as failure:
                return await self._unwind(run, failure)

            run.state = SagaState.PROVISIONED
            self._release_identity(run.identity_id)
            logger.info(
                "provisioning_succeeded",
                tenant_id=run.tenant_id,
                profile_id=run.profile_id,
                location_id=run.location_id,
            )
            await self._send_welcome(data, email)

            assert run.tenant_id and run.location_id and run.identity_id and run.profile_id
            return ProvisionResult.ok(
                tenant_id=run.tenant_id,
                location_id=run.location_id,
                identity_id=run.identity_id,
                profile_id=run.profile_id,
                charge_ref=run.charge_ref,
            )

    # ------------------------------------------------------------------
    # Preconditions (no side effects)
    # ------------------------------------------------------------------

    def validate_input(self, data: ProvisionInput) -> str:
        """Synchronous input checks. Returns the normalized email."""
        if not data.customer_name or not data.customer_name.strip():
            raise ProvisioningValidationError("Customer name is required.", details={"field": "customer_name"})
        if not data.tenant_name or not data.tenant_name.strip():
            raise ProvisioningValidationError("Brand name is required.", details={"field": "tenant_name"})

        email = Email(data.admin_email).value

        min_len = (
            self.settings.PASSWORD_MIN_LENGTH_PUBLIC
            if data.channel is Channel.PUBLIC_SIGNUP
            else self.settings.PASSWORD_MIN_LENGTH_ADMIN
        )
        if not data.password or len(data.password) < min_len:
            raise ProvisioningValidationError(
                f"Password must be at least {min_len} characters.",
                details={"field": "password", "min_length": min_len},
            )

        validate_amount_cents(data.payment_amount_cents, self.settings.MIN_CHARGE_CENTS)

        if data.trial_duration_days is not None and data.trial_duration_days <= 0:
            raise ProvisioningValidationError(
                "Trial duration must be a positive number of days.",
                details={"field": "trial_duration_days"},
            )
        if data.max_users is not None and data.max_users < 1:
            raise ProvisioningValidationError(
                "max_users must be at least 1 when set.", details={"field": "max_users"}
            )
        return email

    async def _check_preconditions(self, data: ProvisionInput) -> Tuple[str, Dict[str, Any]]:
        """
        Everything that can reject the request runs here, before any charge.

        Returns the normalized email and the tenant document the tenant step
        will write, so entity invariants are checked before money moves.
        """
        email = self.validate_input(data)
        if data.parent_brand_id is not None:
            parent = await self._load_parent_brand(data.parent_brand_id)
            if parent is None or not parent.can_have_children():
                raise ProvisioningValidationError(
                    "Parent brand must be an existing top-level brand.",
                    details={"field": "parent_brand_id", "parent_brand_id": data.parent_brand_id},
                )
        try:
            tenant_document = self._build_tenant(data).to_document()
        except ValueError as e:
            raise ProvisioningValidationError(str(e), details={"field": "tenant"}) from e
        return email, tenant_document

    def _build_tenant(self, data: ProvisionInput) -> NewTenant:
        trial_ends_at = None
        if data.is_trial:
            days = data.trial_duration_days or self.settings.DEFAULT_TRIAL_DAYS
            trial_ends_at = self.clock() + timedelta(days=days)

        return NewTenant(
            name=data.tenant_name.strip(),
            parent_brand_id=data.parent_brand_id,
            is_trial=data.is_trial,
            trial_ends_at=trial_ends_at,
            max_users=data.max_users,
            assigned_program_ids=list(data.program_ids),
            assigned_course_ids=list(data.course_ids),
            sale_amount_cents=0 if data.is_trial else (data.payment_amount_cents or 0),
            created_by_user_id=data.created_by_user_id,
        )

    async def _load_parent_brand(self, parent_brand_id: str) -> Optional[Tenant]:
        try:
            doc = await self._bounded(self.store.get(COMPANIES, parent_brand_id))
        except Exception as e:
            logger.error("parent_brand_lookup_failed", parent_brand_id=parent_brand_id, error=str(e))
            raise _StepFailed(
                ErrorKind.TENANT_CREATION_FAILED,
                "Could not verify the parent brand. Please try again.",
                TenantCreationFailed.code,
                retryable=True,
            ) from e
        return Tenant.from_document(parent_brand_id, doc) if doc else None

    # ------------------------------------------------------------------
    # Forward steps
    # ------------------------------------------------------------------

    async def _confirm_payment(self, run: _SagaRun, data: ProvisionInput) -> None:
        if not data.charges_payment:
            run.state = SagaState.PAYMENT_CONFIRMED
            logger.info("payment_skipped")
            return

        amount = data.payment_amount_cents
        assert amount is not None
        try:
            charge = await self._bounded(
                self.payments.authorize_charge(amount, self.settings.CHARGE_CURRENCY)
            )
        except Exception as e:
            raise self._step_failure(ErrorKind.PAYMENT_ERROR, PaymentError.code, "payment", e) from e

        if not charge.succeeded:
            logger.warning("payment_declined", status=charge.status, charge_ref=charge.charge_ref)
            raise _StepFailed(
                ErrorKind.PAYMENT_ERROR,
                charge.failure_message or f"Payment was not confirmed (status: {charge.status}).",
                PaymentError.code,
                retryable=False,
            )

        run.charged = True
        run.charge_ref = charge.charge_ref
        run.state = SagaState.PAYMENT_CONFIRMED
        logger.info("payment_confirmed", charge_ref=charge.charge_ref, amount_cents=amount)

    async def _create_tenant(self, run: _SagaRun, tenant_document: Dict[str, Any]) -> None:
        try:
            tenant_id = await self._bounded(self.store.create(COMPANIES, tenant_document))
        except Exception as e:
            raise self._step_failure(
                ErrorKind.TENANT_CREATION_FAILED, TenantCreationFailed.code, "tenant", e
            ) from e

        run.tenant_id = tenant_id
        run.state = SagaState.TENANT_CREATED
        run.compensations.append(
            _Compensation("delete_tenant", tenant_id, lambda: self.store.delete(COMPANIES, tenant_id))
        )
        logger.info("tenant_created", tenant_id=tenant_id, trial_ends_at=tenant_document.get("trial_ends_at"))

    async def _create_location(self, run: _SagaRun) -> None:
        assert run.tenant_id is not None
        location = Location(id="", company_id=run.tenant_id, name=self.settings.DEFAULT_LOCATION_NAME)
        try:
            location_id = await self._bounded(self.store.create(LOCATIONS, location.to_document()))
        except Exception as e:
            raise self._step_failure(
                ErrorKind.TENANT_CREATION_FAILED, TenantCreationFailed.code, "location", e
            ) from e

        run.location_id = location_id
        run.state = SagaState.LOCATION_CREATED
        run.compensations.append(
            _Compensation("delete_location", location_id, lambda: self.store.delete(LOCATIONS, location_id))
        )
        logger.info("location_created", location_id=location_id)

    async def _create_identity(self, run: _SagaRun, email: str, password: str) -> None:
        try:
            identity_id = await self._bounded(self.identities.create_identity(email, password))
        except IdentityProviderError as e:
            if e.is_email_collision:
                logger.info("identity_email_in_use")
                raise _StepFailed(
                    ErrorKind.IDENTITY_CREATION_FAILED,
                    "This email address is already registered. Please log in instead.",
                    EmailAlreadyInUse.code,
                    retryable=False,
                ) from e
            raise self._step_failure(
                ErrorKind.IDENTITY_CREATION_FAILED, IdentityCreationFailed.code, "identity", e
            ) from e
        except Exception as e:
            raise self._step_failure(
                ErrorKind.IDENTITY_CREATION_FAILED, IdentityCreationFailed.code, "identity", e
            ) from e

        run.identity_id = identity_id
        run.state = SagaState.IDENTITY_CREATED
        run.compensations.append(
            _Compensation("delete_identity", identity_id, lambda: self.identities.delete_identity(identity_id))
        )
        logger.info("identity_created", identity_id=identity_id)

    async def _create_profile(self, run: _SagaRun, data: ProvisionInput, email: str) -> None:
        assert run.tenant_id and run.location_id and run.identity_id
        profile = Profile(
            id="",
            name=data.customer_name.strip(),
            email=email,
            role=Role.ADMIN,
            company_id=run.tenant_id,
            assigned_location_ids=(run.location_id,),
            is_active=True,
            identity_id=run.identity_id,
            requires_password_change=False,
        )
        try:
            profile_id = await self._bounded(self.store.create(USERS, profile.to_document()))
        except Exception as e:
            raise self._step_failure(
                ErrorKind.PROFILE_CREATION_FAILED, ProfileCreationFailed.code, "profile", e
            ) from e

        run.profile_id = profile_id
        run.state = SagaState.PROFILE_CREATED
        logger.info("profile_created", profile_id=profile_id)

    def _release_identity(self, identity_id: Optional[str]) -> None:
        if identity_id is None:
            return
        try:
            self.identities.forget(identity_id)
        except Exception as e:
            logger.warning("identity_release_failed", identity_id=identity_id, error=str(e))

    async def _send_welcome(self, data: ProvisionInput, email: str) -> None:
        hint = SELF_CHOSEN_PASSWORD_HINT if data.channel is Channel.PUBLIC_SIGNUP else CHECKOUT_PASSWORD_HINT
        try:
            await self._bounded(self.notifications.send_welcome(email, data.customer_name.strip(), hint))
        except Exception as e:
            logger.warning("welcome_email_failed", error=str(e))
        else:
            logger.info("welcome_email_sent")

    # ------------------------------------------------------------------
    # Failure handling
    # ------------------------------------------------------------------

    async def _unwind(self, run: _SagaRun, failure: _StepFailed) -> ProvisionResult:
        failed_at = run.state
        logger.warning(
            "provisioning_step_failed",
            state=failed_at.value,
            reason=failure.kind.value,
            code=failure.code,
            error=failure.message,
        )

        compensation_failures = await self._compensate(run)

        if run.charged:
            logger.critical(
                "charged_but_not_provisioned",
                charge_ref=run.charge_ref,
                failed_after=failed_at.value,
                reason=failure.kind.value,
            )

        return ProvisionResult.failed(
            failure.kind,
            failure.message,
            code=failure.code,
            final_state=failed_at,
            retryable=failure.retryable,
            requires_reconciliation=run.charged,
            charge_ref=run.charge_ref,
            compensation_failures=compensation_failures,
        )

    async def _compensate(self, run: _SagaRun) -> List[CompensationFailure]:
        """Undo completed steps in reverse order. Each undo is attempted independently."""
        failures: List[CompensationFailure] = []
        while run.compensations:
            comp = run.compensations.pop()
            try:
                await self._bounded(comp.undo())
            except Exception as e:
                logger.error(
                    "compensation_failed",
                    step=comp.step,
                    resource_id=comp.resource_id,
                    error=str(e) or e.__class__.__name__,
                )
                failures.append(
                    CompensationFailure(step=comp.step, resource_id=comp.resource_id, error=str(e) or e.__class__.__name__)
                )
            else:
                logger.info("compensation_applied", step=comp.step, resource_id=comp.resource_id)
        return failures

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _bounded(self, awaitable: Awaitable[Any]) -> Any:
        return await asyncio.wait_for(awaitable, timeout=self.step_timeout)

    @staticmethod
    def _step_failure(kind: ErrorKind, code: str, step: str, error: Exception) -> _StepFailed:
        retryable, detail = _classify(error)
        logger.error(f"{step}_step_error", error=detail, retryable=retryable)
        return _StepFailed(kind, _STEP_MESSAGES[step], code, retryable)


_STEP_MESSAGES = {
    "payment": "Payment could not be processed.",
    "tenant": "Failed to create the brand. Please try again.",
    "location": "Failed to create the brand's default location. Please try again.",
    "identity": "Failed to create user in authentication service.",
    "profile": "Failed to create the admin user account.",
}


def _classify(error: Exception) -> Tuple[bool, str]:
    """(retryable, description) for a collaborator failure."""
    if isinstance(error, asyncio.TimeoutError):
        return True, "timeout"
    if isinstance(error, CollaboratorError):
        return error.retryable, error.message
    return False, f"{error.__class__.__name__}: {error}"


def validate_amount_cents(amount_cents: Any, min_charge_cents: int) -> None:
    """
    ``None``/0 mean no charge; otherwise a non-negative integer of at least
    ``min_charge_cents``.
    """
    if amount_cents is None:
        return
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ProvisioningValidationError(
            "Amount must be an integer in cents.", details={"field": "payment_amount_cents"}
        )
    if amount_cents < 0:
        raise ProvisioningValidationError("Amount cannot be negative.", details={"field": "payment_amount_cents"})
    if 0 < amount_cents < min_charge_cents:
        raise ProvisioningValidationError(
            f"Amount must be at least {min_charge_cents} cents for a card payment.",
            details={"field": "payment_amount_cents", "min_amount_cents": min_charge_cents},
        )
