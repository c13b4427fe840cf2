"""
Composition root: one set of collaborators per process.

The IdentitySessionGuard must be a process-wide singleton because the
identity provider client holds a single current session.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from shared.config import Settings
from shared.infrastructure.database.base_model import Base
from shared.infrastructure.database.session import DatabaseSessionFactory
from shared.infrastructure.observability.logger import get_logger

from provisioning.application.commands import (
    AdminCheckoutCommandHandler,
    CreatePaymentIntentCommandHandler,
    CreateUserCommandHandler,
    FreeTrialCheckoutCommandHandler,
    PublicSignupCommandHandler,
)
from provisioning.application.services.identity_session import IdentitySessionGuard
from provisioning.application.services.provisioning_saga import ProvisioningSaga
from provisioning.domain.protocols import (
    IdentityProvider,
    NotificationSink,
    PaymentGateway,
    ProgramCatalog,
    TenantStore,
)
from provisioning.infrastructure.adapters import (
    FirebaseIdentityProvider,
    SmtpNotificationSink,
    StripePaymentGateway,
)
from provisioning.infrastructure.persistence import DocumentProgramCatalog, SqlAlchemyTenantStore

logger = get_logger(__name__)


@dataclass
class ProvisioningContainer:
    settings: Settings
    store: TenantStore
    payments: PaymentGateway
    identities: IdentityProvider
    notifications: NotificationSink
    catalog: ProgramCatalog
    database: Optional[DatabaseSessionFactory] = None
    session_guard: IdentitySessionGuard = field(init=False)
    saga: ProvisioningSaga = field(init=False)

    def __post_init__(self) -> None:
        self.session_guard = IdentitySessionGuard(
            self.identities, reauth_timeout=self.settings.STEP_TIMEOUT_SECONDS
        )
        self.saga = ProvisioningSaga(
            self.payments,
            self.identities,
            self.store,
            self.notifications,
            settings=self.settings,
        )

    # ---- handlers ----

    def public_signup(self) -> PublicSignupCommandHandler:
        return PublicSignupCommandHandler(self.saga, self.session_guard, self.settings)

    def admin_checkout(self) -> AdminCheckoutCommandHandler:
        return AdminCheckoutCommandHandler(
            self.saga, self.session_guard, self.store, self.catalog, self.payments, self.settings
        )

    def free_trial_checkout(self) -> FreeTrialCheckoutCommandHandler:
        return FreeTrialCheckoutCommandHandler(
            self.saga, self.session_guard, self.store, self.catalog, self.settings
        )

    def create_user(self) -> CreateUserCommandHandler:
        return CreateUserCommandHandler(
            self.identities, self.store, self.notifications, self.session_guard, self.settings
        )

    def create_payment_intent(self) -> CreatePaymentIntentCommandHandler:
        return CreatePaymentIntentCommandHandler(self.payments, self.settings)

    # ---- lifecycle ----

    async def aclose(self) -> None:
        for client in (self.payments, self.identities):
            close: Any = getattr(client, "aclose", None)
            if close is not None:
                await close()
        if self.database is not None:
            await self.database.dispose()


async def build_default_container(settings: Settings) -> ProvisioningContainer:
    """Wire the production adapters from settings."""
    database = DatabaseSessionFactory(
        settings.effective_database_url,
        echo=settings.is_dev and settings.LOG_LEVEL.upper() == "DEBUG",
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
    )
    if settings.is_dev:
        await database.create_all(Base.metadata)

    store = SqlAlchemyTenantStore(database)
    container = ProvisioningContainer(
        settings=settings,
        store=store,
        payments=StripePaymentGateway(
            settings.STRIPE_API_KEY,
            base_url=settings.STRIPE_API_BASE,
            default_payment_method=settings.STRIPE_DEFAULT_PAYMENT_METHOD,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        ),
        identities=FirebaseIdentityProvider(
            settings.FIREBASE_API_KEY,
            base_url=settings.IDENTITY_API_BASE,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        ),
        notifications=SmtpNotificationSink(
            smtp_server=settings.SMTP_SERVER,
            smtp_port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            from_email=settings.FROM_EMAIL,
            app_name=settings.PROJECT_NAME,
            login_url=settings.APP_URL,
        ),
        catalog=DocumentProgramCatalog(store),
        database=database,
    )
    logger.info("provisioning_container_ready", environment=settings.ENVIRONMENT)
    return container
