import pytest
from fastapi.testclient import TestClient

from fakes import (
    JWT_SECRET,
    FakeIdentityProvider,
    FakeNotificationSink,
    FakePaymentGateway,
    FakeProgramCatalog,
    InMemoryTenantStore,
    Journal,
    make_profile,
)
from main import create_app
from provisioning.api.container import ProvisioningContainer
from provisioning.application.services.identity_session import IdentitySessionGuard
from provisioning.application.services.provisioning_saga import ProvisioningSaga
from provisioning.domain.entities.profile import Profile
from provisioning.domain.protocols.program_catalog import Program
from provisioning.domain.protocols.tenant_store import COMPANIES, LOCATIONS, USERS
from provisioning.domain.value_objects.role import Role
from shared.config import Settings, get_settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENVIRONMENT="test",
        JWT_SECRET=JWT_SECRET,
        JWT_ALGORITHM="HS256",
        STEP_TIMEOUT_SECONDS=0.2,
        LOG_JSON=False,
        _env_file=None,
    )


@pytest.fixture
def journal() -> Journal:
    return Journal()


@pytest.fixture
def store(journal) -> InMemoryTenantStore:
    return InMemoryTenantStore(journal)


@pytest.fixture
def payments() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def identities(journal) -> FakeIdentityProvider:
    return FakeIdentityProvider(journal)


@pytest.fixture
def notifications() -> FakeNotificationSink:
    return FakeNotificationSink()


@pytest.fixture
def program() -> Program:
    return Program(
        id="prog-1",
        title="Front Desk Essentials",
        course_ids=("course-a", "course-b"),
        stripe_first_price_id="price_123",
    )


@pytest.fixture
def catalog(program) -> FakeProgramCatalog:
    return FakeProgramCatalog([program], {"course-a": "Greeting Members", "course-b": "Handling Payments"})


@pytest.fixture
def saga(payments, identities, store, notifications, settings) -> ProvisioningSaga:
    return ProvisioningSaga(payments, identities, store, notifications, settings=settings)


@pytest.fixture
def session_guard(identities) -> IdentitySessionGuard:
    return IdentitySessionGuard(identities, reauth_timeout=0.2)


# ---------- seeded tenants and profiles ----------

@pytest.fixture
def parent_brand(store) -> str:
    return store.seed(COMPANIES, "brand-top", {"name": "Acme Group", "parent_brand_id": None, "is_deleted": False})


@pytest.fixture
def parent_location(store, parent_brand) -> str:
    return store.seed(LOCATIONS, "loc-top", {"company_id": parent_brand, "name": "Main Location", "is_deleted": False})


@pytest.fixture
def admin_actor(store, parent_brand, parent_location) -> Profile:
    actor = make_profile("admin-1", Role.ADMIN)
    store.seed(USERS, actor.id, actor.to_document())
    return actor


@pytest.fixture
def super_admin(store) -> Profile:
    actor = make_profile("root-1", Role.SUPER_ADMIN, company_id="platform", locations=())
    store.seed(USERS, actor.id, actor.to_document())
    return actor


# ---------- API ----------

@pytest.fixture
def container(settings, store, payments, identities, notifications, catalog) -> ProvisioningContainer:
    return ProvisioningContainer(
        settings=settings,
        store=store,
        payments=payments,
        identities=identities,
        notifications=notifications,
        catalog=catalog,
    )


@pytest.fixture
def client(container, settings):
    app = create_app(container=container, settings=settings)
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c

