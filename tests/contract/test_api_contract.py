from fastapi.testclient import TestClient

from fakes import bearer, make_profile
from provisioning.domain.protocols.tenant_store import COMPANIES, USERS
from provisioning.domain.value_objects.role import Role

ERROR_KEYS = {"code", "message", "details"}

SIGNUP = {
    "customer_name": "Dana Reyes",
    "company_name": "Reyes Fitness",
    "admin_email": "dana@reyes.io",
    "password": "hunter22!",
}


def checkout_body(**overrides):
    body = {
        "actor_password": "admin-pass",
        "customer_name": "Sam Ortiz",
        "company_name": "Ortiz Studios",
        "admin_email": "sam@ortiz.io",
        "password": "secret",
        "selected_program_id": "prog-1",
        "payment_amount_cents": 5000,
    }
    body.update(overrides)
    return body


def assert_error(response, status: int, code: str):
    assert response.status_code == status
    data = response.json()
    assert ERROR_KEYS <= set(data.keys())
    assert data["code"] == code
    return data


def test_health(client: TestClient):
    assert client.get("/health").json()["status"] == "ok"


def test_request_id_echoed(client: TestClient):
    r = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert r.headers["X-Request-ID"] == "req-42"


def test_public_signup_created(client: TestClient, store):
    r = client.post("/api/v1/signup", json=SIGNUP)

    assert r.status_code == 201
    data = r.json()
    assert data["success"] is True
    assert data["charge_ref"] is None
    assert data["tenant_id"] in store.docs[COMPANIES]
    assert data["profile_id"] in store.docs[USERS]


def test_signup_email_collision_is_409(client: TestClient, identities):
    identities.register("dana@reyes.io")

    r = client.post("/api/v1/signup", json=SIGNUP)

    data = assert_error(r, 409, "email_already_in_use")
    assert data["details"]["retryable"] is False


def test_signup_short_password_is_422(client: TestClient):
    r = client.post("/api/v1/signup", json={**SIGNUP, "password": "short"})
    data = assert_error(r, 422, "validation_error")
    assert data["details"]["reason"] == "validation_error"


def test_signup_schema_errors_use_error_contract(client: TestClient):
    r = client.post("/api/v1/signup", json={**SIGNUP, "admin_email": "nope", "customer_name": "D"})
    data = assert_error(r, 422, "validation_error")
    assert {tuple(e["loc"])[-1] for e in data["details"]["errors"]} == {"admin_email", "customer_name"}


def test_admin_route_requires_token(client: TestClient):
    r = client.post("/api/v1/admin/checkout", json=checkout_body())
    assert_error(r, 401, "unauthorized")


def test_expired_token_rejected(client: TestClient, super_admin):
    r = client.post("/api/v1/admin/checkout", json=checkout_body(), headers=bearer(super_admin.id, expires_in=-60))
    assert_error(r, 401, "unauthorized")


def test_token_with_wrong_secret_rejected(client: TestClient, super_admin):
    r = client.post(
        "/api/v1/admin/checkout",
        json=checkout_body(),
        headers=bearer(super_admin.id, secret="some-other-secret-entirely-different-value"),
    )
    assert_error(r, 401, "unauthorized")


def test_inactive_actor_rejected(client: TestClient, store):
    actor = make_profile("gone-1", Role.SUPER_ADMIN, company_id="platform", is_active=False)
    store.seed(USERS, actor.id, actor.to_document())

    r = client.post("/api/v1/admin/checkout", json=checkout_body(), headers=bearer(actor.id))
    assert_error(r, 401, "unauthorized")


def test_super_admin_checkout(client: TestClient, super_admin, payments):
    r = client.post("/api/v1/admin/checkout", json=checkout_body(), headers=bearer(super_admin.id))

    assert r.status_code == 201
    data = r.json()
    assert data["charge_ref"] == "pi_1"
    assert data["stripe_customer_id"] == "cus_1"
    assert data["customer_purchase_id"]
    assert payments.charges == [(5000, "usd")]


def test_declined_checkout_is_402(client: TestClient, super_admin, payments):
    payments.charge_status = "requires_payment_method"

    r = client.post("/api/v1/admin/checkout", json=checkout_body(), headers=bearer(super_admin.id))

    data = assert_error(r, 402, "payment_failed")
    assert data["details"]["reason"] == "payment_error"


def test_charged_but_not_provisioned_is_flagged(client: TestClient, super_admin, store):
    store.fail("create", COMPANIES)

    r = client.post("/api/v1/admin/checkout", json=checkout_body(), headers=bearer(super_admin.id))

    data = assert_error(r, 503, "tenant_creation_failed")
    assert data["details"]["requires_reconciliation"] is True
    assert data["details"]["charge_ref"] == "pi_1"


def test_empty_parent_brand_id_is_422_and_not_charged(client: TestClient, super_admin, payments):
    r = client.post(
        "/api/v1/admin/checkout",
        json=checkout_body(parent_brand_id=""),
        headers=bearer(super_admin.id),
    )

    data = assert_error(r, 422, "validation_error")
    assert [tuple(e["loc"])[-1] for e in data["details"]["errors"]] == ["parent_brand_id"]
    assert payments.charges == []


def test_unknown_program_is_422(client: TestClient, super_admin):
    r = client.post(
        "/api/v1/admin/checkout",
        json=checkout_body(selected_program_id="prog-404"),
        headers=bearer(super_admin.id),
    )
    assert_error(r, 422, "program_not_found")


def test_staff_actor_forbidden(client: TestClient, store, parent_brand, parent_location):
    staff = make_profile("staff-1", Role.STAFF)
    store.seed(USERS, staff.id, staff.to_document())

    r = client.post(
        "/api/v1/admin/checkout",
        json=checkout_body(parent_brand_id=parent_brand),
        headers=bearer(staff.id),
    )

    assert_error(r, 403, "forbidden")


def test_free_trial_checkout(client: TestClient, super_admin, store, payments):
    r = client.post(
        "/api/v1/admin/free-trial-checkout",
        json={k: v for k, v in checkout_body(trial_duration_days=14).items() if k != "payment_amount_cents"},
        headers=bearer(super_admin.id),
    )

    assert r.status_code == 201
    assert store.docs[COMPANIES][r.json()["tenant_id"]]["is_trial"] is True
    assert payments.charges == []


def test_create_user(client: TestClient, admin_actor, notifications):
    r = client.post(
        "/api/v1/admin/users",
        json={
            "actor_password": "admin-pass",
            "name": "Jo Lee",
            "email": "jo@acme.io",
            "role": "Manager",
            "company_id": "brand-top",
            "assigned_location_ids": ["loc-top"],
        },
        headers=bearer(admin_actor.id),
    )

    assert r.status_code == 201
    data = r.json()
    assert len(data["temporary_password"]) == 12
    assert data["welcome_email_sent"] is True
    assert notifications.sent[0][2] == data["temporary_password"]


def test_create_user_with_higher_role_forbidden(client: TestClient, admin_actor):
    r = client.post(
        "/api/v1/admin/users",
        json={
            "actor_password": "admin-pass",
            "name": "Jo Lee",
            "email": "jo@acme.io",
            "role": "Admin",
            "company_id": "brand-top",
        },
        headers=bearer(admin_actor.id),
    )
    assert_error(r, 403, "forbidden")


def test_payment_intent(client: TestClient):
    r = client.post("/api/v1/payments/intents", json={"amount_cents": 2500})
    assert r.status_code == 201
    assert r.json() == {"client_secret": "pi_1_secret_2500"}


def test_payment_intent_below_minimum(client: TestClient):
    r = client.post("/api/v1/payments/intents", json={"amount_cents": 10})
    assert_error(r, 422, "validation_error")
