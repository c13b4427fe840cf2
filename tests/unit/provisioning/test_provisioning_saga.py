import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from fakes import payment_gateway_down
from provisioning.application.dto.provision_dto import Channel, ErrorKind, ProvisionInput, SagaState
from provisioning.application.services.provisioning_saga import (
    CHECKOUT_PASSWORD_HINT,
    SELF_CHOSEN_PASSWORD_HINT,
    ProvisioningSaga,
)
from provisioning.domain.exceptions import EmailAlreadyInUse, IdentityProviderError, PaymentError, StoreError
from provisioning.domain.protocols.tenant_store import COMPANIES, LOCATIONS, USERS


def signup(**overrides) -> ProvisionInput:
    fields = dict(
        customer_name="Dana Reyes",
        tenant_name="Reyes Fitness",
        admin_email="Dana@Reyes.test",
        password="hunter22!",
        channel=Channel.PUBLIC_SIGNUP,
        max_users=5,
    )
    fields.update(overrides)
    return ProvisionInput(**fields)


def checkout(**overrides) -> ProvisionInput:
    fields = dict(
        customer_name="Sam Ortiz",
        tenant_name="Ortiz Studios",
        admin_email="sam@ortiz.test",
        password="secret",
        channel=Channel.ADMIN_CHECKOUT,
        payment_amount_cents=5000,
        program_ids=("prog-1",),
        course_ids=("course-a", "course-b"),
        created_by_user_id="admin-1",
    )
    fields.update(overrides)
    return ProvisionInput(**fields)


def assert_nothing_left(store, identities):
    assert store.count(COMPANIES) == 0
    assert store.count(LOCATIONS) == 0
    assert store.count(USERS) == 0
    assert identities.identities == {}


# ---------- success ----------

async def test_signup_without_amount_never_charges(saga, payments, store, identities, notifications):
    result = await saga.provision(signup())

    assert result.success
    assert result.final_state is SagaState.PROVISIONED
    assert result.charge_ref is None
    assert payments.charges == []

    tenant = store.docs[COMPANIES][result.tenant_id]
    assert tenant["parent_brand_id"] is None
    assert tenant["is_trial"] is False
    assert tenant["max_users"] == 5

    location = store.docs[LOCATIONS][result.location_id]
    assert location["company_id"] == result.tenant_id
    assert location["name"] == "Main Location"

    profile = store.docs[USERS][result.profile_id]
    assert profile["role"] == "Admin"
    assert profile["email"] == "dana@reyes.test"
    assert profile["company_id"] == result.tenant_id
    assert profile["assigned_location_ids"] == [result.location_id]
    assert profile["identity_id"] == result.identity_id
    assert profile["is_active"] is True
    assert identities.identities[result.identity_id] == "dana@reyes.test"

    assert notifications.sent == [("dana@reyes.test", "Dana Reyes", SELF_CHOSEN_PASSWORD_HINT)]


async def test_zero_amount_is_free(saga, payments):
    result = await saga.provision(checkout(payment_amount_cents=0))
    assert result.success
    assert payments.charges == []


async def test_paid_checkout_charges_once_before_any_record(saga, payments, store, journal, notifications):
    result = await saga.provision(checkout())

    assert result.success
    assert payments.charges == [(5000, "usd")]
    assert result.charge_ref == "pi_1"
    tenant = store.docs[COMPANIES][result.tenant_id]
    assert tenant["sale_amount_cents"] == 5000
    assert tenant["assigned_program_ids"] == ["prog-1"]
    assert tenant["assigned_course_ids"] == ["course-a", "course-b"]
    assert tenant["created_by_user_id"] == "admin-1"
    assert [entry[1] for entry in journal] == [COMPANIES, LOCATIONS, "identities", USERS]
    assert notifications.sent[0][2] == CHECKOUT_PASSWORD_HINT


async def test_trial_sets_end_date_and_skips_charge(payments, identities, store, notifications, settings):
    now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    saga = ProvisioningSaga(payments, identities, store, notifications, settings=settings, clock=lambda: now)

    result = await saga.provision(checkout(is_trial=True, trial_duration_days=14, payment_amount_cents=0))

    assert result.success
    assert payments.charges == []
    tenant = store.docs[COMPANIES][result.tenant_id]
    assert tenant["is_trial"] is True
    assert tenant["trial_ends_at"] == (now + timedelta(days=14)).isoformat()
    assert tenant["sale_amount_cents"] == 0


async def test_trial_defaults_to_seven_days(payments, identities, store, notifications, settings):
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    saga = ProvisioningSaga(payments, identities, store, notifications, settings=settings, clock=lambda: now)

    result = await saga.provision(checkout(is_trial=True, payment_amount_cents=0))

    assert store.docs[COMPANIES][result.tenant_id]["trial_ends_at"] == (now + timedelta(days=7)).isoformat()


async def test_child_brand_under_top_level_parent(saga, store, parent_brand):
    result = await saga.provision(checkout(parent_brand_id=parent_brand, payment_amount_cents=0))
    assert result.success
    assert store.docs[COMPANIES][result.tenant_id]["parent_brand_id"] == "brand-top"


async def test_welcome_email_failure_does_not_fail_provisioning(saga, notifications, store):
    notifications.error = RuntimeError("smtp down")
    result = await saga.provision(signup())
    assert result.success
    assert store.count(USERS) == 1


# ---------- validation: no side effects ----------

@pytest.mark.parametrize(
    "data,field",
    [
        (signup(customer_name="  "), "customer_name"),
        (signup(tenant_name=""), "tenant_name"),
        (signup(admin_email="not-an-email"), "admin_email"),
        (signup(password="short12"), "password"),
        (checkout(password="five5"), "password"),
        (checkout(payment_amount_cents=49), "payment_amount_cents"),
        (checkout(payment_amount_cents=-1), "payment_amount_cents"),
        (checkout(is_trial=True, trial_duration_days=0), "trial_duration_days"),
        (checkout(max_users=0), "max_users"),
    ],
)
async def test_invalid_input_rejected_before_side_effects(saga, payments, store, identities, data, field):
    result = await saga.provision(data)

    assert not result.success
    assert result.reason is ErrorKind.VALIDATION_ERROR
    assert result.final_state is SagaState.PAYMENT_PENDING
    assert payments.charges == []
    assert_nothing_left(store, identities)


def test_password_minimums_per_channel(saga):
    saga.validate_input(signup(password="eight888"))
    saga.validate_input(checkout(password="six666"))


def test_minimum_charge_accepted(saga):
    saga.validate_input(checkout(payment_amount_cents=50))


async def test_parent_must_exist(saga, payments, store, identities):
    result = await saga.provision(checkout(parent_brand_id="nope"))
    assert result.reason is ErrorKind.VALIDATION_ERROR
    assert payments.charges == []
    assert_nothing_left(store, identities)


async def test_empty_parent_id_rejected_before_charge(saga, payments, store, identities):
    result = await saga.provision(checkout(parent_brand_id=""))

    assert result.reason is ErrorKind.VALIDATION_ERROR
    assert result.requires_reconciliation is False
    assert payments.charges == []
    assert_nothing_left(store, identities)


async def test_tenant_invariants_checked_before_charge(saga, payments, store, identities):
    store.seed(COMPANIES, "", {"name": "Blank Brand", "parent_brand_id": None})

    result = await saga.provision(checkout(parent_brand_id=""))

    assert result.reason is ErrorKind.VALIDATION_ERROR
    assert result.message == "Tenant cannot be its own parent"
    assert payments.charges == []
    assert store.count(COMPANIES) == 1
    assert store.count(LOCATIONS) == 0
    assert identities.identities == {}


async def test_parent_must_be_top_level(saga, store, payments):
    store.seed(COMPANIES, "brand-child", {"name": "Acme Downtown", "parent_brand_id": "brand-top"})
    result = await saga.provision(checkout(parent_brand_id="brand-child"))
    assert result.reason is ErrorKind.VALIDATION_ERROR
    assert payments.charges == []


async def test_parent_lookup_failure_is_retryable(saga, store, payments):
    store.fail("get", COMPANIES)
    result = await saga.provision(checkout(parent_brand_id="brand-top"))
    assert result.reason is ErrorKind.TENANT_CREATION_FAILED
    assert result.retryable is True
    assert payments.charges == []


# ---------- payment failures ----------

async def test_declined_payment_creates_nothing(saga, payments, store, identities):
    payments.charge_status = "requires_payment_method"

    result = await saga.provision(checkout())

    assert not result.success
    assert result.reason is ErrorKind.PAYMENT_ERROR
    assert result.code == PaymentError.code
    assert result.message == "Your card was declined."
    assert result.requires_reconciliation is False
    assert_nothing_left(store, identities)


async def test_gateway_outage_is_retryable_payment_error(saga, payments, store, identities):
    payments.charge_error = payment_gateway_down()

    result = await saga.provision(checkout())

    assert result.reason is ErrorKind.PAYMENT_ERROR
    assert result.retryable is True
    assert_nothing_left(store, identities)


# ---------- failures after records exist ----------

async def test_tenant_failure_after_charge_requires_reconciliation(saga, payments, store, identities):
    store.fail("create", COMPANIES)

    result = await saga.provision(checkout())

    assert result.reason is ErrorKind.TENANT_CREATION_FAILED
    assert result.final_state is SagaState.PAYMENT_CONFIRMED
    assert result.requires_reconciliation is True
    assert result.charge_ref == "pi_1"
    assert len(payments.charges) == 1
    assert_nothing_left(store, identities)

    error = result.to_error()
    assert error.details["requires_reconciliation"] is True
    assert error.details["charge_ref"] == "pi_1"


async def test_location_failure_removes_tenant(saga, store, identities, journal):
    store.fail("create", LOCATIONS)

    result = await saga.provision(signup())

    assert result.reason is ErrorKind.TENANT_CREATION_FAILED
    assert result.final_state is SagaState.TENANT_CREATED
    assert result.requires_reconciliation is False
    assert_nothing_left(store, identities)
    assert journal[-1][0:2] == ("delete", COMPANIES)


async def test_identity_failure_removes_location_and_tenant(saga, store, identities, journal):
    identities.create_error = IdentityProviderError("backend error", retryable=True)

    result = await saga.provision(signup())

    assert result.reason is ErrorKind.IDENTITY_CREATION_FAILED
    assert result.retryable is True
    assert_nothing_left(store, identities)
    assert [(op, col) for op, col, _ in journal[-2:]] == [("delete", LOCATIONS), ("delete", COMPANIES)]


async def test_email_collision_is_not_retryable(saga, store, identities):
    identities.register("dana@reyes.test")

    result = await saga.provision(signup())

    assert not result.success
    assert result.reason is ErrorKind.IDENTITY_CREATION_FAILED
    assert result.code == EmailAlreadyInUse.code
    assert result.retryable is False
    assert store.count(COMPANIES) == 0
    assert store.count(LOCATIONS) == 0
    assert list(identities.identities.values()) == ["dana@reyes.test"]
    assert result.to_error().status_code == 409


async def test_profile_failure_compensates_in_reverse_order(saga, store, identities, journal):
    store.fail("create", USERS)

    result = await saga.provision(signup())

    assert result.reason is ErrorKind.PROFILE_CREATION_FAILED
    assert result.final_state is SagaState.IDENTITY_CREATED
    assert_nothing_left(store, identities)
    forward = [(op, col) for op, col, _ in journal[:3]]
    backward = [(op, col) for op, col, _ in journal[3:]]
    assert forward == [("create", COMPANIES), ("create", LOCATIONS), ("create", "identities")]
    assert backward == [("delete", "identities"), ("delete", LOCATIONS), ("delete", COMPANIES)]
    # Each compensation targets the record its forward step created.
    assert [doc_id for *_, doc_id in journal[3:]] == [doc_id for *_, doc_id in reversed(journal[:3])]


async def test_identity_timeout_is_retryable(saga, identities, store):
    identities.create_delay = 1.0

    result = await saga.provision(signup())

    assert result.reason is ErrorKind.IDENTITY_CREATION_FAILED
    assert result.retryable is True
    assert store.count(COMPANIES) == 0


async def test_compensation_failure_is_recorded_and_original_reason_kept(saga, store, identities):
    store.fail("create", USERS)
    store.fail("delete", LOCATIONS, StoreError("location delete refused"))

    result = await saga.provision(checkout())

    assert result.reason is ErrorKind.PROFILE_CREATION_FAILED
    assert result.requires_reconciliation is True
    assert len(result.compensation_failures) == 1
    failure = result.compensation_failures[0]
    assert failure.step == "delete_location"
    assert failure.error == "location delete refused"
    # The other compensations still ran.
    assert identities.identities == {}
    assert store.count(COMPANIES) == 0
    assert store.count(LOCATIONS) == 1


async def test_identity_delete_failure_does_not_stop_store_cleanup(saga, store, identities):
    store.fail("create", USERS)
    identities.delete_error = IdentityProviderError("token expired", retryable=False)

    result = await saga.provision(signup())

    assert [f.step for f in result.compensation_failures] == ["delete_identity"]
    assert store.count(COMPANIES) == 0
    assert store.count(LOCATIONS) == 0


async def test_same_failure_twice_leaves_nothing_each_time(saga, store, identities):
    store.fail("create", USERS)

    for _ in range(2):
        result = await saga.provision(signup())

        assert result.reason is ErrorKind.PROFILE_CREATION_FAILED
        assert result.compensation_failures == []
        assert_nothing_left(store, identities)


# ---------- concurrency ----------

async def test_concurrent_signups_for_one_email_yield_one_tenant(saga, store, identities):
    identities.create_delay = 0.05

    first, second = await asyncio.gather(
        saga.provision(signup(tenant_name="Reyes Fitness")),
        saga.provision(signup(tenant_name="Reyes Fitness Two")),
    )

    winners = [r for r in (first, second) if r.success]
    losers = [r for r in (first, second) if not r.success]
    assert len(winners) == 1
    assert len(losers) == 1
    assert losers[0].code == EmailAlreadyInUse.code
    assert list(store.docs[COMPANIES]) == [winners[0].tenant_id]
    assert list(store.docs[LOCATIONS]) == [winners[0].location_id]
    assert store.count(USERS) == 1
    assert list(identities.identities.values()) == ["dana@reyes.test"]


# ---------- identity credentials ----------

async def test_identity_released_once_provisioned(saga, identities):
    result = await saga.provision(signup())

    assert identities.forgotten == [result.identity_id]


async def test_identity_kept_for_compensation_until_provisioned(saga, store, identities):
    store.fail("create", USERS)

    await saga.provision(signup())

    assert identities.forgotten == []


async def test_release_failure_does_not_fail_provisioning(saga, identities, monkeypatch):
    def broken(identity_id):
        raise RuntimeError("token cache unavailable")

    monkeypatch.setattr(identities, "forget", broken)

    result = await saga.provision(signup())

    assert result.success
