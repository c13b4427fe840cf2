"""In-memory collaborators with failure injection."""
from __future__ import annotations

import asyncio
import copy
import itertools
import time
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

import jwt

from provisioning.domain.entities.profile import Profile

from provisioning.domain.exceptions import IdentityProviderError, PaymentGatewayError, StoreError
from provisioning.domain.protocols.identity_provider import ActorCredentials
from provisioning.domain.protocols.payment_gateway import ChargeResult, CustomerRequest, PaymentIntent
from provisioning.domain.protocols.program_catalog import Program
from provisioning.domain.value_objects.role import Role


class Journal(list):
    """Shared ordered log of side effects, e.g. ("delete", "locations", "locations-2")."""


class InMemoryTenantStore:
    def __init__(self, journal: Optional[Journal] = None) -> None:
        self.docs: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self.journal = journal if journal is not None else Journal()
        self._ids = itertools.count(1)
        self._failures: Dict[Tuple[str, str], BaseException] = {}
        self._delays: Dict[Tuple[str, str], float] = {}

    def fail(self, op: str, collection: str, error: Optional[BaseException] = None) -> None:
        self._failures[(op, collection)] = error or StoreError(f"{op} {collection} failed")

    def delay(self, op: str, collection: str, seconds: float) -> None:
        self._delays[(op, collection)] = seconds

    async def _enter(self, op: str, collection: str) -> None:
        seconds = self._delays.get((op, collection))
        if seconds:
            await asyncio.sleep(seconds)
        error = self._failures.get((op, collection))
        if error is not None:
            raise error

    def seed(self, collection: str, doc_id: str, data: Dict[str, Any]) -> str:
        self.docs[collection][doc_id] = copy.deepcopy(data)
        return doc_id

    def count(self, collection: str) -> int:
        return len(self.docs[collection])

    async def create(self, collection: str, data: Dict[str, Any]) -> str:
        await self._enter("create", collection)
        doc_id = f"{collection}-{next(self._ids)}"
        self.docs[collection][doc_id] = copy.deepcopy(data)
        self.journal.append(("create", collection, doc_id))
        return doc_id

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        await self._enter("get", collection)
        doc = self.docs[collection].get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        await self._enter("update", collection)
        if doc_id not in self.docs[collection]:
            raise StoreError(f"{collection}/{doc_id} does not exist", retryable=False)
        self.docs[collection][doc_id].update(copy.deepcopy(fields))
        self.journal.append(("update", collection, doc_id))

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._enter("delete", collection)
        self.docs[collection].pop(doc_id, None)
        self.journal.append(("delete", collection, doc_id))

    async def find(self, collection: str, **filters: Any) -> List[Dict[str, Any]]:
        await self._enter("find", collection)
        return [
            {"id": doc_id, **copy.deepcopy(doc)}
            for doc_id, doc in self.docs[collection].items()
            if all(doc.get(k) == v for k, v in filters.items())
        ]


class FakePaymentGateway:
    def __init__(self) -> None:
        self.charges: List[Tuple[int, str]] = []
        self.charge_status = ChargeResult.SUCCEEDED
        self.charge_error: Optional[BaseException] = None
        self.charge_delay = 0.0
        self.intents: List[int] = []
        self.customers: List[CustomerRequest] = []
        self.subscriptions: List[Tuple[str, str, int]] = []
        self.customer_error: Optional[BaseException] = None

    async def authorize_charge(self, amount_cents: int, currency: str) -> ChargeResult:
        self.charges.append((amount_cents, currency))
        if self.charge_delay:
            await asyncio.sleep(self.charge_delay)
        if self.charge_error is not None:
            raise self.charge_error
        ref = f"pi_{len(self.charges)}"
        if self.charge_status != ChargeResult.SUCCEEDED:
            return ChargeResult(status=self.charge_status, charge_ref=ref, failure_message="Your card was declined.")
        return ChargeResult(status=ChargeResult.SUCCEEDED, charge_ref=ref)

    async def create_payment_intent(self, amount_cents: int, currency: str) -> PaymentIntent:
        self.intents.append(amount_cents)
        n = len(self.intents)
        return PaymentIntent(id=f"pi_{n}", client_secret=f"pi_{n}_secret_{amount_cents}")

    async def create_customer(self, request: CustomerRequest) -> str:
        if self.customer_error is not None:
            raise self.customer_error
        self.customers.append(request)
        return f"cus_{len(self.customers)}"

    async def create_subscription(self, customer_id: str, price_id: str, trial_period_days: int) -> str:
        self.subscriptions.append((customer_id, price_id, trial_period_days))
        return f"sub_{len(self.subscriptions)}"


class FakeIdentityProvider:
    """Email-unique identity registry with a single current session."""

    def __init__(self, journal: Optional[Journal] = None) -> None:
        self.journal = journal if journal is not None else Journal()
        self.identities: Dict[str, str] = {}  # identity_id -> email
        self.current_session: Optional[str] = None
        self.reauth_calls: List[ActorCredentials] = []
        self.forgotten: List[str] = []
        self.create_error: Optional[BaseException] = None
        self.delete_error: Optional[BaseException] = None
        self.reauth_error: Optional[BaseException] = None
        self.create_delay = 0.0
        self._ids = itertools.count(1)

    def register(self, email: str) -> str:
        identity_id = f"uid-existing-{len(self.identities) + 1}"
        self.identities[identity_id] = email
        return identity_id

    async def create_identity(self, email: str, password: str) -> str:
        if self.create_delay:
            await asyncio.sleep(self.create_delay)
        if self.create_error is not None:
            raise self.create_error
        if email in self.identities.values():
            raise IdentityProviderError(
                "Email already in use", code=IdentityProviderError.EMAIL_EXISTS, retryable=False
            )
        identity_id = f"uid-{next(self._ids)}"
        self.identities[identity_id] = email
        self.current_session = identity_id
        self.journal.append(("create", "identities", identity_id))
        return identity_id

    async def delete_identity(self, identity_id: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.identities.pop(identity_id, None)
        self.journal.append(("delete", "identities", identity_id))

    def forget(self, identity_id: str) -> None:
        self.forgotten.append(identity_id)

    async def reauthenticate(self, credentials: ActorCredentials) -> None:
        self.reauth_calls.append(credentials)
        if self.reauth_error is not None:
            raise self.reauth_error
        self.current_session = f"actor:{credentials.email}"
        self.journal.append(("reauth", "identities", credentials.email))


class FakeNotificationSink:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []
        self.error: Optional[BaseException] = None

    async def send_welcome(self, email: str, name: str, password_hint: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((email, name, password_hint))


class FakeProgramCatalog:
    def __init__(self, programs: Sequence[Program] = (), course_titles: Optional[Dict[str, str]] = None) -> None:
        self.programs = {p.id: p for p in programs}
        self.course_titles = course_titles or {}

    async def get_program(self, program_id: str) -> Optional[Program]:
        return self.programs.get(program_id)

    async def get_course_titles(self, course_ids: Sequence[str]) -> List[str]:
        return [self.course_titles.get(c, f"Unknown Course (ID: {c})") for c in course_ids]


def payment_gateway_down() -> PaymentGatewayError:
    return PaymentGatewayError("gateway unavailable", retryable=True)


# ---------- helpers ----------

JWT_SECRET = "test-secret-for-provisioning-suite"


def make_profile(
    profile_id: str,
    role: Role,
    company_id: str = "brand-top",
    locations: tuple = ("loc-top",),
    **kw: Any,
) -> Profile:
    return Profile(
        id=profile_id,
        name=kw.pop("name", f"{role.value} user"),
        email=kw.pop("email", f"{profile_id}@acme.test"),
        role=role,
        company_id=company_id,
        assigned_location_ids=locations,
        **kw,
    )


def bearer(profile_id: str, *, expires_in: int = 600, secret: str = JWT_SECRET) -> Dict[str, str]:
    token = jwt.encode(
        {"sub": profile_id, "exp": int(time.time()) + expires_in},
        secret,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}
