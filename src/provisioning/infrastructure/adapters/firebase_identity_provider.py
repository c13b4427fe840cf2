"""Firebase Identity Toolkit REST adapter for the IdentityProvider protocol."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from shared.infrastructure.observability.logger import get_logger

from provisioning.domain.exceptions import IdentityProviderError
from provisioning.domain.protocols.identity_provider import ActorCredentials

logger = get_logger(__name__)

# Identity Toolkit error messages that are terminal for the request.
_TERMINAL_ERRORS = {
    "INVALID_EMAIL",
    "WEAK_PASSWORD",
    "OPERATION_NOT_ALLOWED",
    "INVALID_PASSWORD",
    "INVALID_LOGIN_CREDENTIALS",
    "EMAIL_NOT_FOUND",
    "USER_DISABLED",
}


@dataclass
class IdentitySession:
    local_id: str
    id_token: str


class FirebaseIdentityProvider:
    """
    Single-session client, like the web SDK the back office uses: signing up
    a user makes that user the current session, and ``reauthenticate`` puts
    the acting admin back.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://identitytoolkit.googleapis.com/v1",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.current_session: Optional[IdentitySession] = None
        # id tokens of identities still open for compensation, released by forget()
        self._created: Dict[str, str] = {}

    async def aclose(self) -> None:
        await self.client.aclose()

    async def create_identity(self, email: str, password: str) -> str:
        data = await self._call(
            "accounts:signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        session = IdentitySession(local_id=data["localId"], id_token=data["idToken"])
        self._created[session.local_id] = session.id_token
        self.current_session = session
        return session.local_id

    async def delete_identity(self, identity_id: str) -> None:
        id_token = self._created.get(identity_id)
        if id_token is None:
            raise IdentityProviderError(
                f"No session token for identity {identity_id}; delete it manually.",
                retryable=False,
            )
        await self._call("accounts:delete", {"idToken": id_token})
        self._created.pop(identity_id, None)
        if self.current_session and self.current_session.local_id == identity_id:
            self.current_session = None

    def forget(self, identity_id: str) -> None:
        """Release the id token of an identity that is no longer compensable."""
        self._created.pop(identity_id, None)
        if self.current_session and self.current_session.local_id == identity_id:
            self.current_session = None

    async def reauthenticate(self, credentials: ActorCredentials) -> None:
        data = await self._call(
            "accounts:signInWithPassword",
            {"email": credentials.email, "password": credentials.password, "returnSecureToken": True},
        )
        self.current_session = IdentitySession(local_id=data["localId"], id_token=data["idToken"])

    # ------------------------------------------------------------------

    async def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{method}"
        try:
            response = await self.client.post(url, params={"key": self.api_key}, json=payload)
        except httpx.TimeoutException as e:
            logger.error("identity_provider_timeout", method=method)
            raise IdentityProviderError("Identity provider timeout", retryable=True) from e
        except httpx.HTTPError as e:
            logger.error("identity_provider_transport_error", method=method, error=str(e))
            raise IdentityProviderError(f"Identity provider unreachable: {e}", retryable=True) from e

        if response.status_code == 200:
            return response.json()

        message = self._error_message(response)
        # Messages look like "WEAK_PASSWORD : Password should be at least 6 characters"
        reason = message.split(" ", 1)[0] if message else ""
        logger.warning("identity_provider_error", method=method, status_code=response.status_code, reason=reason)

        if reason == "EMAIL_EXISTS":
            raise IdentityProviderError(
                "Email already in use", code=IdentityProviderError.EMAIL_EXISTS, retryable=False
            )
        retryable = response.status_code >= 500 or reason not in _TERMINAL_ERRORS
        raise IdentityProviderError(message or f"Identity provider error ({response.status_code})", code=reason or None, retryable=retryable)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return str(response.json().get("error", {}).get("message", ""))
        except ValueError:
            return ""
