"""
Identity Provider Protocol (Interface)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ActorCredentials:
    """What the identity session needs to sign the acting admin back in."""
    email: str
    password: str


class IdentityProvider(Protocol):
    """
    External authentication service.

    ``create_identity`` signs the new user in on the shared client session,
    which is why admin flows re-authenticate afterwards. Adapters raise
    IdentityProviderError; email collisions carry ``code="email_already_in_use"``.
    """

    async def create_identity(self, email: str, password: str) -> str:
        """Create an identity bound to ``email``; returns its opaque id."""
        ...

    async def delete_identity(self, identity_id: str) -> None:
        """Delete an identity created earlier in the same call."""
        ...

    async def reauthenticate(self, credentials: ActorCredentials) -> None:
        """Restore the session of the acting admin."""
        ...

    def forget(self, identity_id: str) -> None:
        """Drop any credentials kept for a committed identity."""
        ...
