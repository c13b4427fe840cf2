"""
Identity session guard.

The identity provider client keeps one signed-in session per process, and
creating an identity signs the new user in on it. Admin flows therefore run
inside ``hold()``, which serializes them and signs the acting admin back in
on every exit path. Public signup has no admin to restore and runs inside
``exclusive()``, which only takes the lock.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from shared.infrastructure.observability.logger import get_logger

from provisioning.domain.protocols.identity_provider import ActorCredentials, IdentityProvider

logger = get_logger(__name__)


class IdentitySessionGuard:
    def __init__(self, identities: IdentityProvider, *, reauth_timeout: Optional[float] = None) -> None:
        self.identities = identities
        self.reauth_timeout = reauth_timeout
        self._lock = asyncio.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def hold(self, actor_credentials: ActorCredentials) -> AsyncIterator[None]:
        """
        Hold the identity session for the whole block.

        Re-authentication failures are logged and never raised, so they cannot
        mask the block's own outcome.
        """
        async with self._lock:
            try:
                yield
            finally:
                await self._restore(actor_credentials)

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        """Serialize with admin flows without signing anyone back in."""
        async with self._lock:
            yield

    async def _restore(self, actor_credentials: ActorCredentials) -> None:
        try:
            await asyncio.wait_for(
                self.identities.reauthenticate(actor_credentials),
                timeout=self.reauth_timeout,
            )
        except Exception as e:
            logger.error("identity_session_reauth_failed", error=str(e) or e.__class__.__name__)
        else:
            logger.info("identity_session_restored")
