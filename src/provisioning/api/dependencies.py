# src/provisioning/api/dependencies.py
from __future__ import annotations

from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request

from shared.config import Settings, get_settings
from shared.exceptions import UnauthorizedError
from shared.infrastructure.observability.logger import bind_context, get_logger

from provisioning.api.container import ProvisioningContainer
from provisioning.domain.entities.profile import Profile
from provisioning.domain.protocols.tenant_store import USERS

logger = get_logger(__name__)


def extract_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if not auth.lower().startswith("bearer "):
        return None
    return auth.split(" ", 1)[1].strip()


def decode_token(token: str, settings: Settings) -> Dict[str, Any]:
    """Verify signature and expiry; raises UnauthorizedError."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise UnauthorizedError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise UnauthorizedError("Invalid token") from e


def get_container(request: Request) -> ProvisioningContainer:
    return request.app.state.container


async def get_current_actor(
    request: Request,
    container: ProvisioningContainer = Depends(get_container),
    settings: Settings = Depends(get_settings),
) -> Profile:
    """
    Resolve the acting profile from the Bearer JWT. ``sub`` is the profile id;
    the profile must exist, be active and not deleted.
    """
    token = extract_bearer_token(request)
    if not token:
        raise UnauthorizedError("Missing bearer token")
    claims = decode_token(token, settings)
    profile_id = claims.get("sub")
    if not profile_id:
        raise UnauthorizedError("Token has no subject")

    doc = await container.store.get(USERS, str(profile_id))
    if doc is None:
        raise UnauthorizedError("Unknown user")
    actor = Profile.from_document(str(profile_id), doc)
    if not actor.can_act():
        raise UnauthorizedError("User is inactive")

    bind_context(actor_id=actor.id, actor_role=actor.role.value)
    return actor
