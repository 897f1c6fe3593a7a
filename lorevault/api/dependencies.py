"""
Request dependencies - who is calling, and which storage serves them.

Token issuance lives in the auth service; here we only verify. A bearer
token carries the actor id in ``sub`` and the role in ``role``.

Handles:
- Real JWT tokens (validated with the configured secret)
- Dev tokens "dev:<ROLE>:<id>" (non-production only, for local testing)

A missing or unverifiable token makes the caller anonymous, which is
always the most restrictive case.
"""

from __future__ import annotations

import logging

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from lorevault.auth.policy import require_actor
from lorevault.auth.roles import Actor, Role, parse_role
from lorevault.config import Settings, get_settings
from lorevault.storage.base import ResourceStorage

logger = logging.getLogger(__name__)


# Optional JWT bearer (doesn't fail if no token)
optional_bearer = HTTPBearer(auto_error=False)

DEV_TOKEN_PREFIX = "dev:"


def decode_actor_token(token: str, settings: Settings | None = None) -> Actor | None:
    """
    Turn a bearer token into an Actor, or None if it cannot be trusted.

    Unknown role claims are rejected rather than downgraded.
    """
    settings = settings or get_settings()

    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.InvalidTokenError as e:
        claims = None
        if settings.is_production or not token.startswith(DEV_TOKEN_PREFIX):
            logger.debug(f"Rejected bearer token: {e}")
            return None

    if claims is not None:
        subject = claims.get("sub")
        role = parse_role(claims.get("role", Role.USER.value))
        if not subject or role is None:
            logger.debug("Token without usable sub/role claims")
            return None
        return Actor(id=str(subject), role=role)

    # Dev mode only past this point
    _, _, rest = token.partition(DEV_TOKEN_PREFIX)
    role_name, _, actor_id = rest.partition(":")
    role = parse_role(role_name.upper())
    if role is None or not actor_id:
        return None
    return Actor(id=actor_id, role=role)


async def get_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> Actor | None:
    """The calling actor, or None for anonymous requests."""
    if not credentials:
        return None
    return decode_actor_token(credentials.credentials)


async def get_current_actor(actor: Actor | None = Depends(get_actor)) -> Actor:
    """Like get_actor, but UNAUTHORIZED for anonymous requests."""
    return require_actor(actor)


def get_storage(request: Request) -> ResourceStorage | None:
    """Storage collaborator registered on ``app.state.storage``."""
    return getattr(request.app.state, "storage", None)
