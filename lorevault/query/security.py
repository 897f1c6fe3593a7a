"""
Security filter composition.

Pushes the view policy into the storage query so list endpoints never
fetch rows only to discard them. The clause added for each role is the
filter form of ``policy.can_view`` and must stay in lockstep with it:
any row the filter admits passes can_view, and any row it excludes fails.
"""

from __future__ import annotations

from typing import Any

from lorevault.auth.policy import VIEWABLE_USER_ROLES, VIEWABLE_VISIBILITY
from lorevault.auth.roles import Actor, Role, Visibility
from lorevault.query.helpers import combine_filters
from lorevault.storage.base import Where


# Matches no row at all
MATCH_NOTHING: dict[str, Any] = {"id": {"in": []}}


def security_clause(actor: Actor | None) -> dict[str, Any] | None:
    """
    The where-clause restricting a collection to what ``actor`` may view.

    Returns None when no restriction applies (ADMIN).
    """
    if actor is not None and actor.role == Role.ADMIN:
        return None

    role = actor.role if actor is not None else None
    visibilities = sorted(VIEWABLE_VISIBILITY[role], key=list(Visibility).index)
    alternatives: list[dict[str, Any]] = [{"visibility": v.value} for v in visibilities]

    if actor is None:
        # Anonymous: PUBLIC only
        return alternatives[0] if len(alternatives) == 1 else {"OR": alternatives}

    alternatives.append({"owner_id": actor.id})
    return {"OR": alternatives}


def user_security_clause(actor: Actor | None) -> dict[str, Any] | None:
    """The where-clause for the users collection (accounts, not content)."""
    if actor is None:
        return dict(MATCH_NOTHING)
    if actor.role == Role.ADMIN:
        return None

    roles = sorted(VIEWABLE_USER_ROLES[actor.role], key=list(Role).index)
    if not roles:
        return {"id": actor.id}
    return {"OR": [*({"role": r.value} for r in roles), {"id": actor.id}]}


def apply_security_filters(filters: Where | None, actor: Actor | None) -> dict[str, Any]:
    """
    Restrict a content filter to entities ``actor`` may view.

    - anonymous  -> visibility == PUBLIC
    - ADMIN      -> unchanged
    - MODERATOR  -> PUBLIC or HIDDEN or owned
    - USER       -> PUBLIC or owned

    The input mapping is never modified.
    """
    return combine_filters(filters, security_clause(actor))


def apply_user_security_filters(filters: Where | None, actor: Actor | None) -> dict[str, Any]:
    """
    Restrict a users-collection filter.

    - anonymous  -> nothing
    - ADMIN      -> unchanged
    - MODERATOR  -> USER accounts and themselves
    - USER       -> themselves
    """
    return combine_filters(filters, user_security_clause(actor))
