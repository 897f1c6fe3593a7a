"""
Authorization - who may see and touch which entity.

Design principles:
1. Decisions are pure functions of (actor, descriptor)
2. Anonymous is None, always the most restrictive case
3. Concealment first: not viewable reads as not found
4. Ownership is resolved with at most one lookup per target
"""

from lorevault.auth.ownership import descriptor_from_payload, resolve_ownership
from lorevault.auth.policy import (
    can,
    can_create,
    can_manage_user,
    can_modify,
    can_modify_user,
    can_view,
    can_view_user,
    enforce_modify_permission,
    enforce_view_permission,
    require_actor,
)
from lorevault.auth.roles import (
    Action,
    Actor,
    ResourceDescriptor,
    ResourceKind,
    Role,
    Visibility,
    parse_role,
    parse_visibility,
)

__all__ = [
    # Decisions
    "can",
    "can_create",
    "can_manage_user",
    "can_modify",
    "can_modify_user",
    "can_view",
    "can_view_user",
    # Enforcement
    "enforce_modify_permission",
    "enforce_view_permission",
    "require_actor",
    # Ownership
    "descriptor_from_payload",
    "resolve_ownership",
    # Types
    "Action",
    "Actor",
    "ResourceDescriptor",
    "ResourceKind",
    "Role",
    "Visibility",
    "parse_role",
    "parse_visibility",
]
