"""
Policy engine - the single source of truth for "may this actor do this".

Everything here is a pure function of (actor, descriptor). No I/O, no
state, no exceptions except in the explicit ``enforce_*`` helpers.

Design:
- The role hierarchy is spelled out as decision tables below rather than
  as comparable privilege levels, so the admin-vs-admin and
  moderator-vs-moderator carve-outs stay visible.
- Ownership short-circuits: an owner can always view and modify.
- Anonymous callers are ``None`` and only ever see PUBLIC content.
"""

from __future__ import annotations

from lorevault.auth.roles import Action, Actor, ResourceDescriptor, ResourceKind, Role, Visibility
from lorevault.errors import ForbiddenError, NotFoundError, UnauthorizedError


# =============================================================================
# Decision tables
# =============================================================================


# Visibility tiers a NON-owner may view, keyed by actor role (None = anonymous)
VIEWABLE_VISIBILITY: dict[Role | None, frozenset[Visibility]] = {
    None: frozenset({Visibility.PUBLIC}),
    Role.USER: frozenset({Visibility.PUBLIC}),
    Role.MODERATOR: frozenset({Visibility.PUBLIC, Visibility.HIDDEN}),
    Role.ADMIN: frozenset(Visibility),
}

# Owner roles whose content a NON-owner may modify (None = unknown/orphaned owner)
MODIFIABLE_OWNER_ROLES: dict[Role | None, frozenset[Role | None]] = {
    None: frozenset(),
    Role.USER: frozenset(),
    Role.MODERATOR: frozenset({Role.USER}),
    Role.ADMIN: frozenset({Role.USER, Role.MODERATOR, None}),
}

# Account roles an actor may moderate (ban, change role, ...)
MANAGEABLE_USER_ROLES: dict[Role | None, frozenset[Role]] = {
    None: frozenset(),
    Role.USER: frozenset(),
    Role.MODERATOR: frozenset({Role.USER}),
    Role.ADMIN: frozenset({Role.USER, Role.MODERATOR}),
}

# Account roles visible to a non-self actor in the users collection
VIEWABLE_USER_ROLES: dict[Role | None, frozenset[Role]] = {
    None: frozenset(),
    Role.USER: frozenset(),
    Role.MODERATOR: frozenset({Role.USER}),
    Role.ADMIN: frozenset(Role),
}


def _role_of(actor: Actor | None) -> Role | None:
    return actor.role if actor is not None else None


# =============================================================================
# Decisions
# =============================================================================


def can_view(actor: Actor | None, resource: ResourceDescriptor) -> bool:
    """Can the actor see this resource?"""
    if resource.is_owned_by(actor):
        return True
    if actor is not None and actor.role == Role.ADMIN:
        return True
    return resource.visibility in VIEWABLE_VISIBILITY[_role_of(actor)]


def can_modify(actor: Actor | None, resource: ResourceDescriptor) -> bool:
    """Can the actor update or delete this resource?"""
    if actor is None:
        return False
    if resource.is_owned_by(actor):
        return True
    return resource.owner_role in MODIFIABLE_OWNER_ROLES[actor.role]


def can_create(actor: Actor | None, target_owner_id: str | None = None) -> bool:
    """
    Can the actor create a resource?

    Any authenticated actor may create content for themselves. Only an
    ADMIN may create content on behalf of another owner.
    """
    if actor is None:
        return False
    if target_owner_id is None or target_owner_id == actor.id:
        return True
    return actor.role == Role.ADMIN


def can_view_user(actor: Actor | None, target_id: str | None, target_role: Role | None) -> bool:
    """Can the actor see this account in the users collection?"""
    if actor is None:
        return False
    if target_id is not None and target_id == actor.id:
        return True
    return target_role in VIEWABLE_USER_ROLES[actor.role]


def can_modify_user(actor: Actor | None, target_id: str | None, target_role: Role | None) -> bool:
    """
    Can the actor edit or delete this account?

    Everybody may edit their own account; only ADMIN edits others, and
    never another ADMIN. Moderators moderate (manage), they do not edit.
    """
    if actor is None:
        return False
    if target_id is not None and target_id == actor.id:
        return True
    return actor.role == Role.ADMIN and target_role != Role.ADMIN


def can_manage_user(actor: Actor | None, target_id: str | None, target_role: Role | None) -> bool:
    """Can the actor moderate another account? Nobody manages themselves."""
    if actor is None:
        return False
    if target_id is not None and target_id == actor.id:
        return False
    return target_role in MANAGEABLE_USER_ROLES[actor.role]


def can(
    actor: Actor | None,
    action: Action,
    resource: ResourceDescriptor,
    kind: ResourceKind | None = None,
) -> bool:
    """Dispatch an (action, resource) pair to the matching decision."""
    if kind == ResourceKind.USERS:
        if action == Action.READ:
            return can_view_user(actor, resource.owner_id, resource.target_role)
        if action in (Action.UPDATE, Action.DELETE):
            return can_modify_user(actor, resource.owner_id, resource.target_role)
        if action == Action.MANAGE:
            return can_manage_user(actor, resource.owner_id, resource.target_role)
        # Accounts are created by the auth layer; here only admins may
        return actor is not None and actor.role == Role.ADMIN

    if action == Action.READ:
        return can_view(actor, resource)
    if action == Action.CREATE:
        return can_create(actor, resource.owner_id)
    if action in (Action.UPDATE, Action.DELETE):
        return can_modify(actor, resource)
    if action == Action.MANAGE:
        return can_manage_user(actor, resource.owner_id, resource.target_role)
    return False


# =============================================================================
# Enforcement (raise instead of returning False)
# =============================================================================


def require_actor(actor: Actor | None, message: str = "Login required") -> Actor:
    """Return the actor, or raise UNAUTHORIZED for anonymous callers."""
    if actor is None:
        raise UnauthorizedError(message)
    return actor


def enforce_view_permission(
    actor: Actor | None,
    resource: ResourceDescriptor,
    not_found_message: str = "Resource not found",
) -> None:
    """
    Raise NOT_FOUND when the actor cannot view the resource.

    An empty descriptor means nothing was resolved, which is reported the
    same way as "exists but concealed".
    """
    if resource.is_empty or not can_view(actor, resource):
        raise NotFoundError(not_found_message)


def enforce_modify_permission(
    actor: Actor | None,
    resource: ResourceDescriptor,
    not_found_message: str = "Resource not found",
    forbidden_message: str = "Not allowed",
) -> None:
    """
    Raise NOT_FOUND when not viewable, otherwise FORBIDDEN when not modifiable.

    The view check always runs first so an actor who cannot see a resource
    never learns from a 403 that it exists.
    """
    enforce_view_permission(actor, resource, not_found_message)
    if not can_modify(actor, resource):
        raise ForbiddenError(forbidden_message)
