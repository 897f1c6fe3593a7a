"""
Roles, visibility tiers, and the shapes every policy decision consumes.

This defines WHO is acting and WHAT they act on, not whether it is allowed.
The actual decisions happen in policy.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Platform-wide role of an authenticated actor.

    Ordered by privilege but NOT a total order: admins cannot touch other
    admins' content and moderators cannot touch other moderators' content.
    """

    USER = "USER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"


class Visibility(str, Enum):
    """Visibility tier of a stored entity."""

    PUBLIC = "PUBLIC"    # Anyone, including anonymous callers
    PRIVATE = "PRIVATE"  # Owner and ADMIN
    HIDDEN = "HIDDEN"    # Owner, ADMIN and MODERATOR


class Action(str, Enum):
    """What an actor is trying to do."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE = "manage"


class ResourceKind(str, Enum):
    """Collections managed through the authorization layer."""

    CHARACTERS = "characters"
    RACES = "races"
    ARCHETYPES = "archetypes"
    ITEMS = "items"
    SKILLS = "skills"
    PERKS = "perks"
    IMAGES = "images"
    TAGS = "tags"
    EQUIPMENT = "equipment"
    USERS = "users"


def parse_role(value: Any) -> Role | None:
    """Return the Role for a literal, or None if it is not a known role."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def parse_visibility(value: Any) -> Visibility | None:
    """Return the Visibility for a literal, or None if it is not recognized."""
    if isinstance(value, Visibility):
        return value
    try:
        return Visibility(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class Actor:
    """
    An authenticated caller.

    Anonymous callers are represented by ``None`` everywhere, never by an
    Actor with a placeholder role.
    """

    id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_moderator(self) -> bool:
        return self.role == Role.MODERATOR


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    The minimal ownership shape every policy and filter function needs.

    ``owner_role`` is stored on the entity at write time so that a decision
    never needs a second lookup. ``target_role`` is only set for the users
    collection, where the resource IS an account.
    """

    owner_id: str | None = None
    visibility: Visibility | None = None
    owner_role: Role | None = None
    target_role: Role | None = None

    @property
    def is_empty(self) -> bool:
        """True when nothing was resolved (typically: resource not found)."""
        return self.owner_id is None and self.visibility is None and self.owner_role is None

    def is_owned_by(self, actor: Actor | None) -> bool:
        return actor is not None and self.owner_id is not None and self.owner_id == actor.id

    @classmethod
    def from_entity(cls, entity: dict[str, Any]) -> ResourceDescriptor:
        """Reduce a stored row to its descriptor without further lookups."""
        # Compared as stored, like the security filter; stores keep ids as strings
        return cls(
            owner_id=entity.get("owner_id"),
            visibility=parse_visibility(entity.get("visibility")),
            owner_role=parse_role(entity.get("owner_role")),
        )
