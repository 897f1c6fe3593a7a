"""
Visibility masking - narrow the SHAPE of entities after a fetch.

Masking runs after the view decision has been made (a view check for a
single read, a security filter for a list). It never changes whether an
entity is returned, only which fields are.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from lorevault.auth.policy import can_view
from lorevault.auth.roles import Actor, ResourceDescriptor, Role, Visibility
from lorevault.constants import DESCRIPTIVE_FIELDS, HIDDEN_SENTINEL, OWNER_FIELDS


def may_see_owner(actor: Actor | None, entity: Mapping[str, Any]) -> bool:
    """
    Can the viewer see who owns this entity?

    Owner and ADMIN always; MODERATOR only on HIDDEN entities (the tier
    moderators exist to review).
    """
    descriptor = ResourceDescriptor.from_entity(dict(entity))
    if descriptor.is_owned_by(actor):
        return True
    if actor is None:
        return False
    if actor.role == Role.ADMIN:
        return True
    return actor.role == Role.MODERATOR and descriptor.visibility == Visibility.HIDDEN


def mask_entity(entity: Mapping[str, Any] | None, actor: Actor | None) -> dict[str, Any] | None:
    """Return a copy of ``entity`` without owner-identifying fields the viewer may not see."""
    if entity is None:
        return None
    if may_see_owner(actor, entity):
        return dict(entity)
    return {key: value for key, value in entity.items() if key not in OWNER_FIELDS}


def mask_entities(
    entities: Iterable[Mapping[str, Any]],
    actor: Actor | None,
) -> list[dict[str, Any]]:
    """Mask every entity of a list page."""
    return [mask_entity(entity, actor) for entity in entities]


def conceal_descriptive_fields(entity: Mapping[str, Any]) -> dict[str, Any]:
    """Replace present descriptive string fields with the hidden sentinel."""
    concealed = dict(entity)
    for name in DESCRIPTIVE_FIELDS:
        if name in concealed and (concealed[name] is None or isinstance(concealed[name], str)):
            concealed[name] = HIDDEN_SENTINEL
    return concealed


def mask_related(
    entity: Mapping[str, Any] | None,
    actor: Actor | None,
    keys: Iterable[str],
    null_if_not_viewable: bool = False,
) -> dict[str, Any] | None:
    """
    Mask entities embedded under ``keys`` (e.g. equipment slots).

    The parent was already authorized, but an embedded entity was not:
    one the viewer cannot view keeps its place with descriptive fields
    concealed, or becomes None when ``null_if_not_viewable`` is set. One
    the viewer can view only gets the usual owner masking.
    """
    if entity is None:
        return None

    masked = dict(entity)
    for key in keys:
        related = masked.get(key)
        if not isinstance(related, Mapping):
            continue
        if can_view(actor, ResourceDescriptor.from_entity(dict(related))):
            masked[key] = mask_entity(related, actor)
        elif null_if_not_viewable:
            masked[key] = None
        else:
            masked[key] = mask_entity(conceal_descriptive_fields(related), actor)
    return masked
