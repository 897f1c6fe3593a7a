"""
Ownership resolution - turn an action target into a ResourceDescriptor.

For an existing id this costs exactly one storage lookup (two for
equipment, which inherits ownership from its character). For creation
nothing exists yet, so the descriptor comes from the request payload.

Storage errors are never caught here; the resolver only shapes
successful lookups.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from lorevault.auth.roles import ResourceDescriptor, ResourceKind, parse_role, parse_visibility
from lorevault.errors import OwnershipResolutionError
from lorevault.storage.base import ResourceStorage
from lorevault.utils import normalize_id

logger = logging.getLogger(__name__)


# Kinds whose ownership is that of a parent row: kind -> (parent kind, foreign key)
INHERITED_OWNERSHIP: dict[ResourceKind, tuple[ResourceKind, str]] = {
    ResourceKind.EQUIPMENT: (ResourceKind.CHARACTERS, "character_id"),
}


async def resolve_ownership(
    storage: ResourceStorage | None,
    kind: ResourceKind | str,
    resource_id: str | None = None,
    payload: Mapping[str, Any] | None = None,
) -> ResourceDescriptor:
    """
    Resolve the descriptor the policy engine needs for an action target.

    Args:
        storage: Live storage handle. Required even for creation targets,
            a missing handle is a wiring bug and fails loudly.
        kind: Resource collection being acted on
        resource_id: Existing resource id (read/update/delete)
        payload: Request body (create), consulted only without an id

    Returns:
        The descriptor. When the id matches nothing, every field is None
        and callers must report NOT_FOUND.
    """
    if storage is None:
        raise OwnershipResolutionError(
            f"Storage handle not available while resolving ownership of {kind}"
        )

    kind = ResourceKind(kind)

    if resource_id is None:
        return descriptor_from_payload(payload)

    if kind == ResourceKind.USERS:
        return await _resolve_user(storage, resource_id)

    if kind in INHERITED_OWNERSHIP:
        parent_kind, foreign_key = INHERITED_OWNERSHIP[kind]
        row = await storage.find_one(kind.value, resource_id)
        parent_id = normalize_id(row.get(foreign_key)) if row else None
        if parent_id is None:
            logger.debug(f"No {parent_kind.value} parent for {kind.value}/{resource_id}")
            return ResourceDescriptor()
        return await _resolve_row(storage, parent_kind, parent_id)

    return await _resolve_row(storage, kind, resource_id)


def descriptor_from_payload(payload: Mapping[str, Any] | None) -> ResourceDescriptor:
    """
    Build a descriptor for a creation request.

    An unrecognized visibility literal is nulled, not rejected; rejecting
    it is the creating service's job. Integer owner ids are accepted in
    their string form.
    """
    if not payload:
        return ResourceDescriptor()

    return ResourceDescriptor(
        owner_id=normalize_id(payload.get("owner_id")),
        visibility=parse_visibility(payload.get("visibility")),
    )


async def _resolve_row(
    storage: ResourceStorage,
    kind: ResourceKind,
    resource_id: str,
) -> ResourceDescriptor:
    row = await storage.find_one(kind.value, resource_id)
    if row is None:
        return ResourceDescriptor()
    return ResourceDescriptor.from_entity(row)


async def _resolve_user(storage: ResourceStorage, user_id: str) -> ResourceDescriptor:
    # An account is its own owner; its role is both owner_role and target_role
    row = await storage.find_one(ResourceKind.USERS.value, user_id)
    if row is None:
        return ResourceDescriptor()
    role = parse_role(row.get("role"))
    return ResourceDescriptor(
        owner_id=row["id"],
        owner_role=role,
        target_role=role,
    )
