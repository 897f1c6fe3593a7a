"""
Route guards - declarative authorization as FastAPI dependencies.

Usage:
    @app.patch("/items/{resource_id}")
    async def update_item(
        resource_id: str,
        body: dict,
        actor: Actor = Depends(guard(ResourceKind.ITEMS, Action.UPDATE)),
    ):
        ...

Design:
- READ passes through; concealment (404 for the non-viewable) happens
  where the entity is loaded
- Every other action needs an authenticated actor
- UPDATE/DELETE/MANAGE resolve ownership of ``{resource_id}`` and check
  view before modify, so a hidden target reads as NOT_FOUND
- CREATE checks the ``owner_id`` of the JSON body, if any
- With ``rbac_enabled`` off every guard is a no-op
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from fastapi import Depends, Request

from lorevault.auth.ownership import resolve_ownership
from lorevault.auth.policy import can, require_actor
from lorevault.auth.roles import Action, Actor, ResourceDescriptor, ResourceKind
from lorevault.api.dependencies import get_actor, get_storage
from lorevault.config import get_settings
from lorevault.errors import ForbiddenError, InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


RESOURCE_ID_PARAM = "resource_id"


def enforce(
    actor: Actor | None,
    action: Action,
    descriptor: ResourceDescriptor,
    kind: ResourceKind | None = None,
) -> None:
    """
    Raise the error a guard reports for (actor, action, descriptor).

    Targeted actions (anything but CREATE) first require the target to be
    viewable; only then can FORBIDDEN be returned.
    """
    if action != Action.CREATE:
        if descriptor.is_empty or not can(actor, Action.READ, descriptor, kind):
            raise NotFoundError()
        if action == Action.READ:
            return
    if not can(actor, action, descriptor, kind):
        raise ForbiddenError(f"Not allowed to {action.value} this resource")


def guard(kind: ResourceKind | str, action: Action | str) -> Callable:
    """Build a FastAPI dependency enforcing ``action`` on ``kind``."""
    kind = ResourceKind(kind)
    action = Action(action)

    async def dependency(
        request: Request,
        actor: Actor | None = Depends(get_actor),
    ) -> Actor | None:
        if not get_settings().rbac_enabled:
            return actor
        if action == Action.READ:
            return actor

        actor = require_actor(actor)
        storage = get_storage(request)
        resource_id = request.path_params.get(RESOURCE_ID_PARAM)

        if action == Action.CREATE:
            payload = await _json_body(request)
            descriptor = await resolve_ownership(storage, kind, payload=payload)
        elif resource_id is None:
            raise InvalidInputError(f"Missing {RESOURCE_ID_PARAM}")
        else:
            descriptor = await resolve_ownership(storage, kind, resource_id)

        enforce(actor, action, descriptor, kind)
        logger.debug(f"{actor.id} allowed to {action.value} {kind.value}/{resource_id or 'new'}")
        return actor

    return dependency


async def _json_body(request: Request) -> dict[str, Any] | None:
    body = await request.body()
    if not body:
        return None
    try:
        payload = json.loads(body)
    except ValueError as e:
        raise InvalidInputError("Request body is not valid JSON") from e
    return payload if isinstance(payload, dict) else None
