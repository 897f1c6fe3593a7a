"""
Resource service - the authorization-aware facade a route handler calls.

One instance per content collection. It strings the boundary components
together in a fixed order:

    get     storage.find_one -> can_view -> mask
    list    security filter -> cursor -> (anonymous: cache) -> find_many -> mask
    create  require actor -> ownership from payload -> can_create -> store -> invalidate
    update  resolve ownership -> view, then modify check -> store -> invalidate
    delete  resolve ownership -> view, then modify check -> delete -> invalidate

Cache invalidation happens before a mutation returns, so a caller that
saw the mutation's response never reads a stale anonymous list.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from lorevault.auth.ownership import INHERITED_OWNERSHIP, resolve_ownership
from lorevault.auth.policy import (
    can_create,
    can_view,
    enforce_modify_permission,
    require_actor,
)
from lorevault.auth.roles import (
    Actor,
    ResourceDescriptor,
    ResourceKind,
    Role,
    Visibility,
    parse_role,
    parse_visibility,
)
from lorevault.cache import ListCache, build_cache_key, get_list_cache, list_prefix
from lorevault.constants import LIST_CACHE_TTL_SECONDS, PRIMARY_KEY
from lorevault.errors import ForbiddenError, InvalidInputError, NotFoundError
from lorevault.query.cursor import apply_cursor, build_order_by, build_page
from lorevault.query.helpers import build_where
from lorevault.query.masking import mask_entity, mask_related
from lorevault.query.models import ListQuery, ListResult, Pagination
from lorevault.query.security import apply_security_filters
from lorevault.storage.base import ResourceStorage

logger = logging.getLogger(__name__)


# Written by the service itself, never taken from a request body
PROTECTED_FIELDS = frozenset({PRIMARY_KEY, "owner_id", "owner_role", "created_at", "updated_at"})

DEFAULT_SORTABLE_FIELDS: tuple[str, ...] = ("created_at", "updated_at", "name", PRIMARY_KEY)
DEFAULT_SEARCH_FIELDS: tuple[str, ...] = ("name", "description")


class ResourceService:
    """
    Authorization-aware CRUD and listing for one content collection.

    Args:
        kind: The collection (anything but users and equipment, which have
            their own ownership rules)
        storage: Storage collaborator
        cache: Anonymous list cache; defaults to the process-wide one
        sortable_fields: Allowed ``sort_by`` values
        filterable_fields: Extra query parameters accepted as equality filters
        search_fields: Fields matched by ``search`` (case-insensitive contains)
        related_fields: Keys holding embedded entities to mask (e.g. slots)
    """

    def __init__(
        self,
        kind: ResourceKind | str,
        storage: ResourceStorage,
        cache: ListCache | None = None,
        sortable_fields: Iterable[str] = DEFAULT_SORTABLE_FIELDS,
        filterable_fields: Iterable[str] = (),
        search_fields: Iterable[str] = DEFAULT_SEARCH_FIELDS,
        related_fields: Iterable[str] = (),
        cache_ttl: float = LIST_CACHE_TTL_SECONDS,
    ):
        self.kind = ResourceKind(kind)
        if self.kind == ResourceKind.USERS or self.kind in INHERITED_OWNERSHIP:
            raise ValueError(f"{self.kind.value} does not carry its own ownership columns")

        self.storage = storage
        self.cache = cache if cache is not None else get_list_cache()
        self.sortable_fields = frozenset(sortable_fields)
        self.filterable_fields = frozenset(filterable_fields)
        self.search_fields = tuple(search_fields)
        self.related_fields = tuple(related_fields)
        self.cache_ttl = cache_ttl

    @property
    def cache_prefix(self) -> str:
        return list_prefix(self.kind.value)

    @property
    def label(self) -> str:
        """Singular display name used in error messages ("Item")."""
        return self.kind.value.removesuffix("s").capitalize()

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, resource_id: str, actor: Actor | None = None) -> dict[str, Any]:
        """Fetch one entity; NOT_FOUND when absent or not viewable."""
        row = await self.storage.find_one(self.kind.value, resource_id)
        if row is None or not can_view(actor, ResourceDescriptor.from_entity(row)):
            raise NotFoundError(f"{self.label} not found")
        return self._present(row, actor)

    async def list(
        self,
        query: ListQuery | Mapping[str, Any] | None = None,
        actor: Actor | None = None,
    ) -> ListResult:
        """
        List entities the actor may view, one cursor page at a time.

        Anonymous results are served from and stored into the list cache.
        """
        params = ListQuery.parse(query)
        if params.sort_by not in self.sortable_fields:
            raise InvalidInputError(f"Cannot sort {self.kind.value} by {params.sort_by}")

        where = apply_security_filters(self._business_filters(params), actor)
        # Decodes (and validates) the cursor before cache or storage is touched
        where = apply_cursor(where, params.cursor, params.sort_by, params.sort_dir)
        order_by = build_order_by(params.sort_by, params.sort_dir)

        cache_key = self._cache_key(params) if actor is None else None
        if cache_key is not None:
            hit = self.cache.get(cache_key)
            if isinstance(hit, ListResult):
                logger.debug(f"List cache hit: {cache_key}")
                # Callers own what they get back; the cached page stays untouched
                return hit.model_copy(deep=True)
            if hit is not None:
                logger.warning(f"Ignoring unexpected list cache value under {cache_key}")

        rows = await self.storage.find_many(self.kind.value, where, order_by, params.limit + 1)
        page = build_page(rows, params.limit, params.sort_by)

        result = ListResult(
            items=[self._present(row, actor) for row in page.items],
            pagination=Pagination(
                has_next=page.has_next,
                has_prev=bool(params.cursor),
                limit=params.limit,
                next_cursor=page.next_cursor,
                prev_cursor=params.cursor,
            ),
        )

        if cache_key is not None:
            self.cache.set(cache_key, result.model_copy(deep=True), self.cache_ttl)
        return result

    async def stats(self, actor: Actor | None) -> dict[str, Any]:
        """Counts per visibility tier; moderators and admins only."""
        actor = require_actor(actor)
        if actor.role not in (Role.ADMIN, Role.MODERATOR):
            raise ForbiddenError(f"You do not have permission to view {self.kind.value} statistics")

        by_visibility = {
            v.value: await self.storage.count(self.kind.value, {"visibility": v.value})
            for v in Visibility
        }
        return {
            "total": await self.storage.count(self.kind.value),
            "by_visibility": by_visibility,
        }

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create(self, payload: Mapping[str, Any], actor: Actor | None) -> dict[str, Any]:
        """
        Create an entity owned by the actor (or, for admins, by ``owner_id``).

        ``owner_role`` is copied onto the row here so later policy checks
        need no user lookup.
        """
        actor = require_actor(actor)
        descriptor = await resolve_ownership(self.storage, self.kind, payload=payload)

        if payload.get("owner_id") is not None and descriptor.owner_id is None:
            raise InvalidInputError(f"Invalid owner_id: {payload.get('owner_id')!r}")
        if payload.get("visibility") is not None and descriptor.visibility is None:
            raise InvalidInputError(f"Invalid visibility: {payload.get('visibility')!r}")
        if not can_create(actor, descriptor.owner_id):
            raise ForbiddenError(f"You may not create {self.kind.value} for another owner")

        owner_id = descriptor.owner_id or actor.id
        owner_role = actor.role if owner_id == actor.id else await self._owner_role(owner_id)

        data = {key: value for key, value in payload.items() if key not in PROTECTED_FIELDS}
        data.update(
            owner_id=owner_id,
            owner_role=owner_role.value,
            visibility=(descriptor.visibility or Visibility.PUBLIC).value,
        )

        row = await self.storage.create(self.kind.value, data)
        self.invalidate()
        logger.info(f"{self.label} {row[PRIMARY_KEY]} created by {actor.id}")
        return self._present(row, actor)

    async def update(
        self,
        resource_id: str,
        changes: Mapping[str, Any],
        actor: Actor | None,
    ) -> dict[str, Any]:
        """Apply a partial update; NOT_FOUND before FORBIDDEN."""
        actor = require_actor(actor)
        descriptor = await resolve_ownership(self.storage, self.kind, resource_id)
        enforce_modify_permission(
            actor,
            descriptor,
            not_found_message=f"{self.label} not found",
            forbidden_message=f"You do not have permission to modify this {self.label.lower()}",
        )

        data = {key: value for key, value in changes.items() if key not in PROTECTED_FIELDS}
        if "visibility" in data:
            visibility = parse_visibility(data["visibility"])
            if visibility is None:
                raise InvalidInputError(f"Invalid visibility: {data['visibility']!r}")
            data["visibility"] = visibility.value

        row = await self.storage.update(self.kind.value, resource_id, data)
        if row is None:
            raise NotFoundError(f"{self.label} not found")

        self.invalidate()
        logger.info(f"{self.label} {resource_id} updated by {actor.id}")
        return self._present(row, actor)

    async def delete(self, resource_id: str, actor: Actor | None) -> None:
        """Delete an entity; NOT_FOUND before FORBIDDEN."""
        actor = require_actor(actor)
        descriptor = await resolve_ownership(self.storage, self.kind, resource_id)
        enforce_modify_permission(
            actor,
            descriptor,
            not_found_message=f"{self.label} not found",
            forbidden_message=f"You do not have permission to delete this {self.label.lower()}",
        )

        if not await self.storage.delete(self.kind.value, resource_id):
            raise NotFoundError(f"{self.label} not found")

        self.invalidate()
        logger.info(f"{self.label} {resource_id} deleted by {actor.id}")

    def invalidate(self) -> int:
        """Drop every cached anonymous list of this collection."""
        return self.cache.invalidate_prefix(self.cache_prefix)

    # =========================================================================
    # Internals
    # =========================================================================

    def _business_filters(self, params: ListQuery) -> dict[str, Any]:
        extras = params.extra_filters
        unknown = sorted(set(extras) - self.filterable_fields)
        if unknown:
            raise InvalidInputError(f"Unknown filter: {', '.join(unknown)}")

        filters = build_where({
            "visibility": params.visibility.value if params.visibility else None,
            **extras,
        })
        if params.search and self.search_fields:
            filters["OR"] = [
                {name: {"contains": params.search, "mode": "insensitive"}}
                for name in self.search_fields
            ]
        return filters

    def _cache_key(self, params: ListQuery) -> str | None:
        try:
            return build_cache_key(self.cache_prefix, params.cache_params())
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping list cache for {self.kind.value}: {e}")
            return None

    async def _owner_role(self, owner_id: str) -> Role:
        user = await self.storage.find_one(ResourceKind.USERS.value, owner_id)
        role = parse_role(user.get("role")) if user else None
        if role is None:
            raise InvalidInputError(f"Unknown owner: {owner_id}")
        return role

    def _present(self, row: Mapping[str, Any], actor: Actor | None) -> dict[str, Any]:
        masked = mask_entity(row, actor)
        if self.related_fields:
            masked = mask_related(masked, actor, self.related_fields)
        return masked
