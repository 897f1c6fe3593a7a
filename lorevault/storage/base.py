"""
Storage abstraction layer.

The authorization layer never talks to a database directly. It builds
filter and ordering fragments and hands them to a ResourceStorage, which
may be PostgreSQL, DynamoDB, or the in-memory store used in development.

Filter dialect (``Where``)
--------------------------
A where-mapping combines its entries with AND:

    {"visibility": "PUBLIC"}                       # equality
    {"created_at": {"lt": "2024-01-01T00:00:00"}}  # operator: lt lte gt gte in not contains
    {"name": {"contains": "orc", "mode": "insensitive"}}
    {"owner": {"email": "a@b.c"}}                  # nested relation
    {"OR": [{...}, {...}]}                         # any of
    {"AND": [{...}, {...}]}                        # all of

Ordering (``OrderBy``) is a list of single-key mappings, most significant
first: ``[{"created_at": "desc"}, {"id": "desc"}]``. Nested paths nest
the mapping: ``[{"owner": {"email": "asc"}}, {"id": "asc"}]``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

Where = Mapping[str, Any]
OrderBy = list[dict[str, Any]]

# Keys that turn a mapping into an operator clause instead of a relation
OPERATOR_KEYS = frozenset({"lt", "lte", "gt", "gte", "in", "not", "contains", "mode"})

# Id columns kept in string form by every implementation
ID_FIELDS = ("id", "owner_id")


class ResourceStorage(ABC):
    """
    Storage for owned, visibility-tagged entities.

    Rows are plain dictionaries. Every row has an ``id``; content rows also
    carry ``owner_id``, ``owner_role`` and ``visibility``.

    Ids are strings. Implementations store integer ``id`` and ``owner_id``
    values in their string form, so plain equality in a where-mapping and
    ownership checks in the policy engine always agree.
    """

    @abstractmethod
    async def find_one(self, kind: str, id: str) -> dict[str, Any] | None:
        """Get a row by ID."""
        pass

    @abstractmethod
    async def find_many(
        self,
        kind: str,
        where: Where | None = None,
        order_by: OrderBy | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Query rows matching ``where``, ordered, at most ``limit`` of them."""
        pass

    @abstractmethod
    async def count(self, kind: str, where: Where | None = None) -> int:
        """Count rows matching ``where``."""
        pass

    @abstractmethod
    async def create(self, kind: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a row and return it as stored."""
        pass

    @abstractmethod
    async def update(self, kind: str, id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        """Partially update a row; None if it does not exist."""
        pass

    @abstractmethod
    async def delete(self, kind: str, id: str) -> bool:
        """Delete a row; False if it did not exist."""
        pass
