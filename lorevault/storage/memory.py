"""
In-memory storage for development and tests.

Implements the full filter dialect described in storage.base so that the
security filters and cursor fragments built by the query layer can be
exercised without a database.
"""

from __future__ import annotations

import copy
from typing import Any, Mapping

from lorevault.storage.base import ID_FIELDS, OPERATOR_KEYS, OrderBy, ResourceStorage, Where
from lorevault.utils import generate_id, normalize_id, utc_now_iso


# =============================================================================
# Filter evaluation
# =============================================================================


def matches(row: Mapping[str, Any], where: Where | None) -> bool:
    """Does ``row`` satisfy the where-mapping?"""
    if not where:
        return True

    for key, condition in where.items():
        if key == "AND":
            if not all(matches(row, clause) for clause in condition):
                return False
        elif key == "OR":
            if not any(matches(row, clause) for clause in condition):
                return False
        elif not _match_field(row.get(key), condition):
            return False
    return True


def _match_field(value: Any, condition: Any) -> bool:
    if isinstance(condition, Mapping):
        if condition and condition.keys() <= OPERATOR_KEYS:
            return _match_operators(value, condition)
        # Relation: apply the nested where to the embedded row
        if not isinstance(value, Mapping):
            return False
        return matches(value, condition)
    return value == condition


def _match_operators(value: Any, ops: Mapping[str, Any]) -> bool:
    insensitive = ops.get("mode") == "insensitive"

    for op, operand in ops.items():
        if op == "mode":
            continue
        if op == "in":
            if value not in operand:
                return False
        elif op == "not":
            if _match_field(value, operand):
                return False
        elif op == "contains":
            if not isinstance(value, str):
                return False
            haystack, needle = (value.casefold(), str(operand).casefold()) if insensitive else (value, str(operand))
            if needle not in haystack:
                return False
        elif not _compare(value, op, operand):
            return False
    return True


def _compare(value: Any, op: str, operand: Any) -> bool:
    # SQL semantics: comparisons against NULL are never true
    if value is None or operand is None:
        return False
    try:
        if op == "lt":
            return value < operand
        if op == "lte":
            return value <= operand
        if op == "gt":
            return value > operand
        if op == "gte":
            return value >= operand
    except TypeError:
        return False
    return False


# =============================================================================
# Ordering
# =============================================================================


def _flatten_order(clause: Mapping[str, Any]) -> tuple[list[str], str]:
    """{"owner": {"email": "asc"}} -> (["owner", "email"], "asc")"""
    path: list[str] = []
    node: Any = clause
    while isinstance(node, Mapping):
        (key, node), = node.items()
        path.append(key)
    return path, str(node)


def _get_path(row: Mapping[str, Any], path: list[str]) -> Any:
    value: Any = row
    for part in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def _null_last(value: Any) -> tuple[bool, Any]:
    # NULLs never get compared with each other or with real values
    return (True, 0) if value is None else (False, value)


def sort_rows(rows: list[dict[str, Any]], order_by: OrderBy | None) -> list[dict[str, Any]]:
    """Sort rows by a multi-key ordering. NULLs sort last ascending, first descending."""
    ordered = list(rows)
    # Stable sorts applied least-significant first
    for clause in reversed(order_by or []):
        path, direction = _flatten_order(clause)
        ordered.sort(
            key=lambda r, p=path: _null_last(_get_path(r, p)),
            reverse=direction == "desc",
        )
    return ordered


# =============================================================================
# In-Memory Resource Storage
# =============================================================================


class InMemoryResourceStorage(ResourceStorage):
    """In-memory row storage keyed by resource kind."""

    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    async def find_one(self, kind: str, id: str) -> dict[str, Any] | None:
        row = self._data.get(kind, {}).get(id)
        return copy.deepcopy(row) if row is not None else None

    async def find_many(
        self,
        kind: str,
        where: Where | None = None,
        order_by: OrderBy | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        rows = [row for row in self._data.get(kind, {}).values() if matches(row, where)]
        rows = sort_rows(rows, order_by)
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def count(self, kind: str, where: Where | None = None) -> int:
        return sum(1 for row in self._data.get(kind, {}).values() if matches(row, where))

    async def create(self, kind: str, data: dict[str, Any]) -> dict[str, Any]:
        now = utc_now_iso()
        row = {
            "created_at": now,
            **_normalize_ids(data),
            "updated_at": now,
        }
        row.setdefault("id", generate_id())
        self._data.setdefault(kind, {})[row["id"]] = row
        return copy.deepcopy(row)

    async def update(self, kind: str, id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        row = self._data.get(kind, {}).get(id)
        if row is None:
            return None
        row.update(_normalize_ids(changes))
        row["updated_at"] = utc_now_iso()
        return copy.deepcopy(row)

    async def delete(self, kind: str, id: str) -> bool:
        if id in self._data.get(kind, {}):
            del self._data[kind][id]
            return True
        return False


def _normalize_ids(data: dict[str, Any]) -> dict[str, Any]:
    normalized = copy.deepcopy(data)
    for name in ID_FIELDS:
        value = normalized.get(name)
        if isinstance(value, int) and not isinstance(value, bool):
            normalized[name] = normalize_id(value)
    return normalized


def create_memory_storage() -> InMemoryResourceStorage:
    """Create an empty in-memory store."""
    return InMemoryResourceStorage()
