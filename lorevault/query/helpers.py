"""
Generic where-clause helpers shared by the security and cursor builders.
"""

from __future__ import annotations

import copy
from typing import Any, Mapping

from lorevault.errors import InvalidInputError
from lorevault.storage.base import Where


def build_where(filters: Mapping[str, Any]) -> dict[str, Any]:
    """Drop unset (None) business filters so they do not become equality checks."""
    return {key: value for key, value in filters.items() if value is not None}


def combine_filters(filters: Where | None, clause: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    AND a clause onto an existing where-mapping without mutating either.

    Keys are merged flat when they do not overlap; any collision (an
    existing ``OR`` or a business filter on the same field) is wrapped in
    an explicit ``AND`` so neither side can overwrite the other.
    """
    base = copy.deepcopy(dict(filters or {}))
    if not clause:
        return base
    addition = copy.deepcopy(dict(clause))
    if not base:
        return addition
    if base.keys() & addition.keys():
        return {"AND": [base, addition]}
    return {**base, **addition}


def nest_path(path: str, leaf: Any) -> dict[str, Any]:
    """nest_path("owner.email", x) -> {"owner": {"email": x}}"""
    parts = [part for part in path.split(".") if part]
    if not parts:
        raise InvalidInputError("Empty field path")
    node: Any = leaf
    for part in reversed(parts):
        node = {part: node}
    return node


def get_path(row: Mapping[str, Any], path: str) -> Any:
    """Read a dotted path from a row; None when any segment is missing."""
    value: Any = row
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def validate_range(
    minimum: float | None,
    maximum: float | None,
    min_field: str,
    max_field: str,
) -> None:
    """Reject inverted or negative numeric ranges."""
    if minimum is not None and maximum is not None and minimum > maximum:
        raise InvalidInputError(f"{min_field} cannot be greater than {max_field}")
    if minimum is not None and minimum < 0:
        raise InvalidInputError(f"{min_field} must be positive")
    if maximum is not None and maximum < 0:
        raise InvalidInputError(f"{max_field} must be positive")


def build_range(
    min_field: str,
    minimum: float | None,
    max_field: str,
    maximum: float | None,
) -> dict[str, float] | None:
    """Build a gte/lte operator clause, or None when neither bound is set."""
    if minimum is None and maximum is None:
        return None
    validate_range(minimum, maximum, min_field, max_field)
    clause: dict[str, float] = {}
    if minimum is not None:
        clause["gte"] = minimum
    if maximum is not None:
        clause["lte"] = maximum
    return clause
