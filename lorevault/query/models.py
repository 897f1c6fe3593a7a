"""
List query and list result models.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from lorevault.auth.roles import Visibility
from lorevault.constants import DEFAULT_PAGE_LIMIT, DEFAULT_SORT_FIELD, MAX_PAGE_LIMIT
from lorevault.errors import InvalidInputError
from lorevault.query.cursor import SortDirection


class ListQuery(BaseModel):
    """
    Validated query parameters of a list request.

    Fields beyond the known ones are kept in ``model_extra`` and treated as
    equality filters; the service decides which of them are allowed.
    """

    limit: int = Field(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT)
    cursor: str | None = None
    sort_by: str = DEFAULT_SORT_FIELD
    sort_dir: SortDirection = SortDirection.DESC
    search: str | None = None
    visibility: Visibility | None = None

    model_config = ConfigDict(extra="allow", frozen=True)

    @property
    def extra_filters(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def cache_params(self) -> dict[str, Any]:
        """Normalized parameters for cache keying (defaults filled, unset dropped)."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def parse(cls, raw: ListQuery | Mapping[str, Any] | None) -> ListQuery:
        """Validate raw query parameters, reporting failures as VALIDATION_ERROR."""
        if isinstance(raw, ListQuery):
            return raw
        try:
            return cls.model_validate(dict(raw or {}))
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise InvalidInputError(f"Invalid query parameter {location}: {first['msg']}") from e


class Pagination(BaseModel):
    """Pagination block of a list result."""

    has_next: bool = False
    has_prev: bool = False
    limit: int
    next_cursor: str | None = None
    prev_cursor: str | None = None

    model_config = ConfigDict(frozen=True)


class ListResult(BaseModel):
    """A page of entities plus its pagination block."""

    items: list[dict[str, Any]] = Field(default_factory=list)
    pagination: Pagination

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        more = ", more" if self.pagination.has_next else ""
        return f"ListResult({len(self.items)} items{more})"
