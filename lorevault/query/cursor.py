"""
Cursor pagination codec.

Lists are ordered by the composite key (sort field, id), which is a strict
total order even when the sort field has duplicates. A cursor records the
position of the last item of a page; the next page is everything strictly
after it:

    (sort_field <cmp> last_value) OR (sort_field == last_value AND id <cmp> last_id)

where ``<cmp>`` is ``lt`` descending and ``gt`` ascending.

Cursors are base64-encoded JSON ``{"lastValue": ..., "lastId": ...}``. Callers
must treat them as opaque and only ever round-trip them.

Sort fields are expected to be non-null; NULL values cannot be compared
and would fall out of the keyset.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import to_jsonable_python

from lorevault.constants import MAX_CURSOR_LENGTH, PRIMARY_KEY
from lorevault.errors import InvalidInputError
from lorevault.query.helpers import combine_filters, get_path, nest_path
from lorevault.storage.base import OrderBy, Where

logger = logging.getLogger(__name__)


class SortDirection(str, Enum):
    """Sort direction of a list query."""

    ASC = "asc"
    DESC = "desc"

    @property
    def comparison(self) -> str:
        """Operator selecting rows AFTER a position in this direction."""
        return "lt" if self == SortDirection.DESC else "gt"


def parse_sort_direction(value: SortDirection | str | None) -> SortDirection:
    """Validate a direction literal. None means the default (desc)."""
    if value is None:
        return SortDirection.DESC
    try:
        return SortDirection(value)
    except ValueError:
        raise InvalidInputError("Invalid sort direction") from None


class CursorPayload(BaseModel):
    """Decoded cursor position."""

    last_value: StrictStr | StrictInt | StrictFloat | StrictBool | None = Field(alias="lastValue")
    last_id: StrictStr | StrictInt = Field(alias="lastId")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


@dataclass(frozen=True)
class Page:
    """One page cut from a ``limit + 1`` fetch."""

    items: list[dict[str, Any]] = field(default_factory=list)
    has_next: bool = False
    next_cursor: str | None = None


# =============================================================================
# Encoding
# =============================================================================


def encode_cursor(last_value: Any, last_id: str | int) -> str:
    """Encode a position as an opaque cursor string."""
    payload = {
        "lastValue": to_jsonable_python(last_value),
        "lastId": last_id,
    }
    raw = json.dumps(payload, separators=(",", ":"))
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> CursorPayload:
    """
    Decode a cursor string.

    Raises:
        InvalidInputError: too long, not base64, not JSON, or not the expected shape
    """
    if len(cursor) > MAX_CURSOR_LENGTH:
        logger.warning(f"Rejected oversized cursor ({len(cursor)} chars)")
        raise InvalidInputError("Invalid cursor")

    try:
        raw = base64.b64decode(cursor, validate=True)
        data = json.loads(raw.decode("utf-8"))
        return CursorPayload.model_validate(data)
    except (
        binascii.Error,
        UnicodeDecodeError,
        TypeError,
        ValueError,
        RecursionError,
        PydanticValidationError,
    ) as e:
        logger.warning(f"Rejected malformed cursor: {e.__class__.__name__}")
        raise InvalidInputError("Invalid cursor") from e


# =============================================================================
# Query fragments
# =============================================================================


def build_order_by(sort_by: str, sort_dir: SortDirection | str | None = None) -> OrderBy:
    """
    Ordering fragment with the primary key appended as tie-breaker.

    ``sort_by`` may be a dotted path into a relation ("owner.email").
    """
    direction = parse_sort_direction(sort_dir).value
    if sort_by == PRIMARY_KEY:
        return [{PRIMARY_KEY: direction}]
    return [nest_path(sort_by, direction), {PRIMARY_KEY: direction}]


def cursor_clause(cursor: CursorPayload, sort_by: str, sort_dir: SortDirection | str) -> dict[str, Any]:
    """The where-clause selecting rows strictly after ``cursor``."""
    op = parse_sort_direction(sort_dir).comparison

    if sort_by == PRIMARY_KEY:
        return {PRIMARY_KEY: {op: cursor.last_id}}

    return {
        "OR": [
            nest_path(sort_by, {op: cursor.last_value}),
            {**nest_path(sort_by, cursor.last_value), PRIMARY_KEY: {op: cursor.last_id}},
        ]
    }


def apply_cursor(
    where: Where | None,
    cursor: str | None,
    sort_by: str,
    sort_dir: SortDirection | str | None,
) -> dict[str, Any]:
    """
    AND the "after cursor" clause onto ``where``.

    The direction is validated before anything else and the cursor is
    decoded before any storage call, so bad input never reaches the store.
    """
    direction = parse_sort_direction(sort_dir)
    if not cursor:
        return combine_filters(where, None)

    position = decode_cursor(cursor)
    return combine_filters(where, cursor_clause(position, sort_by, direction))


# =============================================================================
# Page building
# =============================================================================


def build_page_with(
    rows: Sequence[Mapping[str, Any]],
    limit: int,
    sort_value: Callable[[Mapping[str, Any]], Any],
) -> Page:
    """
    Cut a page from rows fetched with ``limit + 1``.

    ``has_next`` is true iff more than ``limit`` rows came back; only then
    is a cursor built from the last kept row.
    """
    has_next = len(rows) > limit
    items = [dict(row) for row in rows[:limit]]

    if not has_next or not items:
        return Page(items=items, has_next=False)

    last = items[-1]
    return Page(
        items=items,
        has_next=True,
        next_cursor=encode_cursor(sort_value(last), last[PRIMARY_KEY]),
    )


def build_page(rows: Sequence[Mapping[str, Any]], limit: int, sort_by: str) -> Page:
    """Cut a page whose cursor value is read from the ``sort_by`` path."""
    return build_page_with(rows, limit, lambda row: get_path(row, sort_by))
