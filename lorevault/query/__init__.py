"""
Query boundary: security filters, cursor pagination, and masking.
"""

from lorevault.query.cursor import (
    CursorPayload,
    Page,
    SortDirection,
    apply_cursor,
    build_order_by,
    build_page,
    build_page_with,
    decode_cursor,
    encode_cursor,
    parse_sort_direction,
)
from lorevault.query.helpers import build_range, build_where, combine_filters, validate_range
from lorevault.query.masking import mask_entities, mask_entity, mask_related
from lorevault.query.models import ListQuery, ListResult, Pagination
from lorevault.query.security import (
    apply_security_filters,
    apply_user_security_filters,
    security_clause,
)

__all__ = [
    # Cursor pagination
    "CursorPayload",
    "Page",
    "SortDirection",
    "apply_cursor",
    "build_order_by",
    "build_page",
    "build_page_with",
    "decode_cursor",
    "encode_cursor",
    "parse_sort_direction",
    # Helpers
    "build_range",
    "build_where",
    "combine_filters",
    "validate_range",
    # Masking
    "mask_entities",
    "mask_entity",
    "mask_related",
    # Models
    "ListQuery",
    "ListResult",
    "Pagination",
    # Security filters
    "apply_security_filters",
    "apply_user_security_filters",
    "security_clause",
]
