"""
Services - authorization-aware facades over storage.
"""

from lorevault.services.resources import (
    DEFAULT_SEARCH_FIELDS,
    DEFAULT_SORTABLE_FIELDS,
    PROTECTED_FIELDS,
    ResourceService,
)

__all__ = [
    "DEFAULT_SEARCH_FIELDS",
    "DEFAULT_SORTABLE_FIELDS",
    "PROTECTED_FIELDS",
    "ResourceService",
]
