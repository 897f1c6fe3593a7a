"""
Storage abstractions.

The query layer only builds filter/order fragments; a ResourceStorage
executes them. InMemoryResourceStorage implements the same dialect for
development and tests.
"""

from lorevault.storage.base import (
    ID_FIELDS,
    OPERATOR_KEYS,
    OrderBy,
    ResourceStorage,
    Where,
)
from lorevault.storage.memory import (
    InMemoryResourceStorage,
    create_memory_storage,
    matches,
    sort_rows,
)

__all__ = [
    "ID_FIELDS",
    "OPERATOR_KEYS",
    "OrderBy",
    "ResourceStorage",
    "Where",
    "InMemoryResourceStorage",
    "create_memory_storage",
    "matches",
    "sort_rows",
]
