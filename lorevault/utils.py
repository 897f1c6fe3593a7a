"""
Shared utility functions.
"""

from __future__ import annotations

import uuid
from typing import Any
from datetime import datetime, timezone


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.

    Args:
        prefix: Optional prefix (e.g., "item", "char")

    Returns:
        A unique ID like "item_a1b2c3d4e5f6"
    """
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Current UTC time as the ISO-8601 string stored on rows."""
    return utc_now().isoformat()


def normalize_id(value: Any) -> str | None:
    """
    Canonical form of an entity id: ids are strings.

    Integer ids (from numeric keys or JSON bodies) become their decimal
    string; anything else that is not a string is not an id.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None
