"""
Fixed values consumed by the authorization and query layer.

These are deliberately not part of Settings: they are compiled-in
constants, not runtime configuration.
"""

# Anonymous list results live this long before a forced recompute
LIST_CACHE_TTL_SECONDS = 30

# Cursor pagination
DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100
DEFAULT_SORT_FIELD = "created_at"
PRIMARY_KEY = "id"
# Real cursors are a few dozen bytes; anything longer is rejected undecoded
MAX_CURSOR_LENGTH = 1024

# Replacement text for descriptive fields of concealed embedded entities
HIDDEN_SENTINEL = "[HIDDEN]"
DESCRIPTIVE_FIELDS: tuple[str, ...] = ("name", "description", "bio", "title")

# Fields that identify who owns an entity
OWNER_FIELDS: tuple[str, ...] = ("owner_id", "owner", "owner_role")
