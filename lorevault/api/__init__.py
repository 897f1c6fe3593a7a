"""
FastAPI integration - actor extraction, route guards, error responses.
"""

from lorevault.api.cache_headers import (
    apply_cache_headers,
    set_no_store,
    set_public_list_cache,
    set_public_resource_cache,
)
from lorevault.api.dependencies import (
    decode_actor_token,
    get_actor,
    get_current_actor,
    get_storage,
)
from lorevault.api.errors import register_error_handlers
from lorevault.api.guards import enforce, guard

__all__ = [
    "apply_cache_headers",
    "decode_actor_token",
    "enforce",
    "get_actor",
    "get_current_actor",
    "get_storage",
    "guard",
    "register_error_handlers",
    "set_no_store",
    "set_public_list_cache",
    "set_public_resource_cache",
]
