"""
Cache-Control helpers for route handlers.

Only anonymous responses may be cached by shared caches; anything that
depends on the actor must be ``no-store``.
"""

from __future__ import annotations

from fastapi import Response

from lorevault.auth.roles import Actor

PUBLIC_RESOURCE_CACHE = "public, max-age=60, stale-while-revalidate=30"
PUBLIC_LIST_CACHE = "public, max-age=30, stale-while-revalidate=15"
NO_STORE = "no-store"


def set_public_resource_cache(response: Response) -> None:
    response.headers["Cache-Control"] = PUBLIC_RESOURCE_CACHE


def set_public_list_cache(response: Response) -> None:
    response.headers["Cache-Control"] = PUBLIC_LIST_CACHE


def set_no_store(response: Response) -> None:
    response.headers["Cache-Control"] = NO_STORE


def apply_cache_headers(response: Response, actor: Actor | None, is_list: bool = False) -> None:
    """Public caching for anonymous callers, ``no-store`` for everybody else."""
    if actor is not None:
        set_no_store(response)
    elif is_list:
        set_public_list_cache(response)
    else:
        set_public_resource_cache(response)
