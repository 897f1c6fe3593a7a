"""
Shared fixtures: actors, an in-memory store, and a cache with a fake clock.
"""

import pytest

from lorevault.auth.roles import Actor, ResourceDescriptor, Role, Visibility
from lorevault.cache import ListCache, reset_list_cache
from lorevault.config import get_settings
from lorevault.storage.memory import InMemoryResourceStorage


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Actors
# =============================================================================


@pytest.fixture
def user():
    return Actor(id="u1", role=Role.USER)


@pytest.fixture
def other_user():
    return Actor(id="u2", role=Role.USER)


@pytest.fixture
def moderator():
    return Actor(id="m1", role=Role.MODERATOR)


@pytest.fixture
def other_moderator():
    return Actor(id="m2", role=Role.MODERATOR)


@pytest.fixture
def admin():
    return Actor(id="a1", role=Role.ADMIN)


@pytest.fixture
def other_admin():
    return Actor(id="a2", role=Role.ADMIN)


def descriptor(owner: Actor, visibility: Visibility = Visibility.PUBLIC) -> ResourceDescriptor:
    """Descriptor of a resource owned by ``owner``."""
    return ResourceDescriptor(owner_id=owner.id, visibility=visibility, owner_role=owner.role)


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.fixture
def storage():
    """Fresh in-memory store."""
    return InMemoryResourceStorage()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """List cache driven by the fake clock."""
    return ListCache(clock=clock)


@pytest.fixture(autouse=True)
def _isolate_globals():
    """No process-wide cache or settings leak between tests."""
    reset_list_cache()
    get_settings.cache_clear()
    yield
    reset_list_cache()
    get_settings.cache_clear()


async def seed(storage, kind: str, rows: list[dict]) -> list[dict]:
    """Insert rows as-is (ids included) and return what was stored."""
    return [await storage.create(kind, dict(row)) for row in rows]
