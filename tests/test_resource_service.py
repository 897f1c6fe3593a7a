"""
Tests for the resource service (the control flow a handler runs).
"""

import pytest
import pytest_asyncio

from conftest import seed
from lorevault.auth.roles import Actor, Role
from lorevault.errors import ErrorCode, ForbiddenError, InvalidInputError, NotFoundError, UnauthorizedError
from lorevault.query.models import ListQuery, ListResult
from lorevault.services.resources import ResourceService


ITEMS = [
    {"id": "i1", "name": "Axe", "owner_id": "u1", "owner_role": "USER", "visibility": "PUBLIC", "created_at": "2024-01-01"},
    {"id": "i2", "name": "Bow", "owner_id": "u1", "owner_role": "USER", "visibility": "PRIVATE", "created_at": "2024-01-02"},
    {"id": "i3", "name": "Club", "owner_id": "u2", "owner_role": "USER", "visibility": "HIDDEN", "created_at": "2024-01-03"},
    {"id": "i4", "name": "Dagger", "owner_id": "m2", "owner_role": "MODERATOR", "visibility": "PUBLIC", "created_at": "2024-01-04"},
    {"id": "i5", "name": "Epee", "owner_id": "a2", "owner_role": "ADMIN", "visibility": "PRIVATE", "created_at": "2024-01-05"},
]


@pytest_asyncio.fixture
async def items(storage, cache):
    await seed(storage, "items", ITEMS)
    await seed(storage, "users", [
        {"id": "u1", "role": "USER"},
        {"id": "u2", "role": "USER"},
        {"id": "m1", "role": "MODERATOR"},
    ])
    return ResourceService("items", storage, cache=cache, filterable_fields=["owner_id"])


def ids(result: ListResult) -> list[str]:
    return [item["id"] for item in result.items]


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    def test_rejects_users_and_equipment(self, storage):
        with pytest.raises(ValueError):
            ResourceService("users", storage)
        with pytest.raises(ValueError):
            ResourceService("equipment", storage)

    def test_label_and_prefix(self, storage, cache):
        service = ResourceService("items", storage, cache=cache)
        assert service.label == "Item"
        assert service.cache_prefix == "items:list"


# =============================================================================
# Reads
# =============================================================================


class TestGet:
    @pytest.mark.asyncio
    async def test_public_item_for_anonymous(self, items):
        item = await items.get("i1")
        assert item["name"] == "Axe"
        assert "owner_id" not in item

    @pytest.mark.asyncio
    async def test_private_item_is_not_found_for_others(self, items):
        with pytest.raises(NotFoundError) as exc:
            await items.get("i2", Actor(id="u2"))
        assert str(exc.value) == "Item not found"

    @pytest.mark.asyncio
    async def test_absent_and_concealed_look_the_same(self, items):
        with pytest.raises(NotFoundError) as concealed:
            await items.get("i2")
        with pytest.raises(NotFoundError) as absent:
            await items.get("i999")
        assert concealed.value.to_dict() == absent.value.to_dict()

    @pytest.mark.asyncio
    async def test_owner_reads_private_item(self, items, user):
        item = await items.get("i2", user)
        assert item["owner_id"] == "u1"


class TestList:
    @pytest.mark.asyncio
    async def test_anonymous_sees_public(self, items):
        result = await items.list()
        assert ids(result) == ["i4", "i1"]
        assert all("owner_id" not in item for item in result.items)

    @pytest.mark.asyncio
    async def test_visibility_per_role(self, items, user, moderator, admin):
        assert ids(await items.list({}, user)) == ["i4", "i2", "i1"]
        assert ids(await items.list({}, moderator)) == ["i4", "i3", "i1"]
        assert ids(await items.list({}, admin)) == ["i5", "i4", "i3", "i2", "i1"]

    @pytest.mark.asyncio
    async def test_pagination(self, items, admin):
        first = await items.list({"limit": 2, "sort_dir": "asc"}, admin)
        assert ids(first) == ["i1", "i2"]
        assert first.pagination.has_next
        assert not first.pagination.has_prev

        second = await items.list({"limit": 2, "sort_dir": "asc", "cursor": first.pagination.next_cursor}, admin)
        assert ids(second) == ["i3", "i4"]
        assert second.pagination.has_prev
        assert second.pagination.prev_cursor == first.pagination.next_cursor

        third = await items.list({"limit": 2, "sort_dir": "asc", "cursor": second.pagination.next_cursor}, admin)
        assert ids(third) == ["i5"]
        assert not third.pagination.has_next

    @pytest.mark.asyncio
    async def test_search_and_filters_combine_with_security(self, items, user):
        result = await items.list({"search": "b", "owner_id": "u1"}, user)
        assert ids(result) == ["i2"]

        # "club" matches by name but is HIDDEN and not owned by u1
        assert ids(await items.list({"search": "CLUB"}, user)) == []

    @pytest.mark.asyncio
    async def test_visibility_filter_cannot_widen(self, items):
        assert ids(await items.list({"visibility": "PRIVATE"})) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "query, message",
        [
            ({"sort_dir": "sideways"}, "sort_dir"),
            ({"sort_by": "owner_id"}, "Cannot sort"),
            ({"limit": 0}, "limit"),
            ({"limit": 101}, "limit"),
            ({"cursor": "%%%"}, "Invalid cursor"),
            ({"color": "red"}, "Unknown filter"),
        ],
    )
    async def test_bad_queries(self, items, query, message):
        with pytest.raises(InvalidInputError, match=message) as exc:
            await items.list(query)
        assert exc.value.code == ErrorCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_accepts_parsed_query(self, items):
        assert ids(await items.list(ListQuery(limit=1))) == ["i4"]


# =============================================================================
# Anonymous cache
# =============================================================================


class TestListCaching:
    @pytest.mark.asyncio
    async def test_anonymous_results_are_cached(self, items, storage, cache):
        first = await items.list({"limit": 10})
        await storage.create("items", {"id": "i6", "name": "Flail", "visibility": "PUBLIC", "created_at": "2024-01-06"})

        # Written behind the service's back, so still the cached page
        assert await items.list({"limit": 10}) == first
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_callers_cannot_change_the_cached_page(self, items):
        first = await items.list()
        first.items[0]["name"] = "Defaced"
        first.items.clear()

        second = await items.list()
        assert ids(second) == ["i4", "i1"]
        assert second.items[0]["name"] == "Dagger"

        second.items[0]["name"] = "Defaced"
        assert (await items.list()).items[0]["name"] == "Dagger"

    @pytest.mark.asyncio
    async def test_authenticated_results_are_not_cached(self, items, user, cache):
        await items.list({}, user)
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_cache_expires(self, items, storage, clock):
        await items.list()
        await storage.create("items", {"id": "i6", "name": "Flail", "visibility": "PUBLIC", "created_at": "2024-01-06"})

        clock.advance(31)

        assert ids(await items.list())[0] == "i6"

    @pytest.mark.asyncio
    async def test_create_invalidates(self, items, user):
        assert "i6" not in ids(await items.list())
        created = await items.create({"id": "i6", "name": "Flail"}, user)
        assert created["id"] != "i6"
        assert ids(await items.list())[0] == created["id"]

    @pytest.mark.asyncio
    async def test_update_invalidates(self, items, user):
        await items.list()
        await items.update("i1", {"visibility": "PRIVATE"}, user)
        assert ids(await items.list()) == ["i4"]

    @pytest.mark.asyncio
    async def test_delete_invalidates(self, items, user):
        await items.list()
        await items.delete("i1", user)
        assert ids(await items.list()) == ["i4"]

    @pytest.mark.asyncio
    async def test_other_kinds_survive(self, items, storage, cache, user):
        races = ResourceService("races", storage, cache=cache)
        await races.list()
        await items.list()
        await items.create({"name": "Mace"}, user)
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_unexpected_cache_value_is_ignored(self, items, cache):
        await items.list()
        (key,) = list(cache._entries)
        cache.set(key, "garbage")
        assert ids(await items.list()) == ["i4", "i1"]


# =============================================================================
# Mutations
# =============================================================================


class TestCreate:
    @pytest.mark.asyncio
    async def test_anonymous_is_unauthorized(self, items):
        with pytest.raises(UnauthorizedError):
            await items.create({"name": "Axe"}, None)

    @pytest.mark.asyncio
    async def test_owner_fields_come_from_actor(self, items, moderator):
        created = await items.create({"name": "Net", "owner_role": "ADMIN", "created_at": "1999"}, moderator)
        assert created["owner_id"] == "m1"
        assert created["owner_role"] == "MODERATOR"
        assert created["visibility"] == "PUBLIC"
        assert created["created_at"] != "1999"

    @pytest.mark.asyncio
    async def test_user_cannot_create_for_others(self, items, user):
        with pytest.raises(ForbiddenError):
            await items.create({"name": "Net", "owner_id": "u2"}, user)

    @pytest.mark.asyncio
    async def test_admin_creates_for_others(self, items, admin):
        created = await items.create({"name": "Net", "owner_id": "u2", "visibility": "HIDDEN"}, admin)
        assert created["owner_id"] == "u2"
        assert created["owner_role"] == "USER"
        assert created["visibility"] == "HIDDEN"

    @pytest.mark.asyncio
    async def test_admin_creates_for_integer_owner_id(self, items, storage, admin):
        await seed(storage, "users", [{"id": "42", "role": "USER"}])
        created = await items.create({"name": "Net", "owner_id": 42}, admin)
        assert created["owner_id"] == "42"
        assert created["owner_role"] == "USER"

    @pytest.mark.asyncio
    async def test_unusable_owner_id_is_rejected(self, items, admin):
        with pytest.raises(InvalidInputError, match="Invalid owner_id"):
            await items.create({"name": "Net", "owner_id": {"id": "u2"}}, admin)

    @pytest.mark.asyncio
    async def test_admin_cannot_create_for_unknown_owner(self, items, admin):
        with pytest.raises(InvalidInputError, match="Unknown owner"):
            await items.create({"name": "Net", "owner_id": "ghost"}, admin)

    @pytest.mark.asyncio
    async def test_invalid_visibility(self, items, user):
        with pytest.raises(InvalidInputError, match="Invalid visibility"):
            await items.create({"name": "Net", "visibility": "SECRET"}, user)


class TestUpdateDelete:
    @pytest.mark.asyncio
    async def test_owner_updates(self, items, user):
        updated = await items.update("i2", {"name": "Longbow", "owner_id": "u2"}, user)
        assert updated["name"] == "Longbow"
        assert updated["owner_id"] == "u1"

    @pytest.mark.asyncio
    async def test_not_found_before_forbidden(self, items, other_user):
        with pytest.raises(NotFoundError):
            await items.update("i2", {"name": "x"}, other_user)
        with pytest.raises(ForbiddenError):
            await items.update("i1", {"name": "x"}, other_user)

    @pytest.mark.asyncio
    async def test_moderator_on_hidden_user_item(self, items, moderator):
        updated = await items.update("i3", {"visibility": "PRIVATE"}, moderator)
        assert updated["visibility"] == "PRIVATE"

    @pytest.mark.asyncio
    async def test_moderator_on_moderator_item(self, items, moderator):
        with pytest.raises(ForbiddenError):
            await items.delete("i4", moderator)

    @pytest.mark.asyncio
    async def test_admin_on_admin_item(self, items, admin):
        with pytest.raises(ForbiddenError):
            await items.update("i5", {"name": "x"}, admin)
        await items.delete("i4", admin)

    @pytest.mark.asyncio
    async def test_invalid_visibility_on_update(self, items, user):
        with pytest.raises(InvalidInputError):
            await items.update("i1", {"visibility": "everyone"}, user)

    @pytest.mark.asyncio
    async def test_delete_missing(self, items, admin):
        with pytest.raises(NotFoundError):
            await items.delete("nope", admin)

    @pytest.mark.asyncio
    async def test_anonymous_cannot_delete(self, items):
        with pytest.raises(UnauthorizedError):
            await items.delete("i1", None)


class TestStats:
    @pytest.mark.asyncio
    async def test_counts(self, items, moderator):
        stats = await items.stats(moderator)
        assert stats == {"total": 5, "by_visibility": {"PUBLIC": 2, "PRIVATE": 2, "HIDDEN": 1}}

    @pytest.mark.asyncio
    async def test_restricted(self, items, user):
        with pytest.raises(UnauthorizedError):
            await items.stats(None)
        with pytest.raises(ForbiddenError):
            await items.stats(user)


class TestRelatedMasking:
    @pytest.mark.asyncio
    async def test_equipped_private_item_is_concealed(self, storage, cache):
        await seed(storage, "characters", [{
            "id": "c1",
            "name": "Grog",
            "owner_id": "u1",
            "owner_role": "USER",
            "visibility": "PUBLIC",
            "weapon": {"id": "i2", "name": "Bow", "owner_id": "u1", "owner_role": "USER", "visibility": "PRIVATE"},
        }])
        characters = ResourceService("characters", storage, cache=cache, related_fields=["weapon"])

        public_view = await characters.get("c1")
        owner_view = await characters.get("c1", Actor(id="u1", role=Role.USER))

        assert public_view["weapon"]["name"] == "[HIDDEN]"
        assert owner_view["weapon"]["name"] == "Bow"
