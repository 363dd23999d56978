"""
Tests for the user field resolvers (no database, no HTTP).

These tests verify:
  - Create: password is hashed, avatar defaults to the Gravatar URL of the
    lower-cased username, a supplied avatar is kept, both timestamps are
    the same instant
  - Patch: a new password is hashed, other fields pass through, nothing
    is added
  - External view: the password is always removed
  - Query: `_id` is restricted to the actor except for find and
    anonymous calls
"""

import hashlib

from user_api.models.user import User
from user_api.resolvers import HookContext, Resolver, epoch_millis
from user_api.schemas.user import (
    user_data_resolver,
    user_data_validator,
    user_external_resolver,
    user_patch_resolver,
    user_query_resolver,
    user_resolver,
)
from user_api.security import hash_password, verify_password


def _md5(text: str) -> str:
    return hashlib.md5(text.encode()).hexdigest()


def _actor(user_id: str = "self-id") -> User:
    return User(id=user_id, username="me", password="x", created_at=0, updated_at=0)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

class TestCreateResolver:
    """Tests for user_data_resolver."""

    async def test_create_alice(self):
        """The reference scenario: hashed password, gravatar, equal timestamps."""
        context = HookContext(method="create", timestamp=1_700_000_000_000)
        data = user_data_validator({"username": "alice", "password": "secret"})

        result = await user_data_resolver.resolve(data, context)

        assert result["password"] != "secret"
        assert verify_password("secret", result["password"])
        assert result["avatar"] == (
            "https://s.gravatar.com/avatar/" + _md5("alice") + "?s=60"
        )
        assert result["createdAt"] == result["updatedAt"] == 1_700_000_000_000

    async def test_avatar_uses_lowercased_username(self):
        context = HookContext(method="create")
        result = await user_data_resolver.resolve(
            {"username": "Alice.Smith", "password": "pw"}, context
        )
        assert result["avatar"] == (
            f"https://s.gravatar.com/avatar/{_md5('alice.smith')}?s=60"
        )
        assert result["username"] == "Alice.Smith"

    async def test_supplied_avatar_is_kept(self):
        context = HookContext(method="create")
        avatar = "https://example.com/me.png"
        result = await user_data_resolver.resolve(
            {"username": "alice", "password": "pw", "avatar": avatar}, context
        )
        assert result["avatar"] == avatar

    async def test_timestamps_are_set_at_call_time(self):
        before = epoch_millis()
        context = HookContext(method="create")
        result = await user_data_resolver.resolve(
            {"username": "alice", "password": "pw"}, context
        )
        after = epoch_millis()

        assert before <= result["createdAt"] <= after
        assert result["createdAt"] == result["updatedAt"]

    async def test_same_password_hashes_differently(self):
        """Hashes are salted, so equal passwords don't give equal hashes."""
        context = HookContext(method="create")
        first = await user_data_resolver.resolve(
            {"username": "a", "password": "same"}, context
        )
        second = await user_data_resolver.resolve(
            {"username": "b", "password": "same"}, context
        )
        assert first["password"] != second["password"]


# ---------------------------------------------------------------------------
# Patch
# ---------------------------------------------------------------------------

class TestPatchResolver:
    """Tests for user_patch_resolver."""

    async def test_patch_password_is_hashed(self):
        old_hash = hash_password("oldpass")
        context = HookContext(method="patch", user=_actor(), id="self-id")

        result = await user_patch_resolver.resolve({"password": "newpass"}, context)

        assert result["password"] != "newpass"
        assert result["password"] != old_hash
        assert verify_password("newpass", result["password"])

    async def test_patch_without_password_passes_through(self):
        context = HookContext(method="patch")
        data = {"username": "renamed", "avatar": "https://example.com/a.png"}

        result = await user_patch_resolver.resolve(data, context)

        assert result == data

    async def test_patch_does_not_add_fields(self):
        """No timestamp or avatar is derived on patch."""
        context = HookContext(method="patch")
        result = await user_patch_resolver.resolve({"username": "renamed"}, context)
        assert result == {"username": "renamed"}


# ---------------------------------------------------------------------------
# Full and external views
# ---------------------------------------------------------------------------

class TestExternalResolver:
    """Tests for user_resolver and user_external_resolver."""

    RECORD = {
        "_id": "abc",
        "username": "alice",
        "password": "$argon2id$v=19$...",
        "avatar": "https://example.com/a.png",
        "createdAt": 1,
        "updatedAt": 2,
    }

    async def test_full_resolver_is_identity(self):
        context = HookContext(method="get")
        assert await user_resolver.resolve(self.RECORD, context) == self.RECORD

    async def test_external_removes_password(self):
        context = HookContext(method="get")
        result = await user_external_resolver.resolve(self.RECORD, context)

        assert "password" not in result
        assert result == {k: v for k, v in self.RECORD.items() if k != "password"}

    async def test_external_without_password_stays_without(self):
        context = HookContext(method="find")
        record = {"_id": "abc", "username": "alice"}
        assert await user_external_resolver.resolve(record, context) == record

    async def test_input_is_not_mutated(self):
        context = HookContext(method="get")
        record = dict(self.RECORD)
        await user_external_resolver.resolve(record, context)
        assert record == self.RECORD


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------

class TestQueryResolver:
    """Tests for user_query_resolver (ownership scoping of `_id`)."""

    async def test_get_is_rewritten_to_actor(self):
        context = HookContext(method="get", user=_actor("self-id"))
        result = await user_query_resolver.resolve({"_id": "other-id"}, context)
        assert result["_id"] == "self-id"

    async def test_patch_and_remove_are_rewritten(self):
        for method in ("patch", "remove"):
            context = HookContext(method=method, user=_actor("self-id"))
            result = await user_query_resolver.resolve({"_id": "other-id"}, context)
            assert result["_id"] == "self-id"

    async def test_missing_id_is_added_for_actor(self):
        context = HookContext(method="get", user=_actor("self-id"))
        result = await user_query_resolver.resolve({"username": "x"}, context)
        assert result == {"username": "x", "_id": "self-id"}

    async def test_operator_object_is_replaced(self):
        context = HookContext(method="remove", user=_actor("self-id"))
        result = await user_query_resolver.resolve(
            {"_id": {"$in": ["a", "b"]}}, context
        )
        assert result["_id"] == "self-id"

    async def test_find_is_unrestricted(self):
        context = HookContext(method="find", user=_actor("self-id"))
        result = await user_query_resolver.resolve({"_id": "other-id"}, context)
        assert result["_id"] == "other-id"

    async def test_find_without_id_stays_without(self):
        context = HookContext(method="find", user=_actor("self-id"))
        assert await user_query_resolver.resolve({}, context) == {}

    async def test_anonymous_is_unrestricted(self):
        context = HookContext(method="get")
        result = await user_query_resolver.resolve({"_id": "other-id"}, context)
        assert result["_id"] == "other-id"

    async def test_other_fields_pass_through(self):
        context = HookContext(method="get", user=_actor("self-id"))
        query = {"username": {"$ne": "bob"}, "$limit": 5}
        result = await user_query_resolver.resolve(query, context)
        assert result["username"] == {"$ne": "bob"}
        assert result["$limit"] == 5


# ---------------------------------------------------------------------------
# Resolver engine
# ---------------------------------------------------------------------------

class TestResolver:
    """Tests for the generic Resolver table."""

    async def test_entries_run_in_order_on_original_data(self):
        seen = []

        async def first(value, data, context):
            seen.append(("first", dict(data)))
            return "changed"

        async def second(value, data, context):
            seen.append(("second", dict(data)))
            return value

        resolver = Resolver({"a": first, "b": second})
        result = await resolver.resolve({"a": 1, "b": 2}, HookContext(method="get"))

        assert result == {"a": "changed", "b": 2}
        assert [name for name, _ in seen] == ["first", "second"]
        # The second entry saw the original record, not the resolved one
        assert seen[1][1] == {"a": 1, "b": 2}

    async def test_none_drops_field(self):
        async def drop(value, data, context):
            return None

        resolver = Resolver({"a": drop})
        result = await resolver.resolve({"a": 1, "b": 2}, HookContext(method="get"))
        assert result == {"b": 2}

    async def test_resolve_many(self):
        async def double(value, data, context):
            return value * 2

        resolver = Resolver({"n": double})
        result = await resolver.resolve_many(
            [{"n": 1}, {"n": 2}], HookContext(method="find")
        )
        assert result == [{"n": 2}, {"n": 4}]
