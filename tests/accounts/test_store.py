"""
Tests for the credential store.
"""

from unittest.mock import AsyncMock

import pytest

from accounts.models import Role
from utilities.errors import Conflict, InternalError, NotFound, ValidationError


class TestCreate:
    """Test user creation."""

    @pytest.mark.asyncio
    async def test_create_then_find_by_email_round_trips(self, store, make_user):
        created = await make_user(fullname="Jane Doe", email="jane@x.com")

        found = await store.find_by_email("jane@x.com")

        assert found is not None
        assert found.id == created.id
        assert found.email == "jane@x.com"
        assert found.fullname == "Jane Doe"
        assert found.role is Role.USER
        assert found.refresh_token is None

    @pytest.mark.asyncio
    async def test_pii_is_encrypted_at_rest(self, store, users_collection, make_user):
        await make_user(fullname="Jane Doe", email="jane@x.com", password="Secret123!")

        document = users_collection.documents[0]
        assert document["email"] != "jane@x.com"
        assert document["fullname"] != "Jane Doe"
        assert document["email"] == store.encrypt_for_storage("jane@x.com")
        assert document["password"] != "Secret123!"
        assert document["salt"]

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts_without_second_record(self, store, users_collection, make_user):
        await make_user(email="jane@x.com")

        with pytest.raises(Conflict):
            await make_user(fullname="Other Jane", email="jane@x.com")

        assert len(users_collection.documents) == 1
        assert await store.count_users() == 1

    @pytest.mark.asyncio
    async def test_duplicate_key_from_storage_is_conflict(self, store, users_collection, make_user):
        await make_user(email="jane@x.com")
        # a concurrent signup passed the existence check before this one inserted
        store.email_exists = AsyncMock(return_value=False)

        with pytest.raises(Conflict):
            await make_user(email="jane@x.com")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("candidate", [
        {"fullname": "Jo", "email": "jo@x.com", "password": "Secret123!"},
        {"fullname": "Jane Doe", "email": "not-an-email", "password": "Secret123!"},
        {"fullname": "Jane Doe", "email": "jane@x.com", "password": "secret123"},
        {"fullname": "Jane Doe", "email": "jane@x.com"},
    ])
    async def test_invalid_candidates_rejected(self, store, users_collection, candidate):
        with pytest.raises(ValidationError):
            await store.create(candidate)

        assert users_collection.documents == []


class TestPasswords:
    """Test password verification and change."""

    @pytest.mark.asyncio
    async def test_verify_password(self, store, make_user):
        user = await make_user(password="Secret123!")

        assert store.verify_password(user, "Secret123!") is True
        assert store.verify_password(user, "Secret123") is False
        assert store.verify_password(user, "") is False
        assert store.verify_password(user, user.password) is False

    @pytest.mark.asyncio
    async def test_change_password_regenerates_salt(self, store, make_user):
        user = await make_user(password="Secret123!")

        updated = await store.change_password(user, "Changed456#")
        reloaded = await store.find_by_id(user.id)

        assert updated.salt != user.salt
        assert reloaded.salt == updated.salt
        assert store.verify_password(reloaded, "Changed456#") is True
        assert store.verify_password(reloaded, "Secret123!") is False

    @pytest.mark.asyncio
    async def test_change_password_enforces_policy(self, store, make_user):
        user = await make_user()

        with pytest.raises(ValidationError):
            await store.change_password(user, "weak")


class TestLookupsAndMutations:
    """Test lookups, profile updates and deletion."""

    @pytest.mark.asyncio
    async def test_unknown_email_returns_none(self, store):
        assert await store.find_by_email("nobody@x.com") is None
        assert await store.find_by_email("") is None

    @pytest.mark.asyncio
    async def test_find_by_id_with_malformed_id(self, store):
        with pytest.raises(ValidationError):
            await store.find_by_id("not-an-object-id")

    @pytest.mark.asyncio
    async def test_update_profile(self, store, make_user):
        user = await make_user()

        updated = await store.update_profile(user.id, fullname="Jane Smith", role=Role.ADMIN)
        reloaded = await store.find_by_id(user.id)

        assert updated.fullname == "Jane Smith"
        assert reloaded.fullname == "Jane Smith"
        assert reloaded.role is Role.ADMIN

    @pytest.mark.asyncio
    async def test_update_profile_requires_changes(self, store, make_user):
        user = await make_user()

        with pytest.raises(ValidationError):
            await store.update_profile(user.id)

    @pytest.mark.asyncio
    async def test_delete(self, store, make_user):
        user = await make_user()

        removed = await store.delete(user.id)

        assert removed.email == "jane@x.com"
        assert await store.find_by_id(user.id) is None
        with pytest.raises(NotFound):
            await store.delete(user.id)

    @pytest.mark.asyncio
    async def test_list_users_paginates_by_creation(self, store, make_user):
        for index in range(3):
            await make_user(fullname=f"User {index}", email=f"user{index}@x.com")

        first_page = await store.list_users(page=1, limit=2)
        second_page = await store.list_users(page=2, limit=2)

        assert [user.email for user in first_page] == ["user0@x.com", "user1@x.com"]
        assert [user.email for user in second_page] == ["user2@x.com"]

    @pytest.mark.asyncio
    async def test_undecryptable_record_is_internal_error(self, store, users_collection, make_user):
        user = await make_user()
        users_collection.set_fields({"email": store.encrypt_for_storage("jane@x.com")}, fullname="garbage")

        with pytest.raises(InternalError):
            await store.find_by_id(user.id)


class TestRefreshTokenPersistence:
    """Test the stored refresh token primitives."""

    @pytest.mark.asyncio
    async def test_set_find_and_clear(self, store, make_user):
        user = await make_user()

        assert await store.set_refresh_token(user.id, "token-1") is True
        assert (await store.find_by_refresh_token("token-1")).id == user.id

        assert await store.set_refresh_token(user.id, None) is True
        assert await store.find_by_refresh_token("token-1") is None
        assert (await store.find_by_id(user.id)).has_active_session is False

    @pytest.mark.asyncio
    async def test_replace_only_when_expected_matches(self, store, make_user):
        user = await make_user()
        await store.set_refresh_token(user.id, "token-1")

        assert await store.replace_refresh_token(user.id, "token-1", "token-2") is True
        assert await store.replace_refresh_token(user.id, "token-1", "token-3") is False
        assert (await store.find_by_id(user.id)).refresh_token == "token-2"
