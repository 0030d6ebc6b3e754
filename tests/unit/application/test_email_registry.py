"""Unit tests for the email operations."""

import pytest
import pytest_asyncio

from authdb.exceptions import (
    EmailNotFoundError,
    EmailOwnershipError,
    EmailTakenError,
    InvalidEmailError,
    UserNotFoundError,
    VerifiedEmailError,
)
from tests.shared.fixtures.store import START


@pytest_asyncio.fixture
async def ana(db):
    return await db.users.create(
        {"username": "ana", "password": "secret1", "email": ["ana@example.com"]}
    )


class TestAdd:
    @pytest.mark.asyncio
    async def test_add_appends_and_indexes(self, db, ana, fake_store):
        record = await db.email.add("Second@Example.com", "ANA")

        assert record.email == "second@example.com"
        assert record.username == "ana"
        assert record.created_at == START
        user = await db.users.get("ana")
        assert user.emails == ["ana@example.com", "second@example.com"]
        assert fake_store.raw("auth-db:emails:second@example.com")["username"] == "ana"

    @pytest.mark.asyncio
    async def test_add_to_unknown_user(self, db, fake_store):
        with pytest.raises(UserNotFoundError):
            await db.email.add("x@example.com", "nobody")
        assert fake_store.keys() == []

    @pytest.mark.asyncio
    async def test_add_taken_address(self, db, ana):
        await db.users.create({"username": "bo", "password": "secret1"})

        with pytest.raises(EmailTakenError):
            await db.email.add("ana@example.com", "bo")
        assert (await db.users.get("bo")).emails == []

    @pytest.mark.asyncio
    async def test_add_invalid_address(self, db, ana):
        with pytest.raises(InvalidEmailError):
            await db.email.add("nope", "ana")


class TestUpdate:
    @pytest.mark.asyncio
    async def test_verify_and_merge_attributes(self, db, ana):
        record = await db.email.update(
            {"username": "ana", "verified": True, "attributes": {"source": "signup"}},
            "ana@example.com",
        )

        assert record.verified
        assert record.verified_at == START
        assert record.attributes == {"source": "signup"}

        record = await db.email.update(
            {"username": "ana", "attributes": {"primary": "yes"}}, "ana@example.com"
        )
        assert record.attributes == {"source": "signup", "primary": "yes"}
        assert record.verified_at == START

    @pytest.mark.asyncio
    async def test_verified_cannot_be_unset(self, db, ana):
        await db.email.update({"username": "ana", "verified": True}, "ana@example.com")

        with pytest.raises(VerifiedEmailError):
            await db.email.update(
                {"username": "ana", "verified": False}, "ana@example.com"
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("patch", [{"username": "bo"}, {}])
    async def test_owner_must_match(self, db, ana, patch):
        with pytest.raises(EmailOwnershipError):
            await db.email.update(patch, "ana@example.com")

    @pytest.mark.asyncio
    async def test_unknown_address(self, db, ana):
        with pytest.raises(EmailNotFoundError):
            await db.email.update({"username": "ana"}, "x@example.com")


class TestRemove:
    @pytest.mark.asyncio
    async def test_remove_updates_list_and_index(self, db, ana, fake_store):
        await db.email.add("second@example.com", "ana")

        await db.email.remove("ana@example.com", "ana")

        assert (await db.users.get("ana")).emails == ["second@example.com"]
        assert await db.email.get("ana@example.com") is None

    @pytest.mark.asyncio
    async def test_remove_last_address_drops_field(self, db, ana, fake_store):
        await db.email.remove("ana@example.com", "ana")

        assert "email" not in fake_store.raw("auth-db:users:ana")
        assert (await db.users.get("ana")).emails == []

    @pytest.mark.asyncio
    async def test_verified_address_cannot_be_removed(self, db, ana):
        await db.email.update({"username": "ana", "verified": True}, "ana@example.com")

        with pytest.raises(VerifiedEmailError):
            await db.email.remove("ana@example.com", "ana")
        assert await db.email.get("ana@example.com") is not None

    @pytest.mark.asyncio
    async def test_remove_requires_owner(self, db, ana):
        await db.users.create({"username": "bo", "password": "secret1"})

        with pytest.raises(EmailOwnershipError):
            await db.email.remove("ana@example.com", "bo")

    @pytest.mark.asyncio
    async def test_remove_unknown_address(self, db, ana):
        with pytest.raises(EmailNotFoundError):
            await db.email.remove("x@example.com", "ana")

    @pytest.mark.asyncio
    async def test_released_address_can_be_claimed(self, db, ana):
        await db.users.create({"username": "bo", "password": "secret1"})
        await db.email.remove("ana@example.com", "ana")

        record = await db.email.add("ana@example.com", "bo")

        assert record.username == "bo"
