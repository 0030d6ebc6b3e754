"""Unit tests for RoleRegistry."""

import pytest

from authdb.domain.role import AccessRule
from authdb.exceptions import (
    InvalidAclError,
    InvalidInputError,
    MissingFieldError,
    RoleExistsError,
    RoleNotFoundError,
)

ACL = ["dashboard", {"resource": "habilis/cadastro", "methods": ["post", "put"]}]


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_with_acl(self, db, fake_store):
        role = await db.roles.create(
            {"name": "Admin", "description": "Full access", "acl": ACL}
        )

        assert role.key == "admin"
        assert role.name == "Admin"
        assert role.acl == [
            AccessRule("dashboard", ("*",)),
            AccessRule("habilis/cadastro", ("POST", "PUT")),
        ]
        assert fake_store.raw("auth-db:roles:admin:acl") == {
            "dashboard:*",
            "habilis/cadastro:POST",
            "habilis/cadastro:PUT",
        }

    @pytest.mark.asyncio
    async def test_get_round_trips(self, db):
        await db.roles.create(
            {"name": "admin", "attributes": {"level": "3"}, "acl": ACL}
        )

        role = await db.roles.get("ADMIN")

        assert role is not None
        assert role.attributes == {"level": "3"}
        assert {rule.resource for rule in role.acl} == {"dashboard", "habilis/cadastro"}
        assert await db.roles.get("nobody") is None

    @pytest.mark.asyncio
    async def test_create_and_get_agree_on_acl_order(self, db):
        acl = [{"resource": "reports", "methods": ["put", "get"]}, "alpha"]

        created = await db.roles.create({"name": "editor", "acl": acl})
        fetched = await db.roles.get("editor")

        assert created.acl == [
            AccessRule("alpha", ("*",)),
            AccessRule("reports", ("GET", "PUT")),
        ]
        assert fetched.acl == created.acl

    @pytest.mark.asyncio
    async def test_empty_method_list_grants_nothing(self, db, fake_store):
        role = await db.roles.create(
            {"name": "viewer", "acl": [{"resource": "reports", "methods": []}]}
        )

        assert role.acl == []
        assert await fake_store.exists("auth-db:roles:viewer:acl") is False
        assert not await db.roles.has_permission("viewer", "reports", "DELETE")
        assert not await db.roles.has_permission("viewer", "reports", "GET")
        assert not await db.roles.has_permission("viewer", "reports")

    @pytest.mark.asyncio
    async def test_create_without_acl(self, db, fake_store):
        role = await db.roles.create({"name": "guest"})

        assert role.acl == []
        assert await fake_store.exists("auth-db:roles:guest:acl") is False

    @pytest.mark.asyncio
    async def test_duplicate_name(self, db):
        await db.roles.create({"name": "admin"})

        with pytest.raises(RoleExistsError):
            await db.roles.create({"name": " ADMIN "})

    @pytest.mark.asyncio
    async def test_missing_name(self, db):
        with pytest.raises(MissingFieldError, match="missing name"):
            await db.roles.create({"acl": ACL})

    @pytest.mark.asyncio
    async def test_name_with_separator(self, db):
        with pytest.raises(InvalidInputError):
            await db.roles.create({"name": "a:b"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("acl", "message"),
        [
            ("dashboard", "acl must be an array"),
            ([{"methods": ["get"]}], "Resource must be informed"),
        ],
    )
    async def test_invalid_acl_writes_nothing(self, db, fake_store, acl, message):
        with pytest.raises(InvalidAclError, match=message):
            await db.roles.create({"name": "admin", "acl": acl})
        assert fake_store.keys() == []


class TestUpdate:
    @pytest.mark.asyncio
    async def test_acl_is_replaced(self, db, fake_store):
        await db.roles.create({"name": "admin", "acl": ACL})

        role = await db.roles.update({"acl": [{"resource": "reports"}]}, "admin")

        assert role.acl == [AccessRule("reports", ("*",))]
        assert fake_store.raw("auth-db:roles:admin:acl") == {"reports:*"}

    @pytest.mark.asyncio
    async def test_update_returns_stored_acl_order(self, db):
        await db.roles.create({"name": "admin"})

        updated = await db.roles.update(
            {"acl": [{"resource": "zeta", "methods": ["post", "get"]}, "alpha"]}, "admin"
        )

        assert updated.acl == (await db.roles.get("admin")).acl
        assert [rule.resource for rule in updated.acl] == ["alpha", "zeta"]
        assert updated.acl[1].methods == ("GET", "POST")

    @pytest.mark.asyncio
    async def test_empty_acl_keeps_current(self, db, fake_store):
        await db.roles.create({"name": "admin", "acl": ["dashboard"]})

        role = await db.roles.update({"description": "changed", "acl": []}, "admin")

        assert role.description == "changed"
        assert role.acl == [AccessRule("dashboard", ("*",))]
        assert fake_store.raw("auth-db:roles:admin:acl") == {"dashboard:*"}

    @pytest.mark.asyncio
    async def test_attributes_are_merged(self, db):
        await db.roles.create({"name": "admin", "attributes": {"a": "1"}})

        role = await db.roles.update({"attributes": {"b": "2"}}, "admin")

        assert role.attributes == {"a": "1", "b": "2"}

    @pytest.mark.asyncio
    async def test_unknown_role(self, db, fake_store):
        with pytest.raises(RoleNotFoundError, match="role not found"):
            await db.roles.update({"acl": ["dashboard"]}, "nobody")
        assert fake_store.keys() == []


class TestList:
    @pytest.mark.asyncio
    async def test_list_excludes_acl_keys(self, db):
        for name in ("admin", "reader", "auditor"):
            await db.roles.create({"name": name, "acl": ["dashboard"]})

        assert await db.roles.list() == ["admin", "auditor", "reader"]
        assert await db.roles.list("a") == ["admin", "auditor"]
        assert await db.roles.list("zzz") == []


class TestHasPermission:
    @pytest.mark.asyncio
    async def test_permission_checks(self, db):
        await db.roles.create({"name": "admin", "acl": ACL})
        await db.roles.create(
            {"name": "reader", "acl": [{"resource": "reports", "methods": ["get"]}]}
        )

        assert await db.roles.has_permission("admin", "dashboard", "any")
        assert await db.roles.has_permission(["Admin"], "dashboard")
        assert await db.roles.has_permission(["reader", "admin"], "habilis/cadastro", "post")
        assert not await db.roles.has_permission(["admin"], "habilis/cadastro", "get")
        assert not await db.roles.has_permission(["admin"], "habilis/cadastro")
        assert await db.roles.has_permission(["reader"], "Reports", "GET")
        assert not await db.roles.has_permission(["reader"], "reports", "DELETE")
        assert not await db.roles.has_permission(["nobody"], "dashboard", "GET")
        assert not await db.roles.has_permission([None, 42], "dashboard", "GET")

    @pytest.mark.asyncio
    async def test_resource_required(self, db):
        with pytest.raises(MissingFieldError, match="missing resource"):
            await db.roles.has_permission(["admin"], "", "GET")
