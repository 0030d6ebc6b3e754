"""Role registry: role records and their access control lists.

A role's attributes live in a hash and its ACL in a parallel set of tokens
(see ``authdb.domain.role.acl``). Both are written in the same commit; a
supplied ACL replaces the stored one wholesale.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from authdb.domain.role import AccessRule, RoleRecord, check_permission, decode, encode
from authdb.domain.shared import (
    from_timestamp,
    normalize_name,
    pack_fields,
    to_timestamp,
    unpack_fields,
    utc_now,
)
from authdb.exceptions import (
    InvalidInputError,
    MissingFieldError,
    RoleExistsError,
    RoleNotFoundError,
)
from authdb.repositories import ACL_SUFFIX, KeySpace, StoreTransaction, WriteBatch
from authdb.schemas import RoleCreate, RolePatch, parse_input
from authdb.services import TransactionalRecordStore

logger = logging.getLogger(__name__)

NAME = "name"
DESCRIPTION = "description"
ATTRIBUTES = "attr"
CREATED_AT = "created_at"
UPDATED_AT = "updated_at"


def _role_key(name: str | None) -> str:
    if not name or not normalize_name(name):
        raise MissingFieldError("name")
    key = normalize_name(name)
    if ":" in key:
        msg = f"role name cannot contain ':': {name}"
        raise InvalidInputError(msg)
    return key


def _to_record(key: str, raw: Mapping[str, str], acl: list[AccessRule]) -> RoleRecord:
    return RoleRecord(
        key=key,
        name=raw.get(NAME, key),
        description=raw.get(DESCRIPTION),
        attributes=unpack_fields(ATTRIBUTES, raw),
        acl=acl,
        created_at=from_timestamp(raw.get(CREATED_AT)),
        updated_at=from_timestamp(raw.get(UPDATED_AT)),
    )


class RoleRegistry:
    """Owns role records and ACL sets."""

    def __init__(
        self,
        records: TransactionalRecordStore,
        keys: KeySpace,
        *,
        auto_timestamps: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._records = records
        self._store = records.store
        self._keys = keys
        self._auto_timestamps = auto_timestamps
        self._clock = clock

    def _replace_acl(self, batch: WriteBatch, key: str, tokens: list[str]) -> None:
        acl_key = self._keys.role_acl(key)
        batch.delete(acl_key)
        batch.sadd(acl_key, *tokens)

    async def get(self, name: str) -> RoleRecord | None:
        """Return the role with its decoded ACL, or None if it does not exist."""
        if not name:
            return None
        key = normalize_name(name)
        raw = await self._store.hgetall(self._keys.role(key))
        if not raw.get(NAME):
            return None
        tokens = await self._store.smembers(self._keys.role_acl(key))
        return _to_record(key, raw, decode(sorted(tokens)))

    async def create(self, role: RoleCreate | Mapping[str, Any]) -> RoleRecord:
        """Create a role, with its ACL when one is given.

        Raises
        ------
        MissingFieldError
            If the name is missing
        InvalidAclError
            If the ACL is not a list or has a rule without resource
        RoleExistsError
            If the normalized name exists
        LockError
            If the role changed before the commit
        """
        data = parse_input(RoleCreate, role)
        key = _role_key(data.name)
        tokens = encode(data.acl) if data.acl is not None else []

        record: dict[str, str] = {NAME: data.name.strip()}
        if data.description is not None:
            record[DESCRIPTION] = data.description
        record.update(pack_fields(ATTRIBUTES, data.attributes))
        if self._auto_timestamps:
            now = to_timestamp(self._clock())
            record[CREATED_AT] = now
            record[UPDATED_AT] = now

        role_key = self._keys.role(key)

        async def read(tx: StoreTransaction) -> str | None:
            return await tx.hget(role_key, NAME)

        async def compute(existing: str | None, batch: WriteBatch) -> RoleRecord:
            if existing is not None:
                raise RoleExistsError(data.name)
            batch.hset(role_key, record)
            if tokens:
                self._replace_acl(batch, key, tokens)
            return _to_record(key, record, decode(sorted(tokens)))

        created = await self._records.read_modify_write(
            [role_key, self._keys.role_acl(key)], read, compute, aggregate="role"
        )
        logger.info("Role created: %s with %d ACL tokens", key, len(tokens))
        return created

    async def update(self, role: RolePatch | Mapping[str, Any], name: str) -> RoleRecord:
        """Merge attributes onto a role; a non-empty ACL replaces the stored one.

        Raises
        ------
        RoleNotFoundError
            If the role does not exist
        InvalidAclError
            If the ACL is malformed
        LockError
            If the role changed before the commit
        """
        key = _role_key(name)
        data = parse_input(RolePatch, role)
        if data.name is not None and normalize_name(data.name) != key:
            msg = f"role name {data.name} does not match {name}"
            raise InvalidInputError(msg)
        tokens = encode(data.acl) if data.acl is not None else []

        changes: dict[str, str] = {}
        if data.name:
            changes[NAME] = data.name.strip()
        if data.description is not None:
            changes[DESCRIPTION] = data.description
        if data.attributes:
            changes.update(pack_fields(ATTRIBUTES, data.attributes))
        if self._auto_timestamps:
            changes[UPDATED_AT] = to_timestamp(self._clock())

        role_key = self._keys.role(key)
        acl_key = self._keys.role_acl(key)

        async def read(tx: StoreTransaction) -> tuple[dict[str, str], set[str]]:
            return await tx.hgetall(role_key), await tx.smembers(acl_key)

        async def compute(
            state: tuple[dict[str, str], set[str]], batch: WriteBatch
        ) -> RoleRecord:
            current, current_tokens = state
            if not current.get(NAME):
                raise RoleNotFoundError(name)
            if changes:
                batch.hset(role_key, changes)
            if tokens:
                self._replace_acl(batch, key, tokens)
                acl = decode(sorted(tokens))
            else:
                acl = decode(sorted(current_tokens))
            return _to_record(key, {**current, **changes}, acl)

        updated = await self._records.read_modify_write(
            [role_key, acl_key], read, compute, aggregate="role"
        )
        logger.info("Role updated: %s", key)
        return updated

    async def list(self, prefix: str = "") -> list[str]:
        """Names of the roles whose normalized name starts with ``prefix``."""
        pattern = self._keys.role_pattern(normalize_name(prefix) if prefix else "")
        start = len(self._keys.roles_prefix)
        names: set[str] = set()
        async for role_key in self._store.scan_iter(pattern):
            if role_key.endswith(ACL_SUFFIX):
                continue
            names.add(role_key[start:])
        return sorted(names)

    async def has_permission(
        self,
        roles: Any,
        resource: str,
        method: str | None = None,
    ) -> bool:
        """Check whether any of the roles grants ``method`` on ``resource``.

        ``roles`` is a role name or a list of them, tried in order; the
        first granting role wins. Entries that are not strings never match.
        """
        if not isinstance(resource, str) or not resource.strip():
            raise MissingFieldError("resource")

        async def lookup(role_name: str, token: str) -> bool:
            acl_key = self._keys.role_acl(normalize_name(role_name))
            return await self._store.sismember(acl_key, token)

        return await check_permission(lookup, roles, resource, method)
