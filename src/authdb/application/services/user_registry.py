"""User registry: user records and their email index entries.

A user record and the index entries of its email addresses are one
aggregate. Every mutation watches all the keys it reads and commits its
writes in a single conditional transaction, so the record and the index
never disagree.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from authdb.domain.shared import (
    join_list,
    normalize_name,
    pack_fields,
    to_timestamp,
    utc_now,
)
from authdb.domain.user import Email, EmailRecord, UserRecord, join_emails, split_emails
from authdb.domain.user import mapping as fields
from authdb.domain.user.mapping import email_from_hash, user_from_hash
from authdb.exceptions import (
    EmailTakenError,
    EmailUpdateNotAllowedError,
    InvalidInputError,
    MissingFieldError,
    UserInUseError,
    UsernameTakenError,
    UserNotFoundError,
)
from authdb.repositories import KeySpace, StoreTransaction, WriteBatch
from authdb.schemas import UserCreate, UserPatch, parse_input
from authdb.services import PasswordHashingService, TransactionalRecordStore

logger = logging.getLogger(__name__)


def validate_emails(addresses: list[str]) -> list[str]:
    """Validate and normalize addresses, dropping duplicates in order."""
    emails: list[str] = []
    for address in addresses:
        email = Email(address).value
        if email not in emails:
            emails.append(email)
    return emails


class UserRegistry:
    """Owns user records and the user -> email secondary index."""

    def __init__(  # noqa: PLR0913
        self,
        records: TransactionalRecordStore,
        keys: KeySpace,
        passwords: PasswordHashingService,
        *,
        password_required: bool = True,
        auto_timestamps: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._records = records
        self._store = records.store
        self._keys = keys
        self._passwords = passwords
        self._password_required = password_required
        self._auto_timestamps = auto_timestamps
        self._clock = clock

    def _timestamp(self) -> str:
        return to_timestamp(self._clock())

    async def get(self, username: str) -> UserRecord | None:
        """Return the user without password and salt, or None."""
        key = normalize_name(username)
        raw = await self._store.hgetall(self._keys.user(key))
        if not raw.get(fields.USERNAME):
            return None
        return user_from_hash(key, raw)

    async def exists(self, username: str) -> bool:
        key = normalize_name(username)
        return await self._store.hget(self._keys.user(key), fields.USERNAME) is not None

    async def create(self, user: UserCreate | Mapping[str, Any]) -> UserRecord:
        """Create a user and claim its email addresses.

        Raises
        ------
        MissingFieldError
            If username (or password, when required) is missing
        WeakPasswordError
            If the password is outside the length bounds
        InvalidEmailError
            If an address is malformed
        UsernameTakenError
            If the normalized user name exists
        EmailTakenError
            If an address is claimed by another user
        LockError
            If a watched key changed before the commit
        """
        data = parse_input(UserCreate, user)
        if not data.username or not normalize_name(data.username):
            raise MissingFieldError("username")
        if self._password_required and not data.password:
            raise MissingFieldError("password")

        key = normalize_name(data.username)
        emails = validate_emails(data.email)

        record: dict[str, str] = {
            fields.USERNAME: data.username.strip(),
            fields.REQUESTS: "0",
        }
        if data.password:
            record[fields.PASSWORD], record[fields.SALT] = self._passwords.hash(
                data.password
            )
        if emails:
            record[fields.EMAIL] = join_emails(emails)
        if data.roles:
            record[fields.ROLES] = join_list(data.roles)
        if data.license_expires_at:
            record[fields.LICENSE_EXPIRES_AT] = to_timestamp(data.license_expires_at)
        record.update(pack_fields(fields.PROFILE, data.profile))
        now = self._timestamp()
        if self._auto_timestamps:
            record[fields.CREATED_AT] = now
            record[fields.UPDATED_AT] = now

        user_key = self._keys.user(key)

        async def read(tx: StoreTransaction) -> tuple[str | None, dict[str, str | None]]:
            existing = await tx.hget(user_key, fields.USERNAME)
            owners: dict[str, str | None] = {}
            for email in emails:
                email_key = self._keys.email(email)
                await tx.watch(email_key)
                owners[email] = await tx.hget(email_key, fields.USERNAME)
            return existing, owners

        async def compute(
            state: tuple[str | None, dict[str, str | None]], batch: WriteBatch
        ) -> UserRecord:
            existing, owners = state
            if existing is not None:
                raise UsernameTakenError(data.username)
            for email, owner in owners.items():
                if owner is not None and owner != key:
                    raise EmailTakenError(email)

            batch.hset(user_key, record)
            for email in emails:
                email_key = self._keys.email(email)
                batch.hsetnx(email_key, fields.USERNAME, key)
                if self._auto_timestamps:
                    batch.hsetnx(email_key, fields.CREATED_AT, now)
            return user_from_hash(key, record)

        created = await self._records.read_modify_write(
            [user_key], read, compute, aggregate="user"
        )
        logger.info("User created: %s with %d email(s)", key, len(emails))
        return created

    async def update(
        self, user: UserPatch | Mapping[str, Any], username: str
    ) -> UserRecord:
        """Merge the supplied fields onto an existing user.

        Roles are replaced, profile attributes merged, a supplied password
        is re-hashed with a fresh salt. Emails cannot be changed here.

        Raises
        ------
        EmailUpdateNotAllowedError
            If the patch carries an email field
        UserNotFoundError
            If the user does not exist
        LockError
            If the record changed before the commit
        """
        if not username:
            raise MissingFieldError("username")
        data = parse_input(UserPatch, user)
        if data.email is not None:
            raise EmailUpdateNotAllowedError()

        key = normalize_name(username)
        if data.username is not None and normalize_name(data.username) != key:
            msg = f"user name {data.username} does not match {username}"
            raise InvalidInputError(msg)

        changes: dict[str, str] = {}
        removals: list[str] = []
        if data.username:
            changes[fields.USERNAME] = data.username.strip()
        if data.password:
            changes[fields.PASSWORD], changes[fields.SALT] = self._passwords.hash(
                data.password
            )
        if data.roles is not None:
            if data.roles:
                changes[fields.ROLES] = join_list(data.roles)
            else:
                removals.append(fields.ROLES)
        if data.profile:
            changes.update(pack_fields(fields.PROFILE, data.profile))
        if "license_expires_at" in data.model_fields_set:
            if data.license_expires_at is None:
                removals.append(fields.LICENSE_EXPIRES_AT)
            else:
                changes[fields.LICENSE_EXPIRES_AT] = to_timestamp(
                    data.license_expires_at
                )
        if self._auto_timestamps:
            changes[fields.UPDATED_AT] = self._timestamp()

        user_key = self._keys.user(key)

        async def read(tx: StoreTransaction) -> dict[str, str]:
            return await tx.hgetall(user_key)

        async def compute(current: dict[str, str], batch: WriteBatch) -> UserRecord:
            if not current.get(fields.USERNAME):
                raise UserNotFoundError(username)
            if changes:
                batch.hset(user_key, changes)
            if removals:
                batch.hdel(user_key, *removals)
            merged = {**current, **changes}
            for name in removals:
                merged.pop(name, None)
            return user_from_hash(key, merged)

        updated = await self._records.read_modify_write(
            [user_key], read, compute, aggregate="user"
        )
        logger.info("User updated: %s", key)
        return updated

    async def remove(self, username: str) -> None:
        """Remove a user and every email index entry it owns.

        Raises
        ------
        UserNotFoundError
            If the user does not exist
        UserInUseError
            If the user has recorded requests
        LockError
            If the record or one of its email entries changed
        """
        if not username:
            raise MissingFieldError("username")
        key = normalize_name(username)
        user_key = self._keys.user(key)

        async def read(
            tx: StoreTransaction,
        ) -> tuple[dict[str, str], dict[str, str | None]]:
            current = await tx.hgetall(user_key)
            owners: dict[str, str | None] = {}
            for email in split_emails(current.get(fields.EMAIL)):
                email_key = self._keys.email(email)
                await tx.watch(email_key)
                owners[email] = await tx.hget(email_key, fields.USERNAME)
            return current, owners

        async def compute(
            state: tuple[dict[str, str], dict[str, str | None]], batch: WriteBatch
        ) -> None:
            current, owners = state
            if not current.get(fields.USERNAME):
                raise UserNotFoundError(username)
            requests = int(current.get(fields.REQUESTS) or 0)
            if requests > 0:
                logger.warning("Refusing to remove user %s with %d requests", key, requests)
                raise UserInUseError(username, requests)
            owned = [
                self._keys.email(email) for email, owner in owners.items() if owner == key
            ]
            batch.delete(user_key, *owned)

        await self._records.read_modify_write(
            [user_key], read, compute, aggregate="user"
        )
        logger.info("User removed: %s", key)

    async def check_password(self, username: str, password: str) -> bool:
        """Check a plaintext password against the stored hash.

        Returns False on mismatch, for unknown users and for users without
        a password; never raises for those cases.
        """
        if not username or not password:
            return False
        key = normalize_name(username)
        raw = await self._store.hgetall(self._keys.user(key))
        return self._passwords.verify(
            password, raw.get(fields.SALT), raw.get(fields.PASSWORD)
        )

    async def emails(self, username: str) -> list[EmailRecord]:
        """Resolve the index entries of the user's addresses.

        Entries whose owner is not this user are left out.
        """
        key = normalize_name(username)
        raw = await self._store.hgetall(self._keys.user(key))
        records: list[EmailRecord] = []
        for email in split_emails(raw.get(fields.EMAIL)):
            entry = await self._store.hgetall(self._keys.email(email))
            if entry.get(fields.USERNAME) == key:
                records.append(email_from_hash(email, entry))
            else:
                logger.warning("Email %s listed by %s is not indexed to it", email, key)
        return records
