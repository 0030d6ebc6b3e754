"""Email operations: the only path that changes a user's email list.

Adding or removing an address updates the user's list and the index entry
in the same commit, watching both keys.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from authdb.domain.shared import normalize_name, pack_fields, to_timestamp, utc_now
from authdb.domain.user import Email, EmailRecord, join_emails, split_emails
from authdb.domain.user import mapping as fields
from authdb.domain.user.mapping import email_from_hash
from authdb.exceptions import (
    EmailNotFoundError,
    EmailOwnershipError,
    EmailTakenError,
    MissingFieldError,
    UserNotFoundError,
    VerifiedEmailError,
)
from authdb.repositories import KeySpace, StoreTransaction, WriteBatch
from authdb.schemas import EmailPatch, parse_input
from authdb.services import TransactionalRecordStore

logger = logging.getLogger(__name__)


class EmailRegistry:
    """Owns email index entries and the email list of user records."""

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

    async def get(self, email: str) -> EmailRecord | None:
        if not email:
            return None
        address = email.strip().lower()
        raw = await self._store.hgetall(self._keys.email(address))
        if not raw.get(fields.USERNAME):
            return None
        return email_from_hash(address, raw)

    async def add(self, email: str, username: str) -> EmailRecord:
        """Claim an address for a user.

        Raises
        ------
        InvalidEmailError
            If the address is malformed
        UserNotFoundError
            If the user does not exist
        EmailTakenError
            If the address is already indexed
        LockError
            If the user or the entry changed before the commit
        """
        if not username:
            raise MissingFieldError("username")
        address = Email(email).value
        key = normalize_name(username)
        user_key = self._keys.user(key)
        email_key = self._keys.email(address)

        async def read(tx: StoreTransaction) -> tuple[dict[str, str], str | None]:
            user = await tx.hgetall(user_key)
            owner = await tx.hget(email_key, fields.USERNAME)
            return user, owner

        async def compute(
            state: tuple[dict[str, str], str | None], batch: WriteBatch
        ) -> EmailRecord:
            user, owner = state
            if not user.get(fields.USERNAME):
                raise UserNotFoundError(username)
            if owner is not None:
                raise EmailTakenError(address)

            emails = split_emails(user.get(fields.EMAIL))
            emails.append(address)
            user_changes = {fields.EMAIL: join_emails(emails)}
            entry = {fields.USERNAME: key}
            if self._auto_timestamps:
                now = to_timestamp(self._clock())
                user_changes[fields.UPDATED_AT] = now
                entry[fields.CREATED_AT] = now

            batch.hset(user_key, user_changes)
            batch.hsetnx(email_key, fields.USERNAME, key)
            if fields.CREATED_AT in entry:
                batch.hsetnx(email_key, fields.CREATED_AT, entry[fields.CREATED_AT])
            return email_from_hash(address, entry)

        record = await self._records.read_modify_write(
            [user_key, email_key], read, compute, aggregate="email"
        )
        logger.info("Email added for %s", key)
        return record

    async def update(
        self, data: EmailPatch | Mapping[str, Any], email: str
    ) -> EmailRecord:
        """Merge attributes onto an index entry owned by ``data.username``.

        Raises
        ------
        EmailNotFoundError
            If the address is not indexed
        EmailOwnershipError
            If ``username`` is missing or is not the owner
        VerifiedEmailError
            If the patch tries to un-verify a verified address
        """
        if not email:
            raise MissingFieldError("email")
        patch = parse_input(EmailPatch, data)
        address = email.strip().lower()
        email_key = self._keys.email(address)
        claimed = normalize_name(patch.username) if patch.username else None

        async def read(tx: StoreTransaction) -> dict[str, str]:
            return await tx.hgetall(email_key)

        async def compute(current: dict[str, str], batch: WriteBatch) -> EmailRecord:
            if not current.get(fields.USERNAME):
                raise EmailNotFoundError(address)
            if current[fields.USERNAME] != claimed:
                raise EmailOwnershipError(address)

            verified = bool(current.get(fields.VERIFIED_AT))
            changes = pack_fields(fields.ATTRIBUTES, patch.attributes)
            if patch.verified is False and verified:
                raise VerifiedEmailError(address)
            if patch.verified and not verified:
                changes[fields.VERIFIED_AT] = to_timestamp(self._clock())

            if changes:
                batch.hset(email_key, changes)
            return email_from_hash(address, {**current, **changes})

        record = await self._records.read_modify_write(
            [email_key], read, compute, aggregate="email"
        )
        logger.info("Email entry updated for %s", claimed)
        return record

    async def remove(self, email: str, username: str) -> None:
        """Release an unverified address from its owner.

        Raises
        ------
        EmailNotFoundError
            If the address is not indexed
        EmailOwnershipError
            If ``username`` is not the owner
        VerifiedEmailError
            If the address is verified
        LockError
            If the user or the entry changed before the commit
        """
        if not email:
            raise MissingFieldError("email")
        if not username:
            raise MissingFieldError("username")
        address = email.strip().lower()
        key = normalize_name(username)
        user_key = self._keys.user(key)
        email_key = self._keys.email(address)

        async def read(tx: StoreTransaction) -> tuple[dict[str, str], dict[str, str]]:
            return await tx.hgetall(email_key), await tx.hgetall(user_key)

        async def compute(
            state: tuple[dict[str, str], dict[str, str]], batch: WriteBatch
        ) -> None:
            entry, user = state
            if not entry.get(fields.USERNAME):
                raise EmailNotFoundError(address)
            if entry[fields.USERNAME] != key:
                raise EmailOwnershipError(address)
            if entry.get(fields.VERIFIED_AT):
                logger.warning("Refusing to remove verified email of %s", key)
                raise VerifiedEmailError(address)

            emails = [e for e in split_emails(user.get(fields.EMAIL)) if e != address]
            if emails:
                batch.hset(user_key, {fields.EMAIL: join_emails(emails)})
            elif user.get(fields.EMAIL) is not None:
                batch.hdel(user_key, fields.EMAIL)
            if self._auto_timestamps and user.get(fields.USERNAME):
                batch.hset(user_key, {fields.UPDATED_AT: to_timestamp(self._clock())})
            batch.delete(email_key)

        await self._records.read_modify_write(
            [email_key, user_key], read, compute, aggregate="email"
        )
        logger.info("Email removed for %s", key)
