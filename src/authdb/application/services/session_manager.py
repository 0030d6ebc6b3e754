"""Session manager: TTL-bound sessions with a sliding expiration window.

Sessions are keyed by (subject, random id). The store removes a session
when its TTL lapses; every successful ``validate`` pushes the deadline
forward and counts the request on both the session and the owning user.

State machine::

    absent --create--> active --validate--> active
    active --destroy / reset / TTL lapse--> absent
"""

import json
import logging
import secrets
from collections.abc import Callable
from datetime import datetime
from typing import Any

from authdb.domain.session import SessionRecord
from authdb.domain.shared import from_timestamp, normalize_name, to_timestamp, utc_now
from authdb.domain.user import mapping as user_fields
from authdb.exceptions import (
    InvalidInputError,
    LicenseExpiredError,
    LockError,
    MissingFieldError,
    SessionNotFoundError,
)
from authdb.repositories import KeySpace, StoreAdapter, WriteBatch

logger = logging.getLogger(__name__)

SUBJECT = "subject"
DATA = "data"
CREATED_AT = "created_at"
LAST_ACTIVITY = "last_activity"
REQUESTS = "requests"
TTL = "ttl"


def _to_record(session_id: str, raw: dict[str, str]) -> SessionRecord:
    return SessionRecord(
        id=session_id,
        subject=raw.get(SUBJECT, ""),
        data=json.loads(raw[DATA]) if raw.get(DATA) else {},
        created_at=from_timestamp(raw.get(CREATED_AT)),
        last_activity=from_timestamp(raw.get(LAST_ACTIVITY)),
        requests=int(raw.get(REQUESTS) or 0),
        ttl=int(raw[TTL]) if raw.get(TTL) else None,
    )


class SessionManager:
    """Owns session records."""

    def __init__(  # noqa: PLR0913
        self,
        store: StoreAdapter,
        keys: KeySpace,
        *,
        default_ttl: int = 3600,
        id_bytes: int = 24,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._keys = keys
        self._default_ttl = default_ttl
        self._id_bytes = id_bytes
        self._clock = clock

    def _subject_key(self, subject: str) -> str:
        if not isinstance(subject, str) or not normalize_name(subject):
            raise MissingFieldError("subject")
        return normalize_name(subject)

    def _ttl(self, ttl_seconds: int | None) -> int:
        if ttl_seconds is None:
            return self._default_ttl
        if ttl_seconds <= 0:
            msg = f"session ttl must be positive, got {ttl_seconds}"
            raise InvalidInputError(msg)
        return ttl_seconds

    async def _session_keys(self, subject_key: str) -> list[str]:
        """Keys of every live session of ``subject_key``.

        The scan pattern also matches subjects that extend this one with
        ``:``; ids never contain ``:`` so those keys are filtered out.
        """
        start = len(self._keys.session(subject_key, ""))
        keys: list[str] = []
        async for key in self._store.scan_iter(self._keys.session_pattern(subject_key)):
            if ":" not in key[start:]:
                keys.append(key)
        return keys

    async def create(
        self,
        subject: str,
        data: dict[str, Any] | None = None,
        ttl_seconds: int | None = None,
    ) -> str:
        """Start a session and return its id.

        The payload and the TTL are written in one atomic batch.
        """
        subject_key = self._subject_key(subject)
        ttl = self._ttl(ttl_seconds)
        try:
            payload = json.dumps(data or {})
        except (TypeError, ValueError) as exc:
            msg = f"session data is not serializable: {exc}"
            raise InvalidInputError(msg) from exc

        session_id = secrets.token_urlsafe(self._id_bytes)
        session_key = self._keys.session(subject_key, session_id)
        now = to_timestamp(self._clock())
        batch = WriteBatch()
        batch.hset(
            session_key,
            {
                SUBJECT: subject_key,
                DATA: payload,
                CREATED_AT: now,
                LAST_ACTIVITY: now,
                REQUESTS: "0",
                TTL: str(ttl),
            },
        )
        batch.expire(session_key, ttl)
        async with self._store.transaction() as tx:
            await tx.commit(batch)

        logger.debug("Session created for %s (ttl=%ds)", subject_key, ttl)
        return session_id

    async def get(self, subject: str, session_id: str) -> SessionRecord | None:
        """Return the session, or None if it is absent or expired."""
        if not session_id:
            return None
        subject_key = self._subject_key(subject)
        raw = await self._store.hgetall(self._keys.session(subject_key, session_id))
        if not raw:
            return None
        return _to_record(session_id, raw)

    async def validate(
        self,
        subject: str,
        session_id: str,
        ttl_seconds: int | None = None,
    ) -> SessionRecord:
        """Confirm a session and slide its expiration window.

        The owning user's license expiry is checked before the session is
        touched, so an expired license invalidates every session at once.
        On success the TTL is refreshed and the request counters of the
        session and the user are incremented in one commit.

        Parameters
        ----------
        ttl_seconds
            New TTL; defaults to the TTL the session was created with

        Raises
        ------
        InvalidInputError
            If ``ttl_seconds`` is not a positive integer
        LicenseExpiredError
            If the owning user's license has expired
        SessionNotFoundError
            If the session is absent or expired
        LockError
            If the session or the user changed concurrently
        """
        subject_key = self._subject_key(subject)
        ttl_override = self._ttl(ttl_seconds) if ttl_seconds is not None else None
        if not session_id:
            raise SessionNotFoundError(subject)
        now = self._clock()

        user_key = self._keys.user(subject_key)
        user = user_fields.user_from_hash(
            subject_key, await self._store.hgetall(user_key)
        )
        if user.license_expired(now):
            logger.warning("Rejected session of %s, license expired", subject_key)
            raise LicenseExpiredError(subject, to_timestamp(user.license_expires_at))

        session_key = self._keys.session(subject_key, session_id)
        timestamp = to_timestamp(now)
        async with self._store.transaction() as tx:
            await tx.watch(session_key, user_key)
            session = await tx.hgetall(session_key)
            if not session:
                raise SessionNotFoundError(subject)
            user_exists = await tx.exists(user_key)

            ttl = ttl_override or int(session.get(TTL) or self._default_ttl)

            batch = WriteBatch()
            batch.hset(session_key, {LAST_ACTIVITY: timestamp, TTL: str(ttl)})
            batch.hincrby(session_key, REQUESTS, 1)
            batch.expire(session_key, ttl)
            if user_exists:
                batch.hset(user_key, {user_fields.LAST_ACTIVITY: timestamp})
                batch.hincrby(user_key, user_fields.REQUESTS, 1)
            outcome = await tx.commit(batch)

        if outcome is None:
            logger.warning("Session validation of %s lost a race", subject_key)
            raise LockError("session")

        return _to_record(
            session_id,
            {
                **session,
                LAST_ACTIVITY: timestamp,
                TTL: str(ttl),
                REQUESTS: str(int(session.get(REQUESTS) or 0) + 1),
            },
        )

    async def destroy(self, subject: str, session_id: str) -> bool:
        """Delete one session. Returns False if it did not exist."""
        if not isinstance(session_id, str) or not session_id:
            msg = "session id must be a string"
            raise InvalidInputError(msg)
        subject_key = self._subject_key(subject)
        removed = await self._store.delete(self._keys.session(subject_key, session_id))
        return removed == 1

    async def reset(self, subject: str) -> int:
        """Delete every session of ``subject`` ("log out everywhere").

        Returns
        -------
        Number of sessions removed
        """
        subject_key = self._subject_key(subject)
        keys = await self._session_keys(subject_key)
        removed = await self._store.delete(*keys) if keys else 0
        logger.info("Reset %d session(s) of %s", removed, subject_key)
        return removed

    async def list(self, subject: str) -> list[str]:
        """Ids of the live sessions of ``subject``."""
        subject_key = self._subject_key(subject)
        start = len(self._keys.session(subject_key, ""))
        return sorted(key[start:] for key in await self._session_keys(subject_key))
