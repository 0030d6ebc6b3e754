"""Entry point wiring the registries onto one store handle."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from authdb.application.services import (
    EmailRegistry,
    RoleRegistry,
    SessionManager,
    UserRegistry,
)
from authdb.domain.shared import utc_now
from authdb.repositories import KeySpace, StoreAdapter
from authdb.services import (
    HashConfig,
    PasswordHasher,
    PasswordHashingService,
    TransactionalRecordStore,
)
from authdb_config import Settings, get_settings

logger = logging.getLogger(__name__)


class AuthDB:
    """Identity store: users, email index, roles and sessions.

    Each instance owns the store handle it was given, so isolated
    instances (other databases, other key prefixes) can coexist.

    Usage::

        async with AuthDB.from_settings() as db:
            await db.users.create({"username": "ana", "password": "s3cret!"})
            await db.roles.has_permission(["admin"], "reports", "GET")
    """

    def __init__(
        self,
        store: StoreAdapter,
        settings: Settings | None = None,
        *,
        hasher: PasswordHasher | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        settings = settings or get_settings()
        self._store = store
        self._settings = settings
        self.keys = KeySpace(prefix=settings.key_prefix)

        records = TransactionalRecordStore(store)
        passwords = PasswordHashingService(
            hasher=hasher,
            config=HashConfig(
                iterations=settings.hash_iterations,
                key_length=settings.hash_key_length,
                digest=settings.hash_digest,
            ),
            salt_length=settings.salt_length,
            min_length=settings.password_min_length,
            max_length=settings.password_max_length,
        )

        self.users = UserRegistry(
            records,
            self.keys,
            passwords,
            password_required=settings.password_required,
            auto_timestamps=settings.auto_timestamps,
            clock=clock,
        )
        self.email = EmailRegistry(
            records, self.keys, auto_timestamps=settings.auto_timestamps, clock=clock
        )
        self.roles = RoleRegistry(
            records, self.keys, auto_timestamps=settings.auto_timestamps, clock=clock
        )
        self.sessions = SessionManager(
            store,
            self.keys,
            default_ttl=settings.session_ttl_seconds,
            id_bytes=settings.session_id_bytes,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> AuthDB:
        """Build a Redis-backed instance from settings."""
        from authdb.infrastructure.persistence.redis import (
            RedisStoreAdapter,
            create_redis_client,
        )

        settings = settings or get_settings()
        client = create_redis_client(settings)
        logger.debug("Opened Redis client with key prefix %s", settings.key_prefix)
        return cls(RedisStoreAdapter(client), settings)

    @property
    def store(self) -> StoreAdapter:
        return self._store

    @property
    def settings(self) -> Settings:
        return self._settings

    async def aclose(self) -> None:
        await self._store.aclose()

    async def __aenter__(self) -> AuthDB:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
