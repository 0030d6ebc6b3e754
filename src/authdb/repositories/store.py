"""Abstract key-value store interface.

This interface defines the contract the identity store needs from its
backing key-value store: hash-per-key storage, sets, per-key TTL, prefix
enumeration and a watch/conditional-transaction primitive. Implementations
can use Redis or any store offering compare-and-commit semantics.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class StoreCommand:
    """One buffered write: the store operation name and its arguments."""

    name: str
    args: tuple[Any, ...]


@dataclass
class WriteBatch:
    """Writes buffered for a single atomic commit.

    Builder methods return the batch so calls can be chained::

        batch.hset(user_key, fields).hsetnx(email_key, "username", name)
    """

    commands: list[StoreCommand] = field(default_factory=list)

    def _add(self, name: str, *args: Any) -> "WriteBatch":
        self.commands.append(StoreCommand(name=name, args=args))
        return self

    def hset(self, key: str, mapping: Mapping[str, str]) -> "WriteBatch":
        if not mapping:
            msg = f"hset on {key} needs at least one field"
            raise ValueError(msg)
        return self._add("hset", key, dict(mapping))

    def hsetnx(self, key: str, field_name: str, value: str) -> "WriteBatch":
        return self._add("hsetnx", key, field_name, value)

    def hdel(self, key: str, *fields: str) -> "WriteBatch":
        if not fields:
            msg = f"hdel on {key} needs at least one field"
            raise ValueError(msg)
        return self._add("hdel", key, *fields)

    def hincrby(self, key: str, field_name: str, amount: int = 1) -> "WriteBatch":
        return self._add("hincrby", key, field_name, amount)

    def delete(self, *keys: str) -> "WriteBatch":
        if not keys:
            msg = "delete needs at least one key"
            raise ValueError(msg)
        return self._add("delete", *keys)

    def sadd(self, key: str, *members: str) -> "WriteBatch":
        if not members:
            msg = f"sadd on {key} needs at least one member"
            raise ValueError(msg)
        return self._add("sadd", key, *members)

    def srem(self, key: str, *members: str) -> "WriteBatch":
        if not members:
            msg = f"srem on {key} needs at least one member"
            raise ValueError(msg)
        return self._add("srem", key, *members)

    def expire(self, key: str, seconds: int) -> "WriteBatch":
        return self._add("expire", key, seconds)

    def __len__(self) -> int:
        return len(self.commands)


class StoreTransaction(ABC):
    """A conditional transaction in progress.

    Keys are watched first; reads issued after watching run immediately.
    ``commit`` applies the buffered batch only if no watched key changed.
    """

    @abstractmethod
    async def watch(self, *keys: str) -> None:
        """Flag keys for change detection."""

    @abstractmethod
    async def hgetall(self, key: str) -> dict[str, str]:
        """Read a whole hash (empty dict if absent)."""

    @abstractmethod
    async def hget(self, key: str, field_name: str) -> str | None:
        """Read one hash field."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether a key exists."""

    @abstractmethod
    async def smembers(self, key: str) -> set[str]:
        """Read a whole set (empty if absent)."""

    @abstractmethod
    async def commit(self, batch: WriteBatch) -> list[Any] | None:
        """Execute the batch atomically.

        Returns
        -------
        The per-command results, or None if a watched key changed since it
        was watched (no write was applied)
        """


class StoreAdapter(ABC):
    """Abstract async key-value store used by every registry.

    Example implementation:
        class RedisStoreAdapter(StoreAdapter):
            def __init__(self, client: redis.asyncio.Redis):
                self._client = client

            async def hgetall(self, key: str) -> dict[str, str]:
                return await self._client.hgetall(key)
    """

    @abstractmethod
    async def hgetall(self, key: str) -> dict[str, str]:
        """Read a whole hash (empty dict if absent)."""

    @abstractmethod
    async def hget(self, key: str, field_name: str) -> str | None:
        """Read one hash field."""

    @abstractmethod
    async def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        """Write hash fields."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether a key exists."""

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""

    @abstractmethod
    async def smembers(self, key: str) -> set[str]:
        """Read a whole set (empty if absent)."""

    @abstractmethod
    async def sismember(self, key: str, member: str) -> bool:
        """Test set membership."""

    @abstractmethod
    async def expire(self, key: str, seconds: int) -> bool:
        """Set a TTL on a key. False if the key does not exist."""

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds; -2 if absent, -1 if no TTL is set."""

    @abstractmethod
    def scan_iter(self, match: str) -> AsyncIterator[str]:
        """Stream the keys matching a glob pattern."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[StoreTransaction]:
        """Open a conditional transaction.

        Leaving the context without committing releases all watches.
        """

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying connection."""
