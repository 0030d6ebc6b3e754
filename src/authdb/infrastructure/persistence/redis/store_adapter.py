"""Redis implementation of StoreAdapter.

Uses ``redis.asyncio`` with ``decode_responses=True`` so every value is a
``str``. The conditional transaction maps onto WATCH / MULTI / EXEC; an
EXEC aborted by a watched-key change surfaces as ``None`` from ``commit``.
"""

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

from redis.asyncio import Redis
from redis.asyncio.client import Pipeline
from redis.exceptions import WatchError

from authdb.repositories.store import StoreAdapter, StoreTransaction, WriteBatch

logger = logging.getLogger(__name__)


class RedisStoreTransaction(StoreTransaction):
    """WATCH / MULTI / EXEC on a dedicated pipeline connection."""

    def __init__(self, pipeline: Pipeline):
        self._pipe = pipeline

    async def watch(self, *keys: str) -> None:
        if keys:
            await self._pipe.watch(*keys)

    async def hgetall(self, key: str) -> dict[str, str]:
        return await self._pipe.hgetall(key)

    async def hget(self, key: str, field_name: str) -> str | None:
        return await self._pipe.hget(key, field_name)

    async def exists(self, key: str) -> bool:
        return bool(await self._pipe.exists(key))

    async def smembers(self, key: str) -> set[str]:
        return set(await self._pipe.smembers(key))

    async def commit(self, batch: WriteBatch) -> list[Any] | None:
        if not batch.commands:
            return []

        self._pipe.multi()
        for command in batch.commands:
            if command.name == "hset":
                key, mapping = command.args
                self._pipe.hset(key, mapping=mapping)
            else:
                getattr(self._pipe, command.name)(*command.args)

        try:
            return await self._pipe.execute()
        except WatchError:
            logger.debug("Transaction aborted, watched key changed")
            return None


class RedisStoreAdapter(StoreAdapter):
    """
    Redis implementation of StoreAdapter.

    The client is injected so several isolated instances (different
    databases, prefixes or test containers) can coexist in one process.
    """

    def __init__(self, client: Redis):
        """Initialize adapter with a Redis client.

        Parameters
        ----------
        client
            ``redis.asyncio.Redis`` created with ``decode_responses=True``
        """
        self._client = client

    @property
    def client(self) -> Redis:
        return self._client

    async def hgetall(self, key: str) -> dict[str, str]:
        return await self._client.hgetall(key)

    async def hget(self, key: str, field_name: str) -> str | None:
        return await self._client.hget(key, field_name)

    async def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        await self._client.hset(key, mapping=dict(mapping))

    async def exists(self, key: str) -> bool:
        return bool(await self._client.exists(key))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._client.delete(*keys))

    async def smembers(self, key: str) -> set[str]:
        return set(await self._client.smembers(key))

    async def sismember(self, key: str, member: str) -> bool:
        return bool(await self._client.sismember(key, member))

    async def expire(self, key: str, seconds: int) -> bool:
        return bool(await self._client.expire(key, seconds))

    async def ttl(self, key: str) -> int:
        return int(await self._client.ttl(key))

    async def scan_iter(self, match: str) -> AsyncIterator[str]:
        async for key in self._client.scan_iter(match=match):
            yield key

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreTransaction]:
        async with self._client.pipeline(transaction=True) as pipe:
            yield RedisStoreTransaction(pipe)

    async def aclose(self) -> None:
        await self._client.aclose()
