"""Redis persistence for the identity store."""

from redis.asyncio import Redis

from authdb.infrastructure.persistence.redis.store_adapter import (
    RedisStoreAdapter,
    RedisStoreTransaction,
)
from authdb_config import Settings


def create_redis_client(settings: Settings) -> Redis:
    """Create a string-decoding async Redis client from settings."""
    return Redis.from_url(settings.redis_url, decode_responses=True)


__all__ = [
    "RedisStoreAdapter",
    "RedisStoreTransaction",
    "create_redis_client",
]
