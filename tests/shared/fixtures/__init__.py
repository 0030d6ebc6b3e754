"""Shared pytest fixtures for unit and integration tests."""

from tests.shared.fixtures.redis import (
    redis_container,
    redis_db,
    redis_settings,
    redis_store,
    redis_url,
)
from tests.shared.fixtures.store import FakeClock, FakeStore

__all__ = [
    "FakeClock",
    "FakeStore",
    "redis_container",
    "redis_db",
    "redis_settings",
    "redis_store",
    "redis_url",
]
