"""
Pytest configuration for integration tests.

Integration tests use Testcontainers for an ephemeral Redis instance.
Import the shared fixtures to make them available.
"""

# Re-export shared Redis fixtures
from tests.shared.fixtures.redis import (
    redis_container,
    redis_db,
    redis_settings,
    redis_store,
    redis_url,
)

__all__ = [
    "redis_container",
    "redis_db",
    "redis_settings",
    "redis_store",
    "redis_url",
]
