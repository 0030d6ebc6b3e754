"""Root pytest configuration for test discovery and auto-skip behavior.

Integration tests stay visible in test explorers but are skipped unless
explicitly enabled, since they start a Redis container.

Test Structure:
    tests/
    ├── unit/          # Fast tests against the in-memory fake store
    ├── integration/   # Tests with a Testcontainers Redis
    └── shared/        # Shared fixtures (fake store, clock, containers)

Environment Variables:
    RUN_INTEGRATION=1    Run @pytest.mark.integration tests

Pytest Options:
    --run-integration    Run integration tests
"""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

from authdb_config import clear_settings_cache

PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Load config/.env.test if present (e.g. a custom AUTHDB_KEY_PREFIX)
CONFIG_DIR = PROJECT_ROOT / "config"
if (CONFIG_DIR / ".env.test").exists():
    load_dotenv(CONFIG_DIR / ".env.test")

# Re-export shared fixtures
from tests.shared.fixtures.store import (  # noqa: E402
    FakeClock,
    FakeStore,
    clock,
    db,
    fake_store,
    settings,
)

__all__ = ["FakeClock", "FakeStore", "clock", "db", "fake_store", "settings"]


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests marked with @pytest.mark.integration",
    )


def pytest_collection_modifyitems(config, items):
    """Auto-skip integration tests unless explicitly enabled."""
    run_integration = config.getoption("--run-integration") or os.environ.get(
        "RUN_INTEGRATION",
        "",
    ).lower() in ("1", "true", "yes")

    if run_integration:
        return

    skip_integration = pytest.mark.skip(
        reason="Integration test - run with --run-integration or RUN_INTEGRATION=1",
    )
    for item in items:
        # Explicit marker only, not folder name
        item_markers = {mark.name for mark in item.iter_markers()}
        if "integration" in item_markers:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings so env changes in a test take effect."""
    clear_settings_cache()
    yield
    clear_settings_cache()
