"""
In-memory StoreAdapter for unit tests.

Behaves like the parts of Redis the identity store relies on:
- hashes and sets, one value type per key
- per-key TTL driven by a controllable clock (no sleeping in tests)
- WATCH semantics through per-key versions: every write, delete or
  expiry bumps the version, and a commit is rejected if a watched
  key's version moved
- an optional ``asyncio.Barrier`` awaited right before the version check,
  so concurrency tests can force two transactions to interleave

Usage:
    async def test_something(db, fake_store, clock):
        await db.sessions.create("ana", ttl_seconds=10)
        clock.advance(11)
        assert await db.sessions.list("ana") == []
"""

import asyncio
import itertools
import math
import re
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from authdb.application import AuthDB
from authdb.repositories import StoreAdapter, StoreCommand, StoreTransaction, WriteBatch
from authdb_config import Settings

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a Redis glob (``*``, ``?``, ``[...]``, ``\\x``) to a regex."""
    out: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if char == "*":
            out.append(".*")
        elif char == "?":
            out.append(".")
        elif char == "[" and "]" in pattern[i + 1 :]:
            end = pattern.index("]", i + 1)
            body = pattern[i + 1 : end].replace("\\", "\\\\")
            out.append(f"[{body}]")
            i = end + 1
            continue
        else:
            out.append(re.escape(char))
        i += 1
    return re.compile("".join(out) + r"\Z", re.DOTALL)


class FakeTransaction(StoreTransaction):
    def __init__(self, store: "FakeStore"):
        self._store = store
        self._watched: dict[str, int] = {}

    async def watch(self, *keys: str) -> None:
        for key in keys:
            self._watched.setdefault(key, self._store.version(key))

    async def hgetall(self, key: str) -> dict[str, str]:
        return await self._store.hgetall(key)

    async def hget(self, key: str, field_name: str) -> str | None:
        return await self._store.hget(key, field_name)

    async def exists(self, key: str) -> bool:
        return await self._store.exists(key)

    async def smembers(self, key: str) -> set[str]:
        return await self._store.smembers(key)

    async def commit(self, batch: WriteBatch) -> list[Any] | None:
        store = self._store
        if not batch.commands:
            return []
        if store.commit_barrier is not None:
            await store.commit_barrier.wait()
        if store.before_commit is not None:
            await store.before_commit()

        # No awaits below: check and apply happen atomically
        for key, version in self._watched.items():
            if store.version(key) != version:
                store.rejected_commits += 1
                return None
        store.commits += 1
        return [store.apply(command) for command in batch.commands]


class FakeStore(StoreAdapter):
    """Dict-backed StoreAdapter with Redis-like WATCH and TTL behavior."""

    def __init__(self, clock: FakeClock | None = None):
        self.clock = clock or FakeClock()
        self.commit_barrier: asyncio.Barrier | None = None
        self.before_commit: Callable[[], Awaitable[None]] | None = None
        self.commits = 0
        self.rejected_commits = 0
        self.closed = False
        self._data: dict[str, Any] = {}
        self._deadlines: dict[str, datetime] = {}
        self._versions: dict[str, int] = {}
        self._counter = itertools.count(1)

    # -- bookkeeping --------------------------------------------------------

    def _touch(self, key: str) -> None:
        self._versions[key] = next(self._counter)

    def _purge(self, key: str) -> None:
        deadline = self._deadlines.get(key)
        if deadline is not None and self.clock() >= deadline:
            self._data.pop(key, None)
            self._deadlines.pop(key, None)
            self._touch(key)

    def _drop_if_empty(self, key: str) -> None:
        if key in self._data and not self._data[key]:
            del self._data[key]
            self._deadlines.pop(key, None)

    def _hash(self, key: str) -> dict[str, str]:
        self._purge(key)
        return self._data.setdefault(key, {})

    def _set(self, key: str) -> set[str]:
        self._purge(key)
        return self._data.setdefault(key, set())

    def version(self, key: str) -> int:
        self._purge(key)
        return self._versions.get(key, 0)

    def keys(self) -> list[str]:
        for key in list(self._data):
            self._purge(key)
        return sorted(self._data)

    def raw(self, key: str) -> Any:
        """Stored value of ``key`` (a copy), or None."""
        self._purge(key)
        value = self._data.get(key)
        return value.copy() if value is not None else None

    def apply(self, command: StoreCommand) -> Any:
        return getattr(self, f"_do_{command.name}")(*command.args)

    # -- writes -------------------------------------------------------------

    def _do_hset(self, key: str, mapping: Mapping[str, str]) -> int:
        target = self._hash(key)
        added = sum(1 for name in mapping if name not in target)
        target.update({name: str(value) for name, value in mapping.items()})
        self._touch(key)
        return added

    def _do_hsetnx(self, key: str, field_name: str, value: str) -> int:
        target = self._hash(key)
        if field_name in target:
            self._drop_if_empty(key)
            return 0
        target[field_name] = str(value)
        self._touch(key)
        return 1

    def _do_hdel(self, key: str, *fields: str) -> int:
        target = self._hash(key)
        removed = sum(1 for name in fields if target.pop(name, None) is not None)
        if removed:
            self._touch(key)
        self._drop_if_empty(key)
        return removed

    def _do_hincrby(self, key: str, field_name: str, amount: int) -> int:
        target = self._hash(key)
        value = int(target.get(field_name, "0")) + amount
        target[field_name] = str(value)
        self._touch(key)
        return value

    def _do_delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            self._purge(key)
            if key in self._data:
                del self._data[key]
                self._deadlines.pop(key, None)
                self._touch(key)
                removed += 1
        return removed

    def _do_sadd(self, key: str, *members: str) -> int:
        target = self._set(key)
        added = len(set(members) - target)
        target.update(members)
        self._touch(key)
        return added

    def _do_srem(self, key: str, *members: str) -> int:
        target = self._set(key)
        removed = len(set(members) & target)
        target.difference_update(members)
        if removed:
            self._touch(key)
        self._drop_if_empty(key)
        return removed

    def _do_expire(self, key: str, seconds: int) -> bool:
        self._purge(key)
        if key not in self._data:
            return False
        if seconds <= 0:
            self._do_delete(key)
            return True
        self._deadlines[key] = self.clock() + timedelta(seconds=seconds)
        self._touch(key)
        return True

    # -- StoreAdapter -------------------------------------------------------

    async def hgetall(self, key: str) -> dict[str, str]:
        value = self.raw(key)
        return dict(value) if isinstance(value, dict) else {}

    async def hget(self, key: str, field_name: str) -> str | None:
        return (await self.hgetall(key)).get(field_name)

    async def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        self._do_hset(key, mapping)

    async def exists(self, key: str) -> bool:
        self._purge(key)
        return key in self._data

    async def delete(self, *keys: str) -> int:
        return self._do_delete(*keys)

    async def smembers(self, key: str) -> set[str]:
        value = self.raw(key)
        return set(value) if isinstance(value, set) else set()

    async def sismember(self, key: str, member: str) -> bool:
        return member in await self.smembers(key)

    async def expire(self, key: str, seconds: int) -> bool:
        return self._do_expire(key, seconds)

    async def ttl(self, key: str) -> int:
        self._purge(key)
        if key not in self._data:
            return -2
        deadline = self._deadlines.get(key)
        if deadline is None:
            return -1
        return math.ceil((deadline - self.clock()).total_seconds())

    async def scan_iter(self, match: str) -> AsyncIterator[str]:
        regex = _glob_to_regex(match)
        for key in self.keys():
            if regex.match(key):
                yield key

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreTransaction]:
        yield FakeTransaction(self)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_store(clock) -> FakeStore:
    return FakeStore(clock)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from env files, with cheap password hashing."""
    return Settings(_env_file=None, hash_iterations=1000)


@pytest.fixture
def db(fake_store, settings, clock) -> AuthDB:
    return AuthDB(fake_store, settings, clock=clock)
