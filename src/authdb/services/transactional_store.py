"""Optimistic read-modify-write over the key-value store.

Every mutation in the registries goes through ``read_modify_write``::

    watch(keys) -> read(tx) -> compute(state, batch) -> commit(batch)

If any watched key changes between the watch and the commit, the store
rejects the commit, no write is applied and ``LockError`` is raised. The
operation is not retried; callers that want retry semantics re-invoke the
whole operation, which re-observes the current state.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from authdb.exceptions import LockError
from authdb.repositories.store import StoreAdapter, StoreTransaction, WriteBatch

logger = logging.getLogger(__name__)

S = TypeVar("S")
R = TypeVar("R")

Reader = Callable[[StoreTransaction], Awaitable[S]]
Mutator = Callable[[S, WriteBatch], Awaitable[R]]


class TransactionalRecordStore:
    """Runs watch/read/compute/commit cycles against a store."""

    def __init__(self, store: StoreAdapter):
        self._store = store

    @property
    def store(self) -> StoreAdapter:
        return self._store

    async def read_modify_write(
        self,
        watch_keys: Sequence[str],
        read: Reader[S],
        compute: Mutator[S, R],
        *,
        aggregate: str,
    ) -> R:
        """Apply one optimistic update.

        Parameters
        ----------
        watch_keys
            Keys watched before reading; must include the primary key. The
            reader may watch more keys it discovers (multi-key variant).
        read
            Reads the current state through the transaction
        compute
            Validates the state, buffers writes into the batch and returns
            the operation result. Raising aborts with no writes.
        aggregate
            Name used in the lock error and in log messages

        Returns
        -------
        Whatever ``compute`` returned

        Raises
        ------
        LockError
            If a watched key changed before the commit
        """
        if not watch_keys:
            msg = "read_modify_write needs at least one watched key"
            raise ValueError(msg)

        async with self._store.transaction() as tx:
            await tx.watch(*watch_keys)
            state = await read(tx)
            batch = WriteBatch()
            result = await compute(state, batch)
            outcome = await tx.commit(batch)

        if outcome is None:
            logger.warning("Commit rejected for %s, watched keys changed", aggregate)
            raise LockError(aggregate)

        logger.debug("Committed %d writes for %s", len(batch), aggregate)
        return result
