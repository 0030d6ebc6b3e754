from authdb.repositories.keys import ACL_SUFFIX, KeySpace, escape_glob
from authdb.repositories.store import (
    StoreAdapter,
    StoreCommand,
    StoreTransaction,
    WriteBatch,
)

__all__ = [
    "ACL_SUFFIX",
    "KeySpace",
    "StoreAdapter",
    "StoreCommand",
    "StoreTransaction",
    "WriteBatch",
    "escape_glob",
]
