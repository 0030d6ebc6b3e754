from authdb.services.password_service import (
    HashConfig,
    PasswordHasher,
    PasswordHashingService,
    bcrypt_hasher,
    hasher_for_digest,
    pbkdf2_hasher,
)
from authdb.services.transactional_store import TransactionalRecordStore

__all__ = [
    "HashConfig",
    "PasswordHasher",
    "PasswordHashingService",
    "TransactionalRecordStore",
    "bcrypt_hasher",
    "hasher_for_digest",
    "pbkdf2_hasher",
]
