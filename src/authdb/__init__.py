"""authdb - Identity data layer on a key-value store.

This package handles:
- Users keyed by normalized name, with an email secondary index
- Roles with access control lists and permission checks
- TTL-bound sessions with a sliding expiration window
- Optimistic (watch / conditional commit) transactions on every mutation

Every operation is async and goes through an injected ``StoreAdapter``;
``AuthDB.from_settings()`` wires the Redis implementation.
"""

from authdb.application import AuthDB
from authdb.domain.role import AccessRule, RoleRecord
from authdb.domain.session import SessionRecord
from authdb.domain.user import Email, EmailRecord, UserRecord
from authdb.exceptions import (
    AuthDBError,
    ConflictError,
    DomainRuleError,
    EmailNotFoundError,
    EmailOwnershipError,
    EmailTakenError,
    EmailUpdateNotAllowedError,
    InvalidAclError,
    InvalidEmailError,
    InvalidInputError,
    LicenseExpiredError,
    LockError,
    MissingFieldError,
    RecordNotFoundError,
    RoleExistsError,
    RoleNotFoundError,
    SessionNotFoundError,
    UserInUseError,
    UsernameTakenError,
    UserNotFoundError,
    VerifiedEmailError,
    WeakPasswordError,
)
from authdb.repositories import KeySpace, StoreAdapter, StoreTransaction, WriteBatch
from authdb.schemas import EmailPatch, RoleCreate, RolePatch, UserCreate, UserPatch

__all__ = [
    # Facade
    "AuthDB",
    # Records
    "AccessRule",
    "Email",
    "EmailRecord",
    "RoleRecord",
    "SessionRecord",
    "UserRecord",
    # Inputs
    "EmailPatch",
    "RoleCreate",
    "RolePatch",
    "UserCreate",
    "UserPatch",
    # Store
    "KeySpace",
    "StoreAdapter",
    "StoreTransaction",
    "WriteBatch",
    # Exceptions
    "AuthDBError",
    "ConflictError",
    "DomainRuleError",
    "EmailNotFoundError",
    "EmailOwnershipError",
    "EmailTakenError",
    "EmailUpdateNotAllowedError",
    "InvalidAclError",
    "InvalidEmailError",
    "InvalidInputError",
    "LicenseExpiredError",
    "LockError",
    "MissingFieldError",
    "RecordNotFoundError",
    "RoleExistsError",
    "RoleNotFoundError",
    "SessionNotFoundError",
    "UserInUseError",
    "UserNotFoundError",
    "UsernameTakenError",
    "VerifiedEmailError",
    "WeakPasswordError",
]
