"""Stored hash fields of user records and email index entries."""

from collections.abc import Mapping

from authdb.domain.shared.serialization import split_list, unpack_fields
from authdb.domain.shared.time import from_timestamp
from authdb.domain.user.records import EmailRecord, UserRecord
from authdb.domain.user.value_objects.email import split_emails

# User record
USERNAME = "username"
PASSWORD = "password"
SALT = "salt"
EMAIL = "email"
ROLES = "roles"
PROFILE = "profile"
CREATED_AT = "created_at"
UPDATED_AT = "updated_at"
REQUESTS = "requests"
LAST_ACTIVITY = "last_activity"
LICENSE_EXPIRES_AT = "license_expires_at"

# Email index entry (owner is stored under USERNAME)
VERIFIED_AT = "verified_at"
ATTRIBUTES = "attr"


def user_from_hash(key: str, raw: Mapping[str, str]) -> UserRecord:
    """Map a stored user hash to a record, leaving out password and salt."""
    return UserRecord(
        key=key,
        username=raw.get(USERNAME, key),
        emails=split_emails(raw.get(EMAIL)),
        roles=split_list(raw.get(ROLES)),
        profile=unpack_fields(PROFILE, raw),
        requests=int(raw.get(REQUESTS) or 0),
        created_at=from_timestamp(raw.get(CREATED_AT)),
        updated_at=from_timestamp(raw.get(UPDATED_AT)),
        last_activity=from_timestamp(raw.get(LAST_ACTIVITY)),
        license_expires_at=from_timestamp(raw.get(LICENSE_EXPIRES_AT)),
    )


def email_from_hash(email: str, raw: Mapping[str, str]) -> EmailRecord:
    return EmailRecord(
        email=email,
        username=raw.get(USERNAME, ""),
        attributes=unpack_fields(ATTRIBUTES, raw),
        created_at=from_timestamp(raw.get(CREATED_AT)),
        verified_at=from_timestamp(raw.get(VERIFIED_AT)),
    )
