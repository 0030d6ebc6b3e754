"""Read models returned by the user and email registries."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class UserRecord:
    """A user account as exposed to callers.

    Password hash and salt never leave the registry; ``emails`` and
    ``roles`` are ordered lists rather than their joined stored form.
    """

    key: str
    username: str
    emails: list[str] = field(default_factory=list)
    roles: list[str] = field(default_factory=list)
    profile: dict[str, str] = field(default_factory=dict)
    requests: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_activity: datetime | None = None
    license_expires_at: datetime | None = None

    def license_expired(self, now: datetime) -> bool:
        return self.license_expires_at is not None and self.license_expires_at <= now


@dataclass(frozen=True)
class EmailRecord:
    """A secondary index entry pointing an email address at its owner."""

    email: str
    username: str
    attributes: dict[str, str] = field(default_factory=dict)
    created_at: datetime | None = None
    verified_at: datetime | None = None

    @property
    def verified(self) -> bool:
        return self.verified_at is not None
