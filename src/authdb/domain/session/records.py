"""Read model returned by the session manager."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class SessionRecord:
    """A live session.

    There is no expired-but-visible state: once the TTL lapses the store
    removes the record and lookups return nothing.
    """

    id: str
    subject: str
    data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    last_activity: datetime | None = None
    requests: int = 0
    ttl: int | None = None
