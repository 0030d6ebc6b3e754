"""Read model returned by the role registry."""

from dataclasses import dataclass, field
from datetime import datetime

from authdb.domain.role.acl import AccessRule


@dataclass(frozen=True)
class RoleRecord:
    key: str
    name: str
    description: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    acl: list[AccessRule] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
