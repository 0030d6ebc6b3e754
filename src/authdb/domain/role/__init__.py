"""Role domain: role records and their access control lists."""

from authdb.domain.role.acl import (
    WILDCARD,
    AccessRule,
    AclEntry,
    candidate_tokens,
    check_permission,
    decode,
    encode,
)
from authdb.domain.role.records import RoleRecord

__all__ = [
    "WILDCARD",
    "AccessRule",
    "AclEntry",
    "RoleRecord",
    "candidate_tokens",
    "check_permission",
    "decode",
    "encode",
]
