"""Key layout of the identity store.

All keys share a configurable prefix (``auth-db:`` by default)::

    auth-db:users:<username>
    auth-db:emails:<address>
    auth-db:roles:<name>
    auth-db:roles:<name>:acl
    auth-db:sessions:<subject>:<id>
"""

import re
from dataclasses import dataclass

ACL_SUFFIX = ":acl"

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(value: str) -> str:
    """Escape glob metacharacters so ``value`` matches literally in a scan."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


@dataclass(frozen=True)
class KeySpace:
    prefix: str = "auth-db:"

    @property
    def users_prefix(self) -> str:
        return f"{self.prefix}users:"

    @property
    def emails_prefix(self) -> str:
        return f"{self.prefix}emails:"

    @property
    def roles_prefix(self) -> str:
        return f"{self.prefix}roles:"

    @property
    def sessions_prefix(self) -> str:
        return f"{self.prefix}sessions:"

    def user(self, key: str) -> str:
        return f"{self.users_prefix}{key}"

    def email(self, address: str) -> str:
        return f"{self.emails_prefix}{address}"

    def role(self, key: str) -> str:
        return f"{self.roles_prefix}{key}"

    def role_acl(self, key: str) -> str:
        return f"{self.role(key)}{ACL_SUFFIX}"

    def session(self, subject: str, session_id: str) -> str:
        return f"{self.sessions_prefix}{subject}:{session_id}"

    def session_pattern(self, subject: str) -> str:
        """Scan pattern matching every session of ``subject``."""
        return f"{escape_glob(self.sessions_prefix)}{escape_glob(subject)}:*"

    def role_pattern(self, name_prefix: str = "") -> str:
        """Scan pattern matching role keys (ACL keys included)."""
        return f"{escape_glob(self.roles_prefix)}{escape_glob(name_prefix)}*"
