"""User domain: accounts and the email secondary index.

This domain handles:
- User records keyed by normalized user name
- Email index entries keyed by normalized address
"""

from authdb.domain.user.records import EmailRecord, UserRecord
from authdb.domain.user.value_objects import (
    Email,
    join_emails,
    split_emails,
)

__all__ = [
    "Email",
    "EmailRecord",
    "UserRecord",
    "join_emails",
    "split_emails",
]
