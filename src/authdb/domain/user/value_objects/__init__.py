from authdb.domain.user.value_objects.email import (
    EMAIL_PATTERN,
    Email,
    join_emails,
    split_emails,
)

__all__ = [
    "EMAIL_PATTERN",
    "Email",
    "join_emails",
    "split_emails",
]
