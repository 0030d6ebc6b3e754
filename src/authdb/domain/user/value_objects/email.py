"""Email value object.

Provides validated, normalized email addresses used as index keys.
"""

import re
from dataclasses import dataclass

from authdb.domain.shared.serialization import join_list, split_list
from authdb.exceptions import InvalidEmailError

# Simple but effective email regex
# Validates: user@domain.tld (minimum requirements)
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


@dataclass(frozen=True)
class Email:
    """Value object representing a validated email address."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            msg = "Email cannot be empty"
            raise InvalidEmailError(msg)

        normalized = self.value.lower().strip()

        if not EMAIL_PATTERN.match(normalized):
            msg = f"Invalid email format: {self.value}"
            raise InvalidEmailError(msg)

        # Replace value with normalized version (frozen dataclass workaround)
        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"Email('{self.value}')"


def split_emails(value: str | None) -> list[str]:
    """Split a stored comma-joined email list into normalized addresses."""
    return [email.lower() for email in split_list(value)]


def join_emails(emails: list[str]) -> str:
    """Join an ordered email list into its stored form."""
    return join_list(emails)
