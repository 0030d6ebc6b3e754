"""Identity store exceptions.

Every error carries a stable machine-readable ``code`` and a human-readable
message. Errors are grouped by kind so callers can handle a whole family
(``except ConflictError``) or a single case (``except EmailTakenError``).
None of them is retried internally.
"""


class AuthDBError(Exception):
    """Base exception for all identity store errors."""

    code = "authdb_error"

    def __init__(self, message: str = "Identity store error"):
        self.message = message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Validation: raised before any store access
# ---------------------------------------------------------------------------


class InvalidInputError(AuthDBError):
    """Raised when a required field is missing or malformed."""

    code = "invalid_input"

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message)


class MissingFieldError(InvalidInputError):
    """Raised when a required field is absent."""

    code = "missing_field"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"missing {field}")


class InvalidEmailError(InvalidInputError):
    """Raised when email format is invalid."""

    code = "invalid_email"

    def __init__(self, message: str = "Invalid email address"):
        super().__init__(message)


class WeakPasswordError(InvalidInputError):
    """Raised when a password doesn't meet length requirements."""

    code = "weak_password"

    def __init__(self, message: str = "Password does not meet requirements"):
        super().__init__(message)


class InvalidAclError(InvalidInputError):
    """Raised when an access control list is malformed."""

    code = "invalid_acl"

    def __init__(self, message: str = "Invalid access control list"):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class RecordNotFoundError(AuthDBError):
    """Raised when a record expected to exist does not."""

    code = "not_found"

    def __init__(self, message: str = "Record not found"):
        super().__init__(message)


class UserNotFoundError(RecordNotFoundError):
    code = "user_not_found"

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"user not found: {username}")


class EmailNotFoundError(RecordNotFoundError):
    code = "email_not_found"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"email not found: {email}")


class RoleNotFoundError(RecordNotFoundError):
    code = "role_not_found"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"role not found: {name}")


class SessionNotFoundError(RecordNotFoundError):
    code = "session_not_found"

    def __init__(self, subject: str):
        self.subject = subject
        super().__init__(f"session not found or expired for: {subject}")


# ---------------------------------------------------------------------------
# Conflicts: uniqueness violations
# ---------------------------------------------------------------------------


class ConflictError(AuthDBError):
    """Raised when a uniqueness constraint would be violated."""

    code = "conflict"

    def __init__(self, message: str = "Record already exists"):
        super().__init__(message)


class UsernameTakenError(ConflictError):
    code = "username_taken"

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"user name already taken: {username}")


class EmailTakenError(ConflictError):
    code = "email_taken"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"email already taken: {email}")


class RoleExistsError(ConflictError):
    code = "role_exists"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"role already exists: {name}")


# ---------------------------------------------------------------------------
# Optimistic locking
# ---------------------------------------------------------------------------


class LockError(AuthDBError):
    """Raised when a conditional commit is rejected.

    A watched key changed between watch and commit. The store is left
    exactly as it was before the attempt.
    """

    code = "lock_error"

    def __init__(self, aggregate: str):
        self.aggregate = aggregate
        super().__init__(f"{aggregate} lock error")


# ---------------------------------------------------------------------------
# Domain rules
# ---------------------------------------------------------------------------


class DomainRuleError(AuthDBError):
    """Raised when an operation violates a business rule."""

    code = "domain_rule"

    def __init__(self, message: str = "Operation not allowed"):
        super().__init__(message)


class UserInUseError(DomainRuleError):
    code = "user_in_use"

    def __init__(self, username: str, requests: int):
        self.username = username
        self.requests = requests
        super().__init__(
            f"user {username} has {requests} recorded requests and cannot be removed"
        )


class VerifiedEmailError(DomainRuleError):
    code = "email_verified"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"email {email} is verified and cannot be changed")


class EmailOwnershipError(DomainRuleError):
    code = "email_ownership"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"user name is missing or does not match owner of {email}")


class EmailUpdateNotAllowedError(DomainRuleError):
    code = "email_update_not_allowed"

    def __init__(self) -> None:
        super().__init__("email cannot be updated here, use the email operations")


class LicenseExpiredError(DomainRuleError):
    code = "license_expired"

    def __init__(self, username: str, expired_at: str | None = None):
        self.username = username
        self.expired_at = expired_at
        message = f"license expired for {username}"
        if expired_at:
            message = f"{message} at {expired_at}"
        super().__init__(message)
