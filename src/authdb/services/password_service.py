"""Password hashing service with a pluggable key-derivation function.

A hasher takes ``(plaintext, salt, config)`` and returns a fixed-length
base64 digest. It must be deterministic for identical inputs and slow to
invert. Two hashers are provided:

- ``pbkdf2_hasher``: PBKDF2-HMAC with the configured digest (default)
- ``bcrypt_hasher``: bcrypt-pbkdf, ``iterations`` being the bcrypt rounds
"""

import base64
import hashlib
import hmac
import secrets
from dataclasses import dataclass
from typing import Protocol

import bcrypt

from authdb.exceptions import WeakPasswordError


@dataclass(frozen=True)
class HashConfig:
    iterations: int = 10000
    key_length: int = 64
    digest: str = "sha512"


class PasswordHasher(Protocol):
    def __call__(self, plaintext: str, salt: str, config: HashConfig) -> str: ...


def pbkdf2_hasher(plaintext: str, salt: str, config: HashConfig) -> str:
    derived = hashlib.pbkdf2_hmac(
        config.digest,
        plaintext.encode("utf-8"),
        salt.encode("utf-8"),
        config.iterations,
        dklen=config.key_length,
    )
    return base64.b64encode(derived).decode("ascii")


def bcrypt_hasher(plaintext: str, salt: str, config: HashConfig) -> str:
    derived = bcrypt.kdf(
        password=plaintext.encode("utf-8"),
        salt=salt.encode("utf-8"),
        desired_key_bytes=config.key_length,
        rounds=config.iterations,
    )
    return base64.b64encode(derived).decode("ascii")


def hasher_for_digest(digest: str) -> PasswordHasher:
    """Pick the hasher matching a configured digest name."""
    if digest == "bcrypt":
        return bcrypt_hasher
    return pbkdf2_hasher


class PasswordHashingService:
    """Service for salted password hashing and verification.

    Also provides password length validation.

    Examples
    --------
    >>> service = PasswordHashingService(config=HashConfig(iterations=1000))
    >>> password_hash, salt = service.hash("my_secure_password")
    >>> service.verify("my_secure_password", salt, password_hash)
    True
    >>> service.verify("wrong_password", salt, password_hash)
    False
    """

    def __init__(  # noqa: PLR0913
        self,
        hasher: PasswordHasher | None = None,
        config: HashConfig | None = None,
        salt_length: int = 16,
        min_length: int = 6,
        max_length: int = 128,
    ):
        """Initialize the password hashing service.

        Parameters
        ----------
        hasher
            Key-derivation function, picked from ``config.digest`` if omitted
        config
            Iteration count, output length and digest
        salt_length
            Number of random bytes in a generated salt
        min_length, max_length
            Accepted password length bounds
        """
        self._config = config or HashConfig()
        self._hasher = hasher or hasher_for_digest(self._config.digest)
        self._salt_length = salt_length
        self.min_length = min_length
        self.max_length = max_length

    @property
    def config(self) -> HashConfig:
        return self._config

    def generate_salt(self) -> str:
        return base64.b64encode(secrets.token_bytes(self._salt_length)).decode("ascii")

    def hash(self, password: str, salt: str | None = None) -> tuple[str, str]:
        """Hash a plaintext password.

        Parameters
        ----------
        password
            The plaintext password to hash
        salt
            Salt to use; a fresh random one is generated if omitted

        Returns
        -------
        Tuple of (password_hash, salt)

        Raises
        ------
        WeakPasswordError
            If password doesn't meet requirements
        """
        self.validate_strength(password)
        salt = salt or self.generate_salt()
        return self._hasher(password, salt, self._config), salt

    def verify(self, password: str, salt: str | None, password_hash: str | None) -> bool:
        """Verify a password against a stored hash and salt.

        Returns
        -------
        True if password matches, False otherwise (including missing or
        malformed stored values)
        """
        if not password or not salt or not password_hash:
            return False
        try:
            candidate = self._hasher(password, salt, self._config)
        except (ValueError, TypeError):
            return False
        return hmac.compare_digest(candidate, password_hash)

    def validate_strength(self, password: str) -> None:
        """Validate that a password meets length requirements.

        Raises
        ------
        WeakPasswordError
            If password doesn't meet requirements
        """
        if not password:
            msg = "Password cannot be empty"
            raise WeakPasswordError(msg)

        if len(password) < self.min_length:
            msg = f"password should have a minimum of {self.min_length} characters"
            raise WeakPasswordError(msg)

        if len(password) > self.max_length:
            msg = f"Password cannot exceed {self.max_length} characters"
            raise WeakPasswordError(msg)
