"""Input models for registry operations.

Each model enumerates the fields an operation may set; unknown fields are
rejected instead of being merged into the stored record. Registry methods
accept either a model instance or a plain mapping, which is validated here.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from authdb.domain.shared.serialization import LIST_SEPARATOR, split_list
from authdb.exceptions import InvalidInputError

M = TypeVar("M", bound=BaseModel)


def _as_list(value: Any) -> Any:
    """Accept a comma-joined string wherever a list of names is expected."""
    if value is None:
        return []
    if isinstance(value, str):
        return split_list(value)
    return value


def _reject_separator(values: list[str]) -> list[str]:
    for value in values:
        if LIST_SEPARATOR in value:
            msg = f"'{LIST_SEPARATOR}' is not allowed in list elements: {value}"
            raise ValueError(msg)
    return [value.strip() for value in values if value.strip()]


class _Input(BaseModel):
    model_config = ConfigDict(extra="forbid")


class UserCreate(_Input):
    username: str | None = None
    password: str | None = None
    email: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)
    profile: dict[str, str] = Field(default_factory=dict)
    license_expires_at: datetime | None = None

    @field_validator("email", "roles", mode="before")
    @classmethod
    def _split(cls, v: Any) -> Any:
        return _as_list(v)

    @field_validator("roles")
    @classmethod
    def _validate_roles(cls, v: list[str]) -> list[str]:
        return _reject_separator(v)


class UserPatch(_Input):
    """Fields updatable through ``users.update``.

    ``email`` is accepted only so it can be rejected explicitly: email
    changes go through the email operations, which keep the index in step.
    ``license_expires_at`` explicitly set to None clears the expiry.
    """

    username: str | None = None
    password: str | None = None
    email: Any = None
    roles: list[str] | None = None
    profile: dict[str, str] | None = None
    license_expires_at: datetime | None = None

    @field_validator("roles", mode="before")
    @classmethod
    def _split(cls, v: Any) -> Any:
        return None if v is None else _as_list(v)

    @field_validator("roles")
    @classmethod
    def _validate_roles(cls, v: list[str] | None) -> list[str] | None:
        return None if v is None else _reject_separator(v)


class EmailPatch(_Input):
    """Fields updatable through ``email.update``.

    ``username`` must name the current owner. ``verified=True`` stamps the
    verification time; a verified address cannot be un-verified.
    """

    username: str | None = None
    verified: bool | None = None
    attributes: dict[str, str] = Field(default_factory=dict)


class RoleCreate(_Input):
    name: str | None = None
    description: str | None = None
    attributes: dict[str, str] = Field(default_factory=dict)
    acl: Any = None


class RolePatch(_Input):
    name: str | None = None
    description: str | None = None
    attributes: dict[str, str] | None = None
    acl: Any = None


def parse_input(model: type[M], data: M | Mapping[str, Any]) -> M:
    """Validate operation input into ``model``.

    Raises
    ------
    InvalidInputError
        If the data is not a mapping or fails validation
    """
    if isinstance(data, model):
        return data
    if not isinstance(data, Mapping):
        msg = f"Expected {model.__name__} or a mapping, got {type(data).__name__}"
        raise InvalidInputError(msg)
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        msg = f"Invalid {model.__name__}: {details}"
        raise InvalidInputError(msg) from exc
