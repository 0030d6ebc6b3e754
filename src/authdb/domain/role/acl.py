"""Access control list codec and permission resolution.

An ACL is an ordered list of access rules, each a resource plus the methods
allowed on it. It is stored as a flat set of tokens, one per
(resource, method) pair::

    ["dashboard", {"resource": "habilis/cadastro", "methods": ["post", "put"]}]

    {"dashboard:*", "habilis/cadastro:POST", "habilis/cadastro:PUT"}

Storing discrete tokens makes a permission check a couple of set-membership
tests, independent of the size of the ACL.
"""

from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from authdb.exceptions import InvalidAclError

WILDCARD = "*"
TOKEN_SEPARATOR = ":"


@dataclass(frozen=True)
class AccessRule:
    """One resource and the methods allowed on it."""

    resource: str
    methods: tuple[str, ...] = (WILDCARD,)


AclEntry = Union[str, Mapping[str, Any], AccessRule]
MembershipLookup = Callable[[str, str], Awaitable[bool]]


def make_token(resource: str, method: str) -> str:
    return f"{resource.strip().lower()}{TOKEN_SEPARATOR}{method.strip().upper()}"


def _to_rule(entry: AclEntry) -> AccessRule:
    if isinstance(entry, AccessRule):
        resource: Any = entry.resource
        methods: Any = entry.methods
    elif isinstance(entry, str):
        resource, methods = entry, None
    elif isinstance(entry, Mapping):
        resource = entry.get("resource")
        methods = entry.get("methods")
    else:
        msg = f"Invalid access rule: {entry!r}"
        raise InvalidAclError(msg)

    if not isinstance(resource, str) or not resource.strip():
        msg = "Resource must be informed"
        raise InvalidAclError(msg)

    if methods is None:
        methods = (WILDCARD,)
    elif isinstance(methods, str):
        methods = (methods,)
    elif isinstance(methods, Sequence):
        methods = tuple(methods)
    else:
        msg = f"Invalid methods for resource {resource}: {methods!r}"
        raise InvalidAclError(msg)

    for method in methods:
        if not isinstance(method, str) or not method.strip():
            msg = f"Invalid method for resource {resource}: {method!r}"
            raise InvalidAclError(msg)
        if TOKEN_SEPARATOR in method:
            msg = f"Method cannot contain '{TOKEN_SEPARATOR}': {method}"
            raise InvalidAclError(msg)

    return AccessRule(resource=resource, methods=methods)


def encode(acl: Sequence[AclEntry]) -> list[str]:
    """Convert an ACL into its token form.

    Resources are lower-cased, methods upper-cased. A rule that does not name
    its methods allows every method; an empty method list allows none and
    contributes no tokens. Tokens keep the input order and are de-duplicated.

    Raises
    ------
    InvalidAclError
        If ``acl`` is not a list or a rule has no resource
    """
    if isinstance(acl, (str, bytes)) or not isinstance(acl, Sequence):
        msg = "acl must be an array"
        raise InvalidAclError(msg)

    tokens: list[str] = []
    for entry in acl:
        rule = _to_rule(entry)
        for method in rule.methods:
            token = make_token(rule.resource, method)
            if token not in tokens:
                tokens.append(token)
    return tokens


def decode(tokens: Iterable[str]) -> list[AccessRule]:
    """Group tokens back into access rules.

    Resources and methods keep their first-seen order. The separator is
    looked up from the right, so resources may themselves contain ``:``.
    """
    grouped: dict[str, list[str]] = {}
    for token in tokens:
        resource, separator, method = token.rpartition(TOKEN_SEPARATOR)
        if not separator or not resource or not method:
            msg = f"Malformed ACL token: {token}"
            raise InvalidAclError(msg)
        methods = grouped.setdefault(resource, [])
        if method not in methods:
            methods.append(method)
    return [
        AccessRule(resource=resource, methods=tuple(methods))
        for resource, methods in grouped.items()
    ]


def candidate_tokens(resource: str, method: str | None = None) -> tuple[str, ...]:
    """Tokens any one of which grants ``method`` on ``resource``.

    Without a method only the wildcard token grants access.
    """
    wildcard = make_token(resource, WILDCARD)
    if not isinstance(method, str) or not method.strip():
        return (wildcard,)
    specific = make_token(resource, method)
    if specific == wildcard:
        return (wildcard,)
    return (specific, wildcard)


async def check_permission(
    lookup: MembershipLookup,
    role_names: Any,
    resource: str,
    method: str | None = None,
) -> bool:
    """Check whether any of ``role_names`` grants access.

    Parameters
    ----------
    lookup
        Async membership test ``(role_name, token) -> bool``
    role_names
        A role name or a list of them, evaluated in order; entries that are
        not strings never match
    resource
        The resource being accessed
    method
        The method being used; when omitted only a wildcard grant matches

    Returns
    -------
    True at the first granting role, False if none grants access
    """
    if isinstance(role_names, str) or not isinstance(role_names, Iterable):
        role_names = [role_names]

    tokens = candidate_tokens(resource, method)
    for name in role_names:
        if not isinstance(name, str):
            continue
        for token in tokens:
            if await lookup(name, token):
                return True
    return False
