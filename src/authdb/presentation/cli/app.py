"""authdb CLI application using Typer.

Administrative commands for the identity store: users, email addresses,
roles and sessions. Every command opens the store from settings, runs one
operation and closes it again.
"""

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from authdb.application import AuthDB
from authdb.exceptions import AuthDBError
from authdb_config import get_settings

T = TypeVar("T")

app = typer.Typer(
    name="authdb",
    help="authdb - identity store administration",
    no_args_is_help=True,
)
console = Console()

users_app = typer.Typer(name="users", help="User records", no_args_is_help=True)
email_app = typer.Typer(name="email", help="Email addresses", no_args_is_help=True)
roles_app = typer.Typer(name="roles", help="Roles and ACLs", no_args_is_help=True)
sessions_app = typer.Typer(name="sessions", help="Sessions", no_args_is_help=True)
app.add_typer(users_app)
app.add_typer(email_app)
app.add_typer(roles_app)
app.add_typer(sessions_app)


def configure_logging(level: str | None = None) -> None:
    """Configure logging for the CLI.

    Log lines go to stderr so command output stays parseable.
    """
    log_level_str = (level or get_settings().log_level).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )

    logging.getLogger("authdb").setLevel(log_level)

    # Quiet noisy third-party libraries
    logging.getLogger("redis").setLevel(logging.WARNING)


def open_db() -> AuthDB:
    """Open the store used by the commands."""
    return AuthDB.from_settings(get_settings())


def _run(operation: Callable[[AuthDB], Awaitable[T]]) -> T:
    async def runner() -> T:
        db = open_db()
        try:
            return await operation(db)
        finally:
            await db.aclose()

    try:
        return asyncio.run(runner())
    except AuthDBError as exc:
        console.print(f"{exc.code}: {exc.message}", style="red", markup=False)
        raise typer.Exit(code=1) from exc


def _parse_rule(value: str) -> dict[str, object]:
    """Parse ``RESOURCE`` or ``RESOURCE=METHOD,METHOD`` into an access rule."""
    resource, _, methods = value.partition("=")
    rule: dict[str, object] = {"resource": resource}
    if methods:
        rule["methods"] = [m for m in methods.split(",") if m]
    return rule


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override AUTHDB_LOG_LEVEL"
    ),
) -> None:
    configure_logging(log_level)


# ---------------------------------------------------------------------------
# users
# ---------------------------------------------------------------------------


@users_app.command("create")
def create_user(
    username: str,
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
    email: Optional[list[str]] = typer.Option(None, "--email", "-e"),
    role: Optional[list[str]] = typer.Option(None, "--role", "-r"),
) -> None:
    """Create a user with its email addresses and roles."""
    user = _run(
        lambda db: db.users.create(
            {
                "username": username,
                "password": password,
                "email": email or [],
                "roles": role or [],
            }
        )
    )
    console.print(f"[green]Created user[/green] {user.username} ({user.key})")


@users_app.command("get")
def get_user(username: str) -> None:
    """Show a user record (without password and salt)."""
    user = _run(lambda db: db.users.get(username))
    if user is None:
        console.print(f"user not found: {username}", style="red", markup=False)
        raise typer.Exit(code=1)

    table = Table(title=user.username, show_header=False)
    table.add_column("field", style="cyan")
    table.add_column("value")
    table.add_row("key", user.key)
    table.add_row("emails", ", ".join(user.emails) or "-")
    table.add_row("roles", ", ".join(user.roles) or "-")
    table.add_row("requests", str(user.requests))
    for name, value in user.profile.items():
        table.add_row(f"profile.{name}", value)
    for name in ("created_at", "updated_at", "last_activity", "license_expires_at"):
        value = getattr(user, name)
        table.add_row(name, value.isoformat() if value else "-")
    console.print(table)


@users_app.command("remove")
def remove_user(username: str) -> None:
    """Remove a user and its email addresses."""
    _run(lambda db: db.users.remove(username))
    console.print(f"[green]Removed user[/green] {username}")


@users_app.command("check")
def check_password(
    username: str,
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """Check a password; exits with status 1 when it does not match."""
    if _run(lambda db: db.users.check_password(username, password)):
        console.print("[green]valid[/green]")
        return
    console.print("[red]invalid[/red]")
    raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# email
# ---------------------------------------------------------------------------


@email_app.command("add")
def add_email(email: str, username: str) -> None:
    """Add an address to a user."""
    record = _run(lambda db: db.email.add(email, username))
    console.print(f"[green]Added[/green] {record.email} to {record.username}")


@email_app.command("remove")
def remove_email(email: str, username: str) -> None:
    """Remove an unverified address from its owner."""
    _run(lambda db: db.email.remove(email, username))
    console.print(f"[green]Removed[/green] {email} from {username}")


# ---------------------------------------------------------------------------
# roles
# ---------------------------------------------------------------------------


@roles_app.command("create")
def create_role(
    name: str,
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    acl: Optional[list[str]] = typer.Option(
        None, "--acl", "-a", help="RESOURCE or RESOURCE=METHOD,METHOD"
    ),
) -> None:
    """Create a role with its access rules."""
    rules = [_parse_rule(value) for value in acl or []]
    role = _run(
        lambda db: db.roles.create(
            {"name": name, "description": description, "acl": rules}
        )
    )
    console.print(f"[green]Created role[/green] {role.name} ({len(role.acl)} rules)")


@roles_app.command("get")
def get_role(name: str) -> None:
    """Show a role and its access rules."""
    role = _run(lambda db: db.roles.get(name))
    if role is None:
        console.print(f"role not found: {name}", style="red", markup=False)
        raise typer.Exit(code=1)

    console.print(f"[bold]{role.name}[/bold] {role.description or ''}")
    table = Table()
    table.add_column("resource", style="cyan")
    table.add_column("methods")
    for rule in role.acl:
        table.add_row(rule.resource, ", ".join(rule.methods))
    console.print(table)


@roles_app.command("list")
def list_roles(prefix: str = typer.Option("", "--prefix")) -> None:
    """List role names."""
    for name in _run(lambda db: db.roles.list(prefix)):
        console.print(name, markup=False)


@roles_app.command("check")
def check_permission(
    resource: str,
    method: Optional[str] = typer.Argument(None),
    role: list[str] = typer.Option(..., "--role", "-r"),
) -> None:
    """Check whether any role grants access; exits with status 1 if denied."""
    if _run(lambda db: db.roles.has_permission(role, resource, method)):
        console.print("[green]granted[/green]")
        return
    console.print("[red]denied[/red]")
    raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# sessions
# ---------------------------------------------------------------------------


@sessions_app.command("reset")
def reset_sessions(subject: str) -> None:
    """Delete every session of a subject."""
    removed = _run(lambda db: db.sessions.reset(subject))
    console.print(f"[green]Removed {removed} session(s)[/green] of {subject}")


@sessions_app.command("list")
def list_sessions(subject: str) -> None:
    """List the live session ids of a subject."""
    for session_id in _run(lambda db: db.sessions.list(subject)):
        console.print(session_id, markup=False)


def cli() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    cli()
