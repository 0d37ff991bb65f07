"""CLI entry point for the localauth tool.

This module is the composition root of the application.  It is the only
place that picks a concrete key-value store (JSON files, SQLite or memory).
All other layers depend solely on abstractions.
"""

import json
import logging
import sys
from enum import Enum
from pathlib import Path

# Ensure UTF-8 output on Windows where stdout may default to cp1252.
# reconfigure() is a no-op when encoding is already utf-8.
if hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
if hasattr(sys.stderr, "reconfigure"):
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from localauth.core.exceptions import StorageError
from localauth.core.models import AuthResult
from localauth.core.validation import (
    LOGIN_FIELDS,
    SIGNUP_FIELDS,
    FormState,
    validate_field,
)
from localauth.services.auth_service import AuthService
from localauth.storage import JsonFileStore, KeyValueStore, MemoryStore, SQLiteStore

app = typer.Typer(help="Local account signup, login and session management.")

console = Console(legacy_windows=False)
err_console = Console(stderr=True, legacy_windows=False)

_ENV_BACKEND = "LOCALAUTH_BACKEND"
_ENV_DATA_DIR = "LOCALAUTH_DATA_DIR"

_FIELD_LABELS = {
    "name": "Name",
    "email": "Email",
    "password": "Password",
    "confirm_password": "Confirm password",
}


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


class Backend(str, Enum):
    """Supported key-value store backends."""

    json = "json"
    sqlite = "sqlite"
    memory = "memory"


class OutputFormat(str, Enum):
    """Supported output formats for the status command."""

    table = "table"
    json = "json"


class Field(str, Enum):
    """Form fields accepted by the check command."""

    name = "name"
    email = "email"
    password = "password"
    confirm_password = "confirm_password"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _configure_logging(verbose: bool) -> None:
    """Route log records to stderr through rich.

    Args:
        verbose: Emit ``localauth`` DEBUG records.  When False, only
            WARNING and above.
    """
    handler = RichHandler(console=err_console, show_path=False)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger("localauth").setLevel(
        logging.DEBUG if verbose else logging.WARNING
    )


def _build_store(backend: Backend, data_dir: Path | None) -> KeyValueStore:
    """Return the key-value store selected on the command line.

    Args:
        backend: Which store implementation to use.
        data_dir: Directory for the store's files, or ``None`` for the
            backend default.

    Returns:
        A :class:`~localauth.storage.interfaces.KeyValueStore`.
    """
    if backend == Backend.memory:
        return MemoryStore()
    if backend == Backend.sqlite:
        return SQLiteStore(data_dir / "store.db" if data_dir else None)
    return JsonFileStore(data_dir)


def _get_service(backend: Backend, data_dir: Path | None) -> AuthService:
    """Build an :class:`AuthService` and restore the stored session.

    Returns:
        A ready (no longer initializing) service.
    """
    service = AuthService.from_store(_build_store(backend, data_dir))
    service.initialize()
    return service


def _service(ctx: typer.Context) -> AuthService:
    try:
        return _get_service(ctx.obj["backend"], ctx.obj["data_dir"])
    except StorageError as e:
        console.print(f"[red]Storage error:[/red] {e}", highlight=False)
        raise typer.Exit(1)


def _print_form_errors(form: FormState) -> None:
    for field in form.fields:
        error = form.visible_error(field)
        if error:
            console.print(
                f"[red]✗ {_FIELD_LABELS.get(field, field)}:[/red] {error}",
                highlight=False,
            )


def _fail(title: str, result: AuthResult) -> None:
    console.print(f"[red]{title}:[/red] {result.error}", highlight=False)
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


@app.callback()
def main(
    ctx: typer.Context,
    backend: Backend = typer.Option(
        Backend.json,
        "--backend",
        envvar=_ENV_BACKEND,
        help="Where accounts and the session are stored.",
    ),
    data_dir: Path | None = typer.Option(
        None,
        "--data-dir",
        envvar=_ENV_DATA_DIR,
        help="Directory for the store files (backend default if omitted).",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logging on stderr."
    ),
):
    """Local account signup, login and session management."""
    _configure_logging(verbose)
    ctx.obj = {"backend": backend, "data_dir": data_dir}


# ---------------------------------------------------------------------------
# auth commands
# ---------------------------------------------------------------------------


@app.command()
def signup(
    ctx: typer.Context,
    name: str | None = typer.Option(None, "--name", help="Display name."),
    email: str | None = typer.Option(None, "--email", help="Email address."),
    password: str | None = typer.Option(
        None, "--password", help="Password (prompted, hidden, if omitted)."
    ),
    confirm_password: str | None = typer.Option(
        None,
        "--confirm-password",
        help="Password confirmation. Defaults to --password when given.",
    ),
):
    """Create an account and sign in with it."""
    if name is None:
        name = typer.prompt("Name", default="", show_default=False)
    if email is None:
        email = typer.prompt("Email", default="", show_default=False)
    if password is None:
        password = typer.prompt(
            "Password (min 6 characters)",
            default="",
            hide_input=True,
            show_default=False,
        )
        if confirm_password is None:
            confirm_password = typer.prompt(
                "Confirm password",
                default="",
                hide_input=True,
                show_default=False,
            )
    elif confirm_password is None:
        confirm_password = password

    form = FormState(SIGNUP_FIELDS)
    form.update("name", name)
    form.update("email", email)
    form.update("password", password)
    form.update("confirm_password", confirm_password)
    if not form.submit():
        _print_form_errors(form)
        raise typer.Exit(1)

    service = _service(ctx)
    result = service.signup(name.strip(), email.strip(), password)
    if not result.success:
        _fail("Signup failed", result)
    console.print(
        f"[green]✓ Account created. Signed in as[/green] {service.user.email}",
        highlight=False,
    )


@app.command()
def login(
    ctx: typer.Context,
    email: str | None = typer.Option(None, "--email", help="Email address."),
    password: str | None = typer.Option(
        None, "--password", help="Password (prompted, hidden, if omitted)."
    ),
):
    """Sign in to an existing account."""
    if email is None:
        email = typer.prompt("Email", default="", show_default=False)
    if password is None:
        password = typer.prompt(
            "Password", default="", hide_input=True, show_default=False
        )

    form = FormState(LOGIN_FIELDS)
    form.update("email", email)
    form.update("password", password)
    if not form.submit():
        _print_form_errors(form)
        raise typer.Exit(1)

    service = _service(ctx)
    result = service.login(email.strip(), password)
    if not result.success:
        _fail("Login failed", result)
    console.print(
        f"[green]✓ Welcome back,[/green] {service.user.name}", highlight=False
    )


@app.command()
def logout(
    ctx: typer.Context,
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Do not ask for confirmation."
    ),
):
    """Sign out of the current session."""
    if not yes and not typer.confirm("Are you sure you want to logout?"):
        console.print("[dim]Cancelled.[/dim]")
        return

    service = _service(ctx)
    was_signed_in = service.is_authenticated
    result = service.logout()
    if not result.success:
        _fail("Logout failed", result)
    if was_signed_in:
        console.print("[green]✓ Logged out.[/green]")
    else:
        console.print("[yellow]Not logged in.[/yellow]")


@app.command()
def status(
    ctx: typer.Context,
    output: OutputFormat = typer.Option(
        OutputFormat.table, "--output", "-o", help="Output format."
    ),
):
    """Show who is signed in."""
    service = _service(ctx)
    user = service.user

    if output == OutputFormat.json:
        print(
            json.dumps(
                {
                    "state": service.state.value,
                    "user": user.to_dict() if user else None,
                },
                indent=2,
            )
        )
    elif user is None:
        console.print("[yellow]Not logged in.[/yellow]")
        console.print(
            "Run [bold]localauth login[/bold] or "
            "[bold]localauth signup[/bold]."
        )
    else:
        console.print(
            Panel(
                f"[bold]Name:[/bold]  {user.name}\n"
                f"[bold]Email:[/bold] {user.email}",
                title="Welcome!",
                width=60,
                padding=(1, 2),
            ),
            highlight=False,
        )

    if user is None:
        raise typer.Exit(1)


@app.command()
def check(
    field: Field = typer.Argument(..., help="Form field to validate."),
    value: str = typer.Argument(..., help="Raw input value."),
    password: str = typer.Option(
        "",
        "--password",
        help="Password to compare against when checking confirm_password.",
    ),
):
    """Validate a single form value without touching any account."""
    error = validate_field(field.value, value, {"password": password})
    if error:
        console.print(f"[red]✗ {error}[/red]", highlight=False)
        raise typer.Exit(1)
    console.print("[green]✓ Valid[/green]")


if __name__ == "__main__":  # pragma: no cover
    app()
