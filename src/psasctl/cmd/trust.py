"""TrustTunnel commands."""

import json
from pathlib import Path

import typer
from rich.text import Text

from psasctl.cmd.common import console, print_plain, reporting_errors, require_root
from psasctl.cmd.tables import credential_users_table, properties_table, service_status_table
from psasctl.core.backends.trust import TrustClient
from psasctl.core.utils.settings import DEFAULT_TRUST_DIR, DEFAULT_TRUST_SERVICE

app = typer.Typer(help="Manage TrustTunnel users and service")


@app.callback()
def trust_options(
    ctx: typer.Context,
    directory: Path = typer.Option(
        DEFAULT_TRUST_DIR, "--dir", envvar="PSAS_TRUST_DIR", help="TrustTunnel install directory"
    ),
    service: str = typer.Option(
        DEFAULT_TRUST_SERVICE, "--service", envvar="PSAS_TRUST_SERVICE", help="systemd unit"
    ),
):
    ctx.obj = TrustClient(directory, service)


def print_credentials(action: str, username: str, password: str) -> None:
    console.print(f"[green]{action}")
    console.print(properties_table("", [("Username", username), ("Password", password)]))


def print_restart_warning(trust: TrustClient) -> None:
    warning = trust.restart_warning()
    if warning:
        console.print(Text(f"Warning: {warning}", style="yellow"))


@app.command(name="status")
def trust_status(ctx: typer.Context, as_json: bool = typer.Option(False, "--json", help="Print JSON")):
    """Show installation and service state."""
    trust: TrustClient = ctx.obj
    with reporting_errors():
        status = trust.status()
    if as_json:
        print_plain(json.dumps(status.to_dict(), indent=2))
        return
    console.print(service_status_table("TrustTunnel", status))


@app.command(name="users")
def trust_users(
    ctx: typer.Context,
    reveal: bool = typer.Option(False, "--reveal", help="Show passwords in clear text"),
):
    """List users with masked passwords."""
    trust: TrustClient = ctx.obj
    with reporting_errors():
        users = trust.load_users()
    console.print(credential_users_table("TrustTunnel users", users, reveal=reveal))


@app.command(name="show")
def trust_show(ctx: typer.Context, user_id: str = typer.Argument(..., help="Exact name or unique fragment")):
    """Show one user's credentials."""
    trust: TrustClient = ctx.obj
    with reporting_errors():
        user = trust.resolve(user_id)
    console.print(properties_table("TrustTunnel user", [("Username", user.username), ("Password", user.password)]))


@app.command(name="add")
def trust_add(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="New username"),
    password: str = typer.Option("", "--password", "-p", help="Password (default: generated)"),
):
    """Add a user and restart the service."""
    trust: TrustClient = ctx.obj
    with reporting_errors():
        require_root("trust add")
        user = trust.add_user(username, password)
    print_credentials(f"TrustTunnel user added: {user.username}", user.username, user.password)
    print_restart_warning(trust)


@app.command(name="passwd")
def trust_passwd(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Exact name or unique fragment"),
    password: str = typer.Option("", "--password", "-p", help="New password (default: generated)"),
):
    """Change a user's password and restart the service."""
    trust: TrustClient = ctx.obj
    with reporting_errors():
        require_root("trust passwd")
        user = trust.set_password(user_id, password)
    print_credentials(f"Password changed: {user.username}", user.username, user.password)
    print_restart_warning(trust)


@app.command(name="delete")
def trust_delete(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Exact name or unique fragment"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete a user and restart the service."""
    trust: TrustClient = ctx.obj
    with reporting_errors():
        require_root("trust delete")
        user = trust.resolve(user_id)
    if not yes:
        typer.confirm(f"Delete TrustTunnel user {user.username}?", abort=True)
    with reporting_errors():
        trust.delete_user(user.username)
    console.print(f"[green]TrustTunnel user deleted: {user.username}", highlight=False)
    print_restart_warning(trust)


@app.command(name="restart")
def trust_restart(ctx: typer.Context):
    """Restart the TrustTunnel service."""
    trust: TrustClient = ctx.obj
    with reporting_errors():
        require_root("trust restart")
        trust.restart()
    console.print(f"[green]Restarted {trust.service}", highlight=False)
