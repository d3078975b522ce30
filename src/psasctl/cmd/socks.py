"""SOCKS5 (Dante) commands."""

import json
from pathlib import Path

import pyperclip
import typer
from rich.text import Text

from psasctl.cmd.common import console, print_plain, reporting_errors, require_root
from psasctl.cmd.tables import connection_panel, credential_users_table, properties_table, service_status_table
from psasctl.core.backends.socks import SocksClient, SocksConnection
from psasctl.core.utils.settings import DEFAULT_SOCKS_CONFIG, DEFAULT_SOCKS_SERVICE, DEFAULT_SOCKS_USERS

app = typer.Typer(help="Manage SOCKS5 users and the danted service")


@app.callback()
def socks_options(
    ctx: typer.Context,
    service: str = typer.Option(DEFAULT_SOCKS_SERVICE, "--service", envvar="PSAS_SOCKS_SERVICE", help="systemd unit"),
    config: Path = typer.Option(DEFAULT_SOCKS_CONFIG, "--config", envvar="PSAS_SOCKS_CONF", help="Dante config"),
    users: Path = typer.Option(
        DEFAULT_SOCKS_USERS, "--users-file", envvar="PSAS_SOCKS_USERS", help="JSON list of SOCKS logins"
    ),
):
    ctx.obj = SocksClient(service, config, users)


def print_connection(info: SocksConnection, copy: bool = False) -> None:
    console.print(connection_panel(info))
    print_plain(info.uri, style="bold")
    if not copy:
        return
    try:
        pyperclip.copy(info.uri)
        console.print("[bold green]Connection URI copied to clipboard")
    except pyperclip.PyperclipException as e:
        console.print(Text(f"Could not copy to clipboard: {e}", style="yellow"))


@app.command(name="status")
def socks_status(ctx: typer.Context, as_json: bool = typer.Option(False, "--json", help="Print JSON")):
    """Show installation and service state."""
    socks: SocksClient = ctx.obj
    with reporting_errors():
        status = socks.status()
    if as_json:
        print_plain(json.dumps(status.to_dict(), indent=2))
        return
    console.print(service_status_table("SOCKS5 (Dante)", status))


@app.command(name="users")
def socks_users(
    ctx: typer.Context,
    reveal: bool = typer.Option(False, "--reveal", help="Show passwords in clear text"),
):
    """List logins with masked passwords."""
    socks: SocksClient = ctx.obj
    with reporting_errors():
        users = socks.load_users()
    console.print(credential_users_table("SOCKS users", users, reveal=reveal))


@app.command(name="show")
def socks_show(ctx: typer.Context, user_id: str = typer.Argument(..., help="Exact login or unique fragment")):
    """Show one login's credentials."""
    socks: SocksClient = ctx.obj
    with reporting_errors():
        user = socks.resolve(user_id)
    console.print(
        properties_table(
            "SOCKS user",
            [("Username", user.name), ("Password", user.password), ("System user", user.account)],
        )
    )


@app.command(name="add")
def socks_add(
    ctx: typer.Context,
    login: str = typer.Argument(..., help="New login (lowercased)"),
    password: str = typer.Option("", "--password", "-p", help="Password (default: generated)"),
):
    """Create a login and its system account."""
    socks: SocksClient = ctx.obj
    with reporting_errors():
        require_root("socks add")
        user = socks.add_user(login, password)
    console.print(f"[green]SOCKS user added: {user.name}", highlight=False)
    console.print(properties_table("", [("Username", user.name), ("Password", user.password)]))


@app.command(name="passwd")
def socks_passwd(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Exact login or unique fragment"),
    password: str = typer.Option("", "--password", "-p", help="New password (default: generated)"),
):
    """Change a login's password."""
    socks: SocksClient = ctx.obj
    with reporting_errors():
        require_root("socks passwd")
        user = socks.set_password(user_id, password)
    console.print(f"[green]Password changed: {user.name}", highlight=False)
    console.print(properties_table("", [("Username", user.name), ("Password", user.password)]))


@app.command(name="delete")
def socks_delete(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Exact login or unique fragment"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete a login and its system account."""
    socks: SocksClient = ctx.obj
    with reporting_errors():
        require_root("socks delete")
        user = socks.resolve(user_id)
    if not yes:
        typer.confirm(f"Delete SOCKS user {user.name}?", abort=True)
    with reporting_errors():
        _, warning = socks.delete_user(user.name)
    console.print(f"[green]SOCKS user deleted: {user.name}", highlight=False)
    if warning:
        console.print(Text(f"Warning: {warning}", style="yellow"))


@app.command(name="conn")
def socks_conn(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Exact login or unique fragment"),
    server: str = typer.Option("", "--server", help="Server host or IP (default: detected)"),
    port: int = typer.Option(0, "--port", help="Server port (default: from the Dante config)"),
    copy: bool = typer.Option(False, "--copy", help="Copy the connection URI to the clipboard"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
):
    """Print connection details for a login."""
    socks: SocksClient = ctx.obj
    with reporting_errors():
        user = socks.resolve(user_id)
        info = socks.connection_info(user, server, port)
    if as_json:
        print_plain(json.dumps(info.to_dict(), indent=2, ensure_ascii=False))
        return
    print_connection(info, copy=copy)


@app.command(name="restart")
def socks_restart(ctx: typer.Context):
    """Restart the Dante service."""
    socks: SocksClient = ctx.obj
    with reporting_errors():
        require_root("socks restart")
        socks.restart()
    console.print(f"[green]Restarted {socks.service}", highlight=False)
