"""Telegram MTProxy commands."""

import json
from pathlib import Path

import pyperclip
import typer
from rich.text import Text

from psasctl.cmd.common import console, print_plain, reporting_errors, require_root
from psasctl.cmd.tables import mtproxy_connection_table, mtproxy_status_table
from psasctl.core.backends.mtproxy import MTProxyClient, MTProxyConfig
from psasctl.core.exceptions import ConsoleError
from psasctl.core.utils.settings import DEFAULT_MTPROXY_CONFIG, DEFAULT_MTPROXY_DIR, DEFAULT_MTPROXY_SERVICE
from psasctl.core.utils.utils import mask_secret

app = typer.Typer(help="Manage the Telegram MTProxy service and secret")
secret_app = typer.Typer(help="Show, set or regenerate the client secret")
app.add_typer(secret_app, name="secret")


@app.callback()
def mtproxy_options(
    ctx: typer.Context,
    directory: Path = typer.Option(
        DEFAULT_MTPROXY_DIR, "--dir", envvar="PSAS_MTPROXY_DIR", help="MTProxy build directory"
    ),
    service: str = typer.Option(
        DEFAULT_MTPROXY_SERVICE, "--service", envvar="PSAS_MTPROXY_SERVICE", help="systemd unit"
    ),
    config: Path = typer.Option(
        DEFAULT_MTPROXY_CONFIG, "--config", envvar="PSAS_MTPROXY_CONF", help="MTProxy JSON config"
    ),
):
    ctx.obj = MTProxyClient(directory, service, config)


def print_secret_change(action: str, config: MTProxyConfig, warning: str, as_json: bool) -> None:
    if as_json:
        data = {"secret": config.secret, "secret_masked": mask_secret(config.secret)}
        if warning:
            data["restart_warning"] = warning
        print_plain(json.dumps(data, indent=2))
        return
    console.print(f"[green]{action}")
    print_plain(f"Secret: {config.secret}")
    if warning:
        console.print(Text(f"Warning: {warning}", style="yellow"))


@app.command(name="status")
def mtproxy_status(ctx: typer.Context, as_json: bool = typer.Option(False, "--json", help="Print JSON")):
    """Show installation, service state and the configured endpoint."""
    mtproxy: MTProxyClient = ctx.obj
    with reporting_errors():
        status = mtproxy.status()
    if as_json:
        print_plain(json.dumps(status.to_dict(), indent=2))
        return
    console.print(mtproxy_status_table(status))


@app.command(name="config")
def mtproxy_config(
    ctx: typer.Context,
    server: str = typer.Option("", "--server", help="Server host or IP (default: from config, then detected)"),
    port: int = typer.Option(0, "--port", help="Server port (default: from config)"),
    secret: str = typer.Option("", "--secret", help="Secret override (32 hex chars)"),
    copy: bool = typer.Option(False, "--copy", help="Copy the tg:// link to the clipboard"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
):
    """Print server, port, secret and Telegram links."""
    mtproxy: MTProxyClient = ctx.obj
    with reporting_errors():
        info = mtproxy.connection_info(server, port, secret)
    if as_json:
        print_plain(json.dumps(info.to_dict(), indent=2, ensure_ascii=False))
        return
    console.print(mtproxy_connection_table(info))
    print_plain(info.tg_link, style="bold")
    if not copy:
        return
    try:
        pyperclip.copy(info.tg_link)
        console.print("[bold green]tg:// link copied to clipboard")
    except pyperclip.PyperclipException as e:
        console.print(Text(f"Could not copy to clipboard: {e}", style="yellow"))


@app.command(name="service")
def mtproxy_service(ctx: typer.Context, action: str = typer.Argument(..., help="status, start, stop or restart")):
    """Run a systemctl action on the MTProxy unit."""
    mtproxy: MTProxyClient = ctx.obj
    with reporting_errors():
        if action.strip().lower() != "status":
            require_root(f"mtproxy service {action}")
        report = mtproxy.control(action)
    if report:
        print_plain(report.rstrip())
        return
    console.print(f"[green]MTProxy service {action.strip().lower()}: {mtproxy.service}", highlight=False)


@secret_app.command(name="show")
def secret_show(ctx: typer.Context, as_json: bool = typer.Option(False, "--json", help="Print JSON")):
    """Print the current secret."""
    mtproxy: MTProxyClient = ctx.obj
    with reporting_errors():
        config = mtproxy.load_config()
        if not config.secret:
            raise ConsoleError(f"no MTProxy secret configured in {mtproxy.config_path}")
    if as_json:
        print_plain(json.dumps({"secret": config.secret, "secret_masked": mask_secret(config.secret)}, indent=2))
        return
    print_plain(f"Secret: {config.secret}")


@secret_app.command(name="set")
def secret_set(
    ctx: typer.Context,
    secret: str = typer.Argument(..., help="New secret, 32 hex chars"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
):
    """Set the secret and restart the service."""
    mtproxy: MTProxyClient = ctx.obj
    with reporting_errors():
        require_root("mtproxy secret set")
        config = mtproxy.set_secret(secret)
    print_secret_change("MTProxy secret updated.", config, mtproxy.restart_warning(), as_json)


@secret_app.command(name="regen")
def secret_regen(ctx: typer.Context, as_json: bool = typer.Option(False, "--json", help="Print JSON")):
    """Generate a random secret and restart the service."""
    mtproxy: MTProxyClient = ctx.obj
    with reporting_errors():
        require_root("mtproxy secret regen")
        config = mtproxy.regenerate_secret()
    print_secret_change("MTProxy secret regenerated.", config, mtproxy.restart_warning(), as_json)
