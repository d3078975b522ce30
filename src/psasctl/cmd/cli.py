"""Command-line interface for the operator console.

This module provides the main command-line interface, handling:
- Logging setup for every invocation
- The interactive console
- UI language preferences
- The panel, TrustTunnel, SOCKS and MTProxy command groups

Example:
    # Run from command line:
    $ psasctl trust add alice
    $ psasctl socks conn bob --copy
    $ psasctl mtproxy secret regen
    $ sudo psasctl ui
"""

import sys

import typer
from rich.text import Text

from psasctl import __version__
from psasctl.cmd import mtproxy, panel, socks, trust
from psasctl.cmd.common import console, reporting_errors
from psasctl.cmd.ui import ConsoleSession
from psasctl.core.backends import MTProxyClient, PanelClient, SocksClient, TrustClient
from psasctl.core.exceptions import ConsoleError
from psasctl.core.utils.i18n import UiText, load_language, save_language
from psasctl.core.utils.log_config import configure_logging
from psasctl.core.utils.prompt import PromptHandler
from psasctl.core.utils.settings import ConsoleSettings

app = typer.Typer(help="Operator console for the panel, TrustTunnel, SOCKS5 and MTProxy services")
app.add_typer(panel.app, name="panel")
app.add_typer(trust.app, name="trust")
app.add_typer(socks.app, name="socks")
app.add_typer(mtproxy.app, name="mtproxy")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Show version information."""
    configure_logging(debug)
    if ctx.invoked_subcommand is None:
        console.print(f"[cyan]psasctl v{__version__}[/cyan]")
        console.print("Run [bold]psasctl --help[/bold] for commands or [bold]psasctl ui[/bold] for the menu.")


@app.command(name="ui")
def interactive():
    """Start the interactive console."""
    with reporting_errors():
        if not sys.stdin.isatty():
            raise ConsoleError("ui mode requires an interactive terminal")
        settings = ConsoleSettings.from_env()
        session = ConsoleSession(
            PanelClient(settings.panel_cfg, settings.panel_python, settings.panel_addr),
            TrustClient(settings.trust_dir, settings.trust_service),
            SocksClient(settings.socks_service, settings.socks_config, settings.socks_users),
            MTProxyClient(settings.mtproxy_dir, settings.mtproxy_service, settings.mtproxy_config),
            PromptHandler(console=console, text=UiText(load_language())),
        )
        session.run()


@app.command(name="lang")
def language(lang: str = typer.Argument("", help="us or ru; omit to show the current language")):
    """Show or set the UI language."""
    if not lang:
        console.print(f"Current language: {load_language()}")
        console.print("Supported: us, ru")
        return
    with reporting_errors():
        try:
            path = save_language(lang)
        except ValueError as e:
            raise ConsoleError(str(e)) from e
    console.print(Text(f"Language set to: {lang.strip().lower()} ({path})", style="green"))


if __name__ == "__main__":
    app()
