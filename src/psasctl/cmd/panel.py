"""Panel commands: read-only views of the central panel's users."""

import json
from pathlib import Path

import typer

from psasctl.cmd.common import console, print_plain, reporting_errors
from psasctl.cmd.tables import links_table, panel_user_rows, panel_users_table, properties_table
from psasctl.core.backends.panel import PanelClient, filter_users
from psasctl.core.utils.settings import DEFAULT_PANEL_ADDR, DEFAULT_PANEL_CFG, DEFAULT_PANEL_PYTHON

app = typer.Typer(help="Inspect panel users and access links")


@app.callback()
def panel_options(
    ctx: typer.Context,
    cfg: Path = typer.Option(DEFAULT_PANEL_CFG, "--cfg", envvar="PSAS_PANEL_CFG", help="Panel config file"),
    python: str = typer.Option(
        DEFAULT_PANEL_PYTHON, "--python", envvar="PSAS_PANEL_PY", help="Interpreter with the panel installed"
    ),
    addr: str = typer.Option(DEFAULT_PANEL_ADDR, "--addr", envvar="PSAS_PANEL_ADDR", help="Panel HTTP address"),
):
    ctx.obj = PanelClient(cfg, python, addr)


@app.command(name="status")
def panel_status(ctx: typer.Context):
    """Show the main domain, admin URL and user count."""
    panel: PanelClient = ctx.obj
    with reporting_errors():
        status = panel.status()
    console.print(
        properties_table(
            "Panel",
            [
                ("Config", status["config"]),
                ("Main domain", status["main_domain"] or "-"),
                ("Admin URL", status["admin_url"] or "-"),
                ("Client path", status["client_path"] or "-"),
                ("Users", status["users"]),
            ],
        )
    )


@app.command(name="users")
def panel_users(
    ctx: typer.Context,
    name: str = typer.Option("", "--name", "-n", help="Only users whose name contains this"),
    enabled: bool = typer.Option(False, "--enabled", help="Only enabled users"),
):
    """List panel users."""
    panel: PanelClient = ctx.obj
    with reporting_errors():
        users = filter_users(panel.load_users(), name, enabled)
    console.print(panel_users_table(users))


@app.command(name="show")
def panel_show(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="UUID, exact name or unique name fragment"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
):
    """Show one user and its access links."""
    panel: PanelClient = ctx.obj
    with reporting_errors():
        user = panel.resolve(user_id)
        links = panel.links_for(user)

    if as_json:
        print_plain(json.dumps({"user": user.to_dict(), "links": links.to_dict()}, indent=2, ensure_ascii=False))
        return
    console.print(properties_table("User", panel_user_rows(user)))
    console.print(links_table(links))
