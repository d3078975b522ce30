"""Rich renderables shared by the commands and the interactive console.

User-supplied values go into ``Text`` objects so that names or passwords
containing square brackets are never read as console markup.
"""

from collections.abc import Iterable, Sequence

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from psasctl.core.backends.base import ServiceStatus
from psasctl.core.backends.mtproxy import MTProxyConnection, MTProxyStatus
from psasctl.core.backends.panel import LinkSet
from psasctl.core.backends.socks import SocksConnection
from psasctl.core.entities import PanelUser, SocksUser, TrustUser
from psasctl.core.utils.utils import mask_secret


def yes_no(value: bool) -> str:
    return "yes" if value else "no"


def properties_table(title: str, rows: Iterable[tuple[str, object]]) -> Table:
    """Two-column property/value table."""
    table = Table(title=title, title_justify="left")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    for name, value in rows:
        table.add_row(name, Text(str(value)))
    return table


def service_status_table(title: str, status: ServiceStatus) -> Table:
    rows = [
        ("Installed", yes_no(status.installed)),
        ("Service", status.service),
        ("Active", yes_no(status.service_active)),
        ("Path", status.path),
    ]
    if status.listen_address:
        rows.append(("Listen", status.listen_address))
    if status.hostname:
        rows.append(("Hostname", status.hostname))
    rows.append(("Users", status.users))
    return properties_table(title, rows)


def panel_users_table(users: Sequence[PanelUser]) -> Table:
    table = Table(title=f"Panel users ({len(users)})", title_justify="left")
    table.add_column("UUID", style="cyan", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("Enabled")
    table.add_column("Limit GB", justify="right")
    table.add_column("Days", justify="right")
    table.add_column("Mode")
    for u in users:
        table.add_row(
            u.uuid,
            Text(u.name),
            Text("yes", style="green") if u.enable else Text("no", style="red"),
            f"{u.usage_limit_gb:.2f}",
            str(u.package_days),
            Text(u.mode),
        )
    return table


def credential_users_table(title: str, users: Sequence[TrustUser | SocksUser], reveal: bool = False) -> Table:
    """Login/password table; passwords are masked unless ``reveal`` is set."""
    table = Table(title=f"{title} ({len(users)})", title_justify="left")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Username", style="cyan")
    table.add_column("Password", style="green")
    for i, u in enumerate(users, 1):
        secret = u.secret if reveal else mask_secret(u.secret)
        table.add_row(str(i), Text(u.display_name), Text(secret))
    return table


def panel_user_rows(user: PanelUser) -> list[tuple[str, object]]:
    return [
        ("UUID", user.uuid),
        ("Name", user.name),
        ("Enabled", yes_no(user.enable)),
        ("Limit GB", f"{user.usage_limit_gb:.2f}"),
        ("Days", user.package_days),
        ("Mode", user.mode),
    ]


def links_table(links: LinkSet) -> Table:
    return properties_table(
        "Access links",
        [
            ("Panel URL", links.panel),
            ("Hiddify (auto)", links.auto),
            ("Subscription b64", links.sub64),
            ("Subscription plain", links.sub),
            ("Singbox", links.singbox),
        ],
    )


def connection_panel(info: SocksConnection) -> Panel:
    table = properties_table(
        "",
        [
            ("Server", info.server),
            ("Port", info.port),
            ("Username", info.username),
            ("Password", info.password),
        ],
    )
    table.show_header = False
    return Panel(table, title=Text("SOCKS5 connection", style="bold cyan"), border_style="blue", padding=(1, 2))


def mtproxy_status_table(status: MTProxyStatus) -> Table:
    rows = [
        ("Installed", yes_no(status.installed)),
        ("Service", status.service),
        ("Active", yes_no(status.service_active)),
        ("Directory", status.path),
        ("Config", status.config_path),
    ]
    if status.hostname:
        rows.append(("Server", status.hostname))
    if status.listen_port:
        rows.append(("Port", status.listen_port))
    if status.internal_port:
        rows.append(("Internal port", status.internal_port))
    if status.secret_masked:
        rows.append(("Secret", status.secret_masked))
    return properties_table("Telegram MTProxy", rows)


def mtproxy_connection_table(info: MTProxyConnection) -> Table:
    return properties_table(
        "MTProxy config",
        [
            ("Server", info.server),
            ("Port", info.port),
            ("Secret", info.secret),
            ("Secret masked", info.secret_masked),
            ("tg:// link", info.tg_link),
            ("Share URL", info.share_url),
        ],
    )
