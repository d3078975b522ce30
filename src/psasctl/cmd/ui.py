"""Interactive operator console.

The main menu groups panel views, the proxy service submenus and the
language preference. Every action runs inside ``ConsoleSession.perform``,
which reports errors in place and keeps the loop alive; only leaving the
menu, answering ``q`` at a pause or running out of input ends the session.

Example:
    session = ConsoleSession(panel, trust, socks, mtproxy)
    session.run()
"""

from collections.abc import Callable, Sequence

import pyperclip
from loguru import logger

from psasctl.cmd.common import require_root
from psasctl.cmd.tables import (
    credential_users_table,
    links_table,
    mtproxy_connection_table,
    mtproxy_status_table,
    panel_user_rows,
    panel_users_table,
    properties_table,
    service_status_table,
)
from psasctl.core.backends import MTProxyClient, PanelClient, SocksClient, TrustClient
from psasctl.core.backends.panel import filter_users
from psasctl.core.exceptions import (
    AmbiguousError,
    ConsoleError,
    ExitRequested,
    InputDecodeError,
    ManualEntryRequested,
    NotFoundError,
    SelectionCanceled,
)
from psasctl.core.lib.picker import run_entity_picker
from psasctl.core.lib.selection import MenuItem, Option, confirm, run_menu, run_option_prompt
from psasctl.core.utils.i18n import LANG_RU, LANG_US, UiText, save_language
from psasctl.core.utils.prompt import PromptHandler
from psasctl.core.utils.prompt.prompt import SEPARATOR_WIDTH

MAIN_MENU = (
    MenuItem("Hiddify Manager", "status", "s", "Status", "Main domain, admin URL, users count"),
    MenuItem("Hiddify Manager", "list", "l", "List users", "Print all users in a table"),
    MenuItem("Hiddify Manager", "find", "f", "Find users", "Search users by name/part and optional enabled filter"),
    MenuItem("Hiddify Manager", "show", "v", "Show user + links", "Pick a user with arrows and print links"),
    MenuItem("Proxy Services", "socks", "o", "SOCKS5 (Dante)", "Manage SOCKS users and danted service"),
    MenuItem("Proxy Services", "trust", "r", "TrustTunnel", "Manage TrustTunnel users and service"),
    MenuItem(
        "Proxy Services", "mtproxy", "m", "Telegram MTProxy", "Manage Telegram MTProxy service and secret"
    ),
    MenuItem("Preferences", "lang", "g", "Language", "Language and UI preferences"),
    MenuItem("Session", "exit", "x", "Exit", "Leave interactive mode"),
)

SERVICE_MENU = (
    Option("status", "Status"),
    Option("list", "List users"),
    Option("show", "Show user"),
    Option("add", "Add user"),
    Option("passwd", "Change password"),
    Option("delete", "Delete user"),
    Option("restart", "Restart service"),
)
SOCKS_EXTRA = (Option("conn", "Connection info"),)
MTPROXY_MENU = (
    Option("status", "Status", "Show MTProxy service/config summary"),
    Option("config", "Show config", "Print server/port/secret and connect links"),
    Option("set-secret", "Set secret", "Set custom HEX32 secret and restart service"),
    Option("regen-secret", "Regenerate secret", "Generate random HEX32 secret and restart service"),
    Option("service", "Service control", "status/start/stop/restart mtproxy"),
)
SERVICE_ACTIONS_MENU = (
    Option("status", "status", "Show systemctl status"),
    Option("start", "start", "Start service"),
    Option("stop", "stop", "Stop service"),
    Option("restart", "restart", "Restart service"),
    Option("back", "back", "Return to MTProxy menu"),
)
BACK = Option("back", "Back", "Return to main menu")


class ConsoleSession:
    """One interactive session over the four backends."""

    def __init__(
        self,
        panel: PanelClient,
        trust: TrustClient,
        socks: SocksClient,
        mtproxy: MTProxyClient,
        handler: PromptHandler | None = None,
    ) -> None:
        self.panel = panel
        self.trust = trust
        self.socks = socks
        self.mtproxy = mtproxy
        self.handler = handler or PromptHandler()

    @property
    def text(self) -> UiText:
        return self.handler.text

    def run(self) -> None:
        """Show the main menu until the operator leaves."""
        actions: dict[str, Callable[[], None]] = {
            "status": self.panel_status,
            "list": self.panel_list,
            "find": self.panel_find,
            "show": self.panel_show,
            "lang": self.choose_language,
        }
        submenus: dict[str, Callable[[], None]] = {
            "socks": self.socks_menu,
            "trust": self.trust_menu,
            "mtproxy": self.mtproxy_menu,
        }

        while True:
            try:
                item = run_menu(MAIN_MENU, self.handler)
            except (SelectionCanceled, InputDecodeError):
                break
            if item.key == "exit":
                break
            try:
                if item.key in submenus:
                    submenus[item.key]()
                    continue
                self.handler.clear()
                self.handler.header(item.title)
                self.perform(actions[item.key])
                self.pause()
            except (ExitRequested, InputDecodeError):
                break
        self.handler.clear()
        logger.debug("Interactive session ended")

    def perform(self, action: Callable[[], None]) -> None:
        """Run one action and report its errors without leaving the loop."""
        try:
            action()
        except SelectionCanceled:
            self.handler.out()
            self.handler.out(self.text("Canceled."), style="yellow")
        except (ExitRequested, InputDecodeError):
            raise
        except AmbiguousError as e:
            self.handler.error(str(e))
            for candidate in e.candidates:
                self.handler.info(f"- {candidate.display_name} ({candidate.primary_id})")
        except ConsoleError as e:
            logger.debug(f"Action failed: {e}")
            self.handler.error(str(e))

    def pause(self) -> None:
        """Wait for Enter; ``q`` ends the session."""
        self.handler.out()
        self.handler.out("-" * SEPARATOR_WIDTH)
        try:
            answer = self.handler.read_line("Press Enter to return to menu (q to exit)...")
        except InputDecodeError as e:
            raise ExitRequested() from e
        if answer.lower() == "q":
            raise ExitRequested()

    def pick(self, title: str, entities: Sequence, resolve: Callable, label: str):
        """Pick a user, or resolve a typed identifier when asked for manual entry."""
        if not entities:
            raise NotFoundError("no users configured")
        try:
            return run_entity_picker(title, entities, self.handler)
        except ManualEntryRequested:
            return resolve(self.handler.read_required(label))

    def print_table(self, table) -> None:
        self.handler.console.print(table)

    def panel_status(self) -> None:
        status = self.panel.status()
        self.print_table(
            properties_table(
                self.text("Status"),
                [
                    ("Main domain", status["main_domain"] or "-"),
                    ("Admin URL", status["admin_url"] or "-"),
                    ("Users", status["users"]),
                ],
            )
        )

    def panel_list(self) -> None:
        self.print_table(panel_users_table(self.panel.load_users()))

    def panel_find(self) -> None:
        name = self.handler.read_line("Name filter (empty for all)")
        enabled_only = confirm(self.handler, "Only enabled users?")
        self.print_table(panel_users_table(filter_users(self.panel.load_users(), name, enabled_only)))

    def panel_show(self) -> None:
        user = self.pick("Select user", self.panel.load_users(), self.panel.resolve, "USER_ID (uuid or name)")
        self.handler.clear()
        self.print_table(properties_table(self.text("Show user"), panel_user_rows(user)))
        self.print_table(links_table(self.panel.links_for(user)))

    def choose_language(self) -> None:
        options = [Option(LANG_US, "English (us)"), Option(LANG_RU, "Русский (ru)")]
        current = 1 if self.text.lang == LANG_RU else 0
        lang = run_option_prompt("Select language", options, current, self.handler)
        try:
            path = save_language(lang)
        except OSError as e:
            raise ConsoleError(f"save language: {e}") from e
        self.handler.text = UiText(lang)
        self.handler.success(self.text("Language set to: {}", lang))
        self.handler.info(str(path))

    def service_menu(self, title: str, options: Sequence[Option], actions: dict[str, Callable[[], None]]) -> None:
        while True:
            try:
                action = run_option_prompt(title, options, 0, self.handler)
            except SelectionCanceled:
                return
            if action == "back":
                return
            self.handler.clear()
            self.handler.header(title)
            self.perform(actions[action])
            self.pause()

    def trust_menu(self) -> None:
        self.service_menu(
            "TrustTunnel",
            [*SERVICE_MENU, BACK],
            {
                "status": lambda: self.print_table(service_status_table("TrustTunnel", self.trust.status())),
                "list": lambda: self.print_table(
                    credential_users_table("TrustTunnel users", self.trust.load_users())
                ),
                "show": self.trust_show,
                "add": self.trust_add,
                "passwd": self.trust_passwd,
                "delete": self.trust_delete,
                "restart": lambda: self.restart(self.trust),
            },
        )

    def pick_trust_user(self, title: str = "Select user"):
        return self.pick(title, self.trust.load_users(), self.trust.resolve, "USER_ID (name)")

    def print_credentials(self, username: str, password: str) -> None:
        self.print_table(properties_table("", [("Username", username), ("Password", password)]))

    def report_restart(self, warning: str) -> None:
        if warning:
            self.handler.out(f"  {warning}", style="yellow")

    def trust_show(self) -> None:
        user = self.pick_trust_user()
        self.print_credentials(user.username, user.password)

    def trust_add(self) -> None:
        require_root("trust add")
        username = self.handler.read_required("Username")
        password = self.handler.read_secret("Password (empty to generate)")
        user = self.trust.add_user(username, password)
        self.handler.success(user.username)
        self.print_credentials(user.username, user.password)
        self.report_restart(self.trust.restart_warning())

    def trust_passwd(self) -> None:
        require_root("trust passwd")
        target = self.pick_trust_user("Select user to update")
        password = self.handler.read_secret("Password (empty to generate)")
        user = self.trust.set_password(target.username, password)
        self.handler.success(user.username)
        self.print_credentials(user.username, user.password)
        self.report_restart(self.trust.restart_warning())

    def trust_delete(self) -> None:
        require_root("trust delete")
        target = self.pick_trust_user("Select user to delete")
        if not confirm(self.handler, self.text("Delete {}?", target.username)):
            raise SelectionCanceled()
        self.trust.delete_user(target.username)
        self.handler.success(target.username)
        self.report_restart(self.trust.restart_warning())

    def restart(self, backend: TrustClient | SocksClient) -> None:
        require_root(f"restart {backend.service}")
        if not confirm(self.handler, self.text("Restart {} now?", backend.service), default=True):
            raise SelectionCanceled()
        backend.restart()
        self.handler.success(backend.service)

    def socks_menu(self) -> None:
        self.service_menu(
            "SOCKS5 (Dante)",
            [*SERVICE_MENU, *SOCKS_EXTRA, BACK],
            {
                "status": lambda: self.print_table(service_status_table("SOCKS5 (Dante)", self.socks.status())),
                "list": lambda: self.print_table(credential_users_table("SOCKS users", self.socks.load_users())),
                "show": self.socks_show,
                "add": self.socks_add,
                "passwd": self.socks_passwd,
                "delete": self.socks_delete,
                "restart": lambda: self.restart(self.socks),
                "conn": self.socks_conn,
            },
        )

    def pick_socks_user(self, title: str = "Select user"):
        return self.pick(title, self.socks.load_users(), self.socks.resolve, "USER_ID (name)")

    def socks_show(self) -> None:
        user = self.pick_socks_user()
        self.print_credentials(user.name, user.password)

    def socks_add(self) -> None:
        require_root("socks add")
        login = self.handler.read_required("Username")
        password = self.handler.read_secret("Password (empty to generate)")
        user = self.socks.add_user(login, password)
        self.handler.success(user.name)
        self.print_credentials(user.name, user.password)

    def socks_passwd(self) -> None:
        require_root("socks passwd")
        target = self.pick_socks_user("Select user to update")
        password = self.handler.read_secret("Password (empty to generate)")
        user = self.socks.set_password(target.name, password)
        self.handler.success(user.name)
        self.print_credentials(user.name, user.password)

    def socks_delete(self) -> None:
        require_root("socks delete")
        target = self.pick_socks_user("Select user to delete")
        if not confirm(self.handler, self.text("Delete {}?", target.name)):
            raise SelectionCanceled()
        _, warning = self.socks.delete_user(target.name)
        self.handler.success(target.name)
        self.report_restart(warning)

    def socks_conn(self) -> None:
        user = self.pick_socks_user()
        info = self.socks.connection_info(user)
        copy = confirm(self.handler, "Copy connection URI to clipboard?")
        self.handler.clear()
        self.handler.header("Connection info")
        self.print_credentials(info.username, info.password)
        self.handler.info(f"{info.server}:{info.port}")
        self.handler.out(info.uri, style="bold")
        if not copy:
            return
        try:
            pyperclip.copy(info.uri)
        except pyperclip.PyperclipException as e:
            self.handler.out(f"  Could not copy to clipboard: {e}", style="yellow")
            return
        self.handler.success("copied")

    def mtproxy_menu(self) -> None:
        self.service_menu(
            "Telegram MTProxy",
            [*MTPROXY_MENU, BACK],
            {
                "status": lambda: self.print_table(mtproxy_status_table(self.mtproxy.status())),
                "config": self.mtproxy_config,
                "set-secret": self.mtproxy_set_secret,
                "regen-secret": self.mtproxy_regen_secret,
                "service": self.mtproxy_service,
            },
        )

    def mtproxy_config(self) -> None:
        server = self.handler.read_line("Server host/ip (empty = from config)")
        port_text = self.handler.read_line("Port (empty = from config)")
        try:
            port = int(port_text) if port_text else 0
        except ValueError as e:
            raise ConsoleError(f"invalid port: {port_text}") from e
        info = self.mtproxy.connection_info(server, port)
        self.print_table(mtproxy_connection_table(info))

    def report_secret(self, message: str, secret: str) -> None:
        self.handler.success(self.text(message))
        self.handler.info(f"Secret: {secret}")
        self.report_restart(self.mtproxy.restart_warning())

    def mtproxy_set_secret(self) -> None:
        require_root("mtproxy secret set")
        secret = self.handler.read_required("MTProxy secret (HEX32)")
        config = self.mtproxy.set_secret(secret)
        self.report_secret("MTProxy secret updated.", config.secret)

    def mtproxy_regen_secret(self) -> None:
        require_root("mtproxy secret regen")
        if not confirm(self.handler, "Generate a new secret? Current clients will disconnect."):
            raise SelectionCanceled()
        config = self.mtproxy.regenerate_secret()
        self.report_secret("MTProxy secret regenerated.", config.secret)

    def mtproxy_service(self) -> None:
        action = run_option_prompt("MTProxy service", SERVICE_ACTIONS_MENU, 0, self.handler)
        if action == "back":
            return
        if action != "status":
            require_root(f"mtproxy service {action}")
        report = self.mtproxy.control(action)
        if report:
            self.handler.out(report.rstrip())
            return
        self.handler.success(f"{action}: {self.mtproxy.service}")
