"""Read-only access to the central panel.

The panel ships its own management CLI; ``all-configs`` dumps the whole
state (API credentials, admin path, domains, users and per-child config)
as JSON, usually surrounded by log noise. The console reads that dump and
never writes back.

Example:
    panel = PanelClient(Path("/opt/hiddify-manager/hiddify-panel/app.cfg"), "/opt/hiddify-manager/.venv/bin/python")
    user = panel.resolve("alice")
    links = panel.links_for(user)
"""

import os
import subprocess
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from psasctl.core.entities import PanelUser
from psasctl.core.exceptions import BackendError
from psasctl.core.lib.resolver import PANEL_USER, find_by_id, resolve
from psasctl.core.network import is_ipv4
from psasctl.core.utils.utils import extract_json_object, short_text, strip_ansi


def _section(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise BackendError(f"invalid all-configs output: {key} is not a list")
    return value


@dataclass
class PanelDomain:
    domain: str
    mode: str = ""


@dataclass
class PanelState:
    """Snapshot of the panel's ``all-configs`` output."""

    api_path: str
    api_key: str
    admin_path: str = ""
    domains: list[PanelDomain] = field(default_factory=list)
    users: list[PanelUser] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PanelState":
        """Build the state from the decoded dump.

        Raises:
            BackendError: If a section has the wrong shape or a user field is invalid
        """
        chconfigs = data.get("chconfigs") or {}
        child = chconfigs.get("0") if isinstance(chconfigs, dict) else None
        try:
            return cls(
                api_path=str(data.get("api_path") or ""),
                api_key=str(data.get("api_key") or ""),
                admin_path=str(data.get("admin_path") or ""),
                domains=[
                    PanelDomain(str(d.get("domain") or "").strip(), str(d.get("mode") or ""))
                    for d in _section(data, "domains")
                    if isinstance(d, dict)
                ],
                users=[PanelUser.from_api(u) for u in _section(data, "users") if isinstance(u, dict)],
                config=dict(child) if isinstance(child, dict) else {},
            )
        except (TypeError, ValueError) as e:
            raise BackendError(f"invalid all-configs output: {e}") from e

    @property
    def client_path(self) -> str:
        value = self.config.get("proxy_path_client")
        return value if isinstance(value, str) else ""

    def main_domain(self) -> str:
        """First direct domain, preferring names over bare IPv4 addresses."""
        direct = [d.domain for d in self.domains if d.mode == "direct" and d.domain]
        named = [d for d in direct if not is_ipv4(d)]
        return (named or direct or [""])[0]

    def admin_url(self, host: str) -> str:
        return f"https://{host.strip()}{self.admin_path.strip()}"


@dataclass
class LinkSet:
    """Per-user access links."""

    uuid: str
    host: str
    panel: str
    auto: str
    sub64: str
    sub: str
    singbox: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def build_links(client_path: str, uuid: str, host: str) -> LinkSet:
    base = f"https://{host.strip()}/{client_path.strip('/')}/{uuid.strip()}"
    return LinkSet(
        uuid=uuid.strip(),
        host=host.strip(),
        panel=f"{base}/",
        auto=f"{base}/auto/",
        sub64=f"{base}/sub64/",
        sub=f"{base}/sub/",
        singbox=f"{base}/singbox/",
    )


def filter_users(users: list[PanelUser], name: str = "", enabled_only: bool = False) -> list[PanelUser]:
    query = name.strip().lower()
    return [
        u
        for u in users
        if (not enabled_only or u.enable) and (not query or query in u.name.lower())
    ]


class PanelClient:
    """Runs the panel CLI; every lookup parses a fresh ``all-configs`` dump.

    ``panel_addr`` is the panel's local HTTP listener. It stands in for the
    admin URL host when no direct domain is configured.
    """

    def __init__(self, panel_cfg: Path, panel_python: str, panel_addr: str = "") -> None:
        self.panel_cfg = Path(panel_cfg)
        self.panel_python = panel_python
        self.panel_addr = panel_addr.strip()

    def run_panel(self, *args: str) -> str:
        """Run ``python -m hiddifypanel ARGS`` against the configured panel.

        Raises:
            BackendError: If the interpreter is missing or the CLI fails
        """
        env = {**os.environ, "HIDDIFY_CFG_PATH": str(self.panel_cfg)}
        command = [self.panel_python, "-m", "hiddifypanel", *args]
        logger.debug(f"Running: {' '.join(command)}")
        try:
            result = subprocess.run(command, capture_output=True, text=True, env=env, check=False)
        except OSError as e:
            raise BackendError(f"panel cli: {e}") from e

        if result.returncode != 0:
            message = result.stderr.strip() or result.stdout.strip()
            raise BackendError(f"panel cli failed with exit code {result.returncode}\n{message}")
        # Some panel builds print to stderr on success.
        return result.stdout.strip() or result.stderr.strip()

    def load_state(self) -> PanelState:
        """Run ``all-configs`` and parse its output.

        Raises:
            BackendError: If the CLI fails or its output is not a usable state
        """
        output = self.run_panel("all-configs")
        try:
            data = extract_json_object(strip_ansi(output))
        except ValueError as e:
            raise BackendError(
                f"parse all-configs: {e}; output={short_text(strip_ansi(output), 240)!r}"
            ) from e

        state = PanelState.from_dict(data)
        if not state.api_path or not state.api_key:
            raise BackendError("invalid all-configs output: empty api_path/api_key")
        logger.debug(f"Loaded panel state with {len(state.users)} users")
        return state

    def load_users(self) -> list[PanelUser]:
        return sorted(self.load_state().users, key=lambda u: u.name.lower())

    def resolve(self, identifier: str) -> PanelUser:
        users = self.load_users()
        return resolve(identifier, users, PANEL_USER, lambda uuid: find_by_id(users, uuid))

    def main_domain(self, state: PanelState | None = None) -> str:
        """Main domain of the panel.

        Raises:
            BackendError: If no direct domain is configured
        """
        host = (state or self.load_state()).main_domain()
        if not host:
            raise BackendError("main domain not found in panel domains")
        return host

    def admin_url(self, state: PanelState) -> str:
        """Admin URL on the main domain, else on the local panel address."""
        host = state.main_domain()
        if host:
            return state.admin_url(host)
        if self.panel_addr:
            return self.panel_addr.rstrip("/") + "/" + state.admin_path.strip().lstrip("/")
        return ""

    def links_for(self, user: PanelUser) -> LinkSet:
        state = self.load_state()
        return build_links(state.client_path, user.uuid, self.main_domain(state))

    def status(self) -> dict[str, Any]:
        state = self.load_state()
        host = state.main_domain()
        return {
            "config": str(self.panel_cfg),
            "main_domain": host,
            "admin_url": self.admin_url(state),
            "client_path": state.client_path,
            "users": len(state.users),
        }
