"""Dante SOCKS backend.

Each SOCKS login is a system account without a home directory or login
shell; Dante authenticates against the system password database. The
console keeps its own JSON list of logins and passwords next to it so the
operator can look credentials up again and hand out connection strings.
"""

import json
import os
import re
import shutil
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Final
from urllib.parse import quote

from loguru import logger

from psasctl.core.backends.base import (
    ServiceStatus,
    restart_service,
    restart_warning,
    run_command,
    service_is_active,
    write_json_atomic,
)
from psasctl.core.entities import SocksUser, normalize_socks_login
from psasctl.core.exceptions import BackendError, ConsoleError, RecordValidationError
from psasctl.core.lib.resolver import SOCKS_USER, find_by_id, resolve
from psasctl.core.network import detect_server_ipv4
from psasctl.core.utils.settings import DEFAULT_SOCKS_PORT
from psasctl.core.utils.utils import new_secure_token

SOCKS_LOGIN_RE: Final = re.compile(r"[a-z_][a-z0-9_-]{0,30}")
DANTE_INTERNAL_RE: Final = re.compile(
    r"^internal:\s*([^\s]+)(?:\s+port\s*=\s*([0-9]{1,5}))?\s*$", re.IGNORECASE
)
DANTE_BINARIES: Final = ("/usr/sbin/danted", "/usr/bin/danted")
NOLOGIN_SHELLS: Final = ("/usr/sbin/nologin", "/sbin/nologin", "/bin/false")


@dataclass
class SocksConnection:
    """Everything a client needs to connect through the proxy."""

    server: str
    port: int
    username: str
    password: str
    uri: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def validate_socks_login(login: str) -> None:
    """Check a normalized login against the system account name rules.

    Raises:
        RecordValidationError: If the login is empty or not a valid account name
    """
    if not login:
        raise RecordValidationError("login is required")
    if not SOCKS_LOGIN_RE.fullmatch(login):
        raise RecordValidationError(
            f"invalid login {login!r}: use lowercase letters, digits, '_' or '-', "
            "starting with a letter or '_', at most 31 characters"
        )


def parse_listen_address(config_text: str) -> tuple[str, int]:
    """Find the first ``internal:`` line of a Dante config.

    Raises:
        BackendError: If no line matches or the port is out of range
    """
    for raw in config_text.replace("\r", "").split("\n"):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        match = DANTE_INTERNAL_RE.match(line)
        if not match:
            continue
        host = match.group(1).strip().strip("[]") or "0.0.0.0"
        port = int(match.group(2)) if match.group(2) else DEFAULT_SOCKS_PORT
        if not 1 <= port <= 65535:
            raise BackendError(f"invalid SOCKS port: {port}")
        return host, port
    raise BackendError("internal listen address not found")


def join_host_port(host: str, port: int) -> str:
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


def connection_uri(server: str, port: int, username: str, password: str) -> str:
    return f"socks5://{quote(username, safe='')}:{quote(password, safe='')}@{join_host_port(server, port)}"


class SocksClient:
    """Manages Dante logins, their system accounts and the service."""

    def __init__(self, service: str, config: Path, users_path: Path) -> None:
        self.service = service
        self.config = Path(config)
        self.users_path = Path(users_path)

    def installed(self) -> bool:
        return shutil.which("danted") is not None or any(Path(p).exists() for p in DANTE_BINARIES)

    def listen_address(self) -> str:
        host, port = self.listen_host_port()
        return join_host_port(host, port)

    def listen_host_port(self) -> tuple[str, int]:
        try:
            text = self.config.read_text(encoding="utf-8")
        except OSError as e:
            raise BackendError(f"read {self.config}: {e}") from e
        try:
            return parse_listen_address(text)
        except BackendError as e:
            raise BackendError(f"{e} in {self.config}") from e

    def load_users(self) -> list[SocksUser]:
        """Read the login list; a missing or blank file means no users."""
        if not self.users_path.exists():
            return []
        try:
            raw = self.users_path.read_text(encoding="utf-8")
        except OSError as e:
            raise BackendError(f"read {self.users_path}: {e}") from e
        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise BackendError(f"parse {self.users_path}: {e}") from e
        if not isinstance(data, list):
            raise BackendError(f"parse {self.users_path}: expected a JSON list")

        users = [SocksUser.from_dict(item) for item in data if isinstance(item, dict)]
        users = [u for u in users if u.name]
        logger.debug(f"Loaded {len(users)} SOCKS users from {self.users_path}")
        return sorted(users, key=lambda u: u.name)

    def write_users(self, users: list[SocksUser]) -> None:
        try:
            write_json_atomic(self.users_path, [u.to_dict() for u in users])
        except OSError as e:
            raise BackendError(f"write {self.users_path}: {e}") from e
        logger.info(f"Saved {len(users)} SOCKS users to {self.users_path}")

    def resolve(self, identifier: str) -> SocksUser:
        return resolve(identifier, self.load_users(), SOCKS_USER)

    def system_user_exists(self, login: str) -> bool:
        try:
            run_command("id", "-u", login)
        except BackendError:
            return False
        return True

    def _set_system_password(self, login: str, password: str) -> None:
        if not password.strip():
            raise RecordValidationError("password is required")
        try:
            run_command("chpasswd", input_text=f"{login}:{password}\n")
        except BackendError as e:
            raise BackendError(f"chpasswd for {login}: {e}") from e

    def _ensure_system_user(self, login: str, password: str) -> None:
        if not self.system_user_exists(login):
            shell = next((s for s in NOLOGIN_SHELLS if os.path.exists(s)), NOLOGIN_SHELLS[-1])
            run_command("useradd", "-M", "-N", "-s", shell, login)
        self._set_system_password(login, password)

    def add_user(self, login: str, password: str | None = None) -> SocksUser:
        """Create the system account and record the login."""
        login = normalize_socks_login(login)
        validate_socks_login(login)
        users = self.load_users()
        if find_by_id(users, login) is not None:
            raise ConsoleError(f"socks user already exists: {login}")
        if self.system_user_exists(login):
            raise ConsoleError(f"linux user already exists: {login}")

        user = SocksUser(login, (password or "").strip() or new_secure_token(), login)
        self._ensure_system_user(login, user.password)
        self.write_users([*users, user])
        logger.info(f"Added SOCKS user {login}")
        return user

    def set_password(self, identifier: str, password: str | None = None) -> SocksUser:
        users = self.load_users()
        target = resolve(identifier, users, SOCKS_USER)
        updated = SocksUser(target.name, (password or "").strip() or new_secure_token(), target.account)
        self._set_system_password(updated.account, updated.password)
        self.write_users([updated if u is target else u for u in users])
        logger.info(f"Changed password of SOCKS user {target.name}")
        return updated

    def delete_user(self, identifier: str) -> tuple[SocksUser, str]:
        """Forget the login, then remove its system account.

        Returns the deleted user and a warning when the account removal
        failed; the login is already gone from the list at that point.
        """
        users = self.load_users()
        target = resolve(identifier, users, SOCKS_USER)
        self.write_users([u for u in users if u is not target])
        logger.info(f"Deleted SOCKS user {target.name}")

        warning = ""
        if self.system_user_exists(target.account):
            try:
                run_command("userdel", target.account)
            except BackendError as e:
                logger.warning(f"userdel {target.account} failed: {e}")
                warning = f"failed to delete linux user {target.account}: {e}"
        return target, warning

    def connection_info(self, user: SocksUser, server: str = "", port: int = 0) -> SocksConnection:
        """Build connection details, filling in the server and port when omitted.

        Raises:
            BackendError: If no server can be determined or the port is invalid
        """
        server = server.strip() or os.environ.get("PSAS_SOCKS_HOST", "").strip()
        if not server:
            server = detect_server_ipv4()
        server = server.strip().strip("[]")
        if not server or any(c.isspace() for c in server):
            raise BackendError(f"invalid server value: {server!r}")

        if port <= 0:
            try:
                _, port = self.listen_host_port()
            except BackendError as e:
                logger.debug(f"Using default SOCKS port: {e}")
                port = DEFAULT_SOCKS_PORT
        if not 1 <= port <= 65535:
            raise BackendError(f"invalid SOCKS port: {port}")

        return SocksConnection(
            server=server,
            port=port,
            username=user.name,
            password=user.password,
            uri=connection_uri(server, port, user.name, user.password),
        )

    def status(self) -> ServiceStatus:
        status = ServiceStatus(installed=self.installed(), service=self.service, path=str(self.config))
        try:
            status.service_active = service_is_active(self.service)
        except BackendError as e:
            logger.warning(f"Cannot query {self.service}: {e}")
        if not status.installed:
            return status
        try:
            status.listen_address = self.listen_address()
        except BackendError as e:
            logger.debug(f"SOCKS listen address unavailable: {e}")
        try:
            status.users = len(self.load_users())
        except BackendError as e:
            logger.warning(f"Cannot count SOCKS users: {e}")
        return status

    def restart(self) -> None:
        restart_service(self.service)

    def restart_warning(self) -> str:
        return restart_warning(self.service)
