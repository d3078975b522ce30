"""Telegram MTProxy backend.

MTProxy is built from source into its own directory and run by systemd.
The console keeps the public endpoint and the client secret in a small JSON
file; the service unit reads the secret from there, so every change to the
file is followed by a restart.

Example:
    mtproxy = MTProxyClient(Path("/opt/MTProxy"), "mtproxy", Path("/etc/psas/mtproxy.json"))
    config = mtproxy.regenerate_secret()
    info = mtproxy.connection_info()
    print(info.tg_link)
"""

import json
import os
import re
import shutil
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Final
from urllib.parse import urlencode

from loguru import logger

from psasctl.core.backends.base import (
    ServiceStatus,
    control_service,
    restart_service,
    restart_warning,
    service_is_active,
    service_status_text,
    write_json_atomic,
)
from psasctl.core.exceptions import BackendError, RecordValidationError
from psasctl.core.network import detect_server_ipv4
from psasctl.core.utils.settings import DEFAULT_MTPROXY_INTERNAL_PORT, DEFAULT_MTPROXY_PORT
from psasctl.core.utils.utils import mask_secret, new_hex_token

MTPROXY_BINARY: Final = "mtproto-proxy"
MTPROXY_SECRET_RE: Final = re.compile(r"[0-9a-f]{32}")
SERVICE_ACTIONS: Final = ("status", "start", "stop", "restart")


def normalize_secret(raw: str) -> str:
    """Lowercase and validate a 32 hex digit secret.

    Raises:
        RecordValidationError: If the value is not 32 hex digits
    """
    secret = (raw or "").strip().lower()
    if not MTPROXY_SECRET_RE.fullmatch(secret):
        raise RecordValidationError(f"invalid MTProxy secret {(raw or '').strip()!r} (expected 32 hex chars)")
    return secret


def check_port(port: int, label: str = "mtproxy port") -> int:
    if not 1 <= port <= 65535:
        raise BackendError(f"invalid {label}: {port}")
    return port


@dataclass
class MTProxyConfig:
    server: str = ""
    port: int = DEFAULT_MTPROXY_PORT
    secret: str = ""
    internal_port: int = DEFAULT_MTPROXY_INTERNAL_PORT

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class MTProxyStatus(ServiceStatus):
    """Service status plus the endpoint details from the config file."""

    config_path: str = ""
    listen_port: int = 0
    internal_port: int = 0
    secret_masked: str = ""


@dataclass
class MTProxyConnection:
    server: str
    port: int
    secret: str
    secret_masked: str
    tg_link: str
    share_url: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def proxy_links(server: str, port: int, secret: str) -> tuple[str, str]:
    """Return the ``tg://`` link and the ``t.me`` share URL."""
    query = urlencode(sorted({"server": server, "port": str(port), "secret": secret}.items()))
    return f"tg://proxy?{query}", f"https://t.me/proxy?{query}"


def _int_field(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if value in (None, ""):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise BackendError(f"invalid {key} value: {value!r}") from e


class MTProxyClient:
    """Reads and writes the MTProxy config and controls its service."""

    def __init__(self, directory: Path, service: str, config_path: Path) -> None:
        self.directory = Path(directory)
        self.service = service
        self.config_path = Path(config_path)

    @property
    def binary_path(self) -> Path:
        return self.directory / "objs" / "bin" / MTPROXY_BINARY

    def installed(self) -> bool:
        return self.binary_path.exists() or shutil.which(MTPROXY_BINARY) is not None

    def load_config(self) -> MTProxyConfig:
        """Read the config, filling in defaults for missing values.

        A missing or blank file yields the defaults with the server taken from
        ``PSAS_MTPROXY_HOST``.

        Raises:
            BackendError: If the file is unreadable, malformed or has bad ports
            RecordValidationError: If the stored secret is malformed
        """
        config = MTProxyConfig(server=os.environ.get("PSAS_MTPROXY_HOST", "").strip())
        try:
            raw = self.config_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raw = ""
        except OSError as e:
            raise BackendError(f"read {self.config_path}: {e}") from e

        if raw.strip():
            try:
                data = json.loads(raw)
            except ValueError as e:
                raise BackendError(f"parse {self.config_path}: {e}") from e
            if not isinstance(data, dict):
                raise BackendError(f"parse {self.config_path}: expected a JSON object")

            server = str(data.get("server") or "").strip()
            if server:
                config.server = server
            port = _int_field(data, "port")
            if port > 0:
                config.port = port
            internal_port = _int_field(data, "internal_port")
            if internal_port > 0:
                config.internal_port = internal_port
            secret = str(data.get("secret") or "")
            if secret.strip():
                config.secret = normalize_secret(secret)

        check_port(config.port)
        check_port(config.internal_port, "mtproxy internal port")
        logger.debug(f"Loaded MTProxy config from {self.config_path}")
        return config

    def write_config(self, config: MTProxyConfig) -> None:
        """Validate and save the config.

        Raises:
            RecordValidationError: If the secret is malformed; nothing is written
            BackendError: If a port is invalid or the file cannot be written
        """
        server = config.server.strip() or os.environ.get("PSAS_MTPROXY_HOST", "").strip()
        saved = MTProxyConfig(
            server=server,
            port=check_port(config.port if config.port > 0 else DEFAULT_MTPROXY_PORT),
            secret=normalize_secret(config.secret),
            internal_port=check_port(
                config.internal_port if config.internal_port > 0 else DEFAULT_MTPROXY_INTERNAL_PORT,
                "mtproxy internal port",
            ),
        )
        try:
            write_json_atomic(self.config_path, saved.to_dict())
        except OSError as e:
            raise BackendError(f"write {self.config_path}: {e}") from e
        logger.info(f"Saved MTProxy config to {self.config_path}")

    def set_secret(self, raw: str) -> MTProxyConfig:
        secret = normalize_secret(raw)
        config = self.load_config()
        config.secret = secret
        self.write_config(config)
        logger.info("MTProxy secret updated")
        return config

    def regenerate_secret(self) -> MTProxyConfig:
        config = self.load_config()
        config.secret = new_hex_token(16)
        self.write_config(config)
        logger.info("MTProxy secret regenerated")
        return config

    def connection_info(self, server: str = "", port: int = 0, secret: str = "") -> MTProxyConnection:
        """Build client links, overriding the configured values when given.

        Raises:
            BackendError: If no server can be determined or the port is invalid
            RecordValidationError: If no valid secret is configured or given
        """
        config = self.load_config()
        server = server.strip() or config.server
        if not server:
            server = detect_server_ipv4()
        if any(c.isspace() for c in server):
            raise BackendError(f"invalid server value: {server!r}")
        port = check_port(port if port > 0 else config.port)
        secret = normalize_secret(secret.strip() or config.secret)

        tg_link, share_url = proxy_links(server, port, secret)
        return MTProxyConnection(
            server=server,
            port=port,
            secret=secret,
            secret_masked=mask_secret(secret),
            tg_link=tg_link,
            share_url=share_url,
        )

    def status(self) -> MTProxyStatus:
        """Best-effort status; config problems are logged and left out."""
        status = MTProxyStatus(
            installed=self.installed(),
            service=self.service,
            path=str(self.directory),
            config_path=str(self.config_path),
        )
        try:
            status.service_active = service_is_active(self.service)
        except BackendError as e:
            logger.warning(f"Cannot query {self.service}: {e}")
        try:
            config = self.load_config()
        except (BackendError, RecordValidationError) as e:
            logger.warning(f"Cannot read MTProxy config: {e}")
            return status

        status.hostname = config.server
        status.listen_port = config.port
        status.internal_port = config.internal_port
        status.secret_masked = mask_secret(config.secret)
        if config.server:
            status.listen_address = f"{config.server}:{config.port}"
        return status

    def control(self, action: str) -> str:
        """Run a service action; ``status`` returns the systemctl report.

        Raises:
            BackendError: If the action is unknown or systemctl fails
        """
        action = action.strip().lower()
        if action not in SERVICE_ACTIONS:
            raise BackendError(f"unknown mtproxy service action: {action} (expected {'|'.join(SERVICE_ACTIONS)})")
        if action == "status":
            return service_status_text(self.service)
        control_service(self.service, action)
        return ""

    def restart(self) -> None:
        restart_service(self.service)

    def restart_warning(self) -> str:
        return restart_warning(self.service)
