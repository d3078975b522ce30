"""TrustTunnel endpoint backend.

TrustTunnel is installed into one directory holding the endpoint binary,
``vpn.toml`` (listener settings and the credentials file location) and
``hosts.toml`` (public hostnames). Client credentials live in the record
file described by ``psasctl.core.lib.records``; every change rewrites the
whole file.

Example:
    trust = TrustClient(Path("/opt/trusttunnel"), "trusttunnel")
    user = trust.add_user("alice")
    warning = trust.restart_warning()
"""

from pathlib import Path
from typing import Final

from loguru import logger

from psasctl.core.backends.base import (
    ServiceStatus,
    read_toml,
    restart_service,
    restart_warning,
    service_is_active,
)
from psasctl.core.entities import TrustUser
from psasctl.core.exceptions import BackendError, ConsoleError
from psasctl.core.lib.records import StructuredRecord, load_records, save_records, validate_username
from psasctl.core.lib.resolver import TRUST_USER, find_by_id, resolve
from psasctl.core.utils.utils import new_secure_token

ENDPOINT_BINARY: Final = "trusttunnel_endpoint"
DEFAULT_CREDENTIALS_FILE: Final = "credentials.toml"


class TrustClient:
    """Reads and writes TrustTunnel credentials and controls its service."""

    def __init__(self, directory: Path, service: str) -> None:
        self.directory = Path(directory)
        self.service = service

    @property
    def endpoint_path(self) -> Path:
        return self.directory / ENDPOINT_BINARY

    @property
    def vpn_path(self) -> Path:
        return self.directory / "vpn.toml"

    @property
    def hosts_path(self) -> Path:
        return self.directory / "hosts.toml"

    def installed(self) -> bool:
        return self.endpoint_path.exists()

    def _require_installed(self) -> None:
        if not self.installed():
            raise BackendError(f"TrustTunnel is not installed at {self.directory}")

    def credentials_path(self) -> Path:
        """Credentials file named by ``vpn.toml``, relative to the install directory."""
        name = DEFAULT_CREDENTIALS_FILE
        if self.vpn_path.exists():
            value = read_toml(self.vpn_path).get("credentials_file")
            if isinstance(value, str) and value.strip():
                name = value.strip()
        path = Path(name)
        return path if path.is_absolute() else self.directory / path

    def listen_address(self) -> str:
        value = read_toml(self.vpn_path).get("listen_address")
        if not isinstance(value, str) or not value.strip():
            raise BackendError(f"listen_address not found in {self.vpn_path}")
        return value.strip()

    def hostname(self) -> str:
        data = read_toml(self.hosts_path)
        for host in data.get("main_hosts") or []:
            if isinstance(host, dict) and str(host.get("hostname") or "").strip():
                return str(host["hostname"]).strip()
        value = data.get("hostname")
        if isinstance(value, str) and value.strip():
            return value.strip()
        raise BackendError(f"hostname not found in {self.hosts_path}")

    def load_users(self) -> list[TrustUser]:
        """Read a fresh snapshot of all users, sorted by username.

        Raises:
            BackendError: If TrustTunnel is missing or the file is unreadable
            RecordParseError: If the credentials file is malformed
        """
        self._require_installed()
        path = self.credentials_path()
        try:
            records = load_records(path)
        except OSError as e:
            raise BackendError(f"read {path}: {e}") from e
        return [TrustUser(r.username, r.password) for r in records]

    def write_users(self, users: list[TrustUser]) -> None:
        """Replace the whole credentials file.

        Raises:
            RecordValidationError: If any user is invalid; nothing is written
            BackendError: If the file cannot be written
        """
        path = self.credentials_path()
        try:
            save_records(path, [StructuredRecord(u.username, u.password) for u in users])
        except OSError as e:
            raise BackendError(f"write {path}: {e}") from e
        logger.info(f"Saved {len(users)} TrustTunnel users to {path}")

    def resolve(self, identifier: str) -> TrustUser:
        return resolve(identifier, self.load_users(), TRUST_USER)

    def add_user(self, username: str, password: str | None = None) -> TrustUser:
        """Add a user, generating a password when none is given."""
        username = username.strip()
        validate_username(username)
        users = self.load_users()
        if find_by_id(users, username) is not None:
            raise ConsoleError(f"trust user already exists: {username}")

        user = TrustUser(username, (password or "").strip() or new_secure_token())
        self.write_users([*users, user])
        logger.info(f"Added TrustTunnel user {username}")
        return user

    def set_password(self, identifier: str, password: str | None = None) -> TrustUser:
        """Change a user's password, generating one when none is given."""
        users = self.load_users()
        target = resolve(identifier, users, TRUST_USER)
        updated = TrustUser(target.username, (password or "").strip() or new_secure_token())
        self.write_users([updated if u is target else u for u in users])
        logger.info(f"Changed password of TrustTunnel user {target.username}")
        return updated

    def delete_user(self, identifier: str) -> TrustUser:
        users = self.load_users()
        target = resolve(identifier, users, TRUST_USER)
        self.write_users([u for u in users if u is not target])
        logger.info(f"Deleted TrustTunnel user {target.username}")
        return target

    def status(self) -> ServiceStatus:
        """Best-effort status; missing details are left empty and logged."""
        status = ServiceStatus(
            installed=self.installed(),
            service=self.service,
            path=str(self.directory),
        )
        try:
            status.service_active = service_is_active(self.service)
        except BackendError as e:
            logger.warning(f"Cannot query {self.service}: {e}")
        if not status.installed:
            return status

        for attr, getter in (("listen_address", self.listen_address), ("hostname", self.hostname)):
            try:
                setattr(status, attr, getter())
            except BackendError as e:
                logger.debug(f"TrustTunnel {attr} unavailable: {e}")
        try:
            status.users = len(self.load_users())
        except ConsoleError as e:
            logger.warning(f"Cannot count TrustTunnel users: {e}")
        return status

    def restart(self) -> None:
        restart_service(self.service)

    def restart_warning(self) -> str:
        return restart_warning(self.service)
