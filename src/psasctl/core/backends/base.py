"""Shared plumbing for service backends.

Backends talk to the operating system through a handful of tools: systemd
for service state and restarts, and the shadow utilities for system
accounts. Every call goes through ``run_command`` so failures surface as
``BackendError`` with the tool's own message attached.
"""

import json
import os
import subprocess
import sys
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Final

from loguru import logger

from psasctl.core.exceptions import BackendError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

INACTIVE_STATES: Final = frozenset(
    {"inactive", "failed", "activating", "deactivating", "not-found", "unknown"}
)


@dataclass
class ServiceStatus:
    """Snapshot of one managed service.

    Attributes:
        installed: Whether the service's binary or package is present
        service: systemd unit name
        service_active: Whether systemd reports the unit active
        path: Installation directory or main configuration file
        listen_address: Address the service listens on, when known
        hostname: Public hostname, when the service has one
        users: Number of configured users
    """

    installed: bool
    service: str
    service_active: bool = False
    path: str = ""
    listen_address: str = ""
    hostname: str = ""
    users: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def run_command(*args: str, input_text: str | None = None) -> str:
    """Run a system tool and return its stdout.

    Raises:
        BackendError: If the tool cannot be started or exits non-zero
    """
    logger.debug(f"Running: {' '.join(args)}")
    try:
        result = subprocess.run(
            list(args),
            input=input_text,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise BackendError(f"{args[0]}: {e}") from e

    if result.returncode != 0:
        message = (result.stderr or result.stdout).strip()
        raise BackendError(f"{' '.join(args)} failed with exit code {result.returncode}: {message}")
    return result.stdout


def service_is_active(service: str) -> bool:
    """Ask systemd whether ``service`` is active.

    Raises:
        BackendError: If systemctl fails with an unrecognized state
    """
    try:
        result = subprocess.run(
            ["systemctl", "is-active", service],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise BackendError(f"systemctl: {e}") from e

    state = result.stdout.strip().lower()
    if state == "active":
        return True
    if state in INACTIVE_STATES:
        return False
    if result.returncode != 0:
        raise BackendError(f"systemctl is-active {service}: {state or result.stderr.strip()}")
    return False


def restart_service(service: str) -> None:
    logger.info(f"Restarting {service}")
    run_command("systemctl", "restart", service)


def control_service(service: str, action: str) -> None:
    """Run ``systemctl start|stop|restart`` on ``service``."""
    if action not in ("start", "stop", "restart"):
        raise BackendError(f"unknown service action: {action} (expected start|stop|restart)")
    logger.info(f"systemctl {action} {service}")
    run_command("systemctl", action, service)


def service_status_text(service: str) -> str:
    """Return ``systemctl status`` output; a stopped unit is not an error.

    Raises:
        BackendError: If systemctl cannot run or does not know the unit
    """
    try:
        result = subprocess.run(
            ["systemctl", "--no-pager", "--full", "status", service],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise BackendError(f"systemctl: {e}") from e

    # 3 means the unit is loaded but not running.
    if result.returncode not in (0, 3):
        message = (result.stderr or result.stdout).strip()
        raise BackendError(f"systemctl status {service} failed with exit code {result.returncode}: {message}")
    return result.stdout


def restart_warning(service: str) -> str:
    """Restart ``service`` after a change; return a warning instead of failing.

    The change is already on disk at this point, so a failed restart is
    reported to the operator rather than undoing anything.
    """
    try:
        restart_service(service)
    except BackendError as e:
        logger.warning(f"Restart of {service} failed: {e}")
        return f"changes saved, but restarting {service} failed: {e}"
    return ""


def read_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file.

    Raises:
        BackendError: If the file is unreadable or invalid
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise BackendError(f"read {path}: {e}") from e


def write_json_atomic(path: Path, data: Any, mode: int = 0o600) -> None:
    """Write ``data`` as indented JSON through a temp file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
