"""Console settings resolved from the environment.

Every path and service name the backends touch has a default matching a
stock installation and can be overridden with a ``PSAS_*`` variable. The
command line options read the same variables, so flags win over the
environment and the environment wins over the defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

DEFAULT_PANEL_CFG: Final = "/opt/hiddify-manager/hiddify-panel/app.cfg"
DEFAULT_PANEL_ADDR: Final = "http://127.0.0.1:9000"
DEFAULT_PANEL_PYTHON: Final = "/opt/hiddify-manager/.venv/bin/python"
DEFAULT_TRUST_DIR: Final = "/opt/trusttunnel"
DEFAULT_TRUST_SERVICE: Final = "trusttunnel"
DEFAULT_SOCKS_SERVICE: Final = "danted"
DEFAULT_SOCKS_CONFIG: Final = "/etc/danted.conf"
DEFAULT_SOCKS_USERS: Final = "/etc/psas/socks-users.json"
DEFAULT_SOCKS_PORT: Final = 1080
DEFAULT_MTPROXY_DIR: Final = "/opt/MTProxy"
DEFAULT_MTPROXY_SERVICE: Final = "mtproxy"
DEFAULT_MTPROXY_CONFIG: Final = "/etc/psas/mtproxy.json"
DEFAULT_MTPROXY_PORT: Final = 2443
DEFAULT_MTPROXY_INTERNAL_PORT: Final = 8888


def env_or(name: str, default: str) -> str:
    """Return the stripped environment value, or ``default`` when unset or blank."""
    value = os.environ.get(name, "").strip()
    return value or default


@dataclass
class ConsoleSettings:
    """Locations and service names used by the backends.

    Attributes:
        panel_cfg: Panel configuration file passed as ``HIDDIFY_CFG_PATH``
        panel_addr: Base URL of the panel's local HTTP listener
        panel_python: Interpreter that has the panel package installed
        trust_dir: TrustTunnel installation directory
        trust_service: systemd unit running the TrustTunnel endpoint
        socks_service: systemd unit running Dante
        socks_config: Dante configuration file
        socks_users: JSON file listing SOCKS logins
        mtproxy_dir: MTProxy source and build directory
        mtproxy_service: systemd unit running MTProxy
        mtproxy_config: JSON file with the MTProxy server, ports and secret
    """

    panel_cfg: Path = field(default_factory=lambda: Path(DEFAULT_PANEL_CFG))
    panel_addr: str = DEFAULT_PANEL_ADDR
    panel_python: str = DEFAULT_PANEL_PYTHON
    trust_dir: Path = field(default_factory=lambda: Path(DEFAULT_TRUST_DIR))
    trust_service: str = DEFAULT_TRUST_SERVICE
    socks_service: str = DEFAULT_SOCKS_SERVICE
    socks_config: Path = field(default_factory=lambda: Path(DEFAULT_SOCKS_CONFIG))
    socks_users: Path = field(default_factory=lambda: Path(DEFAULT_SOCKS_USERS))
    mtproxy_dir: Path = field(default_factory=lambda: Path(DEFAULT_MTPROXY_DIR))
    mtproxy_service: str = DEFAULT_MTPROXY_SERVICE
    mtproxy_config: Path = field(default_factory=lambda: Path(DEFAULT_MTPROXY_CONFIG))

    @classmethod
    def from_env(cls) -> "ConsoleSettings":
        """Build settings from ``PSAS_*`` environment variables."""
        return cls(
            panel_cfg=Path(env_or("PSAS_PANEL_CFG", DEFAULT_PANEL_CFG)),
            panel_addr=env_or("PSAS_PANEL_ADDR", DEFAULT_PANEL_ADDR),
            panel_python=env_or("PSAS_PANEL_PY", DEFAULT_PANEL_PYTHON),
            trust_dir=Path(env_or("PSAS_TRUST_DIR", DEFAULT_TRUST_DIR)),
            trust_service=env_or("PSAS_TRUST_SERVICE", DEFAULT_TRUST_SERVICE),
            socks_service=env_or("PSAS_SOCKS_SERVICE", DEFAULT_SOCKS_SERVICE),
            socks_config=Path(env_or("PSAS_SOCKS_CONF", DEFAULT_SOCKS_CONFIG)),
            socks_users=Path(env_or("PSAS_SOCKS_USERS", DEFAULT_SOCKS_USERS)),
            mtproxy_dir=Path(env_or("PSAS_MTPROXY_DIR", DEFAULT_MTPROXY_DIR)),
            mtproxy_service=env_or("PSAS_MTPROXY_SERVICE", DEFAULT_MTPROXY_SERVICE),
            mtproxy_config=Path(env_or("PSAS_MTPROXY_CONF", DEFAULT_MTPROXY_CONFIG)),
        )
