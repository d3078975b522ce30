"""Service backends managed by the console.

- ``panel``: read-only view of the central panel's users
- ``trust``: TrustTunnel credentials and service
- ``socks``: Dante logins backed by system accounts
- ``mtproxy``: Telegram MTProxy endpoint, secret and service
"""

from psasctl.core.backends.base import ServiceStatus
from psasctl.core.backends.mtproxy import MTProxyClient
from psasctl.core.backends.panel import PanelClient
from psasctl.core.backends.socks import SocksClient
from psasctl.core.backends.trust import TrustClient

__all__ = ["MTProxyClient", "PanelClient", "ServiceStatus", "SocksClient", "TrustClient"]
