"""Server address detection.

This module provides functionality for:
- Reading an explicit public address from the environment
- Scanning network interfaces for a usable IPv4 address
- Preferring globally routable addresses over private ones

Example:
    server = detect_server_ipv4()
    print(f"socks5://alice:secret@{server}:1080")
"""

import ipaddress
import os
import socket
from dataclasses import dataclass

import psutil
from loguru import logger

from psasctl.core.exceptions import BackendError

VIRTUAL_PREFIXES = ("lo", "docker", "veth", "br-", "virbr", "vmnet", "tun", "tap", "wg", "zt")


@dataclass
class NetworkInterface:
    """Network interface with an IPv4 address.

    Attributes:
        name: Interface name (e.g., 'eth0', 'ens3')
        ip: IPv4 address assigned to the interface
        is_global: Whether the address is globally routable
    """

    name: str
    ip: str
    is_global: bool


def is_ipv4(value: str) -> bool:
    try:
        ipaddress.IPv4Address(value.strip())
    except ValueError:
        return False
    return True


def scan_interfaces() -> list[NetworkInterface]:
    """Return up, non-virtual interfaces carrying a usable IPv4 address."""
    stats = psutil.net_if_stats()
    interfaces = []
    for name, addrs in psutil.net_if_addrs().items():
        if name.startswith(VIRTUAL_PREFIXES):
            continue
        if not stats.get(name) or not stats[name].isup:
            continue

        ipv4 = next((addr.address for addr in addrs if addr.family == socket.AF_INET), None)
        if not ipv4:
            continue
        address = ipaddress.IPv4Address(ipv4)
        if address.is_loopback or address.is_link_local:
            continue

        interfaces.append(NetworkInterface(name=name, ip=ipv4, is_global=address.is_global))
    return interfaces


def detect_server_ipv4() -> str:
    """Pick the address clients should connect to.

    ``PSAS_PUBLIC_IP`` wins when set. Otherwise the first global address of an
    up interface is used, then the first private one.

    Raises:
        BackendError: If the override is invalid or no address is found
    """
    override = os.environ.get("PSAS_PUBLIC_IP", "").strip()
    if override:
        if not is_ipv4(override):
            raise BackendError(f"PSAS_PUBLIC_IP is not valid IPv4: {override}")
        return override

    interfaces = scan_interfaces()
    logger.debug(f"Candidate interfaces: {[(i.name, i.ip) for i in interfaces]}")
    for iface in sorted(interfaces, key=lambda i: not i.is_global):
        return iface.ip
    raise BackendError("unable to detect server IPv4 automatically; pass --server or set PSAS_PUBLIC_IP")
