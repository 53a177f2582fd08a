"""Local IPv4 interface lookup for multicast interface selection."""

import socket
from ipaddress import IPv4Address
from typing import List, Optional, Tuple

import psutil


def list_ipv4_interfaces() -> List[Tuple[str, str]]:
    """
    Returns a list of (interface_name, ipv4_address)
    """
    interfaces = []

    for name, addrs in psutil.net_if_addrs().items():
        for addr in addrs:
            if addr.family == socket.AF_INET:
                interfaces.append((name, addr.address))

    return interfaces


def interface_ipv4(value: Optional[str]) -> Optional[str]:
    """
    Map a multicast interface selector to a dotted-quad address.

    Accepts an IPv4 literal (returned unchanged) or a local interface name
    (mapped to its first IPv4 address). Returns None when nothing matches.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None

    try:
        return str(IPv4Address(value))
    except ValueError:
        pass

    for name, address in list_ipv4_interfaces():
        if name == value:
            return address
    return None
