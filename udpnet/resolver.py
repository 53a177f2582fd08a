"""
IPv4 address resolution for endpoint setup.

Wraps ``socket.getaddrinfo`` (AF_INET, SOCK_DGRAM, AI_PASSIVE) and keeps the
first result. An empty host resolves to the wildcard address.
"""

from __future__ import annotations

import socket
from dataclasses import dataclass
from ipaddress import IPv4Address
from typing import Callable, Tuple

from udpnet.errors import ResolutionError
from udpnet.logging_utils import get_logger

logger = get_logger("udpnet")

WILDCARD = "0.0.0.0"


@dataclass(frozen=True)
class ResolvedAddress:
    host: str
    port: int

    def as_tuple(self) -> Tuple[str, int]:
        return (self.host, self.port)

    @property
    def is_multicast(self) -> bool:
        return is_multicast(self.host)

    @property
    def is_wildcard(self) -> bool:
        return self.host == WILDCARD

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


# Resolver signature accepted by the setup sequence (tests inject their own).
Resolver = Callable[[str, int], ResolvedAddress]


def is_multicast(host: str) -> bool:
    """True for class D literals (224.0.0.0 - 239.255.255.255); False for anything else."""
    try:
        return IPv4Address(host).is_multicast
    except ValueError:
        return False


def is_wildcard(host: str) -> bool:
    return host == "" or host == WILDCARD


def resolve_ipv4(host: str, port: int) -> ResolvedAddress:
    """Resolve ``host``/``port`` to one IPv4 socket address.

    Raises ResolutionError when nothing resolves; there is no fallback address.
    """
    if not (0 <= int(port) <= 65535):
        raise ResolutionError(f"{host}:{port}: port out of range")

    logger.debug("resolving %s:%d...", host, port)
    try:
        infos = socket.getaddrinfo(
            host or None,
            port,
            socket.AF_INET,
            socket.SOCK_DGRAM,
            0,
            socket.AI_PASSIVE,
        )
    except (socket.gaierror, UnicodeError) as exc:
        logger.warning("%s: %s", host, exc, extra={"host": host, "port": port})
        raise ResolutionError(f"cannot resolve {host}:{port} ({exc})", cause=exc) from exc

    for family, _type, _proto, _canon, sockaddr in infos:
        if family == socket.AF_INET:
            return ResolvedAddress(sockaddr[0], sockaddr[1])

    raise ResolutionError(f"cannot resolve {host}:{port} (no IPv4 address)")
