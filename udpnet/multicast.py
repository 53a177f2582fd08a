"""
Multicast group membership and send-side multicast options.

Receive side: ``join_group`` performs either a plain IP_ADD_MEMBERSHIP join or,
when a source address is given, an IGMPv3 source-filtered join. A requested
source filter is never downgraded to a plain join.

Send side: ``set_multicast_ttl`` and ``set_multicast_interface`` are applied to
connected sockets whose peer is a multicast group.
"""

from __future__ import annotations

import socket
from ipaddress import IPv4Address
from typing import Optional

from udpnet.errors import MulticastJoinError, MulticastOptionError
from udpnet.interfaces import interface_ipv4
from udpnet.logging_utils import get_logger
from udpnet.resolver import WILDCARD
from udpnet.sockopts import SocketOptions

logger = get_logger("udpnet")

MODE_MULTICAST = "multicast"
MODE_SOURCE_MULTICAST = "source-multicast"


def select_interface(miface_addr: Optional[str]) -> str:
    """Interface for joins: the configured one if it resolves, else INADDR_ANY."""
    address = interface_ipv4(miface_addr)
    if address is None:
        if miface_addr:
            logger.warning("multicast interface %r not found, using any interface", miface_addr)
        return WILDCARD
    return address


def join_group(
    sock: socket.socket,
    group: str,
    source: str,
    interface: str,
    options: SocketOptions,
) -> str:
    """Join ``group`` on ``interface``; filter on ``source`` when it is non-empty.

    Returns the delivery mode. Raises MulticastJoinError on any failure,
    including a platform without source-specific multicast when a source was
    requested.
    """
    if not source:
        logger.debug("IP_ADD_MEMBERSHIP multicast request", extra={"group": group, "interface": interface})
        try:
            options.add_membership(sock, group, interface)
        except OSError as exc:
            logger.error("cannot join multicast group %s (%s)", group, exc.strerror or exc)
            raise MulticastJoinError(f"cannot join {group} ({exc.strerror or exc})", cause=exc) from exc
        return MODE_MULTICAST

    if not options.supports_source_membership:
        logger.error("source specific multicast requested but unsupported on %s", options.name)
        raise MulticastJoinError(
            f"source specific multicast unsupported on {options.name} (source {source})"
        )

    try:
        source = str(IPv4Address(source))
    except ValueError as exc:
        raise MulticastJoinError(f"invalid multicast source address {source!r}", cause=exc) from exc

    # IGMPv3-aware hosts on IGMPv3-aware networks will issue a source-specific report
    logger.debug(
        "IP_ADD_SOURCE_MEMBERSHIP multicast request",
        extra={"group": group, "source": source, "interface": interface},
    )
    try:
        options.add_source_membership(sock, group, source, interface)
    except OSError as exc:
        logger.error(
            "Source specific multicast failed (%s) - check if your OS really supports IGMPv3",
            exc.strerror or exc,
        )
        raise MulticastJoinError(
            f"source specific join {group} from {source} failed ({exc.strerror or exc})", cause=exc
        ) from exc
    return MODE_SOURCE_MULTICAST


def set_multicast_interface(sock: socket.socket, miface_addr: str, options: SocketOptions) -> str:
    """Apply IP_MULTICAST_IF. Unresolvable or rejected interfaces are fatal."""
    address = interface_ipv4(miface_addr)
    if address is None:
        logger.error("failed to set multicast interface (%r not found)", miface_addr)
        raise MulticastOptionError(f"unknown multicast interface {miface_addr!r}")
    try:
        options.set_multicast_if(sock, address)
    except OSError as exc:
        logger.error("failed to set multicast interface (%s).", exc.strerror or exc)
        raise MulticastOptionError(
            f"failed to set multicast interface {address} ({exc.strerror or exc})", cause=exc
        ) from exc
    return address


def set_multicast_ttl(sock: socket.socket, ttl: int, options: SocketOptions) -> str:
    """Apply IP_MULTICAST_TTL, byte-sized first and int-sized as fallback.

    Returns "byte" or "int" depending on which form the stack accepted.
    """
    if not (0 < ttl <= 255):
        raise MulticastOptionError(f"multicast ttl must be 1..255, got {ttl}")

    # Whether IP_MULTICAST_TTL takes a byte or an int differs between stacks;
    # BSD documents a byte.
    try:
        options.set_multicast_ttl_byte(sock, ttl)
        return "byte"
    except OSError as exc:
        logger.debug("failed to set ttl (%s). Let's try it the integer way.", exc.strerror or exc)

    try:
        options.set_multicast_ttl_int(sock, ttl)
        return "int"
    except OSError as exc:
        logger.error("failed to set ttl (%s)", exc.strerror or exc)
        raise MulticastOptionError(f"failed to set multicast ttl {ttl} ({exc.strerror or exc})", cause=exc) from exc
