"""
Connected-peer filtering for non-multicast endpoints.

connect() on a datagram socket does not open a stream: it restricts delivery
to datagrams from that peer and fixes the default destination for send().
When the peer is itself a multicast group the socket is a multicast sender
and gets its TTL and outgoing interface configured here.
"""

from __future__ import annotations

import socket
from typing import Optional

from udpnet.errors import ConnectError, ResolutionError
from udpnet.logging_utils import get_logger
from udpnet.multicast import set_multicast_interface, set_multicast_ttl
from udpnet.resolver import ResolvedAddress, Resolver
from udpnet.sockopts import SocketOptions

logger = get_logger("udpnet")

MODE_CONNECTED = "connected"
MODE_UNCONNECTED = "unconnected"


def effective_ttl(ttl: int, default_ttl: int) -> int:
    """Explicit ttl if positive, else the configured default."""
    return ttl if ttl > 0 else default_ttl


def connect_peer(
    sock: socket.socket,
    server_addr: str,
    server_port: int,
    *,
    resolver: Resolver,
    options: SocketOptions,
    ttl: int = 0,
    default_ttl: int = 0,
    miface_addr: Optional[str] = None,
) -> Optional[ResolvedAddress]:
    """Resolve and connect to the remote peer; configure multicast sending if needed.

    An empty ``server_addr`` leaves the socket unconnected and returns None.
    """
    if not server_addr:
        logger.debug("no remote address, socket left unconnected")
        return None

    try:
        peer = resolver(server_addr, server_port)
    except ResolutionError:
        logger.error("cannot build remote address", extra={"host": server_addr, "port": server_port})
        raise

    try:
        sock.connect(peer.as_tuple())
    except OSError as exc:
        logger.error("cannot connect socket (%s)", exc.strerror or exc, extra={"peer": str(peer)})
        raise ConnectError(f"cannot connect to {peer} ({exc.strerror or exc})", cause=exc) from exc

    if peer.is_multicast:
        if miface_addr:
            address = set_multicast_interface(sock, miface_addr, options)
            logger.debug("multicast interface set", extra={"interface": address})

        hops = effective_ttl(ttl, default_ttl)
        if hops > 0:
            form = set_multicast_ttl(sock, hops, options)
            logger.debug("multicast ttl set", extra={"ttl": hops, "form": form})

    return peer
