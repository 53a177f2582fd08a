"""
Per-platform socket option adapters.

The setup sequence only talks to a ``SocketOptions`` instance; everything that
varies by operating system lives here:

* whether SO_REUSEPORT exists,
* whether a multicast group address can be passed to bind() directly,
* the IP_ADD_SOURCE_MEMBERSHIP option number and the field order of
  ``struct ip_mreq_source`` (Linux puts the interface before the source,
  BSD/macOS/Windows put the source first).

Adapters are chosen once with ``detect_socket_options()``.
"""

from __future__ import annotations

import errno
import socket
import struct
import sys
from typing import Optional


def _aton(addr: str) -> bytes:
    return socket.inet_aton(addr)


class SocketOptions:
    """Option adapter for a generic BSD-sockets platform."""

    name = "posix"
    bind_multicast_directly = True
    # None: source-specific multicast unavailable
    ip_add_source_membership: Optional[int] = getattr(socket, "IP_ADD_SOURCE_MEMBERSHIP", None)
    # struct ip_mreq_source: multiaddr, sourceaddr, interface
    source_before_interface = True

    def __init__(self, *, bind_multicast_directly: Optional[bool] = None, reuse_port: bool = True):
        if bind_multicast_directly is not None:
            self.bind_multicast_directly = bind_multicast_directly
        self._reuse_port = reuse_port

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(bind_multicast_directly={self.bind_multicast_directly}, "
            f"ssm={self.supports_source_membership}, reuse_port={self.supports_reuse_port})"
        )

    @property
    def supports_reuse_port(self) -> bool:
        return self._reuse_port and hasattr(socket, "SO_REUSEPORT")

    @property
    def supports_source_membership(self) -> bool:
        return self.ip_add_source_membership is not None

    # --- struct builders -------------------------------------------------

    def mreq(self, group: str, interface: str) -> bytes:
        """struct ip_mreq (IP_ADD_MEMBERSHIP)."""
        return _aton(group) + _aton(interface)

    def mreq_source(self, group: str, source: str, interface: str) -> bytes:
        """struct ip_mreq_source (IP_ADD_SOURCE_MEMBERSHIP) in this platform's field order."""
        if self.source_before_interface:
            return _aton(group) + _aton(source) + _aton(interface)
        return _aton(group) + _aton(interface) + _aton(source)

    # --- SOL_SOCKET ------------------------------------------------------

    def set_reuse_addr(self, sock: socket.socket) -> None:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    def set_reuse_port(self, sock: socket.socket) -> None:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)

    def set_recv_buffer(self, sock: socket.socket, size: int) -> None:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, size)

    def set_send_buffer(self, sock: socket.socket, size: int) -> None:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, size)

    def set_broadcast(self, sock: socket.socket) -> None:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)

    # --- IPPROTO_IP ------------------------------------------------------

    def add_membership(self, sock: socket.socket, group: str, interface: str) -> None:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, self.mreq(group, interface))

    def add_source_membership(self, sock: socket.socket, group: str, source: str, interface: str) -> None:
        if self.ip_add_source_membership is None:
            raise OSError(errno.ENOPROTOOPT, f"{self.name}: IP_ADD_SOURCE_MEMBERSHIP not supported")
        sock.setsockopt(
            socket.IPPROTO_IP,
            self.ip_add_source_membership,
            self.mreq_source(group, source, interface),
        )

    def set_multicast_if(self, sock: socket.socket, interface: str) -> None:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, _aton(interface))

    def set_multicast_ttl_byte(self, sock: socket.socket, ttl: int) -> None:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, struct.pack("B", ttl))

    def set_multicast_ttl_int(self, sock: socket.socket, ttl: int) -> None:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, ttl)


class LinuxSocketOptions(SocketOptions):
    name = "linux"
    ip_add_source_membership = getattr(socket, "IP_ADD_SOURCE_MEMBERSHIP", 39)
    # struct ip_mreq_source: multiaddr, interface, sourceaddr
    source_before_interface = False


class DarwinSocketOptions(SocketOptions):
    name = "darwin"
    ip_add_source_membership = getattr(socket, "IP_ADD_SOURCE_MEMBERSHIP", 70)


class WindowsSocketOptions(SocketOptions):
    """Winsock: multicast sockets are bound to INADDR_ANY, never to the group."""

    name = "win32"
    bind_multicast_directly = False
    ip_add_source_membership = getattr(socket, "IP_ADD_SOURCE_MEMBERSHIP", 15)


_ADAPTERS = {
    "linux": LinuxSocketOptions,
    "darwin": DarwinSocketOptions,
    "win32": WindowsSocketOptions,
}


def detect_socket_options(
    platform: Optional[str] = None,
    *,
    multicast_bind: str = "auto",
    reuse_port: bool = True,
) -> SocketOptions:
    """Pick the adapter for ``platform`` (defaults to ``sys.platform``).

    ``multicast_bind`` mirrors CONFIG["MULTICAST_BIND"]: "auto" keeps the
    adapter's own policy, "direct"/"wildcard" force it.
    """
    platform = platform or sys.platform
    cls = SocketOptions
    for prefix, candidate in _ADAPTERS.items():
        if platform.startswith(prefix):
            cls = candidate
            break

    if multicast_bind == "auto":
        direct = None
    elif multicast_bind == "direct":
        direct = True
    elif multicast_bind == "wildcard":
        direct = False
    else:
        raise ValueError(f"unknown multicast bind policy: {multicast_bind!r}")

    return cls(bind_multicast_directly=direct, reuse_port=reuse_port)
