"""
Datagram socket allocation, best-effort tuning and local bind.
"""

from __future__ import annotations

import socket
from typing import Callable, List, Tuple

from udpnet.errors import BindError, SocketCreationError, TuningWarning
from udpnet.logging_utils import METRICS, get_logger
from udpnet.resolver import WILDCARD, ResolvedAddress
from udpnet.sockopts import SocketOptions

logger = get_logger("udpnet")

SocketFactory = Callable[..., socket.socket]


def _tune(option: str, apply: Callable[[], None], warnings: List[TuningWarning]) -> None:
    """Run one independent tuning attempt; OSError is recorded, never raised."""
    try:
        apply()
    except OSError as exc:
        logger.debug("cannot configure socket (%s: %s)", option, exc.strerror or exc)
        warnings.append(TuningWarning(option, str(exc.strerror or exc)))
        METRICS.counter("udp_tuning_warnings").inc()


def create_socket(
    options: SocketOptions,
    *,
    socket_factory: SocketFactory = socket.socket,
    buffer_bytes: int = 0,
) -> Tuple[socket.socket, List[TuningWarning]]:
    """Allocate an AF_INET/SOCK_DGRAM socket and apply reuse/buffer tuning.

    Raises SocketCreationError if the OS refuses the socket. Tuning failures
    come back as TuningWarning records. A zero ``buffer_bytes`` leaves the
    kernel buffer sizes alone.
    """
    try:
        sock = socket_factory(socket.AF_INET, socket.SOCK_DGRAM, 0)
    except OSError as exc:
        logger.error("cannot create socket (%s)", exc.strerror or exc)
        raise SocketCreationError(f"cannot create socket ({exc.strerror or exc})", cause=exc) from exc

    warnings: List[TuningWarning] = []
    try:
        # We may want to reuse an already used socket
        _tune("SO_REUSEADDR", lambda: options.set_reuse_addr(sock), warnings)
        if options.supports_reuse_port:
            _tune("SO_REUSEPORT", lambda: options.set_reuse_port(sock), warnings)

        if buffer_bytes:
            _tune("SO_RCVBUF", lambda: options.set_recv_buffer(sock, buffer_bytes), warnings)
            _tune("SO_SNDBUF", lambda: options.set_send_buffer(sock, buffer_bytes), warnings)
    except BaseException:
        sock.close()
        raise

    return sock, warnings


def bind_socket(
    sock: socket.socket,
    local: ResolvedAddress,
    *,
    wildcard: bool,
    options: SocketOptions,
) -> List[TuningWarning]:
    """Bind ``sock`` to ``local``; enable broadcast reception for wildcard binds.

    ``wildcard`` reflects the caller's bind address string, not the resolved
    address. Multicast groups are bound as-is or replaced by INADDR_ANY
    depending on ``options.bind_multicast_directly``. The caller owns the
    socket and closes it on BindError.
    """
    target = local
    if local.is_multicast and not options.bind_multicast_directly:
        target = ResolvedAddress(WILDCARD, local.port)
        logger.info(
            "binding multicast group %s on the wildcard address",
            local.host,
            extra={"platform": options.name, "port": local.port},
        )

    try:
        sock.bind(target.as_tuple())
    except OSError as exc:
        logger.error("cannot bind socket (%s)", exc.strerror or exc, extra={"local": str(target)})
        raise BindError(f"cannot bind {target} ({exc.strerror or exc})", cause=exc) from exc

    warnings: List[TuningWarning] = []
    # Allow broadcast reception if we bound on INADDR_ANY
    if wildcard:
        try:
            options.set_broadcast(sock)
        except OSError as exc:
            logger.warning("cannot configure socket (SO_BROADCAST: %s)", exc.strerror or exc)
            warnings.append(TuningWarning("SO_BROADCAST", str(exc.strerror or exc)))
            METRICS.counter("udp_tuning_warnings").inc()
    return warnings
