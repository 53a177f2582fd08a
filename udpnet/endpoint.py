"""
UDP/IPv4 endpoint assembly.

``open_udp`` runs the whole setup sequence:

1. resolve the local address,
2. create and tune the datagram socket,
3. bind it (enabling broadcast reception on wildcard binds),
4. either join the multicast group (multicast bind address) or connect to
   the remote peer (any other bind address),
5. attach the session MTU.

Setup is all-or-nothing: on any failure the socket is closed before the
error propagates, and the caller only ever sees a ready ``UdpEndpoint``.
"""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from udpnet.config import CONFIG, _MULTICAST_BIND_POLICIES
from udpnet.errors import TuningWarning, UdpSetupError
from udpnet.logging_utils import METRICS, get_logger
from udpnet.multicast import join_group, select_interface
from udpnet.resolver import ResolvedAddress, Resolver, is_wildcard, resolve_ipv4
from udpnet.socket_setup import SocketFactory, bind_socket, create_socket
from udpnet.sockopts import SocketOptions, detect_socket_options
from udpnet.unicast import MODE_CONNECTED, MODE_UNCONNECTED, connect_peer

logger = get_logger("udpnet")


def _check_port(name: str, value: int) -> None:
    if not (0 <= value <= 65535):
        raise ValueError(f"{name} must be 0..65535, got {value}")


@dataclass(frozen=True)
class EndpointConfig:
    """Everything the setup sequence needs, resolved once by the caller."""

    bind_addr: str = ""
    bind_port: int = 0
    server_addr: str = ""
    server_port: int = 0
    ttl: int = 0
    miface_addr: Optional[str] = None
    default_ttl: int = field(default_factory=lambda: CONFIG["MULTICAST_TTL"])
    mtu: int = field(default_factory=lambda: CONFIG["MTU"])
    buffer_bytes: int = field(default_factory=lambda: CONFIG["SOCKET_BUFFER_BYTES"])
    reuse_port: bool = field(default_factory=lambda: CONFIG["ENABLE_REUSE_PORT"])
    multicast_bind: str = field(default_factory=lambda: CONFIG["MULTICAST_BIND"])

    def __post_init__(self) -> None:
        _check_port("bind_port", self.bind_port)
        _check_port("server_port", self.server_port)
        if not (0 <= self.ttl <= 255):
            raise ValueError(f"ttl must be 0..255, got {self.ttl}")
        if not (0 <= self.default_ttl <= 255):
            raise ValueError(f"default_ttl must be 0..255, got {self.default_ttl}")
        if self.mtu <= 0:
            raise ValueError(f"mtu must be positive, got {self.mtu}")
        if self.buffer_bytes < 0:
            raise ValueError(f"buffer_bytes must be >= 0, got {self.buffer_bytes}")
        if self.multicast_bind not in _MULTICAST_BIND_POLICIES:
            raise ValueError(f"unknown multicast bind policy: {self.multicast_bind!r}")

    @classmethod
    def from_config(cls, cfg: Optional[Mapping[str, Any]] = None, **fields: Any) -> "EndpointConfig":
        """Fill the config-store backed fields from ``cfg`` (defaults to CONFIG)."""
        cfg = CONFIG if cfg is None else cfg
        fields.setdefault("miface_addr", cfg.get("MIFACE_ADDR"))
        fields.setdefault("default_ttl", cfg["MULTICAST_TTL"])
        fields.setdefault("mtu", cfg["MTU"])
        fields.setdefault("buffer_bytes", cfg["SOCKET_BUFFER_BYTES"])
        fields.setdefault("reuse_port", cfg["ENABLE_REUSE_PORT"])
        fields.setdefault("multicast_bind", cfg["MULTICAST_BIND"])
        return cls(**fields)

    @property
    def is_wildcard_bind(self) -> bool:
        return is_wildcard(self.bind_addr)


class SessionVars:
    """Session-scoped variables shared by the endpoints of one session."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._vars: Dict[str, Any] = dict(initial or {})

    def get(self, name: str, default: Any = None) -> Any:
        return self._vars.get(name, default)

    def get_or_create(self, name: str, default: Any) -> Any:
        """Existing value, or initialize ``name`` to ``default`` and read it back."""
        if name not in self._vars:
            self._vars[name] = default
        return self._vars[name]


@dataclass
class UdpEndpoint:
    """A ready datagram socket; the caller owns ``sock`` from here on."""

    sock: socket.socket
    mtu: int
    mode: str
    local: ResolvedAddress
    peer: Optional[ResolvedAddress] = None
    warnings: List[TuningWarning] = field(default_factory=list)

    def fileno(self) -> int:
        return self.sock.fileno()

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "UdpEndpoint":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "local": str(self.local),
            "peer": str(self.peer) if self.peer else None,
            "mtu": self.mtu,
            "warnings": [w.to_dict() for w in self.warnings],
        }


def open_udp(
    cfg: EndpointConfig,
    *,
    session: Optional[SessionVars] = None,
    options: Optional[SocketOptions] = None,
    socket_factory: SocketFactory = socket.socket,
    resolver: Resolver = resolve_ipv4,
) -> UdpEndpoint:
    """Open a UDP/IPv4 endpoint described by ``cfg``.

    Only ``cfg`` is consulted; CONFIG was already folded into it when it was
    built. Raises a UdpSetupError subclass on any fatal step; the socket is
    closed first, so no descriptor outlives a failure.
    """
    if options is None:
        options = detect_socket_options(multicast_bind=cfg.multicast_bind, reuse_port=cfg.reuse_port)
    if session is None:
        session = SessionVars()

    try:
        local = resolver(cfg.bind_addr, cfg.bind_port)
    except UdpSetupError as exc:
        METRICS.counter("udp_setup_failed").inc()
        logger.error("udp setup failed", extra=exc.to_dict())
        raise

    sock = None
    try:
        sock, warnings = create_socket(options, socket_factory=socket_factory, buffer_bytes=cfg.buffer_bytes)
        warnings.extend(bind_socket(sock, local, wildcard=cfg.is_wildcard_bind, options=options))

        peer = None
        if local.is_multicast:
            interface = select_interface(cfg.miface_addr)
            mode = join_group(sock, local.host, cfg.server_addr, interface, options)
        else:
            peer = connect_peer(
                sock,
                cfg.server_addr,
                cfg.server_port,
                resolver=resolver,
                options=options,
                ttl=cfg.ttl,
                default_ttl=cfg.default_ttl,
                miface_addr=cfg.miface_addr,
            )
            mode = MODE_CONNECTED if peer is not None else MODE_UNCONNECTED
    except Exception as exc:
        if sock is not None:
            sock.close()
        METRICS.counter("udp_setup_failed").inc()
        if isinstance(exc, UdpSetupError):
            logger.error("udp setup failed", extra=exc.to_dict())
        raise

    mtu = session.get_or_create("mtu", cfg.mtu)
    METRICS.counter("udp_setup_ok").inc()
    logger.info(
        "udp endpoint ready",
        extra={
            "mode": mode,
            "local": str(local),
            "peer": str(peer) if peer else None,
            "mtu": mtu,
            "warnings": len(warnings),
        },
    )
    return UdpEndpoint(sock=sock, mtu=mtu, mode=mode, local=local, peer=peer, warnings=warnings)
