"""UDP/IPv4 endpoint setup: socket tuning, multicast joins and connected peers."""

from udpnet.endpoint import EndpointConfig, SessionVars, UdpEndpoint, open_udp
from udpnet.errors import (
    BindError,
    ConnectError,
    MulticastJoinError,
    MulticastOptionError,
    ResolutionError,
    SocketCreationError,
    TuningWarning,
    UdpSetupError,
)

__all__ = [
    "BindError",
    "ConnectError",
    "EndpointConfig",
    "MulticastJoinError",
    "MulticastOptionError",
    "ResolutionError",
    "SessionVars",
    "SocketCreationError",
    "TuningWarning",
    "UdpEndpoint",
    "UdpSetupError",
    "open_udp",
]
