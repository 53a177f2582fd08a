"""
Error taxonomy for UDP endpoint setup.

Every ``UdpSetupError`` is fatal: the setup sequence closes its socket before
raising one. ``TuningWarning`` records best-effort option failures that do not
abort setup; they are logged and returned with the endpoint, never raised.
"""

from dataclasses import dataclass
from typing import Optional


class UdpSetupError(Exception):
    """Setup aborted; ``step`` names the stage, ``cause`` holds the OS error if any."""

    step = "setup"

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    @property
    def errno(self) -> Optional[int]:
        return getattr(self.cause, "errno", None)

    @property
    def strerror(self) -> Optional[str]:
        if isinstance(self.cause, OSError) and self.cause.strerror:
            return self.cause.strerror
        return str(self.cause) if self.cause is not None else None

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "error": type(self).__name__,
            "detail": str(self),
            "errno": self.errno,
            "strerror": self.strerror,
        }


class ResolutionError(UdpSetupError):
    """No IPv4 address could be resolved for a host/port pair."""
    step = "resolve"


class SocketCreationError(UdpSetupError):
    """The OS refused to allocate a datagram socket."""
    step = "socket"


class BindError(UdpSetupError):
    """bind() failed (address in use, not available, permission denied...)."""
    step = "bind"


class MulticastJoinError(UdpSetupError):
    """Group membership (plain or source-filtered) could not be established."""
    step = "join"


class ConnectError(UdpSetupError):
    """connect() to the remote peer failed."""
    step = "connect"


class MulticastOptionError(UdpSetupError):
    """A required send-side multicast option (TTL, interface) could not be applied."""
    step = "multicast-option"


@dataclass(frozen=True)
class TuningWarning:
    """Non-fatal socket option failure."""

    option: str
    detail: str

    def to_dict(self) -> dict:
        return {"option": self.option, "detail": self.detail}
