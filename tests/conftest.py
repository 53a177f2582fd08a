"""Test doubles shared by the endpoint setup tests."""

import errno
import socket

import pytest

from udpnet.errors import ResolutionError
from udpnet.resolver import ResolvedAddress


class FakeSocket:
    """Records socket calls; failures are injected per call kind."""

    def __init__(self, setsockopt_fail=None, bind_error=None, connect_error=None):
        self.calls = []
        self.setsockopt_fail = setsockopt_fail or (lambda level, opt, value: False)
        self.bind_error = bind_error
        self.connect_error = connect_error
        self.closed = False

    def setsockopt(self, level, opt, value):
        self.calls.append(("setsockopt", level, opt, value))
        if self.setsockopt_fail(level, opt, value):
            raise OSError(errno.EINVAL, "Invalid argument")

    def bind(self, addr):
        self.calls.append(("bind", addr))
        if self.bind_error is not None:
            raise self.bind_error

    def connect(self, addr):
        self.calls.append(("connect", addr))
        if self.connect_error is not None:
            raise self.connect_error

    def fileno(self):
        return -1 if self.closed else 1000

    def close(self):
        self.closed = True

    # --- helpers ---------------------------------------------------------

    def options(self, level=None, opt=None):
        """(level, opt, value) tuples of every setsockopt call, optionally filtered."""
        return [
            call[1:]
            for call in self.calls
            if call[0] == "setsockopt"
            and (level is None or call[1] == level)
            and (opt is None or call[2] == opt)
        ]

    def called(self, kind):
        return [call for call in self.calls if call[0] == kind]


class FakeSocketFactory:
    """Callable stand-in for socket.socket that hands out FakeSocket instances."""

    def __init__(self, **socket_kwargs):
        self.socket_kwargs = socket_kwargs
        self.created = []
        self.error = None

    def __call__(self, family=socket.AF_INET, type=socket.SOCK_DGRAM, proto=0):
        if self.error is not None:
            raise self.error
        assert family == socket.AF_INET
        assert type == socket.SOCK_DGRAM
        sock = FakeSocket(**self.socket_kwargs)
        self.created.append(sock)
        return sock

    @property
    def last(self):
        return self.created[-1]


def static_resolver(table):
    """Resolver backed by a dict of host -> address (missing hosts raise ResolutionError)."""
    def resolve(host, port):
        if host not in table:
            raise ResolutionError(f"cannot resolve {host}:{port}")
        return ResolvedAddress(table[host], port)

    return resolve


def alloc_udp_port() -> int:
    """Reserve an available loopback UDP port for tests."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def fake_factory():
    return FakeSocketFactory()
