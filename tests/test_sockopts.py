"""Tests for the per-platform socket option adapters."""

import errno
import socket
import struct

import pytest

from udpnet.sockopts import (
    DarwinSocketOptions,
    LinuxSocketOptions,
    SocketOptions,
    WindowsSocketOptions,
    detect_socket_options,
)

from conftest import FakeSocket

GROUP = "239.255.12.42"
SOURCE = "10.0.0.5"
IFACE = "192.168.1.20"


class TestDetection:

    @pytest.mark.parametrize("platform, cls", [
        ("linux", LinuxSocketOptions),
        ("darwin", DarwinSocketOptions),
        ("win32", WindowsSocketOptions),
        ("freebsd14", SocketOptions),
    ])
    def test_adapter_per_platform(self, platform, cls):
        assert type(detect_socket_options(platform)) is cls

    def test_windows_binds_wildcard_for_groups(self):
        assert detect_socket_options("win32").bind_multicast_directly is False
        assert detect_socket_options("linux").bind_multicast_directly is True

    def test_policy_override(self):
        assert detect_socket_options("win32", multicast_bind="direct").bind_multicast_directly is True
        assert detect_socket_options("linux", multicast_bind="wildcard").bind_multicast_directly is False
        # class attribute is left alone
        assert LinuxSocketOptions.bind_multicast_directly is True

    def test_unknown_policy(self):
        with pytest.raises(ValueError, match="multicast bind policy"):
            detect_socket_options("linux", multicast_bind="maybe")

    def test_reuse_port_can_be_disabled(self):
        assert detect_socket_options("linux", reuse_port=False).supports_reuse_port is False

    def test_known_platforms_support_ssm(self):
        for platform in ("linux", "darwin", "win32"):
            assert detect_socket_options(platform).supports_source_membership


class TestStructLayout:

    def test_ip_mreq(self):
        mreq = LinuxSocketOptions().mreq(GROUP, IFACE)
        assert mreq == socket.inet_aton(GROUP) + socket.inet_aton(IFACE)

    def test_linux_puts_interface_before_source(self):
        packed = LinuxSocketOptions().mreq_source(GROUP, SOURCE, IFACE)
        assert packed == socket.inet_aton(GROUP) + socket.inet_aton(IFACE) + socket.inet_aton(SOURCE)

    @pytest.mark.parametrize("cls", [DarwinSocketOptions, WindowsSocketOptions])
    def test_bsd_order_puts_source_before_interface(self, cls):
        packed = cls().mreq_source(GROUP, SOURCE, IFACE)
        assert packed == socket.inet_aton(GROUP) + socket.inet_aton(SOURCE) + socket.inet_aton(IFACE)


class TestOptionCalls:

    def test_ttl_forms(self):
        sock = FakeSocket()
        opts = LinuxSocketOptions()
        opts.set_multicast_ttl_byte(sock, 16)
        opts.set_multicast_ttl_int(sock, 16)
        assert sock.options(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL) == [
            (socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, struct.pack("B", 16)),
            (socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 16),
        ]

    def test_source_membership_uses_platform_option(self):
        sock = FakeSocket()
        opts = LinuxSocketOptions()
        opts.add_source_membership(sock, GROUP, SOURCE, "0.0.0.0")
        (level, opt, value), = sock.options()
        assert level == socket.IPPROTO_IP
        assert opt == LinuxSocketOptions.ip_add_source_membership
        assert value == opts.mreq_source(GROUP, SOURCE, "0.0.0.0")

    def test_source_membership_unavailable(self):
        opts = SocketOptions()
        opts.ip_add_source_membership = None
        assert not opts.supports_source_membership
        sock = FakeSocket()
        with pytest.raises(OSError) as excinfo:
            opts.add_source_membership(sock, GROUP, SOURCE, "0.0.0.0")
        assert excinfo.value.errno == errno.ENOPROTOOPT
        assert sock.options() == []

    def test_multicast_if(self):
        sock = FakeSocket()
        LinuxSocketOptions().set_multicast_if(sock, IFACE)
        assert sock.options() == [(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(IFACE))]
