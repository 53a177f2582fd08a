"""
CLI probe for UDP/IPv4 endpoint setup.

Opens one endpoint with the given bind/server parameters, reports the outcome
as JSON and closes it again:

    python -m udpnet.open_endpoint --bind 239.255.12.42 --port 5004 --server 10.0.0.5
    python -m udpnet.open_endpoint --port 1234 --server 192.168.1.10 --server-port 5000

Exit codes: 0 ready, 1 setup failure, 2 invalid arguments or configuration.
"""

import argparse
import json
import logging
import signal
import sys
import time
from pathlib import Path
from typing import Optional

from udpnet.config import CONFIG
from udpnet.endpoint import EndpointConfig, SessionVars, open_udp
from udpnet.errors import UdpSetupError
from udpnet.logging_utils import METRICS, configure_file_logger, get_logger
from udpnet.sockopts import detect_socket_options

logger = get_logger("udpnet")


def signal_handler(signum, frame):
    """Handle interrupt signals gracefully."""
    print("\nReceived interrupt signal. Shutting down...")
    sys.exit(0)


def write_json_report(json_path: Optional[str], payload: dict, *, quiet: bool = False) -> None:
    """Persist the setup report to JSON if a path is provided."""

    if not json_path:
        return

    try:
        path = Path(json_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        if not quiet:
            print(f"Wrote JSON report to {path}")
    except OSError as exc:
        print(f"Warning: Failed to write JSON output to {json_path}: {exc}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Open a UDP/IPv4 endpoint and report the outcome")
    parser.add_argument("--bind", default="",
                        help="Local address to bind; empty for the wildcard address, class D to join a group")
    parser.add_argument("--port", type=int, default=0,
                        help="Local port (default: 0, ephemeral)")
    parser.add_argument("--server", default="",
                        help="Remote peer to connect to, or multicast source filter for group binds")
    parser.add_argument("--server-port", type=int, default=0,
                        help="Remote port (default: 0)")
    parser.add_argument("--ttl", type=int, default=0,
                        help="Multicast TTL override (default: 0, use MULTICAST_TTL)")
    parser.add_argument("--miface",
                        help="Multicast interface address or name (default: CONFIG MIFACE_ADDR)")
    parser.add_argument("--mtu", type=int,
                        help="Session MTU default (default: CONFIG MTU)")
    parser.add_argument("--multicast-bind", choices=("auto", "direct", "wildcard"),
                        default=CONFIG["MULTICAST_BIND"],
                        help="Multicast bind policy (default: CONFIG MULTICAST_BIND)")
    parser.add_argument("--hold", type=float, default=0.0,
                        help="Keep the endpoint open for N seconds before closing")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress informational prints (warnings/errors still shown)")
    parser.add_argument("--json-out",
                        help="Optional path to write the setup report JSON")
    parser.add_argument("--log-file",
                        help="Optional path to mirror JSON log lines into")
    return parser


def main(argv=None) -> int:
    """CLI entrypoint; returns the process exit code."""
    signal.signal(signal.SIGINT, signal_handler)
    if hasattr(signal, 'SIGTERM'):
        signal.signal(signal.SIGTERM, signal_handler)

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.quiet:
        logger.setLevel(logging.WARNING)
    if args.log_file:
        configure_file_logger(args.log_file)

    overrides = {}
    if args.miface is not None:
        overrides["miface_addr"] = args.miface
    if args.mtu is not None:
        overrides["mtu"] = args.mtu

    try:
        cfg = EndpointConfig.from_config(
            CONFIG,
            bind_addr=args.bind,
            bind_port=args.port,
            server_addr=args.server,
            server_port=args.server_port,
            ttl=args.ttl,
            multicast_bind=args.multicast_bind,
            **overrides,
        )
        options = detect_socket_options(multicast_bind=cfg.multicast_bind, reuse_port=cfg.reuse_port)
    except ValueError as exc:
        print(f"Error: {exc}")
        return 2

    payload = {
        "ts_start_ns": time.time_ns(),
        "platform": options.name,
        "request": {
            "bind": args.bind,
            "port": args.port,
            "server": args.server,
            "server_port": args.server_port,
            "ttl": args.ttl,
        },
    }

    try:
        endpoint = open_udp(cfg, session=SessionVars(), options=options)
    except UdpSetupError as exc:
        print(f"Error: {exc}")
        payload["status"] = "failed"
        payload["error"] = exc.to_dict()
        payload["metrics"] = METRICS.snapshot()
        write_json_report(args.json_out, payload, quiet=args.quiet)
        return 1

    with endpoint:
        payload["status"] = "ready"
        payload["endpoint"] = endpoint.to_dict()
        if not args.quiet:
            print(f"Endpoint ready: {endpoint.mode} on {endpoint.local}"
                  + (f" -> {endpoint.peer}" if endpoint.peer else "")
                  + f" (mtu {endpoint.mtu})")
            for warning in endpoint.warnings:
                print(f"Warning: {warning.option}: {warning.detail}")
        if args.hold > 0:
            time.sleep(args.hold)

    payload["metrics"] = METRICS.snapshot()
    payload["ts_stop_ns"] = time.time_ns()
    write_json_report(args.json_out, payload, quiet=args.quiet)
    return 0


if __name__ == "__main__":
    sys.exit(main())
