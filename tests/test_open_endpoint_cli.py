"""Tests for the open_endpoint command line probe."""

import json
import signal

import pytest

from udpnet import open_endpoint as cli
from udpnet.logging_utils import get_logger

from conftest import alloc_udp_port


@pytest.fixture(autouse=True)
def _restore_signals():
    saved = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
    yield
    for sig, handler in saved.items():
        signal.signal(sig, handler)


@pytest.fixture(autouse=True)
def _restore_logger():
    logger = get_logger("udpnet")
    level = logger.level
    handlers = list(logger.handlers)
    yield
    logger.setLevel(level)
    for handler in logger.handlers[:]:
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()


def test_ready_endpoint_report(tmp_path, capsys):
    report = tmp_path / "out" / "report.json"
    rc = cli.main([
        "--bind", "127.0.0.1",
        "--server", "127.0.0.1",
        "--server-port", str(alloc_udp_port()),
        "--mtu", "1316",
        "--json-out", str(report),
    ])
    assert rc == 0
    payload = json.loads(report.read_text(encoding="utf-8"))
    assert payload["status"] == "ready"
    assert payload["endpoint"]["mode"] == "connected"
    assert payload["endpoint"]["mtu"] == 1316
    assert payload["metrics"]["counters"]["udp_setup_ok"] >= 1
    assert "Endpoint ready: connected" in capsys.readouterr().out


def test_setup_failure_exit_code(tmp_path):
    report = tmp_path / "report.json"
    rc = cli.main(["--bind", "192.0.2.1", "--quiet", "--json-out", str(report)])
    assert rc == 1
    payload = json.loads(report.read_text(encoding="utf-8"))
    assert payload["status"] == "failed"
    assert payload["error"]["step"] == "bind"
    assert payload["error"]["error"] == "BindError"


def test_invalid_arguments_exit_code(capsys):
    assert cli.main(["--ttl", "999"]) == 2
    assert "ttl must be 0..255" in capsys.readouterr().out


def test_log_file_mirrors_json_lines(tmp_path):
    log_file = tmp_path / "logs" / "udpnet.log"
    rc = cli.main([
        "--bind", "127.0.0.1",
        "--server", "127.0.0.1",
        "--server-port", str(alloc_udp_port()),
        "--log-file", str(log_file),
    ])
    assert rc == 0
    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert any(line["msg"] == "udp endpoint ready" and line["mode"] == "connected" for line in lines)


def test_cli_module_does_not_shadow_setup_function():
    import importlib

    import udpnet
    from udpnet import endpoint

    importlib.import_module("udpnet.open_endpoint")
    assert udpnet.open_udp is endpoint.open_udp
    assert callable(udpnet.open_udp)
    assert cli.main is udpnet.open_endpoint.main
