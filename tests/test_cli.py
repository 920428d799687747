"""Tests for the server and proxy command-line entry points."""

import socket
from pathlib import Path

import pytest

import proxy
import server


def _used_port() -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    return sock


@pytest.mark.parametrize("argv", [[], ["127.0.0.1"]])
def test_server_missing_arguments_print_usage_and_exit(
    argv: list[str],
    capsys: pytest.CaptureFixture[str],
) -> None:
    with pytest.raises(SystemExit) as exc_info:
        server.main(argv)

    assert exc_info.value.code != 0
    assert "usage:" in capsys.readouterr().err


def test_proxy_missing_arguments_print_usage_and_exit(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        proxy.main([])

    assert exc_info.value.code != 0
    assert "usage:" in capsys.readouterr().err


def test_server_parses_positional_arguments(tmp_path: Path) -> None:
    args = server._parse_args(["0.0.0.0", "8080", "3", "--root", str(tmp_path)])

    assert args.host == "0.0.0.0"
    assert args.port == 8080
    assert args.max_connections == 3
    assert args.root == str(tmp_path)


def test_server_defaults_max_connections() -> None:
    args = server._parse_args(["127.0.0.1", "8080"])

    assert args.max_connections == 10
    assert args.log_format == "plain"


@pytest.mark.parametrize("max_connections", ["0", "11"])
def test_server_out_of_range_bound_exits_with_error(tmp_path: Path, max_connections: str) -> None:
    root = tmp_path / "fs"

    status = server.main(["127.0.0.1", "0", max_connections, "--root", str(root)])

    assert status == 1
    assert not root.exists()


def test_proxy_invalid_origin_exits_with_error() -> None:
    assert proxy.main(["127.0.0.1", "0", "--origin", "ftp://example.com"]) == 1


def test_proxy_out_of_range_bound_exits_with_error() -> None:
    assert proxy.main(["127.0.0.1", "0", "11"]) == 1


def test_server_binding_error_exits_with_error(tmp_path: Path) -> None:
    with _used_port() as busy:
        port = busy.getsockname()[1]

        status = server.main(["127.0.0.1", str(port), "--root", str(tmp_path)])

    assert status == 1
