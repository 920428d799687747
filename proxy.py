"""GET-only forwarding proxy relaying origin responses byte for byte."""

from __future__ import annotations

import argparse
import logging
import socket
import sys
from urllib.parse import urlsplit

from admission import ConfigurationError
from config import LOG_FORMAT, MAX_CONNECTIONS, ORIGIN_TIMEOUT_SECS, PROXY_ORIGIN
from request import HTTPRequest
from response import HTTPResponse, build_response
from router import ConnectionAborted, Router
from server import LOG_LINE_FORMAT, HTTPServer, run_until_interrupted
from socket_handler import read_until_close

logger = logging.getLogger(__name__)

HOP_BY_HOP_HEADERS = {
    "connection",
    "host",
    "keep-alive",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
}


class ForwardingError(ConnectionAborted):
    """Raised when the origin cannot be reached or sends nothing usable."""


class ProxyForwarder:
    """Relay GET requests to an origin.

    The origin comes from an absolute-form request target
    (``GET http://host:port/path HTTP/1.0``) when the client sends one,
    otherwise from the fixed ``origin`` given at construction.
    """

    def __init__(self, origin: str | None = None, *, timeout: float = ORIGIN_TIMEOUT_SECS) -> None:
        self.timeout = timeout
        self._origin: tuple[str, int, str] | None = None
        if origin:
            parts = urlsplit(origin)
            try:
                port = parts.port or 80
            except ValueError as exc:
                raise ConfigurationError(f"invalid origin port in {origin!r}") from exc
            if parts.scheme != "http" or not parts.hostname:
                raise ConfigurationError(f"origin must be an http:// URL, got {origin!r}")
            self._origin = (parts.hostname, port, parts.path.rstrip("/"))

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        if request.method != "GET":
            return build_response(501)

        destination = self.resolve_destination(request)
        if destination is None:
            logger.warning("No origin for request target %s", request.raw_target)
            return build_response(400)

        host, port, target = destination
        raw = self.fetch(request, host, port, target)
        try:
            return HTTPResponse.relayed(raw)
        except ValueError as exc:
            raise ForwardingError(f"invalid response from {host}:{port}: {exc}") from exc

    def resolve_destination(self, request: HTTPRequest) -> tuple[str, int, str] | None:
        if request.is_absolute_target:
            parts = urlsplit(request.raw_target)
            try:
                port = parts.port or 80
            except ValueError:
                return None
            if parts.scheme != "http" or not parts.hostname:
                return None
            target = parts.path or "/"
            if parts.query:
                target = f"{target}?{parts.query}"
            return parts.hostname, port, target

        if self._origin is None:
            return None
        host, port, base_path = self._origin
        return host, port, f"{base_path}{request.raw_target}"

    def fetch(self, request: HTTPRequest, host: str, port: int, target: str) -> bytes:
        """Send one GET to the origin and return its full response."""
        payload = _build_outbound_request(request, host, port, target)
        try:
            with socket.create_connection((host, port), timeout=self.timeout) as origin:
                origin.sendall(payload)
                raw = read_until_close(origin)
        except OSError as exc:
            raise ForwardingError(f"failed to reach origin {host}:{port}: {exc}") from exc

        if not raw:
            raise ForwardingError(f"origin {host}:{port} closed without a response")
        logger.debug("Relaying %s bytes from %s:%s%s", len(raw), host, port, target)
        return raw


def _build_outbound_request(request: HTTPRequest, host: str, port: int, target: str) -> bytes:
    host_value = host if port == 80 else f"{host}:{port}"
    header_lines = [f"GET {target} HTTP/1.0", f"Host: {host_value}"]
    header_lines.extend(
        f"{name}: {value}"
        for name, value in request.headers.items()
        if name not in HOP_BY_HOP_HEADERS
    )
    header_lines.append("Connection: close")
    return "\r\n".join(header_lines).encode("iso-8859-1") + b"\r\n\r\n"


def build_proxy_router(forwarder: ProxyForwarder) -> Router:
    router = Router()
    router.add_route("GET", forwarder.handle)
    return router


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the HTTP/1.0 forwarding proxy")
    parser.add_argument("host")
    parser.add_argument("port", type=int)
    parser.add_argument("max_connections", type=int, nargs="?", default=MAX_CONNECTIONS)
    parser.add_argument("--origin", default=PROXY_ORIGIN, help="fixed origin, e.g. http://127.0.0.1:8080")
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format=f"[PROXY] {LOG_LINE_FORMAT}")
    try:
        forwarder = ProxyForwarder(args.origin)
        server = HTTPServer(
            host=args.host,
            port=args.port,
            max_connections=args.max_connections,
            router=build_proxy_router(forwarder),
            name="proxy",
            log_format=args.log_format,
        )
    except ConfigurationError as exc:
        logger.error("failed to start proxy with error: %s", exc)
        return 1
    return run_until_interrupted(server)


if __name__ == "__main__":
    sys.exit(main())
