"""HTTP/1.0 server entry point and connection lifecycle orchestration."""

from __future__ import annotations

import argparse
import itertools
import json
import logging
import os
import socket
import sys
import threading
import time

from admission import AdmissionController, AdmissionToken, ConfigurationError
from config import (
    ACCEPT_POLL_SECS,
    HOST,
    LOG_FORMAT,
    MAX_CONNECTIONS,
    PORT,
    STORAGE_ROOT,
)
from handlers.file_handlers import build_file_router
from metrics import MetricsRegistry
from request import HTTPRequest, HTTPRequestParseError
from response import HTTPResponse, build_response
from router import ConnectionAborted, Router
from socket_handler import (
    MalformedRequestError,
    read_http_request_message,
    write_http_response_message,
)
from storage import FileStorage

logger = logging.getLogger(__name__)

LOG_LINE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class HTTPServer:
    """Listening endpoint that admits at most ``max_connections`` at once.

    Each accepted connection acquires an admission token before it is handed
    to its own thread, so the accept loop itself blocks while the pool is
    full. One request is read per connection, routed by method, answered,
    and the connection is closed. The token is released when the connection
    thread finishes, whatever the outcome.
    """

    def __init__(
        self,
        host: str = HOST,
        port: int = PORT,
        max_connections: int = MAX_CONNECTIONS,
        router: Router | None = None,
        *,
        storage_root: str | os.PathLike[str] = STORAGE_ROOT,
        name: str = "server",
        log_format: str = LOG_FORMAT,
    ) -> None:
        self.admission = AdmissionController(max_connections)
        self.host = host
        self.port = port
        self.name = name
        self.log_format = log_format
        if router is None:
            storage = FileStorage(storage_root)
            storage.ensure_root()
            router = build_file_router(storage)
        self.router = router

        self._server_socket: socket.socket | None = None
        self._running = False
        self._connection_ids = itertools.count(1)
        self.metrics = MetricsRegistry()

    @property
    def max_connections(self) -> int:
        return self.admission.capacity

    def listen(self) -> None:
        """Bind and open the listening socket."""
        server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((self.host, self.port))
            server_socket.listen(128)
        except OSError as exc:
            server_socket.close()
            logger.error("Error starting %s on %s:%s: %s", self.name, self.host, self.port, exc)
            raise

        server_socket.settimeout(ACCEPT_POLL_SECS)
        self._server_socket = server_socket
        self.port = server_socket.getsockname()[1]
        self._running = True
        logger.info("Listening for connections on %s:%s", self.host, self.port)

    def serve(self) -> None:
        """Run the accept loop until ``close`` is called."""
        server_socket = self._server_socket
        if server_socket is None:
            raise RuntimeError("listen() must be called before serve()")

        while self._running:
            try:
                client_socket, address = server_socket.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if not self._running or server_socket.fileno() == -1:
                    break
                self.metrics.record_accept_error()
                logger.warning("Error accepting connection: %s", exc)
                continue

            token = self._admit()
            if token is None:
                client_socket.close()
                break
            self._dispatch_connection(client_socket, address, token)

        logger.info("Stopped accepting connections on %s:%s", self.host, self.port)

    def start(self) -> None:
        """Listen and serve in the calling thread."""
        self.listen()
        self.serve()

    def close(self) -> None:
        self._running = False
        if self._server_socket is not None:
            self._server_socket.close()
            self._server_socket = None

    def _admit(self) -> AdmissionToken | None:
        while self._running:
            token = self.admission.acquire(timeout=ACCEPT_POLL_SECS)
            if token is not None:
                return token
        return None

    def _dispatch_connection(
        self,
        client_socket: socket.socket,
        address: tuple[str, int],
        token: AdmissionToken,
    ) -> None:
        connection_id = next(self._connection_ids)
        worker = threading.Thread(
            target=self._handle_client,
            args=(client_socket, address, token),
            name=f"{self.name}-conn-{connection_id}",
            daemon=True,
        )
        try:
            worker.start()
        except RuntimeError:
            logger.exception("Could not start connection thread for %s", address[0])
            client_socket.close()
            token.release()

    def _handle_client(
        self,
        client_socket: socket.socket,
        address: tuple[str, int],
        token: AdmissionToken,
    ) -> None:
        with token:
            self.metrics.connection_opened()
            try:
                with client_socket:
                    self._serve_connection(client_socket, address)
            finally:
                self.metrics.connection_closed()

    def _serve_connection(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        started_at = time.perf_counter()
        try:
            raw_request = read_http_request_message(client_socket)
        except MalformedRequestError as exc:
            self.metrics.record_read_error(exc.__class__.__name__)
            logger.warning("Error reading request from %s: %s", address[0], exc)
            return
        except OSError as exc:
            self.metrics.record_read_error(exc.__class__.__name__)
            logger.warning("Error reading request from %s: %s", address[0], exc)
            return

        if not raw_request:
            logger.info("Client %s closed the connection", address[0])
            return

        try:
            request = HTTPRequest.from_bytes(raw_request)
        except HTTPRequestParseError as exc:
            self.metrics.record_read_error(exc.__class__.__name__)
            logger.warning("Error parsing request from %s: %s", address[0], exc)
            return

        try:
            response = self._dispatch(request)
        except ConnectionAborted as exc:
            self.metrics.record_aborted_connection()
            logger.error(
                "Dropping connection from %s for %s %s: %s",
                address[0],
                request.method,
                request.raw_target,
                exc,
            )
            return

        try:
            bytes_sent = write_http_response_message(client_socket, response)
        except OSError as exc:
            self.metrics.record_write_error(exc.__class__.__name__)
            logger.warning("Error writing response to %s: %s", address[0], exc)
            return

        self._record_and_log(
            address=address,
            method=request.method,
            path=request.path,
            response=response,
            payload_size=bytes_sent,
            bytes_in=len(raw_request),
            started_at=started_at,
        )

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        handler = self.router.resolve(request.method)
        if handler is None:
            logger.warning(
                "Method %s is not implemented by %s (routed: %s)",
                request.method,
                self.name,
                ", ".join(self.router.methods),
            )
            return build_response(501)

        try:
            return handler(request)
        except ConnectionAborted:
            raise
        except Exception:
            logger.exception("Unhandled error in %s handler", request.method)
            return build_response(500)

    def _record_and_log(
        self,
        *,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        payload_size: int,
        bytes_in: int,
        started_at: float,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        self.metrics.record_request(
            status_code=response.status_code,
            duration_ms=duration_ms,
            bytes_sent=payload_size,
        )
        event = {
            "client": address[0],
            "method": method,
            "path": path,
            "status": response.status_code,
            "deployment": self.name,
            "bytes_in": bytes_in,
            "bytes_out": payload_size,
            "latency_ms": round(duration_ms, 3),
        }
        if self.log_format == "json":
            logger.info(json.dumps(event, sort_keys=True))
            return

        logger.info(
            "client=%s method=%s path=%s status=%s deployment=%s bytes_in=%s bytes_out=%s duration_ms=%.2f",
            event["client"],
            event["method"],
            event["path"],
            event["status"],
            event["deployment"],
            event["bytes_in"],
            event["bytes_out"],
            duration_ms,
        )


def run_until_interrupted(server: HTTPServer) -> int:
    """Serve until Ctrl-C; return a process exit status."""
    try:
        server.listen()
    except OSError:
        return 1
    try:
        server.serve()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        server.close()
    return 0


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the HTTP/1.0 file server")
    parser.add_argument("host")
    parser.add_argument("port", type=int)
    parser.add_argument("max_connections", type=int, nargs="?", default=MAX_CONNECTIONS)
    parser.add_argument("--root", default=STORAGE_ROOT, help="storage root directory")
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format=f"[SERVER] {LOG_LINE_FORMAT}")
    try:
        server = HTTPServer(
            host=args.host,
            port=args.port,
            max_connections=args.max_connections,
            storage_root=args.root,
            log_format=args.log_format,
        )
    except ConfigurationError as exc:
        logger.error("failed to start server with error: %s", exc)
        return 1
    return run_until_interrupted(server)


if __name__ == "__main__":
    sys.exit(main())
