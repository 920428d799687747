"""Low-level socket read/write utilities."""

from __future__ import annotations

import socket

from config import BODY_READ_CHUNK_SIZE, BUFFER_SIZE, WRITE_CHUNK_SIZE
from response import HTTPResponse, prepare_response


class HTTPReadError(Exception):
    """Raised when a client request cannot be read from the socket."""


class MalformedRequestError(HTTPReadError):
    """Raised when socket bytes do not form a complete HTTP request."""


def _extract_content_length(header_bytes: bytes) -> int:
    headers = header_bytes.decode("iso-8859-1").split("\r\n")
    for line in headers[1:]:
        if not line:
            continue
        if ":" not in line:
            raise MalformedRequestError("Malformed header while reading request")
        name, value = line.split(":", 1)
        if name.strip().lower() == "content-length":
            try:
                parsed_length = int(value.strip())
            except ValueError as exc:
                raise MalformedRequestError("Invalid Content-Length header") from exc
            if parsed_length < 0:
                raise MalformedRequestError("Negative Content-Length header")
            return parsed_length
    return 0


def read_http_request_message(client_socket: socket.socket) -> bytes:
    """Read exactly one request; return b"" if the peer closed before sending anything.

    The header terminator is searched only in newly received bytes and
    Content-Length is parsed once, so reading is linear in request size.
    """
    buffer = bytearray()
    header_end_index = -1

    while header_end_index == -1:
        chunk = client_socket.recv(BUFFER_SIZE)
        if not chunk:
            if not buffer:
                return b""
            raise MalformedRequestError("Connection closed before headers completed")
        search_from = max(0, len(buffer) - 3)
        buffer.extend(chunk)
        header_end_index = buffer.find(b"\r\n\r\n", search_from)

    expected_body_length = _extract_content_length(bytes(buffer[:header_end_index]))
    request_length = header_end_index + 4 + expected_body_length

    while len(buffer) < request_length:
        chunk = client_socket.recv(min(request_length - len(buffer), BODY_READ_CHUNK_SIZE))
        if not chunk:
            raise MalformedRequestError("Connection closed before request body completed")
        buffer.extend(chunk)

    del buffer[request_length:]
    return bytes(buffer)


def read_until_close(sock: socket.socket) -> bytes:
    buffer = bytearray()
    while True:
        chunk = sock.recv(BUFFER_SIZE)
        if not chunk:
            return bytes(buffer)
        buffer.extend(chunk)


def write_http_response_message(
    client_socket: socket.socket,
    response: HTTPResponse,
    *,
    write_chunk_size: int = WRITE_CHUNK_SIZE,
) -> int:
    """Write an HTTPResponse and return the number of bytes sent."""
    prepared = prepare_response(response)
    bytes_sent = 0
    client_socket.sendall(prepared.head)
    bytes_sent += len(prepared.head)

    body = memoryview(prepared.body)
    for offset in range(0, len(body), write_chunk_size):
        chunk = body[offset : offset + write_chunk_size]
        client_socket.sendall(chunk)
        bytes_sent += len(chunk)
    return bytes_sent
