"""HTTP/1.0 response model and serializer."""

from dataclasses import dataclass, field
from email.utils import formatdate

from config import SERVER_NAME

HTTP_VERSION = "HTTP/1.0"

REASON_PHRASES: dict[int, str] = {
    200: "OK",
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    500: "Internal Server Error",
    501: "Not Implemented",
}


@dataclass(slots=True)
class PreparedResponse:
    head: bytes
    body: bytes


@dataclass(slots=True)
class HTTPResponse:
    status_code: int
    reason_phrase: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | str = b""
    raw: bytes | None = None

    def __post_init__(self) -> None:
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")
        if self.raw is not None and self.body:
            raise ValueError("Response cannot set both body and raw")

    @property
    def reason(self) -> str:
        return self.reason_phrase or REASON_PHRASES.get(self.status_code, "Unknown")

    @classmethod
    def relayed(cls, raw: bytes) -> "HTTPResponse":
        """Wrap an upstream response that must be written back byte for byte."""
        status_line = raw.split(b"\r\n", 1)[0].decode("iso-8859-1")
        parts = status_line.split(" ", 2)
        if len(parts) < 2 or not parts[0].startswith("HTTP/") or not parts[1].isdigit():
            raise ValueError(f"Invalid upstream status line: {status_line!r}")
        return cls(
            status_code=int(parts[1]),
            reason_phrase=parts[2] if len(parts) == 3 else None,
            raw=raw,
        )


def build_response(
    status_code: int,
    body: bytes | str | None = None,
    *,
    content_type: str = "text/plain",
) -> HTTPResponse:
    """Build a response whose body defaults to ``"<code> <reason>"``."""
    reason = REASON_PHRASES.get(status_code, "Unknown")
    if body is None:
        body = f"{status_code} {reason}"
    return HTTPResponse(
        status_code=status_code,
        reason_phrase=reason,
        headers={"Content-Type": content_type},
        body=body,
    )


def prepare_response(response: HTTPResponse) -> PreparedResponse:
    if response.raw is not None:
        return PreparedResponse(head=response.raw, body=b"")

    normalized_headers = dict(response.headers)
    normalized_headers.setdefault(
        "Date",
        formatdate(timeval=None, localtime=False, usegmt=True),
    )
    normalized_headers.setdefault("Server", SERVER_NAME)
    normalized_headers.setdefault("Content-Type", "text/plain")
    normalized_headers["Content-Length"] = str(len(response.body))
    normalized_headers.setdefault("Connection", "close")

    header_lines = [f"{HTTP_VERSION} {response.status_code} {response.reason}"]
    header_lines.extend(f"{key}: {value}" for key, value in normalized_headers.items())
    head = "\r\n".join(header_lines).encode("iso-8859-1") + b"\r\n\r\n"
    return PreparedResponse(head=head, body=response.body)
