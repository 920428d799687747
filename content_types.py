"""Extension whitelist mapping request paths to content types."""

from pathlib import PurePosixPath

CONTENT_TYPES: dict[str, str] = {
    ".html": "text/html",
    ".css": "text/css",
    ".gif": "image/gif",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".txt": "text/plain",
    "": "text/plain",
}


class UnsupportedMediaTypeError(ValueError):
    """Raised when a path's extension is not in the whitelist."""

    def __init__(self, extension: str) -> None:
        super().__init__(f"unsupported content type: {extension}")
        self.extension = extension


def get_extension(request_path: str) -> str:
    return PurePosixPath(request_path).suffix.lower()


def classify(request_path: str) -> str:
    """Return the content type for ``request_path`` or raise UnsupportedMediaTypeError."""
    extension = get_extension(request_path)
    try:
        return CONTENT_TYPES[extension]
    except KeyError:
        raise UnsupportedMediaTypeError(extension) from None