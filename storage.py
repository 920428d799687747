"""File-system storage for path-addressed byte blobs under a root directory."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from urllib.parse import unquote

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base class for storage failures."""


class StorageNotFoundError(StorageError):
    """Raised when no file exists at the requested path."""


class StorageFailureError(StorageError):
    """Raised for any I/O failure other than not-found."""


class PathOutsideRootError(StorageError):
    """Raised when a request path resolves outside the storage root."""


class FileStorage:
    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root).resolve()

    def ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Failed to create storage root at %s: %s", self.root, exc)

    def resolve(self, request_path: str) -> Path:
        """Map a URL path onto a location under the root, rejecting traversal."""
        relative_path = unquote(request_path).lstrip("/")
        candidate = (self.root / relative_path).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError:
            raise PathOutsideRootError(f"{request_path!r} escapes storage root") from None
        return candidate

    def relative_name(self, path: Path) -> str:
        """Return ``path`` relative to the root; the root itself maps to ``""``."""
        if path == self.root:
            return ""
        return path.relative_to(self.root).as_posix()

    def read(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise StorageNotFoundError(str(path)) from exc
        except OSError as exc:
            raise StorageFailureError(f"failed to read {path}: {exc}") from exc

    def write(self, path: Path, data: bytes) -> None:
        """Write ``data`` to ``path``, creating parent directories as needed.

        The bytes land in a temporary sibling first and are moved over the
        target with ``os.replace``, so readers see either the old or the new
        content. Concurrent writers to the same path are not excluded: the
        last replace wins.
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageFailureError(f"failed to create directory: {exc}") from exc

        temp_name: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="wb",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as temp_file:
                temp_name = temp_file.name
                temp_file.write(data)
            os.replace(temp_name, path)
        except OSError as exc:
            if temp_name is not None:
                try:
                    os.unlink(temp_name)
                except FileNotFoundError:
                    pass
            raise StorageFailureError(f"failed to write file {path}: {exc}") from exc
