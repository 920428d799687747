"""GET/POST handlers serving and storing files under a storage root."""

from __future__ import annotations

import logging
from pathlib import Path

from content_types import UnsupportedMediaTypeError, classify
from request import HTTPRequest
from response import HTTPResponse, build_response
from router import Router
from storage import (
    FileStorage,
    PathOutsideRootError,
    StorageFailureError,
    StorageNotFoundError,
)

logger = logging.getLogger(__name__)


class FileHandler:
    """Static file handler; the target file is named by the URL path.

    The extension whitelist is applied to the resolved location, after
    percent-decoding and dot-segment removal, so the name that is checked
    is always the name that is read or written.
    """

    def __init__(self, storage: FileStorage) -> None:
        self.storage = storage

    def _locate(self, request: HTTPRequest) -> tuple[Path, str] | HTTPResponse:
        try:
            file_path = self.storage.resolve(request.path)
        except PathOutsideRootError as exc:
            logger.warning("Rejected %s %s: %s", request.method, request.path, exc)
            return build_response(403)

        try:
            content_type = classify(self.storage.relative_name(file_path))
        except UnsupportedMediaTypeError as exc:
            logger.warning("Rejected %s %s: %s", request.method, request.path, exc)
            return build_response(400)
        return file_path, content_type

    def get(self, request: HTTPRequest) -> HTTPResponse:
        located = self._locate(request)
        if isinstance(located, HTTPResponse):
            return located
        file_path, content_type = located

        try:
            data = self.storage.read(file_path)
        except StorageNotFoundError:
            return build_response(404)
        except StorageFailureError as exc:
            logger.error("Error reading file %s: %s", file_path, exc)
            return build_response(500)

        return build_response(200, data, content_type=content_type)

    def post(self, request: HTTPRequest) -> HTTPResponse:
        located = self._locate(request)
        if isinstance(located, HTTPResponse):
            return located
        file_path, _content_type = located

        if file_path == self.storage.root:
            logger.warning("Rejected POST without a filename")
            return build_response(400)

        try:
            self.storage.write(file_path, request.body)
        except StorageFailureError as exc:
            logger.error("Error writing %s bytes to %s: %s", len(request.body), file_path, exc)
            return build_response(500)

        return build_response(200)


def build_file_router(storage: FileStorage) -> Router:
    handler = FileHandler(storage)
    router = Router()
    router.add_route("GET", handler.get)
    router.add_route("POST", handler.post)
    return router
