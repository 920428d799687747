"""Routing table mapping request methods to handlers."""

from collections.abc import Callable

from request import HTTPRequest
from response import HTTPResponse

Handler = Callable[[HTTPRequest], HTTPResponse]


class ConnectionAborted(Exception):
    """Raised by a handler to close the connection without writing a response."""


class Router:
    def __init__(self) -> None:
        self._routes: dict[str, Handler] = {}

    @property
    def methods(self) -> tuple[str, ...]:
        return tuple(self._routes)

    def add_route(self, method: str, handler: Handler) -> None:
        normalized_method = method.upper().strip()
        if not normalized_method:
            raise ValueError("method cannot be empty")
        self._routes[normalized_method] = handler

    def resolve(self, method: str) -> Handler | None:
        normalized_method = method.upper().strip()
        return self._routes.get(normalized_method)
