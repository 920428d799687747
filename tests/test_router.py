"""Unit tests for method router behavior."""

from request import HTTPRequest
from response import HTTPResponse
from router import Router


def _handler_ok(_request: HTTPRequest) -> HTTPResponse:
    return HTTPResponse(status_code=200, body="ok")


def test_router_resolves_method_case_insensitively() -> None:
    router = Router()
    router.add_route("get", _handler_ok)

    resolved = router.resolve("GET")

    assert resolved is _handler_ok
    assert router.methods == ("GET",)


def test_router_returns_none_for_unrouted_method() -> None:
    router = Router()
    router.add_route("GET", _handler_ok)

    assert router.resolve("DELETE") is None


def test_router_rejects_empty_method() -> None:
    router = Router()

    try:
        router.add_route("  ", _handler_ok)
    except ValueError as exc:
        assert "method cannot be empty" in str(exc)
    else:
        raise AssertionError("Expected ValueError for empty method")
