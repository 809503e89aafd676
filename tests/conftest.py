from __future__ import annotations

from collections.abc import Callable

import pytest

from arietta import Engine, Request, ResponseWriter

RequestFactory = Callable[..., Request]


@pytest.fixture
def make_request() -> RequestFactory:
    def factory(
        method: str = "GET",
        path: str = "/",
        *,
        query: bytes = b"",
        body: bytes = b"",
        headers: dict[str, str] | None = None,
        client: tuple[str, int] = ("127.0.0.1", 50000),
    ) -> Request:
        scope = {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": query,
            "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()],
            "client": client,
        }
        return Request(scope, body)

    return factory


@pytest.fixture
def serve(make_request: RequestFactory) -> Callable[..., ResponseWriter]:
    """Run one request through an engine synchronously and return the writer."""

    def run(engine: Engine, method: str = "GET", path: str = "/", **kwargs: object) -> ResponseWriter:
        writer = ResponseWriter()
        engine.serve_http(writer, make_request(method, path, **kwargs))
        return writer

    return run
