"""Synchronous request wrapper over an ASGI scope."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from arietta.errors import BodyTooLargeError

if TYPE_CHECKING:
    from arietta._types import Receive, Scope


class Request:
    """Thin wrapper around an ASGI *scope* and the fully read body.

    The body is read before dispatch starts so handlers, middleware and
    bindings never suspend.
    """

    __slots__ = ("_body", "_scope")

    def __init__(self, scope: Scope, body: bytes = b"") -> None:
        self._scope = scope
        self._body = body

    @classmethod
    async def from_asgi(cls, scope: Scope, receive: Receive, max_size: int | None = None) -> Request:
        """Drain *receive* and return a request holding the whole body.

        Raises :class:`~arietta.errors.BodyTooLargeError` as soon as the
        declared ``Content-Length`` or the bytes received so far exceed
        *max_size*.  The rest of the body is left unread.
        """
        request = cls(scope)
        if max_size is not None:
            declared = request.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > max_size:
                raise BodyTooLargeError(max_size)

        chunks: list[bytes] = []
        received = 0
        while True:
            message = await receive()
            chunk = message.get("body", b"")
            if chunk:
                received += len(chunk)
                if max_size is not None and received > max_size:
                    raise BodyTooLargeError(max_size)
                chunks.append(chunk)
            if not message.get("more_body", False):
                break
        request._body = b"".join(chunks)
        return request

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def method(self) -> str:
        return self._scope["method"]

    @property
    def path(self) -> str:
        return self._scope["path"]

    @property
    def query_string(self) -> bytes:
        return self._scope.get("query_string", b"")

    @property
    def request_uri(self) -> str:
        """Path plus ``?query`` when a query string is present."""
        query = self.query_string.decode("latin-1")
        if query:
            return f"{self.path}?{query}"
        return self.path

    @property
    def headers(self) -> dict[str, str]:
        """Headers as a lowercase-keyed dict (last value wins for dupes)."""
        return {k.decode("latin-1").lower(): v.decode("latin-1") for k, v in self._scope.get("headers", [])}

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def client_ip(self) -> str:
        client = self._scope.get("client")
        if not client:
            return ""
        return client[0]

    @property
    def body(self) -> bytes:
        return self._body

    def json(self) -> Any:
        """Parse the request body as JSON."""
        return json.loads(self._body)

    def __repr__(self) -> str:
        return f"Request({self.method!r}, {self.request_uri!r})"
