"""Buffered response writer and redirect helper."""

from __future__ import annotations

import html
from http import HTTPStatus
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from arietta._types import Send
    from arietta.request import Request


class ResponseWriter:
    """Collects status, headers and body for one response.

    The first call to :meth:`write_header` fixes the status; later calls are
    ignored.  Writing a body without an explicit status implies ``200``.
    Nothing reaches the client until :meth:`send` flushes the buffer.
    """

    __slots__ = ("_body", "_headers", "status")

    def __init__(self) -> None:
        self.status: int | None = None
        self._headers: dict[str, tuple[str, str]] = {}
        self._body = bytearray()

    # ------------------------------------------------------------------
    # Headers
    # ------------------------------------------------------------------

    def set_header(self, name: str, value: str) -> None:
        self._headers[name.lower()] = (name, value)

    def get_header(self, name: str) -> str | None:
        entry = self._headers.get(name.lower())
        return entry[1] if entry else None

    def has_header(self, name: str) -> bool:
        return name.lower() in self._headers

    @property
    def headers(self) -> list[tuple[str, str]]:
        return list(self._headers.values())

    # ------------------------------------------------------------------
    # Status and body
    # ------------------------------------------------------------------

    @property
    def written(self) -> bool:
        """True once a status has been committed."""
        return self.status is not None

    def write_header(self, status: int) -> None:
        if self.status is None:
            self.status = status

    def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.write_header(HTTPStatus.OK)
        self._body.extend(data)
        return len(data)

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    def reset(self) -> None:
        """Discard everything buffered so far."""
        self.status = None
        self._headers.clear()
        self._body.clear()

    async def send(self, send: Send) -> None:
        """Flush the buffered response as ASGI messages."""
        body = bytes(self._body)
        headers = [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in self._headers.values()]
        headers.append((b"content-length", str(len(body)).encode("latin-1")))
        await send(
            {
                "type": "http.response.start",
                "status": int(self.status or HTTPStatus.OK),
                "headers": headers,
            }
        )
        await send({"type": "http.response.body", "body": body})

    def __repr__(self) -> str:
        return f"ResponseWriter(status={self.status!r}, {len(self._body)} bytes)"


def redirect(writer: ResponseWriter, request: Request, location: str, status: int) -> None:
    """Point the client at *location* with *status*.

    GET and HEAD requests without a Content-Type get a short HTML body
    linking to the target.
    """
    writer.set_header("Location", location)
    method = request.method
    if method in ("GET", "HEAD") and not writer.has_header("Content-Type"):
        writer.set_header("Content-Type", "text/html; charset=utf-8")
        writer.write_header(status)
        if method == "GET":
            phrase = _status_phrase(status)
            writer.write(f'<a href="{html.escape(location)}">{phrase}</a>.\n')
        return
    writer.write_header(status)


def _status_phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return str(status)
