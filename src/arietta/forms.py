"""Form body parsing: URL-encoded and multipart.

URL-encoded bodies use stdlib ``urllib.parse``; multipart bodies are
parsed with ``python-multipart``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import parse_qs

from python_multipart.exceptions import FormParserError
from python_multipart.multipart import MultipartParser, parse_options_header

from arietta.errors import FormError, NotMultipartError

MAX_MULTIPART_MEMORY = 32 << 20


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission."""

    filename: str
    content_type: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    def save(self, path: str | Path) -> Path:
        """Write the content to *path*; parent directories must exist."""
        path = Path(path)
        path.write_bytes(self.content)
        return path


@dataclass(slots=True)
class ParsedForm:
    values: dict[str, list[str]] = field(default_factory=dict)
    files: dict[str, list[UploadFile]] = field(default_factory=dict)


def parse_form(body: bytes, content_type: str, max_memory: int = MAX_MULTIPART_MEMORY) -> ParsedForm:
    """Parse a form body.

    Raises
    ------
    NotMultipartError
        The content type is not a form encoding.
    FormError
        The body is larger than *max_memory* or is malformed.
    """
    media_type = content_type.split(";")[0].strip().lower()
    if media_type not in ("application/x-www-form-urlencoded", "multipart/form-data"):
        msg = f"request Content-Type isn't multipart/form-data: {content_type!r}"
        raise NotMultipartError(msg)
    if len(body) > max_memory:
        msg = f"form body of {len(body)} bytes exceeds limit of {max_memory} bytes"
        raise FormError(msg)
    if media_type == "application/x-www-form-urlencoded":
        return _parse_urlencoded(body)
    return _parse_multipart(body, content_type)


def _parse_urlencoded(body: bytes) -> ParsedForm:
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        msg = f"form body is not valid UTF-8: {exc}"
        raise FormError(msg) from exc
    return ParsedForm(values=parse_qs(text, keep_blank_values=True))


def _parse_multipart(body: bytes, content_type: str) -> ParsedForm:
    _, options = parse_options_header(content_type)
    boundary = options.get(b"boundary")
    if not boundary:
        msg = "multipart form data missing boundary parameter"
        raise FormError(msg)

    form = ParsedForm()
    headers: dict[str, str] = {}
    header_field = bytearray()
    header_value = bytearray()
    data = bytearray()

    def on_part_begin() -> None:
        headers.clear()
        data.clear()

    def on_header_field(chunk: bytes, start: int, end: int) -> None:
        header_field.extend(chunk[start:end])

    def on_header_value(chunk: bytes, start: int, end: int) -> None:
        header_value.extend(chunk[start:end])

    def on_header_end() -> None:
        headers[header_field.decode("latin-1").lower()] = header_value.decode("latin-1")
        header_field.clear()
        header_value.clear()

    def on_part_data(chunk: bytes, start: int, end: int) -> None:
        data.extend(chunk[start:end])

    def on_part_end() -> None:
        _, params = parse_options_header(headers.get("content-disposition", ""))
        name = params.get(b"name")
        if name is None:
            return
        key = name.decode("utf-8")
        filename = params.get(b"filename")
        if filename is not None:
            upload = UploadFile(
                filename=filename.decode("utf-8"),
                content_type=headers.get("content-type", "application/octet-stream"),
                content=bytes(data),
            )
            form.files.setdefault(key, []).append(upload)
            return
        form.values.setdefault(key, []).append(data.decode("utf-8", errors="replace"))

    parser = MultipartParser(
        boundary,
        {
            "on_part_begin": on_part_begin,
            "on_header_field": on_header_field,
            "on_header_value": on_header_value,
            "on_header_end": on_header_end,
            "on_part_data": on_part_data,
            "on_part_end": on_part_end,
        },
    )
    try:
        parser.write(body)
        parser.finalize()
    except FormParserError as exc:
        msg = f"malformed multipart body: {exc}"
        raise FormError(msg) from exc
    return form
