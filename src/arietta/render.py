"""Response renderers.

Every renderer exposes the same three steps, always called in order:
``write_content_type``, ``write_header`` and ``render``.  :data:`Render`
is the closed union of all of them.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError, to_json

from arietta.errors import RedirectStatusError, RenderError
from arietta.response import redirect

if TYPE_CHECKING:
    from arietta.request import Request
    from arietta.response import ResponseWriter
    from arietta.templating import Templates

HTML_CONTENT_TYPE = "text/html; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"
XML_CONTENT_TYPE = "application/xml; charset=utf-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


def write_content_type(w: ResponseWriter, value: str) -> None:
    if not w.has_header("Content-Type"):
        w.set_header("Content-Type", value)


@dataclass(frozen=True, slots=True)
class HTMLLiteral:
    html: str

    def write_content_type(self, w: ResponseWriter) -> None:
        write_content_type(w, HTML_CONTENT_TYPE)

    def write_header(self, status: int, w: ResponseWriter) -> None:
        w.write_header(status)

    def render(self, w: ResponseWriter) -> None:
        w.write(self.html)


@dataclass(frozen=True, slots=True)
class HTMLTemplate:
    templates: Templates
    name: str
    data: Any = None

    def write_content_type(self, w: ResponseWriter) -> None:
        write_content_type(w, HTML_CONTENT_TYPE)

    def write_header(self, status: int, w: ResponseWriter) -> None:
        w.write_header(status)

    def render(self, w: ResponseWriter) -> None:
        w.write(self.templates.execute(self.name, self.data))


@dataclass(frozen=True, slots=True)
class JSON:
    data: Any

    def write_content_type(self, w: ResponseWriter) -> None:
        write_content_type(w, JSON_CONTENT_TYPE)

    def write_header(self, status: int, w: ResponseWriter) -> None:
        w.write_header(status)

    def render(self, w: ResponseWriter) -> None:
        try:
            payload = to_json(self.data)
        except PydanticSerializationError as exc:
            msg = f"cannot encode JSON: {exc}"
            raise RenderError(msg) from exc
        w.write(payload)


@dataclass(frozen=True, slots=True)
class XML:
    data: Any
    root: str | None = None

    def write_content_type(self, w: ResponseWriter) -> None:
        write_content_type(w, XML_CONTENT_TYPE)

    def write_header(self, status: int, w: ResponseWriter) -> None:
        w.write_header(status)

    def render(self, w: ResponseWriter) -> None:
        tag = self.root or _root_tag(self.data)
        w.write(ET.tostring(_to_element(tag, self.data), encoding="unicode"))


@dataclass(frozen=True, slots=True)
class Text:
    format: str
    values: tuple[Any, ...] = ()

    def write_content_type(self, w: ResponseWriter) -> None:
        write_content_type(w, TEXT_CONTENT_TYPE)

    def write_header(self, status: int, w: ResponseWriter) -> None:
        w.write_header(status)

    def render(self, w: ResponseWriter) -> None:
        if self.values:
            try:
                w.write(self.format % self.values)
            except (TypeError, ValueError) as exc:
                msg = f"cannot format {self.format!r}: {exc}"
                raise RenderError(msg) from exc
            return
        w.write(self.format)


@dataclass(frozen=True, slots=True)
class Redirect:
    status: int
    request: Request
    location: str

    # Headers and status are owned by the redirect helper.
    def write_content_type(self, w: ResponseWriter) -> None:
        pass

    def write_header(self, status: int, w: ResponseWriter) -> None:
        pass

    def render(self, w: ResponseWriter) -> None:
        if not valid_redirect_status(self.status):
            raise RedirectStatusError(self.status)
        redirect(w, self.request, self.location, self.status)


Render = HTMLLiteral | HTMLTemplate | JSON | XML | Text | Redirect


def valid_redirect_status(status: int) -> bool:
    return 300 <= status <= 308 or status == 201


# ------------------------------------------------------------------
# XML encoding
# ------------------------------------------------------------------


def _root_tag(data: Any) -> str:
    if isinstance(data, BaseModel):
        return type(data).__name__
    return "response"


def _to_element(tag: str, value: Any) -> ET.Element:
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", by_alias=True)
    elem = ET.Element(tag)
    if isinstance(value, Mapping):
        for key, child in value.items():
            _append(elem, str(key), child)
    elif isinstance(value, list | tuple):
        for child in value:
            _append(elem, "item", child)
    else:
        elem.text = _scalar(value)
    return elem


def _append(parent: ET.Element, tag: str, value: Any) -> None:
    if isinstance(value, list | tuple):
        for child in value:
            parent.append(_to_element(tag, child))
        return
    parent.append(_to_element(tag, value))


def _scalar(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
