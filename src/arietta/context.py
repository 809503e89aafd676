"""Per-request context handed to handlers and middleware."""

from __future__ import annotations

import logging
from http import HTTPStatus
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import parse_qs

from arietta import binding as _binding
from arietta.errors import (
    BindingError,
    ConfigurationError,
    FormError,
    NotMultipartError,
    RenderError,
    TemplateNotFoundError,
)
from arietta.forms import ParsedForm, UploadFile, parse_form
from arietta.render import JSON, XML, HTMLLiteral, HTMLTemplate, Redirect, Text
from arietta.templating import Templates

if TYPE_CHECKING:
    from arietta.app import Engine
    from arietta.binding import Binding
    from arietta.render import Render
    from arietta.request import Request
    from arietta.response import ResponseWriter

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Context:
    """Request, response writer and cached request-derived state.

    Contexts may be recycled through the engine's pool; :meth:`reset`
    clears everything tied to the previous request.
    """

    __slots__ = ("_form_cache", "_query_cache", "engine", "request", "writer")

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.request: Request | None = None
        self.writer: ResponseWriter | None = None
        self._query_cache: dict[str, list[str]] | None = None
        self._form_cache: ParsedForm | None = None

    def reset(self) -> None:
        self.request = None
        self.writer = None
        self._query_cache = None
        self._form_cache = None

    @property
    def status_code(self) -> int:
        """Status committed on the writer so far (200 if nothing was written)."""
        if self.writer is None:
            return 0
        return self.writer.status or HTTPStatus.OK

    @property
    def client_ip(self) -> str:
        return self.request.client_ip if self.request else ""

    def get_header(self, name: str) -> str | None:
        return self.request.headers.get(name.lower())

    def set_header(self, name: str, value: str) -> None:
        self.writer.set_header(name, value)

    # ------------------------------------------------------------------
    # Query parameters
    # ------------------------------------------------------------------

    def _queries(self) -> dict[str, list[str]]:
        if self._query_cache is None:
            raw = self.request.query_string.decode("latin-1")
            self._query_cache = parse_qs(raw, keep_blank_values=True)
        return self._query_cache

    def get_query_array(self, key: str) -> tuple[list[str], bool]:
        values = self._queries().get(key)
        if values:
            return list(values), True
        return [], False

    def get_query(self, key: str) -> tuple[str, bool]:
        values, ok = self.get_query_array(key)
        if ok:
            return values[0], True
        return "", False

    def query(self, key: str) -> str:
        return self.get_query(key)[0]

    def default_query(self, key: str, default: str) -> str:
        value, ok = self.get_query(key)
        return value if ok else default

    # ------------------------------------------------------------------
    # Form values and uploads
    # ------------------------------------------------------------------

    def _form(self) -> ParsedForm:
        if self._form_cache is None:
            try:
                self._form_cache = parse_form(
                    self.request.body, self.request.content_type, self.engine.max_multipart_memory
                )
            except NotMultipartError:
                self._form_cache = ParsedForm()
            except FormError as exc:
                logger.warning("cannot parse form body of %r: %s", self.request, exc)
                self._form_cache = ParsedForm()
        return self._form_cache

    def get_post_form_array(self, key: str) -> tuple[list[str], bool]:
        values = self._form().values.get(key)
        if values:
            return list(values), True
        return [], False

    def get_post_form(self, key: str) -> tuple[str, bool]:
        values, ok = self.get_post_form_array(key)
        if ok:
            return values[0], True
        return "", False

    def post_form(self, key: str) -> str:
        return self.get_post_form(key)[0]

    def default_post_form(self, key: str, default: str) -> str:
        value, ok = self.get_post_form(key)
        return value if ok else default

    def form_file(self, name: str) -> UploadFile | None:
        files = self._form().files.get(name)
        return files[0] if files else None

    def form_files(self, name: str) -> list[UploadFile]:
        return list(self._form().files.get(name, []))

    def save_uploaded_file(self, file: UploadFile, dst: str | Path) -> Path:
        return file.save(dst)

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    def should_bind_with(self, destination: type[T], binding: Binding) -> T:
        """Bind the body; errors are raised and nothing is written."""
        return binding.bind(self.request, destination)

    def bind_with(self, destination: type[T], binding: Binding) -> T:
        """Bind the body, answering 400 with the error text on failure."""
        try:
            return binding.bind(self.request, destination)
        except BindingError as exc:
            self.render(HTTPStatus.BAD_REQUEST, Text(str(exc)))
            raise

    def bind_json(self, destination: type[T]) -> T:
        return self.bind_with(destination, self.engine.json_binding)

    def bind_xml(self, destination: type[T]) -> T:
        return self.bind_with(destination, _binding.XML)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, status: int, r: Render) -> None:
        r.write_content_type(self.writer)
        r.write_header(status, self.writer)
        r.render(self.writer)

    def html(self, status: int, html: str) -> None:
        self.render(status, HTMLLiteral(html))

    def html_template(self, name: str, data: Any, *filenames: str | Path) -> None:
        try:
            templates = Templates.from_files(filenames, self.engine.func_map)
        except ConfigurationError as exc:
            raise RenderError(str(exc)) from exc
        self.render(HTTPStatus.OK, HTMLTemplate(templates, name, data))

    def html_template_glob(self, name: str, data: Any, pattern: str) -> None:
        try:
            templates = Templates.from_glob(pattern, self.engine.func_map)
        except ConfigurationError as exc:
            raise RenderError(str(exc)) from exc
        self.render(HTTPStatus.OK, HTMLTemplate(templates, name, data))

    def template(self, name: str, data: Any = None, status: int = HTTPStatus.OK) -> None:
        """Execute *name* from the engine's loaded template set."""
        templates = self.engine.templates
        if templates is None:
            msg = f"no templates loaded, cannot execute {name!r}"
            raise TemplateNotFoundError(msg)
        self.render(status, HTMLTemplate(templates, name, data))

    def json(self, status: int, data: Any) -> None:
        self.render(status, JSON(data))

    def xml(self, status: int, data: Any, root: str | None = None) -> None:
        self.render(status, XML(data, root))

    def string(self, status: int, format: str, *values: Any) -> None:
        self.render(status, Text(format, values))

    def redirect(self, status: int, location: str) -> None:
        self.render(status, Redirect(status, self.request, location))

    def __repr__(self) -> str:
        return f"Context({self.request!r})"
