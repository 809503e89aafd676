"""Arietta engine: route registration, dispatch and the ASGI entry point."""

from __future__ import annotations

import asyncio
import logging
import sys
import traceback
from collections.abc import Callable, Mapping
from http import HTTPStatus
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

from arietta._server import DEFAULT_HOST, DEFAULT_PORT
from arietta.binding import JSONBinding
from arietta.context import Context
from arietta.errors import BindingError, BodyTooLargeError
from arietta.forms import MAX_MULTIPART_MEMORY
from arietta.pool import Pool
from arietta.render import Text
from arietta.request import Request
from arietta.response import ResponseWriter
from arietta.routing import Router, RouterGroup
from arietta.templating import Templates

if TYPE_CHECKING:
    from arietta._types import Receive, Scope, Send

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 32 << 20


class Engine:
    """Owns the router, the context pool and the template set.

    Parameters
    ----------
    pool:
        Recycle :class:`Context` objects between requests.
    debug:
        When ``True``, 500 responses include the full traceback.
    writer:
        Stream used by the access-log middleware when it has no explicit
        destination.  Defaults to ``sys.stdout``.
    json_binding:
        Binding used by :meth:`Context.bind_json`.
    func_map:
        Callables exposed to templates as filters and globals.
    max_multipart_memory:
        Largest form body, in bytes, that form accessors will parse.
    max_body_size:
        Largest request body, in bytes, read from the client.  Larger
        bodies are answered with 413 before dispatch.  ``None`` reads
        bodies of any size.
    """

    def __init__(
        self,
        *,
        pool: bool = True,
        debug: bool = False,
        writer: TextIO | None = None,
        json_binding: JSONBinding | None = None,
        func_map: Mapping[str, Callable[..., Any]] | None = None,
        max_multipart_memory: int = MAX_MULTIPART_MEMORY,
        max_body_size: int | None = MAX_BODY_SIZE,
    ) -> None:
        self.router = Router()
        self.debug = debug
        self.writer: TextIO = writer or sys.stdout
        self.json_binding = json_binding or JSONBinding()
        self.func_map: dict[str, Callable[..., Any]] = dict(func_map or {})
        self.templates: Templates | None = None
        self.max_multipart_memory = max_multipart_memory
        self.max_body_size = max_body_size
        self.pool: Pool[Context] | None = Pool(self._allocate_context, Context.reset) if pool else None

    def _allocate_context(self) -> Context:
        return Context(self)

    # ------------------------------------------------------------------
    # Route registration
    # ------------------------------------------------------------------

    def group(self, name: str) -> RouterGroup:
        """Create a group whose routes live under ``/<name>``."""
        return self.router.group(name)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def set_func_map(self, func_map: Mapping[str, Callable[..., Any]]) -> None:
        """Replace the template functions; applies to templates loaded afterwards."""
        self.func_map = dict(func_map)

    def load_templates(self, pattern: str) -> None:
        self.set_templates(Templates.from_glob(pattern, self.func_map))

    def load_template_files(self, *filenames: str | Path) -> None:
        self.set_templates(Templates.from_files(filenames, self.func_map))

    def set_templates(self, templates: Templates) -> None:
        self.templates = templates

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def serve_http(self, writer: ResponseWriter, request: Request) -> None:
        """Handle one request synchronously, filling *writer*."""
        ctx = self.pool.acquire() if self.pool is not None else self._allocate_context()
        ctx.request = request
        ctx.writer = writer
        try:
            self._handle(ctx)
        finally:
            if self.pool is not None:
                self.pool.release(ctx)

    def _handle(self, ctx: Context) -> None:
        request = ctx.request
        match = self.router.match(request.method, request.request_uri)
        if match is None:
            ctx.string(HTTPStatus.NOT_FOUND, "%s %s not found", request.request_uri, request.method)
            return
        if match.handler is None:
            ctx.string(HTTPStatus.METHOD_NOT_ALLOWED, "%s %s not allowed", request.request_uri, request.method)
            return

        try:
            match.chain()(ctx)
        except BindingError as exc:
            logger.debug("binding failed for %r: %s", request, exc)
            if not ctx.writer.body:
                ctx.writer.reset()
                ctx.string(HTTPStatus.BAD_REQUEST, str(exc))
        except Exception:
            logger.exception("unhandled error while serving %r", request)
            self._internal_error(ctx)

    def _internal_error(self, ctx: Context) -> None:
        if ctx.writer.body:
            return
        ctx.writer.reset()
        body = "Internal Server Error"
        if self.debug:
            body += "\n\n" + traceback.format_exc()
        ctx.string(HTTPStatus.INTERNAL_SERVER_ERROR, body)

    # ------------------------------------------------------------------
    # ASGI interface
    # ------------------------------------------------------------------

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await _handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        try:
            request = await Request.from_asgi(scope, receive, self.max_body_size)
        except BodyTooLargeError as exc:
            logger.warning("rejecting %s %s: %s", scope.get("method"), scope.get("path"), exc)
            await _too_large(exc).send(send)
            return
        writer = ResponseWriter()
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.serve_http, writer, request)
        await writer.send(send)

    # ------------------------------------------------------------------
    # Granian convenience
    # ------------------------------------------------------------------

    def run(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        *,
        dev: bool = False,
        reload: bool | None = None,
        workers: int = 1,
        log_level: str = "info",
        **granian_kwargs: Any,
    ) -> None:
        """Start the engine with Granian.

        Parameters
        ----------
        dev:
            When ``True``, enables reload, debug logging, and access logs.
        reload:
            Auto-reload on code changes.  ``None`` follows *dev*.
        workers:
            Number of worker processes.
        log_level:
            Granian log level.
        """
        from arietta._server import serve

        target = _resolve_target(self)
        serve(
            target,
            host=host,
            port=port,
            dev=dev,
            reload=reload,
            workers=workers,
            log_level=log_level,
            granian_kwargs=granian_kwargs or None,
        )


# ------------------------------------------------------------------
# Module-level helpers
# ------------------------------------------------------------------


def _resolve_target(engine: Engine) -> str:
    """Derive a ``"module:var"`` string for the given engine instance.

    Searches ``__main__`` for a module-level variable whose value *is* the
    engine.  Falls back to the caller's ``__file__`` stem when running as a
    script (``python main.py``) so Granian workers can import it.
    """
    main = sys.modules.get("__main__")
    if main is None:
        msg = "Cannot auto-detect Granian target: __main__ module not found."
        raise RuntimeError(msg)

    var_name: str | None = None
    for name, val in vars(main).items():
        if val is engine:
            var_name = name
            break

    if var_name is None:
        msg = (
            "Cannot auto-detect Granian target: no module-level variable in "
            "__main__ references this Engine instance. "
            "Start it with the CLI instead, e.g. `arietta run main:engine`."
        )
        raise RuntimeError(msg)

    spec = getattr(main, "__spec__", None)
    module_name: str | None = spec.name if spec else None
    if not module_name:
        main_file = getattr(main, "__file__", None)
        module_name = Path(main_file).stem if main_file else None

    return f"{module_name}:{var_name}"


async def _handle_lifespan(receive: Receive, send: Send) -> None:
    """Minimal lifespan responder: accept startup/shutdown with no-ops."""
    while True:
        message = await receive()
        if message["type"] == "lifespan.startup":
            await send({"type": "lifespan.startup.complete"})
        elif message["type"] == "lifespan.shutdown":
            await send({"type": "lifespan.shutdown.complete"})
            return


def _too_large(exc: BodyTooLargeError) -> ResponseWriter:
    writer = ResponseWriter()
    body = Text(str(exc))
    body.write_content_type(writer)
    body.write_header(HTTPStatus.REQUEST_ENTITY_TOO_LARGE, writer)
    body.render(writer)
    return writer
