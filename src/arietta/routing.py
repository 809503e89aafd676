"""Route groups and exact-path matching.

A group named ``user`` exposes a route registered as ``/info`` at
``/user/info``.  Paths are compared verbatim: no parameters, no
trailing-slash folding.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from arietta.errors import RouteConflictError

if TYPE_CHECKING:
    from collections.abc import Callable

    from arietta._types import Handler, Middleware

logger = logging.getLogger(__name__)

ANY_METHOD = "ANY"
METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")


@dataclass(frozen=True, slots=True)
class RouteInfo:
    method: str
    path: str
    handler_name: str


@dataclass(frozen=True, slots=True)
class Match:
    """A request path found in *group*.

    ``handler`` is ``None`` when the path exists but neither the request
    method nor :data:`ANY_METHOD` is registered for it.
    """

    group: RouterGroup
    path: str
    method: str
    handler: Handler | None

    def chain(self) -> Handler:
        return self.group.chain(self.path, self.method, self.handler)


class RouterGroup:
    """Routes sharing the ``/<name>`` prefix and a middleware stack."""

    __slots__ = ("middlewares", "name", "path_handlers", "path_middlewares")

    def __init__(self, name: str) -> None:
        self.name = name
        self.path_handlers: dict[str, dict[str, Handler]] = {}
        self.path_middlewares: dict[str, dict[str, list[Middleware]]] = {}
        self.middlewares: list[Middleware] = []

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def use(self, *middlewares: Middleware) -> None:
        """Append middleware applied to every route of the group."""
        self.middlewares.extend(middlewares)

    def handle(self, method: str, path: str, handler: Handler, *middlewares: Middleware) -> None:
        method = method.upper()
        handlers = self.path_handlers.setdefault(path, {})
        if method in handlers:
            raise RouteConflictError(self.name, path, method)
        handlers[method] = handler
        self.path_middlewares.setdefault(path, {})[method] = list(middlewares)
        logger.debug("registered %s %s -> %s", method, self.full_path(path), _handler_name(handler))

    def route(self, method: str, path: str, *middlewares: Middleware) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`handle`."""

        def decorator(handler: Handler) -> Handler:
            self.handle(method, path, handler, *middlewares)
            return handler

        return decorator

    def any(self, path: str, handler: Handler, *middlewares: Middleware) -> None:
        self.handle(ANY_METHOD, path, handler, *middlewares)

    def get(self, path: str, handler: Handler, *middlewares: Middleware) -> None:
        self.handle("GET", path, handler, *middlewares)

    def post(self, path: str, handler: Handler, *middlewares: Middleware) -> None:
        self.handle("POST", path, handler, *middlewares)

    def put(self, path: str, handler: Handler, *middlewares: Middleware) -> None:
        self.handle("PUT", path, handler, *middlewares)

    def delete(self, path: str, handler: Handler, *middlewares: Middleware) -> None:
        self.handle("DELETE", path, handler, *middlewares)

    def patch(self, path: str, handler: Handler, *middlewares: Middleware) -> None:
        self.handle("PATCH", path, handler, *middlewares)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def full_path(self, path: str) -> str:
        return "/" + self.name + path

    def chain(self, path: str, method: str, handler: Handler) -> Handler:
        """Wrap *handler* with route middleware, then group middleware.

        Group middleware ends up outermost.  The group list is read on
        every call, so ``use`` after registration still applies.
        """
        for middleware in reversed(self.path_middlewares[path][method]):
            handler = middleware(handler)
        for middleware in reversed(self.middlewares):
            handler = middleware(handler)
        return handler

    def routes(self) -> Iterator[RouteInfo]:
        for path, handlers in self.path_handlers.items():
            for method, handler in handlers.items():
                yield RouteInfo(method, self.full_path(path), _handler_name(handler))

    def __repr__(self) -> str:
        return f"RouterGroup({self.name!r})"


class Router:
    """Ordered collection of groups; the first group holding the path wins."""

    __slots__ = ("groups",)

    def __init__(self) -> None:
        self.groups: list[RouterGroup] = []

    def group(self, name: str) -> RouterGroup:
        group = RouterGroup(name)
        self.groups.append(group)
        return group

    def match(self, method: str, path: str) -> Match | None:
        """Find the request target *path* (query included) in the registered groups.

        Returns ``None`` when no group holds the path.  Once a group holds
        it, its method table decides: an :data:`ANY_METHOD` handler beats
        an exact-method one.
        """
        method = method.upper()
        for group in self.groups:
            for registered, handlers in group.path_handlers.items():
                if group.full_path(registered) != path:
                    continue
                if ANY_METHOD in handlers:
                    return Match(group, registered, ANY_METHOD, handlers[ANY_METHOD])
                return Match(group, registered, method, handlers.get(method))
        return None

    def routes(self) -> Iterator[RouteInfo]:
        for group in self.groups:
            yield from group.routes()


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
