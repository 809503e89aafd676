"""Arietta exception hierarchy.

Configuration errors surface while routes and templates are being set up.
Binding and render errors are raised per request and never take the
server down.
"""

from __future__ import annotations


class AriettaError(Exception):
    """Base for all arietta-specific errors."""


class ConfigurationError(AriettaError):
    """Raised when the engine is set up incorrectly."""


class RouteConflictError(ConfigurationError):
    """Raised when a (path, method) pair is registered twice in one group."""

    def __init__(self, group: str, path: str, method: str) -> None:
        self.group = group
        self.path = path
        self.method = method
        super().__init__(f"route {method} /{group}{path} is already registered in group {group!r}")


class BindingError(AriettaError):
    """Raised when a request body cannot be decoded into its destination."""


class RenderError(AriettaError):
    """Raised when a response body cannot be produced."""


class RedirectStatusError(RenderError):
    """Raised for a redirect whose status is not 201 or 300-308."""

    def __init__(self, status: int) -> None:
        self.status = status
        super().__init__(f"cannot redirect with status code {status}")


class TemplateNotFoundError(RenderError):
    """Raised when a named template cannot be resolved."""


class FormError(AriettaError):
    """Raised when a form body cannot be parsed."""


class NotMultipartError(FormError):
    """Raised when a body is neither urlencoded nor multipart form data."""


class BodyTooLargeError(AriettaError):
    """Raised while reading a request body that exceeds the engine's limit."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"request body exceeds {limit} bytes")
