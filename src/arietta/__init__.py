"""Minimal grouped-route HTTP framework with middleware chains and pluggable renderers."""

__version__ = "0.1.0"

from arietta.app import Engine
from arietta.binding import JSONBinding, XMLBinding
from arietta.context import Context
from arietta.errors import (
    AriettaError,
    BindingError,
    BodyTooLargeError,
    ConfigurationError,
    RedirectStatusError,
    RenderError,
    RouteConflictError,
)
from arietta.logger import LoggingConfig, logging_middleware, logging_with_config
from arietta.request import Request
from arietta.response import ResponseWriter
from arietta.routing import ANY_METHOD, Router, RouterGroup

__all__ = [
    "ANY_METHOD",
    "AriettaError",
    "BindingError",
    "BodyTooLargeError",
    "ConfigurationError",
    "Context",
    "Engine",
    "JSONBinding",
    "LoggingConfig",
    "RedirectStatusError",
    "RenderError",
    "Request",
    "ResponseWriter",
    "RouteConflictError",
    "Router",
    "RouterGroup",
    "XMLBinding",
    "logging_middleware",
    "logging_with_config",
]
