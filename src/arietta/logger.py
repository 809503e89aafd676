"""Access-log middleware.

Measures wall-clock latency around the wrapped handler and writes one
formatted line per request to the configured stream, or to the engine's
writer when none is configured.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from arietta._types import Handler, Middleware
    from arietta.context import Context
    from arietta.request import Request

_RED = "\033[31m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_BLUE = "\033[34m"
_MAGENTA = "\033[35m"
_CYAN = "\033[36m"
_WHITE = "\033[37m"
_RESET = "\033[0m"


@dataclass(slots=True)
class LogFormatterParams:
    request: Request
    timestamp: datetime
    status_code: int
    latency: float
    client_ip: str
    method: str
    path: str
    is_display_color: bool = False

    def status_code_color(self) -> str:
        code = self.status_code
        if 200 <= code < 300:
            return _GREEN
        if 300 <= code < 400:
            return _WHITE
        if 400 <= code < 500:
            return _YELLOW
        return _RED

    def reset_color(self) -> str:
        return _RESET


LogFormatter = Callable[[LogFormatterParams], str]


def format_latency(seconds: float) -> str:
    """Render *seconds* the way durations read in log lines (``1.5ms``, ``2m3s``)."""
    if seconds < 1e-3:
        return f"{seconds * 1e6:.3f}µs"
    if seconds < 1:
        return f"{seconds * 1e3:.3f}ms"
    if seconds < 60:
        return f"{seconds:.3f}s"
    minutes, rest = divmod(int(seconds), 60)
    return f"{minutes}m{rest}s"


def default_formatter(params: LogFormatterParams) -> str:
    stamp = params.timestamp.strftime("%Y/%m/%d - %H:%M:%S")
    latency = format_latency(params.latency)
    path = f'"{params.path}"'
    if params.is_display_color:
        status_color = params.status_code_color()
        reset = params.reset_color()
        return (
            f"{_YELLOW}[arietta]{reset} {_BLUE}{stamp}{reset} |"
            f"{status_color} {params.status_code:3d} {reset}|"
            f"{_RED} {latency:>13} {reset}|"
            f" {params.client_ip:>15} |"
            f"{_MAGENTA} {params.method:<7}{reset}"
            f"{_CYAN} {path}{reset}\n"
        )
    return (
        f"[arietta]  {stamp} | {params.status_code:3d} | {latency:>13} | "
        f"{params.client_ip:>15} | {params.method:<7} {path}\n"
    )


@dataclass(slots=True)
class LoggingConfig:
    """Settings for :func:`logging_with_config`.

    Parameters
    ----------
    formatter:
        Builds one log line; defaults to :func:`default_formatter`.
    out:
        Destination stream; defaults to the engine's writer.
    color:
        Force colours on or off; ``None`` colours only TTY streams.
    """

    formatter: LogFormatter | None = None
    out: TextIO | None = None
    color: bool | None = None


def logging_with_config(config: LoggingConfig) -> Middleware:
    formatter = config.formatter or default_formatter

    def middleware(next: Handler) -> Handler:
        def handler(ctx: Context) -> None:
            request = ctx.request
            start = time.perf_counter()

            next(ctx)

            latency = time.perf_counter() - start
            if latency > 60:
                latency = float(int(latency))
            out = config.out or ctx.engine.writer
            color = config.color
            if color is None:
                color = out.isatty()
            params = LogFormatterParams(
                request=request,
                timestamp=datetime.now(),
                status_code=ctx.status_code,
                latency=latency,
                client_ip=request.client_ip,
                method=request.method,
                path=request.request_uri,
                is_display_color=color,
            )
            out.write(formatter(params))

        return handler

    return middleware


def logging_middleware(next: Handler) -> Handler:
    """Access logging with default settings."""
    return logging_with_config(LoggingConfig())(next)
