"""Tests for the access-log middleware."""

from __future__ import annotations

import io
from datetime import datetime

import pytest

from arietta import Context, Engine, LoggingConfig, logging_middleware, logging_with_config
from arietta.logger import LogFormatterParams, default_formatter, format_latency


def _params(request, **overrides) -> LogFormatterParams:
    values = {
        "request": request,
        "timestamp": datetime(2026, 10, 19, 15, 4, 5),
        "status_code": 200,
        "latency": 0.0015,
        "client_ip": "10.0.0.1",
        "method": "GET",
        "path": "/user/info?x=1",
    }
    values.update(overrides)
    return LogFormatterParams(**values)


def test_format_latency() -> None:
    assert format_latency(0.0000005) == "0.500µs"
    assert format_latency(0.0015) == "1.500ms"
    assert format_latency(2.5) == "2.500s"
    assert format_latency(125.0) == "2m5s"


def test_default_formatter_plain(make_request) -> None:
    line = default_formatter(_params(make_request()))
    assert line == '[arietta]  2026/10/19 - 15:04:05 | 200 |       1.500ms |        10.0.0.1 | GET     "/user/info?x=1"\n'


@pytest.mark.parametrize(
    ("status", "color"),
    [(200, "\033[32m"), (201, "\033[32m"), (302, "\033[37m"), (404, "\033[33m"), (500, "\033[31m")],
)
def test_default_formatter_colors_by_status_class(make_request, status, color) -> None:
    line = default_formatter(_params(make_request(), is_display_color=True, status_code=status))
    assert f"{color} {status} " in line


def test_middleware_writes_to_engine_writer(serve) -> None:
    out = io.StringIO()
    engine = Engine(writer=out)
    group = engine.group("user")
    group.use(logging_middleware)
    group.get("/info?a=1", lambda ctx: ctx.string(201, "made"))

    serve(engine, "GET", "/user/info", query=b"a=1", client=("192.168.1.9", 4000))

    line = out.getvalue()
    assert line.startswith("[arietta]")
    assert "| 201 |" in line
    assert "192.168.1.9" in line
    assert '"/user/info?a=1"' in line
    assert "\033[" not in line


def test_custom_formatter_and_destination(serve) -> None:
    seen: list[LogFormatterParams] = []
    out = io.StringIO()

    def formatter(params: LogFormatterParams) -> str:
        seen.append(params)
        return f"{params.method} {params.path} {params.status_code}\n"

    engine = Engine(writer=io.StringIO())

    def handler(ctx: Context) -> None:
        ctx.string(404, "gone")

    engine.group("g").post("/x", handler, logging_with_config(LoggingConfig(formatter=formatter, out=out)))
    serve(engine, "POST", "/g/x")

    assert out.getvalue() == "POST /g/x 404\n"
    assert seen[0].latency >= 0
    assert seen[0].client_ip == "127.0.0.1"
    assert engine.writer.getvalue() == ""
