"""Granian launcher shared by :meth:`Engine.run` and the CLI."""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8111


def serve(
    target: str,
    *,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    dev: bool = False,
    reload: bool | None = None,
    workers: int = 1,
    log_level: str = "info",
    granian_kwargs: dict[str, Any] | None = None,
) -> None:
    """Serve the ``"module:var"`` *target* over ASGI.

    *dev* turns on debug logs and Granian's access log, and reload unless
    *reload* says otherwise.
    """
    from granian import Granian

    if reload is None:
        reload = dev
    if dev:
        log_level = "debug"

    logger.info("serving %s on http://%s:%d (workers=%d, reload=%s)", target, host, port, workers, reload)
    Granian(
        target=target,
        address=host,
        port=port,
        interface="asgi",
        workers=workers,
        reload=reload,
        log_level=log_level,
        log_access=dev,
        **(granian_kwargs or {}),
    ).serve()
