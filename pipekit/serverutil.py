"""
pipekit - Server Utilities
===========================

What:  Builds a uvicorn server with pre-configured connection limits.
How:   Starts from ``Settings`` (address, keep-alive timeout, max header
       size, concurrency limit, graceful shutdown timeout) and applies
       options that mutate the ``uvicorn.Config`` before the server is
       created.
When:  Process startup, e.g.

           server = new_server(create_app(route), with_address("127.0.0.1", 9000))
           server.run()

Logging is left to ``pipekit.main.setup_logging`` (``log_config=None``).
"""

import logging
from typing import Callable, Optional

import uvicorn
from starlette.types import ASGIApp

from pipekit.config import Settings
from pipekit.config import settings as default_settings

logger = logging.getLogger(__name__)

Option = Callable[[uvicorn.Config], None]


def new_server(
    app: ASGIApp,
    *options: Option,
    settings: Optional[Settings] = None,
) -> uvicorn.Server:
    """Create a ``uvicorn.Server`` for ``app`` with limits taken from ``settings``."""
    cfg = settings or default_settings
    config = uvicorn.Config(
        app,
        host=cfg.host,
        port=cfg.port,
        log_level=cfg.log_level.lower(),
        log_config=None,
        timeout_keep_alive=cfg.idle_timeout,
        h11_max_incomplete_event_size=cfg.max_header_bytes,
        limit_concurrency=cfg.limit_concurrency,
        timeout_graceful_shutdown=cfg.graceful_shutdown_timeout,
    )
    for option in options:
        option(config)

    logger.debug(
        "configured server on %s:%d (keep-alive %ss, max header %d bytes)",
        config.host,
        config.port,
        config.timeout_keep_alive,
        config.h11_max_incomplete_event_size,
    )
    return uvicorn.Server(config)


def with_address(host: str, port: int) -> Option:
    def option(config: uvicorn.Config) -> None:
        config.host = host
        config.port = port

    return option


def with_idle_timeout(seconds: int) -> Option:
    def option(config: uvicorn.Config) -> None:
        config.timeout_keep_alive = seconds

    return option
