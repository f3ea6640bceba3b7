"""
pipekit - FastAPI Application Factory
======================================

What:  Assembles a FastAPI application from pipeline routes.
How:   ``create_app(*routes)`` mounts each ``PipelineRoute`` as a raw ASGI
       route (the ``Server`` does its own decoding and encoding), adds a
       ``GET /health`` probe, and installs the logging lifespan.
Who:   Called by service entry points, then served with
       ``pipekit.serverutil.new_server`` or ``uvicorn``.
When:  Once at startup.

Lifecycle:
    Startup:
    1. Initialize logging
    2. Log the mounted routes
    Shutdown:
    1. Log shutdown complete
"""

import logging
import sys
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Optional, Sequence

from fastapi import APIRouter, FastAPI
from pydantic import BaseModel, Field

from pipekit import __version__
from pipekit.config import settings
from pipekit.server import Server

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure stdout logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # pipekit's log_finalizer replaces the server access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("%s starting up (pipekit %s)", app.title, __version__)
    for route in app.routes:
        methods = ",".join(sorted(getattr(route, "methods", None) or ["*"]))
        logger.info("route %s %s", methods, getattr(route, "path", "?"))

    yield

    logger.info("%s shut down", app.title)


# ══════════════════════════════════════════════════════════════════════════
# Routes
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PipelineRoute:
    """A pipeline server bound to a path and a set of HTTP methods."""

    path: str
    server: Server
    methods: Sequence[str] = ("GET",)
    name: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = Field(description="Always 'healthy' while the process serves requests")
    version: str = Field(description="pipekit version")
    uptime_seconds: float = Field(description="Seconds since the app was created")


def _health_router() -> APIRouter:
    router = APIRouter(tags=["Health"])
    started = time.time()

    @router.get("/health", response_model=HealthResponse, summary="Service health check")
    async def health_check() -> HealthResponse:
        return HealthResponse(
            status="healthy",
            version=__version__,
            uptime_seconds=round(time.time() - started, 2),
        )

    return router


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(*routes: PipelineRoute, title: str = "pipekit service") -> FastAPI:
    """
    Create a FastAPI application serving ``routes``.

    Pipeline routes are plain ASGI endpoints: they bypass FastAPI's request
    validation and response models and do not appear in the OpenAPI schema.
    """
    app = FastAPI(title=title, version=__version__, lifespan=lifespan)

    for route in routes:
        app.add_route(
            route.path,
            route.server,
            methods=list(route.methods),
            name=route.name,
            include_in_schema=False,
        )

    app.include_router(_health_router())
    return app
