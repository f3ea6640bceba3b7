"""
pipekit - Configuration
========================

What:  Settings for the HTTP server that hosts pipekit applications.
How:   Pydantic Settings reads environment variables (or a .env file),
       validates types and ranges, and exposes a singleton ``settings``.
Who:   ``pipekit.serverutil`` (server limits) and ``pipekit.main`` (logging).
When:  Loaded once at import time; validated before the server starts.

Environment variables (case-insensitive):
    HOST, PORT, LOG_LEVEL, IDLE_TIMEOUT, MAX_HEADER_BYTES,
    LIMIT_CONCURRENCY, GRACEFUL_SHUTDOWN_TIMEOUT
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Server settings loaded from environment variables.

    All settings have defaults suitable for development. The connection
    limits are handed to uvicorn unchanged; the pipeline never reads them.
    """

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Connection limits ─────────────────────────────────────────────────
    # Seconds an idle keep-alive connection stays open (uvicorn timeout_keep_alive)
    idle_timeout: int = Field(default=300, ge=1, le=3600)

    # Upper bound for request line + headers (uvicorn h11_max_incomplete_event_size)
    # Default: 0.25 MB = 262144 bytes
    max_header_bytes: int = Field(default=262_144, ge=1024, le=16_777_216)

    # Max concurrent connections/tasks before uvicorn answers 503; None = unlimited
    limit_concurrency: Optional[int] = Field(default=None, ge=1)

    # Seconds to wait for in-flight requests on shutdown; None = wait forever
    graceful_shutdown_timeout: Optional[int] = Field(default=None, ge=0)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


settings = Settings()
