"""
pipekit - Error Routing
========================

What:  Side channel that receives every error a pipeline encounters.
How:   ``Server`` calls ``handle(ctx, err)`` for decode, handler and encode
       failures, before the error encoder renders the error.
When:  Once per failed stage. Purely observational: the call cannot change
       what the client receives or resume the pipeline.

Implementations:
    NopErrorHandler    default, ignores errors
    LogErrorHandler    logs each error with request correlation data
    ErrorHandlerFunc   adapts a plain ``(ctx, err) -> None`` callable
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from pipekit.context import Context, ContextKey


class ErrorHandler(ABC):
    """Receives errors for logging, metrics or tracing."""

    @abstractmethod
    def handle(self, ctx: Context, err: BaseException) -> None:
        ...


class NopErrorHandler(ErrorHandler):
    def handle(self, ctx: Context, err: BaseException) -> None:
        return None


class LogErrorHandler(ErrorHandler):
    """
    Logs every error at ERROR level.

    Format:
        [<request id>] <METHOD> <path>: <error>

    Request id, method and path come from the context when the
    ``request_id`` and ``populate_request_context`` hooks ran; missing
    values are logged as "-". Debug context carried by ``PipekitError``
    subclasses goes into the record's ``extra`` and never into the response.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("pipekit.errors")

    def handle(self, ctx: Context, err: BaseException) -> None:
        rid = ctx.value(ContextKey.REQUEST_ID, "-")
        method = ctx.value(ContextKey.REQUEST_METHOD, "-")
        path = ctx.value(ContextKey.REQUEST_PATH, "-")
        self.logger.error(
            "[%s] %s %s: %s",
            rid,
            method,
            path,
            err,
            extra={
                "request_id": rid,
                "error_type": type(err).__name__,
                "error_context": getattr(err, "context", {}),
            },
        )


class ErrorHandlerFunc(ErrorHandler):
    """Wraps a function so it can be used as an ``ErrorHandler``."""

    def __init__(self, fn: Callable[[Context, BaseException], None]):
        self._fn = fn

    def handle(self, ctx: Context, err: BaseException) -> None:
        self._fn(ctx, err)
