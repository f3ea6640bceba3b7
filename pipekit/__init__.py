"""
pipekit - Typed Request Pipelines for ASGI
===========================================

What:  Decouples HTTP request/response encoding from business logic.
How:   A ``Server`` binds a decoder, a handler and an encoder, runs hooks
       around them, routes errors to an error handler and an error encoder,
       and reports the real wire outcome to finalizers.

Architecture:
    ┌─────────────────────────────────────┐
    │   Server (pipeline engine)          │  ← server.py
    ├─────────────────────────────────────┤
    │   Error routing                     │  ← error_handler.py
    ├─────────────────────────────────────┤
    │   Capability resolution             │  ← capabilities.py
    ├─────────────────────────────────────┤
    │   Outcome-observing writer          │  ← writer.py
    └─────────────────────────────────────┘

    Supporting modules: context.py, hooks.py, decoder.py, exceptions.py,
    batch/, config.py, serverutil.py, main.py
"""

__version__ = "1.0.0"

from pipekit.capabilities import (  # noqa: E402
    Headerer,
    JSONMarshaler,
    Probe,
    StatusCoder,
    StatusResponse,
    default_error_encoder,
    encode_json_response,
    probe,
)
from pipekit.context import Context, ContextKey, background  # noqa: E402
from pipekit.decoder import decode_request  # noqa: E402
from pipekit.error_handler import (  # noqa: E402
    ErrorHandler,
    ErrorHandlerFunc,
    LogErrorHandler,
    NopErrorHandler,
)
from pipekit.exceptions import (  # noqa: E402
    DecodeError,
    EncodeError,
    HTTPError,
    PipekitError,
    UnsupportedMethodError,
)
from pipekit.server import (  # noqa: E402
    Server,
    new_server,
    server_after,
    server_before,
    server_error_encoder,
    server_error_handler,
    server_finalizer,
)
from pipekit.writer import ASGIResponseWriter, InterceptingWriter, ResponseWriter  # noqa: E402

__all__ = [
    "__version__",
    "ASGIResponseWriter",
    "Context",
    "ContextKey",
    "DecodeError",
    "EncodeError",
    "ErrorHandler",
    "ErrorHandlerFunc",
    "HTTPError",
    "Headerer",
    "InterceptingWriter",
    "JSONMarshaler",
    "LogErrorHandler",
    "NopErrorHandler",
    "PipekitError",
    "Probe",
    "ResponseWriter",
    "Server",
    "StatusCoder",
    "StatusResponse",
    "UnsupportedMethodError",
    "background",
    "decode_request",
    "default_error_encoder",
    "encode_json_response",
    "new_server",
    "probe",
    "server_after",
    "server_before",
    "server_error_encoder",
    "server_error_handler",
    "server_finalizer",
]
