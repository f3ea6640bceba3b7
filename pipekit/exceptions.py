"""
pipekit - Exception Hierarchy
==============================

What:  Error values raised by pipekit's default decoder and encoder, plus a
       general-purpose HTTP error for handlers.
How:   Each class carries a message and an optional context dict, and
       exposes the response capabilities (``status_code()``, ``headers()``,
       ``marshal_json()``) that ``default_error_encoder`` probes for.
Who:   Raised by decoders, handlers and encoders; rendered by the server's
       error encoder and reported to its error handler.
When:  Whenever a pipeline stage fails.

Exception Hierarchy:
    PipekitError (base)
    ├── DecodeError             → 400 Bad Request
    │   └── UnsupportedMethodError → 405 Method Not Allowed (+ Allow header)
    ├── EncodeError             → 500 Internal Server Error
    └── HTTPError               → any status, optional headers and details

The pipeline treats all of these identically. The classes exist so callers
can give their errors a status, headers or a JSON body.
"""

import json
from typing import Any, Dict, Iterable, List, Optional


class PipekitError(Exception):
    """
    Base exception for all pipekit errors.

    Attributes:
        message:  Client-facing error description (rendered as the body)
        context:  Additional debug info (logged by error handlers, never rendered)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class DecodeError(PipekitError):
    """
    Raised when the inbound request cannot be turned into a typed value.

    When:    Empty body, malformed JSON, payload fails validation.
    HTTP:    400 Bad Request

    Rendered body:
        {"error": "decode_error", "message": "empty body"}
    When pydantic reported validation errors they are added under "details".
    """

    def __init__(
        self,
        message: str = "can not unmarshal request",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

    def status_code(self) -> int:
        return 400

    def marshal_json(self) -> bytes:
        payload: Dict[str, Any] = {"error": "decode_error", "message": self.message}
        if "errors" in self.context:
            payload["details"] = self.context["errors"]
        return json.dumps(payload, default=str).encode("utf-8")


class UnsupportedMethodError(DecodeError):
    """
    Raised by the default decoder for HTTP methods it has no strategy for.

    HTTP:    405 Method Not Allowed, with an ``Allow`` header listing the
             methods the decoder understands.
    """

    def __init__(
        self,
        method: str,
        allowed: Iterable[str] = (),
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        ctx["method"] = method
        super().__init__(message=f"method {method} not supported", context=ctx)
        self.method = method
        self.allowed: List[str] = list(allowed)

    def status_code(self) -> int:
        return 405

    def headers(self) -> Dict[str, List[str]]:
        if not self.allowed:
            return {}
        return {"Allow": [", ".join(self.allowed)]}


class EncodeError(PipekitError):
    """
    Raised when a response value cannot be serialized.

    HTTP:    500 Internal Server Error

    Note:
        ``encode_json_response`` sends the status line before serializing,
        so by the time this error is rendered the client has already seen a
        success status. The error encoder's output is appended to the same
        response.
    """

    def __init__(
        self,
        message: str = "can not encode response",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

    def status_code(self) -> int:
        return 500


class HTTPError(PipekitError):
    """
    A handler error with an explicit status code, headers and JSON body.

    Example:
        raise HTTPError(
            "note not found", status_code=404, details={"id": note_id}
        )

    Rendered body:
        {"error": "not_found", "message": "note not found", "details": {...}}
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        headers: Optional[Dict[str, str]] = None,
        details: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self._status_code = status_code
        self._headers = dict(headers or {})
        self.details = details
        self.error = error or _error_slug(status_code)

    def status_code(self) -> int:
        return self._status_code

    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def marshal_json(self) -> bytes:
        payload: Dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return json.dumps(payload, default=str).encode("utf-8")


_ERROR_SLUGS = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "unprocessable_entity",
    429: "rate_limit_exceeded",
    503: "service_unavailable",
}


def _error_slug(status_code: int) -> str:
    if status_code in _ERROR_SLUGS:
        return _ERROR_SLUGS[status_code]
    return "client_error" if 400 <= status_code < 500 else "server_error"
