"""
pipekit - Request and Response Hooks
=====================================

What:  Ready-made before hooks, after hooks and finalizers.
How:   Plain functions (or factories returning functions) matching the
       ``RequestFunc``, ``ServerResponseFunc`` and ``ServerFinalizerFunc``
       signatures in ``pipekit.server``.
Who:   Registered with ``server_before``, ``server_after`` and
       ``server_finalizer``.

Typical wiring:
    server_before(request_id, populate_request_context)
    server_after(echo_request_id, set_response_header("Cache-Control", "no-store"))
    server_finalizer(log_finalizer())

Hook order matters: ``request_id`` must run before anything that logs
the request id, and after hooks only affect headers while the encoder has
not written the status line yet.
"""

import logging
import uuid
from typing import Optional

from starlette.requests import Request

from pipekit.context import Context, ContextKey
from pipekit.server import ServerFinalizerFunc, ServerResponseFunc
from pipekit.writer import ResponseWriter

REQUEST_ID_HEADER = "X-Request-ID"


def populate_request_context(ctx: Context, request: Request) -> Context:
    """
    Copy request metadata into the context under ``ContextKey.REQUEST_*``.

    Header values that are absent are stored as empty strings.
    """
    headers = request.headers
    client = request.client
    remote_addr = f"{client.host}:{client.port}" if client else ""
    uri = request.url.path
    if request.url.query:
        uri = f"{uri}?{request.url.query}"

    pairs = (
        (ContextKey.REQUEST_METHOD, request.method),
        (ContextKey.REQUEST_URI, uri),
        (ContextKey.REQUEST_PATH, request.url.path),
        (ContextKey.REQUEST_PROTO, f"HTTP/{request.scope.get('http_version', '1.1')}"),
        (ContextKey.REQUEST_HOST, headers.get("host", "")),
        (ContextKey.REQUEST_REMOTE_ADDR, remote_addr),
        (ContextKey.REQUEST_X_FORWARDED_FOR, headers.get("x-forwarded-for", "")),
        (ContextKey.REQUEST_X_FORWARDED_PROTO, headers.get("x-forwarded-proto", "")),
        (ContextKey.REQUEST_AUTHORIZATION, headers.get("authorization", "")),
        (ContextKey.REQUEST_REFERER, headers.get("referer", "")),
        (ContextKey.REQUEST_USER_AGENT, headers.get("user-agent", "")),
        (ContextKey.REQUEST_X_REQUEST_ID, headers.get("x-request-id", "")),
        (ContextKey.REQUEST_ACCEPT, headers.get("accept", "")),
    )
    for key, value in pairs:
        ctx = ctx.with_value(key, value)
    return ctx


def request_id(ctx: Context, request: Request) -> Context:
    """
    Store a correlation id under ``ContextKey.REQUEST_ID``.

    Uses the client's ``X-Request-ID`` when present so a frontend can trace
    its own ids end to end; otherwise generates an 8-character UUID prefix.
    """
    rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]
    return ctx.with_value(ContextKey.REQUEST_ID, rid)


def echo_request_id(ctx: Context, w: ResponseWriter) -> Context:
    """Copy the request id from the context to the ``X-Request-ID`` response header."""
    rid = ctx.value(ContextKey.REQUEST_ID)
    if rid:
        w.headers[REQUEST_ID_HEADER] = rid
    return ctx


def set_response_header(key: str, value: str) -> ServerResponseFunc:
    """Return an after hook that sets a response header."""

    def hook(ctx: Context, w: ResponseWriter) -> Context:
        w.headers[key] = value
        return ctx

    return hook


def set_content_type(content_type: str) -> ServerResponseFunc:
    """Return an after hook that sets the Content-Type response header."""
    return set_response_header("Content-Type", content_type)


def log_finalizer(logger: Optional[logging.Logger] = None) -> ServerFinalizerFunc:
    """
    Return a finalizer that writes one access-log line per call.

    Log level follows the status code:
        5xx → ERROR
        4xx → WARNING
        else → INFO

    Format:
        <METHOD> <path> <status> <bytes>B [<request id>] from <client>
    """
    log = logger or logging.getLogger("pipekit.access")

    def finalizer(ctx: Context, code: int, request: Request) -> None:
        size = ctx.value(ContextKey.RESPONSE_SIZE, 0)
        rid = ctx.value(ContextKey.REQUEST_ID, "")
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path

        if code >= 500:
            level = logging.ERROR
        elif code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        log.log(
            level,
            "%s %s %d %dB [%s] from %s",
            request.method,
            path,
            code,
            size,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": code,
                "response_size": size,
                "client_ip": client_ip,
            },
        )

    return finalizer
