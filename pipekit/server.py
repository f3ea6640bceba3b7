"""
pipekit - Pipeline Server
==========================

What:  Binds a business handler to a request decoder and a response encoder
       and serves it as an ASGI application.
How:   ``new_server(handler, decoder, encoder, *options)`` builds a frozen
       ``Server``. Each call runs:

           before hooks → decode → handle → after hooks → encode
                                  (finalizers always run last)

       A failing decode, handle or encode stage is reported to the error
       handler, rendered by the error encoder, and ends the call.
Who:   Mounted on a Starlette/FastAPI router like any ASGI app:

           app.add_route("/notes", server, methods=["POST"])

Concurrency:
    A ``Server`` is immutable and shared by every in-flight request. All
    per-call state (context, writer, outcome record) lives in local
    variables of ``serve_http``.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Generic, Optional, Tuple, TypeVar

from starlette.requests import Request
from starlette.types import Receive, Scope, Send

from pipekit.capabilities import default_error_encoder
from pipekit.context import Context, ContextKey, background
from pipekit.error_handler import ErrorHandler, NopErrorHandler
from pipekit.writer import ASGIResponseWriter, InterceptingWriter, ResponseWriter

logger = logging.getLogger(__name__)

I = TypeVar("I")
O = TypeVar("O")

# Executed on the inbound request before decoding.
RequestFunc = Callable[[Context, Request], Context]

# Executed after the handler, before the response is encoded.
ServerResponseFunc = Callable[[Context, ResponseWriter], Context]

# Executed once at the end of every call with the observed status code.
ServerFinalizerFunc = Callable[[Context, int, Request], None]

DecodeRequestFunc = Callable[[Context, Request], Awaitable[I]]
EncodeResponseFunc = Callable[[Context, ResponseWriter, O], Awaitable[None]]
HandlerFunc = Callable[[Context, I], Awaitable[O]]
ErrorEncoder = Callable[[Context, BaseException, ResponseWriter], Awaitable[None]]


@dataclass(frozen=True)
class Server(Generic[I, O]):
    """
    An immutable request pipeline, usable as an ASGI application.

    Build it with ``new_server``; options return modified copies, so a
    ``Server`` never changes once a request can reach it.
    """

    handler: HandlerFunc[I, O]
    decoder: DecodeRequestFunc[I]
    encoder: EncodeResponseFunc[O]
    before: Tuple[RequestFunc, ...] = ()
    after: Tuple[ServerResponseFunc, ...] = ()
    error_encoder: ErrorEncoder = default_error_encoder
    error_handler: ErrorHandler = field(default_factory=NopErrorHandler)
    finalizers: Tuple[ServerFinalizerFunc, ...] = ()

    def __post_init__(self) -> None:
        for name in ("handler", "decoder", "encoder", "error_encoder"):
            if not callable(getattr(self, name)):
                raise TypeError(f"{name} must be callable")
        if not isinstance(self.error_handler, ErrorHandler):
            raise TypeError("error_handler must be an ErrorHandler")
        for name in ("before", "after", "finalizers"):
            hooks = tuple(getattr(self, name))
            for hook in hooks:
                if not callable(hook):
                    raise TypeError(f"{name} entries must be callable, got {hook!r}")
            object.__setattr__(self, name, hooks)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            raise RuntimeError(f"pipekit.Server only handles http scopes, got {scope['type']!r}")
        request = Request(scope, receive)
        writer = ASGIResponseWriter(send)
        try:
            await self.serve_http(writer, request)
        except BaseException:
            # A started response must still be terminated; an unstarted one
            # is left to the ASGI server's own error response.
            if writer.status_code is not None:
                await writer.close()
            raise
        await writer.close()

    async def serve_http(self, w: ResponseWriter, request: Request) -> None:
        """
        Run one request through the pipeline.

        Only ``Exception`` subclasses count as stage failures. Cancellation
        and other ``BaseException``s propagate untouched, as do exceptions
        raised by hooks; finalizers run on every exit path.
        """
        ctx = background()
        iw: Optional[InterceptingWriter] = None
        if self.finalizers:
            iw = InterceptingWriter(w)
            w = iw

        try:
            for before in self.before:
                ctx = before(ctx, request)

            try:
                req = await self.decoder(ctx, request)
            except Exception as err:
                await self._fail(ctx, err, w, "decode")
                return

            try:
                resp = await self.handler(ctx, req)
            except Exception as err:
                await self._fail(ctx, err, w, "handle")
                return

            for after in self.after:
                ctx = after(ctx, w)

            try:
                await self.encoder(ctx, w, resp)
            except Exception as err:
                # Whatever the encoder already wrote stays on the wire; the
                # error output goes to the same writer.
                await self._fail(ctx, err, w, "encode")
        finally:
            if iw is not None:
                ctx = ctx.with_value(ContextKey.RESPONSE_HEADERS, iw.headers)
                ctx = ctx.with_value(ContextKey.RESPONSE_SIZE, iw.written)
                for finalizer in self.finalizers:
                    finalizer(ctx, iw.code, request)

    async def _fail(self, ctx: Context, err: Exception, w: ResponseWriter, stage: str) -> None:
        logger.debug("%s stage failed: %r", stage, err)
        self.error_handler.handle(ctx, err)
        await self.error_encoder(ctx, err, w)


ServerOption = Callable[[Server[Any, Any]], Server[Any, Any]]


def new_server(
    handler: HandlerFunc[I, O],
    decoder: DecodeRequestFunc[I],
    encoder: EncodeResponseFunc[O],
    *options: ServerOption,
) -> Server[I, O]:
    """
    Construct a ``Server`` and apply ``options`` in order.

    Example:
        server = new_server(
            create_note,
            decode_request(CreateNoteRequest),
            encode_json_response,
            server_before(request_id, populate_request_context),
            server_after(echo_request_id),
            server_error_handler(LogErrorHandler()),
            server_finalizer(log_finalizer()),
        )
    """
    server: Server[I, O] = Server(handler=handler, decoder=decoder, encoder=encoder)
    for option in options:
        server = option(server)
    return server


def server_before(*before: RequestFunc) -> ServerOption:
    """Append hooks that run on the request before it is decoded."""

    def option(s: Server[Any, Any]) -> Server[Any, Any]:
        return replace(s, before=s.before + tuple(before))

    return option


def server_after(*after: ServerResponseFunc) -> ServerOption:
    """Append hooks that run after the handler, before the response is encoded."""

    def option(s: Server[Any, Any]) -> Server[Any, Any]:
        return replace(s, after=s.after + tuple(after))

    return option


def server_error_encoder(encoder: ErrorEncoder) -> ServerOption:
    """Replace ``default_error_encoder``."""

    def option(s: Server[Any, Any]) -> Server[Any, Any]:
        return replace(s, error_encoder=encoder)

    return option


def server_error_handler(handler: ErrorHandler) -> ServerOption:
    """Route every decode/handle/encode error to ``handler``. Default is a no-op."""

    def option(s: Server[Any, Any]) -> Server[Any, Any]:
        return replace(s, error_handler=handler)

    return option


def server_finalizer(*finalizers: ServerFinalizerFunc) -> ServerOption:
    """
    Append functions that run at the end of every call.

    Finalizers see the observed status code and a context carrying
    ``ContextKey.RESPONSE_HEADERS`` and ``ContextKey.RESPONSE_SIZE``.
    """

    def option(s: Server[Any, Any]) -> Server[Any, Any]:
        return replace(s, finalizers=s.finalizers + tuple(finalizers))

    return option
