"""
pipekit - Response Writers
===========================

What:  The response-writer capability the pipeline writes through, its ASGI
       implementation, and the outcome-observing decorator used for
       finalizers.
How:   ``ASGIResponseWriter`` turns header/status/body calls into ASGI
       ``http.response.*`` messages. ``InterceptingWriter`` wraps any writer
       and records the status code and byte count that actually went out.
Who:   Constructed once per call by ``Server``; passed to post-hooks,
       encoders and the error encoder.

Writer contract:
    headers             mutable header set; edits after the status line is
                        sent have no effect on the wire
    write_header(code)  sends the status line; only the first call counts
    write(data)         sends body bytes, implying status 200 if no status
                        was sent yet; returns the number of bytes written
"""

import logging
from typing import Optional, Protocol

from starlette.datastructures import MutableHeaders
from starlette.types import Send

logger = logging.getLogger(__name__)


class ResponseWriter(Protocol):
    """Structural type for anything the pipeline can write a response to."""

    @property
    def headers(self) -> MutableHeaders: ...

    async def write_header(self, status_code: int) -> None: ...

    async def write(self, data: bytes) -> int: ...


class ASGIResponseWriter:
    """
    Streams a response to an ASGI ``send`` callable.

    Lifecycle:
        1. Headers are collected in ``headers``
        2. ``write_header`` (or the first ``write``) sends
           ``http.response.start`` with the headers collected so far
        3. Each non-empty ``write`` sends a body chunk with ``more_body``
        4. ``close`` sends the final empty chunk, sending a 200 status line
           first if nothing was written at all
    """

    def __init__(self, send: Send):
        self._send = send
        self._headers = MutableHeaders()
        self._status_code: Optional[int] = None
        self._closed = False

    @property
    def headers(self) -> MutableHeaders:
        return self._headers

    @property
    def status_code(self) -> Optional[int]:
        """Status sent on the wire, or None before the status line went out."""
        return self._status_code

    async def write_header(self, status_code: int) -> None:
        if self._status_code is not None:
            logger.warning(
                "superfluous write_header call: status %d already sent, ignoring %d",
                self._status_code,
                status_code,
            )
            return
        self._status_code = status_code
        await self._send(
            {
                "type": "http.response.start",
                "status": status_code,
                "headers": list(self._headers.raw),
            }
        )

    async def write(self, data: bytes) -> int:
        if self._closed:
            raise RuntimeError("write on a closed response writer")
        if self._status_code is None:
            await self.write_header(200)
        if not data:
            return 0
        await self._send(
            {"type": "http.response.body", "body": bytes(data), "more_body": True}
        )
        return len(data)

    async def close(self) -> None:
        """Terminate the response body. Safe to call more than once."""
        if self._closed:
            return
        if self._status_code is None:
            await self.write_header(200)
        self._closed = True
        await self._send({"type": "http.response.body", "body": b"", "more_body": False})


class InterceptingWriter:
    """
    Records the outcome of a response while passing every call through.

    Attributes:
        code:     Status code sent. Starts at 200 because a writer that is
                  written to without an explicit status sends 200.
        written:  Total body bytes reported by the wrapped writer.

    Only the first status is recorded. A second ``write_header`` is a no-op
    on the transport, so recording it would misreport the wire outcome.
    """

    def __init__(self, writer: ResponseWriter):
        self._writer = writer
        self.code = 200
        self.written = 0
        self._header_sent = False

    @property
    def headers(self) -> MutableHeaders:
        return self._writer.headers

    async def write_header(self, status_code: int) -> None:
        if not self._header_sent:
            self.code = status_code
            self._header_sent = True
        await self._writer.write_header(status_code)

    async def write(self, data: bytes) -> int:
        self._header_sent = True
        n = await self._writer.write(data)
        self.written += n
        return n
