"""
pipekit - Response Capability Resolution
=========================================

What:  Works out the status code, headers and body for any handler result
       or error without requiring a fixed concrete type.
How:   A value may implement any of three optional capabilities, each a
       runtime-checkable protocol:

           StatusCoder     status_code() -> int
           Headerer        headers() -> mapping of name to value(s)
           JSONMarshaler   marshal_json() -> bytes

       ``probe`` reads the first two; the encoders below read all three.
Who:   ``default_error_encoder`` is the server's default error encoder;
       ``encode_json_response`` is the usual success encoder.

Resolution order:
    errors:    body = str(err), text/plain
               → marshal_json() succeeded? use it, application/json
               → set Content-Type, then add headers()
               → status_code() or 500
    responses: application/json
               → add headers()
               → status_code() or 200
               → 204 writes no body at all
"""

import logging
from typing import (
    Any,
    Generic,
    Iterable,
    List,
    Mapping,
    NamedTuple,
    Protocol,
    Tuple,
    TypeVar,
    Union,
    runtime_checkable,
)

import pydantic_core

from pipekit.context import Context
from pipekit.exceptions import EncodeError
from pipekit.writer import ResponseWriter

logger = logging.getLogger(__name__)

T = TypeVar("T")

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

HeaderValues = Union[str, Iterable[str]]


@runtime_checkable
class StatusCoder(Protocol):
    def status_code(self) -> int: ...


@runtime_checkable
class Headerer(Protocol):
    def headers(self) -> Mapping[str, HeaderValues]: ...


@runtime_checkable
class JSONMarshaler(Protocol):
    def marshal_json(self) -> bytes: ...


def _has(value: Any, capability: type, attr: str) -> bool:
    # runtime_checkable only checks that the attribute exists; an int
    # ``status_code`` attribute must not count as the capability.
    return isinstance(value, capability) and callable(getattr(value, attr, None))


def is_status_coder(value: Any) -> bool:
    return _has(value, StatusCoder, "status_code")


def is_headerer(value: Any) -> bool:
    return _has(value, Headerer, "headers")


def is_json_marshaler(value: Any) -> bool:
    return _has(value, JSONMarshaler, "marshal_json")


class Probe(NamedTuple):
    """Status code and extra headers resolved for one value."""

    status_code: int
    headers: Tuple[Tuple[str, str], ...]


def probe(value: Any, default_status: int) -> Probe:
    """
    Resolve the status code and headers a value asks for.

    Pure: calling it twice on the same value gives equal results, provided
    the value's own capability methods are pure.
    """
    code = value.status_code() if is_status_coder(value) else default_status
    headers: List[Tuple[str, str]] = []
    if is_headerer(value):
        for name, values in value.headers().items():
            if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
                values = [values]
            for v in values:
                headers.append((name, v.decode("latin-1") if isinstance(v, bytes) else str(v)))
    return Probe(code, tuple(headers))


async def default_error_encoder(ctx: Context, err: BaseException, w: ResponseWriter) -> None:
    """
    Write ``err`` to the response.

    By default the body is ``str(err)`` as text/plain with status 500. An
    error that marshals itself to JSON is sent as application/json instead;
    if ``marshal_json`` raises, the plain text form is kept. Headers from
    ``headers()`` are added after Content-Type is set, and ``status_code()``
    replaces the 500.
    """
    content_type, body = TEXT_CONTENT_TYPE, str(err).encode("utf-8")
    if is_json_marshaler(err):
        try:
            content_type, body = JSON_CONTENT_TYPE, err.marshal_json()
        except Exception:
            logger.debug("marshal_json failed for %r, falling back to text", err, exc_info=True)

    w.headers["Content-Type"] = content_type
    resolved = probe(err, 500)
    for name, value in resolved.headers:
        w.headers.append(name, value)
    await w.write_header(resolved.status_code)
    await w.write(body)


def marshal(value: Any) -> bytes:
    """Serialize a response value to JSON bytes."""
    if is_json_marshaler(value):
        return value.marshal_json()
    return pydantic_core.to_json(value)


async def encode_json_response(ctx: Context, w: ResponseWriter, response: Any) -> None:
    """
    Serialize ``response`` as JSON.

    Headers from ``headers()`` are applied and ``status_code()`` replaces
    the default 200. A 204 status writes no body, even when the value could
    be serialized.

    The status line is sent before serialization. If serialization fails
    the resulting ``EncodeError`` is rendered after a success status has
    already gone out; buffer in a custom encoder if that matters.
    """
    w.headers["Content-Type"] = JSON_CONTENT_TYPE
    resolved = probe(response, 200)
    for name, value in resolved.headers:
        w.headers.append(name, value)
    await w.write_header(resolved.status_code)
    if resolved.status_code == 204:
        return

    try:
        body = marshal(response)
    except Exception as exc:
        raise EncodeError(
            f"can not encode response: {exc}",
            context={"response_type": type(response).__name__},
        ) from exc
    await w.write(body)


class StatusResponse(Generic[T]):
    """
    Pairs a response value with an explicit status code.

    Example:
        async def create_note(ctx, req):
            note = await notes.create(req)
            return StatusResponse(note, 201)

    Serialization is delegated to the wrapped value.
    """

    __slots__ = ("value", "code")

    def __init__(self, value: T, code: int):
        self.value = value
        self.code = code

    def status_code(self) -> int:
        return self.code

    def marshal_json(self) -> bytes:
        return marshal(self.value)

    def __repr__(self) -> str:
        return f"StatusResponse({self.value!r}, {self.code})"
