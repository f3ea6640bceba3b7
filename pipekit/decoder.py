"""
pipekit - Default Request Decoder
==================================

What:  Builds a ``DecodeRequestFunc`` that turns a Starlette request into a
       validated value of any pydantic-supported type.
How:   Collects a flat mapping from the request, then validates it with a
       ``pydantic.TypeAdapter`` built once per decoder:

           POST / PUT / PATCH   JSON object body, then path params on top
           GET / DELETE         query params, then path params on top
           anything else        UnsupportedMethodError (405)

Errors:
    empty body            DecodeError("empty body")
    malformed JSON        DecodeError("invalid JSON body: ...")
    non-object JSON       DecodeError("request body must be a JSON object")
    validation failure    DecodeError("can not unmarshal request") with the
                          pydantic error list in ``context["errors"]``
"""

import json
from typing import Any, Dict, Type, TypeVar

from pydantic import TypeAdapter, ValidationError
from starlette.requests import Request

from pipekit.context import Context
from pipekit.exceptions import DecodeError, UnsupportedMethodError
from pipekit.server import DecodeRequestFunc

T = TypeVar("T")

BODY_METHODS = ("POST", "PUT", "PATCH")
QUERY_METHODS = ("GET", "DELETE")


async def _body_payload(request: Request) -> Dict[str, Any]:
    body = await request.body()
    if not body.strip():
        raise DecodeError("empty body")
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise DecodeError(f"invalid JSON body: {exc}") from exc
    if not isinstance(payload, dict):
        raise DecodeError(
            "request body must be a JSON object",
            context={"json_type": type(payload).__name__},
        )
    return payload


def _query_payload(request: Request) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        payload[key] = values[0] if len(values) == 1 else values
    return payload


def decode_request(target: Type[T]) -> DecodeRequestFunc[T]:
    """
    Return a decoder producing ``target`` instances.

    ``target`` may be a pydantic model, a dataclass, a TypedDict or any
    other type ``pydantic.TypeAdapter`` accepts. Path parameters override
    body or query fields of the same name.
    """
    adapter = TypeAdapter(target)

    async def decoder(ctx: Context, request: Request) -> T:
        method = request.method.upper()
        if method in BODY_METHODS:
            payload = await _body_payload(request)
        elif method in QUERY_METHODS:
            payload = _query_payload(request)
        else:
            raise UnsupportedMethodError(method, allowed=BODY_METHODS + QUERY_METHODS)

        payload.update(request.path_params)
        try:
            return adapter.validate_python(payload)
        except ValidationError as exc:
            raise DecodeError(
                "can not unmarshal request",
                context={
                    "errors": exc.errors(include_url=False, include_context=False),
                    "target": getattr(target, "__name__", repr(target)),
                },
            ) from exc

    return decoder
