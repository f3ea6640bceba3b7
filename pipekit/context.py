"""
pipekit - Invocation Context
=============================

What:  Immutable key/value carrier threaded through one pipeline invocation.
How:   Each ``with_value`` call returns a child context that points at its
       parent; ``value`` walks the chain from the newest entry to the root.
Who:   Created by ``Server.serve_http``; read and extended by hooks,
       decoders, handlers, encoders and finalizers.
When:  Created at the start of a call and dropped at the end. A context is
       never shared between calls.

Lookup semantics:
    ctx = background()
    ctx = ctx.with_value("a", 1)
    ctx = ctx.with_value("a", 2)     # shadows, does not overwrite
    ctx.value("a")  -> 2

Cancellation:
    The pipeline runs inside the transport's asyncio task. Cancelling that
    task raises ``asyncio.CancelledError`` at the current await point; the
    context does not intercept or translate it.
"""

from enum import Enum
from typing import Any, Hashable, Iterator, Optional, Tuple


class ContextKey(Enum):
    """Well-known keys populated by pipekit hooks and the pipeline itself."""

    # Populated by hooks.populate_request_context
    REQUEST_METHOD = "request_method"
    REQUEST_URI = "request_uri"
    REQUEST_PATH = "request_path"
    REQUEST_PROTO = "request_proto"
    REQUEST_HOST = "request_host"
    REQUEST_REMOTE_ADDR = "request_remote_addr"
    REQUEST_X_FORWARDED_FOR = "request_x_forwarded_for"
    REQUEST_X_FORWARDED_PROTO = "request_x_forwarded_proto"
    REQUEST_AUTHORIZATION = "request_authorization"
    REQUEST_REFERER = "request_referer"
    REQUEST_USER_AGENT = "request_user_agent"
    REQUEST_X_REQUEST_ID = "request_x_request_id"
    REQUEST_ACCEPT = "request_accept"

    # Populated by hooks.request_id
    REQUEST_ID = "request_id"

    # Populated by the pipeline before finalizers run
    RESPONSE_HEADERS = "response_headers"
    RESPONSE_SIZE = "response_size"


_MISSING = object()


class Context:
    """
    A node in an immutable chain of key/value pairs.

    The root node (``background()``) carries no value. Every other node
    holds exactly one pair and a reference to its parent.
    """

    __slots__ = ("_parent", "_key", "_value")

    def __init__(
        self,
        parent: Optional["Context"] = None,
        key: Any = _MISSING,
        value: Any = None,
    ):
        self._parent = parent
        self._key = key
        self._value = value

    def with_value(self, key: Hashable, value: Any) -> "Context":
        """Return a child context where ``key`` maps to ``value``."""
        if key is None:
            raise ValueError("context key must not be None")
        return Context(self, key, value)

    def value(self, key: Hashable, default: Any = None) -> Any:
        """Return the value of the nearest entry for ``key``, else ``default``."""
        node: Optional[Context] = self
        while node is not None:
            if node._key is not _MISSING and node._key == key:
                return node._value
            node = node._parent
        return default

    def __contains__(self, key: Hashable) -> bool:
        return self.value(key, _MISSING) is not _MISSING

    def items(self) -> Iterator[Tuple[Any, Any]]:
        """Yield visible (key, value) pairs, newest first, skipping shadowed keys."""
        seen = set()
        node: Optional[Context] = self
        while node is not None:
            if node._key is not _MISSING and node._key not in seen:
                seen.add(node._key)
                yield node._key, node._value
            node = node._parent

    def __repr__(self) -> str:
        pairs = ", ".join(f"{k!r}: {v!r}" for k, v in self.items())
        return f"Context({{{pairs}}})"


def background() -> Context:
    """Return a fresh, empty root context."""
    return Context()
