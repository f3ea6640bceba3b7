"""
pipekit - Test Configuration (conftest.py)
===========================================

What:  Shared pytest fixtures for the test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures:
    recorder       in-memory ResponseWriter that records what was written
    make_request   factory for Starlette requests built from a raw ASGI scope
    asgi_send      fake ASGI ``send`` collecting messages in a list
"""

import os
from typing import Any, Dict, List, Optional

import pytest
from starlette.datastructures import MutableHeaders
from starlette.requests import Request

os.environ["LOG_LEVEL"] = "WARNING"


class RecordingWriter:
    """
    ResponseWriter that keeps everything in memory.

    Mirrors transport semantics: only the first status counts, and a write
    without a status implies 200.
    """

    def __init__(self):
        self.headers = MutableHeaders()
        self.code: Optional[int] = None
        self.header_calls: List[int] = []
        self.body = bytearray()
        # Header snapshot taken when the status line "went out"
        self.sent_headers: Dict[str, str] = {}

    async def write_header(self, status_code: int) -> None:
        self.header_calls.append(status_code)
        if self.code is None:
            self.code = status_code
            self.sent_headers = dict(self.headers.items())

    async def write(self, data: bytes) -> int:
        if self.code is None:
            await self.write_header(200)
        self.body += data
        return len(data)


@pytest.fixture
def recorder():
    return RecordingWriter()


def build_request(
    method: str = "GET",
    path: str = "/",
    body: bytes = b"",
    headers: Optional[Dict[str, str]] = None,
    query_string: bytes = b"",
    path_params: Optional[Dict[str, Any]] = None,
    client=("127.0.0.1", 51234),
) -> Request:
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "server": ("testserver", 80),
        "client": client,
        "root_path": "",
        "path": path,
        "raw_path": path.encode(),
        "query_string": query_string,
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "path_params": path_params or {},
    }
    sent = False

    async def receive():
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


@pytest.fixture
def make_request():
    return build_request


@pytest.fixture
def asgi_send():
    messages: List[Dict[str, Any]] = []

    async def send(message: Dict[str, Any]) -> None:
        messages.append(message)

    send.messages = messages
    return send
