"""
pipekit - Error Handler Unit Tests
===================================

What we test:
    ✅ LogErrorHandler logs request correlation data and error context
    ✅ ErrorHandlerFunc adapts plain callables
"""

import logging

from pipekit.context import ContextKey, background
from pipekit.error_handler import ErrorHandlerFunc, LogErrorHandler, NopErrorHandler
from pipekit.exceptions import DecodeError


class TestLogErrorHandler:
    def test_logs_with_context(self, caplog):
        """Request id, method and path should come from the context."""
        ctx = (
            background()
            .with_value(ContextKey.REQUEST_ID, "rid-9")
            .with_value(ContextKey.REQUEST_METHOD, "POST")
            .with_value(ContextKey.REQUEST_PATH, "/notes")
        )
        err = DecodeError("empty body", context={"field": "title"})

        with caplog.at_level(logging.ERROR, logger="pipekit.errors"):
            LogErrorHandler().handle(ctx, err)

        record = caplog.records[0]
        assert record.levelno == logging.ERROR
        assert record.getMessage() == "[rid-9] POST /notes: empty body"
        assert record.error_type == "DecodeError"
        assert record.error_context == {"field": "title"}

    def test_missing_context_values(self, caplog):
        with caplog.at_level(logging.ERROR, logger="pipekit.errors"):
            LogErrorHandler().handle(background(), ValueError("boom"))

        assert caplog.records[0].getMessage() == "[-] - -: boom"
        assert caplog.records[0].error_context == {}


class TestErrorHandlerFunc:
    def test_forwards_arguments(self):
        calls = []
        ctx = background()
        err = ValueError("x")

        ErrorHandlerFunc(lambda c, e: calls.append((c, e))).handle(ctx, err)

        assert calls == [(ctx, err)]

    def test_nop_returns_none(self):
        assert NopErrorHandler().handle(background(), ValueError("x")) is None
