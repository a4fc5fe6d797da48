"""Tests for RequestContext cancellation and deadlines."""

from __future__ import annotations

import threading
import time

import httpx

from retryhttp.context import CONTEXT_EXTENSION, RequestContext
from retryhttp.exceptions import ContextCancelledError, DeadlineExceededError


class TestRequestContext:
    def test_background_is_never_done(self) -> None:
        ctx = RequestContext.background()
        assert ctx.deadline is None
        assert ctx.remaining() is None
        assert not ctx.done()
        assert ctx.error() is None

    def test_cancel(self) -> None:
        ctx = RequestContext()
        ctx.cancel()
        assert ctx.cancelled
        assert ctx.done()
        assert isinstance(ctx.error(), ContextCancelledError)

    def test_expired_deadline(self) -> None:
        ctx = RequestContext(deadline=time.monotonic() - 1)
        assert ctx.expired()
        assert ctx.remaining() == 0.0
        assert isinstance(ctx.error(), DeadlineExceededError)

    def test_timeout_sets_deadline(self) -> None:
        before = time.monotonic()
        ctx = RequestContext(timeout=10)
        assert ctx.deadline is not None
        assert before + 10 <= ctx.deadline <= time.monotonic() + 10
        assert 0 < ctx.remaining() <= 10

    def test_cancel_wins_over_deadline(self) -> None:
        ctx = RequestContext(deadline=time.monotonic() - 1)
        ctx.cancel()
        assert isinstance(ctx.error(), ContextCancelledError)

    def test_wait_returns_early_on_cancel(self) -> None:
        ctx = RequestContext()
        timer = threading.Timer(0.05, ctx.cancel)
        timer.start()
        started = time.monotonic()
        assert ctx.wait(5.0) is True
        assert time.monotonic() - started < 4.0
        timer.join()

    def test_wait_capped_by_deadline(self) -> None:
        ctx = RequestContext(timeout=0.05)
        started = time.monotonic()
        assert ctx.wait(5.0) is True
        assert time.monotonic() - started < 4.0

    def test_wait_zero(self) -> None:
        assert RequestContext().wait(0) is False


class TestAttach:
    def test_attach_and_lookup(self) -> None:
        request = httpx.Request("GET", "https://api.example.com")
        ctx = RequestContext()
        assert ctx.attach(request) is request
        assert request.extensions[CONTEXT_EXTENSION] is ctx
        assert RequestContext.of(request) is ctx

    def test_lookup_without_context(self) -> None:
        request = httpx.Request("GET", "https://api.example.com")
        ctx = RequestContext.of(request)
        assert not ctx.done()
