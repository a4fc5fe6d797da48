"""Cancellation and deadline context carried by a request.

A :class:`RequestContext` travels with an :class:`httpx.Request` in its
``extensions`` mapping. The retrying sender consults it before every attempt
and during every backoff wait, so cancelling the context (from another
thread) or letting its deadline pass stops the logical call without
scheduling further attempts.

Example::

    ctx = RequestContext(timeout=5.0)
    request = new_request("GET", "https://api.example.com/users", context=ctx)
    client.send_request(request)
"""

from __future__ import annotations

import threading
import time
from typing import Optional

import httpx

from retryhttp.exceptions import ContextCancelledError, ContextError, DeadlineExceededError

CONTEXT_EXTENSION = "retryhttp.context"


class RequestContext:
    """Cancellation signal with an optional monotonic deadline.

    Cancelling wakes a pending backoff wait and stops any further attempt,
    but it does not interrupt a send already in flight. Only the deadline
    bounds an in-flight attempt, through that attempt's timeout.

    Args:
        timeout: Seconds from now until the deadline. Ignored when
            *deadline* is given.
        deadline: Absolute :func:`time.monotonic` deadline.
    """

    def __init__(self, timeout: Optional[float] = None, deadline: Optional[float] = None) -> None:
        if deadline is None and timeout is not None:
            deadline = time.monotonic() + timeout
        self._deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> RequestContext:
        """A context that is never cancelled and never expires."""
        return cls()

    @classmethod
    def of(cls, request: httpx.Request) -> RequestContext:
        """Return the context attached to *request*, or a background one."""
        ctx = request.extensions.get(CONTEXT_EXTENSION)
        if isinstance(ctx, RequestContext):
            return ctx
        return cls.background()

    def attach(self, request: httpx.Request) -> httpx.Request:
        request.extensions[CONTEXT_EXTENSION] = self
        return request

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Cancel the context, waking any in-progress :meth:`wait`."""
        self._cancelled.set()

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline, ``None`` when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def done(self) -> bool:
        return self.cancelled or self.expired()

    def error(self) -> Optional[ContextError]:
        """The error describing why the context is done, if it is."""
        if self.cancelled:
            return ContextCancelledError()
        if self.expired():
            return DeadlineExceededError()
        return None

    def wait(self, seconds: float) -> bool:
        """Block for up to *seconds*, returning early if the context ends.

        Returns:
            ``True`` if the context is done when the wait ends.
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds > 0:
            self._cancelled.wait(seconds)
        return self.done()
