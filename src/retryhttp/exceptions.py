"""Exception hierarchy for retryhttp.

All exceptions inherit from :class:`RetryHTTPError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`retryhttp.exit_codes`.
The command line catches ``RetryHTTPError`` and exits with the appropriate
code; library callers catch the specific subclasses they care about.

Subclass hierarchy::

    RetryHTTPError (exit 1)
    +-- RequestBuildError      (exit 2)
    +-- ConfigError            (exit 2)
    +-- ContextError           (exit 6)
    |   +-- ContextCancelledError  (exit 130)
    |   +-- DeadlineExceededError  (exit 6)
    +-- ResponseReadError      (exit 7)
    +-- ResponseDecodeError    (exit 7)
    +-- DumpError              (exit 1)
    +-- HTTPError              (exit derived from status)

:class:`HTTPError` is the single structured failure raised by
:class:`~retryhttp.client.Client` for every failed logical call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from retryhttp.exit_codes import (
    EXIT_CANCELLED,
    EXIT_CLIENT_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SERVER_ERROR,
)

if TYPE_CHECKING:
    import httpx


class RetryHTTPError(Exception):
    """Base exception for all retryhttp errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`retryhttp.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class RequestBuildError(RetryHTTPError):
    """Raised when a request cannot be built (bad URL, unencodable payload)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(RetryHTTPError):
    """Raised for invalid client options or malformed environment overrides."""

    exit_code = EXIT_INVALID_USAGE


class ContextError(RetryHTTPError):
    """Base class for request context failures."""

    exit_code = EXIT_CONNECTION_ERROR


class ContextCancelledError(ContextError):
    """Raised when the request context was cancelled."""

    exit_code = EXIT_CANCELLED

    def __init__(self, message: str = "context canceled", exit_code: int | None = None):
        super().__init__(message, exit_code)


class DeadlineExceededError(ContextError):
    """Raised when the request context deadline has passed."""

    def __init__(self, message: str = "context deadline exceeded", exit_code: int | None = None):
        super().__init__(message, exit_code)


class ResponseReadError(RetryHTTPError):
    """Raised when a response body could not be read.

    The message is prefixed with ``parsing response`` and the original
    exception is kept as ``__cause__``.
    """

    exit_code = EXIT_DECODE_ERROR

    @classmethod
    def wrap(cls, exc: BaseException) -> ResponseReadError:
        err = cls(f"parsing response: {exc}")
        err.__cause__ = exc
        return err


class ResponseDecodeError(RetryHTTPError):
    """Raised when a response body could not be decoded into the requested type."""

    exit_code = EXIT_DECODE_ERROR

    @classmethod
    def wrap(cls, exc: BaseException) -> ResponseDecodeError:
        err = cls(f"decoding response: {exc}")
        err.__cause__ = exc
        return err


class DumpError(RetryHTTPError):
    """Raised when a request or response cannot be serialised for a dump."""


class HTTPError(RetryHTTPError):
    """Structured failure of one logical call.

    Attributes (read-only):
        url: The request URL.
        status_code: The response status, or ``0`` when no response was received.
        body: The captured error body, ``""`` if none was captured.
        error: The underlying exception, if any.
        response: The response the failure was classified from, if any.

    The message embeds all four fields::

        request to https://x/y failed. httpStatus: [ 502 ] responseBody: [  ] error: [ <nil> ]

    Use :meth:`matches` for partial comparisons: a ``status_code`` of ``0`` or an
    empty ``body`` on the *target* act as wildcards.
    """

    def __init__(
        self,
        url: str,
        status_code: int = 0,
        body: str = "",
        error: Optional[BaseException] = None,
        response: Optional[httpx.Response] = None,
    ) -> None:
        self._url = url
        self._status_code = status_code
        self._body = body
        self._error = error
        self._response = response
        super().__init__(self._format())
        if error is not None:
            self.__cause__ = error

    def __reduce__(self) -> tuple[Any, ...]:
        # The live response holds a connection; it does not survive pickling.
        return (type(self), (self._url, self._status_code, self._body, self._error))

    @property
    def url(self) -> str:
        return self._url

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def body(self) -> str:
        return self._body

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def response(self) -> Optional[httpx.Response]:
        return self._response

    def _format(self) -> str:
        status = str(self.status_code) if self.status_code > 0 else "no status"
        error = str(self.error) if self.error is not None else "<nil>"
        return (
            f"request to {self.url} failed. "
            f"httpStatus: [ {status} ] responseBody: [ {self.body} ] "
            f"error: [ {error} ]"
        )

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        if isinstance(self.error, (ResponseReadError, ResponseDecodeError)):
            return EXIT_DECODE_ERROR
        if self.status_code >= 500:
            return EXIT_SERVER_ERROR
        if self.status_code >= 400:
            return EXIT_CLIENT_ERROR
        if isinstance(self.error, ContextCancelledError):
            return EXIT_CANCELLED
        return EXIT_CONNECTION_ERROR

    def matches(self, target: object) -> bool:
        """Return ``True`` if *target* describes this error.

        Status codes match when equal or when the target's is ``0``. Bodies
        match when the target's body is a substring of this one (so an empty
        target body matches anything). Underlying errors match by identity.
        """
        if not isinstance(target, HTTPError):
            return False
        return (
            _same_status_codes(self.status_code, target.status_code)
            and _same_bodies(self.body, target.body)
            and self.error is target.error
        )


def _same_status_codes(status: int, other: int) -> bool:
    return status == other or other == 0


def _same_bodies(body: str, other: str) -> bool:
    return other in body


def error_matches(exc: Optional[BaseException], target: HTTPError) -> bool:
    """Check *exc* and its ``__cause__`` chain against *target*.

    Returns ``True`` as soon as one :class:`HTTPError` in the chain
    :meth:`~HTTPError.matches` the target, or an exception in the chain is
    the target itself.
    """
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        if exc is target:
            return True
        if isinstance(exc, HTTPError) and exc.matches(target):
            return True
        exc = exc.__cause__
    return False
