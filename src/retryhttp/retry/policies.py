"""Reference retry policies."""

from __future__ import annotations

from typing import Optional

import httpx

from retryhttp.models import CheckRetry, RetryDecision

# Fragments httpx/httpcore and the OS put in the message of a connection
# that ended before a full response arrived.
EOF_MARKERS = (
    "EOF",
    "Server disconnected",
    "Connection reset",
    "connection was closed",
)


def do_not_retry(
    response: Optional[httpx.Response], error: Optional[BaseException]
) -> RetryDecision:
    """Never retry. The default policy."""
    return RetryDecision(False, None)


def retry_on_eof(
    response: Optional[httpx.Response], error: Optional[BaseException]
) -> RetryDecision:
    """Retry when the connection ended prematurely (EOF or reset).

    The decision error is an :class:`EOFError` chained to the transport
    error, so a call that gives up reports "EOF" whatever wording the
    transport used for the hang-up.
    """
    if error is not None and _is_eof(error):
        return RetryDecision(True, _as_eof(error))
    return RetryDecision(False, error)


def retry_on_status(*status_codes: int) -> CheckRetry:
    """Build a policy retrying responses with one of *status_codes*.

    Transport errors fall back to :func:`retry_on_eof`.
    """
    codes = frozenset(status_codes)

    def policy(
        response: Optional[httpx.Response], error: Optional[BaseException]
    ) -> RetryDecision:
        if error is None and response is not None:
            return RetryDecision(response.status_code in codes, None)
        return retry_on_eof(response, error)

    return policy


def _is_eof(error: BaseException) -> bool:
    seen: set[int] = set()
    exc: Optional[BaseException] = error
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        if isinstance(exc, (EOFError, ConnectionResetError)):
            return True
        message = str(exc)
        if any(marker in message for marker in EOF_MARKERS):
            return True
        exc = exc.__cause__ or exc.__context__
    return False


def _as_eof(error: BaseException) -> BaseException:
    if isinstance(error, EOFError) or "EOF" in str(error):
        return error
    eof = EOFError(f"unexpected EOF: {error}")
    eof.__cause__ = error
    return eof
