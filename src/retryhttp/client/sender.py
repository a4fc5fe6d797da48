"""Retrying sender: one logical send, many physical attempts.

:class:`RetryingSender` wraps an :class:`httpx.Client` (or anything with a
compatible ``send``) in a :class:`tenacity.Retrying` controller:

- every attempt is sent with ``stream=True`` and transport failures
  (:class:`httpx.RequestError`) are captured into an
  :class:`~retryhttp.models.AttemptOutcome` instead of raised;
- the configured retry policy decides after each attempt;
- waits grow exponentially between ``retry_wait_min`` and ``retry_wait_max``
  (a ``Retry-After`` header on 429/503 is honoured, capped at the maximum);
- the request's :class:`~retryhttp.context.RequestContext` is checked
  before each attempt and interrupts backoff waits.

The sender never builds an :class:`~retryhttp.exceptions.HTTPError`; it
returns the last outcome and leaves classification to the client.
"""

from __future__ import annotations

import email.utils
from datetime import datetime
from typing import Callable, Optional, Protocol

import httpcore
import httpx
import tenacity
from tenacity import RetryCallState
from tenacity.stop import stop_base
from tenacity.wait import wait_base

from retryhttp.context import RequestContext
from retryhttp.models import AttemptOutcome, CheckRetry, ClientConfig
from retryhttp.output import get_output
from retryhttp.retry.policies import do_not_retry

DEFAULT_MAX_CONNECTIONS = 100
DEFAULT_MAX_KEEPALIVE_CONNECTIONS = 20
RETRY_AFTER_STATUSES = frozenset({429, 503})


class Sender(Protocol):
    def send(self, request: httpx.Request, *, stream: bool = False) -> httpx.Response: ...


def build_limits(config: ClientConfig) -> httpx.Limits:
    """Translate the connection options into :class:`httpx.Limits`.

    The pool is per client rather than per host, so ``max_conns_per_host``
    caps all connections and the smaller of the two idle limits caps
    keep-alive connections. Zero means "library default".
    """
    idle = [n for n in (config.max_idle_conns, config.max_idle_conns_per_host) if n > 0]
    return httpx.Limits(
        max_connections=config.max_conns_per_host or DEFAULT_MAX_CONNECTIONS,
        max_keepalive_connections=min(idle) if idle else DEFAULT_MAX_KEEPALIVE_CONNECTIONS,
    )


def build_http_client(config: ClientConfig) -> httpx.Client:
    """Create the pooled client used when no ``http_client`` is configured."""
    return httpx.Client(
        timeout=config.timeout,
        follow_redirects=True,
        transport=httpx.HTTPTransport(limits=build_limits(config)),
    )


def has_connection_limits(config: ClientConfig) -> bool:
    return any(
        (config.max_idle_conns, config.max_idle_conns_per_host, config.max_conns_per_host)
    )


def patch_transport_limits(client: httpx.Client, config: ClientConfig) -> bool:
    """Apply the connection options to a caller-supplied client's pool.

    Only a plain :class:`httpx.HTTPTransport` backed by an
    :class:`httpcore.ConnectionPool` can be patched; custom transports are
    left alone.

    Returns:
        ``True`` if the pool was patched.
    """
    transport = getattr(client, "_transport", None)
    pool = getattr(transport, "_pool", None)
    if not isinstance(transport, httpx.HTTPTransport) or not isinstance(
        pool, httpcore.ConnectionPool
    ):
        get_output().debug(
            f"Custom transport {type(transport).__name__}: connection limits not applied"
        )
        return False
    limits = build_limits(config)
    pool._max_connections = limits.max_connections
    pool._max_keepalive_connections = min(
        limits.max_keepalive_connections or DEFAULT_MAX_KEEPALIVE_CONNECTIONS,
        pool._max_connections,
    )
    return True


class RetryingSender:
    """Send a request, retrying per the configured policy.

    Args:
        config: Frozen client configuration.
        sender: Object performing single attempts. Defaults to
            ``config.http_client`` or a new pooled :class:`httpx.Client`.
        sleep: Replacement for the backoff wait, called with seconds. By
            default waits on the request context so cancellation wakes it.
    """

    def __init__(
        self,
        config: ClientConfig,
        sender: Optional[Sender] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self._config = config
        self._policy: CheckRetry = config.check_retry or do_not_retry
        self._sleep = sleep
        if sender is None:
            if config.http_client is not None:
                if has_connection_limits(config):
                    patch_transport_limits(config.http_client, config)
                sender = config.http_client
            else:
                sender = build_http_client(config)
        self._sender = sender
        self._timeout = _sender_timeout(sender, config)

    @property
    def sender(self) -> Sender:
        return self._sender

    def send(self, request: httpx.Request) -> AttemptOutcome:
        """Run the attempt loop and return the final outcome.

        The outcome's error is the one returned by the policy's last
        decision when it is not ``None``, else the attempt's own error.
        """
        ctx = RequestContext.of(request)
        retrying = tenacity.Retrying(
            retry=_retry_if_policy(self._policy),
            stop=tenacity.stop_after_attempt(self._config.max_retries + 1) | _stop_when_done(ctx),
            wait=_wait_retry_after(
                tenacity.wait_exponential(
                    multiplier=self._config.retry_wait_min,
                    min=self._config.retry_wait_min,
                    max=self._config.retry_wait_max,
                ),
                cap=self._config.retry_wait_max,
            ),
            sleep=self._sleeper(ctx),
            before_sleep=self._before_sleep,
            retry_error_callback=self._give_up,
        )
        outcome: AttemptOutcome = retrying(self._attempt, request, ctx)
        if outcome.decision is not None and outcome.decision.error is not None:
            outcome.error = outcome.decision.error
        return outcome

    def close(self) -> None:
        close = getattr(self._sender, "close", None)
        if close is not None:
            close()

    # ------------------------------------------------------------------ #
    # tenacity hooks
    # ------------------------------------------------------------------ #

    def _attempt(self, request: httpx.Request, ctx: RequestContext) -> AttemptOutcome:
        ctx_error = ctx.error()
        if ctx_error is not None:
            return AttemptOutcome(error=ctx_error)
        attempt = _with_timeout(request, self._attempt_timeout(ctx))
        try:
            response = self._sender.send(attempt, stream=True)
        except httpx.RequestError as exc:
            return AttemptOutcome(error=exc)
        return AttemptOutcome(response=response)

    def _attempt_timeout(self, ctx: RequestContext) -> httpx.Timeout:
        remaining = ctx.remaining()
        if remaining is None:
            return self._timeout
        return httpx.Timeout(
            **{
                phase: remaining if seconds is None else min(seconds, remaining)
                for phase, seconds in self._timeout.as_dict().items()
            }
        )

    def _sleeper(self, ctx: RequestContext) -> Callable[[float], None]:
        def sleep(seconds: float) -> None:
            if self._sleep is not None:
                self._sleep(seconds)
            else:
                ctx.wait(seconds)

        return sleep

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        outcome: AttemptOutcome = retry_state.outcome.result()  # type: ignore[union-attr]
        if outcome.response is not None:
            outcome.response.close()
        wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
        reason = (
            f"status {outcome.response.status_code}"
            if outcome.response is not None
            else str(outcome.error)
        )
        get_output().debug(
            f"Attempt {retry_state.attempt_number}/{self._config.max_retries + 1} "
            f"failed ({reason}), retrying in {wait:.2f}s"
        )

    def _give_up(self, retry_state: RetryCallState) -> AttemptOutcome:
        outcome: AttemptOutcome = retry_state.outcome.result()  # type: ignore[union-attr]
        get_output().debug(f"Giving up after {retry_state.attempt_number} attempt(s)")
        return outcome


class _retry_if_policy(tenacity.retry_base):
    """Evaluate the retry policy once per attempt, recording its decision."""

    def __init__(self, policy: CheckRetry) -> None:
        self._policy = policy

    def __call__(self, retry_state: RetryCallState) -> bool:
        if retry_state.outcome is None or retry_state.outcome.failed:
            return False
        outcome: AttemptOutcome = retry_state.outcome.result()
        outcome.decision = self._policy(outcome.response, outcome.error)
        return outcome.decision.should_retry


class _stop_when_done(stop_base):
    """Stop as soon as the request context is cancelled or expired."""

    def __init__(self, ctx: RequestContext) -> None:
        self._ctx = ctx

    def __call__(self, retry_state: RetryCallState) -> bool:
        return self._ctx.done()


class _wait_retry_after(wait_base):
    """Prefer a ``Retry-After`` header on 429/503 over exponential backoff."""

    def __init__(self, fallback: wait_base, cap: float) -> None:
        self._fallback = fallback
        self._cap = cap

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is not None and not outcome.failed:
            response = outcome.result().response
            if response is not None and response.status_code in RETRY_AFTER_STATUSES:
                retry_after = parse_retry_after(response.headers.get("Retry-After"))
                if retry_after is not None:
                    return min(retry_after, self._cap)
        return self._fallback(retry_state)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a ``Retry-After`` value given in seconds or as an HTTP date."""
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)
    try:
        when = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        return None
    return max(0.0, (when - datetime.now(when.tzinfo)).total_seconds())


def _sender_timeout(sender: object, config: ClientConfig) -> httpx.Timeout:
    if config.http_client is None:
        return httpx.Timeout(config.timeout)
    timeout = getattr(sender, "timeout", None)
    if isinstance(timeout, httpx.Timeout):
        return timeout
    return httpx.Timeout(config.timeout)


def _with_timeout(request: httpx.Request, timeout: httpx.Timeout) -> httpx.Request:
    """Copy *request* for one attempt, carrying that attempt's timeout.

    The copy shares the body stream and headers, so the caller's request
    keeps its own extensions across attempts.
    """
    return httpx.Request(
        request.method,
        request.url,
        headers=request.headers,
        stream=request.stream,
        extensions={**request.extensions, "timeout": timeout.as_dict()},
    )
