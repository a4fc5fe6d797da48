"""Shared data shapes for retryhttp.

**Configuration** -- :class:`ClientConfig`, the frozen Pydantic model holding
every option a :class:`~retryhttp.client.Client` is built from.

**Per-attempt values** -- :class:`RetryDecision`, returned by retry policies,
and :class:`AttemptOutcome`, produced by the retrying sender for every
physical attempt of a logical call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, model_validator


class RetryDecision(NamedTuple):
    """What a retry policy decided after one attempt.

    Attributes:
        should_retry: Whether another attempt should be scheduled.
        error: The error to surface if the call stops here. ``None`` keeps
            the attempt's own error.
    """

    should_retry: bool
    error: Optional[BaseException] = None


CheckRetry = Callable[[Optional[httpx.Response], Optional[BaseException]], RetryDecision]
"""Signature of a retry policy: ``(response, error) -> RetryDecision``."""

DumpLogger = Callable[[bytes], None]
"""Receives a wire-format dump of a request or response."""


@dataclass
class AttemptOutcome:
    """Result of one physical attempt.

    Either field may be ``None``; both are set when a policy surfaces an
    error alongside a response.
    """

    response: Optional[httpx.Response] = None
    error: Optional[BaseException] = None
    decision: Optional[RetryDecision] = None


class ClientConfig(BaseModel):
    """Options a :class:`~retryhttp.client.Client` is built from.

    Instances are frozen: assigning a field after construction raises a
    :class:`pydantic.ValidationError`. Build one directly with keywords, from
    option functions via :func:`~retryhttp.options.build_config`, or from the
    environment via :func:`~retryhttp.config.load_config_from_env`.

    Connection limits of ``0`` leave the underlying pool's defaults in place.
    When no ``check_retry`` policy is given, requests are never retried.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    http_client: Optional[httpx.Client] = Field(
        default=None, description="Caller-owned client used instead of a pooled one"
    )
    timeout: float = Field(default=30.0, gt=0, description="Per-attempt timeout in seconds")
    max_idle_conns: int = Field(default=0, ge=0, description="Max keep-alive connections")
    max_idle_conns_per_host: int = Field(
        default=0, ge=0, description="Max keep-alive connections per host"
    )
    max_conns_per_host: int = Field(default=0, ge=0, description="Max connections per host")
    max_retries: int = Field(default=0, ge=0, description="Retries after the first attempt")
    retry_wait_min: float = Field(default=1.0, ge=0, description="Minimum backoff in seconds")
    retry_wait_max: float = Field(default=30.0, ge=0, description="Maximum backoff in seconds")
    check_retry: Optional[CheckRetry] = Field(
        default=None, description="Retry policy evaluated after every attempt"
    )
    request_dump_logger: Optional[DumpLogger] = None
    dump_request_body: bool = False
    response_dump_logger: Optional[DumpLogger] = None
    dump_response_body: bool = False

    @model_validator(mode="after")
    def _check_wait_bounds(self) -> ClientConfig:
        if self.retry_wait_min > self.retry_wait_max:
            raise ValueError(
                f"retry_wait_min ({self.retry_wait_min}) must not exceed "
                f"retry_wait_max ({self.retry_wait_max})"
            )
        return self

    @property
    def owns_http_client(self) -> bool:
        return self.http_client is None
