"""Option functions for building a :class:`~retryhttp.models.ClientConfig`.

Each ``with_*`` function returns an :data:`Option` that records one setting.
:func:`build_config` applies the options in order (later options win) and
freezes the result::

    config = build_config(
        with_timeout(10),
        with_max_retries(2),
        with_check_retry_policy(retry_on_eof),
    )
"""

from __future__ import annotations

from typing import Any, Callable

import httpx
from pydantic import ValidationError

from retryhttp.exceptions import ConfigError
from retryhttp.models import CheckRetry, ClientConfig, DumpLogger

Option = Callable[[dict[str, Any]], None]


def _set(**values: Any) -> Option:
    def option(settings: dict[str, Any]) -> None:
        settings.update(values)

    return option


def with_http_client(http_client: httpx.Client) -> Option:
    """Use a caller-owned :class:`httpx.Client` instead of a pooled one."""
    return _set(http_client=http_client)


def with_timeout(seconds: float) -> Option:
    return _set(timeout=seconds)


def with_max_idle_conns(n: int) -> Option:
    """Maximum number of idle (keep-alive) connections across all hosts."""
    return _set(max_idle_conns=n)


def with_max_idle_conns_per_host(n: int) -> Option:
    return _set(max_idle_conns_per_host=n)


def with_max_conns_per_host(n: int) -> Option:
    return _set(max_conns_per_host=n)


def with_max_retries(n: int) -> Option:
    return _set(max_retries=n)


def with_retry_wait_min(seconds: float) -> Option:
    return _set(retry_wait_min=seconds)


def with_retry_wait_max(seconds: float) -> Option:
    return _set(retry_wait_max=seconds)


def with_check_retry_policy(policy: CheckRetry) -> Option:
    """Policy called after each attempt to decide whether to retry."""
    return _set(check_retry=policy)


def with_request_dump_logger(logger: DumpLogger, include_body: bool = False) -> Option:
    """Pass a wire dump of every outgoing request to *logger*."""
    return _set(request_dump_logger=logger, dump_request_body=include_body)


def with_response_dump_logger(logger: DumpLogger, include_body: bool = False) -> Option:
    """Pass a wire dump of every final response to *logger*."""
    return _set(response_dump_logger=logger, dump_response_body=include_body)


def build_config(*options: Option, base: ClientConfig | None = None) -> ClientConfig:
    """Apply *options* on top of *base* (or the defaults) and freeze the result.

    Raises:
        ConfigError: If an option value is invalid.
    """
    settings: dict[str, Any] = dict(base) if base is not None else {}
    for option in options:
        option(settings)
    try:
        return ClientConfig(**settings)
    except ValidationError as exc:
        raise ConfigError(f"Invalid client options: {exc}") from exc
