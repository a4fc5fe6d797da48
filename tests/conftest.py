"""Shared test fixtures for retryhttp.

Provides helpers for building clients on top of :class:`httpx.MockTransport`,
recording dump loggers, and isolating the global output manager and the
``RETRYHTTP_*`` environment between tests.
"""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from retryhttp.output import OutputManager, reset_output, set_output

Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Install a quiet, colourless output manager for every test.

    The manager caches sys.stdout/sys.stderr at creation time, so it is
    dropped after each test to avoid writing to streams captured by an
    earlier test.
    """
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep RETRYHTTP_* variables from the developer's shell out of tests."""
    for var in [
        "RETRYHTTP_TIMEOUT",
        "RETRYHTTP_MAX_RETRIES",
        "RETRYHTTP_RETRY_WAIT_MIN",
        "RETRYHTTP_RETRY_WAIT_MAX",
        "RETRYHTTP_MAX_IDLE_CONNS",
        "RETRYHTTP_MAX_IDLE_CONNS_PER_HOST",
        "RETRYHTTP_MAX_CONNS_PER_HOST",
    ]:
        monkeypatch.delenv(var, raising=False)


# ---------------------------------------------------------------------------
# Transport helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_http_client() -> Callable[[Handler], httpx.Client]:
    """Factory building an :class:`httpx.Client` on a MockTransport."""
    clients: list[httpx.Client] = []

    def factory(handler: Handler) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


@pytest.fixture
def dump_sink() -> list[bytes]:
    """A list collecting dumps; pass ``dump_sink.append`` as a dump logger."""
    return []
