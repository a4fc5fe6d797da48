"""Tests for retryhttp.config and retryhttp.options: option functions and env precedence."""

from __future__ import annotations

import httpx
import pytest
from pydantic import ValidationError

from retryhttp.config import env_var_name, load_config_from_env, read_env_settings
from retryhttp.exceptions import ConfigError
from retryhttp.models import ClientConfig
from retryhttp.options import (
    build_config,
    with_check_retry_policy,
    with_http_client,
    with_max_conns_per_host,
    with_max_idle_conns,
    with_max_idle_conns_per_host,
    with_max_retries,
    with_request_dump_logger,
    with_response_dump_logger,
    with_retry_wait_max,
    with_retry_wait_min,
    with_timeout,
)
from retryhttp.retry import retry_on_eof


# ---------------------------------------------------------------------------
# ClientConfig defaults
# ---------------------------------------------------------------------------


class TestClientConfig:
    def test_defaults(self) -> None:
        config = ClientConfig()
        assert config.http_client is None
        assert config.timeout == 30.0
        assert config.max_retries == 0
        assert config.check_retry is None
        assert config.max_idle_conns == 0
        assert config.max_idle_conns_per_host == 0
        assert config.max_conns_per_host == 0
        assert config.retry_wait_min <= config.retry_wait_max
        assert config.request_dump_logger is None
        assert config.dump_request_body is False
        assert config.owns_http_client

    def test_frozen(self) -> None:
        config = ClientConfig()
        with pytest.raises(ValidationError):
            config.timeout = 5  # type: ignore[misc]

    def test_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            ClientConfig(retries=3)  # type: ignore[call-arg]

    def test_wait_bounds(self) -> None:
        with pytest.raises(ValidationError, match="retry_wait_min"):
            ClientConfig(retry_wait_min=10, retry_wait_max=1)

    def test_negative_limits_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ClientConfig(max_conns_per_host=-1)


# ---------------------------------------------------------------------------
# Option functions
# ---------------------------------------------------------------------------


class TestBuildConfig:
    def test_no_options(self) -> None:
        assert build_config() == ClientConfig()

    def test_every_option(self) -> None:
        sink: list[bytes] = []
        http_client = httpx.Client()
        try:
            config = build_config(
                with_http_client(http_client),
                with_timeout(5),
                with_max_idle_conns(10),
                with_max_idle_conns_per_host(4),
                with_max_conns_per_host(8),
                with_max_retries(3),
                with_retry_wait_min(0.5),
                with_retry_wait_max(2),
                with_check_retry_policy(retry_on_eof),
                with_request_dump_logger(sink.append, include_body=True),
                with_response_dump_logger(sink.append),
            )
        finally:
            http_client.close()
        assert config.http_client is http_client
        assert not config.owns_http_client
        assert config.timeout == 5
        assert config.max_idle_conns == 10
        assert config.max_idle_conns_per_host == 4
        assert config.max_conns_per_host == 8
        assert config.max_retries == 3
        assert config.retry_wait_min == 0.5
        assert config.retry_wait_max == 2
        assert config.check_retry is retry_on_eof
        assert config.request_dump_logger == sink.append
        assert config.dump_request_body is True
        assert config.response_dump_logger == sink.append
        assert config.dump_response_body is False

    def test_later_options_win(self) -> None:
        config = build_config(with_max_retries(1), with_max_retries(4))
        assert config.max_retries == 4

    def test_base_is_extended(self) -> None:
        base = build_config(with_timeout(3))
        config = build_config(with_max_retries(2), base=base)
        assert config.timeout == 3
        assert config.max_retries == 2
        assert base.max_retries == 0

    def test_invalid_value(self) -> None:
        with pytest.raises(ConfigError, match="Invalid client options"):
            build_config(with_timeout(0))

    def test_invalid_wait_bounds(self) -> None:
        with pytest.raises(ConfigError):
            build_config(with_retry_wait_min(5), with_retry_wait_max(1))


# ---------------------------------------------------------------------------
# Environment precedence
# ---------------------------------------------------------------------------


class TestEnv:
    def test_var_name(self) -> None:
        assert env_var_name("max_retries") == "RETRYHTTP_MAX_RETRIES"

    def test_reads_set_values(self) -> None:
        settings = read_env_settings(
            {"RETRYHTTP_TIMEOUT": "2.5", "RETRYHTTP_MAX_RETRIES": "3", "UNRELATED": "x"}
        )
        assert settings == {"timeout": 2.5, "max_retries": 3}

    def test_empty_values_ignored(self) -> None:
        assert read_env_settings({"RETRYHTTP_TIMEOUT": "  "}) == {}

    def test_malformed_value(self) -> None:
        with pytest.raises(ConfigError, match="RETRYHTTP_MAX_RETRIES"):
            read_env_settings({"RETRYHTTP_MAX_RETRIES": "many"})

    def test_reads_os_environ(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RETRYHTTP_MAX_CONNS_PER_HOST", "7")
        assert load_config_from_env().max_conns_per_host == 7

    def test_overrides_beat_env(self) -> None:
        config = load_config_from_env(
            {"RETRYHTTP_TIMEOUT": "2", "RETRYHTTP_MAX_RETRIES": "1"},
            timeout=9.0,
        )
        assert config.timeout == 9.0
        assert config.max_retries == 1

    def test_none_overrides_fall_through(self) -> None:
        config = load_config_from_env({"RETRYHTTP_TIMEOUT": "2"}, timeout=None)
        assert config.timeout == 2.0

    def test_defaults_when_unset(self) -> None:
        assert load_config_from_env({}) == ClientConfig()

    def test_invalid_combination(self) -> None:
        with pytest.raises(ConfigError, match="Invalid client configuration"):
            load_config_from_env({"RETRYHTTP_TIMEOUT": "-1"})
