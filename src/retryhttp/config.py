"""Environment-driven configuration with precedence resolution.

:func:`load_config_from_env` merges, from high to low precedence:

1. Keyword overrides passed by the caller (e.g. parsed CLI flags).
2. ``RETRYHTTP_*`` environment variables.
3. The defaults declared on :class:`~retryhttp.models.ClientConfig`.

Only scalar settings are read from the environment; callables (retry
policy, dump loggers) and the ``http_client`` override can only be passed
as overrides.
"""

from __future__ import annotations

import os
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from retryhttp.exceptions import ConfigError
from retryhttp.models import ClientConfig

ENV_PREFIX = "RETRYHTTP_"

_ENV_FIELDS: dict[str, Callable[[str], Any]] = {
    "timeout": float,
    "max_idle_conns": int,
    "max_idle_conns_per_host": int,
    "max_conns_per_host": int,
    "max_retries": int,
    "retry_wait_min": float,
    "retry_wait_max": float,
}


def env_var_name(field: str) -> str:
    """Return the environment variable for a :class:`ClientConfig` field."""
    return f"{ENV_PREFIX}{field.upper()}"


def read_env_settings(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Parse every ``RETRYHTTP_*`` variable that is set and non-empty.

    Raises:
        ConfigError: If a variable cannot be converted to its field's type.
    """
    if environ is None:
        environ = os.environ
    settings: dict[str, Any] = {}
    for field, convert in _ENV_FIELDS.items():
        name = env_var_name(field)
        raw = environ.get(name, "").strip()
        if not raw:
            continue
        try:
            settings[field] = convert(raw)
        except ValueError as exc:
            raise ConfigError(
                f"Invalid value for {name}: {raw!r} (expected {convert.__name__})"
            ) from exc
    return settings


def load_config_from_env(
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> ClientConfig:
    """Build a :class:`ClientConfig` from the environment and *overrides*.

    ``None`` overrides are ignored so that unset CLI flags fall through to
    the environment.

    Raises:
        ConfigError: On malformed environment values or invalid settings.
    """
    settings = read_env_settings(environ)
    settings.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return ClientConfig(**settings)
    except ValidationError as exc:
        raise ConfigError(f"Invalid client configuration: {exc}") from exc
