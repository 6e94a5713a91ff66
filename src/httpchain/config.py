"""Environment-driven configuration for the request pipeline.

This module handles the knobs that can be tuned without code changes:

* **Retry presets** -- :func:`load_retry_config` reads the
  ``HTTPCHAIN_RETRY_*`` variables into a :class:`RetryConfig` used by
  :meth:`~httpchain.interceptors.retry.RetryInterceptor.on_token_expired`
  and :meth:`~httpchain.interceptors.retry.RetryInterceptor.on_retryable_status_codes`.
* **Executor sizing** -- :func:`executor_threads` reads
  ``HTTPCHAIN_EXECUTOR_THREADS``.
* **Credential resolution** -- :func:`resolve_credential` reads secrets
  from env vars, files or literal values.

Invalid values raise :class:`~httpchain.exceptions.ConfigError` when the
configuration is loaded, never when a request is sent.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from httpchain.exceptions import ConfigError

ENV_TOKEN_EXPIRED_MAX_RETRIES = "HTTPCHAIN_RETRY_TOKEN_EXPIRED_MAX_RETRIES"
ENV_STATUS_CODES_MAX_RETRIES = "HTTPCHAIN_RETRY_STATUS_CODES_MAX_RETRIES"
ENV_STATUS_CODES_BACKOFF_ENABLED = "HTTPCHAIN_RETRY_STATUS_CODES_BACKOFF_ENABLED"
ENV_STATUS_CODES_INITIAL_INTERVAL_MS = "HTTPCHAIN_RETRY_STATUS_CODES_INITIAL_INTERVAL_MS"
ENV_EXECUTOR_THREADS = "HTTPCHAIN_EXECUTOR_THREADS"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class RetryConfig(BaseModel):
    """Settings for the built-in retry presets.

    ``*_max_retries`` values count attempts, so ``2`` means one retry.
    """

    token_expired_max_retries: int = Field(default=2, ge=1)
    status_codes_max_retries: int = Field(default=10, ge=1)
    status_codes_backoff_enabled: bool = True
    status_codes_initial_interval: float = Field(
        default=0.02, gt=0, description="Initial retry interval in seconds"
    )


def _env_int(name: str, minimum: int) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_bool(name: str) -> Optional[bool]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def load_retry_config() -> RetryConfig:
    """Build a :class:`RetryConfig` from ``HTTPCHAIN_RETRY_*`` variables.

    Unset variables keep their defaults.

    Raises:
        ConfigError: If a variable is set to an invalid value.
    """
    values: dict[str, object] = {}

    token_expired = _env_int(ENV_TOKEN_EXPIRED_MAX_RETRIES, 1)
    if token_expired is not None:
        values["token_expired_max_retries"] = token_expired

    status_codes = _env_int(ENV_STATUS_CODES_MAX_RETRIES, 1)
    if status_codes is not None:
        values["status_codes_max_retries"] = status_codes

    backoff = _env_bool(ENV_STATUS_CODES_BACKOFF_ENABLED)
    if backoff is not None:
        values["status_codes_backoff_enabled"] = backoff

    interval_ms = _env_int(ENV_STATUS_CODES_INITIAL_INTERVAL_MS, 1)
    if interval_ms is not None:
        values["status_codes_initial_interval"] = interval_ms / 1000.0

    return RetryConfig(**values)  # type: ignore[arg-type]


def executor_threads(default: int = 4) -> int:
    """Return the size of the shared executor from ``HTTPCHAIN_EXECUTOR_THREADS``."""
    value = _env_int(ENV_EXECUTOR_THREADS, 1)
    return default if value is None else value


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - anything else -- used verbatim

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved or resolves to nothing.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if not value:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            value = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc
        if not value:
            raise ConfigError(f"Credential file is empty: {path}")
        return value

    if not source:
        raise ConfigError("Credential source is empty")
    return source
