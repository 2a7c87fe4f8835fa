"""Configuration models for newest-image-tag.

One explicit configuration object is built per invocation and passed to the
pipeline; nothing is read from module-level state.

Sources, highest precedence first:
    1. Command-line flags (applied by the CLI via ``with_overrides``)
    2. Environment variables prefixed ``NEWEST_IMAGE_TAG_``
       (nested fields use ``__``, e.g. ``NEWEST_IMAGE_TAG_CACHE__ENABLED=true``)
    3. Optional YAML file
    4. Defaults below

Example:
    >>> config = load_config()
    >>> config.worker_count
    30
    >>> config.retry.retry_count
    10
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

DEFAULT_WORKER_COUNT = 30
DEFAULT_RETRY_COUNT = 10
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_CACHE_TTL_SECONDS = 604800  # 7 days


class RegistryCredentials(BaseModel):
    """Basic-auth credentials for the registry.

    Credentials are only sent when both fields are non-empty.

    Examples:
        >>> RegistryCredentials(username="ci").auth is None
        True
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    username: str = Field(default="", description="Registry username")
    password: SecretStr = Field(default=SecretStr(""), description="Registry password")

    @property
    def auth(self) -> tuple[str, str] | None:
        """Return ``(username, password)`` for httpx, or None when incomplete."""
        password = self.password.get_secret_value()
        if self.username and password:
            return self.username, password
        return None


class RetryConfig(BaseModel):
    """Retry policy for registry GET requests.

    Attempt n (0-indexed) waits ``backoff_seconds * n`` before it is sent.

    Examples:
        >>> RetryConfig().max_attempts
        11
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    retry_count: int = Field(
        default=DEFAULT_RETRY_COUNT,
        ge=0,
        description="Retries after the first attempt",
    )
    timeout_seconds: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        gt=0,
        description="Timeout of a single attempt",
    )
    backoff_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Back-off step; attempt n waits n * backoff_seconds",
    )
    retry_transport_errors: bool = Field(
        default=True,
        description="Retry connection failures instead of failing on the first one",
    )

    @property
    def max_attempts(self) -> int:
        return self.retry_count + 1


class CacheConfig(BaseModel):
    """Redis cache for tag creation times.

    Examples:
        >>> CacheConfig().ttl_seconds
        604800
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = Field(default=False, description="Use Redis as a cache")
    host: str = Field(default="localhost", min_length=1, description="Redis host")
    port: int = Field(default=6379, ge=1, le=65535, description="Redis port")
    db: int = Field(default=0, ge=0, description="Redis database number")
    password: SecretStr | None = Field(default=None, description="Redis password")
    ttl_seconds: int = Field(
        default=DEFAULT_CACHE_TTL_SECONDS,
        ge=1,
        description="Time-to-live of cached tag dates",
    )
    socket_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Redis socket timeout",
    )


class NewestTagConfig(BaseSettings):
    """Complete configuration consumed by the resolution pipeline."""

    model_config = SettingsConfigDict(
        env_prefix="NEWEST_IMAGE_TAG_",
        env_nested_delimiter="__",
        extra="forbid",
        frozen=True,
    )

    credentials: RegistryCredentials = Field(
        default_factory=RegistryCredentials,
        description="Registry basic-auth credentials",
    )
    worker_count: int = Field(
        default=DEFAULT_WORKER_COUNT,
        ge=1,
        description="Number of concurrent workers resolving tags",
    )
    retry: RetryConfig = Field(default_factory=RetryConfig, description="Retry policy")
    cache: CacheConfig = Field(default_factory=CacheConfig, description="Cache settings")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Let the environment win over values passed in from the YAML file."""
        return env_settings, init_settings, file_secret_settings

    def with_overrides(self, overrides: dict[str, Any]) -> NewestTagConfig:
        """Return a copy with nested *overrides* applied.

        ``None`` values are ignored, so unset CLI flags keep the loaded value.

        Example:
            >>> cfg = NewestTagConfig().with_overrides({"cache": {"enabled": True}})
            >>> cfg.cache.enabled, cfg.cache.host
            (True, 'localhost')
        """
        merged = _merge(self.model_dump(), overrides)
        return type(self).model_validate(merged)


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *override* into *base*, skipping None values."""
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration values from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Dictionary of configuration values, or empty dict if the file is empty.

    Raises:
        FileNotFoundError: If config_path does not exist.
        ValueError: If the document is not a mapping.
    """
    with config_path.open() as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Configuration file {config_path} must contain a mapping"
        raise ValueError(msg)
    return data


def load_config(config_path: Path | None = None) -> NewestTagConfig:
    """Load configuration from an optional YAML file and the environment.

    Args:
        config_path: Optional YAML file whose values seed the configuration.

    Returns:
        Validated NewestTagConfig.

    Raises:
        pydantic.ValidationError: If a value is invalid.
    """
    yaml_config = load_yaml_config(config_path) if config_path is not None else {}
    return NewestTagConfig(**yaml_config)


__all__ = [
    "CacheConfig",
    "DEFAULT_CACHE_TTL_SECONDS",
    "DEFAULT_RETRY_COUNT",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_WORKER_COUNT",
    "NewestTagConfig",
    "RegistryCredentials",
    "RetryConfig",
    "load_config",
    "load_yaml_config",
]
