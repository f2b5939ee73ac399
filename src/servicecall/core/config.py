# src/servicecall/core/config.py
"""
Configuration schema and loading for servicecall clients.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Example YAML:
    service_name: content/sport/repository/v1
    request_timeout_seconds: 5
    retry:
      max_attempts: 3
      min_delay_seconds: 0.075
      max_delay_seconds: 0.75
    registry:
      kind: static
      instances:
        - http://10.0.0.1:8080
        - http://10.0.0.2:8080
"""

import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from servicecall.contracts.config.defaults import CLIENT_DEFAULTS


class RetrySettings(BaseModel):
    """Retry behavior configuration.

    max_attempts counts every attempt including the first.
    """

    model_config = {"frozen": True}

    max_attempts: int = Field(default=int(CLIENT_DEFAULTS["max_attempts"]), gt=0, description="Maximum attempts per call")
    min_delay_seconds: float = Field(default=float(CLIENT_DEFAULTS["min_delay"]), ge=0, description="Minimum backoff delay")
    max_delay_seconds: float = Field(default=float(CLIENT_DEFAULTS["max_delay"]), ge=0, description="Maximum backoff delay")

    @model_validator(mode="after")
    def validate_delay_bounds(self) -> "RetrySettings":
        """min_delay_seconds must not exceed max_delay_seconds."""
        if self.min_delay_seconds > self.max_delay_seconds:
            raise ValueError(
                f"min_delay_seconds ({self.min_delay_seconds}) must be <= max_delay_seconds ({self.max_delay_seconds})"
            )
        return self


class RegistrySettings(BaseModel):
    """Service registry configuration.

    Only the in-process static registry ships with servicecall; other
    registries are passed to ServiceClient directly.
    """

    model_config = {"frozen": True}

    kind: Literal["static"] = Field(default="static", description="Registry implementation")
    instances: list[str] = Field(default_factory=list, description="Instance base URLs for the static registry")
    connected: bool = Field(default=True, description="Initial connectivity of the static registry")

    @field_validator("instances")
    @classmethod
    def validate_instance_urls(cls, v: list[str]) -> list[str]:
        """Instance URLs must be absolute http(s) URLs."""
        for url in v:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"instance URL must start with http:// or https://, got {url!r}")
        return v


class ClientSettings(BaseModel):
    """Top-level client configuration."""

    model_config = {"frozen": True}

    service_name: str = Field(min_length=1, description="Logical name of the target service")
    request_timeout_seconds: float = Field(
        default=float(CLIENT_DEFAULTS["request_timeout"]),
        gt=0,
        description="Per-attempt network timeout",
    )
    retry: RetrySettings = Field(default_factory=RetrySettings, description="Retry and backoff bounds")
    correlation_header_name: str = Field(
        default=str(CLIENT_DEFAULTS["correlation_header_name"]),
        min_length=1,
        description="Header carrying the correlation id",
    )
    provider_strategy: str = Field(
        default=str(CLIENT_DEFAULTS["provider_strategy"]),
        description="Instance-selection policy delegated to the registry",
    )
    verbose: bool = Field(default=False, description="Log instance resolution and requests at info level")
    registry: RegistrySettings = Field(default_factory=RegistrySettings, description="Registry configuration")

    @field_validator("provider_strategy")
    @classmethod
    def validate_provider_strategy(cls, v: str) -> str:
        """Strategy must be one the registry package knows."""
        from servicecall.registry.strategies import PROVIDER_STRATEGIES

        normalised = v.strip().lower().replace("-", "_")
        if normalised not in PROVIDER_STRATEGIES:
            raise ValueError(f"unknown provider_strategy {v!r}; expected one of {sorted(PROVIDER_STRATEGIES)}")
        return normalised


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """
    import os

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)  # None if no default specified
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default - keep original (validation will likely reject it)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lowercase_keys(value: Any) -> Any:
    """Dynaconf upper-cases keys at every level; Pydantic fields are lowercase."""
    if isinstance(value, dict):
        return {str(k).lower(): _lowercase_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lowercase_keys(item) for item in value]
    return value


def load_settings(config_path: Path) -> ClientSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (SERVICECALL_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: SERVICECALL_RETRY__MAX_ATTEMPTS for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated ClientSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="SERVICECALL",
        settings_files=[str(config_path)],
        environments=False,  # No [default]/[production] sections
        load_dotenv=False,  # Don't auto-load .env
        merge_enabled=True,  # Deep merge nested dicts
    )

    # Filter out internal Dynaconf settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _lowercase_keys(raw_config)

    raw_config = _expand_env_vars(raw_config)

    return ClientSettings(**raw_config)
