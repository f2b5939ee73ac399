# src/servicecall/contracts/config/runtime.py
"""Runtime configuration dataclasses.

RuntimeClientConfig is what the engine consumes. It is built either from
validated Settings (servicecall.core.config) or from a loose option dict
supplied by a caller.

Design Principles:
1. Frozen (immutable) - runtime config never changes once a client exists
2. Slots - prevents attribute typos
3. Factory methods - from_settings(), from_options(), default()
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from servicecall.contracts.config.defaults import CLIENT_DEFAULTS, MILLISECOND_OPTIONS, OPTION_ALIASES
from servicecall.contracts.retry import RetryPolicy

if TYPE_CHECKING:
    from servicecall.core.config import ClientSettings


def _validate_int_field(field_name: str, value: Any) -> int:
    """Validate and convert an option field to int.

    Raises:
        ValueError: If value is None, non-numeric, or cannot be converted
    """
    if value is None:
        raise ValueError(f"Invalid client option: {field_name} must be numeric, got None")

    # Already int - pass through (but not bool, which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Invalid client option: {field_name} must be finite, got {value}")
        return int(value)

    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Invalid client option: {field_name} must be numeric, got {value!r}") from None

    type_name = type(value).__name__
    raise ValueError(f"Invalid client option: {field_name} must be numeric, got {type_name}")


def _validate_float_field(field_name: str, value: Any) -> float:
    """Validate and convert an option field to a finite float.

    Raises:
        ValueError: If value is None, non-numeric, non-finite, or cannot be converted
    """
    if value is None:
        raise ValueError(f"Invalid client option: {field_name} must be numeric, got None")

    if isinstance(value, bool):
        raise ValueError(f"Invalid client option: {field_name} must be numeric, got bool")

    if isinstance(value, int | float):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value)
        except ValueError:
            raise ValueError(f"Invalid client option: {field_name} must be numeric, got {value!r}") from None
    else:
        type_name = type(value).__name__
        raise ValueError(f"Invalid client option: {field_name} must be numeric, got {type_name}")

    if not math.isfinite(result):
        raise ValueError(f"Invalid client option: {field_name} must be finite, got {value!r}")
    return result


def _normalise_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase/millisecond option keys onto runtime names and seconds."""
    normalised: dict[str, Any] = {}
    for key, value in options.items():
        runtime_key = OPTION_ALIASES.get(key, key)
        if key in MILLISECOND_OPTIONS and value is not None:
            value = _validate_float_field(key, value) / 1000.0
        normalised[runtime_key] = value
    return normalised


@dataclass(frozen=True, slots=True)
class RuntimeClientConfig:
    """Runtime configuration for one ServiceClient.

    Field Origins:
        - service_name: ClientSettings.service_name
        - retry: ClientSettings.retry (RetrySettings -> RetryPolicy)
        - request_timeout: ClientSettings.request_timeout_seconds (renamed)
        - correlation_header_name: ClientSettings.correlation_header_name
        - verbose: ClientSettings.verbose
    """

    service_name: str
    retry: RetryPolicy
    request_timeout: float
    correlation_header_name: str
    verbose: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.service_name:
            raise ValueError("service_name is required")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if not self.correlation_header_name:
            raise ValueError("correlation_header_name must not be empty")

    @classmethod
    def default(cls, service_name: str) -> "RuntimeClientConfig":
        """Factory for default configuration of a service."""
        return cls.from_options({"service_name": service_name})

    @classmethod
    def from_settings(cls, settings: "ClientSettings") -> "RuntimeClientConfig":
        """Factory from validated ClientSettings.

        Field Mapping:
            settings.retry.max_attempts -> retry.max_attempts
            settings.retry.min_delay_seconds -> retry.min_delay
            settings.retry.max_delay_seconds -> retry.max_delay
            settings.request_timeout_seconds -> request_timeout
        """
        return cls(
            service_name=settings.service_name,
            retry=RetryPolicy(
                max_attempts=settings.retry.max_attempts,
                min_delay=settings.retry.min_delay_seconds,
                max_delay=settings.retry.max_delay_seconds,
            ),
            request_timeout=settings.request_timeout_seconds,
            correlation_header_name=settings.correlation_header_name,
            verbose=settings.verbose,
        )

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "RuntimeClientConfig":
        """Factory from a loose option dict.

        Accepts snake_case runtime names (seconds) and the camelCase names
        (``timeout``, ``retries``, ``minTimeout``, ``maxTimeout`` in
        milliseconds; ``correlationHeaderName``).
        Missing fields use CLIENT_DEFAULTS.

        This is a trust boundary: out-of-range numbers are clamped to safe
        minimums, non-numeric values raise ValueError naming the field.

        Raises:
            ValueError: If service_name is missing or a value is non-numeric
        """
        full = {**CLIENT_DEFAULTS, **_normalise_options(options)}

        service_name = full.get("service_name") or full.get("serviceName")
        if not service_name:
            raise ValueError("argument 'service_name' is required")

        max_attempts = _validate_int_field("max_attempts", full["max_attempts"])
        min_delay = _validate_float_field("min_delay", full["min_delay"])
        max_delay = _validate_float_field("max_delay", full["max_delay"])
        request_timeout = _validate_float_field("request_timeout", full["request_timeout"])

        min_delay = max(0.0, min_delay)
        return cls(
            service_name=str(service_name),
            retry=RetryPolicy(
                max_attempts=max(1, max_attempts),
                min_delay=min_delay,
                max_delay=max(min_delay, max_delay),
            ),
            request_timeout=max(0.001, request_timeout),
            correlation_header_name=str(full["correlation_header_name"]),
            verbose=bool(full.get("verbose", False)),
        )
