# src/servicecall/contracts/config/defaults.py
"""Default value registries for runtime configuration.

Two categories of defaults:

1. CLIENT_DEFAULTS: Defaults applied when a caller builds a client from a
   plain option dict instead of validated settings. These MUST match the
   Field defaults of ClientSettings/RetrySettings in servicecall.core.config.

2. OPTION_ALIASES: camelCase option names accepted at the option-dict trust
   boundary, mapped to their snake_case runtime names.
"""

from typing import Final

CLIENT_DEFAULTS: Final[dict[str, int | float | str]] = {
    # Per-attempt network timeout
    "request_timeout": 5.0,
    # Total attempts (first try included)
    "max_attempts": 3,
    # Backoff bounds, seconds
    "min_delay": 0.075,
    "max_delay": 0.75,
    "correlation_header_name": "X-Correlation-Id",
    "provider_strategy": "round_robin",
}

# Option-dict keys measured in milliseconds
MILLISECOND_OPTIONS: Final[frozenset[str]] = frozenset({"timeout", "minTimeout", "maxTimeout"})

OPTION_ALIASES: Final[dict[str, str]] = {
    "timeout": "request_timeout",
    "requestTimeout": "request_timeout",
    "retries": "max_attempts",
    "minTimeout": "min_delay",
    "maxTimeout": "max_delay",
    "correlationHeaderName": "correlation_header_name",
}
