# src/servicecall/contracts/config/__init__.py
"""Configuration contracts subpackage.

This subpackage contains:
- Runtime config dataclasses (runtime.py) - what the engine consumes
- Default registries (defaults.py) - CLIENT_DEFAULTS, OPTION_ALIASES

NOTE: Settings classes (ClientSettings, RetrySettings) are NOT here.
      Import them from servicecall.core.config to avoid breaking the leaf boundary.
"""

from servicecall.contracts.config.defaults import CLIENT_DEFAULTS, OPTION_ALIASES
from servicecall.contracts.config.runtime import RuntimeClientConfig

__all__ = [
    "CLIENT_DEFAULTS",
    "OPTION_ALIASES",
    "RuntimeClientConfig",
]
