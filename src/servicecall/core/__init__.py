"""Core infrastructure: configuration, logging and correlation context."""

from servicecall.core.config import ClientSettings, RegistrySettings, RetrySettings, load_settings
from servicecall.core.correlation import (
    DEFAULT_CORRELATION_HEADER,
    correlation_scope,
    new_correlation_id,
    resolve_correlation_id,
)
from servicecall.core.logging import configure_logging, get_logger

__all__ = [
    "DEFAULT_CORRELATION_HEADER",
    "ClientSettings",
    "RegistrySettings",
    "RetrySettings",
    "configure_logging",
    "correlation_scope",
    "get_logger",
    "load_settings",
    "new_correlation_id",
    "resolve_correlation_id",
]
