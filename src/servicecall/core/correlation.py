# src/servicecall/core/correlation.py
"""Correlation ids for logical calls.

One id per logical call, generated at call entry unless the caller supplied
one, and reused for every attempt's outgoing request. While the call runs
the id is bound into structlog contextvars so each log record carries it.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

DEFAULT_CORRELATION_HEADER = "X-Correlation-Id"


def new_correlation_id() -> str:
    """Generate a fresh correlation id."""
    return uuid.uuid4().hex


def resolve_correlation_id(explicit: str | None) -> str:
    """Return the caller's id when given, otherwise a fresh one."""
    if explicit:
        return explicit
    return new_correlation_id()


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[str]:
    """Bind correlation_id into the logging context for one logical call.

    Each asyncio task has its own contextvars copy, so concurrent calls do
    not see each other's ids.
    """
    with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
        yield correlation_id
