# src/servicecall/registry/strategies.py
"""Instance-selection policies ("provider strategies").

A strategy picks one instance URL from the registry's current membership.
Strategies may keep their own cursor state; they never mutate the list they
are given.
"""

from __future__ import annotations

import itertools
import random
from collections.abc import Callable, Sequence
from typing import Protocol


class ProviderStrategy(Protocol):
    """Selects one instance out of the current membership."""

    name: str

    def select(self, instances: Sequence[str]) -> str:
        """Return one element of a non-empty instances sequence."""
        ...


class RoundRobinStrategy:
    """Cycle through instances in order."""

    name = "round_robin"

    def __init__(self) -> None:
        self._counter = itertools.count()

    def select(self, instances: Sequence[str]) -> str:
        # next() on itertools.count is atomic under the GIL
        return instances[next(self._counter) % len(instances)]


class RandomStrategy:
    """Pick a uniformly random instance."""

    name = "random"

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()

    def select(self, instances: Sequence[str]) -> str:
        return self._rng.choice(instances)


class StickyStrategy:
    """Keep returning the same instance while it stays a member.

    Falls back to the first instance when the sticky one disappears.
    """

    name = "sticky"

    def __init__(self) -> None:
        self._current: str | None = None

    def select(self, instances: Sequence[str]) -> str:
        if self._current is None or self._current not in instances:
            self._current = instances[0]
        return self._current


PROVIDER_STRATEGIES: dict[str, Callable[[], ProviderStrategy]] = {
    RoundRobinStrategy.name: RoundRobinStrategy,
    RandomStrategy.name: RandomStrategy,
    StickyStrategy.name: StickyStrategy,
}


def get_provider_strategy(name: str) -> ProviderStrategy:
    """Instantiate a strategy by name ("round_robin", "random", "sticky").

    Raises:
        ValueError: If the name is unknown
    """
    key = name.strip().lower().replace("-", "_")
    try:
        factory = PROVIDER_STRATEGIES[key]
    except KeyError:
        raise ValueError(f"unknown provider strategy {name!r}; expected one of {sorted(PROVIDER_STRATEGIES)}") from None
    return factory()
