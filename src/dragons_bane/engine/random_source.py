"""Injected randomness for the world engine.

Engine functions never touch the global ``random`` module. They take a
``RandomSource`` so combat and travel rolls are reproducible under a seed
and can be scripted in tests.
"""

from __future__ import annotations

import random
from typing import Protocol, runtime_checkable

from dragons_bane.core.logging import get_logger


logger = get_logger(__name__)


@runtime_checkable
class RandomSource(Protocol):
    """Minimal random interface consumed by the engine."""

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        ...

    def uniform(self, a: float, b: float) -> float:
        """Uniform float in [a, b]."""
        ...


class SeededRandom:
    """RandomSource backed by a private ``random.Random`` instance.

    Example:
        >>> rng = SeededRandom(seed=7)
        >>> 0.0 <= rng.random() < 1.0
        True
    """

    def __init__(self, *, seed: int | None = None) -> None:
        self._seed = seed
        self._generator = random.Random(seed)
        logger.debug("Random source initialized", seed=seed)

    @property
    def seed(self) -> int | None:
        return self._seed

    def random(self) -> float:
        return self._generator.random()

    def uniform(self, a: float, b: float) -> float:
        return self._generator.uniform(a, b)


__all__ = ["RandomSource", "SeededRandom"]
