"""
Randomness for outcome determination. The engine draws exactly one random()
per match; anything with a random() -> float in [0, 1) can stand in.
"""
from __future__ import annotations

import random
from typing import Protocol


class RandomSource(Protocol):
    def random(self) -> float: ...


class SeededRNG:
    """Wrapper around random.Random for reproducible simulations."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._seed = seed

    @property
    def seed(self) -> int | None:
        return self._seed

    def random(self) -> float:
        return self._rng.random()

    def getstate(self):
        return self._rng.getstate()

    def setstate(self, state) -> None:
        self._rng.setstate(state)
