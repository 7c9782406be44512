"""Seeded randomness and sampling helpers.

All generation is driven by :class:`Mulberry32`, a 32-bit generator whose
output sequence is a pure function of its seed. Retry loops derive a fresh
local generator per attempt (``seed + salt + attempt * stride``) so every
generator call is reproducible.
"""

from __future__ import annotations

import math
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

_MASK = 0xFFFFFFFF


class Mulberry32:
    """Deterministic float source in ``[0, 1)``."""

    __slots__ = ("_state",)

    def __init__(self, seed: int) -> None:
        self._state = int(seed) & _MASK

    def random(self) -> float:
        self._state = (self._state + 0x6D2B79F5) & _MASK
        t = self._state
        r = ((t ^ (t >> 15)) * (t | 1)) & _MASK
        r ^= (r + ((r ^ (r >> 7)) * (r | 61))) & _MASK
        return ((r ^ (r >> 14)) & _MASK) / 4294967296

    __call__ = random


def rand_int(rng: Mulberry32, upper: int) -> int:
    """Uniform integer in ``[0, upper)``."""

    return int(math.floor(rng.random() * upper))


def shuffle(items: Sequence[T], rng: Mulberry32) -> List[T]:
    """Return a Fisher-Yates shuffled copy, walking from the tail."""

    copy = list(items)
    for i in range(len(copy) - 1, 0, -1):
        j = int(math.floor(rng.random() * (i + 1)))
        copy[i], copy[j] = copy[j], copy[i]
    return copy


def weighted_index(weights: Sequence[float], rng: Mulberry32) -> int:
    """Index picked by a cumulative-sum roll; the last index absorbs rounding."""

    total = sum(weights)
    roll = rng.random() * total
    for index, weight in enumerate(weights):
        roll -= weight
        if roll <= 0:
            return index
    return len(weights) - 1


def weighted_pick(options: Sequence[Tuple[T, float]], rng: Mulberry32) -> Optional[T]:
    """Pick one item from ``(item, weight)`` pairs, or ``None`` when empty."""

    if not options:
        return None
    index = weighted_index([weight for _, weight in options], rng)
    return options[index][0]


def pop_weighted(
    remaining: List[T],
    weight_of: Callable[[T], float],
    rng: Mulberry32,
) -> T:
    """Remove and return one element of ``remaining`` chosen by weight."""

    index = weighted_index([weight_of(item) for item in remaining], rng)
    return remaining.pop(index)


def distance(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def pick_spread_targets(
    pool: Sequence[T],
    count: int,
    min_distance: float,
    rng: Mulberry32,
    position: Callable[[T], Tuple[float, float]],
) -> List[T]:
    """Greedy spatially spread selection of ``count`` items.

    Items are visited in shuffled order and kept while no kept item lies
    closer than ``min_distance``. When the pool cannot satisfy ``count`` the
    distance is relaxed by a quarter and the selection restarts, down to a
    floor of 0.45.
    """

    if len(pool) <= count:
        return list(pool)
    picked: List[T] = []
    for candidate in shuffle(pool, rng):
        if not picked:
            picked.append(candidate)
            continue
        too_close = any(
            distance(position(target), position(candidate)) < min_distance for target in picked
        )
        if not too_close:
            picked.append(candidate)
        if len(picked) >= count:
            break

    if len(picked) < count and min_distance > 0.45:
        return pick_spread_targets(pool, count, min_distance * 0.75, rng, position)
    return picked
