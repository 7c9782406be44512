"""Helpers shared by the per-kind symbol rules."""

from __future__ import annotations

from typing import AbstractSet, Callable, List, Optional, Sequence, Set, Tuple

from ..engine.grid import cell_key, iter_cells
from ..engine.rng import Mulberry32, rand_int

ATTEMPT_STRIDE = 131


def is_low_symbol_set(selected_symbol_count: int) -> bool:
    """Few kinds on the board: each kind gets more targets."""

    return selected_symbol_count <= 2


def open_cells(blocked_cells: AbstractSet[str]) -> List[Tuple[int, int]]:
    return [(x, y) for x, y in iter_cells() if cell_key(x, y) not in blocked_cells]


def draw_target_count(rng: Mulberry32, low_symbol_set: bool, min_count: int, max_allowed: int) -> int:
    """Number of targets to place once ``max_allowed >= min_count`` is known."""

    if low_symbol_set:
        return min_count + rand_int(rng, max_allowed - min_count + 1)
    return 1 + rand_int(rng, max_allowed)


def failing_indexes(targets: Sequence, predicate: Callable[[object], bool]) -> Set[int]:
    return {index for index, target in enumerate(targets) if not predicate(target)}


def passes(failing: Set[int], targets: Sequence, empty_is_valid: bool = True) -> bool:
    """Aggregate verdict from per-target failures.

    Kinds that only mean something in aggregate pass ``empty_is_valid=False``
    so an empty target list does not count as satisfied.
    """

    if not targets and not empty_is_valid:
        return False
    return not failing


def attempt_rng(seed: int, salt: int, attempt: int, stride: int = ATTEMPT_STRIDE, extra: int = 0) -> Mulberry32:
    """Independent generator for one retry of a seeded generation loop."""

    return Mulberry32(seed + salt + extra + attempt * stride)


def frozen_blocked(blocked_cells: Optional[AbstractSet[str]]) -> AbstractSet[str]:
    return blocked_cells if blocked_cells is not None else frozenset()


def descending_counts(max_allowed: int, min_count: int) -> List[int]:
    """Target counts to try, largest first."""

    return list(range(max_allowed, min_count - 1, -1))
