"""Cardinals: the path must block all four straight lines out of the cell."""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Optional, Sequence, Set

from ..core.constants import CARDINAL_DIRECTIONS, DEFAULT_COLORS, SymbolKind
from ..core.models import CardinalTarget, GenerationResult, Point
from ..engine.grid import cell_key, edges_from_path, iter_cells
from ..engine.palette import derive_palette
from ..engine.paths import resolve_solution_path
from ..engine.rng import Mulberry32, rand_int, shuffle, weighted_index
from .common import failing_indexes, frozen_blocked, is_low_symbol_set, passes
from .eyes import first_segment_in_direction

DEFAULT_CARDINAL_COLOR = DEFAULT_COLORS[SymbolKind.CARDINAL]

# Probability of 1, 2, 3, 4 targets on a sparse board, indexed by how many are possible.
LOW_SET_COUNT_WEIGHTS = {
    2: (0.5, 0.5),
    3: (0.38, 0.40, 0.22),
    4: (0.32, 0.30, 0.28, 0.10),
}


def is_blocked_all_directions(used_edges: AbstractSet[str], x: int, y: int) -> bool:
    return all(
        first_segment_in_direction(used_edges, x, y, direction) is not None for direction in CARDINAL_DIRECTIONS
    )


def collect_failing_cardinal_indexes(used_edges: AbstractSet[str], targets: Sequence[CardinalTarget]) -> Set[int]:
    return failing_indexes(targets, lambda target: is_blocked_all_directions(used_edges, target.cell_x, target.cell_y))


def check_cardinals(used_edges: AbstractSet[str], targets: Sequence[CardinalTarget]) -> bool:
    return passes(collect_failing_cardinal_indexes(used_edges, targets), targets)


def _low_set_target_count(rng: Mulberry32, max_allowed: int) -> int:
    if max_allowed <= 1:
        return 1
    return 1 + weighted_index(LOW_SET_COUNT_WEIGHTS[min(max_allowed, 4)], rng)


def generate_cardinals_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    blocked = frozen_blocked(blocked_cells)
    rng = Mulberry32(seed)
    solution_path = resolve_solution_path(edges, rng, preferred_path, 220, 10)
    if solution_path is None:
        return None

    used_edges = edges_from_path(solution_path)
    candidates = [
        (x, y)
        for x, y in iter_cells()
        if cell_key(x, y) not in blocked and is_blocked_all_directions(used_edges, x, y)
    ]
    if not candidates:
        return None

    low_symbol_set = is_low_symbol_set(selected_symbol_count)
    max_allowed = min(4 if low_symbol_set else 2, len(candidates))
    if low_symbol_set:
        target_count = _low_set_target_count(rng, max_allowed)
    else:
        target_count = 1 if max_allowed == 1 else 1 + rand_int(rng, 2)

    palette = derive_palette(DEFAULT_CARDINAL_COLOR, color_rule, rng, preferred_colors)
    targets: List[CardinalTarget] = [
        CardinalTarget(cell_x=x, cell_y=y, color=palette[rand_int(rng, len(palette))])
        for x, y in shuffle(candidates, rng)[:target_count]
    ]
    if not check_cardinals(used_edges, targets):
        return None
    return GenerationResult(targets=targets, solution_path=solution_path)
