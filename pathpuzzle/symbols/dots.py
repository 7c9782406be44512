"""Dot rule: count how many of a cell's corners the path visits."""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import DEFAULT_COLORS, SymbolKind
from ..core.models import DotTarget, GenerationResult, Point
from ..engine.grid import cell_corners
from ..engine.palette import derive_palette
from ..engine.paths import resolve_solution_path
from ..engine.rng import Mulberry32, pop_weighted, rand_int, shuffle
from .common import attempt_rng, draw_target_count, failing_indexes, frozen_blocked, is_low_symbol_set, open_cells

DEFAULT_DOT_COLOR = DEFAULT_COLORS[SymbolKind.DOT]
DOT_SALT = 3511
DOT_ATTEMPTS = 24
HIGH_DOT_COUNT = 3

_LOW_SET_WEIGHTS = {1: 5.0, 2: 3.0, 3: 0.9, 4: 0.35}
_WEIGHTS = {1: 8.0, 2: 4.5, 3: 0.28, 4: 0.08}

Candidate = Tuple[int, int, int]


def count_touched_cell_corners(path: Sequence[Point], cell_x: int, cell_y: int) -> int:
    corners = set(cell_corners(cell_x, cell_y))
    return sum(1 for point in path if point in corners)


def dot_count_weight(count: int, low_symbol_set: bool) -> float:
    table = _LOW_SET_WEIGHTS if low_symbol_set else _WEIGHTS
    return table.get(count, table[4])


def collect_failing_dot_indexes(path: Sequence[Point], targets: Sequence[DotTarget]) -> Set[int]:
    return failing_indexes(
        targets,
        lambda target: count_touched_cell_corners(path, target.cell_x, target.cell_y) == target.count,
    )


def check_dots(path: Sequence[Point], targets: Sequence[DotTarget]) -> bool:
    return not collect_failing_dot_indexes(path, targets)


def _max_high_dots(selected_count: int, low_symbol_set: bool, rng: Mulberry32) -> int:
    if low_symbol_set:
        cap = 2 if selected_count >= 7 else 1 if selected_count >= 4 else 0
        if cap > 0 and rng.random() < 0.35:
            cap -= 1
        return cap
    if selected_count >= 4:
        return 1
    return 1 if rng.random() < 0.2 else 0


def _downgrade_high_dots(
    selected: List[Candidate], remaining: List[Candidate], low_symbol_set: bool, rng: Mulberry32
) -> List[Candidate]:
    """Swap surplus 3- and 4-corner picks for unused low-count candidates."""

    if not selected:
        return selected
    max_high = _max_high_dots(len(selected), low_symbol_set, rng)
    high_used = 0
    low_pool = shuffle([item for item in remaining if item[2] < HIGH_DOT_COUNT], rng)
    result = list(selected)
    for index, item in enumerate(result):
        if item[2] < HIGH_DOT_COUNT:
            continue
        if high_used < max_high:
            high_used += 1
            continue
        if low_pool:
            result[index] = low_pool.pop()
    return result


def generate_dots_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    """Place dots biased towards low corner counts."""

    rng = Mulberry32(seed)
    solution_path = resolve_solution_path(edges, rng, preferred_path, 220, 10)
    if solution_path is None:
        return None

    candidates: List[Candidate] = []
    for x, y in open_cells(frozen_blocked(blocked_cells)):
        touched = count_touched_cell_corners(solution_path, x, y)
        if 1 <= touched <= 4:
            candidates.append((x, y, touched))

    low_symbol_set = is_low_symbol_set(selected_symbol_count)
    min_count = 3 if low_symbol_set else 1
    max_count = 9 if low_symbol_set else 5
    max_allowed = min(max_count, len(candidates))
    if max_allowed < min_count:
        return None

    target_count = draw_target_count(rng, low_symbol_set, min_count, max_allowed)
    palette = derive_palette(DEFAULT_DOT_COLOR, color_rule, rng, preferred_colors)

    for attempt in range(DOT_ATTEMPTS):
        local_rng = attempt_rng(seed, DOT_SALT, attempt)
        remaining = shuffle(candidates, local_rng)
        selected: List[Candidate] = []
        while len(selected) < target_count and remaining:
            selected.append(
                pop_weighted(remaining, lambda item: dot_count_weight(item[2], low_symbol_set), local_rng)
            )
        selected = _downgrade_high_dots(selected, remaining, low_symbol_set, local_rng)
        targets = [
            DotTarget(cell_x=x, cell_y=y, color=palette[rand_int(local_rng, len(palette))], count=count)
            for x, y, count in selected
        ]
        if check_dots(solution_path, targets):
            return GenerationResult(targets=targets, solution_path=solution_path)
    return None
