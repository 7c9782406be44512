"""Diamond rule: count the path's turns on the corners of a cell."""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Optional, Sequence, Set

from ..core.constants import DEFAULT_COLORS, SymbolKind
from ..core.models import DiamondTarget, GenerationResult, Point
from ..engine.grid import cell_corners
from ..engine.palette import derive_palette
from ..engine.paths import resolve_solution_path
from ..engine.rng import Mulberry32, pop_weighted, rand_int, shuffle
from .common import attempt_rng, draw_target_count, failing_indexes, frozen_blocked, is_low_symbol_set, open_cells

DEFAULT_DIAMOND_COLOR = DEFAULT_COLORS[SymbolKind.DIAMOND]
DIAMOND_SALT = 3407
DIAMOND_ATTEMPTS = 24
_COUNT_WEIGHTS = {1: 4.0, 2: 2.6, 3: 1.2, 4: 0.6}


def count_touched_corner_bends(path: Sequence[Point], cell_x: int, cell_y: int) -> int:
    """Interior path vertices on the cell's corners where the direction changes."""

    corners = set(cell_corners(cell_x, cell_y))
    bends = 0
    for prev, point, nxt in zip(path, path[1:], path[2:]):
        if point not in corners:
            continue
        incoming = (point.x - prev.x, point.y - prev.y)
        outgoing = (nxt.x - point.x, nxt.y - point.y)
        if incoming != outgoing:
            bends += 1
    return bends


def diamond_count_weight(count: int, low_symbol_set: bool) -> float:
    if low_symbol_set:
        return 1.0
    return _COUNT_WEIGHTS.get(count, 0.6)


def collect_failing_diamond_indexes(path: Sequence[Point], targets: Sequence[DiamondTarget]) -> Set[int]:
    return failing_indexes(
        targets,
        lambda target: count_touched_corner_bends(path, target.cell_x, target.cell_y) == target.count,
    )


def check_diamonds(path: Sequence[Point], targets: Sequence[DiamondTarget]) -> bool:
    return not collect_failing_diamond_indexes(path, targets)


def generate_diamonds_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    rng = Mulberry32(seed)
    solution_path = resolve_solution_path(edges, rng, preferred_path, 220, 10)
    if solution_path is None:
        return None

    candidates = []
    for x, y in open_cells(frozen_blocked(blocked_cells)):
        bends = count_touched_corner_bends(solution_path, x, y)
        if 1 <= bends <= 4:
            candidates.append((x, y, bends))

    low_symbol_set = is_low_symbol_set(selected_symbol_count)
    min_count = 3 if low_symbol_set else 1
    max_count = 9 if low_symbol_set else 5
    max_allowed = min(max_count, len(candidates))
    if max_allowed < min_count:
        return None

    target_count = draw_target_count(rng, low_symbol_set, min_count, max_allowed)
    palette = derive_palette(DEFAULT_DIAMOND_COLOR, color_rule, rng, preferred_colors)

    for attempt in range(DIAMOND_ATTEMPTS):
        local_rng = attempt_rng(seed, DIAMOND_SALT, attempt)
        remaining = shuffle(candidates, local_rng)
        selected = []
        while len(selected) < target_count and remaining:
            selected.append(
                pop_weighted(remaining, lambda item: diamond_count_weight(item[2], low_symbol_set), local_rng)
            )
        targets: List[DiamondTarget] = [
            DiamondTarget(cell_x=x, cell_y=y, color=palette[rand_int(local_rng, len(palette))], count=bends)
            for x, y, bends in selected
        ]
        if check_diamonds(solution_path, targets):
            return GenerationResult(targets=targets, solution_path=solution_path)
    return None
