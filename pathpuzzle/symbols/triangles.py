"""Triangle rule: count the used edges around a cell."""

from __future__ import annotations

import math
from typing import AbstractSet, Iterable, List, Optional, Sequence, Set

from ..core.constants import DEFAULT_COLORS, SymbolKind
from ..core.models import GenerationResult, Point, TriangleTarget
from ..engine.grid import cell_edge_keys, edges_from_path
from ..engine.palette import derive_palette
from ..engine.paths import resolve_solution_path
from ..engine.rng import Mulberry32, rand_int, shuffle
from .common import attempt_rng, failing_indexes, frozen_blocked, is_low_symbol_set, open_cells

DEFAULT_TRIANGLE_COLOR = DEFAULT_COLORS[SymbolKind.TRIANGLE]
TRIANGLE_SALT = 3613
TRIANGLE_ATTEMPTS = 24


def count_touched_cell_edges(used_edges: AbstractSet[str], cell_x: int, cell_y: int) -> int:
    return sum(1 for key in cell_edge_keys(cell_x, cell_y) if key in used_edges)


def collect_failing_triangle_indexes(used_edges: AbstractSet[str], targets: Sequence[TriangleTarget]) -> Set[int]:
    return failing_indexes(
        targets,
        lambda target: count_touched_cell_edges(used_edges, target.cell_x, target.cell_y) == target.count,
    )


def check_triangles(used_edges: AbstractSet[str], targets: Sequence[TriangleTarget]) -> bool:
    return not collect_failing_triangle_indexes(used_edges, targets)


def _triangle_target_count(rng: Mulberry32, selected_symbol_count: int, min_count: int, max_allowed: int) -> int:
    if not is_low_symbol_set(selected_symbol_count):
        return 1 + rand_int(rng, max_allowed)
    spread = max_allowed - min_count
    if selected_symbol_count == 2:
        # Mixed boards keep the full range but lean hard towards the minimum.
        weighted = int(math.floor(math.pow(rng.random(), 1.85) * (spread + 1)))
        return min_count + min(spread, weighted)
    return min_count + rand_int(rng, spread + 1)


def generate_triangles_for_edges(
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

    used_edges = edges_from_path(solution_path)
    candidates = []
    for x, y in open_cells(frozen_blocked(blocked_cells)):
        touches = count_touched_cell_edges(used_edges, x, y)
        if 1 <= touches <= 3:
            candidates.append((x, y, touches))

    low_symbol_set = is_low_symbol_set(selected_symbol_count)
    min_count = 3 if low_symbol_set else 1
    max_count = 10 if low_symbol_set else 5
    max_allowed = min(max_count, len(candidates))
    if max_allowed < min_count:
        return None

    target_count = _triangle_target_count(rng, selected_symbol_count, min_count, max_allowed)
    palette = derive_palette(DEFAULT_TRIANGLE_COLOR, color_rule, rng, preferred_colors)

    for attempt in range(TRIANGLE_ATTEMPTS):
        local_rng = attempt_rng(seed, TRIANGLE_SALT, attempt)
        targets: List[TriangleTarget] = [
            TriangleTarget(cell_x=x, cell_y=y, color=palette[rand_int(local_rng, len(palette))], count=touches)
            for x, y, touches in shuffle(candidates, local_rng)[:target_count]
        ]
        if check_triangles(used_edges, targets):
            return GenerationResult(targets=targets, solution_path=solution_path)
    return None
