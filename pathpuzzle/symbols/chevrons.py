"""Chevron rule: count same-region cells along a ray of cells."""

from __future__ import annotations

from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import ALL_DIRECTIONS, CELL_BOUNDS, DEFAULT_COLORS, Direction, SymbolKind
from ..core.models import ChevronTarget, GenerationResult, Point
from ..engine.grid import cell_key, edges_from_path
from ..engine.palette import derive_palette
from ..engine.paths import resolve_solution_path
from ..engine.regions import RegionMap, build_cell_regions
from ..engine.rng import Mulberry32, rand_int, shuffle
from .common import attempt_rng, draw_target_count, failing_indexes, frozen_blocked, is_low_symbol_set, open_cells

DEFAULT_CHEVRON_COLOR = DEFAULT_COLORS[SymbolKind.CHEVRON]
CHEVRON_SALT = 3821
CHEVRON_ATTEMPTS = 24


def count_chevron_region_cells(regions: RegionMap, cell_x: int, cell_y: int, direction: Direction) -> int:
    """Cells beyond the source, up to the board edge, sharing its region."""

    source = regions.get(cell_key(cell_x, cell_y))
    if source is None:
        return 0
    dx, dy = direction.step
    x, y = cell_x + dx, cell_y + dy
    matches = 0
    while CELL_BOUNDS.contains(x, y):
        if regions.get(cell_key(x, y)) == source:
            matches += 1
        x += dx
        y += dy
    return matches


def collect_failing_chevron_indexes(used_edges: AbstractSet[str], targets: Sequence[ChevronTarget]) -> Set[int]:
    regions = build_cell_regions(used_edges)
    return failing_indexes(
        targets,
        lambda target: count_chevron_region_cells(regions, target.cell_x, target.cell_y, target.direction)
        == target.count,
    )


def check_chevrons(used_edges: AbstractSet[str], targets: Sequence[ChevronTarget]) -> bool:
    return not collect_failing_chevron_indexes(used_edges, targets)


def generate_chevrons_for_edges(
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
    regions = build_cell_regions(used_edges)
    options_by_cell: Dict[Tuple[int, int], List[Tuple[Direction, int]]] = {}
    for x, y in open_cells(frozen_blocked(blocked_cells)):
        options = []
        for direction in ALL_DIRECTIONS:
            count = count_chevron_region_cells(regions, x, y, direction)
            if 1 <= count <= 3:
                options.append((direction, count))
        if options:
            options_by_cell[(x, y)] = options

    candidate_cells = list(options_by_cell)
    low_symbol_set = is_low_symbol_set(selected_symbol_count)
    min_count = 3 if low_symbol_set else 2
    max_count = 8 if low_symbol_set else 5
    max_allowed = min(max_count, len(candidate_cells))
    if max_allowed < min_count:
        return None

    target_count = draw_target_count(rng, low_symbol_set, min_count, max_allowed)
    palette = derive_palette(DEFAULT_CHEVRON_COLOR, color_rule, rng, preferred_colors)

    for attempt in range(CHEVRON_ATTEMPTS):
        local_rng = attempt_rng(seed, CHEVRON_SALT, attempt)
        targets: List[ChevronTarget] = []
        for x, y in shuffle(candidate_cells, local_rng)[:target_count]:
            options = options_by_cell[(x, y)]
            direction, count = options[rand_int(local_rng, len(options))]
            targets.append(
                ChevronTarget(
                    cell_x=x,
                    cell_y=y,
                    color=palette[rand_int(local_rng, len(palette))],
                    direction=direction,
                    count=count,
                )
            )
        if check_chevrons(used_edges, targets):
            return GenerationResult(targets=targets, solution_path=solution_path)
    return None
