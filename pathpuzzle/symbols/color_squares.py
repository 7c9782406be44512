"""Colour squares: a region may hold squares of one colour only."""

from __future__ import annotations

from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import COLOR_PALETTE
from ..core.models import ColorSquareTarget, GenerationResult, Point
from ..engine.grid import cell_key, edges_from_path
from ..engine.palette import normalize_preferred
from ..engine.paths import resolve_solution_path
from ..engine.regions import build_cell_regions, cells_by_region, region_count
from ..engine.rng import Mulberry32, rand_int, shuffle
from ..utils.logger import get_logger
from .common import attempt_rng, frozen_blocked, passes

LOGGER = get_logger(__name__)

COLOR_SQUARE_SALT = 4242
COLOR_SQUARE_ATTEMPTS = 60
COLOR_SQUARE_STRIDE = 97


def collect_failing_color_square_indexes(
    used_edges: AbstractSet[str], targets: Sequence[ColorSquareTarget]
) -> Set[int]:
    """Every square sharing a region with a square of another colour."""

    regions = build_cell_regions(used_edges)
    by_region: Dict[int, List[int]] = {}
    for index, target in enumerate(targets):
        region = regions.get(target.cell_key)
        if region is not None:
            by_region.setdefault(region, []).append(index)
    failing: Set[int] = set()
    for indexes in by_region.values():
        if len({targets[index].color for index in indexes}) > 1:
            failing.update(indexes)
    return failing


def check_color_squares(used_edges: AbstractSet[str], targets: Sequence[ColorSquareTarget]) -> bool:
    return passes(collect_failing_color_square_indexes(used_edges, targets), targets)


def _square_counts(rng: Mulberry32, color_count: int, crowded: bool) -> List[int]:
    min_per_color = 2 if color_count == 2 else 1
    min_squares = color_count * min_per_color
    if crowded:
        base = 5 + rand_int(rng, 4) if color_count == 2 else 6 + rand_int(rng, 4)
    else:
        base = 7 + rand_int(rng, 6) if color_count == 2 else 9 + rand_int(rng, 7)
    total = min(10 if crowded else 16, max(min_squares, base))
    counts = [min_per_color] * color_count
    for _ in range(total - min_squares):
        counts[rand_int(rng, color_count)] += 1
    return counts


def generate_color_squares_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int = 1,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = True,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
    desired_color_count: int = 2,
) -> Optional[GenerationResult]:
    """Colour whole regions, then scatter squares inside each colour's regions."""

    blocked = frozen_blocked(blocked_cells)
    available_colors = normalize_preferred(preferred_colors) or list(COLOR_PALETTE)
    color_count = max(1, min(desired_color_count, len(available_colors)))

    rng = Mulberry32(seed)
    path = resolve_solution_path(edges, rng, preferred_path, 260, 12)
    if path is None:
        return None
    used_edges = edges_from_path(path)
    regions = build_cell_regions(used_edges)
    if region_count(regions) < color_count:
        return None
    region_cells = {
        region: [cell for cell in cells if cell_key(*cell) not in blocked]
        for region, cells in cells_by_region(regions).items()
    }

    for attempt in range(COLOR_SQUARE_ATTEMPTS):
        local_rng = attempt_rng(seed, COLOR_SQUARE_SALT, attempt, stride=COLOR_SQUARE_STRIDE)
        counts = _square_counts(local_rng, color_count, selected_symbol_count >= 3)
        palette = shuffle(available_colors, local_rng)[:color_count]
        region_list: List[Tuple[int, List[Tuple[int, int]]]] = shuffle(list(region_cells.items()), local_rng)
        color_order = shuffle(list(range(color_count)), local_rng)

        region_to_color: Dict[int, int] = {}
        rounds = 2 if len(region_list) >= color_count * 2 else 1
        seeded = [color for _ in range(rounds) for color in color_order]
        for (region, _), color in zip(region_list, seeded):
            region_to_color[region] = color
        for region, _ in region_list[len(seeded) :]:
            region_to_color[region] = color_order[rand_int(local_rng, len(color_order))]

        pools: List[List[Tuple[int, int]]] = [[] for _ in range(color_count)]
        for region, cells in region_list:
            pools[region_to_color[region]].extend(cells)
        if any(len(pool) < count for pool, count in zip(pools, counts)):
            continue

        squares = [
            ColorSquareTarget(cell_x=x, cell_y=y, color=palette[color])
            for color, (pool, count) in enumerate(zip(pools, counts))
            for x, y in shuffle(pool, local_rng)[:count]
        ]
        if check_color_squares(used_edges, squares):
            return GenerationResult(targets=squares, solution_path=path)
    LOGGER.debug("Colour squares infeasible with %d colours for seed %d", color_count, seed)
    return None
