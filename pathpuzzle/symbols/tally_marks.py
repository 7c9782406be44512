"""Tally marks: the count equals the outline length of the mark's region."""

from __future__ import annotations

from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import CELL_BOUNDS, DEFAULT_COLORS, SymbolKind
from ..core.models import GenerationResult, Point, SymbolMap, TallyTarget
from ..engine.grid import cell_edge_keys, cell_key, edges_from_path
from ..engine.palette import ColorBalancer, collect_colored_cells, derive_palette, unique_colors
from ..engine.paths import resolve_solution_path
from ..engine.regions import RegionMap, build_cell_regions, cells_by_region
from ..engine.rng import Mulberry32, rand_int, shuffle
from ..utils.logger import get_logger
from .common import attempt_rng, descending_counts, frozen_blocked, open_cells, passes

LOGGER = get_logger(__name__)

DEFAULT_TALLY_COLOR = DEFAULT_COLORS[SymbolKind.TALLY]
TALLY_SALT = 14011
TALLY_ATTEMPTS = 96

# Neighbour across the top, right, bottom and left sides, matching cell_edge_keys order.
_SIDE_STEPS: Tuple[Tuple[int, int], ...] = ((0, -1), (1, 0), (0, 1), (-1, 0))


def region_outline_count(regions: RegionMap, used_edges: AbstractSet[str], region_id: int) -> int:
    """Used sides of the region's cells that face the board edge or another region."""

    outline = 0
    for key, region in regions.items():
        if region != region_id:
            continue
        x, y = (int(part) for part in key.split(","))
        for edge, (dx, dy) in zip(cell_edge_keys(x, y), _SIDE_STEPS):
            if edge not in used_edges:
                continue
            nx, ny = x + dx, y + dy
            if not CELL_BOUNDS.contains(nx, ny) or regions.get(cell_key(nx, ny)) != region_id:
                outline += 1
    return outline


def collect_failing_tally_indexes(used_edges: AbstractSet[str], targets: Sequence[TallyTarget]) -> Set[int]:
    failing: Set[int] = set()
    if not targets:
        return failing

    regions = build_cell_regions(used_edges)
    outlines: Dict[int, int] = {}
    first_by_region: Dict[int, int] = {}
    for index, target in enumerate(targets):
        region = regions.get(target.cell_key)
        if region is None:
            failing.add(index)
            continue
        if region in first_by_region:
            failing.add(first_by_region[region])
            failing.add(index)
        else:
            first_by_region[region] = index
        if region not in outlines:
            outlines[region] = region_outline_count(regions, used_edges, region)
        if target.count != outlines[region]:
            failing.add(index)
    return failing


def check_tally_marks(used_edges: AbstractSet[str], targets: Sequence[TallyTarget]) -> bool:
    return passes(collect_failing_tally_indexes(used_edges, targets), targets, empty_is_valid=False)


def generate_tally_marks_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    support_symbols: Optional[SymbolMap] = None,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    """One tally mark per chosen region, largest feasible count first."""

    rng = Mulberry32(seed)
    solution_path = resolve_solution_path(edges, rng, preferred_path, 200, 9)
    if solution_path is None:
        return None

    used_edges = edges_from_path(solution_path)
    regions = build_cell_regions(used_edges)
    available = shuffle(open_cells(frozen_blocked(blocked_cells)), rng)
    if not available:
        return None

    support_colors = unique_colors(collect_colored_cells(support_symbols, exclude=(SymbolKind.TALLY,)))
    palette = derive_palette(
        DEFAULT_TALLY_COLOR, color_rule, rng, preferred_colors, support_colors, extend_with_remaining=True
    )

    outlines = {region: region_outline_count(regions, used_edges, region) for region in cells_by_region(regions)}
    candidate_regions: Dict[int, List[Tuple[int, int]]] = {}
    for x, y in available:
        region = regions[cell_key(x, y)]
        if outlines[region] > 0:
            candidate_regions.setdefault(region, []).append((x, y))
    region_entries = shuffle(list(candidate_regions.items()), rng)
    if not region_entries:
        return None

    max_by_difficulty = 7 if selected_symbol_count <= 2 else 5 if selected_symbol_count == 3 else 4
    max_allowed = min(max_by_difficulty, len(region_entries))
    min_count = min(2 if selected_symbol_count <= 2 else 1, max_allowed)

    for target_count in descending_counts(max_allowed, min_count):
        for attempt in range(TALLY_ATTEMPTS):
            local_rng = attempt_rng(seed, TALLY_SALT, attempt, stride=173, extra=target_count * 127)
            picked = shuffle(region_entries, local_rng)[:target_count]
            balancer = ColorBalancer(palette)
            targets: List[TallyTarget] = []
            for region, cells in picked:
                x, y = cells[rand_int(local_rng, len(cells))]
                targets.append(
                    TallyTarget(cell_x=x, cell_y=y, color=balancer.pick(local_rng), count=outlines[region])
                )
            if check_tally_marks(used_edges, targets):
                return GenerationResult(targets=targets, solution_path=solution_path)
    LOGGER.debug("Tally marks infeasible for seed %d", seed)
    return None
