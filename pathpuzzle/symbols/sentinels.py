"""Sentinels: nothing in a sentinel's region may sit on the side it faces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import CARDINAL_DIRECTIONS, DEFAULT_COLORS, Direction, SymbolKind
from ..core.models import GenerationResult, HexTarget, Point, SentinelTarget, SymbolMap
from ..engine.grid import cell_key, edges_from_path
from ..engine.palette import collect_colored_cells, derive_palette
from ..engine.paths import resolve_solution_path
from ..engine.regions import RegionMap, build_cell_regions, region_ids_for_board_point
from ..engine.rng import Mulberry32, rand_int, shuffle, weighted_pick
from ..utils.logger import get_logger
from .common import attempt_rng, frozen_blocked, is_low_symbol_set, open_cells, passes

LOGGER = get_logger(__name__)

DEFAULT_SENTINEL_COLOR = DEFAULT_COLORS[SymbolKind.SENTINEL]
SENTINEL_SALT = 6121
SENTINEL_ATTEMPTS = 54

Cell = Tuple[int, int]


@dataclass(frozen=True)
class ObservedSymbol:
    """Board position of something a sentinel can see."""

    x: float
    y: float
    region_ids: Tuple[int, ...]
    sentinel_index: Optional[int] = None


def in_forbidden_side(x: int, y: int, direction: Direction, point: Tuple[float, float]) -> bool:
    """True when ``point`` lies strictly beyond the cell centre in ``direction``."""

    center_x, center_y = x + 0.5, y + 0.5
    if direction is Direction.UP:
        return point[1] < center_y
    if direction is Direction.DOWN:
        return point[1] > center_y
    if direction is Direction.LEFT:
        return point[0] < center_x
    return point[0] > center_x


def _is_outward(cell: Cell, direction: Direction) -> bool:
    x, y = cell
    return {
        Direction.UP: y == 0,
        Direction.DOWN: y == 3,
        Direction.LEFT: x == 0,
        Direction.RIGHT: x == 3,
    }[direction]


def _is_edge_cell(cell: Cell) -> bool:
    return cell[0] in (0, 3) or cell[1] in (0, 3)


def _is_corner_cell(cell: Cell) -> bool:
    return cell[0] in (0, 3) and cell[1] in (0, 3)


def _manhattan(a: Cell, b: Cell) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def build_observed_symbols(
    regions: RegionMap,
    targets: Sequence[SentinelTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> List[ObservedSymbol]:
    observed: List[ObservedSymbol] = []
    for symbol in collect_colored_cells(other_symbols, exclude=(SymbolKind.SENTINEL,)):
        region = regions.get(symbol.cell_key)
        if region is not None:
            observed.append(ObservedSymbol(symbol.cell_x + 0.5, symbol.cell_y + 0.5, (region,)))
    for index, target in enumerate(targets):
        region = regions.get(target.cell_key)
        if region is not None:
            observed.append(ObservedSymbol(target.cell_x + 0.5, target.cell_y + 0.5, (region,), index))
    for hexagon in (other_symbols or {}).get(SymbolKind.HEXAGON, ()):
        if not isinstance(hexagon, HexTarget):
            continue
        region_ids = region_ids_for_board_point(regions, hexagon.position)
        if region_ids:
            observed.append(ObservedSymbol(hexagon.position[0], hexagon.position[1], tuple(region_ids)))
    return observed


def collect_failing_sentinel_indexes(
    used_edges: AbstractSet[str],
    targets: Sequence[SentinelTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> Set[int]:
    failing: Set[int] = set()
    if not targets:
        return failing

    regions = build_cell_regions(used_edges)
    observed = build_observed_symbols(regions, targets, other_symbols)
    for index, sentinel in enumerate(targets):
        region = regions.get(sentinel.cell_key)
        if region is None:
            failing.add(index)
            continue
        for symbol in observed:
            if symbol.sentinel_index == index or region not in symbol.region_ids:
                continue
            if in_forbidden_side(sentinel.cell_x, sentinel.cell_y, sentinel.direction, (symbol.x, symbol.y)):
                failing.add(index)
                break
    return failing


def check_sentinels(
    used_edges: AbstractSet[str],
    targets: Sequence[SentinelTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> bool:
    return passes(collect_failing_sentinel_indexes(used_edges, targets, other_symbols), targets)


def valid_directions_for_cell(
    cell: Cell,
    region: int,
    observed: Sequence[ObservedSymbol],
    placed: Sequence[SentinelTarget],
    regions: RegionMap,
) -> List[Direction]:
    """Facings a new sentinel at ``cell`` could take without seeing anything."""

    center = (cell[0] + 0.5, cell[1] + 0.5)
    for sentinel in placed:
        if regions.get(sentinel.cell_key) != region:
            continue
        if in_forbidden_side(sentinel.cell_x, sentinel.cell_y, sentinel.direction, center):
            return []
    return [
        direction
        for direction in CARDINAL_DIRECTIONS
        if not any(
            region in symbol.region_ids and in_forbidden_side(cell[0], cell[1], direction, (symbol.x, symbol.y))
            for symbol in observed
        )
    ]


def pick_direction_with_outward_bias(directions: Sequence[Direction], cell: Cell, rng: Mulberry32) -> Direction:
    """Facing the board border is allowed but discouraged when an inward option exists."""

    has_inward = any(not _is_outward(cell, direction) for direction in directions)
    options = [
        (direction, 0.24 if _is_outward(cell, direction) and has_inward else 1.0) for direction in directions
    ]
    return weighted_pick(options, rng)


def _placement_score(
    cell: Cell, occupied: Sequence[Cell], sparse: bool, interior_left: bool, first: bool, rng: Mulberry32
) -> float:
    nearest = min((_manhattan(cell, other) for other in occupied), default=4)
    score = nearest * (4.3 if sparse else 3.2)
    if any(_manhattan(cell, other) == 1 for other in occupied):
        score -= 6 if sparse else 3.4
    if any(abs(cell[0] - other[0]) == 1 and abs(cell[1] - other[1]) == 1 for other in occupied):
        score -= 2.2 if sparse else 1.1
    if _is_edge_cell(cell):
        factor = 1.0 if interior_left else 0.28
        score -= (2.8 if sparse else 1.9) * factor
        if _is_corner_cell(cell):
            score -= (1.45 if sparse else 0.95) * factor
        if first:
            score -= (0.9 if sparse else 0.55) * factor
    return score + rng.random() * 0.9


def generate_sentinels_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    support_symbols: Optional[SymbolMap] = None,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    """Spread sentinels away from occupied cells, each facing an empty side."""

    blocked = frozen_blocked(blocked_cells)
    rng = Mulberry32(seed)
    solution_path = resolve_solution_path(edges, rng, preferred_path, 220, 10)
    if solution_path is None:
        return None

    used_edges = edges_from_path(solution_path)
    regions = build_cell_regions(used_edges)
    available = shuffle(open_cells(blocked), rng)
    if not available:
        return None

    low_symbol_set = is_low_symbol_set(selected_symbol_count)
    min_count = 3 if low_symbol_set else 2
    max_count = 7 if low_symbol_set else 4
    max_allowed = min(max_count, len(available))
    if max_allowed < min_count:
        return None
    target_count = min_count + rand_int(rng, max_allowed - min_count + 1)

    palette = derive_palette(DEFAULT_SENTINEL_COLOR, color_rule, rng, preferred_colors)

    blocked_positions = [tuple(int(part) for part in key.split(",")) for key in sorted(blocked)]
    sparse = len(blocked) <= 3

    for attempt in range(SENTINEL_ATTEMPTS):
        local_rng = attempt_rng(seed, SENTINEL_SALT, attempt)
        remaining = shuffle(available, local_rng)
        sentinels: List[SentinelTarget] = []
        observed = build_observed_symbols(regions, sentinels, support_symbols)
        occupied: List[Cell] = list(blocked_positions)

        while remaining and len(sentinels) < target_count:
            interior_left = any(not _is_edge_cell(cell) for cell in remaining)
            candidates = []
            for index, cell in enumerate(remaining):
                region = regions[cell_key(*cell)]
                directions = valid_directions_for_cell(cell, region, observed, sentinels, regions)
                if not directions:
                    continue
                direction = pick_direction_with_outward_bias(directions, cell, local_rng)
                score = _placement_score(cell, occupied, sparse, interior_left, not sentinels, local_rng)
                candidates.append((score, index, direction))
            if not candidates:
                break
            candidates.sort(key=lambda candidate: -candidate[0])
            top = candidates[:3]
            _, index, direction = top[rand_int(local_rng, len(top))]
            cell = remaining.pop(index)
            sentinels.append(
                SentinelTarget(
                    cell_x=cell[0],
                    cell_y=cell[1],
                    color=palette[rand_int(local_rng, len(palette))],
                    direction=direction,
                )
            )
            occupied.append(cell)
            region = regions[cell_key(*cell)]
            observed.append(ObservedSymbol(cell[0] + 0.5, cell[1] + 0.5, (region,), len(sentinels) - 1))

        if len(sentinels) < target_count:
            continue
        if check_sentinels(used_edges, sentinels, support_symbols):
            return GenerationResult(targets=sentinels, solution_path=solution_path)
    return None
