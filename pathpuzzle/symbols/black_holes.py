"""Black holes: isolated cells that must not share region and colour with anything."""

from __future__ import annotations

from collections import Counter
from typing import AbstractSet, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import DEFAULT_COLORS, SymbolKind
from ..core.models import BlackHoleTarget, GenerationResult, Point, SymbolMap
from ..engine.grid import cell_edge_keys, cell_key, edges_from_path
from ..engine.palette import collect_colored_cells, derive_palette, unique_colors
from ..engine.paths import resolve_solution_path
from ..engine.regions import build_cell_regions
from ..engine.rng import Mulberry32, shuffle, weighted_pick
from ..utils.logger import get_logger
from .common import attempt_rng, frozen_blocked, open_cells, passes

LOGGER = get_logger(__name__)

DEFAULT_BLACK_HOLE_COLOR = DEFAULT_COLORS[SymbolKind.BLACK_HOLE]
BLACK_HOLE_SALT = 9211
BLACK_HOLE_ATTEMPTS = 88
SUPPORT_OVERLAP_RATIO = 0.6


def touches_cell_sides(used_edges: AbstractSet[str], x: int, y: int) -> bool:
    return any(edge in used_edges for edge in cell_edge_keys(x, y))


def is_edge_cell(x: int, y: int) -> bool:
    return x in (0, 3) or y in (0, 3)


def collect_failing_black_hole_indexes(
    used_edges: AbstractSet[str],
    targets: Sequence[BlackHoleTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> Set[int]:
    failing: Set[int] = set()
    if not targets:
        return failing

    regions = build_cell_regions(used_edges)
    colored = collect_colored_cells(other_symbols, targets, exclude=(SymbolKind.BLACK_HOLE,))
    color_counts = Counter(symbol.color for symbol in colored)
    region_color_counts: Counter = Counter()
    for symbol in colored:
        region = regions.get(symbol.cell_key)
        if region is not None:
            region_color_counts[(region, symbol.color)] += 1

    for index, target in enumerate(targets):
        if touches_cell_sides(used_edges, target.cell_x, target.cell_y):
            failing.add(index)
            continue
        region = regions.get(target.cell_key)
        if region is None or region_color_counts[(region, target.color)] > 1:
            failing.add(index)
            continue
        if color_counts[target.color] < 2:
            failing.add(index)
    return failing


def check_black_holes(
    used_edges: AbstractSet[str],
    targets: Sequence[BlackHoleTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> bool:
    return passes(
        collect_failing_black_hole_indexes(used_edges, targets, other_symbols), targets, empty_is_valid=False
    )


def _option_weight(
    rng: Mulberry32,
    cell: Tuple[int, int],
    color: str,
    usage: int,
    color_rule: bool,
    support_colors: AbstractSet[str],
) -> float:
    if not color_rule:
        diversity = 1.0
    elif not support_colors:
        diversity = 0.82 if usage == 0 else 1.34
    else:
        diversity = 1.25 if usage == 0 else 0.88
    if color_rule and support_colors:
        support_bonus = 1.85 if color in support_colors else 0.62
    else:
        support_bonus = 1.0
    center_bonus = 0.8 if is_edge_cell(*cell) else 1.5
    return (center_bonus + rng.random() * 0.42) * diversity * support_bonus


def generate_black_holes_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    support_symbols: Optional[SymbolMap] = None,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    """Place black holes in untouched cells, pairing their colours board-wide."""

    blocked = frozen_blocked(blocked_cells)
    rng = Mulberry32(seed)
    solution_path = resolve_solution_path(edges, rng, preferred_path, 180, 8)
    if solution_path is None:
        return None

    used_edges = edges_from_path(solution_path)
    regions = build_cell_regions(used_edges)
    available = shuffle(
        [cell for cell in open_cells(blocked) if not touches_cell_sides(used_edges, *cell)],
        rng,
    )
    if not available:
        return None

    support = collect_colored_cells(support_symbols, exclude=(SymbolKind.BLACK_HOLE,))
    support_colors = set(unique_colors(support))
    palette = derive_palette(
        DEFAULT_BLACK_HOLE_COLOR,
        color_rule,
        rng,
        preferred_colors,
        unique_colors(support),
        extend_with_remaining=True,
    )

    existing: Counter = Counter()
    for symbol in support:
        region = regions.get(symbol.cell_key)
        if region is not None:
            existing[(region, symbol.color)] += 1
    has_support_color_option = bool(support_colors) and any(
        existing[(regions[cell_key(*cell)], color)] == 0 for cell in available for color in support_colors
    )

    max_by_difficulty = 5 if selected_symbol_count <= 2 else 4 if selected_symbol_count == 3 else 3
    max_allowed = min(max_by_difficulty, len(available))

    for target_count in range(max_allowed, 0, -1):
        for attempt in range(BLACK_HOLE_ATTEMPTS):
            local_rng = attempt_rng(seed, BLACK_HOLE_SALT, attempt, stride=149, extra=target_count * 113)
            used_cells: Set[str] = set(blocked)
            region_colors = Counter(existing)
            usage: Counter = Counter()
            targets: List[BlackHoleTarget] = []

            while len(targets) < target_count:
                options: List[Tuple[Tuple[Tuple[int, int], str, int], float]] = []
                for cell in available:
                    if cell_key(*cell) in used_cells:
                        continue
                    region = regions[cell_key(*cell)]
                    for color in palette:
                        if region_colors[(region, color)] > 0:
                            continue
                        weight = _option_weight(local_rng, cell, color, usage[color], color_rule, support_colors)
                        options.append(((cell, color, region), weight))
                chosen = weighted_pick(options, local_rng)
                if chosen is None:
                    break
                cell, color, region = chosen
                targets.append(BlackHoleTarget(cell_x=cell[0], cell_y=cell[1], color=color))
                used_cells.add(cell_key(*cell))
                region_colors[(region, color)] += 1
                usage[color] += 1

            if len(targets) < target_count:
                continue
            if has_support_color_option:
                overlap = sum(1 for target in targets if target.color in support_colors)
                required = min(len(targets), max(1, int(len(targets) * SUPPORT_OVERLAP_RATIO)))
                if overlap < required:
                    continue
            if check_black_holes(used_edges, targets, support_symbols):
                LOGGER.debug("Black holes accepted: %d targets on attempt %d", len(targets), attempt)
                return GenerationResult(targets=targets, solution_path=solution_path)
    return None
