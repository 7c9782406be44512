"""Chips: same-colour symbols sharing a chip's region must line up in a row or column."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import DEFAULT_COLORS, SymbolKind
from ..core.models import ChipTarget, GenerationResult, Point, SymbolMap
from ..engine.grid import cell_key, edges_from_path
from ..engine.palette import collect_colored_cells, count_symbols, derive_palette, unique_colors
from ..engine.paths import resolve_solution_path
from ..engine.regions import RegionMap, build_cell_regions
from ..engine.rng import Mulberry32, rand_int, weighted_pick
from ..utils.logger import get_logger
from .common import attempt_rng, frozen_blocked, is_low_symbol_set, open_cells, passes

LOGGER = get_logger(__name__)

DEFAULT_CHIP_COLOR = DEFAULT_COLORS[SymbolKind.CHIP]
CHIP_SALT = 5101
CHIP_ATTEMPTS = 110
CHIP_STRIDE = 101

Cell = Tuple[int, int]
GroupKey = Tuple[int, str]


def is_edge_cell(cell: Cell) -> bool:
    return cell[0] in (0, 3) or cell[1] in (0, 3)


def is_lineable(cells: Sequence[Cell]) -> bool:
    """True when all cells share a column or a row."""

    if len(cells) <= 1:
        return True
    first_x, first_y = cells[0]
    return all(x == first_x for x, _ in cells) or all(y == first_y for _, y in cells)


def allowed_cells_for_group(existing: Sequence[Cell], available: Sequence[Cell]) -> List[Cell]:
    """Cells that keep ``existing`` collinear once added."""

    if not existing:
        return list(available)
    first_x, first_y = existing[0]
    same_x = all(x == first_x for x, _ in existing)
    same_y = all(y == first_y for _, y in existing)
    if not same_x and not same_y:
        return []
    return [cell for cell in available if (same_x and cell[0] == first_x) or (same_y and cell[1] == first_y)]


def collect_failing_chip_indexes(
    used_edges: AbstractSet[str],
    targets: Sequence[ChipTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> Set[int]:
    failing: Set[int] = set()
    if not targets:
        return failing

    regions = build_cell_regions(used_edges)
    everything = collect_colored_cells(other_symbols, targets, exclude=(SymbolKind.CHIP,))
    count_by_color: Counter = Counter()
    count_by_region: Counter = Counter()
    cells_by_group: Dict[GroupKey, List[Cell]] = {}
    for symbol in everything:
        count_by_color[symbol.color] += 1
        region = regions.get(symbol.cell_key)
        if region is None:
            continue
        count_by_region[region] += 1
        cells_by_group.setdefault((region, symbol.color), []).append(symbol.cell)

    chips_by_group: Dict[GroupKey, List[int]] = {}
    for index, target in enumerate(targets):
        if count_by_color[target.color] <= 1:
            failing.add(index)
        region = regions.get(target.cell_key)
        if region is None:
            failing.add(index)
            continue
        if count_by_region[region] <= 1:
            failing.add(index)
        chips_by_group.setdefault((region, target.color), []).append(index)

    for group, indexes in chips_by_group.items():
        cells = cells_by_group.get(group, [])
        if len(cells) <= 1 or not is_lineable(cells):
            failing.update(indexes)
    return failing


def check_chips(
    used_edges: AbstractSet[str],
    targets: Sequence[ChipTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> bool:
    return passes(collect_failing_chip_indexes(used_edges, targets, other_symbols), targets, empty_is_valid=False)


@dataclass
class _Placement:
    region: int
    color: str
    cell: Cell
    has_support: bool
    weight: float


def _diversity_bonus(color_rule: bool, palette: Sequence[str], usage: int) -> float:
    if not color_rule or len(palette) <= 1:
        return 1.0
    if usage == 0:
        return 1.9
    if usage == 1:
        return 1.2
    return 0.74


def _placement_options(
    region_cells: Dict[int, List[Cell]],
    used_cells: Set[str],
    working: Dict[GroupKey, List[Cell]],
    palette: Sequence[str],
    support_colors: AbstractSet[str],
    color_usage: Counter,
    color_rule: bool,
    rng: Mulberry32,
) -> List[_Placement]:
    options: List[_Placement] = []
    for region, cells in region_cells.items():
        available = [cell for cell in cells if cell_key(*cell) not in used_cells]
        if not available:
            continue
        for color in palette:
            group = working.get((region, color), [])
            allowed = allowed_cells_for_group(group, available)
            if not allowed:
                continue
            has_support = bool(group)
            diversity = _diversity_bonus(color_rule, palette, color_usage[color])
            for cell in allowed:
                center_bonus = 0.82 if is_edge_cell(cell) else 2.25
                support_bonus = 4.6 if has_support else 1.15
                shared_color_bonus = 1.4 if color in support_colors else 0.65
                shape_bonus = 1.2 if len(group) >= 2 else 0.4
                jitter = rng.random() * 0.35
                weight = (center_bonus + support_bonus + shared_color_bonus + shape_bonus + jitter) * diversity
                options.append(_Placement(region, color, cell, has_support, weight))
    return options


def generate_chips_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    support_symbols: Optional[SymbolMap] = None,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    """Grow collinear chip groups, favouring groups that extend support symbols."""

    blocked = frozen_blocked(blocked_cells)
    rng = Mulberry32(seed)
    solution_path = resolve_solution_path(edges, rng, preferred_path, 220, 10)
    if solution_path is None:
        return None

    used_edges = edges_from_path(solution_path)
    regions: RegionMap = build_cell_regions(used_edges)
    region_cells: Dict[int, List[Cell]] = {}
    for x, y in open_cells(blocked):
        region_cells.setdefault(regions[cell_key(x, y)], []).append((x, y))
    if not region_cells:
        return None

    support = collect_colored_cells(support_symbols, exclude=(SymbolKind.CHIP,))
    support_colors = set(unique_colors(support))
    palette = derive_palette(DEFAULT_CHIP_COLOR, color_rule, rng, preferred_colors, unique_colors(support))

    existing: Dict[GroupKey, List[Cell]] = {}
    for symbol in support:
        region = regions.get(symbol.cell_key)
        if region is not None:
            existing.setdefault((region, symbol.color), []).append(symbol.cell)
    has_support_symbols = bool(existing)
    support_count = count_symbols(support_symbols, exclude=(SymbolKind.CHIP, SymbolKind.HEXAGON))
    available_count = sum(len(cells) for cells in region_cells.values())

    low_symbol_set = is_low_symbol_set(selected_symbol_count)
    min_contribution = max(1, 5 - support_count)
    min_count = max(2 if low_symbol_set else 1, min_contribution)
    max_count = 9 if low_symbol_set else 6
    max_allowed = min(max(min_count, max_count), available_count)
    if max_allowed < min_count:
        return None
    target_count = min_count + rand_int(rng, max_allowed - min_count + 1)

    for attempt in range(CHIP_ATTEMPTS):
        local_rng = attempt_rng(seed, CHIP_SALT, attempt, stride=CHIP_STRIDE)
        used_cells: Set[str] = set(blocked)
        working = {group: list(cells) for group, cells in existing.items()}
        chips: List[ChipTarget] = []
        color_usage: Counter = Counter()
        placed_interacting = False

        for _ in range(target_count):
            options = _placement_options(
                region_cells, used_cells, working, palette, support_colors, color_usage, color_rule, local_rng
            )
            if not options:
                break
            has_support_option = any(option.has_support for option in options)
            favor_diversity = color_rule and len(palette) > 1 and len(color_usage) < min(2, len(palette))
            prefer_support = has_support_option and local_rng.random() < (0.44 if favor_diversity else 0.82)
            pool = [option for option in options if option.has_support] if prefer_support else options
            if favor_diversity:
                unused = [option for option in pool if color_usage[option.color] == 0]
                if unused and local_rng.random() < 0.68:
                    pool = unused
            pick = weighted_pick([(option, option.weight) for option in pool], local_rng)
            if pick is None:
                break

            chips.append(ChipTarget(cell_x=pick.cell[0], cell_y=pick.cell[1], color=pick.color))
            color_usage[pick.color] += 1
            placed_interacting = placed_interacting or pick.has_support
            used_cells.add(cell_key(*pick.cell))
            working.setdefault((pick.region, pick.color), []).append(pick.cell)

        if len(chips) < target_count:
            continue
        if has_support_symbols and not placed_interacting and local_rng.random() < 0.86:
            continue
        if check_chips(used_edges, chips, support_symbols):
            LOGGER.debug("Chips accepted on attempt %d (%d chips)", attempt, len(chips))
            return GenerationResult(targets=chips, solution_path=solution_path)
    return None
