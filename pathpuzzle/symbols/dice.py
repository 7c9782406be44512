"""Dice: the pips in a region add up to the region's area."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import DEFAULT_COLORS, SymbolKind
from ..core.models import DiceTarget, GenerationResult, Point
from ..engine.grid import cell_key, edges_from_path
from ..engine.palette import derive_palette
from ..engine.paths import resolve_solution_path
from ..engine.regions import build_cell_regions, cells_by_region
from ..engine.rng import Mulberry32, rand_int, shuffle
from ..utils.logger import get_logger
from .common import attempt_rng, frozen_blocked, is_low_symbol_set, open_cells, passes

LOGGER = get_logger(__name__)

DEFAULT_DICE_COLOR = DEFAULT_COLORS[SymbolKind.DICE]
DICE_SALT = 7171
DICE_ATTEMPTS = 120
MAX_DIE_VALUE = 9
VALUE_ATTEMPTS = 6


def collect_failing_dice_indexes(used_edges: AbstractSet[str], targets: Sequence[DiceTarget]) -> Set[int]:
    failing: Set[int] = set()
    if not targets:
        return failing

    regions = build_cell_regions(used_edges)
    areas = {region: len(cells) for region, cells in cells_by_region(regions).items()}
    sums: Dict[int, int] = {}
    by_region: Dict[int, List[int]] = {}
    for index, target in enumerate(targets):
        region = regions.get(target.cell_key)
        if region is None:
            failing.add(index)
            continue
        sums[region] = sums.get(region, 0) + target.value
        by_region.setdefault(region, []).append(index)
    for region, indexes in by_region.items():
        if sums[region] != areas.get(region):
            failing.update(indexes)
    return failing


def check_dice(used_edges: AbstractSet[str], targets: Sequence[DiceTarget]) -> bool:
    return passes(collect_failing_dice_indexes(used_edges, targets), targets)


def _build_values(total: int, count: int, rng: Mulberry32) -> Optional[List[int]]:
    values = [1] * count
    for _ in range(total - count):
        candidates = [index for index, value in enumerate(values) if value < MAX_DIE_VALUE]
        if not candidates:
            return None
        values[candidates[rand_int(rng, len(candidates))]] += 1
    return values


def random_dice_values(total: int, count: int, rng: Mulberry32) -> Optional[List[int]]:
    """Split ``total`` into ``count`` die faces, avoiding too many ones and twos."""

    if count < 1 or total < count or total > count * MAX_DIE_VALUE:
        return None
    minimum_low = math.ceil(max(0, count * 3 - total) / 2)
    low_cap = min(count, minimum_low + (2 if count >= 4 else 1))

    best: Optional[List[int]] = None
    best_low = math.inf
    for _ in range(VALUE_ATTEMPTS):
        values = _build_values(total, count, rng)
        if values is None:
            return None
        low = sum(1 for value in values if value <= 2)
        if low < best_low:
            best, best_low = list(values), low
        if low <= low_cap:
            return shuffle(values, rng)
    return shuffle(best, rng) if best is not None else None


@dataclass(frozen=True)
class RegionOption:
    region: int
    area: int
    cells: Tuple[Tuple[int, int], ...]
    min_count: int
    max_count: int


def choose_region_dice_counts(
    options: Sequence[RegionOption], target_count: int, rng: Mulberry32
) -> Optional[Dict[int, int]]:
    """Distribute ``target_count`` dice over regions within each region's bounds."""

    ordered = shuffle(options, rng)
    suffix_max = [0] * (len(ordered) + 1)
    for index in range(len(ordered) - 1, -1, -1):
        suffix_max[index] = suffix_max[index + 1] + ordered[index].max_count
    chosen: Dict[int, int] = {}

    def assign(index: int, remaining: int) -> bool:
        if remaining == 0:
            return True
        if index >= len(ordered) or remaining > suffix_max[index]:
            return False
        current = ordered[index]
        counts = [0] + shuffle(list(range(current.min_count, current.max_count + 1)), rng)
        for count in counts:
            if count > remaining:
                continue
            if count > 0:
                chosen[current.region] = count
            if assign(index + 1, remaining - count):
                return True
            chosen.pop(current.region, None)
        return False

    return chosen if assign(0, target_count) else None


def generate_dice_for_edges(
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
    regions = build_cell_regions(used_edges)
    full_cells = cells_by_region(regions)
    free_cells: Dict[int, List[Tuple[int, int]]] = {}
    for x, y in open_cells(blocked):
        free_cells.setdefault(regions[cell_key(x, y)], []).append((x, y))

    options: List[RegionOption] = []
    for region, cells in free_cells.items():
        area = len(full_cells[region])
        min_count = max(1, math.ceil(area / MAX_DIE_VALUE))
        max_count = min(len(cells), area)
        if max_count >= min_count:
            options.append(RegionOption(region, area, tuple(cells), min_count, max_count))
    if not options:
        return None

    low_symbol_set = is_low_symbol_set(selected_symbol_count)
    min_count = 3 if low_symbol_set else 1
    max_allowed = min(8 if low_symbol_set else 5, sum(len(option.cells) for option in options))
    if max_allowed < min_count:
        return None
    target_count = min_count + rand_int(rng, max_allowed - min_count + 1)
    palette = derive_palette(DEFAULT_DICE_COLOR, color_rule, rng, preferred_colors)
    by_region = {option.region: option for option in options}

    for attempt in range(DICE_ATTEMPTS):
        local_rng = attempt_rng(seed, DICE_SALT, attempt)
        counts = choose_region_dice_counts(options, target_count, local_rng)
        if counts is None:
            continue
        targets: List[DiceTarget] = []
        for region, count in counts.items():
            option = by_region[region]
            cells = shuffle(option.cells, local_rng)[:count]
            values = random_dice_values(option.area, count, local_rng)
            if values is None or len(cells) < count:
                break
            for (x, y), value in zip(cells, values):
                targets.append(
                    DiceTarget(cell_x=x, cell_y=y, color=palette[rand_int(local_rng, len(palette))], value=value)
                )
        if len(targets) == target_count and check_dice(used_edges, targets):
            return GenerationResult(targets=targets, solution_path=solution_path)
    LOGGER.debug("Dice infeasible for seed %d", seed)
    return None
