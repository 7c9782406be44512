"""Minesweeper numbers: how many of the eight neighbours lie in another region."""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Optional, Sequence, Set

from ..core.constants import CELL_BOUNDS, DEFAULT_COLORS, NEIGHBOR_STEPS, SymbolKind
from ..core.models import GenerationResult, MinesweeperTarget, Point
from ..engine.grid import cell_key, edges_from_path
from ..engine.palette import derive_palette
from ..engine.paths import resolve_solution_path
from ..engine.regions import RegionMap, build_cell_regions
from ..engine.rng import Mulberry32, rand_int, shuffle
from .common import attempt_rng, failing_indexes, frozen_blocked, is_low_symbol_set, open_cells

DEFAULT_MINESWEEPER_COLOR = DEFAULT_COLORS[SymbolKind.MINESWEEPER]
MINESWEEPER_SALT = 3923
MINESWEEPER_ATTEMPTS = 24


def count_separated_neighbor_cells(regions: RegionMap, cell_x: int, cell_y: int) -> int:
    center = regions.get(cell_key(cell_x, cell_y))
    if center is None:
        return 0
    separated = 0
    for dx, dy in NEIGHBOR_STEPS:
        nx, ny = cell_x + dx, cell_y + dy
        if not CELL_BOUNDS.contains(nx, ny):
            continue
        neighbor = regions.get(cell_key(nx, ny))
        if neighbor is not None and neighbor != center:
            separated += 1
    return separated


def collect_failing_minesweeper_indexes(
    used_edges: AbstractSet[str], targets: Sequence[MinesweeperTarget]
) -> Set[int]:
    regions = build_cell_regions(used_edges)
    return failing_indexes(
        targets,
        lambda target: count_separated_neighbor_cells(regions, target.cell_x, target.cell_y) == target.value,
    )


def check_minesweeper_numbers(used_edges: AbstractSet[str], targets: Sequence[MinesweeperTarget]) -> bool:
    return not collect_failing_minesweeper_indexes(used_edges, targets)


def generate_minesweeper_numbers_for_edges(
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
    candidates = [
        (x, y, count_separated_neighbor_cells(regions, x, y))
        for x, y in open_cells(frozen_blocked(blocked_cells))
    ]
    if not candidates:
        return None

    max_count = 7 if is_low_symbol_set(selected_symbol_count) else 4
    max_allowed = min(max_count, len(candidates))
    target_count = 1 + rand_int(rng, max_allowed)
    palette = derive_palette(DEFAULT_MINESWEEPER_COLOR, color_rule, rng, preferred_colors)

    for attempt in range(MINESWEEPER_ATTEMPTS):
        local_rng = attempt_rng(seed, MINESWEEPER_SALT, attempt)
        targets: List[MinesweeperTarget] = [
            MinesweeperTarget(cell_x=x, cell_y=y, color=palette[rand_int(local_rng, len(palette))], value=value)
            for x, y, value in shuffle(candidates, local_rng)[:target_count]
        ]
        if check_minesweeper_numbers(used_edges, targets):
            return GenerationResult(targets=targets, solution_path=solution_path)
    return None
