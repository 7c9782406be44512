"""Spinner rule: every path segment on a cell's boundary turns the same way."""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import DEFAULT_COLORS, Rotation, SymbolKind
from ..core.models import GenerationResult, Point, SpinnerTarget
from ..engine.palette import derive_palette
from ..engine.paths import resolve_solution_path
from ..engine.rng import Mulberry32, rand_int, shuffle
from .common import attempt_rng, frozen_blocked, is_low_symbol_set, open_cells

DEFAULT_SPINNER_COLOR = DEFAULT_COLORS[SymbolKind.SPINNER]
SPINNER_SALT = 3719
SPINNER_ATTEMPTS = 24


def traversal_around_cell(a: Point, b: Point, cell_x: int, cell_y: int) -> Optional[Rotation]:
    """Rotation implied by walking ``a -> b`` along a side of the cell, if on one."""

    if a.x == b.x:
        if min(a.y, b.y) != cell_y:
            return None
        if a.x == cell_x:
            return Rotation.CLOCKWISE if a.y > b.y else Rotation.COUNTERCLOCKWISE
        if a.x == cell_x + 1:
            return Rotation.CLOCKWISE if a.y < b.y else Rotation.COUNTERCLOCKWISE
        return None
    if a.y == b.y:
        if min(a.x, b.x) != cell_x:
            return None
        if a.y == cell_y:
            return Rotation.CLOCKWISE if a.x < b.x else Rotation.COUNTERCLOCKWISE
        if a.y == cell_y + 1:
            return Rotation.CLOCKWISE if a.x > b.x else Rotation.COUNTERCLOCKWISE
    return None


def count_spinner_traversals(path: Sequence[Point], cell_x: int, cell_y: int) -> Tuple[int, int]:
    """``(clockwise, counterclockwise)`` segment counts on the cell boundary."""

    clockwise = counterclockwise = 0
    for a, b in zip(path, path[1:]):
        rotation = traversal_around_cell(a, b, cell_x, cell_y)
        if rotation == Rotation.CLOCKWISE:
            clockwise += 1
        elif rotation == Rotation.COUNTERCLOCKWISE:
            counterclockwise += 1
    return clockwise, counterclockwise


def satisfied_rotation(path: Sequence[Point], cell_x: int, cell_y: int) -> Optional[Rotation]:
    clockwise, counterclockwise = count_spinner_traversals(path, cell_x, cell_y)
    if clockwise and not counterclockwise:
        return Rotation.CLOCKWISE
    if counterclockwise and not clockwise:
        return Rotation.COUNTERCLOCKWISE
    return None


def collect_failing_spinner_indexes(path: Sequence[Point], targets: Sequence[SpinnerTarget]) -> Set[int]:
    return {
        index
        for index, target in enumerate(targets)
        if satisfied_rotation(path, target.cell_x, target.cell_y) != target.direction
    }


def check_spinners(path: Sequence[Point], targets: Sequence[SpinnerTarget]) -> bool:
    return not collect_failing_spinner_indexes(path, targets)


def generate_spinners_for_edges(
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
        rotation = satisfied_rotation(solution_path, x, y)
        if rotation is not None:
            candidates.append((x, y, rotation))
    if not candidates:
        return None

    low_symbol_set = is_low_symbol_set(selected_symbol_count)
    min_count = 2 if low_symbol_set else 1
    max_count = 6 if low_symbol_set else 4
    max_allowed = min(max_count, len(candidates))
    if max_allowed < min_count:
        return None
    target_count = min_count + rand_int(rng, max_allowed - min_count + 1)
    palette = derive_palette(DEFAULT_SPINNER_COLOR, color_rule, rng, preferred_colors)

    for attempt in range(SPINNER_ATTEMPTS):
        local_rng = attempt_rng(seed, SPINNER_SALT, attempt)
        targets: List[SpinnerTarget] = [
            SpinnerTarget(cell_x=x, cell_y=y, color=palette[rand_int(local_rng, len(palette))], direction=rotation)
            for x, y, rotation in shuffle(candidates, local_rng)[:target_count]
        ]
        if check_spinners(solution_path, targets):
            return GenerationResult(targets=targets, solution_path=solution_path)
    return None
