"""Arrow rule: count path crossings of a ray cast from the cell centre."""

from __future__ import annotations

from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import ALL_DIRECTIONS, DEFAULT_COLORS, EPSILON, Direction, SymbolKind
from ..core.models import ArrowTarget, GenerationResult, Point
from ..engine.palette import derive_palette
from ..engine.paths import resolve_solution_path
from ..engine.rng import Mulberry32, rand_int, shuffle
from ..utils.logger import get_logger
from .common import attempt_rng, draw_target_count, failing_indexes, frozen_blocked, is_low_symbol_set, open_cells

LOGGER = get_logger(__name__)

DEFAULT_ARROW_COLOR = DEFAULT_COLORS[SymbolKind.ARROW]
ARROW_SALT = 3301
ARROW_ATTEMPTS = 24
MIN_ARROW_COUNT = 1
MAX_ARROW_COUNT = 4


def _count_cardinal_crossings(path: Sequence[Point], direction: Direction, cx: float, cy: float) -> int:
    crossings = 0
    for a, b in zip(path, path[1:]):
        if a.x == b.x:
            if not min(a.y, b.y) < cy < max(a.y, b.y):
                continue
            if direction == Direction.RIGHT and a.x > cx:
                crossings += 1
            elif direction == Direction.LEFT and a.x < cx:
                crossings += 1
        elif a.y == b.y:
            if not min(a.x, b.x) < cx < max(a.x, b.x):
                continue
            if direction == Direction.DOWN and a.y > cy:
                crossings += 1
            elif direction == Direction.UP and a.y < cy:
                crossings += 1
    return crossings


def _count_diagonal_crossings(path: Sequence[Point], direction: Direction, cx: float, cy: float) -> int:
    # Diagonal rays only meet the lattice at vertices, so count visited vertices on the ray.
    crossings = 0
    for point in path:
        dx = point.x - cx
        dy = point.y - cy
        if direction == Direction.UP_RIGHT:
            hit = dx > 0 and dy < 0 and abs(dx + dy) < EPSILON
        elif direction == Direction.UP_LEFT:
            hit = dx < 0 and dy < 0 and abs(dx - dy) < EPSILON
        elif direction == Direction.DOWN_RIGHT:
            hit = dx > 0 and dy > 0 and abs(dx - dy) < EPSILON
        else:
            hit = dx < 0 and dy > 0 and abs(dx + dy) < EPSILON
        if hit:
            crossings += 1
    return crossings


def count_arrow_crossings(path: Sequence[Point], cell_x: int, cell_y: int, direction: Direction) -> int:
    """Path crossings of the ray leaving the centre of ``(cell_x, cell_y)``."""

    cx = cell_x + 0.5
    cy = cell_y + 0.5
    if direction.is_cardinal:
        return _count_cardinal_crossings(path, direction, cx, cy)
    return _count_diagonal_crossings(path, direction, cx, cy)


def collect_failing_arrow_indexes(path: Sequence[Point], targets: Sequence[ArrowTarget]) -> Set[int]:
    return failing_indexes(
        targets,
        lambda target: count_arrow_crossings(path, target.cell_x, target.cell_y, target.direction)
        == target.count,
    )


def check_arrows(path: Sequence[Point], targets: Sequence[ArrowTarget]) -> bool:
    return not collect_failing_arrow_indexes(path, targets)


def _options_by_cell(
    path: Sequence[Point], blocked_cells: AbstractSet[str]
) -> Dict[Tuple[int, int], List[Tuple[Direction, int]]]:
    options_by_cell: Dict[Tuple[int, int], List[Tuple[Direction, int]]] = {}
    for x, y in open_cells(blocked_cells):
        options = []
        for direction in ALL_DIRECTIONS:
            crossings = count_arrow_crossings(path, x, y, direction)
            if MIN_ARROW_COUNT <= crossings <= MAX_ARROW_COUNT:
                options.append((direction, crossings))
        if options:
            options_by_cell[(x, y)] = options
    return options_by_cell


def generate_arrows_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    """Place arrows whose counts are read off the solution path."""

    rng = Mulberry32(seed)
    solution_path = resolve_solution_path(edges, rng, preferred_path, 220, 10)
    if solution_path is None:
        return None

    options_by_cell = _options_by_cell(solution_path, frozen_blocked(blocked_cells))
    candidate_cells = list(options_by_cell)
    low_symbol_set = is_low_symbol_set(selected_symbol_count)
    min_count = 2 if low_symbol_set else 1
    max_count = 8 if low_symbol_set else 5
    max_allowed = min(max_count, len(candidate_cells))
    if max_allowed < min_count:
        LOGGER.debug("Arrows infeasible: %d candidate cells", len(candidate_cells))
        return None

    target_count = draw_target_count(rng, low_symbol_set, min_count, max_allowed)
    palette = derive_palette(DEFAULT_ARROW_COLOR, color_rule, rng, preferred_colors)

    for attempt in range(ARROW_ATTEMPTS):
        local_rng = attempt_rng(seed, ARROW_SALT, attempt)
        targets: List[ArrowTarget] = []
        for x, y in shuffle(candidate_cells, local_rng)[:target_count]:
            options = options_by_cell[(x, y)]
            direction, count = options[rand_int(local_rng, len(options))]
            targets.append(
                ArrowTarget(
                    cell_x=x,
                    cell_y=y,
                    color=palette[rand_int(local_rng, len(palette))],
                    direction=direction,
                    count=count,
                )
            )
        if check_arrows(solution_path, targets):
            return GenerationResult(targets=targets, solution_path=solution_path)
    return None
