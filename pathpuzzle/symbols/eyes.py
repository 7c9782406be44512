"""Eyes: each eye deletes the first path segment it sees.

The deletion is the one cross-kind side channel besides colour: the
effective edge set produced by :func:`resolve_eye_effects` replaces the
drawn edges for connectivity rules such as open pentagons.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import (
    CARDINAL_DIRECTIONS,
    DEFAULT_COLORS,
    MAX_COLOR_RULE_COLORS,
    MAX_INDEX,
    Direction,
    SymbolKind,
)
from ..core.models import EyeTarget, GenerationResult, Point, SymbolMap
from ..engine.grid import cell_key, edge_key, edges_from_path, iter_cells
from ..engine.palette import ColorBalancer, collect_colored_cells, derive_palette, unique_colors
from ..engine.paths import resolve_solution_path
from ..engine.rng import Mulberry32, shuffle
from ..utils.logger import get_logger
from .common import attempt_rng, frozen_blocked, passes

LOGGER = get_logger(__name__)

DEFAULT_EYE_COLOR = DEFAULT_COLORS[SymbolKind.EYE]
EYE_SALT = 18127
EYE_ATTEMPTS = 84


@dataclass(frozen=True)
class EyeSegment:
    edge: str
    a: Point
    b: Point


@dataclass
class EyeEffects:
    """Outcome of resolving every eye against one drawn edge set."""

    failing_indexes: Set[int] = field(default_factory=set)
    ignored_edges: Set[str] = field(default_factory=set)
    effective_edges: FrozenSet[str] = frozenset()


def _ray_edges(x: int, y: int, direction: Direction) -> Iterable[Tuple[Point, Point]]:
    if direction is Direction.RIGHT:
        for column in range(x + 1, MAX_INDEX + 1):
            yield Point(column, y), Point(column, y + 1)
    elif direction is Direction.LEFT:
        for column in range(x, -1, -1):
            yield Point(column, y), Point(column, y + 1)
    elif direction is Direction.UP:
        for row in range(y, -1, -1):
            yield Point(x, row), Point(x + 1, row)
    elif direction is Direction.DOWN:
        for row in range(y + 1, MAX_INDEX + 1):
            yield Point(x, row), Point(x + 1, row)


def first_segment_in_direction(
    used_edges: AbstractSet[str], x: int, y: int, direction: Direction
) -> Optional[EyeSegment]:
    """Nearest used edge crossing the cardinal ray from the cell centre."""

    for a, b in _ray_edges(x, y, direction):
        edge = edge_key(a, b)
        if edge in used_edges:
            return EyeSegment(edge, a, b)
    return None


def resolve_eye_effects(used_edges: AbstractSet[str], targets: Sequence[EyeTarget]) -> EyeEffects:
    effects = EyeEffects()
    first_by_edge: Dict[str, int] = {}
    for index, target in enumerate(targets):
        segment = first_segment_in_direction(used_edges, target.cell_x, target.cell_y, target.direction)
        if segment is None:
            effects.failing_indexes.add(index)
            continue
        if segment.edge in first_by_edge:
            # Both eyes lose: the deletion would be ambiguous.
            effects.failing_indexes.add(first_by_edge[segment.edge])
            effects.failing_indexes.add(index)
            continue
        first_by_edge[segment.edge] = index
        effects.ignored_edges.add(segment.edge)
    effects.effective_edges = frozenset(edge for edge in used_edges if edge not in effects.ignored_edges)
    return effects


def collect_failing_eye_indexes(used_edges: AbstractSet[str], targets: Sequence[EyeTarget]) -> Set[int]:
    return resolve_eye_effects(used_edges, targets).failing_indexes


def check_eyes(used_edges: AbstractSet[str], targets: Sequence[EyeTarget]) -> bool:
    return passes(collect_failing_eye_indexes(used_edges, targets), targets, empty_is_valid=False)


def generate_eyes_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    support_symbols: Optional[SymbolMap] = None,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    blocked = frozen_blocked(blocked_cells)
    rng = Mulberry32(seed)
    solution_path = resolve_solution_path(edges, rng, preferred_path, 180, 8)
    if solution_path is None:
        return None

    used_edges = edges_from_path(solution_path)
    direction_map: Dict[Tuple[int, int], List[Direction]] = {}
    for x, y in iter_cells():
        if cell_key(x, y) in blocked:
            continue
        directions = [
            direction
            for direction in CARDINAL_DIRECTIONS
            if first_segment_in_direction(used_edges, x, y, direction) is not None
        ]
        if directions:
            direction_map[(x, y)] = directions
    candidates = list(direction_map)
    if not candidates:
        return None

    support_colors = unique_colors(collect_colored_cells(support_symbols))
    palette = derive_palette(
        DEFAULT_EYE_COLOR,
        color_rule,
        rng,
        preferred_colors,
        support_colors,
        extend_with_remaining=True,
        cap=MAX_COLOR_RULE_COLORS,
    )

    max_by_difficulty = 4 if selected_symbol_count <= 2 else 3 if selected_symbol_count == 3 else 2
    max_allowed = min(max_by_difficulty, len(candidates))

    for target_count in range(max_allowed, 0, -1):
        for attempt in range(EYE_ATTEMPTS):
            local_rng = attempt_rng(seed, EYE_SALT, attempt, extra=target_count * 211)
            selected = shuffle(candidates, local_rng)[:target_count]
            balancer = ColorBalancer(palette)
            claimed: Set[str] = set()
            targets: List[EyeTarget] = []
            for x, y in selected:
                direction = None
                for option in shuffle(direction_map[(x, y)], local_rng):
                    segment = first_segment_in_direction(used_edges, x, y, option)
                    if segment is not None and segment.edge not in claimed:
                        direction = option
                        claimed.add(segment.edge)
                        break
                if direction is None:
                    break
                targets.append(EyeTarget(cell_x=x, cell_y=y, color=balancer.pick(local_rng), direction=direction))

            if len(targets) != target_count:
                continue
            if check_eyes(used_edges, targets):
                return GenerationResult(targets=targets, solution_path=solution_path)
    LOGGER.debug("No eye placement for seed %d", seed)
    return None
