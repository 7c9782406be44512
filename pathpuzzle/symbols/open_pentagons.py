"""Open pentagons: same-colour pentagons must be joined by exactly one cell path."""

from __future__ import annotations

from collections import deque
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import CELL_BOUNDS, DEFAULT_COLORS, MAX_COLOR_RULE_COLORS, ORTHOGONAL_STEPS, SymbolKind
from ..core.models import GenerationResult, OpenPentagonTarget, Point, SymbolMap
from ..engine.grid import cell_key, edges_from_path, iter_cells, separating_edge
from ..engine.palette import ColorBalancer, collect_colored_cells, count_symbols, derive_palette, unique_colors
from ..engine.paths import resolve_solution_path
from ..engine.rng import Mulberry32, shuffle, weighted_pick
from ..utils.logger import get_logger
from .common import attempt_rng, frozen_blocked, open_cells, passes
from .eyes import resolve_eye_effects

LOGGER = get_logger(__name__)

DEFAULT_OPEN_PENTAGON_COLOR = DEFAULT_COLORS[SymbolKind.OPEN_PENTAGON]
OPEN_PENTAGON_SALT = 17011

Adjacency = Dict[str, List[str]]

# Group sizes that partition a target count into same-colour groups of at least two.
GROUP_PATTERNS: Dict[int, List[Tuple[int, ...]]] = {
    2: [(2,)],
    3: [(3,)],
    4: [(2, 2), (4,)],
    5: [(3, 2), (5,)],
    6: [(2, 2, 2), (3, 3), (4, 2), (6,)],
    7: [(3, 2, 2), (4, 3), (5, 2), (7,)],
}
LARGE_GROUP_PATTERNS: List[Tuple[int, ...]] = [
    (2, 2, 2, 2),
    (3, 3, 2),
    (4, 2, 2),
    (4, 4),
    (5, 3),
    (6, 2),
    (8,),
]


def group_patterns_for_count(target_count: int) -> List[Tuple[int, ...]]:
    if target_count <= 1:
        return []
    return GROUP_PATTERNS.get(target_count, LARGE_GROUP_PATTERNS)


def build_passable_adjacency(used_edges: AbstractSet[str], blocked: AbstractSet[str]) -> Adjacency:
    """Cell graph joining grid neighbours not separated by a used edge."""

    adjacency: Adjacency = {}
    for x, y in iter_cells():
        key = cell_key(x, y)
        if key in blocked:
            continue
        linked: List[str] = []
        for dx, dy in ORTHOGONAL_STEPS:
            nx, ny = x + dx, y + dy
            if not CELL_BOUNDS.contains(nx, ny):
                continue
            next_key = cell_key(nx, ny)
            if next_key in blocked or separating_edge((x, y), (nx, ny)) in used_edges:
                continue
            linked.append(next_key)
        adjacency[key] = linked
    return adjacency


def count_simple_paths_up_to_two(start: str, end: str, adjacency: Adjacency) -> int:
    """Simple paths from ``start`` to ``end``, saturating at two."""

    if start == end:
        return 1
    count = 0
    visited = {start}
    stack = [(start, iter(adjacency.get(start, ())))]
    while stack and count < 2:
        _, pending = stack[-1]
        for next_key in pending:
            if next_key in visited:
                continue
            if next_key == end:
                count += 1
                if count > 1:
                    break
                continue
            visited.add(next_key)
            stack.append((next_key, iter(adjacency.get(next_key, ()))))
            break
        else:
            current, _ = stack.pop()
            visited.discard(current)
    return count


def _reachable_from(start: str, adjacency: Adjacency) -> Set[str]:
    seen = {start}
    queue = deque([start])
    while queue:
        for next_key in adjacency.get(queue.popleft(), ()):
            if next_key not in seen:
                seen.add(next_key)
                queue.append(next_key)
    return seen


def _group_indexes(targets: Sequence[OpenPentagonTarget]) -> Dict[str, List[int]]:
    groups: Dict[str, List[int]] = {}
    for index, target in enumerate(targets):
        groups.setdefault(target.color, []).append(index)
    return groups


def collect_failing_open_pentagon_indexes(
    used_edges: AbstractSet[str],
    targets: Sequence[OpenPentagonTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> Set[int]:
    """Per-colour connectivity verdict.

    ``used_edges`` should already have eye deletions applied.
    """

    failing: Set[int] = set()
    if not targets:
        return failing

    colored = collect_colored_cells(other_symbols, targets, exclude=(SymbolKind.OPEN_PENTAGON,))
    for color, indexes in _group_indexes(targets).items():
        if len(indexes) < 2:
            failing.update(indexes)
            continue

        blocked = {symbol.cell_key for symbol in colored if symbol.color != color}
        adjacency = build_passable_adjacency(used_edges, blocked)
        terminals = [targets[index].cell_key for index in indexes]
        if any(key not in adjacency for key in terminals):
            failing.update(indexes)
            continue
        reachable = _reachable_from(terminals[0], adjacency)
        if any(key not in reachable for key in terminals):
            failing.update(indexes)
            continue
        for i, first in enumerate(terminals):
            if any(count_simple_paths_up_to_two(first, second, adjacency) != 1 for second in terminals[i + 1 :]):
                failing.update(indexes)
                break
    return failing


def check_open_pentagons(
    used_edges: AbstractSet[str],
    targets: Sequence[OpenPentagonTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> bool:
    return passes(
        collect_failing_open_pentagon_indexes(used_edges, targets, other_symbols), targets, empty_is_valid=False
    )


def _pick_cell(
    candidates: Sequence[Tuple[int, int]], used_cells: AbstractSet[str], rng: Mulberry32
) -> Optional[Tuple[int, int]]:
    options = [
        (cell, 0.85 if cell[0] in (0, 3) or cell[1] in (0, 3) else 1.35)
        for cell in candidates
        if cell_key(*cell) not in used_cells
    ]
    return weighted_pick(options, rng)


def generate_open_pentagons_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    support_symbols: Optional[SymbolMap] = None,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    """Place colour groups of pentagons, each group uniquely connected.

    Eyes already present in ``support_symbols`` delete their segments before
    connectivity is measured.
    """

    blocked = frozen_blocked(blocked_cells)
    rng = Mulberry32(seed)
    pentagon_only = selected_symbol_count <= 1 and count_symbols(support_symbols) == 0
    attempts, min_length = (320, 11) if pentagon_only else (170, 8)
    solution_path = resolve_solution_path(edges, rng, preferred_path, attempts, min_length)
    if solution_path is None:
        return None

    used_edges = edges_from_path(solution_path)
    eyes = list((support_symbols or {}).get(SymbolKind.EYE, ()))
    effective_edges = resolve_eye_effects(used_edges, eyes).effective_edges if eyes else used_edges

    available = shuffle(open_cells(blocked), rng)
    if len(available) < 2:
        return None

    support_colors = unique_colors(collect_colored_cells(support_symbols))
    palette = derive_palette(
        DEFAULT_OPEN_PENTAGON_COLOR,
        color_rule,
        rng,
        preferred_colors,
        support_colors,
        extend_with_remaining=True,
        cap=MAX_COLOR_RULE_COLORS,
    )

    if pentagon_only:
        max_by_difficulty, min_count, attempts_per_count = 7, 4, 220
    else:
        max_by_difficulty = 4 if selected_symbol_count <= 2 else 3 if selected_symbol_count == 3 else 2
        min_count, attempts_per_count = 2, 120
    max_allowed = min(max_by_difficulty, len(available))

    for target_count in range(max_allowed, min_count - 1, -1):
        patterns = group_patterns_for_count(target_count)
        for attempt in range(attempts_per_count):
            local_rng = attempt_rng(seed, OPEN_PENTAGON_SALT, attempt, stride=173, extra=target_count * 239)
            for pattern in shuffle(patterns, local_rng):
                if color_rule:
                    balancer = ColorBalancer(palette)
                    colors = [balancer.pick(local_rng) for _ in pattern]
                else:
                    colors = [palette[0]] * len(pattern)

                used_cells: Set[str] = set(blocked)
                targets: List[OpenPentagonTarget] = []
                for size, color in zip(pattern, colors):
                    for _ in range(size):
                        cell = _pick_cell(available, used_cells, local_rng)
                        if cell is None:
                            break
                        used_cells.add(cell_key(*cell))
                        targets.append(OpenPentagonTarget(cell_x=cell[0], cell_y=cell[1], color=color))
                if len(targets) != target_count:
                    continue

                if pentagon_only:
                    groups = _group_indexes(targets)
                    if len(palette) > 1 and len(groups) < 2:
                        continue
                    if max(len(indexes) for indexes in groups.values()) < 3 and len(targets) < 6:
                        continue

                if check_open_pentagons(effective_edges, targets, support_symbols):
                    return GenerationResult(targets=targets, solution_path=solution_path)
    LOGGER.debug("Open pentagons infeasible for seed %d", seed)
    return None
