"""Seeded path search between the fixed start and end corners."""

from __future__ import annotations

from typing import FrozenSet, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from ..core.models import Point
from ..utils.logger import get_logger
from .grid import END_POINT, START_POINT, edge_key, is_path_compatible, neighbors
from .regions import region_count_for_path
from .rng import Mulberry32, rand_int, shuffle


LOGGER = get_logger(__name__)

DEFAULT_LOOPY_ATTEMPTS = 220
DEFAULT_LOOPY_MIN_LENGTH = 10


def find_random_path(edges: Iterable[str], rng: Mulberry32) -> Optional[List[Point]]:
    """Randomised depth-first search from start to end.

    Neighbour order is shuffled when a vertex is first entered. Vertices are
    never revisited, so the walk backtracks out of dead ends and terminates
    after at most one visit per vertex; ``None`` means the corners are
    disconnected.
    """

    permitted = edges if isinstance(edges, (set, frozenset)) else set(edges)
    visited: Set[Point] = {START_POINT}
    stack: List[Tuple[Point, Iterator[Point]]] = [
        (START_POINT, iter(shuffle(neighbors(START_POINT), rng)))
    ]
    while stack:
        current, options = stack[-1]
        if current == END_POINT:
            return [point for point, _ in stack]
        for nxt in options:
            if nxt in visited or edge_key(current, nxt) not in permitted:
                continue
            visited.add(nxt)
            stack.append((nxt, iter(shuffle(neighbors(nxt), rng))))
            break
        else:
            stack.pop()
    return None


def build_loopy_path(
    edges: Iterable[str],
    rng: Mulberry32,
    min_length: int,
    max_steps: int,
) -> Optional[List[Point]]:
    """Random self-avoiding walk that stays away from the end until long enough."""

    permitted = edges if isinstance(edges, (set, frozenset)) else set(edges)
    current = START_POINT
    path: List[Point] = [START_POINT]
    visited: Set[Point] = {START_POINT}

    for _ in range(max_steps):
        candidates = [
            nxt
            for nxt in neighbors(current)
            if edge_key(current, nxt) in permitted and nxt not in visited
        ]
        if not candidates:
            return None
        if current == END_POINT and len(path) >= min_length:
            break

        options = candidates
        if len(path) < min_length:
            without_end = [nxt for nxt in candidates if nxt != END_POINT]
            if without_end:
                options = without_end

        current = options[rand_int(rng, len(options))]
        path.append(current)
        visited.add(current)
        if current == END_POINT and len(path) >= min_length:
            return path

    if current == END_POINT:
        return path
    return None


def find_best_loopy_path(
    edges: Iterable[str],
    rng: Mulberry32,
    attempts: int = DEFAULT_LOOPY_ATTEMPTS,
    min_length: int = DEFAULT_LOOPY_MIN_LENGTH,
) -> Optional[List[Point]]:
    """Best of ``attempts`` loopy walks by region count, then by length."""

    permitted: FrozenSet[str] = frozenset(edges)
    max_steps = max(20, len(permitted) - 4)
    best_path: Optional[List[Point]] = None
    best_score = (0, 0)
    for _ in range(attempts):
        path = build_loopy_path(permitted, rng, min_length, max_steps)
        # A walk can reach the end on its last step before it is long enough.
        if path is None or len(path) < min_length:
            continue
        score = (region_count_for_path(path), len(path))
        if score > best_score:
            best_score = score
            best_path = path
    return best_path


def accepts_preferred_path(path: Optional[Sequence[Point]], edges: Iterable[str]) -> bool:
    return path is not None and len(path) >= 2 and is_path_compatible(path, edges)


def resolve_solution_path(
    edges: Iterable[str],
    rng: Mulberry32,
    preferred_path: Optional[Sequence[Tuple[int, int]]] = None,
    attempts: int = DEFAULT_LOOPY_ATTEMPTS,
    min_length: int = DEFAULT_LOOPY_MIN_LENGTH,
) -> Optional[List[Point]]:
    """Reuse a compatible caller path, else search a loopy one, else any path.

    An incompatible ``preferred_path`` is silently discarded.
    """

    permitted = frozenset(edges)
    if preferred_path is not None:
        if accepts_preferred_path(preferred_path, permitted):
            return [Point(*point) for point in preferred_path]
        LOGGER.debug("Preferred path rejected: uses edges outside the permitted set")
    path = find_best_loopy_path(permitted, rng, attempts, min_length)
    if path is None:
        path = find_random_path(permitted, rng)
    return path
