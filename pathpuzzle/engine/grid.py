"""Board geometry: vertices, canonical edge keys and permitted edge sets."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from ..core.constants import CELL_COUNT, END, MAX_INDEX, NODE_COUNT, START
from ..core.exceptions import EdgeKeyError
from ..core.models import Point
from ..utils.logger import get_logger
from .rng import Mulberry32, shuffle


LOGGER = get_logger(__name__)

START_POINT = Point(*START)
END_POINT = Point(*END)

EdgeSet = FrozenSet[str]


# ----------------------------------------------------------------------
# Keys
# ----------------------------------------------------------------------
def edge_key(a: Tuple[int, int], b: Tuple[int, int]) -> str:
    """Canonical, order-independent key for the edge between ``a`` and ``b``."""

    ax, ay = a
    bx, by = b
    if ax == bx:
        first, second = (a, b) if ay < by else (b, a)
    elif ay == by:
        first, second = (a, b) if ax < bx else (b, a)
    else:
        first, second = a, b
    return f"{first[0]},{first[1]}-{second[0]},{second[1]}"


def parse_edge_key(key: str) -> Tuple[Point, Point]:
    try:
        left, right = key.split("-")
        ax, ay = (int(part) for part in left.split(","))
        bx, by = (int(part) for part in right.split(","))
    except ValueError as exc:
        raise EdgeKeyError(f"Malformed edge key {key!r}") from exc
    return Point(ax, ay), Point(bx, by)


def cell_key(x: int, y: int) -> str:
    return f"{x},{y}"


def point_key(point: Tuple[int, int]) -> str:
    return f"{point[0]},{point[1]}"


# ----------------------------------------------------------------------
# Vertices and cells
# ----------------------------------------------------------------------
def in_bounds(point: Tuple[int, int]) -> bool:
    return 0 <= point[0] <= MAX_INDEX and 0 <= point[1] <= MAX_INDEX


def neighbors(point: Tuple[int, int]) -> List[Point]:
    """Orthogonal neighbours of a vertex in right, left, down, up order."""

    x, y = point
    candidates = (Point(x + 1, y), Point(x - 1, y), Point(x, y + 1), Point(x, y - 1))
    return [candidate for candidate in candidates if in_bounds(candidate)]


def iter_cells() -> Iterator[Tuple[int, int]]:
    """Every cell in row-major order."""

    for y in range(CELL_COUNT):
        for x in range(CELL_COUNT):
            yield (x, y)


def cell_corners(x: int, y: int) -> Tuple[Point, Point, Point, Point]:
    return (Point(x, y), Point(x + 1, y), Point(x, y + 1), Point(x + 1, y + 1))


def cell_edge_keys(x: int, y: int) -> Tuple[str, str, str, str]:
    """Top, right, bottom and left boundary edges of a cell."""

    return (
        edge_key((x, y), (x + 1, y)),
        edge_key((x + 1, y), (x + 1, y + 1)),
        edge_key((x, y + 1), (x + 1, y + 1)),
        edge_key((x, y), (x, y + 1)),
    )


def separating_edge(from_cell: Tuple[int, int], to_cell: Tuple[int, int]) -> Optional[str]:
    """Edge between two orthogonally adjacent cells, ``None`` if not adjacent."""

    fx, fy = from_cell
    tx, ty = to_cell
    if tx == fx + 1 and ty == fy:
        return edge_key((fx + 1, fy), (fx + 1, fy + 1))
    if tx == fx - 1 and ty == fy:
        return edge_key((fx, fy), (fx, fy + 1))
    if tx == fx and ty == fy + 1:
        return edge_key((fx, fy + 1), (fx + 1, fy + 1))
    if tx == fx and ty == fy - 1:
        return edge_key((fx, fy), (fx + 1, fy))
    return None


def edge_midpoint(a: Tuple[int, int], b: Tuple[int, int]) -> Tuple[float, float]:
    return ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)


# ----------------------------------------------------------------------
# Edge sets
# ----------------------------------------------------------------------
def list_all_edges() -> List[Tuple[str, Point, Point]]:
    """All 40 board edges as ``(key, a, b)`` in row-major, right-then-down order."""

    edges: List[Tuple[str, Point, Point]] = []
    for y in range(NODE_COUNT):
        for x in range(NODE_COUNT):
            point = Point(x, y)
            if x < MAX_INDEX:
                right = Point(x + 1, y)
                edges.append((edge_key(point, right), point, right))
            if y < MAX_INDEX:
                down = Point(x, y + 1)
                edges.append((edge_key(point, down), point, down))
    return edges


def build_full_edges() -> EdgeSet:
    return frozenset(key for key, _, _ in list_all_edges())


def edges_from_path(path: Sequence[Tuple[int, int]]) -> EdgeSet:
    """Edge keys of consecutive path pairs; empty for paths shorter than two."""

    return frozenset(edge_key(path[i - 1], path[i]) for i in range(1, len(path)))


def is_path_compatible(path: Sequence[Tuple[int, int]], edges: Iterable[str]) -> bool:
    """Whether every step of ``path`` uses a permitted edge."""

    permitted = edges if isinstance(edges, (set, frozenset)) else set(edges)
    return all(edge_key(path[i - 1], path[i]) in permitted for i in range(1, len(path)))


def has_path(edges: Iterable[str]) -> bool:
    """Breadth-first reachability of the end corner from the start corner."""

    permitted = set(edges)
    queue = deque([START_POINT])
    visited: Set[Point] = {START_POINT}
    while queue:
        current = queue.popleft()
        if current == END_POINT:
            return True
        for nxt in neighbors(current):
            if edge_key(current, nxt) not in permitted or nxt in visited:
                continue
            visited.add(nxt)
            queue.append(nxt)
    return False


@dataclass
class BoardConfig:
    """Configuration values driving the permitted edge layout."""

    seed: int = 0
    min_gap_ratio: float = 0.12
    gap_ratio_spread: float = 0.12
    max_attempts: int = 40
    attempt_stride: int = 97


def build_edges(rng: Mulberry32, config: Optional[BoardConfig] = None, keep: Iterable[str] = ()) -> EdgeSet:
    """Full board minus a random share of "broken" edges.

    Edges listed in ``keep`` are never removed, which lets a board be rebuilt
    around an already committed solution path.
    """

    config = config or BoardConfig()
    all_keys = [key for key, _, _ in list_all_edges()]
    kept = set(keep)
    removable = [key for key in all_keys if key not in kept]
    gap_ratio = config.min_gap_ratio + rng.random() * config.gap_ratio_spread
    gap_count = min(len(removable), int(math.floor(len(all_keys) * gap_ratio)))
    gaps = set(shuffle(removable, rng)[:gap_count])
    return frozenset(key for key in all_keys if key not in gaps)


def generate_board_edges(config: BoardConfig, required_path: Optional[Sequence[Point]] = None) -> EdgeSet:
    """Seeded permitted edge set that still connects start to end.

    Tries ``config.max_attempts`` layouts seeded ``seed + attempt * stride``;
    when every layout disconnects the corners the unbroken board is used.
    """

    keep = edges_from_path(required_path) if required_path else frozenset()
    for attempt in range(config.max_attempts):
        rng = Mulberry32(config.seed + attempt * config.attempt_stride)
        edges = build_edges(rng, config, keep)
        if has_path(edges):
            LOGGER.debug("Board layout accepted on attempt %d (%d edges)", attempt, len(edges))
            return edges
    LOGGER.warning("No connected layout for seed %d, using the full board", config.seed)
    return build_full_edges()

