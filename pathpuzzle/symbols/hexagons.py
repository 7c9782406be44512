"""Hexagons: marked vertices and edges the path has to run through."""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Optional, Sequence, Set

from ..core.constants import HexPlacement
from ..core.models import GenerationResult, HexTarget, Point
from ..engine.grid import edge_key, edge_midpoint, parse_edge_key, point_key
from ..engine.paths import accepts_preferred_path, find_random_path
from ..engine.rng import Mulberry32, pick_spread_targets, rand_int
from .common import failing_indexes, passes

HEXAGON_SALT = 1337
HEX_SPREAD_DISTANCE = 1.05


def visited_vertices(used_edges: AbstractSet[str]) -> Set[str]:
    """Vertex keys touched by a used edge, which for a path are exactly its vertices."""

    vertices: Set[str] = set()
    for edge in used_edges:
        a, b = parse_edge_key(edge)
        vertices.add(point_key(a))
        vertices.add(point_key(b))
    return vertices


def collect_failing_hexagon_indexes(used_edges: AbstractSet[str], targets: Sequence[HexTarget]) -> Set[int]:
    vertices = visited_vertices(used_edges)

    def covered(target: HexTarget) -> bool:
        if target.placement == HexPlacement.EDGE:
            return target.edge_key is not None and target.edge_key in used_edges
        return point_key((int(target.position[0]), int(target.position[1]))) in vertices

    return failing_indexes(targets, covered)


def check_hexagons(used_edges: AbstractSet[str], targets: Sequence[HexTarget]) -> bool:
    return passes(collect_failing_hexagon_indexes(used_edges, targets), targets)


def hexagon_pool(path: Sequence[Point]) -> List[HexTarget]:
    """Every interior vertex and every edge of ``path`` as a hexagon candidate."""

    pool = [HexTarget(placement=HexPlacement.NODE, position=(point.x, point.y)) for point in path[1:-1]]
    for a, b in zip(path, path[1:]):
        pool.append(HexTarget(placement=HexPlacement.EDGE, position=edge_midpoint(a, b), edge_key=edge_key(a, b)))
    return pool


def generate_hexagons_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int = 1,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    """Two to four hexagons spread along the solution path."""

    permitted = frozenset(edges)
    rng = Mulberry32(seed + HEXAGON_SALT)
    if accepts_preferred_path(preferred_path, permitted):
        path = [Point(*point) for point in preferred_path]
    else:
        path = find_random_path(permitted, rng)
    if path is None or len(path) < 2:
        return None

    pool = hexagon_pool(path)
    if len(pool) <= 2:
        targets = pool
    else:
        target_count = min(len(pool), 2 + rand_int(rng, 3))
        targets = pick_spread_targets(pool, target_count, HEX_SPREAD_DISTANCE, rng, lambda target: target.position)
    return GenerationResult(targets=list(targets), solution_path=path)
