"""Water droplets: water poured from a cell must never leak off the board."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import CELL_BOUNDS, CELL_COUNT, DEFAULT_COLORS, Direction, SymbolKind
from ..core.models import GenerationResult, Point, WaterDropletTarget
from ..engine.grid import cell_edge_keys, cell_key, edges_from_path, iter_cells
from ..engine.palette import derive_palette
from ..engine.paths import accepts_preferred_path, find_best_loopy_path, find_random_path
from ..engine.regions import RegionMap, build_cell_regions
from ..engine.rng import Mulberry32, rand_int, shuffle
from ..utils.logger import get_logger
from .common import failing_indexes, frozen_blocked, passes

LOGGER = get_logger(__name__)

DEFAULT_WATER_DROPLET_COLOR = DEFAULT_COLORS[SymbolKind.WATER_DROPLET]
DROPLET_DIRECTIONS: Tuple[Direction, ...] = (Direction.DOWN, Direction.LEFT, Direction.UP, Direction.RIGHT)
LAST_CELL = CELL_COUNT - 1

Cell = Tuple[int, int]

# Flow direction followed by its two sideways spreads; water never flows backwards.
FLOW_OFFSETS: Dict[Direction, Tuple[Cell, ...]] = {
    Direction.DOWN: ((0, 1), (-1, 0), (1, 0)),
    Direction.UP: ((0, -1), (-1, 0), (1, 0)),
    Direction.LEFT: ((-1, 0), (0, -1), (0, 1)),
    Direction.RIGHT: ((1, 0), (0, -1), (0, 1)),
}


def collect_water_cells(regions: RegionMap, x: int, y: int, direction: Direction) -> Set[Cell]:
    """Cells of the droplet's region reachable along the flow fan."""

    region = regions.get(cell_key(x, y))
    if region is None:
        return set()
    visited = {(x, y)}
    queue = deque([(x, y)])
    while queue:
        cx, cy = queue.popleft()
        for dx, dy in FLOW_OFFSETS[direction]:
            nx, ny = cx + dx, cy + dy
            if not CELL_BOUNDS.contains(nx, ny) or regions.get(cell_key(nx, ny)) != region:
                continue
            if (nx, ny) not in visited:
                visited.add((nx, ny))
                queue.append((nx, ny))
    return visited


def leaks_at_boundary(x: int, y: int, direction: Direction, used_edges: AbstractSet[str]) -> bool:
    """True when a border side the water can reach from this cell is left open."""

    top, right, bottom, left = cell_edge_keys(x, y)
    open_sides = {
        "top": y == 0 and top not in used_edges,
        "bottom": y == LAST_CELL and bottom not in used_edges,
        "left": x == 0 and left not in used_edges,
        "right": x == LAST_CELL and right not in used_edges,
    }
    if direction is Direction.DOWN:
        return open_sides["bottom"] or open_sides["left"] or open_sides["right"]
    if direction is Direction.UP:
        return open_sides["top"] or open_sides["left"] or open_sides["right"]
    if direction is Direction.LEFT:
        return open_sides["left"] or open_sides["top"] or open_sides["bottom"]
    return open_sides["right"] or open_sides["top"] or open_sides["bottom"]


def is_water_droplet_contained(
    regions: RegionMap, x: int, y: int, direction: Direction, used_edges: AbstractSet[str]
) -> bool:
    filled = collect_water_cells(regions, x, y, direction)
    if not filled:
        return False
    return not any(leaks_at_boundary(cx, cy, direction, used_edges) for cx, cy in filled)


def collect_failing_water_droplet_indexes(
    used_edges: AbstractSet[str], targets: Sequence[WaterDropletTarget]
) -> Set[int]:
    regions = build_cell_regions(used_edges)
    return failing_indexes(
        targets,
        lambda target: is_water_droplet_contained(
            regions, target.cell_x, target.cell_y, target.direction, used_edges
        ),
    )


def check_water_droplets(used_edges: AbstractSet[str], targets: Sequence[WaterDropletTarget]) -> bool:
    return passes(collect_failing_water_droplet_indexes(used_edges, targets), targets)


@dataclass
class _DropletCandidates:
    path: List[Point]
    placements: List[Tuple[Cell, Direction]] = field(default_factory=list)

    @property
    def unique_cells(self) -> int:
        return len({cell for cell, _ in self.placements})

    @property
    def direction_variety(self) -> int:
        return len({direction for _, direction in self.placements})

    @property
    def score(self) -> Tuple[int, int, int]:
        return (self.unique_cells, self.direction_variety, len(self.placements))


def _candidates_for_path(path: List[Point], blocked: AbstractSet[str]) -> _DropletCandidates:
    used_edges = edges_from_path(path)
    regions = build_cell_regions(used_edges)
    found = _DropletCandidates(path)
    for x, y in iter_cells():
        if cell_key(x, y) in blocked:
            continue
        for direction in DROPLET_DIRECTIONS:
            if is_water_droplet_contained(regions, x, y, direction, used_edges):
                found.placements.append(((x, y), direction))
    return found


def generate_water_droplets_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    """Pick the path offering the most sealed cells, then spread droplets over its flow directions.

    A compatible ``preferred_path`` is used as-is so the droplets share the
    caller's solution.
    """

    permitted = frozenset(edges)
    blocked = frozen_blocked(blocked_cells)
    rng = Mulberry32(seed)

    if accepts_preferred_path(preferred_path, permitted):
        best = _candidates_for_path([Point(*point) for point in preferred_path], blocked)
    else:
        paths: List[List[Point]] = []
        loopy = find_best_loopy_path(permitted, rng, 140, 8)
        if loopy is not None:
            paths.append(loopy)
        for _ in range(6):
            path = find_random_path(permitted, rng)
            if path is not None:
                paths.append(path)
        if not paths:
            return None
        best = _candidates_for_path(paths[0], blocked)
        for path in paths[1:]:
            local = _candidates_for_path(path, blocked)
            if local.score > best.score:
                best = local
        if best.unique_cells < 3:
            for _ in range(12):
                path = find_random_path(permitted, rng)
                if path is None:
                    continue
                local = _candidates_for_path(path, blocked)
                if local.score > best.score:
                    best = local
                if best.unique_cells >= 3 and best.direction_variety >= 2:
                    break

    min_count = 3
    max_allowed = min(8, best.unique_cells)
    if max_allowed < min_count:
        return None
    target_count = min_count + rand_int(rng, max_allowed - min_count + 1)

    buckets: Dict[Direction, List[Cell]] = {
        direction: shuffle([cell for cell, option in best.placements if option is direction], rng)
        for direction in DROPLET_DIRECTIONS
    }
    available_directions = [direction for direction in DROPLET_DIRECTIONS if buckets[direction]]
    desired_distinct = min(3, target_count, len(available_directions))
    used_cells: Set[Cell] = set()
    selected: List[Tuple[Cell, Direction]] = []

    def take_next(direction: Direction) -> Optional[Cell]:
        bucket = buckets[direction]
        while bucket:
            cell = bucket.pop(0)
            if cell not in used_cells:
                return cell
        return None

    direction_counts: Dict[Direction, int] = {direction: 0 for direction in DROPLET_DIRECTIONS}
    for direction in shuffle(available_directions, rng):
        if len(selected) >= desired_distinct:
            break
        cell = take_next(direction)
        if cell is None:
            continue
        selected.append((cell, direction))
        used_cells.add(cell)
        direction_counts[direction] = 1

    while len(selected) < target_count:
        order = sorted(shuffle(available_directions, rng), key=lambda direction: direction_counts[direction])
        for direction in order:
            cell = take_next(direction)
            if cell is None:
                continue
            selected.append((cell, direction))
            used_cells.add(cell)
            direction_counts[direction] += 1
            break
        else:
            break

    if len(selected) < min_count:
        return None

    palette = derive_palette(DEFAULT_WATER_DROPLET_COLOR, color_rule, rng, preferred_colors)
    targets = [
        WaterDropletTarget(cell_x=x, cell_y=y, color=palette[rand_int(rng, len(palette))], direction=direction)
        for (x, y), direction in selected
    ]
    if not check_water_droplets(edges_from_path(best.path), targets):
        LOGGER.warning("Water droplet placement failed its own check for seed %d", seed)
        return None
    return GenerationResult(targets=targets, solution_path=best.path)
