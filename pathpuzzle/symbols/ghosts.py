"""Ghosts: exactly one ghost haunts every region."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import DEFAULT_COLORS, SymbolKind
from ..core.models import GenerationResult, GhostTarget, Point
from ..engine.grid import cell_key, edges_from_path, is_path_compatible
from ..engine.palette import derive_palette
from ..engine.paths import find_best_loopy_path, find_random_path
from ..engine.regions import RegionMap, build_cell_regions, cells_by_region, region_count
from ..engine.rng import Mulberry32, rand_int, shuffle, weighted_pick
from ..utils.logger import get_logger
from .common import frozen_blocked, passes

LOGGER = get_logger(__name__)

DEFAULT_GHOST_COLOR = DEFAULT_COLORS[SymbolKind.GHOST]
MIN_GHOST_REGIONS = 2
MAX_GHOST_REGIONS = 5
BUCKET_SIZE = 3


def collect_failing_ghost_indexes(used_edges: AbstractSet[str], targets: Sequence[GhostTarget]) -> Set[int]:
    failing: Set[int] = set()
    if not targets:
        return failing

    regions = build_cell_regions(used_edges)
    by_region: Dict[int, List[int]] = {}
    for index, target in enumerate(targets):
        region = regions.get(target.cell_key)
        if region is None:
            failing.add(index)
            continue
        by_region.setdefault(region, []).append(index)
    for indexes in by_region.values():
        if len(indexes) > 1:
            failing.update(indexes)
    if region_count(regions) != len(targets) or len(by_region) != len(targets):
        failing.update(range(len(targets)))
    return failing


def check_ghosts(used_edges: AbstractSet[str], targets: Sequence[GhostTarget]) -> bool:
    return passes(collect_failing_ghost_indexes(used_edges, targets), targets, empty_is_valid=False)


@dataclass
class GhostBoard:
    path: List[Point]
    free_cells: Dict[int, List[Tuple[int, int]]]

    @property
    def region_count(self) -> int:
        return len(self.free_cells)


def ghost_board(path: Optional[Sequence[Point]], blocked: AbstractSet[str]) -> Optional[GhostBoard]:
    """Board for ``path`` when it has 2-5 regions, each with a free cell."""

    if not path or len(path) < 2:
        return None
    regions: RegionMap = build_cell_regions(edges_from_path(path))
    count = region_count(regions)
    if count < MIN_GHOST_REGIONS or count > MAX_GHOST_REGIONS:
        return None
    free_cells: Dict[int, List[Tuple[int, int]]] = {}
    for region, cells in cells_by_region(regions).items():
        free = [cell for cell in cells if cell_key(*cell) not in blocked]
        if not free:
            return None
        free_cells[region] = free
    return GhostBoard([Point(*point) for point in path], free_cells)


def _count_weight(count: int, multi_symbol: bool) -> float:
    if multi_symbol:
        return {2: 3.0, 3: 2.4, 4: 0.42}.get(count, 0.12)
    return {2: 2.2, 3: 1.8, 4: 0.6}.get(count, 0.2)


def pick_ghost_board(
    edges: AbstractSet[str], seed: int, blocked: AbstractSet[str], selected_symbol_count: int
) -> Optional[GhostBoard]:
    """Sample a few paths and choose a region count, favouring two or three."""

    rng = Mulberry32(seed)
    buckets: Dict[int, List[GhostBoard]] = {}

    def add(board: Optional[GhostBoard]) -> None:
        if board is None:
            return
        bucket = buckets.setdefault(board.region_count, [])
        if len(bucket) < BUCKET_SIZE:
            bucket.append(board)

    for attempt in range(4):
        add(ghost_board(find_random_path(edges, Mulberry32(seed + 113 + attempt * 97)), blocked))
    for attempt in range(2):
        local_rng = Mulberry32(seed + 1709 + attempt * 131)
        min_length = 8 + rand_int(local_rng, 3)
        loopy_attempts = 12 + rand_int(local_rng, 8)
        add(ghost_board(find_best_loopy_path(edges, local_rng, loopy_attempts, min_length), blocked))
    if 2 not in buckets and 3 not in buckets:
        for attempt in range(6):
            add(ghost_board(find_random_path(edges, Mulberry32(seed + 8011 + attempt * 149)), blocked))
            if 2 in buckets or 3 in buckets:
                break

    if not buckets:
        return ghost_board(find_random_path(edges, rng), blocked)

    counts = shuffle(list(buckets), rng)
    multi_symbol = selected_symbol_count >= 2
    low_counts = [count for count in counts if count in (2, 3)] if multi_symbol else counts
    pool = low_counts if multi_symbol and low_counts and rng.random() < 0.9 else counts
    chosen = weighted_pick([(count, _count_weight(count, multi_symbol)) for count in pool], rng)
    bucket = buckets[chosen]
    return bucket[rand_int(rng, len(bucket))]


def generate_ghosts_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int = 1,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    """One ghost in a random free cell of every region."""

    permitted = frozenset(edges)
    blocked = frozen_blocked(blocked_cells)
    rng = Mulberry32(seed)

    if preferred_path is not None and is_path_compatible(preferred_path, permitted):
        board = ghost_board(preferred_path, blocked)
    else:
        board = pick_ghost_board(permitted, seed + 19, blocked, selected_symbol_count)
    if board is None:
        return None

    palette = derive_palette(DEFAULT_GHOST_COLOR, color_rule, rng, preferred_colors, random_size=1)
    targets: List[GhostTarget] = []
    for region in shuffle(list(board.free_cells), rng):
        cells = board.free_cells[region]
        x, y = cells[rand_int(rng, len(cells))]
        targets.append(GhostTarget(cell_x=x, cell_y=y, color=palette[rand_int(rng, len(palette))]))

    if not check_ghosts(edges_from_path(board.path), targets):
        LOGGER.debug("Ghost placement failed verification for seed %d", seed)
        return None
    return GenerationResult(targets=targets, solution_path=board.path)
