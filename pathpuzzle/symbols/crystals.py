"""Crystals: every crystal-bearing region must share one shape up to symmetry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..core.constants import DEFAULT_COLORS, SymbolKind
from ..core.models import CrystalTarget, GenerationResult, Point
from ..engine.grid import cell_key, edges_from_path, is_path_compatible
from ..engine.palette import ColorBalancer, derive_palette
from ..engine.paths import find_best_loopy_path, find_random_path
from ..engine.regions import RegionMap, build_cell_regions, cells_by_region, region_count
from ..engine.rng import Mulberry32, rand_int, shuffle, weighted_pick
from ..utils.logger import get_logger
from .common import frozen_blocked, is_low_symbol_set, passes

LOGGER = get_logger(__name__)

DEFAULT_CRYSTAL_COLOR = DEFAULT_COLORS[SymbolKind.CRYSTAL]
CRYSTAL_SALT = 9011
CRYSTAL_STRIDE = 127

Cell = Tuple[int, int]
ShapeKey = Tuple[Cell, ...]

# The eight symmetries of the square grid.
_TRANSFORMS = (
    lambda x, y: (x, y),
    lambda x, y: (-x, y),
    lambda x, y: (x, -y),
    lambda x, y: (-x, -y),
    lambda x, y: (y, x),
    lambda x, y: (-y, x),
    lambda x, y: (y, -x),
    lambda x, y: (-y, -x),
)


def _normalized(cells: Iterable[Cell]) -> ShapeKey:
    cells = list(cells)
    min_x = min(x for x, _ in cells)
    min_y = min(y for _, y in cells)
    return tuple(sorted(((x - min_x, y - min_y) for x, y in cells), key=lambda cell: (cell[1], cell[0])))


def canonical_shape_key(cells: Sequence[Cell]) -> ShapeKey:
    """Smallest translated form of ``cells`` over all rotations and reflections."""

    return min(_normalized(transform(x, y) for x, y in cells) for transform in _TRANSFORMS)


def _is_board_edge(cell: Cell) -> bool:
    return cell[0] in (0, 3) or cell[1] in (0, 3)


def _interior_count(cells: Sequence[Cell]) -> int:
    return sum(1 for cell in cells if not _is_board_edge(cell))


def collect_failing_crystal_indexes(used_edges: AbstractSet[str], targets: Sequence[CrystalTarget]) -> Set[int]:
    failing: Set[int] = set()
    if not targets:
        return failing

    regions = build_cell_regions(used_edges)
    if len(targets) == 1:
        if targets[0].cell_key not in regions or region_count(regions) != 1:
            failing.add(0)
        return failing

    by_region: Dict[int, List[int]] = {}
    for index, target in enumerate(targets):
        region = regions.get(target.cell_key)
        if region is None:
            failing.add(index)
            continue
        by_region.setdefault(region, []).append(index)

    region_cells = cells_by_region(regions)
    by_shape: Dict[ShapeKey, List[int]] = {}
    for region, indexes in by_region.items():
        if len(indexes) > 1:
            failing.update(indexes)
            continue
        by_shape.setdefault(canonical_shape_key(region_cells[region]), []).extend(indexes)

    if len(by_shape) > 1:
        dominant = min(by_shape.items(), key=lambda item: (-len(item[1]), item[0]))[0]
        for shape, indexes in by_shape.items():
            if shape != dominant:
                failing.update(indexes)
    return failing


def check_crystals(used_edges: AbstractSet[str], targets: Sequence[CrystalTarget]) -> bool:
    return passes(collect_failing_crystal_indexes(used_edges, targets), targets, empty_is_valid=False)


@dataclass
class CrystalBoard:
    """Region geometry of one candidate path, grouped by region shape."""

    path: List[Point]
    full_cells: Dict[int, List[Cell]]
    free_cells: Dict[int, List[Cell]]
    shape_groups: Dict[ShapeKey, List[int]]

    def average_area(self, region_ids: Sequence[int]) -> float:
        if not region_ids:
            return 0.0
        return sum(len(self.full_cells[region]) for region in region_ids) / len(region_ids)

    def group_score(self, region_ids: Sequence[int]) -> float:
        total_free = 0
        interior_free = 0
        edge_only = 0
        for region in region_ids:
            free = self.free_cells.get(region, [])
            interior = _interior_count(free)
            total_free += len(free)
            interior_free += interior
            if free and interior == 0:
                edge_only += 1
        interior_share = interior_free / total_free if total_free else 0.0
        average = self.average_area(region_ids)
        singleton_penalty = 8 if average <= 1 else 0
        return len(region_ids) * 10 + average * 3 + interior_share * 4 - edge_only * 1.7 - singleton_penalty

    @property
    def repeated_groups(self) -> List[Tuple[ShapeKey, List[int]]]:
        return [(shape, ids) for shape, ids in self.shape_groups.items() if len(ids) >= 2]

    @property
    def max_group_size(self) -> int:
        return max((len(ids) for _, ids in self.repeated_groups), default=0)

    @property
    def best_score(self) -> float:
        return max((self.group_score(ids) for _, ids in self.repeated_groups), default=float("-inf"))


def build_crystal_board(path: Sequence[Point], blocked: AbstractSet[str]) -> Optional[CrystalBoard]:
    """Group a path's regions by shape; ``None`` unless some shape repeats."""

    if len(path) < 2:
        return None
    regions: RegionMap = build_cell_regions(edges_from_path(path))
    full_cells = cells_by_region(regions)
    free_cells: Dict[int, List[Cell]] = {}
    for region, cells in full_cells.items():
        free = [cell for cell in cells if cell_key(*cell) not in blocked]
        if free:
            free_cells[region] = free

    shape_groups: Dict[ShapeKey, List[int]] = {}
    for region, cells in full_cells.items():
        if region in free_cells:
            shape_groups.setdefault(canonical_shape_key(cells), []).append(region)

    board = CrystalBoard(list(path), full_cells, free_cells, shape_groups)
    if board.max_group_size < 2:
        return None
    return board


def _pick_crystal_cell(cells: Sequence[Cell], rng: Mulberry32) -> Cell:
    if len(cells) == 1:
        return cells[0]

    def weight(cell: Cell) -> float:
        x_edge = cell[0] in (0, 3)
        y_edge = cell[1] in (0, 3)
        if x_edge and y_edge:
            return 0.45
        if x_edge or y_edge:
            return 0.9
        return 4.5

    return weighted_pick([(cell, weight(cell)) for cell in cells], rng)


def _search_board(
    edges: AbstractSet[str], seed: int, blocked: AbstractSet[str], attempts: int
) -> Optional[CrystalBoard]:
    picked: Optional[CrystalBoard] = None
    for attempt in range(attempts):
        local_rng = Mulberry32(seed + CRYSTAL_SALT + attempt * CRYSTAL_STRIDE)
        path = find_best_loopy_path(edges, local_rng, 56, 9) or find_random_path(edges, local_rng)
        board = build_crystal_board(path, blocked) if path else None
        if board is None:
            continue
        if (
            picked is None
            or board.best_score > picked.best_score + 0.01
            or (abs(board.best_score - picked.best_score) <= 0.01 and board.max_group_size > picked.max_group_size)
        ):
            picked = board
    return picked


def generate_crystals_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
    negator_active: bool = False,
) -> Optional[GenerationResult]:
    """Place crystals in same-shaped regions.

    With ``negator_active`` on a small symbol set the result deliberately
    carries one crystal in an odd-shaped region; the returned ``extras`` flag
    ``requires_negator`` and the caller must place a negator beside it.
    """

    permitted = frozenset(edges)
    blocked = frozen_blocked(blocked_cells)
    rng = Mulberry32(seed)
    needs_negator = negator_active and selected_symbol_count <= 3

    board: Optional[CrystalBoard] = None
    if preferred_path is not None and is_path_compatible(preferred_path, permitted):
        board = build_crystal_board([Point(*point) for point in preferred_path], blocked)
        if board is None:
            return None
    if board is None:
        attempts = 88 if needs_negator else 40 if negator_active else 24
        board = _search_board(permitted, seed, blocked, attempts)
        if board is None:
            return None

    palette = derive_palette(DEFAULT_CRYSTAL_COLOR, color_rule, rng, preferred_colors)

    entries = board.repeated_groups
    roomy = [entry for entry in entries if board.average_area(entry[1]) >= 2]
    pool = roomy if roomy and (len(roomy) == len(entries) or rng.random() < 0.9) else entries
    ranked_entries = sorted(
        shuffle(pool, rng), key=lambda entry: (-round(board.group_score(entry[1]), 2), -len(entry[1]))
    )

    def rank_by_interior(region_ids: Sequence[int]) -> List[int]:
        return sorted(
            shuffle(region_ids, rng),
            key=lambda region: (
                -_interior_count(board.free_cells.get(region, [])),
                -len(board.free_cells.get(region, [])),
            ),
        )

    selected: List[int] = []
    if needs_negator:
        for main_shape, main_regions in ranked_entries:
            outliers = [
                region
                for shape, ids in entries
                if shape != main_shape
                for region in ids
                if len(board.free_cells.get(region, [])) >= 2
            ]
            if not outliers:
                continue
            max_count = min(len(main_regions) + 1, 4)
            if max_count < 3:
                continue
            target_count = 4 if max_count >= 4 and rng.random() < 0.58 else 3
            main_pool = rank_by_interior(main_regions) if rng.random() < 0.9 else shuffle(main_regions, rng)
            outlier_pool = rank_by_interior(outliers) if rng.random() < 0.9 else shuffle(outliers, rng)
            selected = main_pool[: target_count - 1] + outlier_pool[:1]
            break
        if len(selected) < 3:
            return None
    else:
        chosen = ranked_entries[0][1]
        cap = 4 if negator_active else 3 if is_low_symbol_set(selected_symbol_count) else 2
        max_count = min(len(chosen), cap)
        if max_count < 2:
            return None
        if negator_active:
            target_count = (4 if rng.random() < 0.58 else 3) if max_count >= 4 else max_count
        elif max_count == 2:
            target_count = 2
        else:
            target_count = 3 if is_low_symbol_set(selected_symbol_count) and rng.random() < 0.46 else 2
        region_pool = rank_by_interior(chosen) if rng.random() < 0.86 else shuffle(chosen, rng)
        selected = region_pool[:target_count]

    if color_rule and len(palette) > 1 and len(selected) >= 2:
        color_pool = shuffle(palette, rng)[: min(len(palette), 3 if len(selected) >= 3 else 2)]
    else:
        color_pool = palette
    balancer = ColorBalancer(color_pool)

    targets: List[CrystalTarget] = []
    for region in selected:
        x, y = _pick_crystal_cell(board.free_cells[region], rng)
        if color_rule and len(color_pool) > 1:
            color = balancer.pick(rng)
        else:
            color = color_pool[rand_int(rng, len(color_pool))]
        targets.append(CrystalTarget(cell_x=x, cell_y=y, color=color))

    if color_rule and len(color_pool) > 1 and len({target.color for target in targets}) == 1:
        fallback = next(color for color in color_pool if color != targets[0].color)
        last = targets[-1]
        targets[-1] = CrystalTarget(cell_x=last.cell_x, cell_y=last.cell_y, color=fallback)

    used_edges = edges_from_path(board.path)
    if needs_negator:
        if not collect_failing_crystal_indexes(used_edges, targets):
            return None
        return GenerationResult(targets=targets, solution_path=board.path, extras={"requires_negator": True})
    if not check_crystals(used_edges, targets):
        LOGGER.debug("Crystal placement failed verification for seed %d", seed)
        return None
    return GenerationResult(targets=targets, solution_path=board.path)
