"""Partition of the board cells into regions separated by used edges."""

from __future__ import annotations

from collections import deque
from typing import Dict, Iterable, List, Sequence, Tuple

from ..core.constants import CELL_BOUNDS
from .grid import cell_key, edges_from_path, iter_cells, separating_edge


RegionMap = Dict[str, int]

_CELL_STEPS: Tuple[Tuple[int, int], ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))


def build_cell_regions(used_edges: Iterable[str]) -> RegionMap:
    """Flood-fill every cell into a region id.

    Cells are seeded in row-major order and ids are handed out at first
    visit, so numbering is consistent within one call but carries no
    meaning across calls.
    """

    blocked = used_edges if isinstance(used_edges, (set, frozenset)) else set(used_edges)
    regions: RegionMap = {}
    region_id = 0
    for x, y in iter_cells():
        key = cell_key(x, y)
        if key in regions:
            continue
        regions[key] = region_id
        queue = deque([(x, y)])
        while queue:
            cx, cy = queue.popleft()
            for dx, dy in _CELL_STEPS:
                nx, ny = cx + dx, cy + dy
                if not CELL_BOUNDS.contains(nx, ny):
                    continue
                if separating_edge((cx, cy), (nx, ny)) in blocked:
                    continue
                next_key = cell_key(nx, ny)
                if next_key in regions:
                    continue
                regions[next_key] = region_id
                queue.append((nx, ny))
        region_id += 1
    return regions


def region_count(regions: RegionMap) -> int:
    return len(set(regions.values()))


def region_count_for_path(path: Sequence[Tuple[int, int]]) -> int:
    return region_count(build_cell_regions(edges_from_path(path)))


def cells_by_region(regions: RegionMap) -> Dict[int, List[Tuple[int, int]]]:
    """Region id to member cells, each list in row-major order."""

    grouped: Dict[int, List[Tuple[int, int]]] = {}
    for x, y in iter_cells():
        region = regions.get(cell_key(x, y))
        if region is None:
            continue
        grouped.setdefault(region, []).append((x, y))
    return grouped


def region_ids_for_board_point(regions: RegionMap, point: Tuple[float, float]) -> List[int]:
    """Regions touching a vertex or an edge midpoint.

    A vertex touches up to four cells, an edge midpoint up to two. Any other
    position touches none.
    """

    px, py = point
    x_int = float(px).is_integer()
    y_int = float(py).is_integer()
    ids: List[int] = []

    def try_add(cx: int, cy: int) -> None:
        if not CELL_BOUNDS.contains(cx, cy):
            return
        region = regions.get(cell_key(cx, cy))
        if region is not None and region not in ids:
            ids.append(region)

    if x_int and y_int:
        x, y = int(round(px)), int(round(py))
        try_add(x - 1, y - 1)
        try_add(x, y - 1)
        try_add(x - 1, y)
        try_add(x, y)
    elif not x_int and y_int:
        left, y = int(px // 1), int(round(py))
        try_add(left, y - 1)
        try_add(left, y)
    elif x_int and not y_int:
        x, top = int(round(px)), int(py // 1)
        try_add(x - 1, top)
        try_add(x, top)
    return ids
