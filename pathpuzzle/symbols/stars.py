"""Stars: each star pairs with exactly one other same-coloured symbol in its region."""

from __future__ import annotations

from collections import Counter
from typing import AbstractSet, Dict, Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple

from ..core.constants import COLOR_PALETTE, SymbolKind
from ..core.models import GenerationResult, Point, StarTarget, SymbolMap
from ..engine.grid import cell_key, edges_from_path
from ..engine.palette import collect_colored_cells, count_symbols, unique_colors
from ..engine.paths import resolve_solution_path
from ..engine.regions import build_cell_regions, cells_by_region
from ..engine.rng import Mulberry32, rand_int, shuffle
from ..utils.logger import get_logger
from .common import frozen_blocked, passes

LOGGER = get_logger(__name__)

ODD_TOTAL_CHANCE = 0.78
ODD_SKIP_CHANCE = 0.8
ORPHAN_CHANCE = 0.42


class StarSlot(NamedTuple):
    region: int
    color: str
    stars_needed: int


def _region_color_counts(regions: Dict[str, int], symbols: Iterable) -> Counter:
    counts: Counter = Counter()
    for symbol in symbols:
        region = regions.get(symbol.cell_key)
        if region is not None:
            counts[(region, symbol.color)] += 1
    return counts


def collect_failing_star_indexes(
    used_edges: AbstractSet[str],
    targets: Sequence[StarTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> Set[int]:
    failing: Set[int] = set()
    if not targets:
        return failing

    regions = build_cell_regions(used_edges)
    stars = _region_color_counts(regions, targets)
    others = _region_color_counts(regions, collect_colored_cells(other_symbols, exclude=(SymbolKind.STAR,)))
    for index, target in enumerate(targets):
        region = regions.get(target.cell_key)
        if region is None:
            failing.add(index)
            continue
        key = (region, target.color)
        if stars[key] + others[key] != 2:
            failing.add(index)
    return failing


def check_stars(
    used_edges: AbstractSet[str],
    targets: Sequence[StarTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> bool:
    return passes(collect_failing_star_indexes(used_edges, targets, other_symbols), targets)


def _star_palette(support_colors: Sequence[str], rng: Mulberry32) -> List[str]:
    base = list(support_colors[:3])
    desired = min(3, max(2, len(base), 2 + rand_int(rng, 2)))
    palette = list(base)
    for color in shuffle([color for color in COLOR_PALETTE if color not in palette], rng):
        if len(palette) >= desired:
            break
        palette.append(color)
    return palette


def _pick_orphan(
    region_cells: Dict[int, List[Tuple[int, int]]],
    used_cells: Set[str],
    palette: Sequence[str],
    totals: Counter,
    rng: Mulberry32,
) -> Optional[StarTarget]:
    candidates: List[StarTarget] = []
    for region, cells in region_cells.items():
        available = [cell for cell in cells if cell_key(*cell) not in used_cells]
        if not available:
            continue
        for color in palette:
            if totals[(region, color)] != 2:
                continue
            x, y = available[rand_int(rng, len(available))]
            candidates.append(StarTarget(cell_x=x, cell_y=y, color=color))
    if not candidates:
        return None
    return candidates[rand_int(rng, len(candidates))]


def generate_stars_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    support_symbols: Optional[SymbolMap] = None,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
    allow_negator_orphan: bool = False,
    min_pairs: int = 1,
) -> Optional[GenerationResult]:
    """Complete same-colour pairs region by region.

    Stars are always coloured; ``color_rule`` and ``preferred_colors`` only
    seed the palette. With ``allow_negator_orphan`` a surplus star may be
    dropped into an already complete pair so that a negator has work to do;
    the result then carries ``extras["orphan_star"]``.
    """

    blocked = frozen_blocked(blocked_cells)
    rng = Mulberry32(seed)
    solution_path = resolve_solution_path(edges, rng, preferred_path, 220, 10)
    if solution_path is None:
        return None

    regions = build_cell_regions(edges_from_path(solution_path))
    region_cells = cells_by_region(regions)
    support = collect_colored_cells(support_symbols, exclude=(SymbolKind.STAR,))
    existing = _region_color_counts(regions, support)
    seeded = list(preferred_colors or ()) if color_rule else []
    palette = _star_palette(seeded + [c for c in unique_colors(support) if c not in seeded], rng)

    slots: List[StarSlot] = []
    for region in region_cells:
        for color in palette:
            colored = existing[(region, color)]
            if colored >= 2:
                continue
            slots.append(StarSlot(region, color, 1 if colored == 1 else 2))

    slots = shuffle(slots, rng)
    if selected_symbol_count <= 2:
        extra_pairs = 2 + rand_int(rng, 3 + rand_int(rng, 4))
    else:
        extra_pairs = rand_int(rng, 2 + rand_int(rng, 3))
    target_pairs = min(len(slots), min_pairs + extra_pairs)
    if len(slots) < min_pairs:
        return None

    used_cells: Set[str] = set(blocked)
    stars: List[StarTarget] = []

    def place(slot: StarSlot) -> bool:
        available = shuffle(
            [cell for cell in region_cells.get(slot.region, []) if cell_key(*cell) not in used_cells], rng
        )
        if len(available) < slot.stars_needed:
            return False
        for x, y in available[: slot.stars_needed]:
            used_cells.add(cell_key(x, y))
            stars.append(StarTarget(cell_x=x, cell_y=y, color=slot.color))
        return True

    placeable_singles = [
        slot
        for slot in slots
        if slot.stars_needed == 1
        and any(cell_key(*cell) not in used_cells for cell in region_cells.get(slot.region, []))
    ]
    prefer_odd = count_symbols(support_symbols) > 0 and bool(placeable_singles) and rng.random() < ODD_TOTAL_CHANCE
    prioritized = placeable_singles[rand_int(rng, len(placeable_singles))] if prefer_odd else None

    pairs_placed = 0
    singles_placed = 0
    if prioritized is not None and pairs_placed < target_pairs and place(prioritized):
        pairs_placed += 1
        singles_placed += 1

    for slot in slots:
        if slot is prioritized:
            continue
        if pairs_placed >= target_pairs:
            break
        if (
            prefer_odd
            and singles_placed % 2 == 1
            and slot.stars_needed == 1
            and pairs_placed >= min_pairs
            and rng.random() < ODD_SKIP_CHANCE
        ):
            continue
        if not place(slot):
            continue
        pairs_placed += 1
        if slot.stars_needed == 1:
            singles_placed += 1

    if pairs_placed < min_pairs:
        LOGGER.debug("Stars placed %d pairs, need %d", pairs_placed, min_pairs)
        return None

    orphan_added = False
    if allow_negator_orphan and stars and rng.random() < ORPHAN_CHANCE:
        totals = existing + _region_color_counts(regions, stars)
        orphan = _pick_orphan(region_cells, used_cells, palette, totals, rng)
        if orphan is not None:
            used_cells.add(orphan.cell_key)
            stars.append(orphan)
            orphan_added = True

    return GenerationResult(targets=stars, solution_path=solution_path, extras={"orphan_star": orphan_added})
