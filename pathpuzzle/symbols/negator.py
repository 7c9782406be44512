"""Negators: each one cancels a distinct symbol sharing its region.

This module owns the structural side of the rule, namely which symbols a
negator could cancel and whether every negator can be given its own
victim. Deciding whether a particular cancellation makes the whole board
valid needs every other rule and lives in :mod:`pathpuzzle.engine.validator`.
"""

from __future__ import annotations

from typing import AbstractSet, Dict, Iterable, Iterator, List, NamedTuple, Optional, Sequence, Set

from ..core.constants import DEFAULT_COLORS, SymbolKind
from ..core.models import CellSymbol, GenerationResult, HexTarget, NegatorTarget, Point, SymbolMap
from ..engine.grid import cell_key, edges_from_path
from ..engine.palette import derive_palette
from ..engine.paths import resolve_solution_path
from ..engine.regions import RegionMap, build_cell_regions, region_ids_for_board_point
from ..engine.rng import Mulberry32, rand_int, shuffle
from ..utils.logger import get_logger
from .common import frozen_blocked, open_cells, passes
from .crystals import collect_failing_crystal_indexes

LOGGER = get_logger(__name__)

DEFAULT_NEGATOR_COLOR = DEFAULT_COLORS[SymbolKind.NEGATOR]
TWO_NEGATOR_CHANCE = 0.05


class SymbolRef(NamedTuple):
    """Position of one placed symbol inside a kind-keyed symbol map."""

    kind: SymbolKind
    index: int


def removable_by_region(regions: RegionMap, symbols: Optional[SymbolMap]) -> Dict[int, List[SymbolRef]]:
    """Every non-negator symbol, listed under each region it touches."""

    grouped: Dict[int, List[SymbolRef]] = {}
    for kind, targets in (symbols or {}).items():
        if kind is SymbolKind.NEGATOR:
            continue
        for index, target in enumerate(targets):
            if isinstance(target, HexTarget):
                region_ids = region_ids_for_board_point(regions, target.position)
            elif isinstance(target, CellSymbol) and target.cell_key in regions:
                region_ids = [regions[target.cell_key]]
            else:
                region_ids = []
            for region in region_ids:
                grouped.setdefault(region, []).append(SymbolRef(kind, index))
    return grouped


def iter_removal_assignments(
    negator_regions: Sequence[Optional[int]],
    removable: Dict[int, List[SymbolRef]],
) -> Iterator[List[SymbolRef]]:
    """Yield every way of giving each negator its own symbol from its region.

    Explicit-stack depth-first search; assignments come out in candidate
    order so the first one is deterministic.
    """

    if not negator_regions:
        yield []
        return
    if any(region is None for region in negator_regions):
        return

    chosen: List[SymbolRef] = []
    stack = [iter(removable.get(negator_regions[0], ()))]
    while stack:
        for candidate in stack[-1]:
            if candidate in chosen:
                continue
            chosen.append(candidate)
            if len(chosen) == len(negator_regions):
                yield list(chosen)
                chosen.pop()
                continue
            stack.append(iter(removable.get(negator_regions[len(chosen)], ())))
            break
        else:
            stack.pop()
            if chosen:
                chosen.pop()


def collect_failing_negator_indexes(
    used_edges: AbstractSet[str],
    targets: Sequence[NegatorTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> Set[int]:
    """Negators left without a symbol of their own to cancel."""

    failing: Set[int] = set()
    if not targets:
        return failing
    regions = build_cell_regions(used_edges)
    removable = removable_by_region(regions, other_symbols)
    negator_regions = [regions.get(target.cell_key) for target in targets]
    for index, region in enumerate(negator_regions):
        if region is None or not removable.get(region):
            failing.add(index)
    if not failing and next(iter_removal_assignments(negator_regions, removable), None) is None:
        failing.update(range(len(targets)))
    return failing


def check_negators(
    used_edges: AbstractSet[str],
    targets: Sequence[NegatorTarget],
    other_symbols: Optional[SymbolMap] = None,
) -> bool:
    return passes(collect_failing_negator_indexes(used_edges, targets, other_symbols), targets)


def generate_negators_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    support_symbols: Optional[SymbolMap] = None,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    """Place one negator (rarely two) next to symbols it could cancel.

    Regions holding a failing crystal are tried first so a deliberately
    broken crystal set can be repaired.
    """

    blocked = frozen_blocked(blocked_cells)
    rng = Mulberry32(seed)
    solution_path = resolve_solution_path(edges, rng, preferred_path, 180, 8)
    if solution_path is None:
        return None

    used_edges = edges_from_path(solution_path)
    regions = build_cell_regions(used_edges)
    removable = removable_by_region(regions, support_symbols)
    if not removable:
        return None

    crystals = list((support_symbols or {}).get(SymbolKind.CRYSTAL, ()))
    failing_crystal_regions = {
        regions[crystals[index].cell_key] for index in collect_failing_crystal_indexes(used_edges, crystals)
    }

    available = shuffle(
        [cell for cell in open_cells(blocked) if removable.get(regions[cell_key(*cell)])],
        rng,
    )
    if not available:
        return None
    prioritized = [cell for cell in available if regions[cell_key(*cell)] in failing_crystal_regions] + [
        cell for cell in available if regions[cell_key(*cell)] not in failing_crystal_regions
    ]

    removable_count = len({ref for refs in removable.values() for ref in refs})
    wants_two = len(prioritized) >= 2 and removable_count >= 2 and not crystals and rng.random() < TWO_NEGATOR_CHANCE

    palette = derive_palette(DEFAULT_NEGATOR_COLOR, color_rule, rng, preferred_colors)

    def assignable(cells: Sequence) -> bool:
        negator_regions = [regions[cell_key(*cell)] for cell in cells]
        return next(iter_removal_assignments(negator_regions, removable), None) is not None

    chosen: Optional[List] = None
    if not wants_two:
        chosen = next(([cell] for cell in prioritized if assignable([cell])), None)
    else:
        different, same = [], []
        for i, first in enumerate(prioritized):
            for second in prioritized[i + 1 :]:
                if regions[cell_key(*first)] != regions[cell_key(*second)]:
                    different.append([first, second])
                else:
                    same.append([first, second])
        pairs = shuffle(different, rng) + shuffle(same, rng)
        chosen = next((pair for pair in pairs if assignable(pair)), None)
    if chosen is None:
        return None

    targets = [
        NegatorTarget(cell_x=x, cell_y=y, color=palette[rand_int(rng, len(palette))]) for x, y in chosen
    ]
    LOGGER.debug("Placed %d negator(s) for seed %d", len(targets), seed)
    return GenerationResult(targets=targets, solution_path=solution_path)
