"""Compasses: same-colour compasses see the same touched-side pattern in their own frame."""

from __future__ import annotations

from typing import AbstractSet, Dict, Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple

from ..core.constants import COLOR_PALETTE, DEFAULT_COLORS, SymbolKind
from ..core.models import CompassTarget, GenerationResult, Point, SymbolMap
from ..engine.grid import cell_edge_keys, cell_key, edges_from_path, iter_cells
from ..engine.palette import normalize_preferred
from ..engine.paths import resolve_solution_path
from ..engine.rng import Mulberry32, rand_int, shuffle
from ..utils.logger import get_logger
from .common import attempt_rng, frozen_blocked, passes
from .eyes import resolve_eye_effects

LOGGER = get_logger(__name__)

DEFAULT_COMPASS_COLOR = DEFAULT_COLORS[SymbolKind.COMPASS]
COMPASS_SALT = 17801
COMPASS_ATTEMPTS = 64
COMPASS_ORIENTATIONS: Tuple[Tuple[int, bool], ...] = tuple(
    (rotation, mirrored) for mirrored in (False, True) for rotation in range(4)
)

# Kinds whose colours a colour-rule compass adopts.
COLOR_SOURCE_KINDS = (SymbolKind.STAR, SymbolKind.CHIP, SymbolKind.BLACK_HOLE, SymbolKind.OPEN_PENTAGON)


class Pattern(NamedTuple):
    """Which of a cell's sides the path touches."""

    up: bool
    right: bool
    down: bool
    left: bool

    def rotated(self, turns: int) -> "Pattern":
        """Quarter turns clockwise."""

        turns %= 4
        return Pattern(*(self[(side - turns) % 4] for side in range(4)))

    def mirrored(self) -> "Pattern":
        return Pattern(self.up, self.left, self.down, self.right)

    @property
    def touched(self) -> int:
        return sum(self)


def touched_cell_pattern(used_edges: AbstractSet[str], x: int, y: int) -> Pattern:
    top, right, bottom, left = cell_edge_keys(x, y)
    return Pattern(top in used_edges, right in used_edges, bottom in used_edges, left in used_edges)


def normalize_pattern(pattern: Pattern, rotation: int, mirrored: bool) -> Pattern:
    """Undo a compass's orientation so patterns compare in a shared frame."""

    normalized = pattern.rotated((4 - rotation) % 4)
    return normalized.mirrored() if mirrored else normalized


def collect_failing_compass_indexes(used_edges: AbstractSet[str], targets: Sequence[CompassTarget]) -> Set[int]:
    """Every compass of a colour whose members disagree.

    ``used_edges`` should already have eye deletions applied.
    """

    failing: Set[int] = set()
    by_color: Dict[str, List[int]] = {}
    for index, target in enumerate(targets):
        by_color.setdefault(target.color, []).append(index)
    for indexes in by_color.values():
        if len(indexes) <= 1:
            continue
        signatures = {
            normalize_pattern(
                touched_cell_pattern(used_edges, targets[index].cell_x, targets[index].cell_y),
                targets[index].rotation,
                targets[index].mirrored,
            )
            for index in indexes
        }
        if len(signatures) > 1:
            failing.update(indexes)
    return failing


def check_compasses(used_edges: AbstractSet[str], targets: Sequence[CompassTarget]) -> bool:
    return passes(collect_failing_compass_indexes(used_edges, targets), targets, empty_is_valid=False)


def _compass_color(
    color_rule: bool, preferred_colors: Optional[Sequence[str]], support_symbols: Optional[SymbolMap], rng: Mulberry32
) -> str:
    if not color_rule:
        return DEFAULT_COMPASS_COLOR
    candidates = normalize_preferred(preferred_colors)
    for kind in COLOR_SOURCE_KINDS:
        for symbol in (support_symbols or {}).get(kind, ()):
            if symbol.color not in candidates:
                candidates.append(symbol.color)
    if candidates:
        return next((color for color in candidates if color != DEFAULT_COMPASS_COLOR), candidates[0])
    fallback = [color for color in COLOR_PALETTE if color != DEFAULT_COMPASS_COLOR]
    return fallback[rand_int(rng, len(fallback))]


def generate_compasses_for_edges(
    edges: Iterable[str],
    seed: int,
    selected_symbol_count: int,
    blocked_cells: Optional[AbstractSet[str]] = None,
    color_rule: bool = False,
    support_symbols: Optional[SymbolMap] = None,
    preferred_colors: Optional[Sequence[str]] = None,
    preferred_path: Optional[Sequence[Point]] = None,
) -> Optional[GenerationResult]:
    """Pick one normalised pattern and orient compasses on cells that show it."""

    blocked = frozen_blocked(blocked_cells)
    rng = Mulberry32(seed)
    solution_path = resolve_solution_path(edges, rng, preferred_path, 200, 9)
    if solution_path is None:
        return None

    used_edges = edges_from_path(solution_path)
    eyes = list((support_symbols or {}).get(SymbolKind.EYE, ()))
    effective_edges = resolve_eye_effects(used_edges, eyes).effective_edges if eyes else used_edges

    options_by_pattern: Dict[Pattern, List[Tuple[int, int, int, bool]]] = {}
    for x, y in iter_cells():
        if cell_key(x, y) in blocked:
            continue
        raw = touched_cell_pattern(effective_edges, x, y)
        if raw.touched == 0:
            continue
        for rotation, mirrored in COMPASS_ORIENTATIONS:
            options_by_pattern.setdefault(normalize_pattern(raw, rotation, mirrored), []).append(
                (x, y, rotation, mirrored)
            )
    groups = sorted(
        ((options, len({(x, y) for x, y, _, _ in options})) for options in options_by_pattern.values()),
        key=lambda group: -group[1],
    )
    if not groups:
        return None

    compass_color = _compass_color(color_rule, preferred_colors, support_symbols, rng)

    min_count = 2
    available_max = groups[0][1]
    if available_max < min_count:
        return None
    requested_max = {1: 8, 2: 7, 3: 6}.get(selected_symbol_count, 5 if selected_symbol_count > 3 else 8)
    max_count = min(requested_max, available_max)
    all_counts = list(range(min_count, max_count + 1))
    preferred_count = all_counts[rand_int(rng, len(all_counts))]
    ordered_counts = sorted(all_counts, key=lambda count: (abs(count - preferred_count), -count))

    for target_count in ordered_counts:
        for options, unique_cells in groups:
            if unique_cells < target_count:
                continue
            for attempt in range(COMPASS_ATTEMPTS):
                local_rng = attempt_rng(seed, COMPASS_SALT, attempt, stride=179, extra=target_count * 131)
                used_cells: Set[Tuple[int, int]] = set()
                targets: List[CompassTarget] = []
                for x, y, rotation, mirrored in shuffle(options, local_rng):
                    if len(targets) >= target_count:
                        break
                    if (x, y) in used_cells:
                        continue
                    used_cells.add((x, y))
                    targets.append(
                        CompassTarget(cell_x=x, cell_y=y, color=compass_color, rotation=rotation, mirrored=mirrored)
                    )
                if len(targets) == target_count and check_compasses(effective_edges, targets):
                    return GenerationResult(targets=targets, solution_path=solution_path)
    return None
