"""Colour palette derivation and aggregation of colour-aware symbols."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, List, Optional, Sequence

from ..core.constants import COLOR_PALETTE, MAX_COLOR_RULE_COLORS, SymbolKind
from ..core.models import CellSymbol, PlacedSymbol, SymbolMap
from .rng import Mulberry32, shuffle


def collect_colored_cells(
    symbols: Optional[SymbolMap],
    *extra: Iterable[PlacedSymbol],
    exclude: Iterable[SymbolKind] = (),
) -> List[CellSymbol]:
    """Flatten every cell-anchored symbol into one list.

    ``symbols`` is walked in mapping order, skipping kinds in ``exclude``;
    the ``extra`` sequences are appended unconditionally. Symbols that do not
    sit in a cell (hexagons) are dropped.
    """

    skipped = set(exclude)
    colored: List[CellSymbol] = []
    for kind, targets in (symbols or {}).items():
        if kind in skipped:
            continue
        colored.extend(target for target in targets if isinstance(target, CellSymbol))
    for targets in extra:
        colored.extend(target for target in targets if isinstance(target, CellSymbol))
    return colored


def count_symbols(symbols: Optional[SymbolMap], exclude: Iterable[SymbolKind] = ()) -> int:
    skipped = set(exclude)
    return sum(len(targets) for kind, targets in (symbols or {}).items() if kind not in skipped)


def unique_colors(symbols: Iterable[CellSymbol]) -> List[str]:
    """Distinct colours in first-seen order."""

    seen: List[str] = []
    for symbol in symbols:
        if symbol.color not in seen:
            seen.append(symbol.color)
    return seen


def normalize_preferred(preferred: Optional[Sequence[str]]) -> List[str]:
    ordered: List[str] = []
    for color in preferred or ():
        if color not in ordered:
            ordered.append(color)
    return ordered[:MAX_COLOR_RULE_COLORS]


def derive_palette(
    default_color: str,
    color_rule: bool,
    rng: Mulberry32,
    preferred: Optional[Sequence[str]] = None,
    support_colors: Optional[Sequence[str]] = None,
    extend_with_remaining: bool = False,
    cap: Optional[int] = None,
    random_size: int = 2,
) -> List[str]:
    """Build the ordered colour list a generator draws from.

    Without the colour rule every target takes ``default_color``. Otherwise
    the base is the caller's preferred colours, else the colours already used
    by support symbols (shuffled), else a random ``random_size`` slice of the
    global palette. Interacting kinds set ``extend_with_remaining`` so the
    base is followed by the rest of the global palette in shuffled order,
    and ``cap`` truncates the result.
    """

    if not color_rule:
        return [default_color]

    base = normalize_preferred(preferred)
    support = list(support_colors or ())
    if not base and support:
        base = shuffle(support, rng)
        if not extend_with_remaining or cap is not None:
            base = base[:MAX_COLOR_RULE_COLORS]

    if extend_with_remaining:
        fallback = shuffle([color for color in COLOR_PALETTE if color not in base], rng)
        palette = base + fallback
    elif base:
        palette = base
    else:
        palette = shuffle(COLOR_PALETTE, rng)[:random_size]

    if cap is not None:
        palette = palette[:cap]
    return palette or [default_color]


class ColorBalancer:
    """Hands out palette colours preferring the least used so far."""

    def __init__(self, palette: Sequence[str]) -> None:
        self.palette = list(palette)
        self.usage: Counter = Counter()

    def pick(self, rng: Mulberry32) -> str:
        ranked = shuffle(self.palette, rng)
        color = min(ranked, key=lambda item: self.usage[item])
        self.usage[color] += 1
        return color

    @property
    def distinct_used(self) -> int:
        return sum(1 for count in self.usage.values() if count > 0)
