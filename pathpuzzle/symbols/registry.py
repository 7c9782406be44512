"""Kind-keyed table of every symbol rule.

The validator, solver and generator reach symbol modules only through
:data:`RULES`, so no rule module needs to know about its siblings beyond the
shared :class:`~pathpuzzle.core.models.SymbolMap` schema.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Callable, Dict, Optional, Sequence, Set

from ..core.constants import SymbolKind
from ..core.exceptions import UnknownSymbolKindError
from ..core.models import PlacedSymbol, Point, SymbolMap
from . import (
    arrows,
    black_holes,
    cardinals,
    chevrons,
    chips,
    color_squares,
    compasses,
    crystals,
    diamonds,
    dice,
    dots,
    eyes,
    ghosts,
    hexagons,
    minesweeper,
    negator,
    open_pentagons,
    sentinels,
    spinners,
    stars,
    tally_marks,
    triangles,
    water_droplets,
)


class RuleInput(str, Enum):
    """What a rule's check is evaluated against."""

    PATH = "path"
    EDGES = "edges"
    EFFECTIVE_EDGES = "effective-edges"


@dataclass(frozen=True)
class SymbolRule:
    kind: SymbolKind
    check: Callable[..., bool]
    collect_failing: Callable[..., Set[int]]
    generate: Callable
    rule_input: RuleInput = RuleInput.EDGES
    interacting: bool = False
    empty_is_valid: bool = True
    reads_support: bool = False

    @property
    def takes_support(self) -> bool:
        """Whether the generator accepts the other kinds' finalized targets."""

        return self.interacting or self.reads_support

    def failing_indexes(
        self,
        path: Sequence[Point],
        used_edges: AbstractSet[str],
        effective_edges: AbstractSet[str],
        targets: Sequence[PlacedSymbol],
        other_symbols: Optional[SymbolMap] = None,
    ) -> Set[int]:
        if self.rule_input is RuleInput.PATH:
            subject = path
        elif self.rule_input is RuleInput.EFFECTIVE_EDGES:
            subject = effective_edges
        else:
            subject = used_edges
        if self.interacting:
            return self.collect_failing(subject, targets, other_symbols)
        return self.collect_failing(subject, targets)


def _rule(kind: SymbolKind, module, stem: str, plural: str, **options) -> SymbolRule:
    return SymbolRule(
        kind=kind,
        check=getattr(module, f"check_{plural}"),
        collect_failing=getattr(module, f"collect_failing_{stem}_indexes"),
        generate=getattr(module, f"generate_{plural}_for_edges"),
        **options,
    )


RULES: Dict[SymbolKind, SymbolRule] = {
    rule.kind: rule
    for rule in (
        _rule(SymbolKind.ARROW, arrows, "arrow", "arrows", rule_input=RuleInput.PATH),
        _rule(SymbolKind.BLACK_HOLE, black_holes, "black_hole", "black_holes", interacting=True, empty_is_valid=False),
        _rule(SymbolKind.CARDINAL, cardinals, "cardinal", "cardinals"),
        _rule(SymbolKind.CHEVRON, chevrons, "chevron", "chevrons"),
        _rule(SymbolKind.CHIP, chips, "chip", "chips", interacting=True, empty_is_valid=False),
        _rule(SymbolKind.COLOR_SQUARE, color_squares, "color_square", "color_squares"),
        _rule(
            SymbolKind.COMPASS, compasses, "compass", "compasses",
            rule_input=RuleInput.EFFECTIVE_EDGES, empty_is_valid=False, reads_support=True,
        ),
        _rule(SymbolKind.CRYSTAL, crystals, "crystal", "crystals", empty_is_valid=False),
        _rule(SymbolKind.DIAMOND, diamonds, "diamond", "diamonds", rule_input=RuleInput.PATH),
        _rule(SymbolKind.DICE, dice, "dice", "dice"),
        _rule(SymbolKind.DOT, dots, "dot", "dots", rule_input=RuleInput.PATH),
        _rule(SymbolKind.EYE, eyes, "eye", "eyes", empty_is_valid=False, reads_support=True),
        _rule(SymbolKind.GHOST, ghosts, "ghost", "ghosts", empty_is_valid=False),
        _rule(SymbolKind.HEXAGON, hexagons, "hexagon", "hexagons"),
        _rule(SymbolKind.MINESWEEPER, minesweeper, "minesweeper", "minesweeper_numbers"),
        _rule(SymbolKind.NEGATOR, negator, "negator", "negators", interacting=True),
        _rule(
            SymbolKind.OPEN_PENTAGON, open_pentagons, "open_pentagon", "open_pentagons",
            rule_input=RuleInput.EFFECTIVE_EDGES, interacting=True, empty_is_valid=False,
        ),
        _rule(SymbolKind.SENTINEL, sentinels, "sentinel", "sentinels", interacting=True),
        _rule(SymbolKind.SPINNER, spinners, "spinner", "spinners", rule_input=RuleInput.PATH),
        _rule(SymbolKind.STAR, stars, "star", "stars", interacting=True),
        _rule(SymbolKind.TALLY, tally_marks, "tally", "tally_marks", empty_is_valid=False, reads_support=True),
        _rule(SymbolKind.TRIANGLE, triangles, "triangle", "triangles"),
        _rule(SymbolKind.WATER_DROPLET, water_droplets, "water_droplet", "water_droplets"),
    )
}


def get_rule(kind) -> SymbolRule:
    try:
        return RULES[SymbolKind(kind)]
    except ValueError as exc:
        raise UnknownSymbolKindError(f"Unknown symbol kind: {kind!r}") from exc
