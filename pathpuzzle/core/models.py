"""Data models supporting the path puzzle engine.

Every placed symbol is an immutable value. Cell-bound symbols share the
``cell_x``/``cell_y``/``color`` triple through :class:`CellSymbol`, which is
what the colour-aware rules aggregate over; hexagons live on vertices and
edges and therefore stand apart.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from .constants import Direction, HexPlacement, Rotation, SymbolKind


class Point(NamedTuple):
    """Integer grid vertex."""

    x: int
    y: int


@dataclass(frozen=True)
class CellSymbol:
    """Common shape of every symbol anchored to a board cell."""

    kind: ClassVar[SymbolKind]

    cell_x: int
    cell_y: int
    color: str

    @property
    def cell(self) -> Tuple[int, int]:
        return (self.cell_x, self.cell_y)

    @property
    def cell_key(self) -> str:
        return f"{self.cell_x},{self.cell_y}"


@dataclass(frozen=True)
class ArrowTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.ARROW

    direction: Direction = Direction.RIGHT
    count: int = 1


@dataclass(frozen=True)
class DiamondTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.DIAMOND

    count: int = 1


@dataclass(frozen=True)
class DotTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.DOT

    count: int = 1


@dataclass(frozen=True)
class TriangleTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.TRIANGLE

    count: int = 1


@dataclass(frozen=True)
class SpinnerTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.SPINNER

    direction: Rotation = Rotation.CLOCKWISE


@dataclass(frozen=True)
class ChevronTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.CHEVRON

    direction: Direction = Direction.RIGHT
    count: int = 1


@dataclass(frozen=True)
class MinesweeperTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.MINESWEEPER

    value: int = 0


@dataclass(frozen=True)
class TallyTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.TALLY

    count: int = 0


@dataclass(frozen=True)
class ChipTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.CHIP


@dataclass(frozen=True)
class BlackHoleTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.BLACK_HOLE


@dataclass(frozen=True)
class CrystalTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.CRYSTAL


@dataclass(frozen=True)
class EyeTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.EYE

    direction: Direction = Direction.UP


@dataclass(frozen=True)
class OpenPentagonTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.OPEN_PENTAGON


@dataclass(frozen=True)
class SentinelTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.SENTINEL

    direction: Direction = Direction.UP


@dataclass(frozen=True)
class WaterDropletTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.WATER_DROPLET

    direction: Direction = Direction.DOWN


@dataclass(frozen=True)
class NegatorTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.NEGATOR


@dataclass(frozen=True)
class ColorSquareTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.COLOR_SQUARE


@dataclass(frozen=True)
class StarTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.STAR


@dataclass(frozen=True)
class CardinalTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.CARDINAL


@dataclass(frozen=True)
class CompassTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.COMPASS

    rotation: int = 0
    mirrored: bool = False


@dataclass(frozen=True)
class GhostTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.GHOST


@dataclass(frozen=True)
class DiceTarget(CellSymbol):
    kind: ClassVar[SymbolKind] = SymbolKind.DICE

    value: int = 1


@dataclass(frozen=True)
class HexTarget:
    """A hexagon sitting on a path vertex or on the midpoint of an edge."""

    kind: ClassVar[SymbolKind] = SymbolKind.HEXAGON

    placement: HexPlacement
    position: Tuple[float, float]
    edge_key: Optional[str] = None

    @property
    def id(self) -> str:
        if self.placement == HexPlacement.EDGE:
            return f"edge-{self.edge_key}"
        return f"node-{int(self.position[0])},{int(self.position[1])}"


PlacedSymbol = Union[
    ArrowTarget,
    BlackHoleTarget,
    CardinalTarget,
    ChevronTarget,
    ChipTarget,
    ColorSquareTarget,
    CompassTarget,
    CrystalTarget,
    DiamondTarget,
    DiceTarget,
    DotTarget,
    EyeTarget,
    GhostTarget,
    HexTarget,
    MinesweeperTarget,
    NegatorTarget,
    OpenPentagonTarget,
    SentinelTarget,
    SpinnerTarget,
    StarTarget,
    TallyTarget,
    TriangleTarget,
    WaterDropletTarget,
]

SymbolMap = Mapping[SymbolKind, Sequence[PlacedSymbol]]


@dataclass
class GenerationResult:
    """Targets produced by one generator call and the path they were built on."""

    targets: List[PlacedSymbol]
    solution_path: List[Point]
    extras: Dict[str, Any] = field(default_factory=dict)


def symbol_to_jsonable(symbol: PlacedSymbol) -> Dict[str, Any]:
    """Plain-dict form of a symbol with enums flattened to their values."""

    payload: Dict[str, Any] = {"kind": symbol.kind.value}
    for key, value in asdict(symbol).items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, tuple):
            value = list(value)
        payload[key] = value
    return payload
