"""Shared constants and enumerations for the path puzzle engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


NODE_COUNT = 5
MAX_INDEX = NODE_COUNT - 1
CELL_COUNT = MAX_INDEX  # cells per side
START: Tuple[int, int] = (0, MAX_INDEX)
END: Tuple[int, int] = (MAX_INDEX, 0)

COLOR_PALETTE: Tuple[str, ...] = (
    "#f8f5ef",
    "#111111",
    "#2fbf71",
    "#e44b4b",
    "#3b82f6",
    "#f4c430",
    "#f08a2f",
    "#9b59b6",
    "#ec4899",
)

MAX_COLOR_RULE_COLORS = 3
EPSILON = 1e-9


class SymbolKind(str, Enum):
    """Every symbol kind that can be placed on a board."""

    ARROW = "arrow"
    BLACK_HOLE = "black-hole"
    CARDINAL = "cardinal"
    CHEVRON = "chevron"
    CHIP = "chip"
    COLOR_SQUARE = "color-square"
    COMPASS = "compass"
    CRYSTAL = "crystal"
    DIAMOND = "diamond"
    DICE = "dice"
    DOT = "dot"
    EYE = "eye"
    GHOST = "ghost"
    HEXAGON = "hexagon"
    MINESWEEPER = "minesweeper"
    NEGATOR = "negator"
    OPEN_PENTAGON = "open-pentagon"
    SENTINEL = "sentinel"
    SPINNER = "spinner"
    STAR = "star"
    TALLY = "tally"
    TRIANGLE = "triangle"
    WATER_DROPLET = "water-droplet"


class Direction(str, Enum):
    """Compass headings used by directional symbols (screen coordinates, y grows down)."""

    RIGHT = "right"
    DOWN_RIGHT = "down-right"
    DOWN = "down"
    DOWN_LEFT = "down-left"
    LEFT = "left"
    UP_LEFT = "up-left"
    UP = "up"
    UP_RIGHT = "up-right"

    @property
    def step(self) -> Tuple[int, int]:
        return DIRECTION_STEPS[self]

    @property
    def is_cardinal(self) -> bool:
        return self in CARDINAL_DIRECTIONS


class Rotation(str, Enum):
    """Traversal sense around a cell."""

    CLOCKWISE = "clockwise"
    COUNTERCLOCKWISE = "counterclockwise"


class HexPlacement(str, Enum):
    """Where a hexagon sits: on a vertex or on an edge midpoint."""

    NODE = "node"
    EDGE = "edge"


DIRECTION_STEPS: Dict[Direction, Tuple[int, int]] = {
    Direction.RIGHT: (1, 0),
    Direction.DOWN_RIGHT: (1, 1),
    Direction.DOWN: (0, 1),
    Direction.DOWN_LEFT: (-1, 1),
    Direction.LEFT: (-1, 0),
    Direction.UP_LEFT: (-1, -1),
    Direction.UP: (0, -1),
    Direction.UP_RIGHT: (1, -1),
}

ALL_DIRECTIONS: Tuple[Direction, ...] = tuple(Direction)
CARDINAL_DIRECTIONS: Tuple[Direction, ...] = (
    Direction.UP,
    Direction.RIGHT,
    Direction.DOWN,
    Direction.LEFT,
)
ORTHOGONAL_STEPS: Tuple[Tuple[int, int], ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))
NEIGHBOR_STEPS: Tuple[Tuple[int, int], ...] = (
    (-1, -1),
    (0, -1),
    (1, -1),
    (-1, 0),
    (1, 0),
    (-1, 1),
    (0, 1),
    (1, 1),
)

DEFAULT_COLORS: Dict[SymbolKind, str] = {
    SymbolKind.ARROW: "#a855f7",
    SymbolKind.BLACK_HOLE: "#111111",
    SymbolKind.CARDINAL: "#ef2df5",
    SymbolKind.CHEVRON: "#ff4c00",
    SymbolKind.CHIP: "#8e2de2",
    SymbolKind.COLOR_SQUARE: COLOR_PALETTE[0],
    SymbolKind.COMPASS: "#7be0ff",
    SymbolKind.CRYSTAL: "#c9153b",
    SymbolKind.DIAMOND: "#9fbc00",
    SymbolKind.DICE: "#3f7fff",
    SymbolKind.DOT: "#f4eb2f",
    SymbolKind.EYE: "#ef4b5f",
    SymbolKind.GHOST: "#d7d4da",
    SymbolKind.HEXAGON: "#111111",
    SymbolKind.MINESWEEPER: "#8f939b",
    SymbolKind.NEGATOR: "#f8f5ef",
    SymbolKind.OPEN_PENTAGON: "#d88a14",
    SymbolKind.SENTINEL: "#efe96f",
    SymbolKind.SPINNER: "#39ff14",
    SymbolKind.STAR: COLOR_PALETTE[5],
    SymbolKind.TALLY: "#f8f5ef",
    SymbolKind.TRIANGLE: "#ff8a00",
    SymbolKind.WATER_DROPLET: "#22c4e5",
}


@dataclass(frozen=True)
class Bounds:
    """Simple rectangle bounds helper."""

    width: int
    height: int

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height


CELL_BOUNDS = Bounds(width=CELL_COUNT, height=CELL_COUNT)
