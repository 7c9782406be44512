"""Pretty-print helpers for path puzzle boards."""

from __future__ import annotations

import sys
from collections import Counter
from typing import TYPE_CHECKING, AbstractSet, Dict, List, Optional, Sequence

from ..core.constants import MAX_INDEX, HexPlacement, SymbolKind
from ..core.models import CellSymbol, HexTarget, Point, SymbolMap
from ..engine.grid import edge_key, edges_from_path

if TYPE_CHECKING:
    from ..engine.generator import PuzzleResult


GLYPHS: Dict[SymbolKind, str] = {
    SymbolKind.ARROW: "A",
    SymbolKind.BLACK_HOLE: "@",
    SymbolKind.CARDINAL: "+",
    SymbolKind.CHEVRON: ">",
    SymbolKind.CHIP: "c",
    SymbolKind.COLOR_SQUARE: "#",
    SymbolKind.COMPASS: "C",
    SymbolKind.CRYSTAL: "X",
    SymbolKind.DIAMOND: "D",
    SymbolKind.DICE: "d",
    SymbolKind.DOT: ".",
    SymbolKind.EYE: "E",
    SymbolKind.GHOST: "G",
    SymbolKind.MINESWEEPER: "M",
    SymbolKind.NEGATOR: "Y",
    SymbolKind.OPEN_PENTAGON: "P",
    SymbolKind.SENTINEL: "S",
    SymbolKind.SPINNER: "~",
    SymbolKind.STAR: "*",
    SymbolKind.TALLY: "T",
    SymbolKind.TRIANGLE: "^",
    SymbolKind.WATER_DROPLET: "W",
}


def symbol_glyph(symbol: CellSymbol) -> str:
    glyph = GLYPHS.get(symbol.kind, "?")
    number = getattr(symbol, "count", None)
    if number is None:
        number = getattr(symbol, "value", None)
    return f"{glyph}{number}" if number is not None else glyph


def format_board(
    edges: AbstractSet[str],
    symbols: SymbolMap,
    path: Optional[Sequence[Point]] = None,
) -> str:
    """ASCII board: ``o``/``+`` vertices, ``=``/``H`` path, ``-``/``|`` open edges, ``h`` hexagons."""

    used = edges_from_path(path) if path else frozenset()
    on_path = {tuple(point) for point in path or ()}
    cells: Dict[tuple, str] = {}
    hex_nodes = set()
    hex_edges = set()
    for targets in symbols.values():
        for symbol in targets:
            if isinstance(symbol, HexTarget):
                if symbol.placement == HexPlacement.EDGE:
                    hex_edges.add(symbol.edge_key)
                else:
                    hex_nodes.add((int(symbol.position[0]), int(symbol.position[1])))
            elif isinstance(symbol, CellSymbol):
                cells[symbol.cell] = symbol_glyph(symbol)

    lines: List[str] = []
    for y in range(MAX_INDEX + 1):
        row = []
        for x in range(MAX_INDEX + 1):
            if (x, y) in hex_nodes:
                row.append("h")
            else:
                row.append("o" if (x, y) in on_path else "+")
            if x < MAX_INDEX:
                key = edge_key((x, y), (x + 1, y))
                mark = "=" if key in used else "-" if key in edges else " "
                row.append(mark + ("h" if key in hex_edges else mark) + mark)
        lines.append("".join(row))
        if y == MAX_INDEX:
            break
        row = []
        for x in range(MAX_INDEX + 1):
            key = edge_key((x, y), (x, y + 1))
            mark = "H" if key in used else "|" if key in edges else " "
            row.append("h" if key in hex_edges else mark)
            if x < MAX_INDEX:
                row.append(f"{cells.get((x, y), ''):^3}")
        lines.append("".join(row))
    return "\n".join(lines)


def pretty_print_board(
    edges: AbstractSet[str],
    symbols: SymbolMap,
    path: Optional[Sequence[Point]] = None,
    *,
    label: str | None = None,
    stream=None,
) -> None:
    """Print the board in a human-friendly format."""

    stream = stream or sys.stdout
    if label:
        print(label, file=stream)
    print(format_board(edges, symbols, path), file=stream)


def print_puzzle_stats(result: PuzzleResult, *, stream=None) -> None:
    """Print the solved board followed by per-kind stats."""

    stream = stream or sys.stdout
    pretty_print_board(result.edges, result.symbols, result.solution_path, stream=stream)

    print(file=stream)
    print("--- Board ---", file=stream)
    print(f"  Open edges:    {len(result.edges)}", file=stream)
    print(f"  Path length:   {len(result.solution_path) - 1} edges", file=stream)

    print(file=stream)
    print("--- Symbols ---", file=stream)
    for kind, targets in result.symbols.items():
        colors = Counter(getattr(target, "color", "-") for target in targets)
        color_parts = " ".join(f"{color}:{count}" for color, count in sorted(colors.items()))
        print(f"  {kind.value:<14} {len(targets):>2}  {color_parts}", file=stream)

    if result.solver_path is not None:
        print(file=stream)
        same = list(result.solver_path) == list(result.solution_path)
        print(f"CP-SAT path:     {len(result.solver_path) - 1} edges ({'same' if same else 'different'} path)", file=stream)

    if result.validation_messages:
        print(file=stream)
        print("--- Validation ---", file=stream)
        for msg in result.validation_messages:
            print(f"  {msg}", file=stream)

    print(file=stream)
    print(f"Seed: {result.seed}", file=stream)
