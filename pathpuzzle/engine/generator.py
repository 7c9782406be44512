"""Board assembly: pick a solution path, then layer symbol kinds on top of it.

Each requested kind is generated in a fixed order against the same permitted
edge set. The first kind's path is passed to every later kind as its
preferred path, occupied cells are blocked, and interacting kinds receive
the targets already placed. The finished board is re-checked by
:class:`PuzzleValidator` and, optionally, re-solved with CP-SAT.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from ..core.constants import MAX_COLOR_RULE_COLORS, SymbolKind
from ..core.exceptions import ConfigError, GenerationError
from ..core.models import CellSymbol, PlacedSymbol, Point, symbol_to_jsonable
from ..symbols.registry import RULES
from ..utils.logger import get_logger
from .grid import BoardConfig, EdgeSet, build_full_edges, generate_board_edges
from .paths import resolve_solution_path
from .rng import Mulberry32
from .solver import solve_puzzle
from .validator import PuzzleValidator


LOGGER = get_logger(__name__)

GENERATION_ORDER: Sequence[SymbolKind] = (
    SymbolKind.COLOR_SQUARE,
    SymbolKind.GHOST,
    SymbolKind.HEXAGON,
    SymbolKind.TRIANGLE,
    SymbolKind.DOT,
    SymbolKind.DIAMOND,
    SymbolKind.ARROW,
    SymbolKind.CHEVRON,
    SymbolKind.MINESWEEPER,
    SymbolKind.WATER_DROPLET,
    SymbolKind.CARDINAL,
    SymbolKind.SPINNER,
    SymbolKind.DICE,
    SymbolKind.CRYSTAL,
    SymbolKind.TALLY,
    SymbolKind.CHIP,
    SymbolKind.BLACK_HOLE,
    SymbolKind.EYE,
    SymbolKind.OPEN_PENTAGON,
    SymbolKind.COMPASS,
    SymbolKind.STAR,
    SymbolKind.SENTINEL,
    SymbolKind.NEGATOR,
)

# Kinds whose pairing with a negator cannot be repaired by cancelling one symbol.
NEGATOR_BLOCKED_COMBOS = (
    frozenset({SymbolKind.CRYSTAL, SymbolKind.GHOST}),
    frozenset({SymbolKind.CRYSTAL, SymbolKind.TALLY}),
)


@dataclass
class GeneratorConfig:
    kinds: Sequence[SymbolKind]
    seed: int = 0
    color_rule: Optional[bool] = None
    preferred_colors: Sequence[str] = ()
    broken_edges: bool = True
    retry_limit: int = 40
    attempt_stride: int = 313
    kind_seed_stride: int = 2001
    verify_with_solver: bool = False
    solver_timeout: float = 20.0

    def __post_init__(self) -> None:
        try:
            kinds = [SymbolKind(kind) for kind in self.kinds]
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        if not kinds:
            raise ConfigError("At least one symbol kind is required")
        if len(set(kinds)) != len(kinds):
            raise ConfigError("Symbol kinds must not repeat")
        if SymbolKind.NEGATOR in kinds:
            if len(kinds) == 1:
                raise ConfigError("Negators need at least one other symbol kind to cancel")
            for combo in NEGATOR_BLOCKED_COMBOS:
                if combo <= set(kinds):
                    names = " and ".join(sorted(kind.value for kind in combo))
                    raise ConfigError(f"Negators cannot be combined with {names}")
        if len(self.preferred_colors) > MAX_COLOR_RULE_COLORS:
            raise ConfigError(f"At most {MAX_COLOR_RULE_COLORS} preferred colours are allowed")
        if self.retry_limit < 1:
            raise ConfigError("retry_limit must be positive")
        self.kinds = kinds
        if self.color_rule is None:
            self.color_rule = SymbolKind.STAR in kinds

    @property
    def ordered_kinds(self) -> List[SymbolKind]:
        return [kind for kind in GENERATION_ORDER if kind in self.kinds]

    def to_board_config(self, seed: int) -> BoardConfig:
        return BoardConfig(seed=seed)


@dataclass
class PuzzleResult:
    seed: int
    edges: EdgeSet
    solution_path: List[Point]
    symbols: Dict[SymbolKind, List[PlacedSymbol]]
    validation_messages: List[str] = field(default_factory=list)
    solver_path: Optional[List[Point]] = None

    def to_jsonable(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "edges": sorted(self.edges),
            "solution_path": [list(point) for point in self.solution_path],
            "symbols": {
                kind.value: [symbol_to_jsonable(symbol) for symbol in targets]
                for kind, targets in self.symbols.items()
            },
            "validation": self.validation_messages,
            "solver_path": [list(point) for point in self.solver_path] if self.solver_path else None,
        }


class PuzzleGenerator:
    """Seeded orchestrator: one board layout, one path, every requested kind."""

    def __init__(self, config: GeneratorConfig) -> None:
        self.config = config

    # ------------------------------------------------------------------
    # Public entrypoint
    # ------------------------------------------------------------------
    def generate(self) -> PuzzleResult:
        for attempt in range(self.config.retry_limit):
            seed = self.config.seed + attempt * self.config.attempt_stride
            LOGGER.debug("Generation attempt %s/%s (seed %d)", attempt + 1, self.config.retry_limit, seed)
            try:
                result = self._attempt(seed)
            except GenerationError as exc:
                LOGGER.debug("Attempt %d rejected: %s", attempt + 1, exc)
                continue
            LOGGER.info(
                "Puzzle generated on attempt %d with %s",
                attempt + 1,
                ", ".join(f"{len(targets)} {kind.value}" for kind, targets in result.symbols.items()),
            )
            return result
        raise GenerationError(
            f"No board with {', '.join(kind.value for kind in self.config.kinds)} "
            f"after {self.config.retry_limit} attempts"
        )

    # ------------------------------------------------------------------
    # One seeded attempt
    # ------------------------------------------------------------------
    def _attempt(self, seed: int) -> PuzzleResult:
        edges = self._board_edges(seed)
        kinds = self.config.ordered_kinds
        rng = Mulberry32(seed + 11)
        loopy_attempts, min_length = self._path_budget(len(kinds))
        path = resolve_solution_path(edges, rng, None, loopy_attempts, min_length)
        if path is None:
            raise GenerationError("No start-to-end path on this layout")

        symbols: Dict[SymbolKind, List[PlacedSymbol]] = {}
        used_cells: Set[str] = set()
        for index, kind in enumerate(kinds):
            result = self._generate_kind(kind, edges, seed + (index + 1) * self.config.kind_seed_stride,
                                         len(kinds), used_cells, path, symbols)
            if result is None:
                raise GenerationError(f"{kind.value} infeasible")
            path = result.solution_path
            symbols[kind] = list(result.targets)
            used_cells.update(target.cell_key for target in result.targets if isinstance(target, CellSymbol))

        validation = PuzzleValidator(edges).validate(path, symbols)
        if not validation.ok:
            raise GenerationError("; ".join(validation.messages))

        solver_path = None
        if self.config.verify_with_solver:
            solver_path = solve_puzzle(edges, symbols, timeout=self.config.solver_timeout)
            if solver_path is None:
                raise GenerationError("CP-SAT could not reproduce a valid path")
        return PuzzleResult(
            seed=seed,
            edges=edges,
            solution_path=path,
            symbols=symbols,
            validation_messages=validation.messages,
            solver_path=solver_path,
        )

    def _board_edges(self, seed: int) -> EdgeSet:
        if not self.config.broken_edges:
            return build_full_edges()
        return generate_board_edges(self.config.to_board_config(seed))

    @staticmethod
    def _path_budget(kind_count: int) -> Tuple[int, int]:
        if kind_count >= 4:
            return 66, 12
        if kind_count == 3:
            return 58, 12
        if kind_count == 2:
            return 42, 10
        return 32, 9

    def _generate_kind(
        self,
        kind: SymbolKind,
        edges: EdgeSet,
        seed: int,
        kind_count: int,
        used_cells: Set[str],
        path: Sequence[Point],
        symbols: Dict[SymbolKind, List[PlacedSymbol]],
    ):
        rule = RULES[kind]
        options: Dict[str, Any] = {
            "blocked_cells": frozenset(used_cells),
            "color_rule": self.config.color_rule or kind is SymbolKind.COLOR_SQUARE,
            "preferred_path": path,
        }
        if kind is not SymbolKind.HEXAGON:
            options["preferred_colors"] = list(self.config.preferred_colors) or None
        if rule.takes_support:
            options["support_symbols"] = dict(symbols)
        if kind is SymbolKind.CRYSTAL:
            options["negator_active"] = SymbolKind.NEGATOR in self.config.kinds
        if kind is SymbolKind.STAR:
            options["allow_negator_orphan"] = SymbolKind.NEGATOR in self.config.kinds
        LOGGER.debug("Generating %s (seed %d)", kind.value, seed)
        return rule.generate(edges, seed, kind_count, **options)
