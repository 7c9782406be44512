"""CP-SAT search for a path satisfying every placed symbol, using OR-Tools."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from ortools.sat.python import cp_model

from ..core.constants import END, NODE_COUNT, START
from ..core.models import Point, SymbolMap
from ..utils.logger import get_logger
from .grid import list_all_edges
from .validator import PuzzleValidator

LOGGER = get_logger(__name__)


def _node(point: Tuple[int, int]) -> int:
    return point[1] * NODE_COUNT + point[0]


def _point(node: int) -> Point:
    return Point(node % NODE_COUNT, node // NODE_COUNT)


class _PathCollector(cp_model.CpSolverSolutionCallback):
    """Rebuilds each enumerated circuit as a path and keeps the first valid one."""

    def __init__(
        self,
        arcs: Dict[Tuple[int, int], cp_model.IntVar],
        validator: PuzzleValidator,
        symbols: SymbolMap,
        max_candidates: int,
    ) -> None:
        super().__init__()
        self.arcs = arcs
        self.validator = validator
        self.symbols = symbols
        self.max_candidates = max_candidates
        self.candidates = 0
        self.path: Optional[List[Point]] = None

    def on_solution_callback(self) -> None:
        successor = {tail: head for (tail, head), lit in self.arcs.items() if self.boolean_value(lit)}
        path = [_point(_node(START))]
        node = _node(START)
        while node != _node(END):
            node = successor[node]
            path.append(_point(node))
        self.candidates += 1
        if self.validator.is_valid(path, self.symbols):
            self.path = path
            self.stop_search()
        elif self.candidates >= self.max_candidates:
            LOGGER.warning("CP-SAT: candidate limit %d reached", self.max_candidates)
            self.stop_search()


def solve_puzzle(
    edges: Iterable[str],
    symbols: SymbolMap,
    timeout: float = 20.0,
    max_candidates: int = 20000,
) -> Optional[List[Point]]:
    """Find any start-to-end path over ``edges`` that satisfies ``symbols``.

    The path is modelled as a single circuit through the used vertices,
    closed by a fixed arc from the end corner back to the start; unused
    vertices take a self loop. CP-SAT enumerates simple paths and each one
    is checked by :class:`PuzzleValidator`, which owns every symbol rule.

    Returns:
        The first valid path found, or None when none exists within the
        limits.
    """
    permitted = set(edges)
    model = cp_model.CpModel()

    # ------------------------------------------------------------------
    # Step 1: Arc literals for every permitted edge, both directions
    # ------------------------------------------------------------------
    arcs: Dict[Tuple[int, int], cp_model.IntVar] = {}
    for key, a, b in list_all_edges():
        if key not in permitted:
            continue
        u, v = _node(a), _node(b)
        if v != _node(START) and u != _node(END):
            arcs[(u, v)] = model.new_bool_var(f"arc_{u}_{v}")
        if u != _node(START) and v != _node(END):
            arcs[(v, u)] = model.new_bool_var(f"arc_{v}_{u}")

    # ------------------------------------------------------------------
    # Step 2: Circuit with optional vertices
    # ------------------------------------------------------------------
    circuit = [(tail, head, lit) for (tail, head), lit in arcs.items()]
    closing = model.new_bool_var("closing_arc")
    model.add(closing == 1)
    circuit.append((_node(END), _node(START), closing))
    for node in range(NODE_COUNT * NODE_COUNT):
        if node in (_node(START), _node(END)):
            continue
        circuit.append((node, node, model.new_bool_var(f"skip_{node}")))
    model.add_circuit(circuit)

    # ------------------------------------------------------------------
    # Step 3: Enumerate and validate
    # ------------------------------------------------------------------
    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = timeout
    solver.parameters.num_workers = 1
    solver.parameters.enumerate_all_solutions = True

    validator = PuzzleValidator(frozenset(permitted))
    collector = _PathCollector(arcs, validator, symbols, max_candidates)
    LOGGER.info("CP-SAT: %d arcs, solving (timeout=%0.1fs)...", len(arcs), timeout)
    status = solver.solve(model, collector)

    if collector.path is None:
        LOGGER.warning(
            "CP-SAT: no valid path after %d candidates (status=%s)",
            collector.candidates,
            solver.status_name(status),
        )
        return None
    LOGGER.info("CP-SAT: valid path after %d candidates in %.2fs", collector.candidates, solver.wall_time)
    return collector.path
