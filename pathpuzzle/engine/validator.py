"""Deterministic rule validation for a drawn path against a symbol board."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set

from ..core.constants import END, START, SymbolKind
from ..core.exceptions import ValidationError
from ..core.models import PlacedSymbol, Point, SymbolMap
from ..symbols.eyes import resolve_eye_effects
from ..symbols.negator import SymbolRef, iter_removal_assignments, removable_by_region
from ..symbols.registry import RULES
from ..utils.logger import get_logger
from .grid import edge_key, edges_from_path, in_bounds
from .regions import build_cell_regions


LOGGER = get_logger(__name__)

FailureMap = Dict[SymbolKind, Set[int]]


@dataclass
class ValidationResult:
    ok: bool
    messages: List[str]
    failing: FailureMap = field(default_factory=dict)
    negated: List[SymbolRef] = field(default_factory=list)


def collect_failures(path: Sequence[Point], symbols: SymbolMap) -> FailureMap:
    """Failing target indexes per kind, ignoring negators.

    Eye deletions are resolved first and handed to the kinds that read the
    effective edge set.
    """

    used_edges = edges_from_path(path)
    effects = resolve_eye_effects(used_edges, symbols.get(SymbolKind.EYE, ()))
    failures: FailureMap = {}
    for kind, targets in symbols.items():
        if kind is SymbolKind.NEGATOR or not targets:
            continue
        failing = RULES[kind].failing_indexes(path, used_edges, effects.effective_edges, targets, symbols)
        if failing:
            failures[kind] = failing
    return failures


def without_symbols(symbols: SymbolMap, removed: Iterable[SymbolRef]) -> Dict[SymbolKind, List[PlacedSymbol]]:
    """Copy of ``symbols`` with negators and the referenced targets dropped."""

    dropped: Dict[SymbolKind, Set[int]] = {}
    for ref in removed:
        dropped.setdefault(ref.kind, set()).add(ref.index)
    reduced: Dict[SymbolKind, List[PlacedSymbol]] = {}
    for kind, targets in symbols.items():
        if kind is SymbolKind.NEGATOR:
            continue
        skip = dropped.get(kind, set())
        kept = [target for index, target in enumerate(targets) if index not in skip]
        if kept:
            reduced[kind] = kept
    return reduced


class PuzzleValidator:
    """Runs deterministic validation of one solution path over a board.

    ``edges`` is the permitted edge set; when omitted every grid edge is
    allowed.
    """

    def __init__(self, edges: Optional[AbstractSet[str]] = None) -> None:
        self.edges = edges

    def validate(self, path: Sequence[Point], symbols: SymbolMap) -> ValidationResult:
        messages: List[str] = []
        try:
            self._check_path(path)
            negated = self._check_symbols(path, symbols)
        except ValidationError as exc:
            messages.append(str(exc))
            LOGGER.debug("Validation failed: %s", exc)
            return ValidationResult(ok=False, messages=messages, failing=exc.failing)
        return ValidationResult(ok=True, messages=[], negated=negated)

    def is_valid(self, path: Sequence[Point], symbols: SymbolMap) -> bool:
        return self.validate(path, symbols).ok

    def _check_path(self, path: Sequence[Point]) -> None:
        if len(path) < 2:
            raise ValidationError("Path needs at least two vertices")
        if tuple(path[0]) != START or tuple(path[-1]) != END:
            raise ValidationError(f"Path must run from {START} to {END}, got {tuple(path[0])} to {tuple(path[-1])}")
        seen: Set[tuple] = set()
        for index, point in enumerate(path):
            if not in_bounds(point):
                raise ValidationError(f"Vertex {tuple(point)} is off the board")
            if tuple(point) in seen:
                raise ValidationError(f"Vertex {tuple(point)} is visited twice")
            seen.add(tuple(point))
            if index == 0:
                continue
            previous = path[index - 1]
            if abs(previous[0] - point[0]) + abs(previous[1] - point[1]) != 1:
                raise ValidationError(f"Step {tuple(previous)} -> {tuple(point)} is not a grid edge")
            if self.edges is not None and edge_key(previous, point) not in self.edges:
                raise ValidationError(f"Edge {edge_key(previous, point)} is broken")

    def _check_symbols(self, path: Sequence[Point], symbols: SymbolMap) -> List[SymbolRef]:
        negators = list(symbols.get(SymbolKind.NEGATOR, ()))
        if not negators:
            failures = collect_failures(path, symbols)
            if failures:
                raise _failure(failures)
            return []

        regions = build_cell_regions(edges_from_path(path))
        removable = removable_by_region(regions, symbols)
        negator_regions = [regions.get(target.cell_key) for target in negators]
        first_failures: Optional[FailureMap] = None
        for assignment in iter_removal_assignments(negator_regions, removable):
            failures = collect_failures(path, without_symbols(symbols, assignment))
            if not failures:
                LOGGER.debug("Negators cancel %s", assignment)
                return assignment
            if first_failures is None:
                first_failures = failures
        if first_failures is None:
            raise ValidationError(
                "A negator has no symbol of its own to cancel",
                {SymbolKind.NEGATOR: set(range(len(negators)))},
            )
        raise _failure(first_failures)


def _failure(failures: FailureMap) -> ValidationError:
    summary = ", ".join(f"{kind.value}{sorted(indexes)}" for kind, indexes in sorted(failures.items()))
    return ValidationError(f"Unsatisfied symbols: {summary}", failures)
