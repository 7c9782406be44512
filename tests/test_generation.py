import unittest
from dataclasses import replace

from pathpuzzle.core.constants import HexPlacement, SymbolKind
from pathpuzzle.core.models import CellSymbol, ColorSquareTarget, HexTarget
from pathpuzzle.engine.grid import build_full_edges, cell_key, edges_from_path, is_path_compatible, iter_cells
from pathpuzzle.engine.validator import PuzzleValidator, collect_failures
from pathpuzzle.symbols.color_squares import generate_color_squares_for_edges
from pathpuzzle.symbols.dots import generate_dots_for_edges
from pathpuzzle.symbols.negator import generate_negators_for_edges
from pathpuzzle.symbols.registry import RULES, RuleInput
from pathpuzzle.symbols.stars import generate_stars_for_edges

SEEDS = range(1, 13)

# Kinds that place symbols without needing anything else on the board.
STANDALONE_KINDS = (
    SymbolKind.ARROW,
    SymbolKind.CHEVRON,
    SymbolKind.COLOR_SQUARE,
    SymbolKind.DIAMOND,
    SymbolKind.DICE,
    SymbolKind.DOT,
    SymbolKind.GHOST,
    SymbolKind.HEXAGON,
    SymbolKind.MINESWEEPER,
    SymbolKind.SPINNER,
    SymbolKind.TRIANGLE,
)


def _generate(kind: SymbolKind, seed: int, **options):
    rule = RULES[kind]
    if rule.takes_support:
        options.setdefault("support_symbols", {})
    return rule.generate(build_full_edges(), seed, 3, **options)


def _move_first(targets):
    """Copy of ``targets`` with the first one shifted to a free spot."""

    first = targets[0]
    if isinstance(first, HexTarget):
        taken = {target.position for target in targets}
        spot = next(
            (float(x), float(y)) for y in range(5) for x in range(5) if (float(x), float(y)) not in taken
        )
        moved = HexTarget(HexPlacement.NODE, spot)
    else:
        taken = {target.cell for target in targets}
        x, y = next(cell for cell in iter_cells() if cell not in taken)
        moved = replace(first, cell_x=x, cell_y=y)
    return [moved] + list(targets[1:])


def _verdicts(kind: SymbolKind, path, targets, other_symbols=None):
    rule = RULES[kind]
    subject = path if rule.rule_input is RuleInput.PATH else edges_from_path(path)
    if rule.interacting:
        others = other_symbols or {}
        return rule.check(subject, targets, others), rule.collect_failing(subject, targets, others)
    return rule.check(subject, targets), rule.collect_failing(subject, targets)


class TestPerKindGeneration(unittest.TestCase):
    def test_generated_targets_hold_on_their_own_path(self) -> None:
        edges = build_full_edges()
        for kind in RULES:
            if kind is SymbolKind.NEGATOR:
                continue
            for seed in SEEDS:
                result = _generate(kind, seed)
                if result is None:
                    continue
                with self.subTest(kind=kind.value, seed=seed):
                    self.assertTrue(is_path_compatible(result.solution_path, edges))
                    self.assertTrue(result.targets or RULES[kind].empty_is_valid)
                    failures = collect_failures(result.solution_path, {kind: result.targets})
                    self.assertEqual(failures, {})

    def test_standalone_kinds_succeed_on_an_open_board(self) -> None:
        for kind in STANDALONE_KINDS:
            successes = [seed for seed in SEEDS if _generate(kind, seed) is not None]
            self.assertTrue(successes, kind.value)

    def test_check_agrees_with_failing_indexes(self) -> None:
        checked = 0
        for kind in RULES:
            for seed in SEEDS[:6]:
                result = _generate(kind, seed)
                if result is None or not result.targets:
                    continue
                for targets in (result.targets, _move_first(result.targets)):
                    with self.subTest(kind=kind.value, seed=seed, moved=targets is not result.targets):
                        verdict, failing = _verdicts(kind, result.solution_path, targets)
                        self.assertEqual(verdict, not failing)
                        checked += 1
        self.assertGreater(checked, 0)

    def test_same_seed_same_result(self) -> None:
        for kind in (SymbolKind.DOT, SymbolKind.COLOR_SQUARE, SymbolKind.DICE, SymbolKind.STAR):
            self.assertEqual(_generate(kind, 7), _generate(kind, 7), kind.value)


class TestGeneratorOptions(unittest.TestCase):
    def test_blocked_cells_stay_empty(self) -> None:
        blocked = {cell_key(x, y) for x in range(2) for y in range(4)}
        for seed in SEEDS:
            result = generate_dots_for_edges(build_full_edges(), seed, 3, blocked_cells=blocked)
            if result is None:
                continue
            for target in result.targets:
                self.assertNotIn(target.cell_key, blocked)

    def test_preferred_path_is_kept_when_compatible(self) -> None:
        path = [(0, 4), (0, 3), (0, 2), (0, 1), (0, 0), (1, 0), (2, 0), (3, 0), (4, 0)]
        result = generate_dots_for_edges(build_full_edges(), 3, 3, preferred_path=path)
        if result is not None:
            self.assertEqual([tuple(point) for point in result.solution_path], path)

    def test_color_squares_use_preferred_colors(self) -> None:
        colors = ["#e44b4b", "#3b82f6"]
        for seed in SEEDS:
            result = generate_color_squares_for_edges(build_full_edges(), seed, 1, preferred_colors=colors)
            if result is None:
                continue
            self.assertTrue(all(isinstance(target, ColorSquareTarget) for target in result.targets))
            self.assertLessEqual({target.color for target in result.targets}, set(colors))

    def test_stars_pair_with_support_symbols(self) -> None:
        support = None
        for seed in SEEDS:
            squares = generate_color_squares_for_edges(build_full_edges(), seed, 2)
            if squares is None:
                continue
            support = {SymbolKind.COLOR_SQUARE: squares.targets}
            result = generate_stars_for_edges(
                build_full_edges(),
                seed,
                2,
                blocked_cells={target.cell_key for target in squares.targets if isinstance(target, CellSymbol)},
                color_rule=True,
                support_symbols=support,
                preferred_path=squares.solution_path,
            )
            if result is None:
                continue
            board = dict(support)
            board[SymbolKind.STAR] = result.targets
            self.assertEqual(collect_failures(result.solution_path, board), {})
            self.assertIn("orphan_star", result.extras)
        self.assertIsNotNone(support)

    def test_negators_cancel_a_symbol_in_their_region(self) -> None:
        placed = 0
        for seed in SEEDS:
            squares = generate_color_squares_for_edges(build_full_edges(), seed, 2)
            if squares is None:
                continue
            support = {SymbolKind.COLOR_SQUARE: squares.targets}
            result = generate_negators_for_edges(
                build_full_edges(),
                seed,
                2,
                blocked_cells={target.cell_key for target in squares.targets},
                support_symbols=support,
                preferred_path=squares.solution_path,
            )
            if result is None:
                continue
            board = dict(support)
            board[SymbolKind.NEGATOR] = result.targets
            with self.subTest(seed=seed):
                verdict, failing = _verdicts(SymbolKind.NEGATOR, result.solution_path, result.targets, support)
                self.assertEqual(verdict, not failing)
                validation = PuzzleValidator().validate(result.solution_path, board)
                self.assertTrue(validation.ok, validation.messages)
                self.assertTrue(validation.negated)
                placed += 1
        self.assertGreater(placed, 0)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
