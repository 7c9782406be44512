import io
import json
import unittest
from contextlib import redirect_stdout

from main import main
from pathpuzzle.core.constants import HexPlacement, SymbolKind
from pathpuzzle.core.exceptions import ConfigError
from pathpuzzle.core.models import (
    ColorSquareTarget,
    DotTarget,
    HexTarget,
    NegatorTarget,
    Point,
    TriangleTarget,
    symbol_to_jsonable,
)
from pathpuzzle.engine.generator import GeneratorConfig, PuzzleGenerator
from pathpuzzle.engine.grid import build_full_edges, edge_key, edges_from_path
from pathpuzzle.engine.solver import solve_puzzle
from pathpuzzle.engine.validator import PuzzleValidator, without_symbols
from pathpuzzle.symbols.negator import SymbolRef
from pathpuzzle.utils.pretty import format_board, print_puzzle_stats

RED = "#e44b4b"
BLUE = "#3b82f6"

SPLIT_PATH = [Point(*p) for p in [(0, 4), (1, 4), (2, 4), (2, 3), (2, 2), (2, 1), (2, 0), (3, 0), (4, 0)]]


class TestPathChecks(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = PuzzleValidator(build_full_edges())

    def test_clean_path_without_symbols(self) -> None:
        result = self.validator.validate(SPLIT_PATH, {})
        self.assertTrue(result.ok)
        self.assertEqual(result.messages, [])

    def test_path_must_join_the_corners(self) -> None:
        result = self.validator.validate(SPLIT_PATH[:-1], {})
        self.assertFalse(result.ok)
        self.assertIn("must run from", result.messages[0])

    def test_revisits_and_jumps_are_rejected(self) -> None:
        revisit = SPLIT_PATH[:3] + [Point(1, 4)] + SPLIT_PATH[1:]
        self.assertFalse(self.validator.is_valid(revisit, {}))
        jump = [Point(0, 4), Point(2, 4)] + SPLIT_PATH[3:]
        self.assertFalse(self.validator.is_valid(jump, {}))

    def test_broken_edges_are_rejected(self) -> None:
        edges = build_full_edges() - {edge_key((2, 2), (2, 1))}
        result = PuzzleValidator(edges).validate(SPLIT_PATH, {})
        self.assertFalse(result.ok)
        self.assertIn("broken", result.messages[0])


class TestSymbolChecks(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = PuzzleValidator()

    def test_color_squares_on_both_sides(self) -> None:
        symbols = {SymbolKind.COLOR_SQUARE: [ColorSquareTarget(0, 0, RED), ColorSquareTarget(3, 3, BLUE)]}
        self.assertTrue(self.validator.is_valid(SPLIT_PATH, symbols))

    def test_failures_are_reported_per_kind(self) -> None:
        symbols = {
            SymbolKind.COLOR_SQUARE: [ColorSquareTarget(0, 0, RED), ColorSquareTarget(1, 1, BLUE)],
            SymbolKind.DOT: [DotTarget(1, 1, RED, count=2)],
        }
        result = self.validator.validate(SPLIT_PATH, symbols)
        self.assertFalse(result.ok)
        self.assertEqual(result.failing, {SymbolKind.COLOR_SQUARE: {0, 1}})
        self.assertIn("color-square", result.messages[0])

    def test_negator_cancels_a_conflicting_square(self) -> None:
        symbols = {
            SymbolKind.COLOR_SQUARE: [ColorSquareTarget(0, 0, RED), ColorSquareTarget(1, 1, BLUE)],
            SymbolKind.NEGATOR: [NegatorTarget(0, 1, "#f8f5ef")],
        }
        result = self.validator.validate(SPLIT_PATH, symbols)
        self.assertTrue(result.ok)
        self.assertEqual(len(result.negated), 1)
        self.assertEqual(result.negated[0].kind, SymbolKind.COLOR_SQUARE)

    def test_negator_without_a_symbol_in_its_region(self) -> None:
        symbols = {
            SymbolKind.COLOR_SQUARE: [ColorSquareTarget(0, 0, RED)],
            SymbolKind.NEGATOR: [NegatorTarget(3, 3, "#f8f5ef")],
        }
        result = self.validator.validate(SPLIT_PATH, symbols)
        self.assertFalse(result.ok)
        self.assertEqual(result.failing, {SymbolKind.NEGATOR: {0}})

    def test_one_negator_cannot_rescue_two_failures(self) -> None:
        symbols = {
            SymbolKind.TRIANGLE: [TriangleTarget(1, 1, RED, count=3)],
            SymbolKind.DOT: [DotTarget(0, 0, RED, count=3)],
            SymbolKind.NEGATOR: [NegatorTarget(0, 1, "#f8f5ef")],
        }
        self.assertFalse(self.validator.is_valid(SPLIT_PATH, symbols))

    def test_without_symbols_drops_negators_and_victims(self) -> None:
        symbols = {
            SymbolKind.COLOR_SQUARE: [ColorSquareTarget(0, 0, RED), ColorSquareTarget(1, 1, BLUE)],
            SymbolKind.NEGATOR: [NegatorTarget(0, 1, "#f8f5ef")],
        }
        reduced = without_symbols(symbols, [SymbolRef(SymbolKind.COLOR_SQUARE, 0)])
        self.assertEqual(reduced, {SymbolKind.COLOR_SQUARE: [ColorSquareTarget(1, 1, BLUE)]})


class TestSolver(unittest.TestCase):
    def test_finds_a_separating_path(self) -> None:
        edges = build_full_edges()
        symbols = {SymbolKind.COLOR_SQUARE: [ColorSquareTarget(0, 0, RED), ColorSquareTarget(3, 0, BLUE)]}
        path = solve_puzzle(edges, symbols, timeout=20.0)
        self.assertIsNotNone(path)
        self.assertTrue(PuzzleValidator(edges).is_valid(path, symbols))

    def test_reports_an_impossible_board(self) -> None:
        # A simple path can never use all four sides of one cell.
        symbols = {SymbolKind.TRIANGLE: [TriangleTarget(1, 1, RED, count=4)]}
        self.assertIsNone(solve_puzzle(build_full_edges(), symbols, timeout=20.0))


class TestGeneratorConfig(unittest.TestCase):
    def test_kinds_are_normalised(self) -> None:
        config = GeneratorConfig(kinds=["star", "color-square"])
        self.assertEqual(config.ordered_kinds, [SymbolKind.COLOR_SQUARE, SymbolKind.STAR])
        self.assertTrue(config.color_rule)
        self.assertFalse(GeneratorConfig(kinds=["dot"]).color_rule)

    def test_invalid_configurations(self) -> None:
        for kinds in ([], ["dot", "dot"], ["negator"], ["negator", "crystal", "ghost"], ["polyomino"]):
            with self.subTest(kinds=kinds):
                with self.assertRaises(ConfigError):
                    GeneratorConfig(kinds=kinds)
        with self.assertRaises(ConfigError):
            GeneratorConfig(kinds=["dot"], preferred_colors=["#111111", RED, BLUE, "#f4c430"])
        with self.assertRaises(ConfigError):
            GeneratorConfig(kinds=["dot"], retry_limit=0)


class TestPuzzleGenerator(unittest.TestCase):
    def test_generated_board_validates(self) -> None:
        result = PuzzleGenerator(GeneratorConfig(kinds=["color-square"], seed=1)).generate()
        self.assertIn(SymbolKind.COLOR_SQUARE, result.symbols)
        self.assertTrue(PuzzleValidator(result.edges).is_valid(result.solution_path, result.symbols))

    def test_generation_is_deterministic(self) -> None:
        config = GeneratorConfig(kinds=["dot", "triangle"], seed=5)
        first = PuzzleGenerator(config).generate()
        second = PuzzleGenerator(config).generate()
        self.assertEqual(first.to_jsonable(), second.to_jsonable())

    def test_path_budget_grows_with_kind_count(self) -> None:
        budgets = [PuzzleGenerator._path_budget(count) for count in (1, 2, 3, 4, 6)]
        self.assertEqual(budgets, [(32, 9), (42, 10), (58, 12), (66, 12), (66, 12)])

    def test_json_payload(self) -> None:
        result = PuzzleGenerator(GeneratorConfig(kinds=["dot"], seed=2, broken_edges=False)).generate()
        payload = json.loads(json.dumps(result.to_jsonable()))
        self.assertEqual(payload["solution_path"][0], [0, 4])
        self.assertEqual(payload["solution_path"][-1], [4, 0])
        self.assertEqual(len(payload["edges"]), 40)
        self.assertTrue(all(symbol["kind"] == "dot" for symbol in payload["symbols"]["dot"]))


class TestRendering(unittest.TestCase):
    def test_symbol_to_jsonable_flattens_enums(self) -> None:
        hexagon = HexTarget(HexPlacement.EDGE, (2.0, 2.5), edge_key((2, 2), (2, 3)))
        payload = symbol_to_jsonable(hexagon)
        self.assertEqual(payload["kind"], "hexagon")
        self.assertEqual(payload["placement"], "edge")
        self.assertEqual(payload["position"], [2.0, 2.5])

    def test_format_board_marks_path_and_symbols(self) -> None:
        symbols = {SymbolKind.DOT: [DotTarget(1, 1, RED, count=2)]}
        text = format_board(build_full_edges(), symbols, SPLIT_PATH)
        lines = text.splitlines()
        self.assertEqual(len(lines), 9)
        self.assertIn(".2", text)
        self.assertTrue(lines[0].startswith("+"))
        self.assertIn("H", lines[3])
        self.assertEqual(len(edges_from_path(SPLIT_PATH)), text.count("=") // 3 + text.count("H"))


    def test_puzzle_stats(self) -> None:
        result = PuzzleGenerator(GeneratorConfig(kinds=["dot"], seed=4)).generate()
        buffer = io.StringIO()
        print_puzzle_stats(result, stream=buffer)
        text = buffer.getvalue()
        self.assertIn("--- Symbols ---", text)
        self.assertIn(f"Seed: {result.seed}", text)


class TestCli(unittest.TestCase):
    def test_prints_json(self) -> None:
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = main(["--kinds", "dot", "--seed", "3", "--log-level", "WARNING"])
        self.assertEqual(code, 0)
        payload = json.loads(buffer.getvalue())
        self.assertIn("dot", payload["symbols"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
