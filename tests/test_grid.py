import unittest

from pathpuzzle.core.constants import END, START
from pathpuzzle.core.exceptions import EdgeKeyError
from pathpuzzle.core.models import Point
from pathpuzzle.engine.grid import (
    BoardConfig,
    build_full_edges,
    cell_edge_keys,
    edge_key,
    edges_from_path,
    generate_board_edges,
    has_path,
    is_path_compatible,
    list_all_edges,
    neighbors,
    parse_edge_key,
    separating_edge,
)

LEFT_THEN_TOP = [(0, 4), (0, 3), (0, 2), (0, 1), (0, 0), (1, 0), (2, 0), (3, 0), (4, 0)]


class EdgeKeyTests(unittest.TestCase):
    def test_edge_key_is_order_independent(self) -> None:
        self.assertEqual(edge_key((1, 2), (2, 2)), "1,2-2,2")
        self.assertEqual(edge_key((2, 2), (1, 2)), "1,2-2,2")
        self.assertEqual(edge_key((3, 1), (3, 0)), "3,0-3,1")

    def test_parse_edge_key(self) -> None:
        self.assertEqual(parse_edge_key("0,3-0,4"), (Point(0, 3), Point(0, 4)))

    def test_parse_malformed_key_raises(self) -> None:
        with self.assertRaises(EdgeKeyError):
            parse_edge_key("0,3")
        with self.assertRaises(ValueError):
            parse_edge_key("a,b-c,d")

    def test_cell_edges_and_separators(self) -> None:
        top, right, bottom, left = cell_edge_keys(1, 1)
        self.assertEqual(top, "1,1-2,1")
        self.assertEqual(right, "2,1-2,2")
        self.assertEqual(bottom, "1,2-2,2")
        self.assertEqual(left, "1,1-1,2")
        self.assertEqual(separating_edge((1, 1), (2, 1)), right)
        self.assertEqual(separating_edge((1, 1), (1, 0)), top)
        self.assertIsNone(separating_edge((1, 1), (2, 2)))


class BoardTests(unittest.TestCase):
    def test_full_board_has_forty_edges(self) -> None:
        self.assertEqual(len(list_all_edges()), 40)
        self.assertEqual(len(build_full_edges()), 40)

    def test_corner_neighbors(self) -> None:
        self.assertEqual(set(neighbors(START)), {Point(1, 4), Point(0, 3)})
        self.assertEqual(len(neighbors((2, 2))), 4)

    def test_edges_from_path(self) -> None:
        edges = edges_from_path(LEFT_THEN_TOP)
        self.assertEqual(len(edges), 8)
        self.assertIn("0,3-0,4", edges)
        self.assertEqual(edges_from_path([START]), frozenset())

    def test_path_compatibility(self) -> None:
        full = build_full_edges()
        self.assertTrue(is_path_compatible(LEFT_THEN_TOP, full))
        self.assertFalse(is_path_compatible(LEFT_THEN_TOP, full - {"0,0-1,0"}))

    def test_has_path(self) -> None:
        self.assertTrue(has_path(build_full_edges()))
        self.assertFalse(has_path(set()))
        self.assertTrue(has_path(edges_from_path(LEFT_THEN_TOP)))

    def test_generated_board_stays_connected_and_deterministic(self) -> None:
        for seed in range(5):
            edges = generate_board_edges(BoardConfig(seed=seed))
            self.assertTrue(has_path(edges))
            self.assertLess(len(edges), 40)
            self.assertEqual(edges, generate_board_edges(BoardConfig(seed=seed)))

    def test_generated_board_keeps_required_path(self) -> None:
        edges = generate_board_edges(BoardConfig(seed=17), required_path=LEFT_THEN_TOP)
        self.assertTrue(is_path_compatible(LEFT_THEN_TOP, edges))
        self.assertEqual(tuple(LEFT_THEN_TOP[-1]), END)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
