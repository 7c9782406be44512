import unittest

from pathpuzzle.core.constants import END, START
from pathpuzzle.core.models import Point
from pathpuzzle.engine.grid import build_full_edges, edges_from_path, is_path_compatible
from pathpuzzle.engine.paths import (
    find_best_loopy_path,
    find_random_path,
    resolve_solution_path,
)
from pathpuzzle.engine.regions import (
    build_cell_regions,
    cells_by_region,
    region_count,
    region_count_for_path,
    region_ids_for_board_point,
)
from pathpuzzle.engine.rng import Mulberry32

BORDER_PATH = [(0, 4), (0, 3), (0, 2), (0, 1), (0, 0), (1, 0), (2, 0), (3, 0), (4, 0)]
SPLIT_PATH = [(0, 4), (1, 4), (2, 4), (2, 3), (2, 2), (2, 1), (2, 0), (3, 0), (4, 0)]


def assert_simple_path(case: unittest.TestCase, path, edges) -> None:
    case.assertEqual(tuple(path[0]), START)
    case.assertEqual(tuple(path[-1]), END)
    case.assertEqual(len(set(path)), len(path))
    case.assertTrue(is_path_compatible(path, edges))


class RegionTests(unittest.TestCase):
    def test_border_path_leaves_one_region(self) -> None:
        regions = build_cell_regions(edges_from_path(BORDER_PATH))
        self.assertEqual(len(regions), 16)
        self.assertEqual(region_count(regions), 1)

    def test_split_path_separates_columns(self) -> None:
        regions = build_cell_regions(edges_from_path(SPLIT_PATH))
        self.assertEqual(region_count(regions), 2)
        grouped = cells_by_region(regions)
        left = grouped[regions["0,0"]]
        right = grouped[regions["3,3"]]
        self.assertEqual(len(left), 8)
        self.assertEqual(len(right), 8)
        self.assertTrue(all(x < 2 for x, _ in left))
        self.assertTrue(all(x >= 2 for x, _ in right))

    def test_every_cell_in_exactly_one_region(self) -> None:
        rng = Mulberry32(42)
        for _ in range(10):
            path = find_random_path(build_full_edges(), rng)
            regions = build_cell_regions(edges_from_path(path))
            self.assertEqual(len(regions), 16)
            grouped = cells_by_region(regions)
            self.assertEqual(sum(len(cells) for cells in grouped.values()), 16)

    def test_region_count_for_path(self) -> None:
        self.assertEqual(region_count_for_path(SPLIT_PATH), 2)

    def test_region_ids_for_board_points(self) -> None:
        regions = build_cell_regions(edges_from_path(SPLIT_PATH))
        self.assertEqual(sorted(region_ids_for_board_point(regions, (2, 2))), sorted({regions["1,1"], regions["2,1"]}))
        self.assertEqual(region_ids_for_board_point(regions, (2, 1.5)), [regions["1,1"], regions["2,1"]])
        self.assertEqual(region_ids_for_board_point(regions, (0, 0)), [regions["0,0"]])
        self.assertEqual(region_ids_for_board_point(regions, (0.5, 0.5)), [])


class PathTests(unittest.TestCase):
    def test_random_path_is_simple_and_permitted(self) -> None:
        edges = build_full_edges()
        for seed in range(8):
            path = find_random_path(edges, Mulberry32(seed))
            assert_simple_path(self, path, edges)

    def test_random_path_none_when_disconnected(self) -> None:
        self.assertIsNone(find_random_path(set(), Mulberry32(1)))
        self.assertIsNone(find_best_loopy_path(set(), Mulberry32(1), 10, 5))

    def test_random_path_is_deterministic(self) -> None:
        edges = build_full_edges()
        self.assertEqual(find_random_path(edges, Mulberry32(9)), find_random_path(edges, Mulberry32(9)))

    def test_loopy_path_respects_min_length(self) -> None:
        edges = build_full_edges()
        path = find_best_loopy_path(edges, Mulberry32(5), 120, 10)
        self.assertIsNotNone(path)
        assert_simple_path(self, path, edges)
        self.assertGreaterEqual(len(path), 10)

    def test_loopy_path_never_returns_a_short_walk(self) -> None:
        # A single forced corridor that reaches the end on the twentieth step.
        corridor = [
            (0, 4), (1, 4), (2, 4), (3, 4), (4, 4), (4, 3), (3, 3), (2, 3), (1, 3), (0, 3), (0, 2),
            (1, 2), (2, 2), (3, 2), (4, 2), (4, 1), (3, 1), (2, 1), (2, 0), (3, 0), (4, 0),
        ]
        edges = edges_from_path([Point(*point) for point in corridor])
        path = find_best_loopy_path(edges, Mulberry32(1), 3, 21)
        self.assertEqual(path, [Point(*point) for point in corridor])
        self.assertIsNone(find_best_loopy_path(edges, Mulberry32(1), 3, 22))

    def test_resolve_keeps_compatible_preferred_path(self) -> None:
        edges = build_full_edges()
        path = resolve_solution_path(edges, Mulberry32(1), SPLIT_PATH)
        self.assertEqual(path, [Point(*point) for point in SPLIT_PATH])

    def test_resolve_discards_incompatible_preferred_path(self) -> None:
        edges = build_full_edges() - {"2,2-2,3"}
        path = resolve_solution_path(edges, Mulberry32(1), SPLIT_PATH)
        self.assertIsNotNone(path)
        self.assertNotEqual(path, SPLIT_PATH)
        assert_simple_path(self, path, edges)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
