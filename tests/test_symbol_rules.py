import unittest

from pathpuzzle.core.constants import Direction, HexPlacement, Rotation, SymbolKind
from pathpuzzle.core.exceptions import UnknownSymbolKindError
from pathpuzzle.core.models import (
    BlackHoleTarget,
    CardinalTarget,
    ChipTarget,
    ColorSquareTarget,
    CrystalTarget,
    DiceTarget,
    DotTarget,
    EyeTarget,
    GhostTarget,
    HexTarget,
    MinesweeperTarget,
    NegatorTarget,
    OpenPentagonTarget,
    Point,
    SentinelTarget,
    SpinnerTarget,
    StarTarget,
    TallyTarget,
    TriangleTarget,
)
from pathpuzzle.engine.grid import edge_key, edges_from_path
from pathpuzzle.engine.rng import Mulberry32
from pathpuzzle.symbols.black_holes import check_black_holes
from pathpuzzle.symbols.cardinals import check_cardinals
from pathpuzzle.symbols.chips import check_chips, collect_failing_chip_indexes, is_lineable
from pathpuzzle.symbols.color_squares import check_color_squares, collect_failing_color_square_indexes
from pathpuzzle.symbols.crystals import canonical_shape_key, check_crystals, collect_failing_crystal_indexes
from pathpuzzle.symbols.dice import check_dice, collect_failing_dice_indexes, random_dice_values
from pathpuzzle.symbols.dots import check_dots, count_touched_cell_corners
from pathpuzzle.symbols.eyes import collect_failing_eye_indexes, resolve_eye_effects
from pathpuzzle.symbols.ghosts import check_ghosts
from pathpuzzle.symbols.hexagons import check_hexagons
from pathpuzzle.symbols.minesweeper import check_minesweeper_numbers
from pathpuzzle.symbols.negator import check_negators
from pathpuzzle.symbols.open_pentagons import check_open_pentagons, collect_failing_open_pentagon_indexes
from pathpuzzle.symbols.registry import RULES, RuleInput, get_rule
from pathpuzzle.symbols.sentinels import check_sentinels
from pathpuzzle.symbols.spinners import check_spinners
from pathpuzzle.symbols.stars import check_stars, collect_failing_star_indexes
from pathpuzzle.symbols.tally_marks import check_tally_marks
from pathpuzzle.symbols.triangles import check_triangles, count_touched_cell_edges

RED = "#e44b4b"
BLUE = "#3b82f6"

# Straight down the middle column: two 2x4 regions of eight cells.
SPLIT_PATH = [Point(*p) for p in [(0, 4), (1, 4), (2, 4), (2, 3), (2, 2), (2, 1), (2, 0), (3, 0), (4, 0)]]
SPLIT_EDGES = edges_from_path(SPLIT_PATH)

# Walls off the 2x2 block of cells in the start corner.
SQUARE_POCKET_PATH = [
    Point(*p)
    for p in [(0, 4), (1, 4), (2, 4), (2, 3), (2, 2), (1, 2), (0, 2), (0, 1), (0, 0), (1, 0), (2, 0), (3, 0), (4, 0)]
]
# Walls off the two bottom-left cells.
BAR_POCKET_PATH = [
    Point(*p)
    for p in [(0, 4), (1, 4), (2, 4), (2, 3), (1, 3), (0, 3), (0, 2), (0, 1), (0, 0), (1, 0), (2, 0), (3, 0), (4, 0)]
]


class TestRegistry(unittest.TestCase):
    def test_every_kind_has_a_rule(self) -> None:
        self.assertEqual(set(RULES), set(SymbolKind))

    def test_get_rule_accepts_values(self) -> None:
        self.assertIs(get_rule("color-square"), RULES[SymbolKind.COLOR_SQUARE])
        with self.assertRaises(UnknownSymbolKindError):
            get_rule("polyomino")

    def test_empty_list_semantics(self) -> None:
        for kind, rule in RULES.items():
            subject = SPLIT_PATH if rule.rule_input is RuleInput.PATH else SPLIT_EDGES
            if rule.interacting:
                verdict = rule.check(subject, [], {})
            else:
                verdict = rule.check(subject, [])
            self.assertEqual(verdict, rule.empty_is_valid, kind)

    def test_support_flags(self) -> None:
        self.assertTrue(RULES[SymbolKind.STAR].takes_support)
        self.assertTrue(RULES[SymbolKind.TALLY].takes_support)
        self.assertFalse(RULES[SymbolKind.DOT].takes_support)
        self.assertIs(RULES[SymbolKind.OPEN_PENTAGON].rule_input, RuleInput.EFFECTIVE_EDGES)


class TestLocalRules(unittest.TestCase):
    def test_triangles_count_touched_sides(self) -> None:
        self.assertEqual(count_touched_cell_edges(SPLIT_EDGES, 1, 1), 1)
        self.assertTrue(check_triangles(SPLIT_EDGES, [TriangleTarget(1, 1, RED, count=1)]))
        self.assertFalse(check_triangles(SPLIT_EDGES, [TriangleTarget(1, 1, RED, count=2)]))

    def test_dots_count_corners_on_path(self) -> None:
        self.assertEqual(count_touched_cell_corners(SPLIT_PATH, 1, 1), 2)
        self.assertTrue(check_dots(SPLIT_PATH, [DotTarget(1, 1, RED, count=2)]))
        self.assertFalse(check_dots(SPLIT_PATH, [DotTarget(0, 0, RED, count=1)]))

    def test_minesweeper_counts_separated_neighbours(self) -> None:
        self.assertTrue(check_minesweeper_numbers(SPLIT_EDGES, [MinesweeperTarget(1, 1, RED, value=3)]))
        self.assertFalse(check_minesweeper_numbers(SPLIT_EDGES, [MinesweeperTarget(0, 1, RED, value=1)]))

    def test_spinner_direction(self) -> None:
        self.assertTrue(check_spinners(SPLIT_PATH, [SpinnerTarget(1, 1, RED, direction=Rotation.COUNTERCLOCKWISE)]))
        self.assertFalse(check_spinners(SPLIT_PATH, [SpinnerTarget(1, 1, RED, direction=Rotation.CLOCKWISE)]))
        self.assertFalse(check_spinners(SPLIT_PATH, [SpinnerTarget(0, 1, RED)]))

    def test_cardinal_with_an_open_direction_passes(self) -> None:
        self.assertTrue(check_cardinals(SPLIT_EDGES, [CardinalTarget(0, 0, RED)]))

    def test_hexagons_on_vertices_and_edges(self) -> None:
        on_node = HexTarget(HexPlacement.NODE, (2.0, 2.0))
        off_node = HexTarget(HexPlacement.NODE, (1.0, 1.0))
        on_edge = HexTarget(HexPlacement.EDGE, (2.0, 2.5), edge_key((2, 2), (2, 3)))
        self.assertTrue(check_hexagons(SPLIT_EDGES, [on_node, on_edge]))
        self.assertFalse(check_hexagons(SPLIT_EDGES, [on_node, off_node]))


class TestRegionRules(unittest.TestCase):
    def test_color_squares_split_by_path(self) -> None:
        squares = [ColorSquareTarget(0, 0, RED), ColorSquareTarget(3, 3, BLUE)]
        self.assertTrue(check_color_squares(SPLIT_EDGES, squares))
        self.assertFalse(check_color_squares(frozenset(), squares))
        mixed = squares + [ColorSquareTarget(1, 2, BLUE)]
        self.assertEqual(collect_failing_color_square_indexes(SPLIT_EDGES, mixed), {0, 2})

    def test_ghosts_one_per_region(self) -> None:
        self.assertTrue(check_ghosts(SPLIT_EDGES, [GhostTarget(0, 0, RED), GhostTarget(3, 3, RED)]))
        self.assertFalse(check_ghosts(SPLIT_EDGES, [GhostTarget(0, 0, RED), GhostTarget(1, 1, RED)]))
        self.assertFalse(check_ghosts(SPLIT_EDGES, [GhostTarget(0, 0, RED)]))

    def test_dice_sum_to_region_area(self) -> None:
        dice = [DiceTarget(0, 0, RED, value=5), DiceTarget(1, 0, RED, value=3), DiceTarget(3, 3, RED, value=8)]
        self.assertTrue(check_dice(SPLIT_EDGES, dice))
        dice[2] = DiceTarget(3, 3, RED, value=7)
        self.assertEqual(collect_failing_dice_indexes(SPLIT_EDGES, dice), {2})

    def test_random_dice_values_respect_the_total(self) -> None:
        values = random_dice_values(8, 3, Mulberry32(5))
        self.assertIsNotNone(values)
        self.assertEqual(sum(values), 8)
        self.assertTrue(all(1 <= value <= 9 for value in values))
        self.assertIsNone(random_dice_values(2, 3, Mulberry32(5)))

    def test_tally_counts_region_outline(self) -> None:
        self.assertTrue(check_tally_marks(SPLIT_EDGES, [TallyTarget(0, 0, RED, count=6), TallyTarget(3, 3, RED, count=6)]))
        self.assertFalse(check_tally_marks(SPLIT_EDGES, [TallyTarget(0, 0, RED, count=5)]))
        self.assertFalse(check_tally_marks(SPLIT_EDGES, [TallyTarget(0, 0, RED, count=6), TallyTarget(1, 1, RED, count=6)]))

    def test_crystals_share_one_shape(self) -> None:
        self.assertTrue(check_crystals(frozenset(), [CrystalTarget(1, 1, RED)]))
        self.assertFalse(check_crystals(SPLIT_EDGES, [CrystalTarget(1, 1, RED)]))
        self.assertTrue(check_crystals(SPLIT_EDGES, [CrystalTarget(0, 0, RED), CrystalTarget(3, 3, RED)]))
        self.assertFalse(check_crystals(SPLIT_EDGES, [CrystalTarget(0, 0, RED), CrystalTarget(1, 1, RED)]))

    def test_second_crystal_on_an_undivided_board_fails_both(self) -> None:
        crystals = [CrystalTarget(0, 0, RED), CrystalTarget(3, 3, RED)]
        self.assertEqual(collect_failing_crystal_indexes(frozenset(), crystals), {0, 1})
        self.assertFalse(check_crystals(frozenset(), crystals))

    def test_canonical_shape_is_symmetry_invariant(self) -> None:
        l_shape = [(0, 0), (0, 1), (0, 2), (1, 2)]
        mirrored = [(1, 0), (1, 1), (1, 2), (0, 2)]
        rotated = [(0, 0), (1, 0), (2, 0), (0, 1)]
        self.assertEqual(canonical_shape_key(l_shape), canonical_shape_key(mirrored))
        self.assertEqual(canonical_shape_key(l_shape), canonical_shape_key(rotated))


class TestColorInteractions(unittest.TestCase):
    def test_chips_need_a_straight_line(self) -> None:
        row = [ChipTarget(0, 0, RED), ChipTarget(1, 0, RED), ChipTarget(2, 0, RED)]
        self.assertTrue(check_chips(frozenset(), row, {}))
        bent = [ChipTarget(0, 0, RED), ChipTarget(1, 0, RED), ChipTarget(1, 1, RED)]
        self.assertFalse(check_chips(frozenset(), bent, {}))
        self.assertEqual(collect_failing_chip_indexes(frozenset(), bent, {}), {0, 1, 2})
        self.assertTrue(is_lineable([(0, 0), (0, 2)]))
        self.assertFalse(is_lineable([(0, 0), (1, 1)]))

    def test_chip_colours_are_judged_separately(self) -> None:
        chips = [ChipTarget(0, 0, RED), ChipTarget(1, 0, RED), ChipTarget(3, 3, BLUE)]
        in_column = {SymbolKind.COLOR_SQUARE: [ColorSquareTarget(3, 1, BLUE)]}
        self.assertEqual(collect_failing_chip_indexes(frozenset(), chips, in_column), set())
        self.assertTrue(check_chips(frozenset(), chips, in_column))
        diagonal = {SymbolKind.COLOR_SQUARE: [ColorSquareTarget(2, 2, BLUE)]}
        self.assertEqual(collect_failing_chip_indexes(frozenset(), chips, diagonal), {2})

    def test_black_hole_needs_a_partner_elsewhere(self) -> None:
        hole = [BlackHoleTarget(0, 0, RED)]
        partner = {SymbolKind.COLOR_SQUARE: [ColorSquareTarget(3, 3, RED)]}
        self.assertTrue(check_black_holes(SPLIT_EDGES, hole, partner))
        self.assertFalse(check_black_holes(SPLIT_EDGES, hole, {}))
        same_region = {SymbolKind.COLOR_SQUARE: [ColorSquareTarget(1, 1, RED)]}
        self.assertFalse(check_black_holes(SPLIT_EDGES, hole, same_region))
        self.assertFalse(check_black_holes(SPLIT_EDGES, [BlackHoleTarget(1, 1, RED)], partner))

    def test_stars_pair_with_one_same_colour_symbol(self) -> None:
        pair = [StarTarget(0, 0, RED), StarTarget(1, 1, RED)]
        self.assertTrue(check_stars(SPLIT_EDGES, pair, {}))
        self.assertTrue(
            check_stars(SPLIT_EDGES, pair[:1], {SymbolKind.COLOR_SQUARE: [ColorSquareTarget(1, 2, RED)]})
        )
        self.assertFalse(check_stars(SPLIT_EDGES, pair[:1], {}))
        triple = pair + [StarTarget(0, 3, RED)]
        self.assertEqual(collect_failing_star_indexes(SPLIT_EDGES, triple, {}), {0, 1, 2})

    def test_sentinel_watches_its_region_only(self) -> None:
        others = {SymbolKind.COLOR_SQUARE: [ColorSquareTarget(1, 0, RED), ColorSquareTarget(3, 3, RED)]}
        self.assertFalse(check_sentinels(SPLIT_EDGES, [SentinelTarget(0, 2, RED, direction=Direction.UP)], others))
        self.assertTrue(check_sentinels(SPLIT_EDGES, [SentinelTarget(0, 2, RED, direction=Direction.DOWN)], others))

    def test_open_pentagons_need_a_unique_route(self) -> None:
        pentagons = [OpenPentagonTarget(0, 0, RED), OpenPentagonTarget(1, 1, RED)]
        self.assertEqual(collect_failing_open_pentagon_indexes(frozenset(), pentagons, {}), {0, 1})
        self.assertEqual(collect_failing_open_pentagon_indexes(frozenset(), pentagons[:1], {}), {0})

    def test_open_pentagons_in_a_square_pocket_have_two_routes(self) -> None:
        used = edges_from_path(SQUARE_POCKET_PATH)
        corners = [OpenPentagonTarget(0, 2, RED), OpenPentagonTarget(1, 3, RED)]
        self.assertEqual(collect_failing_open_pentagon_indexes(used, corners, {}), {0, 1})

    def test_open_pentagons_in_a_bar_pocket_pass(self) -> None:
        used = edges_from_path(BAR_POCKET_PATH)
        pair = [OpenPentagonTarget(0, 3, RED), OpenPentagonTarget(1, 3, RED)]
        self.assertEqual(collect_failing_open_pentagon_indexes(used, pair, {}), set())
        self.assertTrue(check_open_pentagons(used, pair, {}))

    def test_negator_needs_a_symbol_in_its_region(self) -> None:
        self.assertTrue(
            check_negators(SPLIT_EDGES, [NegatorTarget(0, 0, RED)], {SymbolKind.COLOR_SQUARE: [ColorSquareTarget(1, 1, RED)]})
        )
        self.assertFalse(
            check_negators(SPLIT_EDGES, [NegatorTarget(0, 0, RED)], {SymbolKind.COLOR_SQUARE: [ColorSquareTarget(3, 3, RED)]})
        )


class TestEyes(unittest.TestCase):
    def test_eyes_seeing_the_same_segment_both_fail(self) -> None:
        used = frozenset({edge_key((1, 2), (2, 2))})
        eyes = [EyeTarget(1, 2, RED, direction=Direction.UP), EyeTarget(1, 3, RED, direction=Direction.UP)]
        self.assertEqual(collect_failing_eye_indexes(used, eyes), {0, 1})

    def test_eye_without_a_segment_fails(self) -> None:
        self.assertEqual(collect_failing_eye_indexes(frozenset(), [EyeTarget(1, 1, RED)]), {0})

    def test_eye_removes_the_segment_it_sees(self) -> None:
        seen = edge_key((1, 2), (2, 2))
        used = frozenset({seen, edge_key((3, 1), (3, 2))})
        effects = resolve_eye_effects(used, [EyeTarget(1, 2, RED, direction=Direction.UP)])
        self.assertFalse(effects.failing_indexes)
        self.assertNotIn(seen, effects.effective_edges)
        self.assertIn(edge_key((3, 1), (3, 2)), effects.effective_edges)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
