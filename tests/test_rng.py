import unittest

from pathpuzzle.engine.rng import (
    Mulberry32,
    pick_spread_targets,
    rand_int,
    shuffle,
    weighted_index,
    weighted_pick,
)
from pathpuzzle.symbols.common import attempt_rng


class Mulberry32Tests(unittest.TestCase):
    def test_same_seed_same_sequence(self) -> None:
        first = Mulberry32(1234)
        second = Mulberry32(1234)
        self.assertEqual([first() for _ in range(20)], [second.random() for _ in range(20)])

    def test_different_seeds_diverge(self) -> None:
        first = Mulberry32(1)
        second = Mulberry32(2)
        self.assertNotEqual([first() for _ in range(5)], [second() for _ in range(5)])

    def test_output_in_unit_interval(self) -> None:
        rng = Mulberry32(99)
        for _ in range(500):
            value = rng()
            self.assertGreaterEqual(value, 0.0)
            self.assertLess(value, 1.0)

    def test_negative_and_large_seeds_wrap_to_32_bits(self) -> None:
        self.assertEqual(Mulberry32(-1)(), Mulberry32(0xFFFFFFFF)())
        self.assertEqual(Mulberry32(2**32 + 5)(), Mulberry32(5)())


class SamplingTests(unittest.TestCase):
    def test_rand_int_stays_below_upper(self) -> None:
        rng = Mulberry32(7)
        values = {rand_int(rng, 4) for _ in range(200)}
        self.assertEqual(values, {0, 1, 2, 3})

    def test_shuffle_is_permutation_and_copy(self) -> None:
        items = list(range(10))
        shuffled = shuffle(items, Mulberry32(3))
        self.assertEqual(sorted(shuffled), items)
        self.assertEqual(items, list(range(10)))

    def test_shuffle_is_reproducible(self) -> None:
        self.assertEqual(shuffle("abcdefg", Mulberry32(11)), shuffle("abcdefg", Mulberry32(11)))

    def test_weighted_index_skips_zero_weights(self) -> None:
        rng = Mulberry32(5)
        picks = {weighted_index([0.0, 1.0, 0.0], rng) for _ in range(50)}
        self.assertEqual(picks, {1})

    def test_weighted_pick_empty_returns_none(self) -> None:
        self.assertIsNone(weighted_pick([], Mulberry32(1)))
        self.assertEqual(weighted_pick([("only", 2.0)], Mulberry32(1)), "only")

    def test_pick_spread_targets_returns_pool_when_small(self) -> None:
        pool = [(0, 0), (1, 1)]
        self.assertEqual(pick_spread_targets(pool, 3, 2.0, Mulberry32(1), lambda p: p), pool)

    def test_pick_spread_targets_count_and_membership(self) -> None:
        pool = [(x, y) for x in range(5) for y in range(5)]
        picked = pick_spread_targets(pool, 4, 1.5, Mulberry32(8), lambda p: p)
        self.assertEqual(len(picked), 4)
        self.assertEqual(len(set(picked)), 4)
        self.assertTrue(set(picked) <= set(pool))

    def test_attempt_rng_seeds_per_attempt(self) -> None:
        self.assertEqual(attempt_rng(10, 100, 2)(), Mulberry32(10 + 100 + 2 * 131)())
        self.assertEqual(attempt_rng(10, 100, 2, stride=7, extra=3)(), Mulberry32(10 + 100 + 3 + 14)())


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
