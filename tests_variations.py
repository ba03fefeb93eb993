#!/usr/bin/env python3
"""
GEMRECALL — Variation Selector Tests

Run: python tests_variations.py

Test categories:
  TestUnlockSchedule   — pools per round, selection points, window position
  TestSelection        — persistence, no-repeat, combination bases
  TestInputRules       — expected order, full-sequence validation
  TestParameters       — ghost, chaos, color shuffle, shining
  TestComposition      — effects_for output per variation
  TestTutorials        — intro bookkeeping and reset
"""

import random
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from game_engine.types import ALL_GEMSTONES, Gemstone, Variation
from game_engine.variations import COMBINATION_BASES, VariationSelector

E, T, M, C = Gemstone.EMERALD, Gemstone.TRILLION, Gemstone.MARQUISE, Gemstone.CUSHION


def run_selector(selector: VariationSelector, last_round: int) -> dict[int, Variation]:
    return {r: selector.select_variation(r) for r in range(2, last_round + 1)}


# ============================================================
# Schedule
# ============================================================

class TestUnlockSchedule(unittest.TestCase):

    def setUp(self):
        self.sel = VariationSelector(rng=random.Random(0))

    def test_pools(self):
        self.assertEqual(self.sel.available_variations(1), [])
        self.assertEqual(self.sel.available_variations(2), [Variation.REVERSE])
        self.assertEqual(self.sel.available_variations(4), [Variation.REVERSE])
        self.assertEqual(self.sel.available_variations(5), [Variation.REVERSE, Variation.GHOST])
        self.assertEqual(len(self.sel.available_variations(10)), 3)
        self.assertEqual(len(self.sel.available_variations(13)), 4)
        self.assertIn(Variation.SELECTIVE_ATTENTION, self.sel.available_variations(16))
        self.assertEqual(self.sel.available_variations(17), [Variation.REVERSE_COMBINATION])
        self.assertEqual(self.sel.available_variations(80), [Variation.REVERSE_COMBINATION])

    def test_pool_is_fresh_list(self):
        pool = self.sel.available_variations(5)
        pool.clear()
        self.assertEqual(len(self.sel.available_variations(5)), 2)

    def test_selection_points(self):
        points = [r for r in range(1, 21) if VariationSelector.should_reselect(r)]
        self.assertEqual(points, [2, 5, 8, 11, 14, 17, 20])

    def test_variation_difficulty_is_window_position(self):
        self.assertEqual(self.sel.variation_difficulty(1), 1)
        self.assertEqual([self.sel.variation_difficulty(r) for r in range(2, 8)], [1, 2, 3, 1, 2, 3])


# ============================================================
# Selection
# ============================================================

class TestSelection(unittest.TestCase):

    def test_round_one_has_no_variation(self):
        self.assertIsNone(VariationSelector(rng=random.Random(1)).select_variation(1))

    def test_reverse_only_window(self):
        for seed in range(20):
            sel = VariationSelector(rng=random.Random(seed))
            self.assertEqual(sel.select_variation(2), Variation.REVERSE)
            self.assertEqual(sel.select_variation(3), Variation.REVERSE)
            self.assertEqual(sel.select_variation(4), Variation.REVERSE)

    def test_ghost_follows_reverse(self):
        for seed in range(20):
            sel = VariationSelector(rng=random.Random(seed))
            picks = run_selector(sel, 7)
            self.assertEqual(picks[5], Variation.GHOST)
            self.assertEqual(picks[7], Variation.GHOST)
            self.assertEqual(sel.variation_start_round, 5)

    def test_consecutive_windows_differ(self):
        for seed in range(30):
            picks = run_selector(VariationSelector(rng=random.Random(seed)), 16)
            for start in (5, 8, 11, 14):
                self.assertNotEqual(picks[start], picks[start - 3], f"seed {seed} round {start}")
                self.assertIn(picks[start], VariationSelector().available_variations(start))

    def test_mid_window_first_call_selects(self):
        sel = VariationSelector(rng=random.Random(3))
        self.assertIn(sel.select_variation(6), (Variation.REVERSE, Variation.GHOST))
        self.assertEqual(sel.variation_start_round, 6)

    def test_combination_mode(self):
        for seed in range(30):
            sel = VariationSelector(rng=random.Random(seed))
            picks = run_selector(sel, 22)
            self.assertTrue(all(picks[r] == Variation.REVERSE_COMBINATION for r in range(17, 23)))

    def test_combination_base_changes_each_window(self):
        for seed in range(30):
            sel = VariationSelector(rng=random.Random(seed))
            run_selector(sel, 17)
            first = sel.combination_base
            self.assertIn(first, COMBINATION_BASES)
            sel.select_variation(18)
            sel.select_variation(19)
            self.assertEqual(sel.combination_base, first)
            sel.select_variation(20)
            self.assertNotEqual(sel.combination_base, first)

    def test_combination_base_draw_excludes_previous(self):
        sel = VariationSelector(rng=random.Random(0))
        sel.combination_base = Variation.SELECTIVE_ATTENTION
        with patch.object(sel.rng, "choice", side_effect=lambda seq: seq[-1]) as choice:
            sel.select_variation(17)
        offered = choice.call_args[0][0]
        self.assertNotIn(Variation.SELECTIVE_ATTENTION, offered)
        self.assertEqual(sel.combination_base, Variation.COLOR_SHUFFLE)


# ============================================================
# Input Rules
# ============================================================

class TestInputRules(unittest.TestCase):

    def setUp(self):
        self.sel = VariationSelector(rng=random.Random(0))
        self.pattern = [E, T, M, C, E]

    def test_expected_input(self):
        self.assertEqual(self.sel.expected_input(self.pattern, Variation.NONE), self.pattern)
        self.assertEqual(self.sel.expected_input(self.pattern, Variation.GHOST), self.pattern)
        self.assertEqual(self.sel.expected_input(self.pattern, Variation.REVERSE), [E, C, M, T, E])
        self.assertEqual(self.sel.expected_input(self.pattern, Variation.REVERSE_COMBINATION),
                         [E, C, M, T, E])
        self.assertEqual(self.sel.expected_input(self.pattern, None), self.pattern)

    def test_validate_input(self):
        self.assertTrue(self.sel.validate_input([E, C, M, T, E], self.pattern, Variation.REVERSE))
        self.assertFalse(self.sel.validate_input(self.pattern[:-1], self.pattern, Variation.NONE))
        self.assertFalse(self.sel.validate_input([E, T, M, C, T], self.pattern, Variation.NONE))

    def test_selective_attention_validates_full_pattern(self):
        self.assertFalse(self.sel.validate_input([E, T], self.pattern, Variation.SELECTIVE_ATTENTION))
        self.assertTrue(self.sel.validate_input(self.pattern, self.pattern,
                                                Variation.SELECTIVE_ATTENTION))


# ============================================================
# Parameter Generators
# ============================================================

class TestParameters(unittest.TestCase):

    def setUp(self):
        self.sel = VariationSelector(rng=random.Random(42))
        self.pattern = [E, T, M, C, E]

    def test_ghost(self):
        for _ in range(20):
            idx = self.sel.ghost_indices(self.pattern, 5)
            self.assertEqual(len(idx), 1)
            self.assertTrue(0 <= idx[0] < len(self.pattern))
        self.assertEqual(self.sel.ghost_indices([], 5), [])

    def test_ghost_opacity(self):
        self.assertEqual(self.sel.ghost_opacity(2), 0.4)
        self.assertEqual(self.sel.ghost_opacity(3), 0.35)
        self.assertEqual(self.sel.ghost_opacity(4), 0.3)
        self.assertEqual(self.sel.ghost_opacity(9), 0.4)
        self.assertEqual(self.sel.ghost_opacity(17), 0.2)

    def test_chaos_ranges(self):
        self.assertEqual(self.sel.chaos_timing_range(8), (300, 900))
        self.assertEqual(self.sel.chaos_timing_range(9), (250, 950))
        self.assertEqual(self.sel.chaos_timing_range(10), (200, 1000))
        self.assertEqual(self.sel.chaos_timing_range(12), (300, 900))
        self.assertEqual(self.sel.chaos_timing_range(21), (150, 1200))

    def test_chaos_timings_inside_range(self):
        timings = self.sel.chaos_timings(self.pattern * 10, 9)
        self.assertEqual(len(timings), 50)
        self.assertTrue(all(250 <= t <= 950 for t in timings))

    def test_shuffled_colors_is_bijection(self):
        for _ in range(10):
            mapping = self.sel.shuffled_colors()
            self.assertEqual(set(mapping), set(ALL_GEMSTONES))
            self.assertEqual(set(mapping.values()), set(ALL_GEMSTONES))

    def test_shining_counts(self):
        self.assertEqual(len(self.sel.shining_indices(self.pattern, 5)), 3)     # 5 × 0.6
        self.assertEqual(len(self.sel.shining_indices(self.pattern, 6)), 3)     # 2.5 rounds up
        self.assertEqual(len(self.sel.shining_indices(self.pattern, 7)), 2)     # 5 × 0.4
        self.assertEqual(len(self.sel.shining_indices([E, T, M, C], 18)), 1)   # 1.2
        self.assertEqual(len(self.sel.shining_indices([E], 18)), 1)            # at least one
        self.assertEqual(self.sel.shining_indices([], 5), [])

    def test_shining_indices_sorted_unique(self):
        for _ in range(20):
            idx = self.sel.shining_indices(self.pattern * 2, 5)
            self.assertEqual(idx, sorted(set(idx)))
            self.assertTrue(all(0 <= i < 10 for i in idx))

    def test_filter_shining_gems(self):
        self.assertEqual(VariationSelector.filter_shining_gems(self.pattern, [1, 3]), [T, C])


# ============================================================
# Composition
# ============================================================

class TestComposition(unittest.TestCase):

    def setUp(self):
        self.sel = VariationSelector(rng=random.Random(8))
        self.pattern = [E, T, M, C]

    def test_none_has_no_effects(self):
        fx = self.sel.effects_for(Variation.NONE, self.pattern, 1)
        self.assertFalse(fx.reversed_input)
        self.assertEqual(fx.expected_input, self.pattern)
        self.assertEqual((fx.ghost_indices, fx.chaos_timings, fx.shining_indices), ([], [], []))
        self.assertEqual(fx.color_map, {})
        self.assertIsNone(fx.ghost_opacity)

    def test_single_variations(self):
        ghost = self.sel.effects_for(Variation.GHOST, self.pattern, 6)
        self.assertEqual(len(ghost.ghost_indices), 1)
        self.assertEqual(ghost.ghost_opacity, 0.4)

        chaos = self.sel.effects_for(Variation.SPEED_CHAOS, self.pattern, 8)
        self.assertEqual(len(chaos.chaos_timings), 4)

        shuffle = self.sel.effects_for(Variation.COLOR_SHUFFLE, self.pattern, 11)
        self.assertEqual(len(shuffle.color_map), 4)
        self.assertEqual(shuffle.expected_input, self.pattern)

    def test_reverse_combination_composes_base(self):
        self.sel.combination_base = Variation.SELECTIVE_ATTENTION
        fx = self.sel.effects_for(Variation.REVERSE_COMBINATION, self.pattern, 17)
        self.assertTrue(fx.reversed_input)
        self.assertEqual(fx.expected_input, [C, M, T, E])
        self.assertEqual(fx.combination_base, Variation.SELECTIVE_ATTENTION)
        self.assertEqual(len(fx.shining_indices), 1)    # 4 × 0.3
        self.assertEqual(fx.color_map, {})

        self.sel.combination_base = Variation.GHOST
        fx = self.sel.effects_for(Variation.REVERSE_COMBINATION, self.pattern, 17)
        self.assertEqual(fx.ghost_opacity, 0.2)
        self.assertEqual(len(fx.ghost_indices), 1)

    def test_to_dict(self):
        self.sel.combination_base = Variation.COLOR_SHUFFLE
        d = self.sel.effects_for(Variation.REVERSE_COMBINATION, self.pattern, 20).to_dict()
        self.assertEqual(d["variation"], "REVERSE_COMBINATION")
        self.assertEqual(d["combination_base"], "COLOR_SHUFFLE")
        self.assertEqual(d["expected_input"], ["CUSHION", "MARQUISE", "TRILLION", "EMERALD"])
        self.assertEqual(sorted(d["color_map"]), sorted(g.value for g in ALL_GEMSTONES))


# ============================================================
# Tutorials
# ============================================================

class TestTutorials(unittest.TestCase):

    def test_mark_and_reset(self):
        sel = VariationSelector(rng=random.Random(0))
        self.assertFalse(sel.has_shown_tutorial(Variation.REVERSE))
        sel.mark_tutorial_shown(Variation.REVERSE)
        sel.mark_tutorial_shown(Variation.REVERSE)
        self.assertTrue(sel.has_shown_tutorial(Variation.REVERSE))
        run_selector(sel, 18)
        sel.reset()
        self.assertFalse(sel.has_shown_tutorial(Variation.REVERSE))
        self.assertIsNone(sel.current_variation)
        self.assertIsNone(sel.previous_variation)
        self.assertIsNone(sel.combination_base)
        self.assertEqual(sel.variation_start_round, 0)


if __name__ == "__main__":
    unittest.main(verbosity=2)
