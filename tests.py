#!/usr/bin/env python3
"""
GEMRECALL — Round Engine Test Suite

Run: python tests.py
     python tests.py -v                   # verbose
     python tests.py TestRoundStateMachine   # run specific class

Test categories:
  TestDifficultyFormulas  — pattern length, display speed, input timer
  TestRoundStateMachine   — transitions, input validation, scoring
  TestEconomyWiring       — cost charged once per game, rewards on completion
  TestVariationFlow       — intros, reversed input, combination mode
  TestSessionFactory      — seeded sessions, logging setup
"""

import logging
import random
import sys
import unittest
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.ticket_config import ticket_config_from_dict
from game_engine import (
    ALL_GEMSTONES, GameState, Gemstone, RoundStateMachine, TicketEconomy,
    Variation, display_speed_ms, new_game_session, pattern_length, timer_seconds,
)
from game_engine.variations import COMBINATION_BASES


def play_round(machine: RoundStateMachine) -> bool:
    """Drive one round with the correct answer. Returns submit_input of the last gem."""
    if machine.state == GameState.VARIATION_INTRO:
        machine.start_pattern_display()
    machine.start_player_input()
    ok = True
    for gem in machine.expected_input():
        ok = machine.submit_input(gem)
    return ok


def wrong_gem(gem: Gemstone) -> Gemstone:
    return next(g for g in ALL_GEMSTONES if g != gem)


# ============================================================
# Formula Tests
# ============================================================

class TestDifficultyFormulas(unittest.TestCase):

    def test_pattern_length_steps_every_three_rounds(self):
        self.assertEqual(pattern_length(1), 4)
        self.assertEqual(pattern_length(2), 4)
        self.assertEqual(pattern_length(3), 4)
        self.assertEqual(pattern_length(4), 5)
        self.assertEqual(pattern_length(7), 6)
        self.assertEqual(pattern_length(10), 7)

    def test_display_speed(self):
        self.assertEqual(display_speed_ms(1), 1000)
        self.assertEqual(display_speed_ms(2), 700)
        self.assertEqual(display_speed_ms(10), 500)
        self.assertEqual(display_speed_ms(18), 300)
        self.assertEqual(display_speed_ms(40), 300)   # floor

    def test_timer(self):
        self.assertEqual(timer_seconds(1), 10.0)
        self.assertEqual(timer_seconds(2), 7.5)
        self.assertEqual(timer_seconds(19), 3.25)
        self.assertEqual(timer_seconds(20), 3.0)
        self.assertEqual(timer_seconds(60), 3.0)      # floor


# ============================================================
# State Machine Tests
# ============================================================

class TestRoundStateMachine(unittest.TestCase):

    def setUp(self):
        self.machine = RoundStateMachine(rng=random.Random(1234))

    def test_initial_state(self):
        m = self.machine
        self.assertEqual(m.state, GameState.INITIALIZATION)
        self.assertEqual(m.round, 1)
        self.assertEqual(m.score, 0)
        self.assertEqual(m.pattern, [])
        self.assertEqual(m.current_variation, Variation.NONE)
        self.assertEqual(m.timer_seconds, 10.0)
        self.assertEqual(m.display_speed, 1000)

    def test_round_one_is_calibration_permutation(self):
        self.assertTrue(self.machine.start_round())
        self.assertEqual(self.machine.state, GameState.CALIBRATION)
        self.assertEqual(sorted(self.machine.pattern), sorted(ALL_GEMSTONES))

    def test_calibration_goes_straight_to_input(self):
        self.machine.start_round()
        self.assertTrue(self.machine.start_player_input())
        self.assertEqual(self.machine.state, GameState.PLAYER_INPUT)

    def test_illegal_calls_change_nothing(self):
        m = self.machine
        self.assertFalse(m.submit_input(Gemstone.EMERALD))
        self.assertFalse(m.start_player_input())
        self.assertFalse(m.start_pattern_display())
        self.assertFalse(m.continue_to_next_round())
        self.assertEqual(m.state, GameState.INITIALIZATION)
        self.assertEqual(m.player_input, [])

    def test_complete_round_advances(self):
        m = self.machine
        m.start_round()
        self.assertTrue(play_round(m))
        self.assertEqual(m.state, GameState.ROUND_COMPLETE)
        self.assertEqual(m.round, 2)
        self.assertEqual(m.score, 100)
        self.assertEqual(m.display_speed, 700)   # recomputed for the round about to begin

    def test_wrong_gem_fails_round_and_is_not_recorded(self):
        m = self.machine
        m.start_round()
        m.start_player_input()
        first = m.expected_gem()
        self.assertTrue(m.submit_input(first))
        self.assertFalse(m.submit_input(wrong_gem(m.expected_gem())))
        self.assertEqual(m.state, GameState.ROUND_FAILED)
        self.assertEqual(m.player_input, [first])
        self.assertEqual(m.round, 1)

    def test_failed_round_is_terminal_until_reset(self):
        m = self.machine
        m.start_round()
        m.start_player_input()
        m.submit_input(wrong_gem(m.expected_gem()))
        self.assertFalse(m.start_round())
        self.assertFalse(m.continue_to_next_round())
        self.assertFalse(m.submit_input(Gemstone.EMERALD))
        m.reset_session()
        self.assertEqual(m.state, GameState.INITIALIZATION)
        self.assertEqual(m.round, 1)
        self.assertTrue(m.start_round())

    def test_expected_gem_only_during_input(self):
        m = self.machine
        m.start_round()
        self.assertIsNone(m.expected_gem())
        m.start_player_input()
        self.assertEqual(m.expected_gem(), m.pattern[0])

    def test_start_player_input_clears_input_and_sets_timer(self):
        m = self.machine
        m.start_round()
        play_round(m)
        m.continue_to_next_round()
        m.start_pattern_display()
        m.start_player_input()
        self.assertEqual(m.timer_seconds, 7.5)
        self.assertEqual(m.player_input, [])

    def test_score_without_economy_uses_variation_bonus(self):
        m = self.machine
        m.start_round()
        play_round(m)                       # round 1: 100
        m.continue_to_next_round()
        self.assertEqual(m.current_variation, Variation.REVERSE)
        play_round(m)                       # round 2: round(200 × 1.15)
        self.assertEqual(m.score, 330)

    def test_start_round_from_complete_continues(self):
        m = self.machine
        m.start_round()
        play_round(m)
        self.assertTrue(m.start_round())
        self.assertEqual(m.round, 2)
        self.assertIn(m.state, (GameState.VARIATION_INTRO, GameState.PATTERN_DISPLAY))

    def test_plain_string_input_stored_as_gemstone(self):
        m = self.machine
        m.start_round()
        m.start_player_input()
        self.assertTrue(m.submit_input(m.expected_gem().value))
        self.assertIsInstance(m.player_input[0], Gemstone)
        self.assertEqual(m.snapshot()["player_input"], [m.pattern[0].value])

    def test_can_start_round_only_in_start_states(self):
        m = self.machine
        self.assertTrue(m.can_start_round())
        m.start_round()
        self.assertFalse(m.can_start_round())
        m.start_player_input()
        self.assertFalse(m.can_start_round())
        m.submit_input(wrong_gem(m.expected_gem()))
        self.assertEqual(m.state, GameState.ROUND_FAILED)
        self.assertFalse(m.can_start_round())
        self.assertFalse(m.start_round())

    def test_snapshot_is_json_ready(self):
        m = self.machine
        m.start_round()
        snap = m.snapshot()
        self.assertEqual(snap["state"], "CALIBRATION")
        self.assertEqual(snap["round"], 1)
        self.assertEqual(len(snap["pattern"]), 4)
        self.assertTrue(all(isinstance(g, str) for g in snap["pattern"]))
        self.assertIsNone(snap["combination_base"])

    def test_pattern_accessor_is_a_copy(self):
        m = self.machine
        m.start_round()
        p = m.pattern
        p.clear()
        self.assertEqual(len(m.pattern), 4)


# ============================================================
# Economy Wiring
# ============================================================

class TestEconomyWiring(unittest.TestCase):

    def setUp(self):
        self.economy = TicketEconomy()
        self.machine = RoundStateMachine(economy=self.economy, rng=random.Random(99))

    def test_cost_charged_once_per_game(self):
        m, e = self.machine, self.economy
        self.assertTrue(m.can_start_round())
        m.start_round()
        self.assertEqual(e.balance, 90.0)
        play_round(m)
        balance_after_round_one = e.balance
        m.continue_to_next_round()
        self.assertEqual(e.balance, balance_after_round_one)
        self.assertEqual(e.games_played, 1)

    def test_completion_pays_reward(self):
        m, e = self.machine, self.economy
        m.start_round()
        play_round(m)
        self.assertEqual(m.last_reward, 0.03)          # 2.50 × 0.01, half-up
        self.assertAlmostEqual(e.balance, 90.03)
        self.assertEqual(m.score, 3)
        self.assertEqual(e.highest_round, 1)

    def test_insufficient_balance_leaves_state(self):
        economy = TicketEconomy(ticket_config_from_dict({"demo": {"starting_balance": 5}}))
        m = RoundStateMachine(economy=economy, rng=random.Random(1))
        self.assertFalse(m.can_start_round())
        self.assertFalse(m.start_round())
        self.assertEqual(m.state, GameState.INITIALIZATION)
        self.assertEqual(economy.balance, 5.0)

    def test_failure_records_highest_round_without_reward(self):
        m, e = self.machine, self.economy
        m.start_round()
        play_round(m)
        m.continue_to_next_round()
        m.start_pattern_display()
        m.start_player_input()
        m.submit_input(wrong_gem(m.expected_gem()))
        self.assertEqual(m.last_reward, 0.0)
        self.assertEqual(e.highest_round, 2)

    def test_next_round_reward_preview(self):
        m = self.machine
        self.assertEqual(RoundStateMachine().next_round_reward(), 0.0)
        m.start_round()
        self.assertEqual(m.next_round_reward(), self.economy.calculate_reward(2, Variation.NONE))

    def test_reset_keeps_economy(self):
        m, e = self.machine, self.economy
        m.start_round()
        m.reset_session()
        self.assertEqual(e.balance, 90.0)
        self.assertIs(m.economy, e)

    def test_detach_economy(self):
        m = self.machine
        m.detach_economy()
        m.start_round()
        self.assertEqual(self.economy.balance, 100.0)
        m.attach_economy(self.economy)
        self.assertIs(m.economy, self.economy)


# ============================================================
# Variation Flow
# ============================================================

class TestVariationFlow(unittest.TestCase):

    def test_round_two_introduces_reverse(self):
        m = RoundStateMachine(rng=random.Random(5))
        m.start_round()
        play_round(m)
        m.continue_to_next_round()
        self.assertEqual(m.state, GameState.VARIATION_INTRO)
        self.assertEqual(m.current_variation, Variation.REVERSE)
        self.assertEqual(len(m.pattern), 4)          # generated during the intro
        self.assertFalse(m.start_player_input())
        self.assertTrue(m.start_pattern_display())
        m.start_player_input()
        self.assertEqual(m.expected_input(), list(reversed(m.pattern)))
        self.assertEqual(m.expected_gem(), m.pattern[-1])

    def test_intro_shown_once_per_variation(self):
        m = RoundStateMachine(rng=random.Random(5))
        m.start_round()
        play_round(m)
        m.continue_to_next_round()
        play_round(m)
        m.continue_to_next_round()                  # round 3, same window
        self.assertEqual(m.state, GameState.PATTERN_DISPLAY)
        self.assertEqual(m.variation_start_round, 2)

    def test_forward_order_rejected_under_reverse(self):
        m = RoundStateMachine(rng=random.Random(11))
        m.start_round()
        play_round(m)
        m.continue_to_next_round()
        m.start_pattern_display()
        m.start_player_input()
        pattern = m.pattern
        if pattern[0] == pattern[-1]:
            self.skipTest("palindromic first/last gem for this seed")
        self.assertFalse(m.submit_input(pattern[0]))
        self.assertEqual(m.state, GameState.ROUND_FAILED)

    def test_full_run_reaches_combination_mode(self):
        for seed in range(5):
            m = RoundStateMachine(rng=random.Random(seed))
            m.start_round()
            while m.round < 17:
                self.assertTrue(play_round(m))
                m.continue_to_next_round()
            self.assertEqual(m.round, 17)
            self.assertEqual(m.current_variation, Variation.REVERSE_COMBINATION)
            self.assertIn(m.combination_base, COMBINATION_BASES)
            effects = m.current_effects()
            self.assertTrue(effects.reversed_input)
            self.assertEqual(effects.combination_base, m.combination_base)

    def test_effects_stable_within_round(self):
        m = RoundStateMachine(rng=random.Random(3))
        m.start_round()
        play_round(m)
        m.continue_to_next_round()
        self.assertEqual(m.current_effects().to_dict(), m.current_effects().to_dict())


# ============================================================
# Session Factory / Settings
# ============================================================

class TestSessionFactory(unittest.TestCase):

    def test_same_seed_same_patterns(self):
        a = new_game_session(seed=42)
        b = new_game_session(seed=42)
        a.start_round()
        b.start_round()
        self.assertEqual(a.pattern, b.pattern)

    def test_economy_attached_on_request(self):
        self.assertIsNone(new_game_session(seed=1).economy)
        self.assertIsInstance(new_game_session(seed=1, with_economy=True).economy, TicketEconomy)
        cfg = ticket_config_from_dict({"base_reward": 3.0})
        m = new_game_session(seed=1, ticket_config=cfg)
        self.assertEqual(m.economy.config.base_reward, 3.0)

    def test_configure_logging_idempotent(self):
        from config.settings import configure_logging
        logger = configure_logging("debug")
        configure_logging("info")
        self.assertEqual(len(logger.handlers), 1)
        self.assertEqual(logger.level, logging.INFO)


if __name__ == "__main__":
    unittest.main(verbosity=2)
