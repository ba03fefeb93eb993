#!/usr/bin/env python3
"""
GEMRECALL — Ticket Economy & Config Tests

Run: python tests_economy.py

Test categories:
  TestRewardFormula    — table, extrapolation, bonuses, difficulty, cap, rounding
  TestBalance          — cost, clamping, formatting
  TestStatistics       — RTP, history, feedback tiers, reset
  TestTicketConfig     — pydantic validation, hashing, audit warnings
"""

import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from pydantic import ValidationError

from config.ticket_config import (
    DEFAULT_ROUND_MULTIPLIERS, TicketConfig, default_ticket_config,
    ticket_config_from_dict, validate_ticket_config,
)
from game_engine.economy import TicketEconomy, round_half_up
from game_engine.types import Variation


# ============================================================
# Reward Formula
# ============================================================

class TestRewardFormula(unittest.TestCase):

    def setUp(self):
        self.economy = TicketEconomy(default_ticket_config())

    def test_table_round(self):
        self.assertEqual(self.economy.calculate_reward(5, Variation.NONE), 1.25)

    def test_extrapolated_round(self):
        self.assertEqual(self.economy.round_multiplier(21), 9.0)
        self.assertEqual(self.economy.calculate_reward(25, Variation.NONE), 32.50)

    def test_round_multiplier_bounds(self):
        e = self.economy
        self.assertEqual(e.round_multiplier(0), 0.0)
        self.assertEqual(e.round_multiplier(-4), 0.0)
        self.assertEqual(e.round_multiplier(1), 0.01)
        self.assertEqual(e.round_multiplier(20), 8.0)
        self.assertEqual(e.calculate_reward(0, Variation.NONE), 0.0)

    def test_rounding_is_half_up(self):
        self.assertEqual(self.economy.calculate_reward(1, Variation.NONE), 0.03)   # 0.025
        self.assertEqual(round_half_up(0.125, 2), 0.13)
        self.assertEqual(round_half_up(2.5, 0), 3.0)

    def test_variation_bonus(self):
        e = self.economy
        self.assertEqual(e.variation_bonus(Variation.NONE), 1.00)
        self.assertEqual(e.variation_bonus(Variation.SPEED_CHAOS), 1.20)
        self.assertEqual(e.variation_bonus(Variation.REVERSE_COMBINATION), 1.35)
        self.assertEqual(e.variation_bonus(None), 1.00)
        self.assertAlmostEqual(e.calculate_reward(20, Variation.REVERSE_COMBINATION), 27.0)

    def test_missing_bonus_key_defaults_to_one(self):
        e = TicketEconomy(ticket_config_from_dict({"variation_bonuses": {"none": 1.0}}))
        self.assertEqual(e.variation_bonus(Variation.GHOST), 1.0)
        self.assertEqual(e.calculate_reward(5, Variation.GHOST), 1.25)

    def test_difficulty_multiplier(self):
        e = self.economy
        self.assertTrue(e.set_difficulty("hard"))
        self.assertEqual(e.calculate_reward(5, Variation.NONE), 1.88)    # 1.875
        self.assertTrue(e.set_difficulty("easy"))
        self.assertEqual(e.calculate_reward(5, Variation.NONE), 0.94)    # 0.9375

    def test_unknown_difficulty_ignored(self):
        e = self.economy
        self.assertFalse(e.set_difficulty("nightmare"))
        self.assertEqual(e.current_difficulty, "normal")

    def test_missing_default_difficulty_falls_back(self):
        e = TicketEconomy(ticket_config_from_dict({}, default_difficulty="insane"))
        self.assertIsNone(e.difficulty_settings())
        self.assertEqual(e.difficulty_multiplier(), 1.0)
        self.assertEqual(e.calculate_reward(5, Variation.NONE), 1.25)

    def test_single_payout_cap(self):
        self.assertEqual(self.economy.calculate_reward(100, Variation.NONE), 200.0)

    def test_next_round_reward(self):
        self.assertEqual(self.economy.next_round_reward(4, Variation.NONE), 1.25)

    def test_rewards_monotonic_over_table(self):
        rewards = [self.economy.calculate_reward(r, Variation.NONE) for r in range(1, 40)]
        self.assertEqual(rewards, sorted(rewards))


# ============================================================
# Balance
# ============================================================

class TestBalance(unittest.TestCase):

    def test_deduct_game_cost(self):
        e = TicketEconomy()
        self.assertTrue(e.deduct_game_cost())
        self.assertEqual(e.balance, 90.0)
        self.assertEqual(e.total_spent, 10.0)
        self.assertEqual(e.games_played, 1)

    def test_deduct_when_short(self):
        e = TicketEconomy(ticket_config_from_dict({"demo": {"starting_balance": 5}}))
        self.assertFalse(e.can_afford_game())
        self.assertFalse(e.deduct_game_cost())
        self.assertEqual(e.balance, 5.0)
        self.assertEqual(e.total_spent, 0.0)

    def test_balance_clamped_to_max(self):
        e = TicketEconomy(ticket_config_from_dict({"demo": {"starting_balance": 9995}}))
        e.add_reward(10.0)
        self.assertEqual(e.balance, 9999.99)
        self.assertEqual(e.total_earned, 10.0)

    def test_formatted_balance(self):
        self.assertEqual(TicketEconomy().formatted_balance(), "100.00")
        e = TicketEconomy(ticket_config_from_dict({"game": {"ticket_precision": 0}}))
        self.assertEqual(e.formatted_balance(), "100")

    def test_game_cost(self):
        e = TicketEconomy(ticket_config_from_dict({"game": {"cost_to_play": 2.5}}))
        self.assertEqual(e.game_cost, 2.5)
        e.deduct_game_cost()
        self.assertEqual(e.balance, 97.5)


# ============================================================
# Statistics
# ============================================================

class TestStatistics(unittest.TestCase):

    def test_rtp(self):
        e = TicketEconomy()
        self.assertEqual(e.rtp(), 0.0)
        e.deduct_game_cost()
        e.add_reward(4.5)
        self.assertAlmostEqual(e.rtp(), 0.45)

    def test_feedback_levels(self):
        e = TicketEconomy()
        self.assertEqual(e.feedback_level(0.5), "small")
        self.assertEqual(e.feedback_level(4.99), "small")
        self.assertEqual(e.feedback_level(5.0), "medium")
        self.assertEqual(e.feedback_level(10.0), "large")
        self.assertEqual(e.feedback_level(19.99), "large")
        self.assertEqual(e.feedback_level(20.0), "mega")

    def test_history_and_distribution(self):
        e = TicketEconomy()
        e.add_reward(25.0)
        e.add_reward(0.5)
        self.assertEqual(list(e.reward_history), [25.0, 0.5])
        self.assertEqual(e.feedback_distribution["mega"], 1)
        self.assertEqual(e.feedback_distribution["small"], 1)

    def test_tracking_disabled(self):
        cfg = ticket_config_from_dict({"tracking": {"save_statistics": False,
                                                    "track_distribution": False}})
        e = TicketEconomy(cfg)
        e.add_reward(25.0)
        self.assertEqual(len(e.reward_history), 0)
        self.assertEqual(sum(e.feedback_distribution.values()), 0)
        self.assertEqual(e.total_earned, 25.0)

    def test_history_bounded(self):
        e = TicketEconomy(ticket_config_from_dict({"tracking": {"max_history": 3}}))
        for amount in (1.0, 2.0, 3.0, 4.0):
            e.add_reward(amount)
        self.assertEqual(list(e.reward_history), [2.0, 3.0, 4.0])

    def test_highest_round_only_grows(self):
        e = TicketEconomy()
        e.update_highest_round(7)
        e.update_highest_round(3)
        self.assertEqual(e.highest_round, 7)

    def test_stats_and_reset(self):
        e = TicketEconomy()
        e.deduct_game_cost()
        e.add_reward(12.0)
        e.update_highest_round(4)
        stats = e.stats().to_dict()
        self.assertEqual(stats["balance"], 102.0)
        self.assertEqual(stats["games_played"], 1)
        self.assertEqual(stats["highest_round"], 4)
        self.assertEqual(stats["rtp"], 1.2)
        self.assertEqual(stats["feedback_distribution"],
                         {"small": 0, "medium": 0, "large": 1, "mega": 0})

        e.reset()
        self.assertEqual(e.balance, 100.0)
        self.assertEqual((e.total_earned, e.total_spent, e.games_played, e.highest_round),
                         (0.0, 0.0, 0, 0))
        self.assertEqual(len(e.reward_history), 0)


# ============================================================
# Config
# ============================================================

class TestTicketConfig(unittest.TestCase):

    def test_defaults(self):
        cfg = default_ticket_config()
        self.assertEqual(cfg.round_multipliers, DEFAULT_ROUND_MULTIPLIERS)
        self.assertEqual(cfg.base_reward, 2.50)
        self.assertEqual(cfg.game.cost_to_play, 10.0)
        self.assertEqual(cfg.limits.max_single_payout, 200.0)
        self.assertEqual(validate_ticket_config(cfg), [])

    def test_multiplier_table_length_enforced(self):
        with self.assertRaises(ValidationError):
            ticket_config_from_dict({"round_multipliers": [1.0] * 19})

    def test_negative_multiplier_rejected(self):
        with self.assertRaises(ValidationError):
            ticket_config_from_dict({"round_multipliers": [-1.0] + [1.0] * 19})

    def test_player_distribution_checked(self):
        with self.assertRaises(ValidationError):
            ticket_config_from_dict({"player_distribution": {1: 1.5}})
        with self.assertRaises(ValidationError):
            ticket_config_from_dict({"player_distribution": {0: 0.5}})

    def test_frozen(self):
        cfg = default_ticket_config()
        with self.assertRaises(ValidationError):
            cfg.base_reward = 5.0

    def test_config_hash(self):
        a = default_ticket_config().config_hash()
        self.assertEqual(a, TicketConfig().config_hash())
        self.assertEqual(len(a), 16)
        self.assertNotEqual(a, ticket_config_from_dict({"base_reward": 3.0}).config_hash())

    def test_audit_warnings(self):
        mults = list(DEFAULT_ROUND_MULTIPLIERS)
        mults[5] = 0.0
        cfg = ticket_config_from_dict({
            "round_multipliers": mults,
            "demo": {"starting_balance": 1},
            "feedback_thresholds": {"medium": 50},
        }, default_difficulty="insane")
        warnings = validate_ticket_config(cfg)
        joined = "\n".join(warnings)
        self.assertIn("decrease at round 6", joined)
        self.assertIn("insane", joined)
        self.assertIn("feedback_thresholds", joined)
        self.assertIn("starting_balance", joined)

        steep = ticket_config_from_dict({"round_multipliers": [0.5 * i for i in range(1, 21)]})
        e = TicketEconomy(steep)
        self.assertGreater(e.calculate_reward(20, Variation.NONE),
                           e.calculate_reward(21, Variation.NONE))
        self.assertIn("rewards drop after round 20", "\n".join(validate_ticket_config(steep)))

    def test_table_tail_below_round_21_is_accepted(self):
        mults = list(DEFAULT_ROUND_MULTIPLIERS)
        mults[-1] = 8.5
        self.assertEqual(validate_ticket_config(ticket_config_from_dict({"round_multipliers": mults})), [])


if __name__ == "__main__":
    unittest.main(verbosity=2)
