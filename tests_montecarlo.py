#!/usr/bin/env python3
"""
GEMRECALL — Economy Monte Carlo Tests

Run: python tests_montecarlo.py

Test categories:
  TestClearProbability  — player model lookups
  TestSimulation        — determinism, accounting, stop conditions
  TestResultOutput      — summary text and JSON shape
  TestEngineCLI         — payouts / simulate / config commands
"""

import io
import json
import sys
import unittest
from contextlib import redirect_stdout
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.ticket_config import ticket_config_from_dict
from tools.economy_montecarlo import EconomyMonteCarlo, SimulationResult


def perfect_player(max_round: int = 5):
    return ticket_config_from_dict({
        "player_distribution": {1: 1.0},
        "limits": {"max_round": max_round},
    })


# ============================================================
# Player Model
# ============================================================

class TestClearProbability(unittest.TestCase):

    def test_listed_and_beyond(self):
        mc = EconomyMonteCarlo()
        self.assertEqual(mc.clear_probability(1), 1.0)
        self.assertEqual(mc.clear_probability(3), 0.85)
        self.assertEqual(mc.clear_probability(5), 0.65)
        self.assertEqual(mc.clear_probability(12), 0.65)

    def test_below_first_key_uses_first(self):
        mc = EconomyMonteCarlo(ticket_config_from_dict({"player_distribution": {3: 0.5}}))
        self.assertEqual(mc.clear_probability(1), 0.5)

    def test_empty_distribution_always_clears(self):
        mc = EconomyMonteCarlo(ticket_config_from_dict({"player_distribution": {}}))
        self.assertEqual(mc.clear_probability(9), 1.0)


# ============================================================
# Simulation
# ============================================================

class TestSimulation(unittest.TestCase):

    def test_rejects_non_positive_sessions(self):
        with self.assertRaises(ValueError):
            EconomyMonteCarlo().run(n_sessions=0)

    def test_seeded_runs_repeat(self):
        a = EconomyMonteCarlo().run(n_sessions=200, seed=7)
        b = EconomyMonteCarlo().run(n_sessions=200, seed=7)
        self.assertEqual(a.total_earned, b.total_earned)
        self.assertEqual(a.rounds_cleared, b.rounds_cleared)
        self.assertEqual(a.feedback_distribution, b.feedback_distribution)

    def test_cost_paid_once_per_session(self):
        r = EconomyMonteCarlo().run(n_sessions=150, seed=1)
        self.assertEqual(r.total_spent, 1500.0)
        self.assertEqual(r.unaffordable_sessions, 0)
        self.assertEqual(sum(r.rounds_cleared.values()), 150)
        self.assertAlmostEqual(r.measured_rtp, r.total_earned / r.total_spent)
        self.assertAlmostEqual(r.rtp_delta, r.measured_rtp - r.target_rtp)
        self.assertEqual(r.rtp_pass, abs(r.rtp_delta) <= r.tolerance)

    def test_perfect_player_stops_at_max_round(self):
        r = EconomyMonteCarlo(perfect_player(5)).run(n_sessions=20, seed=3)
        self.assertEqual(r.rounds_cleared, {5: 20})
        self.assertEqual(r.rounds_played, 100)
        self.assertGreater(r.total_earned, 0.0)
        self.assertEqual(sum(r.feedback_distribution.values()), 100)

    def test_hopeless_player_earns_nothing(self):
        cfg = ticket_config_from_dict({"player_distribution": {1: 0.0}})
        r = EconomyMonteCarlo(cfg).run(n_sessions=25, seed=3)
        self.assertEqual(r.rounds_cleared, {0: 25})
        self.assertEqual(r.total_earned, 0.0)
        self.assertEqual(r.measured_rtp, 0.0)
        self.assertEqual(r.rounds_played, 25)      # every failure is recorded at round 1

    def test_unaffordable_sessions(self):
        cfg = ticket_config_from_dict({"demo": {"starting_balance": 5}})
        r = EconomyMonteCarlo(cfg).run(n_sessions=10, seed=0)
        self.assertEqual(r.unaffordable_sessions, 10)
        self.assertEqual(r.total_spent, 0.0)
        self.assertEqual(r.measured_rtp, 0.0)

    def test_difficulty_scales_earnings(self):
        normal = EconomyMonteCarlo(perfect_player(4)).run(n_sessions=5, seed=11)
        hard = EconomyMonteCarlo(perfect_player(4), difficulty="hard").run(n_sessions=5, seed=11)
        self.assertGreater(hard.total_earned, normal.total_earned)

    def test_wide_tolerance_passes(self):
        r = EconomyMonteCarlo(tolerance=10.0).run(n_sessions=50, seed=2)
        self.assertTrue(r.rtp_pass)


# ============================================================
# Output
# ============================================================

class TestResultOutput(unittest.TestCase):

    def setUp(self):
        self.result = EconomyMonteCarlo().run(n_sessions=50, seed=5)

    def test_summary(self):
        text = self.result.summary()
        self.assertIn("TICKET ECONOMY", text)
        self.assertIn("Sessions:", text)
        self.assertTrue("PASS" in text or "FAIL" in text)

    def test_to_dict(self):
        d = self.result.to_dict()
        json.dumps(d)
        for key in ("n_sessions", "measured_rtp_pct", "rtp_pass", "rounds_cleared",
                    "feedback_distribution", "seed", "config_hash"):
            self.assertIn(key, d)
        self.assertEqual(d["seed"], 5)
        self.assertTrue(all(isinstance(k, str) for k in d["rounds_cleared"]))

    def test_dataclass_defaults(self):
        r = SimulationResult(n_sessions=1, rounds_played=0, total_spent=0.0, total_earned=0.0,
                             target_rtp=0.9, measured_rtp=0.0, rtp_delta=-0.9, rtp_pass=False)
        self.assertEqual(r.rounds_cleared, {})
        self.assertIn("Best Run:    0 rounds", r.summary())


# ============================================================
# CLI
# ============================================================

class TestEngineCLI(unittest.TestCase):

    def test_simulate_json(self):
        from tools.engine_cli import main
        buf = io.StringIO()
        with redirect_stdout(buf):
            code = main(["simulate", "--sessions", "30", "--seed", "4", "--tolerance", "10",
                         "--json"])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(buf.getvalue())["n_sessions"], 30)

    def test_config_dump(self):
        from tools.engine_cli import main
        buf = io.StringIO()
        with redirect_stdout(buf):
            code = main(["config", "--dump"])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(buf.getvalue())["base_reward"], 2.5)

    def test_config_panel_shows_settings(self):
        from tools.engine_cli import main
        buf = io.StringIO()
        with redirect_stdout(buf):
            code = main(["config"])
        self.assertEqual(code, 0)
        self.assertIn("mc_sessions", buf.getvalue())
        self.assertIn("Settings", buf.getvalue())

    def test_payouts_unknown_difficulty(self):
        from tools.engine_cli import main
        self.assertEqual(main(["payouts", "--rounds", "3", "--difficulty", "nightmare"]), 2)
        self.assertEqual(main(["payouts", "--rounds", "3"]), 0)


if __name__ == "__main__":
    unittest.main(verbosity=2)
