#!/usr/bin/env python3
"""
GEMRECALL — HTTP Driver Tests

Run: python tests_web_api.py

Exercises web_app.create_app() through Flask's test client.
"""

import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from web_app import create_app


class TestSessionEndpoints(unittest.TestCase):

    def setUp(self):
        self.app = create_app(seed=21)
        self.app.config["TESTING"] = True
        self.client = self.app.test_client()

    def _post(self, path, body=None):
        resp = self.client.post(path, json=body or {})
        return resp, resp.get_json()

    def _play_current_round(self):
        machine = self.app.config["MACHINE"]
        for gem in machine.expected_input():
            _, data = self._post("/api/session/submit", {"gem": gem.value})
        return data

    def test_initial_snapshot(self):
        data = self.client.get("/api/session").get_json()
        self.assertEqual(data["session"]["state"], "INITIALIZATION")
        self.assertEqual(data["session"]["round"], 1)

    def test_calibration_round(self):
        resp, data = self._post("/api/session/start")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(data["ok"])
        self.assertEqual(data["session"]["state"], "CALIBRATION")

        _, data = self._post("/api/session/input")
        self.assertEqual(data["session"]["state"], "PLAYER_INPUT")

        data = self._play_current_round()
        self.assertTrue(data["ok"])
        self.assertEqual(data["session"]["state"], "ROUND_COMPLETE")
        self.assertEqual(data["session"]["round"], 2)

    def test_illegal_transition_reports_not_ok(self):
        resp, data = self._post("/api/session/input")
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(data["ok"])
        self.assertEqual(data["session"]["state"], "INITIALIZATION")

    def test_variation_intro_then_display(self):
        self._post("/api/session/start")
        self._post("/api/session/input")
        self._play_current_round()
        _, data = self._post("/api/session/continue")
        self.assertEqual(data["session"]["state"], "VARIATION_INTRO")
        self.assertEqual(data["session"]["current_variation"], "REVERSE")

        _, data = self._post("/api/session/input")
        self.assertFalse(data["ok"])
        _, data = self._post("/api/session/display")
        self.assertEqual(data["session"]["state"], "PATTERN_DISPLAY")

        fx = self.client.get("/api/session/effects").get_json()
        self.assertTrue(fx["reversed_input"])
        self.assertEqual(fx["expected_input"], list(reversed(data["session"]["pattern"])))

    def test_submit_validation(self):
        self._post("/api/session/start")
        self._post("/api/session/input")
        resp, data = self._post("/api/session/submit", {"gem": "RUBY"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Unknown gemstone", data["error"])
        resp, _ = self._post("/api/session/submit", {})
        self.assertEqual(resp.status_code, 400)

    def test_lowercase_gem_accepted(self):
        _, data = self._post("/api/session/start")
        self._post("/api/session/input")
        first = data["session"]["pattern"][0]
        _, data = self._post("/api/session/submit", {"gem": first.lower()})
        self.assertTrue(data["ok"])
        self.assertEqual(data["session"]["player_input"], [first])

    def test_wrong_gem_fails_and_reset(self):
        _, data = self._post("/api/session/start")
        self._post("/api/session/input")
        first = data["session"]["pattern"][0]
        wrong = next(g for g in ("EMERALD", "TRILLION", "MARQUISE", "CUSHION") if g != first)
        _, data = self._post("/api/session/submit", {"gem": wrong})
        self.assertFalse(data["ok"])
        self.assertEqual(data["session"]["state"], "ROUND_FAILED")

        _, data = self._post("/api/session/reset")
        self.assertEqual(data["session"]["state"], "INITIALIZATION")


class TestEconomyEndpoints(unittest.TestCase):

    def setUp(self):
        self.app = create_app(seed=4)
        self.client = self.app.test_client()

    def test_economy_stats(self):
        self.client.post("/api/session/start")
        data = self.client.get("/api/economy").get_json()
        self.assertEqual(data["balance"], 90.0)
        self.assertEqual(data["formatted_balance"], "90.00")
        self.assertEqual(data["games_played"], 1)
        self.assertEqual(data["game_cost"], 10.0)
        self.assertIn("next_round_reward", data)

    def test_set_difficulty(self):
        resp = self.client.post("/api/economy/difficulty", json={"difficulty": "hard"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["difficulty"], "hard")

        resp = self.client.post("/api/economy/difficulty", json={"difficulty": "nightmare"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("normal", resp.get_json()["available"])

    def test_economy_reset_resets_session(self):
        self.client.post("/api/session/start")
        data = self.client.post("/api/economy/reset").get_json()
        self.assertEqual(data["session"]["state"], "INITIALIZATION")
        self.assertEqual(self.client.get("/api/economy").get_json()["balance"], 100.0)


class TestWithoutEconomy(unittest.TestCase):

    def setUp(self):
        self.client = create_app(seed=1, with_economy=False).test_client()

    def test_economy_endpoints_404(self):
        self.assertEqual(self.client.get("/api/economy").status_code, 404)
        self.assertEqual(self.client.post("/api/economy/reset").status_code, 404)
        resp = self.client.post("/api/economy/difficulty", json={"difficulty": "hard"})
        self.assertEqual(resp.status_code, 404)

    def test_session_still_playable(self):
        data = self.client.post("/api/session/start").get_json()
        self.assertTrue(data["ok"])
        self.assertEqual(data["session"]["state"], "CALIBRATION")


if __name__ == "__main__":
    unittest.main(verbosity=2)
