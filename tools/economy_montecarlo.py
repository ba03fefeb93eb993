"""
GEMRECALL — Economy Monte Carlo Validator

Plays N complete games through the real RoundStateMachine and TicketEconomy
with a simulated player and checks the measured return-to-player against the
config's rtp_target.

Simulated player:
  • Clears round r with probability player_distribution[r]
    (rounds above the highest listed key reuse the last listed value)
  • A cleared round submits the engine's expected input
  • A missed round goes wrong at a random position
  • A game ends on the first miss, when the play cost can't be paid,
    or after limits.max_round

Usage:
    from tools.economy_montecarlo import EconomyMonteCarlo
    mc = EconomyMonteCarlo(tolerance=0.05)
    result = mc.run(n_sessions=5_000, seed=42)
    print(result.summary())
"""

from __future__ import annotations

import logging
import random
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from config.ticket_config import TicketConfig
from game_engine.economy import FEEDBACK_LEVELS, TicketEconomy
from game_engine.round_machine import RoundStateMachine
from game_engine.types import ALL_GEMSTONES, GameState

logger = logging.getLogger("gemrecall.montecarlo")


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

@dataclass
class SimulationResult:
    """Results from a Monte Carlo economy run."""
    n_sessions: int
    rounds_played: int
    total_spent: float
    total_earned: float
    target_rtp: float
    measured_rtp: float
    rtp_delta: float                 # measured - target
    rtp_pass: bool
    tolerance: float = 0.05

    # Distribution analysis
    rounds_cleared: dict = field(default_factory=dict)     # {rounds cleared: sessions}
    feedback_distribution: dict = field(default_factory=dict)
    max_single_reward: float = 0.0
    unaffordable_sessions: int = 0

    # Timing
    duration_seconds: float = 0.0
    seed: Optional[int] = None
    config_hash: str = ""

    def summary(self) -> str:
        status = "✅ PASS" if self.rtp_pass else "❌ FAIL"
        best = max(self.rounds_cleared) if self.rounds_cleared else 0
        return "\n".join([
            "═══ Monte Carlo: TICKET ECONOMY ═══",
            f"  Sessions:    {self.n_sessions:,}",
            f"  Rounds:      {self.rounds_played:,}",
            f"  Spent:       {self.total_spent:,.2f}",
            f"  Earned:      {self.total_earned:,.2f}",
            f"  Target RTP:  {self.target_rtp*100:.2f}%",
            f"  Measured:    {self.measured_rtp*100:.2f}%",
            f"  Delta:       {self.rtp_delta*100:+.2f}%  (±{self.tolerance*100:.1f}%)",
            f"  RTP Check:   {status}",
            f"  Best Run:    {best} rounds",
            f"  Max Reward:  {self.max_single_reward:.2f}",
            f"  Duration:    {self.duration_seconds:.2f}s",
        ])

    def to_dict(self) -> dict:
        return {
            "n_sessions": self.n_sessions,
            "rounds_played": self.rounds_played,
            "total_spent": round(self.total_spent, 2),
            "total_earned": round(self.total_earned, 2),
            "target_rtp_pct": round(self.target_rtp * 100, 4),
            "measured_rtp_pct": round(self.measured_rtp * 100, 4),
            "rtp_delta_pct": round(self.rtp_delta * 100, 4),
            "rtp_pass": self.rtp_pass,
            "tolerance_pct": self.tolerance * 100,
            "rounds_cleared": {str(k): v for k, v in sorted(self.rounds_cleared.items())},
            "feedback_distribution": self.feedback_distribution,
            "max_single_reward": self.max_single_reward,
            "unaffordable_sessions": self.unaffordable_sessions,
            "duration_s": round(self.duration_seconds, 2),
            "seed": self.seed,
            "config_hash": self.config_hash,
        }


# ═══════════════════════════════════════════════════════════════
# Validator
# ═══════════════════════════════════════════════════════════════

class EconomyMonteCarlo:
    """Drives whole games with a simulated player and aggregates the economy."""

    def __init__(self, config: Optional[TicketConfig] = None, tolerance: float = 0.05,
                 difficulty: Optional[str] = None):
        self.config = config or TicketConfig()
        self.tolerance = tolerance
        self.difficulty = difficulty

    def clear_probability(self, round_number: int) -> float:
        dist = self.config.player_distribution
        if not dist:
            return 1.0
        if round_number in dist:
            return dist[round_number]
        listed = sorted(dist)
        below = [r for r in listed if r < round_number]
        return dist[below[-1]] if below else dist[listed[0]]

    def play_session(self, rng: random.Random) -> tuple[TicketEconomy, int, bool]:
        """One game. Returns (economy, rounds cleared, started)."""
        economy = TicketEconomy(self.config)
        if self.difficulty:
            economy.set_difficulty(self.difficulty)
        machine = RoundStateMachine(economy=economy, rng=random.Random(rng.getrandbits(64)))

        if not machine.start_round():
            return economy, 0, False

        cleared = 0
        max_round = self.config.limits.max_round
        while True:
            if machine.state == GameState.VARIATION_INTRO:
                machine.start_pattern_display()
            machine.start_player_input()

            expected = machine.expected_input()
            if rng.random() < self.clear_probability(machine.round):
                for gem in expected:
                    machine.submit_input(gem)
            else:
                miss_at = rng.randrange(len(expected))
                for gem in expected[:miss_at]:
                    machine.submit_input(gem)
                wrong = [g for g in ALL_GEMSTONES if g != expected[miss_at]]
                machine.submit_input(rng.choice(wrong))

            if machine.state != GameState.ROUND_COMPLETE:
                break
            cleared += 1
            if machine.round > max_round:
                break
            machine.continue_to_next_round()

        return economy, cleared, True

    def run(self, n_sessions: int = 2000, seed: Optional[int] = None) -> SimulationResult:
        if n_sessions <= 0:
            raise ValueError(f"n_sessions must be positive, got {n_sessions}")

        rng = random.Random(seed)
        t0 = time.time()
        total_spent = 0.0
        total_earned = 0.0
        rounds_played = 0
        max_reward = 0.0
        unaffordable = 0
        cleared_counts: Counter = Counter()
        feedback: Counter = Counter()

        for _ in range(n_sessions):
            economy, cleared, started = self.play_session(rng)
            if not started:
                unaffordable += 1
                continue
            total_spent += economy.total_spent
            total_earned += economy.total_earned
            rounds_played += economy.highest_round
            cleared_counts[cleared] += 1
            feedback.update(economy.feedback_distribution)
            if economy.reward_history:
                max_reward = max(max_reward, max(economy.reward_history))

        measured = total_earned / total_spent if total_spent > 0 else 0.0
        delta = measured - self.config.rtp_target
        result = SimulationResult(
            n_sessions=n_sessions,
            rounds_played=rounds_played,
            total_spent=total_spent,
            total_earned=total_earned,
            target_rtp=self.config.rtp_target,
            measured_rtp=measured,
            rtp_delta=delta,
            rtp_pass=abs(delta) <= self.tolerance,
            tolerance=self.tolerance,
            rounds_cleared=dict(cleared_counts),
            feedback_distribution={k: feedback.get(k, 0) for k in FEEDBACK_LEVELS},
            max_single_reward=max_reward,
            unaffordable_sessions=unaffordable,
            duration_seconds=time.time() - t0,
            seed=seed,
            config_hash=self.config.config_hash(),
        )
        logger.info("Monte Carlo: %d sessions, RTP %.4f (target %.4f)",
                    n_sessions, measured, self.config.rtp_target)
        return result
