"""
GEMRECALL — Ticket Economy (Reward Calculator)

Deterministic currency payout for completed rounds plus the running economy
statistics (balance, spend, earnings, RTP).

Reward formula:
    reward = round_half_up(
        min(max_single_payout,
            base_reward × round_multiplier(round) × variation_bonus × difficulty_multiplier),
        ticket_precision)

round_multiplier is the configured table for rounds 1-20 and
8.00 + (round - 20) × 1.0 beyond it. Missing variation or difficulty keys
resolve to 1.00; lookups never raise.
"""

from __future__ import annotations

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from config.ticket_config import (
    EXTRAPOLATION_ANCHOR, EXTRAPOLATION_STEP, ROUND_MULTIPLIER_COUNT,
    DifficultySetting, TicketConfig,
)
from game_engine.types import VARIATION_BONUS_KEYS, Variation

logger = logging.getLogger("gemrecall.economy")

TABLE_ROUNDS = ROUND_MULTIPLIER_COUNT
DEFAULT_MULTIPLIER = 1.00

FEEDBACK_LEVELS = ("small", "medium", "large", "mega")


def round_half_up(value: float, precision: int) -> float:
    """Round to `precision` decimals, halves away from zero."""
    quantum = Decimal(1).scaleb(-precision)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass
class EconomyStats:
    """Point-in-time statistics for display."""
    balance: float
    total_earned: float
    total_spent: float
    games_played: int
    highest_round: int
    rtp: float
    difficulty: str
    feedback_distribution: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "balance": round(self.balance, 2),
            "total_earned": round(self.total_earned, 2),
            "total_spent": round(self.total_spent, 2),
            "games_played": self.games_played,
            "highest_round": self.highest_round,
            "rtp": round(self.rtp, 4),
            "difficulty": self.difficulty,
            "feedback_distribution": dict(self.feedback_distribution),
        }


class TicketEconomy:
    """Balance, payouts and cumulative statistics for one player."""

    def __init__(self, config: Optional[TicketConfig] = None):
        self.config = config or TicketConfig()
        self.current_difficulty = self.config.default_difficulty
        self._init_counters()

    def _init_counters(self) -> None:
        self.balance = self.config.demo.starting_balance
        self.total_earned = 0.0
        self.total_spent = 0.0
        self.games_played = 0
        self.highest_round = 0
        self.reward_history: deque = deque(maxlen=self.config.tracking.max_history)
        self.feedback_distribution: Counter = Counter()

    # ── Balance ──

    @property
    def game_cost(self) -> float:
        return self.config.game.cost_to_play

    def formatted_balance(self) -> str:
        return f"{self.balance:.{self.config.game.ticket_precision}f}"

    def _clamp_balance(self, value: float) -> float:
        limits = self.config.limits
        return max(limits.min_balance, min(value, limits.max_balance))

    def can_afford_game(self) -> bool:
        return self.balance >= self.game_cost

    def deduct_game_cost(self) -> bool:
        """Charge one game. No mutation when the balance is short."""
        if not self.can_afford_game():
            logger.warning("Insufficient balance: %s < %s", self.formatted_balance(), self.game_cost)
            return False
        self.balance = self._clamp_balance(self.balance - self.game_cost)
        self.total_spent += self.game_cost
        self.games_played += 1
        return True

    def add_reward(self, amount: float) -> None:
        self.balance = self._clamp_balance(self.balance + amount)
        self.total_earned += amount

        tracking = self.config.tracking
        if tracking.save_statistics:
            self.reward_history.append(amount)
        if tracking.track_distribution:
            self.feedback_distribution[self.feedback_level(amount)] += 1
        logger.info("Reward +%s → balance %s", amount, self.formatted_balance())

    # ── Rewards ──

    def round_multiplier(self, round_number: int) -> float:
        if round_number <= 0:
            return 0.0
        table = self.config.round_multipliers
        if round_number <= len(table):
            return table[round_number - 1]
        return EXTRAPOLATION_ANCHOR + (round_number - TABLE_ROUNDS) * EXTRAPOLATION_STEP

    def variation_bonus(self, variation: Optional[Variation]) -> float:
        key = VARIATION_BONUS_KEYS.get(variation or Variation.NONE)
        return self.config.variation_bonuses.get(key, DEFAULT_MULTIPLIER)

    def difficulty_multiplier(self) -> float:
        setting = self.difficulty_settings()
        return setting.reward_multiplier if setting else DEFAULT_MULTIPLIER

    def calculate_reward(self, round_number: int, variation: Optional[Variation]) -> float:
        reward = (self.config.base_reward
                  * self.round_multiplier(round_number)
                  * self.variation_bonus(variation)
                  * self.difficulty_multiplier())
        reward = min(reward, self.config.limits.max_single_payout)
        return round_half_up(reward, self.config.game.ticket_precision)

    def next_round_reward(self, current_round: int, variation: Optional[Variation]) -> float:
        return self.calculate_reward(current_round + 1, variation)

    def feedback_level(self, amount: float) -> str:
        t = self.config.feedback_thresholds
        if amount >= t.mega:
            return "mega"
        if amount >= t.large:
            return "large"
        if amount >= t.medium:
            return "medium"
        return "small"

    # ── Difficulty ──

    def set_difficulty(self, difficulty: str) -> bool:
        if difficulty not in self.config.difficulty_settings:
            logger.warning("Unknown difficulty '%s'; keeping '%s'", difficulty, self.current_difficulty)
            return False
        self.current_difficulty = difficulty
        return True

    def difficulty_settings(self) -> Optional[DifficultySetting]:
        return self.config.difficulty_settings.get(self.current_difficulty)

    # ── Statistics ──

    def update_highest_round(self, round_number: int) -> None:
        if round_number > self.highest_round:
            self.highest_round = round_number

    def rtp(self) -> float:
        if self.total_spent == 0:
            return 0.0
        return self.total_earned / self.total_spent

    def stats(self) -> EconomyStats:
        return EconomyStats(
            balance=self.balance,
            total_earned=self.total_earned,
            total_spent=self.total_spent,
            games_played=self.games_played,
            highest_round=self.highest_round,
            rtp=self.rtp(),
            difficulty=self.current_difficulty,
            feedback_distribution={k: self.feedback_distribution.get(k, 0) for k in FEEDBACK_LEVELS},
        )

    def reset(self) -> None:
        """New-session semantics: balance back to start, every statistic to zero."""
        self._init_counters()
        logger.info("Economy reset (balance %s)", self.formatted_balance())
