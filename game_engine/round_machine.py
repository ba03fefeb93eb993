"""
GEMRECALL — Round State Machine

Central orchestrator of a memory-game session: generates patterns, validates
player input, advances rounds and scores them.

States:
  INITIALIZATION → CALIBRATION (round 1) → [VARIATION_INTRO] → PATTERN_DISPLAY
  → PLAYER_INPUT → ROUND_COMPLETE | ROUND_FAILED

ROUND_COMPLETE loops back through start_round() / continue_to_next_round();
the play cost is charged only when a game leaves INITIALIZATION.
ROUND_FAILED is terminal until reset_session().

Every operation is an immediate transition. Calls outside their legal source
state return False and change nothing. All pacing belongs to the driver.

Usage:
    from game_engine import new_game_session
    machine = new_game_session(seed=42)
    machine.start_round()
    machine.start_player_input()
    for gem in machine.expected_input():
        machine.submit_input(gem)
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from game_engine.types import (
    ALL_GEMSTONES, DEFAULT_TIMING, REVERSED_INPUT_VARIATIONS,
    EconomyCollaborator, GameState, Gemstone, RoundTimingConfig, Variation,
)
from game_engine.variations import VariationEffects, VariationSelector

logger = logging.getLogger("gemrecall.engine")

FALLBACK_VARIATION_BONUS = 1.15
SCORE_PER_TICKET = 100

START_STATES = (GameState.INITIALIZATION, GameState.ROUND_COMPLETE)
DISPLAY_STATES = (GameState.CALIBRATION, GameState.VARIATION_INTRO, GameState.PATTERN_DISPLAY)
INPUT_START_STATES = (GameState.CALIBRATION, GameState.PATTERN_DISPLAY)


# ═══════════════════════════════════════════════════════════════
# Difficulty Formulas
# ═══════════════════════════════════════════════════════════════

def pattern_length(round_number: int, timing: RoundTimingConfig = DEFAULT_TIMING) -> int:
    """4 for calibration, then +1 every 3 rounds."""
    if round_number <= 1:
        return timing.initial_pattern_length
    return timing.initial_pattern_length + (round_number - 1) // timing.length_increase_interval


def display_speed_ms(round_number: int, timing: RoundTimingConfig = DEFAULT_TIMING) -> int:
    """Milliseconds each gem stays lit."""
    if round_number == 1:
        return timing.calibration_display_speed
    return max(timing.min_display_speed,
               timing.initial_display_speed - round_number * timing.speed_decrease_per_round)


def timer_seconds(round_number: int, timing: RoundTimingConfig = DEFAULT_TIMING) -> float:
    """Seconds the player gets to reproduce the pattern."""
    if round_number == 1:
        return timing.calibration_timer_seconds
    return max(timing.min_timer_seconds,
               timing.initial_timer_seconds - round_number * timing.timer_decrease_per_round)


# ═══════════════════════════════════════════════════════════════
# State Machine
# ═══════════════════════════════════════════════════════════════

class RoundStateMachine:
    """Owns the round session. The economy is optional and only consulted at
    round start (cost) and round end (reward, highest round)."""

    def __init__(self, economy: Optional[EconomyCollaborator] = None,
                 rng: Optional[random.Random] = None,
                 variation_selector: Optional[VariationSelector] = None,
                 timing: RoundTimingConfig = DEFAULT_TIMING):
        self.rng = rng or random.Random()
        self.timing = timing
        self._economy = economy
        self._selector = variation_selector or VariationSelector(rng=self.rng)
        self._last_reward = 0.0
        self._initialize()

    def _initialize(self) -> None:
        self._state = GameState.INITIALIZATION
        self._round = 1
        self._pattern: list[Gemstone] = []
        self._player_input: list[Gemstone] = []
        self._score = 0
        self._current_variation = Variation.NONE
        self._combination_base: Optional[Variation] = None
        self._variation_start_round = 0
        self._effects: Optional[VariationEffects] = None
        self._timer_seconds = timer_seconds(self._round, self.timing)
        self._display_speed = display_speed_ms(self._round, self.timing)

    # ── Economy wiring ──

    @property
    def economy(self) -> Optional[EconomyCollaborator]:
        return self._economy

    def attach_economy(self, economy: EconomyCollaborator) -> None:
        self._economy = economy

    def detach_economy(self) -> None:
        self._economy = None

    def can_start_round(self) -> bool:
        if self._state not in START_STATES:
            return False
        if self._economy is None or self._state != GameState.INITIALIZATION:
            return True
        return self._economy.can_afford_game()

    # ── Transitions ──

    def start_round(self) -> bool:
        """Begin the current round.

        The play cost is charged once per game, when leaving INITIALIZATION
        with an economy attached. Later rounds start free.
        """
        if self._state not in START_STATES:
            logger.debug("start_round rejected in %s", self._state.value)
            return False
        if (self._economy is not None and self._state == GameState.INITIALIZATION
                and not self._economy.deduct_game_cost()):
            logger.warning("Game not started: insufficient balance")
            return False
        self._begin_round()
        return True

    def continue_to_next_round(self) -> bool:
        """Start the next round after a completed one, without charging."""
        if self._state != GameState.ROUND_COMPLETE:
            logger.debug("continue_to_next_round rejected in %s", self._state.value)
            return False
        self._begin_round()
        return True

    def _begin_round(self) -> None:
        if self._round == 1:
            self._state = GameState.CALIBRATION
            self._pattern = self._calibration_pattern()
            self._effects = self._selector.effects_for(Variation.NONE, self._pattern, self._round)
            logger.debug("Calibration pattern: %s", [g.value for g in self._pattern])
            return

        intro = self._check_for_new_variation()
        self._pattern = self._random_pattern(pattern_length(self._round, self.timing))
        self._effects = self._selector.effects_for(self._current_variation, self._pattern, self._round)
        self._state = GameState.VARIATION_INTRO if intro else GameState.PATTERN_DISPLAY
        logger.debug("Round %d: %s, variation=%s, length=%d", self._round, self._state.value,
                     self._current_variation.value, len(self._pattern))

    def _check_for_new_variation(self) -> bool:
        """Sync with the selector; True when a never-introduced variation just started."""
        selected = self._selector.select_variation(self._round)
        if selected is None:
            return False

        is_new = selected != self._current_variation
        self._current_variation = selected
        self._combination_base = self._selector.combination_base
        self._variation_start_round = self._selector.variation_start_round
        if not is_new or self._selector.has_shown_tutorial(selected):
            return False
        self._selector.mark_tutorial_shown(selected)
        return True

    def _calibration_pattern(self) -> list[Gemstone]:
        gems = list(ALL_GEMSTONES)
        self.rng.shuffle(gems)
        return gems

    def _random_pattern(self, length: int) -> list[Gemstone]:
        return [self.rng.choice(ALL_GEMSTONES) for _ in range(length)]

    def start_pattern_display(self) -> bool:
        if self._state not in DISPLAY_STATES:
            logger.debug("start_pattern_display rejected in %s", self._state.value)
            return False
        self._state = GameState.PATTERN_DISPLAY
        self._player_input = []
        return True

    def start_player_input(self) -> bool:
        if self._state not in INPUT_START_STATES:
            logger.debug("start_player_input rejected in %s", self._state.value)
            return False
        self._state = GameState.PLAYER_INPUT
        self._player_input = []
        self._timer_seconds = timer_seconds(self._round, self.timing)
        return True

    def submit_input(self, gem: Gemstone) -> bool:
        """Check one selection. A wrong gem fails the round and is not recorded."""
        if self._state != GameState.PLAYER_INPUT:
            logger.debug("submit_input rejected in %s", self._state.value)
            return False

        expected = self.expected_gem()
        if gem != expected:
            logger.info("Round %d failed at position %d: expected %s, got %s", self._round,
                        len(self._player_input), expected.value if expected else None,
                        getattr(gem, "value", gem))
            self._fail_round()
            return False

        self._player_input.append(expected)
        if len(self._player_input) == len(self._pattern):
            self._complete_round()
        return True

    def _complete_round(self) -> None:
        self._state = GameState.ROUND_COMPLETE

        if self._economy is not None:
            self._last_reward = self._economy.calculate_reward(self._round, self._current_variation)
            self._economy.add_reward(self._last_reward)
            self._economy.update_highest_round(self._round)
            self._score += round(self._last_reward * SCORE_PER_TICKET)
        else:
            self._score += self._fallback_round_score()

        logger.info("Round %d complete (variation=%s, reward=%s, score=%d)", self._round,
                    self._current_variation.value, self._last_reward, self._score)
        self._round += 1
        self._display_speed = display_speed_ms(self._round, self.timing)

    def _fail_round(self) -> None:
        self._state = GameState.ROUND_FAILED
        self._last_reward = 0.0
        if self._economy is not None:
            self._economy.update_highest_round(self._round)

    def _fallback_round_score(self) -> int:
        bonus = FALLBACK_VARIATION_BONUS if self._current_variation != Variation.NONE else 1.0
        return round(100 * self._round * bonus)

    def reset_session(self) -> None:
        """Back to INITIALIZATION from any state. The economy is left untouched."""
        self._initialize()
        self._last_reward = 0.0
        self._selector.reset()
        logger.debug("Session reset")

    # ── Derived views ──

    def expected_gem(self) -> Optional[Gemstone]:
        """Gem the next submission must match, or None when nothing is expected."""
        if self._state != GameState.PLAYER_INPUT:
            return None
        index = len(self._player_input)
        if index >= len(self._pattern):
            return None
        if self._current_variation in REVERSED_INPUT_VARIATIONS:
            return self._pattern[len(self._pattern) - 1 - index]
        return self._pattern[index]

    def expected_input(self) -> list[Gemstone]:
        return self._selector.expected_input(self._pattern, self._current_variation)

    def current_effects(self) -> VariationEffects:
        """Effects generated for the current pattern; stable until the next round."""
        if self._effects is None:
            return VariationEffects(variation=self._current_variation)
        return self._effects

    def next_round_reward(self) -> float:
        if self._economy is None:
            return 0.0
        return self._economy.next_round_reward(self._round, self._current_variation)

    # ── Accessors ──

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def round(self) -> int:
        return self._round

    @property
    def pattern(self) -> list[Gemstone]:
        return list(self._pattern)

    @property
    def player_input(self) -> list[Gemstone]:
        return list(self._player_input)

    @property
    def current_variation(self) -> Variation:
        return self._current_variation

    @property
    def combination_base(self) -> Optional[Variation]:
        return self._combination_base

    @property
    def variation_start_round(self) -> int:
        return self._variation_start_round

    @property
    def variation_selector(self) -> VariationSelector:
        return self._selector

    @property
    def timer_seconds(self) -> float:
        return self._timer_seconds

    @property
    def display_speed(self) -> int:
        return self._display_speed

    @property
    def score(self) -> int:
        return self._score

    @property
    def last_reward(self) -> float:
        return self._last_reward

    def snapshot(self) -> dict:
        """JSON-ready view for drivers."""
        return {
            "state": self._state.value,
            "round": self._round,
            "pattern": [g.value for g in self._pattern],
            "player_input": [g.value for g in self._player_input],
            "current_variation": self._current_variation.value,
            "combination_base": self._combination_base.value if self._combination_base else None,
            "variation_start_round": self._variation_start_round,
            "timer_seconds": self._timer_seconds,
            "display_speed": self._display_speed,
            "score": self._score,
            "last_reward": self._last_reward,
        }
