"""
GEMRECALL — Core Types

Enums shared by the round engine, the variation selector and the economy,
plus the immutable timing config and the economy collaborator contract.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class GameState(str, Enum):
    INITIALIZATION  = "INITIALIZATION"
    CALIBRATION     = "CALIBRATION"
    VARIATION_INTRO = "VARIATION_INTRO"
    PATTERN_DISPLAY = "PATTERN_DISPLAY"
    PLAYER_INPUT    = "PLAYER_INPUT"
    ROUND_COMPLETE  = "ROUND_COMPLETE"
    ROUND_FAILED    = "ROUND_FAILED"


class Gemstone(str, Enum):
    EMERALD  = "EMERALD"
    TRILLION = "TRILLION"
    MARQUISE = "MARQUISE"
    CUSHION  = "CUSHION"


class Variation(str, Enum):
    NONE                = "NONE"
    REVERSE             = "REVERSE"
    GHOST               = "GHOST"
    SPEED_CHAOS         = "SPEED_CHAOS"
    COLOR_SHUFFLE       = "COLOR_SHUFFLE"
    SELECTIVE_ATTENTION = "SELECTIVE_ATTENTION"
    REVERSE_COMBINATION = "REVERSE_COMBINATION"


ALL_GEMSTONES: tuple[Gemstone, ...] = tuple(Gemstone)

# Variations whose expected input is the pattern read back to front
REVERSED_INPUT_VARIATIONS = frozenset({Variation.REVERSE, Variation.REVERSE_COMBINATION})

# Key used in the ticket config's variation_bonuses mapping
VARIATION_BONUS_KEYS: dict[Variation, str] = {
    Variation.NONE:                "none",
    Variation.REVERSE:             "reverse",
    Variation.GHOST:               "ghost",
    Variation.SPEED_CHAOS:         "speed_chaos",
    Variation.COLOR_SHUFFLE:       "color_shuffle",
    Variation.SELECTIVE_ATTENTION: "selective",
    Variation.REVERSE_COMBINATION: "reverse_combo",
}


def parse_gemstone(value: str | Gemstone) -> Gemstone:
    """Resolve a gem name coming from outside the core (HTTP, CLI)."""
    if isinstance(value, Gemstone):
        return value
    try:
        return Gemstone(str(value).strip().upper())
    except ValueError:
        raise ValueError(
            f"Unknown gemstone: {value}. Available: {[g.value for g in Gemstone]}"
        ) from None


def parse_variation(value: str | Variation) -> Variation:
    """Resolve a variation name coming from outside the core (HTTP, CLI)."""
    if isinstance(value, Variation):
        return value
    try:
        return Variation(str(value).strip().upper())
    except ValueError:
        raise ValueError(
            f"Unknown variation: {value}. Available: {[v.value for v in Variation]}"
        ) from None


# ═══════════════════════════════════════════════════════════════
# Timing Config
# ═══════════════════════════════════════════════════════════════

class RoundTimingConfig(BaseModel):
    """Pattern length, display pacing and input timer parameters."""
    model_config = ConfigDict(frozen=True)

    initial_pattern_length: int = Field(4, ge=1)
    length_increase_interval: int = Field(3, ge=1)
    initial_timer_seconds: float = 8.0
    min_timer_seconds: float = 3.0
    timer_decrease_per_round: float = 0.25
    initial_display_speed: int = 750              # ms per gem
    min_display_speed: int = 300
    speed_decrease_per_round: int = 25
    calibration_display_speed: int = 1000         # round 1 only
    calibration_timer_seconds: float = 10.0


DEFAULT_TIMING = RoundTimingConfig()


# ═══════════════════════════════════════════════════════════════
# Economy Collaborator
# ═══════════════════════════════════════════════════════════════

class EconomyCollaborator(Protocol):
    """What the round engine needs from an economy. TicketEconomy implements it."""

    def can_afford_game(self) -> bool: ...

    def deduct_game_cost(self) -> bool: ...

    def calculate_reward(self, round_number: int, variation: Variation) -> float: ...

    def add_reward(self, amount: float) -> None: ...

    def update_highest_round(self, round_number: int) -> None: ...

    def next_round_reward(self, current_round: int, variation: Variation) -> float: ...

