"""
GEMRECALL — Memory Game Rules Engine

Round state machine, variation selector and ticket economy for a
round-based pattern-memory game. Presentation layers drive it; it never
sleeps, renders or reads files.

Usage:
    from game_engine import new_game_session
    machine = new_game_session(seed=42)
    machine.start_round()
"""

import random
from typing import Optional

from config.ticket_config import TicketConfig
from game_engine.economy import EconomyStats, TicketEconomy
from game_engine.round_machine import (
    RoundStateMachine, display_speed_ms, pattern_length, timer_seconds,
)
from game_engine.types import (
    ALL_GEMSTONES, GameState, Gemstone, RoundTimingConfig, Variation,
    parse_gemstone, parse_variation,
)
from game_engine.variations import VariationEffects, VariationSelector

__all__ = [
    "ALL_GEMSTONES",
    "EconomyStats",
    "GameState",
    "Gemstone",
    "RoundStateMachine",
    "RoundTimingConfig",
    "TicketEconomy",
    "Variation",
    "VariationEffects",
    "VariationSelector",
    "display_speed_ms",
    "new_game_session",
    "parse_gemstone",
    "parse_variation",
    "pattern_length",
    "timer_seconds",
]


def new_game_session(seed: Optional[int] = None,
                     ticket_config: Optional[TicketConfig] = None,
                     with_economy: bool = False) -> RoundStateMachine:
    """Build a state machine with its own seeded random source."""
    rng = random.Random(seed)
    economy = TicketEconomy(ticket_config) if (with_economy or ticket_config is not None) else None
    return RoundStateMachine(economy=economy, rng=rng)
