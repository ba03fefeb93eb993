"""
GEMRECALL — Variation Selector

Owns the catalog of gameplay-modifying rules: which are unlocked at which
round, which one is active for the current 3-round window, and the per-round
display parameters each one produces.

Unlock schedule (cumulative):
  round 1      → none
  rounds 2-4   → Reverse
  rounds 5-7   → + Ghost
  rounds 8-10  → + Speed Chaos
  rounds 11-13 → + Color Shuffle
  rounds 14-16 → + Selective Attention
  round 17+    → Reverse Combination only (Reverse + one secondary effect)

Usage:
    from game_engine.variations import VariationSelector
    selector = VariationSelector(rng=random.Random(7))
    variation = selector.select_variation(round_number)
    effects = selector.effects_for(variation, pattern, round_number)
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Optional, Sequence

from game_engine.types import (
    ALL_GEMSTONES, REVERSED_INPUT_VARIATIONS, Gemstone, Variation,
)

logger = logging.getLogger("gemrecall.variations")

COMBINATION_START_ROUND = 17
WINDOW_LENGTH = 3

# (last round of window, unlocked pool); first match wins
UNLOCK_SCHEDULE: list[tuple[int, list[Variation]]] = [
    (1,  []),
    (4,  [Variation.REVERSE]),
    (7,  [Variation.REVERSE, Variation.GHOST]),
    (10, [Variation.REVERSE, Variation.GHOST, Variation.SPEED_CHAOS]),
    (13, [Variation.REVERSE, Variation.GHOST, Variation.SPEED_CHAOS,
          Variation.COLOR_SHUFFLE]),
    (16, [Variation.REVERSE, Variation.GHOST, Variation.SPEED_CHAOS,
          Variation.COLOR_SHUFFLE, Variation.SELECTIVE_ATTENTION]),
]

COMBINATION_BASES: list[Variation] = [
    Variation.GHOST,
    Variation.SPEED_CHAOS,
    Variation.COLOR_SHUFFLE,
    Variation.SELECTIVE_ATTENTION,
]

GHOST_OPACITY = {2: 0.4, 3: 0.35, 4: 0.3}
GHOST_OPACITY_DEFAULT = 0.4
GHOST_OPACITY_COMBINATION = 0.2

CHAOS_TIMING_RANGES = {8: (300, 900), 9: (250, 950), 10: (200, 1000)}
CHAOS_TIMING_DEFAULT = (300, 900)
CHAOS_TIMING_COMBINATION = (150, 1200)

SHINING_PERCENTAGE = {5: 0.6, 6: 0.5, 7: 0.4}
SHINING_PERCENTAGE_DEFAULT = 0.6
SHINING_PERCENTAGE_COMBINATION = 0.3


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


# ═══════════════════════════════════════════════════════════════
# Composed Output
# ═══════════════════════════════════════════════════════════════

@dataclass
class VariationEffects:
    """Everything a presentation layer needs to render one round.

    Only `expected_input` influences validation; the rest is display data.
    """
    variation: Variation
    combination_base: Optional[Variation] = None
    reversed_input: bool = False
    expected_input: list[Gemstone] = field(default_factory=list)
    ghost_indices: list[int] = field(default_factory=list)
    ghost_opacity: Optional[float] = None
    shining_indices: list[int] = field(default_factory=list)
    color_map: dict[Gemstone, Gemstone] = field(default_factory=dict)
    chaos_timings: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "variation": self.variation.value,
            "combination_base": self.combination_base.value if self.combination_base else None,
            "reversed_input": self.reversed_input,
            "expected_input": [g.value for g in self.expected_input],
            "ghost_indices": list(self.ghost_indices),
            "ghost_opacity": self.ghost_opacity,
            "shining_indices": list(self.shining_indices),
            "color_map": {k.value: v.value for k, v in self.color_map.items()},
            "chaos_timings": list(self.chaos_timings),
        }


# ═══════════════════════════════════════════════════════════════
# Selector
# ═══════════════════════════════════════════════════════════════

class VariationSelector:
    """Picks and persists the active variation and generates its parameters."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.current_variation: Optional[Variation] = None
        self.previous_variation: Optional[Variation] = None
        self.combination_base: Optional[Variation] = None
        self.tutorials_shown: set[Variation] = set()
        self.variation_start_round = 0

    # ── Schedule ──

    def available_variations(self, round_number: int) -> list[Variation]:
        """Unlocked pool for a round (a fresh list each call)."""
        if round_number <= 1:
            return []
        for last_round, pool in UNLOCK_SCHEDULE:
            if round_number <= last_round:
                return list(pool)
        return [Variation.REVERSE_COMBINATION]

    @staticmethod
    def should_reselect(round_number: int) -> bool:
        """Selection points: round 2 and every 3 rounds after (5, 8, 11, ...)."""
        return round_number >= 2 and (round_number - 2) % WINDOW_LENGTH == 0

    def select_variation(self, round_number: int) -> Optional[Variation]:
        """Variation active for this round; re-rolled only at selection points."""
        available = self.available_variations(round_number)
        if not available:
            return None

        if self.should_reselect(round_number) or self.current_variation is None:
            self.variation_start_round = round_number

            if round_number >= COMBINATION_START_ROUND:
                bases = [b for b in COMBINATION_BASES if b != self.combination_base]
                self.combination_base = self.rng.choice(bases)
                self.current_variation = Variation.REVERSE_COMBINATION
            else:
                pool = [v for v in available if v != self.previous_variation]
                if not pool:
                    pool = available
                self.current_variation = self.rng.choice(pool)

            self.previous_variation = self.current_variation
            logger.debug(
                "Round %d: selected %s (base=%s)", round_number,
                self.current_variation.value,
                self.combination_base.value if self.combination_base else None,
            )

        return self.current_variation

    def variation_difficulty(self, round_number: int) -> int:
        """Position of the round inside its 3-round window: 1, 2 or 3."""
        if round_number <= 1:
            return 1
        return min(WINDOW_LENGTH, (round_number - 2) % WINDOW_LENGTH + 1)

    # ── Input rules ──

    def expected_input(self, pattern: Sequence[Gemstone], variation: Optional[Variation]) -> list[Gemstone]:
        if variation in REVERSED_INPUT_VARIATIONS:
            return list(reversed(pattern))
        return list(pattern)

    def validate_input(self, player_input: Sequence[Gemstone], pattern: Sequence[Gemstone],
                       variation: Optional[Variation]) -> bool:
        """Full-sequence check of a finished reproduction."""
        expected = self.expected_input(pattern, variation)
        if len(player_input) != len(expected):
            return False
        return all(gem == want for gem, want in zip(player_input, expected))

    # ── Parameter generators ──

    def ghost_indices(self, pattern: Sequence[Gemstone], round_number: int) -> list[int]:
        """One random position rendered at reduced opacity."""
        if not pattern:
            return []
        return [self.rng.randrange(len(pattern))]

    def ghost_opacity(self, round_number: int) -> float:
        if round_number >= COMBINATION_START_ROUND:
            return GHOST_OPACITY_COMBINATION
        return GHOST_OPACITY.get(round_number, GHOST_OPACITY_DEFAULT)

    def chaos_timing_range(self, round_number: int) -> tuple[int, int]:
        if round_number >= COMBINATION_START_ROUND:
            return CHAOS_TIMING_COMBINATION
        return CHAOS_TIMING_RANGES.get(round_number, CHAOS_TIMING_DEFAULT)

    def chaos_timings(self, pattern: Sequence[Gemstone], round_number: int) -> list[int]:
        """Independent display duration (ms, inclusive range) per pattern position."""
        low, high = self.chaos_timing_range(round_number)
        return [self.rng.randint(low, high) for _ in pattern]

    def shuffled_colors(self) -> dict[Gemstone, Gemstone]:
        """Random bijection over the gem alphabet. Identity pairs are allowed."""
        shuffled = list(ALL_GEMSTONES)
        self.rng.shuffle(shuffled)
        return dict(zip(ALL_GEMSTONES, shuffled))

    def shining_percentage(self, round_number: int) -> float:
        if round_number >= COMBINATION_START_ROUND:
            return SHINING_PERCENTAGE_COMBINATION
        return SHINING_PERCENTAGE.get(round_number, SHINING_PERCENTAGE_DEFAULT)

    def shining_indices(self, pattern: Sequence[Gemstone], round_number: int) -> list[int]:
        """Sorted, unique positions that shine; at least one."""
        if not pattern:
            return []
        count = max(1, _round_half_up(len(pattern) * self.shining_percentage(round_number)))
        count = min(count, len(pattern))
        return sorted(self.rng.sample(range(len(pattern)), count))

    @staticmethod
    def filter_shining_gems(pattern: Sequence[Gemstone], shining_indices: Sequence[int]) -> list[Gemstone]:
        return [pattern[i] for i in shining_indices]

    # ── Composition ──

    def effects_for(self, variation: Optional[Variation], pattern: Sequence[Gemstone],
                    round_number: int) -> VariationEffects:
        """Apply the variation's transforms to one pattern.

        Reverse Combination is reverse order followed by the effect of the
        current combination base; every other variation applies its own.
        """
        variation = variation or Variation.NONE
        base = self.combination_base if variation == Variation.REVERSE_COMBINATION else None
        effects = VariationEffects(
            variation=variation,
            combination_base=base,
            reversed_input=variation in REVERSED_INPUT_VARIATIONS,
            expected_input=self.expected_input(pattern, variation),
        )

        secondary = base if variation == Variation.REVERSE_COMBINATION else variation
        if secondary == Variation.GHOST:
            effects.ghost_indices = self.ghost_indices(pattern, round_number)
            effects.ghost_opacity = self.ghost_opacity(round_number)
        elif secondary == Variation.SPEED_CHAOS:
            effects.chaos_timings = self.chaos_timings(pattern, round_number)
        elif secondary == Variation.COLOR_SHUFFLE:
            effects.color_map = self.shuffled_colors()
        elif secondary == Variation.SELECTIVE_ATTENTION:
            effects.shining_indices = self.shining_indices(pattern, round_number)
        return effects

    # ── Tutorials ──

    def has_shown_tutorial(self, variation: Variation) -> bool:
        return variation in self.tutorials_shown

    def mark_tutorial_shown(self, variation: Variation) -> None:
        if variation not in self.tutorials_shown:
            logger.info("Intro shown for %s", variation.value)
        self.tutorials_shown.add(variation)

    def reset(self) -> None:
        self.current_variation = None
        self.previous_variation = None
        self.combination_base = None
        self.tutorials_shown.clear()
        self.variation_start_round = 0
