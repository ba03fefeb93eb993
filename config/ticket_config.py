"""
GEMRECALL — Ticket Economy Configuration

Schema for the reward economy. Every session consumes one immutable
TicketConfig; loading it from files is the host application's job; this
module only validates already-parsed data.

This module:
  1. Defines frozen Pydantic models for the economy record
  2. Provides the standard default economy
  3. Audits a config and returns human-readable warnings

Usage:
    from config.ticket_config import default_ticket_config, ticket_config_from_dict
    cfg = default_ticket_config()
    cfg = ticket_config_from_dict({"base_reward": 3.0, "game": {"cost_to_play": 5}})
    print(cfg.model_dump_json(indent=2))
"""

from __future__ import annotations

import hashlib
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


ROUND_MULTIPLIER_COUNT = 20

# Rounds past the table pay EXTRAPOLATION_ANCHOR + (round - 20) × EXTRAPOLATION_STEP
EXTRAPOLATION_ANCHOR = 8.00
EXTRAPOLATION_STEP = 1.0

DEFAULT_ROUND_MULTIPLIERS: list[float] = [
    0.01, 0.10, 0.20, 0.35, 0.50, 0.70, 0.90, 1.15, 1.40, 1.70,
    2.00, 2.35, 2.75, 3.20, 3.70, 4.30, 5.00, 5.80, 6.70, 8.00,
]

DEFAULT_VARIATION_BONUSES: dict[str, float] = {
    "none":          1.00,
    "reverse":       1.15,
    "ghost":         1.15,
    "speed_chaos":   1.20,
    "color_shuffle": 1.15,
    "selective":     1.20,
    "reverse_combo": 1.35,
}

DEFAULT_PLAYER_DISTRIBUTION: dict[int, float] = {
    1: 1.00, 2: 0.95, 3: 0.85, 4: 0.75, 5: 0.65,
}


# ═══════════════════════════════════════════════════════════════
# Sub-Models
# ═══════════════════════════════════════════════════════════════

class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class DemoSettings(_Frozen):
    enabled: bool = True
    starting_balance: float = Field(100.0, ge=0)
    allow_reset: bool = True
    show_statistics: bool = True


class GameCostSettings(_Frozen):
    cost_to_play: float = Field(10.0, ge=0)
    ticket_precision: int = Field(2, ge=0, le=6)   # decimals kept on rewards


class DifficultySetting(_Frozen):
    """One entry of the difficulty table. Only reward_multiplier affects payouts."""
    name: str
    reward_multiplier: float = Field(1.0, ge=0)
    pattern_display_time_multiplier: float = 1.0
    response_time_multiplier: float = 1.0
    description: str = ""


class FeedbackThresholds(_Frozen):
    small: float = 1.0
    medium: float = 5.0
    large: float = 10.0
    mega: float = 20.0


class TrackingSettings(_Frozen):
    save_statistics: bool = True                  # keep reward history
    track_rtp: bool = True
    track_distribution: bool = True               # count feedback tiers
    max_history: int = Field(1000, ge=1)


class PayoutLimits(_Frozen):
    max_balance: float = 9999.99
    min_balance: float = 0.0
    max_single_payout: float = 200.0
    max_round: int = Field(50, ge=1)              # Monte Carlo session cap


def _default_difficulties() -> dict[str, DifficultySetting]:
    return {
        "easy": DifficultySetting(
            name="Easy", reward_multiplier=0.75,
            pattern_display_time_multiplier=1.25, response_time_multiplier=1.25,
            description="Slower patterns, smaller rewards",
        ),
        "normal": DifficultySetting(
            name="Normal", description="Standard challenge",
        ),
        "hard": DifficultySetting(
            name="Hard", reward_multiplier=1.5,
            pattern_display_time_multiplier=0.8, response_time_multiplier=0.8,
            description="Faster patterns, bigger rewards",
        ),
    }


# ═══════════════════════════════════════════════════════════════
# Main Config Model
# ═══════════════════════════════════════════════════════════════

class TicketConfig(_Frozen):
    """Complete economy record consumed by TicketEconomy."""
    version: str = "1.0.0"
    demo: DemoSettings = Field(default_factory=DemoSettings)
    game: GameCostSettings = Field(default_factory=GameCostSettings)
    difficulty_settings: dict[str, DifficultySetting] = Field(default_factory=_default_difficulties)
    default_difficulty: str = "normal"
    base_reward: float = Field(2.50, ge=0)
    round_multipliers: list[float] = Field(default_factory=lambda: list(DEFAULT_ROUND_MULTIPLIERS))
    variation_bonuses: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_VARIATION_BONUSES))
    feedback_thresholds: FeedbackThresholds = Field(default_factory=FeedbackThresholds)
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)
    limits: PayoutLimits = Field(default_factory=PayoutLimits)
    rtp_target: float = 0.90
    player_distribution: dict[int, float] = Field(default_factory=lambda: dict(DEFAULT_PLAYER_DISTRIBUTION))

    @field_validator("round_multipliers")
    @classmethod
    def check_round_multipliers(cls, v: list[float]) -> list[float]:
        if len(v) != ROUND_MULTIPLIER_COUNT:
            raise ValueError(
                f"round_multipliers needs exactly {ROUND_MULTIPLIER_COUNT} entries, got {len(v)}"
            )
        if any(m < 0 for m in v):
            raise ValueError("round_multipliers must be non-negative")
        return v

    @field_validator("player_distribution")
    @classmethod
    def check_player_distribution(cls, v: dict[int, float]) -> dict[int, float]:
        for round_number, prob in v.items():
            if round_number < 1:
                raise ValueError(f"player_distribution round {round_number} must be >= 1")
            if not 0.0 <= prob <= 1.0:
                raise ValueError(f"player_distribution[{round_number}]={prob} is not a probability")
        return v

    def config_hash(self) -> str:
        """Short SHA-256 of the payout-relevant fields, for audit output."""
        payload = self.model_dump_json(include={
            "game", "difficulty_settings", "base_reward", "round_multipliers",
            "variation_bonuses", "limits",
        })
        return hashlib.sha256(payload.encode()).hexdigest()[:16]


# ═══════════════════════════════════════════════════════════════
# Builders
# ═══════════════════════════════════════════════════════════════

def default_ticket_config() -> TicketConfig:
    return TicketConfig()


def ticket_config_from_dict(data: dict[str, Any], default_difficulty: Optional[str] = None) -> TicketConfig:
    """Validate an already-parsed mapping. Missing sections take their defaults.

    Raises:
        pydantic.ValidationError on malformed data
    """
    payload = dict(data)
    if default_difficulty:
        payload["default_difficulty"] = default_difficulty
    return TicketConfig.model_validate(payload)


# ═══════════════════════════════════════════════════════════════
# Validation / Audit
# ═══════════════════════════════════════════════════════════════

def validate_ticket_config(config: TicketConfig) -> list[str]:
    """Run sanity checks on a config and return list of warnings."""
    warnings = []

    mults = config.round_multipliers
    for i in range(1, len(mults)):
        if mults[i] < mults[i - 1]:
            warnings.append(
                f"round_multipliers decrease at round {i + 1} ({mults[i - 1]} → {mults[i]});"
                f" rewards will not be monotonic"
            )
            break

    if mults and mults[-1] > EXTRAPOLATION_ANCHOR + EXTRAPOLATION_STEP:
        warnings.append(
            f"round_multipliers end at {mults[-1]}, above the round-21 multiplier "
            f"{EXTRAPOLATION_ANCHOR + EXTRAPOLATION_STEP}; rewards drop after round {len(mults)}"
        )

    if config.default_difficulty not in config.difficulty_settings:
        warnings.append(
            f"default_difficulty '{config.default_difficulty}' not in difficulty_settings "
            f"{sorted(config.difficulty_settings)}; multiplier falls back to 1.00"
        )

    t = config.feedback_thresholds
    if not (t.small <= t.medium <= t.large <= t.mega):
        warnings.append(
            f"feedback_thresholds not ascending: small={t.small} medium={t.medium} "
            f"large={t.large} mega={t.mega}"
        )

    if config.demo.starting_balance < config.game.cost_to_play:
        warnings.append(
            f"starting_balance {config.demo.starting_balance} is below cost_to_play "
            f"{config.game.cost_to_play}; no game can be started"
        )

    if config.limits.max_single_payout > config.limits.max_balance:
        warnings.append(
            f"max_single_payout {config.limits.max_single_payout} exceeds max_balance "
            f"{config.limits.max_balance}"
        )

    if config.limits.min_balance > config.limits.max_balance:
        warnings.append(
            f"min_balance {config.limits.min_balance} exceeds max_balance {config.limits.max_balance}"
        )

    if not 0 < config.rtp_target <= 2:
        warnings.append(f"rtp_target {config.rtp_target} is outside (0, 2]")

    return warnings
