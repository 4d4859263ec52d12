"""Scoring policy — thresholds and multipliers consumed by the scorer.

The documented values are defaults, not law: every field can be
overridden through Settings. The scorer receives a ScoringPolicy
explicitly on each call and never reads ambient configuration.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from sovereign_score.canonical import sha256_hex
from sovereign_score.constants import (
    EDGE_MULTIPLIER,
    MAX_BONUS,
    MAX_PENALTY_PERCENT,
    OVERLAP_MAX,
    PENALTY_FULL_OVERLAP,
    PENALTY_THRESHOLD,
    SEED_MULTIPLIER,
    SWEET_SPOT_CENTER,
    SWEET_SPOT_TOLERANCE,
)
from sovereign_score.errors import ConfigurationError

_CONFIG_ID_CHARS = 16


@dataclass(frozen=True)
class ScoringPolicy:
    """Penalty, bonus and multiplier settings for one scoring run."""

    sweet_spot_center: float = SWEET_SPOT_CENTER
    sweet_spot_tolerance: float = SWEET_SPOT_TOLERANCE
    max_bonus: float = MAX_BONUS
    penalty_threshold: float = PENALTY_THRESHOLD
    penalty_full_overlap: float = PENALTY_FULL_OVERLAP
    max_penalty_percent: float = MAX_PENALTY_PERCENT
    seed_multiplier: float = SEED_MULTIPLIER
    edge_multiplier: float = EDGE_MULTIPLIER
    config_id: str = ""  # empty = derived from the values above

    def __post_init__(self) -> None:
        if not 0 <= self.sweet_spot_center <= OVERLAP_MAX:
            raise ConfigurationError(
                "sweet_spot_center must lie in [0, 100], "
                f"got {self.sweet_spot_center}"
            )
        if self.sweet_spot_tolerance <= 0:
            raise ConfigurationError(
                "sweet_spot_tolerance must be positive"
            )
        if self.max_bonus < 0:
            raise ConfigurationError("max_bonus must be >= 0")
        if not (
            0 <= self.penalty_threshold
            < self.penalty_full_overlap
            <= OVERLAP_MAX
        ):
            raise ConfigurationError(
                "penalty thresholds must satisfy "
                "0 <= penalty_threshold < penalty_full_overlap <= 100"
            )
        if not 0 <= self.max_penalty_percent <= 100:
            raise ConfigurationError(
                "max_penalty_percent must lie in [0, 100]"
            )
        if self.seed_multiplier <= 0 or self.edge_multiplier <= 0:
            raise ConfigurationError(
                "seed_multiplier and edge_multiplier must be positive"
            )

    @property
    def resolved_config_id(self) -> str:
        """Explicit config_id, or a short content hash of the policy."""
        if self.config_id:
            return self.config_id
        values = asdict(self)
        values.pop("config_id")
        return sha256_hex(values)[:_CONFIG_ID_CHARS]


DEFAULT_POLICY = ScoringPolicy()
