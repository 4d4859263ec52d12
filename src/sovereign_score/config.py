"""Environment-based configuration and toggle loading."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pydantic import ValidationError as PydanticValidationError
from pydantic import field_validator
from pydantic_settings import BaseSettings

from sovereign_score.constants import (
    ARCHIVE_TABLE,
    CLOSEST_LIMIT,
    DEFAULT_OPERATOR_ID,
    EDGE_MULTIPLIER,
    EMBEDDING_WEIGHT,
    FALLBACK_EMBEDDING_DIMENSIONS,
    MAX_BONUS,
    MAX_PENALTY_PERCENT,
    PENALTY_FULL_OVERLAP,
    PENALTY_THRESHOLD,
    PROXIMITY_DISTANCE_SCALE,
    REDUNDANCY_TOP_K,
    SEED_MULTIPLIER,
    SWEET_SPOT_CENTER,
    SWEET_SPOT_TOLERANCE,
    Aggregation,
)
from sovereign_score.errors import ConfigurationError
from sovereign_score.scoring.policy import ScoringPolicy
from sovereign_score.scoring.schemas import ScoringToggles
from sovereign_score.vectors.schemas import RedundancyConfig

logger = logging.getLogger(__name__)

# Persisted toggle rows predate the *_enabled names.
_LEGACY_TOGGLE_KEYS = {
    "overlap_on": "overlap_enabled",
    "seed_on": "seed_enabled",
    "edge_on": "edge_enabled",
    "metal_policy_on": "metal_policy_enabled",
}


class Settings(BaseSettings):
    """Reads from .env file and SOVEREIGN_* environment variables."""

    # Scoring policy
    sweet_spot_center: float = SWEET_SPOT_CENTER
    sweet_spot_tolerance: float = SWEET_SPOT_TOLERANCE
    max_bonus: float = MAX_BONUS
    penalty_threshold: float = PENALTY_THRESHOLD
    penalty_full_overlap: float = PENALTY_FULL_OVERLAP
    max_penalty_percent: float = MAX_PENALTY_PERCENT
    seed_multiplier: float = SEED_MULTIPLIER
    edge_multiplier: float = EDGE_MULTIPLIER
    config_id: str = ""  # empty = content hash of the policy

    # Provenance
    operator_id: str = DEFAULT_OPERATOR_ID
    sandbox_id: str | None = None

    # Redundancy
    redundancy_aggregation: Aggregation = Aggregation.MAX
    redundancy_top_k: int = REDUNDANCY_TOP_K
    redundancy_closest_limit: int = CLOSEST_LIMIT
    embedding_weight: float = EMBEDDING_WEIGHT
    proximity_distance_scale: float = PROXIMITY_DISTANCE_SCALE

    # Embeddings
    openai_api_key: str = ""
    litellm_embedding_model: str = "openai/text-embedding-3-small"
    embedding_timeout_seconds: int = 30
    fallback_embedding_dimensions: int = FALLBACK_EMBEDDING_DIMENSIONS

    # Archive (LanceDB)
    lancedb_uri: str = "data/lancedb"
    archive_table: str = ARCHIVE_TABLE

    # Logging
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {v}")
        return level

    @property
    def scoring_policy(self) -> ScoringPolicy:
        """Frozen policy object handed to the scorer on every call."""
        return ScoringPolicy(
            sweet_spot_center=self.sweet_spot_center,
            sweet_spot_tolerance=self.sweet_spot_tolerance,
            max_bonus=self.max_bonus,
            penalty_threshold=self.penalty_threshold,
            penalty_full_overlap=self.penalty_full_overlap,
            max_penalty_percent=self.max_penalty_percent,
            seed_multiplier=self.seed_multiplier,
            edge_multiplier=self.edge_multiplier,
            config_id=self.config_id,
        )

    @property
    def redundancy_config(self) -> RedundancyConfig:
        return RedundancyConfig(
            aggregation=self.redundancy_aggregation,
            top_k=self.redundancy_top_k,
            closest_limit=self.redundancy_closest_limit,
            embedding_weight=self.embedding_weight,
            proximity_distance_scale=self.proximity_distance_scale,
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "SOVEREIGN_",
        "extra": "ignore",
    }


def load_toggles(raw: Mapping[str, object]) -> ScoringToggles:
    """Parse a persisted toggle row into ScoringToggles.

    Accepts the legacy ``*_on`` keys. Every toggle must be present and
    boolean: a missing or malformed value raises ConfigurationError
    rather than being guessed.
    """
    normalized: dict[str, object] = {}
    for key, value in raw.items():
        name = _LEGACY_TOGGLE_KEYS.get(key, key)
        if name in normalized:
            raise ConfigurationError(f"toggle {name!r} given twice")
        normalized[name] = value
    try:
        return ScoringToggles.model_validate(normalized)
    except PydanticValidationError as exc:
        fields = sorted(
            {".".join(str(p) for p in err["loc"]) for err in exc.errors()}
        )
        raise ConfigurationError(
            f"invalid toggle configuration: {', '.join(fields)}"
        ) from exc
