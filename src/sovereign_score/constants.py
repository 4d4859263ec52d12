"""Shared constants — single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
StrEnum members are str-compatible, so downstream code (JSON payloads,
trace records, LanceDB rows) works unchanged.
"""

from __future__ import annotations

import math
from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class CheckStatus(StrEnum):
    """Outcome of a single BridgeSpec check (T-B-01..T-B-04)."""

    PASSED = "passed"
    FAILED = "failed"
    SOFT_FAILED = "soft_failed"


class Tier(StrEnum):
    """Coarse metal tier derived from the precision estimate."""

    GOLD = "Gold"
    SILVER = "Silver"
    COPPER = "Copper"
    COMMUNITY = "Community"


class Aggregation(StrEnum):
    """How ranked archive similarities collapse into one overlap value."""

    MAX = "max"
    TOP_K_MEAN = "top_k_mean"


# ── Score Domain ─────────────────────────────────────────

DIMENSION_MIN = 0.0
DIMENSION_MAX = 2500.0
OVERLAP_MIN = 0.0
OVERLAP_MAX = 100.0
SCORE_MIN = 0.0
SCORE_MAX = 10_000.0

# Bump whenever the step order or arithmetic of the scorer changes.
PIPELINE_VERSION = "2.1.0-sovereign"
DEFAULT_OPERATOR_ID = "sovereign-primary"

# ── Scoring Policy Defaults ──────────────────────────────

SWEET_SPOT_CENTER = 14.2  # Λ_edge (1.42) × 10
SWEET_SPOT_TOLERANCE = 5.0  # 9.2%..19.2%
MAX_BONUS = 0.10
PENALTY_THRESHOLD = 30.0
PENALTY_FULL_OVERLAP = 98.0
MAX_PENALTY_PERCENT = 20.0
SEED_MULTIPLIER = 1.15
EDGE_MULTIPLIER = 1.12

# ── HHF Geometry ─────────────────────────────────────────

HHF_CONSTANT = 1.12e22  # Λᴴᴴ ≈ 1.12 × 10²²
HHF_SCALE_FACTOR = math.log10(HHF_CONSTANT) / 10
PROXIMITY_DISTANCE_SCALE = 50.0

# ── Redundancy ───────────────────────────────────────────

EMBEDDING_WEIGHT = 0.85
REDUNDANCY_TOP_K = 3
CLOSEST_LIMIT = 3
NEIGHBOR_STATS_LIMIT = 10
COSINE_IDENTITY_TOLERANCE = 1e-9

# ── BridgeSpec ───────────────────────────────────────────

MIN_PREDICTION_CHARS = 20
MIN_FAILURE_CONDITION_CHARS = 20
DEGENERACY_SOFT_FAIL = 0.30
HEDGING_PHRASES = (
    "may vary",
    "might",
    "could be",
    "possibly",
    "in various ways",
    "it depends",
)
# A trailing "*" marks a stem; other markers match whole words only.
FALSIFICATION_MARKERS = ("if", "falsif*", "refut*", "fails", "not")
UNFALSIFIABLE_PHRASES = (
    "cannot be falsified",
    "unfalsifiable",
    "unless something changes",
    "always true",
)

# ── Precision ────────────────────────────────────────────

N_HAT_MAX = 16.0
PRECISION_GAIN = 2.0  # q at full coherence with a clean spec
LOW_PRECISION_COUPLING = 0.2  # c below this is implausible for a passing spec
PASSING_INCONSISTENCY_FLOOR = 0.5
TIER_THRESHOLDS: tuple[tuple[float, Tier], ...] = (
    (12.0, Tier.GOLD),
    (8.0, Tier.SILVER),
    (3.0, Tier.COPPER),
)

# ── Embeddings / Archive ─────────────────────────────────

FALLBACK_EMBEDDING_MODEL = "fallback-hash"
FALLBACK_EMBEDDING_DIMENSIONS = 384
MAX_EMBED_INPUT_CHARS = 8000
ARCHIVE_TABLE = "archive_vectors"

# ── Circuit Breaker / Retry ──────────────────────────────

CB_EMBED_FAILURE_THRESHOLD = 3
CB_EMBED_RECOVERY_TIMEOUT = 30
CB_ARCHIVE_FAILURE_THRESHOLD = 3
CB_ARCHIVE_RECOVERY_TIMEOUT = 60
RETRY_MAX_ATTEMPTS = 3
RETRY_INITIAL_WAIT = 2
RETRY_MAX_WAIT = 30

HASH_PREFIX_CHARS = 8
