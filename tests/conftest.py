"""Shared test fixtures — fixed clock, canonical inputs, isolated settings."""

import os

# Never reach a real embedding provider from the test suite. Settings()
# built without an explicit key falls back to the hash embedding.
os.environ["SOVEREIGN_OPENAI_API_KEY"] = ""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from sovereign_score.config import Settings
from sovereign_score.scoring.schemas import (
    Bridge,
    BridgeSpec,
    Dimensions,
    ScoringToggles,
)

FIXED_TIMESTAMP = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)
FIXED_EXECUTION_ID = "00000000-0000-4000-8000-000000000001"
FIXED_SEED = "seed-0001"


@pytest.fixture
def all_on() -> ScoringToggles:
    return ScoringToggles.all_on()


@pytest.fixture
def all_off() -> ScoringToggles:
    return ScoringToggles.all_off()


@pytest.fixture
def even_dimensions() -> Dimensions:
    """Four dimensions of 2000 each: composite 8000."""
    return Dimensions(
        novelty=2000, density=2000, coherence=2000, alignment=2000
    )


@pytest.fixture
def valid_bridge() -> Bridge:
    return Bridge(
        claim_id="c1",
        regime="low-temperature hydrogen plasma",
        observables=("Balmer line ratio",),
        differential_prediction=(
            "Balmer ratio rises by 12% over the baseline model"
        ),
        failure_condition=(
            "Refuted if the ratio stays within 2% of baseline"
        ),
        floor_constraints=("electron density above 1e18 m^-3",),
    )


@pytest.fixture
def valid_spec(valid_bridge: Bridge) -> BridgeSpec:
    return BridgeSpec(bridges=(valid_bridge,))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the developer's .env and real archive."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        openai_api_key="",
        lancedb_uri=str(tmp_path / "lancedb"),
    )
