"""Typed records consumed and produced by the scoring core.

Inputs are frozen dataclasses validated by the scorer itself, so a bad
value surfaces as sovereign_score.errors.ValidationError. Outputs are
frozen pydantic models: their JSON dump is what gets hashed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool

from sovereign_score.constants import CheckStatus, Tier

_FROZEN = ConfigDict(frozen=True, extra="forbid")


class ScoringToggles(BaseModel):
    """Boolean switches for each optional adjustment. All four required."""

    model_config = _FROZEN

    overlap_enabled: StrictBool
    seed_enabled: StrictBool
    edge_enabled: StrictBool
    metal_policy_enabled: StrictBool

    @classmethod
    def all_on(cls) -> ScoringToggles:
        return cls(
            overlap_enabled=True,
            seed_enabled=True,
            edge_enabled=True,
            metal_policy_enabled=True,
        )

    @classmethod
    def all_off(cls) -> ScoringToggles:
        return cls(
            overlap_enabled=False,
            seed_enabled=False,
            edge_enabled=False,
            metal_policy_enabled=False,
        )


# ── BridgeSpec ───────────────────────────────────────────


class Bridge(BaseModel):
    """One falsifiable claim linking the submission to an observable."""

    model_config = _FROZEN

    claim_id: str
    regime: str = ""
    observables: tuple[str, ...] = ()
    differential_prediction: str = ""
    failure_condition: str = ""
    floor_constraints: tuple[str, ...] = ()


class BridgeSpec(BaseModel):
    """Testability contract attached to a submission."""

    model_config = _FROZEN

    bridges: tuple[Bridge, ...]


class BridgeSpecValidationResult(BaseModel):
    """Outcome of the four BridgeSpec checks."""

    model_config = _FROZEN

    t_b_01: CheckStatus = Field(description="Regime + observables")
    t_b_02: CheckStatus = Field(description="Differential prediction")
    t_b_03: CheckStatus = Field(description="Failure condition")
    t_b_04: CheckStatus = Field(description="Degeneracy (soft check)")
    overall: CheckStatus
    valid: bool
    testability_score: float
    degeneracy_penalty: float
    notes: tuple[str, ...] = ()


# ── Scoring input ────────────────────────────────────────


@dataclass(frozen=True)
class Dimensions:
    """The four upstream dimension scores, each nominally in [0, 2500]."""

    novelty: float
    density: float
    coherence: float
    alignment: float

    @property
    def composite(self) -> float:
        return (
            self.novelty + self.density + self.coherence + self.alignment
        )

    def as_dict(self) -> dict[str, float]:
        return {
            "novelty": self.novelty,
            "density": self.density,
            "coherence": self.coherence,
            "alignment": self.alignment,
        }


@dataclass(frozen=True)
class ScoringInput:
    """Everything the scorer reads for one evaluation."""

    dimensions: Dimensions
    toggles: ScoringToggles
    overlap_percent: float | None = None
    seed_flag: bool = False
    edge_flag: bool = False
    bridge_spec: BridgeSpec | None = None
    seed: str | None = None


# ── Scoring output ───────────────────────────────────────


class ExecutionContext(BaseModel):
    """Provenance of one scoring run. Every field is always present."""

    model_config = _FROZEN

    timestamp_utc: str
    pipeline_version: str
    execution_id: str
    config_id: str
    sandbox_id: str | None
    snapshot_id: str | None
    operator_id: str
    toggles: ScoringToggles
    seed: str


class IntermediateSteps(BaseModel):
    model_config = _FROZEN

    composite: float
    after_penalty: float
    after_bonus: float
    after_seed: float
    raw_final: float
    clamped_final: float


class PrecisionResult(BaseModel):
    """Precision estimate coupled from coherence and the BridgeSpec."""

    model_config = _FROZEN

    n_hat: float
    bubble_class: str
    epsilon: float
    coherence: float
    c: float
    penalty_inconsistency: float
    tier: Tier


class Trace(BaseModel):
    """Every value needed to replay the score from the composite."""

    model_config = _FROZEN

    composite: float
    overlap_percent: float | None
    penalty_percent: float
    bonus_multiplier: float
    seed_multiplier: float
    edge_multiplier: float
    formula: str
    intermediate_steps: IntermediateSteps
    precision: PrecisionResult
    bridgespec: BridgeSpecValidationResult | None
    bridgespec_hash: str | None


class AtomicScore(BaseModel):
    """Immutable, self-verifying score record."""

    model_config = _FROZEN

    final: float
    execution_context: ExecutionContext
    trace: Trace
    integrity_hash: str

    def hash_payload(self) -> dict[str, Any]:
        """The exact structure covered by integrity_hash."""
        return self.model_dump(mode="json", exclude={"integrity_hash"})
