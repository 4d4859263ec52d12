"""Atomic scorer — the only place a sovereign score is computed.

Step order is part of the audit contract. Changing it, or the arithmetic
of any step, requires bumping PIPELINE_VERSION:

1. composite = novelty + density + coherence + alignment
2. overlap penalty / sweet-spot bonus (overlap toggle)
3. seed multiplier (seed toggle AND seed flag)
4. edge multiplier (edge toggle AND edge flag)
5. neutralization gate: clamp to [0, 10000], then round
6. execution context
7. trace + formula
8. integrity hash over canonical JSON

Pure: no shared mutable state, safe to call from any number of threads.
Inputs are validated, never clamped; only the final output is clamped.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime

from sovereign_score.config import load_toggles
from sovereign_score.constants import (
    DEFAULT_OPERATOR_ID,
    DIMENSION_MAX,
    DIMENSION_MIN,
    HASH_PREFIX_CHARS,
    OVERLAP_MAX,
    OVERLAP_MIN,
    PIPELINE_VERSION,
    SCORE_MAX,
    SCORE_MIN,
)
from sovereign_score.errors import ConfigurationError, ValidationError
from sovereign_score.scoring.bridgespec import (
    bridge_spec_hash,
    validate_bridge_spec,
)
from sovereign_score.scoring.integrity import compute_integrity_hash
from sovereign_score.scoring.policy import DEFAULT_POLICY, ScoringPolicy
from sovereign_score.scoring.precision import couple_precision
from sovereign_score.scoring.schemas import (
    AtomicScore,
    BridgeSpec,
    Dimensions,
    ExecutionContext,
    IntermediateSteps,
    ScoringInput,
    ScoringToggles,
    Trace,
)

logger = logging.getLogger(__name__)

_DIMENSION_NAMES = ("novelty", "density", "coherence", "alignment")


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_input(scoring_input: ScoringInput) -> None:
    """Reject anything outside the documented input domain."""
    for name, value in scoring_input.dimensions.as_dict().items():
        if not _is_number(value) or not math.isfinite(value):
            raise ValidationError(name, f"must be a finite number, got {value!r}")
        if not DIMENSION_MIN <= value <= DIMENSION_MAX:
            raise ValidationError(
                name,
                f"{value} outside [{DIMENSION_MIN:g}, {DIMENSION_MAX:g}]",
            )

    overlap = scoring_input.overlap_percent
    if overlap is not None:
        if not _is_number(overlap) or not math.isfinite(overlap):
            raise ValidationError(
                "overlap_percent", f"must be a finite number, got {overlap!r}"
            )
        if not OVERLAP_MIN <= overlap <= OVERLAP_MAX:
            raise ValidationError(
                "overlap_percent",
                f"{overlap} outside [{OVERLAP_MIN:g}, {OVERLAP_MAX:g}]",
            )

    if not isinstance(scoring_input.toggles, ScoringToggles):
        raise ConfigurationError(
            "toggles must be a ScoringToggles instance; "
            "use load_toggles() for persisted rows"
        )


def penalty_percent(overlap: float | None, policy: ScoringPolicy) -> float:
    """Excess-overlap penalty, ramping linearly above the threshold.

    0 at or below penalty_threshold, max_penalty_percent at or above
    penalty_full_overlap.
    """
    if overlap is None or overlap <= policy.penalty_threshold:
        return 0.0
    span = policy.penalty_full_overlap - policy.penalty_threshold
    ramp = (overlap - policy.penalty_threshold) / span
    return min(
        policy.max_penalty_percent,
        max(0.0, ramp * policy.max_penalty_percent),
    )


def bonus_multiplier(overlap: float | None, policy: ScoringPolicy) -> float:
    """Sweet-spot bonus, peaking at the center and 1.0 at the band edges.

    The band is inclusive on both sides.
    """
    if overlap is None:
        return 1.0
    distance = abs(overlap - policy.sweet_spot_center)
    if distance > policy.sweet_spot_tolerance:
        return 1.0
    closeness = (
        policy.sweet_spot_tolerance - distance
    ) / policy.sweet_spot_tolerance
    return 1.0 + policy.max_bonus * closeness


def neutralization_gate(score: float) -> float:
    """Range protection on the output only; never a qualification decision."""
    if score < SCORE_MIN or score > SCORE_MAX:
        logger.warning(
            "event=neutralization_clamp raw=%.4f range=[%g, %g]",
            score,
            SCORE_MIN,
            SCORE_MAX,
        )
    return min(SCORE_MAX, max(SCORE_MIN, score))


def build_formula(
    composite: float,
    penalty: float,
    bonus: float,
    seed: float,
    edge: float,
    final: float,
) -> str:
    """Human-readable formula; reconstructable from the trace alone."""
    parts = [f"Composite={composite:g}"]
    if penalty > 0:
        parts.append(f"Penalty={penalty:.2f}%")
    if bonus != 1.0:
        parts.append(f"Bonus={bonus:.3f}×")
    if seed != 1.0:
        parts.append(f"Seed={seed:.2f}×")
    if edge != 1.0:
        parts.append(f"Edge={edge:.2f}×")
    return f"{' → '.join(parts)} = {final:.2f}"


def _timestamp(value: datetime | None) -> str:
    if value is None:
        return datetime.now(UTC).isoformat()
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def compute(
    scoring_input: ScoringInput,
    policy: ScoringPolicy = DEFAULT_POLICY,
    *,
    execution_id: str | None = None,
    timestamp: datetime | None = None,
    sandbox_id: str | None = None,
    snapshot_id: str | None = None,
    operator_id: str = DEFAULT_OPERATOR_ID,
) -> AtomicScore:
    """Compute one immutable, hashed, fully traced AtomicScore.

    execution_id and timestamp are generated fresh unless injected;
    inject both (plus ScoringInput.seed) for byte-identical replays.
    """
    _validate_input(scoring_input)
    toggles = scoring_input.toggles
    overlap = scoring_input.overlap_percent

    # 1. Composite
    composite = scoring_input.dimensions.composite

    # 2. Overlap penalty / bonus: exactly neutral when the toggle is off
    if toggles.overlap_enabled:
        penalty = penalty_percent(overlap, policy)
        bonus = bonus_multiplier(overlap, policy)
    else:
        penalty = 0.0
        bonus = 1.0

    # 3-4. Seed / edge multipliers
    seed_mult = (
        policy.seed_multiplier
        if toggles.seed_enabled and scoring_input.seed_flag
        else 1.0
    )
    edge_mult = (
        policy.edge_multiplier
        if toggles.edge_enabled and scoring_input.edge_flag
        else 1.0
    )

    after_penalty = composite * (1 - penalty / 100)
    after_bonus = after_penalty * bonus
    after_seed = after_bonus * seed_mult
    raw_final = after_seed * edge_mult

    # 5. Neutralization gate
    clamped_final = neutralization_gate(raw_final)
    final = float(round(clamped_final))

    # 6. Execution context
    context = ExecutionContext(
        timestamp_utc=_timestamp(timestamp),
        pipeline_version=PIPELINE_VERSION,
        execution_id=execution_id or str(uuid.uuid4()),
        config_id=policy.resolved_config_id,
        sandbox_id=sandbox_id,
        snapshot_id=snapshot_id,
        operator_id=operator_id,
        toggles=toggles,
        seed=scoring_input.seed or uuid.uuid4().hex,
    )

    # 7. Trace, including the BridgeSpec side channel
    validation = validate_bridge_spec(scoring_input.bridge_spec)
    precision = couple_precision(
        scoring_input.dimensions.coherence,
        validation,
        metal_policy_enabled=toggles.metal_policy_enabled,
    )
    trace = Trace(
        composite=composite,
        overlap_percent=overlap,
        penalty_percent=penalty,
        bonus_multiplier=bonus,
        seed_multiplier=seed_mult,
        edge_multiplier=edge_mult,
        formula=build_formula(
            composite, penalty, bonus, seed_mult, edge_mult, final
        ),
        intermediate_steps=IntermediateSteps(
            composite=composite,
            after_penalty=after_penalty,
            after_bonus=after_bonus,
            after_seed=after_seed,
            raw_final=raw_final,
            clamped_final=clamped_final,
        ),
        precision=precision,
        bridgespec=validation,
        bridgespec_hash=(
            bridge_spec_hash(scoring_input.bridge_spec)
            if scoring_input.bridge_spec is not None
            else None
        ),
    )

    # 8. Integrity hash
    payload = {
        "final": final,
        "execution_context": context.model_dump(mode="json"),
        "trace": trace.model_dump(mode="json"),
    }
    integrity_hash = compute_integrity_hash(payload)

    logger.info(
        "event=atomic_score_computed final=%.2f hash=%s "
        "toggles=O:%s,S:%s,E:%s,M:%s execution_id=%s",
        final,
        integrity_hash[:HASH_PREFIX_CHARS],
        toggles.overlap_enabled,
        toggles.seed_enabled,
        toggles.edge_enabled,
        toggles.metal_policy_enabled,
        context.execution_id,
    )

    return AtomicScore(
        final=final,
        execution_context=context,
        trace=trace,
        integrity_hash=integrity_hash,
    )


def _coerce_dimensions(
    dimensions: Dimensions | Mapping[str, float],
) -> Dimensions:
    if isinstance(dimensions, Dimensions):
        return dimensions
    missing = [n for n in _DIMENSION_NAMES if n not in dimensions]
    if missing:
        raise ValidationError("dimensions", f"missing {', '.join(missing)}")
    return Dimensions(**{n: dimensions[n] for n in _DIMENSION_NAMES})


def evaluate(
    dimensions: Dimensions | Mapping[str, float],
    overlap_percent: float | None,
    seed_flag: bool,
    edge_flag: bool,
    toggles: ScoringToggles | Mapping[str, object],
    bridge_spec: BridgeSpec | None = None,
    snapshot_id: str | None = None,
    *,
    policy: ScoringPolicy = DEFAULT_POLICY,
    seed: str | None = None,
    sandbox_id: str | None = None,
    execution_id: str | None = None,
    timestamp: datetime | None = None,
    operator_id: str = DEFAULT_OPERATOR_ID,
) -> AtomicScore:
    """Caller-facing entry point: build a ScoringInput and compute it.

    toggles may be the persisted mapping; it is parsed strictly and a
    missing or non-boolean field raises ConfigurationError.
    """
    if not isinstance(toggles, ScoringToggles):
        toggles = load_toggles(toggles)
    scoring_input = ScoringInput(
        dimensions=_coerce_dimensions(dimensions),
        toggles=toggles,
        overlap_percent=overlap_percent,
        seed_flag=seed_flag,
        edge_flag=edge_flag,
        bridge_spec=bridge_spec,
        seed=seed,
    )
    return compute(
        scoring_input,
        policy,
        execution_id=execution_id,
        timestamp=timestamp,
        sandbox_id=sandbox_id,
        snapshot_id=snapshot_id,
        operator_id=operator_id,
    )
