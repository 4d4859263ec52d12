"""Couple a precision estimate (n̂) to coherence and the BridgeSpec outcome."""

from __future__ import annotations

import math

from sovereign_score.constants import (
    DIMENSION_MAX,
    LOW_PRECISION_COUPLING,
    N_HAT_MAX,
    PASSING_INCONSISTENCY_FLOOR,
    PRECISION_GAIN,
    TIER_THRESHOLDS,
    CheckStatus,
    Tier,
)
from sovereign_score.errors import ValidationError
from sovereign_score.scoring.schemas import (
    BridgeSpecValidationResult,
    PrecisionResult,
)


def _inconsistency(
    c: float, validation: BridgeSpecValidationResult | None
) -> float:
    """How far the BridgeSpec outcome disagrees with the coherence signal.

    A missing spec is maximally inconsistent. A passing spec paired with
    implausibly low coherence is flagged rather than silently trusted.
    """
    if validation is None:
        return 1.0
    if validation.overall == CheckStatus.FAILED:
        penalty = 1.0 - validation.testability_score
    else:
        penalty = validation.degeneracy_penalty
        if (
            validation.overall == CheckStatus.PASSED
            and c < LOW_PRECISION_COUPLING
        ):
            penalty = max(penalty, PASSING_INCONSISTENCY_FLOOR)
    return min(1.0, max(0.0, penalty))


def bubble_class(n_hat: float) -> str:
    """Half-bit bucket label, e.g. 7.8 -> 'B7.5'."""
    return f"B{math.floor(n_hat * 2) / 2:.1f}"


def tier_for(n_hat: float) -> Tier:
    for threshold, tier in TIER_THRESHOLDS:
        if n_hat >= threshold:
            return tier
    return Tier.COMMUNITY


def couple_precision(
    coherence: float,
    validation: BridgeSpecValidationResult | None,
    *,
    metal_policy_enabled: bool = True,
) -> PrecisionResult:
    """Derive n̂, its bubble class and tier.

    n̂ = 16 · (1 − exp(−q)) with q = 2 · c · (1 − penalty_inconsistency)
    and c = coherence / 2500, so a clean spec at full coherence reaches
    n̂ ≈ 13.8 (Gold). ε = 2^−n̂ is the matching error bound.
    With the metal policy off, no metal tier is assigned.
    """
    if not math.isfinite(coherence) or coherence < 0:
        raise ValidationError(
            "coherence", f"must be a finite value >= 0, got {coherence}"
        )

    c = coherence / DIMENSION_MAX
    penalty = _inconsistency(c, validation)
    q = PRECISION_GAIN * c * (1.0 - penalty)
    n_hat = N_HAT_MAX * (1.0 - math.exp(-q))

    return PrecisionResult(
        n_hat=n_hat,
        bubble_class=bubble_class(n_hat),
        epsilon=2.0 ** -n_hat,
        coherence=coherence,
        c=c,
        penalty_inconsistency=penalty,
        tier=tier_for(n_hat) if metal_policy_enabled else Tier.COMMUNITY,
    )
