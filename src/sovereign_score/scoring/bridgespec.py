"""BridgeSpec extraction and validation.

A BridgeSpec is validated by four fixed checks, each applied to every
bridge in the BridgeSpec:

- T-B-01: regime named and at least one observable listed.
- T-B-02: differential prediction long enough and free of hedging.
- T-B-03: failure condition long enough and phrased as a falsifier.
- T-B-04: degeneracy (soft). Specs that pass the first three checks but
  are trivially unfalsifiable accumulate a degeneracy penalty.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from sovereign_score.canonical import sha256_hex
from sovereign_score.constants import (
    DEGENERACY_SOFT_FAIL,
    FALSIFICATION_MARKERS,
    HEDGING_PHRASES,
    MIN_FAILURE_CONDITION_CHARS,
    MIN_PREDICTION_CHARS,
    UNFALSIFIABLE_PHRASES,
    CheckStatus,
)
from sovereign_score.scoring.schemas import (
    Bridge,
    BridgeSpec,
    BridgeSpecValidationResult,
)

logger = logging.getLogger(__name__)

_NUMERIC_RE = re.compile(r"\d")

# Per-bridge degeneracy contributions
_MISSING_FLOOR = 0.25
_HEDGED_PREDICTION = 0.25
_UNFALSIFIABLE_FAILURE = 0.30
_NON_NUMERIC_PREDICTION = 0.10


def _phrase_pattern(phrase: str) -> str:
    if phrase.endswith("*"):
        return rf"\b{re.escape(phrase[:-1])}"
    return rf"\b{re.escape(phrase)}\b"


def _mentions(text: str, phrases: tuple[str, ...]) -> bool:
    """True if any phrase occurs in text as a whole word.

    A phrase ending in ``*`` is a stem and matches any word it begins.
    """
    lowered = text.lower()
    return any(
        re.search(_phrase_pattern(p), lowered) for p in phrases
    )


def _status(ok: bool) -> CheckStatus:
    return CheckStatus.PASSED if ok else CheckStatus.FAILED


def _check_regime(bridge: Bridge, notes: list[str]) -> bool:
    ok = True
    if not bridge.regime.strip():
        notes.append(f"{bridge.claim_id}: missing regime")
        ok = False
    if not any(o.strip() for o in bridge.observables):
        notes.append(f"{bridge.claim_id}: no observables")
        ok = False
    return ok


def _check_prediction(bridge: Bridge, notes: list[str]) -> bool:
    prediction = bridge.differential_prediction.strip()
    if len(prediction) < MIN_PREDICTION_CHARS:
        notes.append(
            f"{bridge.claim_id}: differential prediction shorter "
            f"than {MIN_PREDICTION_CHARS} characters"
        )
        return False
    if _mentions(prediction, HEDGING_PHRASES):
        notes.append(f"{bridge.claim_id}: prediction hedges")
        return False
    return True


def _check_failure_condition(bridge: Bridge, notes: list[str]) -> bool:
    condition = bridge.failure_condition.strip()
    if len(condition) < MIN_FAILURE_CONDITION_CHARS:
        notes.append(
            f"{bridge.claim_id}: failure condition shorter "
            f"than {MIN_FAILURE_CONDITION_CHARS} characters"
        )
        return False
    if not _mentions(condition, FALSIFICATION_MARKERS):
        notes.append(
            f"{bridge.claim_id}: failure condition names no falsifier"
        )
        return False
    return True


def _degeneracy(bridge: Bridge) -> float:
    penalty = 0.0
    if not any(f.strip() for f in bridge.floor_constraints):
        penalty += _MISSING_FLOOR
    if _mentions(bridge.differential_prediction, HEDGING_PHRASES):
        penalty += _HEDGED_PREDICTION
    if _mentions(bridge.failure_condition, UNFALSIFIABLE_PHRASES):
        penalty += _UNFALSIFIABLE_FAILURE
    if not _NUMERIC_RE.search(bridge.differential_prediction):
        penalty += _NON_NUMERIC_PREDICTION
    return min(1.0, penalty)


def validate_bridge_spec(
    spec: BridgeSpec | None,
) -> BridgeSpecValidationResult | None:
    """Run T-B-01..T-B-04 over every bridge. None in, None out."""
    if spec is None:
        return None

    if not spec.bridges:
        return BridgeSpecValidationResult(
            t_b_01=CheckStatus.FAILED,
            t_b_02=CheckStatus.FAILED,
            t_b_03=CheckStatus.FAILED,
            t_b_04=CheckStatus.FAILED,
            overall=CheckStatus.FAILED,
            valid=False,
            testability_score=0.0,
            degeneracy_penalty=1.0,
            notes=("empty predicate set",),
        )

    notes: list[str] = []
    # Evaluate every bridge for every check so notes are complete.
    regime_ok = all([_check_regime(b, notes) for b in spec.bridges])
    prediction_ok = all(
        [_check_prediction(b, notes) for b in spec.bridges]
    )
    failure_ok = all(
        [_check_failure_condition(b, notes) for b in spec.bridges]
    )
    degeneracy_penalty = sum(
        _degeneracy(b) for b in spec.bridges
    ) / len(spec.bridges)

    t_b_04 = (
        CheckStatus.PASSED
        if degeneracy_penalty < DEGENERACY_SOFT_FAIL
        else CheckStatus.SOFT_FAILED
    )
    hard_passed = regime_ok and prediction_ok and failure_ok
    if hard_passed and t_b_04 == CheckStatus.PASSED:
        overall = CheckStatus.PASSED
    elif hard_passed:
        overall = CheckStatus.SOFT_FAILED
    else:
        overall = CheckStatus.FAILED

    passed_hard = sum((regime_ok, prediction_ok, failure_ok))
    testability = (passed_hard / 3) * (1 - 0.5 * degeneracy_penalty)

    result = BridgeSpecValidationResult(
        t_b_01=_status(regime_ok),
        t_b_02=_status(prediction_ok),
        t_b_03=_status(failure_ok),
        t_b_04=t_b_04,
        overall=overall,
        valid=overall == CheckStatus.PASSED,
        testability_score=testability,
        degeneracy_penalty=degeneracy_penalty,
        notes=tuple(notes),
    )
    logger.debug(
        "event=bridgespec_validated overall=%s testability=%.3f "
        "degeneracy=%.3f bridges=%d",
        result.overall,
        result.testability_score,
        result.degeneracy_penalty,
        len(spec.bridges),
    )
    return result


def extract_bridge_spec(data: Mapping[str, Any]) -> BridgeSpec | None:
    """Pull a BridgeSpec from an opaque submission payload.

    Looks at ``bridge_spec`` first, then ``metadata.bridge_spec``.
    Missing or malformed specs yield None; the rest of the payload is
    never inspected.
    """
    raw = data.get("bridge_spec")
    if raw is None:
        metadata = data.get("metadata")
        if isinstance(metadata, Mapping):
            raw = metadata.get("bridge_spec")
    if raw is None:
        return None
    if isinstance(raw, BridgeSpec):
        return raw
    try:
        return BridgeSpec.model_validate(raw)
    except PydanticValidationError:
        logger.warning("event=bridgespec_malformed action=ignore")
        return None


def bridge_spec_hash(spec: BridgeSpec) -> str:
    """SHA-256 of the canonical BridgeSpec, recorded in the trace."""
    return sha256_hex(spec.model_dump(mode="json"))
