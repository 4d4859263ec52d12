"""Integrity hash production and verification for AtomicScore records.

Both directions go through canonical.sha256_hex so producer and
verifier can never drift apart.
"""

from __future__ import annotations

import hmac
from collections.abc import Mapping
from typing import Any

from sovereign_score.canonical import sha256_hex
from sovereign_score.errors import IntegrityViolation
from sovereign_score.scoring.schemas import AtomicScore

INTEGRITY_FIELD = "integrity_hash"


def compute_integrity_hash(payload: Mapping[str, Any]) -> str:
    """Hash {final, execution_context, trace}; the hash field is ignored."""
    body = {k: v for k, v in payload.items() if k != INTEGRITY_FIELD}
    return sha256_hex(body)


def _split(
    record: AtomicScore | Mapping[str, Any],
) -> tuple[dict[str, Any], str]:
    if isinstance(record, AtomicScore):
        return record.hash_payload(), record.integrity_hash
    stored = record.get(INTEGRITY_FIELD)
    if not isinstance(stored, str) or not stored:
        raise IntegrityViolation("", "<missing integrity_hash>")
    return dict(record), stored


def verify_integrity(record: AtomicScore | Mapping[str, Any]) -> None:
    """Recompute the hash and raise IntegrityViolation on mismatch.

    Accepts either a model or the raw JSON mapping read back from
    storage, so consumers need not trust the producing process.
    """
    payload, stored = _split(record)
    computed = compute_integrity_hash(payload)
    if not hmac.compare_digest(computed, stored):
        raise IntegrityViolation(stored, computed)


def is_intact(record: AtomicScore | Mapping[str, Any]) -> bool:
    """Non-raising form of verify_integrity."""
    try:
        verify_integrity(record)
    except (IntegrityViolation, TypeError, ValueError):
        return False
    return True
