"""Canonical JSON serialization and SHA-256 content hashing.

The same two functions back every hash in the package: the score
integrity hash, the BridgeSpec hash, the snapshot id and the policy
config id. Producers and verifiers must never serialize on their own.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json(payload: Any) -> str:
    """Serialize with sorted keys, no whitespace, and no NaN/Infinity.

    Floats use Python's shortest round-trip repr, so a payload that was
    dumped, stored and re-parsed serializes to the same string.
    """
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def sha256_hex(payload: Any) -> str:
    """Hex SHA-256 of the canonical JSON of payload."""
    return hashlib.sha256(
        canonical_json(payload).encode("utf-8")
    ).hexdigest()
