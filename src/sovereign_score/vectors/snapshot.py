"""Content-addressed archive snapshots.

A snapshot is materialized once, before any comparison, so a long
redundancy run never sees a half-updated archive. Its id is the hash of
its own contents and is recorded with every redundancy result.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import numpy as np

from sovereign_score.canonical import sha256_hex
from sovereign_score.errors import ValidationError
from sovereign_score.vectors.mapping import as_embedding_array
from sovereign_score.vectors.schemas import (
    ArchivedSubmission,
    ArchiveSnapshot,
)

logger = logging.getLogger(__name__)


def _canonical_contents(
    entries: tuple[ArchivedSubmission, ...],
    sandbox_id: str | None,
    embedding_model: str,
) -> dict[str, Any]:
    return {
        "sandbox_id": sandbox_id,
        "embedding_model": embedding_model,
        "entries": [
            {
                "submission_id": e.submission_id,
                "title": e.title,
                "embedding": list(e.embedding),
                "point": [e.point.x, e.point.y, e.point.z],
            }
            for e in entries
        ],
    }


def validate_entry(entry: ArchivedSubmission) -> ArchivedSubmission:
    """Reject a non-finite or zero embedding and a non-finite point."""
    field = f"archive[{entry.submission_id}].embedding"
    arr = as_embedding_array(entry.embedding, field=field)
    if not np.any(arr):
        raise ValidationError(field, "zero vector")
    point = entry.point
    if not np.all(np.isfinite(point.as_array())):
        raise ValidationError(
            f"archive[{entry.submission_id}].point",
            "contains NaN or infinite values",
        )
    # Copy into plain floats so later mutation of the source can't leak in.
    return ArchivedSubmission(
        submission_id=entry.submission_id,
        title=entry.title,
        embedding=tuple(float(v) for v in arr),
        point=point,
    )


def build_snapshot(
    entries: Iterable[ArchivedSubmission],
    *,
    sandbox_id: str | None = None,
    embedding_model: str = "",
) -> ArchiveSnapshot:
    """Materialize and hash-pin an archive snapshot.

    Entries are sorted by id. Duplicate ids, zero embeddings and mixed
    embedding dimensionality raise ValidationError.
    """
    materialized = sorted(
        (validate_entry(e) for e in entries), key=lambda e: e.submission_id
    )
    seen: set[str] = set()
    dims: set[int] = set()
    for e in materialized:
        if e.submission_id in seen:
            raise ValidationError(
                "archive", f"duplicate submission id {e.submission_id!r}"
            )
        seen.add(e.submission_id)
        dims.add(len(e.embedding))
    if len(dims) > 1:
        raise ValidationError(
            "archive",
            f"mixed embedding dimensions: {sorted(dims)}",
        )

    frozen = tuple(materialized)
    snapshot_id = sha256_hex(
        _canonical_contents(frozen, sandbox_id, embedding_model)
    )
    logger.debug(
        "event=snapshot_built snapshot_id=%s items=%d sandbox_id=%s",
        snapshot_id[:12],
        len(frozen),
        sandbox_id,
    )
    return ArchiveSnapshot(
        snapshot_id=snapshot_id,
        entries=frozen,
        sandbox_id=sandbox_id,
        embedding_model=embedding_model,
    )


def verify_snapshot(snapshot: ArchiveSnapshot) -> bool:
    """Recompute the content hash and compare with snapshot_id."""
    recomputed = sha256_hex(
        _canonical_contents(
            snapshot.entries, snapshot.sandbox_id, snapshot.embedding_model
        )
    )
    if recomputed != snapshot.snapshot_id:
        logger.warning(
            "event=snapshot_integrity_failed snapshot_id=%s recomputed=%s",
            snapshot.snapshot_id[:12],
            recomputed[:12],
        )
        return False
    return True


@dataclass(frozen=True)
class SnapshotDiff:
    added: tuple[str, ...]
    removed: tuple[str, ...]
    unchanged: tuple[str, ...]

    @property
    def delta_count(self) -> int:
        return len(self.added) + len(self.removed)


def diff_snapshots(
    old: ArchiveSnapshot, new: ArchiveSnapshot
) -> SnapshotDiff:
    """Submission ids added, removed and kept between two snapshots."""
    return SnapshotDiff(
        added=tuple(sorted(new.ids - old.ids)),
        removed=tuple(sorted(old.ids - new.ids)),
        unchanged=tuple(sorted(old.ids & new.ids)),
    )
