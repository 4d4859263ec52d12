"""Redundancy detection against an archive snapshot.

Per archived entry the combined similarity is

    w · (cos + 1) / 2  +  (1 − w) · exp(−distance_3d / scale)

with w = embedding_weight (0.85 by default): semantic similarity first,
HHF proximity as a light secondary signal. Entries are ranked
descending and the top similarity (or the top-k mean) becomes
overlap_percent = clamp(100 · aggregate, 0, 100).
"""

from __future__ import annotations

import logging

import numpy as np

from sovereign_score.constants import (
    HASH_PREFIX_CHARS,
    NEIGHBOR_STATS_LIMIT,
    Aggregation,
)
from sovereign_score.errors import ValidationError
from sovereign_score.vectors.mapping import as_embedding_array
from sovereign_score.vectors.schemas import (
    ArchiveSnapshot,
    ClosestMatch,
    EmbeddingVector,
    NeighborStats,
    Point3D,
    RedundancyConfig,
    RedundancyResult,
)

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = RedundancyConfig()


def _nonzero(vec: np.ndarray, field: str) -> float:
    norm = float(np.linalg.norm(vec))
    if norm == 0.0:
        raise ValidationError(field, "zero vector has no direction")
    return norm


def cosine_similarity(a: EmbeddingVector, b: EmbeddingVector) -> float:
    """dot(a, b) / (‖a‖ · ‖b‖), clipped to [-1, 1].

    Zero vectors and mismatched dimensions raise ValidationError.
    """
    va = as_embedding_array(a, field="a")
    vb = as_embedding_array(b, field="b")
    if va.size != vb.size:
        raise ValidationError(
            "embedding", f"dimension mismatch: {va.size} vs {vb.size}"
        )
    denom = _nonzero(va, "a") * _nonzero(vb, "b")
    return float(np.clip(np.dot(va, vb) / denom, -1.0, 1.0))


def _combined_similarities(
    vec: np.ndarray,
    coordinate: Point3D,
    snapshot: ArchiveSnapshot,
    config: RedundancyConfig,
) -> tuple[np.ndarray, np.ndarray]:
    matrix = snapshot.embedding_matrix
    if matrix.shape[1] != vec.size:
        raise ValidationError(
            "embedding",
            f"dimension mismatch: {vec.size} vs archive {matrix.shape[1]}",
        )
    norm = _nonzero(vec, "embedding")
    cos = np.clip(
        (matrix @ vec) / (np.linalg.norm(matrix, axis=1) * norm),
        -1.0,
        1.0,
    )
    unit = np.clip((cos + 1.0) / 2.0, 0.0, 1.0)

    distances = np.linalg.norm(
        snapshot.point_matrix - coordinate.as_array(), axis=1
    )
    proximity = np.exp(-distances / config.proximity_distance_scale)

    w = config.embedding_weight
    combined = np.clip(w * unit + (1.0 - w) * proximity, 0.0, 1.0)
    return combined, distances


def _analysis(
    closest: tuple[ClosestMatch, ...],
    overlap: float,
    percentile: float,
    stats: NeighborStats,
    aggregation: Aggregation,
) -> str:
    lines = ["Redundancy analysis (embedding + HHF 3D proximity):"]
    top = closest[0] if closest else None
    if top is not None:
        lines.append(
            f"Highest similarity: {top.similarity * 100:.1f}% with "
            f'"{top.title}" (id: {top.submission_id[:HASH_PREFIX_CHARS]}...)'
        )
        for rank, match in enumerate(closest[1:], start=2):
            lines.append(
                f'  {rank}. "{match.title}" - '
                f"{match.similarity * 100:.1f}% similarity"
            )
    lines.append(f"Overlap ({aggregation}): {overlap:.1f}%")
    lines.append(f"Overlap percentile: {percentile:.0f}th")
    lines.append(
        f"Nearest neighbors: μ={stats.mean:.3f} ± {stats.std_dev:.3f} "
        f"(min={stats.min:.3f}, max={stats.max:.3f})"
    )
    return "\n".join(lines)


def detect_redundancy(
    embedding: EmbeddingVector,
    coordinate: Point3D,
    snapshot: ArchiveSnapshot,
    config: RedundancyConfig = _DEFAULT_CONFIG,
) -> RedundancyResult:
    """Compare a submission with every entry of a snapshot.

    An empty snapshot yields overlap 0 and no matches, never an error.
    The result records snapshot.snapshot_id for reproducibility.
    """
    vec = as_embedding_array(embedding)
    _nonzero(vec, "embedding")

    if len(snapshot) == 0:
        return RedundancyResult(
            overlap_percent=0.0,
            similarity_score=0.0,
            closest=(),
            snapshot_id=snapshot.snapshot_id,
            aggregation=config.aggregation,
            analysis="No archived submissions to compare against.",
        )

    combined, distances = _combined_similarities(
        vec, coordinate, snapshot, config
    )
    entries = snapshot.entries
    order = sorted(
        range(len(entries)),
        key=lambda i: (-float(combined[i]), entries[i].submission_id),
    )
    ranked = np.array([combined[i] for i in order], dtype=np.float64)
    top = float(ranked[0])

    if config.aggregation == Aggregation.TOP_K_MEAN:
        aggregate = float(ranked[: config.top_k].mean())
    else:
        aggregate = top
    overlap = min(100.0, max(0.0, aggregate * 100.0))

    percentile = float(
        round(float(np.count_nonzero(ranked < top)) / ranked.size * 100)
    )
    nearest = ranked[:NEIGHBOR_STATS_LIMIT]
    stats = NeighborStats(
        mean=float(nearest.mean()),
        std_dev=float(nearest.std()),
        min=float(nearest.min()),
        max=float(nearest.max()),
    )
    closest = tuple(
        ClosestMatch(
            submission_id=entries[i].submission_id,
            title=entries[i].title,
            similarity=float(combined[i]),
            distance=float(distances[i]),
        )
        for i in order[: config.closest_limit]
    )

    logger.debug(
        "event=redundancy_detected snapshot_id=%s items=%d "
        "overlap=%.2f aggregation=%s",
        snapshot.snapshot_id[:HASH_PREFIX_CHARS],
        len(entries),
        overlap,
        config.aggregation,
    )
    return RedundancyResult(
        overlap_percent=overlap,
        similarity_score=top,
        closest=closest,
        snapshot_id=snapshot.snapshot_id,
        aggregation=config.aggregation,
        overlap_percentile=percentile,
        nearest_neighbors=stats,
        analysis=_analysis(
            closest, overlap, percentile, stats, config.aggregation
        ),
    )
