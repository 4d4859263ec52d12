"""HHF 3D coordinate mapping.

Projects a submission into the holographic hydrogen fractal sandbox.
Axes are novelty (x), density (y) and coherence (z), each divided by the
process-wide HHF_SCALE_FACTOR = log10(Λᴴᴴ) / 10 with Λᴴᴴ ≈ 1.12 × 10²².
The embedding only validates the mapping; it never moves the point, so
identical inputs give bit-identical coordinates.
"""

from __future__ import annotations

import math

import numpy as np

from sovereign_score.constants import (
    HHF_SCALE_FACTOR,
    PROXIMITY_DISTANCE_SCALE,
)
from sovereign_score.errors import ValidationError
from sovereign_score.vectors.schemas import EmbeddingVector, Point3D


def as_embedding_array(
    embedding: EmbeddingVector, field: str = "embedding"
) -> np.ndarray:
    """Validate and convert an embedding to a 1-D float64 array."""
    try:
        arr = np.asarray(embedding, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ValidationError(field, "must be a sequence of numbers") from exc
    if arr.ndim != 1 or arr.size == 0:
        raise ValidationError(field, "must be a non-empty 1-D vector")
    if not np.all(np.isfinite(arr)):
        raise ValidationError(field, "contains NaN or infinite values")
    return arr


def _axis(name: str, score: float) -> float:
    if (
        isinstance(score, bool)
        or not isinstance(score, (int, float))
        or not math.isfinite(score)
        or score < 0
    ):
        raise ValidationError(
            name, f"must be a finite value >= 0, got {score}"
        )
    return score / HHF_SCALE_FACTOR


def map_to_coordinates(
    embedding: EmbeddingVector,
    novelty: float,
    density: float,
    coherence: float,
) -> Point3D:
    """Map a scored submission to its HHF sandbox coordinate."""
    as_embedding_array(embedding)
    return Point3D(
        x=_axis("novelty", novelty),
        y=_axis("density", density),
        z=_axis("coherence", coherence),
    )


def map_embedding_to_coordinates(embedding: EmbeddingVector) -> Point3D:
    """Place an unscored submission using its embedding alone.

    Three evenly spaced components are min/max-normalized to [-1, 1]
    and scaled by HHF_SCALE_FACTOR * 100. A constant embedding maps to
    the origin.
    """
    arr = as_embedding_array(embedding)
    lo, hi = float(arr.min()), float(arr.max())
    n = arr.size

    def _component(index: int) -> float:
        if hi == lo:
            return 0.0
        norm = 2 * ((float(arr[index]) - lo) / (hi - lo)) - 1
        return norm * HHF_SCALE_FACTOR * 100

    return Point3D(
        x=_component(0),
        y=_component(n // 3),
        z=_component((2 * n) // 3),
    )


def distance_3d(a: Point3D, b: Point3D) -> float:
    """Euclidean distance between two sandbox points."""
    return math.dist((a.x, a.y, a.z), (b.x, b.y, b.z))


def similarity_from_distance(
    distance: float, scale: float = PROXIMITY_DISTANCE_SCALE
) -> float:
    """Exponential decay: 1.0 at zero distance, towards 0 far away."""
    return math.exp(-distance / scale)
