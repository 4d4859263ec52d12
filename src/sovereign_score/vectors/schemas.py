"""Vector-space value objects: coordinates, archive entries, snapshots."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from functools import cached_property
from typing import TypeAlias

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from sovereign_score.constants import (
    CLOSEST_LIMIT,
    EMBEDDING_WEIGHT,
    PROXIMITY_DISTANCE_SCALE,
    REDUNDANCY_TOP_K,
    Aggregation,
)
from sovereign_score.errors import ConfigurationError

EmbeddingVector: TypeAlias = Sequence[float]


@dataclass(frozen=True)
class Point3D:
    """A position in the HHF sandbox."""

    x: float
    y: float
    z: float

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


@dataclass(frozen=True)
class ArchivedSubmission:
    """One previously scored submission as seen by the redundancy detector."""

    submission_id: str
    title: str
    embedding: tuple[float, ...]
    point: Point3D


@dataclass(frozen=True)
class ArchiveSnapshot:
    """Immutable, content-addressed view of the archive.

    Build with snapshot.build_snapshot(); snapshot_id is the SHA-256 of
    the canonical entries, so equal contents mean equal ids.
    """

    snapshot_id: str
    entries: tuple[ArchivedSubmission, ...]
    sandbox_id: str | None = None
    embedding_model: str = ""

    def __len__(self) -> int:
        return len(self.entries)

    def contains(self, submission_id: str) -> bool:
        return submission_id in self.ids

    @cached_property
    def ids(self) -> frozenset[str]:
        return frozenset(e.submission_id for e in self.entries)

    @cached_property
    def embedding_matrix(self) -> np.ndarray:
        """(n, d) float64 matrix of archived embeddings."""
        if not self.entries:
            return np.empty((0, 0), dtype=np.float64)
        return np.array(
            [e.embedding for e in self.entries], dtype=np.float64
        )

    @cached_property
    def point_matrix(self) -> np.ndarray:
        """(n, 3) float64 matrix of archived coordinates."""
        if not self.entries:
            return np.empty((0, 3), dtype=np.float64)
        return np.array(
            [(e.point.x, e.point.y, e.point.z) for e in self.entries],
            dtype=np.float64,
        )


@dataclass(frozen=True)
class RedundancyConfig:
    """How archive similarities are combined and aggregated."""

    aggregation: Aggregation = Aggregation.MAX
    top_k: int = REDUNDANCY_TOP_K
    closest_limit: int = CLOSEST_LIMIT
    embedding_weight: float = EMBEDDING_WEIGHT
    proximity_distance_scale: float = PROXIMITY_DISTANCE_SCALE

    def __post_init__(self) -> None:
        if self.top_k < 1:
            raise ConfigurationError("top_k must be >= 1")
        if self.closest_limit < 0:
            raise ConfigurationError("closest_limit must be >= 0")
        if not 0.0 <= self.embedding_weight <= 1.0:
            raise ConfigurationError(
                "embedding_weight must lie in [0, 1]"
            )
        if self.proximity_distance_scale <= 0:
            raise ConfigurationError(
                "proximity_distance_scale must be positive"
            )


class ClosestMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    submission_id: str
    title: str
    similarity: float
    distance: float


class NeighborStats(BaseModel):
    """Distribution of the nearest archive similarities."""

    model_config = ConfigDict(frozen=True)

    mean: float
    std_dev: float
    min: float
    max: float


class RedundancyResult(BaseModel):
    """Raw overlap plus provenance; sweet-spot policy lives in the scorer."""

    model_config = ConfigDict(frozen=True)

    overlap_percent: float
    similarity_score: float
    closest: tuple[ClosestMatch, ...] = Field(default=())
    snapshot_id: str
    aggregation: Aggregation = Aggregation.MAX
    overlap_percentile: float = 0.0
    nearest_neighbors: NeighborStats | None = None
    analysis: str = ""
