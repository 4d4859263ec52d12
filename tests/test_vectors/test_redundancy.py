"""Tests for cosine similarity and snapshot redundancy detection."""

from __future__ import annotations

import math

import pytest

from sovereign_score.constants import COSINE_IDENTITY_TOLERANCE, Aggregation
from sovereign_score.errors import ConfigurationError, ValidationError
from sovereign_score.vectors.redundancy import (
    cosine_similarity,
    detect_redundancy,
)
from sovereign_score.vectors.schemas import (
    ArchivedSubmission,
    ArchiveSnapshot,
    Point3D,
    RedundancyConfig,
)
from sovereign_score.vectors.snapshot import build_snapshot

ORIGIN = Point3D(0.0, 0.0, 0.0)
FAR = Point3D(1e6, 1e6, 1e6)


def _entry(
    sid: str,
    embedding: list[float],
    point: Point3D = FAR,
    title: str | None = None,
) -> ArchivedSubmission:
    return ArchivedSubmission(
        submission_id=sid,
        title=title or f"Submission {sid}",
        embedding=tuple(embedding),
        point=point,
    )


def _snapshot(*entries: ArchivedSubmission) -> ArchiveSnapshot:
    return build_snapshot(entries)


class TestCosineSimilarity:
    @pytest.mark.parametrize(
        "vec",
        [
            [1.0, 2.0, 3.0],
            [0.001, -0.5, 1e6],
            [1e-12, 3e-12],
            [0.1] * 1536,
        ],
    )
    def test_identity(self, vec: list[float]) -> None:
        assert abs(cosine_similarity(vec, vec) - 1.0) <= (
            COSINE_IDENTITY_TOLERANCE
        )

    def test_orthogonal(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 5.0]) == 0.0

    def test_opposite(self) -> None:
        assert cosine_similarity([1.0, 2.0], [-2.0, -4.0]) == (
            pytest.approx(-1.0)
        )

    def test_scale_invariant(self) -> None:
        a = [0.3, -0.2, 0.9]
        b = [0.1, 0.4, 0.2]
        assert cosine_similarity(a, b) == pytest.approx(
            cosine_similarity([x * 7 for x in a], b)
        )

    def test_zero_vector_rejected(self) -> None:
        with pytest.raises(ValidationError):
            cosine_similarity([0.0, 0.0], [1.0, 1.0])

    def test_dimension_mismatch_rejected(self) -> None:
        with pytest.raises(ValidationError, match="dimension mismatch"):
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])

    def test_non_finite_rejected(self) -> None:
        with pytest.raises(ValidationError):
            cosine_similarity([1.0, math.inf], [1.0, 0.0])


class TestDetectRedundancy:
    def test_empty_snapshot_no_overlap(self) -> None:
        snapshot = _snapshot()
        result = detect_redundancy([1.0, 0.0], ORIGIN, snapshot)
        assert result.overlap_percent == 0.0
        assert result.closest == ()
        assert result.snapshot_id == snapshot.snapshot_id
        assert result.nearest_neighbors is None

    def test_identical_submission_full_overlap(self) -> None:
        snapshot = _snapshot(_entry("a", [0.2, 0.5, 0.1], ORIGIN))
        result = detect_redundancy([0.2, 0.5, 0.1], ORIGIN, snapshot)
        assert result.overlap_percent == pytest.approx(100.0)
        assert result.closest[0].submission_id == "a"
        assert result.closest[0].distance == 0.0

    def test_combined_weighting(self) -> None:
        # Orthogonal embeddings, coincident points
        snapshot = _snapshot(_entry("a", [0.0, 1.0], ORIGIN))
        result = detect_redundancy([1.0, 0.0], ORIGIN, snapshot)
        assert result.similarity_score == pytest.approx(
            0.85 * 0.5 + 0.15 * 1.0
        )
        assert result.overlap_percent == pytest.approx(57.5)

    def test_proximity_decays_with_distance(self) -> None:
        near = _snapshot(_entry("a", [1.0, 0.0], Point3D(0, 0, 50)))
        far = _snapshot(_entry("a", [1.0, 0.0], FAR))
        near_result = detect_redundancy([1.0, 0.0], ORIGIN, near)
        far_result = detect_redundancy([1.0, 0.0], ORIGIN, far)
        assert near_result.similarity_score == pytest.approx(
            0.85 + 0.15 * math.exp(-1)
        )
        assert far_result.similarity_score == pytest.approx(0.85)

    def test_ranked_descending_ties_by_id(self) -> None:
        snapshot = _snapshot(
            _entry("c", [1.0, 0.0]),
            _entry("b", [1.0, 0.0]),
            _entry("a", [0.0, 1.0]),
            _entry("d", [1.0, 1.0]),
        )
        result = detect_redundancy([1.0, 0.0], ORIGIN, snapshot)
        assert [m.submission_id for m in result.closest] == ["b", "c", "d"]
        sims = [m.similarity for m in result.closest]
        assert sims == sorted(sims, reverse=True)

    def test_top_k_mean_aggregation(self) -> None:
        snapshot = _snapshot(
            _entry("a", [1.0, 0.0]),
            _entry("b", [0.0, 1.0]),
            _entry("c", [-1.0, 0.0]),
        )
        config = RedundancyConfig(
            aggregation=Aggregation.TOP_K_MEAN, top_k=2
        )
        result = detect_redundancy([1.0, 0.0], ORIGIN, snapshot, config)
        assert result.overlap_percent == pytest.approx(
            100 * (0.85 + 0.425) / 2
        )
        assert result.similarity_score == pytest.approx(0.85)
        assert result.aggregation == Aggregation.TOP_K_MEAN

    def test_neighbor_stats_and_percentile(self) -> None:
        snapshot = _snapshot(
            _entry("a", [1.0, 0.0]),
            _entry("b", [0.0, 1.0]),
        )
        result = detect_redundancy([1.0, 0.0], ORIGIN, snapshot)
        stats = result.nearest_neighbors
        assert stats is not None
        assert stats.max == pytest.approx(0.85)
        assert stats.min == pytest.approx(0.425)
        assert stats.mean == pytest.approx((0.85 + 0.425) / 2)
        assert result.overlap_percentile == 50.0

    def test_closest_limit(self) -> None:
        snapshot = _snapshot(
            *[_entry(f"s{i}", [1.0, i / 10]) for i in range(6)]
        )
        result = detect_redundancy(
            [1.0, 0.0], ORIGIN, snapshot, RedundancyConfig(closest_limit=2)
        )
        assert len(result.closest) == 2

    def test_analysis_text(self) -> None:
        snapshot = _snapshot(
            _entry("abcdef0123456789", [1.0, 0.0], title="Prior work")
        )
        result = detect_redundancy([1.0, 0.0], ORIGIN, snapshot)
        assert '"Prior work"' in result.analysis
        assert "abcdef01..." in result.analysis
        assert "Overlap (max): 85.0%" in result.analysis

    def test_deterministic(self) -> None:
        snapshot = _snapshot(
            _entry("a", [0.3, 0.1, 0.9], Point3D(10, 20, 30)),
            _entry("b", [0.5, 0.5, 0.5], Point3D(5, 5, 5)),
        )
        first = detect_redundancy([0.2, 0.2, 0.7], ORIGIN, snapshot)
        second = detect_redundancy([0.2, 0.2, 0.7], ORIGIN, snapshot)
        assert first == second

    def test_dimension_mismatch_with_archive(self) -> None:
        snapshot = _snapshot(_entry("a", [1.0, 0.0, 0.0]))
        with pytest.raises(ValidationError, match="dimension mismatch"):
            detect_redundancy([1.0, 0.0], ORIGIN, snapshot)

    def test_zero_query_rejected(self) -> None:
        with pytest.raises(ValidationError):
            detect_redundancy([0.0, 0.0], ORIGIN, _snapshot())


class TestRedundancyConfig:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"top_k": 0},
            {"closest_limit": -1},
            {"embedding_weight": 1.5},
            {"proximity_distance_scale": 0.0},
        ],
    )
    def test_invalid(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ConfigurationError):
            RedundancyConfig(**kwargs)  # type: ignore[arg-type]
