"""LanceDB-backed archive of previously scored submissions."""

from __future__ import annotations

import logging
from typing import Any

import lancedb
from circuitbreaker import (
    CircuitBreakerError,
    circuit,  # pyright: ignore[reportUnknownVariableType]
)

from sovereign_score.config import Settings
from sovereign_score.constants import (
    CB_ARCHIVE_FAILURE_THRESHOLD,
    CB_ARCHIVE_RECOVERY_TIMEOUT,
)
from sovereign_score.errors import ArchiveUnavailableError, ValidationError
from sovereign_score.vectors.schemas import (
    ArchivedSubmission,
    ArchiveSnapshot,
    EmbeddingVector,
    Point3D,
)
from sovereign_score.vectors.snapshot import build_snapshot, validate_entry

logger = logging.getLogger(__name__)


@circuit(  # pyright: ignore[reportUntypedFunctionDecorator]
    failure_threshold=CB_ARCHIVE_FAILURE_THRESHOLD,
    recovery_timeout=CB_ARCHIVE_RECOVERY_TIMEOUT,
    expected_exception=Exception,
    name="archive_read",
)
async def _guarded_read_rows(settings: Settings) -> list[dict[str, Any]]:
    """Circuit-breaker-protected full read of the archive table."""
    db = await lancedb.connect_async(settings.lancedb_uri)
    table_list = await db.list_tables()
    if settings.archive_table not in table_list.tables:
        return []
    table = await db.open_table(settings.archive_table)
    total = await table.count_rows()
    if total == 0:
        return []
    rows: list[dict[str, Any]] = await table.query().limit(total).to_list()
    return rows


def _row_to_entry(row: dict[str, Any]) -> ArchivedSubmission:
    return ArchivedSubmission(
        submission_id=str(row["submission_id"]),
        title=str(row.get("title", "")),
        embedding=tuple(float(v) for v in row["vector"]),
        point=Point3D(
            x=float(row["x"]), y=float(row["y"]), z=float(row["z"])
        ),
    )


async def load_snapshot(
    settings: Settings | None = None,
    sandbox_id: str | None = None,
) -> ArchiveSnapshot:
    """Materialize the archive (optionally one sandbox) as a snapshot.

    A missing table is an empty archive. Store failures and stored rows
    that fail snapshot validation raise ArchiveUnavailableError instead of
    yielding a partial snapshot.
    """
    cfg = settings or Settings()
    try:
        rows = await _guarded_read_rows(cfg)
    except CircuitBreakerError as exc:
        logger.warning("event=circuit_open component=archive action=fail")
        raise ArchiveUnavailableError("archive circuit open") from exc
    except Exception as exc:
        logger.warning("event=archive_read_failed", exc_info=True)
        raise ArchiveUnavailableError(f"archive read failed: {exc}") from exc

    if sandbox_id is not None:
        rows = [r for r in rows if r.get("sandbox_id") == sandbox_id]

    try:
        snapshot = build_snapshot(
            (_row_to_entry(r) for r in rows),
            sandbox_id=sandbox_id,
            embedding_model=cfg.litellm_embedding_model,
        )
    except ValidationError as exc:
        logger.error("event=archive_corrupt reason=%s", exc)
        raise ArchiveUnavailableError(f"archive corrupt: {exc}") from exc

    logger.info(
        "event=archive_snapshot_loaded items=%d sandbox_id=%s "
        "snapshot_id=%s",
        len(snapshot),
        sandbox_id,
        snapshot.snapshot_id[:12],
    )
    return snapshot


async def archive_submission(
    submission_id: str,
    title: str,
    embedding: EmbeddingVector,
    point: Point3D,
    settings: Settings | None = None,
    sandbox_id: str | None = None,
) -> None:
    """Append one scored submission to the archive table.

    The entry gets the same checks a snapshot applies on read, so a zero
    or non-finite embedding raises ValidationError and is never stored.
    """
    cfg = settings or Settings()
    entry = validate_entry(
        ArchivedSubmission(
            submission_id=submission_id,
            title=title,
            embedding=tuple(embedding),
            point=point,
        )
    )
    record: dict[str, Any] = {
        "vector": list(entry.embedding),
        "submission_id": submission_id,
        "title": title,
        "x": float(point.x),
        "y": float(point.y),
        "z": float(point.z),
        "sandbox_id": sandbox_id or "",
    }
    try:
        db = await lancedb.connect_async(cfg.lancedb_uri)
        table_list = await db.list_tables()
        if cfg.archive_table in table_list.tables:
            table = await db.open_table(cfg.archive_table)
            await table.add([record])  # type: ignore[arg-type]
        else:
            await db.create_table(  # type: ignore[arg-type]
                cfg.archive_table, [record]
            )
    except Exception as exc:
        logger.warning(
            "event=archive_write_failed submission_id=%s",
            submission_id,
            exc_info=True,
        )
        raise ArchiveUnavailableError(
            f"archive write failed: {exc}"
        ) from exc

    logger.info(
        "event=submission_archived submission_id=%s sandbox_id=%s",
        submission_id,
        sandbox_id,
    )
