"""CLI entry point: ``sovereign-score score`` and ``sovereign-score verify``."""

from __future__ import annotations

# Singleton logging, before any transitive litellm imports
from sovereign_score.logging_config import setup_logging

setup_logging()

import argparse  # noqa: E402
import asyncio  # noqa: E402
import json  # noqa: E402
import sys  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any  # noqa: E402

from sovereign_score import __version__  # noqa: E402
from sovereign_score.config import Settings  # noqa: E402
from sovereign_score.errors import (  # noqa: E402
    IntegrityViolation,
    ScoringError,
    ValidationError,
)
from sovereign_score.logging_config import (  # noqa: E402
    apply_log_level,
    cleanup_third_party_handlers,
)
from sovereign_score.scoring.atomic_scorer import evaluate  # noqa: E402
from sovereign_score.scoring.bridgespec import (  # noqa: E402
    extract_bridge_spec,
)
from sovereign_score.scoring.integrity import verify_integrity  # noqa: E402
from sovereign_score.scoring.schemas import Dimensions  # noqa: E402
from sovereign_score.vectors.archive_store import load_snapshot  # noqa: E402
from sovereign_score.vectors.embedder import (  # noqa: E402
    vectorize_submission,
)
from sovereign_score.vectors.redundancy import (  # noqa: E402
    detect_redundancy,
)

# litellm is imported by now; drop its duplicate handlers
cleanup_third_party_handlers()


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"sovereign-score {__version__}")
        return

    if args.command == "score":
        _run_score(args)
    elif args.command == "verify":
        _run_verify(args)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="sovereign-score",
        description=(
            "Deterministic, auditable scoring of "
            "sovereign submissions."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    score = sub.add_parser(
        "score",
        help="Score a submission described by a JSON file",
    )
    score.add_argument(
        "input",
        type=str,
        help="Path to the submission JSON",
    )
    score.add_argument(
        "--output",
        "-o",
        default=None,
        help="Write the AtomicScore JSON here (default: stdout)",
    )
    score.add_argument(
        "--with-archive",
        action="store_true",
        help=(
            "Measure overlap against the LanceDB archive "
            "when the input has no overlap_percent"
        ),
    )
    score.add_argument(
        "--sandbox-id",
        default=None,
        help="Restrict the archive to one sandbox",
    )

    verify = sub.add_parser(
        "verify",
        help="Recompute and check the integrity hash of a score",
    )
    verify.add_argument(
        "score_file",
        type=str,
        help="Path to an AtomicScore JSON file",
    )

    return parser


def _read_json(path: str) -> dict[str, Any]:
    p = Path(path)
    if not p.is_file():
        print(f"Error: {path} is not a file", file=sys.stderr)
        sys.exit(1)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        print(f"Error: {path} is not valid JSON: {exc}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(data, dict):
        print(f"Error: {path} must hold a JSON object", file=sys.stderr)
        sys.exit(1)
    return data


def _flag(data: dict[str, Any], name: str) -> bool:
    """A missing flag is False; anything but a JSON boolean is rejected."""
    value = data.get(name, False)
    if not isinstance(value, bool):
        raise ValidationError(name, f"must be true or false, got {value!r}")
    return value


async def _measure_overlap(
    data: dict[str, Any],
    dimensions: Dimensions,
    settings: Settings,
    sandbox_id: str | None,
) -> tuple[float, str]:
    """Embed the submission text and compare it with the archive."""
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        print(
            "Error: --with-archive needs a non-empty 'text' field",
            file=sys.stderr,
        )
        sys.exit(1)
    vectorized = await vectorize_submission(text, dimensions, settings)
    snapshot = await load_snapshot(settings, sandbox_id)
    result = detect_redundancy(
        vectorized.embedding,
        vectorized.point,
        snapshot,
        settings.redundancy_config,
    )
    return result.overlap_percent, result.snapshot_id


def _run_score(args: argparse.Namespace) -> None:
    """Execute the score command."""
    settings = Settings()
    apply_log_level(settings.log_level)
    data = _read_json(args.input)
    sandbox_id = args.sandbox_id or settings.sandbox_id

    try:
        raw_dims = data.get("dimensions")
        if not isinstance(raw_dims, dict):
            print(
                "Error: input needs a 'dimensions' object",
                file=sys.stderr,
            )
            sys.exit(1)
        dimensions = Dimensions(
            novelty=raw_dims.get("novelty"),  # type: ignore[arg-type]
            density=raw_dims.get("density"),  # type: ignore[arg-type]
            coherence=raw_dims.get("coherence"),  # type: ignore[arg-type]
            alignment=raw_dims.get("alignment"),  # type: ignore[arg-type]
        )

        overlap: float | None = data.get("overlap_percent")
        snapshot_id: str | None = data.get("snapshot_id")
        if overlap is None and args.with_archive:
            overlap, snapshot_id = asyncio.run(
                _measure_overlap(data, dimensions, settings, sandbox_id)
            )

        score = evaluate(
            dimensions,
            overlap,
            _flag(data, "seed_flag"),
            _flag(data, "edge_flag"),
            data.get("toggles", {}),
            extract_bridge_spec(data),
            snapshot_id,
            policy=settings.scoring_policy,
            seed=data.get("seed"),
            sandbox_id=sandbox_id,
            operator_id=settings.operator_id,
        )
    except ScoringError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    rendered = score.model_dump_json(indent=2)
    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(rendered + "\n", encoding="utf-8")
        print(f"Score {score.final:.0f} written to {out}")
    else:
        print(rendered)


def _run_verify(args: argparse.Namespace) -> None:
    """Execute the verify command."""
    data = _read_json(args.score_file)
    try:
        verify_integrity(data)
    except (IntegrityViolation, ValueError) as exc:
        print(f"TAMPERED: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"OK {data['integrity_hash']}")


if __name__ == "__main__":
    main()
