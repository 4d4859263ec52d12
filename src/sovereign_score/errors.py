"""Error taxonomy for the scoring core.

- ValidationError: input outside its documented domain. Always surfaced,
  never repaired, so the trace keeps matching the inputs.
- ConfigurationError: toggle set or policy malformed or incomplete.
- IntegrityViolation: a stored score no longer matches its hash. Raised
  only by the verification helpers consumers call.
- ArchiveUnavailableError: the archive store failed. Redundancy is never
  computed against a partial or missing archive.
"""

from __future__ import annotations


class ScoringError(Exception):
    """Base class for every error raised by sovereign_score."""


class ValidationError(ScoringError, ValueError):
    """An input value is outside its documented domain."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field


class ConfigurationError(ScoringError):
    """Toggle set or scoring policy is malformed or missing a field."""


class IntegrityViolation(ScoringError):
    """Recomputed integrity hash differs from the stored one."""

    def __init__(self, expected: str, computed: str) -> None:
        super().__init__(
            "integrity hash mismatch: "
            f"stored={expected[:12]}... computed={computed[:12]}..."
        )
        self.expected = expected
        self.computed = computed


class ArchiveUnavailableError(ScoringError):
    """The archive store could not be read or written."""
