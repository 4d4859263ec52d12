"""Tests for the two-step singleton logging configuration."""

from __future__ import annotations

import logging
import os
from unittest.mock import patch

import pytest

from sovereign_score.logging_config import (
    _SUPPRESSED_LOGGERS,
    LOG_DATEFMT,
    LOG_FORMAT,
    apply_log_level,
    cleanup_third_party_handlers,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _reset_flags() -> None:
    """Reset singleton flags before each test."""
    import sovereign_score.logging_config as mod

    mod._configured = False
    mod._handlers_cleaned = False


def test_setup_logging_is_idempotent() -> None:
    with patch(
        "sovereign_score.logging_config.logging.basicConfig"
    ) as mock_bc:
        setup_logging()
        setup_logging()
        mock_bc.assert_called_once()


def test_level_passed_to_basic_config() -> None:
    with patch(
        "sovereign_score.logging_config.logging.basicConfig"
    ) as mock_bc:
        setup_logging("debug")
    assert mock_bc.call_args.kwargs["level"] == logging.DEBUG
    assert mock_bc.call_args.kwargs["format"] == LOG_FORMAT
    assert mock_bc.call_args.kwargs["datefmt"] == LOG_DATEFMT


def test_litellm_log_env_var_set() -> None:
    os.environ.pop("LITELLM_LOG", None)
    setup_logging()
    assert os.environ.get("LITELLM_LOG") == "WARNING"


def test_litellm_log_env_var_preserves_existing() -> None:
    os.environ["LITELLM_LOG"] = "ERROR"
    try:
        setup_logging()
        assert os.environ["LITELLM_LOG"] == "ERROR"
    finally:
        os.environ.pop("LITELLM_LOG", None)


def test_suppressed_loggers_at_warning() -> None:
    setup_logging()
    for name in _SUPPRESSED_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING, name


def test_cleanup_clears_litellm_handlers() -> None:
    lg = logging.getLogger("LiteLLM")
    lg.addHandler(logging.StreamHandler())
    lg.propagate = False

    cleanup_third_party_handlers()
    assert lg.handlers == []
    assert lg.propagate is True


def test_cleanup_is_idempotent() -> None:
    lg = logging.getLogger("LiteLLM")
    cleanup_third_party_handlers()

    handler = logging.StreamHandler()
    lg.addHandler(handler)
    try:
        cleanup_third_party_handlers()
        assert handler in lg.handlers
    finally:
        lg.removeHandler(handler)


def test_adapter_loggers_cover_embedder_and_archive() -> None:
    assert "LiteLLM" in _SUPPRESSED_LOGGERS
    assert "lancedb" in _SUPPRESSED_LOGGERS


def test_apply_log_level_sets_root_only() -> None:
    root = logging.getLogger()
    previous = root.level
    setup_logging()
    try:
        apply_log_level("debug")
        assert root.level == logging.DEBUG
        assert logging.getLogger("lancedb").level == logging.WARNING
    finally:
        root.setLevel(previous)
