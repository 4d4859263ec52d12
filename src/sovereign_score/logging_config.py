"""Logging for the scoring CLI and its two I/O adapters.

The scoring core only emits ``event=...`` records through module loggers.
Handlers are installed here, once, by the process entry point:

1. setup_logging() runs before ``vectors.embedder`` imports litellm,
   which reads LITELLM_LOG at import time. Embedding-client and LanceDB
   chatter is held at WARNING so a scoring run logs its own events.
2. cleanup_third_party_handlers() runs after the adapters are imported.
   litellm installs its own StreamHandlers; removing them keeps an
   embedding failure from printing twice.
3. apply_log_level() takes the validated ``Settings.log_level`` once
   settings are loaded.
"""

import logging
import os

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# vectors.embedder: litellm and the HTTP clients under it
_EMBEDDING_LOGGERS = (
    "LiteLLM",
    "LiteLLM Router",
    "LiteLLM Proxy",
    "openai._base_client",
    "httpx",
)
# vectors.archive_store
_ARCHIVE_LOGGERS = ("lancedb",)

_SUPPRESSED_LOGGERS = _EMBEDDING_LOGGERS + _ARCHIVE_LOGGERS
_LITELLM_LOGGERS = _EMBEDDING_LOGGERS[:3]

_configured = False
_handlers_cleaned = False


def setup_logging(level: str = "INFO") -> None:
    """Install the root handler and quiet the adapter libraries.

    Second call is a no-op.
    """
    global _configured  # noqa: PLW0603
    if _configured:
        return
    _configured = True

    os.environ.setdefault("LITELLM_LOG", "WARNING")

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )

    for name in _SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def cleanup_third_party_handlers() -> None:
    """Remove litellm's handlers so its records reach root only once.

    Second call is a no-op.
    """
    global _handlers_cleaned  # noqa: PLW0603
    if _handlers_cleaned:
        return
    _handlers_cleaned = True

    for name in _LITELLM_LOGGERS:
        lg = logging.getLogger(name)
        lg.handlers.clear()
        lg.propagate = True


def apply_log_level(level: str) -> None:
    """Set the root level; adapter loggers stay at WARNING."""
    logging.getLogger().setLevel(level.upper())
