"""Embedding provider adapter.

Calls the configured embedding model through litellm, guarded by a
circuit breaker and rate-limit retry. Without an API key, or when the
provider fails, falls back to a deterministic hash-based embedding so
redundancy checks keep working (with no semantic meaning).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import litellm
from circuitbreaker import (
    CircuitBreakerError,
    circuit,  # pyright: ignore[reportUnknownVariableType]
)
from litellm.exceptions import RateLimitError as LitellmRateLimitError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from sovereign_score.config import Settings
from sovereign_score.constants import (
    CB_EMBED_FAILURE_THRESHOLD,
    CB_EMBED_RECOVERY_TIMEOUT,
    FALLBACK_EMBEDDING_DIMENSIONS,
    FALLBACK_EMBEDDING_MODEL,
    MAX_EMBED_INPUT_CHARS,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_WAIT,
)
from sovereign_score.scoring.schemas import Dimensions
from sovereign_score.vectors.mapping import (
    map_embedding_to_coordinates,
    map_to_coordinates,
)
from sovereign_score.vectors.schemas import Point3D

logger = logging.getLogger(__name__)

# litellm stubs have partially unknown types; typed alias
if TYPE_CHECKING:
    _aembedding: Callable[..., Coroutine[Any, Any, Any]]
else:
    _aembedding = litellm.aembedding


@dataclass(frozen=True)
class EmbeddingResult:
    embedding: tuple[float, ...]
    model: str
    dimensions: int


@dataclass(frozen=True)
class Vectorization:
    """Embedding plus HHF coordinate for one submission."""

    embedding: tuple[float, ...]
    point: Point3D
    model: str
    dimensions: int


def _is_non_rate_limit_error(
    thrown_type: type, thrown_value: BaseException
) -> bool:
    """Rate limits are backpressure, not outages; don't trip the breaker."""
    return not issubclass(thrown_type, LitellmRateLimitError)


@retry(
    stop=stop_after_attempt(RETRY_MAX_ATTEMPTS),
    wait=wait_exponential_jitter(
        initial=RETRY_INITIAL_WAIT, max=RETRY_MAX_WAIT
    ),
    retry=retry_if_exception_type(LitellmRateLimitError),
    reraise=True,
)
@circuit(  # pyright: ignore[reportUntypedFunctionDecorator]
    failure_threshold=CB_EMBED_FAILURE_THRESHOLD,
    recovery_timeout=CB_EMBED_RECOVERY_TIMEOUT,
    expected_exception=_is_non_rate_limit_error,
    name="embedding",
)
async def _guarded_embed(
    model: str, texts: list[str], api_key: str, timeout: int
) -> Any:
    """Circuit-breaker-protected embedding call with rate-limit retry."""
    return await _aembedding(
        model=model, input=texts, api_key=api_key, timeout=timeout
    )


def _rolling_hash(chunk: str) -> int:
    """Signed 32-bit h = h * 31 + code, matching the archived vectors."""
    h = 0
    for ch in chunk:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    return h - (1 << 32) if h & 0x80000000 else h


def fallback_embedding(
    text: str, dimensions: int = FALLBACK_EMBEDDING_DIMENSIONS
) -> EmbeddingResult:
    """Deterministic, non-semantic embedding from text chunk hashes.

    Texts shorter than ``dimensions`` leave trailing components at 0.
    """
    normalized = text.lower().strip()
    chunk_size = max(1, len(normalized) // dimensions)
    values: list[float] = []
    for i in range(dimensions):
        start = i * chunk_size
        chunk = normalized[start : start + chunk_size]
        values.append(math.tanh(_rolling_hash(chunk) / 1_000_000))
    return EmbeddingResult(
        embedding=tuple(values),
        model=FALLBACK_EMBEDDING_MODEL,
        dimensions=dimensions,
    )


async def embed_text(
    text: str,
    settings: Settings | None = None,
) -> EmbeddingResult:
    """Embed submission text, degrading to the fallback embedding."""
    cfg = settings or Settings()
    if not cfg.openai_api_key:
        logger.info("event=embed_fallback reason=no_api_key")
        return fallback_embedding(text, cfg.fallback_embedding_dimensions)

    truncated = text[:MAX_EMBED_INPUT_CHARS]
    try:
        response: Any = await _guarded_embed(
            cfg.litellm_embedding_model,
            [truncated],
            cfg.openai_api_key,
            cfg.embedding_timeout_seconds,
        )
        vec: list[float] = response.data[0]["embedding"]
        if not vec:
            raise ValueError("empty embedding in provider response")
    except CircuitBreakerError:
        logger.warning(
            "event=circuit_open component=embedding action=fallback"
        )
        return fallback_embedding(text, cfg.fallback_embedding_dimensions)
    except Exception:
        logger.warning(
            "event=embed_text_failed action=fallback", exc_info=True
        )
        return fallback_embedding(text, cfg.fallback_embedding_dimensions)

    return EmbeddingResult(
        embedding=tuple(float(v) for v in vec),
        model=cfg.litellm_embedding_model,
        dimensions=len(vec),
    )


async def vectorize_submission(
    text: str,
    dimensions: Dimensions | None = None,
    settings: Settings | None = None,
) -> Vectorization:
    """Embed text and place it in the HHF sandbox.

    With dimension scores the point comes from the scores; without them
    it is projected from the embedding alone.
    """
    result = await embed_text(text, settings)
    if dimensions is not None:
        point = map_to_coordinates(
            result.embedding,
            dimensions.novelty,
            dimensions.density,
            dimensions.coherence,
        )
    else:
        point = map_embedding_to_coordinates(result.embedding)
    return Vectorization(
        embedding=result.embedding,
        point=point,
        model=result.model,
        dimensions=result.dimensions,
    )
