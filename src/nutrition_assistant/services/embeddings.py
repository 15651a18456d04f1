"""Embedding service and vector helpers."""

import asyncio
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

_logger = logging.getLogger(__name__)


class EmbeddingClient(Protocol):
    """Interface for text embedding providers."""

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one embedding per input text."""


@dataclass
class EmbeddingService:
    """Embedding wrapper that never raises into callers."""

    client: EmbeddingClient
    timeout_seconds: float = 20.0

    async def embed(self, text: str) -> list[float]:
        """Embed a single text, returning an empty vector on failure."""
        vectors = await self.embed_many([text])
        return vectors[0] if vectors else []

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts in one call, returning [] on failure."""
        if not texts:
            return []
        try:
            vectors = await asyncio.wait_for(
                self.client.embed(texts), timeout=self.timeout_seconds
            )
        except Exception as exc:
            _logger.warning("Embedding failed for %s text(s): %s", len(texts), exc)
            return []
        if not _is_valid_batch(vectors, len(texts)):
            _logger.warning("Embedding response malformed for %s text(s)", len(texts))
            return []
        return [[float(value) for value in vector] for vector in vectors]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return cosine similarity, 0.0 for empty or zero-norm vectors."""
    length = min(len(a), len(b))
    if length == 0:
        return 0.0
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for index in range(length):
        dot += a[index] * b[index]
        norm_a += a[index] * a[index]
        norm_b += b[index] * b[index]
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def _is_valid_batch(vectors: object, expected: int) -> bool:
    if not isinstance(vectors, list) or len(vectors) != expected:
        return False
    for vector in vectors:
        if not isinstance(vector, list) or not vector:
            return False
        if not all(isinstance(value, int | float) for value in vector):
            return False
    return True
