"""OpenAI embeddings generation with validation and memoization."""

import asyncio
import hashlib
import re

from openai import OpenAI

from app.core.cache import CacheStore
from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)


def _get_client() -> OpenAI:
    """Get OpenAI client instance."""
    settings = get_settings()
    return OpenAI(api_key=settings.OPENAI_API_KEY)


def normalize_text(text: str) -> str:
    """Lowercase, trim and collapse whitespace."""
    return re.sub(r"\s+", " ", text.strip().lower())


def embedding_cache_key(text: str) -> str:
    digest = hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()
    return f"embedding:{digest}"


def embed_texts(texts: list[str]) -> list[list[float]]:
    """
    Generate embeddings for a list of texts using OpenAI.

    Args:
        texts: List of text strings to embed

    Returns:
        List of embedding vectors (each vector is list of floats)

    Raises:
        ValueError: If embedding dimension doesn't match expected EMBEDDING_DIM
        Exception: If OpenAI API call fails
    """
    if not texts:
        return []

    settings = get_settings()
    client = _get_client()

    try:
        response = client.embeddings.create(
            model=settings.EMBEDDING_MODEL,
            input=texts,
        )

        embeddings = []
        for i, embedding_obj in enumerate(response.data):
            embedding = embedding_obj.embedding

            if len(embedding) != settings.EMBEDDING_DIM:
                raise ValueError(
                    f"Embedding dimension mismatch for text {i}: "
                    f"expected {settings.EMBEDDING_DIM}, got {len(embedding)}"
                )

            embeddings.append(embedding)

        logger.debug(
            f"Generated {len(embeddings)} embeddings using {settings.EMBEDDING_MODEL}",
            extra={"extra_data": {"model": settings.EMBEDDING_MODEL, "count": len(embeddings)}},
        )

        return embeddings

    except Exception as e:
        logger.error(f"Failed to generate embeddings: {e}")
        raise


class QueryEmbedder:
    """Embeds search queries, memoizing vectors in the injected cache."""

    def __init__(self, cache: CacheStore | None = None):
        self.cache = cache

    async def embed(self, text: str) -> list[float]:
        key = embedding_cache_key(text)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        vectors = await asyncio.to_thread(embed_texts, [normalize_text(text)])
        vector = vectors[0]

        if self.cache is not None:
            self.cache.set(key, vector)
        return vector
