"""Embedding service for generating text embeddings via OpenAI-compatible APIs."""

import asyncio
from typing import Protocol

from openai import AsyncOpenAI

from src.utils.clients import get_openai_client
from src.utils.errors import EmbeddingUnavailable
from src.utils.logging import get_logger

from .config import VideoRAGConfig

logger = get_logger(__name__)


class Embedder(Protocol):
    """Anything that maps text to fixed-dimension dense vectors."""

    async def embed(self, texts: list[str]) -> list[list[float]]: ...

    async def embed_one(self, text: str) -> list[float]: ...


class EmbeddingService:
    """Service for generating text embeddings.

    This service supports multiple embedding providers (OpenAI, Ollama, OpenRouter)
    through OpenAI-compatible APIs. Batches are embedded concurrently, and every
    failure is surfaced as EmbeddingUnavailable.
    """

    def __init__(self, config: VideoRAGConfig, client: AsyncOpenAI | None = None):
        """Initialize embedding service with configuration.

        Args:
            config: Configuration object with embedding provider settings.
            client: Optional pre-built AsyncOpenAI client.
        """
        self.config = config
        self.client = client or get_openai_client(
            provider=config.embedding_provider,
            base_url=config.embedding_base_url,
            api_key=config.embedding_api_key,
            timeout=config.request_timeout_seconds,
            max_retries=config.max_retries,
        )
        logger.info(
            "embedding_service_initialized",
            provider=config.embedding_provider,
            model=config.embedding_model,
            base_url=config.embedding_base_url,
        )

    async def embed_one(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Args:
            text: Text content to embed.

        Returns:
            Embedding vector as a list of floats.

        Raises:
            EmbeddingUnavailable: If the provider call fails.
        """
        try:
            response = await self.client.embeddings.create(
                input=text,
                model=self.config.embedding_model,
            )
            embedding = response.data[0].embedding
        except Exception as e:
            logger.exception(
                "embedding_failed",
                text_length=len(text),
                error_type=type(e).__name__,
            )
            raise EmbeddingUnavailable(f"Embedding request failed: {e}") from e

        logger.debug(
            "embedding_generated",
            text_length=len(text),
            embedding_dim=len(embedding),
        )
        return embedding

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts with batching.

        Args:
            texts: List of text strings to embed.

        Returns:
            List of embedding vectors in the same order as input texts.

        Raises:
            EmbeddingUnavailable: If any text in any batch fails to embed.
        """
        if not texts:
            return []

        batch_size = max(self.config.embedding_batch_size, 1)
        logger.info(
            "batch_embedding_started",
            count=len(texts),
            batch_size=batch_size,
        )

        embeddings: list[list[float]] = []

        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            batch_embeddings = await asyncio.gather(
                *[self.embed_one(text) for text in batch]
            )
            embeddings.extend(batch_embeddings)

            logger.debug(
                "batch_completed",
                batch_num=i // batch_size + 1,
                count=len(batch),
            )

        logger.info(
            "batch_embedding_completed",
            total_embeddings=len(embeddings),
        )
        return embeddings
