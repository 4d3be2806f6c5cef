"""Shared fixtures for the test suite."""

import hashlib
import re
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from src.rag_pipeline.config import VideoRAGConfig
from src.rag_pipeline.schemas import Source
from src.utils.errors import EmbeddingUnavailable


class HashingEmbedder:
    """Deterministic bag-of-words embedder for tests.

    Each word is hashed into one of ``dimension`` buckets, so texts sharing
    words get similar vectors and identical texts get identical vectors.
    """

    def __init__(self, dimension: int = 64):
        self.dimension = dimension
        self.fail = False
        self.embedded_texts: list[str] = []

    def vector(self, text: str) -> list[float]:
        vec = [0.0] * self.dimension
        for word in re.findall(r"\w+", text.lower()):
            digest = hashlib.md5(word.encode("utf-8")).digest()
            vec[int.from_bytes(digest[:4], "little") % self.dimension] += 1.0
        return vec

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if self.fail:
            raise EmbeddingUnavailable("embedding backend down")
        self.embedded_texts.extend(texts)
        return [self.vector(text) for text in texts]

    async def embed_one(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]


class InMemoryRegistry:
    """Dict-backed corpus registry with the same contract as SupabaseRegistry."""

    def __init__(self) -> None:
        self.rows: dict[str, Source] = {}
        self._next_id = 1

    async def find_by_url(self, url: str) -> Source | None:
        return self.rows.get(url)

    async def upsert(self, url: str, processed: bool) -> Source:
        existing = self.rows.get(url)
        if existing is not None:
            source = existing.model_copy(update={"processed": processed})
        else:
            source = Source(id=self._next_id, url=url, processed=processed)
            self._next_id += 1
        self.rows[url] = source
        return source


@pytest.fixture
def index_path(tmp_path: Path) -> Path:
    """Location of the index file inside a per-test directory."""
    return tmp_path / "faiss_index" / "combined_videos.faiss"


@pytest.fixture
def rag_config(index_path: Path) -> VideoRAGConfig:
    """Pipeline configuration with small chunks and a temporary index path."""
    return VideoRAGConfig(
        supadata_api_key="test_supadata_key",
        chunk_size=100,
        chunk_overlap=20,
        embedding_api_key="test_api_key",
        index_path=str(index_path),
        supabase_url="https://test.supabase.co",
        supabase_key="test_key",
    )


@pytest.fixture
def embedder() -> HashingEmbedder:
    return HashingEmbedder()


@pytest.fixture
def registry() -> InMemoryRegistry:
    return InMemoryRegistry()


@pytest.fixture
def supadata_client() -> MagicMock:
    """Mock Supadata client returning a short plain-text transcript."""
    client = MagicMock()
    client.youtube.transcript.return_value = MagicMock(
        content="Hello world. This is a test.",
        lang="en",
        available_langs=["en"],
    )
    return client
