"""Unit tests for the video ingestion pipeline."""

import asyncio
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from src.rag_pipeline.chunking_service import ChunkingService
from src.rag_pipeline.config import VideoRAGConfig
from src.rag_pipeline.index_service import VectorIndex
from src.rag_pipeline.pipeline import (
    ALREADY_PROCESSED_MESSAGE,
    PROCESSED_MESSAGE,
    IngestionPipeline,
)
from src.rag_pipeline.registry_service import SupabaseRegistry
from src.rag_pipeline.youtube_service import YouTubeService
from src.utils.errors import EmbeddingUnavailable, InvalidSourceURL, TranscriptUnavailable

CANONICAL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.mark.unit
class TestIngestionPipeline:
    """Test suite for IngestionPipeline class."""

    @pytest.fixture
    def index(self, rag_config: VideoRAGConfig, embedder) -> VectorIndex:
        return VectorIndex(rag_config, embedder)

    @pytest.fixture
    def pipeline(
        self,
        rag_config: VideoRAGConfig,
        supadata_client: MagicMock,
        index: VectorIndex,
        registry,
    ) -> IngestionPipeline:
        """Pipeline wired with a mocked transcript API and in-memory registry."""
        return IngestionPipeline(
            youtube_service=YouTubeService(rag_config, client=supadata_client),
            chunking_service=ChunkingService(rag_config),
            index=index,
            registry=registry,
        )

    @pytest.mark.asyncio
    async def test_process_new_video(
        self,
        pipeline: IngestionPipeline,
        index: VectorIndex,
        registry,
        index_path: Path,
    ) -> None:
        """Test successful ingestion of a previously unseen video."""
        result = await pipeline.process_video("https://youtu.be/dQw4w9WgXcQ")

        assert result.message == PROCESSED_MESSAGE
        assert result.video_id == "dQw4w9WgXcQ"
        assert result.url == "https://youtu.be/dQw4w9WgXcQ"
        assert result.already_processed is False
        assert result.chunks_created == 1
        assert result.global_faiss_index_path == str(index_path)

        assert index_path.exists()
        assert index.has_source("dQw4w9WgXcQ")
        assert registry.rows[CANONICAL].processed is True

    @pytest.mark.asyncio
    async def test_long_transcript_creates_multiple_segments(
        self, pipeline: IngestionPipeline, supadata_client: MagicMock, index: VectorIndex
    ) -> None:
        supadata_client.youtube.transcript.return_value = MagicMock(
            content="The lecture covers many topics in depth. " * 20
        )

        result = await pipeline.process_video(CANONICAL)

        assert result.chunks_created > 1
        assert index.size == result.chunks_created

    @pytest.mark.asyncio
    async def test_reprocessing_is_idempotent(
        self,
        pipeline: IngestionPipeline,
        supadata_client: MagicMock,
        index: VectorIndex,
        embedder,
    ) -> None:
        """Test that any URL layout of a processed video is acknowledged without work."""
        await pipeline.process_video("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
        size_before = index.size
        embedded_before = len(embedder.embedded_texts)

        result = await pipeline.process_video("https://youtu.be/dQw4w9WgXcQ?t=10")

        assert result.message == ALREADY_PROCESSED_MESSAGE
        assert result.already_processed is True
        assert result.video_id == "dQw4w9WgXcQ"
        assert result.global_faiss_index_path is None
        assert index.size == size_before
        assert len(embedder.embedded_texts) == embedded_before
        supadata_client.youtube.transcript.assert_called_once()

    @pytest.mark.asyncio
    async def test_concurrent_requests_for_same_video_index_once(
        self,
        pipeline: IngestionPipeline,
        index: VectorIndex,
        embedder,
        registry,
        rag_config: VideoRAGConfig,
    ) -> None:
        """Test that simultaneous ingestion of one video stores its segments once."""
        results = await asyncio.gather(
            pipeline.process_video("https://www.youtube.com/watch?v=dQw4w9WgXcQ"),
            pipeline.process_video("https://youtu.be/dQw4w9WgXcQ"),
            pipeline.process_video("https://www.youtube.com/embed/dQw4w9WgXcQ"),
        )

        chunks_per_ingestion = max(result.chunks_created for result in results)
        assert chunks_per_ingestion == 1
        assert index.size == chunks_per_ingestion
        assert len(embedder.embedded_texts) == chunks_per_ingestion
        assert list(registry.rows) == [CANONICAL]
        assert registry.rows[CANONICAL].processed is True

        on_disk = await VectorIndex(rag_config, embedder).load_or_create()
        assert on_disk.size == chunks_per_ingestion

    @pytest.mark.asyncio
    async def test_missing_transcript_raises_not_found(
        self,
        pipeline: IngestionPipeline,
        supadata_client: MagicMock,
        index: VectorIndex,
        registry,
    ) -> None:
        """Test that an unavailable transcript maps to TranscriptUnavailable."""
        supadata_client.youtube.transcript.side_effect = Exception("Transcripts disabled")

        with pytest.raises(TranscriptUnavailable) as exc_info:
            await pipeline.process_video(CANONICAL)

        assert exc_info.value.status_code == 404
        assert index.is_empty
        assert registry.rows[CANONICAL].processed is False

    @pytest.mark.asyncio
    async def test_whitespace_transcript_raises_not_found(
        self, pipeline: IngestionPipeline, supadata_client: MagicMock
    ) -> None:
        supadata_client.youtube.transcript.return_value = MagicMock(content="   \n ")

        with pytest.raises(TranscriptUnavailable):
            await pipeline.process_video(CANONICAL)

    @pytest.mark.asyncio
    async def test_invalid_url_raises(
        self, pipeline: IngestionPipeline, supadata_client: MagicMock, registry
    ) -> None:
        with pytest.raises(InvalidSourceURL, match="Invalid YouTube URL format"):
            await pipeline.process_video("https://example.com/not-a-video")

        assert registry.rows == {}
        supadata_client.youtube.transcript.assert_not_called()

    @pytest.mark.parametrize("url", [None, "", "   "])
    @pytest.mark.asyncio
    async def test_missing_url_raises(
        self, pipeline: IngestionPipeline, url: str | None
    ) -> None:
        with pytest.raises(InvalidSourceURL, match="Video URL is required."):
            await pipeline.process_video(url)

    @pytest.mark.asyncio
    async def test_embedding_failure_leaves_video_unprocessed(
        self,
        pipeline: IngestionPipeline,
        embedder,
        registry,
        index_path: Path,
    ) -> None:
        """Test that a failed embedding can be retried by processing again."""
        embedder.fail = True

        with pytest.raises(EmbeddingUnavailable):
            await pipeline.process_video(CANONICAL)

        assert registry.rows[CANONICAL].processed is False
        assert not index_path.exists()

        embedder.fail = False
        result = await pipeline.process_video(CANONICAL)

        assert result.message == PROCESSED_MESSAGE
        assert registry.rows[CANONICAL].processed is True
        assert list(registry.rows) == [CANONICAL]

    @pytest.mark.asyncio
    async def test_multiple_videos_share_one_index(
        self, pipeline: IngestionPipeline, supadata_client: MagicMock, index: VectorIndex
    ) -> None:
        await pipeline.process_video("https://youtu.be/aaaaaaaaaaa")
        supadata_client.youtube.transcript.return_value = MagicMock(
            content="A different video about rockets."
        )
        await pipeline.process_video("https://youtu.be/bbbbbbbbbbb")

        assert index.source_ids() == {"aaaaaaaaaaa", "bbbbbbbbbbb"}

    def test_from_config_wires_services(self, rag_config: VideoRAGConfig) -> None:
        """Test that from_config builds every service from configuration."""
        with (
            patch("src.rag_pipeline.youtube_service.get_supadata_client"),
            patch("src.rag_pipeline.registry_service.get_supabase_client"),
            patch("src.rag_pipeline.embedding_service.get_openai_client"),
        ):
            pipeline = IngestionPipeline.from_config(rag_config)

        assert isinstance(pipeline.youtube_service, YouTubeService)
        assert isinstance(pipeline.chunking_service, ChunkingService)
        assert isinstance(pipeline.index, VectorIndex)
        assert isinstance(pipeline.registry, SupabaseRegistry)
        assert pipeline.index.path == Path(rag_config.index_path)
