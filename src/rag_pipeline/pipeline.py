"""Ingestion pipeline: video URL to persisted, searchable transcript segments."""

from src.utils.errors import InvalidSourceURL, TranscriptUnavailable
from src.utils.logging import get_logger

from .chunking_service import ChunkingService
from .config import VideoRAGConfig, get_config
from .embedding_service import EmbeddingService
from .index_service import VectorIndex
from .registry_service import CorpusRegistry, SupabaseRegistry
from .schemas import IngestionResult
from .youtube_service import YouTubeService, canonical_url, extract_video_id

logger = get_logger(__name__)

ALREADY_PROCESSED_MESSAGE = (
    "Video already processed and transcript added to global FAISS index."
)
PROCESSED_MESSAGE = "Video processed and added to global FAISS index successfully"


class IngestionPipeline:
    """Orchestrates ingestion of a single video into the global index.

    This class coordinates the fetcher, chunker, vector index and corpus
    registry. Ingestion is idempotent per video: a video already marked
    processed is acknowledged without fetching or embedding anything.
    """

    def __init__(
        self,
        youtube_service: YouTubeService,
        chunking_service: ChunkingService,
        index: VectorIndex,
        registry: CorpusRegistry,
    ):
        self.youtube_service = youtube_service
        self.chunking_service = chunking_service
        self.index = index
        self.registry = registry

    @classmethod
    def from_config(
        cls,
        config: VideoRAGConfig | None = None,
        index: VectorIndex | None = None,
    ) -> "IngestionPipeline":
        """Build a pipeline with all services created from configuration.

        Args:
            config: Configuration object. If None, loads from environment.
            index: Shared index handle. A new one is created if None.
        """
        config = config or get_config()
        index = index or VectorIndex(config, EmbeddingService(config))

        logger.info("pipeline_initialized", index_path=config.index_path)
        return cls(
            youtube_service=YouTubeService(config),
            chunking_service=ChunkingService(config),
            index=index,
            registry=SupabaseRegistry(config),
        )

    async def process_video(self, url: str | None) -> IngestionResult:
        """Fetch, chunk, embed and index the transcript of one video.

        This method:
        1. Validates the URL and resolves the video id
        2. Skips videos the registry already marks as processed
        3. Records the video as unprocessed
        4. Fetches the transcript
        5. Chunks it and commits the segments to the index (embed + persist)
        6. Marks the video processed

        Args:
            url: YouTube video URL.

        Returns:
            IngestionResult describing what happened.

        Raises:
            InvalidSourceURL: If the URL is missing or malformed.
            TranscriptUnavailable: If no transcript could be retrieved.
            EmbeddingUnavailable: If embedding the segments failed.
            IndexWriteFailure: If the index could not be persisted.
        """
        if not url or not url.strip():
            raise InvalidSourceURL("Video URL is required.")

        url = url.strip()
        video_id = extract_video_id(url)
        registry_url = canonical_url(video_id)

        logger.info("processing_video", video_id=video_id, url=url)

        existing = await self.registry.find_by_url(registry_url)
        if existing is not None and existing.processed:
            logger.info("video_already_processed", video_id=video_id)
            return IngestionResult(
                message=ALREADY_PROCESSED_MESSAGE,
                video_id=video_id,
                url=url,
                already_processed=True,
            )

        if existing is None:
            await self.registry.upsert(registry_url, processed=False)

        transcript = await self.youtube_service.fetch(url)
        if not transcript.strip():
            logger.warning("video_processing_failed", video_id=video_id, reason="no_transcript")
            raise TranscriptUnavailable(
                "Could not retrieve transcript for the provided YouTube URL. "
                "It might be unavailable or disabled."
            )

        segments = self.chunking_service.split(transcript, video_id, url)

        try:
            index_path = await self.index.commit(segments)
        except Exception as e:
            logger.error(
                "video_processing_failed",
                video_id=video_id,
                error_type=type(e).__name__,
            )
            raise

        await self.registry.upsert(registry_url, processed=True)

        logger.info("video_processed", video_id=video_id, chunks=len(segments))
        return IngestionResult(
            message=PROCESSED_MESSAGE,
            video_id=video_id,
            url=url,
            chunks_created=len(segments),
            global_faiss_index_path=str(index_path),
        )
