"""Configuration module for the video transcript RAG pipeline."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class VideoRAGConfig(BaseModel):
    """Configuration for the video transcript RAG pipeline.

    This configuration class manages all settings for transcript fetching,
    chunking, embedding, index persistence and the corpus registry. All
    settings can be overridden via environment variables.
    """

    # Supadata API settings
    supadata_api_key: str = Field(
        default_factory=lambda: os.getenv("SUPADATA_API_KEY", "")
    )
    transcript_lang: str = Field(
        default_factory=lambda: os.getenv("TRANSCRIPT_LANG", "en")
    )

    # Chunking settings (character-based)
    chunk_size: int = Field(
        default_factory=lambda: int(os.getenv("CHUNK_SIZE", "1000"))
    )
    chunk_overlap: int = Field(
        default_factory=lambda: int(os.getenv("CHUNK_OVERLAP", "200"))
    )

    # Embedding settings
    embedding_provider: str = Field(
        default_factory=lambda: os.getenv("EMBEDDING_PROVIDER", "openai")
    )
    embedding_base_url: str = Field(
        default_factory=lambda: os.getenv(
            "EMBEDDING_BASE_URL", "https://api.openai.com/v1"
        )
    )
    embedding_api_key: str = Field(
        default_factory=lambda: os.getenv("EMBEDDING_API_KEY", "")
    )
    embedding_model: str = Field(
        default_factory=lambda: os.getenv(
            "EMBEDDING_MODEL_CHOICE", "text-embedding-3-small"
        )
    )
    embedding_batch_size: int = Field(
        default_factory=lambda: int(os.getenv("EMBEDDING_BATCH_SIZE", "10"))
    )

    # Index persistence
    index_path: str = Field(
        default_factory=lambda: os.getenv(
            "FAISS_INDEX_PATH", "faiss_index/combined_videos.faiss"
        )
    )

    # Corpus registry (Supabase)
    supabase_url: str = Field(default_factory=lambda: os.getenv("SUPABASE_URL", ""))
    supabase_key: str = Field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_KEY", "")
    )
    videos_table: str = Field(
        default_factory=lambda: os.getenv("VIDEOS_TABLE", "videos")
    )

    # Outbound service calls
    request_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT_SECONDS", "60"))
    )
    max_retries: int = Field(
        default_factory=lambda: int(os.getenv("SERVICE_MAX_RETRIES", "2"))
    )

    @model_validator(mode="after")
    def _check_chunk_bounds(self) -> "VideoRAGConfig":
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")
        return self


def get_config() -> VideoRAGConfig:
    """Get validated configuration instance.

    Returns:
        VideoRAGConfig: Validated configuration object with all settings.

    Raises:
        ValidationError: If environment variables are missing or invalid.
    """
    return VideoRAGConfig()
