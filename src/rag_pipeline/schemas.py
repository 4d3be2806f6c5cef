"""Pydantic schemas for the video transcript RAG pipeline."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Source(BaseModel):
    """Registry record for one ingested video.

    Mirrors a row of the ``videos`` table. ``url`` is the canonical watch URL
    of the video, so every URL layout of the same video maps to one record.
    """

    id: int | None = None
    url: str
    processed: bool = False


class Segment(BaseModel):
    """Bounded slice of a transcript.

    ``start_offset``/``end_offset`` locate the slice in the full transcript.
    The first ``overlap`` characters repeat the tail of the previous segment;
    the remainder is the segment's core text.
    """

    model_config = ConfigDict(frozen=True)

    video_id: str
    chunk_index: int
    text_content: str
    start_offset: int
    end_offset: int
    overlap: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def core_text(self) -> str:
        return self.text_content[self.overlap :]


class EmbeddedSegment(Segment):
    """Segment with its embedding vector; the index's unit of storage."""

    embedding: list[float]


class IngestionResult(BaseModel):
    """Outcome of a ``process_video`` call."""

    message: str
    video_id: str
    url: str
    already_processed: bool = False
    chunks_created: int = 0
    global_faiss_index_path: str | None = None
