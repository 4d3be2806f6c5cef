"""Chunking service for overlapping, boundary-aware transcript segmentation."""

import re

from src.utils.logging import get_logger

from .config import VideoRAGConfig
from .schemas import Segment

logger = get_logger(__name__)

_SENTENCE_END = re.compile(r"[.!?]\s")
_WHITESPACE = re.compile(r"\s")


class ChunkingService:
    """Service for chunking transcripts into overlapping segments.

    Segments are slices of the original text. Each segment is at most
    ``chunk_size`` characters, and every segment after the first starts
    ``chunk_overlap`` characters before the previous one ended, so context
    carries across boundaries. Cut points prefer a paragraph break, then a
    line break, then a sentence end, then whitespace, and only fall back to a
    hard cut when the window has none of these.
    """

    def __init__(self, config: VideoRAGConfig):
        """Initialize chunking service with configuration.

        Args:
            config: Configuration object with chunk size and overlap.
        """
        self.config = config
        self.chunk_size = config.chunk_size
        self.chunk_overlap = config.chunk_overlap
        logger.info(
            "chunking_service_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

    def split(self, text: str, video_id: str, video_url: str = "") -> list[Segment]:
        """Split transcript text into ordered, overlapping segments.

        Args:
            text: Full transcript text.
            video_id: Id of the video the text belongs to.
            video_url: URL the transcript was ingested from.

        Returns:
            Segments covering the whole text, in order. Empty text yields none.
        """
        spans = self._spans(text)
        segments: list[Segment] = []
        previous_end = 0

        for index, (start, end) in enumerate(spans):
            segments.append(
                Segment(
                    video_id=video_id,
                    chunk_index=index,
                    text_content=text[start:end],
                    start_offset=start,
                    end_offset=end,
                    overlap=previous_end - start if index else 0,
                    metadata={"video_id": video_id, "video_url": video_url},
                )
            )
            previous_end = end

        logger.info(
            "chunking_completed",
            video_id=video_id,
            text_length=len(text),
            chunks_created=len(segments),
        )
        return segments

    def _spans(self, text: str) -> list[tuple[int, int]]:
        """Compute (start, end) offsets of every segment."""
        length = len(text)
        spans: list[tuple[int, int]] = []
        start = 0

        while start < length:
            hard_end = min(start + self.chunk_size, length)
            if hard_end == length:
                spans.append((start, length))
                break

            end = self._find_break(text, start, hard_end)
            spans.append((start, end))
            start = max(end - self.chunk_overlap, 0)

        return spans

    def _find_break(self, text: str, start: int, hard_end: int) -> int:
        """Pick the end offset for a segment starting at ``start``.

        The cut must leave the segment longer than the overlap, otherwise the
        next segment would not start after this one.
        """
        earliest = start + self.chunk_overlap + 1
        window = text[start:hard_end]

        for separator in ("\n\n", "\n"):
            position = window.rfind(separator)
            if position != -1:
                end = start + position + len(separator)
                if end >= earliest:
                    return end

        for pattern in (_SENTENCE_END, _WHITESPACE):
            end = -1
            for match in pattern.finditer(window):
                end = start + match.end()
            if end >= earliest:
                return end

        return hard_end
