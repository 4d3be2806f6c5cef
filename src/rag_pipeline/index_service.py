"""Persistent FAISS vector index over embedded transcript segments."""

import asyncio
import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import faiss
import numpy as np

from src.utils.errors import EmbeddingUnavailable, IndexWriteFailure
from src.utils.logging import get_logger

from .config import VideoRAGConfig
from .embedding_service import Embedder
from .schemas import EmbeddedSegment, Segment

logger = get_logger(__name__)


def _normalise(matrix: np.ndarray) -> np.ndarray:
    """L2-normalise rows so inner product equals cosine similarity."""
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return np.ascontiguousarray(matrix / norms, dtype=np.float32)


def _read_index_file(path: Path) -> tuple[faiss.Index, list[Segment]]:
    with np.load(path, allow_pickle=False) as data:
        index = faiss.deserialize_index(data["index"])
        documents = json.loads(data["documents"].tobytes().decode("utf-8"))

    segments = [Segment.model_validate(doc) for doc in documents]
    if index.ntotal != len(segments):
        raise ValueError(
            f"Index file {path} holds {index.ntotal} vectors "
            f"but {len(segments)} segments"
        )
    return index, segments


def _write_index_file(
    path: Path, index: faiss.Index, documents: list[dict[str, Any]]
) -> None:
    """Write vectors and documents to ``path`` via temp file and rename.

    Readers either see the previous file or the complete new one.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = np.frombuffer(json.dumps(documents).encode("utf-8"), dtype=np.uint8)

    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            np.savez(fh, index=faiss.serialize_index(index), documents=payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


class VectorIndex:
    """Global, append-friendly nearest-neighbour index over transcript segments.

    Vectors live in a ``faiss.IndexFlatIP`` over L2-normalised embeddings, so
    scores are cosine similarities. Segment documents are kept in insertion
    order; a segment's position in that list is its FAISS id.

    The index is loaded from disk lazily, once, on first use. Loading is
    single-flight, and all mutations (embed, append, persist) run under one
    writer lock. Searches never wait for the writer.
    """

    def __init__(self, config: VideoRAGConfig, embedder: Embedder):
        """Initialize the index handle.

        Args:
            config: Configuration with the index file path.
            embedder: Embedding backend used to vectorise new segments.
        """
        self.config = config
        self.embedder = embedder
        self.path = Path(config.index_path)

        self._index: faiss.Index | None = None
        self._segments: list[Segment] = []
        self._source_ids: set[str] = set()
        self._loaded = False
        self._dirty = False

        self._load_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    # ==========================================================================
    # State
    # ==========================================================================

    @property
    def size(self) -> int:
        return len(self._segments)

    @property
    def is_empty(self) -> bool:
        return self._index is None or self._index.ntotal == 0

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def has_unpersisted_changes(self) -> bool:
        return self._dirty

    def has_source(self, video_id: str) -> bool:
        return video_id in self._source_ids

    def source_ids(self) -> set[str]:
        return set(self._source_ids)

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    async def load_or_create(self) -> "VectorIndex":
        """Materialise the index in memory, reading the persisted file once.

        Concurrent callers wait for the first loader and share its result.
        Later calls return immediately without touching disk until
        ``invalidate()`` is called.

        Returns:
            This index, loaded (possibly empty if no file exists yet).
        """
        if self._loaded:
            return self

        async with self._load_lock:
            if self._loaded:
                return self

            if self.path.exists():
                logger.info("index_loading", path=str(self.path))
                try:
                    index, segments = await asyncio.to_thread(
                        _read_index_file, self.path
                    )
                except Exception as e:
                    logger.exception(
                        "index_load_failed",
                        path=str(self.path),
                        error_type=type(e).__name__,
                    )
                    raise

                self._index = index
                self._segments = segments
                self._source_ids = {segment.video_id for segment in segments}
                logger.info(
                    "index_loaded",
                    path=str(self.path),
                    segments=len(segments),
                    sources=len(self._source_ids),
                )
            else:
                logger.info("index_created_empty", path=str(self.path))

            self._loaded = True

        return self

    async def invalidate(self) -> None:
        """Drop the in-memory state so the next use reloads from disk.

        Waits for any in-flight write to finish first, so a commit never
        appends to a half-cleared index.
        """
        async with self._write_lock:
            if self._dirty:
                logger.warning(
                    "index_invalidated_with_unpersisted_changes",
                    segments=len(self._segments),
                )
            self._index = None
            self._segments = []
            self._source_ids = set()
            self._loaded = False
            self._dirty = False
            logger.info("index_invalidated", path=str(self.path))

    # ==========================================================================
    # Mutation
    # ==========================================================================

    async def add(self, segments: list[Segment]) -> "VectorIndex":
        """Embed segments and append them to the index.

        All-or-nothing: if embedding fails for any segment, none are added.

        Raises:
            EmbeddingUnavailable: If the embedding backend fails.
        """
        async with self._write_lock:
            await self._add(segments)
        return self

    async def persist(self) -> Path:
        """Write the full in-memory index to disk.

        Raises:
            IndexWriteFailure: If the file could not be written. The previous
                file is left intact and in-memory state is kept.
        """
        async with self._write_lock:
            return await self._persist()

    async def commit(self, segments: list[Segment]) -> Path:
        """Add segments and persist, as one single-writer operation.

        Segments whose sources are already indexed in memory are not embedded
        again; only the persist step runs, which reconciles a previously failed
        write.

        Returns:
            Path of the persisted index file.
        """
        async with self._write_lock:
            await self.load_or_create()

            incoming = {segment.video_id for segment in segments}
            if incoming and all(self.has_source(video_id) for video_id in incoming):
                logger.info(
                    "segments_already_indexed",
                    video_ids=sorted(incoming),
                    unpersisted=self._dirty,
                )
            else:
                await self._add(segments)

            return await self._persist()

    async def _add(self, segments: list[Segment]) -> None:
        await self.load_or_create()
        if not segments:
            return

        vectors = await self.embedder.embed([s.text_content for s in segments])
        if len(vectors) != len(segments):
            raise EmbeddingUnavailable(
                f"Expected {len(segments)} embeddings, got {len(vectors)}"
            )

        embedded = [
            EmbeddedSegment(**segment.model_dump(), embedding=vector)
            for segment, vector in zip(segments, vectors, strict=True)
        ]
        matrix = _normalise(np.asarray([e.embedding for e in embedded], dtype=np.float32))

        if self._index is None:
            index = faiss.IndexFlatIP(matrix.shape[1])
            index.add(matrix)
            self._index = index
            logger.info("index_built", dimension=matrix.shape[1])
        else:
            if matrix.shape[1] != self._index.d:
                raise ValueError(
                    f"Embedding dimension {matrix.shape[1]} does not match "
                    f"index dimension {self._index.d}"
                )
            self._index.add(matrix)

        self._segments.extend(segments)
        self._source_ids.update(segment.video_id for segment in segments)
        self._dirty = True

        logger.info(
            "segments_added",
            added=len(segments),
            total=len(self._segments),
        )

    async def _persist(self) -> Path:
        if self._index is None:
            logger.warning("index_persist_skipped", reason="empty_index")
            return self.path

        index = self._index
        documents = [segment.model_dump() for segment in self._segments]

        try:
            await asyncio.to_thread(_write_index_file, self.path, index, documents)
        except Exception as e:
            logger.exception(
                "index_persist_failed",
                path=str(self.path),
                segments=len(documents),
                error_type=type(e).__name__,
            )
            raise IndexWriteFailure(f"Failed to write index to {self.path}: {e}") from e

        self._dirty = False
        logger.info("index_persisted", path=str(self.path), segments=len(documents))
        return self.path

    # ==========================================================================
    # Query
    # ==========================================================================

    def search(
        self, query_vector: list[float], k: int
    ) -> list[tuple[Segment, float]]:
        """Return the ``k`` segments most similar to ``query_vector``.

        Results are ordered by cosine similarity, highest first; equal scores
        are ordered by insertion (earlier-added first).

        Args:
            query_vector: Query embedding.
            k: Number of results wanted.

        Returns:
            Up to ``k`` (segment, score) pairs; fewer if the index is smaller.
        """
        index = self._index
        if index is None or index.ntotal == 0 or k <= 0:
            return []

        if len(query_vector) != index.d:
            raise ValueError(
                f"Query dimension {len(query_vector)} does not match "
                f"index dimension {index.d}"
            )

        query = _normalise(np.asarray([query_vector], dtype=np.float32))
        total = index.ntotal
        wanted = min(k, total)

        # Widen the search until every candidate tied with the k-th is in hand.
        fetch = wanted
        while True:
            scores, ids = index.search(query, fetch)
            if fetch == total or scores[0][fetch - 1] < scores[0][wanted - 1]:
                break
            fetch = min(total, fetch * 2)

        ranked = sorted(
            (
                (float(score), int(idx))
                for score, idx in zip(scores[0], ids[0], strict=True)
                if idx != -1
            ),
            key=lambda pair: (-pair[0], pair[1]),
        )

        results = [(self._segments[idx], score) for score, idx in ranked[:wanted]]
        logger.debug("index_searched", k=k, results=len(results))
        return results
