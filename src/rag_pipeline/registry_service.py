"""Corpus registry tracking which videos have been ingested, backed by Supabase."""

import asyncio
from typing import Any, Protocol

from supabase import Client

from src.utils.clients import get_supabase_client
from src.utils.logging import get_logger

from .config import VideoRAGConfig
from .schemas import Source

logger = get_logger(__name__)


class CorpusRegistry(Protocol):
    async def find_by_url(self, url: str) -> Source | None: ...

    async def upsert(self, url: str, processed: bool) -> Source: ...


class SupabaseRegistry:
    """Key-status store for ingested videos.

    Each row of the ``videos`` table is ``{id, url (unique), processed}``
    where ``processed`` is 0 or 1. The supabase client is synchronous, so
    calls run in a worker thread to keep the event loop free.
    """

    def __init__(self, config: VideoRAGConfig, client: Client | None = None):
        """Initialize registry with configuration.

        Args:
            config: Configuration object with Supabase credentials.
            client: Optional pre-built Supabase client.
        """
        self.config = config
        self.table = config.videos_table
        self.client: Client = client or get_supabase_client(
            config.supabase_url,
            config.supabase_key,
        )
        logger.info(
            "registry_initialized",
            supabase_url=config.supabase_url,
            table=self.table,
        )

    @staticmethod
    def _to_source(row: dict[str, Any]) -> Source:
        return Source(
            id=row.get("id"),
            url=row["url"],
            processed=bool(row.get("processed", 0)),
        )

    async def find_by_url(self, url: str) -> Source | None:
        """Look up a video record by URL.

        Returns:
            The Source if a row exists, otherwise None.

        Raises:
            Exception: If the database query fails.
        """
        try:
            response = await asyncio.to_thread(
                self.client.table(self.table)
                .select("id, url, processed")
                .eq("url", url)
                .limit(1)
                .execute
            )
        except Exception as e:
            logger.exception(
                "registry_lookup_failed",
                url=url,
                error_type=type(e).__name__,
            )
            raise

        if not response.data:
            logger.debug("video_not_found", url=url)
            return None

        source = self._to_source(response.data[0])
        logger.debug("video_found", url=url, processed=source.processed)
        return source

    async def upsert(self, url: str, processed: bool) -> Source:
        """Create the record if absent, or update its status if it changed.

        Args:
            url: Canonical video URL.
            processed: New processing status.

        Returns:
            The stored Source.

        Raises:
            Exception: If the database operation fails.
        """
        existing = await self.find_by_url(url)
        if existing is not None and existing.processed == processed:
            return existing

        data = {"url": url, "processed": int(processed)}
        try:
            response = await asyncio.to_thread(
                self.client.table(self.table).upsert(data, on_conflict="url").execute
            )
        except Exception as e:
            logger.exception(
                "registry_upsert_failed",
                url=url,
                error_type=type(e).__name__,
            )
            raise

        row = response.data[0] if response.data else data
        source = self._to_source(row)
        logger.info(
            "video_status_updated",
            url=url,
            processed=source.processed,
            created=existing is None,
        )
        return source
