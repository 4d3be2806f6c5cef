"""Command-line interface for ingesting videos into the transcript index."""

import argparse
import asyncio

from src.utils.errors import ServiceError
from src.utils.logging import get_logger

from .config import get_config
from .pipeline import IngestionPipeline

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Video RAG ingestion - fetch, chunk and index YouTube transcripts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Ingest one video (using .env config)
  python -m src.rag_pipeline.cli https://www.youtube.com/watch?v=dQw4w9WgXcQ

  # Ingest several videos into a custom index file
  python -m src.rag_pipeline.cli URL1 URL2 --index-path data/videos.faiss
        """,
    )

    parser.add_argument("urls", nargs="+", help="YouTube video URLs to ingest")
    parser.add_argument(
        "--index-path",
        type=str,
        help="Override FAISS_INDEX_PATH from environment",
    )
    return parser


async def main(argv: list[str] | None = None) -> int:
    """CLI entry point for video ingestion.

    Parses arguments, ingests every URL in order, and prints a summary.
    Returns the number of videos that failed.
    """
    args = build_parser().parse_args(argv)

    config = get_config()
    if args.index_path:
        config.index_path = args.index_path

    logger.info("cli_started", videos=len(args.urls), index_path=config.index_path)

    print("\n" + "=" * 60)
    print("Video RAG Ingestion")
    print("=" * 60)
    print(f"Videos: {len(args.urls)}")
    print(f"Index path: {config.index_path}")
    print(f"Embedding provider: {config.embedding_provider}")
    print(f"Embedding model: {config.embedding_model}")
    print(f"Chunk size: {config.chunk_size} chars (overlap {config.chunk_overlap})")
    print("=" * 60 + "\n")

    pipeline = IngestionPipeline.from_config(config)

    processed = skipped = chunks_created = 0
    errors: list[str] = []

    for url in args.urls:
        try:
            result = await pipeline.process_video(url)
        except ServiceError as e:
            errors.append(f"{url}: {e.detail}")
            continue

        if result.already_processed:
            skipped += 1
        else:
            processed += 1
            chunks_created += result.chunks_created

    print("\n" + "=" * 60)
    print("Ingestion Results")
    print("=" * 60)
    print(f"Successfully processed: {processed}")
    print(f"Skipped (already processed): {skipped}")
    print(f"Failed: {len(errors)}")
    print(f"Total chunks created: {chunks_created}")

    if errors:
        print("\nErrors encountered:")
        for error in errors:
            print(f"  ❌ {error}")
    else:
        print("\n✅ No errors encountered")

    print("=" * 60 + "\n")

    logger.info(
        "cli_completed",
        processed=processed,
        skipped=skipped,
        failed=len(errors),
        chunks_created=chunks_created,
    )
    return len(errors)


if __name__ == "__main__":
    raise SystemExit(1 if asyncio.run(main()) else 0)
