"""Application context.

Defines the AppContext dataclass holding every long-lived component, built once
at startup and injected into endpoints.
"""

from dataclasses import dataclass

from fastapi import Request

from src.chat.config import ChatConfig, get_chat_config, get_model
from src.chat.generation import GenerationService
from src.chat.orchestrator import (
    ANSWER_INSTRUCTIONS,
    CONDENSE_INSTRUCTIONS,
    ChatOrchestrator,
)
from src.rag_pipeline.config import VideoRAGConfig, get_config
from src.rag_pipeline.embedding_service import EmbeddingService
from src.rag_pipeline.index_service import VectorIndex
from src.rag_pipeline.pipeline import IngestionPipeline


@dataclass
class AppContext:
    """Runtime dependencies shared by the ingestion and chat paths.

    Attributes:
        config: Pipeline configuration.
        chat_config: Chat configuration.
        index: The single global vector index.
        pipeline: Ingestion use case (process_video).
        orchestrator: Chat use case (answer).
    """

    config: VideoRAGConfig
    chat_config: ChatConfig
    index: VectorIndex
    pipeline: IngestionPipeline
    orchestrator: ChatOrchestrator


def build_context(
    config: VideoRAGConfig | None = None,
    chat_config: ChatConfig | None = None,
) -> AppContext:
    """Construct every component from configuration.

    Args:
        config: Pipeline configuration. Loaded from the environment if None.
        chat_config: Chat configuration. Loaded from the environment if None.

    Returns:
        A fully wired AppContext. The index is not read from disk until first use.
    """
    config = config or get_config()
    chat_config = chat_config or get_chat_config()

    embedder = EmbeddingService(config)
    index = VectorIndex(config, embedder)

    pipeline = IngestionPipeline.from_config(config, index=index)

    model = get_model(chat_config)
    orchestrator = ChatOrchestrator(
        index=index,
        embedder=embedder,
        condenser=GenerationService(
            model,
            CONDENSE_INSTRUCTIONS,
            temperature=chat_config.llm_temperature,
            name="condense",
        ),
        answerer=GenerationService(
            model,
            ANSWER_INSTRUCTIONS,
            temperature=chat_config.llm_temperature,
            name="answer",
        ),
        retrieval_k=chat_config.retrieval_k,
    )

    return AppContext(
        config=config,
        chat_config=chat_config,
        index=index,
        pipeline=pipeline,
        orchestrator=orchestrator,
    )


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the context created during startup."""
    context: AppContext | None = getattr(request.app.state, "context", None)
    if context is None:
        raise RuntimeError("Application context not initialized")
    return context
