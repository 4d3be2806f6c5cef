"""FastAPI application for the video transcript RAG service.

Provides video ingestion and conversation-aware question answering over all
ingested transcripts.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.api.deps import AppContext, build_context, get_context
from src.chat.generation import ConversationTurn
from src.utils.errors import IndexWriteFailure, InvalidRequest, ServiceError
from src.utils.logging import get_logger

logger = get_logger(__name__)


# ==============================================================================
# Lifespan Management
# ==============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifecycle manager for the FastAPI application.

    Builds the application context on startup. On shutdown, any index changes
    that a failed persist left in memory get one more write attempt.
    """
    logger.info("application_startup_started")

    try:
        app.state.context = build_context()
        logger.info("application_startup_completed")
    except Exception:
        logger.exception("application_startup_failed")
        raise

    yield  # Application runs here

    logger.info("application_shutdown_started")

    context: AppContext = app.state.context
    if context.index.has_unpersisted_changes:
        try:
            await context.index.persist()
        except IndexWriteFailure:
            logger.error("index_reconcile_on_shutdown_failed")

    logger.info("application_shutdown_completed")


# ==============================================================================
# FastAPI Application Setup
# ==============================================================================

app = FastAPI(
    title="Video Transcript RAG API",
    description="Ingest YouTube transcripts and chat with them",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==============================================================================
# Error Rendering
# ==============================================================================


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render typed service errors as JSON with their mapped status code."""
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.code)
    else:
        logger.warning("request_rejected", path=request.url.path, error=exc.code)

    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail, "error": exc.code},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed request bodies as 400 instead of FastAPI's 422."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'][1:]) or 'body'}: {error['msg']}"
        for error in exc.errors()
    )
    logger.warning("request_rejected", path=request.url.path, error="invalid_request")
    return JSONResponse(
        status_code=400,
        content={"message": f"Invalid request: {problems}", "error": "invalid_request"},
    )


# ==============================================================================
# Request/Response Models
# ==============================================================================


class ProcessVideoRequest(BaseModel):
    """Request model for the ingestion endpoint."""

    url: str | None = None


class ChatRequest(BaseModel):
    """Request model for the chat endpoint."""

    question: str | None = None
    chat_history: list[ConversationTurn] = Field(default_factory=list)


class ChatResponse(BaseModel):
    answer: str
    source_videos: list[str]


# ==============================================================================
# API Endpoints
# ==============================================================================


@app.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Health check endpoint.

    Returns:
        Health status, timestamp and component availability.
    """
    context: AppContext | None = getattr(request.app.state, "context", None)
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "services": {
            "context": context is not None,
            "index_loaded": bool(context and context.index.is_loaded),
            "index_ready": bool(context and not context.index.is_empty),
        },
    }


@app.post("/process_video")
async def process_video(
    request: ProcessVideoRequest,
    context: AppContext = Depends(get_context),
) -> dict[str, Any]:
    """Ingest a YouTube video's transcript into the global index.

    Args:
        request: Body with the video URL.
        context: Application context.

    Returns:
        message, video_id and url; plus global_faiss_index_path when the video
        was newly processed.
    """
    logger.info("process_video_request_started", url=request.url)

    try:
        result = await context.pipeline.process_video(request.url)
    except ServiceError:
        raise
    except Exception as e:
        logger.exception("process_video_request_failed", error_type=type(e).__name__)
        raise ServiceError() from e

    body: dict[str, Any] = {
        "message": result.message,
        "video_id": result.video_id,
        "url": result.url,
    }
    if result.global_faiss_index_path is not None:
        body["global_faiss_index_path"] = result.global_faiss_index_path

    logger.info(
        "process_video_request_completed",
        video_id=result.video_id,
        already_processed=result.already_processed,
    )
    return body


@app.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    context: AppContext = Depends(get_context),
) -> ChatResponse:
    """Answer a question over every processed video.

    Args:
        request: Question plus optional prior conversation turns.
        context: Application context.

    Returns:
        The answer and the ids of the videos it drew on.
    """
    if not request.question or not request.question.strip():
        raise InvalidRequest("Question is required.")

    logger.info(
        "chat_request_started",
        question_length=len(request.question),
        history_turns=len(request.chat_history),
    )

    try:
        result = await context.orchestrator.answer(request.question, request.chat_history)
    except ServiceError:
        raise
    except Exception as e:
        logger.exception("chat_request_failed", error_type=type(e).__name__)
        raise ServiceError() from e

    logger.info(
        "chat_request_completed",
        condensed_query=result.condensed_query,
        sources=len(result.source_ids),
    )
    return ChatResponse(answer=result.answer, source_videos=result.source_ids)
