"""Typed service errors shared by the ingestion pipeline, chat and API layers.

Each error carries the HTTP status it maps to at the request boundary. Client
errors (4xx) expose their message to the caller; server errors (5xx) expose
only a fixed public message so internal details never leak.
"""


class ServiceError(Exception):
    """Base class for errors rendered as JSON error bodies."""

    status_code: int = 500
    code: str = "internal_error"
    public_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)

    @property
    def detail(self) -> str:
        """Message safe to return to the API caller."""
        if self.status_code < 500:
            return str(self)
        return self.public_message


class InvalidRequest(ServiceError):
    """The request body is missing a required field or is malformed."""

    status_code = 400
    code = "invalid_request"
    public_message = "Invalid request."


class InvalidSourceURL(ServiceError):
    """The URL is missing or does not match a recognised video URL layout."""

    status_code = 400
    code = "invalid_source_url"
    public_message = "Invalid YouTube URL format"


class TranscriptUnavailable(ServiceError):
    """The source has no retrievable transcript."""

    status_code = 404
    code = "transcript_unavailable"
    public_message = (
        "Could not retrieve transcript for the provided YouTube URL. "
        "It might be unavailable or disabled."
    )


class IndexNotFound(ServiceError):
    """No source has ever been committed to the index."""

    status_code = 400
    code = "index_not_found"
    public_message = (
        "No videos have been processed yet. "
        "Please process videos first via /process_video."
    )


class EmbeddingUnavailable(ServiceError):
    status_code = 500
    code = "embedding_unavailable"
    public_message = "Failed to process video or update global FAISS index."


class GenerationUnavailable(ServiceError):
    status_code = 500
    code = "generation_unavailable"
    public_message = "An error occurred during chat."


class IndexWriteFailure(ServiceError):
    """Persisting the index failed; the previous file on disk is intact."""

    status_code = 500
    code = "index_write_failure"
    public_message = "Failed to process video or update global FAISS index."
