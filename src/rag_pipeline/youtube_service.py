"""YouTube service for resolving video ids and fetching transcripts via Supadata."""

import asyncio
import re

from supadata import Supadata

from src.utils.clients import get_supadata_client
from src.utils.errors import InvalidSourceURL
from src.utils.logging import get_logger

from .config import VideoRAGConfig

logger = get_logger(__name__)

_ID = r"([A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])"

# Tried in order; the first pattern that matches wins.
VIDEO_URL_PATTERNS: list[re.Pattern[str]] = [
    # watch page: youtube.com/watch?v=ID, possibly after other query params
    re.compile(r"(?:^|[/.])youtube(?:-nocookie)?\.com/watch\?(?:[^#]*&)?v=" + _ID),
    # short link: youtu.be/ID
    re.compile(r"(?:^|[/.])youtu\.be/" + _ID),
    # embed and other path layouts: youtube.com/embed/ID, /v/ID, /shorts/ID
    re.compile(
        r"(?:^|[/.])youtube(?:-nocookie)?\.com/(?:embed|v|e|shorts|live)/" + _ID
    ),
]


def extract_video_id(url: str) -> str:
    """Extract the 11-character YouTube video id from a URL.

    Args:
        url: YouTube URL in watch, short-link or embed form.

    Returns:
        The video id.

    Raises:
        InvalidSourceURL: If no known URL layout matches.

    Examples:
        >>> extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42s")
        "dQw4w9WgXcQ"
        >>> extract_video_id("https://youtu.be/dQw4w9WgXcQ?si=abc")
        "dQw4w9WgXcQ"
    """
    for pattern in VIDEO_URL_PATTERNS:
        match = pattern.search(url.strip())
        if match:
            return match.group(1)

    raise InvalidSourceURL("Invalid YouTube URL format")


def canonical_url(video_id: str) -> str:
    """Canonical watch URL for a video id, used as the registry key."""
    return f"https://www.youtube.com/watch?v={video_id}"


class YouTubeService:
    """Service for fetching YouTube transcripts via the Supadata API.

    Transcript retrieval never raises for source-side problems (captions
    disabled, no transcript, network errors): they are logged and returned as
    an empty string, leaving it to the caller to decide what "no transcript"
    means.
    """

    def __init__(self, config: VideoRAGConfig, client: Supadata | None = None):
        """Initialize YouTube service with configuration.

        Args:
            config: Configuration object with Supadata API key and settings.
            client: Optional pre-built Supadata client.
        """
        self.config = config
        self.client = client or get_supadata_client(config.supadata_api_key)
        logger.info(
            "youtube_service_initialized",
            api_key_present=bool(config.supadata_api_key),
            lang=config.transcript_lang,
        )

    async def fetch(self, url: str) -> str:
        """Fetch the full transcript text for a video URL.

        Args:
            url: YouTube video URL.

        Returns:
            Transcript text, or an empty string if it could not be retrieved.

        Raises:
            InvalidSourceURL: If the URL is not a recognised YouTube URL.
        """
        video_id = extract_video_id(url)
        logger.info("fetching_transcript", video_id=video_id)

        try:
            response = await asyncio.to_thread(
                self.client.youtube.transcript,
                video_id=video_id,
                lang=self.config.transcript_lang,
                text=True,
            )
        except Exception as e:
            logger.warning(
                "transcript_unavailable",
                video_id=video_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return ""

        content = getattr(response, "content", None)
        if isinstance(content, list):
            # Segment list instead of plain text
            text = " ".join(getattr(seg, "text", "") for seg in content)
        else:
            text = content or ""

        logger.info(
            "transcript_fetched",
            video_id=video_id,
            chars=len(text),
            lang=getattr(response, "lang", None),
        )
        return text
