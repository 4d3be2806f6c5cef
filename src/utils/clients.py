"""Client initialization utilities.

Provides functions for initializing external service clients (OpenAI-compatible
APIs, Supabase, Supadata) from configuration objects.
"""

from openai import AsyncOpenAI
from supabase import Client, create_client
from supadata import Supadata


def get_openai_client(
    provider: str,
    base_url: str,
    api_key: str,
    timeout: float,
    max_retries: int,
) -> AsyncOpenAI:
    """Build an AsyncOpenAI client for an OpenAI-compatible provider.

    Args:
        provider: Provider name ("openai", "openrouter", "ollama", ...).
        base_url: API base URL.
        api_key: API key. Ignored for Ollama, which doesn't require one.
        timeout: Per-request timeout in seconds.
        max_retries: Number of SDK-level retries on transient failures.

    Returns:
        Configured AsyncOpenAI client.

    Examples:
        >>> client = get_openai_client(
        ...     "ollama", "http://localhost:11434/v1", "", 60.0, 2
        ... )
    """
    if provider == "ollama":
        api_key = "ollama"

    return AsyncOpenAI(
        base_url=base_url,
        api_key=api_key,
        timeout=timeout,
        max_retries=max_retries,
    )


def get_supabase_client(supabase_url: str, supabase_key: str) -> Client:
    """Create a Supabase client.

    Raises:
        ValueError: If the URL or service key is missing.
    """
    if not supabase_url or not supabase_key:
        raise ValueError(
            "SUPABASE_URL and SUPABASE_SERVICE_KEY environment variables are required"
        )

    return create_client(supabase_url, supabase_key)


def get_supadata_client(api_key: str) -> Supadata:
    """Create a Supadata client for transcript retrieval."""
    return Supadata(api_key=api_key)
