"""Chat configuration utilities.

Provides the chat settings model and the factory for the generation model
used by query condensation and answer generation.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider

from src.utils.clients import get_openai_client

# Check if we're in production
is_production = os.getenv("ENVIRONMENT") == "production"

if not is_production:
    # Development: prioritize .env file
    project_root = Path(__file__).resolve().parent.parent.parent
    dotenv_path = project_root / ".env"
    load_dotenv(dotenv_path, override=True)
else:
    # Production: use cloud platform env vars only
    load_dotenv()


class ChatConfig(BaseModel):
    """Settings for the retrieval-augmented chat orchestrator.

    All settings can be overridden via environment variables.
    """

    llm_provider: str = Field(default_factory=lambda: os.getenv("LLM_PROVIDER", "openai"))
    llm_model: str = Field(
        default_factory=lambda: os.getenv("LLM_CHOICE") or "gpt-4o-mini"
    )
    llm_base_url: str = Field(
        default_factory=lambda: os.getenv("LLM_BASE_URL") or "https://api.openai.com/v1"
    )
    llm_api_key: str = Field(default_factory=lambda: os.getenv("LLM_API_KEY") or "ollama")
    llm_temperature: float = Field(
        default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.0"))
    )

    # Number of segments retrieved per question
    retrieval_k: int = Field(default_factory=lambda: int(os.getenv("RETRIEVAL_K", "4")))

    request_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT_SECONDS", "60"))
    )
    max_retries: int = Field(
        default_factory=lambda: int(os.getenv("SERVICE_MAX_RETRIES", "2"))
    )


def get_chat_config() -> ChatConfig:
    """Get chat configuration from the environment."""
    return ChatConfig()


def get_model(config: ChatConfig | None = None) -> OpenAIChatModel:
    """Get the configured LLM model for condensation and answering.

    Reads configuration from ChatConfig (LLM_CHOICE, LLM_BASE_URL,
    LLM_API_KEY, LLM_PROVIDER). Any OpenAI-compatible endpoint works,
    including OpenRouter and Ollama.

    Args:
        config: Chat configuration. Loaded from the environment if None.

    Returns:
        OpenAIChatModel with a bounded request timeout and SDK retries.

    Examples:
        >>> model = get_model()
        >>> # Uses gpt-4o-mini by default
    """
    config = config or get_chat_config()

    client = get_openai_client(
        provider=config.llm_provider,
        base_url=config.llm_base_url,
        api_key=config.llm_api_key,
        timeout=config.request_timeout_seconds,
        max_retries=config.max_retries,
    )
    return OpenAIChatModel(config.llm_model, provider=OpenAIProvider(openai_client=client))
