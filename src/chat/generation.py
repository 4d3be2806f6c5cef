"""Generation client wrapping a pydantic-ai Agent.

Both chat stages (query condensation and answer generation) talk to the
language model through ``GenerationService.generate(prompt, history)``.
"""

from typing import Literal, Protocol

from pydantic import BaseModel
from pydantic_ai import Agent
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    TextPart,
    UserPromptPart,
)
from pydantic_ai.models import Model

from src.utils.errors import GenerationUnavailable
from src.utils.logging import get_logger

logger = get_logger(__name__)


class ConversationTurn(BaseModel):
    """One prior message in a chat, supplied by the caller."""

    role: Literal["user", "assistant"]
    content: str


class Generator(Protocol):
    async def generate(self, prompt: str, history: list[ConversationTurn]) -> str: ...


def to_model_messages(history: list[ConversationTurn]) -> list[ModelMessage]:
    """Convert conversation turns to pydantic-ai message history.

    User turns become ModelRequest messages and assistant turns become
    ModelResponse messages, preserving order.

    Examples:
        >>> to_model_messages([ConversationTurn(role="user", content="Hi")])
        [ModelRequest(parts=[UserPromptPart(content='Hi', ...)], ...)]
    """
    messages: list[ModelMessage] = []
    for turn in history:
        if turn.role == "user":
            messages.append(ModelRequest(parts=[UserPromptPart(content=turn.content)]))
        else:
            messages.append(ModelResponse(parts=[TextPart(content=turn.content)]))
    return messages


class GenerationService:
    """Text generation backed by a pydantic-ai Agent.

    Attributes:
        name: Label used in logs ("condense", "answer", ...).
        agent: Agent carrying the fixed instructions for this stage.
    """

    def __init__(
        self,
        model: Model | str,
        instructions: str,
        temperature: float = 0.0,
        name: str = "generation",
    ):
        self.name = name
        self.agent = Agent(
            model,
            instructions=instructions,
            model_settings={"temperature": temperature},
        )

    async def generate(self, prompt: str, history: list[ConversationTurn]) -> str:
        """Run one generation call.

        Args:
            prompt: The new user prompt for this call.
            history: Prior conversation turns, oldest first.

        Returns:
            Generated text, stripped of surrounding whitespace.

        Raises:
            GenerationUnavailable: If the model call fails.
        """
        logger.info(
            "generation_started",
            stage=self.name,
            prompt_length=len(prompt),
            history_turns=len(history),
        )

        try:
            result = await self.agent.run(
                prompt,
                message_history=to_model_messages(history),
            )
        except Exception as e:
            logger.exception(
                "generation_failed",
                stage=self.name,
                error_type=type(e).__name__,
            )
            raise GenerationUnavailable(f"Generation failed: {e}") from e

        output = str(result.output).strip()
        logger.info("generation_completed", stage=self.name, output_length=len(output))
        return output
