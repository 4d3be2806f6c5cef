"""Retrieval-augmented chat orchestrator.

Answers a question over the indexed transcripts in four sequential stages:
query condensation, retrieval, answer generation and source attribution.
"""

from pydantic import BaseModel, Field

from src.rag_pipeline.embedding_service import Embedder
from src.rag_pipeline.index_service import VectorIndex
from src.rag_pipeline.schemas import Segment
from src.utils.errors import IndexNotFound
from src.utils.logging import get_logger

from .generation import ConversationTurn, Generator

logger = get_logger(__name__)

# ==============================================================================
# Prompts
# ==============================================================================

CONDENSE_INSTRUCTIONS = """You rewrite follow-up questions into standalone search queries.

Given the conversation so far and the latest question, generate a search query to look up \
in order to get information relevant to the conversation and the last question.
- Resolve pronouns and ellipsis using the conversation.
- Do not add facts, names or details that do not appear in the conversation.
- If the question is already a good search query, use it as is.
- Do not include any conversational phrases or greetings. Output only the search query."""

ANSWER_INSTRUCTIONS = """You answer questions about YouTube videos using their transcripts.

Answer the user's question based only on the transcript excerpts provided in the prompt.
- If the excerpts do not contain enough information, say so explicitly instead of guessing.
- Do not use outside knowledge.
- Keep the answer direct and concise."""

NO_ANSWER_FALLBACK = "No answer could be generated."


def build_condense_prompt(question: str) -> str:
    return (
        f"Latest question: {question}\n\n"
        "Given the above conversation and the latest question, output a single "
        "standalone search query."
    )


def build_answer_prompt(question: str, segments: list[Segment]) -> str:
    excerpts = "\n\n".join(
        f"[{i}] (video {segment.video_id})\n{segment.text_content}"
        for i, segment in enumerate(segments, 1)
    )
    return f"Context:\n\n{excerpts}\n\nQuestion: {question}"


# ==============================================================================
# Stage results
# ==============================================================================


class CondensedQuery(BaseModel):
    question: str
    query: str
    rewritten: bool


class RetrievedContext(BaseModel):
    query: str
    segments: list[Segment]
    scores: list[float]


class ChatAnswer(BaseModel):
    """Final answer plus the videos it drew on."""

    answer: str
    source_ids: list[str] = Field(default_factory=list)
    condensed_query: str = ""


# ==============================================================================
# Orchestrator
# ==============================================================================


class ChatOrchestrator:
    """Runs the condense, retrieve, generate pipeline for one chat request.

    There are no retries at this layer; a stage failure ends the request with
    its typed error.
    """

    def __init__(
        self,
        index: VectorIndex,
        embedder: Embedder,
        condenser: Generator,
        answerer: Generator,
        retrieval_k: int = 4,
    ):
        self.index = index
        self.embedder = embedder
        self.condenser = condenser
        self.answerer = answerer
        self.retrieval_k = retrieval_k

    async def answer(
        self, question: str, history: list[ConversationTurn] | None = None
    ) -> ChatAnswer:
        """Answer a question using the indexed transcripts.

        Args:
            question: The user's question.
            history: Prior conversation turns, oldest first.

        Returns:
            ChatAnswer with the generated answer and distinct source video ids.

        Raises:
            IndexNotFound: If no video has ever been indexed. No generation
                call is made in that case.
            EmbeddingUnavailable: If the query could not be embedded.
            GenerationUnavailable: If a generation call failed.
        """
        history = history or []

        await self.index.load_or_create()
        if self.index.is_empty:
            logger.warning("chat_rejected", reason="index_not_found")
            raise IndexNotFound(
                "No videos have been processed yet. "
                "Please process videos first via /process_video."
            )

        condensed = await self._condense(question, history)
        context = await self._retrieve(condensed)
        answer = await self._generate(question, history, context)
        source_ids = self._attribute(context)

        logger.info(
            "chat_stage",
            stage="done",
            query_rewritten=condensed.rewritten,
            sources=len(source_ids),
            answer_length=len(answer),
        )
        return ChatAnswer(
            answer=answer,
            source_ids=source_ids,
            condensed_query=condensed.query,
        )

    async def _condense(
        self, question: str, history: list[ConversationTurn]
    ) -> CondensedQuery:
        logger.info("chat_stage", stage="query_condensation", history_turns=len(history))

        if not history:
            return CondensedQuery(question=question, query=question, rewritten=False)

        query = await self.condenser.generate(build_condense_prompt(question), history)
        if not query:
            # Blank rewrite: fall back to the raw question
            return CondensedQuery(question=question, query=question, rewritten=False)

        logger.debug("query_condensed", query=query)
        return CondensedQuery(question=question, query=query, rewritten=True)

    async def _retrieve(self, condensed: CondensedQuery) -> RetrievedContext:
        logger.info(
            "chat_stage",
            stage="retrieval",
            k=self.retrieval_k,
            indexed_sources=len(self.index.source_ids()),
        )

        vector = await self.embedder.embed_one(condensed.query)
        results = self.index.search(vector, self.retrieval_k)

        return RetrievedContext(
            query=condensed.query,
            segments=[segment for segment, _ in results],
            scores=[score for _, score in results],
        )

    async def _generate(
        self,
        question: str,
        history: list[ConversationTurn],
        context: RetrievedContext,
    ) -> str:
        logger.info("chat_stage", stage="answer_generation", segments=len(context.segments))

        answer = await self.answerer.generate(
            build_answer_prompt(question, context.segments), history
        )
        return answer or NO_ANSWER_FALLBACK

    @staticmethod
    def _attribute(context: RetrievedContext) -> list[str]:
        source_ids: list[str] = []
        for segment in context.segments:
            video_id = segment.metadata.get("video_id", segment.video_id)
            if video_id not in source_ids:
                source_ids.append(video_id)
        return source_ids
