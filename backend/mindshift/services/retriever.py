"""
Context Retriever Service.

WHAT THIS DOES:
Finds past debate turns on the same topic that resemble the user's new
argument, and formats them into a RAG context block for the prompt.
It also indexes each completed turn so future debates can retrieve it.

HOW IT WORKS:
1. User argues: "Remote work cuts commuting emissions"
2. We embed the argument → vector
3. pgvector returns the top-K nearest past turns for this topic
4. Each match is truncated and numbered, nearest first:

    Relevant context from past arguments:
    [1] (similarity: 0.91) User argument: ... AI response: ...

    [2] (similarity: 0.84) ...

BEST-EFFORT:
Retrieval never raises. A debate turn must go ahead even if the vector
store is empty, unreachable or misconfigured, so every failure becomes a
sentinel string the model can read:
- no table yet       → NO_TABLE_CONTEXT
- no matches         → NO_MATCH_CONTEXT
- anything else      → ERROR_CONTEXT

USAGE:
    retriever = ContextRetriever(store=PgVectorStore(session_factory))
    context = await retriever.retrieve("Remote work cuts emissions", topic_id=7)
"""

import logging
from typing import Optional

from mindshift.config import get_settings
from mindshift.models.schemas import ContextMatch
from mindshift.services.embeddings import (
    EmbeddingService,
    format_turn_for_embedding,
    get_embedding_service,
)
from mindshift.services.vector_store import BaseVectorStore, VectorRecord

logger = logging.getLogger(__name__)

NO_TABLE_CONTEXT = "[No context available yet - this appears to be the first debate on this topic]"
NO_MATCH_CONTEXT = "[No relevant context found for this topic]"
ERROR_CONTEXT = "[Error retrieving context]"

CONTEXT_HEADER = "Relevant context from past arguments:"


def format_context(matches: list[ContextMatch], max_chars: int) -> str:
    """
    Format matches into a numbered block, nearest first.

    Each entry is cut to max_chars characters (with "..." when cut).
    """
    ranked = sorted(matches, key=lambda m: m.similarity_score, reverse=True)

    entries = []
    for i, match in enumerate(ranked, 1):
        snippet = match.text[:max_chars]
        if len(match.text) > max_chars:
            snippet += "..."
        entries.append(f"[{i}] (similarity: {match.similarity_score:.2f}) {snippet}")

    return CONTEXT_HEADER + "\n" + "\n\n".join(entries)


class ContextRetriever:
    """
    Retrieves RAG context from past turns on the same topic.

    Collaborators (embedder, store) are injected; the embedder defaults to
    the shared OpenAI EmbeddingService.
    """

    def __init__(
        self,
        store: BaseVectorStore,
        embedder: Optional[EmbeddingService] = None,
        top_k: Optional[int] = None,
        max_chars: Optional[int] = None,
    ):
        settings = get_settings()
        self.store = store
        self.embedder = embedder or get_embedding_service()
        self.top_k = top_k or settings.rag_top_k
        self.max_chars = max_chars or settings.rag_snippet_chars

    async def retrieve(self, query_text: str, topic_id: int) -> str:
        """
        Build the context block for a new argument.

        Args:
            query_text: The user's new argument
            topic_id: Only turns from debates on this topic are considered

        Returns:
            Formatted context, or one of the sentinel strings. Never raises.
        """
        try:
            if not await self.store.table_exists():
                logger.info("Vector table not found, no RAG context available yet")
                return NO_TABLE_CONTEXT

            query_vector = await self.embedder.embed_text(query_text)
            logger.info(
                f"Retrieving context for topic {topic_id} "
                f"(top_k={self.top_k}, {len(query_vector)} dims)"
            )

            matches = await self.store.query(query_vector, topic_id, self.top_k)

            if not matches:
                logger.info(f"No relevant context found for topic {topic_id}")
                return NO_MATCH_CONTEXT

            logger.info(f"Found {len(matches)} context matches for topic {topic_id}")
            return format_context(matches, self.max_chars)

        except Exception as e:
            logger.error(f"RAG retrieval error for topic {topic_id}: {e}")
            return ERROR_CONTEXT

    async def index_turn(
        self,
        *,
        argument_id: int,
        debate_id: int,
        topic_id: int,
        turn_number: int,
        argument_text: str,
        ai_response: str,
        shift_reasoning: str,
    ) -> bool:
        """
        Embed a completed turn and append it to the vector store.

        Best-effort like retrieval: failures are logged and reported as False.
        """
        try:
            turn_text = format_turn_for_embedding(argument_text, ai_response, shift_reasoning)
            vector = await self.embedder.embed_text(turn_text)
            await self.store.append([
                VectorRecord(
                    vector=vector,
                    text=turn_text,
                    argument_id=argument_id,
                    debate_id=debate_id,
                    topic_id=topic_id,
                    turn_number=turn_number,
                )
            ])
            logger.info(f"Indexed argument {argument_id} (debate {debate_id}) for RAG")
            return True
        except Exception as e:
            logger.error(f"Error saving embedding for argument {argument_id}: {e}")
            return False
