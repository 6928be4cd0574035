"""
OpenAI Embedding Service.

WHAT THIS DOES:
Converts text into vector embeddings using OpenAI's embedding models.
These vectors enable semantic similarity search via pgvector.

WHEN EMBEDDINGS ARE GENERATED:
═══════════════════════════════════════════════════════════════════════════════
TURN TIME (after the AI has answered and the turn is saved):
    User argument + AI response + stance reasoning
        → embed once
        → append to the vector table, tagged with topic/debate/argument ids

QUERY TIME (when the next user argument arrives on the same topic):
    Embed the NEW argument only (1 API call)
        → nearest past turns on this topic via pgvector
        → injected into the prompt as RAG context
═══════════════════════════════════════════════════════════════════════════════

MODEL:
text-embedding-3-small by default. The output size is pinned with the
`dimensions` request parameter so it always matches the vector column.

USAGE:
    service = get_embedding_service()
    vector = await service.embed_text("Remote work cuts commuting emissions...")
"""

import logging
from typing import Optional

from openai import AsyncOpenAI

from mindshift.config import get_settings

logger = logging.getLogger(__name__)

# Max tokens for embedding model (8191 for text-embedding-3-small)
# We truncate longer texts to avoid errors
MAX_TOKENS = 8000  # Leave some buffer


def format_turn_for_embedding(
    argument_text: str,
    ai_response: str,
    shift_reasoning: str,
) -> str:
    """
    Text stored in the vector table for one completed turn.

    Argument, answer and reasoning are embedded together so a later
    argument matches past turns on what was said AND how it landed.
    """
    return (
        f"User argument: {argument_text}\n"
        f"AI response: {ai_response}\n"
        f"Reasoning: {shift_reasoning}"
    )


class EmbeddingService:
    """
    Generate embeddings using OpenAI's API.

    Used for both sides of RAG:
    - the new argument (query time)
    - the completed turn (index time)
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        settings = get_settings()
        self.model = settings.embedding_model
        self.dimensions = settings.embedding_dimensions
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)

    async def embed_text(self, text: str) -> list[float]:
        """
        Embed a single text into a vector.

        Args:
            text: The text to embed (an argument, or a formatted turn)

        Returns:
            Vector of `embedding_dimensions` floats
        """
        # Truncate if too long (rough estimate: 1 token ≈ 4 chars)
        if len(text) > MAX_TOKENS * 4:
            text = text[:MAX_TOKENS * 4]
            logger.warning(f"Truncated text to {MAX_TOKENS * 4} chars for embedding")

        response = await self.client.embeddings.create(
            model=self.model,
            input=text,
            dimensions=self.dimensions,
        )

        return response.data[0].embedding


    async def close(self) -> None:
        """Close the underlying OpenAI client."""
        await self.client.close()


_shared_service: Optional[EmbeddingService] = None


def get_embedding_service() -> EmbeddingService:
    """Process-wide EmbeddingService (see close_embedding_service)."""
    global _shared_service
    if _shared_service is None:
        _shared_service = EmbeddingService()
    return _shared_service


async def close_embedding_service() -> None:
    """Close the shared service (called on shutdown)."""
    global _shared_service
    if _shared_service is not None:
        await _shared_service.close()
    _shared_service = None
