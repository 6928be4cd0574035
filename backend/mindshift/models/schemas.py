"""
Pydantic schemas for API request/response validation.

These define the shape of data that goes in and out of the API.
The TurnResponse is what the client sees after every argument it submits.

FLOW OVERVIEW:
==============
1. Client starts a debate with StartDebateRequest → DebateResponse
2. Client submits SubmitArgumentRequest to /api/debates/{id}/arguments
3. Engine retrieves RAG context → ContextMatch[]
4. Language model answers and re-stances; points are scored
5. Client receives TurnResponse (argument row with AI answer + points)
6. Once the debate completes, the summary article appears on DebateResponse
"""

from datetime import datetime
from pydantic import BaseModel, Field

from mindshift.models.debate import DebateStatus, GoalDirection


# =============================================================================
# RETRIEVAL SCHEMAS
# =============================================================================
#
# WHEN USED:
# - ContextMatch: Returned by the vector store during similarity search
#

class ContextMatch(BaseModel):
    """
    A past argument/response pair found by vector search.

    USED BY: VectorStore.query (internal)
    WHEN: After similarity search, before formatting the RAG context block
    """
    text: str
    similarity_score: float = Field(description="Cosine similarity (1 - cosine distance)")
    argument_id: int | None = None
    debate_id: int | None = None
    turn_number: int | None = None


# =============================================================================
# DEBATE STATE SCHEMAS
# =============================================================================

class TopicResponse(BaseModel):
    """Topic as embedded in debate responses."""
    id: int
    name: str
    description: str | None = None
    current_stance: float
    stance_reasoning: str | None = None

    class Config:
        from_attributes = True  # Allows creating from SQLAlchemy model


class ArgumentResponse(BaseModel):
    """
    One turn of a debate.

    stance_after / stance_shift / ai_response stay null while the AI
    response is pending.
    """
    id: int
    debate_id: int
    user_id: int
    turn_number: int
    argument_text: str
    stance_before: float
    stance_after: float | None = None
    stance_shift: float | None = None
    shift_reasoning: str | None = None
    ai_response: str | None = None
    ai_model: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class DebateResponse(BaseModel):
    """
    Full debate state.

    USED BY: POST /api/debates, GET /api/debates/{id}
    """
    id: int
    topic_id: int
    user_id: int
    initial_stance: float
    goal_direction: GoalDirection
    turn_count: int
    max_turns: int
    status: DebateStatus
    points_earned: float
    final_stance: float | None = None
    summary_article: str | None = None
    created_at: datetime
    completed_at: datetime | None = None
    topic: TopicResponse | None = None
    arguments: list[ArgumentResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class TurnResponse(BaseModel):
    """
    Result of a processed turn.

    USED BY: POST /api/debates/{id}/arguments, POST /api/debates/{id}/resume
    """
    argument: ArgumentResponse
    points_this_turn: float
    points_earned: float
    turn_count: int
    debate_status: DebateStatus
    debate_ended: bool


class SummaryResponse(BaseModel):
    """USED BY: POST /api/debates/{id}/summary"""
    debate_id: int
    status: DebateStatus
    summary_article: str | None = None


# =============================================================================
# API REQUEST SCHEMAS
# =============================================================================

class StartDebateRequest(BaseModel):
    """
    Request body for POST /api/debates.

    Example:
        {"topic_id": 7, "goal_direction": "toward_support", "max_turns": 3}
    """
    topic_id: int = Field(ge=1)
    goal_direction: GoalDirection
    max_turns: int | None = Field(
        default=None,
        ge=1, le=20,
        description="Rounds the user gets; server default when omitted",
    )


class SubmitArgumentRequest(BaseModel):
    """
    Request body for POST /api/debates/{id}/arguments.

    Example:
        {"argument_text": "Remote work cuts commuting emissions by ..."}
    """
    argument_text: str = Field(
        min_length=1,
        max_length=10_000,
        description="The user's argument for this turn",
    )


class RagRequest(BaseModel):
    """Request body for POST /api/rag."""
    query_text: str = Field(min_length=1)
    topic_id: int = Field(ge=1)


class RagResponse(BaseModel):
    context: str
