"""
API Routes — The endpoints that tie everything together.

ENDPOINTS:
- POST /api/debates                   → Start a debate on a topic
- GET  /api/debates/{id}              → Debate state + transcript + summary
- POST /api/debates/{id}/arguments    → Main endpoint: submit one argument
- POST /api/debates/{id}/resume       → Re-run a turn whose AI reply was lost
- POST /api/debates/{id}/summary      → Re-generate the summary article
- POST /api/rag                       → Inspect the RAG context for a query

FLOW:
1. POST /api/debates with a topic and goal direction
2. POST /api/debates/{id}/arguments once per turn
3. After the last turn, GET /api/debates/{id} until summary_article appears

AUTH:
Authentication happens upstream; the caller's user id arrives in the
X-User-Id header.
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mindshift.database import get_db, get_session_factory
from mindshift.models.schemas import (
    ArgumentResponse,
    DebateResponse,
    RagRequest,
    RagResponse,
    StartDebateRequest,
    SubmitArgumentRequest,
    SummaryResponse,
    TurnResponse,
)
from mindshift.services.debate import (
    DebateError,
    DebateNotActiveError,
    DebateNotFoundError,
    DebateStillActiveError,
    DebateValidationError,
    MaxTurnsReachedError,
    NoPendingTurnError,
    NotDebateOwnerError,
    NotYourTurnError,
    SummaryGenerator,
    TopicNotFoundError,
    TurnCoordinator,
    TurnOutcome,
    TurnPersistenceError,
    create_turn_coordinator,
)
from mindshift.services.debate_service import DebateService
from mindshift.services.retriever import ContextRetriever
from mindshift.services.vector_store import PgVectorStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


# =============================================================================
# DEPENDENCIES
# =============================================================================
#
# Each engine component is built per request from the shared session factory.
# The model and embedding clients inside them are process-wide and closed in
# the app lifespan. Tests swap them out with app.dependency_overrides.
#

def get_current_user_id(x_user_id: int = Header(..., ge=1)) -> int:
    """The authenticated caller, as forwarded by the auth layer."""
    return x_user_id


def get_sessions() -> async_sessionmaker[AsyncSession]:
    return get_session_factory()


def get_coordinator(
    sessions: async_sessionmaker[AsyncSession] = Depends(get_sessions),
) -> TurnCoordinator:
    return create_turn_coordinator(sessions)


def get_summarizer(
    sessions: async_sessionmaker[AsyncSession] = Depends(get_sessions),
) -> SummaryGenerator:
    return SummaryGenerator(sessions)


def get_retriever(
    sessions: async_sessionmaker[AsyncSession] = Depends(get_sessions),
) -> ContextRetriever:
    return ContextRetriever(store=PgVectorStore(sessions))


# Status codes per error type, most specific first
ERROR_STATUS_CODES: list[tuple[type[DebateError], int]] = [
    (DebateValidationError, 400),
    (DebateNotFoundError, 404),
    (TopicNotFoundError, 404),
    (NotYourTurnError, 403),
    (NotDebateOwnerError, 403),
    (DebateNotActiveError, 400),
    (MaxTurnsReachedError, 400),
    (NoPendingTurnError, 409),
    (DebateStillActiveError, 409),
    (TurnPersistenceError, 500),
]


def to_http_exception(error: DebateError) -> HTTPException:
    """Map a debate engine error onto an HTTP error response."""
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))


def to_turn_response(outcome: TurnOutcome) -> TurnResponse:
    return TurnResponse(
        argument=ArgumentResponse.model_validate(outcome.argument),
        points_this_turn=outcome.points_this_turn,
        points_earned=outcome.points_earned,
        turn_count=outcome.turn_count,
        debate_status=outcome.debate_status,
        debate_ended=outcome.debate_ended,
    )


# =============================================================================
# DEBATE LIFECYCLE
# =============================================================================

@router.post("/debates", response_model=DebateResponse, status_code=201)
async def start_debate(
    request: StartDebateRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> DebateResponse:
    """
    Start a debate on a topic.

    The AI's stance at the start is the topic's current stance, which is
    shared by (and moved by) every debate on that topic.

    Example:
        POST /api/debates
        {"topic_id": 7, "goal_direction": "toward_support", "max_turns": 3}
    """
    try:
        debate = await DebateService(db).start_debate(
            topic_id=request.topic_id,
            user_id=user_id,
            goal_direction=request.goal_direction,
            max_turns=request.max_turns,
        )
    except DebateError as e:
        raise to_http_exception(e)

    return DebateResponse.model_validate(debate)


@router.get("/debates/{debate_id}", response_model=DebateResponse)
async def get_debate(
    debate_id: int,
    db: AsyncSession = Depends(get_db),
) -> DebateResponse:
    """
    Get a debate with its topic and all arguments.

    Example:
        GET /api/debates/3
    """
    try:
        debate = await DebateService(db).get_debate(debate_id)
    except DebateError as e:
        raise to_http_exception(e)

    return DebateResponse.model_validate(debate)


# =============================================================================
# TURN PROCESSING
# =============================================================================

@router.post("/debates/{debate_id}/arguments", response_model=TurnResponse)
async def submit_argument(
    debate_id: int,
    request: SubmitArgumentRequest,
    user_id: int = Depends(get_current_user_id),
    coordinator: TurnCoordinator = Depends(get_coordinator),
) -> TurnResponse:
    """
    The main endpoint — submit one argument, get the AI's reply and score.

    This runs the full turn:
    1. Record the argument (rejects if it is not the caller's turn)
    2. Retrieve context from past arguments on the topic
    3. AI replies and re-stances
    4. Score the stance shift against the user's goal
    5. Save everything; summary article starts in the background if done

    Example:
        POST /api/debates/3/arguments
        {"argument_text": "Remote work cuts commuting emissions by ..."}
    """
    logger.info(f"Processing argument for debate {debate_id} from user {user_id}")

    try:
        outcome = await coordinator.submit_argument(
            debate_id=debate_id,
            user_id=user_id,
            argument_text=request.argument_text,
        )
    except DebateError as e:
        raise to_http_exception(e)

    return to_turn_response(outcome)


@router.post("/debates/{debate_id}/resume", response_model=TurnResponse)
async def resume_turn(
    debate_id: int,
    user_id: int = Depends(get_current_user_id),
    coordinator: TurnCoordinator = Depends(get_coordinator),
) -> TurnResponse:
    """
    Finish a turn whose AI response could not be saved.

    Rejected with 403 while the argument is younger than the model timeout
    (the original request may still be answering it).

    Example:
        POST /api/debates/3/resume
    """
    try:
        outcome = await coordinator.resume_pending_turn(debate_id=debate_id, user_id=user_id)
    except DebateError as e:
        raise to_http_exception(e)

    return to_turn_response(outcome)


@router.post("/debates/{debate_id}/summary", response_model=SummaryResponse)
async def retry_summary(
    debate_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    summarizer: SummaryGenerator = Depends(get_summarizer),
) -> SummaryResponse:
    """
    Generate the summary article again.

    Only for debates in completed or summary_failed. Waits for the article
    (unlike the automatic run at the end of a debate).

    Example:
        POST /api/debates/3/summary
        Returns {"debate_id": 3, "status": "completed", "summary_article": "..."}
    """
    try:
        debate = await DebateService(db).retry_summary(debate_id, user_id, summarizer)
    except DebateError as e:
        raise to_http_exception(e)

    return SummaryResponse(
        debate_id=debate.id,
        status=debate.status,
        summary_article=debate.summary_article,
    )


# =============================================================================
# RAG CONTEXT
# =============================================================================

@router.post("/rag", response_model=RagResponse)
async def rag_context(
    request: RagRequest,
    retriever: ContextRetriever = Depends(get_retriever),
) -> RagResponse:
    """
    Return the context block the AI would see for this query and topic.

    Example:
        POST /api/rag
        {"query_text": "commuting emissions", "topic_id": 7}
    """
    context = await retriever.retrieve(request.query_text, request.topic_id)
    return RagResponse(context=context)
