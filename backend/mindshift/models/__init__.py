# Database models and API schemas
from mindshift.models.debate import (
    Argument,
    Debate,
    DebateStatus,
    GoalDirection,
    Topic,
)
from mindshift.models.schemas import (
    ArgumentResponse,
    ContextMatch,
    DebateResponse,
    TurnResponse,
)

__all__ = [
    "Argument",
    "Debate",
    "DebateStatus",
    "GoalDirection",
    "Topic",
    "ArgumentResponse",
    "ContextMatch",
    "DebateResponse",
    "TurnResponse",
]
