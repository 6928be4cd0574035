"""
Debate Module — Turn processing engine for MindShift debates.

A user argues with the AI on a topic, trying to move the AI's 0-10 stance
in a chosen direction. Each argument is one turn: the AI answers, re-stances,
and the user is scored on how far the stance moved their way.

COMPONENTS:
- TurnCoordinator: Main entry point, runs the turn state machine
- ResponseGenerator: Asks the model for reply + new stance + reasoning
- SummaryGenerator: Writes the article once a debate completes
- score_stance_shift: Points for one stance shift
- BackgroundTaskRunner: Keeps detached follow-up work alive

USAGE:
    from mindshift.services.debate import create_turn_coordinator

    coordinator = create_turn_coordinator(session_factory)
    outcome = await coordinator.submit_argument(debate_id, user_id, text)

    print(outcome.argument.ai_response)
    print(outcome.points_this_turn, outcome.debate_ended)
"""

# Main entry points
from mindshift.services.debate.coordinator import (
    TurnCoordinator,
    create_turn_coordinator,
)

# Data models
from mindshift.services.debate.models import (
    ResponseInput,
    ResponseOutput,
    SummaryInput,
    TurnOutcome,
    TurnRecord,
)

# Components
from mindshift.services.debate.responder import ResponseGenerator
from mindshift.services.debate.scoring import score_stance_shift
from mindshift.services.debate.summarizer import SummaryGenerator
from mindshift.services.debate.tasks import BackgroundTaskRunner, background_tasks

# Errors
from mindshift.services.debate.errors import (
    DebateError,
    DebateNotActiveError,
    DebateNotFoundError,
    DebateStateError,
    DebateStillActiveError,
    DebateValidationError,
    MaxTurnsReachedError,
    NoPendingTurnError,
    NotDebateOwnerError,
    NotYourTurnError,
    TopicNotFoundError,
    TurnInFlightError,
    TurnPersistenceError,
)

__all__ = [
    # Main entry points
    "TurnCoordinator",
    "create_turn_coordinator",
    # Data models
    "ResponseInput",
    "ResponseOutput",
    "SummaryInput",
    "TurnOutcome",
    "TurnRecord",
    # Components
    "ResponseGenerator",
    "score_stance_shift",
    "SummaryGenerator",
    "BackgroundTaskRunner",
    "background_tasks",
    # Errors
    "DebateError",
    "DebateNotActiveError",
    "DebateNotFoundError",
    "DebateStateError",
    "DebateStillActiveError",
    "DebateValidationError",
    "MaxTurnsReachedError",
    "NoPendingTurnError",
    "NotDebateOwnerError",
    "NotYourTurnError",
    "TopicNotFoundError",
    "TurnInFlightError",
    "TurnPersistenceError",
]
