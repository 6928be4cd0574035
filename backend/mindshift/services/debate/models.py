"""
Debate Models — Data structures passed between debate engine components.

These dataclasses define the contract between components:
- TurnRecord: a past turn, detached from the ORM, as the prompt sees it
- ResponseInput / ResponseOutput: ResponseGenerator in and out
- ParsedResponse: what the model's raw reply turned out to be
- TurnOutcome: what TurnCoordinator hands back to the API layer
- SummaryInput: everything SummaryGenerator needs for the article
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from mindshift.models.debate import Argument, DebateStatus, GoalDirection


@dataclass
class TurnRecord:
    """A recorded turn, as rendered into prompts."""

    turn_number: int
    argument_text: str
    stance_before: float
    stance_after: Optional[float] = None
    ai_response: Optional[str] = None
    shift_reasoning: Optional[str] = None

    @classmethod
    def from_argument(cls, argument: Argument) -> "TurnRecord":
        return cls(
            turn_number=argument.turn_number,
            argument_text=argument.argument_text,
            stance_before=argument.stance_before,
            stance_after=argument.stance_after,
            ai_response=argument.ai_response,
            shift_reasoning=argument.shift_reasoning,
        )


@dataclass
class ResponseInput:
    """Everything the model needs to answer one user argument."""

    topic_name: str
    stance_before: float
    goal_direction: GoalDirection
    current_argument_text: str
    retrieved_context: str = ""
    previous_turns: list[TurnRecord] = field(default_factory=list)


@dataclass
class ResponseOutput:
    """
    The AI's answer to one argument.

    degraded is True when the model call or its output failed and the
    placeholder values were used instead.
    """

    response_text: str
    new_stance: float
    stance_shift: float
    shift_reasoning: str
    model: str = ""
    degraded: bool = False


# =============================================================================
# PARSED MODEL OUTPUT (tagged variant)
# =============================================================================
#
# The reply is classified once, right after the call:
#   Structured                   the whole reply was a JSON object
#   RawTextWithExtractedFields   fields were dug out of freeform text
#   Unparseable                  nothing usable
#

@dataclass(frozen=True)
class ParsedFields:
    """Fields as the model gave them; new_stance is not validated yet."""

    response_text: Optional[str]
    new_stance: Any
    reasoning: Optional[str]


@dataclass(frozen=True)
class Structured:
    fields: ParsedFields


@dataclass(frozen=True)
class RawTextWithExtractedFields:
    fields: ParsedFields
    raw_text: str


@dataclass(frozen=True)
class Unparseable:
    raw_text: str
    reason: str


ParsedResponse = Union[Structured, RawTextWithExtractedFields, Unparseable]


# =============================================================================
# COORDINATOR / SUMMARY
# =============================================================================

@dataclass
class TurnOutcome:
    """Result of a fully processed turn."""

    argument: Argument
    points_this_turn: float
    points_earned: float
    turn_count: int
    debate_status: DebateStatus
    debate_ended: bool
    degraded: bool = False


@dataclass
class SummaryInput:
    """A completed debate, as the summary prompt sees it."""

    debate_id: int
    topic_name: str
    initial_stance: float
    goal_direction: GoalDirection
    points_earned: float
    turns: list[TurnRecord]
    final_stance: float
