"""
Debate errors.

    DebateError
    ├── DebateValidationError      bad input, nothing was read or written
    ├── DebateStateError           debate exists (or not) in the wrong state
    │   ├── DebateNotFoundError
    │   ├── TopicNotFoundError
    │   ├── DebateNotActiveError
    │   ├── NotYourTurnError
    │   │   └── TurnInFlightError
    │   ├── NotDebateOwnerError
    │   ├── MaxTurnsReachedError
    │   ├── NoPendingTurnError
    │   └── DebateStillActiveError
    └── TurnPersistenceError       AI turn could not be saved; the user's
                                   argument stays recorded without a response

Context retrieval, model and summary failures are not in this list: those
paths degrade to placeholder values instead of raising.
"""


class DebateError(Exception):
    """Base class for debate engine errors."""


class DebateValidationError(DebateError):
    """Malformed input (empty argument, bad ids, unknown goal)."""


class DebateStateError(DebateError):
    """The debate's current state does not allow the operation."""


class DebateNotFoundError(DebateStateError):
    def __init__(self, debate_id: int):
        super().__init__("Debate not found")
        self.debate_id = debate_id


class TopicNotFoundError(DebateStateError):
    def __init__(self, topic_id: int):
        super().__init__("Topic not found")
        self.topic_id = topic_id


class DebateNotActiveError(DebateStateError):
    def __init__(self, debate_id: int):
        super().__init__("Debate is not active")
        self.debate_id = debate_id


class NotYourTurnError(DebateStateError):
    def __init__(self, debate_id: int, message: str = "Not your turn"):
        super().__init__(message)
        self.debate_id = debate_id


class TurnInFlightError(NotYourTurnError):
    """The AI reply for the pending argument may still be on its way."""

    def __init__(self, debate_id: int):
        super().__init__(debate_id, "AI turn in flight")


class NotDebateOwnerError(DebateStateError):
    def __init__(self, debate_id: int):
        super().__init__("Debate belongs to another user")
        self.debate_id = debate_id


class MaxTurnsReachedError(DebateStateError):
    def __init__(self, debate_id: int):
        super().__init__("Maximum turns reached")
        self.debate_id = debate_id


class NoPendingTurnError(DebateStateError):
    def __init__(self, debate_id: int):
        super().__init__("No AI response is pending for this debate")
        self.debate_id = debate_id


class DebateStillActiveError(DebateStateError):
    def __init__(self, debate_id: int):
        super().__init__("Debate is still active")
        self.debate_id = debate_id


class TurnPersistenceError(DebateError):
    """Saving the AI's response failed after the user's argument was recorded."""

    def __init__(self, debate_id: int, argument_id: int, reason: str):
        super().__init__(f"Failed to save AI response: {reason}")
        self.debate_id = debate_id
        self.argument_id = argument_id
