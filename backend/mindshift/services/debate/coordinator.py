"""
Turn Coordinator — processes one user argument from submission to score.

WHAT THIS DOES:
Owns the debate turn state machine. Given a new argument it:
1. Checks the turn is legal and records the argument (Phase 1, transaction)
2. Retrieves RAG context, gets the AI reply, scores the shift (Phase 2)
3. Saves the AI reply and the new debate/topic state (Phase 3, transaction)
4. Kicks off background work: RAG indexing, and the summary article if
   the debate just ended (Phase 4, detached)

TURN STATE MACHINE (per debate):
    state = (turn_count, status)

    user submits:  status == active, turn_count even, turn_count < 2 * max_turns
                   → turn_count += 1
    AI responds:   → turn_count += 1
                   → status = completed once turn_count == 2 * max_turns

While turn_count is odd the AI's reply is in flight (or was lost, see
resume_pending_turn), and any new submission is rejected as "not your turn".

CONCURRENCY:
Both turn_count advances are compare-and-set updates:

    UPDATE debates SET turn_count = :expected + 1
    WHERE id = :id AND turn_count = :expected AND status = 'active'

Only the request whose UPDATE matches a row owns the turn, so two
simultaneous submissions can never both be recorded. Phases 2-4 hold no
lock. Topic.current_stance is overwritten by every completed turn of every
debate on the topic; the last writer wins.

PARTIAL FAILURE:
If Phase 3 cannot be saved, the caller gets TurnPersistenceError and the
argument from Phase 1 stays recorded without an AI reply. The debate is then
stuck on an odd turn_count until resume_pending_turn re-runs Phases 2-4.
Resume waits until the argument is older than any model call could take,
so it never races the request that recorded it.

USAGE:
    coordinator = create_turn_coordinator(session_factory)
    outcome = await coordinator.submit_argument(debate_id=3, user_id=42,
                                                argument_text="...")
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from mindshift.config import get_settings
from mindshift.models.debate import Argument, Debate, DebateStatus, GoalDirection, Topic
from mindshift.services.debate.errors import (
    DebateNotActiveError,
    DebateNotFoundError,
    DebateValidationError,
    MaxTurnsReachedError,
    NoPendingTurnError,
    NotYourTurnError,
    TurnInFlightError,
    TurnPersistenceError,
)
from mindshift.services.debate.models import (
    ResponseInput,
    ResponseOutput,
    TurnOutcome,
    TurnRecord,
)
from mindshift.services.debate.responder import ResponseGenerator
from mindshift.services.debate.scoring import score_stance_shift
from mindshift.services.debate.summarizer import SummaryGenerator
from mindshift.services.debate.tasks import BackgroundTaskRunner, background_tasks
from mindshift.services.retriever import ContextRetriever
from mindshift.services.vector_store import PgVectorStore

logger = logging.getLogger(__name__)

MAX_ARGUMENT_CHARS = 10_000

# A pending argument younger than the model timeout plus this margin may still
# be answered by the request that recorded it
RESUME_MARGIN_SECONDS = 30.0


@dataclass
class PendingTurn:
    """A recorded user argument waiting for the AI's reply."""

    argument: Argument
    debate_id: int
    topic_id: int
    topic_name: str
    goal_direction: GoalDirection
    max_turns: int
    # turn_count right after the user's increment (always odd)
    turn_count_after_user: int
    previous_turns: list[TurnRecord] = field(default_factory=list)

    @property
    def stance_before(self) -> float:
        return self.argument.stance_before


def _validate_id(value: object, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise DebateValidationError(f"Invalid {name}: {value!r}")
    return value


def _validate_argument_text(argument_text: object) -> str:
    if not isinstance(argument_text, str) or not argument_text.strip():
        raise DebateValidationError("Argument text is required")
    text = argument_text.strip()
    if len(text) > MAX_ARGUMENT_CHARS:
        raise DebateValidationError(
            f"Argument text is too long ({len(text)} chars, max {MAX_ARGUMENT_CHARS})"
        )
    return text


class TurnCoordinator:
    """
    Runs debate turns against an injected session factory and collaborators.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        retriever: ContextRetriever,
        generator: ResponseGenerator,
        summarizer: SummaryGenerator,
        tasks: Optional[BackgroundTaskRunner] = None,
        index_turns: bool = True,
        resume_after_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.retriever = retriever
        self.generator = generator
        self.summarizer = summarizer
        self.tasks = tasks or background_tasks
        self.index_turns = index_turns
        if resume_after_seconds is None:
            resume_after_seconds = get_settings().llm_timeout_seconds + RESUME_MARGIN_SECONDS
        self.resume_after = timedelta(seconds=resume_after_seconds)

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    async def submit_argument(
        self,
        debate_id: int,
        user_id: int,
        argument_text: str,
    ) -> TurnOutcome:
        """
        Process one user argument end to end.

        Args:
            debate_id: The debate being argued
            user_id: The authenticated caller (must own the debate)
            argument_text: The new argument

        Returns:
            TurnOutcome with the updated argument row and scoring

        Raises:
            DebateValidationError: bad input, nothing written
            DebateStateError: not found / not active / not your turn / max turns
            TurnPersistenceError: the AI reply could not be saved
        """
        debate_id = _validate_id(debate_id, "debate id")
        user_id = _validate_id(user_id, "user id")
        text = _validate_argument_text(argument_text)

        pending = await self._record_user_turn(debate_id, user_id, text)
        return await self._complete_turn(pending)

    async def resume_pending_turn(self, debate_id: int, user_id: int) -> TurnOutcome:
        """
        Re-run Phases 2-4 for an argument whose AI reply was never saved.

        Only legal while turn_count is odd and the last argument has no
        stance_after. The argument must also be older than the model timeout
        plus RESUME_MARGIN_SECONDS; before that the submitting request may
        still be waiting on the model, and TurnInFlightError is raised. If
        another request saves the reply first, this one fails with
        NoPendingTurnError.
        """
        debate_id = _validate_id(debate_id, "debate id")
        user_id = _validate_id(user_id, "user id")

        pending = await self._load_pending_turn(debate_id, user_id)
        logger.info(
            f"Resuming pending turn {pending.argument.turn_number} of debate {debate_id}"
        )
        return await self._complete_turn(pending)

    # =========================================================================
    # PHASE 1: RECORD USER TURN
    # =========================================================================

    async def _record_user_turn(self, debate_id: int, user_id: int, text: str) -> PendingTurn:
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(Debate)
                    .where(Debate.id == debate_id)
                    .options(selectinload(Debate.topic), selectinload(Debate.arguments))
                    .with_for_update()
                )
                debate = result.scalar_one_or_none()

                if debate is None:
                    raise DebateNotFoundError(debate_id)
                if debate.status != DebateStatus.ACTIVE:
                    raise DebateNotActiveError(debate_id)
                if debate.user_id != user_id or debate.turn_count % 2 != 0:
                    raise NotYourTurnError(debate_id)
                if debate.turn_count >= debate.turn_limit:
                    raise MaxTurnsReachedError(debate_id)

                expected = debate.turn_count
                previous = list(debate.arguments)
                stance_before = debate.initial_stance
                if previous and previous[-1].stance_after is not None:
                    stance_before = previous[-1].stance_after

                # Claim the turn; loses if another request got here first
                claimed = await session.execute(
                    update(Debate)
                    .where(
                        Debate.id == debate_id,
                        Debate.turn_count == expected,
                        Debate.status == DebateStatus.ACTIVE,
                    )
                    .values(turn_count=expected + 1)
                    .execution_options(synchronize_session=False)
                )
                if claimed.rowcount != 1:
                    raise NotYourTurnError(debate_id)

                argument = Argument(
                    debate_id=debate_id,
                    user_id=user_id,
                    turn_number=expected + 1,
                    argument_text=text,
                    stance_before=stance_before,
                )
                session.add(argument)
                await session.flush()

                pending = PendingTurn(
                    argument=argument,
                    debate_id=debate_id,
                    topic_id=debate.topic_id,
                    topic_name=debate.topic.name,
                    goal_direction=debate.goal_direction,
                    max_turns=debate.max_turns,
                    turn_count_after_user=expected + 1,
                    previous_turns=[TurnRecord.from_argument(arg) for arg in previous],
                )

        logger.info(
            f"Recorded turn {pending.argument.turn_number} of debate {debate_id} "
            f"(stance before {pending.stance_before})"
        )
        return pending

    async def _load_pending_turn(self, debate_id: int, user_id: int) -> PendingTurn:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Debate)
                .where(Debate.id == debate_id)
                .options(selectinload(Debate.topic), selectinload(Debate.arguments))
            )
            debate = result.scalar_one_or_none()

        if debate is None:
            raise DebateNotFoundError(debate_id)
        if debate.user_id != user_id:
            raise NotYourTurnError(debate_id)
        if debate.status != DebateStatus.ACTIVE:
            raise DebateNotActiveError(debate_id)

        arguments = list(debate.arguments)
        if debate.turn_count % 2 == 0 or not arguments or not arguments[-1].is_pending:
            raise NoPendingTurnError(debate_id)

        age = datetime.utcnow() - arguments[-1].created_at
        if age < self.resume_after:
            logger.info(
                f"Turn {arguments[-1].turn_number} of debate {debate_id} is {age} old, "
                f"AI reply may still be in flight"
            )
            raise TurnInFlightError(debate_id)

        return PendingTurn(
            argument=arguments[-1],
            debate_id=debate_id,
            topic_id=debate.topic_id,
            topic_name=debate.topic.name,
            goal_direction=debate.goal_direction,
            max_turns=debate.max_turns,
            turn_count_after_user=debate.turn_count,
            previous_turns=[TurnRecord.from_argument(arg) for arg in arguments[:-1]],
        )

    # =========================================================================
    # PHASES 2-4
    # =========================================================================

    async def _complete_turn(self, pending: PendingTurn) -> TurnOutcome:
        # Phase 2: context → response → score (no transaction held)
        context = await self.retriever.retrieve(pending.argument.argument_text, pending.topic_id)

        response = await self.generator.generate(
            ResponseInput(
                topic_name=pending.topic_name,
                stance_before=pending.stance_before,
                goal_direction=pending.goal_direction,
                current_argument_text=pending.argument.argument_text,
                retrieved_context=context,
                previous_turns=pending.previous_turns,
            )
        )
        if response.degraded:
            logger.warning(
                f"Degraded AI response for debate {pending.debate_id}: {response.shift_reasoning}"
            )

        points = score_stance_shift(response.stance_shift, pending.goal_direction)
        logger.info(
            f"Points calculation: Shift={response.stance_shift}, "
            f"Goal={pending.goal_direction.value}, Points={points}"
        )

        # Phase 3: persist the AI turn
        outcome = await self._record_ai_turn(pending, response, points)

        # Phase 4: detached follow-ups
        self._spawn_follow_ups(pending, response, outcome)
        return outcome

    async def _record_ai_turn(
        self,
        pending: PendingTurn,
        response: ResponseOutput,
        points: float,
    ) -> TurnOutcome:
        debate_id = pending.debate_id
        turn_count_after_ai = pending.turn_count_after_user + 1
        debate_ended = turn_count_after_ai >= pending.max_turns * 2
        status = DebateStatus.COMPLETED if debate_ended else DebateStatus.ACTIVE

        values = {
            "turn_count": turn_count_after_ai,
            "points_earned": Debate.points_earned + points,
            "status": status,
        }
        if debate_ended:
            values["final_stance"] = response.new_stance
            values["completed_at"] = datetime.utcnow()

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    advanced = await session.execute(
                        update(Debate)
                        .where(
                            Debate.id == debate_id,
                            Debate.turn_count == pending.turn_count_after_user,
                            Debate.status == DebateStatus.ACTIVE,
                        )
                        .values(**values)
                        .execution_options(synchronize_session=False)
                    )
                    if advanced.rowcount != 1:
                        raise NoPendingTurnError(debate_id)

                    argument = await session.get(Argument, pending.argument.id)
                    if argument is None:
                        raise TurnPersistenceError(
                            debate_id, pending.argument.id, "argument row is missing"
                        )
                    argument.ai_response = response.response_text
                    argument.stance_after = response.new_stance
                    argument.stance_shift = response.stance_shift
                    argument.shift_reasoning = response.shift_reasoning
                    argument.ai_model = response.model or None

                    # Last writer wins across debates on the same topic
                    await session.execute(
                        update(Topic)
                        .where(Topic.id == pending.topic_id)
                        .values(
                            current_stance=response.new_stance,
                            stance_reasoning=response.shift_reasoning,
                        )
                        .execution_options(synchronize_session=False)
                    )

                    points_earned = await session.scalar(
                        select(Debate.points_earned).where(Debate.id == debate_id)
                    )
        except SQLAlchemyError as e:
            logger.error(f"Database update failed for debate {debate_id}: {e}")
            raise TurnPersistenceError(debate_id, pending.argument.id, str(e)) from e

        logger.info(
            f"Saved AI turn for debate {debate_id}: turn_count={turn_count_after_ai}, "
            f"status={status.value}, points_earned={points_earned}"
        )

        return TurnOutcome(
            argument=argument,
            points_this_turn=points,
            points_earned=points_earned,
            turn_count=turn_count_after_ai,
            debate_status=status,
            debate_ended=debate_ended,
            degraded=response.degraded,
        )

    def _spawn_follow_ups(
        self,
        pending: PendingTurn,
        response: ResponseOutput,
        outcome: TurnOutcome,
    ) -> None:
        # Placeholder replies would only pollute future context
        if self.index_turns and not response.degraded:
            self.tasks.spawn(
                self.retriever.index_turn(
                    argument_id=outcome.argument.id,
                    debate_id=pending.debate_id,
                    topic_id=pending.topic_id,
                    turn_number=outcome.argument.turn_number,
                    argument_text=outcome.argument.argument_text,
                    ai_response=response.response_text,
                    shift_reasoning=response.shift_reasoning,
                ),
                name=f"index-argument-{outcome.argument.id}",
            )

        if outcome.debate_ended:
            logger.info(f"Debate {pending.debate_id} completed, scheduling summary")
            self.tasks.spawn(
                self.summarizer.summarize(pending.debate_id),
                name=f"summary-debate-{pending.debate_id}",
            )


def create_turn_coordinator(
    session_factory: async_sessionmaker[AsyncSession],
    tasks: Optional[BackgroundTaskRunner] = None,
) -> TurnCoordinator:
    """
    Coordinator wired with the production collaborators.

    Example:
        coordinator = create_turn_coordinator(get_session_factory())
    """
    return TurnCoordinator(
        session_factory=session_factory,
        retriever=ContextRetriever(store=PgVectorStore(session_factory)),
        generator=ResponseGenerator(),
        summarizer=SummaryGenerator(session_factory),
        tasks=tasks,
    )
