"""
Debate Service — Handles debate creation and lookup.

WHAT THIS DOES:
Provides a clean interface for the debate rows the turn engine works on:
starting a debate on a topic, reading a debate back with its transcript,
and re-requesting the summary article of a finished debate.

WHY THIS EXISTS:
- The turn engine (services/debate/) only advances existing debates
- Single responsibility: debate lifecycle database operations in one place
- Testable: takes the session, easy to point at a throwaway database
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mindshift.config import get_settings
from mindshift.models.debate import Debate, DebateStatus, GoalDirection, Topic
from mindshift.services.debate.errors import (
    DebateNotFoundError,
    DebateStillActiveError,
    DebateValidationError,
    NotDebateOwnerError,
    TopicNotFoundError,
)
from mindshift.services.debate.summarizer import SummaryGenerator

logger = logging.getLogger(__name__)


class DebateService:
    """
    Service for debate lifecycle operations.

    Handles:
    - Starting a debate (snapshots the topic's current stance)
    - Loading a debate with its topic and arguments
    - Retrying the summary article of a completed debate
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def start_debate(
        self,
        topic_id: int,
        user_id: int,
        goal_direction: GoalDirection | str,
        max_turns: Optional[int] = None,
    ) -> Debate:
        """
        Create a new active debate.

        Args:
            topic_id: Topic to debate
            user_id: The user who will argue
            goal_direction: toward_support or toward_opposition
            max_turns: User turns allowed (default from settings)

        Returns:
            The new Debate, with topic and (empty) arguments loaded
        """
        try:
            goal = GoalDirection(goal_direction)
        except ValueError:
            raise DebateValidationError(f"Invalid goal direction: {goal_direction!r}")

        if max_turns is None:
            max_turns = get_settings().default_max_turns
        if max_turns < 1:
            raise DebateValidationError(f"max_turns must be at least 1, got {max_turns}")

        topic = await self.db.get(Topic, topic_id)
        if topic is None:
            raise TopicNotFoundError(topic_id)

        debate = Debate(
            topic_id=topic.id,
            user_id=user_id,
            initial_stance=topic.current_stance,
            goal_direction=goal,
            turn_count=0,
            max_turns=max_turns,
            status=DebateStatus.ACTIVE,
            points_earned=0.0,
        )
        self.db.add(debate)
        await self.db.commit()

        logger.info(
            f"Started debate {debate.id} on topic '{topic.name}' for user {user_id} "
            f"(stance {debate.initial_stance}, goal {goal.value}, {max_turns} turns)"
        )
        return await self.get_debate(debate.id)

    async def get_debate(self, debate_id: int) -> Debate:
        """Get a debate with its topic and arguments in turn order."""
        result = await self.db.execute(
            select(Debate)
            .where(Debate.id == debate_id)
            .options(selectinload(Debate.topic), selectinload(Debate.arguments))
            .execution_options(populate_existing=True)
        )
        debate = result.scalar_one_or_none()
        if debate is None:
            raise DebateNotFoundError(debate_id)
        return debate

    async def retry_summary(
        self,
        debate_id: int,
        user_id: int,
        summarizer: SummaryGenerator,
    ) -> Debate:
        """
        Generate the summary article again (completed or summary_failed debates).

        Returns the debate as it is afterwards; check status/summary_article
        to see whether it worked.
        """
        debate = await self.get_debate(debate_id)
        if debate.user_id != user_id:
            raise NotDebateOwnerError(debate_id)
        if debate.status == DebateStatus.ACTIVE:
            raise DebateStillActiveError(debate_id)

        ok = await summarizer.summarize(debate_id)
        if not ok:
            logger.warning(f"Summary retry failed for debate {debate_id}")

        return await self.get_debate(debate_id)


async def start_debate(
    db: AsyncSession,
    topic_id: int,
    user_id: int,
    goal_direction: GoalDirection | str,
    max_turns: Optional[int] = None,
) -> Debate:
    """Convenience function to start a debate."""
    service = DebateService(db)
    return await service.start_debate(topic_id, user_id, goal_direction, max_turns)
