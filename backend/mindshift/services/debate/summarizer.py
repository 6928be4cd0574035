"""
Summary Generator — writes the end-of-debate article.

WHAT THIS DOES:
When a debate completes, the full argument history is turned into a short
analytical article (not a transcript): why the AI ended where it did,
which counter-positions it weighed, which turns moved it, and a takeaway.

HOW IT WORKS:
1. Load the debate, its topic and every argument (turn order)
2. Render the record into one prompt (prompts.build_summary_history)
3. One language-model call
4. Save the article on the debate; status stays (or returns to) completed

FAILURE HANDLING:
Runs detached from the request that completed the debate, so nothing here
may raise into a caller. On any failure (model error, empty output, save
error) the debate is demoted to summary_failed, with the final stance taken
from the last argument. If even that write fails, the error is logged and
the debate is left as it was. There is no retry loop; a client can ask
again through POST /api/debates/{id}/summary.

USAGE:
    generator = SummaryGenerator(session_factory)
    ok = await generator.summarize(debate_id)
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from mindshift.config import get_settings
from mindshift.models.debate import Argument, Debate, DebateStatus
from mindshift.services.debate.errors import (
    DebateNotFoundError,
    DebateStateError,
    DebateStillActiveError,
)
from mindshift.services.debate.models import SummaryInput, TurnRecord
from mindshift.services.debate.prompts import SUMMARY_SYSTEM_PROMPT, build_summary_history
from mindshift.services.llm import BaseLLMClient, get_shared_llm_client

logger = logging.getLogger(__name__)

# A little more freedom than turn responses; this is prose
SUMMARY_TEMPERATURE = 0.6

SUMMARIZABLE_STATUSES = (DebateStatus.COMPLETED, DebateStatus.SUMMARY_FAILED)


class SummaryGenerator:
    """
    Generates and stores the summary article of a completed debate.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client: Optional[BaseLLMClient] = None,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.client = client or get_shared_llm_client(settings.summary_model or None)

    async def summarize(self, debate_id: int) -> bool:
        """
        Write the summary article for a completed debate.

        Args:
            debate_id: A debate in status completed or summary_failed

        Returns:
            True if the article was saved, False otherwise. Never raises.
        """
        logger.info(f"Generating summary for completed debate {debate_id}...")

        try:
            summary_input = await self._load_summary_input(debate_id)
        except DebateStateError as e:
            # Missing or still-running debates are left untouched
            logger.error(f"Cannot summarize debate {debate_id}: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to load debate {debate_id} for summary: {e}")
            await self._mark_failed(debate_id)
            return False

        try:
            article = await self.client.complete(
                SUMMARY_SYSTEM_PROMPT,
                build_summary_history(summary_input),
                temperature=SUMMARY_TEMPERATURE,
            )
            article = (article or "").strip()
            if not article:
                raise ValueError("model returned an empty summary")

            await self._save_article(debate_id, article, summary_input.final_stance)

        except Exception as e:
            logger.error(f"Failed to generate or save summary for debate {debate_id}: {e}")
            await self._mark_failed(debate_id)
            return False

        logger.info(f"Summary saved for debate {debate_id} ({len(article)} chars)")
        return True

    async def _load_summary_input(self, debate_id: int) -> SummaryInput:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Debate)
                .where(Debate.id == debate_id)
                .options(selectinload(Debate.topic), selectinload(Debate.arguments))
            )
            debate = result.scalar_one_or_none()

        if debate is None:
            raise DebateNotFoundError(debate_id)
        if debate.status not in SUMMARIZABLE_STATUSES:
            raise DebateStillActiveError(debate_id)

        turns = [TurnRecord.from_argument(arg) for arg in debate.arguments]

        final_stance = debate.final_stance
        if final_stance is None:
            last_after = turns[-1].stance_after if turns else None
            final_stance = last_after if last_after is not None else debate.initial_stance

        return SummaryInput(
            debate_id=debate.id,
            topic_name=debate.topic.name,
            initial_stance=debate.initial_stance,
            goal_direction=debate.goal_direction,
            points_earned=debate.points_earned or 0.0,
            turns=turns,
            final_stance=final_stance,
        )

    async def _save_article(self, debate_id: int, article: str, final_stance: float) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                debate = await session.get(Debate, debate_id)
                if debate is None:
                    raise DebateNotFoundError(debate_id)

                debate.summary_article = article
                debate.status = DebateStatus.COMPLETED
                if debate.final_stance is None:
                    debate.final_stance = final_stance
                if debate.completed_at is None:
                    debate.completed_at = datetime.utcnow()

    async def _mark_failed(self, debate_id: int) -> None:
        """Best-effort demotion to summary_failed."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        select(Argument.stance_after)
                        .where(Argument.debate_id == debate_id)
                        .order_by(Argument.turn_number.desc())
                        .limit(1)
                    )
                    last_stance = result.scalar_one_or_none()

                    values = {"status": DebateStatus.SUMMARY_FAILED}
                    if last_stance is not None:
                        values["final_stance"] = last_stance

                    await session.execute(
                        update(Debate)
                        .where(
                            Debate.id == debate_id,
                            Debate.status.in_(SUMMARIZABLE_STATUSES),
                        )
                        .values(**values)
                        .execution_options(synchronize_session=False)
                    )
            logger.warning(f"Debate {debate_id} marked as summary_failed")
        except Exception as e:
            logger.error(
                f"Failed to update debate status after summary failure for debate {debate_id}: {e}"
            )
