"""
Tests for the SummaryGenerator.

Debates are put straight into their finished state; the model is a
FakeLLMClient.
"""

import logging

import pytest

from conftest import FakeLLMClient
from mindshift.models.debate import Argument, Debate, DebateStatus
from mindshift.services.debate.prompts import SUMMARY_SYSTEM_PROMPT
from mindshift.services.debate.summarizer import SUMMARY_TEMPERATURE, SummaryGenerator

ARTICLE = "Why I Came Around on Remote Work\n\nThe commuting argument did it."


@pytest.fixture
def make_finished_debate(session_factory, make_debate):
    """A debate with two answered turns, in the given status."""

    async def _make(status: DebateStatus = DebateStatus.COMPLETED, final_stance=3.0) -> int:
        debate_id = await make_debate(max_turns=2, status=status, turn_count=4)
        async with session_factory() as session:
            session.add_all([
                Argument(
                    debate_id=debate_id, user_id=42, turn_number=1,
                    argument_text="Offices cost a fortune.", stance_before=5.0,
                    stance_after=4.0, stance_shift=-1.0,
                    ai_response="Rent is only part of it.", shift_reasoning="Some merit.",
                ),
                Argument(
                    debate_id=debate_id, user_id=42, turn_number=3,
                    argument_text="Commutes cost even more.", stance_before=4.0,
                    stance_after=3.0, stance_shift=-1.0,
                    ai_response="That is persuasive.", shift_reasoning="Strong data.",
                ),
            ])
            debate = await session.get(Debate, debate_id)
            debate.final_stance = final_stance
            debate.points_earned = 2.0
            await session.commit()
        return debate_id

    return _make


async def load_debate(session_factory, debate_id: int) -> Debate:
    async with session_factory() as session:
        return await session.get(Debate, debate_id)


@pytest.mark.asyncio
async def test_summary_is_saved(session_factory, make_finished_debate):
    debate_id = await make_finished_debate()
    llm = FakeLLMClient([f"  {ARTICLE}  "])

    ok = await SummaryGenerator(session_factory, client=llm).summarize(debate_id)

    assert ok is True
    debate = await load_debate(session_factory, debate_id)
    assert debate.summary_article == ARTICLE
    assert debate.status == DebateStatus.COMPLETED

    call = llm.calls[0]
    assert call["system_prompt"] == SUMMARY_SYSTEM_PROMPT
    assert call["temperature"] == SUMMARY_TEMPERATURE
    assert "Debate Topic: Remote work is better than office work" in call["user_message"]
    assert "Turn 1 (User): Offices cost a fortune." in call["user_message"]
    assert "AI (Stance 4.0 -> 3.0): That is persuasive." in call["user_message"]
    assert "Final AI Stance: 3.0/10" in call["user_message"]
    assert "Points Earned by User: 2.0" in call["user_message"]


@pytest.mark.asyncio
async def test_empty_summary_marks_debate_failed(session_factory, make_finished_debate):
    debate_id = await make_finished_debate()
    llm = FakeLLMClient(["   "])

    ok = await SummaryGenerator(session_factory, client=llm).summarize(debate_id)

    assert ok is False
    debate = await load_debate(session_factory, debate_id)
    assert debate.status == DebateStatus.SUMMARY_FAILED
    assert debate.summary_article is None


@pytest.mark.asyncio
async def test_model_error_marks_failed_with_last_stance(session_factory, make_finished_debate):
    debate_id = await make_finished_debate(final_stance=None)
    llm = FakeLLMClient([RuntimeError("model overloaded")])

    ok = await SummaryGenerator(session_factory, client=llm).summarize(debate_id)

    assert ok is False
    debate = await load_debate(session_factory, debate_id)
    assert debate.status == DebateStatus.SUMMARY_FAILED
    # Taken from the last argument's stance_after
    assert debate.final_stance == pytest.approx(3.0)


@pytest.mark.asyncio
async def test_retry_on_failed_debate_restores_completed(session_factory, make_finished_debate):
    debate_id = await make_finished_debate(status=DebateStatus.SUMMARY_FAILED)
    llm = FakeLLMClient([ARTICLE])

    ok = await SummaryGenerator(session_factory, client=llm).summarize(debate_id)

    assert ok is True
    debate = await load_debate(session_factory, debate_id)
    assert debate.status == DebateStatus.COMPLETED
    assert debate.summary_article == ARTICLE


@pytest.mark.asyncio
async def test_active_debate_is_left_alone(session_factory, make_debate):
    debate_id = await make_debate()
    llm = FakeLLMClient([ARTICLE])

    ok = await SummaryGenerator(session_factory, client=llm).summarize(debate_id)

    assert ok is False
    assert llm.calls == []
    assert (await load_debate(session_factory, debate_id)).status == DebateStatus.ACTIVE


@pytest.mark.asyncio
async def test_unknown_debate_returns_false(session_factory):
    ok = await SummaryGenerator(session_factory, client=FakeLLMClient()).summarize(404)

    assert ok is False


@pytest.mark.asyncio
async def test_failure_to_mark_failed_is_only_logged(session_factory, make_finished_debate, caplog):
    debate_id = await make_finished_debate()
    llm = FakeLLMClient([RuntimeError("model overloaded")])
    generator = SummaryGenerator(session_factory, client=llm)

    # Loading works, every later session fails
    calls = {"count": 0}

    def flaky_factory():
        calls["count"] += 1
        if calls["count"] > 1:
            raise ConnectionError("database went away")
        return session_factory()

    generator.session_factory = flaky_factory

    with caplog.at_level(logging.ERROR, logger="mindshift.services.debate.summarizer"):
        ok = await generator.summarize(debate_id)

    assert ok is False
    assert "Failed to update debate status" in caplog.text
    # The debate stays completed, only without an article
    debate = await load_debate(session_factory, debate_id)
    assert debate.status == DebateStatus.COMPLETED
    assert debate.summary_article is None
