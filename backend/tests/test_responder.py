"""
Tests for the ResponseGenerator.

The language model is a FakeLLMClient replaying canned replies.
"""

import pytest

from conftest import FakeLLMClient, stance_reply
from mindshift.models.debate import GoalDirection
from mindshift.services.debate.models import ResponseInput, TurnRecord
from mindshift.services.debate.responder import (
    ERROR_REASONING_PREFIX,
    MISSING_REASONING_TEXT,
    PLACEHOLDER_RESPONSE,
    RESPONSE_TEMPERATURE,
    ResponseGenerator,
)


def make_input(stance_before: float = 5.0, previous_turns=None) -> ResponseInput:
    return ResponseInput(
        topic_name="Remote work is better than office work",
        stance_before=stance_before,
        goal_direction=GoalDirection.TOWARD_SUPPORT,
        current_argument_text="Commuting wastes ten hours a week.",
        retrieved_context="[No relevant context found for this topic]",
        previous_turns=previous_turns or [],
    )


# =============================================================================
# HAPPY PATH
# =============================================================================

@pytest.mark.asyncio
async def test_generate_returns_model_stance_and_shift():
    llm = FakeLLMClient([stance_reply(3.0, response="Fair.", reasoning="Good data.")])

    output = await ResponseGenerator(client=llm).generate(make_input(5.0))

    assert output.response_text == "Fair."
    assert output.new_stance == 3.0
    assert output.stance_shift == pytest.approx(-2.0)
    assert output.shift_reasoning == "Good data."
    assert output.degraded is False
    assert output.model == "fake-model"


@pytest.mark.asyncio
async def test_prompt_carries_topic_stance_goal_context_and_history():
    llm = FakeLLMClient([stance_reply(5.0)])
    history = [
        TurnRecord(
            turn_number=1,
            argument_text="Offices cost a fortune.",
            stance_before=5.0,
            stance_after=4.0,
            ai_response="Rent is only part of it.",
            shift_reasoning="Some merit.",
        )
    ]

    await ResponseGenerator(client=llm).generate(make_input(4.0, previous_turns=history))

    call = llm.calls[0]
    prompt = call["system_prompt"]
    assert "Remote work is better than office work" in prompt
    assert "4.0/10" in prompt
    assert "toward 0 (support)" in prompt
    assert "[No relevant context found for this topic]" in prompt
    assert "Offices cost a fortune." in prompt
    assert "Rent is only part of it." in prompt
    assert "5.0 → 4.0" in prompt
    assert call["user_message"] == "Commuting wastes ten hours a week."
    assert call["json_mode"] is True
    assert call["temperature"] == RESPONSE_TEMPERATURE


# =============================================================================
# VALIDATION
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("model_stance, expected", [(14.7, 10.0), (-3, 0.0)])
async def test_stance_is_clamped_to_scale(model_stance, expected):
    llm = FakeLLMClient([stance_reply(model_stance)])

    output = await ResponseGenerator(client=llm).generate(make_input(5.0))

    assert output.new_stance == expected
    assert output.stance_shift == pytest.approx(expected - 5.0)
    assert output.degraded is False


@pytest.mark.asyncio
@pytest.mark.parametrize("model_stance", ["somewhat lower", None, True])
async def test_unusable_stance_means_no_shift(model_stance):
    llm = FakeLLMClient([stance_reply(model_stance)])

    output = await ResponseGenerator(client=llm).generate(make_input(6.5))

    assert output.new_stance == 6.5
    assert output.stance_shift == 0.0
    assert output.degraded is False


@pytest.mark.asyncio
async def test_missing_reasoning_gets_placeholder():
    llm = FakeLLMClient(['{"aiResponse": "Noted.", "newStance": 5}'])

    output = await ResponseGenerator(client=llm).generate(make_input(5.0))

    assert output.response_text == "Noted."
    assert output.shift_reasoning == MISSING_REASONING_TEXT


@pytest.mark.asyncio
async def test_freeform_reply_is_parsed_without_json_mode():
    llm = FakeLLMClient(
        ["<think>hmm</think>\nResponse: Good point.\nNew Stance: 4\nReasoning: Solid."],
        json_capable=False,
    )

    output = await ResponseGenerator(client=llm).generate(make_input(5.0))

    assert llm.calls[0]["json_mode"] is False
    assert output.response_text == "Good point."
    assert output.new_stance == 4.0
    assert output.shift_reasoning == "Solid."


# =============================================================================
# DEGRADED RESULTS
# =============================================================================

@pytest.mark.asyncio
async def test_model_error_returns_degraded_output():
    llm = FakeLLMClient([TimeoutError("request timed out")])

    output = await ResponseGenerator(client=llm).generate(make_input(5.0))

    assert output.degraded is True
    assert output.response_text == PLACEHOLDER_RESPONSE
    assert output.new_stance == 5.0
    assert output.stance_shift == 0.0
    assert output.shift_reasoning.startswith(ERROR_REASONING_PREFIX)
    assert "request timed out" in output.shift_reasoning


@pytest.mark.asyncio
async def test_unparseable_reply_returns_degraded_output():
    llm = FakeLLMClient(["I refuse to answer in any format."])

    output = await ResponseGenerator(client=llm).generate(make_input(2.0))

    assert output.degraded is True
    assert output.new_stance == 2.0
    assert output.stance_shift == 0.0
    assert output.shift_reasoning.startswith(ERROR_REASONING_PREFIX)
