"""
Response Generator — the AI's side of a debate turn.

WHAT THIS DOES:
Takes the user's new argument plus the debate so far and asks the language
model for three things:
- a reply to the user
- a new stance (0-10)
- the reasoning behind any stance change

HOW IT WORKS:
1. Build the system prompt (topic, stance scale, user goal, RAG context,
   full turn history)
2. Send the new argument as the user message, JSON mode when available
3. Classify the reply once (Structured / RawTextWithExtractedFields /
   Unparseable, see parsing.py)
4. Validate: clamp stance to [0, 10]; missing or non-numeric stance means
   no shift

NEVER RAISES:
If the model call fails or its output is unusable, the turn still goes
through with a degraded result: placeholder reply, stance unchanged, and
reasoning starting with "AI Error:". The user sees the failure in the
transcript instead of losing the turn.

USAGE:
    generator = ResponseGenerator()
    output = await generator.generate(ResponseInput(...))
    # output.new_stance, output.stance_shift, output.response_text
"""

import logging
from typing import Optional

from mindshift.models.debate import STANCE_MAX, STANCE_MIN
from mindshift.services.debate.models import (
    ParsedFields,
    ResponseInput,
    ResponseOutput,
    Unparseable,
)
from mindshift.services.debate.parsing import coerce_stance, parse_model_output
from mindshift.services.debate.prompts import build_debate_system_prompt
from mindshift.services.llm import BaseLLMClient, get_shared_llm_client

logger = logging.getLogger(__name__)

PLACEHOLDER_RESPONSE = "[AI response generation failed]"
MISSING_RESPONSE_TEXT = "[AI failed response text]"
MISSING_REASONING_TEXT = "[AI failed reasoning]"
ERROR_REASONING_PREFIX = "AI Error:"

# Some room for argument, but keep the stance judgement fairly consistent
RESPONSE_TEMPERATURE = 0.7


def clamp_stance(stance: float) -> float:
    """Clamp a stance into the 0-10 scale."""
    return max(STANCE_MIN, min(STANCE_MAX, stance))


class ResponseGenerator:
    """
    Generates the AI's reply and re-stance for one argument.

    The language-model client is injected; it defaults to the configured
    provider (see services/llm.py).
    """

    def __init__(self, client: Optional[BaseLLMClient] = None):
        self.client = client or get_shared_llm_client()

    async def generate(self, response_input: ResponseInput) -> ResponseOutput:
        """
        Produce the AI's answer to the current argument.

        Args:
            response_input: Topic, stance, goal, history, context and the new argument

        Returns:
            ResponseOutput (degraded=True when the placeholder was used)
        """
        system_prompt = build_debate_system_prompt(
            topic_name=response_input.topic_name,
            stance_before=response_input.stance_before,
            goal_direction=response_input.goal_direction,
            previous_turns=response_input.previous_turns,
            retrieved_context=response_input.retrieved_context,
        )

        try:
            raw_text = await self.client.complete(
                system_prompt,
                response_input.current_argument_text,
                json_mode=self.client.supports_json,
                temperature=RESPONSE_TEMPERATURE,
            )
        except Exception as e:
            logger.error(f"{self.client.provider} call failed for debate response: {e}")
            return self._degraded(response_input, f"{ERROR_REASONING_PREFIX} {e}")

        parsed = parse_model_output(raw_text)
        if isinstance(parsed, Unparseable):
            logger.error(f"Unparseable model output ({parsed.reason}): {parsed.raw_text[:200]!r}")
            return self._degraded(
                response_input,
                f"{ERROR_REASONING_PREFIX} Could not process response ({parsed.reason})",
            )

        logger.debug(f"Model output parsed as {type(parsed).__name__}")
        return self._from_fields(response_input, parsed.fields)

    def _from_fields(self, response_input: ResponseInput, fields: ParsedFields) -> ResponseOutput:
        stance_before = response_input.stance_before

        stance = coerce_stance(fields.new_stance)
        if stance is None:
            logger.warning(
                f"Model returned no usable stance ({fields.new_stance!r}), keeping {stance_before}"
            )
            stance = stance_before

        new_stance = clamp_stance(stance)
        if new_stance != stance:
            logger.warning(f"Clamped model stance {stance} to {new_stance}")

        stance_shift = new_stance - stance_before
        logger.info(f"AI response: Stance {stance_before} -> {new_stance}. Shift: {stance_shift}.")

        return ResponseOutput(
            response_text=fields.response_text or MISSING_RESPONSE_TEXT,
            new_stance=new_stance,
            stance_shift=stance_shift,
            shift_reasoning=fields.reasoning or MISSING_REASONING_TEXT,
            model=self.client.model,
        )

    def _degraded(self, response_input: ResponseInput, reasoning: str) -> ResponseOutput:
        return ResponseOutput(
            response_text=PLACEHOLDER_RESPONSE,
            new_stance=response_input.stance_before,
            stance_shift=0.0,
            shift_reasoning=reasoning,
            model=self.client.model,
            degraded=True,
        )
