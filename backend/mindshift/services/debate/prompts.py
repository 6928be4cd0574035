"""
Prompt builders for debate turns and summary articles.
"""

from mindshift.models.debate import GoalDirection
from mindshift.services.debate.models import SummaryInput, TurnRecord

AI_NAME = "MindShift AI"

NO_CONTEXT_TEXT = "[No additional context retrieved]"
FIRST_ARGUMENT_TEXT = "[This is the first argument]"


def describe_goal(goal_direction: GoalDirection) -> str:
    """One-line description of what the user is trying to do."""
    if goal_direction == GoalDirection.TOWARD_SUPPORT:
        return "persuade you toward 0 (support)"
    return "persuade you toward 10 (opposition)"


def format_turn_history(turns: list[TurnRecord]) -> str:
    """Render prior turns, oldest first, separated by rules."""
    blocks = []
    for turn in turns:
        block = f"Turn {turn.turn_number} (User):\nArgument: {turn.argument_text}"
        if turn.ai_response:
            after = turn.stance_after if turn.stance_after is not None else turn.stance_before
            block += (
                f"\nAI Response (Stance {turn.stance_before:.1f} → {after:.1f}):\n"
                f"{turn.ai_response}"
            )
            if turn.shift_reasoning:
                block += f"\nReasoning: {turn.shift_reasoning}"
        else:
            block += "\n(Awaiting AI response)"
        blocks.append(block)
    return "\n\n---\n\n".join(blocks)


def build_debate_system_prompt(
    topic_name: str,
    stance_before: float,
    goal_direction: GoalDirection,
    previous_turns: list[TurnRecord],
    retrieved_context: str,
) -> str:
    """System instruction for one debate turn."""
    if goal_direction == GoalDirection.TOWARD_SUPPORT:
        goal_rule = (
            "Lower your score (toward 0) only if the argument convincingly supports "
            "the topic or dismantles the case against it."
        )
    else:
        goal_rule = (
            "Raise your score (toward 10) only if the argument convincingly opposes "
            "the topic or dismantles the case for it."
        )

    history = format_turn_history(previous_turns) or FIRST_ARGUMENT_TEXT

    return f"""You are {AI_NAME}, debating the topic: "{topic_name}".

STANCE SCALE:
0.0 means completely supportive of "{topic_name}", 10.0 means completely opposed, 5.0 is neutral.
Your current stance is {stance_before:.1f}/10.

USER GOAL:
The user is trying to {describe_goal(goal_direction)}. {goal_rule}

CONTEXT FROM SIMILAR PAST ARGUMENTS (secondary, use only if relevant):
{retrieved_context or NO_CONTEXT_TEXT}

DEBATE HISTORY:
{history}

FOR THIS TURN:
1. Read the user's new argument (next message) and judge its logic, evidence and relevance.
2. Weigh it against the history and context, but judge mainly this argument.
3. Move your stance only as far as the argument earns. Weak or off-topic arguments move nothing.
4. Reply to the user's points directly and explain how you evaluated them.

RESPONSE FORMAT:
Return ONLY one JSON object with exactly these keys:
- "aiResponse": (string) your reply to the user
- "newStance": (number) your new stance, 0.0 to 10.0 (may equal {stance_before:.1f})
- "reasoning": (string) short explanation of why your stance moved or did not

No text before or after the JSON object."""


SUMMARY_SYSTEM_PROMPT = f"""You are {AI_NAME}, writing a short analytical article about a debate you just finished.

Do NOT retell the debate turn by turn. Write an article that:
1. States where you ended up on the topic and justifies that final stance.
2. Engages with the strongest opposing positions raised, and why they did or did not move you.
3. Identifies the turns that influenced you most, and what made them effective.
4. Ends with a takeaway for the reader.

Write 3-6 paragraphs of plain prose. Use a title line at the top."""


def build_summary_history(summary: SummaryInput) -> str:
    """User message for the summary prompt: the full debate record."""
    lines = [
        f"Debate Topic: {summary.topic_name}",
        f"Initial AI Stance: {summary.initial_stance:.1f}/10",
        f"User Goal: {describe_goal(summary.goal_direction)}",
        "",
        "Argument History:",
    ]

    for turn in summary.turns:
        lines.append(f"Turn {turn.turn_number} (User): {turn.argument_text}")
        if turn.ai_response:
            after = turn.stance_after if turn.stance_after is not None else turn.stance_before
            lines.append(
                f"AI (Stance {turn.stance_before:.1f} -> {after:.1f}): {turn.ai_response}"
            )
            if turn.shift_reasoning:
                lines.append(f"Reasoning: {turn.shift_reasoning}")
        lines.append("")

    lines.append(f"Final AI Stance: {summary.final_stance:.1f}/10")
    lines.append(f"Points Earned by User: {summary.points_earned:.1f}")
    return "\n".join(lines)
