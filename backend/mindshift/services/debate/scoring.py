"""
Stance Scorer — turns a stance shift into points for the user.

SCALE REMINDER:
    0 = fully supportive, 10 = fully opposed

    goal toward_support     shift < 0  →  +|shift|   (moved the way the user wanted)
    goal toward_opposition  shift > 0  →  +shift
    shift in the other direction       →  -|shift|
    no shift                           →  0
"""

from mindshift.models.debate import GoalDirection


def score_stance_shift(stance_shift: float, goal_direction: GoalDirection) -> float:
    """
    Points earned by one turn.

    Example:
        score_stance_shift(-3.0, GoalDirection.TOWARD_SUPPORT)     # 3.0
        score_stance_shift(2.0, GoalDirection.TOWARD_SUPPORT)      # -2.0
    """
    if stance_shift < 0 and goal_direction == GoalDirection.TOWARD_SUPPORT:
        return abs(stance_shift)
    if stance_shift > 0 and goal_direction == GoalDirection.TOWARD_OPPOSITION:
        return stance_shift
    if (stance_shift > 0 and goal_direction == GoalDirection.TOWARD_SUPPORT) or (
        stance_shift < 0 and goal_direction == GoalDirection.TOWARD_OPPOSITION
    ):
        return -abs(stance_shift)
    return 0.0
