"""
Tests for stance shift scoring.

Scale: 0 = fully supportive, 10 = fully opposed.
"""

import pytest

from mindshift.models.debate import GoalDirection
from mindshift.services.debate.scoring import score_stance_shift


@pytest.mark.parametrize(
    "shift, goal, expected",
    [
        # Moved the way the user wanted
        (-2.0, GoalDirection.TOWARD_SUPPORT, 2.0),
        (3.5, GoalDirection.TOWARD_OPPOSITION, 3.5),
        # Moved the other way
        (1.5, GoalDirection.TOWARD_SUPPORT, -1.5),
        (-4.0, GoalDirection.TOWARD_OPPOSITION, -4.0),
        # No movement
        (0.0, GoalDirection.TOWARD_SUPPORT, 0.0),
        (0.0, GoalDirection.TOWARD_OPPOSITION, 0.0),
    ],
)
def test_score_stance_shift(shift, goal, expected):
    assert score_stance_shift(shift, goal) == pytest.approx(expected)


def test_score_is_symmetric_between_goals():
    """The same shift is worth opposite points for opposite goals."""
    for shift in (-3.0, -0.5, 0.25, 6.0):
        support = score_stance_shift(shift, GoalDirection.TOWARD_SUPPORT)
        opposition = score_stance_shift(shift, GoalDirection.TOWARD_OPPOSITION)
        assert support == pytest.approx(-opposition)
        assert abs(support) == pytest.approx(abs(shift))


def test_score_accepts_plain_string_goal():
    """GoalDirection is a str enum, so stored/wire values compare equal."""
    assert score_stance_shift(-1.0, "toward_support") == pytest.approx(1.0)
