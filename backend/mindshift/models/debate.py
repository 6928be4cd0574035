"""
SQLAlchemy models for topics, debates and arguments.

A topic carries the AI's current stance. Each debate snapshots that stance
when it starts and then records one Argument row per user turn; the AI's
answer is written onto the same row once it arrives.

STANCE SCALE:
    0.0 = fully supportive of the topic
    5.0 = neutral
   10.0 = fully opposed to the topic
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mindshift.database import Base

STANCE_MIN = 0.0
STANCE_MAX = 10.0


class GoalDirection(str, enum.Enum):
    """Which way the user is trying to push the AI's stance."""

    TOWARD_SUPPORT = "toward_support"        # push stance down, toward 0
    TOWARD_OPPOSITION = "toward_opposition"  # push stance up, toward 10


class DebateStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    SUMMARY_FAILED = "summary_failed"


def _enum_column(enum_cls: type[enum.Enum]) -> Enum:
    # Store the lowercase values, not the member names, and skip native
    # Postgres enum types so the schema stays portable.
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


class Topic(Base):
    """A debatable proposition and the AI's current stance on it."""

    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Updated by every completed turn of any debate on this topic
    # (last writer wins across concurrent debates)
    current_stance: Mapped[float] = mapped_column(Float, default=5.0)
    stance_reasoning: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    debates: Mapped[list["Debate"]] = relationship(back_populates="topic")

    def __repr__(self) -> str:
        return f"<Topic id={self.id} name={self.name[:50]} stance={self.current_stance}>"


class Debate(Base):
    """
    One user's attempt to move the AI's stance on a topic.

    turn_count advances twice per round: once when the user submits, once
    when the AI responds. The user may only move while it is even.
    """

    __tablename__ = "debates"

    id: Mapped[int] = mapped_column(primary_key=True)
    topic_id: Mapped[int] = mapped_column(ForeignKey("topics.id"), index=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)

    initial_stance: Mapped[float] = mapped_column(Float)
    goal_direction: Mapped[GoalDirection] = mapped_column(_enum_column(GoalDirection))

    turn_count: Mapped[int] = mapped_column(Integer, default=0)
    max_turns: Mapped[int] = mapped_column(Integer, default=5)
    status: Mapped[DebateStatus] = mapped_column(
        _enum_column(DebateStatus), default=DebateStatus.ACTIVE
    )

    points_earned: Mapped[float] = mapped_column(Float, default=0.0)
    final_stance: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    summary_article: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    topic: Mapped[Topic] = relationship(back_populates="debates")
    arguments: Mapped[list["Argument"]] = relationship(
        back_populates="debate", order_by="Argument.turn_number"
    )

    @property
    def turn_limit(self) -> int:
        """turn_count value at which the debate is over."""
        return self.max_turns * 2

    def __repr__(self) -> str:
        return (
            f"<Debate id={self.id} topic={self.topic_id} status={self.status.value} "
            f"turns={self.turn_count}/{self.turn_limit}>"
        )


class Argument(Base):
    """A user turn plus the AI response attached to it."""

    __tablename__ = "arguments"

    id: Mapped[int] = mapped_column(primary_key=True)
    debate_id: Mapped[int] = mapped_column(ForeignKey("debates.id"), index=True)
    user_id: Mapped[int] = mapped_column(Integer)

    # 1, 3, 5, ... (turn_count + 1 at the moment the user submitted)
    turn_number: Mapped[int] = mapped_column(Integer)
    argument_text: Mapped[str] = mapped_column(Text)

    stance_before: Mapped[float] = mapped_column(Float)
    # Null until the AI has responded
    stance_after: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    stance_shift: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    shift_reasoning: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Which model wrote ai_response
    ai_model: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    debate: Mapped[Debate] = relationship(back_populates="arguments")

    @property
    def is_pending(self) -> bool:
        """True while the AI response for this turn has not been recorded."""
        return self.stance_after is None

    def __repr__(self) -> str:
        return f"<Argument id={self.id} debate={self.debate_id} turn={self.turn_number}>"
