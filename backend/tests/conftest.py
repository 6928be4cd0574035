"""
Shared fixtures for the debate engine tests.

Persistence-level tests run against a throwaway SQLite file (aiosqlite),
one per test. The language model, embeddings and vector store are replaced
with in-memory fakes, so nothing here needs network access.

Run with: pytest backend/tests -v
"""

import json
from typing import Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from mindshift.database import Base
from mindshift.models.debate import Debate, DebateStatus, GoalDirection, Topic
from mindshift.models.schemas import ContextMatch
from mindshift.services.debate import (
    BackgroundTaskRunner,
    ResponseGenerator,
    TurnCoordinator,
)
from mindshift.services.llm import BaseLLMClient
from mindshift.services.retriever import ContextRetriever
from mindshift.services.vector_store import BaseVectorStore, VectorRecord

USER_ID = 42
OTHER_USER_ID = 7
TOPIC_NAME = "Remote work is better than office work"


# =============================================================================
# FAKES
# =============================================================================

def stance_reply(
    new_stance,
    response: str = "That is a fair point about commuting.",
    reasoning: str = "The emissions argument was well supported.",
) -> str:
    """A well-formed JSON-mode reply."""
    return json.dumps({"aiResponse": response, "newStance": new_stance, "reasoning": reasoning})


class FakeLLMClient(BaseLLMClient):
    """
    Replays queued replies in order. A queued exception is raised instead.
    """

    provider = "fake"
    model = "fake-model"

    def __init__(self, replies: Optional[list] = None, json_capable: bool = True):
        self.replies = list(replies or [])
        self.json_capable = json_capable
        self.calls: list[dict] = []

    @property
    def supports_json(self) -> bool:
        return self.json_capable

    def queue(self, *replies) -> None:
        self.replies.extend(replies)

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        json_mode: bool = False,
        temperature: float = 0.7,
    ) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "user_message": user_message,
            "json_mode": json_mode,
            "temperature": temperature,
        })
        if not self.replies:
            raise RuntimeError("no reply queued")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeVectorStore(BaseVectorStore):
    """In-memory vector store; every record of the topic matches."""

    def __init__(self, exists: bool = True):
        self.exists = exists
        self.records: list[VectorRecord] = []
        self.matches: Optional[list[ContextMatch]] = None

    async def table_exists(self) -> bool:
        return self.exists

    async def create_table(self) -> None:
        self.exists = True

    async def append(self, records: list[VectorRecord]) -> None:
        if not self.exists:
            await self.create_table()
        self.records.extend(records)

    async def query(self, vector: list[float], topic_id: int, limit: int) -> list[ContextMatch]:
        if self.matches is not None:
            return self.matches[:limit]
        return [
            ContextMatch(
                text=record.text,
                similarity_score=0.9,
                argument_id=record.argument_id,
                debate_id=record.debate_id,
                turn_number=record.turn_number,
            )
            for record in self.records
            if record.topic_id == topic_id
        ][:limit]


# =============================================================================
# DATABASE
# =============================================================================

@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'mindshift.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def topic(session_factory) -> Topic:
    async with session_factory() as session:
        topic = Topic(name=TOPIC_NAME, description="Office vs. home", current_stance=5.0)
        session.add(topic)
        await session.commit()
        return topic


@pytest.fixture
def make_debate(session_factory, topic):
    """Factory: insert a debate on the shared topic and return its id."""

    async def _make(
        goal_direction: GoalDirection = GoalDirection.TOWARD_SUPPORT,
        max_turns: int = 3,
        user_id: int = USER_ID,
        status: DebateStatus = DebateStatus.ACTIVE,
        turn_count: int = 0,
    ) -> int:
        async with session_factory() as session:
            debate = Debate(
                topic_id=topic.id,
                user_id=user_id,
                initial_stance=topic.current_stance,
                goal_direction=goal_direction,
                turn_count=turn_count,
                max_turns=max_turns,
                status=status,
                points_earned=0.0,
            )
            session.add(debate)
            await session.commit()
            return debate.id

    return _make


# =============================================================================
# ENGINE COMPONENTS
# =============================================================================

@pytest.fixture
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def vector_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture
def embedder() -> AsyncMock:
    embedder = AsyncMock()
    embedder.embed_text.return_value = [0.1, 0.2, 0.3]
    return embedder


@pytest.fixture
def retriever(vector_store, embedder) -> ContextRetriever:
    return ContextRetriever(store=vector_store, embedder=embedder, top_k=3, max_chars=300)


@pytest.fixture
def summarizer() -> AsyncMock:
    summarizer = AsyncMock()
    summarizer.summarize.return_value = True
    return summarizer


@pytest_asyncio.fixture
async def task_runner():
    runner = BackgroundTaskRunner()
    yield runner
    # Nothing spawned by a test may outlive its event loop
    await runner.drain()


@pytest.fixture
def coordinator(session_factory, retriever, llm, summarizer, task_runner) -> TurnCoordinator:
    return TurnCoordinator(
        session_factory=session_factory,
        retriever=retriever,
        generator=ResponseGenerator(client=llm),
        summarizer=summarizer,
        tasks=task_runner,
        # Pending turns are resumable right away unless a test opts back in
        resume_after_seconds=0.0,
    )
