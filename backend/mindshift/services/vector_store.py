"""
Vector Store — pgvector table of past debate turns.

WHAT THIS DOES:
Stores one embedding per completed turn (user argument + AI response +
reasoning) and finds the nearest past turns for a new argument, restricted
to the same topic.

WHY A LAZILY CREATED TABLE:
A fresh deployment has no turns yet, so the table is only created on the
first append. Until then, retrieval reports "first debate on this topic"
instead of failing.

pgvector OPERATORS:
- <=> : Cosine distance (what we use - best for text similarity)
  similarity = 1 - distance

USAGE:
    store = PgVectorStore(session_factory)
    if await store.table_exists():
        matches = await store.query(vector, topic_id=7, limit=3)
    await store.append([VectorRecord(...)])
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from pgvector.sqlalchemy import Vector
from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mindshift.config import get_settings
from mindshift.models.schemas import ContextMatch

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


@dataclass
class VectorRecord:
    """One completed turn, ready to be appended to the vector table."""

    vector: list[float]
    text: str
    argument_id: int
    debate_id: int
    topic_id: int
    turn_number: int


class BaseVectorStore(ABC):
    """
    Abstract similarity store.

    PgVectorStore is the production implementation; tests substitute
    in-memory fakes.
    """

    @abstractmethod
    async def table_exists(self) -> bool:
        """Whether the vector table has been created yet."""
        pass

    @abstractmethod
    async def create_table(self) -> None:
        pass

    @abstractmethod
    async def append(self, records: list[VectorRecord]) -> None:
        pass

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        topic_id: int,
        limit: int,
    ) -> list[ContextMatch]:
        """
        Nearest records for the topic, most similar first.
        """
        pass


class PgVectorStore(BaseVectorStore):
    """Vector table living in the application's PostgreSQL database."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        table_name: str | None = None,
        dimensions: int | None = None,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.table_name = table_name or settings.vector_table_name
        self.dimensions = dimensions or settings.embedding_dimensions

        # The name is interpolated into DDL/SQL, so it must be a plain identifier
        if not _IDENTIFIER.match(self.table_name):
            raise ValueError(f"Invalid vector table name: {self.table_name!r}")

    async def table_exists(self) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                text("SELECT to_regclass(:name) IS NOT NULL"),
                {"name": self.table_name},
            )
            return bool(result.scalar())

    async def create_table(self) -> None:
        """
        Create the vector table and its topic index.

        IF NOT EXISTS makes it safe when two turns race to create it.
        """
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
                await session.execute(text(f"""
                    CREATE TABLE IF NOT EXISTS {self.table_name} (
                        id BIGSERIAL PRIMARY KEY,
                        argument_id INTEGER NOT NULL,
                        debate_id INTEGER NOT NULL,
                        topic_id INTEGER NOT NULL,
                        turn_number INTEGER NOT NULL,
                        text TEXT NOT NULL,
                        embedding vector({self.dimensions}) NOT NULL,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    )
                """))
                await session.execute(text(
                    f"CREATE INDEX IF NOT EXISTS ix_{self.table_name}_topic_id "
                    f"ON {self.table_name} (topic_id)"
                ))
        logger.info(f"Vector table '{self.table_name}' ready ({self.dimensions} dims)")

    async def append(self, records: list[VectorRecord]) -> None:
        """Append records, creating the table on first use."""
        if not records:
            return

        if not await self.table_exists():
            logger.info(f"Creating vector table '{self.table_name}'...")
            await self.create_table()

        stmt = text(f"""
            INSERT INTO {self.table_name}
                (argument_id, debate_id, topic_id, turn_number, text, embedding)
            VALUES
                (:argument_id, :debate_id, :topic_id, :turn_number, :text,
                 CAST(:embedding AS vector))
        """).bindparams(bindparam("embedding", type_=Vector(self.dimensions)))

        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(
                    stmt,
                    [
                        {
                            "argument_id": record.argument_id,
                            "debate_id": record.debate_id,
                            "topic_id": record.topic_id,
                            "turn_number": record.turn_number,
                            "text": record.text,
                            "embedding": record.vector,
                        }
                        for record in records
                    ],
                )

        logger.info(f"Appended {len(records)} vector(s) to '{self.table_name}'")

    async def query(
        self,
        vector: list[float],
        topic_id: int,
        limit: int,
    ) -> list[ContextMatch]:
        stmt = text(f"""
            SELECT
                argument_id, debate_id, turn_number, text,
                1 - (embedding <=> CAST(:query_vector AS vector)) AS similarity_score
            FROM {self.table_name}
            WHERE topic_id = :topic_id
            ORDER BY embedding <=> CAST(:query_vector AS vector)
            LIMIT :limit
        """).bindparams(bindparam("query_vector", type_=Vector(self.dimensions)))

        async with self.session_factory() as session:
            result = await session.execute(
                stmt,
                {"query_vector": vector, "topic_id": topic_id, "limit": limit},
            )
            rows = result.fetchall()

        matches = [
            ContextMatch(
                text=row.text,
                similarity_score=float(row.similarity_score),
                argument_id=row.argument_id,
                debate_id=row.debate_id,
                turn_number=row.turn_number,
            )
            for row in rows
        ]

        for match in matches:
            logger.debug(
                f"  argument {match.argument_id}: similarity={match.similarity_score:.3f}"
            )

        return matches
