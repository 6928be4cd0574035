import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from mindshift.api.routes import router
from mindshift.config import get_settings
from mindshift.database import Base, dispose_engine, get_engine

# Import models so SQLAlchemy knows about them when creating tables
# Without this import, Base.metadata.create_all() wouldn't know about Debate etc.
from mindshift.models.debate import Argument, Debate, Topic  # noqa: F401
from mindshift.services.debate.tasks import background_tasks
from mindshift.services.embeddings import close_embedding_service
from mindshift.services.llm import close_llm_clients

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# LIFESPAN: Startup and Shutdown Logic
# =============================================================================
#
# Everything BEFORE 'yield' runs once on startup, everything AFTER on shutdown.
#
# Shutdown order matters: summary articles and RAG indexing run as detached
# tasks that still need the database, so they get a grace period before the
# connection pool is closed. The shared model clients are closed after them
# for the same reason.
#
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""

    # === STARTUP ===
    async with get_engine().begin() as conn:
        # pgvector backs the RAG context table (created lazily on first turn)
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))

        # Create topics / debates / arguments if they don't exist yet
        await conn.run_sync(Base.metadata.create_all)

    logger.info("MindShift debate engine started")

    yield

    # === SHUTDOWN ===
    await background_tasks.shutdown()
    await close_llm_clients()
    await close_embedding_service()
    await dispose_engine()


app = FastAPI(
    title="MindShift Debate Engine",
    description="Turn processing for AI debates: stance scoring, RAG context and summaries",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
