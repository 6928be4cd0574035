"""
Background Tasks — fire-and-forget work spawned by a debate turn.

Summary articles and RAG indexing run after the turn response has been
returned. Nobody awaits them: their outcome is only visible through the
database (Debate.status / summary_article, the vector table).

asyncio only keeps weak references to tasks, so the runner holds them
until they finish and logs whatever they raised. Each task is its own
error boundary; a failure here never reaches the request that spawned it.
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional

logger = logging.getLogger(__name__)


class BackgroundTaskRunner:
    """Keeps detached tasks alive and logs their failures."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Schedule coro on the running loop without awaiting it."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug(f"Spawned background task {name}")
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)

        if task.cancelled():
            logger.warning(f"Background task {task.get_name()} was cancelled")
            return

        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task {task.get_name()} failed: {exc!r}")

    async def drain(self, timeout: Optional[float] = None) -> None:
        """
        Wait until every task (including ones spawned meanwhile) is done.

        Used on shutdown and in tests; request handlers never call it.
        """
        while self._tasks:
            await asyncio.wait(set(self._tasks), timeout=timeout)
            if timeout is not None:
                break

    async def shutdown(self, timeout: float = 10.0) -> None:
        """Give running tasks a grace period, then cancel the rest."""
        if not self._tasks:
            return

        logger.info(f"Waiting for {len(self._tasks)} background task(s)...")
        await self.drain(timeout=timeout)

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


# Process-wide runner used by the API layer
background_tasks = BackgroundTaskRunner()
