"""Background removal of expired login challenges.

Expired challenges already behave as absent, so this worker only keeps the
backing store from growing. Correctness never depends on it running.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from plankeeper.core.settings import settings
from plankeeper.db.session import session_scope
from plankeeper.services.store_factory import build_challenge_store

logger = logging.getLogger(__name__)


def _purge_configured_backend() -> int:
    with session_scope() as db:
        return build_challenge_store(db).purge_expired()


class ChallengePurgeWorker:
    """Periodically deletes expired challenges from the configured store."""

    def __init__(
        self,
        purge: Callable[[], int] | None = None,
        interval_seconds: float | None = None,
    ) -> None:
        self._purge = purge or _purge_configured_backend
        self.interval = max(
            0.1,
            float(
                interval_seconds
                if interval_seconds is not None
                else settings.challenge_purge_interval_seconds
            ),
        )
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background purge loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background purge loop."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def purge_once(self) -> int:
        """Run a single purge pass off the event loop."""
        removed = await asyncio.to_thread(self._purge)
        if removed:
            logger.info("Purged %d expired login challenges", removed)
        return removed

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.purge_once()
            except Exception:
                logger.exception("Challenge purge pass failed")
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except TimeoutError:
                continue
