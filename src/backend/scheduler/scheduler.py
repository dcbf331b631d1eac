from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..fs.storage import Document
from .config import SchedulerConfig
from .queue import WorkQueue


ProcessFn = Callable[[Document], Awaitable[object]]

logger = logging.getLogger(__name__)


class PasteScheduler:
    """
    Periodic drain of recently pasted-into documents.

    Owns the timer task and shares the WorkQueue with the document processor,
    which removes a document once it has been rewritten.

    Lifecycle: start() when the plugin is enabled, restart() after settings
    change, stop() when it is disabled. start() requires a running loop.
    """

    def __init__(
        self,
        *,
        config: SchedulerConfig,
        queue: WorkQueue[Document],
        processor: ProcessFn,
    ) -> None:
        self._config = config
        self._queue = queue
        self._processor = processor
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def queue(self) -> WorkQueue[Document]:
        return self._queue

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------

    def enqueue(self, document: Document) -> None:
        self._queue.push(document, self._config.attempts)

    def start(self) -> bool:
        """Start the timer if enabled. Returns whether it is running."""
        if self.running:
            return True
        if not self._config.should_run:
            return False

        self._task = asyncio.create_task(self._run(), name="paste-queue-drain")
        return True

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def configure(self, config: SchedulerConfig) -> None:
        """Replace the config without starting or stopping the timer."""
        self._config = config

    async def restart(self, config: Optional[SchedulerConfig] = None) -> bool:
        await self.stop()
        if config is not None:
            self._config = config
        return self.start()

    async def tick(self) -> int:
        """Drain the queue once, processing each document in order. Returns the count."""
        processed = 0
        for document in self._queue.drain():
            try:
                await self._processor(document)
            except Exception:  # noqa: BLE001
                logger.exception("Queued processing failed for %s", document.path)
            processed += 1
        return processed

    # ---------------------------------------------------------------------
    # Internals
    # ---------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._config.interval_s)
            await self.tick()
