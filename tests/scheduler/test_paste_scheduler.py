"""
Tests for the paste-queue scheduler.

Covers:
- enqueue() uses the configured attempt budget
- tick() processes each queued document once and survives failures
- start()/stop()/restart() follow the enabled flag and interval
- the timer drains the queue on its own
"""

import asyncio
import unittest

from src.backend.fs.storage import Document
from src.backend.scheduler.config import SchedulerConfig
from src.backend.scheduler.queue import WorkQueue
from src.backend.scheduler.scheduler import PasteScheduler


class RecordingProcessor:
    def __init__(self, failing: frozenset[str] = frozenset()):
        self.calls: list[str] = []
        self.failing = failing

    async def __call__(self, document: Document) -> None:
        self.calls.append(document.path)
        if document.path in self.failing:
            raise RuntimeError(f"cannot process {document.path}")


class TestPasteSchedulerTick(unittest.TestCase):
    def test_enqueue_uses_configured_attempts(self):
        queue: WorkQueue[Document] = WorkQueue()
        scheduler = PasteScheduler(
            config=SchedulerConfig(enabled=True, attempts=7),
            queue=queue,
            processor=RecordingProcessor(),
        )

        scheduler.enqueue(Document("a.md"))
        self.assertEqual(queue.remaining(Document("a.md")), 7)

    def test_tick_processes_each_document_and_spends_attempts(self):
        processor = RecordingProcessor()
        queue: WorkQueue[Document] = WorkQueue()
        scheduler = PasteScheduler(config=SchedulerConfig(attempts=2), queue=queue, processor=processor)
        scheduler.enqueue(Document("a.md"))
        scheduler.enqueue(Document("b.md"))

        self.assertEqual(asyncio.run(scheduler.tick()), 2)
        self.assertEqual(processor.calls, ["a.md", "b.md"])

        asyncio.run(scheduler.tick())
        self.assertEqual(len(queue), 0)
        self.assertEqual(asyncio.run(scheduler.tick()), 0)

    def test_tick_continues_after_failure(self):
        processor = RecordingProcessor(failing=frozenset({"a.md"}))
        scheduler = PasteScheduler(config=SchedulerConfig(attempts=1), queue=WorkQueue(), processor=processor)
        scheduler.enqueue(Document("a.md"))
        scheduler.enqueue(Document("b.md"))

        with self.assertLogs("src.backend.scheduler.scheduler", level="ERROR"):
            processed = asyncio.run(scheduler.tick())

        self.assertEqual(processed, 2)
        self.assertEqual(processor.calls, ["a.md", "b.md"])


class TestPasteSchedulerLifecycle(unittest.TestCase):
    def test_disabled_config_does_not_start(self):
        async def scenario():
            scheduler = PasteScheduler(
                config=SchedulerConfig(enabled=False),
                queue=WorkQueue(),
                processor=RecordingProcessor(),
            )
            started = scheduler.start()
            return started, scheduler.running

        self.assertEqual(asyncio.run(scenario()), (False, False))

    def test_zero_interval_does_not_start(self):
        async def scenario():
            scheduler = PasteScheduler(
                config=SchedulerConfig(enabled=True, interval_ms=0),
                queue=WorkQueue(),
                processor=RecordingProcessor(),
            )
            return scheduler.start()

        self.assertFalse(asyncio.run(scenario()))

    def test_timer_drains_queue_until_stopped(self):
        processor = RecordingProcessor()

        async def scenario():
            scheduler = PasteScheduler(
                config=SchedulerConfig(enabled=True, interval_ms=10, attempts=1),
                queue=WorkQueue(),
                processor=processor,
            )
            scheduler.enqueue(Document("a.md"))
            self.assertTrue(scheduler.start())
            self.assertTrue(scheduler.running)

            for _ in range(100):
                if processor.calls:
                    break
                await asyncio.sleep(0.01)

            await scheduler.stop()
            return scheduler.running

        self.assertFalse(asyncio.run(scenario()))
        self.assertEqual(processor.calls, ["a.md"])

    def test_restart_applies_new_config(self):
        async def scenario():
            scheduler = PasteScheduler(
                config=SchedulerConfig(enabled=True, interval_ms=1000),
                queue=WorkQueue(),
                processor=RecordingProcessor(),
            )
            scheduler.start()
            running = await scheduler.restart(SchedulerConfig(enabled=False))
            return running, scheduler.running, scheduler.config.enabled

        self.assertEqual(asyncio.run(scenario()), (False, False, False))

    def test_configure_does_not_start_timer(self):
        async def scenario():
            scheduler = PasteScheduler(config=SchedulerConfig(), queue=WorkQueue(), processor=RecordingProcessor())
            scheduler.configure(SchedulerConfig(enabled=True, interval_ms=10, attempts=9))
            return scheduler.running, scheduler.config.attempts

        self.assertEqual(asyncio.run(scenario()), (False, 9))


class TestSchedulerConfig(unittest.TestCase):
    def test_should_run(self):
        self.assertTrue(SchedulerConfig(enabled=True, interval_ms=1).should_run)
        self.assertFalse(SchedulerConfig(enabled=True, interval_ms=0).should_run)
        self.assertFalse(SchedulerConfig(enabled=False).should_run)

    def test_interval_seconds(self):
        self.assertEqual(SchedulerConfig(interval_ms=1500).interval_s, 1.5)


if __name__ == "__main__":
    unittest.main()
