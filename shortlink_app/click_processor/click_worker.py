"""
Click Processor Worker

Drains click events from the queue and hands each one to the ClickRecorder.

Architecture:
- Consumes messages from queue in batches
- Records each click in its own transaction (counter + log row)
- Runs the blocking DB work in a thread, off the event loop
- Acknowledges every consumed message: the recorder already absorbs
  failures, so a failed click is logged and not retried

Runs inside the API process (see main.py lifespan) or standalone:
    python -m shortlink_app.click_processor.click_worker
"""

import asyncio
import logging
import signal
import sys
from typing import List

from shortlink_app.config import settings
from shortlink_app.queue.models import ClickEvent
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.services.click_recorder import ClickRecorder

logger = logging.getLogger(__name__)


class ClickWorker:
    """Batch consumer feeding the click recorder"""

    def __init__(
        self,
        queue: QueueStrategy,
        recorder: ClickRecorder,
        queue_name: str = settings.queue_name,
        batch_size: int = settings.queue_batch_size,
        block_time: int = settings.queue_block_ms
    ):
        """
        Args:
            queue: Queue strategy for consuming messages
            recorder: Click recorder doing the DB writes
            queue_name: Queue to drain
            batch_size: Maximum messages per consume call
            block_time: Consume wait when the queue is empty (milliseconds)
        """
        self.queue = queue
        self.recorder = recorder
        self.queue_name = queue_name
        self.batch_size = batch_size
        self.block_time = block_time
        self.running = False
        self.processed_count = 0

    async def start(self):
        """Consume until stop() is called or the task is cancelled"""
        self.running = True
        logger.info("Click worker started (queue=%s, batch=%d)", self.queue_name, self.batch_size)

        while self.running:
            try:
                messages = await self.queue.consume_batch(
                    queue_name=self.queue_name,
                    batch_size=self.batch_size,
                    block_time=self.block_time
                )
                if messages:
                    await self.process_batch(messages)

            except asyncio.CancelledError:
                logger.info("Click worker task cancelled")
                break
            except Exception:
                logger.exception("Error processing click batch")
                await asyncio.sleep(1)

        logger.info("Click worker stopped after %d clicks", self.processed_count)

    async def process_batch(self, messages: List[ClickEvent]):
        for event in messages:
            await asyncio.to_thread(
                self.recorder.record, event.slug, event.referrer, event.user_agent
            )

        message_ids = [msg.message_id for msg in messages if msg.message_id]
        if message_ids:
            await self.queue.ack(self.queue_name, message_ids)

        self.processed_count += len(messages)
        logger.debug("Processed %d clicks. Total: %d", len(messages), self.processed_count)

    def stop(self):
        self.running = False


async def main():
    """Standalone entry point, for the redis_streams backend"""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Environment: %s, queue backend: %s", settings.environment, settings.queue_backend)

    if settings.queue_backend == "memory":
        logger.error("The in-memory queue is per-process; run the worker in the API process instead")
        sys.exit(1)

    from shortlink_app.dependencies import get_click_recorder, get_queue

    worker = ClickWorker(queue=get_queue(), recorder=get_click_recorder())

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, worker.stop)

    try:
        await worker.start()
    finally:
        await worker.queue.close()


if __name__ == "__main__":
    asyncio.run(main())
