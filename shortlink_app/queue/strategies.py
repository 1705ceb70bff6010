"""
Queue strategies using Strategy Pattern.
Allows switching between different queue backends (Redis Streams, In-Memory).
"""

from abc import ABC, abstractmethod
from typing import List, Dict
from collections import deque
import asyncio
import logging
import socket

from .models import ClickEvent

logger = logging.getLogger(__name__)


class QueueStrategy(ABC):
    """
    Abstract base class for queue strategies.

    publish() must never raise: the redirect endpoint calls it on the
    request path and a failed publish only costs one click count.
    """

    @abstractmethod
    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        """
        Publish a message to the queue.

        Args:
            queue_name: Name of the queue
            message: ClickEvent to publish

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[ClickEvent]:
        """
        Consume messages from the queue.

        Args:
            queue_name: Name of the queue
            batch_size: Maximum number of messages to retrieve
            block_time: Time to wait for messages (milliseconds)

        Returns:
            List of ClickEvent messages
        """
        pass

    @abstractmethod
    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """
        Acknowledge messages (mark as processed).

        Args:
            queue_name: Name of the queue
            message_ids: List of message IDs to acknowledge

        Returns:
            True if successful
        """
        pass

    @abstractmethod
    async def get_queue_length(self, queue_name: str) -> int:
        """Number of messages waiting in the queue"""
        pass

    async def consume_batch(self, queue_name: str, batch_size: int = 100, block_time: int = 1000) -> List[ClickEvent]:
        """Consume a batch of messages (consume with a larger default batch size)"""
        return await self.consume(queue_name, batch_size, block_time)

    async def close(self) -> None:
        """Release backend resources"""
        return None


class RedisStreamQueue(QueueStrategy):
    """
    Redis Streams implementation for the click queue.

    How it works:
    1. Redirect endpoint publishes events using XADD
    2. Click workers read events using XREADGROUP
    3. Workers acknowledge events using XACK

    Events survive API restarts and can be drained by several workers.
    """

    def __init__(self, redis_client, consumer_group: str = "click_workers"):
        """
        Initialize Redis Streams queue.

        Args:
            redis_client: redis.asyncio client created with decode_responses=True
            consumer_group: Name of consumer group for workers
        """
        self.redis = redis_client
        self.consumer_group = consumer_group
        self.consumer_name = f"worker-{socket.gethostname()}-{id(self)}"
        self._initialized_streams = set()

    async def _ensure_stream_exists(self, queue_name: str):
        """Create stream and consumer group on first use"""
        if queue_name in self._initialized_streams:
            return

        try:
            await self.redis.xgroup_create(
                name=queue_name,
                groupname=self.consumer_group,
                id='0',
                mkstream=True
            )
            logger.info("Created Redis stream %s", queue_name)
        except Exception as e:
            # Group might already exist, that's OK
            if "BUSYGROUP" not in str(e):
                raise

        self._initialized_streams.add(queue_name)

    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        try:
            await self._ensure_stream_exists(queue_name)
            await self.redis.xadd(queue_name, {'data': message.model_dump_json()})
            return True
        except Exception:
            logger.exception("Redis publish error on %s", queue_name)
            return False

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[ClickEvent]:
        """
        Read new messages for this consumer group.

        Messages stay pending until acknowledged.
        """
        try:
            await self._ensure_stream_exists(queue_name)

            # '>' means "messages never delivered to other consumers"
            messages = await self.redis.xreadgroup(
                groupname=self.consumer_group,
                consumername=self.consumer_name,
                streams={queue_name: '>'},
                count=batch_size,
                block=block_time
            )
        except Exception:
            logger.exception("Redis consume error on %s", queue_name)
            return []

        events = []
        for _stream_name, stream_messages in messages or []:
            for message_id, message_data in stream_messages:
                try:
                    event = ClickEvent.model_validate_json(message_data['data'])
                except Exception:
                    logger.warning("Dropping unparsable message %s", message_id)
                    await self.ack(queue_name, [message_id])
                    continue
                event.message_id = message_id
                events.append(event)

        return events

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        try:
            if not message_ids:
                return True
            await self.redis.xack(queue_name, self.consumer_group, *message_ids)
            return True
        except Exception:
            logger.exception("Redis ack error on %s", queue_name)
            return False

    async def get_queue_length(self, queue_name: str) -> int:
        """Get approximate queue length"""
        try:
            info = await self.redis.xinfo_stream(queue_name)
            return info['length']
        except Exception:
            return 0

    async def close(self) -> None:
        await self.redis.aclose()


class InMemoryQueue(QueueStrategy):
    """
    Bounded in-memory queue using Python deque.

    Only usable when the click worker runs inside the API process.
    When a queue is full new events are dropped, so a stalled worker
    can never grow memory without limit.
    """

    POLL_INTERVAL = 0.05  # seconds

    def __init__(self, max_size: int = 10000):
        self.max_size = max_size
        self._queues: Dict[str, deque] = {}

    def _get_queue(self, queue_name: str) -> deque:
        """Get or create queue"""
        if queue_name not in self._queues:
            self._queues[queue_name] = deque()
        return self._queues[queue_name]

    async def publish(self, queue_name: str, message: ClickEvent) -> bool:
        queue = self._get_queue(queue_name)
        if len(queue) >= self.max_size:
            logger.warning("Queue %s is full (%d), dropping click for %s",
                           queue_name, self.max_size, message.slug)
            return False
        queue.append(message)
        return True

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[ClickEvent]:
        """
        Pop up to batch_size messages, polling for at most block_time ms
        while the queue is empty.
        """
        queue = self._get_queue(queue_name)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + block_time / 1000

        while not queue and loop.time() < deadline:
            await asyncio.sleep(self.POLL_INTERVAL)

        messages = []
        while queue and len(messages) < batch_size:
            messages.append(queue.popleft())
        return messages

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """Messages are removed on consume, nothing to acknowledge"""
        return True

    async def get_queue_length(self, queue_name: str) -> int:
        return len(self._get_queue(queue_name))
