"""Redis transport for cross-process messaging."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Optional, Tuple

import redis.asyncio as redis

from ..contracts import SagaMessage
from .base import BaseTransport

logger = logging.getLogger(__name__)

# (topic, message JSON as stored in Redis)
RawRedisMessage = Tuple[str, str]


class RedisTransport(BaseTransport[RawRedisMessage]):
    """Redis-based transport using lists as durable queues.

    Producers ``LPUSH`` onto ``sagaflow:<topic>``. Consumers atomically move
    each message to ``sagaflow:<topic>:processing`` with ``BLMOVE`` and only
    remove it from there on ack, so a message survives a failed handler or
    a crashed consumer.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self._redis: Optional[Any] = client

    async def connect(self) -> None:
        """Connect to Redis."""
        if self._redis is None:
            self._redis = redis.Redis(
                host=self.host,
                port=self.port,
                db=self.db,
                password=self.password,
                decode_responses=True,
            )
        # Test connection
        await self._redis.ping()

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    @staticmethod
    def _queue_name(topic: str) -> str:
        return f"sagaflow:{topic}"

    @staticmethod
    def _processing_name(topic: str) -> str:
        return f"sagaflow:{topic}:processing"

    async def declare(self, topic: str) -> None:
        """Return messages left in the processing list by a dead consumer to the queue."""
        if not self._redis:
            await self.connect()

        restored = 0
        while await self._redis.lmove(
            self._processing_name(topic), self._queue_name(topic), src="LEFT", dest="RIGHT"
        ):
            restored += 1
        if restored:
            logger.warning(f"Requeued {restored} unacknowledged message(s) on {topic}")

    async def publish(self, topic: str, message: SagaMessage) -> None:
        """Publish message to Redis list (acting as queue)."""
        if not self._redis:
            await self.connect()

        await self._redis.lpush(self._queue_name(topic), message.to_json())

    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[RawRedisMessage, SagaMessage]]:
        """Subscribe to messages from Redis queue."""
        if not self._redis:
            await self.connect()

        queue_name = self._queue_name(topic)
        processing_name = self._processing_name(topic)
        loop = asyncio.get_running_loop()
        start_time = loop.time() if lifespan else None

        while True:
            if lifespan and start_time is not None:
                if loop.time() - start_time >= lifespan:
                    break

            # Blocking move with timeout; the oldest message sits at the right end
            message_json = await self._redis.blmove(
                queue_name, processing_name, timeout=1, src="RIGHT", dest="LEFT"
            )

            if message_json:
                try:
                    message = SagaMessage.from_json(message_json)
                except ValueError as e:
                    logger.error(f"Dropping unparseable message on {topic}: {e}")
                    await self._redis.lrem(processing_name, 1, message_json)
                    continue
                yield (topic, message_json), message

            await asyncio.sleep(0.01)

    async def ack(self, raw_message: RawRedisMessage) -> None:
        """Remove the message from the processing list."""
        topic, message_json = raw_message
        await self._redis.lrem(self._processing_name(topic), 1, message_json)

    async def nack(self, raw_message: RawRedisMessage, requeue: bool = True) -> None:
        """Drop the message, or put it back at the head of its queue."""
        topic, message_json = raw_message
        removed = await self._redis.lrem(self._processing_name(topic), 1, message_json)
        if requeue and removed:
            await self._redis.rpush(self._queue_name(topic), message_json)
