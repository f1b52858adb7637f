"""In-memory transport for testing."""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from typing import AsyncIterator, Deque, Dict, List, Optional, Set, Tuple

from ..contracts import SagaMessage
from .base import BaseTransport

RawInMemory = Tuple[str, str, SagaMessage]


class InMemoryTransport(BaseTransport[RawInMemory]):
    """Simple in-process queue for unit tests.

    Raw messages are ``(topic, json, message)`` triples. Messages handed out by
    ``subscribe`` stay in ``unacked`` until acknowledged; ``nack`` with
    ``requeue=True`` puts them back at the head of their queue.
    """

    in_process = True

    def __init__(self) -> None:
        self._queues: Dict[str, Deque[RawInMemory]] = defaultdict(deque)
        self._lock = asyncio.Lock()
        self.declared: Set[str] = set()
        self.unacked: List[RawInMemory] = []
        self.acked: List[RawInMemory] = []

    async def declare(self, topic: str) -> None:
        self.declared.add(topic)

    async def publish(self, topic: str, message: SagaMessage) -> None:
        """Publish message to in-memory queue."""
        raw = (topic, message.to_json(), message)
        async with self._lock:
            self._queues[topic].append(raw)

    def pending(self, topic: str) -> List[SagaMessage]:
        """Return messages waiting on ``topic`` without consuming them."""
        return [raw[2] for raw in self._queues[topic]]

    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[RawInMemory, SagaMessage]]:
        """Subscribe to messages from topic.

        Args:
            topic: The topic to subscribe to
            lifespan: Maximum time in seconds to keep connection open. If None, runs indefinitely.
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time() if lifespan else None

        while True:
            if lifespan and start_time is not None:
                if loop.time() - start_time >= lifespan:
                    break

            raw_message = None
            async with self._lock:
                if self._queues[topic]:
                    raw_message = self._queues[topic].popleft()
                    self.unacked.append(raw_message)
            if raw_message is not None:
                yield raw_message, SagaMessage.from_json(raw_message[1])
                continue

            await asyncio.sleep(0.05)

    async def ack(self, raw_message: RawInMemory) -> None:
        if raw_message in self.unacked:
            self.unacked.remove(raw_message)
        self.acked.append(raw_message)

    async def nack(self, raw_message: RawInMemory, requeue: bool = True) -> None:
        if raw_message in self.unacked:
            self.unacked.remove(raw_message)
        if requeue:
            async with self._lock:
                self._queues[raw_message[0]].appendleft(raw_message)
