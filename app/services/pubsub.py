"""
Topic Bus: real-time message fan-out

In-process publish/subscribe keyed by topic (one topic per conversation).
Each subscriber gets its own bounded asyncio.Queue; a published event is
copied into every queue registered under that topic at publish time.

Classes:
    MessageEvent : delivery copy of a newly created message
    TopicBus     : register / unregister / subscribe / publish

Module-level singleton:
    topic_bus         : shared instance
    get_topic_bus()   : getter (dependency-injection friendly)
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from app.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageEvent:
    """A message on its way to subscribers. Not persisted."""

    conversation_id: int
    message: Any


def conversation_topic(conversation_id: int | str) -> str:
    """Topic name for a conversation's message channel."""
    return str(conversation_id)


class TopicBus:
    """
    Fan-out broker keyed by topic.

    Delivery is at-most-once with no replay: a subscriber only sees events
    published while it is registered. Events on one topic reach a given
    subscriber in publish order.

    Queues are bounded. When a slow subscriber's queue is full the oldest
    pending event is discarded to make room, so publishers never block.
    """

    def __init__(self, max_queue_size: int = 100) -> None:
        self._topics: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._lock: asyncio.Lock = asyncio.Lock()
        self._max_queue_size = max_queue_size

    # ── Public API ────────────────────────────────────────────────────────────

    async def register(self, topic: str) -> asyncio.Queue:
        """Create and register a listener queue for ``topic``.

        The caller must pass the queue to ``unregister`` when done;
        ``subscribe`` does this automatically.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        async with self._lock:
            self._topics[topic].add(queue)
            total = len(self._topics[topic])
        logger.debug("Subscriber added to topic %s (total: %d)", topic, total)
        return queue

    async def unregister(self, topic: str, queue: asyncio.Queue) -> None:
        """Remove a listener queue. Removing an unknown queue is a no-op."""
        async with self._lock:
            subscribers = self._topics.get(topic)
            if subscribers is None or queue not in subscribers:
                return
            subscribers.discard(queue)
            if not subscribers:
                del self._topics[topic]
        logger.debug("Subscriber removed from topic %s", topic)

    async def subscribe(self, topic: str) -> AsyncIterator[Any]:
        """Yield every event published to ``topic`` from now on.

        The stream never ends on its own; closing or cancelling the
        iterator deregisters the subscriber.
        """
        queue = await self.register(topic)
        try:
            while True:
                yield await queue.get()
        finally:
            await self.unregister(topic, queue)

    async def publish(self, topic: str, event: Any) -> int:
        """Deliver ``event`` to all current subscribers of ``topic``.

        Returns:
            Number of subscribers the event was queued for.
        """
        async with self._lock:
            queues = list(self._topics.get(topic, ()))

        for queue in queues:
            self._offer(queue, event, topic)

        logger.debug("Published to topic %s (subscribers: %d)", topic, len(queues))
        return len(queues)

    def subscriber_count(self, topic: str | None = None) -> int:
        """Return active subscribers for ``topic``, or across all topics."""
        if topic is not None:
            return len(self._topics.get(topic, ()))
        return sum(len(subscribers) for subscribers in self._topics.values())

    def get_stats(self) -> dict:
        return {
            "topics": len(self._topics),
            "subscribers": self.subscriber_count(),
            "topic_stats": {topic: len(subscribers) for topic, subscribers in self._topics.items()},
        }

    # ── Private ───────────────────────────────────────────────────────────────

    def _offer(self, queue: asyncio.Queue, event: Any, topic: str) -> None:
        if queue.full():
            queue.get_nowait()
            logger.warning("Subscriber queue full on topic %s, dropped oldest event", topic)
        queue.put_nowait(event)


# ── Module-level singleton ────────────────────────────────────────────────────

topic_bus = TopicBus(max_queue_size=settings.subscription_queue_size)


def get_topic_bus() -> TopicBus:
    """Return the global TopicBus singleton."""
    return topic_bus
