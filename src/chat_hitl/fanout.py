"""Push-channel fan-out for stream-based MCP clients."""

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator

from .codec import sse_comment, sse_event
from .config import KEEPALIVE_INTERVAL

logger = logging.getLogger(__name__)

QUEUE_SIZE = 1000

_subscriber_ids = itertools.count(1)


class Subscriber:
    def __init__(self) -> None:
        self.id = f"client_{next(_subscriber_ids)}"
        self.queue: asyncio.Queue[dict] = asyncio.Queue(maxsize=QUEUE_SIZE)


class Broadcaster:
    """Mirror every resolved RPC response to all open push channels."""

    def __init__(self) -> None:
        self._subscribers: dict[str, Subscriber] = {}

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, subscriber: Subscriber) -> bool:
        return subscriber.id in self._subscribers

    def subscribe(self) -> Subscriber:
        subscriber = Subscriber()
        self._subscribers[subscriber.id] = subscriber
        logger.info("Stream client connected: %s", subscriber.id)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if self._subscribers.pop(subscriber.id, None) is not None:
            logger.info("Stream client disconnected: %s", subscriber.id)

    def publish(self, message: dict) -> None:
        # A subscriber that stopped draining is treated as gone.
        for subscriber in list(self._subscribers.values()):
            try:
                subscriber.queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning("Stream client %s not reading, dropping it", subscriber.id)
                self.unsubscribe(subscriber)


async def event_stream(
    broadcaster: Broadcaster,
    endpoint_url: str,
    keepalive: float = KEEPALIVE_INTERVAL,
) -> AsyncIterator[str]:
    """Yield SSE frames for one subscriber until it disconnects."""
    subscriber = broadcaster.subscribe()
    try:
        yield sse_event(endpoint_url, event="endpoint")
        yield sse_comment("connected")
        while subscriber in broadcaster:
            try:
                message = await asyncio.wait_for(subscriber.queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield sse_comment("ping")
                continue
            yield sse_event(message, event="message")
    finally:
        broadcaster.unsubscribe(subscriber)
