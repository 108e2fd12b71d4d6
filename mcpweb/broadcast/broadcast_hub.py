from __future__ import annotations

import asyncio
import uuid
from typing import Optional

from mcpweb.logging import get_logger
from mcpweb.types import BroadcastEnvelope

logger = get_logger("broadcast")


class Subscription:
    """
    One subscriber's view of the broadcast stream.

    Envelopes are buffered in a bounded queue. When the subscriber falls
    behind, the oldest envelope is dropped so that delivery never blocks.
    """

    def __init__(
        self,
        max_queue: int,
        subscriber_id: Optional[str] = None,
    ) -> None:
        self.id: str = subscriber_id or uuid.uuid4().hex[:8]
        self.dropped: int = 0
        self._queue: asyncio.Queue[
            Optional[BroadcastEnvelope]
        ] = asyncio.Queue(maxsize=max_queue)
        self._closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def deliver(self, envelope: BroadcastEnvelope) -> bool:
        if self._closed:
            return False
        self._put_dropping_oldest(envelope)
        return True

    async def get(self) -> Optional[BroadcastEnvelope]:
        """Next envelope, or None once the subscription is closed."""
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # get() only blocks on an empty queue; a full one needs no end marker
        if not self._queue.full():
            self._queue.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self) -> BroadcastEnvelope:
        envelope = await self.get()
        if envelope is None:
            raise StopAsyncIteration
        return envelope

    def _put_dropping_oldest(
        self, item: Optional[BroadcastEnvelope]
    ) -> None:
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            self._queue.get_nowait()
            self.dropped += 1
            self._queue.put_nowait(item)


class BroadcastHub:
    """
    Fan-out of session events to every live subscriber.

    ``broadcast`` never awaits, so a slow or vanished subscriber cannot
    stall a session's inbound loop or delivery to other subscribers.
    """

    def __init__(self, default_queue_size: int = 256) -> None:
        self._default_queue_size: int = default_queue_size
        self._subscriptions: dict[str, Subscription] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(
        self,
        max_queue: Optional[int] = None,
        subscriber_id: Optional[str] = None,
    ) -> Subscription:
        subscription = Subscription(
            max_queue or self._default_queue_size,
            subscriber_id,
        )
        self._subscriptions[subscription.id] = subscription
        logger.debug(f"Subscriber {subscription.id} added")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription.id, None)
        subscription.close()
        logger.debug(f"Subscriber {subscription.id} removed")

    def broadcast(self, envelope: BroadcastEnvelope) -> int:
        delivered = 0
        for subscription in list(self._subscriptions.values()):
            if subscription.deliver(envelope):
                delivered += 1
        return delivered

    def close(self) -> None:
        for subscription in list(self._subscriptions.values()):
            self.unsubscribe(subscription)
