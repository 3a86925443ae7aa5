"""In-memory asynchronous bus carrying SMS delivery events."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Set

from .models import SmsEnvelope


@dataclass(slots=True, eq=False)
class Subscription:
    queue: "asyncio.Queue[SmsEnvelope]"
    session_filter: Optional[str]

    async def get(self) -> SmsEnvelope:
        return await self.queue.get()


class MessageBus:
    """Pub/sub bus with optional session filtering."""

    def __init__(self) -> None:
        self._subscriptions: Set[Subscription] = set()
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def publish(self, envelope: SmsEnvelope) -> None:
        """Deliver an event to every matching subscriber."""
        if self._closed:
            raise RuntimeError("MessageBus is closed")

        async with self._lock:
            subscriptions = list(self._subscriptions)

        for subscription in subscriptions:
            if subscription.session_filter and subscription.session_filter != envelope.session_id:
                continue
            _put_latest(subscription.queue, envelope)

    async def attach(self, *, session_id: Optional[str] = None, max_queue: int = 10) -> Subscription:
        """Register a subscription immediately; pair with :meth:`detach`."""
        if self._closed:
            raise RuntimeError("MessageBus is closed")
        subscription = Subscription(queue=asyncio.Queue(max_queue), session_filter=session_id)
        async with self._lock:
            self._subscriptions.add(subscription)
        return subscription

    async def detach(self, subscription: Subscription) -> None:
        async with self._lock:
            self._subscriptions.discard(subscription)

    async def subscribe(
        self,
        *,
        session_id: Optional[str] = None,
        max_queue: int = 10,
    ) -> AsyncIterator[SmsEnvelope]:
        """Yield delivery events, optionally for one session only."""
        subscription = await self.attach(session_id=session_id, max_queue=max_queue)
        try:
            while True:
                envelope = await subscription.get()
                yield envelope
                if envelope.closed:
                    return
        finally:
            await self.detach(subscription)

    async def subscriber_count(self) -> int:
        async with self._lock:
            return len(self._subscriptions)

    async def close(self) -> None:
        """Stop accepting events and unblock subscribers."""
        self._closed = True
        async with self._lock:
            subscriptions = list(self._subscriptions)
            self._subscriptions.clear()
        for subscription in subscriptions:
            sentinel = SmsEnvelope(
                session_id=subscription.session_filter or "*",
                detail="MessageBus closed",
                closed=True,
            )
            _put_latest(subscription.queue, sentinel)


def _put_latest(queue: "asyncio.Queue[SmsEnvelope]", envelope: SmsEnvelope) -> None:
    try:
        queue.put_nowait(envelope)
    except asyncio.QueueFull:
        # Drop the oldest so the newest message always gets through.
        try:
            queue.get_nowait()
        except asyncio.QueueEmpty:
            pass
        queue.put_nowait(envelope)
