"""
In-process broadcast channel for booking events.

Publishing is fire-and-forget: a subscriber whose queue is full misses the
message, and nothing here ever raises back into the caller.
"""
import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

logger = logging.getLogger(__name__)

APPOINTMENT_CANCELLED = "appointment_cancelled"


class NotificationBus:
    def __init__(self, max_queue_size: int = 100) -> None:
        self._subscribers: set[asyncio.Queue] = set()
        self._max_queue_size = max_queue_size

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers.add(queue)
        try:
            yield queue
        finally:
            self._subscribers.discard(queue)

    def publish(self, event: str, payload: dict[str, Any]) -> int:
        """Broadcast to current subscribers; returns how many received it."""
        message = {"event": event, "payload": payload}
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Notification queue full, dropping %s", event)
            except Exception as e:
                logger.exception("Failed to publish %s: %s", event, e)
        logger.info("Published %s to %d subscriber(s)", event, delivered)
        return delivered


async def publish_absence_cancellations(bus: NotificationBus, cancelled: list[dict[str, Any]]) -> None:
    """Notify about each appointment an absence cancelled; runs as a background task on the event loop."""
    for payload in cancelled:
        try:
            bus.publish(APPOINTMENT_CANCELLED, payload)
        except Exception as e:
            # The cancellations are already committed
            logger.exception("Failed to notify about appointment %s: %s", payload.get("appointment_id"), e)


notification_bus = NotificationBus()
