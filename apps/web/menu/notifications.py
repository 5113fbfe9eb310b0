"""
Menu change notifications over Server-Sent Events.

Mutations run in sync request threads; streams run on the ASGI event loop.
Each open stream owns a Subscription whose queue lives on that loop, and
publishing hands events over with ``call_soon_threadsafe`` so it never
blocks the mutating request.

Delivery is best effort: no replay, no acknowledgement. A client that was
disconnected refetches on reconnect.
"""

import asyncio
import json
import logging
import threading
from collections import defaultdict
from collections.abc import AsyncIterator
from typing import Any

from django.apps import apps

from pydantic import BaseModel

from .schemas import ConnectedEvent

logger = logging.getLogger(__name__)

KEEPALIVE_COMMENT = ": keepalive\n\n"


def format_sse(event: BaseModel | dict[str, Any]) -> str:
    """Encode one event as an SSE ``data:`` message."""
    if isinstance(event, BaseModel):
        event = event.model_dump(mode="json")
    return f"data: {json.dumps(event)}\n\n"


class Subscription:
    """One open stream for one restaurant."""

    def __init__(
        self,
        restaurant_id: int,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.restaurant_id = restaurant_id
        self.loop = loop or asyncio.get_running_loop()
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def deliver(self, event: dict[str, Any]) -> bool:
        """Queue ``event`` on the subscriber's loop. False if the loop is gone."""
        if self.loop.is_closed():
            return False
        try:
            self.loop.call_soon_threadsafe(self.queue.put_nowait, event)
        except RuntimeError:
            # Loop closed between the check and the call
            return False
        return True

    async def get(self, timeout: float | None = None) -> dict[str, Any] | None:
        """Next event, or None if nothing arrived within ``timeout`` seconds."""
        try:
            return await asyncio.wait_for(self.queue.get(), timeout)
        except TimeoutError:
            return None


class MenuUpdateBroker:
    """
    In-process publish/subscribe registry keyed by restaurant id.

    Thread-safe. One instance per process, built in MenuConfig.ready().
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[int, set[Subscription]] = defaultdict(set)

    def subscribe(
        self,
        restaurant_id: int,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> Subscription:
        subscription = Subscription(restaurant_id, loop)
        with self._lock:
            self._subscribers[restaurant_id].add(subscription)
        logger.debug("Stream opened for restaurant %s", restaurant_id)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.restaurant_id)
            if subscribers is None:
                return
            subscribers.discard(subscription)
            if not subscribers:
                del self._subscribers[subscription.restaurant_id]
        logger.debug("Stream closed for restaurant %s", subscription.restaurant_id)

    def subscriber_count(self, restaurant_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get(restaurant_id, ()))

    def publish(self, restaurant_id: int, event: BaseModel | dict[str, Any]) -> int:
        """
        Deliver ``event`` to every stream open for ``restaurant_id``.

        Returns the number of streams reached. Streams whose event loop has
        closed are dropped.
        """
        if isinstance(event, BaseModel):
            event = event.model_dump(mode="json")

        with self._lock:
            targets = list(self._subscribers.get(restaurant_id, ()))

        delivered = 0
        for subscription in targets:
            if subscription.deliver(event):
                delivered += 1
            else:
                self.unsubscribe(subscription)

        logger.debug(
            "Published %s for restaurant %s to %d stream(s)",
            event.get("action", event.get("type")),
            restaurant_id,
            delivered,
        )
        return delivered

    async def stream(
        self, restaurant_id: int, keepalive: float | None = None
    ) -> AsyncIterator[str]:
        """
        Yield SSE messages for one client until it disconnects.

        The first message confirms the subscription. Idle periods longer
        than ``keepalive`` seconds produce a comment line so proxies keep
        the connection open.
        """
        subscription = self.subscribe(restaurant_id)
        try:
            yield format_sse(ConnectedEvent(restaurant_id=restaurant_id))
            while True:
                event = await subscription.get(timeout=keepalive)
                if event is None:
                    yield KEEPALIVE_COMMENT
                else:
                    yield format_sse(event)
        finally:
            self.unsubscribe(subscription)


def get_menu_broker() -> MenuUpdateBroker:
    """The process-wide broker created at app start."""
    return apps.get_app_config("menu").broker  # type: ignore[attr-defined,no-any-return]
