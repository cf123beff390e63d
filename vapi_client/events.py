# vapi_client/events.py
"""
Event Stream

A broadcast channel for client events. Each subscriber gets its own
unbounded queue, so a slow consumer never holds up the publisher or the
other subscribers.
"""

import asyncio
from collections.abc import Callable

from loguru import logger

from .protocol import Event

EventListener = Callable[[Event], None]


class Subscription:
    """
    A single subscriber's view of the event stream.

    Iterate it with ``async for`` to receive every event published after
    subscribing. Closing the subscription ends the iteration once the events
    already queued have been consumed.
    """

    _CLOSED = object()

    def __init__(self, stream: "EventStream"):
        self._stream = stream
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, event: Event) -> None:
        self._queue.put_nowait(event)

    def close(self) -> None:
        """Detach from the stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._stream._detach(self)
        self._queue.put_nowait(self._CLOSED)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Event:
        item = await self._queue.get()
        if item is self._CLOSED:
            raise StopAsyncIteration
        return item

    async def get(self) -> Event:
        """Wait for the next event."""
        try:
            return await self.__anext__()
        except StopAsyncIteration:
            raise RuntimeError("Subscription is closed") from None

    def get_nowait(self) -> Event | None:
        """Return the next queued event, or None if there is none."""
        if self._queue.empty():
            return None
        item = self._queue.get_nowait()
        if item is self._CLOSED:
            # Keep the sentinel for any pending iterator
            self._queue.put_nowait(item)
            return None
        return item

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class EventStream:
    """
    Multi-subscriber broadcast of client events.

    publish() is synchronous: by the time it returns, the event is queued for
    every current subscriber and every listener has been called, in the
    order they attached. Late subscribers never see earlier events.
    """

    def __init__(self):
        # Subscriptions and listeners share one list so delivery follows attach order
        self._sinks: list[Subscription | EventListener] = []

    @property
    def subscriber_count(self) -> int:
        """Number of open queue subscriptions; listeners are not counted."""
        return sum(isinstance(sink, Subscription) for sink in self._sinks)

    def subscribe(self) -> Subscription:
        """Attach a new queue-backed subscriber."""
        subscription = Subscription(self)
        self._sinks.append(subscription)
        return subscription

    def _detach(self, subscription: Subscription) -> None:
        if subscription in self._sinks:
            self._sinks.remove(subscription)

    def add_listener(self, listener: EventListener) -> None:
        """Attach a callback invoked synchronously for every event."""
        self._sinks.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        if listener in self._sinks:
            self._sinks.remove(listener)

    def publish(self, event: Event) -> None:
        """Deliver an event to all current subscribers and listeners."""
        for sink in list(self._sinks):
            if isinstance(sink, Subscription):
                sink._put(event)
                continue
            try:
                sink(event)
            except Exception:
                logger.exception(f"Event listener failed on {event.type}")
