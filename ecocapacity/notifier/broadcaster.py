"""In-process change broadcaster.

Each subscriber owns a bounded asyncio queue. Publishing appends the event
to every queue without awaiting anyone: when a queue is full its oldest
event is dropped, so a slow observer never holds up the others. Events from
one publisher reach each subscriber in publish order.

``publish`` may be called from any thread (the weather monitor runs on a
worker thread); the fan-out itself always runs on the event loop that owns
the queues.
"""

import asyncio
import logging
import threading
from collections.abc import AsyncIterator

from ecocapacity.common.metrics import counter, gauge
from ecocapacity.config import NotifierConfig
from ecocapacity.models.enums import EventType
from ecocapacity.models.events import ChangeEvent

logger = logging.getLogger(__name__)


class Subscription:
    """One observer's mailbox.

    Attributes:
        id: Subscription number, unique per broadcaster
        queue: Pending events, oldest first
        dropped: Events discarded because the queue was full
    """

    def __init__(self, subscription_id: int, maxsize: int):
        self.id = subscription_id
        self.queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self.closed = False

    def offer(self, event: ChangeEvent) -> None:
        """Enqueue without blocking, discarding the oldest event when full."""
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(event)

    async def get(self, timeout: float | None = None) -> ChangeEvent | None:
        """Next event, or None if ``timeout`` elapses first."""
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout)
        except TimeoutError:
            return None


class Broadcaster:
    """Fan-out of ChangeEvents to every current subscriber.

    Attributes:
        config: Queue sizing and heartbeat settings
    """

    def __init__(self, config: NotifierConfig | None = None):
        self.config = config or NotifierConfig()
        self._subscriptions: dict[int, Subscription] = {}
        self._lock = threading.Lock()
        self._next_id = 0
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach the event loop that owns subscriber queues."""
        self._loop = loop

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        """Register a new subscriber. Must be called on the owning event loop."""
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        with self._lock:
            self._next_id += 1
            subscription = Subscription(self._next_id, self.config.subscriber_queue_size)
            self._subscriptions[subscription.id] = subscription
            connected = len(self._subscriptions)
        logger.info(f"Observer {subscription.id} subscribed ({connected} connected)")
        gauge("ConnectedObservers", connected)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            removed = self._subscriptions.pop(subscription.id, None)
            connected = len(self._subscriptions)
        subscription.closed = True
        if removed is not None:
            logger.info(f"Observer {subscription.id} unsubscribed ({connected} connected)")
            gauge("ConnectedObservers", connected)

    def _deliver(self, event: ChangeEvent) -> int:
        with self._lock:
            subscriptions = list(self._subscriptions.values())

        delivered = 0
        for subscription in subscriptions:
            try:
                subscription.offer(event)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping observer {subscription.id} after delivery failure: {e}")
                counter("BroadcastDeliveryFailures")
                self.unsubscribe(subscription)
        logger.debug(f"Broadcast {event.type.value} to {delivered} observer(s)")
        return delivered

    def publish(self, event: ChangeEvent) -> None:
        """Broadcast an event. Thread-safe and never blocks.

        From the owning loop's thread the event is delivered immediately;
        from any other thread delivery is scheduled on the owning loop.
        With no loop bound yet there are no subscribers and the event is dropped.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug(f"No event loop bound; {event.type.value} not broadcast")
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            self._deliver(event)
        else:
            loop.call_soon_threadsafe(self._deliver, event)

    def publish_type(self, event_type: EventType, destination_id: str | None = None) -> None:
        self.publish(ChangeEvent(type=event_type, destination_id=destination_id))

    async def stream(self, subscription: Subscription) -> AsyncIterator[str]:
        """SSE frames for one subscriber until it is closed.

        Starts with a ``connection_established`` event, then yields every
        event as a ``data:`` frame and a ``: heartbeat`` comment whenever
        the heartbeat interval passes without an event.
        """
        yield ChangeEvent(type=EventType.CONNECTION_ESTABLISHED).to_sse()
        while not subscription.closed:
            event = await subscription.get(timeout=self.config.heartbeat_interval_seconds)
            if event is None:
                yield ": heartbeat\n\n"
            else:
                yield event.to_sse()
