"""Observer side of the change stream.

The observer keeps a long-lived SSE connection and treats every event as a
cache-invalidation signal: it re-pulls full state (destinations, capacities,
alerts) rather than patching. Events carry no replay position, so the same
full refresh runs every time the connection opens; a reconnecting observer
ends up consistent with one that never disconnected.

Connection lifecycle:

    disconnected -> connecting -> open -> (closed | error) -> reconnecting -> connecting ...

Liveness comes from the server's heartbeat comments: the stream's read
timeout is ``heartbeat_timeout_seconds``, so when nothing (event or
heartbeat) arrives in that time the read fails and the connection moves to
``error``. Reconnect attempts never stop; their spacing grows exponentially
up to a cap and resets once a connection opens.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
import httpx
from pydantic import ValidationError as PydanticValidationError

from ecocapacity.config import NotifierConfig
from ecocapacity.exceptions import EcoCapacityError
from ecocapacity.models.enums import ConnectionState, EventType
from ecocapacity.models.events import ChangeEvent

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[ChangeEvent | None], Awaitable[None] | None]

_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.OPEN, ConnectionState.ERROR, ConnectionState.DISCONNECTED}
    ),
    ConnectionState.OPEN: frozenset(
        {ConnectionState.CLOSED, ConnectionState.ERROR, ConnectionState.DISCONNECTED}
    ),
    ConnectionState.CLOSED: frozenset({ConnectionState.RECONNECTING, ConnectionState.DISCONNECTED}),
    ConnectionState.ERROR: frozenset({ConnectionState.RECONNECTING, ConnectionState.DISCONNECTED}),
    ConnectionState.RECONNECTING: frozenset(
        {ConnectionState.CONNECTING, ConnectionState.DISCONNECTED}
    ),
}


class InvalidTransitionError(EcoCapacityError):
    """Raised when a connection state change is not allowed."""

    def __init__(self, current: ConnectionState, target: ConnectionState):
        super().__init__(f"Cannot move from {current.value} to {target.value}")
        self.current = current
        self.target = target


class Backoff:
    """Capped exponential delay sequence: initial, initial*m, initial*m^2, ... <= maximum."""

    def __init__(self, initial: float, multiplier: float, maximum: float):
        self.initial = initial
        self.multiplier = multiplier
        self.maximum = maximum
        self.attempts = 0

    def next_delay(self) -> float:
        delay = min(self.initial * (self.multiplier**self.attempts), self.maximum)
        self.attempts += 1
        return delay

    def reset(self) -> None:
        self.attempts = 0


class ConnectionStateMachine:
    """Tracks observer connection state and reconnect spacing.

    Attributes:
        state: Current ConnectionState
        backoff: Reconnect delay sequence
    """

    def __init__(
        self,
        config: NotifierConfig | None = None,
        on_change: Callable[[ConnectionState, ConnectionState], None] | None = None,
    ):
        self.config = config or NotifierConfig()
        self.state = ConnectionState.DISCONNECTED
        self.backoff = Backoff(
            initial=self.config.initial_retry_delay_seconds,
            multiplier=self.config.backoff_multiplier,
            maximum=self.config.max_retry_delay_seconds,
        )
        self._on_change = on_change

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.OPEN

    def _move(self, target: ConnectionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.state, target)
        previous, self.state = self.state, target
        logger.debug(f"Connection {previous.value} -> {target.value}")
        if self._on_change is not None:
            self._on_change(previous, target)

    def connect(self) -> None:
        self._move(ConnectionState.CONNECTING)

    def opened(self) -> None:
        """Connection established; resets backoff."""
        self._move(ConnectionState.OPEN)
        self.backoff.reset()

    def closed(self) -> None:
        """Server ended the stream cleanly."""
        self._move(ConnectionState.CLOSED)

    def failed(self) -> None:
        """Connection attempt or open stream failed (including heartbeat timeout)."""
        self._move(ConnectionState.ERROR)

    def schedule_reconnect(self) -> float:
        """Enter ``reconnecting`` and return the delay before the next attempt."""
        self._move(ConnectionState.RECONNECTING)
        delay = self.backoff.next_delay()
        logger.info(f"Reconnecting in {delay:.1f}s (attempt {self.backoff.attempts})")
        return delay

    def stop(self) -> None:
        if self.state is not ConnectionState.DISCONNECTED:
            self._move(ConnectionState.DISCONNECTED)


def parse_sse_line(line: str) -> ChangeEvent | None:
    """ChangeEvent from a ``data:`` line; None for comments and other fields.

    Raises:
        ValueError: If a data line does not hold a valid event
    """
    if not line.startswith("data:"):
        return None
    try:
        return ChangeEvent.model_validate_json(line[len("data:"):].strip())
    except PydanticValidationError as e:
        msg = f"Malformed event: {line!r}"
        raise ValueError(msg) from e


class EventStreamClient:
    """Reconnecting SSE consumer that triggers full refreshes.

    Args:
        url: Event stream URL (e.g. http://localhost:8085/events)
        on_refresh: Called with None when a connection opens and with the
            event for every received change; may be sync or async
        config: Heartbeat and backoff settings
        client: httpx.AsyncClient to use (one is created when omitted)
        sleep: Coroutine used to wait between attempts
    """

    def __init__(
        self,
        url: str,
        on_refresh: RefreshCallback,
        config: NotifierConfig | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.url = url
        self.on_refresh = on_refresh
        self.config = config or NotifierConfig()
        self.state_machine = ConnectionStateMachine(self.config)
        self._client = client
        self._sleep = sleep
        self._stopped = False
        self.refresh_count = 0

    @property
    def is_connected(self) -> bool:
        return self.state_machine.is_connected

    def stop(self) -> None:
        self._stopped = True
        self.state_machine.stop()

    async def _refresh(self, event: ChangeEvent | None) -> None:
        self.refresh_count += 1
        try:
            outcome = self.on_refresh(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.exception(f"Refresh failed: {e}")

    async def _consume(self, client: httpx.AsyncClient) -> None:
        timeout = httpx.Timeout(10.0, read=self.config.heartbeat_timeout_seconds)
        async with client.stream("GET", self.url, timeout=timeout) as response:
            response.raise_for_status()
            if self._stopped:
                return
            self.state_machine.opened()
            await self._refresh(None)

            async for line in response.aiter_lines():
                if self._stopped:
                    return
                if not line:
                    continue
                try:
                    event = parse_sse_line(line)
                except ValueError as e:
                    logger.warning(f"{e}; refreshing anyway")
                    await self._refresh(None)
                    continue
                if event is not None and event.type is not EventType.CONNECTION_ESTABLISHED:
                    await self._refresh(event)

    async def run(self) -> None:
        """Consume the stream until ``stop()`` is called, reconnecting forever."""
        client = self._client or httpx.AsyncClient()
        try:
            while not self._stopped:
                self.state_machine.connect()
                try:
                    await self._consume(client)
                except httpx.HTTPError as e:
                    if self._stopped:
                        break
                    logger.warning(f"Event stream error: {e!r}")
                    self.state_machine.failed()
                else:
                    if self._stopped:
                        break
                    logger.info("Event stream closed by server")
                    self.state_machine.closed()

                delay = self.state_machine.schedule_reconnect()
                await self._sleep(delay)
        finally:
            if self._client is None:
                await client.aclose()
