"""Change notifier: server broadcaster and reconnecting observer client."""

from ecocapacity.notifier.broadcaster import Broadcaster, Subscription
from ecocapacity.notifier.client import (
    Backoff,
    ConnectionStateMachine,
    EventStreamClient,
    InvalidTransitionError,
)

__all__ = [
    "Broadcaster",
    "Subscription",
    "Backoff",
    "ConnectionStateMachine",
    "EventStreamClient",
    "InvalidTransitionError",
]
