"""Unit tests for the change broadcaster."""

import asyncio
import json
import threading

from ecocapacity.config import NotifierConfig
from ecocapacity.models.enums import EventType
from ecocapacity.models.events import ChangeEvent
from ecocapacity.notifier import Broadcaster


def drain(subscription) -> list[ChangeEvent]:
    events = []
    while not subscription.queue.empty():
        events.append(subscription.queue.get_nowait())
    return events


class TestBroadcaster:
    """Tests for fan-out semantics."""

    def test_every_subscriber_receives_each_event_in_order(self):
        async def scenario():
            broadcaster = Broadcaster()
            first, second = broadcaster.subscribe(), broadcaster.subscribe()

            broadcaster.publish_type(EventType.CAPACITY_UPDATE, "dest-1")
            broadcaster.publish_type(EventType.WEATHER_UPDATE_AVAILABLE)

            return drain(first), drain(second)

        first, second = asyncio.run(scenario())

        expected = [EventType.CAPACITY_UPDATE, EventType.WEATHER_UPDATE_AVAILABLE]
        assert [e.type for e in first] == expected
        assert [e.type for e in second] == expected
        assert first[0].destination_id == "dest-1"

    def test_full_queue_drops_oldest(self):
        async def scenario():
            broadcaster = Broadcaster(NotifierConfig(subscriber_queue_size=2))
            subscription = broadcaster.subscribe()
            for destination_id in ("a", "b", "c"):
                broadcaster.publish_type(EventType.CAPACITY_UPDATE, destination_id)
            return subscription, drain(subscription)

        subscription, events = asyncio.run(scenario())

        assert [e.destination_id for e in events] == ["b", "c"]
        assert subscription.dropped == 1

    def test_unsubscribed_observer_gets_nothing(self):
        async def scenario():
            broadcaster = Broadcaster()
            subscription = broadcaster.subscribe()
            broadcaster.unsubscribe(subscription)
            broadcaster.publish_type(EventType.WEATHER_UPDATE)
            return broadcaster, subscription

        broadcaster, subscription = asyncio.run(scenario())

        assert broadcaster.subscriber_count == 0
        assert subscription.closed
        assert subscription.queue.empty()

    def test_publish_without_loop_is_dropped(self):
        broadcaster = Broadcaster()

        broadcaster.publish_type(EventType.WEATHER_UPDATE)

        assert broadcaster.subscriber_count == 0

    def test_publish_from_worker_thread(self):
        """Test events published off-loop arrive on the owning loop."""

        async def scenario():
            broadcaster = Broadcaster()
            subscription = broadcaster.subscribe()

            thread = threading.Thread(
                target=broadcaster.publish_type, args=(EventType.WEATHER_UPDATE_AVAILABLE,)
            )
            thread.start()
            thread.join()

            return await subscription.get(timeout=1.0)

        event = asyncio.run(scenario())

        assert event.type is EventType.WEATHER_UPDATE_AVAILABLE

    def test_failing_subscriber_removed(self, mocker):
        metrics = mocker.patch("ecocapacity.notifier.broadcaster.counter")

        async def scenario():
            broadcaster = Broadcaster()
            healthy, broken = broadcaster.subscribe(), broadcaster.subscribe()
            broken.offer = mocker.Mock(side_effect=RuntimeError("queue gone"))

            broadcaster.publish_type(EventType.CAPACITY_UPDATE)

            return broadcaster, drain(healthy)

        broadcaster, events = asyncio.run(scenario())

        assert len(events) == 1
        assert broadcaster.subscriber_count == 1
        metrics.assert_called_once_with("BroadcastDeliveryFailures")


class TestStream:
    """Tests for SSE framing."""

    def test_stream_starts_with_connection_established(self):
        async def scenario():
            broadcaster = Broadcaster()
            subscription = broadcaster.subscribe()
            broadcaster.publish_type(EventType.CAPACITY_UPDATE, "dest-1")

            frames = []
            async for frame in broadcaster.stream(subscription):
                frames.append(frame)
                if len(frames) == 2:
                    broadcaster.unsubscribe(subscription)
            return frames

        frames = asyncio.run(scenario())

        assert frames[0].startswith("data: ")
        assert json.loads(frames[0][len("data: "):])["type"] == "connection_established"
        assert json.loads(frames[1][len("data: "):]) == {
            "type": "capacity_update",
            "timestamp": json.loads(frames[1][len("data: "):])["timestamp"],
            "destination_id": "dest-1",
        }
        assert all(frame.endswith("\n\n") for frame in frames)

    def test_idle_stream_sends_heartbeat(self):
        async def scenario():
            config = NotifierConfig(
                heartbeat_interval_seconds=0.01, heartbeat_timeout_seconds=0.5
            )
            broadcaster = Broadcaster(config)
            subscription = broadcaster.subscribe()

            frames = []
            async for frame in broadcaster.stream(subscription):
                frames.append(frame)
                if len(frames) == 2:
                    broadcaster.unsubscribe(subscription)
            return frames

        frames = asyncio.run(scenario())

        assert frames[1] == ": heartbeat\n\n"
