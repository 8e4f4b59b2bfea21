"""
Tests for the order event bus.
"""

import asyncio
from uuid import uuid4

from app.core.events import (
    OrderEventBus,
    make_order_event,
    ORDER_ACCEPTED,
    ORDER_READY,
)


class TestMakeOrderEvent:
    """Tests for the event payload."""

    def test_ids_serialized_as_strings(self):
        order_id, driver_id = uuid4(), uuid4()

        event = make_order_event(ORDER_ACCEPTED, order_id=order_id, driver_id=driver_id, status="picked_up")

        assert event["event_type"] == ORDER_ACCEPTED
        assert event["order_id"] == str(order_id)
        assert event["driver_id"] == str(driver_id)
        assert event["route_id"] is None
        assert event["status"] == "picked_up"
        assert event["timestamp"].endswith("Z")


class TestOrderEventBus:
    """Tests for publishing and subscribing."""

    async def test_registered_queue_receives_events(self):
        bus = OrderEventBus()
        queue = bus.register()
        event = make_order_event(ORDER_READY, order_id=uuid4())

        await bus.publish(event)

        assert queue.get_nowait() == event

    async def test_unregister(self):
        bus = OrderEventBus()
        queue = bus.register()
        bus.unregister(queue)
        bus.unregister(queue)

        await bus.publish(make_order_event(ORDER_READY))

        assert bus.subscriber_count == 0
        assert queue.empty()

    async def test_subscribe_generator(self):
        """Iterating subscribe() yields events and unsubscribes on close."""
        bus = OrderEventBus()
        stream = bus.subscribe()
        next_event = asyncio.create_task(stream.__anext__())
        await asyncio.sleep(0)
        assert bus.subscriber_count == 1

        event = make_order_event(ORDER_READY, order_id=uuid4())
        await bus.publish(event)

        assert await next_event == event
        await stream.aclose()
        assert bus.subscriber_count == 0

    async def test_recent_events_bounded(self):
        bus = OrderEventBus(max_recent=3)
        for _ in range(5):
            await bus.publish(make_order_event(ORDER_READY, order_id=uuid4()))

        assert len(bus.get_recent_events()) == 3

    async def test_recent_events_filtered_by_driver(self):
        bus = OrderEventBus()
        driver_id = uuid4()
        await bus.publish(make_order_event(ORDER_ACCEPTED, driver_id=driver_id))
        await bus.publish(make_order_event(ORDER_ACCEPTED, driver_id=uuid4()))
        await bus.publish(make_order_event(ORDER_READY))

        events = bus.get_recent_events(driver_id=str(driver_id))

        assert len(events) == 1
        assert events[0]["driver_id"] == str(driver_id)

    async def test_recent_events_limit(self):
        bus = OrderEventBus()
        for _ in range(4):
            await bus.publish(make_order_event(ORDER_READY))

        assert len(bus.get_recent_events(limit=2)) == 2
