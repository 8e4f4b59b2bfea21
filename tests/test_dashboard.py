"""
Tests for the driver dashboard read model.
"""

import asyncio
from uuid import uuid4

import pytest

from app.core.events import (
    make_order_event,
    ORDER_READY,
    ORDER_ACCEPTED,
    ORDER_DELIVERED,
    ROUTE_COMPLETED,
)
from app.services.dashboard import DriverDashboard
from app.services.location_tracker import LocationFix


@pytest.fixture
async def dashboard(driver, session_maker, event_bus, location_tracker):
    dashboard = DriverDashboard(
        driver.id,
        session_maker,
        event_bus,
        location_tracker=location_tracker,
        orders_limit=10,
    )
    yield dashboard
    await dashboard.stop_watching()


class TestDashboardRefresh:
    """Tests for loading the dashboard view."""

    async def test_initial_refresh(self, dashboard, order_factory):
        """With no route, the view shows only available orders."""
        await order_factory(restaurant="far")
        await order_factory(restaurant="near")

        snapshot = await dashboard.refresh()

        assert snapshot.active_route is None
        assert len(snapshot.available_orders) == 2
        assert snapshot.driver_location is None

    async def test_uses_tracked_location(self, dashboard, location_tracker, driver, order_factory):
        """Available orders are ranked from the tracker's latest fix."""
        await location_tracker.record_fix(driver.id, LocationFix(lat=6.7000, lng=3.5000))
        far = await order_factory(restaurant="far")
        await order_factory(restaurant="near")

        snapshot = await dashboard.refresh()

        assert snapshot.available_orders[0].id == far.id
        assert snapshot.available_orders[0].distance_to_restaurant == 0.0

    async def test_orders_limit(self, driver, session_maker, event_bus, order_factory):
        for _ in range(3):
            await order_factory()
        dashboard = DriverDashboard(driver.id, session_maker, event_bus, orders_limit=2)

        snapshot = await dashboard.refresh()

        assert len(snapshot.available_orders) == 2


class TestDashboardEvents:
    """Tests for refreshing on order events."""

    async def test_refreshes_after_accept(self, dashboard, route_manager, driver, order_factory):
        """Accepting an order moves it from the feed into the active route."""
        first = await order_factory()
        await order_factory()
        await dashboard.refresh()
        dashboard.start_watching()

        refreshed = asyncio.create_task(dashboard.wait_for_refresh(timeout=2.0))
        await asyncio.sleep(0)
        await route_manager.accept_order(driver.id, first.id)
        snapshot = await refreshed

        assert snapshot.active_route is not None
        assert [ro.order.id for ro in snapshot.active_route.route_orders] == [first.id]
        assert first.id not in [o.id for o in snapshot.available_orders]
        assert len(snapshot.available_orders) == 1

    async def test_refreshes_after_delivery(self, dashboard, route_manager, driver, order_factory):
        order = await order_factory()
        accepted = await route_manager.accept_order(driver.id, order.id)
        dashboard.start_watching()

        refreshed = asyncio.create_task(dashboard.wait_for_refresh(timeout=2.0))
        await asyncio.sleep(0)
        await route_manager.complete_delivery(accepted.id, order.id)
        snapshot = await refreshed

        assert snapshot.active_route.route_orders[0].status == "delivered"
        assert snapshot.active_route.route_orders[0].order.status == "delivered"

    async def test_watching_is_idempotent(self, dashboard, event_bus):
        dashboard.start_watching()
        dashboard.start_watching()

        assert dashboard.is_watching
        assert event_bus.subscriber_count == 1

    async def test_stop_watching_unsubscribes(self, dashboard, event_bus):
        dashboard.start_watching()
        await asyncio.sleep(0)

        await dashboard.stop_watching()

        assert not dashboard.is_watching
        assert event_bus.subscriber_count == 0

    async def test_timed_out_wait_is_discarded(self, dashboard):
        with pytest.raises(asyncio.TimeoutError):
            await dashboard.wait_for_refresh(timeout=0.01)

        assert dashboard._waiters == []


class TestEventRelevance:
    """Tests for deciding which events trigger a refresh."""

    async def test_own_events_relevant(self, dashboard, driver):
        event = make_order_event(ORDER_ACCEPTED, driver_id=driver.id)
        assert dashboard.is_relevant(event)

    async def test_ready_pool_changes_relevant(self, dashboard):
        assert dashboard.is_relevant(make_order_event(ORDER_READY))

    async def test_route_order_changes_relevant(self, dashboard):
        event = make_order_event(ORDER_DELIVERED, driver_id=uuid4(), route_order_id=uuid4())
        assert dashboard.is_relevant(event)

    async def test_other_driver_route_event_ignored(self, dashboard):
        event = make_order_event(ROUTE_COMPLETED, driver_id=uuid4(), route_id=uuid4())
        assert not dashboard.is_relevant(event)
