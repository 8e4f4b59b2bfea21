"""
Driver dashboard read model.

Holds the driver's current view (active route and available orders) and
refreshes it whenever a relevant order event arrives on the bus. Refreshes
are read-only and never wait on the route manager's per-driver lock.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import get_settings
from app.core.events import OrderEventBus, ORDER_READY, ORDER_CANCELLED
from app.schemas.driver_api import AvailableOrderResponse
from app.schemas.route import DriverRouteResponse
from app.services.distance import GeoPoint
from app.services.location_tracker import LocationTracker, get_last_known_location
from app.services.order_feed import fetch_available_orders
from app.services.route_manager import get_active_route, serialize_route

logger = logging.getLogger(__name__)


@dataclass
class DashboardSnapshot:
    """Point-in-time view of a driver's work."""
    active_route: Optional[DriverRouteResponse]
    available_orders: List[AvailableOrderResponse]
    driver_location: Optional[GeoPoint]
    refreshed_at: datetime = field(default_factory=datetime.utcnow)


class DriverDashboard:
    """
    Live view for one driver.

    Args:
        driver_id: Driver the dashboard belongs to
        session_factory: Async session maker used for read-only refreshes
        event_bus: Bus delivering order and route-order changes
        location_tracker: Source of the freshest driver position (optional)
        orders_limit: Maximum available orders to show (defaults to settings)
    """

    def __init__(
        self,
        driver_id: UUID,
        session_factory: async_sessionmaker,
        event_bus: OrderEventBus,
        location_tracker: Optional[LocationTracker] = None,
        orders_limit: Optional[int] = None,
    ) -> None:
        self.driver_id = driver_id
        self._session_factory = session_factory
        self._event_bus = event_bus
        self._tracker = location_tracker
        self._orders_limit = orders_limit or get_settings().available_orders_limit
        self.snapshot: Optional[DashboardSnapshot] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._queue: Optional[asyncio.Queue] = None
        self._waiters: List[asyncio.Future] = []

    async def refresh(self) -> DashboardSnapshot:
        """Reload the active route and the available-order feed."""
        async with self._session_factory() as db:
            location = await get_last_known_location(db, self.driver_id, self._tracker)
            route = await get_active_route(db, self.driver_id)
            active_route = serialize_route(route) if route is not None else None
            orders = await fetch_available_orders(db, location, self._orders_limit)

        self.snapshot = DashboardSnapshot(
            active_route=active_route,
            available_orders=orders,
            driver_location=location,
        )
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(self.snapshot)
        return self.snapshot

    def is_relevant(self, event: Dict[str, Any]) -> bool:
        """
        Whether an event can change this driver's view: anything about the
        driver, any route-order change, or an order entering or leaving the
        ready pool.
        """
        if event.get("driver_id") == str(self.driver_id):
            return True
        if event.get("route_order_id"):
            return True
        return event.get("event_type") in (ORDER_READY, ORDER_CANCELLED)

    @property
    def is_watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    def start_watching(self) -> None:
        """Subscribe to the bus and refresh on every relevant event."""
        if self.is_watching:
            return
        queue = self._event_bus.register()
        self._queue = queue
        self._watch_task = asyncio.create_task(
            self.watch(queue),
            name=f"driver-dashboard-{self.driver_id}",
        )

    async def stop_watching(self) -> None:
        task, self._watch_task = self._watch_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.debug("Dashboard watcher for driver %s stopped", self.driver_id)
        if self._queue is not None:
            self._event_bus.unregister(self._queue)
            self._queue = None

    async def watch(self, queue: asyncio.Queue) -> None:
        try:
            while True:
                event = await queue.get()
                if not self.is_relevant(event):
                    continue
                try:
                    await self.refresh()
                except SQLAlchemyError as e:
                    logger.error("Dashboard refresh failed for driver %s: %s", self.driver_id, e)
        finally:
            self._event_bus.unregister(queue)

    async def wait_for_refresh(self, timeout: Optional[float] = None) -> DashboardSnapshot:
        """Wait until the next refresh completes."""
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            return await asyncio.wait_for(waiter, timeout)
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)
