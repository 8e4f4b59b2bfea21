"""
Order Event Bus for realtime dashboard synchronization.

Provides a pub/sub mechanism for order and route-order change events that
can be consumed by driver dashboards and SSE clients.
"""

from typing import AsyncIterator, Dict, Any, List, Optional
from uuid import UUID
import asyncio
import time


# Event types
ORDER_READY = "order_ready"
ORDER_CANCELLED = "order_cancelled"
ORDER_ACCEPTED = "order_accepted"
DELIVERY_STARTED = "delivery_started"
ORDER_DELIVERED = "order_delivered"
ROUTE_COMPLETED = "route_completed"


class OrderEventBus:
    """
    Simple in-process pub/sub for order events.

    Multiple listeners (dashboards, SSE connections) can subscribe and
    receive events published by the route manager or by the restaurant side.
    """

    def __init__(self, max_recent: int = 100) -> None:
        self._subscribers: List[asyncio.Queue] = []
        self._recent_events: List[Dict[str, Any]] = []
        self._max_recent = max_recent

    def register(self) -> asyncio.Queue:
        """Register a new subscriber queue. Events published after this call are delivered to it."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unregister(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self) -> AsyncIterator[Dict[str, Any]]:
        """
        Async generator yielding events. Callers iterate and send as SSE.

        Yields:
            Order event dictionaries
        """
        queue = self.register()
        try:
            while True:
                event = await queue.get()
                yield event
        finally:
            self.unregister(queue)

    async def publish(self, event: Dict[str, Any]) -> None:
        """
        Publish an event to all subscribers.

        Args:
            event: Order event dictionary
        """
        self._recent_events.append(event)
        if len(self._recent_events) > self._max_recent:
            self._recent_events = self._recent_events[-self._max_recent:]

        for queue in list(self._subscribers):
            queue.put_nowait(event)

    def get_recent_events(
        self,
        driver_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        """
        Get recent events, optionally filtered by driver.

        Args:
            driver_id: Filter by specific driver (optional)
            limit: Maximum events to return

        Returns:
            List of recent events
        """
        events = self._recent_events
        if driver_id:
            events = [e for e in events if e.get("driver_id") == driver_id]
        return events[-limit:]


def make_order_event(
    event_type: str,
    order_id: Optional[UUID] = None,
    driver_id: Optional[UUID] = None,
    route_id: Optional[UUID] = None,
    route_order_id: Optional[UUID] = None,
    status: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a standardized order event dictionary.

    Args:
        event_type: One of the event type constants (e.g. ORDER_ACCEPTED)
        order_id: Order the event concerns
        driver_id: Driver the event concerns
        route_id: Driver route, when the event touches a route
        route_order_id: Route order, when the event touches one
        status: New status of the order or route

    Returns:
        Formatted event dictionary
    """
    return {
        "event_type": event_type,
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "order_id": str(order_id) if order_id else None,
        "driver_id": str(driver_id) if driver_id else None,
        "route_id": str(route_id) if route_id else None,
        "route_order_id": str(route_order_id) if route_order_id else None,
        "status": status,
    }
