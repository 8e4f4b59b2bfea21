"""
Domain errors raised by the dispatch services.

Routers translate these into HTTP responses; services never raise
HTTPException themselves.
"""

from typing import Optional
from uuid import UUID


class DispatchError(Exception):
    """Base class for all driver dispatch errors."""


class CapacityExceeded(DispatchError):
    """The driver's active route already holds max_orders orders."""

    def __init__(self, driver_id: UUID, max_orders: int):
        self.driver_id = driver_id
        self.max_orders = max_orders
        super().__init__(f"You can only handle {max_orders} orders at a time")


class NotFoundError(DispatchError):
    """Base class for missing entities."""


class DriverNotFound(NotFoundError):
    def __init__(self, driver_id: UUID):
        super().__init__(f"Driver {driver_id} not found")


class OrderNotFound(NotFoundError):
    def __init__(self, order_id: UUID):
        super().__init__(f"Order {order_id} not found")


class RouteOrderNotFound(NotFoundError):
    def __init__(self, route_order_id: UUID):
        super().__init__(f"Route order {route_order_id} not found")


class RouteNotFound(NotFoundError):
    def __init__(self, driver_id: UUID):
        super().__init__(f"No active route for driver {driver_id}")


class OrderUnavailable(DispatchError):
    """The order is no longer ready or was taken by another driver."""

    def __init__(self, order_id: UUID, status: Optional[str] = None):
        self.order_id = order_id
        self.status = status
        detail = f" (status: {status})" if status else ""
        super().__init__(f"Order {order_id} is not available for pickup{detail}")


class InvalidTransition(DispatchError):
    """Requested status change is not allowed from the current state."""


class RouteNotSettled(DispatchError):
    """Route still has orders that are neither delivered nor cancelled."""

    def __init__(self, route_id: UUID, outstanding: int):
        self.route_id = route_id
        self.outstanding = outstanding
        super().__init__(f"Route {route_id} still has {outstanding} outstanding order(s)")


class ConcurrentUpdate(DispatchError):
    """Route order count changed between read and write."""


class PersistenceFailure(DispatchError):
    """Backing store read or write failed."""


class GeolocationUnavailable(DispatchError):
    """No position source is available for the driver."""


class TrackingInactive(DispatchError):
    """A location fix was pushed for a driver that is not being tracked."""

    def __init__(self, driver_id: UUID):
        super().__init__(f"Location tracking is not active for driver {driver_id}")
