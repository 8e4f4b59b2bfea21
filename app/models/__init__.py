"""Models package initialization - imports all models for easy access."""

from app.models.driver import Driver
from app.models.restaurant import Restaurant, Customer
from app.models.order import Order, OrderStatus, TERMINAL_ORDER_STATUSES
from app.models.route import (
    DriverRoute,
    RouteOrder,
    RouteStatus,
    RouteOrderStatus,
    TERMINAL_ROUTE_ORDER_STATUSES,
)
from app.models.driver_location import DriverLocation

__all__ = [
    "Driver",
    "Restaurant",
    "Customer",
    "Order",
    "OrderStatus",
    "TERMINAL_ORDER_STATUSES",
    "DriverRoute",
    "RouteOrder",
    "RouteStatus",
    "RouteOrderStatus",
    "TERMINAL_ROUTE_ORDER_STATUSES",
    "DriverLocation",
]
