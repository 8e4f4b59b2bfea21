"""Services package initialization."""

from app.services.distance import GeoPoint, estimate_distance_km, known_distance_km, haversine_distance
from app.services.order_feed import fetch_available_orders
from app.services.location_tracker import LocationTracker, LocationFix, QueueLocationSource
from app.services.route_manager import RouteManager, get_active_route, serialize_route
from app.services.dashboard import DriverDashboard, DashboardSnapshot
from app.services.driver_service import get_delivery_history, get_driver_stats, set_driver_online

__all__ = [
    "GeoPoint",
    "estimate_distance_km",
    "known_distance_km",
    "haversine_distance",
    "fetch_available_orders",
    "LocationTracker",
    "LocationFix",
    "QueueLocationSource",
    "RouteManager",
    "get_active_route",
    "serialize_route",
    "DriverDashboard",
    "DashboardSnapshot",
    "get_delivery_history",
    "get_driver_stats",
    "set_driver_online",
]
