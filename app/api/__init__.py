"""API routers package initialization."""

from app.api.driver_api import router as driver_api_router
from app.api.order_events import router as order_events_router

__all__ = [
    "driver_api_router",
    "order_events_router",
]
