"""Schemas package initialization."""

from app.schemas.driver_api import (
    RestaurantSummary,
    CustomerSummary,
    AvailableOrderResponse,
    AcceptOrderRequest,
    CompleteDeliveryRequest,
    OnlineStatusRequest,
    OnlineStatusResponse,
    LocationFixRequest,
    LocationFixResponse,
    DeliveryHistoryItem,
    DriverStatsResponse,
)
from app.schemas.route import (
    RouteOrderOrderInfo,
    RouteOrderDetail,
    RouteOrderResponse,
    DriverRouteResponse,
)

__all__ = [
    "RestaurantSummary",
    "CustomerSummary",
    "AvailableOrderResponse",
    "AcceptOrderRequest",
    "CompleteDeliveryRequest",
    "OnlineStatusRequest",
    "OnlineStatusResponse",
    "LocationFixRequest",
    "LocationFixResponse",
    "DeliveryHistoryItem",
    "DriverStatsResponse",
    "RouteOrderOrderInfo",
    "RouteOrderDetail",
    "RouteOrderResponse",
    "DriverRouteResponse",
]
