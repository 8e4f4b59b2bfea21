"""
Pydantic schemas for driver route API.
Response models for the active route and its orders.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel

from app.schemas.driver_api import RestaurantSummary, CustomerSummary


class RouteOrderOrderInfo(BaseModel):
    """The order behind a route stop."""
    id: UUID
    order_number: str
    status: str
    total_amount: int
    delivery_address: Dict[str, Any]
    customer_notes: Optional[str] = None
    restaurant: RestaurantSummary
    customer: Optional[CustomerSummary] = None


class RouteOrderDetail(BaseModel):
    """A stop on the driver's route."""
    id: UUID
    sequence_number: int
    status: str
    pickup_time: Optional[datetime] = None
    delivery_time: Optional[datetime] = None
    order: RouteOrderOrderInfo


class RouteOrderResponse(BaseModel):
    """Result of accepting, starting or completing a route order."""
    id: UUID
    route_id: UUID
    order_id: UUID
    sequence_number: int
    status: str
    order_status: str
    pickup_time: Optional[datetime] = None
    delivery_time: Optional[datetime] = None


class DriverRouteResponse(BaseModel):
    """Response schema for a driver route."""
    id: UUID
    driver_id: UUID
    status: str
    start_location: Optional[Dict[str, float]] = None
    current_location: Optional[Dict[str, float]] = None
    max_orders: int
    current_order_count: int
    total_distance: float
    total_duration: float
    estimated_completion_time: Optional[datetime] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    route_orders: List[RouteOrderDetail] = []
