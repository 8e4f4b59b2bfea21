"""
Pydantic schemas for driver-facing API endpoints.
"""

import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


# ==================== Shared Summaries ====================

class RestaurantSummary(BaseModel):
    """Restaurant details shown next to an order."""
    id: UUID
    name: str
    address: str
    phone: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class CustomerSummary(BaseModel):
    """Customer details shown next to an order."""
    display_name: str
    phone: Optional[str] = None


# ==================== Available Orders Schemas ====================

class AvailableOrderResponse(BaseModel):
    """
    A ready, unassigned order annotated with distances.
    Distances are in km; None means unknown (missing coordinates).
    """
    id: UUID
    order_number: str
    total_amount: int
    delivery_address: Dict[str, Any]
    customer_notes: Optional[str] = None
    created_at: datetime.datetime
    restaurant: RestaurantSummary
    customer: Optional[CustomerSummary] = None
    distance_to_restaurant: Optional[float] = None
    distance_to_customer: Optional[float] = None


# ==================== Route Action Schemas ====================

class AcceptOrderRequest(BaseModel):
    """Request for POST /api/v1/drivers/{id}/route/orders."""
    order_id: UUID


class CompleteDeliveryRequest(BaseModel):
    """Request for POST /api/v1/route-orders/{id}/complete."""
    order_id: UUID


# ==================== Online / Location Schemas ====================

class OnlineStatusRequest(BaseModel):
    """Request for PUT /api/v1/drivers/{id}/online."""
    is_online: bool


class OnlineStatusResponse(BaseModel):
    """Driver online state and whether location tracking is running."""
    driver_id: UUID
    is_online: bool
    tracking: bool


class LocationFixRequest(BaseModel):
    """A single GPS fix pushed by the driver's device."""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(default=None, ge=0, description="Metres")
    speed: Optional[float] = Field(default=None, ge=0, description="Metres per second")
    bearing: Optional[float] = Field(default=None, ge=0, lt=360, description="Degrees")
    timestamp: Optional[datetime.datetime] = Field(
        default=None,
        description="Device time of the fix (defaults to server receive time)",
    )
    order_id: Optional[UUID] = None

    @field_validator("timestamp")
    @classmethod
    def to_naive_utc(cls, value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
        """Stored timestamps are naive UTC."""
        if value is not None and value.tzinfo is not None:
            return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
        return value

    model_config = {
        "json_schema_extra": {
            "example": {
                "lat": 6.5244,
                "lng": 3.3792,
                "accuracy": 12.0,
                "speed": 4.2,
                "bearing": 90.0,
            }
        }
    }


class LocationFixResponse(BaseModel):
    """Acknowledgement of a queued location fix."""
    driver_id: UUID
    queued: bool


# ==================== History / Stats Schemas ====================

class DeliveryHistoryItem(BaseModel):
    """A finished (delivered or cancelled) order of the driver."""
    id: UUID
    order_number: str
    total_amount: int
    status: str
    created_at: datetime.datetime
    actual_delivery_time: Optional[datetime.datetime] = None
    restaurant_name: str
    customer_name: Optional[str] = None


class DriverStatsResponse(BaseModel):
    """Response for GET /api/v1/drivers/{id}/stats."""
    driver_id: UUID
    total_deliveries: int
    today_deliveries: int
    total_earnings: float
    average_rating: float
