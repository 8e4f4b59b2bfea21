"""
Driver-facing API endpoints.
Handles driver operations: available orders, route, accept, delivery,
online status, location, history and stats.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.api.deps import get_route_manager, get_location_tracker, http_error
from app.config import get_settings
from app.core.exceptions import DispatchError
from app.database import get_db
from app.schemas.driver_api import (
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
from app.schemas.route import DriverRouteResponse, RouteOrderResponse
from app.services.distance import GeoPoint
from app.services.driver_service import (
    get_delivery_history,
    get_driver_stats,
    set_driver_online,
)
from app.services.location_tracker import (
    LocationFix,
    LocationTracker,
    QueueLocationSource,
    get_last_known_location,
)
from app.services.order_feed import fetch_available_orders
from app.services.route_manager import RouteManager, get_active_route, serialize_route

router = APIRouter(tags=["Driver"])


# ==================== Available Orders / Route ====================

@router.get(
    "/drivers/{driver_id}/available-orders",
    response_model=List[AvailableOrderResponse],
    summary="List available orders",
    description="Ready, unassigned orders sorted by distance from the driver to the restaurant.",
)
async def list_available_orders(
    driver_id: UUID,
    lat: Optional[float] = Query(default=None, ge=-90, le=90, description="Driver latitude"),
    lng: Optional[float] = Query(default=None, ge=-180, le=180, description="Driver longitude"),
    limit: Optional[int] = Query(default=None, ge=1, le=100, description="Maximum orders"),
    db: AsyncSession = Depends(get_db),
    tracker: LocationTracker = Depends(get_location_tracker),
) -> List[AvailableOrderResponse]:
    """List orders a driver can accept."""
    location = GeoPoint.from_coordinates(lat, lng)
    if location is None:
        location = await get_last_known_location(db, driver_id, tracker)

    return await fetch_available_orders(
        db,
        location,
        limit or get_settings().available_orders_limit,
    )


@router.get(
    "/drivers/{driver_id}/route",
    response_model=DriverRouteResponse,
    summary="Get active route",
    description="The driver's active route with its stops in acceptance order.",
)
async def get_route(
    driver_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> DriverRouteResponse:
    """Get the driver's active route."""
    route = await get_active_route(db, driver_id)

    if not route:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active route for driver",
        )

    return serialize_route(route)


@router.post(
    "/drivers/{driver_id}/route/orders",
    response_model=RouteOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Accept order",
    description="Accept a ready order into the driver's route and mark it picked up.",
)
async def accept_order_endpoint(
    driver_id: UUID,
    request: AcceptOrderRequest,
    manager: RouteManager = Depends(get_route_manager),
) -> RouteOrderResponse:
    """Accept an order."""
    try:
        return await manager.accept_order(driver_id, request.order_id)
    except DispatchError as e:
        raise http_error(e)


@router.post(
    "/drivers/{driver_id}/route/close",
    response_model=DriverRouteResponse,
    summary="Close route",
    description="Complete the active route once every order on it is delivered or cancelled.",
)
async def close_route_endpoint(
    driver_id: UUID,
    manager: RouteManager = Depends(get_route_manager),
) -> DriverRouteResponse:
    """Close the driver's active route."""
    try:
        return await manager.close_route(driver_id)
    except DispatchError as e:
        raise http_error(e)


@router.post(
    "/route-orders/{route_order_id}/start",
    response_model=RouteOrderResponse,
    summary="Start delivery",
    description="Mark a picked-up order as on its way to the customer.",
)
async def start_delivery_endpoint(
    route_order_id: UUID,
    manager: RouteManager = Depends(get_route_manager),
) -> RouteOrderResponse:
    """Start delivering a route order."""
    try:
        return await manager.start_delivery(route_order_id)
    except DispatchError as e:
        raise http_error(e)


@router.post(
    "/route-orders/{route_order_id}/complete",
    response_model=RouteOrderResponse,
    summary="Complete delivery",
    description="Mark an order and its route order as delivered.",
)
async def complete_delivery_endpoint(
    route_order_id: UUID,
    request: CompleteDeliveryRequest,
    manager: RouteManager = Depends(get_route_manager),
) -> RouteOrderResponse:
    """Complete a delivery."""
    try:
        return await manager.complete_delivery(route_order_id, request.order_id)
    except DispatchError as e:
        raise http_error(e)


# ==================== Online Status / Location ====================

@router.put(
    "/drivers/{driver_id}/online",
    response_model=OnlineStatusResponse,
    summary="Set online status",
    description="Going online starts location tracking; going offline stops it.",
)
async def set_online_endpoint(
    driver_id: UUID,
    request: OnlineStatusRequest,
    db: AsyncSession = Depends(get_db),
    tracker: LocationTracker = Depends(get_location_tracker),
) -> OnlineStatusResponse:
    """Toggle driver online status."""
    try:
        driver = await set_driver_online(db, driver_id, request.is_online)
        await db.commit()
        if request.is_online:
            await tracker.start_tracking(driver_id, QueueLocationSource())
        else:
            await tracker.stop_tracking(driver_id)
    except DispatchError as e:
        raise http_error(e)

    return OnlineStatusResponse(
        driver_id=driver.id,
        is_online=driver.is_online,
        tracking=tracker.is_tracking(driver_id),
    )


@router.post(
    "/drivers/{driver_id}/location",
    response_model=LocationFixResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Push location",
    description="Queue a GPS fix for an online driver.",
)
async def push_location_endpoint(
    driver_id: UUID,
    request: LocationFixRequest,
    tracker: LocationTracker = Depends(get_location_tracker),
) -> LocationFixResponse:
    """Push a location fix."""
    fix = LocationFix(
        lat=request.lat,
        lng=request.lng,
        timestamp=request.timestamp or datetime.utcnow(),
        accuracy=request.accuracy,
        speed=request.speed,
        bearing=request.bearing,
        order_id=request.order_id,
    )
    try:
        tracker.push_fix(driver_id, fix)
    except DispatchError as e:
        raise http_error(e)

    return LocationFixResponse(driver_id=driver_id, queued=True)


# ==================== History / Stats ====================

@router.get(
    "/drivers/{driver_id}/history",
    response_model=List[DeliveryHistoryItem],
    summary="Get delivery history",
    description="The driver's delivered and cancelled orders, newest first.",
)
async def get_history_endpoint(
    driver_id: UUID,
    limit: int = Query(default=10, ge=1, le=100, description="Maximum orders"),
    db: AsyncSession = Depends(get_db),
) -> List[DeliveryHistoryItem]:
    """Get driver delivery history."""
    return await get_delivery_history(db, driver_id, limit)


@router.get(
    "/drivers/{driver_id}/stats",
    response_model=DriverStatsResponse,
    summary="Get driver stats",
    description="Delivery counts, earnings and rating of the driver.",
)
async def get_stats_endpoint(
    driver_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> DriverStatsResponse:
    """Get driver stats."""
    result = await get_driver_stats(db, driver_id)

    if not result:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Driver not found",
        )

    return result
