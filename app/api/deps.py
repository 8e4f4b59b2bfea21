"""
Request-scoped access to the long-lived service objects kept on app.state.
"""

from fastapi import HTTPException, Request, status

from app.core.events import OrderEventBus
from app.core.exceptions import (
    DispatchError,
    NotFoundError,
    CapacityExceeded,
    OrderUnavailable,
    ConcurrentUpdate,
    RouteNotSettled,
    InvalidTransition,
    TrackingInactive,
    GeolocationUnavailable,
    PersistenceFailure,
)
from app.services.location_tracker import LocationTracker
from app.services.route_manager import RouteManager


def get_route_manager(request: Request) -> RouteManager:
    return request.app.state.route_manager


def get_location_tracker(request: Request) -> LocationTracker:
    return request.app.state.location_tracker


def get_event_bus(request: Request) -> OrderEventBus:
    return request.app.state.event_bus


_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (CapacityExceeded, status.HTTP_409_CONFLICT),
    (OrderUnavailable, status.HTTP_409_CONFLICT),
    (ConcurrentUpdate, status.HTTP_409_CONFLICT),
    (RouteNotSettled, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (TrackingInactive, status.HTTP_409_CONFLICT),
    (GeolocationUnavailable, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PersistenceFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error(error: DispatchError) -> HTTPException:
    """Translate a domain error into an HTTPException."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
