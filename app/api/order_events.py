"""
Order Events SSE Endpoint.

Provides a Server-Sent Events stream of order and route-order changes so
driver clients can refresh without polling.
"""

import json
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from app.api.deps import get_event_bus
from app.core.events import OrderEventBus, ORDER_READY, ORDER_CANCELLED


router = APIRouter(tags=["Order Events"])


def _concerns_driver(event: dict, driver_id: str) -> bool:
    # Drivers also care about orders entering or leaving the ready pool
    return (
        event.get("driver_id") == driver_id
        or event.get("event_type") in (ORDER_READY, ORDER_CANCELLED)
    )


@router.get("/drivers/{driver_id}/events/stream")
async def order_events_stream(
    driver_id: UUID,
    bus: OrderEventBus = Depends(get_event_bus),
):
    """
    Server-Sent Events endpoint for order events.

    Returns a continuous stream of events that concern the driver.

    Args:
        driver_id: Driver whose events are streamed

    Returns:
        SSE stream of order events
    """
    driver_key = str(driver_id)

    async def event_generator():
        init_event = {
            "type": "connected",
            "message": "SSE connection established",
            "driver_id": driver_key,
        }
        yield f"data: {json.dumps(init_event)}\n\n"

        async for event in bus.subscribe():
            if not _concerns_driver(event, driver_key):
                continue
            yield f"data: {json.dumps(event)}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@router.get("/drivers/{driver_id}/events/recent")
async def get_recent_events(
    driver_id: UUID,
    limit: int = Query(50, ge=1, le=200, description="Maximum events to return"),
    bus: OrderEventBus = Depends(get_event_bus),
):
    """
    Get recent order events for a driver (non-streaming).

    Args:
        driver_id: Driver to filter by
        limit: Maximum number of events

    Returns:
        List of recent events
    """
    events = bus.get_recent_events(driver_id=str(driver_id), limit=limit)
    return {"events": events, "count": len(events)}
