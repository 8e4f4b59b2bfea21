"""
Guarded status updates for orders, route orders and routes.

Every helper issues a single UPDATE whose WHERE clause encodes the expected
current state, and reports whether a row was affected. Callers run them
inside one transaction and raise a domain error on a miss, which rolls the
whole transaction back. Session identity maps are not synchronized; refresh
any loaded instance after a successful update.
"""

from datetime import datetime
from typing import Iterable
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import (
    Order, OrderStatus,
    DriverRoute, RouteOrder, RouteOrderStatus,
)


async def assign_order_to_driver(
    db: AsyncSession,
    order_id: UUID,
    driver_id: UUID,
    now: datetime,
) -> bool:
    """
    Assign a ready, unassigned order to a driver and mark it picked up.

    Returns:
        False if the order was taken or left the ready state meanwhile
    """
    result = await db.execute(
        update(Order)
        .where(
            Order.id == order_id,
            Order.status == OrderStatus.READY,
            Order.driver_id.is_(None),
        )
        .values(
            driver_id=driver_id,
            status=OrderStatus.PICKED_UP,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def transition_order(
    db: AsyncSession,
    order_id: UUID,
    from_statuses: Iterable[OrderStatus],
    to_status: OrderStatus,
    now: datetime,
    **fields,
) -> bool:
    """Move an order to to_status if it is currently in one of from_statuses."""
    result = await db.execute(
        update(Order)
        .where(
            Order.id == order_id,
            Order.status.in_(list(from_statuses)),
        )
        .values(status=to_status, updated_at=now, **fields)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def transition_route_order(
    db: AsyncSession,
    route_order_id: UUID,
    from_statuses: Iterable[RouteOrderStatus],
    to_status: RouteOrderStatus,
    **fields,
) -> bool:
    """Move a route order to to_status if it is currently in one of from_statuses."""
    result = await db.execute(
        update(RouteOrder)
        .where(
            RouteOrder.id == route_order_id,
            RouteOrder.status.in_(list(from_statuses)),
        )
        .values(status=to_status, **fields)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def increment_route_order_count(
    db: AsyncSession,
    route_id: UUID,
    expected_count: int,
    now: datetime,
) -> bool:
    """
    Compare-and-swap increment of current_order_count.

    Succeeds only if the count still equals expected_count and the route
    has room left.
    """
    result = await db.execute(
        update(DriverRoute)
        .where(
            DriverRoute.id == route_id,
            DriverRoute.current_order_count == expected_count,
            DriverRoute.current_order_count < DriverRoute.max_orders,
        )
        .values(
            current_order_count=expected_count + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
