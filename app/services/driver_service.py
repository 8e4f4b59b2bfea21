"""
Driver-facing service layer.
Provides online status, delivery history and earnings stats.
"""

from datetime import date, datetime, time
from typing import Optional, List
from uuid import UUID

from sqlalchemy import select, and_, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import get_settings
from app.core.exceptions import DriverNotFound
from app.models import Driver, Order, OrderStatus, TERMINAL_ORDER_STATUSES
from app.schemas.driver_api import DeliveryHistoryItem, DriverStatsResponse


async def set_driver_online(
    db: AsyncSession,
    driver_id: UUID,
    is_online: bool,
) -> Driver:
    """
    Flip a driver's online flag.

    Raises:
        DriverNotFound: If the driver does not exist
    """
    driver = await db.get(Driver, driver_id)
    if driver is None:
        raise DriverNotFound(driver_id)

    driver.is_online = is_online
    await db.flush()
    return driver


async def get_delivery_history(
    db: AsyncSession,
    driver_id: UUID,
    limit: int = 10,
) -> List[DeliveryHistoryItem]:
    """
    Fetch the driver's finished orders, newest first.

    Args:
        db: Database session
        driver_id: Driver UUID
        limit: Maximum number of orders

    Returns:
        Delivered and cancelled orders of the driver
    """
    result = await db.execute(
        select(Order)
        .options(selectinload(Order.restaurant), selectinload(Order.customer))
        .where(
            and_(
                Order.driver_id == driver_id,
                Order.status.in_(TERMINAL_ORDER_STATUSES),
            )
        )
        .order_by(Order.created_at.desc())
        .limit(limit)
    )

    return [
        DeliveryHistoryItem(
            id=order.id,
            order_number=order.order_number,
            total_amount=order.total_amount,
            status=order.status.value,
            created_at=order.created_at,
            actual_delivery_time=order.actual_delivery_time,
            restaurant_name=order.restaurant.name,
            customer_name=order.customer.display_name if order.customer else None,
        )
        for order in result.scalars().all()
    ]


async def get_driver_stats(
    db: AsyncSession,
    driver_id: UUID,
    today: Optional[date] = None,
) -> Optional[DriverStatsResponse]:
    """
    Aggregate delivery counts and earnings for a driver.

    Earnings are the commission share of each delivered order's total.
    "Today" is by order creation date.

    Returns:
        DriverStatsResponse if driver exists, None otherwise
    """
    driver = await db.get(Driver, driver_id)
    if driver is None:
        return None

    today = today or date.today()
    day_start = datetime.combine(today, time.min)
    day_end = datetime.combine(today, time.max)

    delivered = and_(
        Order.driver_id == driver_id,
        Order.status == OrderStatus.DELIVERED,
    )

    totals = await db.execute(
        select(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_amount), 0),
        ).where(delivered)
    )
    total_deliveries, total_amount = totals.one()

    today_deliveries = await db.scalar(
        select(func.count(Order.id)).where(
            and_(
                delivered,
                Order.created_at >= day_start,
                Order.created_at <= day_end,
            )
        )
    )

    commission = get_settings().driver_commission_rate
    return DriverStatsResponse(
        driver_id=driver_id,
        total_deliveries=total_deliveries or 0,
        today_deliveries=today_deliveries or 0,
        total_earnings=round(float(total_amount) * commission, 2),
        average_rating=driver.rating,
    )
