"""
Available-order feed.
Lists ready, unassigned orders ranked by distance from the driver to the
restaurant. Read-only.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models import Order, OrderStatus, Restaurant, Customer
from app.schemas.driver_api import (
    AvailableOrderResponse,
    RestaurantSummary,
    CustomerSummary,
)
from app.services.distance import GeoPoint, known_distance_km


def restaurant_summary(restaurant: Restaurant) -> RestaurantSummary:
    return RestaurantSummary(
        id=restaurant.id,
        name=restaurant.name,
        address=restaurant.address,
        phone=restaurant.phone,
        latitude=restaurant.latitude,
        longitude=restaurant.longitude,
    )


def customer_summary(customer: Optional[Customer]) -> Optional[CustomerSummary]:
    if customer is None:
        return None
    return CustomerSummary(display_name=customer.display_name, phone=customer.phone)


def annotate_order(
    order: Order,
    driver_location: Optional[GeoPoint],
) -> AvailableOrderResponse:
    """
    Attach pickup and drop-off distances to an order.

    distance_to_restaurant is measured from the driver, distance_to_customer
    from the restaurant to the delivery address. Either is None when a
    coordinate is missing.
    """
    restaurant = order.restaurant
    restaurant_point = GeoPoint.from_coordinates(restaurant.latitude, restaurant.longitude)
    customer_point = GeoPoint.from_mapping(order.delivery_address)

    return AvailableOrderResponse(
        id=order.id,
        order_number=order.order_number,
        total_amount=order.total_amount,
        delivery_address=order.delivery_address or {},
        customer_notes=order.customer_notes,
        created_at=order.created_at,
        restaurant=restaurant_summary(restaurant),
        customer=customer_summary(order.customer),
        distance_to_restaurant=known_distance_km(driver_location, restaurant_point),
        distance_to_customer=known_distance_km(restaurant_point, customer_point),
    )


def _pickup_rank(view: AvailableOrderResponse) -> tuple:
    # Unknown distances go last
    distance = view.distance_to_restaurant
    return (distance is None, distance if distance is not None else 0.0)


async def fetch_available_orders(
    db: AsyncSession,
    driver_location: Optional[GeoPoint],
    limit: int = 20,
) -> List[AvailableOrderResponse]:
    """
    Fetch ready orders with no driver, closest restaurant first.

    The oldest `limit` orders are taken first, then ranked, so equally
    distant orders keep their first-come order.

    Args:
        db: Database session
        driver_location: Current driver position, or None if unknown
        limit: Maximum number of orders to return

    Returns:
        Annotated orders sorted by distance_to_restaurant
    """
    if limit <= 0:
        return []

    result = await db.execute(
        select(Order)
        .options(selectinload(Order.restaurant), selectinload(Order.customer))
        .where(
            Order.status == OrderStatus.READY,
            Order.driver_id.is_(None),
        )
        .order_by(Order.created_at.asc())
        .limit(limit)
    )
    orders = result.scalars().all()

    views = [annotate_order(order, driver_location) for order in orders]
    views.sort(key=_pickup_rank)
    return views
