"""
Route Manager - owns each driver's single active multi-order route.

Accepting an order creates or extends the route, assigns the order to the
driver and appends a route order, all in one transaction. Accepts for the
same driver are serialized with a per-driver asyncio lock; the
current_order_count compare-and-swap protects against writers in other
processes.

current_order_count is a high-water mark: it counts every order accepted
into the route and is not decremented on delivery. A driver frees capacity
by closing the route once every order on it is delivered or cancelled.
Orders cancelled elsewhere while on a route are settled as cancelled route
orders the next time the driver completes them or closes the route.
"""

import asyncio
import logging
import weakref
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.config import get_settings
from app.database import transaction
from app.core.events import (
    OrderEventBus,
    make_order_event,
    ORDER_ACCEPTED,
    ORDER_CANCELLED,
    DELIVERY_STARTED,
    ORDER_DELIVERED,
    ROUTE_COMPLETED,
)
from app.core.exceptions import (
    CapacityExceeded,
    ConcurrentUpdate,
    DriverNotFound,
    InvalidTransition,
    OrderNotFound,
    OrderUnavailable,
    PersistenceFailure,
    RouteNotFound,
    RouteNotSettled,
    RouteOrderNotFound,
)
from app.models import (
    Driver, Order, OrderStatus,
    DriverRoute, RouteOrder, RouteStatus, RouteOrderStatus,
    TERMINAL_ROUTE_ORDER_STATUSES,
)
from app.schemas.route import (
    DriverRouteResponse,
    RouteOrderDetail,
    RouteOrderOrderInfo,
    RouteOrderResponse,
)
from app.services.distance import GeoPoint, known_distance_km
from app.services.location_tracker import get_last_known_location
from app.services.order_feed import restaurant_summary, customer_summary
from app.services.order_lifecycle import (
    assign_order_to_driver,
    increment_route_order_count,
    transition_order,
    transition_route_order,
)

logger = logging.getLogger(__name__)


async def get_active_route(db: AsyncSession, driver_id: UUID) -> Optional[DriverRoute]:
    """
    Load the driver's active route with its orders, restaurants and customers.

    Returns:
        The active route, or None if the driver has none
    """
    result = await db.execute(
        select(DriverRoute)
        .options(
            selectinload(DriverRoute.route_orders)
            .selectinload(RouteOrder.order)
            .selectinload(Order.restaurant),
            selectinload(DriverRoute.route_orders)
            .selectinload(RouteOrder.order)
            .selectinload(Order.customer),
        )
        .where(
            DriverRoute.driver_id == driver_id,
            DriverRoute.status == RouteStatus.ACTIVE,
        )
        .order_by(DriverRoute.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def serialize_route(route: DriverRoute) -> DriverRouteResponse:
    """Convert a loaded route into its API response."""
    return DriverRouteResponse(
        id=route.id,
        driver_id=route.driver_id,
        status=route.status.value,
        start_location=route.start_location,
        current_location=route.current_location,
        max_orders=route.max_orders,
        current_order_count=route.current_order_count,
        total_distance=route.total_distance or 0.0,
        total_duration=route.total_duration or 0.0,
        estimated_completion_time=route.estimated_completion_time,
        created_at=route.created_at,
        completed_at=route.completed_at,
        route_orders=[
            RouteOrderDetail(
                id=ro.id,
                sequence_number=ro.sequence_number,
                status=ro.status.value,
                pickup_time=ro.pickup_time,
                delivery_time=ro.delivery_time,
                order=RouteOrderOrderInfo(
                    id=ro.order.id,
                    order_number=ro.order.order_number,
                    status=ro.order.status.value,
                    total_amount=ro.order.total_amount,
                    delivery_address=ro.order.delivery_address or {},
                    customer_notes=ro.order.customer_notes,
                    restaurant=restaurant_summary(ro.order.restaurant),
                    customer=customer_summary(ro.order.customer),
                ),
            )
            for ro in route.route_orders
        ],
    )


def serialize_route_order(route_order: RouteOrder, order: Order) -> RouteOrderResponse:
    return RouteOrderResponse(
        id=route_order.id,
        route_id=route_order.route_id,
        order_id=route_order.order_id,
        sequence_number=route_order.sequence_number,
        status=route_order.status.value,
        order_status=order.status.value,
        pickup_time=route_order.pickup_time,
        delivery_time=route_order.delivery_time,
    )


class RouteManager:
    """
    Accepts orders into driver routes and moves them through delivery.

    Args:
        session_factory: Async session maker; each operation runs in its own transaction
        event_bus: Bus that receives change events after each commit (optional)
        max_orders: Capacity of newly created routes (defaults to settings)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        event_bus: Optional[OrderEventBus] = None,
        max_orders: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self._session_factory = session_factory
        self._event_bus = event_bus
        self.max_orders = max_orders if max_orders is not None else settings.max_orders_per_route
        self._average_speed_kmh = settings.average_speed_kmh
        self._minutes_per_stop = settings.minutes_per_stop
        # Entries vanish once no caller holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, driver_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(driver_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[driver_id] = lock
        return lock

    async def _publish(self, event_type: str, **kwargs) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish(make_order_event(event_type, **kwargs))

    # ==================== Accept ====================

    async def accept_order(self, driver_id: UUID, order_id: UUID) -> RouteOrderResponse:
        """
        Accept an order into the driver's active route, creating the route if needed.

        Raises:
            CapacityExceeded: Route already holds max_orders orders
            DriverNotFound / OrderNotFound: Unknown driver or order
            OrderUnavailable: Order is not ready or already has a driver
            ConcurrentUpdate: Route count changed under us
            PersistenceFailure: Database error; nothing was applied
        """
        async with self._lock_for(driver_id):
            try:
                async with transaction(self._session_factory) as db:
                    route_order, order = await self._accept_in_transaction(db, driver_id, order_id)
                    response = serialize_route_order(route_order, order)
            except SQLAlchemyError as e:
                logger.error("Failed to accept order %s for driver %s: %s", order_id, driver_id, e)
                raise PersistenceFailure("Failed to accept order") from e

        logger.info(
            "Driver %s accepted order %s (route %s, stop %d)",
            driver_id, order_id, response.route_id, response.sequence_number,
        )
        await self._publish(
            ORDER_ACCEPTED,
            order_id=order_id,
            driver_id=driver_id,
            route_id=response.route_id,
            route_order_id=response.id,
            status=response.order_status,
        )
        return response

    async def _accept_in_transaction(
        self,
        db: AsyncSession,
        driver_id: UUID,
        order_id: UUID,
    ) -> tuple:
        driver = await db.get(Driver, driver_id)
        if driver is None:
            raise DriverNotFound(driver_id)

        route = await self._load_active_route_for_update(db, driver_id)
        if route is not None and route.current_order_count >= route.max_orders:
            logger.info("Driver %s at capacity (%d orders)", driver_id, route.max_orders)
            raise CapacityExceeded(driver_id, route.max_orders)

        order = await db.get(Order, order_id, options=[selectinload(Order.restaurant)])
        if order is None:
            raise OrderNotFound(order_id)
        if order.status != OrderStatus.READY or order.driver_id is not None:
            raise OrderUnavailable(order_id, order.status.value)

        now = datetime.utcnow()
        driver_point = await get_last_known_location(db, driver_id)

        if route is None:
            start = driver_point.to_dict() if driver_point else None
            route = DriverRoute(
                driver_id=driver_id,
                status=RouteStatus.ACTIVE,
                start_location=start,
                current_location=start,
                max_orders=self.max_orders,
                current_order_count=1,
                total_distance=0.0,
                total_duration=0.0,
                created_at=now,
            )
            db.add(route)
            await db.flush()
            sequence_number = 1
        else:
            existing = await db.scalar(
                select(func.count(RouteOrder.id)).where(RouteOrder.route_id == route.id)
            )
            if not await increment_route_order_count(db, route.id, route.current_order_count, now):
                raise ConcurrentUpdate(f"Route {route.id} changed while accepting order {order_id}")
            await db.refresh(route, attribute_names=["current_order_count", "updated_at"])
            sequence_number = (existing or 0) + 1

        if not await assign_order_to_driver(db, order_id, driver_id, now):
            raise OrderUnavailable(order_id)
        await db.refresh(order, attribute_names=["status", "driver_id", "updated_at"])

        route_order = RouteOrder(
            route_id=route.id,
            order_id=order_id,
            sequence_number=sequence_number,
            status=RouteOrderStatus.PICKED_UP,
            pickup_time=now,
        )
        db.add(route_order)

        self._extend_estimates(route, order, driver_point)
        await db.flush()
        return route_order, order

    async def _load_active_route_for_update(
        self,
        db: AsyncSession,
        driver_id: UUID,
    ) -> Optional[DriverRoute]:
        result = await db.execute(
            select(DriverRoute)
            .where(
                DriverRoute.driver_id == driver_id,
                DriverRoute.status == RouteStatus.ACTIVE,
            )
            .order_by(DriverRoute.created_at.desc())
            .limit(1)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    def _extend_estimates(
        self,
        route: DriverRoute,
        order: Order,
        driver_point: Optional[GeoPoint],
    ) -> None:
        """
        Add the pickup and drop-off legs of a new order to the route totals.

        The pickup leg starts at route.current_location, the previous order's
        drop-off, which then moves to this order's drop-off. Legs with unknown
        endpoints contribute only their stop time.
        """
        restaurant = order.restaurant
        restaurant_point = GeoPoint.from_coordinates(restaurant.latitude, restaurant.longitude)
        customer_point = GeoPoint.from_mapping(order.delivery_address)
        origin = GeoPoint.from_mapping(route.current_location) or driver_point

        leg_km = 0.0
        for leg in (
            known_distance_km(origin, restaurant_point),
            known_distance_km(restaurant_point, customer_point),
        ):
            if leg is not None:
                leg_km += leg

        travel_minutes = leg_km / self._average_speed_kmh * 60 if self._average_speed_kmh > 0 else 0.0
        added_minutes = travel_minutes + 2 * self._minutes_per_stop

        route.total_distance = round((route.total_distance or 0.0) + leg_km, 1)
        route.total_duration = round((route.total_duration or 0.0) + added_minutes, 1)
        route.estimated_completion_time = route.created_at + timedelta(minutes=route.total_duration)

        last_stop = customer_point or restaurant_point
        if last_stop is not None:
            route.current_location = last_stop.to_dict()

    # ==================== Delivery ====================

    async def start_delivery(self, route_order_id: UUID) -> RouteOrderResponse:
        """
        Mark a picked-up order as on its way to the customer.

        Raises:
            RouteOrderNotFound: Unknown route order
            InvalidTransition: Order is not in picked_up state
            PersistenceFailure: Database error
        """
        try:
            async with transaction(self._session_factory) as db:
                route_order = await self._load_route_order(db, route_order_id)
                order = route_order.order
                if route_order.status != RouteOrderStatus.PICKED_UP:
                    raise InvalidTransition(
                        f"Route order {route_order_id} is {route_order.status.value}"
                    )
                if not await transition_order(
                    db, order.id, (OrderStatus.PICKED_UP,), OrderStatus.DELIVERING, datetime.utcnow(),
                ):
                    raise InvalidTransition(
                        f"Order {order.id} cannot start delivery from {order.status.value}"
                    )
                await db.refresh(order, attribute_names=["status", "updated_at"])
                response = serialize_route_order(route_order, order)
                driver_id = order.driver_id
        except SQLAlchemyError as e:
            logger.error("Failed to start delivery for route order %s: %s", route_order_id, e)
            raise PersistenceFailure("Failed to start delivery") from e

        await self._publish(
            DELIVERY_STARTED,
            order_id=response.order_id,
            driver_id=driver_id,
            route_id=response.route_id,
            route_order_id=response.id,
            status=response.order_status,
        )
        return response

    async def complete_delivery(self, route_order_id: UUID, order_id: UUID) -> RouteOrderResponse:
        """
        Mark an order and its route order as delivered.

        Calling it again for an already delivered route order changes nothing
        and returns the stored state. current_order_count is left as is and
        the route stays active. If the order was cancelled elsewhere, the
        route order is settled as cancelled before InvalidTransition is raised.

        Raises:
            RouteOrderNotFound / OrderNotFound: Unknown route order or order
            InvalidTransition: Route order is cancelled, belongs to another order,
                or the order is not picked up / delivering
            PersistenceFailure: Database error; nothing was applied
        """
        delivered = False
        settled: List[RouteOrder] = []
        try:
            async with transaction(self._session_factory) as db:
                route_order = await self._load_route_order(db, route_order_id)
                if route_order.order_id != order_id:
                    raise InvalidTransition(
                        f"Route order {route_order_id} does not belong to order {order_id}"
                    )
                order = route_order.order
                if order is None:
                    raise OrderNotFound(order_id)

                if route_order.status == RouteOrderStatus.DELIVERED:
                    logger.info("Route order %s already delivered", route_order_id)
                elif route_order.status == RouteOrderStatus.CANCELLED:
                    raise InvalidTransition(f"Route order {route_order_id} was cancelled")
                elif order.status == OrderStatus.CANCELLED:
                    settled = await self._settle_cancelled(db, [route_order])
                    if not settled:
                        raise ConcurrentUpdate(f"Route order {route_order_id} changed during delivery")
                else:
                    now = datetime.utcnow()
                    if not await transition_order(
                        db, order_id,
                        (OrderStatus.PICKED_UP, OrderStatus.DELIVERING),
                        OrderStatus.DELIVERED,
                        now,
                        actual_delivery_time=now,
                    ):
                        raise InvalidTransition(
                            f"Order {order_id} cannot be delivered from {order.status.value}"
                        )
                    if not await transition_route_order(
                        db, route_order_id,
                        (RouteOrderStatus.PICKED_UP,),
                        RouteOrderStatus.DELIVERED,
                        delivery_time=now,
                    ):
                        raise ConcurrentUpdate(f"Route order {route_order_id} changed during delivery")
                    await db.refresh(order, attribute_names=["status", "actual_delivery_time", "updated_at"])
                    await db.refresh(route_order, attribute_names=["status", "delivery_time"])
                    delivered = True

                response = serialize_route_order(route_order, order)
                driver_id = order.driver_id
        except SQLAlchemyError as e:
            logger.error("Failed to complete delivery for route order %s: %s", route_order_id, e)
            raise PersistenceFailure("Failed to complete delivery") from e

        if settled:
            await self._publish_settled(driver_id, settled)
            raise InvalidTransition(f"Order {order_id} was cancelled")
        if delivered:
            logger.info("Order %s delivered (route order %s)", order_id, route_order_id)
            await self._publish(
                ORDER_DELIVERED,
                order_id=order_id,
                driver_id=driver_id,
                route_id=response.route_id,
                route_order_id=response.id,
                status=response.order_status,
            )
        return response

    async def _load_route_order(self, db: AsyncSession, route_order_id: UUID) -> RouteOrder:
        route_order = await db.get(
            RouteOrder,
            route_order_id,
            options=[selectinload(RouteOrder.order)],
        )
        if route_order is None:
            raise RouteOrderNotFound(route_order_id)
        return route_order

    async def _settle_cancelled(self, db: AsyncSession, route_orders) -> List[RouteOrder]:
        """
        Mark open route orders whose order was cancelled elsewhere as cancelled.
        Expects each route order's order to be loaded.
        """
        settled = []
        for route_order in route_orders:
            if route_order.status in TERMINAL_ROUTE_ORDER_STATUSES:
                continue
            if route_order.order.status != OrderStatus.CANCELLED:
                continue
            if await transition_route_order(
                db, route_order.id,
                (RouteOrderStatus.PICKED_UP,),
                RouteOrderStatus.CANCELLED,
            ):
                await db.refresh(route_order, attribute_names=["status"])
                settled.append(route_order)
                logger.info(
                    "Route order %s settled: order %s was cancelled",
                    route_order.id, route_order.order_id,
                )
        return settled

    async def _publish_settled(self, driver_id: Optional[UUID], settled: List[RouteOrder]) -> None:
        for route_order in settled:
            await self._publish(
                ORDER_CANCELLED,
                order_id=route_order.order_id,
                driver_id=driver_id,
                route_id=route_order.route_id,
                route_order_id=route_order.id,
                status=RouteOrderStatus.CANCELLED.value,
            )

    # ==================== Close ====================

    async def close_route(self, driver_id: UUID) -> DriverRouteResponse:
        """
        Complete the driver's active route once every order on it is settled.

        Raises:
            RouteNotFound: Driver has no active route
            RouteNotSettled: Some orders are still picked up; cancellations found
                on the way are committed first
            PersistenceFailure: Database error
        """
        async with self._lock_for(driver_id):
            try:
                async with transaction(self._session_factory) as db:
                    route = await get_active_route(db, driver_id)
                    if route is None:
                        raise RouteNotFound(driver_id)

                    settled = await self._settle_cancelled(db, route.route_orders)
                    outstanding = [
                        ro for ro in route.route_orders
                        if ro.status not in TERMINAL_ROUTE_ORDER_STATUSES
                    ]
                    route_id = route.id
                    if not outstanding:
                        now = datetime.utcnow()
                        route.status = RouteStatus.COMPLETED
                        route.completed_at = now
                        route.updated_at = now
                        await db.flush()
                        response = serialize_route(route)
            except SQLAlchemyError as e:
                logger.error("Failed to close route for driver %s: %s", driver_id, e)
                raise PersistenceFailure("Failed to close route") from e

        # Cancellations settled above stay committed even when the route cannot close yet
        await self._publish_settled(driver_id, settled)
        if outstanding:
            raise RouteNotSettled(route_id, len(outstanding))

        logger.info("Route %s completed for driver %s", response.id, driver_id)
        await self._publish(
            ROUTE_COMPLETED,
            driver_id=driver_id,
            route_id=response.id,
            status=response.status,
        )
        return response
