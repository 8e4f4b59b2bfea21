"""
Driver route database models.
Includes DriverRoute (one active route per driver) and RouteOrder
(an order's place and state within a route).
"""

import enum
import uuid
from datetime import datetime
from typing import Optional, List, TYPE_CHECKING

from sqlalchemy import Integer, Float, DateTime, ForeignKey, Enum, JSON, Index, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, GUID

if TYPE_CHECKING:
    from app.models.driver import Driver
    from app.models.order import Order


class RouteStatus(str, enum.Enum):
    """Status of a driver route."""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RouteOrderStatus(str, enum.Enum):
    """Status of an order within a route."""
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


TERMINAL_ROUTE_ORDER_STATUSES = (RouteOrderStatus.DELIVERED, RouteOrderStatus.CANCELLED)


class DriverRoute(Base):
    """
    DriverRoute model representing a driver's multi-order trip.
    current_order_count counts every order accepted into the route and
    is never decremented, so it bounds the size of the whole trip.
    """
    __tablename__ = "driver_routes"
    __table_args__ = (
        # At most one active route per driver
        Index(
            "uq_driver_routes_active_driver",
            "driver_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        primary_key=True,
        default=uuid.uuid4,
    )
    driver_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("drivers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[RouteStatus] = mapped_column(
        Enum(RouteStatus),
        nullable=False,
        default=RouteStatus.ACTIVE,
        index=True,
    )
    start_location: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    current_location: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    max_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    current_order_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    total_distance: Mapped[float] = mapped_column(Float, default=0.0)  # km
    total_duration: Mapped[float] = mapped_column(Float, default=0.0)  # minutes
    estimated_completion_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    driver: Mapped["Driver"] = relationship("Driver", back_populates="routes")
    route_orders: Mapped[List["RouteOrder"]] = relationship(
        "RouteOrder",
        back_populates="route",
        cascade="all, delete-orphan",
        order_by="RouteOrder.sequence_number",
    )

    @property
    def is_full(self) -> bool:
        return self.current_order_count >= self.max_orders

    def __repr__(self) -> str:
        return (
            f"<DriverRoute(id={self.id}, driver_id={self.driver_id}, "
            f"orders={self.current_order_count}/{self.max_orders})>"
        )


class RouteOrder(Base):
    """
    Association between a route and an order.
    sequence_number is the 1-based acceptance position within the route.
    """
    __tablename__ = "route_orders"
    __table_args__ = (
        UniqueConstraint("route_id", "sequence_number", name="uq_route_orders_sequence"),
        UniqueConstraint("route_id", "order_id", name="uq_route_orders_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        primary_key=True,
        default=uuid.uuid4,
    )
    route_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("driver_routes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[RouteOrderStatus] = mapped_column(
        Enum(RouteOrderStatus),
        nullable=False,
        default=RouteOrderStatus.PICKED_UP,
    )
    pickup_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    delivery_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )

    # Relationships
    route: Mapped["DriverRoute"] = relationship("DriverRoute", back_populates="route_orders")
    order: Mapped["Order"] = relationship("Order")

    def __repr__(self) -> str:
        return f"<RouteOrder(route_id={self.route_id}, order_id={self.order_id}, seq={self.sequence_number})>"
