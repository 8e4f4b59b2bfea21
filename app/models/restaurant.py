"""
Restaurant and Customer database models.
Both are owned by the ordering side of the platform; the dispatch service
only reads them to annotate orders.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Float, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, GUID


class Restaurant(Base):
    """Restaurant an order is picked up from."""
    __tablename__ = "restaurants"

    id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    # Coordinates are optional; missing ones make pickup distance unknown
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )

    def __repr__(self) -> str:
        return f"<Restaurant(id={self.id}, name={self.name})>"


class Customer(Base):
    """Customer an order is delivered to."""
    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        primary_key=True,
        default=uuid.uuid4,
    )
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, display_name={self.display_name})>"
