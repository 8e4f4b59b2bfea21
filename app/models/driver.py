"""
Driver database model.
Drivers are the only actors allowed to move orders between pickup and delivery.
"""

import uuid
from datetime import datetime
from typing import Optional, List, TYPE_CHECKING

from sqlalchemy import String, Float, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, GUID

if TYPE_CHECKING:
    from app.models.route import DriverRoute
    from app.models.driver_location import DriverLocation


class Driver(Base):
    """
    Driver model representing delivery personnel.
    Stores contact info, online status and rating.
    """
    __tablename__ = "drivers"

    id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    is_online: Mapped[bool] = mapped_column(Boolean, default=False)
    rating: Mapped[float] = mapped_column(Float, default=5.0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    # Relationships
    routes: Mapped[List["DriverRoute"]] = relationship(
        "DriverRoute",
        back_populates="driver",
        cascade="all, delete-orphan",
    )
    location: Mapped[Optional["DriverLocation"]] = relationship(
        "DriverLocation",
        back_populates="driver",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Driver(id={self.id}, name={self.name})>"
