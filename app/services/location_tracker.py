"""
Location Tracker - consumes a push stream of GPS fixes for each online
driver and keeps the driver's last-known position in memory and in the
driver_locations table.

Persistence is fire-and-forget: a failed write is logged and the stream
keeps going. Fixes older than the last accepted one are dropped.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import GeolocationUnavailable, TrackingInactive
from app.database import transaction
from app.models import DriverLocation
from app.services.distance import GeoPoint

logger = logging.getLogger(__name__)


@dataclass
class LocationFix:
    """A single position report from a driver's device."""
    lat: float
    lng: float
    timestamp: datetime = field(default_factory=datetime.utcnow)
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    bearing: Optional[float] = None
    order_id: Optional[UUID] = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)


class QueueLocationSource:
    """
    Push source fed by the HTTP location endpoint.

    Iterating yields fixes in arrival order until close() is called.
    join() returns once every pushed fix has been handled by the consumer.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._pending = False
        self._closed = False

    def push(self, fix: LocationFix) -> None:
        if self._closed:
            raise GeolocationUnavailable("Location source is closed")
        self._queue.put_nowait(fix)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def join(self) -> None:
        await self._queue.join()

    def __aiter__(self) -> "QueueLocationSource":
        return self

    async def __anext__(self) -> LocationFix:
        # The previous fix counts as handled once the consumer asks for the next one
        if self._pending:
            self._queue.task_done()
            self._pending = False
        fix = await self._queue.get()
        if fix is None:
            self._queue.task_done()
            raise StopAsyncIteration
        self._pending = True
        return fix


async def upsert_driver_location(
    db: AsyncSession,
    driver_id: UUID,
    fix: LocationFix,
) -> DriverLocation:
    """Overwrite the driver's stored location with the given fix."""
    result = await db.execute(
        select(DriverLocation).where(DriverLocation.driver_id == driver_id)
    )
    location = result.scalar_one_or_none()
    if location is None:
        location = DriverLocation(driver_id=driver_id, latitude=fix.lat, longitude=fix.lng, timestamp=fix.timestamp)
        db.add(location)

    location.latitude = fix.lat
    location.longitude = fix.lng
    location.accuracy = fix.accuracy
    location.speed = fix.speed
    location.bearing = fix.bearing
    location.order_id = fix.order_id
    location.timestamp = fix.timestamp
    location.updated_at = datetime.utcnow()

    await db.flush()
    return location


class LocationTracker:
    """
    Tracks online drivers' positions.

    One consumer task per driver; starting again for the same driver
    replaces the running stream.
    """

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory
        self._tasks: Dict[UUID, asyncio.Task] = {}
        self._sources: Dict[UUID, AsyncIterator[LocationFix]] = {}
        self._last_fix: Dict[UUID, LocationFix] = {}

    def is_tracking(self, driver_id: UUID) -> bool:
        task = self._tasks.get(driver_id)
        return task is not None and not task.done()

    def last_known(self, driver_id: UUID) -> Optional[LocationFix]:
        return self._last_fix.get(driver_id)

    async def start_tracking(
        self,
        driver_id: UUID,
        source: Optional[AsyncIterator[LocationFix]],
    ) -> None:
        """
        Begin consuming fixes for a driver.

        Raises:
            GeolocationUnavailable: If no position source is available
        """
        if source is None:
            raise GeolocationUnavailable(f"No position source for driver {driver_id}")

        await self._halt(driver_id)

        self._sources[driver_id] = source
        self._tasks[driver_id] = asyncio.create_task(
            self._consume(driver_id, source),
            name=f"location-tracker-{driver_id}",
        )
        logger.info("Location tracking started for driver %s", driver_id)

    async def stop_tracking(self, driver_id: UUID) -> None:
        """
        Halt acquisition for the driver, if running, and forget its
        in-memory fix. The stored location row is kept.
        """
        await self._halt(driver_id)
        self._last_fix.pop(driver_id, None)

    async def _halt(self, driver_id: UUID) -> None:
        source = self._sources.pop(driver_id, None)
        task = self._tasks.pop(driver_id, None)

        if isinstance(source, QueueLocationSource):
            source.close()
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.debug("Tracker task for driver %s cancelled", driver_id)

    async def stop_all(self) -> None:
        for driver_id in list(self._tasks):
            await self.stop_tracking(driver_id)
        self._last_fix.clear()

    def push_fix(self, driver_id: UUID, fix: LocationFix) -> QueueLocationSource:
        """
        Hand a fix received over HTTP to the driver's running stream.

        Raises:
            TrackingInactive: If the driver is not being tracked through a push source
        """
        source = self._sources.get(driver_id)
        if not isinstance(source, QueueLocationSource) or not self.is_tracking(driver_id):
            raise TrackingInactive(driver_id)
        source.push(fix)
        return source

    async def flush(self, driver_id: UUID) -> None:
        """Wait until every fix pushed so far for the driver has been handled."""
        source = self._sources.get(driver_id)
        if isinstance(source, QueueLocationSource) and self.is_tracking(driver_id):
            await source.join()

    async def record_fix(self, driver_id: UUID, fix: LocationFix) -> bool:
        """
        Accept a fix if it is at least as recent as the last one.

        Returns:
            True if the fix replaced the last-known location
        """
        last = self._last_fix.get(driver_id)
        if last is not None and fix.timestamp < last.timestamp:
            logger.debug(
                "Dropping stale fix for driver %s (%s < %s)",
                driver_id, fix.timestamp, last.timestamp,
            )
            return False

        self._last_fix[driver_id] = fix
        await self._persist(driver_id, fix)
        return True

    async def _persist(self, driver_id: UUID, fix: LocationFix) -> bool:
        try:
            async with transaction(self._session_factory) as db:
                await upsert_driver_location(db, driver_id, fix)
            return True
        except SQLAlchemyError as e:
            logger.error("Failed to persist location for driver %s: %s", driver_id, e)
            return False

    async def _consume(self, driver_id: UUID, source: AsyncIterator[LocationFix]) -> None:
        try:
            async for fix in source:
                await self.record_fix(driver_id, fix)
        except GeolocationUnavailable as e:
            logger.warning("Geolocation unavailable for driver %s: %s", driver_id, e)
        finally:
            logger.info("Location tracking stopped for driver %s", driver_id)


async def get_last_known_location(
    db: AsyncSession,
    driver_id: UUID,
    tracker: Optional[LocationTracker] = None,
) -> Optional[GeoPoint]:
    """
    Best known position of a driver: the tracker's in-memory fix if there is
    one, otherwise the stored row. None if the driver never reported.
    """
    if tracker is not None:
        fix = tracker.last_known(driver_id)
        if fix is not None:
            return fix.point

    result = await db.execute(
        select(DriverLocation).where(DriverLocation.driver_id == driver_id)
    )
    location = result.scalar_one_or_none()
    if location is None:
        return None
    return GeoPoint(lat=location.latitude, lng=location.longitude)
