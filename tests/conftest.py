import pytest
import os
from datetime import datetime, timedelta
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from app.core.events import OrderEventBus
from app.database import Base, get_db
from app.main import app
from app.models import Driver, Restaurant, Customer, Order, OrderStatus
from app.services.location_tracker import LocationTracker
from app.services.route_manager import RouteManager
from tests.fixtures.test_data import (
    generate_driver,
    generate_restaurant,
    generate_customer,
    generate_order,
)

# Use in-memory SQLite for tests by default, unless TEST_DATABASE_URL is set
TEST_DB_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest.fixture
async def test_engine():
    """Fresh test database engine per test."""
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False} if "sqlite" in TEST_DB_URL else {},
        poolclass=StaticPool if "sqlite" in TEST_DB_URL else None,
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine) -> async_sessionmaker:
    """Session factory shared by the services under test."""
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Session used to seed data and run read-side helpers."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def event_bus() -> OrderEventBus:
    return OrderEventBus(max_recent=100)


@pytest.fixture
def route_manager(session_maker, event_bus) -> RouteManager:
    return RouteManager(session_maker, event_bus=event_bus, max_orders=5)


@pytest.fixture
async def location_tracker(session_maker) -> AsyncGenerator[LocationTracker, None]:
    tracker = LocationTracker(session_maker)
    yield tracker
    await tracker.stop_all()


@pytest.fixture
async def client(session_maker, route_manager, location_tracker, event_bus) -> AsyncGenerator[AsyncClient, None]:
    """Test client with override for get_db and test-bound services."""
    async def override_get_db():
        async with session_maker() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    saved_state = (app.state.route_manager, app.state.location_tracker, app.state.event_bus)
    app.state.route_manager = route_manager
    app.state.location_tracker = location_tracker
    app.state.event_bus = event_bus

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.state.route_manager, app.state.location_tracker, app.state.event_bus = saved_state
    app.dependency_overrides.clear()


@pytest.fixture
async def driver(db_session) -> Driver:
    """A driver with no route and no reported location."""
    driver = Driver(**generate_driver())
    db_session.add(driver)
    await db_session.commit()
    return driver


@pytest.fixture
async def other_driver(db_session) -> Driver:
    driver = Driver(**generate_driver())
    db_session.add(driver)
    await db_session.commit()
    return driver


@pytest.fixture
async def restaurants(db_session) -> dict:
    """Restaurants at increasing distance from the driver, plus one without coordinates."""
    placements = {
        "near": (6.5300, 3.3800),
        "mid": (6.6000, 3.4000),
        "far": (6.7000, 3.5000),
        "unknown": (None, None),
    }
    created = {}
    for key, (lat, lng) in placements.items():
        restaurant = Restaurant(**generate_restaurant(lat=lat, lng=lng))
        db_session.add(restaurant)
        created[key] = restaurant
    await db_session.commit()
    return created


@pytest.fixture
async def customer(db_session) -> Customer:
    customer = Customer(**generate_customer())
    db_session.add(customer)
    await db_session.commit()
    return customer


@pytest.fixture
def order_factory(db_session, restaurants, customer):
    """
    Create ready, unassigned orders.

    Each call is one minute newer than the previous one, so creation order
    is deterministic.
    """
    base_time = datetime.utcnow() - timedelta(hours=1)
    counter = {"n": 0}

    async def create(
        restaurant: str = "near",
        status: OrderStatus = OrderStatus.READY,
        driver_id=None,
        delivery_address=None,
        total_amount=None,
        created_at=None,
    ) -> Order:
        counter["n"] += 1
        data = generate_order(
            restaurant_id=restaurants[restaurant].id,
            customer_id=customer.id,
            created_at=created_at or base_time + timedelta(minutes=counter["n"]),
            delivery_address=delivery_address,
        )
        if total_amount is not None:
            data["total_amount"] = total_amount
        order = Order(status=status, driver_id=driver_id, **data)
        db_session.add(order)
        await db_session.commit()
        return order

    return create
