"""
Driver Dispatch Service - FastAPI Application
Main entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.api import driver_api_router, order_events_router
from app.core.events import OrderEventBus
from app.database import async_session_maker
from app.services.location_tracker import LocationTracker
from app.services.route_manager import RouteManager


settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    logger.info(f"Starting {settings.app_title} v{settings.app_version}")

    # Initialize database tables (important for SQLite)
    from app.database import init_db
    await init_db()
    logger.info("Database tables initialized")

    yield
    # Shutdown
    await app.state.location_tracker.stop_all()
    logger.info("Shutting down...")


# Create FastAPI application
app = FastAPI(
    title=settings.app_title,
    version=settings.app_version,
    description="""
    ## Driver Dispatch Service API

    Order pickup and delivery workflow for food-delivery drivers.

    ### Features
    - **Available Orders**: Ready orders ranked by distance to the restaurant
    - **Routes**: One active multi-order route per driver with fixed capacity
    - **Delivery**: Pickup, en-route and delivered transitions with timestamps
    - **Location Tracking**: Live GPS fixes while the driver is online
    - **Realtime**: SSE stream of order changes

    ### Main Endpoints
    - `GET /api/v1/drivers/{id}/available-orders` - Orders the driver can accept
    - `POST /api/v1/drivers/{id}/route/orders` - Accept an order
    - `POST /api/v1/route-orders/{id}/complete` - Complete a delivery
    - `GET /api/v1/drivers/{id}/events/stream` - SSE stream for order events
    """,
    lifespan=lifespan,
)

# Long-lived service objects shared by all requests
app.state.event_bus = OrderEventBus(max_recent=settings.recent_events_buffer)
app.state.route_manager = RouteManager(
    async_session_maker,
    event_bus=app.state.event_bus,
    max_orders=settings.max_orders_per_route,
)
app.state.location_tracker = LocationTracker(async_session_maker)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(driver_api_router, prefix=settings.api_prefix)
app.include_router(order_events_router, prefix=settings.api_prefix)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - health check."""
    return {
        "status": "healthy",
        "service": settings.app_title,
        "version": settings.app_version,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    from sqlalchemy import text
    from app.database import engine

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        database = "unavailable"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "database": database,
    }
