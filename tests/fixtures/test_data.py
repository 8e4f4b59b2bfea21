"""
Test data generators for creating realistic dispatch scenarios.
"""

import random
import uuid
from datetime import datetime, timedelta
from typing import Optional

from faker import Faker

fake = Faker()

# Lagos city centre
CENTER_LAT = 6.5244
CENTER_LNG = 3.3792


def generate_driver(name: Optional[str] = None) -> dict:
    """Generate driver data."""
    return {
        "name": name or fake.name(),
        "phone": fake.numerify("+234##########"),
        "is_online": False,
        "rating": round(random.uniform(4.0, 5.0), 1),
    }


def generate_restaurant(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
) -> dict:
    """
    Generate restaurant data.

    Args:
        lat: Latitude, None for a restaurant that was never geocoded
        lng: Longitude, None for a restaurant that was never geocoded
    """
    return {
        "name": f"{fake.last_name()}'s Kitchen",
        "address": fake.street_address(),
        "phone": fake.numerify("+234##########"),
        "latitude": lat,
        "longitude": lng,
    }


def generate_customer() -> dict:
    """Generate customer data."""
    return {
        "display_name": fake.first_name(),
        "phone": fake.numerify("+234##########"),
    }


def generate_delivery_address(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    spread_km: float = 3.0,
) -> dict:
    """
    Generate a delivery address payload.

    When no coordinates are given, a point within roughly spread_km of the
    city centre is picked.
    """
    spread = spread_km / 111.0
    return {
        "street": fake.street_address(),
        "city": "Lagos",
        "lat": lat if lat is not None else CENTER_LAT + random.uniform(-spread, spread),
        "lng": lng if lng is not None else CENTER_LNG + random.uniform(-spread, spread),
    }


def generate_order(
    restaurant_id: uuid.UUID,
    customer_id: uuid.UUID,
    created_at: Optional[datetime] = None,
    delivery_address: Optional[dict] = None,
) -> dict:
    """Generate order data for a ready order."""
    return {
        "order_number": f"ORD-{uuid.uuid4().hex[:10].upper()}",
        "restaurant_id": restaurant_id,
        "customer_id": customer_id,
        "delivery_address": delivery_address if delivery_address is not None else generate_delivery_address(),
        "customer_notes": random.choice([None, "Call on arrival", "Leave at the gate"]),
        "total_amount": random.randint(15, 120) * 100,
        "created_at": created_at or datetime.utcnow() - timedelta(minutes=random.randint(1, 30)),
    }
