"""
Tests for the driver-facing API endpoints.
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from app.schemas.driver_api import LocationFixRequest
from tests.fixtures.test_data import CENTER_LAT, CENTER_LNG

API = "/api/v1"


class TestDriverApiSchemas:
    """Tests for driver API schema validation."""

    def test_location_timestamp_normalized_to_utc(self):
        """Aware timestamps are stored as naive UTC."""
        request = LocationFixRequest(
            lat=6.5,
            lng=3.3,
            timestamp=datetime(2026, 10, 18, 13, 0, tzinfo=timezone.utc),
        )
        assert request.timestamp == datetime(2026, 10, 18, 13, 0)
        assert request.timestamp.tzinfo is None

    def test_location_coordinates_validated(self):
        with pytest.raises(ValueError):
            LocationFixRequest(lat=95.0, lng=3.3)


class TestHealth:
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAvailableOrdersEndpoint:
    """Tests for GET /drivers/{id}/available-orders."""

    async def test_sorted_by_distance(self, client, driver, order_factory):
        far = await order_factory(restaurant="far")
        near = await order_factory(restaurant="near")

        response = await client.get(
            f"{API}/drivers/{driver.id}/available-orders",
            params={"lat": CENTER_LAT, "lng": CENTER_LNG},
        )

        assert response.status_code == 200
        data = response.json()
        assert [o["id"] for o in data] == [str(near.id), str(far.id)]
        assert data[0]["distance_to_restaurant"] < data[1]["distance_to_restaurant"]
        assert "restaurant" in data[0]

    async def test_limit(self, client, driver, order_factory):
        for _ in range(3):
            await order_factory()

        response = await client.get(
            f"{API}/drivers/{driver.id}/available-orders", params={"limit": 2}
        )

        assert response.status_code == 200
        assert len(response.json()) == 2

    async def test_without_location(self, client, driver, order_factory):
        """Without coordinates and no stored position, distances are null."""
        await order_factory()

        response = await client.get(f"{API}/drivers/{driver.id}/available-orders")

        assert response.status_code == 200
        assert response.json()[0]["distance_to_restaurant"] is None


class TestRouteEndpoints:
    """Tests for accepting, delivering and closing."""

    async def test_accept_and_view_route(self, client, driver, order_factory):
        order = await order_factory()

        response = await client.post(
            f"{API}/drivers/{driver.id}/route/orders", json={"order_id": str(order.id)}
        )

        assert response.status_code == 201
        accepted = response.json()
        assert accepted["sequence_number"] == 1
        assert accepted["order_status"] == "picked_up"

        response = await client.get(f"{API}/drivers/{driver.id}/route")
        assert response.status_code == 200
        route = response.json()
        assert route["current_order_count"] == 1
        assert route["max_orders"] == 5
        assert route["route_orders"][0]["order"]["id"] == str(order.id)
        assert route["route_orders"][0]["order"]["status"] == "picked_up"

    async def test_no_active_route(self, client, driver):
        response = await client.get(f"{API}/drivers/{driver.id}/route")

        assert response.status_code == 404

    async def test_capacity_exceeded(self, client, driver, order_factory):
        orders = [await order_factory() for _ in range(6)]
        for order in orders[:5]:
            response = await client.post(
                f"{API}/drivers/{driver.id}/route/orders", json={"order_id": str(order.id)}
            )
            assert response.status_code == 201

        response = await client.post(
            f"{API}/drivers/{driver.id}/route/orders", json={"order_id": str(orders[5].id)}
        )

        assert response.status_code == 409
        assert response.json()["detail"] == "You can only handle 5 orders at a time"

    async def test_order_already_taken(self, client, driver, other_driver, order_factory):
        order = await order_factory()
        await client.post(f"{API}/drivers/{driver.id}/route/orders", json={"order_id": str(order.id)})

        response = await client.post(
            f"{API}/drivers/{other_driver.id}/route/orders", json={"order_id": str(order.id)}
        )

        assert response.status_code == 409

    async def test_unknown_driver(self, client, order_factory):
        order = await order_factory()

        response = await client.post(
            f"{API}/drivers/{uuid4()}/route/orders", json={"order_id": str(order.id)}
        )

        assert response.status_code == 404

    async def test_deliver_and_close(self, client, driver, order_factory):
        order = await order_factory()
        accepted = (await client.post(
            f"{API}/drivers/{driver.id}/route/orders", json={"order_id": str(order.id)}
        )).json()

        response = await client.post(f"{API}/drivers/{driver.id}/route/close")
        assert response.status_code == 409

        response = await client.post(f"{API}/route-orders/{accepted['id']}/start")
        assert response.status_code == 200
        assert response.json()["order_status"] == "delivering"

        response = await client.post(
            f"{API}/route-orders/{accepted['id']}/complete", json={"order_id": str(order.id)}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "delivered"

        response = await client.post(f"{API}/drivers/{driver.id}/route/close")
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

        response = await client.get(f"{API}/drivers/{driver.id}/history")
        assert [item["id"] for item in response.json()] == [str(order.id)]

    async def test_complete_unknown_route_order(self, client):
        response = await client.post(
            f"{API}/route-orders/{uuid4()}/complete", json={"order_id": str(uuid4())}
        )

        assert response.status_code == 404


class TestOnlineAndLocation:
    """Tests for going online and pushing location fixes."""

    async def test_online_then_push_location(self, client, driver, location_tracker):
        response = await client.put(f"{API}/drivers/{driver.id}/online", json={"is_online": True})
        assert response.status_code == 200
        assert response.json() == {"driver_id": str(driver.id), "is_online": True, "tracking": True}

        response = await client.post(
            f"{API}/drivers/{driver.id}/location", json={"lat": 6.51, "lng": 3.37, "accuracy": 10.0}
        )
        assert response.status_code == 202
        await location_tracker.flush(driver.id)
        assert location_tracker.last_known(driver.id).lat == 6.51

        response = await client.put(f"{API}/drivers/{driver.id}/online", json={"is_online": False})
        assert response.json()["tracking"] is False

        response = await client.post(
            f"{API}/drivers/{driver.id}/location", json={"lat": 6.52, "lng": 3.38}
        )
        assert response.status_code == 409

    async def test_push_location_while_offline(self, client, driver):
        response = await client.post(
            f"{API}/drivers/{driver.id}/location", json={"lat": 6.51, "lng": 3.37}
        )

        assert response.status_code == 409

    async def test_online_unknown_driver(self, client):
        response = await client.put(f"{API}/drivers/{uuid4()}/online", json={"is_online": True})

        assert response.status_code == 404


class TestStatsEndpoint:
    async def test_stats(self, client, driver):
        response = await client.get(f"{API}/drivers/{driver.id}/stats")

        assert response.status_code == 200
        assert response.json()["total_deliveries"] == 0

    async def test_stats_unknown_driver(self, client):
        response = await client.get(f"{API}/drivers/{uuid4()}/stats")

        assert response.status_code == 404


class TestOrderEventsEndpoint:
    async def test_recent_events(self, client, driver, order_factory):
        order = await order_factory()
        await client.post(f"{API}/drivers/{driver.id}/route/orders", json={"order_id": str(order.id)})

        response = await client.get(f"{API}/drivers/{driver.id}/events/recent")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["events"][0]["event_type"] == "order_accepted"
