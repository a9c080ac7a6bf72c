"""
Integration tests for the kennel board API

Tests the HTTP surface end to end: camelCase payloads, the response
envelope, and error kinds mapped to status codes.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from main import app
from app.services.assignment_service import get_assignment_service
from app.services.booking_store import get_booking_store
from app.services.occupancy_service import get_occupancy_service
from app.services.reassignment_service import get_reassignment_service
from app.services.resource_catalog import get_resource_catalog

pytestmark = pytest.mark.integration


@pytest.fixture
async def client(services):
    app.dependency_overrides[get_resource_catalog] = lambda: services.catalog
    app.dependency_overrides[get_booking_store] = lambda: services.store
    app.dependency_overrides[get_assignment_service] = lambda: services.assignments
    app.dependency_overrides[get_reassignment_service] = lambda: services.reassignments
    app.dependency_overrides[get_occupancy_service] = lambda: services.occupancy

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()


async def create_kennel(client, name="K1", capacity=1, **fields):
    response = await client.post("/api/v1/kennels", json={"name": name, "capacity": capacity, **fields})
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def create_booking(client, pet_name="Rex"):
    response = await client.post("/api/v1/bookings", json={"petName": pet_name, "ownerName": "Okafor"})
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestRootEndpoints:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestKennelEndpoints:
    """Test the kennel catalog routes"""

    @pytest.mark.asyncio
    async def test_create_and_get(self, client):
        kennel = await create_kennel(client, "Suite 1", 2, kennelType="SUITE", building="North")

        assert kennel["kennelType"] == "SUITE"
        assert kennel["isActive"] is True
        assert kennel["floor"] == "Main Floor"

        response = await client.get(f"/api/v1/kennels/{kennel['id']}")
        assert response.status_code == 200
        body = response.json()
        assert body["data"]["name"] == "Suite 1"
        assert "timestamp" in body["metadata"]

    @pytest.mark.asyncio
    async def test_unknown_kennel_is_404(self, client):
        response = await client.get("/api/v1/kennels/missing")
        assert response.status_code == 404
        assert response.json() == {"errorKind": "NotFoundError", "message": "Kennel 'missing' not found"}

    @pytest.mark.asyncio
    async def test_bad_body_is_422_validation_error(self, client):
        response = await client.post("/api/v1/kennels", json={"name": "K", "capacity": 0})
        assert response.status_code == 422
        assert response.json()["errorKind"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_board_for_a_day(self, client):
        kennel = await create_kennel(client, "K1", 1)
        booking = await create_booking(client)
        await client.post(
            f"/api/v1/bookings/{booking['id']}/segments",
            json={"kennelId": kennel["id"], "startDate": "2024-06-01", "endDate": "2024-06-03"},
        )

        response = await client.get("/api/v1/kennels", params={"date": "2024-06-02"})
        assert response.status_code == 200
        cards = response.json()["data"]
        assert cards[0]["occupied"] == 1
        assert cards[0]["status"] == "full"
        assert cards[0]["utilizationPercent"] == 100

    @pytest.mark.asyncio
    async def test_patch_and_toggle(self, client):
        kennel = await create_kennel(client)
        response = await client.patch(f"/api/v1/kennels/{kennel['id']}", json={"capacity": 3, "notes": "by the door"})
        assert response.status_code == 200
        assert response.json()["data"]["capacity"] == 3

        response = await client.put(f"/api/v1/kennels/{kennel['id']}/active", json={"isActive": False})
        assert response.status_code == 200
        assert response.json()["data"]["isActive"] is False

    @pytest.mark.asyncio
    async def test_patch_null_flag_is_422(self, client):
        kennel = await create_kennel(client)
        response = await client.patch(f"/api/v1/kennels/{kennel['id']}", json={"specialHandling": None})
        assert response.status_code == 422
        assert response.json()["errorKind"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_delete_guarded_then_archived(self, client):
        kennel = await create_kennel(client)
        booking = await create_booking(client)
        await client.post(
            f"/api/v1/bookings/{booking['id']}/segments",
            json={"kennelId": kennel["id"], "startDate": "2020-01-01", "endDate": "2020-01-02"},
        )

        response = await client.delete(f"/api/v1/kennels/{kennel['id']}")
        assert response.status_code == 409
        assert response.json()["errorKind"] == "GuardError"

        response = await client.delete(f"/api/v1/kennels/{kennel['id']}", params={"cascade": "keep_history"})
        assert response.status_code == 200
        assert response.json()["data"] == {"kennelId": kennel["id"], "outcome": "archived", "segmentsMoved": 0}


class TestBookingEndpoints:
    """Test booking and segment commands"""

    @pytest.mark.asyncio
    async def test_assign_conflict_is_409(self, client):
        kennel = await create_kennel(client, "K1", 1)
        first = await create_booking(client, "A")
        second = await create_booking(client, "B")
        payload = {"kennelId": kennel["id"], "startDate": "2024-06-01", "endDate": "2024-06-03"}

        response = await client.post(f"/api/v1/bookings/{first['id']}/segments", json=payload)
        assert response.status_code == 201
        segment = response.json()["data"]
        assert segment["petName"] == "A"
        assert segment["startDate"] == "2024-06-01"

        response = await client.post(f"/api/v1/bookings/{second['id']}/segments", json=payload)
        assert response.status_code == 409
        assert response.json()["errorKind"] == "CapacityExceededError"

    @pytest.mark.asyncio
    async def test_reversed_range_is_422(self, client):
        kennel = await create_kennel(client)
        booking = await create_booking(client)
        response = await client.post(
            f"/api/v1/bookings/{booking['id']}/segments",
            json={"kennelId": kennel["id"], "startDate": "2024-06-05", "endDate": "2024-06-01"},
        )
        assert response.status_code == 422
        assert response.json()["errorKind"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_move_and_unassign(self, client):
        k1 = await create_kennel(client, "K1")
        k2 = await create_kennel(client, "K2")
        booking = await create_booking(client)
        response = await client.post(
            f"/api/v1/bookings/{booking['id']}/segments",
            json={"kennelId": k1["id"], "startDate": "2024-06-01", "endDate": "2024-06-03"},
        )
        segment_id = response.json()["data"]["id"]

        response = await client.put(
            f"/api/v1/segments/{segment_id}",
            json={"kennelId": k2["id"], "startDate": "2024-06-02", "endDate": "2024-06-04"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["kennelId"] == k2["id"]

        response = await client.delete(f"/api/v1/segments/{segment_id}")
        assert response.status_code == 200

        response = await client.get(f"/api/v1/bookings/{booking['id']}")
        assert response.json()["data"]["segments"] == []

    @pytest.mark.asyncio
    async def test_create_booking(self, client):
        booking = await create_booking(client, "Mochi")
        assert booking["status"] == "PENDING"
        assert booking["petName"] == "Mochi"
        assert booking["segments"] == []

    @pytest.mark.asyncio
    async def test_status_change(self, client):
        booking = await create_booking(client)
        response = await client.put(f"/api/v1/bookings/{booking['id']}/status", json={"status": "CANCELLED"})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "CANCELLED"

        response = await client.get("/api/v1/bookings", params={"status": "CANCELLED"})
        assert [b["id"] for b in response.json()["data"]] == [booking["id"]]


class TestOccupancyEndpoints:
    """Test the read-only occupancy views"""

    @pytest.mark.asyncio
    async def test_occupancy_window(self, client):
        kennel = await create_kennel(client, "K1", 2, building="North", floor="Ground")
        booking = await create_booking(client)
        await client.post(
            f"/api/v1/bookings/{booking['id']}/segments",
            json={"kennelId": kennel["id"], "startDate": "2024-06-01", "endDate": "2024-06-02"},
        )

        response = await client.get("/api/v1/occupancy", params={"start": "2024-06-01", "end": "2024-06-03"})
        assert response.status_code == 200
        data = response.json()["data"]
        row = data["kennels"][0]
        assert row["occupied"] == 1
        assert [d["occupied"] for d in row["days"]] == [1, 1, 0]
        assert data["summary"]["overallUtilizationPercent"] == 50

        response = await client.get("/api/v1/occupancy/locations", params={"date": "2024-06-01"})
        groups = response.json()["data"]["groups"]
        assert groups[0]["key"] == "North - Ground"
        assert groups[0]["occupied"] == 1

        response = await client.get("/api/v1/occupancy/types", params={"date": "2024-06-01"})
        assert response.json()["data"]["types"][0]["kennelType"] == "KENNEL"

    @pytest.mark.asyncio
    async def test_heatmap(self, client):
        await create_kennel(client, "K1", 1)
        response = await client.get("/api/v1/occupancy/heatmap", params={"start": "2024-06-01", "end": "2024-06-07"})
        assert response.status_code == 200
        row = response.json()["data"]["rows"][0]
        assert len(row["cells"]) == 7
        assert {cell["bucket"] for cell in row["cells"]} == {"empty"}

    @pytest.mark.asyncio
    async def test_heatmap_range_limit(self, client):
        response = await client.get("/api/v1/occupancy/heatmap", params={"start": "2024-01-01", "end": "2024-12-31"})
        assert response.status_code == 422
        assert response.json()["errorKind"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_occupancy_range_limit(self, client):
        await create_kennel(client, "K1", 1)
        response = await client.get("/api/v1/occupancy", params={"start": "2000-01-01", "end": "2099-12-31"})
        assert response.status_code == 422
        assert response.json()["errorKind"] == "ValidationError"
