"""
Trip Service API Tests

HTTP contracts of the trip service: status codes per error code, request
validation and response shapes. The FastAPI app runs in-process over
the in-memory document store.

Usage:
    pytest tests/component/trip_service/test_api.py -v
"""
import pytest
import pytest_asyncio
from unittest.mock import patch
from httpx import AsyncClient, ASGITransport

from core.document_store import DocumentStoreError
from microservices.trip_service.main import app, trip_microservice
from tests.fixtures import make_order_document

from .mocks import VAN_ID

pytestmark = [pytest.mark.api, pytest.mark.component, pytest.mark.asyncio]


# ============================================================================
# Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def client(trip_service):
    """Async HTTP client with the service wired to the in-memory store"""
    with patch.object(trip_microservice, "trip_service", trip_service):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac


@pytest.fixture
def headers(dispatcher_id):
    return {"X-User-Id": dispatcher_id, "X-User-Name": "Meera Iyer"}


@pytest.fixture
def base(company_id):
    return f"/api/v1/companies/{company_id}"


def dispatch_body(**overrides):
    body = {
        "vehicle_id": "veh_truck",
        "driver_id": "drv_ravi",
        "cargo_weight": 3000,
        "origin": "Mumbai",
        "destination": "Pune",
        "estimated_fuel_cost": 150,
    }
    body.update(overrides)
    return body


# ============================================================================
# Health
# ============================================================================

class TestHealthEndpoints:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "trip_service"

    async def test_health_detailed(self, client):
        response = await client.get("/health/detailed")
        assert response.status_code == 200
        data = response.json()
        assert data["database_connected"] is True
        assert data["service"] == "trip_service"

    async def test_service_not_initialized(self):
        """Without a service the API answers 503"""
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/health/detailed")
        assert response.status_code == 503


# ============================================================================
# Dispatch
# ============================================================================

class TestDispatchEndpoints:

    async def test_validate_over_capacity(self, client, base):
        response = await client.post(f"{base}/trips/validate", json={"vehicle_id": "veh_truck", "cargo_weight": 5000})
        assert response.status_code == 200
        data = response.json()
        assert data["allowed"] is False
        assert data["message"] == "Too heavy! This vehicle's max capacity is 4,500 kg."

    async def test_validate_without_vehicle(self, client, base):
        response = await client.post(f"{base}/trips/validate", json={"cargo_weight": 5000})
        assert response.json() == {"allowed": True, "message": None, "checked": False}

    async def test_dispatch_returns_201(self, client, base, headers):
        response = await client.post(f"{base}/trips", json=dispatch_body(), headers=headers)

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["order"]["order_number"] == "TRP-001"
        assert data["order"]["customer_name"] == "Meera Iyer"
        assert data["trip"]["status"] == "booked"
        assert data["trip"]["trip_id"] == "TRP-001"

    async def test_dispatch_over_capacity_returns_400(self, client, base, headers, fleet_store):
        response = await client.post(f"{base}/trips", json=dispatch_body(cargo_weight=5000), headers=headers)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "CAPACITY_EXCEEDED"
        fleet_store.assert_not_called("create_document")

    async def test_dispatch_unknown_vehicle_returns_404(self, client, base, headers):
        response = await client.post(f"{base}/trips", json=dispatch_body(vehicle_id="veh_missing"), headers=headers)
        assert response.status_code == 404
        assert response.json()["error_code"] == "VEHICLE_NOT_FOUND"

    async def test_dispatch_store_failure_returns_500(self, client, base, headers, fleet_store):
        fleet_store.set_error(DocumentStoreError("disk full"), methods=["create_document"])
        response = await client.post(f"{base}/trips", json=dispatch_body(), headers=headers)
        assert response.status_code == 500
        assert response.json()["error_code"] == "CREATE_ERROR"

    async def test_dispatch_requires_user_header(self, client, base):
        response = await client.post(f"{base}/trips", json=dispatch_body())
        assert response.status_code == 422

    @pytest.mark.parametrize("overrides", [
        {"cargo_weight": -5},
        {"origin": ""},
        {"vehicle_id": None},
    ])
    async def test_dispatch_rejects_invalid_body(self, client, base, headers, overrides):
        response = await client.post(f"{base}/trips", json=dispatch_body(**overrides), headers=headers)
        assert response.status_code == 422


# ============================================================================
# Trip board
# ============================================================================

class TestTripBoardEndpoints:

    async def test_list_with_filters(self, client, base, headers):
        await client.post(f"{base}/trips", json=dispatch_body(cargo_weight=1000), headers=headers)
        await client.post(f"{base}/trips", json=dispatch_body(cargo_weight=2000, destination="Nashik"), headers=headers)

        response = await client.get(f"{base}/trips", params={"sort": "cargo_weight", "order": "asc"})
        assert response.status_code == 200
        data = response.json()
        assert data["total_count"] == 2
        assert [t["cargo_weight"] for t in data["trips"]] == [1000.0, 2000.0]
        assert data["status_counts"]["booked"] == 2

        response = await client.get(f"{base}/trips", params={"search": "nashik"})
        assert [t["destination"] for t in response.json()["trips"]] == ["Nashik"]

        response = await client.get(f"{base}/trips", params={"status": "delivered"})
        assert response.json()["total_count"] == 0

    async def test_list_rejects_bad_sort_direction(self, client, base):
        response = await client.get(f"{base}/trips", params={"order": "sideways"})
        assert response.status_code == 422

    async def test_get_trip(self, client, base, company_id, fleet_store):
        document = make_order_document(company_id=company_id, status="picked-up", vehicle_id="veh_gone")
        fleet_store.seed("orders", document)

        response = await client.get(f"{base}/trips/{document['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "in-transit"
        assert data["vehicle_name"] == ""
        assert data["vehicle_capacity"] == 0

    async def test_malformed_trip_returns_500(self, client, base, company_id, fleet_store):
        document = make_order_document(company_id=company_id, status="lost")
        fleet_store.seed("orders", document)

        response = await client.get(f"{base}/trips/{document['id']}")

        assert response.status_code == 500
        assert "malformed" in response.json()["detail"]

    async def test_get_missing_trip_returns_404(self, client, base):
        response = await client.get(f"{base}/trips/ord_missing")
        assert response.status_code == 404
        assert "ord_missing" in response.json()["detail"]

    async def test_store_failure_returns_500(self, client, base, fleet_store):
        fleet_store.set_error(DocumentStoreError("connection reset"))
        response = await client.get(f"{base}/trips")
        assert response.status_code == 500
        assert "connection reset" in response.json()["detail"]


# ============================================================================
# Mutations
# ============================================================================

class TestMutationEndpoints:

    async def _dispatch(self, client, base, headers, **overrides):
        response = await client.post(f"{base}/trips", json=dispatch_body(**overrides), headers=headers)
        return response.json()["order"]["id"]

    async def test_update_status(self, client, base, headers):
        order_id = await self._dispatch(client, base, headers)

        response = await client.put(
            f"{base}/orders/{order_id}/status",
            json={"status": "in-transit", "notes": "Left depot"},
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["order"]["status"] == "in-transit"
        assert data["trip"]["status"] == "in-transit"

    async def test_illegal_status_move_returns_409(self, client, base, headers, company_id, fleet_store):
        document = make_order_document(company_id=company_id, status="cancelled")
        fleet_store.seed("orders", document)

        response = await client.put(
            f"{base}/orders/{document['id']}/status", json={"status": "delivered"}, headers=headers,
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_STATUS"

    async def test_unknown_status_value_returns_422(self, client, base, headers):
        response = await client.put(f"{base}/orders/ord_1/status", json={"status": "lost"}, headers=headers)
        assert response.status_code == 422

    async def test_reassign_over_capacity_returns_400(self, client, base, headers):
        order_id = await self._dispatch(client, base, headers, cargo_weight=3000)

        response = await client.put(
            f"{base}/trips/{order_id}/assignment", json={"vehicle_id": VAN_ID}, headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "CAPACITY_EXCEEDED"

    async def test_reassign(self, client, base, headers):
        order_id = await self._dispatch(client, base, headers, cargo_weight=500)

        response = await client.put(
            f"{base}/trips/{order_id}/assignment", json={"vehicle_id": VAN_ID}, headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["trip"]["vehicle_id"] == VAN_ID

    async def test_delete(self, client, base, headers):
        order_id = await self._dispatch(client, base, headers)

        response = await client.delete(f"{base}/trips/{order_id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["success"] is True

        response = await client.delete(f"{base}/trips/{order_id}", headers=headers)
        assert response.status_code == 404


# ============================================================================
# Analytics
# ============================================================================

class TestAnalyticsEndpoints:

    async def test_order_analytics(self, client, base, company_id, fleet_store):
        for number, price in (("TRP-001", 100), ("TRP-002", 200), ("TRP-003", 300)):
            fleet_store.seed("orders", make_order_document(
                company_id=company_id, order_number=number, total_price=price,
            ))

        response = await client.get(f"{base}/analytics/orders")

        assert response.status_code == 200
        data = response.json()
        assert data["total_orders"] == 3
        assert data["avg_order_value"] == 200

    async def test_dashboard(self, client, base, company_id):
        response = await client.get(f"{base}/analytics/dashboard")

        assert response.status_code == 200
        data = response.json()
        assert data["company_id"] == company_id
        assert data["fleet"]["total_vehicles"] == 2
        assert set(data) >= {"orders", "fleet", "fuel", "costs", "maintenance", "drivers", "performance"}
