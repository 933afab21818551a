"""
Repository Component Tests

OrderRepository and FleetRepository over the in-memory document store:
document mapping, error translation and sequence reservation.
"""
import pytest
from datetime import datetime, timezone

from core.document_store import DocumentStoreError
from microservices.trip_service.dispatch_validator import build_dispatch_order
from microservices.trip_service.fleet_repository import FleetRepository
from microservices.trip_service.models import DispatcherContext, OrderStatus, TrackingEvent
from microservices.trip_service.protocols import (
    DuplicateOrderNumberError,
    OrderNotFoundError,
    PersistenceError,
)
from tests.fixtures import (
    REFERENCE_TIME,
    make_dispatch_request,
    make_driver_document,
    make_order_document,
    make_vehicle_document,
)

from .mocks import TRUCK_ID

pytestmark = [pytest.mark.component, pytest.mark.asyncio]


@pytest.fixture
def new_order(company_id):
    context = DispatcherContext(company_id=company_id, user_id="usr_dispatcher")
    return build_dispatch_order(make_dispatch_request(), context, "TRP-001", now=REFERENCE_TIME)


class TestOrderRepository:
    """OrderRepository"""

    async def test_create_assigns_id_and_timestamps(self, order_repository, store, new_order):
        order = await order_repository.create_order(new_order)

        assert order.id
        assert order.created_at is not None
        assert order.updated_at == order.created_at
        assert order.order_number == "TRP-001"
        assert order.tracking[0].timestamp == REFERENCE_TIME

        [stored] = store.documents("orders")
        assert stored["orderNumber"] == "TRP-001"
        assert stored["pickupLocation"]["address"] == "Mumbai"
        assert stored["status"] == "confirmed"

    async def test_get_order(self, order_repository, new_order):
        created = await order_repository.create_order(new_order)
        fetched = await order_repository.get_order(created.id)
        assert fetched == created

    async def test_get_missing_order(self, order_repository):
        assert await order_repository.get_order("ord_missing") is None

    async def test_get_malformed_order(self, order_repository, store, company_id):
        store.seed("orders", make_order_document(order_id="ord_bad", company_id=company_id, status="lost"))

        with pytest.raises(PersistenceError, match="ord_bad is malformed"):
            await order_repository.get_order("ord_bad")

    async def test_append_tracking_event(self, order_repository, store, new_order):
        created = await order_repository.create_order(new_order)
        event = TrackingEvent(
            status=OrderStatus.IN_TRANSIT, timestamp=REFERENCE_TIME, updated_by="usr_dispatcher",
        )

        await order_repository.append_tracking_event(created.id, event, {"status": OrderStatus.IN_TRANSIT})
        updated = await order_repository.get_order(created.id)

        assert updated.status == OrderStatus.IN_TRANSIT
        assert [e.status for e in updated.tracking] == [OrderStatus.CONFIRMED, OrderStatus.IN_TRANSIT]
        store.assert_called_with("append_to_list", field="tracking")

    async def test_append_tracking_to_missing_order(self, order_repository):
        event = TrackingEvent(status=OrderStatus.CANCELLED, timestamp=REFERENCE_TIME, updated_by="usr_1")
        with pytest.raises(OrderNotFoundError):
            await order_repository.append_tracking_event("ord_missing", event)

    async def test_duplicate_order_number(self, order_repository, new_order):
        await order_repository.create_order(new_order)
        with pytest.raises(DuplicateOrderNumberError):
            await order_repository.create_order(new_order)

    async def test_same_number_in_other_company(self, order_repository, new_order):
        await order_repository.create_order(new_order)
        other = new_order.model_copy(update={"company_id": "cmp_other"})
        created = await order_repository.create_order(other)
        assert created.company_id == "cmp_other"

    async def test_list_newest_first_and_skip_malformed(self, order_repository, store, company_id):
        store.seed("orders", make_order_document(
            order_id="ord_old", company_id=company_id, created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ))
        store.seed("orders", make_order_document(
            order_id="ord_new", company_id=company_id, created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        ))
        store.seed("orders", make_order_document(order_id="ord_bad", company_id=company_id, status="lost"))

        orders = await order_repository.list_orders(company_id)

        assert [o.id for o in orders] == ["ord_new", "ord_old"]

    async def test_update_merges_fields(self, order_repository, new_order):
        created = await order_repository.create_order(new_order)
        delivered_at = datetime(2024, 6, 2, 18, 0, tzinfo=timezone.utc)

        await order_repository.update_order(created.id, {
            "status": OrderStatus.DELIVERED,
            "actual_delivery_time": delivered_at,
        })
        updated = await order_repository.get_order(created.id)

        assert updated.status == OrderStatus.DELIVERED
        assert updated.actual_delivery_time == delivered_at
        assert updated.order_number == "TRP-001"
        assert updated.created_at == created.created_at

    async def test_update_missing_order(self, order_repository):
        with pytest.raises(OrderNotFoundError):
            await order_repository.update_order("ord_missing", {"status": OrderStatus.CANCELLED})

    async def test_delete(self, order_repository, new_order):
        created = await order_repository.create_order(new_order)
        await order_repository.delete_order(created.id)
        assert await order_repository.get_order(created.id) is None

    async def test_delete_missing_order(self, order_repository):
        with pytest.raises(OrderNotFoundError):
            await order_repository.delete_order("ord_missing")

    async def test_count(self, order_repository, store, company_id):
        for number in ("TRP-001", "TRP-002"):
            store.seed("orders", make_order_document(company_id=company_id, order_number=number))
        store.seed("orders", make_order_document(company_id="cmp_other"))
        assert await order_repository.count_orders(company_id) == 2

    async def test_sequence_continues_after_existing_orders(self, order_repository, store, company_id):
        for number in ("TRP-001", "TRP-002"):
            store.seed("orders", make_order_document(company_id=company_id, order_number=number))

        assert await order_repository.next_order_sequence(company_id) == 3
        assert await order_repository.next_order_sequence(company_id) == 4
        store.assert_called_with("next_sequence", company_id=company_id, seed_collection="orders")

    async def test_store_errors_become_persistence_errors(self, order_repository, store, company_id, new_order):
        store.set_error(DocumentStoreError("unavailable"))

        with pytest.raises(PersistenceError):
            await order_repository.list_orders(company_id)
        with pytest.raises(PersistenceError):
            await order_repository.create_order(new_order)
        with pytest.raises(PersistenceError):
            await order_repository.next_order_sequence(company_id)


class TestFleetRepository:
    """FleetRepository"""

    async def test_lists_are_company_scoped(self, fleet_store, company_id):
        fleet = FleetRepository(fleet_store)

        vehicles = await fleet.list_vehicles(company_id)
        drivers = await fleet.list_drivers(company_id)

        assert sorted(v.id for v in vehicles) == ["veh_truck", "veh_van"]
        assert [d.display_name for d in drivers] == ["Ravi Kumar"]

    async def test_get_vehicle(self, fleet_store):
        vehicle = await FleetRepository(fleet_store).get_vehicle(TRUCK_ID)
        assert vehicle.capacity_weight == 4500.0
        assert await FleetRepository(fleet_store).get_vehicle("veh_missing") is None

    async def test_exported_timestamps_are_parsed(self, store, company_id):
        document = make_driver_document(driver_id="drv_x", company_id=company_id, license_expiry=None)
        document["licenseExpiry"] = {"seconds": 1893456000, "nanoseconds": 0}
        store.seed("drivers", document)

        [driver] = await FleetRepository(store).list_drivers(company_id)

        assert driver.license_expiry == datetime(2030, 1, 1, tzinfo=timezone.utc)

    async def test_malformed_documents_are_skipped(self, store, company_id):
        store.seed("vehicles", make_vehicle_document(vehicle_id="veh_ok", company_id=company_id))
        store.seed("vehicles", make_vehicle_document(vehicle_id="veh_bad", company_id=company_id,
                                                     vehicle_type="hovercraft"))

        vehicles = await FleetRepository(store).list_vehicles(company_id)

        assert [v.id for v in vehicles] == ["veh_ok"]

    async def test_store_error(self, store, company_id):
        store.set_error(DocumentStoreError("unavailable"), methods=["list_documents"])
        with pytest.raises(PersistenceError):
            await FleetRepository(store).list_routes(company_id)
