"""
Trip Service component fixtures

A company with two vehicles and one driver, seeded into the in-memory
document store, and a TripService wired to it through the real
repositories.
"""
import pytest

from microservices.trip_service.fleet_repository import FleetRepository
from microservices.trip_service.models import DispatcherContext
from microservices.trip_service.order_repository import OrderRepository
from microservices.trip_service.trip_service import TripService
from tests.fixtures import make_driver_document, make_vehicle_document

from .mocks import DRIVER_ID, FOREIGN_VEHICLE_ID, TRUCK_ID, VAN_ID, MockDocumentStore


@pytest.fixture
def store():
    """Empty in-memory document store"""
    return MockDocumentStore()


@pytest.fixture
def fleet_store(store, company_id):
    """Store seeded with the company's fleet directory"""
    store.seed("vehicles", make_vehicle_document(
        vehicle_id=TRUCK_ID, company_id=company_id,
        registration_number="MH 12 AB 1234", vehicle_type="truck", capacity_weight=4500.0,
    ))
    store.seed("vehicles", make_vehicle_document(
        vehicle_id=VAN_ID, company_id=company_id,
        registration_number="MH 14 CD 5678", vehicle_type="van", capacity_weight=1000.0,
    ))
    store.seed("vehicles", make_vehicle_document(
        vehicle_id=FOREIGN_VEHICLE_ID, company_id="cmp_someone_else", capacity_weight=20000.0,
    ))
    store.seed("drivers", make_driver_document(
        driver_id=DRIVER_ID, company_id=company_id, display_name="Ravi Kumar",
    ))
    return store


@pytest.fixture
def order_repository(fleet_store):
    return OrderRepository(fleet_store)


@pytest.fixture
def trip_service(fleet_store, order_repository, fleet_config):
    """TripService over the seeded store"""
    return TripService(
        repository=order_repository,
        fleet=FleetRepository(fleet_store),
        config=fleet_config,
    )


@pytest.fixture
def dispatcher(company_id, dispatcher_id):
    return DispatcherContext(company_id=company_id, user_id=dispatcher_id)
