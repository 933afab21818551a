"""
Shared Test Fixtures

Centralized factories used across all test layers.

Structure:
    - common.py: Base ID generators, timestamps
    - trip_fixtures.py: Order, vehicle, driver, maintenance and route factories
"""

# Common utilities
from .common import (
    make_company_id,
    make_user_id,
    make_document_id,
    make_timestamp,
)

# Trip service fixtures
from .trip_fixtures import (
    DEFAULT_COMPANY_ID,
    REFERENCE_TIME,
    make_order_document,
    make_order,
    make_vehicle_document,
    make_vehicle,
    make_driver_document,
    make_driver,
    make_maintenance_document,
    make_maintenance_record,
    make_route_document,
    make_route,
    make_dispatch_request,
)

__all__ = [
    "make_company_id",
    "make_user_id",
    "make_document_id",
    "make_timestamp",
    "DEFAULT_COMPANY_ID",
    "REFERENCE_TIME",
    "make_order_document",
    "make_order",
    "make_vehicle_document",
    "make_vehicle",
    "make_driver_document",
    "make_driver",
    "make_maintenance_document",
    "make_maintenance_record",
    "make_route_document",
    "make_route",
    "make_dispatch_request",
]
