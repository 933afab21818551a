"""
Trip Service Factory

Factory functions for creating service instances with real dependencies.
This is the ONLY place that imports I/O-dependent modules.

Usage:
    from .factory import create_trip_service
    service = create_trip_service(store=store)
"""
from typing import Optional

from core.config import FleetSettings, get_settings

from .protocols import DocumentStoreProtocol
from .trip_service import TripService


def create_trip_service(
    store: Optional[DocumentStoreProtocol] = None,
    settings: Optional[FleetSettings] = None,
) -> TripService:
    """
    Create TripService with real dependencies.

    When no store is given, a PostgresDocumentStore is built from the
    infrastructure settings. The caller owns its lifecycle (connect/close).
    Use this in production, NOT in tests.

    Args:
        store: Document store to read and write through
        settings: Platform settings (defaults to get_settings())

    Returns:
        Configured TripService instance
    """
    settings = settings or get_settings()

    # Import real store and repositories here (not at module level)
    from core.document_store import PostgresDocumentStore
    from .fleet_repository import FleetRepository
    from .order_repository import OrderRepository

    if store is None:
        store = PostgresDocumentStore.from_config(settings.infrastructure)

    return TripService(
        repository=OrderRepository(store),
        fleet=FleetRepository(store),
        config=settings.fleet,
    )
