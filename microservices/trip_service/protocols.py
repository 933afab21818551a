"""
Trip Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

# Import only models (no I/O dependencies)
from .models import (
    Driver, MaintenanceRecord, Order, OrderCreate, Route, TrackingEvent, Vehicle,
)


# ============================================================================
# Custom Exceptions - defined here to avoid importing repository
# ============================================================================

class TripServiceError(Exception):
    """Base exception for trip service errors"""
    pass


class OrderNotFoundError(TripServiceError):
    """Order not found error"""
    pass


class OrderValidationError(TripServiceError):
    """Order validation error"""
    pass


class InvalidOrderStateError(TripServiceError):
    """Invalid order status transition"""
    pass


class DuplicateOrderNumberError(TripServiceError):
    """Order number already taken within the company"""
    pass


class PersistenceError(TripServiceError):
    """Document store read or write failed"""
    pass


# ============================================================================
# Persistence Collaborator Protocol
# ============================================================================

@runtime_checkable
class DocumentStoreProtocol(Protocol):
    """
    Interface for the company-scoped document store.

    Documents are dicts with camelCase keys. The store owns `id`,
    `companyId`, `createdAt` and `updatedAt`.
    """

    async def list_documents(
        self,
        collection: str,
        company_id: str,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """List a company's documents, newest first"""
        ...

    async def get_document(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def create_document(
        self,
        collection: str,
        company_id: str,
        data: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Insert and return the stored document"""
        ...

    async def update_document(
        self,
        collection: str,
        document_id: str,
        fields: Dict[str, Any],
    ) -> None:
        """Merge fields; raises DocumentNotFoundError when absent"""
        ...

    async def append_to_list(
        self,
        collection: str,
        document_id: str,
        field: str,
        items: List[Any],
        fields: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Atomically extend a list field and merge `fields`"""
        ...

    async def delete_document(self, collection: str, document_id: str) -> bool:
        ...

    async def count_documents(self, collection: str, company_id: str) -> int:
        ...

    async def next_sequence(
        self,
        company_id: str,
        name: str,
        seed_collection: Optional[str] = None,
    ) -> int:
        """Atomically reserve the next counter value"""
        ...

    async def health_check(self) -> Dict[str, Any]:
        ...


# ============================================================================
# Repository Protocols
# ============================================================================

@runtime_checkable
class OrderRepositoryProtocol(Protocol):
    """
    Interface for Order Repository.

    The only component doing raw I/O on the orders collection.
    """

    async def list_orders(self, company_id: str) -> List[Order]:
        ...

    async def get_order(self, order_id: str) -> Optional[Order]:
        ...

    async def create_order(self, order: OrderCreate) -> Order:
        ...

    async def update_order(self, order_id: str, fields: Dict[str, Any]) -> None:
        ...

    async def append_tracking_event(
        self,
        order_id: str,
        event: TrackingEvent,
        fields: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...

    async def delete_order(self, order_id: str) -> None:
        ...

    async def count_orders(self, company_id: str) -> int:
        ...

    async def next_order_sequence(self, company_id: str) -> int:
        ...


@runtime_checkable
class FleetDirectoryProtocol(Protocol):
    """Read-only access to vehicles, drivers, maintenance and routes"""

    async def list_vehicles(self, company_id: str) -> List[Vehicle]:
        ...

    async def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        ...

    async def list_drivers(self, company_id: str) -> List[Driver]:
        ...

    async def list_maintenance(self, company_id: str) -> List[MaintenanceRecord]:
        ...

    async def list_routes(self, company_id: str) -> List[Route]:
        ...
