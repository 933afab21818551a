"""
Fleet Repository

Read-only access to the collections maintained elsewhere: vehicles,
drivers, maintenance records and routes.
"""

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.document_store import DocumentStoreError, normalize_timestamps

from .models import Driver, MaintenanceRecord, Route, Vehicle
from .protocols import DocumentStoreProtocol, PersistenceError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

FLEET_TIMESTAMP_KEYS = (
    "createdAt", "updatedAt", "licenseExpiry", "scheduledDate",
    "completedDate", "actualEndTime",
)


class FleetRepository:
    """Implements FleetDirectoryProtocol on top of a DocumentStoreProtocol"""

    def __init__(self, store: DocumentStoreProtocol):
        self.store = store

    async def _list(self, collection: str, company_id: str, model: Type[ModelT]) -> List[ModelT]:
        try:
            documents = await self.store.list_documents(collection, company_id)
        except DocumentStoreError as e:
            logger.error(f"Failed to list {collection} for company {company_id}: {e}")
            raise PersistenceError(f"Failed to list {collection}: {e}") from e
        return [item for item in (self._parse(collection, d, model) for d in documents) if item]

    @staticmethod
    def _parse(collection: str, document: Dict[str, Any], model: Type[ModelT]) -> Optional[ModelT]:
        try:
            return model.model_validate(normalize_timestamps(document, FLEET_TIMESTAMP_KEYS))
        except ValidationError as e:
            logger.warning(f"Skipping malformed {collection} document {document.get('id')}: {e}")
            return None

    async def list_vehicles(self, company_id: str) -> List[Vehicle]:
        return await self._list("vehicles", company_id, Vehicle)

    async def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        try:
            document = await self.store.get_document("vehicles", vehicle_id)
        except DocumentStoreError as e:
            logger.error(f"Failed to get vehicle {vehicle_id}: {e}")
            raise PersistenceError(f"Failed to get vehicle: {e}") from e
        return self._parse("vehicles", document, Vehicle) if document else None

    async def list_drivers(self, company_id: str) -> List[Driver]:
        return await self._list("drivers", company_id, Driver)

    async def list_maintenance(self, company_id: str) -> List[MaintenanceRecord]:
        return await self._list("maintenance", company_id, MaintenanceRecord)

    async def list_routes(self, company_id: str) -> List[Route]:
        return await self._list("routes", company_id, Route)
