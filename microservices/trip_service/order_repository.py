"""
Order Repository

Data access layer for the orders collection. The only component that reads
or writes order documents.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python

from core.document_store import (
    DocumentNotFoundError, DocumentStoreError, DuplicateDocumentError,
    normalize_timestamps,
)

from .models import Order, OrderCreate, TrackingEvent
from .protocols import (
    DocumentStoreProtocol, DuplicateOrderNumberError, OrderNotFoundError,
    PersistenceError,
)

logger = logging.getLogger(__name__)

ORDERS_COLLECTION = "orders"
ORDER_SEQUENCE = "order_number"
TRACKING_FIELD = "tracking"

ORDER_TIMESTAMP_KEYS = (
    "createdAt", "updatedAt", "timestamp",
    "scheduledPickupTime", "scheduledDeliveryTime",
    "actualPickupTime", "actualDeliveryTime",
)


def order_from_document(document: Dict[str, Any]) -> Order:
    return Order.model_validate(normalize_timestamps(document, ORDER_TIMESTAMP_KEYS))


def fields_to_document(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize a snake_case partial update into document keys and JSON values"""
    return {
        to_camel(key): to_jsonable_python(value, by_alias=True, exclude_none=True)
        for key, value in fields.items()
    }


class OrderRepository:
    """
    Repository for order documents

    Implements OrderRepositoryProtocol on top of a DocumentStoreProtocol.
    """

    def __init__(self, store: DocumentStoreProtocol):
        self.store = store
        self.collection = ORDERS_COLLECTION

    async def list_orders(self, company_id: str) -> List[Order]:
        """All orders of a company, newest first"""
        try:
            documents = await self.store.list_documents(self.collection, company_id)
        except DocumentStoreError as e:
            logger.error(f"Failed to list orders for company {company_id}: {e}")
            raise PersistenceError(f"Failed to list orders: {e}") from e

        orders = []
        for document in documents:
            try:
                orders.append(order_from_document(document))
            except ValidationError as e:
                logger.warning(f"Skipping malformed order {document.get('id')}: {e}")
        return orders

    async def get_order(self, order_id: str) -> Optional[Order]:
        try:
            document = await self.store.get_document(self.collection, order_id)
        except DocumentStoreError as e:
            logger.error(f"Failed to get order {order_id}: {e}")
            raise PersistenceError(f"Failed to get order: {e}") from e
        if document is None:
            return None
        try:
            return order_from_document(document)
        except ValidationError as e:
            logger.error(f"Stored order {order_id} is malformed: {e}")
            raise PersistenceError(f"Order {order_id} is malformed") from e

    async def create_order(self, order: OrderCreate) -> Order:
        """Persist a new order; the store assigns id, createdAt and updatedAt"""
        try:
            document = await self.store.create_document(
                self.collection, order.company_id, order.to_document()
            )
        except DuplicateDocumentError as e:
            logger.error(f"Order number {order.order_number} already used in company {order.company_id}")
            raise DuplicateOrderNumberError(
                f"Order number {order.order_number} already exists"
            ) from e
        except DocumentStoreError as e:
            logger.error(f"Failed to create order {order.order_number}: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(f"Order stored: {document['id']} ({order.order_number})")
        return order_from_document(document)

    async def update_order(self, order_id: str, fields: Dict[str, Any]) -> None:
        """Merge a partial update; the store refreshes updatedAt"""
        try:
            await self.store.update_document(
                self.collection, order_id, fields_to_document(fields)
            )
        except DocumentNotFoundError as e:
            raise OrderNotFoundError(f"Order not found: {order_id}") from e
        except DocumentStoreError as e:
            logger.error(f"Failed to update order {order_id}: {e}")
            raise PersistenceError(str(e)) from e

    async def append_tracking_event(
        self,
        order_id: str,
        event: TrackingEvent,
        fields: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Append one tracking event and merge `fields` in a single store write"""
        try:
            await self.store.append_to_list(
                self.collection,
                order_id,
                TRACKING_FIELD,
                [event.to_document()],
                fields_to_document(fields or {}),
            )
        except DocumentNotFoundError as e:
            raise OrderNotFoundError(f"Order not found: {order_id}") from e
        except DocumentStoreError as e:
            logger.error(f"Failed to append tracking to order {order_id}: {e}")
            raise PersistenceError(str(e)) from e

    async def delete_order(self, order_id: str) -> None:
        """Remove an order outright"""
        try:
            deleted = await self.store.delete_document(self.collection, order_id)
        except DocumentStoreError as e:
            logger.error(f"Failed to delete order {order_id}: {e}")
            raise PersistenceError(str(e)) from e
        if not deleted:
            raise OrderNotFoundError(f"Order not found: {order_id}")

    async def count_orders(self, company_id: str) -> int:
        try:
            return await self.store.count_documents(self.collection, company_id)
        except DocumentStoreError as e:
            logger.error(f"Failed to count orders for company {company_id}: {e}")
            raise PersistenceError(str(e)) from e

    async def next_order_sequence(self, company_id: str) -> int:
        """Reserve the next order index for a company, continuing after existing orders"""
        try:
            return await self.store.next_sequence(
                company_id, ORDER_SEQUENCE, seed_collection=self.collection
            )
        except DocumentStoreError as e:
            logger.error(f"Failed to reserve order number for company {company_id}: {e}")
            raise PersistenceError(str(e)) from e
