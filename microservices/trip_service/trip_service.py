"""
Trip Service Business Logic

Dispatch flow, trip board queries, status advancement, reassignment and
analytics for a company's fleet.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from core.config import FleetConfig

from .analytics import build_dashboard, compute_order_analytics
from .dispatch_validator import (
    build_dispatch_order, format_order_number, plan_status_change,
    validate_dispatch,
)
from .models import (
    DashboardResponse, DispatcherContext, DispatchRequest, DispatchResponse,
    DispatchValidation, Order, OrderAnalytics, OrderStatus, Trip,
    TripListResponse, Vehicle,
)
from .protocols import (
    DuplicateOrderNumberError, FleetDirectoryProtocol, InvalidOrderStateError,
    OrderNotFoundError, OrderRepositoryProtocol, OrderValidationError,
    PersistenceError, TripServiceError,
)
from .trip_projector import (
    count_trips_by_status, filter_trips, project_trip, project_trips, sort_trips,
)

logger = logging.getLogger(__name__)


class TripService:
    """
    Trip dispatch business logic

    Write operations return DispatchResponse; reads raise TripServiceError
    subclasses.
    """

    def __init__(
        self,
        repository: OrderRepositoryProtocol,
        fleet: FleetDirectoryProtocol,
        config: Optional[FleetConfig] = None,
    ):
        """
        Initialize Trip Service

        Args:
            repository: Order repository (dependency injection)
            fleet: Read-only vehicle/driver/maintenance/route directory
            config: Fleet thresholds and order numbering
        """
        self.repository = repository
        self.fleet = fleet
        self.config = config or FleetConfig()
        logger.info("TripService initialized")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _vehicle_for_company(self, vehicle_id: str, company_id: str) -> Optional[Vehicle]:
        vehicle = await self.fleet.get_vehicle(vehicle_id)
        if vehicle is None or (vehicle.company_id and vehicle.company_id != company_id):
            return None
        return vehicle

    async def _project(self, order: Order) -> Trip:
        drivers, vehicles = await asyncio.gather(
            self.fleet.list_drivers(order.company_id),
            self.fleet.list_vehicles(order.company_id),
        )
        return project_trip(
            order,
            {d.id: d.display_name for d in drivers},
            {v.id: v for v in vehicles},
        )

    async def _settled_view(self, order: Order) -> Optional[Trip]:
        """Trip view after a committed write; None when the fleet directory is unavailable"""
        try:
            return await self._project(order)
        except PersistenceError as e:
            logger.warning(f"Order {order.id} saved but its trip view could not be built: {e}")
            return None

    async def _reload(self, order_id: str) -> Tuple[Optional[Order], Optional[Trip]]:
        """Re-read an order after a committed write without failing the write"""
        try:
            order = await self.repository.get_order(order_id)
        except PersistenceError as e:
            logger.warning(f"Order {order_id} updated but could not be re-read: {e}")
            return None, None
        if order is None:
            return None, None
        return order, await self._settled_view(order)

    @staticmethod
    def _validate_dispatch_request(request: DispatchRequest) -> None:
        missing = [
            name for name in ("vehicle_id", "driver_id", "origin", "destination")
            if not (getattr(request, name) or "").strip()
        ]
        if missing:
            raise OrderValidationError(f"Missing required fields: {', '.join(missing)}")
        if request.cargo_weight is None or request.cargo_weight < 0:
            raise OrderValidationError("Cargo weight must be a non-negative number")

    async def _get_company_order(self, company_id: str, order_id: str) -> Order:
        order = await self.repository.get_order(order_id)
        if order is None or order.company_id != company_id:
            raise OrderNotFoundError(f"Order not found: {order_id}")
        return order

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def check_dispatch(
        self,
        company_id: str,
        cargo_weight: float,
        vehicle_id: Optional[str] = None,
    ) -> DispatchValidation:
        """Run the capacity check for the currently selected vehicle"""
        if not vehicle_id:
            return validate_dispatch(cargo_weight, None)
        try:
            vehicle = await self._vehicle_for_company(vehicle_id, company_id)
        except PersistenceError as e:
            raise TripServiceError(f"Failed to load vehicle: {e}") from e
        if vehicle is None:
            return DispatchValidation(allowed=False, message=f"Vehicle not found: {vehicle_id}")
        return validate_dispatch(cargo_weight, vehicle.capacity_weight or 0.0)

    async def dispatch_trip(
        self,
        context: DispatcherContext,
        request: DispatchRequest,
    ) -> DispatchResponse:
        """
        Validate and create a confirmed trip

        Args:
            context: Company and dispatcher identity
            request: Dispatch form submission

        Returns:
            DispatchResponse with the stored order and its trip view
        """
        company_id = context.company_id
        try:
            self._validate_dispatch_request(request)

            vehicle = await self._vehicle_for_company(request.vehicle_id, company_id)
            if vehicle is None:
                return DispatchResponse(
                    success=False,
                    message=f"Vehicle not found: {request.vehicle_id}",
                    error_code="VEHICLE_NOT_FOUND",
                )

            validation = validate_dispatch(request.cargo_weight, vehicle.capacity_weight or 0.0)
            if not validation.allowed:
                logger.info(
                    f"Dispatch rejected for company {company_id}: "
                    f"{request.cargo_weight} kg on vehicle {vehicle.id}"
                )
                return DispatchResponse(
                    success=False,
                    message=validation.message,
                    error_code="CAPACITY_EXCEEDED",
                )

            sequence = await self.repository.next_order_sequence(company_id)
            order_number = format_order_number(
                sequence,
                self.config.order_number_prefix,
                self.config.order_number_padding,
            )
            new_order = build_dispatch_order(
                request, context, order_number, currency=self.config.default_currency
            )
            order = await self.repository.create_order(new_order)

        except OrderValidationError as e:
            return DispatchResponse(success=False, message=str(e), error_code="VALIDATION_ERROR")
        except (DuplicateOrderNumberError, PersistenceError) as e:
            logger.error(f"Failed to create trip for company {company_id}: {e}")
            return DispatchResponse(
                success=False,
                message=f"Failed to create trip: {e}",
                error_code="CREATE_ERROR",
            )

        logger.info(f"Trip dispatched: {order.order_number} ({order.id}) for company {company_id}")
        return DispatchResponse(
            success=True,
            order=order,
            trip=await self._settled_view(order),
            message="Trip created successfully",
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_trips(
        self,
        company_id: str,
        search: Optional[str] = None,
        status: Optional[str] = None,
        sort_field: str = "dispatched_at",
        descending: bool = True,
    ) -> TripListResponse:
        """Trip board for a company"""
        try:
            orders, drivers, vehicles = await asyncio.gather(
                self.repository.list_orders(company_id),
                self.fleet.list_drivers(company_id),
                self.fleet.list_vehicles(company_id),
            )
        except PersistenceError as e:
            logger.error(f"Failed to list trips for company {company_id}: {e}")
            raise TripServiceError(f"Failed to list trips: {e}") from e

        trips = project_trips(orders, drivers, vehicles)
        visible = sort_trips(filter_trips(trips, search, status), sort_field, descending)
        return TripListResponse(
            trips=visible,
            total_count=len(visible),
            status_counts=count_trips_by_status(trips),
        )

    async def get_trip(self, company_id: str, order_id: str) -> Trip:
        try:
            order = await self._get_company_order(company_id, order_id)
            return await self._project(order)
        except PersistenceError as e:
            logger.error(f"Failed to get trip {order_id}: {e}")
            raise TripServiceError(f"Failed to get trip: {e}") from e

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def update_order_status(
        self,
        context: DispatcherContext,
        order_id: str,
        new_status: OrderStatus,
        notes: Optional[str] = None,
    ) -> DispatchResponse:
        """Advance an order's status and append a tracking event"""
        try:
            order = await self._get_company_order(context.company_id, order_id)
            fields, event = plan_status_change(order, new_status, context.user_id, notes)
            await self.repository.append_tracking_event(order_id, event, fields)

        except OrderNotFoundError as e:
            return DispatchResponse(success=False, message=str(e), error_code="ORDER_NOT_FOUND")
        except InvalidOrderStateError as e:
            return DispatchResponse(success=False, message=str(e), error_code="INVALID_STATUS")
        except PersistenceError as e:
            logger.error(f"Failed to update order {order_id}: {e}")
            return DispatchResponse(
                success=False,
                message=f"Failed to update order: {e}",
                error_code="UPDATE_ERROR",
            )

        logger.info(f"Order {order_id} moved {order.status.value} -> {new_status.value}")
        updated, trip = await self._reload(order_id)
        return DispatchResponse(
            success=True,
            order=updated,
            trip=trip,
            message=f"Order status updated to {new_status.value}",
        )

    async def reassign_trip(
        self,
        context: DispatcherContext,
        order_id: str,
        vehicle_id: str,
        driver_id: Optional[str] = None,
    ) -> DispatchResponse:
        """Move a trip to another vehicle (and optionally driver), re-checking capacity"""
        try:
            order = await self._get_company_order(context.company_id, order_id)
            vehicle = await self._vehicle_for_company(vehicle_id, context.company_id)
            if vehicle is None:
                return DispatchResponse(
                    success=False,
                    message=f"Vehicle not found: {vehicle_id}",
                    error_code="VEHICLE_NOT_FOUND",
                )

            validation = validate_dispatch(order.total_weight, vehicle.capacity_weight or 0.0)
            if not validation.allowed:
                return DispatchResponse(
                    success=False,
                    message=validation.message,
                    error_code="CAPACITY_EXCEEDED",
                )

            fields: Dict[str, Any] = {"assigned_vehicle_id": vehicle_id}
            if driver_id:
                fields["assigned_driver_id"] = driver_id
            await self.repository.update_order(order_id, fields)

        except OrderNotFoundError as e:
            return DispatchResponse(success=False, message=str(e), error_code="ORDER_NOT_FOUND")
        except PersistenceError as e:
            logger.error(f"Failed to reassign order {order_id}: {e}")
            return DispatchResponse(
                success=False,
                message=f"Failed to reassign trip: {e}",
                error_code="UPDATE_ERROR",
            )

        logger.info(f"Order {order_id} reassigned to vehicle {vehicle_id}")
        updated, trip = await self._reload(order_id)
        return DispatchResponse(
            success=True,
            order=updated,
            trip=trip,
            message="Trip reassigned successfully",
        )

    async def delete_trip(self, context: DispatcherContext, order_id: str) -> DispatchResponse:
        """Remove the underlying order outright"""
        try:
            await self._get_company_order(context.company_id, order_id)
            await self.repository.delete_order(order_id)
            logger.info(f"Order {order_id} deleted by {context.user_id}")
            return DispatchResponse(success=True, message="Trip deleted successfully")

        except OrderNotFoundError as e:
            return DispatchResponse(success=False, message=str(e), error_code="ORDER_NOT_FOUND")
        except PersistenceError as e:
            logger.error(f"Failed to delete order {order_id}: {e}")
            return DispatchResponse(
                success=False,
                message=f"Failed to delete trip: {e}",
                error_code="DELETE_ERROR",
            )

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def get_order_analytics(self, company_id: str) -> OrderAnalytics:
        try:
            orders = await self.repository.list_orders(company_id)
        except PersistenceError as e:
            logger.error(f"Failed to load orders for analytics, company {company_id}: {e}")
            raise TripServiceError(f"Failed to get order analytics: {e}") from e
        return compute_order_analytics(orders)

    async def get_dashboard(
        self,
        company_id: str,
        as_of: Optional[datetime] = None,
    ) -> DashboardResponse:
        """All analytics over one concurrent load of the company's collections"""
        try:
            orders, vehicles, drivers, maintenance, routes = await asyncio.gather(
                self.repository.list_orders(company_id),
                self.fleet.list_vehicles(company_id),
                self.fleet.list_drivers(company_id),
                self.fleet.list_maintenance(company_id),
                self.fleet.list_routes(company_id),
            )
        except PersistenceError as e:
            logger.error(f"Failed to load dashboard data for company {company_id}: {e}")
            raise TripServiceError(f"Failed to build dashboard: {e}") from e

        return build_dashboard(
            company_id,
            orders=orders,
            vehicles=vehicles,
            drivers=drivers,
            maintenance_records=maintenance,
            routes=routes,
            as_of=as_of or datetime.now(timezone.utc),
            config=self.config,
        )

    async def health_check(self) -> Dict[str, Any]:
        """Check document store connectivity"""
        store = getattr(self.repository, "store", None)
        result = await store.health_check() if store is not None else {"healthy": True}
        return {
            "status": "healthy" if result.get("healthy") else "unhealthy",
            "timestamp": datetime.now(timezone.utc),
            "details": result,
        }
