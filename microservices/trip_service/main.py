"""
Trip Microservice

Responsibilities:
- Trip dispatch with vehicle capacity validation
- Trip board (search, filter, sort)
- Order status advancement and reassignment
- Fleet, fuel, cost, maintenance and driver analytics
"""

from fastapi import FastAPI, HTTPException, Depends, status, Query, Path, Body, Header
from fastapi.responses import JSONResponse
import uvicorn
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from core.config import get_settings
from core.logger import setup_service_logger

from .factory import create_trip_service
from .models import (
    DashboardResponse, DispatcherContext, DispatchRequest, DispatchResponse,
    DispatchValidateRequest, DispatchValidation, OrderAnalytics,
    OrderStatusUpdateRequest, Trip, TripAssignmentRequest, TripListResponse,
    TripServiceStatus,
)
from .protocols import OrderNotFoundError, TripServiceError
from .trip_service import TripService

SERVICE_NAME = "trip_service"
SERVICE_VERSION = "1.0.0"

settings = get_settings()
logger = setup_service_logger(SERVICE_NAME, level=settings.logging.log_level)

ERROR_STATUS_CODES = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "CAPACITY_EXCEEDED": status.HTTP_400_BAD_REQUEST,
    "VEHICLE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ORDER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_STATUS": status.HTTP_409_CONFLICT,
}


class TripMicroservice:
    """Trip microservice core class"""

    def __init__(self):
        self.trip_service: Optional[TripService] = None
        self.store = None

    async def initialize(self):
        """Connect the document store and build the service"""
        from core.document_store import PostgresDocumentStore

        try:
            self.store = PostgresDocumentStore.from_config(settings.infrastructure)
            await self.store.connect()
            self.trip_service = create_trip_service(store=self.store, settings=settings)
            logger.info("Trip microservice initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize trip microservice: {e}")
            raise

    async def shutdown(self):
        if self.store is not None:
            await self.store.close()
        logger.info("Trip microservice shutdown completed")


# Global microservice instance
trip_microservice = TripMicroservice()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    await trip_microservice.initialize()
    yield
    await trip_microservice.shutdown()


app = FastAPI(
    title="Trip Service",
    description="Fleet trip dispatch and analytics microservice",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


# Dependency injection
def get_trip_service() -> TripService:
    """Get trip service instance"""
    if not trip_microservice.trip_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Trip service not initialized",
        )
    return trip_microservice.trip_service


def get_dispatcher(
    company_id: str = Path(..., description="Company ID"),
    x_user_id: str = Header(..., description="Dispatcher user ID"),
    x_user_name: Optional[str] = Header(None, description="Dispatcher display name"),
    x_user_phone: Optional[str] = Header(None, description="Dispatcher phone number"),
) -> DispatcherContext:
    return DispatcherContext(
        company_id=company_id,
        user_id=x_user_id,
        display_name=x_user_name,
        phone_number=x_user_phone,
    )


def _respond(response: DispatchResponse, success_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Map a write result to an HTTP status by error code"""
    if response.success:
        code = success_code
    else:
        code = ERROR_STATUS_CODES.get(response.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=code, content=response.model_dump(mode="json"))


# Health check endpoints
@app.get("/health")
async def health_check():
    """Service health check"""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "port": settings.fleet.service_port,
        "version": SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health/detailed", response_model=TripServiceStatus)
async def detailed_health_check(
    trip_service: TripService = Depends(get_trip_service),
):
    """Detailed health check with database connectivity"""
    health_data = await trip_service.health_check()
    return TripServiceStatus(
        port=settings.fleet.service_port,
        database_connected=health_data["status"] == "healthy",
        timestamp=health_data["timestamp"],
    )


# Dispatch endpoints

@app.post("/api/v1/companies/{company_id}/trips/validate", response_model=DispatchValidation)
async def validate_trip(
    company_id: str = Path(..., description="Company ID"),
    request: DispatchValidateRequest = Body(...),
    trip_service: TripService = Depends(get_trip_service),
):
    """Check cargo weight against the selected vehicle"""
    return await trip_service.check_dispatch(company_id, request.cargo_weight, request.vehicle_id)


@app.post("/api/v1/companies/{company_id}/trips", response_model=DispatchResponse)
async def dispatch_trip(
    request: DispatchRequest = Body(...),
    dispatcher: DispatcherContext = Depends(get_dispatcher),
    trip_service: TripService = Depends(get_trip_service),
):
    """Dispatch a new trip"""
    result = await trip_service.dispatch_trip(dispatcher, request)
    return _respond(result, success_code=status.HTTP_201_CREATED)


# Trip board endpoints

@app.get("/api/v1/companies/{company_id}/trips", response_model=TripListResponse)
async def list_trips(
    company_id: str = Path(..., description="Company ID"),
    search: Optional[str] = Query(None, description="Search trip id, fleet type, origin, destination, driver"),
    trip_status: Optional[str] = Query("all", alias="status", description="Trip status or 'all'"),
    sort: str = Query("dispatched_at", description="Trip field to sort by"),
    order: str = Query("desc", pattern="^(asc|desc)$", description="Sort direction"),
    trip_service: TripService = Depends(get_trip_service),
):
    """List trips for a company"""
    return await trip_service.list_trips(
        company_id,
        search=search,
        status=trip_status,
        sort_field=sort,
        descending=order == "desc",
    )


@app.get("/api/v1/companies/{company_id}/trips/{order_id}", response_model=Trip)
async def get_trip(
    company_id: str = Path(..., description="Company ID"),
    order_id: str = Path(..., description="Order ID"),
    trip_service: TripService = Depends(get_trip_service),
):
    """Get a single trip"""
    return await trip_service.get_trip(company_id, order_id)


@app.put("/api/v1/companies/{company_id}/orders/{order_id}/status", response_model=DispatchResponse)
async def update_order_status(
    order_id: str = Path(..., description="Order ID"),
    request: OrderStatusUpdateRequest = Body(...),
    dispatcher: DispatcherContext = Depends(get_dispatcher),
    trip_service: TripService = Depends(get_trip_service),
):
    """Advance an order's status"""
    result = await trip_service.update_order_status(dispatcher, order_id, request.status, request.notes)
    return _respond(result)


@app.put("/api/v1/companies/{company_id}/trips/{order_id}/assignment", response_model=DispatchResponse)
async def reassign_trip(
    order_id: str = Path(..., description="Order ID"),
    request: TripAssignmentRequest = Body(...),
    dispatcher: DispatcherContext = Depends(get_dispatcher),
    trip_service: TripService = Depends(get_trip_service),
):
    """Move a trip to another vehicle and driver"""
    result = await trip_service.reassign_trip(dispatcher, order_id, request.vehicle_id, request.driver_id)
    return _respond(result)


@app.delete("/api/v1/companies/{company_id}/trips/{order_id}", response_model=DispatchResponse)
async def delete_trip(
    order_id: str = Path(..., description="Order ID"),
    dispatcher: DispatcherContext = Depends(get_dispatcher),
    trip_service: TripService = Depends(get_trip_service),
):
    """Delete a trip"""
    result = await trip_service.delete_trip(dispatcher, order_id)
    return _respond(result)


# Analytics endpoints

@app.get("/api/v1/companies/{company_id}/analytics/orders", response_model=OrderAnalytics)
async def get_order_analytics(
    company_id: str = Path(..., description="Company ID"),
    trip_service: TripService = Depends(get_trip_service),
):
    """Order counts, revenue and success rate"""
    return await trip_service.get_order_analytics(company_id)


@app.get("/api/v1/companies/{company_id}/analytics/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    company_id: str = Path(..., description="Company ID"),
    trip_service: TripService = Depends(get_trip_service),
):
    """Fleet, fuel, cost, maintenance and driver analytics"""
    return await trip_service.get_dashboard(company_id)


# Error handlers
@app.exception_handler(OrderNotFoundError)
async def not_found_error_handler(request, exc):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )


@app.exception_handler(TripServiceError)
async def service_error_handler(request, exc):
    logger.error(f"Trip service error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


if __name__ == "__main__":
    uvicorn.run(
        "microservices.trip_service.main:app",
        host=settings.fleet.service_host,
        port=settings.fleet.service_port,
        reload=settings.debug,
        log_level=settings.logging.log_level.lower(),
    )
