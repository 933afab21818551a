"""
Trip Service Data Models

Pydantic models for orders, the read-only fleet directories (vehicles,
drivers, maintenance, routes), projected trips and analytics results.

Stored documents use camelCase keys; models expose snake_case attributes and
accept either spelling.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from enum import Enum


class OrderStatus(str, Enum):
    """Order lifecycle status"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PICKED_UP = "picked-up"
    IN_TRANSIT = "in-transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    FAILED = "failed"


class TripStatus(str, Enum):
    """Coarse status shown on the dispatcher board"""
    BOOKED = "booked"
    IN_TRANSIT = "in-transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class VehicleType(str, Enum):
    TRUCK = "truck"
    VAN = "van"
    CAR = "car"
    BIKE = "bike"


class VehicleStatus(str, Enum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"
    RETIRED = "retired"


class DriverStatus(str, Enum):
    AVAILABLE = "available"
    ON_TRIP = "on-trip"
    OFF_DUTY = "off-duty"
    INACTIVE = "inactive"


class MaintenanceStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MaintenanceType(str, Enum):
    ROUTINE = "routine"
    REPAIR = "repair"
    INSPECTION = "inspection"
    BREAKDOWN = "breakdown"


class RouteStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_ORDER_STATUSES = frozenset({
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PICKED_UP,
    OrderStatus.IN_TRANSIT,
})


class DocumentModel(BaseModel):
    """Base for models stored as camelCase documents"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="after")
    @classmethod
    def _assume_utc(cls, value: Any) -> Any:
        # Naive datetimes are UTC; analytics compares against aware instants
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_document(self) -> Dict[str, Any]:
        """Serialize with camelCase keys and ISO timestamps"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ==================== Order ====================

class OrderLocation(DocumentModel):
    """Pickup or delivery point; coordinates may be zero placeholders"""
    address: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    instructions: Optional[str] = None


class OrderItem(DocumentModel):
    """Cargo line item"""
    name: str
    description: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    weight: Optional[float] = Field(None, ge=0, description="Weight in kg")
    value: Optional[float] = None
    sku: Optional[str] = None


class TrackingEvent(DocumentModel):
    """Append-only status change record"""
    status: OrderStatus
    timestamp: datetime
    updated_by: str
    notes: Optional[str] = None


class OrderPricing(DocumentModel):
    base_price: float = 0.0
    distance_fee: Optional[float] = None
    urgency_fee: Optional[float] = None
    total_price: float = 0.0
    currency: str = "INR"


class OrderCreate(DocumentModel):
    """Order fields supplied by the caller; the store assigns id and timestamps"""
    company_id: str
    order_number: str = ""
    customer_id: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: Optional[str] = None
    pickup_location: OrderLocation = Field(default_factory=OrderLocation)
    delivery_location: OrderLocation = Field(default_factory=OrderLocation)
    items: List[OrderItem] = Field(default_factory=list)
    total_weight: float = 0.0
    total_value: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    priority: OrderPriority = OrderPriority.MEDIUM
    scheduled_pickup_time: Optional[datetime] = None
    scheduled_delivery_time: Optional[datetime] = None
    actual_pickup_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    assigned_route_id: Optional[str] = None
    assigned_vehicle_id: Optional[str] = None
    assigned_driver_id: Optional[str] = None
    tracking: List[TrackingEvent] = Field(default_factory=list)
    pricing: OrderPricing = Field(default_factory=OrderPricing)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    special_instructions: Optional[str] = None


class Order(OrderCreate):
    """Persisted order"""
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def calculate_total_weight(items: List[OrderItem]) -> float:
    """Sum item weights; items without a weight count as zero"""
    return sum(item.weight or 0.0 for item in items)


# ==================== Fleet directories (read-only) ====================

class VehicleCapacity(DocumentModel):
    weight: float = Field(0.0, ge=0, description="Rated capacity in kg")
    volume: Optional[float] = None
    passengers: Optional[int] = None


class Vehicle(DocumentModel):
    id: str
    company_id: Optional[str] = None
    registration_number: str = ""
    make: str = ""
    model: str = ""
    year: Optional[int] = None
    type: Optional[VehicleType] = None
    capacity: Optional[VehicleCapacity] = None
    status: VehicleStatus = VehicleStatus.ACTIVE
    assigned_driver_id: Optional[str] = None
    fuel_efficiency: Optional[float] = Field(None, description="km per liter")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return f"{self.make} {self.model}".strip()

    @property
    def capacity_weight(self) -> Optional[float]:
        return self.capacity.weight if self.capacity else None


class DriverRatings(DocumentModel):
    average: float = Field(0.0, ge=0, le=5)
    total_reviews: int = 0
    on_time_delivery: float = Field(0.0, ge=0, le=100)


class DriverPerformanceMetrics(DocumentModel):
    total_trips: int = 0
    total_distance: float = 0.0
    total_hours: float = 0.0
    incidents: int = 0


class DriverDocuments(DocumentModel):
    license: Optional[str] = None
    medical_certificate: Optional[str] = None
    background_check: Optional[str] = None


class Driver(DocumentModel):
    id: str
    company_id: Optional[str] = None
    user_id: Optional[str] = None
    display_name: str = ""
    phone_number: Optional[str] = None
    status: DriverStatus = DriverStatus.AVAILABLE
    license_number: Optional[str] = None
    license_expiry: Optional[datetime] = None
    current_vehicle_id: Optional[str] = None
    ratings: DriverRatings = Field(default_factory=DriverRatings)
    performance_metrics: DriverPerformanceMetrics = Field(default_factory=DriverPerformanceMetrics)
    documents: DriverDocuments = Field(default_factory=DriverDocuments)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MaintenanceCost(DocumentModel):
    labor: float = 0.0
    parts: float = 0.0
    total: float = 0.0
    currency: str = "INR"


class MaintenanceRecord(DocumentModel):
    id: str
    company_id: Optional[str] = None
    vehicle_id: str = ""
    type: MaintenanceType = MaintenanceType.ROUTINE
    status: MaintenanceStatus = MaintenanceStatus.SCHEDULED
    description: Optional[str] = None
    cost: MaintenanceCost = Field(default_factory=MaintenanceCost)
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Route(DocumentModel):
    id: str
    company_id: Optional[str] = None
    name: str = ""
    status: RouteStatus = RouteStatus.PLANNED
    distance: Optional[float] = Field(None, ge=0, description="Distance in km")
    estimated_duration: Optional[float] = None
    actual_duration: Optional[float] = None
    assigned_vehicle_id: Optional[str] = None
    assigned_driver_id: Optional[str] = None
    orders: List[str] = Field(default_factory=list)
    actual_end_time: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ==================== Trip (projected) ====================

class Trip(BaseModel):
    """Dispatcher view of an order; computed on read, never stored"""
    id: str
    trip_id: str
    fleet_type: str = ""
    vehicle_id: str = ""
    vehicle_name: str = ""
    vehicle_capacity: float = 0.0
    driver_id: str = ""
    driver_name: str = ""
    origin: str = ""
    destination: str = ""
    cargo_weight: float = 0.0
    estimated_fuel_cost: float = 0.0
    status: TripStatus
    dispatched_at: Optional[datetime] = None
    notes: Optional[str] = None
    capacity_utilization: float = 0.0


# ==================== Dispatch ====================

class DispatcherContext(BaseModel):
    """Identity of the caller, passed explicitly into every operation"""
    company_id: str
    user_id: str
    display_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None


class DispatchValidation(BaseModel):
    """Capacity check outcome"""
    allowed: bool
    message: Optional[str] = None
    checked: bool = True


class DispatchRequest(BaseModel):
    """New trip form submission"""
    vehicle_id: str = Field(..., min_length=1)
    driver_id: str = Field(..., min_length=1)
    cargo_weight: float = Field(..., ge=0, description="Cargo weight in kg")
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    estimated_fuel_cost: float = Field(default=0.0, ge=0)
    notes: Optional[str] = None


class DispatchValidateRequest(BaseModel):
    vehicle_id: Optional[str] = None
    cargo_weight: float = Field(..., ge=0)


class OrderStatusUpdateRequest(BaseModel):
    status: OrderStatus
    notes: Optional[str] = None


class TripAssignmentRequest(BaseModel):
    vehicle_id: str = Field(..., min_length=1)
    driver_id: Optional[str] = None


# ==================== Response Models ====================

class DispatchResponse(BaseModel):
    """Result of a write on a trip"""
    success: bool
    order: Optional[Order] = None
    trip: Optional[Trip] = None
    message: str = ""
    error_code: Optional[str] = None


class TripListResponse(BaseModel):
    trips: List[Trip]
    total_count: int
    status_counts: Dict[str, int] = Field(default_factory=dict)


# ==================== Analytics ====================

class OrderAnalytics(BaseModel):
    total_orders: int = 0
    delivered_orders: int = 0
    pending_orders: int = 0
    failed_orders: int = 0
    in_transit_orders: int = 0
    active_orders: int = 0
    total_revenue: float = 0.0
    avg_order_value: float = 0.0
    success_rate: float = 0.0


class UnderutilizedVehicle(BaseModel):
    id: str
    name: str
    last_used: datetime
    idle_days: int


class FleetAnalytics(BaseModel):
    total_vehicles: int = 0
    active_vehicles: int = 0
    maintenance_vehicles: int = 0
    inactive_vehicles: int = 0
    retired_vehicles: int = 0
    assigned_vehicles: int = 0
    utilization_rate: float = 0.0
    avg_fuel_efficiency: float = 0.0
    total_distance: float = 0.0
    on_time_delivery_rate: float = 0.0
    cost_per_km: float = 0.0
    underutilized: List[UnderutilizedVehicle] = Field(default_factory=list)


class VehicleEfficiency(BaseModel):
    id: str
    name: str
    efficiency: float


class FuelAnalytics(BaseModel):
    avg_fuel_efficiency: float = 0.0
    vehicles_with_data: int = 0
    most_efficient: Optional[VehicleEfficiency] = None
    least_efficient: Optional[VehicleEfficiency] = None


class VehicleMaintenanceCost(BaseModel):
    vehicle_id: str
    name: str
    total_cost: float
    records: int


class CostAnalytics(BaseModel):
    estimated_monthly_fuel_cost: float = 0.0
    estimated_monthly_maintenance_cost: float = 0.0
    total_monthly_cost: float = 0.0
    cost_per_vehicle: float = 0.0
    actual_maintenance_cost: float = 0.0
    vehicle_costs: List[VehicleMaintenanceCost] = Field(default_factory=list)


class MaintenanceAnalytics(BaseModel):
    total_records: int = 0
    scheduled_count: int = 0
    in_progress_count: int = 0
    completed_count: int = 0
    cancelled_count: int = 0
    type_counts: Dict[str, int] = Field(default_factory=dict)
    total_cost: float = 0.0
    avg_cost: float = 0.0
    completion_rate: float = 0.0


class DriverPerformance(BaseModel):
    driver_id: str
    driver_name: str
    on_time_delivery_rate: float = 0.0
    safety_score: float = 0.0
    compliance_score: float = 0.0
    total_trips: int = 0
    total_distance: float = 0.0
    rating: float = 0.0
    overall_score: float = 0.0
    has_data: bool = False


class PerformanceOverview(BaseModel):
    on_time_delivery_rate: float = 0.0
    fuel_efficiency: float = 0.0
    safety_score: float = 0.0
    top_performers: List[DriverPerformance] = Field(default_factory=list)
    needing_improvement: List[DriverPerformance] = Field(default_factory=list)


class DashboardResponse(BaseModel):
    """All analytics for a company in one payload"""
    company_id: str
    generated_at: datetime
    orders: OrderAnalytics
    fleet: FleetAnalytics
    fuel: FuelAnalytics
    costs: CostAnalytics
    maintenance: MaintenanceAnalytics
    drivers: List[DriverPerformance]
    performance: PerformanceOverview


class TripServiceStatus(BaseModel):
    service: str = "trip_service"
    status: str = "operational"
    port: int = 8260
    version: str = "1.0.0"
    database_connected: bool
    timestamp: datetime
