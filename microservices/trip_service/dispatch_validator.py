"""
Dispatch Validator

Capacity gate for new trips, the dispatch form state, construction of the
order document a dispatch produces, and the order status transition rules.

Everything here is pure: no I/O, and validation never raises.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import (
    DispatcherContext, DispatchRequest, DispatchValidation, Order, OrderCreate,
    OrderItem, OrderLocation, OrderPricing, OrderPriority, OrderStatus,
    PaymentStatus, TrackingEvent, Vehicle,
)
from .protocols import InvalidOrderStateError, OrderValidationError


DEFAULT_ORDER_PREFIX = "TRP"
DEFAULT_ORDER_PADDING = 3
TRIP_CREATED_NOTE = "Trip created"
DEFAULT_CUSTOMER_NAME = "Company User"
DEFAULT_CUSTOMER_PHONE = "N/A"


# ============================================================================
# Capacity check
# ============================================================================

def format_capacity(value: float) -> str:
    """4500 -> '4,500'; 1234.5 -> '1,234.5'"""
    text = f"{value:,.3f}"
    return text.rstrip("0").rstrip(".")


def capacity_message(capacity: float) -> str:
    return f"Too heavy! This vehicle's max capacity is {format_capacity(capacity)} kg."


def validate_dispatch(
    cargo_weight: Optional[float],
    vehicle_capacity: Optional[float],
) -> DispatchValidation:
    """
    Check a cargo weight against the selected vehicle's rated capacity.

    The boundary is inclusive: a load exactly at capacity is allowed. When
    no vehicle is selected (capacity None) or no weight is entered, the
    check does not run and the result is allowed with `checked=False`.
    """
    if vehicle_capacity is None or cargo_weight is None:
        return DispatchValidation(allowed=True, checked=False)

    if cargo_weight > vehicle_capacity:
        return DispatchValidation(allowed=False, message=capacity_message(vehicle_capacity))

    return DispatchValidation(allowed=True)


# ============================================================================
# Dispatch form
# ============================================================================

class DispatchForm:
    """
    In-progress dispatch form.

    Changing either the cargo weight or the selected vehicle re-runs the
    capacity check against the vehicle selected at that moment.
    """

    REQUIRED_FIELDS = ("vehicle_id", "driver_id", "cargo_weight", "origin", "destination")

    def __init__(self, vehicles: Iterable[Vehicle]):
        self._vehicles = {v.id: v for v in vehicles}
        self._vehicle_id: Optional[str] = None
        self._cargo_weight: Optional[float] = None
        self.driver_id: Optional[str] = None
        self.origin: str = ""
        self.destination: str = ""
        self.estimated_fuel_cost: Optional[float] = None
        self.notes: Optional[str] = None
        self.validation = DispatchValidation(allowed=True, checked=False)

    @property
    def vehicle_id(self) -> Optional[str]:
        return self._vehicle_id

    @vehicle_id.setter
    def vehicle_id(self, value: Optional[str]) -> None:
        self._vehicle_id = value or None
        self._revalidate()

    @property
    def cargo_weight(self) -> Optional[float]:
        return self._cargo_weight

    @cargo_weight.setter
    def cargo_weight(self, value: Optional[float]) -> None:
        self._cargo_weight = value
        self._revalidate()

    @property
    def selected_vehicle(self) -> Optional[Vehicle]:
        if not self._vehicle_id:
            return None
        return self._vehicles.get(self._vehicle_id)

    @property
    def cargo_error(self) -> str:
        return self.validation.message or ""

    def _revalidate(self) -> None:
        vehicle = self.selected_vehicle
        capacity = (vehicle.capacity_weight or 0.0) if vehicle else None
        self.validation = validate_dispatch(self._cargo_weight, capacity)

    def missing_fields(self) -> List[str]:
        missing = []
        for name in self.REQUIRED_FIELDS:
            value = getattr(self, name)
            if value is None or value == "":
                missing.append(name)
        return missing

    @property
    def can_submit(self) -> bool:
        return self.validation.allowed and not self.missing_fields()

    def to_request(self) -> DispatchRequest:
        """Build the submission; raises OrderValidationError if the form is not ready"""
        if not self.validation.allowed:
            raise OrderValidationError(self.validation.message)
        missing = self.missing_fields()
        if missing:
            raise OrderValidationError(f"Missing required fields: {', '.join(missing)}")
        return DispatchRequest(
            vehicle_id=self._vehicle_id,
            driver_id=self.driver_id,
            cargo_weight=self._cargo_weight,
            origin=self.origin,
            destination=self.destination,
            estimated_fuel_cost=self.estimated_fuel_cost or 0.0,
            notes=self.notes or None,
        )


# ============================================================================
# Order numbering
# ============================================================================

def format_order_number(
    index: int,
    prefix: str = DEFAULT_ORDER_PREFIX,
    padding: int = DEFAULT_ORDER_PADDING,
) -> str:
    return f"{prefix}-{index:0{padding}d}"


def next_order_number(
    existing_count: int,
    prefix: str = DEFAULT_ORDER_PREFIX,
    padding: int = DEFAULT_ORDER_PADDING,
) -> str:
    """
    Count-based order number: existing orders + 1.

    Two dispatches that read the same count get the same number. The service
    reserves numbers through OrderRepository.next_order_sequence instead.
    """
    return format_order_number(existing_count + 1, prefix, padding)


# ============================================================================
# Order construction
# ============================================================================

def build_dispatch_order(
    request: DispatchRequest,
    context: DispatcherContext,
    order_number: str,
    currency: str = "INR",
    now: Optional[datetime] = None,
) -> OrderCreate:
    """Build the confirmed order a validated dispatch persists"""
    now = now or datetime.now(timezone.utc)
    notes = request.notes or None

    return OrderCreate(
        company_id=context.company_id,
        order_number=order_number,
        customer_id=context.user_id,
        customer_name=context.display_name or DEFAULT_CUSTOMER_NAME,
        customer_phone=context.phone_number or DEFAULT_CUSTOMER_PHONE,
        customer_email=context.email or None,
        pickup_location=OrderLocation(address=request.origin),
        delivery_location=OrderLocation(address=request.destination),
        items=[
            OrderItem(name="Cargo", description=notes, quantity=1, weight=request.cargo_weight),
        ],
        total_weight=request.cargo_weight,
        total_value=0.0,
        status=OrderStatus.CONFIRMED,
        priority=OrderPriority.MEDIUM,
        assigned_vehicle_id=request.vehicle_id,
        assigned_driver_id=request.driver_id,
        tracking=[
            TrackingEvent(
                status=OrderStatus.CONFIRMED,
                timestamp=now,
                updated_by=context.user_id,
                notes=TRIP_CREATED_NOTE,
            ),
        ],
        pricing=OrderPricing(
            base_price=request.estimated_fuel_cost,
            total_price=request.estimated_fuel_cost,
            currency=currency,
        ),
        payment_status=PaymentStatus.PENDING,
        special_instructions=notes,
    )


# ============================================================================
# Status transitions
# ============================================================================

ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, frozenset] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.FAILED,
    }),
    OrderStatus.CONFIRMED: frozenset({
        OrderStatus.PICKED_UP, OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED, OrderStatus.FAILED,
    }),
    OrderStatus.PICKED_UP: frozenset({
        OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.FAILED,
    }),
    OrderStatus.IN_TRANSIT: frozenset({
        OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.FAILED,
    }),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.FAILED: frozenset(),
}


def can_transition(current: OrderStatus, new_status: OrderStatus) -> bool:
    return new_status in ORDER_STATUS_TRANSITIONS.get(current, frozenset())


def plan_status_change(
    order: Order,
    new_status: OrderStatus,
    updated_by: str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[Dict[str, Any], TrackingEvent]:
    """
    Compute a status change as (field updates, tracking event to append).

    The field updates carry the new status and the actual pickup/delivery
    time where it applies; the tracking list itself is left to the store.

    Raises:
        InvalidOrderStateError: the move is not allowed from the current status
    """
    if not can_transition(order.status, new_status):
        raise InvalidOrderStateError(
            f"Cannot move order {order.id} from {order.status.value} to {new_status.value}"
        )

    now = now or datetime.now(timezone.utc)
    event = TrackingEvent(status=new_status, timestamp=now, updated_by=updated_by, notes=notes)

    fields: Dict[str, Any] = {"status": new_status}
    if new_status == OrderStatus.PICKED_UP:
        fields["actual_pickup_time"] = now
    elif new_status == OrderStatus.DELIVERED:
        fields["actual_delivery_time"] = now
    return fields, event


def advance_order_status(
    order: Order,
    new_status: OrderStatus,
    updated_by: str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Full snake_case update for a status change, tracking list included"""
    fields, event = plan_status_change(order, new_status, updated_by, notes, now)
    return {**fields, "tracking": [*order.tracking, event]}
