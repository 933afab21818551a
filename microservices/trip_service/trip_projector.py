"""
Trip View Projector

Pure mapping from a stored order plus the current vehicle/driver directories
to the trip record shown on the dispatcher board. Missing lookups degrade to
empty values; nothing here raises.
"""

from typing import Dict, Iterable, List, Mapping, Optional

from .models import Driver, Order, OrderStatus, Trip, TripStatus, Vehicle


TRIP_STATUS_BY_ORDER_STATUS: Dict[OrderStatus, TripStatus] = {
    OrderStatus.PENDING: TripStatus.BOOKED,
    OrderStatus.CONFIRMED: TripStatus.BOOKED,
    OrderStatus.PICKED_UP: TripStatus.IN_TRANSIT,
    OrderStatus.IN_TRANSIT: TripStatus.IN_TRANSIT,
    OrderStatus.DELIVERED: TripStatus.DELIVERED,
    OrderStatus.CANCELLED: TripStatus.CANCELLED,
    OrderStatus.FAILED: TripStatus.CANCELLED,
}

_unmapped = set(OrderStatus) - set(TRIP_STATUS_BY_ORDER_STATUS)
if _unmapped:
    raise RuntimeError(
        f"Order statuses without a trip status: {sorted(s.value for s in _unmapped)}"
    )

TRIP_SORT_FIELDS = frozenset(Trip.model_fields)


def to_trip_status(status) -> TripStatus:
    """Map an order status (enum or raw string) to a trip status; unknown values read as booked"""
    try:
        return TRIP_STATUS_BY_ORDER_STATUS[OrderStatus(status)]
    except ValueError:
        return TripStatus.BOOKED


def make_trip_id(order_number: Optional[str], order_id: str) -> str:
    if order_number:
        return order_number
    return f"TRP-{order_id[:6].upper()}"


def project_trip(
    order: Order,
    driver_directory: Mapping[str, str],
    vehicle_directory: Mapping[str, Vehicle],
) -> Trip:
    """
    Project an order into a trip view.

    Args:
        order: Stored order
        driver_directory: driver id -> display name
        vehicle_directory: vehicle id -> vehicle

    Returns:
        Trip record
    """
    vehicle = vehicle_directory.get(order.assigned_vehicle_id) if order.assigned_vehicle_id else None
    driver_name = driver_directory.get(order.assigned_driver_id, "") if order.assigned_driver_id else ""

    capacity = (vehicle.capacity_weight or 0.0) if vehicle else 0.0
    cargo_weight = order.total_weight or 0.0
    utilization = round(cargo_weight / capacity * 100, 2) if capacity > 0 else 0.0

    return Trip(
        id=order.id,
        trip_id=make_trip_id(order.order_number, order.id),
        fleet_type=vehicle.type.value if vehicle and vehicle.type else "",
        vehicle_id=order.assigned_vehicle_id or "",
        vehicle_name=vehicle.registration_number if vehicle else "",
        vehicle_capacity=capacity,
        driver_id=order.assigned_driver_id or "",
        driver_name=driver_name or "",
        origin=order.pickup_location.address or "",
        destination=order.delivery_location.address or "",
        cargo_weight=cargo_weight,
        estimated_fuel_cost=order.pricing.total_price or 0.0,
        status=to_trip_status(order.status),
        dispatched_at=order.created_at,
        notes=order.special_instructions or None,
        capacity_utilization=utilization,
    )


def project_trips(
    orders: Iterable[Order],
    drivers: Iterable[Driver],
    vehicles: Iterable[Vehicle],
) -> List[Trip]:
    """Build the lookup directories and project every order"""
    driver_directory = {d.id: d.display_name for d in drivers}
    vehicle_directory = {v.id: v for v in vehicles}
    return [project_trip(o, driver_directory, vehicle_directory) for o in orders]


def filter_trips(
    trips: Iterable[Trip],
    search: Optional[str] = None,
    status: Optional[str] = None,
) -> List[Trip]:
    """
    Filter the dispatcher board.

    `search` is a case-insensitive substring match on trip id, fleet type,
    origin, destination and driver name. `status` of None or "all" keeps
    every status.
    """
    term = (search or "").lower()
    result = []
    for trip in trips:
        haystack = (trip.trip_id, trip.fleet_type, trip.origin, trip.destination, trip.driver_name)
        if term and not any(term in value.lower() for value in haystack):
            continue
        if status and status != "all" and trip.status.value != status:
            continue
        result.append(trip)
    return result


def sort_trips(
    trips: Iterable[Trip],
    field: str = "dispatched_at",
    descending: bool = True,
) -> List[Trip]:
    """Stable sort on a trip field; empty values sort first ascending"""
    if field not in TRIP_SORT_FIELDS:
        field = "dispatched_at"

    present = []
    missing = []
    for trip in trips:
        value = getattr(trip, field)
        (missing if value is None else present).append(trip)

    present.sort(key=lambda t: _sort_value(getattr(t, field)), reverse=descending)
    return present + missing if descending else missing + present


def _sort_value(value):
    if isinstance(value, TripStatus):
        return value.value
    return value


def count_trips_by_status(trips: Iterable[Trip]) -> Dict[str, int]:
    counts = {status.value: 0 for status in TripStatus}
    for trip in trips:
        counts[trip.status.value] += 1
    return counts
