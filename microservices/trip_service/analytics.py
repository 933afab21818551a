"""
Analytics Aggregator

Pure reductions over a company's orders, vehicles, drivers, maintenance
records and routes. Functions hold no state, never mutate their inputs and
fall back to 0 wherever a denominator is empty.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from core.config import FleetConfig

from .models import (
    ACTIVE_ORDER_STATUSES, CostAnalytics, DashboardResponse, Driver,
    DriverPerformance, FleetAnalytics, FuelAnalytics, MaintenanceAnalytics,
    MaintenanceRecord, MaintenanceStatus, MaintenanceType, Order,
    OrderAnalytics, OrderStatus, PerformanceOverview, Route,
    UnderutilizedVehicle, Vehicle, VehicleEfficiency, VehicleMaintenanceCost,
    VehicleStatus,
)

DAYS_PER_MONTH = 30
COMPLIANCE_CHECKS = 4


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _percent(numerator: float, denominator: float) -> float:
    return _ratio(numerator, denominator) * 100


def _mean(values: Sequence[float]) -> float:
    return _ratio(sum(values), len(values))


def _as_of(value: Optional[datetime]) -> datetime:
    """Reference instant for age checks; naive values are UTC"""
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _latest(*stamps: Optional[datetime]) -> Optional[datetime]:
    present = [s for s in stamps if s is not None]
    return max(present) if present else None


def _delivered_on_time(orders: Iterable[Order]) -> List[bool]:
    """On-time flags for delivered orders carrying both delivery timestamps"""
    return [
        o.actual_delivery_time <= o.scheduled_delivery_time
        for o in orders
        if o.status == OrderStatus.DELIVERED
        and o.actual_delivery_time is not None
        and o.scheduled_delivery_time is not None
    ]


# ============================================================================
# Orders
# ============================================================================

def compute_order_analytics(orders: Sequence[Order]) -> OrderAnalytics:
    total = len(orders)
    by_status: Dict[OrderStatus, int] = defaultdict(int)
    for order in orders:
        by_status[order.status] += 1

    revenue = sum(o.pricing.total_price or 0.0 for o in orders)
    delivered = by_status[OrderStatus.DELIVERED]

    return OrderAnalytics(
        total_orders=total,
        delivered_orders=delivered,
        pending_orders=by_status[OrderStatus.PENDING],
        failed_orders=by_status[OrderStatus.FAILED],
        in_transit_orders=by_status[OrderStatus.IN_TRANSIT],
        active_orders=sum(by_status[s] for s in ACTIVE_ORDER_STATUSES),
        total_revenue=revenue,
        avg_order_value=_ratio(revenue, total),
        success_rate=_percent(delivered, total),
    )


# ============================================================================
# Fleet
# ============================================================================

def find_underutilized_vehicles(
    vehicles: Iterable[Vehicle],
    orders: Iterable[Order],
    as_of: Optional[datetime] = None,
    idle_days_threshold: int = 10,
) -> List[UnderutilizedVehicle]:
    """
    Vehicles idle for at least `idle_days_threshold` days with no active order.

    Last use is the latest delivery/update/creation time among the orders
    assigned to the vehicle, else the vehicle's own update/creation time.
    Vehicles without any timestamp are skipped.
    """
    as_of = _as_of(as_of)

    busy = set()
    last_order_use: Dict[str, datetime] = {}
    for order in orders:
        vehicle_id = order.assigned_vehicle_id
        if not vehicle_id:
            continue
        if order.status in ACTIVE_ORDER_STATUSES:
            busy.add(vehicle_id)
        stamp = _latest(order.actual_delivery_time, order.updated_at, order.created_at)
        if stamp is not None:
            last_order_use[vehicle_id] = _latest(last_order_use.get(vehicle_id), stamp)

    idle = []
    for vehicle in vehicles:
        if vehicle.id in busy:
            continue
        last_used = last_order_use.get(vehicle.id) or _latest(vehicle.updated_at, vehicle.created_at)
        if last_used is None:
            continue
        idle_days = (as_of - last_used).days
        if idle_days >= idle_days_threshold:
            idle.append(UnderutilizedVehicle(
                id=vehicle.id,
                name=vehicle.display_name or vehicle.registration_number,
                last_used=last_used,
                idle_days=idle_days,
            ))

    idle.sort(key=lambda v: (-v.idle_days, v.id))
    return idle


def compute_fleet_analytics(
    vehicles: Sequence[Vehicle],
    orders: Sequence[Order],
    routes: Sequence[Route] = (),
    as_of: Optional[datetime] = None,
    config: Optional[FleetConfig] = None,
) -> FleetAnalytics:
    config = config or FleetConfig()
    total = len(vehicles)
    by_status: Dict[VehicleStatus, int] = defaultdict(int)
    for vehicle in vehicles:
        by_status[vehicle.status] += 1
    assigned = sum(1 for v in vehicles if v.assigned_driver_id)
    efficiencies = [v.fuel_efficiency for v in vehicles if v.fuel_efficiency]

    routed = [r for r in routes if r.distance is not None]
    on_time = _delivered_on_time(orders)

    # Cost per km only counts routes whose orders can be priced
    orders_by_id = {o.id: o for o in orders}
    priced_cost = 0.0
    priced_distance = 0.0
    for route in routed:
        route_orders = [orders_by_id[oid] for oid in route.orders if oid in orders_by_id]
        if not route_orders or not route.distance:
            continue
        priced_cost += sum(o.pricing.total_price or 0.0 for o in route_orders)
        priced_distance += route.distance

    return FleetAnalytics(
        total_vehicles=total,
        active_vehicles=by_status[VehicleStatus.ACTIVE],
        maintenance_vehicles=by_status[VehicleStatus.MAINTENANCE],
        inactive_vehicles=by_status[VehicleStatus.INACTIVE],
        retired_vehicles=by_status[VehicleStatus.RETIRED],
        assigned_vehicles=assigned,
        utilization_rate=round(_percent(assigned, total), 2),
        avg_fuel_efficiency=round(_mean(efficiencies), 2),
        total_distance=round(sum(r.distance for r in routed), 2),
        on_time_delivery_rate=round(_percent(sum(on_time), len(on_time)), 2),
        cost_per_km=round(_ratio(priced_cost, priced_distance), 2),
        underutilized=find_underutilized_vehicles(
            vehicles, orders, as_of, config.dead_stock_idle_days
        ),
    )


def compute_fuel_analytics(vehicles: Sequence[Vehicle]) -> FuelAnalytics:
    with_data = [v for v in vehicles if v.fuel_efficiency]
    if not with_data:
        return FuelAnalytics()

    def entry(vehicle: Vehicle) -> VehicleEfficiency:
        return VehicleEfficiency(
            id=vehicle.id, name=vehicle.display_name, efficiency=vehicle.fuel_efficiency
        )

    return FuelAnalytics(
        avg_fuel_efficiency=round(_mean([v.fuel_efficiency for v in with_data]), 2),
        vehicles_with_data=len(with_data),
        most_efficient=entry(max(with_data, key=lambda v: v.fuel_efficiency)),
        least_efficient=entry(min(with_data, key=lambda v: v.fuel_efficiency)),
    )


def compute_cost_analytics(
    vehicles: Sequence[Vehicle],
    maintenance_records: Sequence[MaintenanceRecord] = (),
    config: Optional[FleetConfig] = None,
) -> CostAnalytics:
    """Estimated monthly running cost plus recorded maintenance spend"""
    config = config or FleetConfig()

    fuel = sum(
        config.assumed_monthly_km / v.fuel_efficiency * DAYS_PER_MONTH * config.fuel_price_per_liter
        for v in vehicles
        if v.fuel_efficiency
    )
    maintenance_estimate = len(vehicles) * config.maintenance_estimate_per_vehicle
    total = fuel + maintenance_estimate

    names = {v.id: v.display_name or v.registration_number for v in vehicles}
    spend: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    for record in maintenance_records:
        spend[record.vehicle_id] += record.cost.total or 0.0
        counts[record.vehicle_id] += 1

    vehicle_costs = sorted(
        (
            VehicleMaintenanceCost(
                vehicle_id=vehicle_id,
                name=names.get(vehicle_id) or vehicle_id,
                total_cost=round(cost, 2),
                records=counts[vehicle_id],
            )
            for vehicle_id, cost in spend.items()
        ),
        key=lambda c: (-c.total_cost, c.vehicle_id),
    )

    return CostAnalytics(
        estimated_monthly_fuel_cost=round(fuel, 2),
        estimated_monthly_maintenance_cost=round(maintenance_estimate, 2),
        total_monthly_cost=round(total, 2),
        cost_per_vehicle=round(_ratio(total, len(vehicles)), 2),
        actual_maintenance_cost=round(sum(spend.values()), 2),
        vehicle_costs=vehicle_costs,
    )


# ============================================================================
# Maintenance
# ============================================================================

def compute_maintenance_analytics(records: Sequence[MaintenanceRecord]) -> MaintenanceAnalytics:
    total = len(records)
    by_status: Dict[MaintenanceStatus, int] = defaultdict(int)
    by_type = {t.value: 0 for t in MaintenanceType}
    for record in records:
        by_status[record.status] += 1
        by_type[record.type.value] += 1

    total_cost = sum(r.cost.total or 0.0 for r in records)
    completed = by_status[MaintenanceStatus.COMPLETED]

    return MaintenanceAnalytics(
        total_records=total,
        scheduled_count=by_status[MaintenanceStatus.SCHEDULED],
        in_progress_count=by_status[MaintenanceStatus.IN_PROGRESS],
        completed_count=completed,
        cancelled_count=by_status[MaintenanceStatus.CANCELLED],
        type_counts=by_type,
        total_cost=total_cost,
        avg_cost=_ratio(total_cost, total),
        completion_rate=_percent(completed, total),
    )


# ============================================================================
# Driver performance
# ============================================================================

def safety_score(driver: Driver) -> float:
    """0-10 from recorded incidents per trip"""
    metrics = driver.performance_metrics
    if not metrics.total_trips:
        return 0.0 if metrics.incidents else 10.0
    score = 10 * (1 - metrics.incidents / metrics.total_trips)
    return min(10.0, max(0.0, score))


def compliance_score(driver: Driver, as_of: datetime) -> float:
    """Share of passing compliance checks, 0-100"""
    as_of = _as_of(as_of)
    docs = driver.documents
    checks = [
        bool(docs.license),
        bool(docs.medical_certificate),
        bool(docs.background_check),
        driver.license_expiry is not None and driver.license_expiry > as_of,
    ]
    return _percent(sum(checks), COMPLIANCE_CHECKS)


def compute_driver_performance(
    drivers: Sequence[Driver],
    orders: Sequence[Order],
    routes: Sequence[Route] = (),
    as_of: Optional[datetime] = None,
) -> List[DriverPerformance]:
    """
    Per-driver scores.

    On-time rate comes from the driver's delivered orders that carry both
    scheduled and actual delivery times, falling back to the stored rating
    when none do. Distance comes from the driver's routes with a distance,
    falling back to the stored metric.
    """
    as_of = _as_of(as_of)

    orders_by_driver: Dict[str, List[Order]] = defaultdict(list)
    for order in orders:
        if order.assigned_driver_id:
            orders_by_driver[order.assigned_driver_id].append(order)

    distance_by_driver: Dict[str, List[float]] = defaultdict(list)
    for route in routes:
        if route.assigned_driver_id and route.distance is not None:
            distance_by_driver[route.assigned_driver_id].append(route.distance)

    results = []
    for driver in drivers:
        assigned = orders_by_driver.get(driver.id, [])
        on_time_flags = _delivered_on_time(assigned)
        if on_time_flags:
            on_time = _percent(sum(on_time_flags), len(on_time_flags))
        else:
            on_time = driver.ratings.on_time_delivery

        distances = distance_by_driver.get(driver.id)
        distance = sum(distances) if distances else driver.performance_metrics.total_distance

        safety = safety_score(driver)
        compliance = compliance_score(driver, as_of)
        rating = driver.ratings.average
        overall = _mean([on_time, safety * 10, rating * 20, compliance])

        results.append(DriverPerformance(
            driver_id=driver.id,
            driver_name=driver.display_name,
            on_time_delivery_rate=round(on_time, 2),
            safety_score=round(safety, 2),
            compliance_score=round(compliance, 2),
            total_trips=len(assigned),
            total_distance=round(distance, 2),
            rating=rating,
            overall_score=round(overall, 2),
            has_data=bool(
                assigned
                or driver.performance_metrics.total_trips
                or driver.ratings.total_reviews
            ),
        ))
    return results


def rank_top_performers(
    performance: Iterable[DriverPerformance],
    limit: int = 5,
) -> List[DriverPerformance]:
    """Highest on-time rate first, ties broken by safety score"""
    ranked = sorted(performance, key=lambda p: (-p.on_time_delivery_rate, -p.safety_score))
    return ranked[:max(limit, 0)]


def find_drivers_needing_improvement(
    performance: Iterable[DriverPerformance],
    safety_threshold: float = 7.0,
    compliance_threshold: float = 70.0,
) -> List[DriverPerformance]:
    flagged = [
        p for p in performance
        if p.has_data and (p.safety_score < safety_threshold or p.compliance_score < compliance_threshold)
    ]
    return sorted(flagged, key=lambda p: (p.safety_score, p.compliance_score))


def compute_performance_overview(
    performance: Sequence[DriverPerformance],
    vehicles: Sequence[Vehicle],
    config: Optional[FleetConfig] = None,
) -> PerformanceOverview:
    config = config or FleetConfig()
    with_data = [p for p in performance if p.has_data]
    efficiencies = [v.fuel_efficiency for v in vehicles if v.fuel_efficiency]

    return PerformanceOverview(
        on_time_delivery_rate=round(_mean([p.on_time_delivery_rate for p in with_data]), 2),
        fuel_efficiency=round(_mean(efficiencies), 2),
        safety_score=round(_mean([p.safety_score for p in with_data]), 2),
        top_performers=rank_top_performers(with_data, config.top_performers_limit),
        needing_improvement=find_drivers_needing_improvement(
            with_data, config.safety_score_threshold, config.compliance_score_threshold
        ),
    )


def build_dashboard(
    company_id: str,
    orders: Sequence[Order],
    vehicles: Sequence[Vehicle],
    drivers: Sequence[Driver],
    maintenance_records: Sequence[MaintenanceRecord],
    routes: Sequence[Route] = (),
    as_of: Optional[datetime] = None,
    config: Optional[FleetConfig] = None,
) -> DashboardResponse:
    """Run every aggregation over one consistent snapshot"""
    as_of = _as_of(as_of)
    config = config or FleetConfig()
    performance = compute_driver_performance(drivers, orders, routes, as_of)

    return DashboardResponse(
        company_id=company_id,
        generated_at=as_of,
        orders=compute_order_analytics(orders),
        fleet=compute_fleet_analytics(vehicles, orders, routes, as_of, config),
        fuel=compute_fuel_analytics(vehicles),
        costs=compute_cost_analytics(vehicles, maintenance_records, config),
        maintenance=compute_maintenance_analytics(maintenance_records),
        drivers=performance,
        performance=compute_performance_overview(performance, vehicles, config),
    )
