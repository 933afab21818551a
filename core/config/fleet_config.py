#!/usr/bin/env python3
"""Fleet dispatch configuration

Business thresholds used by the dispatch and analytics layers. The values
shown on the dashboard (10 idle days, top-5 list) are defaults here and can
be overridden per deployment.
"""
import os
from dataclasses import dataclass


def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


@dataclass
class FleetConfig:
    """Dispatch and analytics settings"""

    # ===========================================
    # Order numbering
    # ===========================================
    order_number_prefix: str = "TRP"
    order_number_padding: int = 3
    default_currency: str = "INR"

    # ===========================================
    # Analytics thresholds
    # ===========================================
    dead_stock_idle_days: int = 10
    top_performers_limit: int = 5
    safety_score_threshold: float = 7.0
    compliance_score_threshold: float = 70.0

    # ===========================================
    # Cost estimation
    # ===========================================
    assumed_monthly_km: float = 1000.0
    fuel_price_per_liter: float = 2.5
    maintenance_estimate_per_vehicle: float = 150.0

    # ===========================================
    # HTTP surface
    # ===========================================
    service_host: str = "0.0.0.0"
    service_port: int = 8260

    @classmethod
    def from_env(cls) -> 'FleetConfig':
        """Load fleet config from environment variables"""
        return cls(
            order_number_prefix=os.getenv("ORDER_NUMBER_PREFIX", "TRP"),
            order_number_padding=_int(os.getenv("ORDER_NUMBER_PADDING", "3"), 3),
            default_currency=os.getenv("DEFAULT_CURRENCY", "INR"),
            dead_stock_idle_days=_int(os.getenv("DEAD_STOCK_IDLE_DAYS", "10"), 10),
            top_performers_limit=_int(os.getenv("TOP_PERFORMERS_LIMIT", "5"), 5),
            safety_score_threshold=_float(os.getenv("SAFETY_SCORE_THRESHOLD", "7.0"), 7.0),
            compliance_score_threshold=_float(os.getenv("COMPLIANCE_SCORE_THRESHOLD", "70.0"), 70.0),
            assumed_monthly_km=_float(os.getenv("ASSUMED_MONTHLY_KM", "1000"), 1000.0),
            fuel_price_per_liter=_float(os.getenv("FUEL_PRICE_PER_LITER", "2.5"), 2.5),
            maintenance_estimate_per_vehicle=_float(
                os.getenv("MAINTENANCE_ESTIMATE_PER_VEHICLE", "150"), 150.0
            ),
            service_host=os.getenv("SERVICE_HOST", "0.0.0.0"),
            service_port=_int(os.getenv("SERVICE_PORT", "8260"), 8260),
        )
