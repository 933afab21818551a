#!/usr/bin/env python3
"""Fleet platform main configuration

Combines all sub-configs for the trip service.
"""
import os
from dataclasses import dataclass, field

from .fleet_config import FleetConfig
from .infra_config import InfraConfig
from .logging_config import LoggingConfig


def _bool(val: str) -> bool:
    return val.lower() == "true"


@dataclass
class FleetSettings:
    """Main configuration with all sub-configs"""

    # Environment
    environment: str = "development"
    debug: bool = False

    # Sub-configurations
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    infrastructure: InfraConfig = field(default_factory=InfraConfig)
    fleet: FleetConfig = field(default_factory=FleetConfig)

    @classmethod
    def from_env(cls) -> 'FleetSettings':
        """Load complete configuration from environment"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        return cls(
            environment=env,
            debug=_bool(os.getenv("DEBUG", "true" if env == "development" else "false")),
            logging=LoggingConfig.from_env(),
            infrastructure=InfraConfig.from_env(),
            fleet=FleetConfig.from_env(),
        )
