#!/usr/bin/env python3
"""Configuration for the fleet dispatch platform

- infra_config: PostgreSQL document store connection
- fleet_config: order numbering, analytics thresholds, HTTP bind address
- logging_config: log level, format and handlers
- settings: FleetSettings, the bundle services read at startup

An ENV-specific dotenv file under deployment/environments/ is loaded once
on import. Variables already present in the process environment win.
ENV_FILE points at an explicit file instead.
"""
import os
from dotenv import load_dotenv

from .fleet_config import FleetConfig
from .infra_config import InfraConfig
from .logging_config import LoggingConfig
from .settings import FleetSettings

ENV_DIR = "deployment/environments"
_ENV_ALIASES = {
    "development": "dev",
    "testing": "test",
}


def resolve_env_file(environment: str) -> str:
    """Map an environment name to its dotenv path"""
    explicit = os.getenv("ENV_FILE")
    if explicit:
        return explicit
    name = _ENV_ALIASES.get(environment, environment)
    if name not in ("dev", "test", "staging", "production"):
        name = "dev"
    return os.path.join(ENV_DIR, f"{name}.env")


load_dotenv(
    resolve_env_file(os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")),
    override=False,
)

settings = FleetSettings.from_env()


def get_settings() -> FleetSettings:
    return settings


def reload_settings() -> FleetSettings:
    """Re-read every sub-config from the current environment"""
    global settings
    settings = FleetSettings.from_env()
    return settings


__all__ = [
    'FleetSettings',
    'FleetConfig',
    'InfraConfig',
    'LoggingConfig',
    'get_settings',
    'reload_settings',
    'resolve_env_file',
    'settings',
]
