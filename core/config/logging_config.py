#!/usr/bin/env python3
"""Logging configuration for fleet services"""
import os
from dataclasses import dataclass, field
from typing import Tuple

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_QUIET_LOGGERS = ("uvicorn.access", "asyncpg")


def _bool(val: str) -> bool:
    return val.lower() == "true"


def _csv(val: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in val.split(",") if item.strip())


@dataclass
class LoggingConfig:
    """Where service logs go and how loud they are"""
    log_level: str = "INFO"
    log_format: str = DEFAULT_LOG_FORMAT
    date_format: str = ""
    log_file: str = ""
    enable_console: bool = True

    # Third-party loggers capped at WARNING
    quiet_loggers: Tuple[str, ...] = field(default=DEFAULT_QUIET_LOGGERS)

    service_name: str = "trip_service"
    environment: str = "development"

    @property
    def is_development(self) -> bool:
        return self.environment in ("development", "dev")

    @classmethod
    def from_env(cls) -> 'LoggingConfig':
        """Read LOG_* variables; development defaults to DEBUG"""
        environment = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        default_level = "DEBUG" if environment in ("development", "dev") else "INFO"
        quiet = os.getenv("LOG_QUIET_LOGGERS")
        return cls(
            log_level=os.getenv("LOG_LEVEL", default_level),
            log_format=os.getenv("LOG_FORMAT", DEFAULT_LOG_FORMAT),
            date_format=os.getenv("LOG_DATE_FORMAT", ""),
            log_file=os.getenv("LOG_FILE", ""),
            enable_console=_bool(os.getenv("LOG_CONSOLE", "true")),
            quiet_loggers=_csv(quiet) if quiet is not None else DEFAULT_QUIET_LOGGERS,
            service_name=os.getenv("SERVICE_NAME", "trip_service"),
            environment=environment,
        )
